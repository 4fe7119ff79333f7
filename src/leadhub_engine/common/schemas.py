"""Shared Pydantic schemas for LeadHub-Engine."""

from pydantic import BaseModel, ConfigDict


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "leadhub-engine"


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    code: str


class SuccessResponse(BaseModel):
    success: bool = True


class CamelModel(BaseModel):
    """Request body that accepts the dashboard's camelCase names as well."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")
