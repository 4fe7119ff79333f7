"""Pydantic schemas for activity log endpoints."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class ActivityCreate(BaseModel):
    action: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    metadata: dict[str, Any] = {}


class ActivityResponse(BaseModel):
    id: str
    company_id: str
    user_id: Optional[str] = None
    action: str
    description: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="details")
    created_at: datetime

    model_config = {"from_attributes": True}
