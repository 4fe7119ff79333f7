"""Pydantic schemas for company and member endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")


class CompanyResponse(BaseModel):
    id: str
    name: str
    slug: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MemberCreate(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=255)
    email: str = ""
    role: Literal["admin", "member"] = "member"


class MemberResponse(BaseModel):
    id: str
    user_id: str
    company_id: str
    email: str
    role: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
