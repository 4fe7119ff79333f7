"""Pydantic schemas for automation endpoints.

Request bodies accept the dashboard's camelCase ``companyId`` alongside the
snake_case field names.
"""

from datetime import datetime, time
from typing import Annotated, Any, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    Field,
    field_validator,
    model_validator,
)

from leadhub_engine.automation.hours import is_valid_timezone
from leadhub_engine.automation.matchers import available_match_types
from leadhub_engine.common.schemas import CamelModel

Policy = Literal["after_hours", "away", "auto_response", "welcome"]
AvailabilityStatus = Literal["online", "away", "offline"]


def _keyword_list(v: Any) -> Any:
    if isinstance(v, str):
        return [v]
    return v


def _check_match_type(v: str) -> str:
    if v not in available_match_types():
        raise ValueError(f"match_type must be one of {available_match_types()}")
    return v


KeywordList = Annotated[list[str], BeforeValidator(_keyword_list), Field(min_length=1)]
MatchType = Annotated[str, AfterValidator(_check_match_type)]


# ── Auto-responses ──

class AutoResponseCreate(CamelModel):
    company_id: Optional[str] = Field(None, alias="companyId")
    name: str = Field(..., min_length=1, max_length=255)
    keywords: KeywordList
    response_message: str = Field(..., min_length=1)
    match_type: MatchType = "contains"
    case_sensitive: bool = False
    priority: int = 0
    is_active: bool = True


class AutoResponseUpdate(CamelModel):
    company_id: Optional[str] = Field(None, alias="companyId")
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    keywords: Optional[KeywordList] = None
    response_message: Optional[str] = Field(None, min_length=1)
    match_type: Optional[MatchType] = None
    case_sensitive: Optional[bool] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class CompanyScopedRequest(CamelModel):
    company_id: Optional[str] = Field(None, alias="companyId")


class AutoResponseResponse(BaseModel):
    id: str
    company_id: str
    name: str
    keywords: list[str]
    response_message: str
    match_type: str
    case_sensitive: bool
    priority: int
    is_active: bool
    trigger_count: int
    last_triggered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ── Business hours ──

class BusinessHoursEntry(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6)
    is_enabled: bool
    start_time: time
    end_time: time
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_valid_timezone(v):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @model_validator(mode="after")
    def _ordered_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BusinessHoursUpdate(CamelModel):
    company_id: Optional[str] = Field(None, alias="companyId")
    hours: list[BusinessHoursEntry] = Field(..., min_length=1, max_length=7)

    @field_validator("hours")
    @classmethod
    def _distinct_days(cls, v: list[BusinessHoursEntry]) -> list[BusinessHoursEntry]:
        days = [h.day_of_week for h in v]
        if len(days) != len(set(days)):
            raise ValueError("Each day_of_week may appear only once")
        if len({h.timezone for h in v if h.timezone}) > 1:
            raise ValueError("All entries must share one timezone")
        return v


class BusinessHoursResponse(BaseModel):
    id: str
    company_id: str
    day_of_week: int
    is_enabled: bool
    start_time: time
    end_time: time
    timezone: str

    model_config = {"from_attributes": True}


# ── Settings ──

class SettingsUpdate(CamelModel):
    company_id: Optional[str] = Field(None, alias="companyId")
    welcome_message: Optional[str] = None
    welcome_enabled: Optional[bool] = None
    away_message: Optional[str] = None
    away_enabled: Optional[bool] = None
    after_hours_message: Optional[str] = None
    after_hours_enabled: Optional[bool] = None
    auto_assign_enabled: Optional[bool] = None
    auto_assign_strategy: Optional[str] = Field(None, max_length=32)
    availability_status: Optional[AvailabilityStatus] = None
    policy_order: Optional[list[Policy]] = None

    @field_validator("policy_order")
    @classmethod
    def _distinct_policies(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is not None and len(v) != len(set(v)):
            raise ValueError("policy_order entries must be unique")
        return v


class SettingsResponse(BaseModel):
    id: str
    company_id: str
    welcome_message: str
    welcome_enabled: bool
    away_message: str
    away_enabled: bool
    after_hours_message: str
    after_hours_enabled: bool
    auto_assign_enabled: bool
    auto_assign_strategy: str
    availability_status: str
    policy_order: Optional[list[str]] = None
    updated_at: datetime

    model_config = {"from_attributes": True}


# ── Evaluation ──

class EvaluateRequest(CamelModel):
    company_id: Optional[str] = Field(None, alias="companyId")
    message: str
    timestamp: Optional[datetime] = None
    is_first_message: bool = Field(False, alias="isFirstMessage")
    phone: Optional[str] = Field(None, max_length=32)
    dispatch: bool = False

    @model_validator(mode="after")
    def _phone_for_dispatch(self):
        if self.dispatch and not self.phone:
            raise ValueError("phone is required when dispatch is true")
        return self


class DecisionResponse(BaseModel):
    action: Literal["reply", "none"]
    policy: Optional[str] = None
    message: Optional[str] = None
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None
    dispatched: bool = False
    dispatch_error: Optional[str] = None
