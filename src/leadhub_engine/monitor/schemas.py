"""Pydantic schemas for n8n monitoring endpoints."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["low", "medium", "high", "critical"]


class InstanceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=2048, pattern=r"^https?://")
    api_key: str = Field(..., min_length=1)
    active: bool = True
    check_interval: int = Field(5, ge=1, le=1440)


class InstanceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    url: Optional[str] = Field(None, min_length=1, max_length=2048, pattern=r"^https?://")
    # Omitted keeps the stored key.
    api_key: Optional[str] = Field(None, min_length=1)
    active: Optional[bool] = None
    check_interval: Optional[int] = Field(None, ge=1, le=1440)


class InstanceResponse(BaseModel):
    id: str
    name: str
    url: str
    api_key: Optional[str] = None
    active: bool
    check_interval: int
    last_check_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class InstanceSummary(BaseModel):
    id: str
    name: str
    url: str


class ErrorReport(BaseModel):
    """Body pushed by an n8n error workflow."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    execution_id: Optional[str] = Field(None, alias="executionId", max_length=100)
    workflow_id: str = Field("", alias="workflowId", max_length=100)
    workflow_name: str = Field("Unknown", alias="workflowName", max_length=500)
    error_node: str = Field("Unknown", alias="errorNode", max_length=255)
    message: str = Field(..., min_length=1, max_length=5000)
    details: dict[str, Any] = {}
    severity: Optional[Severity] = None
    timestamp: Optional[datetime] = None


class ErrorResponse(BaseModel):
    id: str
    instance_id: str
    execution_id: Optional[str] = None
    workflow_id: str
    workflow_name: str
    error_node: str
    message: str
    details: dict[str, Any] = {}
    severity: str
    timestamp: datetime
    resolved: bool
    resolved_at: Optional[datetime] = None
    notified: bool = False
    instance: Optional[InstanceSummary] = None

    model_config = {"from_attributes": True}


class SeverityCounts(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0


class MonitorStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_instances: int = Field(0, serialization_alias="totalInstances")
    errors_24h: int = Field(0, serialization_alias="errors24h")
    uptime_average: int = Field(0, serialization_alias="uptimeAverage")
    active_instances: int = Field(0, serialization_alias="activeInstances")
    unresolved_errors: int = Field(0, serialization_alias="unresolvedErrors")
    severity_counts: SeverityCounts = Field(
        default_factory=SeverityCounts, serialization_alias="severityCounts"
    )


class MonitorData(BaseModel):
    instances: list[InstanceResponse]
    errors: list[ErrorResponse]
    stats: MonitorStats


class SyncResult(BaseModel):
    instance: str
    status: Literal["success", "error"]
    total_executions: int = 0
    new_errors: int = 0
    skipped: int = 0
    message: Optional[str] = None


class SyncResponse(BaseModel):
    new_errors: int
    results: list[SyncResult]
