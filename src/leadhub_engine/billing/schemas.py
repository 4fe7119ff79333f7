"""Pydantic schemas for the Asaas webhook and billing admin endpoints."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChargeStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    RECEIVED = "RECEIVED"
    OVERDUE = "OVERDUE"
    REFUNDED = "REFUNDED"


# Provider statuses folded into one of ours. Anything else (chargebacks,
# statuses Asaas adds later) leaves a stored charge's status untouched.
STATUS_ALIASES = {
    "RECEIVED_IN_CASH": ChargeStatus.RECEIVED,
    "DUNNING_RECEIVED": ChargeStatus.RECEIVED,
    "AWAITING_RISK_ANALYSIS": ChargeStatus.PENDING,
    "DUNNING_REQUESTED": ChargeStatus.OVERDUE,
    "REFUND_REQUESTED": ChargeStatus.REFUNDED,
    "REFUND_IN_PROGRESS": ChargeStatus.REFUNDED,
}


def charge_status(provider_status: str) -> ChargeStatus | None:
    """Our status for an Asaas payment status, or None when there is none."""
    if provider_status in STATUS_ALIASES:
        return STATUS_ALIASES[provider_status]
    try:
        return ChargeStatus(provider_status)
    except ValueError:
        return None


# ── Inbound webhook ──

class AsaasCustomer(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    document: Optional[str] = Field(None, alias="cpfCnpj")


class AsaasPayment(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1, max_length=100)
    customer: Optional[AsaasCustomer] = None
    value: Decimal = Decimal("0")
    status: str = Field(..., min_length=1, max_length=64)
    due_date: Optional[date] = Field(None, alias="dueDate")
    payment_date: Optional[date] = Field(None, alias="paymentDate")

    @field_validator("customer", mode="before")
    @classmethod
    def _customer_id_only(cls, v: Any) -> Any:
        # Asaas sends the bare customer id unless the payload is expanded.
        if isinstance(v, str):
            return None
        return v

    @field_validator("value", mode="before")
    @classmethod
    def _null_value(cls, v: Any) -> Any:
        return Decimal("0") if v is None or v == "" else v

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("due_date", "payment_date", mode="before")
    @classmethod
    def _empty_date(cls, v: Any) -> Any:
        return None if v == "" else v

    @property
    def mapped_status(self) -> ChargeStatus | None:
        return charge_status(self.status)


class AsaasWebhookPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str = ""
    payment: AsaasPayment


class WebhookAckResponse(BaseModel):
    success: bool = True
    event: str
    charge_id: str


# ── Agents ──

class AgentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class AgentResponse(BaseModel):
    id: str
    company_id: str
    name: str
    webhook_id: str
    active: bool
    created_at: datetime
    updated_at: datetime
    charges_count: int = 0

    model_config = {"from_attributes": True}


class AgentCreateResponse(AgentResponse):
    """Returned once, at creation: the only time the secret is shown."""
    webhook_url: str
    webhook_secret: str


# ── Charges ──

class ChargeResponse(BaseModel):
    id: str
    agent_id: str
    external_id: str
    status: str
    amount: Decimal
    due_date: Optional[date] = None
    paid_at: Optional[date] = None
    customer_name: str
    customer_email: str
    customer_document: Optional[str] = None
    last_event: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BillingSummaryResponse(BaseModel):
    total_charges: int
    received_revenue: Decimal
    pending_value: Decimal
    overdue_value: Decimal
    active_agents: int
    status_counts: dict[str, int]
    status_values: dict[str, Decimal]
