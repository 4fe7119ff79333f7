"""SQLAlchemy models for payment webhook channels and reconciled charges."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, ForeignKey, JSON, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from leadhub_engine.common.models import Base, TimestampMixin, generate_uuid


class WebhookAgentModel(Base, TimestampMixin):
    __tablename__ = "billing_agents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Public token embedded in the webhook URL.
    webhook_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    webhook_secret_encrypted: Mapped[str | None] = mapped_column(String(512), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ChargeModel(Base, TimestampMixin):
    __tablename__ = "billing_charges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    agent_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("billing_agents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    company_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    # Provider charge id; one row per charge across all deliveries.
    external_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    paid_at: Mapped[date | None] = mapped_column(Date, nullable=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False, default="N/A")
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False, default="N/A")
    customer_document: Mapped[str | None] = mapped_column(String(32), nullable=True)
    last_event: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    raw_payload: Mapped[dict] = mapped_column(JSON, default=dict)
