"""SQLAlchemy models for auto-responses, business hours and automation settings."""

from datetime import datetime, time

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    SmallInteger,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from leadhub_engine.common.models import Base, TimestampMixin, generate_uuid

DEFAULT_WELCOME_MESSAGE = "Olá! Seja bem-vindo(a). Como posso ajudá-lo(a) hoje?"
DEFAULT_AWAY_MESSAGE = "Estou temporariamente ausente. Retornarei em breve."
DEFAULT_AFTER_HOURS_MESSAGE = (
    "Estamos fora do horário de atendimento. "
    "Nosso horário é de Segunda a Sexta, das 9h às 18h."
)


class AutoResponseModel(Base, TimestampMixin):
    __tablename__ = "auto_responses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    keywords: Mapped[list] = mapped_column(JSON, default=list)
    response_message: Mapped[str] = mapped_column(Text, nullable=False)
    match_type: Mapped[str] = mapped_column(String(20), nullable=False, default="contains")
    case_sensitive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    trigger_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_triggered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class BusinessHoursModel(Base, TimestampMixin):
    __tablename__ = "business_hours"
    __table_args__ = (
        UniqueConstraint("company_id", "day_of_week", name="uq_business_hours_day"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)  # 0 = Sunday
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False, default=time(9, 0))
    end_time: Mapped[time] = mapped_column(Time, nullable=False, default=time(18, 0))
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="America/Sao_Paulo")


class AutomationSettingsModel(Base, TimestampMixin):
    __tablename__ = "automation_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    welcome_message: Mapped[str] = mapped_column(Text, nullable=False, default=DEFAULT_WELCOME_MESSAGE)
    welcome_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    away_message: Mapped[str] = mapped_column(Text, nullable=False, default=DEFAULT_AWAY_MESSAGE)
    away_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    after_hours_message: Mapped[str] = mapped_column(
        Text, nullable=False, default=DEFAULT_AFTER_HOURS_MESSAGE
    )
    after_hours_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_assign_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_assign_strategy: Mapped[str] = mapped_column(String(32), nullable=False, default="round_robin")
    availability_status: Mapped[str] = mapped_column(String(16), nullable=False, default="online")
    # None falls back to the configured default order.
    policy_order: Mapped[list | None] = mapped_column(JSON, nullable=True)
