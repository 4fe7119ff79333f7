"""SQLAlchemy models for monitored n8n instances and their workflow errors."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from leadhub_engine.common.models import Base, TimestampMixin, generate_uuid, utcnow


class MonitorInstanceModel(Base, TimestampMixin):
    __tablename__ = "monitor_instances"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    api_key_encrypted: Mapped[str] = mapped_column(String(1024), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    check_interval: Mapped[int] = mapped_column(Integer, nullable=False, default=5)  # minutes
    last_check_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class MonitorErrorModel(Base, TimestampMixin):
    __tablename__ = "monitor_errors"
    __table_args__ = (
        UniqueConstraint("instance_id", "execution_id", name="uq_monitor_error_execution"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    company_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    # No foreign key: errors outlive the instance that reported them.
    instance_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    execution_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    workflow_id: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    workflow_name: Mapped[str] = mapped_column(String(500), nullable=False, default="Unknown")
    error_node: Mapped[str] = mapped_column(String(255), nullable=False, default="Unknown")
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    details: Mapped[dict] = mapped_column(JSON, default=dict)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="medium", index=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
