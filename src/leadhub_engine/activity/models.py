"""SQLAlchemy model for the tenant activity log."""

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from leadhub_engine.common.models import Base, TimestampMixin, generate_uuid


class ActivityLogModel(Base, TimestampMixin):
    __tablename__ = "activity_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    company_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # ``metadata`` is reserved on declarative classes.
    details: Mapped[dict] = mapped_column("metadata", JSON, default=dict)
