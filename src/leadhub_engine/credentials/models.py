"""SQLAlchemy models for per-tenant provider credentials."""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from leadhub_engine.common.models import Base, TimestampMixin, generate_uuid


class AIConfigModel(Base, TimestampMixin):
    __tablename__ = "ai_configs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    api_key_encrypted: Mapped[str] = mapped_column(String(1024), nullable=False)


class GatewayConfigModel(Base, TimestampMixin):
    __tablename__ = "gateway_configs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    instance_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    token_encrypted: Mapped[str] = mapped_column(String(1024), nullable=False)
