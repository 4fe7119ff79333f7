"""Pydantic schemas for credential configuration endpoints.

Secrets are write-only: responses carry the mask placeholder, and an update
that omits the secret keeps the stored one.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from leadhub_engine.vault.crypto import MASKED_SECRET


def _reject_mask(v: Optional[str]) -> Optional[str]:
    if v == MASKED_SECRET:
        raise ValueError("Send the new secret, or omit the field to keep the stored one")
    return v


class AIConfigUpdate(BaseModel):
    provider: Literal["openai", "anthropic"]
    model: str = Field(..., min_length=1, max_length=100)
    api_key: Optional[str] = Field(None, min_length=1)

    _no_mask = field_validator("api_key")(_reject_mask)


class AIConfigResponse(BaseModel):
    id: str
    provider: str
    model: str
    api_key: str = MASKED_SECRET
    updated_at: datetime

    model_config = {"from_attributes": True}


class GatewayConfigUpdate(BaseModel):
    instance_url: str = Field(..., min_length=1, max_length=2048, pattern=r"^https?://")
    phone: str = Field(..., min_length=1, max_length=32)
    token: Optional[str] = Field(None, min_length=1)

    _no_mask = field_validator("token")(_reject_mask)


class GatewayConfigResponse(BaseModel):
    id: str
    instance_url: str
    phone: str
    token: str = MASKED_SECRET
    updated_at: datetime

    model_config = {"from_attributes": True}


class AIConfigEnvelope(BaseModel):
    """``config`` is null until the tenant saves one."""
    config: Optional[AIConfigResponse] = None


class GatewayConfigEnvelope(BaseModel):
    config: Optional[GatewayConfigResponse] = None
