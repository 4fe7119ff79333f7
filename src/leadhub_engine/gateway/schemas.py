"""Pydantic schemas for outbound WhatsApp endpoints."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from leadhub_engine.common.schemas import CamelModel


class SendTextRequest(CamelModel):
    phone: str = Field(..., min_length=8, max_length=32)
    message: str = Field(..., min_length=1, max_length=4096)


class SendMediaRequest(CamelModel):
    phone: str = Field(..., min_length=8, max_length=32)
    media_url: str = Field(..., alias="mediaUrl", pattern=r"^https?://")
    media_type: Literal["image", "video", "audio", "document"] = Field("image", alias="mediaType")
    caption: str = Field("", max_length=1024)


class TypingRequest(CamelModel):
    phone: str = Field(..., min_length=8, max_length=32)


class ReactionRequest(CamelModel):
    message_id: str = Field(..., alias="messageId", min_length=1)
    emoji: str = Field(..., min_length=1, max_length=16)


class DeleteMessageRequest(CamelModel):
    phone: str = Field(..., min_length=8, max_length=32)
    message_id: str = Field(..., alias="messageId", min_length=1)


class GatewayResult(BaseModel):
    success: bool = True
    data: Any = None
