"""UAZapi WhatsApp gateway client.

One HTTP call per operation with a bounded timeout and no retries; the
caller decides whether a failed send is worth repeating.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from leadhub_engine.common.exceptions import UpstreamGatewayError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayConfig:
    instance_url: str
    token: str


class GatewayError(UpstreamGatewayError):
    """Gateway answered non-2xx or could not be reached.

    ``status_code`` here is the upstream HTTP status (None on transport
    failure); the response to our own client is always 502.
    """

    def __init__(
        self,
        message: str = "Messaging gateway request failed",
        status_code: Optional[int] = None,
        body: str = "",
    ):
        super().__init__(message, code="GATEWAY_ERROR")
        self.status_code = status_code
        self.body = body


class UazapiClient:
    """Calls a tenant's UAZapi instance."""

    def __init__(
        self,
        config: GatewayConfig,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.timeout = timeout
        self._transport = transport

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        url = f"{self.config.instance_url.rstrip('/')}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport,
            ) as client:
                resp = await client.post(
                    url, json=payload, headers={"apikey": self.config.token},
                )
        except httpx.HTTPError as exc:
            logger.warning("Gateway %s unreachable: %s", path, exc)
            raise GatewayError(f"Messaging gateway unreachable: {type(exc).__name__}") from exc

        if resp.status_code >= 400:
            body = resp.text[:4000]
            logger.warning("Gateway %s returned HTTP %d: %s", path, resp.status_code, body[:200])
            raise GatewayError(
                f"Messaging gateway returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=body,
            )

        try:
            return resp.json()
        except ValueError:
            return {"raw_text": resp.text[:4000]}

    async def send_text(self, phone: str, message: str) -> Any:
        return await self._post("/send/text", {"phone": phone, "message": message})

    async def send_media(
        self, phone: str, media_url: str, media_type: str = "image", caption: str = "",
    ) -> Any:
        return await self._post("/send/media", {
            "phone": phone,
            "mediaUrl": media_url,
            "mediaType": media_type,
            "caption": caption,
        })

    async def set_typing(self, phone: str) -> Any:
        return await self._post("/presence/typing", {"phone": phone})

    async def send_reaction(self, message_id: str, emoji: str) -> Any:
        return await self._post("/message/react", {"messageId": message_id, "emoji": emoji})

    async def delete_message(self, phone: str, message_id: str) -> Any:
        return await self._post("/message/delete", {"number": phone, "key": {"id": message_id}})
