"""Resolves a tenant's gateway credentials into a ready client."""

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from leadhub_engine.common.config import LeadhubSettings
from leadhub_engine.common.exceptions import NotFoundError
from leadhub_engine.credentials.service import CredentialService
from leadhub_engine.gateway.client import GatewayConfig, UazapiClient


class GatewayService:
    def __init__(
        self,
        settings: LeadhubSettings,
        credentials: CredentialService,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self.credentials = credentials
        self._transport = transport

    async def resolve_config(self, session: AsyncSession, company_id: str) -> GatewayConfig:
        """Decrypted gateway config for the tenant; NotFoundError when none is saved."""
        row = await self.credentials.get_gateway_config(session, company_id)
        if row is None:
            raise NotFoundError("WhatsApp gateway is not configured")
        return GatewayConfig(
            instance_url=row.instance_url,
            token=self.credentials.vault.decrypt(row.token_encrypted),
        )

    async def client_for(self, session: AsyncSession, company_id: str) -> UazapiClient:
        config = await self.resolve_config(session, company_id)
        return UazapiClient(
            config, timeout=self.settings.gateway_timeout, transport=self._transport,
        )
