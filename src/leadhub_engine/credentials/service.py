"""Credential service — encrypted provider configs, one per tenant."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadhub_engine.common.exceptions import ValidationError
from leadhub_engine.credentials.models import AIConfigModel, GatewayConfigModel
from leadhub_engine.vault.crypto import Vault

logger = logging.getLogger(__name__)


class CredentialService:
    """Stores AI provider and messaging gateway credentials under the vault."""

    def __init__(self, vault: Vault):
        self.vault = vault

    async def _get(self, session: AsyncSession, model, company_id: str):
        result = await session.execute(select(model).where(model.company_id == company_id))
        return result.scalar_one_or_none()

    async def get_ai_config(
        self, session: AsyncSession, company_id: str,
    ) -> AIConfigModel | None:
        return await self._get(session, AIConfigModel, company_id)

    async def save_ai_config(
        self,
        session: AsyncSession,
        company_id: str,
        provider: str,
        model: str,
        api_key: str | None = None,
    ) -> AIConfigModel:
        """Create or update. ``api_key=None`` keeps the stored key."""
        config = await self.get_ai_config(session, company_id)
        if config is None:
            if not api_key:
                raise ValidationError("api_key is required to create the AI configuration")
            config = AIConfigModel(company_id=company_id, api_key_encrypted="")
            session.add(config)
        config.provider = provider
        config.model = model
        if api_key:
            config.api_key_encrypted = self.vault.encrypt(api_key)
        await session.flush()
        logger.info("Saved AI config for company %s (key rotated: %s)", company_id, bool(api_key))
        return config

    async def get_gateway_config(
        self, session: AsyncSession, company_id: str,
    ) -> GatewayConfigModel | None:
        return await self._get(session, GatewayConfigModel, company_id)

    async def save_gateway_config(
        self,
        session: AsyncSession,
        company_id: str,
        instance_url: str,
        phone: str,
        token: str | None = None,
    ) -> GatewayConfigModel:
        """Create or update. ``token=None`` keeps the stored token."""
        config = await self.get_gateway_config(session, company_id)
        if config is None:
            if not token:
                raise ValidationError("token is required to create the gateway configuration")
            config = GatewayConfigModel(company_id=company_id, token_encrypted="")
            session.add(config)
        config.instance_url = instance_url.rstrip("/")
        config.phone = phone
        if token:
            config.token_encrypted = self.vault.encrypt(token)
        await session.flush()
        logger.info("Saved gateway config for company %s (token rotated: %s)", company_id, bool(token))
        return config
