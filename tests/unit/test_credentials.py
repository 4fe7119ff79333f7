"""Tests for encrypted provider credentials."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from leadhub_engine.common.config import LeadhubSettings
from leadhub_engine.common.database import DatabaseManager
from leadhub_engine.common.exceptions import ValidationError
from leadhub_engine.credentials.schemas import (
    AIConfigResponse,
    AIConfigUpdate,
    GatewayConfigResponse,
    GatewayConfigUpdate,
)
from leadhub_engine.credentials.service import CredentialService
from leadhub_engine.tenants.service import TenantService
from leadhub_engine.vault.crypto import MASKED_SECRET, Vault


@pytest.fixture
async def db():
    manager = DatabaseManager(LeadhubSettings(encryption_key="k", db_url="sqlite+aiosqlite://"))
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture(scope="module")
def vault():
    return Vault("unit-test-master-key")


@pytest.fixture
def svc(vault):
    return CredentialService(vault)


@pytest.fixture
async def company_id(db):
    async with db.get_session() as session:
        company = await TenantService().create_company(session, name="Acme", slug="acme")
        return company.id


class TestAIConfig:
    async def test_create_requires_key(self, db, svc, company_id):
        with pytest.raises(ValidationError):
            async with db.get_session() as session:
                await svc.save_ai_config(session, company_id, provider="openai", model="gpt-4o")

    async def test_key_kept_when_omitted(self, db, svc, vault, company_id):
        async with db.get_session() as session:
            created = await svc.save_ai_config(
                session, company_id, provider="openai", model="gpt-4o", api_key="sk-1",
            )
            stored = created.api_key_encrypted
        async with db.get_session() as session:
            updated = await svc.save_ai_config(
                session, company_id, provider="anthropic", model="claude-sonnet",
            )
        assert updated.id == created.id
        assert updated.provider == "anthropic"
        assert updated.api_key_encrypted == stored
        assert vault.decrypt(updated.api_key_encrypted) == "sk-1"

    async def test_key_rotated(self, db, svc, vault, company_id):
        async with db.get_session() as session:
            await svc.save_ai_config(session, company_id, provider="openai", model="m", api_key="sk-1")
            row = await svc.save_ai_config(session, company_id, provider="openai", model="m", api_key="sk-2")
        assert vault.decrypt(row.api_key_encrypted) == "sk-2"

    async def test_response_never_carries_key(self, db, svc, company_id):
        async with db.get_session() as session:
            row = await svc.save_ai_config(session, company_id, provider="openai", model="m", api_key="sk-1")
        assert AIConfigResponse.model_validate(row).api_key == MASKED_SECRET


class TestGatewayConfig:
    async def test_create_requires_token(self, db, svc, company_id):
        with pytest.raises(ValidationError):
            async with db.get_session() as session:
                await svc.save_gateway_config(
                    session, company_id, instance_url="https://x.uazapi.com", phone="5511999990000",
                )

    async def test_round_trip(self, db, svc, vault, company_id):
        async with db.get_session() as session:
            row = await svc.save_gateway_config(
                session, company_id,
                instance_url="https://x.uazapi.com/", phone="5511999990000", token="tok",
            )
            assert (await svc.get_gateway_config(session, company_id)).id == row.id
            assert await svc.get_gateway_config(session, "other") is None
        assert row.instance_url == "https://x.uazapi.com"
        assert vault.decrypt(row.token_encrypted) == "tok"
        assert GatewayConfigResponse.model_validate(row).token == MASKED_SECRET


class TestSchemas:
    def test_mask_placeholder_rejected(self):
        with pytest.raises(PydanticValidationError):
            AIConfigUpdate(provider="openai", model="m", api_key=MASKED_SECRET)
        with pytest.raises(PydanticValidationError):
            GatewayConfigUpdate(instance_url="https://x.com", phone="5511999990000", token=MASKED_SECRET)

    def test_unknown_provider(self):
        with pytest.raises(PydanticValidationError):
            AIConfigUpdate(provider="mistral", model="m", api_key="k")

    def test_secret_optional(self):
        assert AIConfigUpdate(provider="anthropic", model="m").api_key is None
