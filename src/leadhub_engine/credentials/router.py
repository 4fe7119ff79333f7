"""Credential configuration API (tenant admins)."""

from fastapi import APIRouter, Depends

from leadhub_engine.common.security import TenantPrincipal, require_tenant_admin
from leadhub_engine.credentials.schemas import (
    AIConfigEnvelope,
    AIConfigResponse,
    AIConfigUpdate,
    GatewayConfigEnvelope,
    GatewayConfigResponse,
    GatewayConfigUpdate,
)

router = APIRouter(tags=["credentials"])


def _get_service():
    from leadhub_engine.deps import get_credential_service
    return get_credential_service()


def _get_db():
    from leadhub_engine.deps import get_db
    return get_db()


@router.get("/admin/ai/config", response_model=AIConfigEnvelope)
async def get_ai_config(principal: TenantPrincipal = Depends(require_tenant_admin)):
    svc = _get_service()
    db = _get_db()
    config = await db.run(lambda session: svc.get_ai_config(session, principal.company_id))
    return AIConfigEnvelope(config=AIConfigResponse.model_validate(config) if config else None)


@router.put("/admin/ai/config", response_model=AIConfigEnvelope)
async def save_ai_config(
    body: AIConfigUpdate,
    principal: TenantPrincipal = Depends(require_tenant_admin),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        config = await svc.save_ai_config(
            session, principal.company_id,
            provider=body.provider, model=body.model, api_key=body.api_key,
        )
        return AIConfigEnvelope(config=AIConfigResponse.model_validate(config))


@router.get("/whatsapp/config", response_model=GatewayConfigEnvelope)
async def get_gateway_config(principal: TenantPrincipal = Depends(require_tenant_admin)):
    svc = _get_service()
    db = _get_db()
    config = await db.run(lambda session: svc.get_gateway_config(session, principal.company_id))
    return GatewayConfigEnvelope(
        config=GatewayConfigResponse.model_validate(config) if config else None
    )


@router.put("/whatsapp/config", response_model=GatewayConfigEnvelope)
async def save_gateway_config(
    body: GatewayConfigUpdate,
    principal: TenantPrincipal = Depends(require_tenant_admin),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        config = await svc.save_gateway_config(
            session, principal.company_id,
            instance_url=body.instance_url, phone=body.phone, token=body.token,
        )
        return GatewayConfigEnvelope(config=GatewayConfigResponse.model_validate(config))
