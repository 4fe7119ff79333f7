"""Outbound WhatsApp API — thin pass-through to the tenant's gateway."""

from fastapi import APIRouter, Depends

from leadhub_engine.common.security import TenantPrincipal, require_tenant_member
from leadhub_engine.gateway.schemas import (
    DeleteMessageRequest,
    GatewayResult,
    ReactionRequest,
    SendMediaRequest,
    SendTextRequest,
    TypingRequest,
)

router = APIRouter(prefix="/whatsapp", tags=["whatsapp"])


def _get_service():
    from leadhub_engine.deps import get_gateway_service
    return get_gateway_service()


def _get_db():
    from leadhub_engine.deps import get_db
    return get_db()


async def _client(principal: TenantPrincipal):
    svc = _get_service()
    return await _get_db().run(lambda session: svc.client_for(session, principal.company_id))


@router.post("/send/text", response_model=GatewayResult)
async def send_text(
    body: SendTextRequest,
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    client = await _client(principal)
    return GatewayResult(data=await client.send_text(body.phone, body.message))


@router.post("/send/media", response_model=GatewayResult)
async def send_media(
    body: SendMediaRequest,
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    client = await _client(principal)
    data = await client.send_media(body.phone, body.media_url, body.media_type, body.caption)
    return GatewayResult(data=data)


@router.post("/presence/typing", response_model=GatewayResult)
async def set_typing(
    body: TypingRequest,
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    client = await _client(principal)
    return GatewayResult(data=await client.set_typing(body.phone))


@router.post("/message/react", response_model=GatewayResult)
async def react_to_message(
    body: ReactionRequest,
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    client = await _client(principal)
    return GatewayResult(data=await client.send_reaction(body.message_id, body.emoji))


@router.post("/message/delete", response_model=GatewayResult)
async def delete_message(
    body: DeleteMessageRequest,
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    client = await _client(principal)
    return GatewayResult(data=await client.delete_message(body.phone, body.message_id))
