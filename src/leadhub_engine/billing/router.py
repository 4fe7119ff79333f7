"""Billing endpoints — Asaas webhook ingestion and channel administration."""

import logging

from fastapi import APIRouter, Depends, Header, Query, Request

from leadhub_engine.billing.asaas_webhook import parse_asaas_event, verify_asaas_request
from leadhub_engine.billing.schemas import (
    AgentCreate,
    AgentCreateResponse,
    AgentResponse,
    BillingSummaryResponse,
    ChargeResponse,
    ChargeStatus,
    WebhookAckResponse,
)
from leadhub_engine.common.exceptions import AuthorizationError, NotFoundError
from leadhub_engine.common.schemas import SuccessResponse
from leadhub_engine.common.security import TenantPrincipal, require_tenant_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _get_service():
    from leadhub_engine.deps import get_billing_service
    return get_billing_service()


def _get_db():
    from leadhub_engine.deps import get_db
    return get_db()


def _get_activity():
    from leadhub_engine.deps import get_activity_service
    return get_activity_service()


# ── Inbound webhook ──

@webhook_router.post("/{agente_id}", response_model=WebhookAckResponse)
async def receive_asaas_webhook(
    agente_id: str,
    request: Request,
    asaas_access_token: str | None = Header(None, alias="asaas-access-token"),
    x_asaas_signature: str | None = Header(None, alias="X-Asaas-Signature"),
):
    """Reconcile one Asaas delivery.

    Any non-2xx answer makes Asaas re-deliver, so authentication and parsing
    failures are rejected before anything is written and persistence failures
    surface as 5xx.
    """
    svc = _get_service()
    db = _get_db()

    agent = await db.run(lambda session: svc.resolve_agent(session, agente_id))
    if agent is None:
        raise NotFoundError("Webhook not found or inactive")

    payload = await request.body()
    if not verify_asaas_request(
        payload, asaas_access_token, x_asaas_signature, svc.agent_secret(agent),
    ):
        logger.warning("Rejected Asaas delivery for agent %s: bad token", agent.id)
        raise AuthorizationError("Invalid webhook token")

    event, raw = parse_asaas_event(payload)
    charge_id = await db.run(
        lambda session: svc.reconcile(session, agent, event, raw)
    )
    logger.info(
        "Reconciled Asaas charge %s (%s, %s)",
        event.payment.id, event.event, event.payment.status,
    )

    _get_activity().record_later(
        agent.company_id,
        "billing.charge_reconciled",
        description=f"{event.event or 'webhook'}: {event.payment.id}",
        metadata={
            "agent_id": agent.id,
            "charge_id": charge_id,
            "external_id": event.payment.id,
            "status": event.payment.status,
        },
    )
    return WebhookAckResponse(event=event.event, charge_id=charge_id)


# ── Agents ──

@router.post("/agents", response_model=AgentCreateResponse, status_code=201)
async def create_agent(
    body: AgentCreate,
    principal: TenantPrincipal = Depends(require_tenant_admin),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        agent, secret = await svc.create_agent(session, principal.company_id, body.name)
        return AgentCreateResponse(
            id=agent.id,
            company_id=agent.company_id,
            name=agent.name,
            webhook_id=agent.webhook_id,
            active=agent.active,
            created_at=agent.created_at,
            updated_at=agent.updated_at,
            webhook_url=svc.webhook_url(agent),
            webhook_secret=secret,
        )


@router.get("/agents", response_model=list[AgentResponse])
async def list_agents(principal: TenantPrincipal = Depends(require_tenant_admin)):
    svc = _get_service()
    db = _get_db()
    rows = await db.run(lambda session: svc.list_agents(session, principal.company_id))
    return [
        AgentResponse.model_validate(agent).model_copy(update={"charges_count": count})
        for agent, count in rows
    ]


@router.get("/agents/{agent_id}", response_model=AgentResponse)
async def get_agent(
    agent_id: str,
    principal: TenantPrincipal = Depends(require_tenant_admin),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        agent = await svc.get_agent(session, principal.company_id, agent_id)
        if agent is None:
            raise NotFoundError("Agent not found")
        count = await svc.count_charges(session, agent.id)
        return AgentResponse.model_validate(agent).model_copy(update={"charges_count": count})


@router.delete("/agents/{agent_id}", response_model=SuccessResponse)
async def deactivate_agent(
    agent_id: str,
    principal: TenantPrincipal = Depends(require_tenant_admin),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        if not await svc.deactivate_agent(session, principal.company_id, agent_id):
            raise NotFoundError("Agent not found")
    return SuccessResponse()


# ── Charges ──

@router.get("/charges", response_model=list[ChargeResponse])
async def list_charges(
    agent_id: str | None = None,
    status: ChargeStatus | None = None,
    limit: int = Query(50, ge=1, le=500),
    principal: TenantPrincipal = Depends(require_tenant_admin),
):
    svc = _get_service()
    db = _get_db()
    charges = await db.run(
        lambda session: svc.list_charges(
            session,
            principal.company_id,
            agent_id=agent_id,
            status=status.value if status else None,
            limit=limit,
        )
    )
    return [ChargeResponse.model_validate(c) for c in charges]


@router.get("/summary", response_model=BillingSummaryResponse)
async def billing_summary(principal: TenantPrincipal = Depends(require_tenant_admin)):
    svc = _get_service()
    db = _get_db()
    data = await db.run(lambda session: svc.summary(session, principal.company_id))
    return BillingSummaryResponse(**data)
