"""Automation API — auto-responses, business hours, settings and evaluation."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from leadhub_engine.automation.schemas import (
    AutoResponseCreate,
    AutoResponseResponse,
    AutoResponseUpdate,
    BusinessHoursResponse,
    BusinessHoursUpdate,
    CompanyScopedRequest,
    DecisionResponse,
    EvaluateRequest,
    SettingsResponse,
    SettingsUpdate,
)
from leadhub_engine.common.exceptions import NotFoundError
from leadhub_engine.common.schemas import SuccessResponse
from leadhub_engine.common.security import (
    TenantPrincipal,
    ensure_company,
    require_tenant_member,
)
from leadhub_engine.gateway.client import GatewayError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/automation", tags=["automation"])


def _get_service():
    from leadhub_engine.deps import get_automation_service
    return get_automation_service()


def _get_evaluator():
    from leadhub_engine.deps import get_automation_evaluator
    return get_automation_evaluator()


def _get_gateway():
    from leadhub_engine.deps import get_gateway_service
    return get_gateway_service()


def _get_db():
    from leadhub_engine.deps import get_db
    return get_db()


# ── Auto-responses ──

@router.get("/auto-responses", response_model=list[AutoResponseResponse])
async def list_auto_responses(
    company_id: str | None = Query(None, alias="companyId"),
    active_only: bool = Query(False, alias="activeOnly"),
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    tenant = ensure_company(principal, company_id)
    svc = _get_service()
    db = _get_db()
    rules = await db.run(lambda session: svc.list_rules(session, tenant, active_only=active_only))
    return [AutoResponseResponse.model_validate(r) for r in rules]


@router.post("/auto-responses", response_model=AutoResponseResponse, status_code=201)
async def create_auto_response(
    body: AutoResponseCreate,
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    tenant = ensure_company(principal, body.company_id)
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        rule = await svc.create_rule(
            session, tenant, **body.model_dump(exclude={"company_id"}),
        )
        return AutoResponseResponse.model_validate(rule)


@router.put("/auto-responses/{rule_id}", response_model=AutoResponseResponse)
async def update_auto_response(
    rule_id: str,
    body: AutoResponseUpdate,
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    tenant = ensure_company(principal, body.company_id)
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        rule = await svc.update_rule(
            session, tenant, rule_id,
            **body.model_dump(exclude={"company_id"}, exclude_none=True),
        )
        if rule is None:
            raise NotFoundError("Auto-response not found")
        return AutoResponseResponse.model_validate(rule)


@router.delete("/auto-responses/{rule_id}", response_model=SuccessResponse)
async def delete_auto_response(
    rule_id: str,
    company_id: str | None = Query(None, alias="companyId"),
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    tenant = ensure_company(principal, company_id)
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        if not await svc.delete_rule(session, tenant, rule_id):
            raise NotFoundError("Auto-response not found")
    return SuccessResponse()


@router.patch("/auto-responses/{rule_id}", response_model=SuccessResponse)
async def trigger_auto_response(
    rule_id: str,
    body: CompanyScopedRequest | None = None,
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    """Record one use of a rule (trigger count and last-triggered time)."""
    tenant = ensure_company(principal, body.company_id if body else None)
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        if not await svc.increment_trigger(session, tenant, rule_id):
            raise NotFoundError("Auto-response not found")
    return SuccessResponse()


# ── Business hours ──

@router.get("/business-hours", response_model=list[BusinessHoursResponse])
async def get_business_hours(
    company_id: str | None = Query(None, alias="companyId"),
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    tenant = ensure_company(principal, company_id)
    svc = _get_service()
    db = _get_db()
    rows = await db.run(lambda session: svc.get_business_hours(session, tenant))
    return [BusinessHoursResponse.model_validate(r) for r in rows]


@router.put("/business-hours", response_model=list[BusinessHoursResponse])
async def update_business_hours(
    body: BusinessHoursUpdate,
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    tenant = ensure_company(principal, body.company_id)
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        rows = await svc.update_business_hours(
            session, tenant, [h.model_dump() for h in body.hours],
        )
        return [BusinessHoursResponse.model_validate(r) for r in rows]


# ── Settings ──

@router.get("/settings", response_model=SettingsResponse)
async def get_automation_settings(
    company_id: str | None = Query(None, alias="companyId"),
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    tenant = ensure_company(principal, company_id)
    svc = _get_service()
    db = _get_db()
    row = await db.run(lambda session: svc.get_settings(session, tenant))
    return SettingsResponse.model_validate(row)


@router.put("/settings", response_model=SettingsResponse)
async def update_automation_settings(
    body: SettingsUpdate,
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    tenant = ensure_company(principal, body.company_id)
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        row = await svc.update_settings(
            session, tenant, **body.model_dump(exclude={"company_id"}, exclude_unset=True),
        )
        return SettingsResponse.model_validate(row)


# ── Evaluation ──

@router.post("/evaluate", response_model=DecisionResponse)
async def evaluate_message(
    body: EvaluateRequest,
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    """Decide the automatic reply for an inbound message, optionally sending it."""
    tenant = ensure_company(principal, body.company_id)
    evaluator = _get_evaluator()
    db = _get_db()
    async with db.get_session() as session:
        decision = await evaluator.evaluate(
            session, tenant, body.message,
            at=body.timestamp, is_first_message=body.is_first_message,
        )

    response = DecisionResponse(**asdict(decision))
    if not (body.dispatch and decision.should_reply):
        return response

    gateway = _get_gateway()
    try:
        async with db.get_session() as session:
            client = await gateway.client_for(session, tenant)
        await client.send_text(body.phone, decision.message)
    except GatewayError as exc:
        logger.error(
            "Automatic reply for company %s not delivered (status %s)",
            tenant, exc.status_code,
        )
        return response.model_copy(update={"dispatch_error": exc.message})
    except NotFoundError as exc:
        return response.model_copy(update={"dispatch_error": exc.message})
    return response.model_copy(update={"dispatched": True})
