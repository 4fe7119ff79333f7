"""n8n monitoring API."""

import json
import logging

from fastapi import APIRouter, Depends, Header, Query, Request
from pydantic import ValidationError as PydanticValidationError

from leadhub_engine.common.exceptions import AuthorizationError, NotFoundError, ValidationError
from leadhub_engine.common.schemas import SuccessResponse
from leadhub_engine.common.security import TenantPrincipal, require_tenant_admin
from leadhub_engine.monitor.schemas import (
    ErrorReport,
    ErrorResponse,
    InstanceCreate,
    InstanceResponse,
    InstanceSummary,
    InstanceUpdate,
    MonitorData,
    MonitorStats,
    Severity,
    SyncResponse,
)
from leadhub_engine.vault.crypto import validate_webhook_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/monitor", tags=["monitor"])


def _get_service():
    from leadhub_engine.deps import get_monitor_service
    return get_monitor_service()


def _get_db():
    from leadhub_engine.deps import get_db
    return get_db()


def _error_response(error, instance) -> ErrorResponse:
    summary = None
    if instance is not None:
        summary = InstanceSummary(id=instance.id, name=instance.name, url=instance.url)
    return ErrorResponse.model_validate(error).model_copy(update={"instance": summary})


# ── Instances ──

@router.get("/instances", response_model=list[InstanceResponse])
async def list_instances(principal: TenantPrincipal = Depends(require_tenant_admin)):
    svc = _get_service()
    db = _get_db()
    instances = await db.run(lambda session: svc.list_instances(session, principal.company_id))
    return [InstanceResponse(**svc.instance_view(i)) for i in instances]


@router.post("/instances", response_model=InstanceResponse, status_code=201)
async def create_instance(
    body: InstanceCreate,
    principal: TenantPrincipal = Depends(require_tenant_admin),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        instance = await svc.create_instance(
            session, principal.company_id, **body.model_dump(),
        )
        return InstanceResponse(**svc.instance_view(instance))


@router.put("/instances/{instance_id}", response_model=InstanceResponse)
async def update_instance(
    instance_id: str,
    body: InstanceUpdate,
    principal: TenantPrincipal = Depends(require_tenant_admin),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        instance = await svc.update_instance(
            session, principal.company_id, instance_id, **body.model_dump(exclude_none=True),
        )
        if instance is None:
            raise NotFoundError("Instance not found")
        return InstanceResponse(**svc.instance_view(instance))


@router.delete("/instances/{instance_id}", response_model=SuccessResponse)
async def delete_instance(
    instance_id: str,
    principal: TenantPrincipal = Depends(require_tenant_admin),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        if not await svc.delete_instance(session, principal.company_id, instance_id):
            raise NotFoundError("Instance not found")
    return SuccessResponse()


# ── Push ingestion ──

@router.post("/instances/{instance_id}/errors", response_model=ErrorResponse, status_code=201)
async def report_error(
    instance_id: str,
    request: Request,
    x_leadhub_signature: str | None = Header(None, alias="X-Leadhub-Signature"),
):
    """Record an error pushed by an n8n error workflow.

    The body is signed with the instance's API key instead of a user session.
    """
    svc = _get_service()
    db = _get_db()

    instance = await db.run(lambda session: svc.get_active_instance(session, instance_id))
    if instance is None:
        raise NotFoundError("Instance not found or inactive")

    payload = await request.body()
    if not validate_webhook_signature(payload, x_leadhub_signature or "", svc.instance_api_key(instance)):
        logger.warning("Rejected error report for instance %s: bad signature", instance_id)
        raise AuthorizationError("Invalid signature")

    try:
        report = ErrorReport.model_validate(json.loads(payload))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError("Invalid JSON payload") from exc
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        raise ValidationError(
            f"{'.'.join(str(p) for p in first['loc'])}: {first['msg']}"
        ) from exc

    async with db.get_session() as session:
        error = await svc.record_error(session, instance, report)
        return _error_response(error, instance)


# ── Errors & aggregates ──

@router.get("/errors", response_model=list[ErrorResponse])
async def list_errors(
    instance_id: str | None = None,
    resolved: bool | None = None,
    severity: Severity | None = None,
    limit: int = Query(100, ge=1, le=1000),
    principal: TenantPrincipal = Depends(require_tenant_admin),
):
    svc = _get_service()
    db = _get_db()
    rows = await db.run(
        lambda session: svc.list_errors(
            session, principal.company_id,
            instance_id=instance_id, resolved=resolved, severity=severity, limit=limit,
        )
    )
    return [_error_response(e, i) for e, i in rows]


@router.post("/errors/{error_id}/resolve", response_model=ErrorResponse)
async def resolve_error(
    error_id: str,
    principal: TenantPrincipal = Depends(require_tenant_admin),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        error = await svc.resolve_error(session, principal.company_id, error_id)
        if error is None:
            raise NotFoundError("Error not found")
        instance = await svc.get_instance(session, principal.company_id, error.instance_id)
        return _error_response(error, instance)


@router.get("/stats", response_model=MonitorStats)
async def monitor_stats(principal: TenantPrincipal = Depends(require_tenant_admin)):
    svc = _get_service()
    db = _get_db()
    stats = await db.run(lambda session: svc.stats(session, principal.company_id))
    return MonitorStats(**stats)


@router.get("/data", response_model=MonitorData)
async def monitor_data(principal: TenantPrincipal = Depends(require_tenant_admin)):
    """Instances, recent errors and stats in one payload for the dashboard."""
    svc = _get_service()
    db = _get_db()

    async def load(session):
        instances = await svc.list_instances(session, principal.company_id)
        errors = await svc.list_errors(session, principal.company_id)
        stats = await svc.stats(session, principal.company_id)
        return instances, errors, stats

    instances, errors, stats = await db.run(load)
    return MonitorData(
        instances=[InstanceResponse(**svc.instance_view(i)) for i in instances],
        errors=[_error_response(e, i) for e, i in errors],
        stats=MonitorStats(**stats),
    )


@router.post("/sync", response_model=SyncResponse)
async def sync_instances(principal: TenantPrincipal = Depends(require_tenant_admin)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        outcome = await svc.sync_all(session, company_id=principal.company_id)
    svc.notify_later(outcome.pop("alerts"))
    return SyncResponse(**outcome)
