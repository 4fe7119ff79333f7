"""Activity log API."""

from fastapi import APIRouter, Depends, Query

from leadhub_engine.activity.schemas import ActivityCreate, ActivityResponse
from leadhub_engine.common.security import (
    TenantPrincipal,
    require_tenant_admin,
    require_tenant_member,
)

router = APIRouter(prefix="/activity-logs", tags=["activity"])


def _get_service():
    from leadhub_engine.deps import get_activity_service
    return get_activity_service()


def _get_db():
    from leadhub_engine.deps import get_db
    return get_db()


@router.post("", response_model=ActivityResponse, status_code=201)
async def create_entry(
    body: ActivityCreate,
    principal: TenantPrincipal = Depends(require_tenant_member),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        entry = await svc.record(
            session,
            principal.company_id,
            body.action,
            description=body.description,
            user_id=principal.user_id,
            metadata=body.metadata,
        )
        return ActivityResponse.model_validate(entry)


@router.get("", response_model=list[ActivityResponse])
async def list_entries(
    action: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: TenantPrincipal = Depends(require_tenant_admin),
):
    svc = _get_service()
    db = _get_db()
    entries = await db.run(
        lambda session: svc.list_entries(
            session, principal.company_id, action=action, limit=limit, offset=offset,
        )
    )
    return [ActivityResponse.model_validate(e) for e in entries]
