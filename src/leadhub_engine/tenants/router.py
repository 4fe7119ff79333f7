"""Company provisioning API — requires super-admin authentication."""

from fastapi import APIRouter, Depends

from leadhub_engine.common.exceptions import NotFoundError
from leadhub_engine.common.security import require_super_admin
from leadhub_engine.tenants.schemas import (
    CompanyCreate,
    CompanyResponse,
    MemberCreate,
    MemberResponse,
)

router = APIRouter(prefix="/companies", tags=["companies"])


def _get_service():
    from leadhub_engine.deps import get_tenant_service
    return get_tenant_service()


def _get_db():
    from leadhub_engine.deps import get_db
    return get_db()


@router.post("", response_model=CompanyResponse, status_code=201)
async def create_company(body: CompanyCreate, _=Depends(require_super_admin)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        company = await svc.create_company(session, name=body.name, slug=body.slug)
        return CompanyResponse.model_validate(company)


@router.get("", response_model=list[CompanyResponse])
async def list_companies(_=Depends(require_super_admin)):
    svc = _get_service()
    db = _get_db()
    companies = await db.run(svc.list_companies)
    return [CompanyResponse.model_validate(c) for c in companies]


@router.post("/{company_id}/members", response_model=MemberResponse, status_code=201)
async def add_member(
    company_id: str, body: MemberCreate, _=Depends(require_super_admin)
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        company = await svc.get_company(session, company_id)
        if company is None:
            raise NotFoundError("Company not found")
        member = await svc.add_member(
            session, company.id, body.user_id, email=body.email, role=body.role,
        )
        return MemberResponse.model_validate(member)
