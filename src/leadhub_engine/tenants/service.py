"""Company and membership service."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leadhub_engine.common.exceptions import ConflictError
from leadhub_engine.tenants.models import CompanyModel, MemberModel


class TenantService:
    """Company management and principal resolution."""

    async def create_company(
        self, session: AsyncSession, name: str, slug: str,
    ) -> CompanyModel:
        company = CompanyModel(name=name, slug=slug)
        session.add(company)
        try:
            await session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"Company slug '{slug}' already exists") from exc
        return company

    async def get_company(
        self, session: AsyncSession, company_id: str
    ) -> CompanyModel | None:
        return await session.get(CompanyModel, company_id)

    async def list_companies(self, session: AsyncSession) -> list[CompanyModel]:
        result = await session.execute(
            select(CompanyModel).order_by(CompanyModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def add_member(
        self,
        session: AsyncSession,
        company_id: str,
        user_id: str,
        email: str = "",
        role: str = "member",
    ) -> MemberModel:
        member = MemberModel(
            company_id=company_id, user_id=user_id, email=email, role=role,
        )
        session.add(member)
        try:
            await session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"User '{user_id}' already belongs to a company") from exc
        return member

    async def get_active_member(
        self, session: AsyncSession, user_id: str
    ) -> MemberModel | None:
        """Return the member for ``user_id`` when both it and its company are active."""
        result = await session.execute(
            select(MemberModel)
            .join(CompanyModel, CompanyModel.id == MemberModel.company_id)
            .where(
                MemberModel.user_id == user_id,
                MemberModel.is_active.is_(True),
                CompanyModel.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()
