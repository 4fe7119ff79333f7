"""Activity log service — append-only record of tenant actions."""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadhub_engine.activity.models import ActivityLogModel

logger = logging.getLogger(__name__)


class ActivityService:
    """Writes and reads ``activity_logs`` rows."""

    async def record(
        self,
        session: AsyncSession,
        company_id: str,
        action: str,
        description: str = "",
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ActivityLogModel:
        entry = ActivityLogModel(
            company_id=company_id,
            user_id=user_id,
            action=action,
            description=description,
            details=metadata or {},
        )
        session.add(entry)
        await session.flush()
        return entry

    async def record_detached(
        self,
        company_id: str,
        action: str,
        description: str = "",
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Record in a fresh session; used for side effects after the main commit."""
        from leadhub_engine.deps import get_db

        async with get_db().get_session() as session:
            await self.record(
                session, company_id, action,
                description=description, user_id=user_id, metadata=metadata,
            )

    def record_later(self, company_id: str, action: str, **kwargs: Any) -> None:
        """Schedule ``record_detached`` without waiting for it."""
        from leadhub_engine.deps import get_task_dispatcher

        get_task_dispatcher().dispatch(
            self.record_detached(company_id, action, **kwargs),
            name=f"activity:{action}",
        )

    async def list_entries(
        self,
        session: AsyncSession,
        company_id: str,
        action: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ActivityLogModel]:
        """Newest first."""
        query = select(ActivityLogModel).where(ActivityLogModel.company_id == company_id)
        if action:
            query = query.where(ActivityLogModel.action == action)
        query = (
            query.order_by(ActivityLogModel.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(query)
        return list(result.scalars().all())
