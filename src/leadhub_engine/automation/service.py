"""Automation service — auto-response rules, business hours and settings."""

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leadhub_engine.automation.hours import default_week
from leadhub_engine.automation.models import (
    AutomationSettingsModel,
    AutoResponseModel,
    BusinessHoursModel,
)
from leadhub_engine.common.config import LeadhubSettings
from leadhub_engine.common.database import upsert_insert
from leadhub_engine.common.models import generate_uuid, utcnow

logger = logging.getLogger(__name__)

_RULE_FIELDS = (
    "name", "keywords", "response_message", "match_type",
    "case_sensitive", "priority", "is_active",
)
_SETTINGS_FIELDS = (
    "welcome_message", "welcome_enabled", "away_message", "away_enabled",
    "after_hours_message", "after_hours_enabled", "auto_assign_enabled",
    "auto_assign_strategy", "availability_status", "policy_order",
)


class AutomationService:
    """Tenant-scoped automation configuration."""

    def __init__(self, settings: LeadhubSettings):
        self.settings = settings

    # ── Auto-responses ──

    async def create_rule(
        self, session: AsyncSession, company_id: str, **fields: Any,
    ) -> AutoResponseModel:
        rule = AutoResponseModel(
            company_id=company_id,
            **{k: v for k, v in fields.items() if k in _RULE_FIELDS},
        )
        session.add(rule)
        await session.flush()
        return rule

    async def list_rules(
        self, session: AsyncSession, company_id: str, active_only: bool = False,
    ) -> list[AutoResponseModel]:
        """Rules in evaluation order: priority desc, then oldest first."""
        query = select(AutoResponseModel).where(AutoResponseModel.company_id == company_id)
        if active_only:
            query = query.where(AutoResponseModel.is_active.is_(True))
        query = query.order_by(
            AutoResponseModel.priority.desc(),
            AutoResponseModel.created_at.asc(),
            AutoResponseModel.id.asc(),
        )
        result = await session.execute(query)
        return list(result.scalars().all())

    async def get_rule(
        self, session: AsyncSession, company_id: str, rule_id: str,
    ) -> AutoResponseModel | None:
        result = await session.execute(
            select(AutoResponseModel).where(
                AutoResponseModel.id == rule_id,
                AutoResponseModel.company_id == company_id,
            )
        )
        return result.scalar_one_or_none()

    async def update_rule(
        self, session: AsyncSession, company_id: str, rule_id: str, **updates: Any,
    ) -> AutoResponseModel | None:
        rule = await self.get_rule(session, company_id, rule_id)
        if rule is None:
            return None
        for field in _RULE_FIELDS:
            if updates.get(field) is not None:
                setattr(rule, field, updates[field])
        await session.flush()
        return rule

    async def delete_rule(
        self, session: AsyncSession, company_id: str, rule_id: str,
    ) -> bool:
        rule = await self.get_rule(session, company_id, rule_id)
        if rule is None:
            return False
        await session.delete(rule)
        await session.flush()
        return True

    async def increment_trigger(
        self, session: AsyncSession, company_id: str, rule_id: str,
    ) -> bool:
        """Bump the rule's counter in SQL. Returns False when the rule is not the tenant's."""
        result = await session.execute(
            update(AutoResponseModel)
            .where(
                AutoResponseModel.id == rule_id,
                AutoResponseModel.company_id == company_id,
            )
            .values(
                trigger_count=AutoResponseModel.trigger_count + 1,
                last_triggered_at=utcnow(),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    # ── Business hours ──

    async def _seed_business_hours(self, session: AsyncSession, company_id: str) -> None:
        """Insert the default week; rows that already exist are left alone."""
        table = BusinessHoursModel.__table__
        now = utcnow()
        rows = [
            {**day, "id": generate_uuid(), "company_id": company_id,
             "created_at": now, "updated_at": now}
            for day in default_week(self.settings.default_timezone)
        ]
        stmt = upsert_insert(session, table).values(rows).on_conflict_do_nothing(
            index_elements=[table.c.company_id, table.c.day_of_week],
        )
        await session.execute(stmt)

    async def get_business_hours(
        self, session: AsyncSession, company_id: str,
    ) -> list[BusinessHoursModel]:
        """The tenant's seven rows ordered by day, seeding defaults on first use."""
        query = (
            select(BusinessHoursModel)
            .where(BusinessHoursModel.company_id == company_id)
            .order_by(BusinessHoursModel.day_of_week)
        )
        rows = list((await session.execute(query)).scalars().all())
        if len(rows) < 7:
            await self._seed_business_hours(session, company_id)
            rows = list((await session.execute(query)).scalars().all())
        return rows

    async def update_business_hours(
        self, session: AsyncSession, company_id: str, hours: list[dict[str, Any]],
    ) -> list[BusinessHoursModel]:
        """Apply every entry in the caller's transaction; one bad entry rolls back all.

        The timezone belongs to the whole week: one given on any entry is
        written to all seven rows, and omitting it keeps the current one.
        """
        await self._seed_business_hours(session, company_id)
        for entry in hours:
            await session.execute(
                update(BusinessHoursModel)
                .where(
                    BusinessHoursModel.company_id == company_id,
                    BusinessHoursModel.day_of_week == entry["day_of_week"],
                )
                .values(
                    is_enabled=entry["is_enabled"],
                    start_time=entry["start_time"],
                    end_time=entry["end_time"],
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
        timezone = next((e["timezone"] for e in hours if e.get("timezone")), None)
        if timezone:
            await session.execute(
                update(BusinessHoursModel)
                .where(BusinessHoursModel.company_id == company_id)
                .values(timezone=timezone, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
        session.expire_all()
        return await self.get_business_hours(session, company_id)

    # ── Settings ──

    async def get_settings(
        self, session: AsyncSession, company_id: str,
    ) -> AutomationSettingsModel:
        """The tenant's settings row, created with defaults on first use."""
        query = select(AutomationSettingsModel).where(
            AutomationSettingsModel.company_id == company_id,
        )
        row = (await session.execute(query)).scalar_one_or_none()
        if row is not None:
            return row

        table = AutomationSettingsModel.__table__
        now = utcnow()
        stmt = upsert_insert(session, table).values(
            id=generate_uuid(), company_id=company_id, created_at=now, updated_at=now,
        ).on_conflict_do_nothing(index_elements=[table.c.company_id])
        await session.execute(stmt)
        return (await session.execute(query)).scalar_one()

    async def update_settings(
        self, session: AsyncSession, company_id: str, **updates: Any,
    ) -> AutomationSettingsModel:
        row = await self.get_settings(session, company_id)
        for field in _SETTINGS_FIELDS:
            if field in updates and (updates[field] is not None or field == "policy_order"):
                setattr(row, field, updates[field])
        await session.flush()
        return row

    def policy_order(self, settings_row: AutomationSettingsModel) -> list[str]:
        return list(settings_row.policy_order or self.settings.automation_policy_order)
