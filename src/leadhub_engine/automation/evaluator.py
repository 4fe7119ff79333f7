"""Per-message automation decision.

Given an inbound message, decide whether one canned reply should be sent and
which one. Policies are tried in the tenant's order; the first that fires
wins and later policies are not consulted.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from leadhub_engine.automation.hours import day_index, localize, within_window
from leadhub_engine.automation.matchers import matches
from leadhub_engine.automation.models import AutomationSettingsModel
from leadhub_engine.automation.service import AutomationService
from leadhub_engine.common.models import utcnow

logger = logging.getLogger(__name__)


@dataclass
class AutomationDecision:
    action: str = "none"  # "reply" | "none"
    policy: Optional[str] = None
    message: Optional[str] = None
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None

    @property
    def should_reply(self) -> bool:
        return self.action == "reply"


class AutomationEvaluator:
    """Evaluates after-hours, away, keyword and welcome policies."""

    def __init__(self, service: AutomationService):
        self.service = service

    async def is_within_business_hours(
        self, session: AsyncSession, company_id: str, at: datetime,
    ) -> bool:
        rows = await self.service.get_business_hours(session, company_id)
        if not rows:
            return False
        local = localize(at, rows[0].timezone)
        today = next((r for r in rows if r.day_of_week == day_index(local)), None)
        if today is None or not today.is_enabled:
            return False
        return within_window(local, today.start_time, today.end_time)

    async def evaluate(
        self,
        session: AsyncSession,
        company_id: str,
        text: str,
        at: datetime | None = None,
        is_first_message: bool = False,
    ) -> AutomationDecision:
        at = at or utcnow()
        settings = await self.service.get_settings(session, company_id)

        for policy in self.service.policy_order(settings):
            handler = getattr(self, f"_check_{policy}", None)
            if handler is None:
                logger.warning("Ignoring unknown automation policy %r", policy)
                continue
            decision = await handler(session, company_id, settings, text, at, is_first_message)
            if decision is not None:
                logger.info(
                    "Automation policy %s fired for company %s", policy, company_id,
                )
                return decision
        return AutomationDecision()

    async def _check_after_hours(
        self, session, company_id, settings: AutomationSettingsModel, text, at, is_first,
    ) -> AutomationDecision | None:
        if not settings.after_hours_enabled:
            return None
        if await self.is_within_business_hours(session, company_id, at):
            return None
        return AutomationDecision("reply", "after_hours", settings.after_hours_message)

    async def _check_away(
        self, session, company_id, settings: AutomationSettingsModel, text, at, is_first,
    ) -> AutomationDecision | None:
        if settings.away_enabled and settings.availability_status != "online":
            return AutomationDecision("reply", "away", settings.away_message)
        return None

    async def _check_auto_response(
        self, session, company_id, settings, text, at, is_first,
    ) -> AutomationDecision | None:
        for rule in await self.service.list_rules(session, company_id, active_only=True):
            try:
                hit = matches(text, rule.keywords or [], rule.match_type, rule.case_sensitive)
            except ValueError:
                logger.warning("Rule %s has unknown match type %r", rule.id, rule.match_type)
                continue
            if hit:
                await self.service.increment_trigger(session, company_id, rule.id)
                return AutomationDecision(
                    "reply", "auto_response", rule.response_message,
                    rule_id=rule.id, rule_name=rule.name,
                )
        return None

    async def _check_welcome(
        self, session, company_id, settings: AutomationSettingsModel, text, at, is_first,
    ) -> AutomationDecision | None:
        if settings.welcome_enabled and is_first:
            return AutomationDecision("reply", "welcome", settings.welcome_message)
        return None
