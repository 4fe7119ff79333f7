"""Billing service — webhook channels and charge reconciliation."""

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leadhub_engine.billing.models import ChargeModel, WebhookAgentModel
from leadhub_engine.billing.schemas import AsaasWebhookPayload, ChargeStatus
from leadhub_engine.common.config import LeadhubSettings
from leadhub_engine.common.database import upsert_insert
from leadhub_engine.common.exceptions import ConflictError
from leadhub_engine.common.models import generate_uuid, utcnow
from leadhub_engine.vault.crypto import Vault, generate_webhook_id, generate_webhook_secret

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

# Columns overwritten when a later delivery for the same charge arrives.
_RECONCILED_COLUMNS = (
    "status",
    "amount",
    "due_date",
    "paid_at",
    "customer_name",
    "customer_email",
    "customer_document",
    "last_event",
    "raw_payload",
)


def _money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENTS)


class BillingService:
    """Asaas webhook channels and the charges they deliver."""

    def __init__(self, settings: LeadhubSettings, vault: Vault):
        self.settings = settings
        self.vault = vault

    def webhook_url(self, agent: WebhookAgentModel) -> str:
        base = self.settings.public_base_url.rstrip("/")
        return f"{base}{self.settings.api_prefix}/webhooks/{agent.webhook_id}"

    # ── Agents ──

    async def create_agent(
        self, session: AsyncSession, company_id: str, name: str,
    ) -> tuple[WebhookAgentModel, str]:
        """Create a channel. Returns the model and the plaintext secret."""
        secret = generate_webhook_secret()
        agent = WebhookAgentModel(
            company_id=company_id,
            name=name,
            webhook_id=generate_webhook_id(),
            webhook_secret_encrypted=self.vault.encrypt(secret),
        )
        session.add(agent)
        await session.flush()
        logger.info("Created billing agent %s for company %s", agent.id, company_id)
        return agent, secret

    async def list_agents(
        self, session: AsyncSession, company_id: str,
    ) -> list[tuple[WebhookAgentModel, int]]:
        counts = (
            select(ChargeModel.agent_id, func.count(ChargeModel.id).label("n"))
            .group_by(ChargeModel.agent_id)
            .subquery()
        )
        result = await session.execute(
            select(WebhookAgentModel, func.coalesce(counts.c.n, 0))
            .outerjoin(counts, counts.c.agent_id == WebhookAgentModel.id)
            .where(WebhookAgentModel.company_id == company_id)
            .order_by(WebhookAgentModel.created_at.desc())
        )
        return [(agent, int(n)) for agent, n in result.all()]

    async def get_agent(
        self, session: AsyncSession, company_id: str, agent_id: str,
    ) -> WebhookAgentModel | None:
        result = await session.execute(
            select(WebhookAgentModel).where(
                WebhookAgentModel.id == agent_id,
                WebhookAgentModel.company_id == company_id,
            )
        )
        return result.scalar_one_or_none()

    async def count_charges(self, session: AsyncSession, agent_id: str) -> int:
        result = await session.execute(
            select(func.count(ChargeModel.id)).where(ChargeModel.agent_id == agent_id)
        )
        return result.scalar_one()

    async def deactivate_agent(
        self, session: AsyncSession, company_id: str, agent_id: str,
    ) -> bool:
        agent = await self.get_agent(session, company_id, agent_id)
        if agent is None:
            return False
        agent.active = False
        await session.flush()
        return True

    async def resolve_agent(
        self, session: AsyncSession, webhook_id: str,
    ) -> WebhookAgentModel | None:
        """Find the active channel behind a public webhook token."""
        result = await session.execute(
            select(WebhookAgentModel).where(
                WebhookAgentModel.webhook_id == webhook_id,
                WebhookAgentModel.active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    def agent_secret(self, agent: WebhookAgentModel) -> str | None:
        if not agent.webhook_secret_encrypted:
            return None
        return self.vault.decrypt(agent.webhook_secret_encrypted)

    # ── Reconciliation ──

    async def reconcile(
        self,
        session: AsyncSession,
        agent: WebhookAgentModel,
        event: AsaasWebhookPayload,
        raw_payload: dict[str, Any],
    ) -> str:
        """Insert or update the charge keyed by the provider id. Returns the row id.

        A single ``INSERT ... ON CONFLICT DO UPDATE``, so concurrent or
        repeated deliveries converge on one row.
        """
        payment = event.payment
        customer = payment.customer
        status = payment.mapped_status
        if status is None:
            logger.info(
                "Asaas status %s for charge %s has no local counterpart; status kept",
                payment.status, payment.id,
            )
        values = {
            "id": generate_uuid(),
            "agent_id": agent.id,
            "company_id": agent.company_id,
            "external_id": payment.id,
            "status": (status or ChargeStatus.PENDING).value,
            "amount": _money(payment.value),
            "due_date": payment.due_date,
            "paid_at": payment.payment_date,
            "customer_name": (customer.name if customer else None) or "N/A",
            "customer_email": (customer.email if customer else None) or "N/A",
            "customer_document": customer.document if customer else None,
            "last_event": event.event,
            "raw_payload": raw_payload,
            "created_at": utcnow(),
            "updated_at": utcnow(),
        }

        table = ChargeModel.__table__
        stmt = upsert_insert(session, table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.external_id],
            set_={
                **{
                    col: stmt.excluded[col] for col in _RECONCILED_COLUMNS
                    if status is not None or col != "status"
                },
                "updated_at": stmt.excluded.updated_at,
            },
            # A charge never moves between tenants.
            where=table.c.company_id == stmt.excluded.company_id,
        ).returning(table.c.id)

        result = await session.execute(stmt)
        charge_id = result.scalar_one_or_none()
        if charge_id is None:
            raise ConflictError(f"Charge {payment.id} belongs to another company")
        return charge_id

    # ── Reads ──

    async def list_charges(
        self,
        session: AsyncSession,
        company_id: str,
        agent_id: str | None = None,
        status: str | None = None,
        limit: int = 50,
    ) -> list[ChargeModel]:
        query = select(ChargeModel).where(ChargeModel.company_id == company_id)
        if agent_id is not None:
            query = query.where(ChargeModel.agent_id == agent_id)
        if status is not None:
            query = query.where(ChargeModel.status == status)
        query = query.order_by(ChargeModel.created_at.desc()).limit(limit)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def get_charge_by_external_id(
        self, session: AsyncSession, external_id: str,
    ) -> ChargeModel | None:
        result = await session.execute(
            select(ChargeModel).where(ChargeModel.external_id == external_id)
        )
        return result.scalar_one_or_none()

    async def summary(self, session: AsyncSession, company_id: str) -> dict[str, Any]:
        """Counts and totals per status plus headline values."""
        status_counts = {s.value: 0 for s in ChargeStatus}
        status_values = {s.value: Decimal("0.00") for s in ChargeStatus}

        result = await session.execute(
            select(
                ChargeModel.status,
                func.count(ChargeModel.id),
                func.sum(ChargeModel.amount),
            )
            .where(ChargeModel.company_id == company_id)
            .group_by(ChargeModel.status)
        )
        for status, count, total in result.all():
            if status in status_counts:
                status_counts[status] = count
                status_values[status] = _money(total)

        active = await session.execute(
            select(func.count(WebhookAgentModel.id)).where(
                WebhookAgentModel.company_id == company_id,
                WebhookAgentModel.active.is_(True),
            )
        )

        return {
            "total_charges": sum(status_counts.values()),
            "received_revenue": status_values[ChargeStatus.RECEIVED.value],
            "pending_value": status_values[ChargeStatus.PENDING.value],
            "overdue_value": status_values[ChargeStatus.OVERDUE.value],
            "active_agents": active.scalar_one(),
            "status_counts": status_counts,
            "status_values": status_values,
        }
