"""Monitor service — n8n instances, error telemetry and read-time aggregates."""

import logging
from datetime import datetime, timedelta
from typing import Any

import httpx
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leadhub_engine.common.config import LeadhubSettings
from leadhub_engine.common.exceptions import ConflictError, LeadhubError
from leadhub_engine.common.models import utcnow
from leadhub_engine.gateway.client import GatewayError
from leadhub_engine.monitor.models import MonitorErrorModel, MonitorInstanceModel
from leadhub_engine.monitor.n8n_client import N8nClient, extract_failure
from leadhub_engine.monitor.schemas import ErrorReport
from leadhub_engine.vault.crypto import Vault, mask_secret

logger = logging.getLogger(__name__)

SEVERITIES = ("low", "medium", "high", "critical")

_INSTANCE_FIELDS = ("name", "url", "active", "check_interval")


def classify_severity(message: str) -> str:
    """Keyword heuristic used when the reporter does not set a severity."""
    text = (message or "").lower()
    if "critical" in text:
        return "critical"
    if "warning" in text:
        return "low"
    if "timeout" in text or "timed out" in text:
        return "high"
    return "medium"


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Unparsable execution timestamp %r", value)
    return utcnow()


class MonitorService:
    """Tenant-scoped n8n monitoring."""

    def __init__(
        self,
        settings: LeadhubSettings,
        vault: Vault,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self.vault = vault
        self._transport = transport

    # ── Instances ──

    def instance_view(self, instance: MonitorInstanceModel) -> dict[str, Any]:
        """Instance as exposed to clients, key masked."""
        return {
            "id": instance.id,
            "name": instance.name,
            "url": instance.url,
            "api_key": mask_secret(instance.api_key_encrypted),
            "active": instance.active,
            "check_interval": instance.check_interval,
            "last_check_at": instance.last_check_at,
            "created_at": instance.created_at,
            "updated_at": instance.updated_at,
        }

    async def create_instance(
        self,
        session: AsyncSession,
        company_id: str,
        name: str,
        url: str,
        api_key: str,
        active: bool = True,
        check_interval: int = 5,
    ) -> MonitorInstanceModel:
        instance = MonitorInstanceModel(
            company_id=company_id,
            name=name,
            url=url.rstrip("/"),
            api_key_encrypted=self.vault.encrypt(api_key),
            active=active,
            check_interval=check_interval,
        )
        session.add(instance)
        await session.flush()
        return instance

    async def list_instances(
        self, session: AsyncSession, company_id: str, active_only: bool = False,
    ) -> list[MonitorInstanceModel]:
        query = select(MonitorInstanceModel).where(
            MonitorInstanceModel.company_id == company_id,
        )
        if active_only:
            query = query.where(MonitorInstanceModel.active.is_(True))
        result = await session.execute(query.order_by(MonitorInstanceModel.created_at.desc()))
        return list(result.scalars().all())

    async def get_instance(
        self, session: AsyncSession, company_id: str, instance_id: str,
    ) -> MonitorInstanceModel | None:
        result = await session.execute(
            select(MonitorInstanceModel).where(
                MonitorInstanceModel.id == instance_id,
                MonitorInstanceModel.company_id == company_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_active_instance(
        self, session: AsyncSession, instance_id: str,
    ) -> MonitorInstanceModel | None:
        """Lookup for signed push ingestion, which carries no tenant session."""
        result = await session.execute(
            select(MonitorInstanceModel).where(
                MonitorInstanceModel.id == instance_id,
                MonitorInstanceModel.active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def update_instance(
        self,
        session: AsyncSession,
        company_id: str,
        instance_id: str,
        **updates: Any,
    ) -> MonitorInstanceModel | None:
        instance = await self.get_instance(session, company_id, instance_id)
        if instance is None:
            return None
        for field in _INSTANCE_FIELDS:
            if updates.get(field) is not None:
                setattr(instance, field, updates[field])
        if updates.get("url"):
            instance.url = updates["url"].rstrip("/")
        if updates.get("api_key"):
            instance.api_key_encrypted = self.vault.encrypt(updates["api_key"])
        await session.flush()
        return instance

    async def delete_instance(
        self, session: AsyncSession, company_id: str, instance_id: str,
    ) -> bool:
        """Delete the instance. Its errors are kept and show no instance."""
        instance = await self.get_instance(session, company_id, instance_id)
        if instance is None:
            return False
        await session.delete(instance)
        await session.flush()
        return True

    def instance_api_key(self, instance: MonitorInstanceModel) -> str:
        return self.vault.decrypt(instance.api_key_encrypted)

    # ── Errors ──

    async def record_error(
        self,
        session: AsyncSession,
        instance: MonitorInstanceModel,
        report: ErrorReport,
    ) -> MonitorErrorModel:
        """Append a reported error. Errors are never merged."""
        error = MonitorErrorModel(
            company_id=instance.company_id,
            instance_id=instance.id,
            execution_id=report.execution_id,
            workflow_id=report.workflow_id,
            workflow_name=report.workflow_name,
            error_node=report.error_node,
            message=report.message,
            details=report.details,
            severity=report.severity or classify_severity(report.message),
            timestamp=report.timestamp or utcnow(),
        )
        session.add(error)
        try:
            await session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"Execution {report.execution_id} already recorded for this instance"
            ) from exc
        return error

    async def list_errors(
        self,
        session: AsyncSession,
        company_id: str,
        instance_id: str | None = None,
        resolved: bool | None = None,
        severity: str | None = None,
        limit: int = 100,
    ) -> list[tuple[MonitorErrorModel, MonitorInstanceModel | None]]:
        """Errors newest first, each paired with its instance (None when deleted)."""
        query = select(MonitorErrorModel).where(MonitorErrorModel.company_id == company_id)
        if instance_id is not None:
            query = query.where(MonitorErrorModel.instance_id == instance_id)
        if resolved is not None:
            query = query.where(MonitorErrorModel.resolved.is_(resolved))
        if severity is not None:
            query = query.where(MonitorErrorModel.severity == severity)
        query = query.order_by(MonitorErrorModel.timestamp.desc()).limit(limit)
        result = await session.execute(query)
        errors = list(result.scalars().all())

        instances = {i.id: i for i in await self.list_instances(session, company_id)}
        return [(e, instances.get(e.instance_id)) for e in errors]

    async def resolve_error(
        self, session: AsyncSession, company_id: str, error_id: str,
    ) -> MonitorErrorModel | None:
        result = await session.execute(
            select(MonitorErrorModel).where(
                MonitorErrorModel.id == error_id,
                MonitorErrorModel.company_id == company_id,
            )
        )
        error = result.scalar_one_or_none()
        if error is None:
            return None
        if not error.resolved:
            error.resolved = True
            error.resolved_at = utcnow()
            await session.flush()
        return error

    # ── Aggregates ──

    async def stats(self, session: AsyncSession, company_id: str) -> dict[str, Any]:
        """Counters computed from current rows; nothing is stored."""
        total, active = (
            await session.execute(
                select(
                    func.count(MonitorInstanceModel.id),
                    func.count(MonitorInstanceModel.id).filter(
                        MonitorInstanceModel.active.is_(True)
                    ),
                ).where(MonitorInstanceModel.company_id == company_id)
            )
        ).one()

        since = utcnow() - timedelta(hours=24)
        errors_24h = (
            await session.execute(
                select(func.count(MonitorErrorModel.id)).where(
                    MonitorErrorModel.company_id == company_id,
                    MonitorErrorModel.timestamp >= since,
                )
            )
        ).scalar_one()

        severity_counts = dict.fromkeys(SEVERITIES, 0)
        rows = await session.execute(
            select(MonitorErrorModel.severity, func.count(MonitorErrorModel.id))
            .where(
                MonitorErrorModel.company_id == company_id,
                MonitorErrorModel.resolved.is_(False),
            )
            .group_by(MonitorErrorModel.severity)
        )
        for severity, count in rows.all():
            if severity in severity_counts:
                severity_counts[severity] = count

        return {
            "total_instances": total,
            "errors_24h": errors_24h,
            "uptime_average": round(active / total * 100) if total else 0,
            "active_instances": active,
            "unresolved_errors": sum(severity_counts.values()),
            "severity_counts": severity_counts,
        }

    # ── Pull ingestion ──

    def _client_for(self, instance: MonitorInstanceModel) -> N8nClient:
        return N8nClient(
            instance.url,
            self.instance_api_key(instance),
            timeout=self.settings.monitor_timeout,
            transport=self._transport,
        )

    async def sync_instance(
        self, session: AsyncSession, instance: MonitorInstanceModel,
    ) -> dict[str, Any]:
        """Import failed executions not stored yet for ``instance``."""
        client = self._client_for(instance)
        executions = await client.list_failed_executions()

        existing = set(
            (
                await session.execute(
                    select(MonitorErrorModel.execution_id).where(
                        MonitorErrorModel.instance_id == instance.id,
                        MonitorErrorModel.execution_id.is_not(None),
                    )
                )
            ).scalars().all()
        )

        added: list[MonitorErrorModel] = []
        skipped = 0
        for execution in executions:
            failure = extract_failure(execution)
            execution_id = failure["execution_id"]
            if execution_id in existing:
                skipped += 1
                continue
            existing.add(execution_id)
            error = MonitorErrorModel(
                company_id=instance.company_id,
                instance_id=instance.id,
                execution_id=execution_id,
                workflow_id=failure["workflow_id"],
                workflow_name=failure["workflow_name"],
                error_node=failure["error_node"],
                message=failure["message"],
                details={
                    **failure["details"],
                    "executionUrl": client.execution_url(execution_id),
                },
                severity=classify_severity(failure["message"]),
                timestamp=_parse_timestamp(failure["stopped_at"]),
            )
            session.add(error)
            added.append(error)

        instance.last_check_at = utcnow()
        await session.flush()
        logger.info(
            "Synced n8n instance %s: %d new, %d already stored",
            instance.id, len(added), skipped,
        )
        return {
            "instance": instance.name,
            "status": "success",
            "total_executions": len(executions),
            "new_errors": len(added),
            "skipped": skipped,
            "alerts": [_alert(instance, error) for error in added],
        }

    async def sync_all(
        self, session: AsyncSession, company_id: str | None = None,
    ) -> dict[str, Any]:
        """Sync every active instance (of one tenant, or all tenants).

        One failing instance is reported in the results and does not stop
        the others. ``alerts`` maps company id to the new errors worth a
        WhatsApp notification; hand it to ``notify_later`` once committed.
        """
        query = select(MonitorInstanceModel).where(MonitorInstanceModel.active.is_(True))
        if company_id is not None:
            query = query.where(MonitorInstanceModel.company_id == company_id)
        instances = list((await session.execute(query)).scalars().all())

        results = []
        alerts: dict[str, list[dict[str, Any]]] = {}
        total_new = 0
        for instance in instances:
            # Read before sync so a failed flush cannot expire these attributes.
            name, tenant = instance.name, instance.company_id
            try:
                outcome = await self.sync_instance(session, instance)
            except LeadhubError as exc:
                logger.warning("n8n sync failed for instance %s: %s", instance.id, exc.message)
                outcome = {"instance": name, "status": "error", "message": exc.message}
            except Exception as exc:
                logger.exception("n8n sync crashed for instance %s", instance.id)
                outcome = {"instance": name, "status": "error", "message": str(exc) or type(exc).__name__}
            if outcome.get("alerts"):
                alerts.setdefault(tenant, []).extend(outcome["alerts"])
            outcome.pop("alerts", None)
            total_new += outcome.get("new_errors", 0)
            results.append(outcome)
        return {"new_errors": total_new, "results": results, "alerts": alerts}

    # ── Notifications ──

    def notify_later(self, alerts: dict[str, list[dict[str, Any]]]) -> None:
        """Schedule one best-effort WhatsApp alert run per tenant."""
        from leadhub_engine.deps import get_task_dispatcher

        for company_id, entries in alerts.items():
            get_task_dispatcher().dispatch(
                self.notify_new_errors(company_id, entries),
                name=f"monitor-alert:{company_id}",
            )

    async def notify_new_errors(
        self, company_id: str, alerts: list[dict[str, Any]],
    ) -> int:
        """Send one WhatsApp message per alert to the tenant's gateway phone.

        Errors that were delivered get ``notified`` set. Returns how many.
        """
        from leadhub_engine.deps import get_db, get_gateway_service

        db = get_db()
        gateway = get_gateway_service()
        async with db.get_session() as session:
            config = await gateway.credentials.get_gateway_config(session, company_id)
            if config is None:
                logger.info("No WhatsApp gateway for company %s; n8n alerts skipped", company_id)
                return 0
            phone = config.phone
            client = await gateway.client_for(session, company_id)

        delivered = []
        for alert in alerts:
            try:
                await client.send_text(phone, format_alert(alert))
            except GatewayError as exc:
                logger.warning(
                    "n8n alert for error %s not delivered (status %s)",
                    alert["id"], exc.status_code,
                )
                continue
            delivered.append(alert["id"])

        if delivered:
            async with db.get_session() as session:
                await session.execute(
                    update(MonitorErrorModel)
                    .where(
                        MonitorErrorModel.company_id == company_id,
                        MonitorErrorModel.id.in_(delivered),
                    )
                    .values(notified=True)
                    .execution_options(synchronize_session=False)
                )
        return len(delivered)


def _alert(instance: MonitorInstanceModel, error: MonitorErrorModel) -> dict[str, Any]:
    return {
        "id": error.id,
        "instance": instance.name,
        "workflow_name": error.workflow_name,
        "error_node": error.error_node,
        "message": error.message,
        "severity": error.severity,
    }


def format_alert(alert: dict[str, Any]) -> str:
    return (
        "🚨 *Erro detectado no n8n*\n\n"
        f"*Instância:* {alert['instance']}\n"
        f"*Workflow:* {alert['workflow_name']}\n"
        f"*Nó:* {alert['error_node']}\n"
        f"*Erro:* {alert['message'][:500]}\n"
        f"*Severidade:* {alert['severity']}"
    )
