"""Endpoints driven by the external scheduler (Bearer cron secret)."""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from leadhub_engine.common.exceptions import TransientConnectionError
from leadhub_engine.common.security import require_cron_secret

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])

_STARTED = time.monotonic()


def _get_db():
    from leadhub_engine.deps import get_db
    return get_db()


@router.get("/keep-alive")
async def keep_alive(_=Depends(require_cron_secret)):
    """Run a real query so idle pooled connections are exercised.

    Any database failure answers 503 so the scheduler flags the outage.
    """
    async def ping(session):
        return (await session.execute(text("SELECT 1"))).scalar_one()

    try:
        await _get_db().run(ping)
    except SQLAlchemyError as exc:
        logger.error("Keep-alive query failed: %s", exc)
        raise TransientConnectionError("Database unreachable", code="DB_DISCONNECTED") from exc
    return {
        "status": "alive",
        "db": "connected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _STARTED, 1),
    }


@router.post("/monitor-sync")
async def monitor_sync(_=Depends(require_cron_secret)):
    """Pull failed executions for every active n8n instance, all tenants."""
    from leadhub_engine.deps import get_monitor_service

    svc = get_monitor_service()
    async with _get_db().get_session() as session:
        outcome = await svc.sync_all(session)
    svc.notify_later(outcome.pop("alerts"))
    logger.info("Scheduled n8n sync imported %d errors", outcome["new_errors"])
    return outcome
