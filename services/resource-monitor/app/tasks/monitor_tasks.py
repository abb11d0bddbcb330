"""
Resource Monitor — Celery tasks (scheduled snapshot + retention sweep)

Both tasks are fired by Celery beat (see app.core.celery_app). Each firing runs
its async body in a fresh event loop with its own DB engine and Redis client.
A failed firing is logged and dropped; the next scheduled firing runs as usual.
"""
import asyncio
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.broadcast import RedisBroadcaster
from app.core.celery_app import celery_app
from app.core.config import get_settings
from app.core.errors import StorageFault
from app.core.redis_client import new_redis
from app.db.database import worker_session
from app.db.history_ops import append, purge_older_than
from app.db.resource_ops import list_all
from app.models.resource import ChangeType, utcnow

settings = get_settings()
logger = logging.getLogger(__name__)


async def record_snapshot(db: AsyncSession, broadcaster: RedisBroadcaster, now: datetime | None = None) -> int:
    """
    Record every tracked resource's current quantity and broadcast the list once.

    Inserts are independent: one failing insert is logged and skipped, the rest
    still land. Nothing is inserted or broadcast when no resource is tracked.
    Returns the number of history rows written.
    """
    now = now or utcnow()
    resources = await list_all(db)
    if not resources:
        return 0

    recorded = 0
    for resource in resources:
        try:
            await append(db, resource.resource_type_id, resource.quantity, now, ChangeType.SNAPSHOT)
            recorded += 1
        except StorageFault:
            logger.warning("Snapshot of resource %s skipped", resource.id, exc_info=True)

    logger.info("%d/%d history records created at %s", recorded, len(resources), now.isoformat())

    reached = await broadcaster.publish_resources(resources, now)
    logger.info("Snapshot update sent to %d listeners", reached)
    return recorded


async def sweep_history(db: AsyncSession, days: int = settings.HISTORY_RETENTION_DAYS,
                        now: datetime | None = None) -> int:
    deleted = await purge_older_than(db, days, now)
    logger.info("%d old history records deleted (older than %d days)", deleted, days)
    return deleted


async def _run_snapshot() -> int:
    redis = new_redis()
    try:
        async with worker_session() as db:
            return await record_snapshot(db, RedisBroadcaster(redis))
    finally:
        await redis.aclose()


async def _run_sweep() -> int:
    async with worker_session() as db:
        return await sweep_history(db)


@celery_app.task(name="snapshot_resources", ignore_result=True)
def snapshot_resources() -> int:
    """Fired every SNAPSHOT_INTERVAL_SECONDS; a failed minute is simply skipped."""
    try:
        return asyncio.run(_run_snapshot())
    except Exception:
        logger.exception("Resource snapshot failed")
        return 0


@celery_app.task(name="purge_history")
def purge_history() -> int:
    """Fired daily at HISTORY_SWEEP_HOUR:HISTORY_SWEEP_MINUTE UTC; not retried on failure."""
    try:
        return asyncio.run(_run_sweep())
    except Exception:
        logger.exception("History retention sweep failed")
        return 0
