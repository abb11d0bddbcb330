"""
Resource Monitor — History ledger and trend statistics

The ledger is append-only. Rows are ordered by created_at with id (insertion
order) as the tie-breaker, and are only ever removed by purge_older_than.
"""
import logging
import math
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import StorageFault
from app.db.resource_ops import get_resource_type
from app.models.resource import ChangeType, HistoryEntry, utcnow
from app.schemas.resource import HistoryView, ResourceStats, ResourceTypeView, StatsView

settings = get_settings()
logger = logging.getLogger(__name__)

_NEWEST_FIRST = (HistoryEntry.created_at.desc(), HistoryEntry.id.desc())
_OLDEST_FIRST = (HistoryEntry.created_at.asc(), HistoryEntry.id.asc())


def to_view(entry: HistoryEntry) -> HistoryView:
    return HistoryView(
        id=entry.id,
        stock=entry.stock,
        resource_type_id=entry.resource_type_id,
        change_type=entry.change_type,
        created_at=entry.created_at,
        resource_data=ResourceTypeView.model_validate(entry.resource_type),
    )


async def append(
    db: AsyncSession,
    resource_type_id: int,
    stock: int,
    timestamp: datetime | None = None,
    change_type: ChangeType | None = None,
) -> HistoryEntry:
    """Insert and commit one sample on its own, outside any caller transaction."""
    entry = HistoryEntry(
        stock=stock,
        resource_type_id=resource_type_id,
        change_type=change_type,
        created_at=timestamp or utcnow(),
    )
    db.add(entry)
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StorageFault("Database error occurred") from exc
    return entry


async def for_resource(
    db: AsyncSession, resource_type_id: int, limit: int = settings.HISTORY_DEFAULT_LIMIT,
) -> list[HistoryView]:
    """
    Newest-first history of one resource type. The type must exist in the
    catalog; whether it currently has a state row does not matter.
    """
    await get_resource_type(db, resource_type_id)
    result = await db.execute(
        select(HistoryEntry)
        .where(HistoryEntry.resource_type_id == resource_type_id)
        .order_by(*_NEWEST_FIRST)
        .limit(limit)
    )
    return [to_view(e) for e in result.scalars().all()]


async def recent_across_all(
    db: AsyncSession,
    minutes: int = settings.RECENT_HISTORY_DEFAULT_MINUTES,
    now: datetime | None = None,
) -> list[HistoryView]:
    since = (now or utcnow()) - timedelta(minutes=minutes)
    result = await db.execute(
        select(HistoryEntry)
        .where(HistoryEntry.created_at >= since)
        .order_by(*_NEWEST_FIRST)
    )
    return [to_view(e) for e in result.scalars().all()]


async def purge_older_than(db: AsyncSession, days: int, now: datetime | None = None) -> int:
    """Delete rows strictly older than now - days; a row exactly at the cutoff is kept."""
    cutoff = (now or utcnow()) - timedelta(days=days)
    try:
        result = await db.execute(
            delete(HistoryEntry)
            .where(HistoryEntry.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StorageFault("Database error occurred") from exc
    logger.info("Purged %d history rows created before %s", result.rowcount, cutoff.isoformat())
    return result.rowcount


def summarize(values: list[int]) -> ResourceStats:
    """Trend statistics over stock values ordered oldest first."""
    if not values:
        return ResourceStats()

    current = values[-1]
    first_value = values[0]
    percentage_change = (current - first_value) / first_value * 100 if first_value != 0 else 0.0

    if percentage_change > settings.TREND_THRESHOLD_PERCENT:
        trend = "increasing"
    elif percentage_change < -settings.TREND_THRESHOLD_PERCENT:
        trend = "decreasing"
    else:
        trend = "stable"

    return ResourceStats(
        average=math.floor(sum(values) / len(values) + 0.5),
        min=min(values),
        max=max(values),
        current=current,
        first_value=first_value,
        trend=trend,
        percentage_change=round(percentage_change, 2),
        total_records=len(values),
    )


async def compute_stats(
    db: AsyncSession, resource_type_id: int, now: datetime | None = None,
) -> StatsView:
    resource_type = await get_resource_type(db, resource_type_id)
    since = (now or utcnow()) - timedelta(hours=settings.STATS_WINDOW_HOURS)
    result = await db.execute(
        select(HistoryEntry.stock)
        .where(HistoryEntry.resource_type_id == resource_type_id, HistoryEntry.created_at >= since)
        .order_by(*_OLDEST_FIRST)
    )
    stats = summarize(list(result.scalars().all()))
    stats.time_range = f"{settings.STATS_WINDOW_HOURS}h"
    return StatsView(resource_data=ResourceTypeView.model_validate(resource_type), stats=stats)
