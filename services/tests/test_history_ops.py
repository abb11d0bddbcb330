"""
History ledger: ordering, windows, retention purge and trend statistics
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import TypeNotFound
from app.db import history_ops, resource_ops
from app.db.history_ops import summarize
from app.models.resource import ChangeType

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_for_resource_newest_first_with_limit(db, type_ids):
    water = type_ids["Potable Water Reservoir"]
    for minutes_ago, stock in [(30, 100), (20, 200), (10, 300)]:
        await history_ops.append(db, water, stock, NOW - timedelta(minutes=minutes_ago))

    history = await history_ops.for_resource(db, water)
    assert [h.stock for h in history] == [300, 200, 100]
    assert history[0].resource_data.name == "Potable Water Reservoir"

    assert [h.stock for h in await history_ops.for_resource(db, water, 2)] == [300, 200]


@pytest.mark.asyncio
async def test_same_timestamp_breaks_ties_by_insertion_order(db, type_ids):
    food = type_ids["Food Rations"]
    await history_ops.append(db, food, 1, NOW)
    await history_ops.append(db, food, 2, NOW)

    assert [h.stock for h in await history_ops.for_resource(db, food)] == [2, 1]


@pytest.mark.asyncio
async def test_for_resource_checks_catalog_not_state(db, type_ids):
    with pytest.raises(TypeNotFound):
        await history_ops.for_resource(db, 999)

    # History of a type nobody is tracking right now is still readable.
    spare = type_ids["Spare Parts Inventory"]
    await history_ops.append(db, spare, 42, NOW, ChangeType.SNAPSHOT)
    assert await resource_ops.list_all(db) == []
    assert [h.stock for h in await history_ops.for_resource(db, spare)] == [42]


@pytest.mark.asyncio
async def test_recent_across_all_window(db, type_ids):
    await history_ops.append(db, type_ids["Food Rations"], 1, NOW - timedelta(minutes=90))
    await history_ops.append(db, type_ids["Food Rations"], 2, NOW - timedelta(minutes=45))
    await history_ops.append(db, type_ids["Main Oxygen Tank"], 3, NOW - timedelta(minutes=5))

    recent = await history_ops.recent_across_all(db, 60, now=NOW)
    assert [h.stock for h in recent] == [3, 2]
    assert len(await history_ops.recent_across_all(db, 120, now=NOW)) == 3


@pytest.mark.asyncio
async def test_purge_keeps_rows_at_the_cutoff(db, type_ids):
    oxygen = type_ids["Main Oxygen Tank"]
    cutoff = NOW - timedelta(days=30)
    await history_ops.append(db, oxygen, 1, cutoff - timedelta(days=2))
    await history_ops.append(db, oxygen, 2, cutoff - timedelta(seconds=1))
    await history_ops.append(db, oxygen, 3, cutoff)
    await history_ops.append(db, oxygen, 4, NOW)

    deleted = await history_ops.purge_older_than(db, 30, now=NOW)

    assert deleted == 2
    assert [h.stock for h in await history_ops.for_resource(db, oxygen)] == [4, 3]


@pytest.mark.asyncio
async def test_stats_on_empty_window(db, type_ids):
    oxygen = type_ids["Main Oxygen Tank"]
    await history_ops.append(db, oxygen, 9000, NOW - timedelta(hours=30))

    view = await history_ops.compute_stats(db, oxygen, now=NOW)

    assert view.resource_data.name == "Main Oxygen Tank"
    assert view.stats.total_records == 0
    assert view.stats.trend == "stable"
    assert view.stats.percentage_change == 0
    assert view.stats.average == 0


@pytest.mark.asyncio
async def test_stats_over_window(db, type_ids):
    water = type_ids["Potable Water Reservoir"]
    await history_ops.append(db, water, 50, NOW - timedelta(hours=25))  # outside window
    for hours_ago, stock in [(20, 1000), (10, 1300), (1, 1200)]:
        await history_ops.append(db, water, stock, NOW - timedelta(hours=hours_ago))

    stats = (await history_ops.compute_stats(db, water, now=NOW)).stats

    assert stats.total_records == 3
    assert stats.average == 1167
    assert (stats.min, stats.max) == (1000, 1300)
    assert stats.current == 1200
    assert stats.first_value == 1000
    assert stats.percentage_change == 20.0
    assert stats.trend == "increasing"
    assert stats.time_range == "24h"


@pytest.mark.asyncio
async def test_stats_unknown_type(db):
    with pytest.raises(TypeNotFound):
        await history_ops.compute_stats(db, 999, now=NOW)


def test_summarize_trends():
    assert summarize([100, 94]).trend == "decreasing"
    assert summarize([100, 95]).trend == "stable"
    assert summarize([100, 105]).trend == "stable"
    assert summarize([100, 106]).trend == "increasing"


def test_summarize_zero_first_value_has_no_percentage():
    stats = summarize([0, 500])
    assert stats.percentage_change == 0
    assert stats.trend == "stable"


def test_summarize_rounding():
    assert summarize([1, 2]).average == 2
    assert summarize([3, 4, 4]).percentage_change == 33.33
