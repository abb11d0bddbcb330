"""
Resource Monitor — Catalog provisioning

[CONFIG DATA] — inserts any missing default resource types; existing rows are
left untouched so re-running at every startup is safe.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.resource import ResourceCategory, ResourceType

logger = logging.getLogger(__name__)

DEFAULT_CATALOG: list[tuple[str, ResourceCategory]] = [
    ("Main Oxygen Tank", ResourceCategory.OXYGEN),
    ("Reserve Oxygen Tank", ResourceCategory.OXYGEN),
    ("Potable Water Reservoir", ResourceCategory.WATER),
    ("Food Rations", ResourceCategory.FOOD),
    ("Spare Parts Inventory", ResourceCategory.SPARE_PARTS),
]


async def seed_catalog(db: AsyncSession, catalog: list[tuple[str, ResourceCategory]] = DEFAULT_CATALOG) -> int:
    result = await db.execute(select(ResourceType.name))
    existing = set(result.scalars().all())

    missing = [ResourceType(name=name, category=category) for name, category in catalog if name not in existing]
    if missing:
        db.add_all(missing)
        await db.commit()
        logger.info("Seeded %d resource types", len(missing))
    return len(missing)
