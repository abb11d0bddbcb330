"""
Resource Monitor — Resource store (current quantities) with optimistic locking
"""
import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    AlreadyExists, InvalidQuantity, MissingField, ResourceNotFound, StorageFault, TypeNotFound,
)
from app.core.levels import derive_status, get_levels_by_category, is_critical, parse_category
from app.core.optimistic_lock import StaleDataError, with_optimistic_retry
from app.models.resource import (
    ChangeType, HistoryEntry, ResourceState, ResourceType, utcnow,
)
from app.schemas.resource import ResourceTypeView, ResourceView

logger = logging.getLogger(__name__)


def enrich(state: ResourceState) -> ResourceView:
    """Attach the category thresholds and derived status to a state row."""
    resource_type = state.resource_type
    levels = get_levels_by_category(resource_type.category)
    return ResourceView(
        id=state.id,
        quantity=state.quantity,
        resource_type_id=state.resource_type_id,
        resource_data=ResourceTypeView.model_validate(resource_type),
        minimum_level=levels.minimum_level,
        critical_level=levels.critical_level,
        maximum_level=levels.maximum_level,
        unit=levels.unit,
        status=derive_status(state.quantity, levels),
    )


def _validate_quantity(quantity: int | None) -> int:
    if quantity is None or quantity < 0:
        raise InvalidQuantity("Invalid quantity. Must be a non-negative number")
    return quantity


def _change_type(previous: int, current: int) -> ChangeType:
    if current > previous:
        return ChangeType.INCREASE
    if current < previous:
        return ChangeType.DECREASE
    return ChangeType.UPDATE


async def _load_state(db: AsyncSession, resource_id: int) -> ResourceState | None:
    result = await db.execute(
        select(ResourceState)
        .where(ResourceState.id == resource_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_all(db: AsyncSession) -> list[ResourceView]:
    result = await db.execute(select(ResourceState).order_by(ResourceState.id))
    return [enrich(state) for state in result.scalars().all()]


async def list_by_category(db: AsyncSession, category: str) -> list[ResourceView]:
    resource_category = parse_category(category)
    result = await db.execute(
        select(ResourceState)
        .join(ResourceState.resource_type)
        .where(ResourceType.category == resource_category)
        .order_by(ResourceState.id)
    )
    return [enrich(state) for state in result.scalars().all()]


async def get_by_id(db: AsyncSession, resource_id: int) -> ResourceView | None:
    state = await _load_state(db, resource_id)
    return enrich(state) if state is not None else None


async def list_critical(db: AsyncSession) -> list[ResourceView]:
    return [r for r in await list_all(db) if is_critical(r.quantity, r.resource_data.category)]


async def list_catalog(db: AsyncSession) -> list[ResourceTypeView]:
    result = await db.execute(select(ResourceType).order_by(ResourceType.category, ResourceType.name))
    return [ResourceTypeView.model_validate(t) for t in result.scalars().all()]


async def get_resource_type(db: AsyncSession, resource_type_id: int) -> ResourceType:
    resource_type = await db.get(ResourceType, resource_type_id)
    if resource_type is None:
        raise TypeNotFound(f"Resource type {resource_type_id} not found")
    return resource_type


async def create(db: AsyncSession, resource_type_id: int | None, quantity: int | None) -> ResourceView:
    """
    Start tracking a resource type. At most one state row may exist per type;
    the up-front check gives a clean error, the unique constraint covers races.
    """
    if not resource_type_id:
        raise MissingField("resourceTypeId is required")
    quantity = _validate_quantity(quantity)

    await get_resource_type(db, resource_type_id)

    existing = await db.execute(
        select(ResourceState.id).where(ResourceState.resource_type_id == resource_type_id)
    )
    if existing.scalar_one_or_none() is not None:
        raise AlreadyExists(f"Resource already exists for resource type {resource_type_id}")

    state = ResourceState(resource_type_id=resource_type_id, quantity=quantity)
    db.add(state)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise AlreadyExists(f"Resource already exists for resource type {resource_type_id}") from None
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Creating resource for type %s failed", resource_type_id)
        raise StorageFault("Database error occurred") from exc

    logger.info("Tracking resource type %s with quantity %s", resource_type_id, quantity)
    created = await _load_state(db, state.id)
    return enrich(created)


@with_optimistic_retry()
async def _write_quantity(
    db: AsyncSession, resource_id: int, quantity: int, now: datetime,
) -> ResourceState:
    """
    Overwrite the quantity and append the matching history row in ONE transaction.

    The UPDATE is conditional on the version_id we read:
      - 0 rows → a concurrent writer committed first → rollback, StaleDataError → retry
      - any storage error → rollback, so neither the quantity nor the history row lands
    """
    state = await _load_state(db, resource_id)
    if state is None:
        raise ResourceNotFound(f"Resource {resource_id} not found")

    previous = state.quantity
    current_version = state.version_id
    try:
        result = await db.execute(
            update(ResourceState)
            .where(ResourceState.id == resource_id, ResourceState.version_id == current_version)
            .values(quantity=quantity, version_id=current_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise StaleDataError(f"Resource {resource_id} moved past version {current_version} before this write")

        db.add(HistoryEntry(
            stock=quantity,
            resource_type_id=state.resource_type_id,
            change_type=_change_type(previous, quantity),
            created_at=now,
        ))
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Quantity update for resource %s rolled back", resource_id)
        raise StorageFault("Database error occurred") from exc

    await db.refresh(state, ["quantity", "version_id", "updated_at"])
    return state


async def update_quantity(
    db: AsyncSession, resource_id: int, quantity: int | None, now: datetime | None = None,
) -> ResourceView:
    quantity = _validate_quantity(quantity)
    try:
        state = await _write_quantity(db, resource_id, quantity, now or utcnow())
    except StaleDataError as exc:
        raise StorageFault("Resource is being updated concurrently, try again") from exc
    logger.info("Resource %s quantity set to %s", resource_id, quantity)
    return enrich(state)
