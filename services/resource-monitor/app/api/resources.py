"""
Resource Monitor — Resource API routes

Order matters: fixed paths (/data, /alerts, /history/recent, /category/...) are
declared before the /{resource_id} routes. /resources/stream lives in app.api.stream.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.broadcast import RedisBroadcaster, get_broadcaster
from app.core.config import get_settings
from app.core.errors import ResourceError
from app.db import history_ops, resource_ops
from app.db.database import get_db
from app.models.resource import utcnow
from app.schemas.resource import CreateResourceRequest, UpdateQuantityRequest

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/resources", tags=["resources"])


@router.get("/data")
async def list_resource_data(db: AsyncSession = Depends(get_db)):
    """Resource catalog (for selecting a type to start tracking)."""
    data = await resource_ops.list_catalog(db)
    return {"message": "ResourceData retrieved successfully", "data": data, "count": len(data)}


@router.get("/alerts")
async def list_critical_resources(db: AsyncSession = Depends(get_db)):
    resources = await resource_ops.list_critical(db)
    return {
        "message": "Critical resources retrieved successfully",
        "resources": resources,
        "count": len(resources),
    }


@router.get("/history/recent")
async def recent_history(
    minutes: int = Query(settings.RECENT_HISTORY_DEFAULT_MINUTES, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """History of all resources within the last N minutes, newest first (for graphs)."""
    history = await history_ops.recent_across_all(db, minutes)
    return {
        "message": "Recent history retrieved successfully",
        "history": history,
        "count": len(history),
        "timeRange": f"{minutes} minutes",
    }


@router.get("/category/{category}")
async def list_resources_by_category(category: str, db: AsyncSession = Depends(get_db)):
    resources = await resource_ops.list_by_category(db, category)
    return {"message": f"Resources for category {category} retrieved successfully", "resources": resources}


@router.get("/{resource_id}/stats")
async def resource_stats(resource_id: int, db: AsyncSession = Depends(get_db)):
    """Average / min / max / trend over the trailing stats window. The id is a resource type id."""
    data = await history_ops.compute_stats(db, resource_id)
    return {"message": "Resource statistics retrieved successfully", "data": data}


@router.get("/{resource_id}/history")
async def resource_history(
    resource_id: int,
    limit: int = Query(settings.HISTORY_DEFAULT_LIMIT, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """Newest-first history. The id is a resource type id."""
    history = await history_ops.for_resource(db, resource_id, limit)
    return {"message": "Resource history retrieved successfully", "history": history, "count": len(history)}


@router.get("/{resource_id}")
async def get_resource(resource_id: int, db: AsyncSession = Depends(get_db)):
    resource = await resource_ops.get_by_id(db, resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return {"message": "Resource retrieved successfully", "resource": resource}


@router.get("")
async def list_resources(db: AsyncSession = Depends(get_db)):
    resources = await resource_ops.list_all(db)
    return {"message": "Resources retrieved successfully", "resources": resources}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_resource(payload: CreateResourceRequest, db: AsyncSession = Depends(get_db)):
    resource = await resource_ops.create(db, payload.resource_type_id, payload.quantity)
    return {"message": "Resource created successfully", "resource": resource}


@router.put("/{resource_id}/update-quantity")
async def update_resource_quantity(
    resource_id: int,
    payload: UpdateQuantityRequest,
    db: AsyncSession = Depends(get_db),
    broadcaster: RedisBroadcaster = Depends(get_broadcaster),
):
    """
    Overwrite the quantity and log it to history atomically,
    then push the full resource list to every connected listener.
    """
    resource = await resource_ops.update_quantity(db, resource_id, payload.quantity)

    try:
        resources = await resource_ops.list_all(db)
    except (ResourceError, SQLAlchemyError):
        logger.warning("Update of resource %s committed but not broadcast", resource_id, exc_info=True)
    else:
        reached = await broadcaster.publish_resources(resources, utcnow())
        logger.info("Update of resource %s sent to %d listeners", resource_id, reached)

    return {"message": "Resource quantity updated successfully", "resource": resource}
