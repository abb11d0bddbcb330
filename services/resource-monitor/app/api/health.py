"""
Resource Monitor — Health endpoint

Reports the two backing services: the store holding quantities and history,
and the Redis channel feeding live updates and the Celery beat tasks.
"""
import asyncio
from typing import Awaitable

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.config import get_settings
from app.core.redis_client import get_redis
from app.db.database import engine

settings = get_settings()
router = APIRouter(tags=["health"])


async def _ping_database() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def _check(check: Awaitable) -> str:
    try:
        await asyncio.wait_for(check, timeout=settings.HEALTH_CHECK_TIMEOUT)
    except Exception as e:
        return f"error: {str(e)[:100]}"
    return "ok"


@router.get("/health")
async def health_check():
    deps = {
        "database": await _check(_ping_database()),
        "redis": await _check(get_redis().ping()),
    }
    healthy = all(state == "ok" for state in deps.values())

    return JSONResponse(
        content={
            "status": "healthy" if healthy else "degraded",
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "dependencies": deps,
        },
        status_code=200 if healthy else 503,
    )
