"""
Resource Monitor — Version-guarded write retries

Every quantity write carries the resources.version_id it read. If another
writer committed to the same resource in between, the conditional UPDATE
matches no row and the write raises StaleDataError after rolling back.
with_optimistic_retry re-runs the whole read-then-write until it lands,
waiting a little longer (with jitter) after each lost race.
"""
import asyncio
import random
import functools
import logging

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class StaleDataError(Exception):
    """A quantity write lost the race: the resource's version_id moved after it was read."""


def backoff_delay(attempt: int) -> float:
    """Seconds to wait before retry number `attempt`, capped at OPT_LOCK_MAX_DELAY_MS."""
    base_delay = settings.OPT_LOCK_BASE_DELAY_MS / 1000.0
    max_delay = settings.OPT_LOCK_MAX_DELAY_MS / 1000.0
    jitter = random.uniform(0, settings.OPT_LOCK_JITTER_MS / 1000.0)
    return min(base_delay * (2 ** attempt), max_delay) + jitter


def with_optimistic_retry(max_retries: int | None = None):
    """
    Retry a version-guarded resource write on StaleDataError.

        @with_optimistic_retry()
        async def _write_quantity(db, resource_id, quantity, now):
            ...

    Gives up after OPT_LOCK_MAX_RETRIES attempts and re-raises the last conflict.
    """
    _max = max_retries or settings.OPT_LOCK_MAX_RETRIES

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(1, _max + 1):
                try:
                    return await func(*args, **kwargs)
                except StaleDataError:
                    if attempt == _max:
                        logger.error("%s still losing the version race after %d attempts", func.__name__, _max)
                        raise
                    delay = backoff_delay(attempt)
                    logger.warning(
                        "%s hit a concurrent resource write (attempt %d/%d); next try in %.3fs",
                        func.__name__, attempt, _max, delay,
                    )
                    await asyncio.sleep(delay)
        return wrapper
    return decorator
