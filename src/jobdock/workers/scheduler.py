"""Background scheduler for the periodic archival sweep."""

import asyncio
import logging

from redis.exceptions import RedisError

from jobdock.config import settings
from jobdock.workers.archival_sweep import run_sweep

logger = logging.getLogger(__name__)

_LOCK_KEY = "jobdock:sweep:lock"


async def _acquire_lock(redis, ttl: int) -> bool:
    """Distributed lock via Redis SET NX so only one replica sweeps per cycle."""
    if redis is None:
        return True
    try:
        return bool(await redis.set(_LOCK_KEY, "1", nx=True, ex=ttl))
    except RedisError as exc:
        logger.warning("Sweep lock unavailable, running unlocked: %s", exc)
        return True


async def run_sweep_scheduler(app) -> None:
    """Background task that runs the archival sweep every interval."""
    interval = settings.sweep_interval_seconds
    logger.info("Archival sweep scheduler started (interval=%ds)", interval)

    while True:
        try:
            await asyncio.sleep(interval)

            session_factory = getattr(app.state, "db_session_factory", None)
            blob_store = getattr(app.state, "blob_store", None)
            redis = getattr(app.state, "redis", None)

            if not session_factory or blob_store is None:
                continue

            if not await _acquire_lock(redis, interval):
                logger.debug("Sweep already claimed by another instance")
                continue

            await run_sweep(session_factory, blob_store)

        except asyncio.CancelledError:
            logger.info("Archival sweep scheduler stopped")
            break
        except Exception as exc:
            logger.exception("Sweep scheduler error: %s", exc)
            # Continue running despite errors
