"""Liveness and readiness checks."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

logger = logging.getLogger(__name__)

router = APIRouter()

_READY_CHECK_KEY = "health/ready-check"


async def _check_database(state) -> str:
    async with state.db_session_factory() as session:
        await session.execute(text("SELECT 1"))
    return "ok"


async def _check_redis(state) -> str:
    redis = getattr(state, "redis", None)
    if redis is None:
        return "disabled"
    await redis.ping()
    return "ok"


async def _check_archive_storage(state) -> str:
    blob_store = getattr(state, "blob_store", None)
    if blob_store is None:
        return "disabled"
    await blob_store.exists(_READY_CHECK_KEY)
    return "ok"


_CHECKS = {
    "database": _check_database,
    "redis": _check_redis,
    "archive_storage": _check_archive_storage,
}


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "jobdock-api", "version": "1.0.0"}


@router.get("/health/live")
async def liveness():
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Report each backing service; 503 if any of them is failing.

    A disabled service (no redis in local mode) does not fail readiness.
    """
    checks: dict[str, str] = {}
    for name, check in _CHECKS.items():
        try:
            checks[name] = await check(request.app.state)
        except Exception as exc:
            logger.warning("Readiness check %s failed: %s", name, exc)
            checks[name] = f"error: {exc}"

    ready = not any(status.startswith("error") for status in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": checks},
    )
