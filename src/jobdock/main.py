"""FastAPI application factory and lifespan management."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jobdock.config import settings
from jobdock.db.engine import create_db_engine, create_session_factory
from jobdock.logging_config import configure_logging

# Console logs in local mode, JSON lines otherwise
configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)

    # Auto-create tables for SQLite (local dev, no Alembic migrations)
    if "sqlite" in db_url:
        from jobdock.db.base import Base
        import jobdock.db.models  # noqa: F401 (registers every ORM model)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

    app.state.db_engine = engine
    app.state.db_session_factory = create_session_factory(engine)

    # Redis holds the sweep lock; optional in local mode
    app.state.redis = None
    if not settings.local_mode:
        try:
            import redis.asyncio as aioredis
            app.state.redis = aioredis.from_url(settings.redis_url, decode_responses=True)
        except Exception:
            logger.warning("Redis not available, sweep runs without a lock")

    from jobdock.events.notifier import WebhookNotifier
    from jobdock.storage.blobs import LocalBlobStore
    app.state.blob_store = LocalBlobStore(settings.archive_dir)
    app.state.notifier = WebhookNotifier()

    sweep_task = None
    if settings.sweep_enabled:
        from jobdock.workers.scheduler import run_sweep_scheduler
        sweep_task = asyncio.create_task(run_sweep_scheduler(app))

    logger.info("JobDock API started (db=%s)", "sqlite" if "sqlite" in db_url else "postgresql")
    yield

    # Shutdown
    if sweep_task is not None:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass
    if app.state.redis:
        await app.state.redis.close()
    await engine.dispose()
    logger.info("JobDock API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="JobDock API",
        version="1.0.0",
        description="Multi-tenant job scheduling and lifecycle engine for contractor businesses.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add middleware (order matters: last added = first executed)
    from jobdock.api.middleware.auth import AuthMiddleware
    from jobdock.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(AuthMiddleware)
    app.add_middleware(TraceIdMiddleware)

    from jobdock.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from jobdock.api.middleware.rate_limit import setup_rate_limiter
    setup_rate_limiter(app)

    from jobdock.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
