"""Maintenance endpoints for account owners."""

import logging

from fastapi import APIRouter, Query, Request

from jobdock.dependencies import OwnerActor
from jobdock.errors.exceptions import JobDockError
from jobdock.workers.archival_sweep import run_sweep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/sweep")
async def trigger_sweep(
    request: Request,
    actor: OwnerActor,
    dry_run: bool = Query(False, description="Report what would change without writing"),
) -> dict:
    """Run the archival sweep now for the caller's account only."""
    blob_store = getattr(request.app.state, "blob_store", None)
    if blob_store is None:
        raise JobDockError("SERVICE_UNAVAILABLE", "Archive storage is not configured", status_code=503)

    logger.info("Manual sweep requested by %s (dry_run=%s)", actor.user_id, dry_run)
    report = await run_sweep(
        request.app.state.db_session_factory,
        blob_store,
        dry_run=dry_run,
        tenant_ids=[actor.tenant_id],
    )
    return report.model_dump(mode="json")
