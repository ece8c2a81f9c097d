"""Job scheduling and lifecycle endpoints."""

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Query, Request

from jobdock.api.middleware.rate_limit import limiter, write_limit
from jobdock.dependencies import CurrentActor, Lifecycle
from jobdock.models.enums import EditScope
from jobdock.models.job import DeclineRequest, JobCreate, JobFilters, JobUpdate, StatusChange

router = APIRouter(tags=["Jobs"])


def _dump(jobs) -> list[dict]:
    return [job.model_dump(mode="json") for job in jobs]


@router.get("/jobs")
async def list_jobs(
    actor: CurrentActor,
    manager: Lifecycle,
    start: datetime | None = Query(None, description="Only jobs starting at or after this instant"),
    end: datetime | None = Query(None, description="Only jobs starting at or before this instant"),
    include_archived: bool = Query(False),
    show_deleted: bool = Query(False),
) -> dict:
    filters = JobFilters(start=start, end=end, include_archived=include_archived, show_deleted=show_deleted)
    jobs = await manager.get_all(actor, filters)
    return {"jobs": _dump(jobs), "total": len(jobs)}


@router.get("/jobs/{job_id}")
async def get_job(job_id: str, actor: CurrentActor, manager: Lifecycle) -> dict:
    job = await manager.get_by_id(actor, job_id)
    return job.model_dump(mode="json")


@router.post("/jobs", status_code=201)
@limiter.limit(write_limit)
async def create_job(
    request: Request,
    body: JobCreate,
    actor: CurrentActor,
    manager: Lifecycle,
    background_tasks: BackgroundTasks,
    force: bool = Query(False, description="Persist even if the slot is already booked"),
) -> dict:
    jobs = await manager.create(actor, body, force=force)
    background_tasks.add_task(manager.dispatch_pending)
    return {"jobs": _dump(jobs), "occurrence_count": len(jobs)}


@router.put("/jobs/{job_id}")
@limiter.limit(write_limit)
async def update_job(
    request: Request,
    job_id: str,
    body: JobUpdate,
    actor: CurrentActor,
    manager: Lifecycle,
    background_tasks: BackgroundTasks,
    scope: EditScope = Query(EditScope.THIS),
    force: bool = Query(False),
) -> dict:
    jobs = await manager.update(actor, job_id, body, scope=scope, force=force)
    background_tasks.add_task(manager.dispatch_pending)
    return {"jobs": _dump(jobs)}


@router.post("/jobs/{job_id}/archive")
@limiter.limit(write_limit)
async def archive_job(
    request: Request,
    job_id: str,
    actor: CurrentActor,
    manager: Lifecycle,
    series: bool = Query(False, description="Archive every occurrence of the series"),
) -> dict:
    jobs = await manager.archive(actor, job_id, series=series)
    return {"jobs": _dump(jobs)}


@router.post("/jobs/{job_id}/restore")
@limiter.limit(write_limit)
async def restore_job(
    request: Request,
    job_id: str,
    actor: CurrentActor,
    manager: Lifecycle,
    series: bool = Query(False),
) -> dict:
    jobs = await manager.restore(actor, job_id, series=series)
    return {"jobs": _dump(jobs)}


@router.delete("/jobs/{job_id}")
@limiter.limit(write_limit)
async def delete_job(
    request: Request,
    job_id: str,
    actor: CurrentActor,
    manager: Lifecycle,
    series: bool = Query(False),
    force: bool = Query(False, description="Allow deleting jobs that were never archived"),
) -> dict:
    deleted = await manager.permanent_delete(actor, job_id, series=series, force=force)
    return {"deleted": deleted, "permanent": True}


@router.post("/jobs/{job_id}/confirm")
@limiter.limit(write_limit)
async def confirm_job(
    request: Request,
    job_id: str,
    actor: CurrentActor,
    manager: Lifecycle,
    background_tasks: BackgroundTasks,
) -> dict:
    job = await manager.confirm(actor, job_id)
    background_tasks.add_task(manager.dispatch_pending)
    return job.model_dump(mode="json")


@router.post("/jobs/{job_id}/decline")
@limiter.limit(write_limit)
async def decline_job(
    request: Request,
    job_id: str,
    body: DeclineRequest,
    actor: CurrentActor,
    manager: Lifecycle,
    background_tasks: BackgroundTasks,
) -> dict:
    job = await manager.decline(actor, job_id, body.reason)
    background_tasks.add_task(manager.dispatch_pending)
    return job.model_dump(mode="json")


@router.post("/jobs/{job_id}/status")
@limiter.limit(write_limit)
async def change_status(
    request: Request,
    job_id: str,
    body: StatusChange,
    actor: CurrentActor,
    manager: Lifecycle,
) -> dict:
    job = await manager.transition_status(actor, job_id, body.status)
    return job.model_dump(mode="json")
