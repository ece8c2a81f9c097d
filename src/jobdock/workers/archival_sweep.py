"""Archival sweep: active -> archived -> purged.

Runs outside the authorization guard as a trusted internal process. For
each tenant:

1. Active jobs that ended more than ``archive_after_days`` ago are
   snapshotted to blob storage and then flagged ``archived_at``. The row is
   only flagged after the blob write succeeds; a failed write leaves the job
   active for the next run.
2. Archived jobs past the ``purge_grace_days`` grace period are hard-deleted.

Tenants are processed concurrently under a semaphore, each with its own
session, and one tenant's failure never stops the others.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from jobdock.config import settings
from jobdock.db.models.job import JobRow
from jobdock.errors.exceptions import ArchiveWriteError
from jobdock.logging_config import bind_sweep_context
from jobdock.models.sweep import SweepReport, TenantSweepResult
from jobdock.repositories.job_repo import JobRepository
from jobdock.repositories.tenant_repo import TenantRepository
from jobdock.services.id_generator import generate_id
from jobdock.storage.archives import ARCHIVE_CONTENT_TYPE, archive_key, build_snapshot, encode_snapshot
from jobdock.storage.blobs import BlobStore

logger = logging.getLogger(__name__)


async def archive_job(
    session: AsyncSession,
    blob_store: BlobStore,
    row: JobRow,
    now: datetime,
    upload_timeout: float,
) -> str:
    """Write the snapshot, then flag the row. Returns the storage ref.

    Raises:
        ArchiveWriteError: the blob write failed or timed out; the row is untouched.
    """
    key = archive_key(row.tenant_id, row.job_id)
    snapshot = await build_snapshot(session, row, now)
    try:
        ref = await asyncio.wait_for(
            blob_store.put(key, encode_snapshot(snapshot), content_type=ARCHIVE_CONTENT_TYPE),
            timeout=upload_timeout,
        )
    except asyncio.TimeoutError as exc:
        raise ArchiveWriteError(row.tenant_id, row.job_id, f"upload timed out after {upload_timeout}s") from exc
    except Exception as exc:
        raise ArchiveWriteError(row.tenant_id, row.job_id, str(exc) or type(exc).__name__) from exc

    row.archived_at = now
    await session.commit()
    return ref


async def sweep_tenant(
    session: AsyncSession,
    blob_store: BlobStore,
    tenant_id: str,
    *,
    now: datetime,
    dry_run: bool = False,
    upload_timeout: float | None = None,
) -> TenantSweepResult:
    repo = JobRepository(session)
    result = TenantSweepResult(tenant_id=tenant_id)
    upload_timeout = upload_timeout or settings.archive_upload_timeout_seconds
    archive_cutoff = now - timedelta(days=settings.archive_after_days)
    purge_cutoff = now - timedelta(days=settings.purge_grace_days)

    for row in await repo.list_archive_candidates(tenant_id, archive_cutoff):
        if dry_run:
            logger.info("[dry run] Would archive job %s to %s", row.job_id, archive_key(tenant_id, row.job_id))
            result.archived_count += 1
            continue
        try:
            ref = await archive_job(session, blob_store, row, now, upload_timeout)
        except ArchiveWriteError as exc:
            logger.error("%s", exc.message)
            result.errors.append(exc.message)
            continue
        logger.info("Archived job %s to %s", row.job_id, ref)
        result.archived_count += 1

    purge_ids = [row.job_id for row in await repo.list_purge_candidates(tenant_id, purge_cutoff)]
    if purge_ids:
        if dry_run:
            logger.info("[dry run] Would delete %d archived jobs for tenant %s", len(purge_ids), tenant_id)
            result.deleted_count = len(purge_ids)
        else:
            result.deleted_count = await repo.delete_many(tenant_id, purge_ids)
            await session.commit()
            logger.info("Deleted %d archived jobs for tenant %s", result.deleted_count, tenant_id)

    return result


async def run_sweep(
    session_factory,
    blob_store: BlobStore,
    *,
    now: datetime | None = None,
    dry_run: bool = False,
    tenant_ids: list[str] | None = None,
    max_concurrency: int | None = None,
    upload_timeout: float | None = None,
) -> SweepReport:
    """Run one sweep over every tenant (or ``tenant_ids``) and report."""
    started_at = datetime.now(timezone.utc)
    now = now or started_at
    bind_sweep_context(generate_id("swp_"), dry_run)

    if tenant_ids is None:
        async with session_factory() as session:
            tenant_ids = await TenantRepository(session).list_ids()

    semaphore = asyncio.Semaphore(max_concurrency or settings.sweep_max_concurrency)

    async def _sweep_one(tenant_id: str) -> TenantSweepResult:
        async with semaphore:
            try:
                async with session_factory() as session:
                    return await sweep_tenant(
                        session, blob_store, tenant_id,
                        now=now, dry_run=dry_run, upload_timeout=upload_timeout,
                    )
            except Exception as exc:
                logger.exception("Sweep failed for tenant %s", tenant_id)
                return TenantSweepResult(tenant_id=tenant_id, errors=[f"Tenant {tenant_id}: {exc}"])

    results = await asyncio.gather(*(_sweep_one(t) for t in tenant_ids))
    report = SweepReport.from_results(
        list(results),
        dry_run=dry_run,
        started_at=started_at,
        finished_at=datetime.now(timezone.utc),
    )
    logger.info(
        "Sweep finished: archived=%d deleted=%d errors=%d tenants=%d dry_run=%s",
        report.archived_count, report.deleted_count, len(report.errors),
        report.tenants_processed, dry_run,
    )
    return report
