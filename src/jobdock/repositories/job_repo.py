"""Job repository."""

from datetime import datetime

from sqlalchemy import delete, or_, select

from jobdock.db.models.job import JobRow
from jobdock.repositories.base import BaseRepository


class JobRepository(BaseRepository):
    model_class = JobRow
    pk_field = "job_id"

    async def get(self, tenant_id: str, job_id: str) -> JobRow | None:
        return await self._fetch(job_id, tenant_id)

    async def list_series(self, tenant_id: str, recurrence_id: str) -> list[JobRow]:
        """Occurrences of one series ordered by start time."""
        stmt = select(JobRow).where(
            JobRow.tenant_id == tenant_id,
            JobRow.recurrence_id == recurrence_id,
        )
        stmt = stmt.order_by(JobRow.start_time, JobRow.job_id)
        return await self._scalars(stmt)

    async def list_for_tenant(
        self,
        tenant_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        include_archived: bool = False,
        show_deleted: bool = False,
    ) -> list[JobRow]:
        """Jobs for the calendar/list views.

        Unscheduled jobs always pass the date-range filter.
        """
        stmt = select(JobRow).where(JobRow.tenant_id == tenant_id)
        if not include_archived:
            stmt = stmt.where(JobRow.archived_at.is_(None))
        if not show_deleted:
            stmt = stmt.where(JobRow.deleted_at.is_(None))
        if start is not None or end is not None:
            in_range = JobRow.start_time.is_not(None)
            if start is not None:
                in_range = in_range & (JobRow.start_time >= start)
            if end is not None:
                in_range = in_range & (JobRow.start_time <= end)
            stmt = stmt.where(or_(in_range, JobRow.start_time.is_(None)))
        stmt = stmt.order_by(JobRow.start_time.is_(None), JobRow.start_time, JobRow.job_id)
        return await self._scalars(stmt)

    async def find_overlapping(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
        exclude_ids=(),
    ) -> list[JobRow]:
        """Active scheduled jobs whose half-open window intersects [start, end)."""
        stmt = select(JobRow).where(
            JobRow.tenant_id == tenant_id,
            JobRow.archived_at.is_(None),
            JobRow.deleted_at.is_(None),
            JobRow.to_be_scheduled.is_(False),
            JobRow.start_time.is_not(None),
            JobRow.end_time.is_not(None),
            JobRow.start_time < end,
            JobRow.end_time > start,
        )
        exclude_ids = list(exclude_ids)
        if exclude_ids:
            stmt = stmt.where(JobRow.job_id.not_in(exclude_ids))
        stmt = stmt.order_by(JobRow.start_time, JobRow.job_id)
        return await self._scalars(stmt)

    async def list_archive_candidates(self, tenant_id: str, cutoff: datetime) -> list[JobRow]:
        """Active jobs that ended before ``cutoff``; in-progress jobs are skipped."""
        stmt = (
            select(JobRow)
            .where(
                JobRow.tenant_id == tenant_id,
                JobRow.archived_at.is_(None),
                JobRow.deleted_at.is_(None),
                JobRow.end_time.is_not(None),
                JobRow.end_time < cutoff,
                JobRow.status != "in-progress",
            )
            .order_by(JobRow.end_time, JobRow.job_id)
        )
        return await self._scalars(stmt)

    async def list_purge_candidates(self, tenant_id: str, cutoff: datetime) -> list[JobRow]:
        """Archived jobs whose grace period ended before ``cutoff``."""
        stmt = (
            select(JobRow)
            .where(
                JobRow.tenant_id == tenant_id,
                JobRow.archived_at.is_not(None),
                JobRow.archived_at < cutoff,
            )
            .order_by(JobRow.archived_at, JobRow.job_id)
        )
        return await self._scalars(stmt)

    async def delete_many(self, tenant_id: str, job_ids: list[str]) -> int:
        if not job_ids:
            return 0
        stmt = delete(JobRow).where(
            JobRow.tenant_id == tenant_id,
            JobRow.job_id.in_(job_ids),
        )
        result = await self.session.execute(stmt)
        return result.rowcount

