"""Double-booking detection.

Windows are half-open: ``[start, end)``. Two bookings that merely touch
(one ends at 11:00, the next starts at 11:00) do not conflict.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from jobdock.models.job import ConflictInfo
from jobdock.repositories.crm_repo import CrmRepository
from jobdock.repositories.job_repo import JobRepository
from jobdock.services.scheduling.assignments import extract_user_ids
from jobdock.services.scheduling.recurrence import OccurrenceWindow


def windows_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def _shares_assignee(row, assignee_ids: set[str]) -> bool:
    return bool(assignee_ids.intersection(extract_user_ids(row.assigned_to)))


async def find_series_conflicts(
    session: AsyncSession,
    tenant_id: str,
    windows: list[OccurrenceWindow],
    exclude_job_ids=(),
    assignee_ids=None,
) -> list[ConflictInfo]:
    """Conflicts for every window of a series, from a single envelope query.

    When ``assignee_ids`` is given only bookings sharing at least one of those
    people are reported. An empty set means "no filter".
    """
    if not windows:
        return []

    envelope_start = min(w.start_time for w in windows)
    envelope_end = max(w.end_time for w in windows)
    candidates = await JobRepository(session).find_overlapping(
        tenant_id, envelope_start, envelope_end, exclude_ids=exclude_job_ids,
    )
    wanted = set(assignee_ids or ())
    if wanted:
        candidates = [row for row in candidates if _shares_assignee(row, wanted)]
    if not candidates:
        return []

    names = await CrmRepository(session).contact_names(
        tenant_id, [row.contact_id for row in candidates],
    )
    conflicts = []
    for window in windows:
        for row in candidates:
            if windows_overlap(window.start_time, window.end_time, row.start_time, row.end_time):
                conflicts.append(
                    ConflictInfo(
                        job_id=row.job_id,
                        title=row.title,
                        contact_name=names.get(row.contact_id),
                        start_time=row.start_time,
                        end_time=row.end_time,
                        occurrence_start=window.start_time,
                    )
                )
    conflicts.sort(key=lambda c: (c.start_time, c.job_id, c.occurrence_start))
    return conflicts


async def find_conflicts(
    session: AsyncSession,
    tenant_id: str,
    window: OccurrenceWindow,
    exclude_job_ids=(),
    assignee_ids=None,
) -> list[ConflictInfo]:
    """Active bookings in the tenant overlapping one candidate window."""
    return await find_series_conflicts(
        session, tenant_id, [window],
        exclude_job_ids=exclude_job_ids, assignee_ids=assignee_ids,
    )
