"""Tests for double-booking detection."""

from datetime import datetime, timezone

import pytest

from conftest import OTHER, TEAM, at
from jobdock.db.models.job import JobRow
from jobdock.services.scheduling.conflicts import find_conflicts, find_series_conflicts, windows_overlap
from jobdock.services.scheduling.recurrence import OccurrenceWindow


async def _add_job(session, job_id, start, end, tenant_id=TEAM, contact_id="con_ada", **fields):
    session.add(JobRow(
        job_id=job_id,
        tenant_id=tenant_id,
        title=fields.pop("title", f"Job {job_id}"),
        contact_id=contact_id,
        start_time=start,
        end_time=end,
        to_be_scheduled=start is None,
        **fields,
    ))
    await session.commit()


def test_touching_windows_do_not_overlap():
    assert not windows_overlap(at(4, 10), at(4, 11), at(4, 11), at(4, 12))
    assert not windows_overlap(at(4, 11), at(4, 12), at(4, 10), at(4, 11))


def test_partial_overlap():
    assert windows_overlap(at(4, 10), at(4, 11, 30), at(4, 11), at(4, 12))


@pytest.mark.asyncio
async def test_touching_booking_is_not_a_conflict(db_session):
    await _add_job(db_session, "job_a", at(4, 11), at(4, 12))
    conflicts = await find_conflicts(db_session, TEAM, OccurrenceWindow(at(4, 10), at(4, 11)))
    assert conflicts == []


@pytest.mark.asyncio
async def test_overlapping_booking_reported(db_session):
    await _add_job(db_session, "job_a", at(4, 11), at(4, 12), title="Gutters")
    conflicts = await find_conflicts(db_session, TEAM, OccurrenceWindow(at(4, 10), at(4, 11, 30)))
    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict.job_id == "job_a"
    assert conflict.title == "Gutters"
    assert conflict.contact_name == "Ada Lovelace"
    assert conflict.occurrence_start == at(4, 10)


@pytest.mark.asyncio
async def test_other_tenants_archived_and_unscheduled_ignored(db_session):
    await _add_job(db_session, "job_other", at(4, 10), at(4, 12), tenant_id=OTHER, contact_id="con_other")
    await _add_job(
        db_session, "job_archived", at(4, 10), at(4, 12),
        archived_at=datetime(2030, 3, 1, tzinfo=timezone.utc),
    )
    await _add_job(
        db_session, "job_trashed", at(4, 10), at(4, 12),
        deleted_at=datetime(2030, 3, 1, tzinfo=timezone.utc),
    )
    await _add_job(db_session, "job_tbs", None, None)
    conflicts = await find_conflicts(db_session, TEAM, OccurrenceWindow(at(4, 10), at(4, 11)))
    assert conflicts == []


@pytest.mark.asyncio
async def test_excluded_jobs_skipped(db_session):
    await _add_job(db_session, "job_self", at(4, 10), at(4, 11))
    conflicts = await find_conflicts(
        db_session, TEAM, OccurrenceWindow(at(4, 10, 30), at(4, 11, 30)), exclude_job_ids=["job_self"],
    )
    assert conflicts == []


@pytest.mark.asyncio
async def test_assignee_filter(db_session):
    await _add_job(db_session, "job_unassigned", at(4, 10), at(4, 11))
    await _add_job(db_session, "job_emp", at(4, 10), at(4, 11), assigned_to=["usr_emp"])
    await _add_job(
        db_session, "job_admin", at(4, 10), at(4, 11),
        assigned_to=[{"user_id": "usr_admin", "role": "Lead"}],
    )
    window = OccurrenceWindow(at(4, 10), at(4, 11))

    filtered = await find_conflicts(db_session, TEAM, window, assignee_ids=["usr_emp"])
    assert [c.job_id for c in filtered] == ["job_emp"]

    unfiltered = await find_conflicts(db_session, TEAM, window, assignee_ids=[])
    assert {c.job_id for c in unfiltered} == {"job_unassigned", "job_emp", "job_admin"}


@pytest.mark.asyncio
async def test_series_conflicts_sorted_and_tagged(db_session):
    await _add_job(db_session, "job_b", at(11, 9, 30), at(11, 10, 30))
    await _add_job(db_session, "job_a", at(4, 9, 30), at(4, 10, 30))
    await _add_job(db_session, "job_c", at(11, 9), at(11, 9, 45))
    windows = [
        OccurrenceWindow(at(4, 9), at(4, 10)),
        OccurrenceWindow(at(11, 9), at(11, 10)),
        OccurrenceWindow(at(18, 9), at(18, 10)),
    ]
    conflicts = await find_series_conflicts(db_session, TEAM, windows)
    assert [c.job_id for c in conflicts] == ["job_a", "job_c", "job_b"]
    assert [c.occurrence_start for c in conflicts] == [at(4, 9), at(11, 9), at(11, 9)]


@pytest.mark.asyncio
async def test_no_windows_no_query(db_session):
    assert await find_series_conflicts(db_session, TEAM, []) == []
