"""Editing recurring series: this occurrence only vs. this and all future."""

from datetime import date, timedelta

import pytest
from sqlalchemy import select

from conftest import at
from jobdock.db.models.job import JobRecurrenceRow, JobRow
from jobdock.errors.exceptions import ConflictDetectedError, ValidationError
from jobdock.models.enums import EditScope
from jobdock.models.job import JobCreate, JobUpdate


def _series(**recurrence) -> JobCreate:
    return JobCreate(
        title="Weekly pool service",
        contact_id="con_ada",
        start_time=at(4, 9),
        end_time=at(4, 10),
        recurrence=recurrence,
    )


async def _rows(session_factory):
    async with session_factory() as session:
        result = await session.execute(select(JobRow).order_by(JobRow.start_time))
        return list(result.scalars().all())


async def _recurrence(session_factory, recurrence_id):
    async with session_factory() as session:
        return await session.get(JobRecurrenceRow, recurrence_id)


@pytest.mark.asyncio
async def test_this_scope_detaches_one_occurrence(manager, actors, session_factory):
    jobs = await manager.create(actors.owner, _series(frequency="weekly", count=4))
    recurrence_id = jobs[0].recurrence_id

    [edited] = await manager.update(
        actors.owner, jobs[1].job_id, JobUpdate(title="Skip the filter this week"),
    )
    assert edited.recurrence_id is None
    assert edited.title == "Skip the filter this week"

    rows = await _rows(session_factory)
    assert [r.recurrence_id for r in rows] == [recurrence_id, None, recurrence_id, recurrence_id]
    assert [r.title for r in rows].count("Weekly pool service") == 3
    assert (await _recurrence(session_factory, recurrence_id)).count == 4


@pytest.mark.asyncio
async def test_this_scope_cannot_change_rule(manager, actors):
    jobs = await manager.create(actors.owner, _series(frequency="weekly", count=4))
    with pytest.raises(ValidationError, match="scope=future"):
        await manager.update(
            actors.owner, jobs[1].job_id,
            JobUpdate(recurrence={"frequency": "daily", "count": 2}),
        )


@pytest.mark.asyncio
async def test_future_scope_splits_count_series(manager, actors, session_factory):
    jobs = await manager.create(actors.owner, _series(frequency="weekly", count=6))
    old_id = jobs[0].recurrence_id

    replaced = await manager.update(
        actors.owner,
        jobs[2].job_id,
        JobUpdate(start_time=at(18, 14), end_time=at(18, 15)),
        scope=EditScope.FUTURE,
    )
    assert [j.start_time for j in replaced] == [at(18, 14) + timedelta(days=7 * i) for i in range(4)]
    new_id = replaced[0].recurrence_id
    assert new_id != old_id

    rows = await _rows(session_factory)
    assert len(rows) == 6
    assert [r.recurrence_id for r in rows[:2]] == [old_id, old_id]
    assert [r.job_id for r in rows[:2]] == [jobs[0].job_id, jobs[1].job_id]
    assert (await _recurrence(session_factory, old_id)).count == 2
    assert (await _recurrence(session_factory, new_id)).count == 4


@pytest.mark.asyncio
async def test_future_scope_after_detached_occurrence_keeps_total(manager, actors, session_factory):
    jobs = await manager.create(actors.owner, _series(frequency="weekly", count=5))
    old_id = jobs[0].recurrence_id

    await manager.update(actors.owner, jobs[1].job_id, JobUpdate(title="Skip the filter this week"))
    replaced = await manager.update(
        actors.owner, jobs[2].job_id, JobUpdate(title="New pool crew"), scope=EditScope.FUTURE,
    )
    assert len(replaced) == 3
    assert [j.start_time for j in replaced] == [at(18, 9) + timedelta(days=7 * i) for i in range(3)]

    rows = await _rows(session_factory)
    assert len(rows) == 5
    assert [r.title for r in rows] == [
        "Weekly pool service", "Skip the filter this week",
        "New pool crew", "New pool crew", "New pool crew",
    ]
    assert (await _recurrence(session_factory, old_id)).count == 2
    assert (await _recurrence(session_factory, replaced[0].recurrence_id)).count == 3


@pytest.mark.asyncio
async def test_future_scope_splits_until_series(manager, actors, session_factory):
    jobs = await manager.create(actors.owner, _series(frequency="daily", until_date=date(2030, 3, 10)))
    assert len(jobs) == 7

    replaced = await manager.update(
        actors.owner, jobs[3].job_id, JobUpdate(title="Chlorine shock"), scope=EditScope.FUTURE,
    )
    assert [j.start_time.day for j in replaced] == [7, 8, 9, 10]
    assert {j.title for j in replaced} == {"Chlorine shock"}

    old = await _recurrence(session_factory, jobs[0].recurrence_id)
    assert old.until_date == date(2030, 3, 6)
    assert len(await _rows(session_factory)) == 7


@pytest.mark.asyncio
async def test_future_scope_from_first_occurrence_replaces_series(manager, actors, session_factory):
    jobs = await manager.create(actors.owner, _series(frequency="weekly", count=3))
    old_id = jobs[0].recurrence_id

    replaced = await manager.update(
        actors.owner, jobs[0].job_id, JobUpdate(location="Back yard"), scope=EditScope.FUTURE,
    )
    assert len(replaced) == 3
    assert await _recurrence(session_factory, old_id) is None
    assert {r.recurrence_id for r in await _rows(session_factory)} == {replaced[0].recurrence_id}


@pytest.mark.asyncio
async def test_future_scope_with_new_rule(manager, actors):
    jobs = await manager.create(actors.owner, _series(frequency="weekly", count=4))
    replaced = await manager.update(
        actors.owner,
        jobs[1].job_id,
        JobUpdate(recurrence={"frequency": "daily", "count": 2}),
        scope=EditScope.FUTURE,
    )
    assert [j.start_time for j in replaced] == [at(11, 9), at(12, 9)]


@pytest.mark.asyncio
async def test_future_scope_ignores_its_own_occurrences(manager, actors):
    jobs = await manager.create(actors.owner, _series(frequency="weekly", count=4))
    replaced = await manager.update(
        actors.owner,
        jobs[1].job_id,
        JobUpdate(start_time=at(11, 9, 30), end_time=at(11, 10, 30)),
        scope=EditScope.FUTURE,
    )
    assert len(replaced) == 3


@pytest.mark.asyncio
async def test_future_scope_conflict_persists_nothing(manager, actors, session_factory):
    jobs = await manager.create(actors.owner, _series(frequency="weekly", count=4))
    await manager.create(
        actors.owner,
        JobCreate(title="Other", contact_id="con_bob", start_time=at(25, 14), end_time=at(25, 15)),
    )
    with pytest.raises(ConflictDetectedError):
        await manager.update(
            actors.owner,
            jobs[1].job_id,
            JobUpdate(start_time=at(11, 14), end_time=at(11, 15)),
            scope=EditScope.FUTURE,
        )
    rows = await _rows(session_factory)
    assert [r.job_id for r in rows if r.recurrence_id] == [j.job_id for j in jobs]


@pytest.mark.asyncio
async def test_adding_recurrence_converts_job_to_series(manager, actors, session_factory):
    job = (await manager.create(
        actors.owner, JobCreate(title="Trial clean", contact_id="con_ada", start_time=at(4, 9), end_time=at(4, 10)),
    ))[0]
    series = await manager.update(
        actors.owner, job.job_id, JobUpdate(recurrence={"frequency": "weekly", "count": 3}),
    )
    assert len(series) == 3
    assert series[0].start_time == at(4, 9)
    assert series[0].title == "Trial clean"
    assert job.job_id not in {j.job_id for j in series}
    assert len(await _rows(session_factory)) == 3


@pytest.mark.asyncio
async def test_unscheduled_job_cannot_become_series(manager, actors):
    job = (await manager.create(
        actors.owner, JobCreate(title="Someday", contact_id="con_ada", to_be_scheduled=True),
    ))[0]
    with pytest.raises(ValidationError, match="start and end times"):
        await manager.update(actors.owner, job.job_id, JobUpdate(recurrence={"frequency": "daily", "count": 2}))
