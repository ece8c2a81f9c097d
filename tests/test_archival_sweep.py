"""Archival sweep: archive aged jobs, purge after the grace period."""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest
from redis.exceptions import RedisError

from conftest import SOLO, TEAM
from jobdock.db.models.job import JobRecurrenceRow, JobRow
from jobdock.storage.archives import archive_key
from jobdock.workers import archival_sweep
from jobdock.workers.archival_sweep import run_sweep
from jobdock.workers.scheduler import _acquire_lock

NOW = datetime(2031, 6, 1, 12, 0, tzinfo=timezone.utc)


async def _add(session_factory, job_id, *, ended_days_ago=None, archived_days_ago=None,
               tenant_id=TEAM, contact_id="con_ada", **fields):
    end = NOW - timedelta(days=ended_days_ago) if ended_days_ago is not None else None
    async with session_factory() as session:
        session.add(JobRow(
            job_id=job_id,
            tenant_id=tenant_id,
            title=fields.pop("title", f"Job {job_id}"),
            contact_id=contact_id,
            start_time=end - timedelta(hours=2) if end else None,
            end_time=end,
            to_be_scheduled=end is None,
            archived_at=NOW - timedelta(days=archived_days_ago) if archived_days_ago is not None else None,
            **fields,
        ))
        await session.commit()


async def _get(session_factory, job_id):
    async with session_factory() as session:
        return await session.get(JobRow, job_id)


class FailingBlobStore:
    def __init__(self, inner, fail_tenant=None):
        self.inner = inner
        self.fail_tenant = fail_tenant

    async def put(self, key, data, *, content_type):
        if self.fail_tenant is None or f"/{self.fail_tenant}/" in key:
            raise OSError("bucket unavailable")
        return await self.inner.put(key, data, content_type=content_type)

    async def get(self, key):
        return await self.inner.get(key)

    async def delete(self, key):
        return await self.inner.delete(key)

    async def exists(self, key):
        return await self.inner.exists(key)


class SlowBlobStore(FailingBlobStore):
    async def put(self, key, data, *, content_type):
        await asyncio.sleep(5)
        return await self.inner.put(key, data, content_type=content_type)


@pytest.fixture
async def aged(seed, session_factory):
    """One job ended 400 days ago and one archived 40 days ago."""
    await _add(session_factory, "job_old", ended_days_ago=400, service_id="svc_gutter",
               invoice_id="inv_1", assigned_to=["usr_emp"])
    await _add(session_factory, "job_expired", ended_days_ago=500, archived_days_ago=40)


@pytest.mark.asyncio
async def test_dry_run_changes_nothing(aged, session_factory, blob_store):
    report = await run_sweep(session_factory, blob_store, now=NOW, dry_run=True, max_concurrency=1)
    assert report.dry_run
    assert report.archived_count == 1
    assert report.deleted_count == 1
    assert report.errors == []

    assert (await _get(session_factory, "job_old")).archived_at is None
    assert await _get(session_factory, "job_expired") is not None
    assert not await blob_store.exists(archive_key(TEAM, "job_old"))


@pytest.mark.asyncio
async def test_sweep_archives_then_purges(aged, session_factory, blob_store):
    report = await run_sweep(session_factory, blob_store, now=NOW, max_concurrency=1)
    assert (report.archived_count, report.deleted_count) == (1, 1)
    assert report.tenants_processed == 3
    assert report.finished_at >= report.started_at

    old = await _get(session_factory, "job_old")
    assert old.archived_at == NOW
    assert old.deleted_at is None
    assert await _get(session_factory, "job_expired") is None

    snapshot = json.loads(await blob_store.get(archive_key(TEAM, "job_old")))
    assert snapshot["job_id"] == "job_old"
    assert snapshot["retention_policy"] == "1-year"
    assert snapshot["archived_date"] == NOW.isoformat()
    assert snapshot["contact"]["name"] == "Ada Lovelace"
    assert snapshot["service"]["name"] == "Gutter cleaning"
    assert snapshot["invoice"]["invoice_number"] == "INV-0001"
    assert snapshot["quote"] is None
    assert snapshot["assigned_to"][0]["user_id"] == "usr_emp"


@pytest.mark.asyncio
async def test_second_run_is_a_no_op(aged, session_factory, blob_store):
    await run_sweep(session_factory, blob_store, now=NOW, max_concurrency=1)
    report = await run_sweep(session_factory, blob_store, now=NOW, max_concurrency=1)
    assert (report.archived_count, report.deleted_count, report.errors) == (0, 0, [])


@pytest.mark.asyncio
async def test_recent_and_in_progress_jobs_untouched(seed, session_factory, blob_store):
    await _add(session_factory, "job_recent", ended_days_ago=30)
    await _add(session_factory, "job_running", ended_days_ago=400, status="in-progress")
    await _add(session_factory, "job_unscheduled")
    await _add(session_factory, "job_grace", ended_days_ago=400, archived_days_ago=10)

    report = await run_sweep(session_factory, blob_store, now=NOW, max_concurrency=1)
    assert (report.archived_count, report.deleted_count) == (0, 0)
    for job_id in ("job_recent", "job_running", "job_unscheduled"):
        assert (await _get(session_factory, job_id)).archived_at is None
    assert await _get(session_factory, "job_grace") is not None


@pytest.mark.asyncio
async def test_recurrence_summary_in_snapshot(seed, session_factory, blob_store):
    async with session_factory() as session:
        session.add(JobRecurrenceRow(
            recurrence_id="rec_1", tenant_id=TEAM, contact_id="con_ada", title="Weekly",
            frequency="weekly", interval=1, count=4, days_of_week=[],
            start_time=NOW - timedelta(days=430), end_time=NOW - timedelta(days=430, hours=-1),
        ))
        await session.commit()
    await _add(session_factory, "job_series", ended_days_ago=400, recurrence_id="rec_1")

    await run_sweep(session_factory, blob_store, now=NOW, max_concurrency=1)
    snapshot = json.loads(await blob_store.get(archive_key(TEAM, "job_series")))
    assert snapshot["recurrence"]["frequency"] == "weekly"
    assert snapshot["recurrence"]["count"] == 4


@pytest.mark.asyncio
async def test_failed_upload_leaves_job_active(seed, session_factory, blob_store):
    await _add(session_factory, "job_team", ended_days_ago=400)
    await _add(session_factory, "job_solo", ended_days_ago=400, tenant_id=SOLO, contact_id="con_solo")

    store = FailingBlobStore(blob_store, fail_tenant=TEAM)
    report = await run_sweep(session_factory, store, now=NOW, max_concurrency=1)
    assert report.archived_count == 1
    assert len(report.errors) == 1
    assert "job_team" in report.errors[0]
    assert "bucket unavailable" in report.errors[0]

    assert (await _get(session_factory, "job_team")).archived_at is None
    assert (await _get(session_factory, "job_solo")).archived_at == NOW

    # next run picks it up once storage recovers
    retry = await run_sweep(session_factory, blob_store, now=NOW, max_concurrency=1)
    assert retry.archived_count == 1
    assert retry.errors == []


@pytest.mark.asyncio
async def test_upload_timeout_recorded(seed, session_factory, blob_store):
    await _add(session_factory, "job_slow", ended_days_ago=400)
    report = await run_sweep(
        session_factory, SlowBlobStore(blob_store), now=NOW, max_concurrency=1, upload_timeout=0.05,
    )
    assert report.archived_count == 0
    assert "timed out" in report.errors[0]
    assert (await _get(session_factory, "job_slow")).archived_at is None


@pytest.mark.asyncio
async def test_tenant_failure_does_not_stop_others(seed, session_factory, blob_store, monkeypatch):
    await _add(session_factory, "job_team", ended_days_ago=400)
    original = archival_sweep.sweep_tenant

    async def _flaky(session, store, tenant_id, **kwargs):
        if tenant_id == SOLO:
            raise RuntimeError("connection reset")
        return await original(session, store, tenant_id, **kwargs)

    monkeypatch.setattr(archival_sweep, "sweep_tenant", _flaky)
    report = await run_sweep(session_factory, blob_store, now=NOW, max_concurrency=1)
    assert report.archived_count == 1
    assert report.tenants_processed == 3
    assert report.errors == [f"Tenant {SOLO}: connection reset"]


@pytest.mark.asyncio
async def test_sweep_limited_to_tenants(aged, session_factory, blob_store):
    report = await run_sweep(session_factory, blob_store, now=NOW, tenant_ids=[SOLO])
    assert (report.archived_count, report.deleted_count, report.tenants_processed) == (0, 0, 1)
    assert (await _get(session_factory, "job_old")).archived_at is None


class _FakeRedis:
    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def set(self, key, value, nx=False, ex=None):
        self.calls.append((key, nx, ex))
        if self.error:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_sweep_lock():
    assert await _acquire_lock(None, 60) is True

    claimed = _FakeRedis(result=True)
    assert await _acquire_lock(claimed, 60) is True
    assert claimed.calls == [("jobdock:sweep:lock", True, 60)]

    assert await _acquire_lock(_FakeRedis(result=None), 60) is False
    assert await _acquire_lock(_FakeRedis(error=RedisError("down")), 60) is True
