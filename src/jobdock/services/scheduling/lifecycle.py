"""Job lifecycle manager.

The only surface the API layer calls for job mutations and reads. Every
operation takes the acting user explicitly, runs the authorization guard
first, and commits (or rolls back) its own transaction. Notifications are
queued while the transaction runs and only released by
:meth:`JobLifecycleManager.dispatch_pending` after it commits, so a failed
notification never undoes a mutation.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from jobdock.db.models.job import JobRecurrenceRow, JobRow
from jobdock.errors.exceptions import (
    ConflictDetectedError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from jobdock.events.notifier import Notifier, build_event
from jobdock.models.actor import Actor
from jobdock.models.enums import (
    EditScope,
    JobAction,
    JobStatus,
    NotificationType,
    RetentionState,
)
from jobdock.models.job import (
    Job,
    JobBreak,
    JobCreate,
    JobFilters,
    JobUpdate,
    RecurrenceRule,
)
from jobdock.models.notification import JobEvent
from jobdock.repositories.crm_repo import CrmRepository
from jobdock.repositories.job_repo import JobRepository
from jobdock.repositories.recurrence_repo import RecurrenceRepository
from jobdock.repositories.user_repo import UserRepository
from jobdock.services.id_generator import generate_id
from jobdock.services.scheduling.assignments import extract_user_ids, normalize_assigned_to
from jobdock.services.scheduling.authorization import (
    can_view,
    create_intent,
    require,
    update_intent,
)
from jobdock.services.scheduling.conflicts import find_series_conflicts
from jobdock.services.scheduling.recurrence import Anchor, OccurrenceWindow, expand
from jobdock.services.scheduling.transitions import (
    check_can_archive,
    check_status_transition,
    retention_state,
)
from jobdock.storage.archives import archive_key
from jobdock.storage.blobs import BlobStore

logger = logging.getLogger(__name__)

# Plain columns copied verbatim from a request or a template row
_COPY_FIELDS = (
    "title",
    "description",
    "location",
    "notes",
    "contact_id",
    "service_id",
    "quote_id",
    "invoice_id",
    "price",
    "status",
)
# Columns a partial update may not blank out
_REQUIRED_FIELDS = frozenset({"title", "contact_id", "status"})


def _breaks_json(breaks, offset: timedelta = timedelta(0)) -> list[dict]:
    """Serialize breaks for the JSON column, shifted by ``offset``."""
    out = []
    for item in breaks or []:
        brk = item if isinstance(item, JobBreak) else JobBreak.model_validate(item)
        out.append({
            "start_time": (brk.start_time + offset).isoformat(),
            "end_time": (brk.end_time + offset).isoformat(),
            "reason": brk.reason,
        })
    return out


def _rule_from_row(recurrence: JobRecurrenceRow) -> RecurrenceRule:
    return RecurrenceRule(
        frequency=recurrence.frequency,
        interval=recurrence.interval,
        count=recurrence.count,
        until_date=recurrence.until_date,
        days_of_week=recurrence.days_of_week or [],
    )


def _row_template(row: JobRow) -> dict:
    template = {field: getattr(row, field) for field in _COPY_FIELDS}
    template.update(
        assigned_to=normalize_assigned_to(row.assigned_to),
        breaks=list(row.breaks or []),
        created_by_id=row.created_by_id,
        start_time=row.start_time,
        end_time=row.end_time,
        to_be_scheduled=row.to_be_scheduled,
    )
    return template


def _check_window(start, end, to_be_scheduled: bool, recurring: bool = False) -> None:
    if recurring and to_be_scheduled:
        raise ValidationError("Recurring jobs must have scheduled times", {"field": "to_be_scheduled"})
    if to_be_scheduled:
        return
    if start is None or end is None:
        raise ValidationError(
            "Scheduled jobs need both start_time and end_time",
            {"field": "start_time" if start is None else "end_time"},
        )
    if end < start:
        raise ValidationError("end_time must not be before start_time", {"field": "end_time"})


class JobLifecycleManager:
    def __init__(
        self,
        session: AsyncSession,
        notifier: Notifier | None = None,
        blob_store: BlobStore | None = None,
    ):
        self.session = session
        self.notifier = notifier
        self.blob_store = blob_store
        self.jobs = JobRepository(session)
        self.recurrences = RecurrenceRepository(session)
        self.crm = CrmRepository(session)
        self.users = UserRepository(session)
        self.pending_events: list[JobEvent] = []

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _transaction(self):
        """Commit on success; roll back on any error, mapping DB failures."""
        try:
            yield
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Job mutation failed, rolled back: %s", exc)
            raise PersistenceError() from exc
        except Exception:
            await self.session.rollback()
            raise

    def _queue(self, event_type: NotificationType, tenant_id: str, job_ids: list[str], payload: dict) -> None:
        self.pending_events.append(build_event(event_type, tenant_id, job_ids, payload))

    async def dispatch_pending(self) -> None:
        """Send queued notifications. Failures are logged, never raised."""
        events, self.pending_events = self.pending_events, []
        if self.notifier is None:
            return
        for event in events:
            try:
                await self.notifier.send(event)
            except Exception as exc:
                logger.warning("Failed to send %s notification %s: %s", event.event_type, event.event_id, exc)

    async def _get_row(self, actor: Actor, job_id: str) -> JobRow:
        row = await self.jobs.get(actor.tenant_id, job_id)
        if row is None:
            raise NotFoundError("Job", job_id)
        return row

    async def _to_models(self, tenant_id: str, rows: list[JobRow]) -> list[Job]:
        contacts = await self.crm.contact_names(tenant_id, [r.contact_id for r in rows])
        services = await self.crm.service_names(tenant_id, [r.service_id for r in rows])
        return [
            Job.model_validate(row, from_attributes=True).model_copy(
                update={
                    "contact_name": contacts.get(row.contact_id),
                    "service_name": services.get(row.service_id),
                }
            )
            for row in rows
        ]

    async def _validate_links(self, tenant_id: str, fields: dict) -> None:
        """Foreign keys must exist inside the tenant."""
        lookups = (
            ("contact_id", "Contact", self.crm.get_contact),
            ("service_id", "Service", self.crm.get_service),
            ("quote_id", "Quote", self.crm.get_quote),
            ("invoice_id", "Invoice", self.crm.get_invoice),
        )
        for field, label, fetch in lookups:
            value = fields.get(field)
            if value and await fetch(tenant_id, value) is None:
                raise ValidationError(f"{label} '{value}' not found", {"field": field})

    async def _validate_assignees(self, tenant_id: str, assignments: list[dict]) -> None:
        user_ids = extract_user_ids(assignments)
        known = await self.users.existing_ids(tenant_id, user_ids)
        missing = [uid for uid in user_ids if uid not in known]
        if missing:
            raise ValidationError(
                "Assigned users must be active members of this account",
                {"field": "assigned_to", "unknown_user_ids": missing},
            )

    async def _raise_on_conflicts(
        self,
        tenant_id: str,
        windows: list[OccurrenceWindow],
        assigned_to: list[dict],
        exclude_job_ids=(),
    ) -> None:
        conflicts = await find_series_conflicts(
            self.session,
            tenant_id,
            windows,
            exclude_job_ids=exclude_job_ids,
            assignee_ids=extract_user_ids(assigned_to),
        )
        if conflicts:
            raise ConflictDetectedError(conflicts)

    async def _insert_jobs(
        self,
        tenant_id: str,
        template: dict,
        windows: list[OccurrenceWindow],
        recurrence_id: str | None = None,
    ) -> list[JobRow]:
        """Insert one row per window; breaks keep their offset from the first start."""
        anchor_start = windows[0].start_time if windows else None
        rows = []
        for window in windows or [OccurrenceWindow(start_time=None, end_time=None)]:
            offset = window.start_time - anchor_start if anchor_start is not None else timedelta(0)
            rows.append(
                JobRow(
                    job_id=generate_id("job_"),
                    tenant_id=tenant_id,
                    recurrence_id=recurrence_id,
                    created_by_id=template.get("created_by_id"),
                    start_time=window.start_time,
                    end_time=window.end_time,
                    to_be_scheduled=window.start_time is None,
                    assigned_to=normalize_assigned_to(template.get("assigned_to")),
                    breaks=_breaks_json(template.get("breaks"), offset),
                    **{field: template.get(field) for field in _COPY_FIELDS},
                )
            )
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def _insert_recurrence(
        self,
        tenant_id: str,
        template: dict,
        rule: RecurrenceRule,
        first: OccurrenceWindow,
    ) -> JobRecurrenceRow:
        return await self.recurrences.create(
            recurrence_id=generate_id("rec_"),
            tenant_id=tenant_id,
            contact_id=template["contact_id"],
            service_id=template.get("service_id"),
            title=template["title"],
            frequency=rule.frequency.value,
            interval=rule.interval,
            count=rule.count,
            until_date=rule.until_date,
            days_of_week=list(rule.days_of_week),
            start_time=first.start_time,
            end_time=first.end_time,
        )

    async def _create_series(
        self,
        tenant_id: str,
        template: dict,
        rule: RecurrenceRule | None,
    ) -> list[JobRow]:
        """Expand (when recurring) and insert; runs inside the caller's transaction."""
        start, end = template.get("start_time"), template.get("end_time")
        if rule is None:
            windows = [OccurrenceWindow(start, end)] if start is not None else []
            return await self._insert_jobs(tenant_id, template, windows)

        windows = expand(Anchor.from_window(start, end), rule)
        if not windows:
            raise ValidationError("Recurrence produces no occurrences", {"field": "recurrence"})
        recurrence = await self._insert_recurrence(tenant_id, template, rule, windows[0])
        return await self._insert_jobs(tenant_id, template, windows, recurrence.recurrence_id)

    def _queue_assignment(self, actor: Actor, rows: list[JobRow], user_ids: list[str]) -> None:
        if not user_ids or not rows:
            return
        first = rows[0]
        self._queue(
            NotificationType.JOB_ASSIGNED,
            actor.tenant_id,
            [r.job_id for r in rows],
            {
                "user_ids": user_ids,
                "assigned_by": actor.user_id,
                "title": first.title,
                "location": first.location,
                "contact_id": first.contact_id,
                "start_time": first.start_time.isoformat() if first.start_time else None,
                "end_time": first.end_time.isoformat() if first.end_time else None,
                "occurrences": len(rows),
            },
        )

    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------

    async def create(self, actor: Actor, data: JobCreate, force: bool = False) -> list[Job]:
        """Create a job, or every occurrence of a recurring series, atomically."""
        require(actor, JobAction.CREATE, intent=create_intent(actor.tenant_id, data))

        start = None if data.to_be_scheduled else data.start_time
        end = None if data.to_be_scheduled else data.end_time
        _check_window(start, end, data.to_be_scheduled, recurring=data.recurrence is not None)

        template = {field: getattr(data, field) for field in _COPY_FIELDS}
        template.update(
            assigned_to=normalize_assigned_to(data.assigned_to),
            breaks=data.breaks,
            created_by_id=actor.user_id,
            start_time=start,
            end_time=end,
        )
        await self._validate_links(actor.tenant_id, template)
        await self._validate_assignees(actor.tenant_id, template["assigned_to"])

        if data.recurrence is not None:
            windows = expand(Anchor.from_window(start, end), data.recurrence)
        else:
            windows = [OccurrenceWindow(start, end)] if start is not None else []
        if windows and not force:
            await self._raise_on_conflicts(actor.tenant_id, windows, template["assigned_to"])

        async with self._transaction():
            rows = await self._create_series(actor.tenant_id, template, data.recurrence)

        logger.info(
            "Created %d job(s) for tenant %s (recurrence=%s, forced=%s)",
            len(rows), actor.tenant_id, rows[0].recurrence_id, force,
        )
        self._queue_assignment(actor, rows, extract_user_ids(template["assigned_to"]))
        return await self._to_models(actor.tenant_id, rows)

    async def update(
        self,
        actor: Actor,
        job_id: str,
        data: JobUpdate,
        scope: EditScope = EditScope.THIS,
        force: bool = False,
    ) -> list[Job]:
        """Apply a partial update.

        ``scope=this`` edits one job; a recurring occurrence is detached from
        its series. ``scope=future`` replaces the edited occurrence and every
        later one with a re-expanded series, leaving earlier ones alone.
        Returns every job that now reflects the edit.
        """
        row = await self._get_row(actor, job_id)
        sent = data.model_fields_set
        changes = {field: getattr(data, field) for field in sent if field != "recurrence"}
        require(actor, JobAction.UPDATE, row, update_intent(row, changes))

        if retention_state(row) != RetentionState.ACTIVE:
            raise ValidationError("Restore the job before editing it", {"job_id": job_id})
        if "status" in changes and changes["status"] is not None and changes["status"] != row.status:
            check_status_transition(row, changes["status"])

        template = _row_template(row)
        for field in _COPY_FIELDS:
            if field in changes and (changes[field] is not None or field not in _REQUIRED_FIELDS):
                template[field] = changes[field]
        if "assigned_to" in changes:
            template["assigned_to"] = normalize_assigned_to(changes["assigned_to"])
        if "breaks" in changes:
            template["breaks"] = changes["breaks"] or []
        for field in ("start_time", "end_time"):
            if field in changes:
                template[field] = changes[field]
        if changes.get("to_be_scheduled") is not None:
            template["to_be_scheduled"] = changes["to_be_scheduled"]
        elif changes.get("start_time") and changes.get("end_time"):
            # giving an unscheduled job a window schedules it
            template["to_be_scheduled"] = False
        if template["to_be_scheduled"]:
            template["start_time"] = template["end_time"] = None
        elif "breaks" not in changes and row.start_time is not None and template["start_time"] is not None:
            # moving the job moves its breaks with it
            template["breaks"] = _breaks_json(row.breaks, template["start_time"] - row.start_time)

        await self._validate_links(
            actor.tenant_id,
            {f: changes.get(f) for f in ("contact_id", "service_id", "quote_id", "invoice_id")},
        )
        if "assigned_to" in changes:
            await self._validate_assignees(actor.tenant_id, template["assigned_to"])

        previous_ids = set(extract_user_ids(row.assigned_to))
        added = [uid for uid in extract_user_ids(template["assigned_to"]) if uid not in previous_ids]

        if data.recurrence is not None and row.recurrence_id is None:
            rows = await self._convert_to_series(actor, row, template, data.recurrence, force)
        elif scope == EditScope.FUTURE and row.recurrence_id is not None:
            rows = await self._update_future(actor, row, template, data.recurrence, force)
        else:
            if data.recurrence is not None:
                raise ValidationError(
                    "Changing a series' recurrence requires scope=future",
                    {"field": "recurrence"},
                )
            rows = [await self._update_single(actor, row, template, force)]

        self._queue_assignment(actor, rows, added)
        return await self._to_models(actor.tenant_id, rows)

    async def _update_single(self, actor: Actor, row: JobRow, template: dict, force: bool) -> JobRow:
        start, end = template["start_time"], template["end_time"]
        _check_window(start, end, template["to_be_scheduled"])

        schedule_changed = (
            start != row.start_time
            or end != row.end_time
            or template["to_be_scheduled"] != row.to_be_scheduled
        )
        assignees_changed = template["assigned_to"] != normalize_assigned_to(row.assigned_to)
        if start is not None and (schedule_changed or assignees_changed) and not force:
            await self._raise_on_conflicts(
                actor.tenant_id, [OccurrenceWindow(start, end)], template["assigned_to"],
                exclude_job_ids=[row.job_id],
            )

        async with self._transaction():
            for field in _COPY_FIELDS:
                setattr(row, field, template[field])
            row.assigned_to = template["assigned_to"]
            row.breaks = _breaks_json(template["breaks"])
            row.start_time = start
            row.end_time = end
            row.to_be_scheduled = template["to_be_scheduled"]
            if row.recurrence_id is not None:
                logger.info("Detaching job %s from series %s", row.job_id, row.recurrence_id)
                row.recurrence_id = None
            await self.session.flush()
        return row

    async def _convert_to_series(
        self,
        actor: Actor,
        row: JobRow,
        template: dict,
        rule: RecurrenceRule,
        force: bool,
    ) -> list[JobRow]:
        """Replace a one-off job with a new series anchored at its window."""
        start, end = template["start_time"], template["end_time"]
        if template["to_be_scheduled"] or start is None or end is None:
            raise ValidationError(
                "Job must have start and end times to add recurrence",
                {"field": "recurrence"},
            )
        _check_window(start, end, False, recurring=True)
        windows = expand(Anchor.from_window(start, end), rule)
        if not force:
            await self._raise_on_conflicts(
                actor.tenant_id, windows, template["assigned_to"], exclude_job_ids=[row.job_id],
            )

        old_job_id = row.job_id
        async with self._transaction():
            await self.jobs.delete(row)
            rows = await self._create_series(actor.tenant_id, template, rule)
        logger.info("Converted job %s into series %s (%d occurrences)", old_job_id, rows[0].recurrence_id, len(rows))
        return rows

    async def _update_future(
        self,
        actor: Actor,
        row: JobRow,
        template: dict,
        new_rule: RecurrenceRule | None,
        force: bool,
    ) -> list[JobRow]:
        """Split the series at ``row`` and regenerate everything from it onward."""
        if row.start_time is None:
            raise ValidationError("Only scheduled occurrences can start a series edit", {"job_id": row.job_id})
        start, end = template["start_time"], template["end_time"]
        _check_window(start, end, template["to_be_scheduled"], recurring=True)

        recurrence = await self.recurrences.get(actor.tenant_id, row.recurrence_id)
        if recurrence is None:
            raise NotFoundError("Recurrence", row.recurrence_id)

        series = await self.jobs.list_series(actor.tenant_id, recurrence.recurrence_id)
        earlier = [j for j in series if j.start_time is not None and j.start_time < row.start_time]
        replaced = [j for j in series if j not in earlier]
        intent = update_intent(row, {"assigned_to": template["assigned_to"]})
        for job in replaced:
            require(actor, JobAction.UPDATE, job, intent)

        # Position of this occurrence in the original series. Rows detached by
        # single-occurrence edits still count toward the stored rule.
        old_rule = _rule_from_row(recurrence)
        old_windows = expand(Anchor.from_window(recurrence.start_time, recurrence.end_time), old_rule)
        before = [w for w in old_windows if w.start_time < row.start_time]
        if new_rule is None:
            if old_rule.count is not None:
                remaining = old_rule.count - len(before)
                if remaining < 1:
                    raise ValidationError("No occurrences left to edit in this series", {"job_id": row.job_id})
                new_rule = old_rule.model_copy(update={"count": remaining})
            else:
                new_rule = old_rule

        windows = expand(Anchor.from_window(start, end), new_rule)
        if not force:
            await self._raise_on_conflicts(
                actor.tenant_id, windows, template["assigned_to"],
                exclude_job_ids=[j.job_id for j in replaced],
            )

        old_recurrence_id = recurrence.recurrence_id
        split_at = row.start_time
        async with self._transaction():
            await self.jobs.delete_many(actor.tenant_id, [j.job_id for j in replaced])
            if not earlier:
                await self.recurrences.delete(recurrence)
            elif recurrence.count is not None:
                recurrence.count = len(before)
            else:
                recurrence.until_date = before[-1].start_time.date()
            rows = await self._create_series(actor.tenant_id, template, new_rule)

        logger.info(
            "Split series %s at %s: kept %d, replaced %d with %d in series %s",
            old_recurrence_id, split_at.isoformat(), len(earlier),
            len(replaced), len(rows), rows[0].recurrence_id,
        )
        return rows

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    async def _targets(self, actor: Actor, row: JobRow, series: bool) -> list[JobRow]:
        if series and row.recurrence_id is not None:
            return await self.jobs.list_series(actor.tenant_id, row.recurrence_id)
        return [row]

    async def archive(self, actor: Actor, job_id: str, series: bool = False) -> list[Job]:
        """Set ``archived_at`` on the job or on every active occurrence of its series.

        Already archived rows keep their original timestamp.
        """
        row = await self._get_row(actor, job_id)
        require(actor, JobAction.DELETE, row)
        targets = [
            job for job in await self._targets(actor, row, series)
            if retention_state(job) == RetentionState.ACTIVE
        ]
        for job in targets:
            require(actor, JobAction.DELETE, job)
            check_can_archive(job)

        now = datetime.now(timezone.utc)
        async with self._transaction():
            for job in targets:
                job.archived_at = now
            await self.session.flush()

        logger.info("Archived %d job(s) for tenant %s", len(targets), actor.tenant_id)
        return await self._to_models(actor.tenant_id, targets or [row])

    async def restore(self, actor: Actor, job_id: str, series: bool = False) -> list[Job]:
        row = await self._get_row(actor, job_id)
        require(actor, JobAction.RESTORE, row)
        if row.deleted_at is not None:
            raise ValidationError("Deleted jobs cannot be restored", {"job_id": job_id})
        if row.archived_at is None:
            raise ValidationError("Job is not archived", {"job_id": job_id})

        targets = [
            job for job in await self._targets(actor, row, series)
            if retention_state(job) == RetentionState.ARCHIVED
        ]
        for job in targets:
            require(actor, JobAction.RESTORE, job)

        async with self._transaction():
            for job in targets:
                job.archived_at = None
            await self.session.flush()

        logger.info("Restored %d job(s) for tenant %s", len(targets), actor.tenant_id)
        return await self._to_models(actor.tenant_id, targets)

    async def permanent_delete(
        self,
        actor: Actor,
        job_id: str,
        series: bool = False,
        force: bool = False,
    ) -> int:
        """Remove rows for good. Active jobs need ``force``.

        Archive blobs are removed after the rows; a blob failure is logged and
        does not undo the delete.
        """
        row = await self._get_row(actor, job_id)
        require(actor, JobAction.PERMANENT_DELETE, row)
        targets = await self._targets(actor, row, series)
        for job in targets:
            require(actor, JobAction.PERMANENT_DELETE, job)
            if not force and retention_state(job) == RetentionState.ACTIVE:
                raise ValidationError(
                    "Only archived jobs can be permanently deleted; use force to delete an active job",
                    {"job_id": job.job_id},
                )

        job_ids = [job.job_id for job in targets]
        archived_ids = [job.job_id for job in targets if job.archived_at is not None]
        recurrence_id = row.recurrence_id

        async with self._transaction():
            deleted = await self.jobs.delete_many(actor.tenant_id, job_ids)
            if recurrence_id is not None:
                remaining = await self.jobs.list_series(actor.tenant_id, recurrence_id)
                if not remaining:
                    recurrence = await self.recurrences.get(actor.tenant_id, recurrence_id)
                    if recurrence is not None:
                        await self.recurrences.delete(recurrence)

        logger.info("Permanently deleted %d job(s) for tenant %s", deleted, actor.tenant_id)
        await self._delete_archive_blobs(actor.tenant_id, archived_ids)
        return deleted

    async def _delete_archive_blobs(self, tenant_id: str, job_ids: list[str]) -> None:
        if self.blob_store is None:
            return
        for job_id in job_ids:
            key = archive_key(tenant_id, job_id)
            try:
                if await self.blob_store.exists(key):
                    await self.blob_store.delete(key)
            except Exception as exc:
                logger.warning("Failed to delete archive blob %s: %s", key, exc)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def confirm(self, actor: Actor, job_id: str) -> Job:
        row = await self._get_row(actor, job_id)
        require(actor, JobAction.CONFIRM, row)
        if row.status != JobStatus.PENDING_CONFIRMATION:
            raise ValidationError("Only pending jobs can be confirmed", {"job_id": job_id})
        check_status_transition(row, JobStatus.SCHEDULED)

        async with self._transaction():
            row.status = JobStatus.SCHEDULED.value
            await self.session.flush()

        self._queue(
            NotificationType.JOB_CONFIRMED,
            actor.tenant_id,
            [row.job_id],
            {
                "contact_id": row.contact_id,
                "title": row.title,
                "start_time": row.start_time.isoformat() if row.start_time else None,
                "end_time": row.end_time.isoformat() if row.end_time else None,
            },
        )
        return (await self._to_models(actor.tenant_id, [row]))[0]

    async def decline(self, actor: Actor, job_id: str, reason: str) -> Job:
        row = await self._get_row(actor, job_id)
        require(actor, JobAction.DECLINE, row)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required to decline a booking", {"field": "reason"})
        if row.status != JobStatus.PENDING_CONFIRMATION:
            raise ValidationError("Only pending jobs can be declined", {"job_id": job_id})
        check_status_transition(row, JobStatus.CANCELLED)

        async with self._transaction():
            row.status = JobStatus.CANCELLED.value
            row.decline_reason = reason
            await self.session.flush()

        self._queue(
            NotificationType.JOB_DECLINED,
            actor.tenant_id,
            [row.job_id],
            {"contact_id": row.contact_id, "title": row.title, "reason": reason},
        )
        return (await self._to_models(actor.tenant_id, [row]))[0]

    async def transition_status(self, actor: Actor, job_id: str, new_status: JobStatus) -> Job:
        row = await self._get_row(actor, job_id)
        require(actor, JobAction.UPDATE, row)
        check_status_transition(row, new_status)

        async with self._transaction():
            row.status = new_status.value
            await self.session.flush()
        return (await self._to_models(actor.tenant_id, [row]))[0]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_all(self, actor: Actor, filters: JobFilters | None = None) -> list[Job]:
        """Jobs visible to the actor; scheduled ones by start time, then unscheduled."""
        filters = filters or JobFilters()
        rows = await self.jobs.list_for_tenant(
            actor.tenant_id,
            start=filters.start,
            end=filters.end,
            include_archived=filters.include_archived,
            show_deleted=filters.show_deleted,
        )
        visible = [row for row in rows if can_view(actor, row)]
        return await self._to_models(actor.tenant_id, visible)

    async def get_by_id(self, actor: Actor, job_id: str) -> Job:
        row = await self.jobs.get(actor.tenant_id, job_id)
        if row is None or not can_view(actor, row):
            raise NotFoundError("Job", job_id)
        return (await self._to_models(actor.tenant_id, [row]))[0]
