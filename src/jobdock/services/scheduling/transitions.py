"""Work-status state machine and retention checks.

Status and retention are independent axes. Cross-axis invariants (an
archived job never moves, an in-progress job is never archived) are enforced
here rather than assumed from storage.
"""

from jobdock.errors.exceptions import ValidationError
from jobdock.models.enums import JobStatus, RetentionState

ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.SCHEDULED: frozenset({JobStatus.IN_PROGRESS, JobStatus.CANCELLED}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED}),
    JobStatus.PENDING_CONFIRMATION: frozenset({JobStatus.SCHEDULED, JobStatus.CANCELLED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}


def retention_state(job) -> RetentionState:
    if job.deleted_at is not None:
        return RetentionState.DELETED
    if job.archived_at is not None:
        return RetentionState.ARCHIVED
    return RetentionState.ACTIVE


def check_status_transition(job, new_status: JobStatus) -> None:
    """Raise ValidationError unless ``job`` may move to ``new_status``."""
    if retention_state(job) != RetentionState.ACTIVE:
        raise ValidationError(
            "Archived or deleted jobs cannot change status",
            {"job_id": job.job_id},
        )
    current = JobStatus(job.status)
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise ValidationError(
            f"Cannot move job from '{current}' to '{new_status}'",
            {"job_id": job.job_id, "from": current.value, "to": new_status.value},
        )


def check_can_archive(job) -> None:
    if job.status == JobStatus.IN_PROGRESS:
        raise ValidationError(
            "Jobs in progress cannot be archived",
            {"job_id": job.job_id},
        )
