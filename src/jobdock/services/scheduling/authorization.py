"""Authorization guard for job mutations.

A pure decision function over the actor (role, capability flags,
subscription tier), the action, the existing job and what the request asks
for. Rules are evaluated in a fixed order and the first failing rule decides
the deny reason:

1. tenant scope (``cross_tenant``)
2. create / schedule capability (``insufficient_role``)
3. assigning team members (``insufficient_role`` / ``subscription_required``)
4. ownership of an existing job (``not_your_job``). Employees without
   ``can_see_other_jobs`` may change only jobs they created; being assigned
   to a job lets them read it, not edit or delete it.
"""

from dataclasses import dataclass

from jobdock.errors.exceptions import AuthorizationError
from jobdock.models.actor import Actor
from jobdock.models.enums import DenyReason, JobAction, SubscriptionTier, UserRole
from jobdock.services.scheduling.assignments import extract_user_ids, normalize_assigned_to

MUTATION_ACTIONS = frozenset({
    JobAction.UPDATE,
    JobAction.DELETE,
    JobAction.RESTORE,
    JobAction.PERMANENT_DELETE,
    JobAction.CONFIRM,
    JobAction.DECLINE,
})

MSG_CROSS_TENANT = "Job not found in your account."
MSG_CANNOT_CREATE = "You do not have permission to create jobs."
MSG_CANNOT_SCHEDULE = (
    "You do not have permission to schedule appointments. "
    "Create the job as 'to be scheduled' instead."
)
MSG_EMPLOYEE_ASSIGN = "Only admins and owners can assign jobs to team members."
MSG_TEAM_REQUIRED = "Assigning jobs to team members requires a Team subscription."
MSG_NOT_YOUR_JOB = "You can only change jobs you created."


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None
    message: str | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason, message: str) -> "Decision":
        return cls(allowed=False, reason=reason, message=message)


@dataclass(frozen=True)
class JobIntent:
    """What a create or update request asks for, reduced to guard terms."""

    tenant_id: str | None = None
    schedules: bool = False
    assigns: bool = False


def create_intent(tenant_id: str, payload) -> JobIntent:
    schedules = (
        not payload.to_be_scheduled
        and payload.start_time is not None
        and payload.end_time is not None
    )
    return JobIntent(
        tenant_id=tenant_id,
        schedules=schedules,
        assigns=bool(normalize_assigned_to(payload.assigned_to)),
    )


def update_intent(job, changes: dict) -> JobIntent:
    """Intent of a partial update against the stored job.

    Re-sending the current assignee list unchanged is not an assignment.
    """
    assigns = False
    if "assigned_to" in changes:
        new = normalize_assigned_to(changes["assigned_to"])
        assigns = bool(new) and new != normalize_assigned_to(job.assigned_to)
    return JobIntent(tenant_id=job.tenant_id, assigns=assigns)


def can_view(actor: Actor, job) -> bool:
    """Read visibility: managers and viewers see everything, others their own or assigned jobs."""
    if job.tenant_id != actor.tenant_id:
        return False
    if actor.is_manager or actor.can_see_other_jobs:
        return True
    return job.created_by_id == actor.user_id or actor.user_id in extract_user_ids(job.assigned_to)


def can_modify(actor: Actor, job) -> bool:
    if job.tenant_id != actor.tenant_id:
        return False
    if actor.is_manager or actor.can_see_other_jobs:
        return True
    return job.created_by_id == actor.user_id


def authorize(actor: Actor, action: JobAction, resource=None, intent: JobIntent | None = None) -> Decision:
    for scoped in (resource, intent):
        tenant_id = getattr(scoped, "tenant_id", None)
        if tenant_id is not None and tenant_id != actor.tenant_id:
            return Decision.deny(DenyReason.CROSS_TENANT, MSG_CROSS_TENANT)

    if action == JobAction.CREATE:
        if not (actor.can_create_jobs or actor.can_schedule_appointments):
            return Decision.deny(DenyReason.INSUFFICIENT_ROLE, MSG_CANNOT_CREATE)
        if intent is not None and intent.schedules and not actor.can_schedule_appointments:
            return Decision.deny(DenyReason.INSUFFICIENT_ROLE, MSG_CANNOT_SCHEDULE)

    if action == JobAction.ASSIGN or (intent is not None and intent.assigns):
        if actor.role == UserRole.EMPLOYEE:
            return Decision.deny(DenyReason.INSUFFICIENT_ROLE, MSG_EMPLOYEE_ASSIGN)
        if actor.subscription_tier != SubscriptionTier.TEAM:
            return Decision.deny(DenyReason.SUBSCRIPTION_REQUIRED, MSG_TEAM_REQUIRED)

    if resource is not None:
        if action in MUTATION_ACTIONS and not can_modify(actor, resource):
            return Decision.deny(DenyReason.NOT_YOUR_JOB, MSG_NOT_YOUR_JOB)
        if action == JobAction.READ and not can_view(actor, resource):
            return Decision.deny(DenyReason.NOT_YOUR_JOB, MSG_NOT_YOUR_JOB)

    return Decision.allow()


def require(actor: Actor, action: JobAction, resource=None, intent: JobIntent | None = None) -> None:
    """Raise AuthorizationError unless ``authorize`` allows the action."""
    decision = authorize(actor, action, resource, intent)
    if not decision.allowed:
        raise AuthorizationError(decision.message, reason=decision.reason.value)
