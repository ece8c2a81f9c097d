"""String enums for the scheduling domain."""

from enum import StrEnum


class JobStatus(StrEnum):
    SCHEDULED = "scheduled"
    PENDING_CONFIRMATION = "pending-confirmation"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RetentionState(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


class RecurrenceFrequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class PayType(StrEnum):
    JOB = "job"
    HOURLY = "hourly"


class UserRole(StrEnum):
    OWNER = "owner"
    ADMIN = "admin"
    EMPLOYEE = "employee"


class SubscriptionTier(StrEnum):
    SINGLE = "single"
    TEAM = "team"


class JobAction(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    RESTORE = "restore"
    PERMANENT_DELETE = "permanent_delete"
    CONFIRM = "confirm"
    DECLINE = "decline"
    ASSIGN = "assign"
    READ = "read"


class DenyReason(StrEnum):
    INSUFFICIENT_ROLE = "insufficient_role"
    SUBSCRIPTION_REQUIRED = "subscription_required"
    NOT_YOUR_JOB = "not_your_job"
    CROSS_TENANT = "cross_tenant"


class EditScope(StrEnum):
    THIS = "this"
    FUTURE = "future"


class NotificationType(StrEnum):
    JOB_ASSIGNED = "job.assigned"
    JOB_CONFIRMED = "job.confirmed"
    JOB_DECLINED = "job.declined"
