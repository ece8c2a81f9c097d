"""Pydantic models for jobs, assignments, breaks and recurrence rules."""

from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from jobdock.models.enums import JobStatus, PayType, RecurrenceFrequency
from jobdock.services.scheduling.assignments import normalize_assigned_to


def _ensure_aware(value: datetime | None) -> datetime | None:
    """Naive instants from clients are taken as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class JobAssignment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(..., min_length=1)
    role: str = "Team Member"
    price: float | None = None
    pay_type: PayType = PayType.JOB
    hourly_rate: float | None = None


class JobBreak(BaseModel):
    """Planned pause inside the job window. Not used for conflict detection."""

    model_config = ConfigDict(extra="ignore")

    start_time: datetime
    end_time: datetime
    reason: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, value):
        return _ensure_aware(value)

    @model_validator(mode="after")
    def check_range(self) -> "JobBreak":
        if self.end_time < self.start_time:
            raise ValueError("break end_time must not be before start_time")
        return self


class RecurrenceRule(BaseModel):
    """Generating rule for a series.

    Bounds are checked by the recurrence expander rather than here so that
    every caller gets the same ValidationError.
    """

    model_config = ConfigDict(extra="forbid")

    frequency: RecurrenceFrequency
    interval: int = 1
    count: int | None = None
    until_date: date | None = None
    days_of_week: list[int] = Field(default_factory=list)


class JobCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    location: str | None = None
    notes: str | None = None
    contact_id: str = Field(..., min_length=1)
    service_id: str | None = None
    quote_id: str | None = None
    invoice_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    to_be_scheduled: bool = False
    status: JobStatus = JobStatus.SCHEDULED
    price: float | None = None
    assigned_to: list[JobAssignment] = Field(default_factory=list)
    breaks: list[JobBreak] = Field(default_factory=list)
    recurrence: RecurrenceRule | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, value):
        return _ensure_aware(value)

    @field_validator("assigned_to", mode="before")
    @classmethod
    def normalize_assignees(cls, value):
        return normalize_assigned_to(value)


class JobUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    location: str | None = None
    notes: str | None = None
    contact_id: str | None = None
    service_id: str | None = None
    quote_id: str | None = None
    invoice_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    to_be_scheduled: bool | None = None
    status: JobStatus | None = None
    price: float | None = None
    assigned_to: list[JobAssignment] | None = None
    breaks: list[JobBreak] | None = None
    recurrence: RecurrenceRule | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, value):
        return _ensure_aware(value)

    @field_validator("assigned_to", mode="before")
    @classmethod
    def normalize_assignees(cls, value):
        if value is None:
            return None
        return normalize_assigned_to(value)


class StatusChange(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: JobStatus


class DeclineRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: str


class Job(BaseModel):
    """A job as returned to API callers, with denormalized names."""

    job_id: str
    tenant_id: str
    title: str
    description: str | None = None
    location: str | None = None
    notes: str | None = None
    contact_id: str
    contact_name: str | None = None
    service_id: str | None = None
    service_name: str | None = None
    quote_id: str | None = None
    invoice_id: str | None = None
    recurrence_id: str | None = None
    created_by_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    to_be_scheduled: bool = False
    status: JobStatus
    price: float | None = None
    assigned_to: list[JobAssignment] = Field(default_factory=list)
    breaks: list[JobBreak] = Field(default_factory=list)
    decline_reason: str | None = None
    archived_at: datetime | None = None
    deleted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("assigned_to", mode="before")
    @classmethod
    def normalize_assignees(cls, value):
        return normalize_assigned_to(value)


class ConflictInfo(BaseModel):
    """An existing booking that overlaps a candidate window."""

    job_id: str
    title: str
    contact_name: str | None = None
    start_time: datetime
    end_time: datetime
    occurrence_start: datetime


class JobFilters(BaseModel):
    start: datetime | None = None
    end: datetime | None = None
    include_archived: bool = False
    show_deleted: bool = False

    @field_validator("start", "end")
    @classmethod
    def normalize_times(cls, value):
        return _ensure_aware(value)
