"""Job and job recurrence tables."""

from datetime import date, datetime

from sqlalchemy import JSON, Boolean, Date, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from jobdock.db.base import Base, TimestampMixin, UTCDateTime


class JobRecurrenceRow(Base, TimestampMixin):
    __tablename__ = "job_recurrences"

    recurrence_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(128), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    contact_id: Mapped[str] = mapped_column(String(128), ForeignKey("contacts.contact_id"), nullable=False, index=True)
    service_id: Mapped[str | None] = mapped_column(String(128), ForeignKey("services.service_id"), nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    frequency: Mapped[str] = mapped_column(String(20), nullable=False)
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    until_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    days_of_week: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)


class JobRow(Base, TimestampMixin):
    __tablename__ = "jobs"

    job_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(128), ForeignKey("tenants.tenant_id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    contact_id: Mapped[str] = mapped_column(String(128), ForeignKey("contacts.contact_id"), nullable=False, index=True)
    service_id: Mapped[str | None] = mapped_column(String(128), ForeignKey("services.service_id"), nullable=True)
    quote_id: Mapped[str | None] = mapped_column(String(128), ForeignKey("quotes.quote_id"), nullable=True)
    invoice_id: Mapped[str | None] = mapped_column(String(128), ForeignKey("invoices.invoice_id"), nullable=True)
    recurrence_id: Mapped[str | None] = mapped_column(
        String(128), ForeignKey("job_recurrences.recurrence_id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_by_id: Mapped[str | None] = mapped_column(String(128), ForeignKey("users.user_id"), nullable=True)

    start_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True, index=True)
    end_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True, index=True)
    to_be_scheduled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="scheduled")
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    assigned_to: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    breaks: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    decline_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    archived_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
