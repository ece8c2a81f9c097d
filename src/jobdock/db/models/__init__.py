"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from jobdock.db.models.tenant import TenantRow
from jobdock.db.models.user import UserRow
from jobdock.db.models.crm import ContactRow, InvoiceRow, QuoteRow, ServiceRow
from jobdock.db.models.job import JobRecurrenceRow, JobRow

__all__ = [
    "TenantRow",
    "UserRow",
    "ContactRow",
    "ServiceRow",
    "QuoteRow",
    "InvoiceRow",
    "JobRecurrenceRow",
    "JobRow",
]
