"""Archive snapshot layout for jobs aged out of the active table."""

import json
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from jobdock.db.models.job import JobRow
from jobdock.repositories.crm_repo import CrmRepository
from jobdock.repositories.recurrence_repo import RecurrenceRepository
from jobdock.services.scheduling.assignments import normalize_assigned_to

RETENTION_POLICY = "1-year"
ARCHIVE_CONTENT_TYPE = "application/json"


def archive_key(tenant_id: str, job_id: str) -> str:
    return f"archives/jobs/{tenant_id}/{job_id}.json"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def job_row_to_dict(row: JobRow) -> dict:
    return {
        "job_id": row.job_id,
        "tenant_id": row.tenant_id,
        "title": row.title,
        "description": row.description,
        "location": row.location,
        "notes": row.notes,
        "contact_id": row.contact_id,
        "service_id": row.service_id,
        "quote_id": row.quote_id,
        "invoice_id": row.invoice_id,
        "recurrence_id": row.recurrence_id,
        "created_by_id": row.created_by_id,
        "start_time": _iso(row.start_time),
        "end_time": _iso(row.end_time),
        "to_be_scheduled": row.to_be_scheduled,
        "status": row.status,
        "price": row.price,
        "assigned_to": normalize_assigned_to(row.assigned_to),
        "breaks": row.breaks or [],
        "decline_reason": row.decline_reason,
        "created_at": _iso(row.created_at),
        "updated_at": _iso(row.updated_at),
    }


async def build_snapshot(session: AsyncSession, row: JobRow, archived_at: datetime) -> dict:
    """The job plus summaries of everything it links to."""
    crm = CrmRepository(session)
    snapshot = job_row_to_dict(row)

    contact = await crm.get_contact(row.tenant_id, row.contact_id)
    snapshot["contact"] = None if contact is None else {
        "contact_id": contact.contact_id,
        "name": contact.display_name,
        "email": contact.email,
        "phone": contact.phone,
    }

    service = await crm.get_service(row.tenant_id, row.service_id) if row.service_id else None
    snapshot["service"] = None if service is None else {
        "service_id": service.service_id,
        "name": service.name,
    }

    quote = await crm.get_quote(row.tenant_id, row.quote_id) if row.quote_id else None
    snapshot["quote"] = None if quote is None else {
        "quote_id": quote.quote_id,
        "quote_number": quote.quote_number,
        "status": quote.status,
        "total": quote.total,
    }

    invoice = await crm.get_invoice(row.tenant_id, row.invoice_id) if row.invoice_id else None
    snapshot["invoice"] = None if invoice is None else {
        "invoice_id": invoice.invoice_id,
        "invoice_number": invoice.invoice_number,
        "status": invoice.status,
        "total": invoice.total,
    }

    recurrence = None
    if row.recurrence_id:
        recurrence = await RecurrenceRepository(session).get(row.tenant_id, row.recurrence_id)
    snapshot["recurrence"] = None if recurrence is None else {
        "recurrence_id": recurrence.recurrence_id,
        "frequency": recurrence.frequency,
        "interval": recurrence.interval,
        "count": recurrence.count,
        "until_date": recurrence.until_date.isoformat() if recurrence.until_date else None,
        "days_of_week": recurrence.days_of_week or [],
    }

    snapshot["archived_date"] = archived_at.isoformat()
    snapshot["retention_policy"] = RETENTION_POLICY
    return snapshot


def encode_snapshot(snapshot: dict) -> bytes:
    return json.dumps(snapshot, indent=2, sort_keys=True).encode("utf-8")
