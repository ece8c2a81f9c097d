"""Read-only lookups into the CRM tables, always scoped by tenant."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobdock.db.models.crm import ContactRow, InvoiceRow, QuoteRow, ServiceRow


class CrmRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get(self, model, pk_field: str, pk_value: str, tenant_id: str):
        stmt = select(model).where(
            getattr(model, pk_field) == pk_value,
            model.tenant_id == tenant_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_contact(self, tenant_id: str, contact_id: str) -> ContactRow | None:
        return await self._get(ContactRow, "contact_id", contact_id, tenant_id)

    async def get_service(self, tenant_id: str, service_id: str) -> ServiceRow | None:
        return await self._get(ServiceRow, "service_id", service_id, tenant_id)

    async def get_quote(self, tenant_id: str, quote_id: str) -> QuoteRow | None:
        return await self._get(QuoteRow, "quote_id", quote_id, tenant_id)

    async def get_invoice(self, tenant_id: str, invoice_id: str) -> InvoiceRow | None:
        return await self._get(InvoiceRow, "invoice_id", invoice_id, tenant_id)

    async def contact_names(self, tenant_id: str, contact_ids) -> dict[str, str | None]:
        ids = {cid for cid in contact_ids if cid}
        if not ids:
            return {}
        stmt = select(ContactRow).where(
            ContactRow.tenant_id == tenant_id,
            ContactRow.contact_id.in_(ids),
        )
        result = await self.session.execute(stmt)
        return {row.contact_id: row.display_name for row in result.scalars().all()}

    async def service_names(self, tenant_id: str, service_ids) -> dict[str, str]:
        ids = {sid for sid in service_ids if sid}
        if not ids:
            return {}
        stmt = select(ServiceRow.service_id, ServiceRow.name).where(
            ServiceRow.tenant_id == tenant_id,
            ServiceRow.service_id.in_(ids),
        )
        result = await self.session.execute(stmt)
        return {service_id: name for service_id, name in result.all()}
