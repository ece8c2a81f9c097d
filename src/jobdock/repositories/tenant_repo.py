"""Tenant repository."""

from sqlalchemy import select

from jobdock.db.models.tenant import TenantRow
from jobdock.repositories.base import BaseRepository


class TenantRepository(BaseRepository):
    model_class = TenantRow
    pk_field = "tenant_id"

    async def get(self, tenant_id: str) -> TenantRow | None:
        return await self._fetch(tenant_id)

    async def list_ids(self) -> list[str]:
        stmt = select(TenantRow.tenant_id).order_by(TenantRow.tenant_id)
        return await self._scalars(stmt)
