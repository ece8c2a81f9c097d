"""Base repository shared by the tenant-scoped repositories."""

from typing import Any, ClassVar

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from jobdock.db.base import Base


class BaseRepository:
    """Async repository over one ORM model.

    Subclasses set ``model_class`` and ``pk_field``. Rows of models with a
    ``tenant_id`` column are looked up with the tenant in the WHERE clause, so a
    foreign id never resolves to another account's row.
    """

    model_class: ClassVar[type[Base]]
    pk_field: ClassVar[str]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _fetch(self, pk_value: str, tenant_id: str | None = None) -> Any:
        model = self.model_class
        stmt = select(model).where(getattr(model, self.pk_field) == pk_value)
        if tenant_id is not None:
            stmt = stmt.where(model.tenant_id == tenant_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _scalars(self, stmt: Select) -> list:
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, **kwargs: Any) -> Any:
        """Add a new row and flush it so database defaults are populated."""
        row = self.model_class(**kwargs)
        self.session.add(row)
        await self.session.flush()
        return row

    async def delete(self, row: Any) -> None:
        await self.session.delete(row)
        await self.session.flush()
