"""Repository for tenant users."""

from sqlalchemy import select

from jobdock.db.models.user import UserRow
from jobdock.repositories.base import BaseRepository


class UserRepository(BaseRepository):
    model_class = UserRow
    pk_field = "user_id"

    async def get(self, user_id: str) -> UserRow | None:
        return await self._fetch(user_id)

    async def existing_ids(self, tenant_id: str, user_ids: list[str]) -> set[str]:
        """Return the subset of ``user_ids`` that are active users of the tenant."""
        if not user_ids:
            return set()
        stmt = select(UserRow.user_id).where(
            UserRow.tenant_id == tenant_id,
            UserRow.user_id.in_(user_ids),
            UserRow.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())
