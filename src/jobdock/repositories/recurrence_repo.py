"""Job recurrence repository."""

from jobdock.db.models.job import JobRecurrenceRow
from jobdock.repositories.base import BaseRepository


class RecurrenceRepository(BaseRepository):
    model_class = JobRecurrenceRow
    pk_field = "recurrence_id"

    async def get(self, tenant_id: str, recurrence_id: str) -> JobRecurrenceRow | None:
        return await self._fetch(recurrence_id, tenant_id)
