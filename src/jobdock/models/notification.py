"""Pydantic model for outbound notification events."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from jobdock.models.enums import NotificationType


class JobEvent(BaseModel):
    event_id: str
    event_type: NotificationType
    tenant_id: str
    job_ids: list[str]
    occurred_at: datetime
    payload: dict[str, Any] = Field(default_factory=dict)
    signature: str | None = None
