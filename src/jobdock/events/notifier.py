"""Outbound job notifications (assignment, confirmation, decline).

Delivery is fire-and-forget: failures are logged and never propagate into
the job mutation that produced the event.
"""

import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Protocol

import httpx

from jobdock.config import settings
from jobdock.models.enums import NotificationType
from jobdock.models.notification import JobEvent
from jobdock.services.id_generator import generate_id

logger = logging.getLogger(__name__)

SOURCE_SYSTEM = "jobdock-api"


class Notifier(Protocol):
    async def send(self, event: JobEvent) -> None:
        ...


def _sign_payload(body: bytes, secret: str) -> str:
    """Compute HMAC-SHA256 signature over the raw JSON body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def build_event(
    event_type: NotificationType,
    tenant_id: str,
    job_ids: list[str],
    payload: dict | None = None,
) -> JobEvent:
    return JobEvent(
        event_id=generate_id("evt_"),
        event_type=event_type,
        tenant_id=tenant_id,
        job_ids=job_ids,
        occurred_at=datetime.now(timezone.utc),
        payload=payload or {},
    )


class WebhookNotifier:
    """POSTs signed events to the email service webhook.

    With no URL configured events are only logged, which is the local
    development default.
    """

    def __init__(
        self,
        url: str | None = None,
        secret: str | None = None,
        timeout: float | None = None,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url if url is not None else settings.notification_webhook_url
        self.secret = secret if secret is not None else settings.notification_webhook_secret
        self.timeout = timeout or settings.notification_timeout_seconds
        self.max_retries = max_retries
        self.transport = transport

    async def send(self, event: JobEvent) -> None:
        if not self.url:
            logger.info(
                "Notification %s for jobs %s (no webhook configured)",
                event.event_type, ",".join(event.job_ids),
            )
            return

        body_dict = event.model_dump(mode="json", exclude={"signature"})
        body_bytes = json.dumps(body_dict, separators=(",", ":")).encode("utf-8")
        signature = _sign_payload(body_bytes, self.secret)
        body_dict["signature"] = signature
        signed_body = json.dumps(body_dict, separators=(",", ":")).encode("utf-8")

        headers = {
            "Content-Type": "application/json",
            "X-JobDock-Signature": signature,
            "X-JobDock-Event": str(event.event_type),
            "User-Agent": SOURCE_SYSTEM,
        }

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                    resp = await client.post(self.url, content=signed_body, headers=headers)
                if resp.status_code < 300:
                    return
                if resp.status_code >= 500 and attempt < self.max_retries - 1:
                    continue
                logger.warning(
                    "Notification %s rejected by %s: HTTP %d",
                    event.event_id, self.url, resp.status_code,
                )
                return
            except httpx.HTTPError as exc:
                if attempt < self.max_retries - 1:
                    continue
                logger.warning("Notification delivery failed to %s: %s", self.url, exc)
                return
