"""Tests for notification events and webhook delivery."""

import hashlib
import hmac
import json

import httpx
import pytest

from jobdock.events.notifier import SOURCE_SYSTEM, WebhookNotifier, _sign_payload, build_event
from jobdock.models.enums import NotificationType


def _event():
    return build_event(NotificationType.JOB_DECLINED, "ten_1", ["job_1"], {"reason": "Booked out"})


def test_build_event():
    event = _event()
    assert event.event_id.startswith("evt_")
    assert event.event_type == "job.declined"
    assert event.job_ids == ["job_1"]
    assert event.payload == {"reason": "Booked out"}
    assert event.signature is None


def test_sign_payload():
    body = b'{"test":"data"}'
    expected = hmac.new(b"my-secret", body, hashlib.sha256).hexdigest()
    assert _sign_payload(body, "my-secret") == expected


@pytest.mark.asyncio
async def test_webhook_posts_signed_event():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(202)

    notifier = WebhookNotifier(
        url="https://mail.example.com/hooks/jobs", secret="s3cret", transport=httpx.MockTransport(handler),
    )
    await notifier.send(_event())

    [request] = received
    body = json.loads(request.content)
    signature = body.pop("signature")
    unsigned = json.dumps(body, separators=(",", ":")).encode("utf-8")
    assert signature == _sign_payload(unsigned, "s3cret")
    assert request.headers["X-JobDock-Signature"] == signature
    assert request.headers["X-JobDock-Event"] == "job.declined"
    assert request.headers["User-Agent"] == SOURCE_SYSTEM


@pytest.mark.asyncio
async def test_webhook_retries_server_errors():
    statuses = iter([503, 502, 200])
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(next(statuses))

    notifier = WebhookNotifier(url="https://mail.example.com/hook", secret="s", transport=httpx.MockTransport(handler))
    await notifier.send(_event())
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_webhook_does_not_retry_client_errors():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400)

    notifier = WebhookNotifier(url="https://mail.example.com/hook", secret="s", transport=httpx.MockTransport(handler))
    await notifier.send(_event())
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_webhook_swallows_connection_errors():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    notifier = WebhookNotifier(
        url="https://mail.example.com/hook", secret="s", max_retries=2, transport=httpx.MockTransport(handler),
    )
    await notifier.send(_event())


@pytest.mark.asyncio
async def test_no_url_only_logs():
    def handler(request):
        raise AssertionError("should not be called")

    notifier = WebhookNotifier(url="", transport=httpx.MockTransport(handler))
    await notifier.send(_event())
