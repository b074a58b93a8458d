"""Unit tests for the dues event webhook notifier"""

import httpx
import pytest
from dues_service.infrastructure.clients.notifier import WebhookNotifier


def make_notifier(handler, url="http://notify.test/dues-events"):
    notifier = WebhookNotifier(webhook_url=url, transport=httpx.MockTransport(handler))
    notifier.backoff_base = 0
    return notifier


@pytest.mark.asyncio
async def test_notify_retries_until_delivered():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503 if len(calls) < 3 else 200)

    delivered = await make_notifier(handler).notify({"event": "DUES_PAID", "due_id": "d-1"})

    assert delivered is True
    assert len(calls) == 3
    assert calls[-1].url == "http://notify.test/dues-events"


@pytest.mark.asyncio
async def test_notify_swallows_final_failure():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    notifier = make_notifier(handler)
    notifier.max_retries = 2

    assert await notifier.notify({"event": "DUES_GENERATED"}) is False
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_send_event_raises_after_retries():
    notifier = make_notifier(lambda request: httpx.Response(502))
    notifier.max_retries = 1

    with pytest.raises(httpx.HTTPStatusError):
        await notifier.send_event({"event": "DUES_PAID"})


@pytest.mark.asyncio
async def test_disabled_without_url():
    notifier = WebhookNotifier(webhook_url="")

    assert notifier.enabled is False
    assert await notifier.notify({"event": "DUES_PAID"}) is False
