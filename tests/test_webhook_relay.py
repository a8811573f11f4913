"""Tests for the webhook relay client."""

import json

import httpx
import pytest

from nexium.adapters.relay.webhook_client import WebhookRelay
from nexium.core.errors import NotFoundAppError, WebhookRelayError

DESTINATIONS = {
    "alerts": "https://hooks.example.test/alerts/secret-token",
    "audit-log": "https://hooks.example.test/audit",
}


class RecordingHook:
    def __init__(self, status_code: int = 204) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code)


def _relay(handler) -> WebhookRelay:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookRelay(DESTINATIONS, client=client)


@pytest.mark.asyncio
async def test_forwards_body_verbatim_to_destination():
    hook = RecordingHook()
    body = {"content": "hello", "embeds": [{"title": "t", "fields": []}], "nested": {"n": 1.5}}

    status = await _relay(hook).forward("alerts", body)

    assert status == 204
    assert len(hook.requests) == 1
    sent = hook.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == DESTINATIONS["alerts"]
    assert sent.headers["content-type"] == "application/json"
    assert json.loads(sent.content) == body


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, [], [1, 2, 3], "text", None])
async def test_any_json_value_is_forwarded(body):
    hook = RecordingHook(status_code=200)

    assert await _relay(hook).forward("audit-log", body) == 200
    assert json.loads(hook.requests[0].content) == body
    assert hook.requests[0].headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_unknown_destination_is_not_found():
    hook = RecordingHook()

    with pytest.raises(NotFoundAppError) as exc_info:
        await _relay(hook).forward("payments", {})

    assert exc_info.value.code == "relay_destination_unknown"
    assert hook.requests == []


@pytest.mark.asyncio
async def test_non_2xx_is_relay_error():
    with pytest.raises(WebhookRelayError) as exc_info:
        await _relay(RecordingHook(status_code=500)).forward("alerts", {"a": 1})

    assert exc_info.value.code == "webhook_forward_failed"
    assert exc_info.value.details["upstream_status"] == 500


@pytest.mark.asyncio
async def test_transport_error_is_relay_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(WebhookRelayError) as exc_info:
        await _relay(handler).forward("alerts", {"a": 1})

    assert exc_info.value.code == "webhook_forward_failed"


def test_destinations_lists_configured_names():
    relay = _relay(RecordingHook())

    assert relay.destinations == ["alerts", "audit-log"]
