"""Tests for the admission filter wired as HTTP middleware."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from nexium.core import rate_limit
from nexium.core.config import settings
from nexium.main import app


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def test_hundred_requests_pass_and_next_is_rejected(client: TestClient) -> None:
    for _ in range(100):
        assert client.get("/").status_code == 200

    resp = client.get("/")

    assert resp.status_code == 429
    body = resp.json()
    assert body["error"]["code"] == "rate_limited"
    assert isinstance(body["retry"], int)
    assert 0 <= body["retry"] <= 60


def test_limit_applies_across_endpoints(client: TestClient) -> None:
    for i in range(100):
        path = "/health" if i % 2 else "/api/test"
        assert client.get(path).status_code == 200

    assert client.get("/health").status_code == 429


def test_rejection_carries_rate_limit_headers(client: TestClient) -> None:
    for _ in range(100):
        client.get("/health")

    resp = client.get("/health")

    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == str(resp.json()["retry"])
    assert resp.headers["X-RateLimit-Limit"] == "100"
    assert resp.headers["X-RateLimit-Remaining"] == "0"
    assert "X-RateLimit-Reset" in resp.headers
    assert resp.headers.get("X-Request-ID")


def test_disabled_limiter_admits_everything(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_enabled", False)

    for _ in range(120):
        assert client.get("/health").status_code == 200


def test_limiter_rebuilt_when_configuration_changes(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_requests", 2)

    assert client.get("/health").status_code == 200
    assert client.get("/health").status_code == 200
    assert client.get("/health").status_code == 429


def test_limiter_errors_fail_open(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    class BrokenLimiter:
        def consume(self, key: str):
            raise RuntimeError("limiter state corrupted")

    monkeypatch.setattr(rate_limit, "get_rate_limiter", lambda: BrokenLimiter())

    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}


def test_forwarded_for_ignored_unless_trusted(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_requests", 1)

    assert client.get("/health", headers={"X-Forwarded-For": "198.51.100.1"}).status_code == 200
    # Same connection peer, different claimed address: still limited
    assert client.get("/health", headers={"X-Forwarded-For": "198.51.100.2"}).status_code == 429


def test_forwarded_for_keys_clients_when_trusted(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_requests", 1)
    monkeypatch.setattr(settings.app, "rate_limit_trust_forwarded_for", True)

    first = {"X-Forwarded-For": "198.51.100.1, 10.0.0.1"}
    second = {"X-Forwarded-For": "198.51.100.2"}

    assert client.get("/health", headers=first).status_code == 200
    assert client.get("/health", headers=first).status_code == 429
    assert client.get("/health", headers=second).status_code == 200


def test_init_rate_limiter_replaces_previous_state() -> None:
    limiter = rate_limit.init_rate_limiter()
    limiter.consume("198.51.100.9")

    fresh = rate_limit.init_rate_limiter()

    assert fresh is not limiter
    assert rate_limit.get_rate_limiter() is fresh
    assert len(fresh) == 0
