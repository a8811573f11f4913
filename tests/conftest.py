"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any import that might load settings,
so the app is built with known relay destinations and no .env file.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault(
    "RELAY_DESTINATIONS",
    '{"alerts": "https://hooks.example.test/alerts", "audit-log": "https://hooks.example.test/audit"}',
)

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from nexium.adapters.directory.json_file import JsonFileUserDirectory
from nexium.adapters.profile.http_client import HttpProfileFetcher
from nexium.core.rate_limit import reset_rate_limiter


class StepClock:
    """Deterministic UTC clock advancing one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture(autouse=True)
def fresh_rate_limiter():
    """Every test starts with no client windows."""
    reset_rate_limiter()
    yield
    reset_rate_limiter()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def file_directory(tmp_path, clock) -> JsonFileUserDirectory:
    return JsonFileUserDirectory(
        tmp_path / "users.json",
        tmp_path / "allusers.json",
        clock=clock,
    )


class FakeProfileApi:
    """MockTransport-backed stand-in for the users API.

    Ids in ``missing`` answer 404, ids in ``failing`` answer 503; every other
    id resolves to ``player<id>``.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.missing: set[str] = set()
        self.failing: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        user_id = request.url.path.rsplit("/", 1)[-1]
        self.calls.append(user_id)
        if user_id in self.missing:
            return httpx.Response(404, json={"errors": [{"code": 3, "message": "The user id is invalid."}]})
        if user_id in self.failing:
            return httpx.Response(503, json={"errors": [{"code": 0, "message": "Service unavailable"}]})
        return httpx.Response(
            200,
            json={"id": int(user_id), "name": f"player{user_id}", "displayName": f"Player {user_id}"},
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def profile_api() -> FakeProfileApi:
    return FakeProfileApi()


@pytest.fixture
def profile_fetcher(profile_api) -> HttpProfileFetcher:
    return HttpProfileFetcher(
        "https://users.example.test/v1/users",
        client=profile_api.client(),
    )
