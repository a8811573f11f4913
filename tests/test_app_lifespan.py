"""Tests for application startup, shutdown and the fixed routes."""

import pytest
from fastapi.testclient import TestClient

from nexium.adapters.directory.database import SqlUserDirectory
from nexium.adapters.directory.factory import create_user_directory
from nexium.adapters.directory.json_file import JsonFileUserDirectory
from nexium.core.app_factory import create_app, lifespan
from nexium.core.config import StoreSettings, settings
from nexium.core.errors import StorageAppError, ValidationAppError


@pytest.fixture
def file_store(tmp_path, monkeypatch):
    store = StoreSettings(backend="file", data_dir=tmp_path, seed_ids=["11", "22"])
    monkeypatch.setattr(settings, "store", store)
    return store


class TestFixedRoutes:
    def test_root_banner(self):
        resp = TestClient(create_app()).get("/")

        assert resp.status_code == 200
        assert resp.json() == {"message": "NEXIUM"}

    def test_health(self):
        resp = TestClient(create_app()).get("/health")

        assert resp.json() == {"status": "healthy"}

    def test_smoke_test_route(self):
        resp = TestClient(create_app()).get("/api/test")

        assert resp.json() == {"message": "NEXIUM ON TOP!"}

    def test_openapi_lists_relay_routes_and_429(self):
        schema = TestClient(create_app()).get("/openapi.json").json()

        assert "/api/alerts" in schema["paths"]
        assert "/api/audit-log" in schema["paths"]
        assert "429" in schema["paths"]["/health"]["get"]["responses"]
        assert {t["name"] for t in schema["tags"]} >= {"Users", "Relay", "Health"}


class TestLifespan:
    def test_startup_seeds_file_directory(self, file_store, tmp_path):
        with TestClient(create_app()) as client:
            assert client.get("/api/users/list").json() == {"users": ["11", "22"]}
            assert client.get("/api/id").json() == {"message": "11 22"}

        assert (tmp_path / "users.json").is_file()
        assert (tmp_path / "allusers.json").is_file()

    def test_state_survives_restart(self, file_store):
        with TestClient(create_app()) as client:
            client.request("DELETE", "/api/users/remove", json={"userid": "11"})

        with TestClient(create_app()) as client:
            assert client.get("/api/users/list").json() == {"users": ["22"]}

    def test_database_backend_with_sqlite(self, tmp_path, monkeypatch):
        store = StoreSettings(
            backend="database",
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'nexium.db'}",
            seed_ids=["5"],
        )
        monkeypatch.setattr(settings, "store", store)

        with TestClient(create_app()) as client:
            assert client.get("/api/users/list").json() == {"users": ["5"]}
            history = client.get("/api/users/history").json()["users"]
            assert [u["id"] for u in history] == ["5"]

    @pytest.mark.asyncio
    async def test_unreachable_database_aborts_startup(self, tmp_path, monkeypatch):
        store = StoreSettings(
            backend="database",
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'absent' / 'nexium.db'}",
        )
        monkeypatch.setattr(settings, "store", store)
        app = create_app()

        with pytest.raises(StorageAppError) as exc_info:
            async with lifespan(app):
                pass

        assert exc_info.value.code == "database_unreachable"
        assert not hasattr(app.state, "directory")


class TestDirectoryFactory:
    def test_file_backend_by_default(self, tmp_path):
        directory = create_user_directory(StoreSettings(data_dir=tmp_path))

        assert isinstance(directory, JsonFileUserDirectory)

    @pytest.mark.asyncio
    async def test_database_backend(self, tmp_path):
        directory = create_user_directory(
            StoreSettings(backend="database", database_url=f"sqlite+aiosqlite:///{tmp_path / 'x.db'}")
        )

        assert isinstance(directory, SqlUserDirectory)
        await directory.close()

    def test_database_backend_requires_url(self):
        with pytest.raises(ValidationAppError):
            create_user_directory(StoreSettings(backend="database"))
