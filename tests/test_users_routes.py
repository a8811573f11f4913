"""HTTP tests for the /api/users routes and the plain-text id listing."""

import pytest
from fastapi.testclient import TestClient

from nexium.api.dependencies import get_profile_fetcher, get_user_directory
from nexium.main import app


@pytest.fixture
def client(file_directory, profile_fetcher):
    app.dependency_overrides[get_user_directory] = lambda: file_directory
    app.dependency_overrides[get_profile_fetcher] = lambda: profile_fetcher
    yield TestClient(app)
    app.dependency_overrides.clear()


def _add(client: TestClient, userid) -> object:
    return client.post("/api/users/add", json={"userid": userid})


def _remove(client: TestClient, userid) -> object:
    return client.request("DELETE", "/api/users/remove", json={"userid": userid})


class TestAddUser:
    """POST /api/users/add"""

    def test_add_returns_added_user_and_list(self, client: TestClient):
        resp = _add(client, "123")

        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "success"
        assert body["users"] == ["123"]
        assert body["addedUser"]["id"] == "123"
        assert body["addedUser"]["username"] == "player123"
        assert body["addedUser"]["removed"] is False
        assert body["addedUser"]["addedAt"]

    def test_json_number_is_accepted(self, client: TestClient):
        resp = _add(client, 456)

        assert resp.status_code == 200
        assert resp.json()["users"] == ["456"]

    def test_duplicate_add_is_conflict(self, client: TestClient, profile_api):
        _add(client, "123")
        profile_api.calls.clear()

        resp = _add(client, "123")

        assert resp.status_code == 409
        assert resp.json()["error"]["message"] == "already exists"
        assert profile_api.calls == []

    def test_malformed_id_is_rejected_without_lookup(self, client: TestClient, profile_api):
        resp = _add(client, "abc")

        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "invalid_user_id_format"
        assert error["message"] == "invalid user id format"
        assert profile_api.calls == []

    @pytest.mark.parametrize("payload", [{}, {"userid": ""}, {"userid": None}])
    def test_missing_id_is_rejected(self, client: TestClient, payload):
        resp = client.post("/api/users/add", json=payload)

        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "id required"

    def test_missing_body_is_rejected(self, client: TestClient):
        resp = client.post("/api/users/add")

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "user_id_required"

    def test_invalid_json_is_bad_request(self, client: TestClient):
        resp = client.post(
            "/api/users/add",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_request"

    def test_unknown_user_is_bad_request(self, client: TestClient, profile_api):
        profile_api.missing.add("999")

        resp = _add(client, "999")

        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "user_not_found"
        assert error["message"] == "invalid user id or API error"

    def test_profile_api_failure_is_bad_request(self, client: TestClient, profile_api):
        profile_api.failing.add("500")

        resp = _add(client, "500")

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "profile_fetch_failed"


class TestRemoveUser:
    """DELETE /api/users/remove"""

    def test_remove_returns_remaining_ids(self, client: TestClient):
        _add(client, "1")
        _add(client, "2")

        resp = _remove(client, "1")

        assert resp.status_code == 200
        assert resp.json() == {"message": "removed", "users": ["2"], "removedUserId": "1"}

    def test_remove_untracked_is_not_found(self, client: TestClient):
        resp = _remove(client, "42")

        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "user_not_tracked"

    def test_remove_twice_is_not_found(self, client: TestClient):
        _add(client, "123")
        assert _remove(client, "123").status_code == 200

        assert _remove(client, "123").status_code == 404

    def test_remove_without_id_is_rejected(self, client: TestClient):
        resp = client.request("DELETE", "/api/users/remove", json={})

        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "id required"


class TestListing:
    """GET /api/id, /api/users/list, /api/users/history, /api/users"""

    def test_empty_directory(self, client: TestClient):
        assert client.get("/api/id").json() == {"message": ""}
        assert client.get("/api/users/list").json() == {"users": []}
        assert client.get("/api/users").json() == {"users": []}

    def test_id_listing_is_space_joined_in_insertion_order(self, client: TestClient):
        for user_id in ["30", "10", "20"]:
            _add(client, user_id)

        assert client.get("/api/id").json() == {"message": "30 10 20"}
        assert client.get("/api/users/list").json() == {"users": ["30", "10", "20"]}

    def test_removed_id_leaves_list_but_stays_in_history(self, client: TestClient):
        _add(client, "123")
        _remove(client, "123")

        assert "123" not in client.get("/api/users/list").json()["users"]
        history = client.get("/api/users/history").json()["users"]
        assert len(history) == 1
        assert history[0]["id"] == "123"
        assert history[0]["removed"] is True
        assert history[0]["removedAt"]

    def test_profiles_are_fetched_for_active_ids(self, client: TestClient, profile_api):
        _add(client, "1")
        _add(client, "2")
        profile_api.calls.clear()

        resp = client.get("/api/users")

        assert resp.status_code == 200
        assert resp.json() == {
            "users": [{"id": "1", "username": "player1"}, {"id": "2", "username": "player2"}]
        }
        assert sorted(profile_api.calls) == ["1", "2"]

    def test_profile_failure_fails_whole_listing(self, client: TestClient, profile_api):
        _add(client, "1")
        _add(client, "2")
        profile_api.failing.add("2")

        resp = client.get("/api/users")

        assert resp.status_code == 500
        body = resp.json()
        assert body["error"]["code"] == "profile_fetch_failed"
        assert body["error"]["request_id"]
