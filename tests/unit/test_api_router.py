"""Tests for the HTTP API router."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from itsdangerous import URLSafeTimedSerializer

from src.interface.api_router import router as api_router
from src.services.identity_service import IdentityService


SECRET = "test_secret_key"


def _auth(user_id: str) -> dict[str, str]:
    token = URLSafeTimedSerializer(SECRET, salt="task-session").dumps({"user_id": user_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(patched_db, monkeypatch) -> TestClient:
    """Create test client for the API router."""
    monkeypatch.setattr("src.interface.api_router.identity", IdentityService(secret_key=SECRET))
    test_app = FastAPI()
    test_app.include_router(api_router)
    return TestClient(test_app)


@pytest.mark.unit
class TestAuth:
    """Session endpoints and bearer-token resolution."""

    def test_missing_token(self, client):
        response = client.get("/api/tasks")

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "ERR_AUTHENTICATION_FAILED"

    def test_bad_token(self, client):
        response = client.get("/api/tasks", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401

    def test_sign_up_then_sign_in(self, client):
        signup = client.post(
            "/api/auth/signup", json={"email": "maria@example.com", "password": "secret1", "full_name": "Maria"}
        )
        assert signup.status_code == 201
        assert signup.json()["role"] == "housekeeper"

        signin = client.post("/api/auth/signin", json={"email": "maria@example.com", "password": "secret1"})
        assert signin.status_code == 200
        token = signin.json()["token"]

        me = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["full_name"] == "Maria"

    def test_sign_in_wrong_password(self, client):
        client.post("/api/auth/signup", json={"email": "maria@example.com", "password": "secret1"})

        response = client.post("/api/auth/signin", json={"email": "maria@example.com", "password": "nope123"})

        assert response.status_code == 401

    def test_sign_up_short_password(self, client):
        response = client.post("/api/auth/signup", json={"email": "maria@example.com", "password": "123"})

        assert response.status_code == 400

    def test_store_failures_return_error_responses(self, client, patched_db, housekeeper):
        patched_db.fail_on.update({"list_records", "get_record"})
        credentials = {"email": "maria@example.com", "password": "secret1"}

        signup = client.post("/api/auth/signup", json=credentials)
        signin = client.post("/api/auth/signin", json=credentials)
        me = client.get("/api/me", headers=_auth(housekeeper.id))

        assert signup.status_code == 500
        assert signup.json()["detail"]["code"] == "ERR_CREATION_FAILED"
        assert signin.status_code == 500
        assert signin.json()["detail"]["code"] == "ERR_FETCH_FAILED"
        assert me.status_code == 500
        assert me.json()["detail"]["code"] == "ERR_FETCH_FAILED"


@pytest.mark.unit
class TestTaskEndpoints:
    """Task endpoints map outcomes to status codes."""

    def test_admin_creates_and_lists(self, client, admin):
        created = client.post("/api/tasks", json={"title": "Clean pool", "priority": "high"}, headers=_auth(admin.id))

        assert created.status_code == 201
        assert created.json()["assigned_to"] == admin.id

        listed = client.get("/api/tasks", headers=_auth(admin.id))
        assert [task["title"] for task in listed.json()] == ["Clean pool"]

    def test_housekeeper_cannot_create(self, client, housekeeper):
        response = client.post("/api/tasks", json={"title": "Nope"}, headers=_auth(housekeeper.id))

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "ERR_PERMISSION_DENIED"

    def test_housekeeper_completes_assigned_task(self, client, admin, housekeeper):
        task = client.post(
            "/api/tasks", json={"title": "Fold towels", "assigned_to": housekeeper.id}, headers=_auth(admin.id)
        ).json()

        done = client.put(f"/api/tasks/{task['id']}/completion", json={"completed": True}, headers=_auth(housekeeper.id))
        renamed = client.patch(f"/api/tasks/{task['id']}", json={"title": "Mine"}, headers=_auth(housekeeper.id))

        assert done.status_code == 200
        assert done.json()["completed"] is True
        assert renamed.status_code == 403

    def test_unknown_task(self, client, admin):
        response = client.patch("/api/tasks/missing", json={"title": "x"}, headers=_auth(admin.id))

        assert response.status_code == 404

    def test_delete_task(self, client, admin):
        task = client.post("/api/tasks", json={"title": "Temp"}, headers=_auth(admin.id)).json()

        assert client.delete(f"/api/tasks/{task['id']}", headers=_auth(admin.id)).status_code == 204
        assert client.delete(f"/api/tasks/{task['id']}", headers=_auth(admin.id)).status_code == 404

    def test_assignment_dispatches_in_background(self, client, admin, housekeeper, notifications_enabled, push_mock):
        task = client.post("/api/tasks", json={"title": "Polish silver"}, headers=_auth(admin.id)).json()
        push_mock.reset_mock()

        response = client.put(
            f"/api/tasks/{task['id']}/assignee", json={"user_id": housekeeper.id}, headers=_auth(admin.id)
        )

        assert response.status_code == 200
        push_mock.assert_awaited_once()
        assert push_mock.await_args.kwargs["push_token"] == "ExponentPushToken[hk1]"

    def test_grouped_listing(self, client, admin):
        room = client.post("/api/rooms", json={"name": "Kitchen"}, headers=_auth(admin.id)).json()
        client.post("/api/tasks", json={"title": "Wipe counters", "room_id": room["id"]}, headers=_auth(admin.id))
        client.post("/api/tasks", json={"title": "Water plants"}, headers=_auth(admin.id))

        response = client.get("/api/tasks/grouped", headers=_auth(admin.id))

        body = response.json()
        assert [group["room_name"] for group in body["groups"]] == ["Kitchen", "Uncategorized"]
        assert body["summary"] == {"total": 2, "remaining": 2, "completed": 0}


@pytest.mark.unit
class TestRoomAndProfileEndpoints:
    """Admin-only management endpoints."""

    def test_housekeeper_cannot_create_room(self, client, housekeeper):
        response = client.post("/api/rooms", json={"name": "Den"}, headers=_auth(housekeeper.id))

        assert response.status_code == 403

    def test_delete_room(self, client, admin):
        room = client.post("/api/rooms", json={"name": "Den"}, headers=_auth(admin.id)).json()

        assert client.delete(f"/api/rooms/{room['id']}", headers=_auth(admin.id)).status_code == 204
        assert client.get("/api/rooms", headers=_auth(admin.id)).json() == []

    def test_role_change(self, client, admin, housekeeper):
        denied = client.put(f"/api/profiles/{admin.id}/role", json={"role": "housekeeper"}, headers=_auth(housekeeper.id))
        promoted = client.put(f"/api/profiles/{housekeeper.id}/role", json={"role": "admin"}, headers=_auth(admin.id))

        assert denied.status_code == 403
        assert promoted.json()["role"] == "admin"

    def test_notification_preference(self, client, admin):
        assert client.get("/api/preferences/notifications", headers=_auth(admin.id)).json() == {"enabled": False}

        client.put("/api/preferences/notifications", json={"enabled": True}, headers=_auth(admin.id))

        assert client.get("/api/preferences/notifications", headers=_auth(admin.id)).json() == {"enabled": True}

    def test_housekeeper_cannot_silence_notifications(
        self, client, notifications_enabled, admin, housekeeper, push_mock
    ):
        response = client.put("/api/preferences/notifications", json={"enabled": False}, headers=_auth(housekeeper.id))

        assert response.status_code == 403
        assert client.get("/api/preferences/notifications", headers=_auth(admin.id)).json() == {"enabled": True}

        created = client.post("/api/tasks", json={"title": "Dust shelves"}, headers=_auth(admin.id))

        assert created.status_code == 201
        assert push_mock.await_count == 2
