"""API integration tests."""

import tempfile
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from wppqueue import __version__
from wppqueue.api.app import create_app
from wppqueue.config import Settings
from wppqueue.db import QueueEntryRepository
from wppqueue.db.connection import Database
from wppqueue.domain import QueueEntry
from wppqueue.phones import PhoneService

OWNER = {"X-Account-Id": "acct-1"}
STRANGER = {"X-Account-Id": "acct-2"}


@pytest.fixture
async def app_with_db() -> AsyncGenerator[tuple, None]:
    """Create an app with a temporary database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        db = Database(db_path)
        await db.connect()

        app = create_app(Settings(db_path=db_path))
        app.state.db = db

        yield app, db

        await db.disconnect()


@pytest.fixture
async def client(app_with_db) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    app, _ = app_with_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def create_phone(client: AsyncClient, number: str = "5511999990001", online: bool = False) -> dict:
    response = await client.post("/api/phones", json={"number": number, "name": "Support"}, headers=OWNER)
    assert response.status_code == 201
    phone = response.json()
    if online:
        response = await client.patch(f"/api/phones/{phone['id']}", json={"online": True}, headers=OWNER)
        assert response.status_code == 200
        phone = response.json()
    return phone


async def seed_queue(db: Database, phone: dict, count: int) -> list[str]:
    """Insert extra active entries straight into storage."""
    repo = QueueEntryRepository(db)
    ids = []
    async with db.transaction():
        for position in range(1, count + 1):
            entry = QueueEntry(phone_id=phone["id"], account_id=phone["account_id"], position=position)
            await repo.create(entry)
            ids.append(entry.id)
    return ids


class TestHealthEndpoint:
    """Tests for health endpoint."""

    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == __version__


class TestAuthentication:
    """Tests for caller identification."""

    async def test_missing_account_header(self, client: AsyncClient):
        response = await client.get("/api/phones")
        assert response.status_code == 401

    async def test_custom_resolver(self, app_with_db, client: AsyncClient):
        """The identity lookup can be replaced on the app."""
        app, _ = app_with_db

        async def resolver(request):
            return "acct-9" if request.headers.get("Authorization") == "Bearer token" else None

        app.state.resolve_account = resolver

        response = await client.get("/api/phones", headers={"Authorization": "Bearer token"})
        assert response.status_code == 200
        response = await client.get("/api/phones", headers=OWNER)
        assert response.status_code == 401


class TestUnexpectedErrors:
    """Tests for the catch-all error handler."""

    async def test_unexpected_error_is_generic_500(self, app_with_db, monkeypatch, caplog):
        app, _ = app_with_db

        async def broken(self, account_id):
            raise RuntimeError("secret internals for acct-1")

        monkeypatch.setattr(PhoneService, "list_phones", broken)

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/api/phones", headers=OWNER)

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
        assert "RuntimeError" in caplog.text


class TestPhonesAPI:
    """Tests for phones API."""

    async def test_list_phones_empty(self, client: AsyncClient):
        response = await client.get("/api/phones", headers=OWNER)
        assert response.status_code == 200
        assert response.json() == []

    async def test_create_phone(self, client: AsyncClient):
        phone = await create_phone(client)
        assert phone["number"] == "5511999990001"
        assert phone["name"] == "Support"
        assert phone["online"] is False
        assert phone["id"].startswith("ph-")

    async def test_create_duplicate_number(self, client: AsyncClient):
        await create_phone(client)
        response = await client.post("/api/phones", json={"number": "5511999990001"}, headers=STRANGER)
        assert response.status_code == 400
        assert response.json()["detail"] == "Phone number already exists"

    async def test_create_requires_number(self, client: AsyncClient):
        response = await client.post("/api/phones", json={"number": ""}, headers=OWNER)
        assert response.status_code == 422

    async def test_create_blank_number(self, client: AsyncClient):
        response = await client.post("/api/phones", json={"number": "   "}, headers=OWNER)
        assert response.status_code == 400
        assert response.json()["detail"] == "Phone number is required"

    async def test_get_phone(self, client: AsyncClient):
        phone = await create_phone(client)
        response = await client.get(f"/api/phones/{phone['id']}", headers=OWNER)
        assert response.status_code == 200
        assert response.json()["number"] == phone["number"]

    async def test_get_phone_not_found(self, client: AsyncClient):
        response = await client.get("/api/phones/ph-missing", headers=OWNER)
        assert response.status_code == 404
        assert "ph-missing" not in response.json()["detail"]

    async def test_get_foreign_phone(self, client: AsyncClient):
        phone = await create_phone(client)
        response = await client.get(f"/api/phones/{phone['id']}", headers=STRANGER)
        assert response.status_code == 403

    async def test_switch_online_enqueues(self, client: AsyncClient):
        phone = await create_phone(client, online=True)
        assert phone["online"] is True

        response = await client.get(f"/api/queue/{phone['id']}", headers=OWNER)
        assert response.status_code == 200
        queue = response.json()
        assert len(queue) == 1
        assert queue[0]["position"] == 1
        assert queue[0]["number"] == phone["number"]

    async def test_switch_offline_dequeues(self, client: AsyncClient):
        phone = await create_phone(client, online=True)
        response = await client.patch(f"/api/phones/{phone['id']}", json={"online": False}, headers=OWNER)
        assert response.status_code == 200

        response = await client.get(f"/api/queue/{phone['id']}", headers=OWNER)
        assert response.json() == []

    async def test_update_blank_number(self, client: AsyncClient):
        phone = await create_phone(client)
        response = await client.patch(f"/api/phones/{phone['id']}", json={"number": "   "}, headers=OWNER)
        assert response.status_code == 400
        assert response.json()["detail"] == "Phone number is required"

        response = await client.get(f"/api/phones/{phone['id']}", headers=OWNER)
        assert response.json()["number"] == phone["number"]

    async def test_delete_phone(self, client: AsyncClient):
        phone = await create_phone(client, online=True)

        response = await client.delete(f"/api/phones/{phone['id']}", headers=OWNER)
        assert response.status_code == 204

        response = await client.get(f"/api/phones/{phone['id']}", headers=OWNER)
        assert response.status_code == 404
        response = await client.get("/api/queue", headers=OWNER)
        assert response.json() == []

    async def test_delete_foreign_phone(self, client: AsyncClient):
        phone = await create_phone(client)
        response = await client.delete(f"/api/phones/{phone['id']}", headers=STRANGER)
        assert response.status_code == 403


class TestQueueAPI:
    """Tests for queue API."""

    async def test_enqueue_already_queued(self, client: AsyncClient):
        phone = await create_phone(client, online=True)

        response = await client.post("/api/queue", json={"phone_id": phone["id"]}, headers=OWNER)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "unchanged"
        assert len(data["entries"]) == 1

    async def test_enqueue_after_manual_deactivation(self, app_with_db, client: AsyncClient):
        _, db = app_with_db
        phone = await create_phone(client, online=True)
        queue = (await client.get(f"/api/queue/{phone['id']}", headers=OWNER)).json()
        async with db.transaction():
            await QueueEntryRepository(db).update_active(queue[0]["id"], False)

        response = await client.post("/api/queue", json={"phone_id": phone["id"]}, headers=OWNER)

        assert response.status_code == 200
        assert response.json()["status"] == "enqueued"
        assert response.json()["entries"][0]["position"] == 1

    async def test_enqueue_offline_phone(self, client: AsyncClient):
        phone = await create_phone(client)
        response = await client.post("/api/queue", json={"phone_id": phone["id"]}, headers=OWNER)
        assert response.status_code == 409
        assert response.json()["detail"] == "Phone is not online"

    async def test_enqueue_foreign_phone(self, client: AsyncClient):
        phone = await create_phone(client, online=True)
        response = await client.post("/api/queue", json={"phone_id": phone["id"]}, headers=STRANGER)
        assert response.status_code == 403

    async def test_move_to_top(self, app_with_db, client: AsyncClient):
        _, db = app_with_db
        phone = await create_phone(client)
        a, b, c, d = await seed_queue(db, phone, 4)
        # Going online keeps the existing queue instead of adding an entry
        await client.patch(f"/api/phones/{phone['id']}", json={"online": True}, headers=OWNER)

        response = await client.patch(
            "/api/queue",
            json={"id": d, "phone_id": phone["id"], "direction": "top"},
            headers=OWNER,
        )

        assert response.status_code == 200
        data = response.json()
        assert [item["id"] for item in data] == [d, a, b, c]
        assert [item["position"] for item in data] == [1, 2, 3, 4]
        assert all(item["number"] == phone["number"] for item in data)

    async def test_move_noop_returns_queue(self, client: AsyncClient):
        phone = await create_phone(client, online=True)
        queue = (await client.get(f"/api/queue/{phone['id']}", headers=OWNER)).json()

        response = await client.patch(
            "/api/queue",
            json={"id": queue[0]["id"], "phone_id": phone["id"], "direction": "up"},
            headers=OWNER,
        )

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [queue[0]["id"]]

    async def test_move_invalid_direction(self, client: AsyncClient):
        phone = await create_phone(client, online=True)
        response = await client.patch(
            "/api/queue",
            json={"id": "qe-1", "phone_id": phone["id"], "direction": "sideways"},
            headers=OWNER,
        )
        assert response.status_code == 422

    async def test_move_foreign_account(self, app_with_db, client: AsyncClient):
        _, db = app_with_db
        phone = await create_phone(client)
        ids = await seed_queue(db, phone, 2)
        await client.patch(f"/api/phones/{phone['id']}", json={"online": True}, headers=OWNER)

        response = await client.patch(
            "/api/queue",
            json={"id": ids[1], "phone_id": phone["id"], "direction": "top"},
            headers=STRANGER,
        )

        assert response.status_code == 403

    async def test_move_missing_entry(self, client: AsyncClient):
        phone = await create_phone(client, online=True)
        response = await client.patch(
            "/api/queue",
            json={"id": "qe-missing", "phone_id": phone["id"], "direction": "down"},
            headers=OWNER,
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Queue item not found"

    async def test_account_queue(self, client: AsyncClient):
        first = await create_phone(client, number="1", online=True)
        await create_phone(client, number="2", online=True)
        await create_phone(client, number="3")

        response = await client.get("/api/queue", headers=OWNER)

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 2
        assert {item["number"] for item in data} == {"1", "2"}
        assert data[0]["phone_id"] == first["id"]


class TestMetricsAPI:
    """Tests for metrics API."""

    async def test_dashboard(self, client: AsyncClient):
        await create_phone(client, number="1", online=True)
        await create_phone(client, number="2")

        response = await client.get("/api/dashboard", headers=OWNER)

        assert response.status_code == 200
        data = response.json()
        assert data["total_phones"] == 2
        assert data["online_phones"] == 1
        assert data["last_connection"] != ""

    async def test_queue_metrics(self, client: AsyncClient):
        await create_phone(client, number="1", online=True)

        response = await client.get("/api/metrics", headers=OWNER)

        assert response.status_code == 200
        assert response.json() == {"total_phones": 1, "total_numbers": 1, "average_wait_time": 0.0}

    async def test_attendance_metrics(self, client: AsyncClient):
        phone = await create_phone(client, online=True)
        url = f"/api/metrics/phones/{phone['id']}"

        response = await client.get(url, headers=OWNER)
        assert response.status_code == 200
        assert response.json()["total_attendances"] == 0

        await client.post(f"{url}/attendances", json={"wait_time": 4}, headers=OWNER)
        response = await client.post(f"{url}/attendances", json={"wait_time": 2}, headers=OWNER)

        assert response.status_code == 200
        data = response.json()
        assert data["total_attendances"] == 2
        assert data["today_attendances"] == 2
        assert data["average_wait_time"] == pytest.approx(3.0)

    async def test_attendance_foreign_phone(self, client: AsyncClient):
        phone = await create_phone(client)
        response = await client.post(
            f"/api/metrics/phones/{phone['id']}/attendances",
            json={"wait_time": 1},
            headers=STRANGER,
        )
        assert response.status_code == 403
