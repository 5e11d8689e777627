import asyncio
import random
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.core.config import settings
from app.core.deps import get_db, get_queue_processor
from app.core.events import EventBus
from app.core.message_templates import RandomTemplateProvider
from app.core.security import create_access_token
from app.core.utils import local_today
from app.cron.queue_processor import QueueProcessor
from app.main import app
from app.models.enums import Role
from factories import FakeMessenger, RecordingSleep, create_config, create_invoice, create_log, create_school


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def client(session_maker, messenger):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    processor = QueueProcessor(
        session_maker=session_maker,
        messenger=messenger,
        templates=RandomTemplateProvider(rng=random.Random(1)),
        events=EventBus(),
        sleep=RecordingSleep(),
    )
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_queue_processor] = lambda: processor
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def school(session_maker):
    async def make():
        async with session_maker() as session:
            return await create_school(session)

    return asyncio.run(make())


def _auth(school_id):
    token = create_access_token("user-1", school_id, Role.admin)
    return {"Authorization": f"Bearer {token}"}


def test_requests_without_token_are_rejected(client):
    response = client.get("/api/v1/notifications/stats")
    assert response.status_code == 401
    assert response.json()["message"] == "Not authenticated"

    response = client.get("/api/v1/notifications/stats", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_token_without_school_is_rejected(client):
    token = jwt.encode({"sub": "user-1", "role": "admin"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    response = client.get("/api/v1/notifications/config", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_health(client):
    response = client.get("/api/v1/health/")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "queue_processing": False}


def test_config_roundtrip(client, school):
    headers = _auth(school.id)

    response = client.get("/api/v1/notifications/config", headers=headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    response = client.post(
        "/api/v1/notifications/config",
        json={"is_active": True, "window_start": "09:00", "enable_reminder": False},
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["is_active"] is True
    assert body["window_start"] == "09:00"
    assert body["window_end"] == "18:00"
    assert body["enable_reminder"] is False
    assert body["school_id"] == str(school.id)


def test_config_with_invalid_time_is_rejected(client, school):
    response = client.post(
        "/api/v1/notifications/config", json={"window_start": "25:00"}, headers=_auth(school.id)
    )
    assert response.status_code == 422
    assert response.json()["message"] == "Validation error"


def test_config_with_empty_window_is_rejected(client, school):
    response = client.post(
        "/api/v1/notifications/config",
        json={"window_start": "10:00", "window_end": "10:00"},
        headers=_auth(school.id),
    )
    assert response.status_code == 400


def test_forecast_for_given_and_default_dates(client, school, session_maker):
    async def seed():
        async with session_maker() as session:
            await create_invoice(session, school, date(2024, 3, 11))
            await create_invoice(session, school, date(2024, 3, 14))

    asyncio.run(seed())
    headers = _auth(school.id)

    response = client.get("/api/v1/notifications/forecast", params={"date": "2024-03-11"}, headers=headers)
    assert response.status_code == 200
    assert response.json() == {
        "date": "2024-03-11",
        "total_expected": 2,
        "breakdown": {"due_today": 1, "overdue": 0, "reminder": 1},
    }

    response = client.get("/api/v1/notifications/forecast", headers=headers)
    assert response.status_code == 200
    assert response.json()["date"] == (local_today() + timedelta(days=1)).isoformat()


def test_trigger_scans_and_drains_the_queue(client, school, session_maker, messenger):
    async def seed():
        async with session_maker() as session:
            await create_config(session, school, window_start="00:00", window_end="24:00")
            await create_invoice(session, school, local_today())

    asyncio.run(seed())
    headers = _auth(school.id)

    response = client.post("/api/v1/notifications/trigger", headers=headers)
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["queued"] == 1

    # Background tasks finish before TestClient returns.
    assert len(messenger.texts) == 3
    logs = client.get("/api/v1/notifications/logs", headers=headers).json()
    assert logs["total"] == 1
    assert logs["logs"][0]["status"] == "sent"
    assert logs["logs"][0]["category"] == "due_today"

    stats = client.get("/api/v1/notifications/stats", headers=headers).json()
    assert stats["sent"] == 1
    assert stats["total_today"] == 1


def test_retry_all_and_cancel(client, school, session_maker):
    async def seed():
        async with session_maker() as session:
            invoice = await create_invoice(session, school, date(2024, 3, 10))
            await create_log(session, school, invoice, status="failed", attempts=1, error_message="timeout")
            sent = await create_log(session, school, invoice, status="sent")
            return sent.id

    sent_id = asyncio.run(seed())
    headers = _auth(school.id)

    response = client.post("/api/v1/notifications/retry-all", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "count": 1}

    queued = client.get("/api/v1/notifications/logs", params={"status": "queued"}, headers=headers).json()
    assert queued["total"] == 1
    assert queued["logs"][0]["error_message"] is None
    assert queued["logs"][0]["attempts"] == 1

    response = client.post(f"/api/v1/notifications/{queued['logs'][0]['id']}/cancel", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = client.post(f"/api/v1/notifications/{sent_id}/cancel", headers=headers)
    assert response.status_code == 409


def test_logs_limit_bounds(client, school):
    headers = _auth(school.id)
    assert client.get("/api/v1/notifications/logs", params={"limit": 0}, headers=headers).json() == {
        "logs": [],
        "total": 0,
        "page": 1,
        "pages": 0,
    }
    assert client.get("/api/v1/notifications/logs", params={"limit": 501}, headers=headers).status_code == 422
