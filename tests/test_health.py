# tests/test_health.py
from datetime import timedelta
from http import HTTPStatus

from sqlalchemy.exc import OperationalError

from attendance_hub.api.dependencies import auth as auth_module
from attendance_hub.db.session import get_db
from tests.helpers import FIXED_NOW


def test_liveness_ok(client):
    response = client.get("/health")

    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"status": "ok"}


def test_readiness_counts_open_live_windows(client, clean_db, frozen_clock):
    """
    Only meetings whose live window is open at request time are counted.
    """
    ids = client.post(
        "/attendance/meetings",
        json=[
            {
                "event_category": "service",
                "meeting_date": day,
                "topic": "Sunday Fellowship",
                "location": "Main Hall",
            }
            for day in ("2025-01-05", "2025-01-04", "2025-01-03")
        ],
    ).json()["ids"]
    client.patch(f"/attendance/meetings/{ids[0]}/live-attendance", json={"active": True})
    client.patch(
        f"/attendance/meetings/{ids[1]}/live-attendance",
        json={"active": True, "expires_at": (FIXED_NOW + timedelta(minutes=10)).isoformat()},
    )

    before = client.get("/health/ready").json()
    frozen_clock.now = FIXED_NOW + timedelta(minutes=10)
    after = client.get("/health/ready").json()

    assert before["status"] == "ready"
    assert before["database"] == "ok"
    assert before["environment"] == "test"
    assert before["live_checkin_window_minutes"] == 240
    assert before["live_meetings"] == 2
    assert after["live_meetings"] == 1


class _BrokenSession:
    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))


async def _broken_db():
    yield _BrokenSession()


def test_readiness_reports_unavailable_database(client):
    client.app.dependency_overrides[get_db] = _broken_db
    try:
        response = client.get("/health/ready")
    finally:
        client.app.dependency_overrides.pop(get_db, None)

    assert response.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"] == "unavailable"
    assert data["live_meetings"] is None


class _EnforcingSettings:
    APP_ENV = "prod"
    accepted_tokens = {"secret"}


def test_health_endpoints_need_no_token(monkeypatch, client):
    """
    Health checks stay reachable while the attendance routes demand a token.
    """
    monkeypatch.setattr(auth_module, "get_settings", lambda: _EnforcingSettings())

    assert client.get("/health").status_code == HTTPStatus.OK
    assert client.get("/health/ready").status_code == HTTPStatus.OK
    assert client.get("/attendance/meetings").status_code == HTTPStatus.UNAUTHORIZED
