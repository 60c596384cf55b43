# tests/test_meetings_api.py
from datetime import timedelta
from http import HTTPStatus

from tests.helpers import FIXED_NOW, MEMBER_ID, OTHER_MEMBER_ID

UNKNOWN_MEMBER_ID = "99999999-9999-9999-9999-999999999999"


def _build_meeting_payload(
    meeting_date: str = "2025-01-05",
    event_category: str = "service",
    topic: str = "Sunday Fellowship",
    **extra,
) -> dict:
    payload = {
        "event_category": event_category,
        "meeting_date": meeting_date,
        "topic": topic,
        "location": "Main Hall",
    }
    payload.update(extra)
    return payload


def _create_meeting(client, **kwargs) -> str:
    resp = client.post("/attendance/meetings", json=_build_meeting_payload(**kwargs))
    assert resp.status_code == HTTPStatus.CREATED
    return resp.json()["ids"][0]


def _enable_live(client, meeting_id: str, **body) -> dict:
    resp = client.patch(
        f"/attendance/meetings/{meeting_id}/live-attendance",
        json={"active": True, **body},
    )
    assert resp.status_code == HTTPStatus.OK
    return resp.json()


def test_create_single_meeting(client, clean_db):
    resp = client.post("/attendance/meetings", json=_build_meeting_payload())
    assert resp.status_code == HTTPStatus.CREATED

    data = resp.json()
    assert data["created_count"] == 1
    assert len(data["ids"]) == 1

    fetched = client.get(f"/attendance/meetings/{data['ids'][0]}")
    assert fetched.status_code == HTTPStatus.OK
    body = fetched.json()
    assert body["topic"] == "Sunday Fellowship"
    assert body["event_category"] == "service"
    assert body["live_checkin_active"] is False


def test_create_batch_of_meetings(client, clean_db):
    """
    An array body creates every meeting in one request.
    """
    payload = [
        _build_meeting_payload(
            meeting_date=d,
            event_category="cell_group",
            cell_group_id="cg-1",
        )
        for d in ("2025-01-01", "2025-01-08", "2025-01-15")
    ]

    resp = client.post("/attendance/meetings", json=payload)
    assert resp.status_code == HTTPStatus.CREATED
    data = resp.json()
    assert data["created_count"] == 3
    assert len(set(data["ids"])) == 3

    listed = client.get("/attendance/meetings").json()
    assert [m["meeting_date"] for m in listed] == ["2025-01-15", "2025-01-08", "2025-01-01"]
    assert all(m["cell_group_id"] == "cg-1" for m in listed)


def test_create_meeting_missing_context_reference_rejected(client, clean_db):
    resp = client.post(
        "/attendance/meetings",
        json=_build_meeting_payload(event_category="ministry"),
    )
    assert resp.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
    assert client.get("/attendance/meetings").json() == []


def test_list_meetings_paginates(client, clean_db):
    for day in ("2025-01-01", "2025-01-02", "2025-01-03"):
        _create_meeting(client, meeting_date=day)

    page_1 = client.get("/attendance/meetings", params={"page": 1, "limit": 2}).json()
    page_2 = client.get("/attendance/meetings", params={"page": 2, "limit": 2}).json()

    assert [m["meeting_date"] for m in page_1] == ["2025-01-03", "2025-01-02"]
    assert [m["meeting_date"] for m in page_2] == ["2025-01-01"]


def test_get_unknown_meeting_returns_404(client, clean_db):
    resp = client.get("/attendance/meetings/does-not-exist")
    assert resp.status_code == HTTPStatus.NOT_FOUND
    assert "not found" in resp.json()["detail"].lower()


def test_enable_live_attendance_applies_default_window(client, clean_db, frozen_clock):
    meeting_id = _create_meeting(client)

    data = _enable_live(client, meeting_id)

    assert data["live_checkin_active"] is True
    assert data["is_active"] is True
    assert data["is_expired"] is False
    assert data["live_checkin_expires_at"].startswith("2025-01-05T13:00:00")


def test_disable_live_attendance_clears_expiry(client, clean_db, frozen_clock):
    meeting_id = _create_meeting(client)
    _enable_live(client, meeting_id)

    resp = client.patch(
        f"/attendance/meetings/{meeting_id}/live-attendance",
        json={"active": False},
    )
    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["live_checkin_active"] is False
    assert data["live_checkin_expires_at"] is None
    assert data["is_active"] is False


def test_live_status_reports_expiry_lazily(client, clean_db, frozen_clock):
    """
    The stored flag stays on after the window passes, but the status
    reports the meeting as expired and no longer active.
    """
    meeting_id = _create_meeting(client)
    _enable_live(client, meeting_id, expires_at=(FIXED_NOW + timedelta(hours=1)).isoformat())

    frozen_clock.now = FIXED_NOW + timedelta(hours=2)
    data = client.get(f"/attendance/meetings/{meeting_id}/live-status").json()

    assert data["live_checkin_active"] is True
    assert data["is_active"] is False
    assert data["is_expired"] is True


def test_live_checkin_marks_member_present(client, clean_db, frozen_clock):
    meeting_id = _create_meeting(client)
    _enable_live(client, meeting_id)

    resp = client.post(
        f"/attendance/meetings/{meeting_id}/live-checkin",
        json={"member_id": MEMBER_ID},
    )
    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["already_checked_in"] is False
    assert data["member"]["id"] == MEMBER_ID
    assert data["member"]["first_name"] == "Grace"


def test_live_checkin_is_idempotent(client, clean_db, frozen_clock):
    """
    Checking the same member in twice succeeds both times; the second
    response flags the member as already checked in.
    """
    meeting_id = _create_meeting(client)
    _enable_live(client, meeting_id)
    url = f"/attendance/meetings/{meeting_id}/live-checkin"

    first = client.post(url, json={"member_id": MEMBER_ID})
    second = client.post(url, json={"member_id": MEMBER_ID})
    other = client.post(url, json={"member_id": OTHER_MEMBER_ID})

    assert first.status_code == HTTPStatus.OK
    assert second.status_code == HTTPStatus.OK
    assert first.json()["already_checked_in"] is False
    assert second.json()["already_checked_in"] is True
    assert other.json()["already_checked_in"] is False


def test_live_checkin_rejected_when_not_enabled(client, clean_db, frozen_clock):
    meeting_id = _create_meeting(client)

    resp = client.post(
        f"/attendance/meetings/{meeting_id}/live-checkin",
        json={"member_id": MEMBER_ID},
    )
    assert resp.status_code == HTTPStatus.FORBIDDEN
    assert "not active" in resp.json()["detail"].lower()


def test_live_checkin_rejected_after_expiry(client, clean_db, frozen_clock):
    meeting_id = _create_meeting(client)
    _enable_live(client, meeting_id, expires_at=(FIXED_NOW + timedelta(minutes=30)).isoformat())

    frozen_clock.now = FIXED_NOW + timedelta(minutes=30)
    resp = client.post(
        f"/attendance/meetings/{meeting_id}/live-checkin",
        json={"member_id": MEMBER_ID},
    )
    assert resp.status_code == HTTPStatus.FORBIDDEN
    assert "expired" in resp.json()["detail"].lower()


def test_live_checkin_unknown_member_returns_404(client, clean_db, frozen_clock):
    meeting_id = _create_meeting(client)
    _enable_live(client, meeting_id)

    resp = client.post(
        f"/attendance/meetings/{meeting_id}/live-checkin",
        json={"member_id": UNKNOWN_MEMBER_ID},
    )
    assert resp.status_code == HTTPStatus.NOT_FOUND


def test_live_checkin_malformed_member_id_returns_422(client, clean_db, frozen_clock):
    meeting_id = _create_meeting(client)
    _enable_live(client, meeting_id)

    resp = client.post(
        f"/attendance/meetings/{meeting_id}/live-checkin",
        json={"member_id": "not-a-uuid"},
    )
    assert resp.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


def test_live_checkin_unknown_meeting_returns_404(client, clean_db, frozen_clock):
    resp = client.post(
        "/attendance/meetings/missing/live-checkin",
        json={"member_id": MEMBER_ID},
    )
    assert resp.status_code == HTTPStatus.NOT_FOUND
