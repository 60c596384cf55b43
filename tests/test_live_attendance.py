# tests/test_live_attendance.py
from datetime import date, timedelta, timezone

import pytest

from attendance_hub.schemas.live_status import (
    EXPIRED_REASON,
    INACTIVE_REASON,
    LiveMeetingStatus,
    LiveStatusRead,
    as_utc,
)
from attendance_hub.schemas.meeting import MeetingRead
from attendance_hub.services.api_client import AttendanceApiError
from attendance_hub.services.live_attendance import LiveAttendanceController, find_live_meetings
from tests.helpers import FIXED_NOW


def _meeting(meeting_id: str, meeting_date: date) -> MeetingRead:
    return MeetingRead(
        id=meeting_id,
        event_category="service",
        topic=f"Meeting {meeting_id}",
        location="Main Hall",
        meeting_date=meeting_date,
    )


def _status(meeting_id: str, active: bool) -> LiveStatusRead:
    return LiveStatusRead(
        id=meeting_id,
        topic=f"Meeting {meeting_id}",
        meeting_date=date(2025, 1, 5),
        location="Main Hall",
        event_category="service",
        live_checkin_active=active,
        live_checkin_expires_at=FIXED_NOW + timedelta(hours=1) if active else None,
        is_active=active,
        is_expired=False,
    )


class FakeLiveClient:
    """
    Records toggle calls and serves canned meetings / statuses.
    """

    def __init__(self, meetings=None, statuses=None, failing=()):
        self.meetings = meetings or []
        self.statuses = statuses or {}
        self.failing = set(failing)
        self.toggles: list = []
        self.status_calls: list = []

    async def toggle_live_attendance(self, meeting_id, active, expires_at=None):
        self.toggles.append((meeting_id, active, expires_at))
        return _status(meeting_id, active)

    async def get_live_status(self, meeting_id):
        self.status_calls.append(meeting_id)
        if meeting_id in self.failing:
            raise AttendanceApiError("boom", status_code=500)
        return self.statuses[meeting_id]

    async def list_meetings(self, page=1, limit=50):
        return self.meetings


@pytest.mark.asyncio
async def test_enable_defaults_to_configured_window():
    client = FakeLiveClient()
    controller = LiveAttendanceController(client, window_minutes=120)

    await controller.enable("m-1", now=FIXED_NOW)

    assert client.toggles == [("m-1", True, FIXED_NOW + timedelta(hours=2))]


@pytest.mark.asyncio
async def test_enable_respects_explicit_expiry():
    client = FakeLiveClient()
    controller = LiveAttendanceController(client)
    expires_at = FIXED_NOW + timedelta(minutes=15)

    await controller.enable("m-1", expires_at=expires_at, now=FIXED_NOW)

    assert client.toggles[0][2] == expires_at


def test_default_window_comes_from_settings():
    controller = LiveAttendanceController(FakeLiveClient())
    assert controller.window == timedelta(minutes=240)


@pytest.mark.asyncio
async def test_disable_sends_no_expiry():
    client = FakeLiveClient()
    status = await LiveAttendanceController(client).disable("m-1")

    assert client.toggles == [("m-1", False, None)]
    assert status.live_checkin_active is False


@pytest.mark.asyncio
async def test_fetch_status_builds_client_view():
    client = FakeLiveClient(statuses={"m-1": _status("m-1", True)})

    status = await LiveAttendanceController(client).fetch_status("m-1")

    assert status.allows_checkin(FIXED_NOW) is True
    assert status.allows_checkin(FIXED_NOW + timedelta(hours=1)) is False


def test_live_meeting_status_reasons():
    inactive = LiveMeetingStatus(active=False)
    expired = LiveMeetingStatus(active=True, expires_at=FIXED_NOW)
    open_ended = LiveMeetingStatus(active=True)

    assert inactive.blocked_reason(FIXED_NOW) == INACTIVE_REASON
    assert expired.blocked_reason(FIXED_NOW) == EXPIRED_REASON
    assert open_ended.blocked_reason(FIXED_NOW) is None


def _recent_meetings_client(today: date) -> FakeLiveClient:
    return FakeLiveClient(
        meetings=[
            _meeting("today", today),
            _meeting("cutoff", today - timedelta(days=3)),
            _meeting("old", today - timedelta(days=4)),
            _meeting("idle", today - timedelta(days=1)),
            _meeting("broken", today),
        ],
        statuses={
            "today": _status("today", True),
            "cutoff": _status("cutoff", True),
            "old": _status("old", True),
            "idle": _status("idle", False),
        },
        failing={"broken"},
    )


@pytest.mark.asyncio
async def test_find_live_meetings_lists_every_recent_meeting():
    """
    Meetings that still need activating are listed alongside live ones.
    """
    today = date(2025, 1, 5)
    client = _recent_meetings_client(today)

    statuses = await find_live_meetings(client, today=today, recent_days=3)

    assert [s.id for s in statuses] == ["today", "cutoff", "idle"]
    assert [s.is_active for s in statuses] == [True, True, False]
    assert "old" not in client.status_calls


@pytest.mark.asyncio
async def test_find_live_meetings_can_keep_only_active_ones():
    today = date(2025, 1, 5)
    client = _recent_meetings_client(today)

    live = await find_live_meetings(client, today=today, recent_days=3, only_active=True)

    assert [s.id for s in live] == ["today", "cutoff"]


def test_as_utc_normalizes_naive_and_offset_datetimes():
    naive = FIXED_NOW.replace(tzinfo=None)
    offset = FIXED_NOW.astimezone(timezone(timedelta(hours=7)))

    assert as_utc(naive) == FIXED_NOW
    assert as_utc(naive).tzinfo is timezone.utc
    assert as_utc(offset).hour == FIXED_NOW.hour
