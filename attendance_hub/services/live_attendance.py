# attendance_hub/services/live_attendance.py
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from attendance_hub.core.config import get_settings
from attendance_hub.schemas.live_status import LiveMeetingStatus, LiveStatusRead
from attendance_hub.services.api_client import AttendanceApiClient, AttendanceApiError

logger = logging.getLogger(__name__)


class LiveAttendanceController:
    """
    Admin-side toggling and querying of a meeting's live check-in window.

    The state itself lives in the backend; this class only issues the
    toggle and status calls.
    """

    def __init__(
        self,
        client: AttendanceApiClient,
        window_minutes: Optional[int] = None,
    ) -> None:
        self.client = client
        self.window = timedelta(
            minutes=window_minutes
            if window_minutes is not None
            else get_settings().LIVE_CHECKIN_WINDOW_MINUTES
        )

    async def enable(
        self,
        meeting_id: str,
        expires_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> LiveStatusRead:
        """
        Activate live check-in until `expires_at` (default: now + window).
        """
        if expires_at is None:
            expires_at = (now or datetime.now(tz=timezone.utc)) + self.window
        logger.info("Enabling live check-in for meeting %s until %s", meeting_id, expires_at)
        return await self.client.toggle_live_attendance(meeting_id, True, expires_at)

    async def disable(self, meeting_id: str) -> LiveStatusRead:
        logger.info("Disabling live check-in for meeting %s", meeting_id)
        return await self.client.toggle_live_attendance(meeting_id, False)

    async def fetch_status(self, meeting_id: str) -> LiveMeetingStatus:
        status = await self.client.get_live_status(meeting_id)
        return LiveMeetingStatus.from_status(status)


async def find_live_meetings(
    client: AttendanceApiClient,
    today: Optional[date] = None,
    recent_days: Optional[int] = None,
    limit: int = 50,
    only_active: bool = False,
) -> list[LiveStatusRead]:
    """
    Return the live status of every recent meeting, so the admin can pick
    one to scan for or to activate.

    Rules
    -----
    - Only meetings dated on or after `today - recent_days` are considered.
    - Each candidate's live status is fetched. With `only_active`, meetings
      whose live check-in is not currently active are dropped.
    - A status lookup failing for one meeting is logged and skipped.
    """
    if today is None:
        today = date.today()
    if recent_days is None:
        recent_days = get_settings().RECENT_MEETING_DAYS
    cutoff = today - timedelta(days=recent_days)

    meetings = await client.list_meetings(page=1, limit=limit)
    recent = [m for m in meetings if m.meeting_date >= cutoff]

    statuses: list[LiveStatusRead] = []
    for meeting in recent:
        try:
            status = await client.get_live_status(meeting.id)
        except AttendanceApiError as exc:
            logger.warning("Skipping meeting %s: live status unavailable (%s)", meeting.id, exc)
            continue
        if only_active and not status.is_active:
            continue
        statuses.append(status)
    return statuses
