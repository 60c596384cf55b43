# attendance_hub/services/live_checkin.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_hub.models.attendance_record import AttendanceRecord
from attendance_hub.models.meeting import AttendanceMeeting
from attendance_hub.models.member import Member
from attendance_hub.schemas.checkin import CheckedInMember, LiveCheckinResponse
from attendance_hub.schemas.live_status import (
    EXPIRED_REASON,
    LiveAttendanceToggle,
    LiveStatusRead,
    as_utc,
)
from attendance_hub.services.meeting_store import get_meeting

logger = logging.getLogger(__name__)

PRESENT = "present"
NOT_ACTIVE_REASON = "Live attendance is not active for this meeting"


class MemberNotFoundError(LookupError):
    """
    Raised when a scanned member id does not exist.
    """


class LiveCheckinClosedError(RuntimeError):
    """
    Raised when a check-in arrives while live check-in is off or expired.
    """


def compute_live_flags(meeting: AttendanceMeeting, now: datetime) -> tuple[bool, bool]:
    """
    Derive `(is_active, is_expired)` from the stored flag and expiry.

    Expiry is evaluated lazily: the stored flag stays set after the window
    passes, but the meeting is reported (and treated) as inactive.
    """
    if not meeting.live_checkin_active:
        return False, False
    expires_at = meeting.live_checkin_expires_at
    if expires_at is not None and as_utc(now) >= as_utc(expires_at):
        return False, True
    return True, False


def build_live_status(meeting: AttendanceMeeting, now: datetime) -> LiveStatusRead:
    is_active, is_expired = compute_live_flags(meeting, now)
    expires_at = meeting.live_checkin_expires_at
    return LiveStatusRead(
        id=meeting.id,
        topic=meeting.topic,
        meeting_date=meeting.meeting_date,
        location=meeting.location,
        event_category=meeting.event_category,
        live_checkin_active=bool(meeting.live_checkin_active),
        live_checkin_expires_at=as_utc(expires_at) if expires_at is not None else None,
        is_active=is_active,
        is_expired=is_expired,
    )


async def set_live_attendance(
    db: AsyncSession,
    meeting_id: str,
    toggle: LiveAttendanceToggle,
    now: datetime,
    default_window: timedelta,
) -> AttendanceMeeting:
    """
    Enable or disable live check-in for a meeting.

    Enabling without an explicit expiry opens a window of `default_window`
    from `now`; disabling clears the expiry.
    """
    meeting = await get_meeting(db, meeting_id)

    if toggle.active:
        expires_at = toggle.expires_at or (now + default_window)
        meeting.live_checkin_active = True
        meeting.live_checkin_expires_at = as_utc(expires_at)
    else:
        meeting.live_checkin_active = False
        meeting.live_checkin_expires_at = None

    await db.commit()
    logger.info(
        "Live check-in for meeting %s set to %s (expires_at=%s)",
        meeting_id,
        meeting.live_checkin_active,
        meeting.live_checkin_expires_at,
    )
    return meeting


async def _find_record(
    db: AsyncSession,
    meeting_id: str,
    member_id: str,
) -> Optional[AttendanceRecord]:
    result = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.meeting_id == meeting_id,
            AttendanceRecord.member_id == member_id,
        )
    )
    return result.scalar_one_or_none()


async def perform_live_checkin(
    db: AsyncSession,
    meeting_id: str,
    member_id: str,
    now: datetime,
) -> LiveCheckinResponse:
    """
    Mark `member_id` present at `meeting_id`.

    Behavior
    --------
    - Unknown meeting -> MeetingNotFoundError.
    - Live check-in off or expired -> LiveCheckinClosedError.
    - Unknown member -> MemberNotFoundError.
    - Idempotent per (meeting, member):
        - no record yet           -> insert a `present` record
        - record with other state -> switch it to `present`
        - already `present`       -> untouched, `already_checked_in=True`
      A concurrent insert losing the unique-constraint race is reported as
      `already_checked_in=True` as well.
    """
    meeting = await get_meeting(db, meeting_id)

    is_active, is_expired = compute_live_flags(meeting, now)
    if not is_active:
        raise LiveCheckinClosedError(EXPIRED_REASON if is_expired else NOT_ACTIVE_REASON)

    member = await db.get(Member, member_id)
    if member is None:
        raise MemberNotFoundError(f"Member with id {member_id} not found.")

    snapshot = CheckedInMember(
        id=member.id,
        first_name=member.first_name,
        last_name=member.last_name or "",
        email=member.email,
    )

    record = await _find_record(db, meeting_id, member_id)
    if record is not None and record.status == PRESENT:
        return LiveCheckinResponse(
            message="Member already checked in",
            member=snapshot,
            already_checked_in=True,
        )

    if record is None:
        db.add(
            AttendanceRecord(
                meeting_id=meeting_id,
                member_id=member_id,
                status=PRESENT,
                checked_in_at=now,
            )
        )
    else:
        record.status = PRESENT
        record.checked_in_at = now

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Concurrent check-in of member %s to meeting %s", member_id, meeting_id)
        return LiveCheckinResponse(
            message="Member already checked in",
            member=snapshot,
            already_checked_in=True,
        )

    logger.info("Member %s checked in to meeting %s", member_id, meeting_id)
    return LiveCheckinResponse(
        message="Member checked in successfully",
        member=snapshot,
        already_checked_in=False,
    )
