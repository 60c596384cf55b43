# attendance_hub/services/meeting_store.py
from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_hub.models.meeting import AttendanceMeeting
from attendance_hub.schemas.meeting import MeetingCreate


class MeetingNotFoundError(LookupError):
    """
    Raised when a meeting id does not exist.
    """


async def create_meetings(
    db: AsyncSession,
    payloads: Sequence[MeetingCreate],
) -> list[AttendanceMeeting]:
    """
    Persist a batch of meetings in a single transaction.

    Either every meeting is stored or none is.
    """
    meetings = [
        AttendanceMeeting(
            event_category=payload.event_category.value,
            meeting_date=payload.meeting_date,
            meeting_type=payload.meeting_type,
            topic=payload.topic,
            location=payload.location,
            notes=payload.notes,
            offering=payload.offering,
            cell_group_id=payload.cell_group_id,
            ministry_id=payload.ministry_id,
            class_id=payload.class_id,
            is_realtime=payload.is_realtime,
        )
        for payload in payloads
    ]
    db.add_all(meetings)
    await db.commit()
    return meetings


async def list_meetings(
    db: AsyncSession,
    page: int = 1,
    limit: int = 50,
) -> list[AttendanceMeeting]:
    """
    Meetings ordered by date, newest first.
    """
    stmt = (
        select(AttendanceMeeting)
        .order_by(AttendanceMeeting.meeting_date.desc(), AttendanceMeeting.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_meeting(db: AsyncSession, meeting_id: str) -> AttendanceMeeting:
    result = await db.execute(
        select(AttendanceMeeting).where(AttendanceMeeting.id == meeting_id)
    )
    meeting = result.scalar_one_or_none()
    if meeting is None:
        raise MeetingNotFoundError(f"Meeting with id {meeting_id} not found.")
    return meeting
