# attendance_hub/api/routes/meetings.py
from datetime import datetime, timedelta, timezone
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_hub.api.dependencies.auth import verify_bearer_token
from attendance_hub.core.config import get_settings
from attendance_hub.db.session import get_db
from attendance_hub.schemas.checkin import LiveCheckinRequest, LiveCheckinResponse
from attendance_hub.schemas.live_status import LiveAttendanceToggle, LiveStatusRead
from attendance_hub.schemas.meeting import MeetingBatchCreated, MeetingCreate, MeetingRead
from attendance_hub.services import live_checkin as live_checkin_service
from attendance_hub.services import meeting_store

router = APIRouter(
    prefix="/attendance/meetings",
    tags=["Attendance Meetings"],
    dependencies=[Depends(verify_bearer_token)],
)


def get_now() -> datetime:
    """
    Request-time clock; overridden in tests.
    """
    return datetime.now(tz=timezone.utc)


def _not_found(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))


@router.post(
    "",
    response_model=MeetingBatchCreated,
    status_code=HTTPStatus.CREATED,
    summary="Create one meeting or a batch of meetings",
    description=(
        "Accepts either a single meeting object or an array of meetings "
        "(typically the expanded instances of a recurring meeting).\n\n"
        "The whole batch is stored in one transaction."
    ),
    responses={
        201: {
            "description": "Meetings created.",
            "content": {
                "application/json": {
                    "example": {
                        "created_count": 2,
                        "ids": [
                            "0b7f3a5e-6f38-4a4f-9a9c-3f1f5c3e2a10",
                            "6c1d0e0b-2b0f-4a5e-8d55-1d2c3b4a5f60",
                        ],
                    }
                }
            },
        },
    },
)
async def create_meetings(
    payload: MeetingCreate | list[MeetingCreate],
    db: AsyncSession = Depends(get_db),
) -> MeetingBatchCreated:
    payloads = payload if isinstance(payload, list) else [payload]
    meetings = await meeting_store.create_meetings(db, payloads)
    return MeetingBatchCreated(
        created_count=len(meetings),
        ids=[m.id for m in meetings],
    )


@router.get(
    "",
    response_model=list[MeetingRead],
    summary="List meetings, newest first",
)
async def list_meetings(
    page: int = Query(default=1, ge=1, description="1-based page number."),
    limit: int = Query(default=50, ge=1, le=200, description="Page size."),
    db: AsyncSession = Depends(get_db),
) -> list[MeetingRead]:
    meetings = await meeting_store.list_meetings(db, page=page, limit=limit)
    return [MeetingRead.model_validate(m) for m in meetings]


@router.get(
    "/{meeting_id}",
    response_model=MeetingRead,
    summary="Get a meeting by ID",
    responses={404: {"description": "No meeting exists with the given ID."}},
)
async def get_meeting(
    meeting_id: str = Path(..., description="Meeting identifier."),
    db: AsyncSession = Depends(get_db),
) -> MeetingRead:
    try:
        meeting = await meeting_store.get_meeting(db, meeting_id)
    except meeting_store.MeetingNotFoundError as exc:
        raise _not_found(exc) from exc
    return MeetingRead.model_validate(meeting)


@router.patch(
    "/{meeting_id}/live-attendance",
    response_model=LiveStatusRead,
    summary="Enable or disable live check-in",
    description=(
        "Turns the live QR check-in window on or off.\n\n"
        "When enabling without `expires_at`, the window defaults to "
        "`LIVE_CHECKIN_WINDOW_MINUTES` from now. Disabling clears the expiry."
    ),
    responses={404: {"description": "No meeting exists with the given ID."}},
)
async def toggle_live_attendance(
    toggle: LiveAttendanceToggle,
    meeting_id: str = Path(..., description="Meeting identifier."),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
) -> LiveStatusRead:
    window = timedelta(minutes=get_settings().LIVE_CHECKIN_WINDOW_MINUTES)
    try:
        meeting = await live_checkin_service.set_live_attendance(
            db,
            meeting_id,
            toggle,
            now=now,
            default_window=window,
        )
    except meeting_store.MeetingNotFoundError as exc:
        raise _not_found(exc) from exc
    return live_checkin_service.build_live_status(meeting, now)


@router.get(
    "/{meeting_id}/live-status",
    response_model=LiveStatusRead,
    summary="Get the live check-in status of a meeting",
    responses={
        200: {
            "description": "Current live status.",
            "content": {
                "application/json": {
                    "example": {
                        "id": "0b7f3a5e-6f38-4a4f-9a9c-3f1f5c3e2a10",
                        "topic": "Sunday Fellowship",
                        "meeting_date": "2025-01-05",
                        "location": "Main Hall",
                        "event_category": "service",
                        "live_checkin_active": True,
                        "live_checkin_expires_at": "2025-01-05T13:00:00Z",
                        "is_active": True,
                        "is_expired": False,
                    }
                }
            },
        },
        404: {"description": "No meeting exists with the given ID."},
    },
)
async def get_live_status(
    meeting_id: str = Path(..., description="Meeting identifier."),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
) -> LiveStatusRead:
    try:
        meeting = await meeting_store.get_meeting(db, meeting_id)
    except meeting_store.MeetingNotFoundError as exc:
        raise _not_found(exc) from exc
    return live_checkin_service.build_live_status(meeting, now)


@router.post(
    "/{meeting_id}/live-checkin",
    response_model=LiveCheckinResponse,
    summary="Check a member in to a live meeting",
    description=(
        "Marks the member present. Repeating the call for the same member "
        "and meeting is safe and returns `already_checked_in: true`."
    ),
    responses={
        403: {"description": "Live check-in is not active or has expired."},
        404: {"description": "Unknown meeting or member."},
    },
)
async def live_checkin(
    body: LiveCheckinRequest,
    meeting_id: str = Path(..., description="Meeting identifier."),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
) -> LiveCheckinResponse:
    try:
        return await live_checkin_service.perform_live_checkin(
            db,
            meeting_id,
            body.member_id,
            now=now,
        )
    except (meeting_store.MeetingNotFoundError, live_checkin_service.MemberNotFoundError) as exc:
        raise _not_found(exc) from exc
    except live_checkin_service.LiveCheckinClosedError as exc:
        raise HTTPException(status_code=HTTPStatus.FORBIDDEN, detail=str(exc)) from exc
