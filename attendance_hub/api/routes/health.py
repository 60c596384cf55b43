# attendance_hub/api/routes/health.py
import logging
from datetime import datetime
from http import HTTPStatus

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_hub.api.routes.meetings import get_now
from attendance_hub.core.config import get_settings
from attendance_hub.db.session import get_db
from attendance_hub.models.meeting import AttendanceMeeting

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


class ReadinessReport(BaseModel):
    """
    State of the attendance backend as seen by a scanner deciding whether
    it can start a live session.
    """

    status: str = Field(..., description="`ready` or `degraded`.", examples=["ready"])
    environment: str = Field(..., examples=["local"])
    database: str = Field(..., description="`ok` or `unavailable`.", examples=["ok"])
    live_meetings: int | None = Field(
        None,
        description="Meetings whose live check-in window is open right now.",
        examples=[1],
    )
    live_checkin_window_minutes: int = Field(
        ...,
        description="Window applied when live check-in is enabled without an expiry.",
        examples=[240],
    )


@router.get("", summary="Liveness check")
async def liveness() -> dict:
    return {"status": "ok"}


@router.get(
    "/ready",
    response_model=ReadinessReport,
    summary="Readiness of the attendance backend",
    description=(
        "Checks the attendance database and counts meetings that currently "
        "accept live check-in. Answers 503 when the database cannot be queried."
    ),
    responses={503: {"description": "Database unavailable."}},
)
async def readiness(
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    settings = get_settings()
    report = ReadinessReport(
        status="ready",
        environment=settings.APP_ENV,
        database="ok",
        live_checkin_window_minutes=settings.LIVE_CHECKIN_WINDOW_MINUTES,
    )

    stmt = select(func.count(AttendanceMeeting.id)).where(
        AttendanceMeeting.live_checkin_active.is_(True),
        (AttendanceMeeting.live_checkin_expires_at.is_(None))
        | (AttendanceMeeting.live_checkin_expires_at > now),
    )
    try:
        report.live_meetings = (await db.execute(stmt)).scalar_one()
    except SQLAlchemyError as exc:
        logger.warning("Readiness check failed: %s", exc)
        report.status = "degraded"
        report.database = "unavailable"
        return JSONResponse(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            content=report.model_dump(),
        )
    return report
