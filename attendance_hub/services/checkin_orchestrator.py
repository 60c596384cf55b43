# attendance_hub/services/checkin_orchestrator.py
from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from datetime import datetime, timezone
from enum import Enum
from http import HTTPStatus
from typing import Any, Callable, Optional

from pydantic import ValidationError

from attendance_hub.core.config import get_settings
from attendance_hub.schemas.checkin import (
    CheckedInMember,
    CheckinErrorReason,
    CheckinResult,
    LiveCheckinResponse,
    ScanStats,
)
from attendance_hub.schemas.live_status import EXPIRED_REASON, LiveMeetingStatus
from attendance_hub.services.api_client import AttendanceApiClient, AttendanceApiError
from attendance_hub.services.capture import CaptureAdapter, CaptureError, dispatch
from attendance_hub.services.qr_payload import QRPayloadError, parse_checkin_payload

logger = logging.getLogger(__name__)

SCAN_FAILED_MESSAGE = "Failed to scan QR code. Please try again."
STATUS_UNKNOWN_MESSAGE = "Live attendance status has not been loaded yet"
CHECKIN_SUCCESS_MESSAGE = "Member checked in successfully!"
CHECKIN_FAILED_MESSAGE = "Failed to check in member"


class ScanState(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    PARSE_FAILED = "parse_failed"
    VALIDATED = "validated"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    BLOCKED = "blocked"


class CheckinOrchestrator:
    """
    Turns decoded QR text into live check-ins for one meeting.

    Per scan attempt the state moves
    IDLE -> PARSING -> (PARSE_FAILED | VALIDATED) -> SUBMITTING -> (SUCCEEDED | FAILED).

    Rules
    -----
    - Single-flight: a scan arriving while another one is SUBMITTING is
      dropped (not queued), so at most one check-in request is in flight.
    - Nothing is submitted unless the meeting's live status, loaded with
      `refresh_live_status()`, allows check-in right now. Otherwise the
      scanner is BLOCKED and `blocked_reason` explains why.
    - A 403 from the backend (live check-in closed server-side) blocks the
      scanner the same way.
    - Payload errors never reach the network layer.
    - Banners clear themselves after a delay; `close()` cancels pending
      timers and no state is touched afterwards.
    """

    def __init__(
        self,
        client: AttendanceApiClient,
        meeting_id: str,
        *,
        success_banner_seconds: Optional[float] = None,
        error_banner_seconds: Optional[float] = None,
        recent_limit: Optional[int] = None,
        on_success: Optional[Callable[[LiveCheckinResponse], Any]] = None,
        on_error: Optional[Callable[[str], Any]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        settings = get_settings()
        self._client = client
        self.meeting_id = meeting_id
        self.success_banner_seconds = (
            settings.SUCCESS_BANNER_SECONDS
            if success_banner_seconds is None
            else success_banner_seconds
        )
        self.error_banner_seconds = (
            settings.ERROR_BANNER_SECONDS
            if error_banner_seconds is None
            else error_banner_seconds
        )
        self.recent_limit = settings.RECENT_SCANS_LIMIT if recent_limit is None else recent_limit
        self._on_success = on_success
        self._on_error = on_error
        self._clock = clock or (lambda: datetime.now(tz=timezone.utc))

        self.state = ScanState.IDLE
        self.live_status: Optional[LiveMeetingStatus] = None
        self.blocked_reason: Optional[str] = None
        self.banner: Optional[CheckinResult] = None
        self.recent_scans: list[CheckedInMember] = []
        self.stats = ScanStats()

        self._banner_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def scanning_allowed(self) -> bool:
        return self.live_status is not None and self.live_status.allows_checkin(self._clock())

    async def refresh_live_status(self) -> LiveMeetingStatus:
        """
        Load the meeting's live status from the backend and update the gate.

        Backend failures propagate; the caller decides whether to retry.
        """
        status = await self._client.get_live_status(self.meeting_id)
        live_status = LiveMeetingStatus.from_status(status)
        if self._closed:
            return live_status

        self.live_status = live_status
        self.blocked_reason = live_status.blocked_reason(self._clock())
        if self.blocked_reason is not None:
            self.state = ScanState.BLOCKED
            logger.info("Scanning blocked for meeting %s: %s", self.meeting_id, self.blocked_reason)
        elif self.state is ScanState.BLOCKED:
            self.state = ScanState.IDLE
        return live_status

    def _gate(self) -> Optional[CheckinResult]:
        if self.live_status is None:
            reason, error = STATUS_UNKNOWN_MESSAGE, CheckinErrorReason.MEETING_INACTIVE
        else:
            now = self._clock()
            blocked = self.live_status.blocked_reason(now)
            if blocked is None:
                return None
            error = (
                CheckinErrorReason.MEETING_EXPIRED
                if self.live_status.is_expired(now)
                else CheckinErrorReason.MEETING_INACTIVE
            )
            reason = blocked

        self.state = ScanState.BLOCKED
        self.blocked_reason = reason
        return CheckinResult(success=False, message=reason, error=error)

    async def handle_scan(self, raw_text: str) -> Optional[CheckinResult]:
        """
        Process one decoded QR text.

        Returns the outcome, or None when the scan was dropped (another
        submission in flight, or the orchestrator is closed).
        """
        if self._closed:
            return None
        if self.state is ScanState.SUBMITTING:
            logger.debug("Scan dropped for meeting %s: submission in flight", self.meeting_id)
            return None

        blocked = self._gate()
        if blocked is not None:
            logger.info("Scan refused for meeting %s: %s", self.meeting_id, blocked.message)
            return blocked

        self.state = ScanState.PARSING
        try:
            payload = parse_checkin_payload(raw_text, self.meeting_id)
        except QRPayloadError as exc:
            self.state = ScanState.PARSE_FAILED
            logger.info("Rejected QR payload for meeting %s: %s", self.meeting_id, exc)
            return await self._record_failure(CheckinErrorReason(exc.reason.value), str(exc))

        self.state = ScanState.VALIDATED
        logger.info("Checking in member %s to meeting %s", payload.member_id, self.meeting_id)

        self.state = ScanState.SUBMITTING
        try:
            response = await self._client.live_checkin(self.meeting_id, payload.member_id)
        except (AttendanceApiError, ValidationError) as exc:
            if self._closed:
                return None
            if isinstance(exc, AttendanceApiError) and exc.status_code == HTTPStatus.FORBIDDEN:
                return await self._block_from_backend(exc)
            self.state = ScanState.FAILED
            message = str(exc) if isinstance(exc, AttendanceApiError) else ""
            return await self._record_failure(
                CheckinErrorReason.BACKEND_ERROR,
                message or CHECKIN_FAILED_MESSAGE,
            )
        finally:
            if self.state is ScanState.SUBMITTING and not self._closed:
                # Cancellation or an unexpected error must not wedge the guard.
                self.state = ScanState.FAILED

        if self._closed:
            return None

        self.state = ScanState.SUCCEEDED
        result = CheckinResult(
            success=True,
            message=response.message or CHECKIN_SUCCESS_MESSAGE,
            member=response.member,
            already_checked_in=response.already_checked_in,
        )
        self._remember(response.member)
        self.stats.total_scanned += 1
        self.stats.successful_scans += 1
        logger.info(
            "Member %s checked in to meeting %s (already_checked_in=%s)",
            response.member.id,
            self.meeting_id,
            response.already_checked_in,
        )
        self._show_banner(result, self.success_banner_seconds)
        await self._notify(self._on_success, response)
        return result

    async def handle_capture_error(self, error: CaptureError) -> Optional[CheckinResult]:
        if self._closed:
            return None
        logger.info("Capture failed for meeting %s: %s", self.meeting_id, error)
        result = CheckinResult(
            success=False,
            message=SCAN_FAILED_MESSAGE,
            error=CheckinErrorReason.SCAN_FAILED,
        )
        self._show_banner(result, self.success_banner_seconds)
        return result

    async def consume(self, adapter: CaptureAdapter) -> None:
        """
        Feed every decode stream of `adapter` into this orchestrator.

        Live adapters are resumed after each decode; the loop ends when the
        adapter is exhausted, the meeting is blocked, or `close()` is called.
        The adapter is closed on the way out.
        """
        try:
            while not self._closed and self.state is not ScanState.BLOCKED:
                await dispatch(adapter, self.handle_scan, self.handle_capture_error)
                if adapter.exhausted or self._closed:
                    break
                adapter.resume()
        finally:
            await adapter.close()

    async def close(self) -> None:
        """
        Tear down: cancel pending banner timers and stop accepting scans.
        """
        self._closed = True
        task = self._banner_task
        self._banner_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _record_failure(self, reason: CheckinErrorReason, message: str) -> CheckinResult:
        result = CheckinResult(success=False, message=message, error=reason)
        self.stats.total_scanned += 1
        self.stats.errors += 1
        self._show_banner(result, self.error_banner_seconds)
        await self._notify(self._on_error, message)
        return result

    async def _block_from_backend(self, exc: AttendanceApiError) -> CheckinResult:
        # The backend refused the check-in: live check-in was switched off or
        # has expired by its clock. Later scans must not be submitted.
        reason = str(exc) or CHECKIN_FAILED_MESSAGE
        expired = reason == EXPIRED_REASON
        if self.live_status is not None:
            update = {"expired": True} if expired else {"active": False}
            self.live_status = self.live_status.model_copy(update=update)
        self.state = ScanState.BLOCKED
        self.blocked_reason = reason
        logger.info("Backend closed live check-in for meeting %s: %s", self.meeting_id, reason)
        return await self._record_failure(
            CheckinErrorReason.MEETING_EXPIRED if expired else CheckinErrorReason.MEETING_INACTIVE,
            reason,
        )

    def _remember(self, member: CheckedInMember) -> None:
        recent = [m for m in self.recent_scans if m.id != member.id]
        recent.insert(0, member)
        self.recent_scans = recent[: self.recent_limit]

    def _show_banner(self, result: CheckinResult, delay: float) -> None:
        self._cancel_banner_timer()
        self.banner = result
        if delay > 0:
            self._banner_task = asyncio.get_running_loop().create_task(
                self._expire_banner(result, delay)
            )

    def _cancel_banner_timer(self) -> None:
        if self._banner_task is not None and not self._banner_task.done():
            self._banner_task.cancel()
        self._banner_task = None

    async def _expire_banner(self, result: CheckinResult, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._closed or self.banner is not result:
            return
        self.banner = None
        if self.state in (ScanState.SUCCEEDED, ScanState.FAILED, ScanState.PARSE_FAILED):
            self.state = ScanState.IDLE

    @staticmethod
    async def _notify(callback: Optional[Callable[[Any], Any]], value: Any) -> None:
        if callback is None:
            return
        outcome = callback(value)
        if inspect.isawaitable(outcome):
            await outcome
