# attendance_hub/services/api_client.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import httpx

from attendance_hub.core.config import get_settings
from attendance_hub.schemas.checkin import LiveCheckinResponse
from attendance_hub.schemas.live_status import LiveStatusRead
from attendance_hub.schemas.meeting import MeetingBatchCreated, MeetingCreate, MeetingRead

logger = logging.getLogger(__name__)

MEETINGS_PATH = "/attendance/meetings"


class AttendanceApiError(RuntimeError):
    """
    Raised when a backend call fails, either at the transport level or with
    a non-2xx response.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AttendanceApiClient:
    """
    Async client for the attendance backend's meeting and live check-in API.

    Responsibilities
    ----------------
    - Attach the caller's bearer token to every request.
    - Provide typed methods for the meeting and live check-in endpoints.
    - Avoid leaking HTTP client details into the rest of the codebase.

    Notes
    -----
    - The token is owned by the authentication collaborator; this client
      never refreshes it.
    - Backend error payloads (`{"detail": ...}`) are surfaced as the message
      of `AttendanceApiError`.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout_seconds: float = 10.0,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        if not token:
            raise ValueError("token is required")

        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout_seconds = timeout_seconds

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        """
        Low-level helper for issuing an authenticated HTTP request.

        Transport failures are wrapped into AttendanceApiError; HTTP error
        statuses are returned to the caller for inspection.
        """
        url = f"{self._base_url}/{path.lstrip('/')}"
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                resp = await client.request(
                    method=method.upper(),
                    url=url,
                    headers=headers,
                    params=params,
                    json=json,
                )
        except httpx.HTTPError as exc:
            logger.warning("Backend %s %s failed: %s", method.upper(), path, exc)
            raise AttendanceApiError(f"Network error: {exc}") from exc

        return resp

    @staticmethod
    def _error_message(resp: httpx.Response, fallback: str) -> str:
        try:
            payload = resp.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            detail = payload.get("detail") or payload.get("message")
            if isinstance(detail, str) and detail:
                return detail
        return f"{fallback} (status={resp.status_code})"

    async def _json(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        resp = await self._request(method, path, params=params, json=json)
        if resp.status_code // 100 != 2:
            message = self._error_message(resp, f"Backend {method.upper()} {path} failed")
            logger.warning(
                "Backend %s %s returned %s: %s",
                method.upper(),
                path,
                resp.status_code,
                message,
            )
            raise AttendanceApiError(message, status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            logger.warning(
                "Backend %s %s returned %s without a JSON body",
                method.upper(),
                path,
                resp.status_code,
            )
            raise AttendanceApiError(
                "Invalid response from backend",
                status_code=resp.status_code,
            ) from exc

    async def create_meetings(
        self,
        meetings: MeetingCreate | Sequence[MeetingCreate],
    ) -> MeetingBatchCreated:
        """
        Create one meeting or a batch of meetings in a single request.
        """
        if isinstance(meetings, MeetingCreate):
            body: Any = meetings.model_dump(mode="json", exclude_none=True)
        else:
            body = [m.model_dump(mode="json", exclude_none=True) for m in meetings]
        payload = await self._json("POST", MEETINGS_PATH, json=body)
        return MeetingBatchCreated.model_validate(payload)

    async def list_meetings(self, page: int = 1, limit: int = 50) -> list[MeetingRead]:
        payload = await self._json(
            "GET",
            MEETINGS_PATH,
            params={"page": page, "limit": limit},
        )
        return [MeetingRead.model_validate(item) for item in payload]

    async def get_meeting(self, meeting_id: str) -> MeetingRead:
        payload = await self._json("GET", f"{MEETINGS_PATH}/{meeting_id}")
        return MeetingRead.model_validate(payload)

    async def toggle_live_attendance(
        self,
        meeting_id: str,
        active: bool,
        expires_at: Optional[datetime] = None,
    ) -> LiveStatusRead:
        body: Dict[str, Any] = {"active": active}
        if active and expires_at is not None:
            body["expires_at"] = expires_at.isoformat()
        payload = await self._json(
            "PATCH",
            f"{MEETINGS_PATH}/{meeting_id}/live-attendance",
            json=body,
        )
        return LiveStatusRead.model_validate(payload)

    async def get_live_status(self, meeting_id: str) -> LiveStatusRead:
        payload = await self._json("GET", f"{MEETINGS_PATH}/{meeting_id}/live-status")
        return LiveStatusRead.model_validate(payload)

    async def live_checkin(self, meeting_id: str, member_id: str) -> LiveCheckinResponse:
        payload = await self._json(
            "POST",
            f"{MEETINGS_PATH}/{meeting_id}/live-checkin",
            json={"member_id": member_id},
        )
        return LiveCheckinResponse.model_validate(payload)


# Simple singleton-style accessor wired to app settings
_api_client_instance: Optional[AttendanceApiClient] = None


def get_attendance_api_client() -> AttendanceApiClient:
    """
    Lazily construct an AttendanceApiClient using application settings.
    """
    global _api_client_instance
    if _api_client_instance is None:
        settings = get_settings()
        if not settings.API_TOKEN:
            raise AttendanceApiError(
                "API_TOKEN must be configured in settings to use the shared API client."
            )
        _api_client_instance = AttendanceApiClient(
            base_url=settings.API_BASE_URL,
            token=settings.API_TOKEN,
            timeout_seconds=settings.API_TIMEOUT_SECONDS,
        )
    return _api_client_instance
