# attendance_hub/services/session_cache.py
from __future__ import annotations

import logging
from typing import Optional

from attendance_hub.schemas.actor import Actor

logger = logging.getLogger(__name__)


class ScannerAccessError(PermissionError):
    """
    Raised when the scanner cannot be used by the current actor.

    `reason` is either "login_required" or "admin_required".
    """

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class ActorSessionCache:
    """
    Last-known-good snapshot of the authenticated actor.

    Requesting camera permission can make the host momentarily drop its
    in-memory auth state. Reads prefer the live actor and fall back to the
    snapshot; an empty cache never counts as authenticated.
    """

    def __init__(self) -> None:
        self._actor: Optional[Actor] = None
        self._is_admin = False

    @property
    def has_snapshot(self) -> bool:
        return self._actor is not None

    def set(self, actor: Optional[Actor]) -> None:
        """
        Snapshot `actor`. A missing live actor leaves the snapshot untouched.
        """
        if actor is None:
            return
        self._actor = actor.model_copy(deep=True)
        self._is_admin = actor.is_admin

    def get(self, live: Optional[Actor] = None) -> Optional[Actor]:
        if live is not None:
            self.set(live)
            return live
        return self._actor

    def is_admin(self, live: Optional[Actor] = None) -> bool:
        if live is not None:
            self.set(live)
            return live.is_admin
        return self._actor is not None and self._is_admin

    def clear(self) -> None:
        self._actor = None
        self._is_admin = False


def authorize_scanner(cache: ActorSessionCache, live: Optional[Actor] = None) -> Actor:
    """
    Resolve the actor allowed to operate the admin scanner.

    Raises
    ------
    ScannerAccessError
        `login_required` when neither a live nor a cached actor exists,
        `admin_required` when the effective actor is not an admin.
    """
    actor = cache.get(live)
    if actor is None:
        raise ScannerAccessError("login_required", "Please log in to use the scanner.")

    if not cache.is_admin(live):
        logger.info("Scanner access denied for actor %s", actor.id)
        raise ScannerAccessError(
            "admin_required",
            "Only administrators can scan member check-in codes.",
        )

    if live is None:
        logger.debug("Scanner using cached actor %s", actor.id)
    return actor
