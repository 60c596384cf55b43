# attendance_hub/api/dependencies/auth.py
from typing import Optional

from fastapi import Header, HTTPException, status

from attendance_hub.core.config import get_settings


def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def verify_bearer_token(
    authorization: Optional[str] = Header(
        default=None,
        alias="Authorization",
        description="Bearer token issued by the authentication service.",
    ),
) -> None:
    """
    Dependency protecting the attendance endpoints.

    Rules
    -----
    - APP_ENV in ("local", "test"):
        - If API_BEARER_TOKENS is not set -> no auth enforced (convenient for local dev).
        - If API_BEARER_TOKENS is set      -> the bearer token must be one of them.
    - APP_ENV not in ("local", "test")  [e.g. dev/stage/prod]:
        - API_BEARER_TOKENS must be set, otherwise 500 (misconfiguration).
        - The bearer token must be present and accepted, otherwise 401.
    """
    settings = get_settings()
    env = (settings.APP_ENV or "local").lower()
    accepted = settings.accepted_tokens
    token = _extract_bearer(authorization)

    if env in ("local", "test"):
        if not accepted:
            return
        if token is None or token not in accepted:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or missing bearer token.",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return

    if not accepted:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API_BEARER_TOKENS not configured for this environment.",
        )

    if token is None or token not in accepted:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
