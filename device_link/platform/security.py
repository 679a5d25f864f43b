from __future__ import annotations

import logging

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

session_bearer: HTTPBearer = HTTPBearer(
    scheme_name="SessionBearer", auto_error=False
)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"success": False, "error": "Unauthorized"},
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Security(session_bearer),
    settings: Settings = Depends(get_settings),
) -> str:
    """Return the platform user id carried by a valid session token."""

    if credentials is None or not credentials.credentials:
        raise _unauthorized()

    try:
        claims = jwt.decode(
            credentials.credentials,
            settings.session_jwt_secret,
            algorithms=[settings.session_jwt_algorithm],
            options={"require": ["sub"]},
        )
    except jwt.PyJWTError as exc:
        logger.info("Rejected session token: %s", exc)
        raise _unauthorized() from exc

    user_id = claims.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise _unauthorized()
    return user_id


__all__ = ["session_bearer", "get_current_user_id"]
