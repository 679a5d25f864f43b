"""Factories and assertion helpers for API tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from urllib.parse import urlencode

import jwt

from device_link.platform.config import Settings


def make_session_token(
    settings: Settings, user_id: str = "user-1", *, expires_in: int = 3600, **claims: Any
) -> str:
    payload: Dict[str, Any] = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    payload.update(claims)
    return jwt.encode(payload, settings.session_jwt_secret, algorithm=settings.session_jwt_algorithm)


def auth_headers(settings: Settings, user_id: str = "user-1") -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_session_token(settings, user_id)}"}


def encode_notification(**fields: Any) -> tuple[str, Dict[str, str]]:
    """Form-encode a Withings notification the way the vendor posts it."""

    payload: Dict[str, Any] = {"userid": 4242, "appli": 4}
    payload.update(fields)
    body = urlencode({key: value for key, value in payload.items() if value is not None})
    return body, {"Content-Type": "application/x-www-form-urlencoded"}


def assert_error_envelope(body: Dict[str, Any], code: str, **hints: Any) -> None:
    assert body["success"] is False, f"Expected failure envelope, saw {body!r}"
    assert body["code"] == code, f"Expected code {code!r}, saw {body.get('code')!r}"
    assert isinstance(body.get("error"), str) and body["error"]
    for key, value in hints.items():
        assert body.get(key) == value, f"Expected {key}={value!r}, saw {body.get(key)!r}"
