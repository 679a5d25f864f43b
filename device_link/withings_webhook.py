from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping
from urllib.parse import parse_qs

from fastapi import APIRouter, Depends, HTTPException, Request

from .platform.wiring import get_notification_handler
from .withings.application import NotificationHandler, WithingsNotification
from .withings.application.errors import (
    WithingsNeedsReconnectError,
    WithingsNotConnectedError,
)

logger = logging.getLogger(__name__)

webhook_router = APIRouter()


def _parse_body(body: bytes, content_type: str) -> Mapping[str, Any]:
    text = body.decode("utf-8", "replace")
    if "application/json" in content_type:
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError("Webhook JSON body must be an object")
        return payload
    return {key: values[-1] for key, values in parse_qs(text).items()}


@webhook_router.api_route(
    "/withings-webhook", methods=["GET", "HEAD"], include_in_schema=False
)
async def verify_callback() -> Dict[str, str]:
    """Withings checks the callback URL before accepting a subscription."""
    return {"status": "ok"}


@webhook_router.post("/withings-webhook", include_in_schema=False)
async def withings_notification(
    request: Request,
    handler: NotificationHandler = Depends(get_notification_handler),
) -> Dict[str, Any]:
    body = await request.body()

    try:
        payload = _parse_body(body, request.headers.get("content-type", ""))
    except ValueError:
        logger.exception("Invalid Withings webhook payload: %s", body.decode("utf-8", "replace"))
        raise HTTPException(
            status_code=400, detail={"success": False, "error": "Invalid payload"}
        )

    notification = WithingsNotification.from_payload(payload)
    logger.info(
        "Withings notification for user %s (appli %s)",
        notification.vendor_user_id,
        notification.appli,
    )

    try:
        result = await handler.handle(notification)
    except (WithingsNotConnectedError, WithingsNeedsReconnectError) as exc:
        # Redelivery cannot fix a missing or revoked link.
        logger.warning(
            "Dropping Withings notification for user %s: %s",
            notification.vendor_user_id,
            exc,
        )
        return {"success": True, "ignored": True, "reason": exc.code}

    if result is None:
        return {"success": True, "ignored": True, "reason": "unsupported_appli"}
    return {"success": True, "fetched": result.fetched, "inserted": result.inserted}
