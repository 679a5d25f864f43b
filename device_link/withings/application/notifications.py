from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ...models.time import from_unix
from .errors import WithingsMissingParameterError, WithingsUnknownUserError
from .measurements import MeasurementSyncService, SyncResult
from .ports import CredentialRepository, MeasurementWindow

logger = logging.getLogger(__name__)

# Notification categories that announce new ``getmeas`` data:
# 1 weight, 2 temperature, 4 blood pressure / heart rate / SpO2.
MEASUREMENT_APPLIS = frozenset({1, 2, 4})


@dataclass(frozen=True)
class WithingsNotification:
    vendor_user_id: str
    appli: Optional[int] = None
    startdate: Optional[int] = None
    enddate: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "WithingsNotification":
        vendor_user_id = payload.get("userid")
        if vendor_user_id in (None, ""):
            raise WithingsMissingParameterError("userid")
        return cls(
            vendor_user_id=str(vendor_user_id),
            appli=_optional_int(payload.get("appli")),
            startdate=_optional_int(payload.get("startdate")),
            enddate=_optional_int(payload.get("enddate")),
        )

    def window(self) -> Optional[MeasurementWindow]:
        if self.startdate is None:
            return None
        if self.enddate is None:
            return MeasurementWindow(lastupdate=from_unix(self.startdate))
        return MeasurementWindow(
            startdate=from_unix(self.startdate), enddate=from_unix(self.enddate)
        )


def _optional_int(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class NotificationHandler:
    """Route a vendor push notification to the measurement sync."""

    credentials: CredentialRepository
    sync: MeasurementSyncService

    async def handle(self, notification: WithingsNotification) -> Optional[SyncResult]:
        """Sync the notified window; ``None`` means the category was ignored."""

        if notification.appli is not None and notification.appli not in MEASUREMENT_APPLIS:
            logger.info(
                "Ignoring Withings notification appli %s for user %s",
                notification.appli,
                notification.vendor_user_id,
            )
            return None

        credential = await self.credentials.get_by_vendor_user(notification.vendor_user_id)
        if credential is None:
            raise WithingsUnknownUserError(notification.vendor_user_id)

        return await self.sync.sync(credential.user_id, notification.window())


__all__ = ["MEASUREMENT_APPLIS", "WithingsNotification", "NotificationHandler"]
