from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from ...models.credential import WithingsCredential
from .config import WithingsConfig
from .errors import SubscriptionFailureCause, WithingsSubscriptionError
from .ports import WithingsAPIPort

logger = logging.getLogger(__name__)

STATUS_OK = 0
STATUS_ALREADY_SUBSCRIBED = 293

FAILURE_CAUSES: Dict[int, SubscriptionFailureCause] = {
    328: SubscriptionFailureCause.INVALID_CALLBACK_URL,
    342: SubscriptionFailureCause.INVALID_TOKEN,
}


@dataclass(frozen=True)
class SubscriptionResult:
    callback_url: str
    applis: List[int]
    already_subscribed: bool


@dataclass
class WebhookSubscriber:
    """Register the deployment's webhook URL for each notification category."""

    api: WithingsAPIPort
    config: WithingsConfig = field(default_factory=WithingsConfig)

    async def subscribe(self, credential: WithingsCredential) -> SubscriptionResult:
        callback_url = self.config.require_webhook_url()
        applis = list(self.config.notify_applis)
        already: List[bool] = []

        for appli in applis:
            payload = await self.api.subscribe_notifications(
                credential.access_token, callback_url, appli
            )
            status = payload.get("status")
            if status == STATUS_OK:
                already.append(False)
                continue
            if status == STATUS_ALREADY_SUBSCRIBED:
                logger.info(
                    "Withings callback already registered for user %s (appli %s)",
                    credential.user_id,
                    appli,
                )
                already.append(True)
                continue

            cause = FAILURE_CAUSES.get(status, SubscriptionFailureCause.UNKNOWN)
            logger.error(
                "Withings subscription failed for user %s (appli %s, status %s)",
                credential.user_id,
                appli,
                status,
            )
            raise WithingsSubscriptionError(cause, vendor_status=status, payload=payload)

        return SubscriptionResult(
            callback_url=callback_url,
            applis=applis,
            already_subscribed=bool(already) and all(already),
        )


__all__ = [
    "SubscriptionResult",
    "WebhookSubscriber",
    "FAILURE_CAUSES",
    "STATUS_ALREADY_SUBSCRIBED",
]
