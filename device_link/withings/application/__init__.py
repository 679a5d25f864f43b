"""Application layer for the Withings integration."""

from .authorization import (
    AuthorizationInitiator,
    AuthorizationRequest,
    CallbackExchanger,
    LinkResult,
    generate_state,
)
from .config import WithingsConfig
from .connection import ConnectionService, ConnectionStatus
from .measurements import MeasurementSyncService, SyncResult
from .notifications import NotificationHandler, WithingsNotification
from .ports import (
    CredentialRepository,
    LiveVitalsRepository,
    MeasurementRepository,
    MeasurementWindow,
    TokenGrant,
    WithingsAPIPort,
)
from .subscriptions import SubscriptionResult, WebhookSubscriber
from .tokens import AccessTokenProvider, TokenRefresher

__all__ = [
    "AuthorizationInitiator",
    "AuthorizationRequest",
    "CallbackExchanger",
    "LinkResult",
    "generate_state",
    "WithingsConfig",
    "ConnectionService",
    "ConnectionStatus",
    "MeasurementSyncService",
    "SyncResult",
    "NotificationHandler",
    "WithingsNotification",
    "CredentialRepository",
    "LiveVitalsRepository",
    "MeasurementRepository",
    "MeasurementWindow",
    "TokenGrant",
    "WithingsAPIPort",
    "SubscriptionResult",
    "WebhookSubscriber",
    "AccessTokenProvider",
    "TokenRefresher",
]
