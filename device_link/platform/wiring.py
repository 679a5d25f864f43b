"""FastAPI dependency wiring for the Withings use cases."""

from __future__ import annotations

from datetime import timedelta
from typing import AsyncIterator

import httpx
from fastapi import Depends

from ..withings.application import (
    AccessTokenProvider,
    AuthorizationInitiator,
    CallbackExchanger,
    ConnectionService,
    CredentialRepository,
    LiveVitalsRepository,
    MeasurementRepository,
    MeasurementSyncService,
    NotificationHandler,
    TokenRefresher,
    WebhookSubscriber,
    WithingsAPIPort,
    WithingsConfig,
)
from ..withings.infrastructure import (
    RedisCredentialRepository,
    RedisLiveVitalsRepository,
    RedisMeasurementRepository,
    create_withings_api_client,
)
from .clients import RedisClient, get_redis
from .config import Settings, get_settings


def provide_withings_config(settings: Settings = Depends(get_settings)) -> WithingsConfig:
    return WithingsConfig(
        client_id=settings.withings_client_id,
        client_secret=settings.withings_client_secret,
        redirect_uri=settings.withings_redirect_uri,
        webhook_url=settings.withings_webhook_url,
        scopes=settings.withings_scopes,
        api_url=settings.wbsapi_url.rstrip("/"),
        authorize_url=settings.withings_authorize_url,
        notify_applis=tuple(settings.withings_notify_applis),
        expiry_buffer=timedelta(seconds=settings.withings_token_expiry_buffer),
        default_expires_in=settings.withings_default_expires_in,
        default_sync_days=settings.withings_default_sync_days,
    )


async def provide_withings_api(
    settings: Settings = Depends(get_settings),
    config: WithingsConfig = Depends(provide_withings_config),
) -> AsyncIterator[WithingsAPIPort]:
    async with httpx.AsyncClient(timeout=settings.withings_request_timeout) as http_client:
        yield create_withings_api_client(http_client=http_client, config=config)


def provide_credential_repository(
    redis: RedisClient = Depends(get_redis),
) -> CredentialRepository:
    return RedisCredentialRepository(redis)


def provide_measurement_repository(
    redis: RedisClient = Depends(get_redis),
) -> MeasurementRepository:
    return RedisMeasurementRepository(redis)


def provide_live_vitals_repository(
    redis: RedisClient = Depends(get_redis),
) -> LiveVitalsRepository:
    return RedisLiveVitalsRepository(redis)


def get_token_refresher(
    api: WithingsAPIPort = Depends(provide_withings_api),
    credentials: CredentialRepository = Depends(provide_credential_repository),
    config: WithingsConfig = Depends(provide_withings_config),
) -> TokenRefresher:
    return TokenRefresher(api=api, credentials=credentials, config=config)


def get_access_token_provider(
    credentials: CredentialRepository = Depends(provide_credential_repository),
    refresher: TokenRefresher = Depends(get_token_refresher),
    config: WithingsConfig = Depends(provide_withings_config),
) -> AccessTokenProvider:
    return AccessTokenProvider(
        credentials=credentials, refresher=refresher, expiry_buffer=config.expiry_buffer
    )


def get_webhook_subscriber(
    api: WithingsAPIPort = Depends(provide_withings_api),
    config: WithingsConfig = Depends(provide_withings_config),
) -> WebhookSubscriber:
    return WebhookSubscriber(api=api, config=config)


def get_authorization_initiator(
    config: WithingsConfig = Depends(provide_withings_config),
    credentials: CredentialRepository = Depends(provide_credential_repository),
) -> AuthorizationInitiator:
    return AuthorizationInitiator(config=config, credentials=credentials)


def get_callback_exchanger(
    api: WithingsAPIPort = Depends(provide_withings_api),
    credentials: CredentialRepository = Depends(provide_credential_repository),
    subscriber: WebhookSubscriber = Depends(get_webhook_subscriber),
    config: WithingsConfig = Depends(provide_withings_config),
) -> CallbackExchanger:
    return CallbackExchanger(
        api=api, credentials=credentials, subscriber=subscriber, config=config
    )


def get_measurement_sync_service(
    api: WithingsAPIPort = Depends(provide_withings_api),
    tokens: AccessTokenProvider = Depends(get_access_token_provider),
    credentials: CredentialRepository = Depends(provide_credential_repository),
    measurements: MeasurementRepository = Depends(provide_measurement_repository),
    live_vitals: LiveVitalsRepository = Depends(provide_live_vitals_repository),
    config: WithingsConfig = Depends(provide_withings_config),
) -> MeasurementSyncService:
    return MeasurementSyncService(
        api=api,
        tokens=tokens,
        credentials=credentials,
        measurements=measurements,
        live_vitals=live_vitals,
        default_days=config.default_sync_days,
    )


def get_notification_handler(
    credentials: CredentialRepository = Depends(provide_credential_repository),
    sync: MeasurementSyncService = Depends(get_measurement_sync_service),
) -> NotificationHandler:
    return NotificationHandler(credentials=credentials, sync=sync)


def get_connection_service(
    credentials: CredentialRepository = Depends(provide_credential_repository),
    config: WithingsConfig = Depends(provide_withings_config),
) -> ConnectionService:
    return ConnectionService(credentials=credentials, expiry_buffer=config.expiry_buffer)


__all__ = [
    "provide_withings_config",
    "provide_withings_api",
    "provide_credential_repository",
    "provide_measurement_repository",
    "provide_live_vitals_repository",
    "get_token_refresher",
    "get_access_token_provider",
    "get_webhook_subscriber",
    "get_authorization_initiator",
    "get_callback_exchanger",
    "get_measurement_sync_service",
    "get_notification_handler",
    "get_connection_service",
]
