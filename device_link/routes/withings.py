from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query

from ..models.measurement import DeviceType, LiveVitalsEntry
from ..models.responses import (
    AuthorizationStartRequest,
    AuthorizationStartResponse,
    CallbackRequest,
    CallbackResponse,
    ConnectionData,
    ConnectionResponse,
    DisconnectResponse,
    ErrorEnvelope,
    LatestVitalsResponse,
    MeasurementsResponse,
    SubscriptionResponse,
    SyncData,
    SyncRequest,
    SyncResponse,
)
from ..models.time import utc_now
from ..platform.security import get_current_user_id
from ..platform.wiring import (
    get_access_token_provider,
    get_authorization_initiator,
    get_callback_exchanger,
    get_connection_service,
    get_measurement_sync_service,
    get_webhook_subscriber,
    provide_live_vitals_repository,
)
from ..withings.application import (
    AccessTokenProvider,
    AuthorizationInitiator,
    CallbackExchanger,
    ConnectionService,
    LiveVitalsRepository,
    MeasurementSyncService,
    MeasurementWindow,
    SubscriptionResult,
    WebhookSubscriber,
)
from ..withings.domain import DEVICE_MEASTYPES

router: APIRouter = APIRouter(
    prefix="/withings",
    tags=["withings"],
    responses={
        400: {"model": ErrorEnvelope},
        401: {"model": ErrorEnvelope},
        404: {"model": ErrorEnvelope},
        500: {"model": ErrorEnvelope},
        502: {"model": ErrorEnvelope},
    },
)

LIVE_VITALS_MEASTYPES: List[int] = sorted(
    {code for codes in DEVICE_MEASTYPES.values() for code in codes}
)


def _subscription_response(result: SubscriptionResult) -> SubscriptionResponse:
    return SubscriptionResponse(
        already_subscribed=result.already_subscribed,
        callback_url=result.callback_url,
        applis=result.applis,
    )


def _sync_window(request: SyncRequest, service: MeasurementSyncService) -> Optional[MeasurementWindow]:
    if request.lastupdate is not None:
        return MeasurementWindow(lastupdate=request.lastupdate)
    if request.startdate is not None:
        return MeasurementWindow(
            startdate=request.startdate, enddate=request.enddate or utc_now()
        )
    if request.enddate is not None:
        days = request.days or service.default_days
        return MeasurementWindow(
            startdate=request.enddate - timedelta(days=days), enddate=request.enddate
        )
    if request.days is not None:
        return service.last_days(request.days)
    return None


async def _cached_vitals(
    live_vitals: LiveVitalsRepository, user_id: str, device_type: Optional[DeviceType]
) -> List[LiveVitalsEntry]:
    if device_type is None:
        return await live_vitals.list_for_user(user_id)
    entry = await live_vitals.get(user_id, device_type)
    return [entry] if entry is not None else []


@router.post("/authorize", response_model=AuthorizationStartResponse)
async def start_authorization(
    payload: Optional[AuthorizationStartRequest] = Body(None),
    user_id: str = Depends(get_current_user_id),
    initiator: AuthorizationInitiator = Depends(get_authorization_initiator),
) -> AuthorizationStartResponse:
    """Return the Withings consent URL and the CSRF state to send back on callback."""
    force_relink = payload.force_relink if payload else False
    request = await initiator.start(user_id, force_relink=force_relink)
    return AuthorizationStartResponse(
        auth_url=request.auth_url,
        state=request.state,
        tokens_deleted=request.tokens_deleted,
    )


@router.post("/callback", response_model=CallbackResponse)
async def complete_authorization(
    payload: CallbackRequest,
    user_id: str = Depends(get_current_user_id),
    exchanger: CallbackExchanger = Depends(get_callback_exchanger),
) -> CallbackResponse:
    """Exchange the authorization code and subscribe to Withings notifications."""
    result = await exchanger.exchange(
        user_id,
        code=payload.code,
        state=payload.state,
        expected_state=payload.expected_state,
        redirect_uri=payload.redirect_uri,
        error=payload.error,
        error_description=payload.error_description,
    )
    credential = result.credential
    return CallbackResponse(
        data=ConnectionData(
            connected=True,
            vendor_user_id=credential.vendor_user_id,
            expires_at=credential.expires_at,
        ),
        subscription=(
            _subscription_response(result.subscription) if result.subscription else None
        ),
        warning=result.warning,
    )


@router.post("/subscription", response_model=SubscriptionResponse)
async def subscribe_webhook(
    user_id: str = Depends(get_current_user_id),
    tokens: AccessTokenProvider = Depends(get_access_token_provider),
    subscriber: WebhookSubscriber = Depends(get_webhook_subscriber),
) -> SubscriptionResponse:
    """Register the webhook callback URL for the user's Withings account."""
    credential = await tokens.valid_credential(user_id)
    result = await subscriber.subscribe(credential)
    return _subscription_response(result)


@router.post("/measurements/sync", response_model=SyncResponse)
async def sync_measurements(
    payload: Optional[SyncRequest] = Body(None),
    user_id: str = Depends(get_current_user_id),
    service: MeasurementSyncService = Depends(get_measurement_sync_service),
) -> SyncResponse:
    """Pull measurements from Withings and store the ones not seen before."""
    payload = payload or SyncRequest()
    result = await service.sync(user_id, _sync_window(payload, service), payload.meastypes)
    return SyncResponse(
        data=SyncData(
            fetched=result.fetched,
            inserted=result.inserted,
            measurements=result.measurements,
        )
    )


@router.get("/measurements", response_model=MeasurementsResponse)
async def list_measurements(
    since: Optional[datetime] = Query(None, description="Only return readings taken at or after this instant."),
    user_id: str = Depends(get_current_user_id),
    service: MeasurementSyncService = Depends(get_measurement_sync_service),
) -> MeasurementsResponse:
    measurements = await service.stored_measurements(user_id, since)
    return MeasurementsResponse(data=measurements)


@router.get("/vitals/latest", response_model=LatestVitalsResponse)
async def latest_vitals(
    device_type: Optional[DeviceType] = Query(None, alias="deviceType"),
    user_id: str = Depends(get_current_user_id),
    service: MeasurementSyncService = Depends(get_measurement_sync_service),
    live_vitals: LiveVitalsRepository = Depends(provide_live_vitals_repository),
) -> LatestVitalsResponse:
    """Sync recent blood pressure and temperature readings, then return the latest per device."""
    meastypes = DEVICE_MEASTYPES[device_type] if device_type else LIVE_VITALS_MEASTYPES
    await service.sync(user_id, meastypes=meastypes)
    return LatestVitalsResponse(data=await _cached_vitals(live_vitals, user_id, device_type))


@router.get("/vitals", response_model=LatestVitalsResponse)
async def cached_vitals(
    device_type: Optional[DeviceType] = Query(None, alias="deviceType"),
    user_id: str = Depends(get_current_user_id),
    live_vitals: LiveVitalsRepository = Depends(provide_live_vitals_repository),
    connection: ConnectionService = Depends(get_connection_service),
) -> LatestVitalsResponse:
    """Return the cached latest reading per device without contacting Withings."""
    status = await connection.status(user_id)
    return LatestVitalsResponse(
        connection_status="connected" if status.connected else "disconnected",
        data=await _cached_vitals(live_vitals, user_id, device_type),
    )


@router.get("/connection", response_model=ConnectionResponse)
async def connection_status(
    user_id: str = Depends(get_current_user_id),
    service: ConnectionService = Depends(get_connection_service),
) -> ConnectionResponse:
    status = await service.status(user_id)
    return ConnectionResponse(
        data=ConnectionData(
            connected=status.connected,
            vendor_user_id=status.vendor_user_id,
            expires_at=status.expires_at,
            expires_soon=status.expires_soon,
        )
    )


@router.delete("/connection", response_model=DisconnectResponse)
async def disconnect(
    user_id: str = Depends(get_current_user_id),
    service: ConnectionService = Depends(get_connection_service),
) -> DisconnectResponse:
    """Remove the stored Withings credential; succeeds when none exists."""
    deleted = await service.disconnect(user_id)
    return DisconnectResponse(tokens_deleted=deleted)
