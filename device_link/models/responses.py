"""JSON envelopes returned by the Withings endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .measurement import LiveVitalsEntry, Measurement


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthorizationStartRequest(CamelModel):
    force_relink: bool = Field(
        False, description="Delete the stored credential before starting a new link."
    )


class AuthorizationStartResponse(CamelModel):
    success: bool = True
    auth_url: str = Field(..., description="Withings consent page to redirect the user to.")
    state: str = Field(..., description="CSRF state the client must send back on callback.")
    tokens_deleted: bool = False


class CallbackRequest(CamelModel):
    code: Optional[str] = None
    state: Optional[str] = None
    expected_state: Optional[str] = Field(
        None, description="State issued by the authorize call and held by the client."
    )
    redirect_uri: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


class SubscriptionResponse(CamelModel):
    success: bool = True
    already_subscribed: bool
    callback_url: str
    applis: List[int]


class ConnectionData(CamelModel):
    connected: bool
    vendor_user_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    expires_soon: bool = False


class CallbackResponse(CamelModel):
    success: bool = True
    data: ConnectionData
    subscription: Optional[SubscriptionResponse] = None
    warning: Optional[str] = None


class SyncRequest(CamelModel):
    days: Optional[int] = Field(None, ge=1, le=365)
    startdate: Optional[datetime] = None
    enddate: Optional[datetime] = None
    lastupdate: Optional[datetime] = None
    meastypes: Optional[List[int]] = Field(
        None, description="Withings measure type codes to request."
    )


class SyncData(CamelModel):
    fetched: int
    inserted: int
    measurements: List[Measurement]


class SyncResponse(CamelModel):
    success: bool = True
    data: SyncData


class MeasurementsResponse(CamelModel):
    success: bool = True
    data: List[Measurement]


class LatestVitalsResponse(CamelModel):
    success: bool = True
    connection_status: str = Field(
        "connected", description="``connected`` or ``disconnected`` for the stored Withings link."
    )
    data: List[LiveVitalsEntry]


class ConnectionResponse(CamelModel):
    success: bool = True
    data: ConnectionData


class DisconnectResponse(CamelModel):
    success: bool = True
    tokens_deleted: bool


class ErrorEnvelope(CamelModel):
    success: bool = False
    error: str
    code: str
    needs_connection: Optional[bool] = None
    needs_reconnect: Optional[bool] = None
    vendor_status: Optional[int] = None
    cause: Optional[str] = None


__all__ = [
    "AuthorizationStartRequest",
    "AuthorizationStartResponse",
    "CallbackRequest",
    "CallbackResponse",
    "ConnectionData",
    "ConnectionResponse",
    "DisconnectResponse",
    "ErrorEnvelope",
    "LatestVitalsResponse",
    "MeasurementsResponse",
    "SubscriptionResponse",
    "SyncData",
    "SyncRequest",
    "SyncResponse",
]
