from .credential import WithingsCredential
from .measurement import DeviceType, LiveVitalsEntry, Measurement, MeasurementType
from .responses import (
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

__all__ = [
    'WithingsCredential',
    'DeviceType',
    'LiveVitalsEntry',
    'Measurement',
    'MeasurementType',
    'AuthorizationStartRequest',
    'AuthorizationStartResponse',
    'CallbackRequest',
    'CallbackResponse',
    'ConnectionData',
    'ConnectionResponse',
    'DisconnectResponse',
    'ErrorEnvelope',
    'LatestVitalsResponse',
    'MeasurementsResponse',
    'SubscriptionResponse',
    'SyncData',
    'SyncRequest',
    'SyncResponse',
]
