"""Error taxonomy for the Withings integration.

Every error carries the HTTP status and machine-readable code used by the API
envelope, so routes never translate exceptions by hand.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class WithingsError(RuntimeError):
    """Base class for failures surfaced by the Withings integration."""

    http_status: int = 500
    code: str = "withings_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def hints(self) -> Dict[str, Any]:
        """Extra envelope fields letting the UI pick the right remediation."""

        return {}


class WithingsConfigurationError(WithingsError):
    """Raised when vendor client credentials or URLs are not configured."""

    code = "configuration_error"

    def __init__(self, setting: str) -> None:
        super().__init__(f"Withings integration is not configured: missing {setting}")
        self.setting = setting


class WithingsNotConnectedError(WithingsError):
    """Raised when the user has never linked (or has unlinked) Withings."""

    http_status = 404
    code = "not_connected"

    def __init__(self, message: str = "No Withings connection found. Please connect your device.") -> None:
        super().__init__(message)

    def hints(self) -> Dict[str, Any]:
        return {"needsConnection": True}


class WithingsNeedsReconnectError(WithingsError):
    """Raised once a credential was rejected by Withings and has been deleted."""

    http_status = 401
    code = "needs_reconnect"

    def __init__(self, message: str = "Withings authorization expired. Please reconnect your device.") -> None:
        super().__init__(message)

    def hints(self) -> Dict[str, Any]:
        return {"needsReconnect": True}


class WithingsAuthorizationDeniedError(WithingsError):
    """Raised when Withings reports an error on the authorization callback."""

    http_status = 400
    code = "authorization_denied"

    def __init__(self, reason: str, description: Optional[str] = None) -> None:
        message = f"Withings authorization failed: {reason}"
        if description:
            message = f"{message} ({description})"
        super().__init__(message)
        self.reason = reason


class WithingsMissingParameterError(WithingsError):
    http_status = 400
    code = "missing_parameter"

    def __init__(self, parameter: str) -> None:
        super().__init__(f"Missing required parameter: {parameter}")
        self.parameter = parameter


class WithingsStateMismatchError(WithingsError):
    """Raised when the callback state does not match the issued CSRF state."""

    http_status = 400
    code = "state_mismatch"

    def __init__(self) -> None:
        super().__init__("OAuth state mismatch; authorization rejected")


class WithingsAPIError(WithingsError):
    """Raised when Withings answers with a non-zero status."""

    http_status = 502
    code = "vendor_error"

    def __init__(
        self,
        message: str,
        *,
        vendor_status: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.vendor_status = vendor_status
        self.payload = payload or {}

    def hints(self) -> Dict[str, Any]:
        if self.vendor_status is None:
            return {}
        return {"vendorStatus": self.vendor_status}


class WithingsTransportError(WithingsAPIError):
    """Raised when Withings could not be reached or answered garbage."""

    code = "vendor_unavailable"

    def __init__(self, message: str, *, http_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.response_status = http_status


class SubscriptionFailureCause(str, Enum):
    INVALID_CALLBACK_URL = "invalid_callback_url"
    INVALID_TOKEN = "invalid_token"
    UNKNOWN = "unknown"


class WithingsSubscriptionError(WithingsAPIError):
    """Raised when Withings refuses a notification subscription."""

    code = "subscription_failed"

    def __init__(
        self,
        cause: SubscriptionFailureCause,
        *,
        vendor_status: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            f"Withings subscription failed: {cause.value}",
            vendor_status=vendor_status,
            payload=payload,
        )
        self.cause = cause

    def hints(self) -> Dict[str, Any]:
        return {**super().hints(), "cause": self.cause.value}


class WithingsPersistenceError(WithingsError):
    """Raised when the credential or measurement store fails."""

    code = "persistence_error"


class WithingsUnknownUserError(WithingsError):
    """Raised when a notification references an unlinked Withings account."""

    http_status = 404
    code = "unknown_vendor_user"

    def __init__(self, vendor_user_id: str) -> None:
        super().__init__(f"No platform user linked to Withings user {vendor_user_id}")
        self.vendor_user_id = vendor_user_id


__all__ = [
    "WithingsError",
    "WithingsConfigurationError",
    "WithingsNotConnectedError",
    "WithingsNeedsReconnectError",
    "WithingsAuthorizationDeniedError",
    "WithingsMissingParameterError",
    "WithingsStateMismatchError",
    "WithingsAPIError",
    "WithingsTransportError",
    "SubscriptionFailureCause",
    "WithingsSubscriptionError",
    "WithingsPersistenceError",
    "WithingsUnknownUserError",
]
