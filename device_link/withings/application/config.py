"""Process-wide Withings client configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional, Tuple

from .errors import WithingsConfigurationError

DEFAULT_API_URL = "https://wbsapi.withings.net"
DEFAULT_AUTHORIZE_URL = "https://account.withings.com/oauth2_user/authorize2"


@dataclass(frozen=True)
class WithingsConfig:
    """Vendor credentials and endpoints injected into the Withings services."""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: Optional[str] = None
    webhook_url: Optional[str] = None
    scopes: str = "user.info,user.metrics"
    api_url: str = DEFAULT_API_URL
    authorize_url: str = DEFAULT_AUTHORIZE_URL
    notify_applis: Tuple[int, ...] = field(default=(1, 2, 4))
    expiry_buffer: timedelta = timedelta(seconds=300)
    default_expires_in: int = 10800
    default_sync_days: int = 7

    def require_client_id(self) -> str:
        if not self.client_id:
            raise WithingsConfigurationError("WITHINGS_CLIENT_ID")
        return self.client_id

    def require_client_credentials(self) -> Tuple[str, str]:
        client_id = self.require_client_id()
        if not self.client_secret:
            raise WithingsConfigurationError("WITHINGS_CLIENT_SECRET")
        return client_id, self.client_secret

    def require_redirect_uri(self) -> str:
        if not self.redirect_uri:
            raise WithingsConfigurationError("WITHINGS_REDIRECT_URI")
        return self.redirect_uri

    def require_webhook_url(self) -> str:
        if not self.webhook_url:
            raise WithingsConfigurationError("WITHINGS_WEBHOOK_URL")
        return self.webhook_url


__all__ = ["WithingsConfig", "DEFAULT_API_URL", "DEFAULT_AUTHORIZE_URL"]
