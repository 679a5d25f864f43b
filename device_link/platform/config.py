from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Hosting environments define upper-case names (``WITHINGS_CLIENT_ID``),
    # so matching is case-insensitive. A local ``.env`` file is honoured too.
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    wbsapi_url: str = "https://wbsapi.withings.net"
    withings_authorize_url: str = "https://account.withings.com/oauth2_user/authorize2"
    # Optional so a missing value surfaces as a configuration error on the
    # Withings endpoints instead of preventing the whole app from starting.
    withings_client_id: Optional[str] = None
    withings_client_secret: Optional[str] = None
    withings_redirect_uri: Optional[str] = None
    withings_scopes: str = "user.info,user.metrics"
    withings_webhook_url: Optional[str] = None
    withings_notify_applis: List[int] = [1, 2, 4]
    withings_token_expiry_buffer: int = 300
    withings_default_expires_in: int = 10800
    withings_default_sync_days: int = 7
    withings_request_timeout: float = 30.0

    upstash_redis_rest_url: str
    upstash_redis_rest_token: str

    session_jwt_secret: str
    session_jwt_algorithm: str = "HS256"

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
