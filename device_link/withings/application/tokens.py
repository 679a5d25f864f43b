"""Token lifecycle: refresh on demand and de-provision on rejection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from ...models.credential import WithingsCredential
from ...models.time import Clock, utc_now
from .config import WithingsConfig
from .errors import (
    WithingsAPIError,
    WithingsNeedsReconnectError,
    WithingsNotConnectedError,
    WithingsTransportError,
)
from .ports import CredentialRepository, WithingsAPIPort

logger = logging.getLogger(__name__)


def mask_token(token: Optional[str]) -> str:
    """Mask a token for log output, keeping only its last characters."""

    if not token:
        return "<none>"
    if len(token) < 10:
        return "*****"
    return f"*****{token[-4:]}"


@dataclass
class TokenRefresher:
    """Exchange a refresh token for a new pair, deleting the credential on rejection.

    A refresh token Withings has rejected once will be rejected again, so the
    credential is removed immediately and the user has to link again. Transport
    failures leave the credential in place.
    """

    api: WithingsAPIPort
    credentials: CredentialRepository
    config: WithingsConfig = field(default_factory=WithingsConfig)
    clock: Clock = utc_now

    async def refresh(self, credential: WithingsCredential) -> WithingsCredential:
        logger.info(
            "Refreshing Withings token for user %s (refresh token %s)",
            credential.user_id,
            mask_token(credential.refresh_token),
        )
        try:
            grant = await self.api.refresh_access_token(credential.refresh_token)
        except WithingsTransportError:
            raise
        except WithingsAPIError as exc:
            logger.warning(
                "Withings rejected refresh for user %s (status %s); deleting credential",
                credential.user_id,
                exc.vendor_status,
            )
            await self.credentials.delete(credential.user_id)
            raise WithingsNeedsReconnectError(
                "Token expired and refresh failed. Please reconnect your device."
            ) from exc

        expires_in = grant.expires_in or self.config.default_expires_in
        refreshed = credential.rotated(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=self.clock() + timedelta(seconds=expires_in),
        )
        await self.credentials.save(refreshed)
        return refreshed


@dataclass
class AccessTokenProvider:
    """Return a usable credential, refreshing it when close to expiry."""

    credentials: CredentialRepository
    refresher: TokenRefresher
    expiry_buffer: timedelta = timedelta(seconds=300)
    clock: Clock = utc_now

    async def valid_credential(self, user_id: str) -> WithingsCredential:
        credential = await self.credentials.get(user_id)
        if credential is None:
            raise WithingsNotConnectedError()

        if credential.expires_within(self.expiry_buffer, self.clock()):
            return await self.refresher.refresh(credential)
        return credential


__all__ = ["TokenRefresher", "AccessTokenProvider", "mask_token"]
