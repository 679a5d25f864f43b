from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ...models.time import Clock, utc_now
from .ports import CredentialRepository


@dataclass(frozen=True)
class ConnectionStatus:
    connected: bool
    vendor_user_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    expires_soon: bool = False


@dataclass
class ConnectionService:
    """Report and remove a user's Withings link."""

    credentials: CredentialRepository
    expiry_buffer: timedelta = timedelta(seconds=300)
    clock: Clock = utc_now

    async def status(self, user_id: str) -> ConnectionStatus:
        credential = await self.credentials.get(user_id)
        if credential is None:
            return ConnectionStatus(connected=False)
        return ConnectionStatus(
            connected=True,
            vendor_user_id=credential.vendor_user_id,
            expires_at=credential.expires_at,
            expires_soon=credential.expires_within(self.expiry_buffer, self.clock()),
        )

    async def disconnect(self, user_id: str) -> bool:
        return await self.credentials.delete(user_id)


__all__ = ["ConnectionStatus", "ConnectionService"]
