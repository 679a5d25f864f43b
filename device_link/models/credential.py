from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WithingsCredential(BaseModel):
    """OAuth credential linking one platform user to their Withings account."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., description="Platform user owning the credential")
    access_token: str
    refresh_token: str
    vendor_user_id: str = Field(..., description="Withings ``userid`` of the account")
    expires_at: datetime = Field(..., description="Absolute UTC expiry of the access token")
    scope: str = ""

    def expires_within(self, buffer: timedelta, now: datetime) -> bool:
        """Return ``True`` when the access token expires before ``now + buffer``."""

        return self.expires_at <= now + buffer

    def rotated(
        self,
        *,
        access_token: str,
        refresh_token: Optional[str],
        expires_at: datetime,
    ) -> "WithingsCredential":
        """Return a copy carrying a freshly issued token pair."""

        return self.model_copy(
            update={
                "access_token": access_token,
                "refresh_token": refresh_token or self.refresh_token,
                "expires_at": expires_at,
            }
        )


__all__ = ["WithingsCredential"]
