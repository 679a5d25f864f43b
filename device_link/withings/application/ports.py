"""Ports for interacting with Withings and the persistence store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from ...models.credential import WithingsCredential
from ...models.measurement import DeviceType, LiveVitalsEntry, Measurement


@dataclass(frozen=True)
class TokenGrant:
    """Token pair issued by the Withings token endpoint."""

    access_token: str
    refresh_token: Optional[str]
    expires_in: Optional[int]
    vendor_user_id: Optional[str] = None
    scope: str = ""


@dataclass(frozen=True)
class MeasurementWindow:
    """Time window requested from ``getmeas``.

    Either ``startdate``/``enddate`` or ``lastupdate`` is sent, never both.
    """

    startdate: Optional[datetime] = None
    enddate: Optional[datetime] = None
    lastupdate: Optional[datetime] = None


@runtime_checkable
class WithingsAPIPort(Protocol):
    """Withings HTTP operations used by the application services."""

    async def exchange_authorization_code(
        self, code: str, redirect_uri: str
    ) -> TokenGrant:
        """Trade an authorization code for the initial token pair."""

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Trade a refresh token for a new token pair."""

    async def get_measure_groups(
        self,
        access_token: str,
        window: MeasurementWindow,
        meastypes: Optional[Sequence[int]] = None,
    ) -> List[Dict[str, Any]]:
        """Return raw ``measuregrps`` for the window."""

    async def subscribe_notifications(
        self, access_token: str, callback_url: str, appli: int
    ) -> Dict[str, Any]:
        """Register ``callback_url`` and return the raw vendor payload."""


class CredentialRepository(ABC):
    """Token store keyed by platform user id."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[WithingsCredential]:
        """Return the stored credential or ``None``."""

    @abstractmethod
    async def get_by_vendor_user(self, vendor_user_id: str) -> Optional[WithingsCredential]:
        """Return the credential linked to a Withings ``userid``."""

    @abstractmethod
    async def save(self, credential: WithingsCredential) -> None:
        """Create or overwrite the user's credential."""

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Remove the user's credential; return whether one existed."""


class MeasurementRepository(ABC):
    """Append-only measurement store deduplicated by natural key."""

    @abstractmethod
    async def insert_many(self, measurements: Sequence[Measurement]) -> int:
        """Atomically insert unseen measurements and return how many were new."""

    @abstractmethod
    async def list_for_user(
        self, user_id: str, since: Optional[datetime] = None
    ) -> List[Measurement]:
        """Return the user's measurements ordered by ``measured_at``."""


class LiveVitalsRepository(ABC):
    """Latest-reading projection keyed by (user, device type)."""

    @abstractmethod
    async def get(self, user_id: str, device_type: DeviceType) -> Optional[LiveVitalsEntry]:
        ...

    @abstractmethod
    async def save(self, entry: LiveVitalsEntry) -> None:
        ...

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[LiveVitalsEntry]:
        ...


__all__ = [
    "TokenGrant",
    "MeasurementWindow",
    "WithingsAPIPort",
    "CredentialRepository",
    "MeasurementRepository",
    "LiveVitalsRepository",
]
