"""Pull Withings measurements, store them once, and project the latest vitals."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from ...models.measurement import LiveVitalsEntry, Measurement
from ...models.time import Clock, utc_now
from ..domain.normalization import (
    is_newer,
    latest_by_device_type,
    normalise_groups,
    to_live_entry,
)
from .errors import WithingsAPIError, WithingsNeedsReconnectError
from .ports import (
    CredentialRepository,
    LiveVitalsRepository,
    MeasurementRepository,
    MeasurementWindow,
    WithingsAPIPort,
)
from .tokens import AccessTokenProvider

logger = logging.getLogger(__name__)

# ``getmeas`` answers 401 in its JSON status when the access token was revoked.
STATUS_INVALID_TOKEN = 401


@dataclass(frozen=True)
class SyncResult:
    fetched: int
    inserted: int
    measurements: List[Measurement] = field(default_factory=list)
    live_vitals: List[LiveVitalsEntry] = field(default_factory=list)


@dataclass
class MeasurementSyncService:
    """Fetch, normalise and persist Withings measurements for one user."""

    api: WithingsAPIPort
    tokens: AccessTokenProvider
    credentials: CredentialRepository
    measurements: MeasurementRepository
    live_vitals: LiveVitalsRepository
    default_days: int = 7
    clock: Clock = utc_now

    def last_days(self, days: Optional[int] = None) -> MeasurementWindow:
        now = self.clock()
        return MeasurementWindow(
            startdate=now - timedelta(days=days or self.default_days), enddate=now
        )

    async def sync(
        self,
        user_id: str,
        window: Optional[MeasurementWindow] = None,
        meastypes: Optional[Sequence[int]] = None,
    ) -> SyncResult:
        credential = await self.tokens.valid_credential(user_id)
        window = window or self.last_days()

        try:
            groups = await self.api.get_measure_groups(
                credential.access_token, window, meastypes
            )
        except WithingsAPIError as exc:
            if exc.vendor_status != STATUS_INVALID_TOKEN:
                raise
            logger.warning(
                "Withings reported an invalid access token for user %s; deleting credential",
                user_id,
            )
            await self.credentials.delete(user_id)
            raise WithingsNeedsReconnectError(
                "Token invalid. Please reconnect your Withings device."
            ) from exc

        normalised = normalise_groups(user_id, groups)
        inserted = await self.measurements.insert_many(normalised) if normalised else 0
        logger.info(
            "Synced Withings measurements for user %s: %d groups, %d normalised, %d new",
            user_id,
            len(groups),
            len(normalised),
            inserted,
        )

        live = await self._update_live_vitals(normalised)
        return SyncResult(
            fetched=len(normalised),
            inserted=inserted,
            measurements=normalised,
            live_vitals=live,
        )

    async def _update_live_vitals(self, batch: Sequence[Measurement]) -> List[LiveVitalsEntry]:
        updated: List[LiveVitalsEntry] = []
        for device_type, measurement in latest_by_device_type(batch).items():
            candidate = to_live_entry(device_type, measurement)
            current = await self.live_vitals.get(measurement.user_id, device_type)
            if current is not None and not is_newer(candidate, current):
                continue
            await self.live_vitals.save(candidate)
            updated.append(candidate)
        return updated

    async def stored_measurements(
        self, user_id: str, since: Optional[datetime] = None
    ) -> List[Measurement]:
        return await self.measurements.list_for_user(user_id, since)


__all__ = ["SyncResult", "MeasurementSyncService", "STATUS_INVALID_TOKEN"]
