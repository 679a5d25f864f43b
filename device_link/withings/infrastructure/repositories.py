"""Upstash Redis persistence for credentials, measurements and live vitals."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional, Sequence, Union

import httpx
from upstash_redis.errors import UpstashError

from ...models.credential import WithingsCredential
from ...models.measurement import DeviceType, LiveVitalsEntry, Measurement
from ...models.time import to_unix
from ...platform.clients import RedisClient
from ..application.errors import WithingsPersistenceError
from ..application.ports import (
    CredentialRepository,
    LiveVitalsRepository,
    MeasurementRepository,
)

logger = logging.getLogger(__name__)

KEY_PREFIX = "withings"


def credential_key(user_id: str) -> str:
    return f"{KEY_PREFIX}:credential:{user_id}"


def vendor_user_key(vendor_user_id: str) -> str:
    return f"{KEY_PREFIX}:vendor-user:{vendor_user_id}"


def measurement_key(natural_key: str) -> str:
    return f"{KEY_PREFIX}:measurement:{natural_key}"


def measurement_index_key(user_id: str) -> str:
    return f"{KEY_PREFIX}:measurements:{user_id}"


def live_vitals_key(user_id: str, device_type: DeviceType) -> str:
    return f"{KEY_PREFIX}:vitals:{user_id}:{device_type.value}"


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (UpstashError, httpx.HTTPError) as exc:
        logger.error("Redis %s failed: %s", operation, exc)
        raise WithingsPersistenceError(f"Storage failure during {operation}") from exc


class RedisCredentialRepository(CredentialRepository):
    """One JSON credential per user plus a Withings ``userid`` index."""

    def __init__(self, redis: RedisClient) -> None:
        self._redis = redis

    async def get(self, user_id: str) -> Optional[WithingsCredential]:
        with _store_errors("credential read"):
            raw = self._redis.get(credential_key(user_id))
        if raw is None:
            return None
        return WithingsCredential.model_validate_json(raw)

    async def get_by_vendor_user(self, vendor_user_id: str) -> Optional[WithingsCredential]:
        with _store_errors("vendor user lookup"):
            user_id = self._redis.get(vendor_user_key(vendor_user_id))
        if user_id is None:
            return None
        credential = await self.get(user_id)
        if credential is None or credential.vendor_user_id != vendor_user_id:
            return None
        return credential

    async def save(self, credential: WithingsCredential) -> None:
        previous = await self.get(credential.user_id)
        with _store_errors("credential write"):
            tx = self._redis.multi()
            if previous is not None and previous.vendor_user_id != credential.vendor_user_id:
                tx.delete(vendor_user_key(previous.vendor_user_id))
            tx.set(credential_key(credential.user_id), credential.model_dump_json())
            tx.set(vendor_user_key(credential.vendor_user_id), credential.user_id)
            tx.exec()

    async def delete(self, user_id: str) -> bool:
        previous = await self.get(user_id)
        if previous is None:
            return False
        with _store_errors("credential delete"):
            removed = self._redis.delete(
                credential_key(user_id), vendor_user_key(previous.vendor_user_id)
            )
        logger.info("Deleted Withings credential for user %s", user_id)
        return bool(removed)


class RedisMeasurementRepository(MeasurementRepository):
    """Measurements stored under their natural key, indexed by time per user."""

    def __init__(self, redis: RedisClient) -> None:
        self._redis = redis

    async def insert_many(self, measurements: Sequence[Measurement]) -> int:
        if not measurements:
            return 0
        with _store_errors("measurement insert"):
            tx = self._redis.multi()
            for measurement in measurements:
                tx.set(
                    measurement_key(measurement.natural_key),
                    measurement.model_dump_json(),
                    nx=True,
                )
            for measurement in measurements:
                tx.zadd(
                    measurement_index_key(measurement.user_id),
                    {measurement.natural_key: to_unix(measurement.measured_at)},
                )
            results = tx.exec()
        # SET NX answers None for keys that already existed.
        return sum(1 for result in results[: len(measurements)] if result)

    async def list_for_user(
        self, user_id: str, since: Optional[datetime] = None
    ) -> List[Measurement]:
        start: Union[float, str] = to_unix(since) if since is not None else "-inf"
        with _store_errors("measurement list"):
            natural_keys = self._redis.zrange(
                measurement_index_key(user_id), start, "+inf", sortby="BYSCORE"
            )
            if not natural_keys:
                return []
            raw_values = self._redis.mget(
                *(measurement_key(key) for key in natural_keys)
            )
        measurements = (
            Measurement.model_validate_json(raw) for raw in raw_values if raw is not None
        )
        # A relinked Withings account leaves grpids owned by the previous user.
        return [m for m in measurements if m.user_id == user_id]


class RedisLiveVitalsRepository(LiveVitalsRepository):
    def __init__(self, redis: RedisClient) -> None:
        self._redis = redis

    async def get(self, user_id: str, device_type: DeviceType) -> Optional[LiveVitalsEntry]:
        with _store_errors("live vitals read"):
            raw = self._redis.get(live_vitals_key(user_id, device_type))
        if raw is None:
            return None
        return LiveVitalsEntry.model_validate_json(raw)

    async def save(self, entry: LiveVitalsEntry) -> None:
        with _store_errors("live vitals write"):
            self._redis.set(
                live_vitals_key(entry.user_id, entry.device_type), entry.model_dump_json()
            )

    async def list_for_user(self, user_id: str) -> List[LiveVitalsEntry]:
        device_types = list(DeviceType)
        with _store_errors("live vitals list"):
            raw_values = self._redis.mget(
                *(live_vitals_key(user_id, device_type) for device_type in device_types)
            )
        return [
            LiveVitalsEntry.model_validate_json(raw) for raw in raw_values if raw is not None
        ]


def create_redis_repositories(
    redis: RedisClient,
) -> tuple[RedisCredentialRepository, RedisMeasurementRepository, RedisLiveVitalsRepository]:
    return (
        RedisCredentialRepository(redis),
        RedisMeasurementRepository(redis),
        RedisLiveVitalsRepository(redis),
    )


__all__ = [
    "RedisCredentialRepository",
    "RedisMeasurementRepository",
    "RedisLiveVitalsRepository",
    "create_redis_repositories",
    "credential_key",
    "vendor_user_key",
    "measurement_key",
    "measurement_index_key",
    "live_vitals_key",
]
