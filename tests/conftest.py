"""Shared test fixtures and doubles."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from device_link import main
from device_link.platform.clients import RedisClient, get_redis
from device_link.platform.config import Settings, get_settings
from device_link.platform.wiring import provide_withings_api
from device_link.withings.application import WithingsConfig
from device_link.withings.infrastructure import (
    RedisCredentialRepository,
    RedisLiveVitalsRepository,
    RedisMeasurementRepository,
)

from tests.fakes import WithingsAPIFake


class RedisTransactionFake:
    """Queues commands and applies them in order on ``exec``."""

    def __init__(self, redis: "RedisFake") -> None:
        self._redis = redis
        self._commands: List[Callable[[], Any]] = []

    def get(self, key: str) -> "RedisTransactionFake":
        self._commands.append(lambda: self._redis.get(key))
        return self

    def set(
        self, key: str, value: str, ex: Optional[int] = None, nx: bool = False
    ) -> "RedisTransactionFake":
        self._commands.append(lambda: self._redis.set(key, value, ex=ex, nx=nx))
        return self

    def delete(self, *keys: str) -> "RedisTransactionFake":
        self._commands.append(lambda: self._redis.delete(*keys))
        return self

    def zadd(self, key: str, scores: Dict[str, float]) -> "RedisTransactionFake":
        self._commands.append(lambda: self._redis.zadd(key, scores))
        return self

    def exec(self) -> List[Any]:
        self._redis.transactions += 1
        self._redis._maybe_fail()
        return [command() for command in self._commands]


class RedisFake(RedisClient):
    """In-memory Redis double covering the commands the repositories use."""

    def __init__(self) -> None:
        self.store: Dict[str, str] = {}
        self.sorted_sets: Dict[str, Dict[str, float]] = {}
        self.expirations: Dict[str, Optional[int]] = {}
        self.transactions = 0
        self._failure: Exception | None = None

    def fail_with(self, error: Exception) -> "RedisFake":
        """Make every following command raise ``error``."""

        self._failure = error
        return self

    def _maybe_fail(self) -> None:
        if self._failure is not None:
            raise self._failure

    def get(self, key: str) -> Optional[str]:
        self._maybe_fail()
        return self.store.get(key)

    def mget(self, *keys: str) -> List[Optional[str]]:
        self._maybe_fail()
        return [self.store.get(key) for key in keys]

    def set(
        self, key: str, value: str, ex: Optional[int] = None, nx: bool = False
    ) -> Optional[bool]:
        self._maybe_fail()
        if nx and key in self.store:
            return None
        self.store[key] = value
        self.expirations[key] = ex
        return True

    def delete(self, *keys: str) -> int:
        self._maybe_fail()
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            if self.sorted_sets.pop(key, None) is not None:
                removed += 1
        return removed

    def zadd(self, key: str, scores: Dict[str, float]) -> int:
        self._maybe_fail()
        members = self.sorted_sets.setdefault(key, {})
        added = sum(1 for member in scores if member not in members)
        members.update(scores)
        return added

    def zrange(
        self,
        key: str,
        start: Union[float, str],
        stop: Union[float, str],
        sortby: Optional[str] = None,
        rev: bool = False,
    ) -> List[str]:
        self._maybe_fail()
        ordered = sorted(
            self.sorted_sets.get(key, {}).items(), key=lambda item: (item[1], item[0])
        )
        if sortby == "BYSCORE":
            low, high = _score_bound(start), _score_bound(stop)
            members = [member for member, score in ordered if low <= score <= high]
        else:
            end = None if int(stop) == -1 else int(stop) + 1
            members = [member for member, _ in ordered[int(start):end]]
        return list(reversed(members)) if rev else members

    def multi(self) -> RedisTransactionFake:
        return RedisTransactionFake(self)


def _score_bound(value: Union[float, str]) -> float:
    if value == "-inf":
        return float("-inf")
    if value == "+inf":
        return float("inf")
    return float(value)


class FrozenClock:
    """Mutable clock injected wherever services accept ``clock``."""

    def __init__(self, current: datetime) -> None:
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        self._current = current

    def __call__(self) -> datetime:
        return self._current

    @property
    def current(self) -> datetime:
        return self._current

    def set(self, new_value: datetime) -> None:
        if new_value.tzinfo is None:
            new_value = new_value.replace(tzinfo=timezone.utc)
        self._current = new_value

    def advance(self, **delta: Any) -> None:
        self._current += timedelta(**delta)


@pytest.fixture
def settings() -> Settings:
    """Canonical settings instance reused across tests."""

    return Settings(
        wbsapi_url="https://wbs.example.com",
        withings_client_id="withings-client",
        withings_client_secret="withings-secret",
        withings_redirect_uri="https://app.example.com/withings/callback",
        withings_webhook_url="https://api.example.com/withings-webhook",
        upstash_redis_rest_url="https://redis.example.com",
        upstash_redis_rest_token="redis-token",
        session_jwt_secret="session-secret-for-tests-0123456789abcdef",
    )


@pytest.fixture
def withings_config() -> WithingsConfig:
    return WithingsConfig(
        client_id="withings-client",
        client_secret="withings-secret",
        redirect_uri="https://app.example.com/withings/callback",
        webhook_url="https://api.example.com/withings-webhook",
        api_url="https://wbs.example.com",
    )


@pytest.fixture
def frozen_clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 11, 14, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def redis_fake() -> RedisFake:
    return RedisFake()


@pytest.fixture
def withings_api_fake() -> WithingsAPIFake:
    return WithingsAPIFake()


@pytest.fixture
def credential_repository(redis_fake: RedisFake) -> RedisCredentialRepository:
    return RedisCredentialRepository(redis_fake)


@pytest.fixture
def measurement_repository(redis_fake: RedisFake) -> RedisMeasurementRepository:
    return RedisMeasurementRepository(redis_fake)


@pytest.fixture
def live_vitals_repository(redis_fake: RedisFake) -> RedisLiveVitalsRepository:
    return RedisLiveVitalsRepository(redis_fake)


@pytest.fixture
def app(
    settings: Settings,
    redis_fake: RedisFake,
    withings_api_fake: WithingsAPIFake,
) -> Iterator[FastAPI]:
    """Configured FastAPI application instance for integration tests."""

    app = main.app
    overrides = {
        get_settings: lambda: settings,
        get_redis: lambda: redis_fake,
        provide_withings_api: lambda: withings_api_fake,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield app
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    """Async HTTP client bound to the FastAPI app."""

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as api_client:
        yield api_client
