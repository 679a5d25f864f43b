from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Union

from fastapi import Depends
from upstash_redis import Redis

from ..config import Settings, get_settings


class RedisTransaction(Protocol):
    """Queued commands executed atomically by ``exec``."""

    def get(self, key: str) -> Any:
        ...

    def set(
        self, key: str, value: str, ex: int | None = None, nx: bool = False
    ) -> Any:
        ...

    def delete(self, *keys: str) -> Any:
        ...

    def zadd(self, key: str, scores: Dict[str, float]) -> Any:
        ...

    def exec(self) -> List[Any]:
        ...


class RedisClient(Protocol):
    """Minimal Redis client interface used by the application."""

    def get(self, key: str) -> Optional[str]:
        ...

    def mget(self, *keys: str) -> List[Optional[str]]:
        ...

    def set(
        self, key: str, value: str, ex: int | None = None, nx: bool = False
    ) -> Optional[bool]:
        ...

    def delete(self, *keys: str) -> int:
        ...

    def zrange(
        self,
        key: str,
        start: Union[float, str],
        stop: Union[float, str],
        sortby: Optional[str] = None,
        rev: bool = False,
    ) -> List[str]:
        ...

    def multi(self) -> RedisTransaction:
        ...


def get_redis(settings: Settings = Depends(get_settings)) -> RedisClient:
    """Factory helper that provides a Redis client instance."""

    return Redis(
        url=settings.upstash_redis_rest_url,
        token=settings.upstash_redis_rest_token,
    )


__all__ = ["RedisClient", "RedisTransaction", "get_redis"]
