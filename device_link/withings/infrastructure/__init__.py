"""Infrastructure adapters for the Withings integration."""

from .client import WithingsAPIClient, create_withings_api_client
from .repositories import (
    RedisCredentialRepository,
    RedisLiveVitalsRepository,
    RedisMeasurementRepository,
    create_redis_repositories,
)

__all__ = [
    "WithingsAPIClient",
    "create_withings_api_client",
    "RedisCredentialRepository",
    "RedisLiveVitalsRepository",
    "RedisMeasurementRepository",
    "create_redis_repositories",
]
