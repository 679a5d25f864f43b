from .config import Settings, get_settings
from .security import get_current_user_id, session_bearer
from .clients import RedisClient, get_redis

__all__ = [
    "Settings",
    "get_settings",
    "get_current_user_id",
    "session_bearer",
    "RedisClient",
    "get_redis",
]
