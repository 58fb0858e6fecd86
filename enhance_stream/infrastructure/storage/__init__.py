from enhance_stream.infrastructure.storage.redis_client import (
    RedisClient,
    close_redis,
    get_redis_client,
    init_redis,
)
from enhance_stream.infrastructure.storage.session_store import (
    InMemorySessionRepository,
    RedisSessionRepository,
    SessionRepository,
    SessionStore,
)

__all__ = [
    "InMemorySessionRepository",
    "RedisClient",
    "RedisSessionRepository",
    "SessionRepository",
    "SessionStore",
    "close_redis",
    "get_redis_client",
    "init_redis",
]
