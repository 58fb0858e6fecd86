"""
Async Redis Client with Connection Pooling

Architecture:
    RedisClient (Public API)
        ├── ConnectionManager (Connection lifecycle)
        ├── OperationExecutor (Command execution with error handling)
        └── HealthMonitor (Health checks)

The session store only needs a small command surface (strings with TTL and
the owner index sets), so that is all the executor exposes.
"""

from __future__ import annotations

import time
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from enhance_stream.core.config.constants import Stage
from enhance_stream.core.config.settings import Settings, get_settings
from enhance_stream.core.exceptions import StorageConnectionError, StorageOperationError
from enhance_stream.core.logging.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle and pooling.

    Responsibility: Connection establishment, pooling, and cleanup.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis with connection pooling.

        Returns:
            redis.Redis: Connected Redis client

        Raises:
            StorageConnectionError: If connection fails
        """
        if self._is_connected and self._client:
            return self._client

        redis_settings = self._settings.redis
        try:
            self._pool = ConnectionPool(
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                db=redis_settings.REDIS_DB,
                password=redis_settings.REDIS_PASSWORD,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
                retry_on_timeout=True,
                health_check_interval=redis_settings.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True,
            )
            self._client = redis.Redis(connection_pool=self._pool)

            # Verify the connection actually works before reporting connected
            await self._client.ping()
            self._is_connected = True

            logger.info(
                "Redis connected successfully",
                stage=Stage.REDIS,
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
            )
            return self._client

        except (RedisError, OSError) as e:
            logger.error("Failed to connect to Redis", stage=Stage.REDIS, error=str(e))
            await self._release_pool()
            raise StorageConnectionError(
                message=f"Failed to connect to Redis: {e}",
                details={"host": redis_settings.REDIS_HOST, "port": redis_settings.REDIS_PORT},
            ) from e

    async def _release_pool(self) -> None:
        pool, self._pool = self._pool, None
        self._client = None
        if pool is not None:
            try:
                await pool.disconnect()
            except (RedisError, OSError) as e:
                logger.warning("Failed to release Redis pool", stage=Stage.REDIS, error=str(e))

    async def disconnect(self) -> None:
        """Close Redis client and pool."""
        if self._client:
            await self._client.aclose()

        if self._pool:
            await self._pool.disconnect()

        self._client = None
        self._pool = None
        self._is_connected = False

        logger.info("Redis disconnected", stage=Stage.REDIS)

    def get_client(self) -> redis.Redis | None:
        return self._client

    def is_connected(self) -> bool:
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTION
# =============================================================================


class OperationExecutor:
    """
    Executes Redis operations with consistent error handling.

    Every RedisError is logged with the command and key, then re-raised as
    StorageOperationError so callers only deal with our own hierarchy.
    """

    def __init__(self, redis_client: redis.Redis):
        self._redis = redis_client

    def _fail(self, command: str, error: RedisError, **context) -> StorageOperationError:
        logger.error(f"Redis {command} failed", stage=Stage.REDIS, error=str(error), **context)
        return StorageOperationError(message=f"Redis {command} failed: {error}", details=context)

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except RedisError as e:
            raise self._fail("GET", e, key=key) from e

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """
        Set value in Redis.

        Args:
            key: Redis key
            value: Value to set
            ttl: Time-to-live in seconds (optional)

        Returns:
            True if set successfully
        """
        try:
            result = await self._redis.set(key, value, ex=ttl)
            return result is not None
        except RedisError as e:
            raise self._fail("SET", e, key=key) from e

    async def expire(self, key: str, ttl: int) -> bool:
        try:
            return await self._redis.expire(key, ttl)
        except RedisError as e:
            raise self._fail("EXPIRE", e, key=key) from e

    async def sadd(self, key: str, *members: str) -> int:
        try:
            return await self._redis.sadd(key, *members)
        except RedisError as e:
            raise self._fail("SADD", e, key=key) from e

    async def smembers(self, key: str) -> set[str]:
        try:
            return await self._redis.smembers(key)
        except RedisError as e:
            raise self._fail("SMEMBERS", e, key=key) from e

    async def srem(self, key: str, *members: str) -> int:
        try:
            return await self._redis.srem(key, *members)
        except RedisError as e:
            raise self._fail("SREM", e, key=key) from e


# =============================================================================
# LAYER 3: HEALTH MONITORING
# =============================================================================


class HealthMonitor:
    """Reports Redis connectivity and ping latency for the health endpoint."""

    def __init__(self, connection_manager: ConnectionManager, settings: Settings):
        self._conn_mgr = connection_manager
        self._settings = settings

    async def health_check(self) -> dict[str, Any]:
        health: dict[str, Any] = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "host": self._settings.redis.REDIS_HOST,
            "port": self._settings.redis.REDIS_PORT,
            "ping_latency_ms": None,
        }

        client = self._conn_mgr.get_client()
        if not client:
            health["status"] = "unhealthy"
            health["error"] = "Client not initialized"
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except (RedisError, OSError) as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)

        return health


# =============================================================================
# LAYER 4: PUBLIC API
# =============================================================================


class RedisClient:
    """
    Async Redis client with connection pooling and health checks.

    Usage:
        client = RedisClient()
        await client.connect()
        await client.set("session:abc", payload, ttl=3600)
        value = await client.get("session:abc")
        await client.disconnect()

    Raises StorageConnectionError from every command while not connected.
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._conn_mgr = ConnectionManager(self._settings)
        self._executor: OperationExecutor | None = None
        self._health_monitor = HealthMonitor(self._conn_mgr, self._settings)

    async def connect(self) -> None:
        """
        Raises:
            StorageConnectionError: If connection fails
        """
        client = await self._conn_mgr.connect()
        self._executor = OperationExecutor(client)

    async def disconnect(self) -> None:
        await self._conn_mgr.disconnect()
        self._executor = None

    def is_connected(self) -> bool:
        return self._conn_mgr.is_connected() and self._executor is not None

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None:
            raise StorageConnectionError("Redis client is not connected")
        return self._executor

    async def get(self, key: str) -> str | None:
        return await self._require_executor().get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        return await self._require_executor().set(key, value, ttl=ttl)

    async def expire(self, key: str, ttl: int) -> bool:
        return await self._require_executor().expire(key, ttl)

    async def sadd(self, key: str, *members: str) -> int:
        return await self._require_executor().sadd(key, *members)

    async def smembers(self, key: str) -> set[str]:
        return await self._require_executor().smembers(key)

    async def srem(self, key: str, *members: str) -> int:
        return await self._require_executor().srem(key, *members)

    async def health_check(self) -> dict[str, Any]:
        return await self._health_monitor.health_check()


# =============================================================================
# Global instance
# =============================================================================

_redis_client: RedisClient | None = None


def get_redis_client() -> RedisClient:
    """
    Get the global Redis client instance (singleton).

    Returns:
        RedisClient: Global Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = RedisClient()

    return _redis_client


async def init_redis() -> RedisClient:
    """
    Initialize and connect the global Redis client.

    Raises:
        StorageConnectionError: If Redis cannot be reached
    """
    client = get_redis_client()
    await client.connect()
    return client


async def close_redis() -> None:
    """Close the global Redis client."""
    global _redis_client

    if _redis_client:
        await _redis_client.disconnect()
        _redis_client = None
