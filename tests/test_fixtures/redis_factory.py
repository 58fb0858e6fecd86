"""
Redis Test Factory

An in-memory stand-in for RedisClient implementing the subset of commands
the session store uses. ``fail`` makes every command raise the same error
the real client raises when Redis misbehaves.
"""

import asyncio

from enhance_stream.core.exceptions import StorageOperationError


class InMemoryRedis:
    def __init__(self, connected: bool = True):
        self.data: dict[str, str] = {}
        self.sets: dict[str, set[str]] = {}
        self.ttl_data: dict[str, float] = {}
        self.connected = connected
        self.fail = False
        self.calls: list[str] = []

    def _check(self, command: str) -> None:
        self.calls.append(command)
        if self.fail:
            raise StorageOperationError(f"Redis {command} failed", details={"command": command})

    def _expired(self, key: str) -> bool:
        expires_at = self.ttl_data.get(key)
        if expires_at is not None and asyncio.get_running_loop().time() > expires_at:
            self.data.pop(key, None)
            self.sets.pop(key, None)
            self.ttl_data.pop(key, None)
            return True
        return False

    def is_connected(self) -> bool:
        return self.connected

    async def get(self, key):
        self._check("get")
        if self._expired(key):
            return None
        return self.data.get(key)

    async def set(self, key, value, ttl=None):
        self._check("set")
        self.data[key] = value
        if ttl:
            self.ttl_data[key] = asyncio.get_running_loop().time() + ttl
        else:
            self.ttl_data.pop(key, None)
        return True

    async def expire(self, key, ttl):
        self._check("expire")
        if key not in self.data and key not in self.sets:
            return False
        self.ttl_data[key] = asyncio.get_running_loop().time() + ttl
        return True

    async def sadd(self, key, *members):
        self._check("sadd")
        existing = self.sets.setdefault(key, set())
        added = len(set(members) - existing)
        existing.update(members)
        return added

    async def smembers(self, key):
        self._check("smembers")
        if self._expired(key):
            return set()
        return set(self.sets.get(key, set()))

    async def srem(self, key, *members):
        self._check("srem")
        existing = self.sets.get(key, set())
        removed = len(existing & set(members))
        existing.difference_update(members)
        return removed

    async def health_check(self):
        return {"status": "healthy" if self.connected else "unhealthy", "connected": self.connected}
