"""
Test Fixtures Package

Reusable test doubles for generation backends, client connections and
Redis.
"""

from tests.test_fixtures.backend_factory import (
    BlockingBackend,
    CheckRaisingBackend,
    ScriptedBackend,
    text_chunks,
)
from tests.test_fixtures.connection_factory import RecordingConnection
from tests.test_fixtures.redis_factory import InMemoryRedis

__all__ = [
    "BlockingBackend",
    "InMemoryRedis",
    "CheckRaisingBackend",
    "RecordingConnection",
    "ScriptedBackend",
    "text_chunks",
]
