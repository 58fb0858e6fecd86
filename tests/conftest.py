"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Test environment: no Redis, deterministic mock backend without delays.
# Set before any enhance_stream import so the settings singleton sees it.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("USE_MOCK_LLM_BACKEND", "true")
os.environ.setdefault("MOCK_CHUNK_DELAY_MS", "0")
os.environ.setdefault("LOG_FORMAT", "console")
for _key in ("OPENAI_API_KEY", "DEEPSEEK_API_KEY", "DEEP_SEEK", "GOOGLE_API_KEY"):
    os.environ.pop(_key, None)

from enhance_stream.core.config.settings import reload_settings  # noqa: E402
from enhance_stream.infrastructure.storage.session_store import SessionStore  # noqa: E402
from enhance_stream.llm_stream.backends.selector import BackendSelector  # noqa: E402
from enhance_stream.llm_stream.services.enhancement_orchestrator import (  # noqa: E402
    EnhancementOrchestrator,
)
from enhance_stream.llm_stream.transport.sse_transport import StreamTransport  # noqa: E402
from tests.test_fixtures import (  # noqa: E402
    InMemoryRedis,
    RecordingConnection,
    ScriptedBackend,
    text_chunks,
)

# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def test_settings():
    """Fresh settings read from the test environment."""
    return reload_settings()


@pytest.fixture(autouse=True)
def _reset_settings():
    """Tests that patch the environment must not leak settings into others."""
    yield
    reload_settings()


# ============================================================================
# Infrastructure Fixtures
# ============================================================================


@pytest.fixture
def in_memory_redis_client():
    """Connected in-memory Redis stand-in."""
    return InMemoryRedis()


@pytest.fixture
def memory_store():
    """Session store without Redis."""
    return SessionStore(None, ttl_seconds=60)


@pytest.fixture
def redis_store(in_memory_redis_client):
    """Session store backed by the in-memory Redis stand-in."""
    return SessionStore(in_memory_redis_client, ttl_seconds=60)


@pytest.fixture
def transport():
    return StreamTransport()


@pytest.fixture
def connection():
    """Recording client connection."""
    return RecordingConnection()


# ============================================================================
# Backend Fixtures
# ============================================================================


@pytest.fixture
def sample_chunks():
    """Three chunks: "a", "bb", "ccc" with token costs 1, 2, 3."""
    return text_chunks("a", "bb", "ccc")


@pytest.fixture
def scripted_backend(sample_chunks):
    return ScriptedBackend(name="scripted", chunks=sample_chunks)


@pytest.fixture
def selector(scripted_backend):
    """Selector whose default backend is the scripted backend."""
    selector = BackendSelector(default="scripted")
    selector.register_instance(scripted_backend)
    return selector


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def orchestrator(memory_store, selector, transport, test_settings):
    """Orchestrator over the memory store, scripted backend and a fresh transport."""
    return EnhancementOrchestrator(
        store=memory_store,
        selector=selector,
        transport=transport,
        settings=test_settings,
    )
