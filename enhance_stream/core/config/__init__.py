"""
Configuration Module

Centralized, type-safe configuration for the enhancement streaming service.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Enums (Stage, SessionStatus, EnhanceAction, ...), event
  names, Redis key prefixes, the backend price table
- **backend_registry.py**: generation backend registration at startup

Usage:
------
```python
from enhance_stream.core.config import get_settings
from enhance_stream.core.config.constants import SessionStatus, Stage

settings = get_settings()
redis_host = settings.redis.REDIS_HOST
```

Testing:
-------
```python
import os
from enhance_stream.core.config import reload_settings

os.environ["USE_MOCK_LLM_BACKEND"] = "true"
settings = reload_settings()
```
"""

from enhance_stream.core.config.constants import (
    BACKEND_PRICING,
    SSE_RESPONSE_HEADERS,
    BackendName,
    ContextSection,
    EnhanceAction,
    FieldType,
    SessionStatus,
    Stage,
    StreamEventType,
)
from enhance_stream.core.config.settings import Settings, get_settings, reload_settings

# NOTE: backend_registry is not imported here to avoid circular imports
# Import it directly: from enhance_stream.core.config.backend_registry import register_backends

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "BACKEND_PRICING",
    "SSE_RESPONSE_HEADERS",
    "BackendName",
    "ContextSection",
    "EnhanceAction",
    "FieldType",
    "SessionStatus",
    "Stage",
    "StreamEventType",
]
