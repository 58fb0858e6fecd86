"""
Core Module

Foundational components: configuration, logging, and exceptions.
"""

from .exceptions import (
    BackendError,
    BackendUnavailableError,
    ConfigurationError,
    EnhanceStreamError,
    SessionNotFoundError,
    StorageError,
)
from .logging import (
    clear_session_id,
    get_logger,
    get_session_id,
    log_stage,
    set_session_id,
    setup_logging,
)

__all__ = [
    "BackendError",
    "BackendUnavailableError",
    "ConfigurationError",
    "EnhanceStreamError",
    "SessionNotFoundError",
    "StorageError",
    "clear_session_id",
    "get_logger",
    "get_session_id",
    "log_stage",
    "set_session_id",
    "setup_logging",
]
