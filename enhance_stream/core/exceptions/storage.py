"""
Storage Exceptions

Errors raised by the Redis client backing the session store.
"""

from enhance_stream.core.exceptions.base import EnhanceStreamError


class StorageError(EnhanceStreamError):
    """Base exception for session storage errors."""

    error_code = "STORAGE_ERROR"
    status_code = 503


class StorageConnectionError(StorageError):
    """Raised when the Redis server cannot be reached."""

    error_code = "STORAGE_CONNECTION_ERROR"


class StorageOperationError(StorageError):
    """Raised when a Redis command fails."""

    error_code = "STORAGE_OPERATION_ERROR"
