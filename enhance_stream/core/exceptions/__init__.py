"""
Exception hierarchy for the enhancement streaming service.

    EnhanceStreamError
    ├── ConfigurationError
    ├── SessionError
    │   ├── SessionNotFoundError
    │   │   └── SessionOwnershipError
    │   ├── InvalidSessionTransitionError
    │   └── StreamAlreadyActiveError
    ├── BackendUnavailableError
    ├── BackendError
    │   ├── BackendAuthenticationError
    │   ├── BackendRateLimitError
    │   ├── BackendConnectionError
    │   └── BackendAPIError
    └── StorageError
        ├── StorageConnectionError
        └── StorageOperationError
"""

from enhance_stream.core.exceptions.backend import (
    BackendAPIError,
    BackendAuthenticationError,
    BackendConnectionError,
    BackendError,
    BackendRateLimitError,
    BackendUnavailableError,
)
from enhance_stream.core.exceptions.base import ConfigurationError, EnhanceStreamError
from enhance_stream.core.exceptions.session import (
    InvalidSessionTransitionError,
    SessionError,
    SessionNotFoundError,
    SessionOwnershipError,
    StreamAlreadyActiveError,
)
from enhance_stream.core.exceptions.storage import (
    StorageConnectionError,
    StorageError,
    StorageOperationError,
)

__all__ = [
    "EnhanceStreamError",
    "ConfigurationError",
    "SessionError",
    "SessionNotFoundError",
    "SessionOwnershipError",
    "InvalidSessionTransitionError",
    "StreamAlreadyActiveError",
    "BackendUnavailableError",
    "BackendError",
    "BackendAuthenticationError",
    "BackendRateLimitError",
    "BackendConnectionError",
    "BackendAPIError",
    "StorageError",
    "StorageConnectionError",
    "StorageOperationError",
]
