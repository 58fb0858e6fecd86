"""
Generation Backend Exceptions

All exceptions related to generation backends (OpenAI, DeepSeek, Gemini, mock).
"""

from enhance_stream.core.exceptions.base import EnhanceStreamError


class BackendUnavailableError(EnhanceStreamError):
    """
    Raised when no generation backend can be resolved.

    Common causes:
    - Unknown backend name requested explicitly
    - Default and every fallback backend failed their availability check
    - No API key configured and the mock backend disabled
    """

    error_code = "BACKEND_UNAVAILABLE"
    status_code = 503


class BackendError(EnhanceStreamError):
    """Base exception for failures of a backend while producing chunks."""

    error_code = "BACKEND_ERROR"
    status_code = 502


class BackendAuthenticationError(BackendError):
    """
    Raised when the backend rejects our credentials.

    Common causes:
    - Invalid or expired API key
    - Insufficient permissions on the account
    """

    error_code = "BACKEND_AUTHENTICATION_ERROR"


class BackendRateLimitError(BackendError):
    """Raised when the backend throttles our requests."""

    error_code = "BACKEND_RATE_LIMITED"


class BackendConnectionError(BackendError):
    """Raised on network failures or timeouts talking to the backend."""

    error_code = "BACKEND_CONNECTION_ERROR"


class BackendAPIError(BackendError):
    """
    Raised when the backend API returns an error.

    Common causes:
    - Unsupported model
    - Content policy violation
    - Token limit exceeded
    """

    error_code = "BACKEND_API_ERROR"
