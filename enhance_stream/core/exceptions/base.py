"""
Base Exception Class

This module contains ONLY the base exception class that all other exceptions
inherit from. Specialized exceptions live in their themed modules.
"""

from typing import Any


class EnhanceStreamError(Exception):
    """
    Base exception for all enhancement streaming errors.

    Every subclass carries a machine readable ``error_code`` (used as the
    ``code`` of an ``error`` stream event) and the HTTP ``status_code`` the
    API layer answers with when the error escapes a route.

    Attributes:
        message: Error message
        session_id: Session ID for correlation (if available)
        details: Additional error details (dict)

    Example:
        raise BackendError(
            "Gemini stream failed",
            session_id="abc-123",
            details={"backend": "gemini", "model": "gemini-1.5-flash"},
        )
    """

    error_code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(
        self, message: str, session_id: str | None = None, details: dict[str, Any] | None = None
    ):
        self.message = message
        self.session_id = session_id
        self.details = (details or {}).copy()
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for logging/API responses.

        Returns:
            Dict with error_type, code, message, session_id, and details
        """
        return {
            "error_type": self.__class__.__name__,
            "code": self.error_code,
            "message": self.message,
            "session_id": self.session_id,
            "details": self.details,
        }

    def with_context(self, **context) -> "EnhanceStreamError":
        """
        Add additional context to the error details.

        Returns:
            Self (for method chaining)
        """
        self.details.update(context)
        return self

    def __repr__(self) -> str:
        details_str = f", details={self.details}" if self.details else ""
        session_str = f", session_id='{self.session_id}'" if self.session_id else ""
        return f"{self.__class__.__name__}(message='{self.message}'{session_str}{details_str})"

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        message: str | None = None,
        session_id: str | None = None,
        **details,
    ) -> "EnhanceStreamError":
        """
        Create an instance of this class wrapping another exception.

        Example:
            >>> try:
            ...     await client.models.list()
            ... except openai.APIConnectionError as e:
            ...     raise BackendConnectionError.from_exception(e, backend="openai") from e
        """
        error_message = message or str(exc) or exc.__class__.__name__
        error_details = {
            "original_error": exc.__class__.__name__,
            "original_message": str(exc),
            **details,
        }
        return cls(error_message, session_id=session_id, details=error_details)


class ConfigurationError(EnhanceStreamError):
    """Raised when configuration is invalid or missing."""

    error_code = "CONFIGURATION_ERROR"
