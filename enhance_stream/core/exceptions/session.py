"""
Session Exceptions

Errors raised by the session store and the orchestrator's session lookups.
"""

from enhance_stream.core.exceptions.base import EnhanceStreamError


class SessionError(EnhanceStreamError):
    """Base exception for session lifecycle errors."""

    error_code = "SESSION_ERROR"
    status_code = 400


class SessionNotFoundError(SessionError):
    """
    Raised when a session does not exist or is not visible to the requester.

    Unknown sessions and sessions owned by someone else are reported the
    same way so that the existence of a session is never revealed.
    """

    error_code = "SESSION_NOT_FOUND"
    status_code = 404

    def __init__(self, message: str = "Session not found", session_id=None, details=None):
        super().__init__(message, session_id=session_id, details=details)


class SessionOwnershipError(SessionNotFoundError):
    """
    Raised when a requester addresses a session owned by another user.

    Rendered to clients exactly like SessionNotFoundError; the distinct
    class only exists so the mismatch is visible in server logs.
    """


class InvalidSessionTransitionError(SessionError):
    """Raised when an update would move a session's status backwards."""

    error_code = "INVALID_SESSION_TRANSITION"
    status_code = 409


class StreamAlreadyActiveError(SessionError):
    """Raised when a second stream is requested for a session already streaming here."""

    error_code = "STREAM_ALREADY_ACTIVE"
    status_code = 409
