"""
Error Handling
==============

Two layers turn exceptions into JSON responses:

1. ``handle_enhance_stream_error``: a FastAPI exception handler for the
   domain hierarchy. It answers with the exception's ``status_code`` and a
   ``{error, message, details}`` body.
2. ``ErrorHandlingMiddleware``: a catch-all for everything else. Full
   details are logged server-side; clients get a generic 500 unless
   tracebacks are enabled for development.

Ownership mismatches are rendered exactly like unknown sessions, so a
response never tells a caller that someone else's session exists.
"""

import traceback
from collections.abc import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from enhance_stream.core.config.constants import Stage
from enhance_stream.core.exceptions import EnhanceStreamError, SessionNotFoundError
from enhance_stream.core.logging.logger import get_logger

logger = get_logger(__name__)


async def handle_enhance_stream_error(request: Request, exc: EnhanceStreamError) -> JSONResponse:
    """Render a domain exception with its own status code."""
    if isinstance(exc, SessionNotFoundError):
        # Same body for "missing" and "not yours"
        content = {"error": SessionNotFoundError.error_code, "message": "Session not found", "details": {}}
    else:
        content = {"error": exc.error_code, "message": exc.message, "details": exc.details}

    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        stage=Stage.HTTP,
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
        code=exc.error_code,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=content)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Last line of defense for exceptions no handler claimed.

    Args:
        app: The ASGI application
        include_traceback: Add the stack trace to the response body
            (development only)
    """

    def __init__(self, app, include_traceback: bool = False):
        super().__init__(app)
        self.include_traceback = include_traceback

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            method = request.method
            path = request.url.path
            error_type = type(e).__name__

            logger.error(
                f"Unhandled exception in request: {method} {path}",
                stage=Stage.HTTP,
                method=method,
                path=path,
                error_type=error_type,
                error=str(e),
                exc_info=True,
            )

            error_response = {
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred while processing your request",
                "details": {"error_type": error_type},
            }
            if self.include_traceback:
                error_response["details"]["traceback"] = traceback.format_exc()
                error_response["details"]["detail"] = str(e)

            return JSONResponse(status_code=500, content=error_response)
