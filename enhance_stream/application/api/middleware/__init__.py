from enhance_stream.application.api.middleware.error_handler import (
    ErrorHandlingMiddleware,
    handle_enhance_stream_error,
)

__all__ = ["ErrorHandlingMiddleware", "handle_enhance_stream_error"]
