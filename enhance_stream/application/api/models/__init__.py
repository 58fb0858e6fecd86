from enhance_stream.application.api.models.enhancement import (
    CancelResponse,
    EnhanceOptions,
    EnhanceRequest,
    EnhanceResponse,
    ErrorResponse,
    FieldContext,
    SessionView,
    UsageView,
)

__all__ = [
    "CancelResponse",
    "EnhanceOptions",
    "EnhanceRequest",
    "EnhanceResponse",
    "ErrorResponse",
    "FieldContext",
    "SessionView",
    "UsageView",
]
