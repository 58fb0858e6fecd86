"""
Structured Logging Module using structlog

This module provides structured logging with:
- Session ID correlation for every log entry emitted while handling a session
- Stage identifiers for following the session lifecycle in logs
- JSON formatting for log aggregation
- Automatic redaction of API keys and personal data

Usage:
    logger = get_logger(__name__)
    logger.info("Session created", stage=Stage.SESSION_CREATE, backend="gemini")
"""

import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

import structlog
from structlog.types import EventDict, WrappedLogger

from enhance_stream.core.config.settings import get_settings

# Session ID of the session being processed by the current task
session_id_ctx: ContextVar[str | None] = ContextVar("session_id", default=None)

_REDACTIONS = (
    (re.compile(r"\b[\w.-]+@[\w.-]+\.\w+\b"), "[EMAIL]"),
    (re.compile(r"\bsk-[a-zA-Z0-9_-]+\b"), "[REDACTED]"),
    (re.compile(r"\bAIza[a-zA-Z0-9_-]+\b"), "[REDACTED]"),
    (re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"), "[PHONE]"),
)


def add_session_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add session ID to log event from context variable.

    An explicit session_id passed to the log call wins over the context.
    """
    session_id = session_id_ctx.get()
    if session_id and "session_id" not in event_dict:
        event_dict["session_id"] = session_id
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add ISO timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def redact_pii(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Redact PII and secrets from log messages.

    Patterns redacted:
    - Email addresses -> [EMAIL]
    - API keys (sk-..., AIza...) -> [REDACTED]
    - Phone numbers -> [PHONE]
    """
    for field in ("event", "error"):
        value = event_dict.get(field)
        if isinstance(value, str):
            for pattern, replacement in _REDACTIONS:
                value = pattern.sub(replacement, value)
            event_dict[field] = value
    return event_dict


def add_log_level_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Upper-case the log level name."""
    if "level" in event_dict:
        event_dict["level"] = event_dict["level"].upper()
    return event_dict


def stringify_stage(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Render Stage enum members as their plain value."""
    stage = event_dict.get("stage")
    if stage is not None and hasattr(stage, "value"):
        event_dict["stage"] = stage.value
    return event_dict


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Setup structured logging with structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    settings = get_settings()

    log_level = log_level or settings.logging.LOG_LEVEL
    log_format = log_format or settings.logging.LOG_FORMAT

    logging.basicConfig(
        format="%(message)s", stream=sys.stdout, level=getattr(logging, log_level.upper())
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_session_id,
            add_timestamp,
            structlog.stdlib.add_log_level,
            add_log_level_name,
            stringify_stage,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            redact_pii,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        BoundLogger: Structured logger instance
    """
    return structlog.get_logger(name)


def set_session_id(session_id: str) -> None:
    """Bind a session ID to every log entry of the current task."""
    session_id_ctx.set(session_id)


def get_session_id() -> str | None:
    return session_id_ctx.get()


def clear_session_id() -> None:
    session_id_ctx.set(None)


def log_stage(
    logger: structlog.stdlib.BoundLogger, stage: str, message: str, level: str = "info", **kwargs
) -> None:
    """
    Log a message with stage information.

    Args:
        logger: Logger instance
        stage: Stage identifier (e.g. Stage.BACKEND_SELECTION)
        message: Log message
        level: Log level (debug, info, warning, error, critical)
        **kwargs: Additional fields to log

    Usage:
        log_stage(logger, Stage.BACKEND_SELECTION, "Fallback selected", backend="openai")
    """
    log_func = getattr(logger, level.lower())
    log_func(message, stage=stage, **kwargs)
