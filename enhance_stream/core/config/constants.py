"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the enhancement streaming service.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for magic numbers
- Type-safe enums for state management
- Wire-level event names in one place
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Processing stages used as the ``stage=`` field of every log entry.

    Format: {SEQUENCE}_{DESCRIPTIVE_NAME}
    - SEQUENCE: Numeric order for the stream lifecycle, alphabetic prefix
      for cross-cutting concerns
    - DESCRIPTIVE_NAME: Clear, uppercase description with underscores

    Examples:
        logger.info("Session created", stage=Stage.SESSION_CREATE)
        log_stage(logger, Stage.BACKEND_SELECTION, "Fallback selected")
    """

    # Session lifecycle (sequential 0.0 - 6.0)
    INITIALIZATION = "0.0_INITIALIZATION"
    SESSION_CREATE = "1.0_SESSION_CREATE"
    STREAM_VALIDATION = "2.0_STREAM_VALIDATION"
    BACKEND_SELECTION = "3.0_BACKEND_SELECTION"
    PROMPT_ASSEMBLY = "4.0_PROMPT_ASSEMBLY"
    GENERATION = "5.0_GENERATION"
    FINALIZATION = "6.0_FINALIZATION"

    # Cross-cutting concerns
    CANCELLATION = "C_CANCELLATION"
    SESSION_STORE = "S_SESSION_STORE"
    TRANSPORT = "T_TRANSPORT"
    REDIS = "R_REDIS"
    HTTP = "H_HTTP"


# ============================================================================
# Session Lifecycle
# ============================================================================


class SessionStatus(str, Enum):
    """
    Lifecycle states of an enhancement session.

    pending -> streaming -> {completed, cancelled, error}
    pending -> cancelled

    COMPLETED, CANCELLED and ERROR are terminal.
    """

    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES

    def can_transition_to(self, target: "SessionStatus") -> bool:
        """Return True when moving from this status to ``target`` is allowed."""
        return target in _ALLOWED_TRANSITIONS[self]


_TERMINAL_STATUSES = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.ERROR}
)

# streaming -> streaming lets a stream restart on a session orphaned by a crash
_ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.PENDING: frozenset({SessionStatus.STREAMING, SessionStatus.CANCELLED}),
    SessionStatus.STREAMING: frozenset(
        {
            SessionStatus.STREAMING,
            SessionStatus.COMPLETED,
            SessionStatus.CANCELLED,
            SessionStatus.ERROR,
        }
    ),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
    SessionStatus.ERROR: frozenset(),
}


class EnhanceAction(str, Enum):
    """Text transformations a client can request."""

    IMPROVE = "improve"
    MAKE_SHORTER = "make_shorter"
    SUMMARIZE = "summarize"
    FIX_GRAMMAR = "fix_grammar"
    CHANGE_TONE = "change_tone"
    FREE_PROMPT = "free_prompt"
    EXPAND = "expand"


class FieldType(str, Enum):
    """Kinds of input field an enhancement request can originate from."""

    OPPORTUNITY_DESCRIPTION = "opportunity_description"
    PROJECT_NOTE = "project_note"
    TABLE_CELL = "table_cell"
    COMMENT = "comment"
    CUSTOM_FIELD = "custom_field"


class ContextSection(str, Enum):
    """Optional context sections a client may ask to include in the prompt."""

    OPPORTUNITY_DETAILS = "opportunity_details"
    CURRENT_TAB = "current_tab"
    RELATED_FIELDS = "related_fields"
    USER_HISTORY = "user_history"


# ============================================================================
# Generation Backends
# ============================================================================


class BackendName(str, Enum):
    """Names of the supported generation backends."""

    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    GEMINI = "gemini"
    MOCK = "mock"


# Price per 1K tokens as (input, output) in USD
BACKEND_PRICING: dict[str, tuple[float, float]] = {
    BackendName.OPENAI.value: (0.01, 0.03),
    BackendName.DEEPSEEK.value: (0.00014, 0.00028),
    BackendName.GEMINI.value: (0.001, 0.002),
    BackendName.MOCK.value: (0.0, 0.0),
}
DEFAULT_PRICING_BACKEND = BackendName.OPENAI.value

# Rough characters-per-token ratio used for estimates
CHARS_PER_TOKEN = 4

# ============================================================================
# Stream Events
# ============================================================================


class StreamEventType(str, Enum):
    """Event names emitted on the event stream."""

    CONNECTED = "connected"
    CHUNK = "chunk"
    METADATA = "metadata"
    DONE = "done"
    ERROR = "error"
    CANCELLED = "cancelled"


TERMINAL_EVENT_TYPES = frozenset(
    {StreamEventType.DONE, StreamEventType.ERROR, StreamEventType.CANCELLED}
)

METADATA_STATUS_GENERATING = "generating"
CANCELLED_BY_USER_MESSAGE = "Session cancelled by user"
CLIENT_DISCONNECTED_MESSAGE = "Client disconnected"

# ============================================================================
# Redis Keys
# ============================================================================

REDIS_KEY_SESSION = "session"
REDIS_KEY_OWNER_INDEX = "session:owner"

# ============================================================================
# HTTP
# ============================================================================

HEADER_USER_ID = "X-User-ID"
HEADER_SESSION_ID = "X-Session-ID"

SSE_RESPONSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
