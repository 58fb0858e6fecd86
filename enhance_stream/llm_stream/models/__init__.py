from enhance_stream.llm_stream.models.session import (
    GenerationOptions,
    Session,
    SessionUsage,
    utc_now,
)
from enhance_stream.llm_stream.models.stream_event import StreamEvent, parse_frame

__all__ = [
    "GenerationOptions",
    "Session",
    "SessionUsage",
    "StreamEvent",
    "parse_frame",
    "utc_now",
]
