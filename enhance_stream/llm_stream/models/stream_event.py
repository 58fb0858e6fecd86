"""
Stream event vocabulary.

Every frame written to a client is one StreamEvent rendered as::

    event: <name>
    data: <json payload>

Exactly one of done, error or cancelled closes a stream.
"""

from copy import deepcopy
from typing import Any

import orjson
from pydantic import BaseModel, field_validator

from enhance_stream.core.config.constants import (
    CANCELLED_BY_USER_MESSAGE,
    METADATA_STATUS_GENERATING,
    TERMINAL_EVENT_TYPES,
    StreamEventType,
)


class StreamEvent(BaseModel):
    """A named event with a JSON payload, sent to the client over SSE."""

    model_config = {"frozen": True}

    event: StreamEventType
    data: dict[str, Any]

    @field_validator("data", mode="before")
    @classmethod
    def copy_data(cls, v):
        """Copy the payload so later mutation of the caller's dict cannot leak in."""
        if isinstance(v, dict):
            return deepcopy(v)
        return v

    @property
    def is_terminal(self) -> bool:
        return self.event in TERMINAL_EVENT_TYPES

    def format(self) -> str:
        """Format as an SSE frame terminated by a blank line."""
        payload = orjson.dumps(self.data).decode()
        return f"event: {self.event.value}\ndata: {payload}\n\n"

    # ------------------------------------------------------------------
    # Constructors, one per event type
    # ------------------------------------------------------------------

    @classmethod
    def connected(cls, session_id: str) -> "StreamEvent":
        return cls(event=StreamEventType.CONNECTED, data={"sessionId": session_id})

    @classmethod
    def chunk(cls, text: str, tokens: int) -> "StreamEvent":
        return cls(event=StreamEventType.CHUNK, data={"text": text, "tokens": tokens})

    @classmethod
    def metadata(cls, total_tokens: int) -> "StreamEvent":
        return cls(
            event=StreamEventType.METADATA,
            data={"totalTokens": total_tokens, "status": METADATA_STATUS_GENERATING},
        )

    @classmethod
    def done(
        cls,
        session_id: str,
        total_tokens: int,
        input_tokens: int,
        output_tokens: int,
        cost: float,
    ) -> "StreamEvent":
        return cls(
            event=StreamEventType.DONE,
            data={
                "sessionId": session_id,
                "totalTokens": total_tokens,
                "usage": {
                    "inputTokens": input_tokens,
                    "outputTokens": output_tokens,
                    "cost": cost,
                },
            },
        )

    @classmethod
    def error(cls, code: str, message: str) -> "StreamEvent":
        return cls(event=StreamEventType.ERROR, data={"code": code, "message": message})

    @classmethod
    def cancelled(cls, session_id: str, message: str = CANCELLED_BY_USER_MESSAGE) -> "StreamEvent":
        return cls(
            event=StreamEventType.CANCELLED, data={"sessionId": session_id, "message": message}
        )


def parse_frame(frame: str) -> StreamEvent:
    """
    Parse one SSE frame produced by StreamEvent.format().

    Used by clients and tests reading the event stream back.
    """
    event_name = None
    data = None
    for line in frame.strip("\n").split("\n"):
        if line.startswith("event: "):
            event_name = line[len("event: "):]
        elif line.startswith("data: "):
            data = orjson.loads(line[len("data: "):])
    if event_name is None or data is None:
        raise ValueError(f"Malformed SSE frame: {frame!r}")
    return StreamEvent(event=StreamEventType(event_name), data=data)
