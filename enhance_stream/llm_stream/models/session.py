"""
Session models.

A Session is the lifecycle record of one text-enhancement request. It is
created ``pending``, moved to ``streaming`` by the stream task and ends in
exactly one of ``completed``, ``cancelled`` or ``error``.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from enhance_stream.core.config.constants import ContextSection, EnhanceAction, SessionStatus


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GenerationOptions(BaseModel):
    """Per-request generation parameters captured at creation time."""

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, ge=1)
    custom_prompt: str | None = None
    tone: str | None = None
    include_context: list[ContextSection] = Field(default_factory=list)


class SessionUsage(BaseModel):
    """Token counters and the computed cost of a finished generation."""

    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class Session(BaseModel):
    """
    Persistent state of one enhancement session.

    ``owner_id`` and ``session_id`` never change after creation;
    ``enhanced_text`` is only set when the session completes.
    """

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    owner_id: str
    status: SessionStatus = SessionStatus.PENDING
    original_text: str
    action: EnhanceAction
    backend_name: str
    context: dict[str, Any] = Field(default_factory=dict)
    options: GenerationOptions = Field(default_factory=GenerationOptions)
    enhanced_text: str | None = None
    usage: SessionUsage = Field(default_factory=SessionUsage)
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def is_owned_by(self, requester_id: str) -> bool:
        return self.owner_id == requester_id
