"""
Enhancement API Models
======================

Pydantic models for the enhancement endpoints. The wire format is camelCase
(``sessionId``, ``maxTokens``) while Python code uses snake_case; an alias
generator keeps the two in sync and ``populate_by_name`` lets tests build
models with either spelling.

This module defines:
- EnhanceRequest: Validates POST /ai/enhance bodies
- EnhanceResponse: What a client needs to open the stream
- SessionView: Read-only projection of a stored session
- CancelResponse: Result of DELETE /ai/session/{id}
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from enhance_stream.core.config.constants import (
    ContextSection,
    EnhanceAction,
    FieldType,
    SessionStatus,
)
from enhance_stream.llm_stream.models.session import Session


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# REQUEST MODELS
# ============================================================================


class FieldContext(CamelModel):
    """Where the text came from. ``metadata`` is free-form client data."""

    field_type: FieldType
    entity_id: str | None = None
    field_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class EnhanceOptions(CamelModel):
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)


class EnhanceRequest(CamelModel):
    """
    Request model for creating an enhancement session.

    ``backend`` is an explicit backend name; when omitted the service picks
    the first available backend in its configured order.
    """

    text: str = Field(..., min_length=1, max_length=100000, description="Text to enhance")
    action: EnhanceAction = Field(..., description="Requested transformation")
    context: FieldContext
    include_context: list[ContextSection] = Field(default_factory=list)
    custom_prompt: str | None = None
    tone: str | None = None
    options: EnhanceOptions = Field(default_factory=EnhanceOptions)
    backend: str | None = Field(default=None, description="Explicit backend name")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "text": "we should maybe look at the numbers again before the call",
                "action": "improve",
                "context": {"fieldType": "opportunity_description", "entityId": "opp-42"},
                "includeContext": ["opportunity_details"],
                "options": {"temperature": 0.5},
            }
        },
    )

    def context_snapshot(self) -> dict[str, Any]:
        """Context as stored on the session (snake_case keys)."""
        return self.context.model_dump(mode="json")


# ============================================================================
# RESPONSE MODELS
# ============================================================================


class EnhanceResponse(CamelModel):
    session_id: str
    stream_url: str
    estimated_tokens: int
    backend: str


class UsageView(CamelModel):
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cost: float


class SessionView(CamelModel):
    """Read-only projection of a session; the owner is never echoed back."""

    session_id: str
    status: SessionStatus
    action: EnhanceAction
    backend: str
    original_text: str
    enhanced_text: str | None = None
    usage: UsageView
    created_at: datetime
    completed_at: datetime | None = None
    error: str | None = None

    @classmethod
    def from_session(cls, session: Session) -> "SessionView":
        return cls(
            session_id=session.session_id,
            status=session.status,
            action=session.action,
            backend=session.backend_name,
            original_text=session.original_text,
            enhanced_text=session.enhanced_text,
            usage=UsageView(
                input_tokens=session.usage.input_tokens,
                output_tokens=session.usage.output_tokens,
                total_tokens=session.usage.total_tokens,
                cost=session.usage.cost,
            ),
            created_at=session.created_at,
            completed_at=session.completed_at,
            error=session.error,
        )


class CancelResponse(CamelModel):
    session_id: str
    status: SessionStatus
    stream_closed: bool
    message: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
