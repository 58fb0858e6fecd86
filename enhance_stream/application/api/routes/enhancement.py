"""
Enhancement Routes
==================

HTTP surface of the enhancement service:

    POST   /ai/enhance               create a session, answer with its stream URL
    GET    /ai/stream/{session_id}   Server-Sent Events stream of the generation
    GET    /ai/session/{session_id}  inspect a session
    DELETE /ai/session/{session_id}  cancel a session
    GET    /ai/sessions              the caller's sessions, newest first

Routes only translate HTTP to orchestrator calls. Domain errors raised here
(unknown session, no backend) are rendered by the application's
EnhanceStreamError handler.

SSE FLOW
--------
The stream route never awaits the generation itself. It hands an
SSEConnection to a background task running ``stream_session`` and returns a
StreamingResponse that drains the connection's frame queue:

    stream_session ──write()──► SSEConnection queue ──iter_frames()──► client

When the client goes away Starlette closes ``iter_frames``; the connection
marks itself closed and the orchestrator sees the disconnect before the
next chunk is forwarded.
"""

import asyncio
from functools import partial

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import StreamingResponse

from enhance_stream.application.api.dependencies import OrchestratorDep, UserIdDep
from enhance_stream.application.api.models.enhancement import (
    CancelResponse,
    EnhanceRequest,
    EnhanceResponse,
    ErrorResponse,
    SessionView,
)
from enhance_stream.core.config.constants import HEADER_SESSION_ID, SSE_RESPONSE_HEADERS, Stage
from enhance_stream.llm_stream.models.session import GenerationOptions
from enhance_stream.llm_stream.transport.connection import SSEConnection

router = APIRouter(prefix="/ai", tags=["Enhancement"])

logger = structlog.get_logger(__name__)


def on_stream_task_done(connection: SSEConnection, task: asyncio.Task) -> None:
    """
    Done-callback for the stream task.

    stream_session is not expected to raise. If it does, the failure is logged
    and the connection closed so the response does not hang.
    """
    if task.cancelled():
        connection.close()
        return
    error = task.exception()
    if error is not None:
        connection.close()
        logger.error(
            "Stream task failed",
            stage=Stage.HTTP,
            error_type=type(error).__name__,
            error=str(error),
            exc_info=error,
        )


@router.post(
    "/enhance",
    response_model=EnhanceResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    responses={503: {"model": ErrorResponse, "description": "No generation backend available"}},
)
async def enhance(
    request: Request, body: EnhanceRequest, orchestrator: OrchestratorDep, user_id: UserIdDep
):
    """
    Create an enhancement session.

    The generation does not start here; the client opens ``streamUrl`` to
    run it.
    """
    settings = orchestrator.settings
    options = GenerationOptions(
        temperature=(
            body.options.temperature
            if body.options.temperature is not None
            else settings.session.DEFAULT_TEMPERATURE
        ),
        max_tokens=body.options.max_tokens or settings.session.DEFAULT_MAX_TOKENS,
        custom_prompt=body.custom_prompt,
        tone=body.tone,
        include_context=body.include_context,
    )

    created = await orchestrator.create_session(
        owner_id=user_id,
        text=body.text,
        action=body.action,
        context=body.context_snapshot(),
        backend_hint=body.backend,
        options=options,
    )

    stream_url = request.url_for("stream", session_id=created.session_id).path
    return EnhanceResponse(
        session_id=created.session_id,
        stream_url=stream_url,
        estimated_tokens=created.estimated_tokens,
        backend=created.backend_name,
    )


@router.get(
    "/stream/{session_id}",
    name="stream",
    responses={200: {"description": "SSE event stream", "content": {"text/event-stream": {}}}},
)
async def stream(session_id: str, orchestrator: OrchestratorDep, user_id: UserIdDep):
    """
    Stream a session's generation as Server-Sent Events.

    Event order: ``connected``, then ``chunk``/``metadata`` pairs, then
    exactly one of ``done``, ``error`` or ``cancelled``. A request that
    cannot be served (unknown session, duplicate stream) receives a single
    ``error`` event instead.
    """
    logger.info("Stream requested", stage=Stage.HTTP, session_id=session_id, user_id=user_id)

    connection = SSEConnection()
    connection.producer = asyncio.create_task(
        orchestrator.stream_session(session_id, user_id, connection)
    )
    connection.producer.add_done_callback(partial(on_stream_task_done, connection))

    return StreamingResponse(
        connection.iter_frames(),
        media_type="text/event-stream",
        headers={**SSE_RESPONSE_HEADERS, HEADER_SESSION_ID: session_id},
    )


@router.get(
    "/session/{session_id}",
    response_model=SessionView,
    response_model_by_alias=True,
    responses={404: {"model": ErrorResponse}},
)
async def get_session(session_id: str, orchestrator: OrchestratorDep, user_id: UserIdDep):
    session = await orchestrator.get_session(session_id, user_id)
    return SessionView.from_session(session)


@router.delete(
    "/session/{session_id}",
    response_model=CancelResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    responses={404: {"model": ErrorResponse}},
)
async def cancel_session(session_id: str, orchestrator: OrchestratorDep, user_id: UserIdDep):
    """Cancel a session; cancelling a finished session is a no-op."""
    result = await orchestrator.cancel_session(session_id, user_id)
    return CancelResponse(
        session_id=result.session_id,
        status=result.status,
        stream_closed=result.stream_closed,
        message=result.message,
    )


@router.get("/sessions", response_model=list[SessionView], response_model_by_alias=True)
async def list_sessions(orchestrator: OrchestratorDep, user_id: UserIdDep):
    sessions = await orchestrator.list_sessions(user_id)
    return [SessionView.from_session(session) for session in sessions]
