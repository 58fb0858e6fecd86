"""
Enhancement Orchestrator
========================

The orchestrator composes the session store, the backend selector and the
stream transport into the four use cases exposed to clients:

    create_session   persist a pending session bound to a backend
    stream_session   run the generation and push events to the client
    get_session      ownership-checked read
    cancel_session   ownership-checked cancellation

SESSION STATE MACHINE
---------------------

    pending ──► streaming ──► completed
       │            │
       │            ├──────► error
       ▼            ▼
    cancelled ◄─────┘

completed, cancelled and error are terminal. Nothing leaves them.

THE STREAM LIFECYCLE
--------------------

┌─────────────────────────────────────────────────────────────────┐
│ STAGE 2: VALIDATION                                             │
│ - Load the session; unknown or foreign sessions are rejected    │
│   with one `error` frame, no connection is tracked              │
│ - Terminal sessions get `connected, cancelled` and nothing else │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 3-4: BACKEND + PROMPT                                     │
│ - Mark the session streaming                                    │
│ - Resolve the stored backend name, assemble context, build the  │
│   prompt. Failures here are still reported as a single frame.   │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 5: GENERATION                                             │
│ - Open the tracked connection (`connected`)                     │
│ - Per chunk: stop on cancellation, stop on disconnect, else     │
│   forward `chunk` then `metadata`                               │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 6: FINALIZATION                                           │
│ - Completed: price the usage, persist, send `done`              │
│ - Exception: `cancelled` if the session was cancelled meanwhile,│
│   otherwise persist the error and send `error`                  │
│ - Always deregister the connection                              │
└─────────────────────────────────────────────────────────────────┘

CANCELLATION
------------
Two signals stop a running stream:

1. The session status in the store. It is re-read after every produced
   chunk, so a cancel recorded by any process is seen at chunk granularity.
2. A per-stream asyncio.Event set by cancel_session in this process. The
   chunk loop races the backend's next chunk against it, so a local cancel
   does not have to wait for the backend to produce another chunk.

A cancel racing the final chunk may lose; the session then ends completed.
Both outcomes are valid.
"""

import asyncio
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from enhance_stream.core.config.constants import (
    CLIENT_DISCONNECTED_MESSAGE,
    EnhanceAction,
    SessionStatus,
    Stage,
)
from enhance_stream.core.config.settings import Settings, get_settings
from enhance_stream.core.exceptions import (
    EnhanceStreamError,
    SessionNotFoundError,
    SessionOwnershipError,
    StreamAlreadyActiveError,
)
from enhance_stream.core.logging.logger import clear_session_id, get_logger, log_stage, set_session_id
from enhance_stream.infrastructure.storage.session_store import SessionStore
from enhance_stream.llm_stream.backends.base_backend import CompletionRequest, GenerationChunk
from enhance_stream.llm_stream.backends.selector import BackendSelector
from enhance_stream.llm_stream.models.session import GenerationOptions, Session, SessionUsage
from enhance_stream.llm_stream.models.stream_event import StreamEvent
from enhance_stream.llm_stream.services.pricing import calculate_cost
from enhance_stream.llm_stream.services.prompting import (
    ActionPromptBuilder,
    ContextAssembler,
    FieldContextAssembler,
    PromptBuilder,
    PromptOverrides,
)
from enhance_stream.llm_stream.transport.connection import ConnectionHandle
from enhance_stream.llm_stream.transport.sse_transport import StreamTransport

logger = get_logger(__name__)


# ============================================================================
# RESULT TYPES
# ============================================================================


@dataclass
class SessionCreated:
    session_id: str
    backend_name: str
    estimated_tokens: int


@dataclass
class CancelResult:
    session_id: str
    status: SessionStatus
    stream_closed: bool
    message: str


class _LoopExit(Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISCONNECTED = "disconnected"


# Sentinel returned by _next_chunk when the local cancel signal wins
_CANCELLED = object()


async def _pull(chunks: AsyncGenerator[GenerationChunk, None]) -> GenerationChunk | None:
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None


# ============================================================================
# ORCHESTRATOR
# ============================================================================


class EnhancementOrchestrator:
    """
    Coordinates session creation, streaming, inspection and cancellation.

    All collaborators are injected; nothing here reaches for globals except
    the settings default.

    Args:
        store: Session persistence
        selector: Generation backend registry and selection policy
        transport: Registry of live client connections
        context_assembler: Builds prompt context from the stored snapshot
        prompt_builder: Turns action + context into prompts
        settings: Application settings
    """

    def __init__(
        self,
        store: SessionStore,
        selector: BackendSelector,
        transport: StreamTransport,
        context_assembler: ContextAssembler | None = None,
        prompt_builder: PromptBuilder | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.selector = selector
        self.transport = transport
        self.context_assembler = context_assembler or FieldContextAssembler()
        self.prompt_builder = prompt_builder or ActionPromptBuilder()
        self.settings = settings or get_settings()

        # session_id -> local cancel signal of the stream running in this process
        self._active_streams: dict[str, asyncio.Event] = {}

    @property
    def active_stream_count(self) -> int:
        return len(self._active_streams)

    # ------------------------------------------------------------------------
    # create / get / list
    # ------------------------------------------------------------------------

    async def create_session(
        self,
        owner_id: str,
        text: str,
        action: EnhanceAction,
        context: dict[str, Any] | None = None,
        backend_hint: str | None = None,
        options: GenerationOptions | None = None,
    ) -> SessionCreated:
        """
        Persist a pending session bound to a resolved backend.

        Raises:
            BackendUnavailableError: If no backend resolves
        """
        backend = await self.selector.resolve(backend_hint)

        if options is None:
            options = GenerationOptions(
                temperature=self.settings.session.DEFAULT_TEMPERATURE,
                max_tokens=self.settings.session.DEFAULT_MAX_TOKENS,
            )

        session = await self.store.create(
            owner_id=owner_id,
            text=text,
            action=action,
            backend_name=backend.name,
            context=context,
            options=options,
        )

        log_stage(
            logger,
            Stage.SESSION_CREATE,
            "Enhancement session created",
            session_id=session.session_id,
            backend=backend.name,
            action=action.value,
        )
        return SessionCreated(
            session_id=session.session_id,
            backend_name=backend.name,
            estimated_tokens=backend.estimate_tokens(text),
        )

    async def get_session(self, session_id: str, requester_id: str) -> Session:
        """
        Raises:
            SessionNotFoundError: If absent or owned by someone else
        """
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id=session_id)
        if not session.is_owned_by(requester_id):
            logger.warning(
                "Session ownership mismatch",
                stage=Stage.STREAM_VALIDATION,
                session_id=session_id,
                requester_id=requester_id,
            )
            raise SessionOwnershipError(session_id=session_id)
        return session

    async def list_sessions(self, requester_id: str) -> list[Session]:
        return await self.store.list_for_owner(requester_id)

    # ------------------------------------------------------------------------
    # cancel
    # ------------------------------------------------------------------------

    async def cancel_session(self, session_id: str, requester_id: str) -> CancelResult:
        """
        Cancel a session and close its live stream, if any.

        Cancelling a terminal session changes nothing and reports
        ``stream_closed=False``.

        Raises:
            SessionNotFoundError: If absent or owned by someone else
        """
        session = await self.get_session(session_id, requester_id)
        if not session.is_terminal:
            session = await self.store.cancel(session_id)
            if session.status is SessionStatus.CANCELLED:
                return self._close_cancelled_stream(session_id)

        # Already terminal, or finished before our update landed
        log_stage(
            logger,
            Stage.CANCELLATION,
            "Cancel on finished session ignored",
            session_id=session_id,
            status=session.status.value,
        )
        return CancelResult(
            session_id=session_id,
            status=session.status,
            stream_closed=False,
            message=f"Session is already {session.status.value}",
        )

    def _close_cancelled_stream(self, session_id: str) -> CancelResult:
        signal = self._active_streams.get(session_id)
        if signal is not None:
            signal.set()

        stream_closed = self.transport.close_with_terminal(
            session_id, StreamEvent.cancelled(session_id)
        )
        log_stage(
            logger,
            Stage.CANCELLATION,
            "Session cancelled",
            session_id=session_id,
            stream_closed=stream_closed,
        )
        return CancelResult(
            session_id=session_id,
            status=SessionStatus.CANCELLED,
            stream_closed=stream_closed,
            message="Session cancelled",
        )

    # ------------------------------------------------------------------------
    # stream
    # ------------------------------------------------------------------------

    async def stream_session(
        self, session_id: str, requester_id: str, connection: ConnectionHandle
    ) -> None:
        """
        Run the generation for a session and deliver it over ``connection``.

        Never raises for domain failures: before the connection is tracked
        they are answered with a single ``error`` frame, afterwards they
        become a session update plus a terminal ``error`` event.
        """
        set_session_id(session_id)
        try:
            # STAGE 2: validation
            try:
                session = await self.get_session(session_id, requester_id)
            except SessionNotFoundError as e:
                self.transport.reject(connection, StreamEvent.error(e.error_code, e.message))
                return

            if session.is_terminal:
                log_stage(
                    logger,
                    Stage.STREAM_VALIDATION,
                    "Stream requested for finished session",
                    status=session.status.value,
                )
                self.transport.open(session_id, connection)
                self.transport.close_with_terminal(session_id, StreamEvent.cancelled(session_id))
                return

            if session_id in self._active_streams:
                error = StreamAlreadyActiveError(
                    "Session is already streaming", session_id=session_id
                )
                logger.warning("Duplicate stream rejected", stage=Stage.STREAM_VALIDATION)
                self.transport.reject(connection, StreamEvent.error(error.error_code, error.message))
                return

            cancel_signal = asyncio.Event()
            self._active_streams[session_id] = cancel_signal
            try:
                await self._run(session, connection, cancel_signal)
            finally:
                self._active_streams.pop(session_id, None)
        finally:
            clear_session_id()

    async def _run(
        self, session: Session, connection: ConnectionHandle, cancel_signal: asyncio.Event
    ) -> None:
        session_id = session.session_id

        # STAGE 3-4: mark streaming, resolve backend, build prompt
        try:
            session = await self.store.update(session_id, status=SessionStatus.STREAMING)
            backend = self.selector.get(session.backend_name)
            context = await self.context_assembler.assemble(
                {**session.context, "text": session.original_text},
                session.options.include_context,
                session.owner_id,
            )
            prompt = self.prompt_builder.build(
                session.action,
                context,
                PromptOverrides(
                    custom_prompt=session.options.custom_prompt, tone=session.options.tone
                ),
            )
        except Exception as e:
            current = await self._safe_get(session_id)
            if current is not None and current.status is SessionStatus.CANCELLED:
                self.transport.open(session_id, connection)
                self.transport.close_with_terminal(session_id, StreamEvent.cancelled(session_id))
                return

            logger.error(
                "Stream setup failed",
                stage=Stage.BACKEND_SELECTION,
                error_type=type(e).__name__,
                error=str(e),
            )
            await self._record_error(session_id, e)
            self.transport.reject(connection, self._error_event(e))
            return

        # STAGE 5: generation
        self.transport.open(session_id, connection)

        input_tokens = backend.estimate_tokens(prompt.user_prompt + prompt.system_prompt)
        output_tokens = 0
        parts: list[str] = []

        chunks = backend.stream(
            CompletionRequest(
                prompt=prompt.user_prompt,
                system_prompt=prompt.system_prompt,
                temperature=session.options.temperature,
                max_tokens=session.options.max_tokens,
            )
        )

        try:
            exit_reason = _LoopExit.COMPLETED
            while True:
                chunk = await self._next_chunk(chunks, cancel_signal)
                if chunk is None:
                    break
                if chunk is _CANCELLED:
                    exit_reason = _LoopExit.CANCELLED
                    break

                current = await self.store.require(session_id)
                if current.status is SessionStatus.CANCELLED:
                    exit_reason = _LoopExit.CANCELLED
                    break
                if not self.transport.is_active(session_id):
                    exit_reason = _LoopExit.DISCONNECTED
                    break

                parts.append(chunk.text)
                output_tokens += chunk.tokens
                self.transport.send(session_id, StreamEvent.chunk(chunk.text, chunk.tokens))
                self.transport.send(session_id, StreamEvent.metadata(input_tokens + output_tokens))

            # STAGE 6: finalization
            if exit_reason is _LoopExit.COMPLETED:
                await self._complete(session, "".join(parts), input_tokens, output_tokens)
            elif exit_reason is _LoopExit.CANCELLED:
                log_stage(logger, Stage.CANCELLATION, "Stream stopped by cancellation")
                self.transport.close_with_terminal(session_id, StreamEvent.cancelled(session_id))
            else:
                await self._record_disconnect(session_id)

        except Exception as e:
            await self._handle_failure(session_id, e)

        finally:
            await self._close_chunks(chunks)
            self.transport.deregister(session_id)

    async def _next_chunk(
        self,
        chunks: AsyncGenerator[GenerationChunk, None],
        cancel_signal: asyncio.Event,
    ) -> GenerationChunk | object | None:
        """
        Wait for the next chunk or the local cancel signal, whichever is first.

        Returns:
            The chunk, None when the sequence is exhausted, or _CANCELLED
        """
        if cancel_signal.is_set():
            return _CANCELLED

        next_chunk = asyncio.create_task(_pull(chunks))
        cancelled = asyncio.create_task(cancel_signal.wait())
        try:
            done, _ = await asyncio.wait(
                {next_chunk, cancelled}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            next_chunk.cancel()
            raise
        finally:
            cancelled.cancel()

        if next_chunk in done:
            return next_chunk.result()

        # Abandon the pending chunk; the backend generator is finalized by it
        next_chunk.cancel()
        await asyncio.wait({next_chunk})
        return _CANCELLED

    async def _complete(
        self, session: Session, text: str, input_tokens: int, output_tokens: int
    ) -> None:
        session_id = session.session_id
        usage = SessionUsage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=calculate_cost(session.backend_name, input_tokens, output_tokens),
        )
        await self.store.update(
            session_id, status=SessionStatus.COMPLETED, enhanced_text=text, usage=usage
        )
        self.transport.close_with_terminal(
            session_id,
            StreamEvent.done(
                session_id,
                total_tokens=usage.total_tokens,
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                cost=usage.cost,
            ),
        )
        log_stage(
            logger,
            Stage.FINALIZATION,
            "Stream completed",
            backend=session.backend_name,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=usage.cost,
        )

    async def _handle_failure(self, session_id: str, error: Exception) -> None:
        current = await self._safe_get(session_id)
        if current is not None and current.status is SessionStatus.CANCELLED:
            # The client already asked for this; do not report it as an error
            log_stage(logger, Stage.CANCELLATION, "Stream failed after cancellation")
            self.transport.close_with_terminal(session_id, StreamEvent.cancelled(session_id))
            return

        logger.error(
            "Stream failed",
            stage=Stage.GENERATION,
            error_type=type(error).__name__,
            error=str(error),
        )
        await self._record_error(session_id, error)
        self.transport.close_with_terminal(session_id, self._error_event(error))

    async def _record_error(self, session_id: str, error: Exception) -> None:
        try:
            await self.store.update(
                session_id, status=SessionStatus.ERROR, error=self._error_message(error)
            )
        except Exception as e:
            logger.warning(
                "Failed to record session error", stage=Stage.FINALIZATION, error=str(e)
            )

    async def _record_disconnect(self, session_id: str) -> None:
        log_stage(logger, Stage.FINALIZATION, "Client disconnected mid-stream", level="warning")
        try:
            await self.store.update(
                session_id, status=SessionStatus.CANCELLED, error=CLIENT_DISCONNECTED_MESSAGE
            )
        except Exception as e:
            logger.warning(
                "Failed to record disconnect", stage=Stage.FINALIZATION, error=str(e)
            )

    async def _safe_get(self, session_id: str) -> Session | None:
        try:
            return await self.store.get(session_id)
        except Exception as e:
            logger.warning("Failed to re-read session", stage=Stage.FINALIZATION, error=str(e))
            return None

    @staticmethod
    async def _close_chunks(chunks: AsyncGenerator[GenerationChunk, None]) -> None:
        try:
            await chunks.aclose()
        except Exception as e:
            logger.warning("Failed to close chunk stream", stage=Stage.FINALIZATION, error=str(e))

    @staticmethod
    def _error_message(error: Exception) -> str:
        if isinstance(error, EnhanceStreamError):
            return error.message
        return str(error) or type(error).__name__

    def _error_event(self, error: Exception) -> StreamEvent:
        code = error.error_code if isinstance(error, EnhanceStreamError) else "INTERNAL_ERROR"
        return StreamEvent.error(code, self._error_message(error))
