"""
Unit Tests for EnhancementOrchestrator

Tests the session lifecycle end to end against the in-memory store, a
scripted backend and a recording connection: event order, token
accounting, cancellation races, disconnects, and ownership checks.
"""

import asyncio

import pytest

from enhance_stream.core.config.constants import EnhanceAction, SessionStatus
from enhance_stream.core.exceptions import (
    BackendUnavailableError,
    SessionNotFoundError,
    SessionOwnershipError,
)
from enhance_stream.llm_stream.backends import BackendSelector
from enhance_stream.llm_stream.services import EnhancementOrchestrator
from enhance_stream.llm_stream.services.pricing import calculate_cost
from tests.test_fixtures import BlockingBackend, RecordingConnection, ScriptedBackend, text_chunks

OWNER = "user-1"


def _orchestrator_for(backend, store, transport, settings) -> EnhancementOrchestrator:
    selector = BackendSelector(default=backend.name)
    selector.register_instance(backend)
    return EnhancementOrchestrator(
        store=store, selector=selector, transport=transport, settings=settings
    )


async def _create(orchestrator, owner_id=OWNER, text="please improve this text"):
    created = await orchestrator.create_session(
        owner_id=owner_id, text=text, action=EnhanceAction.IMPROVE
    )
    return created.session_id


def _prompt_estimate(backend) -> int:
    request = backend.requests[0]
    return backend.estimate_tokens(request.prompt + request.system_prompt)


# ============================================================================
# create / get / list
# ============================================================================


@pytest.mark.unit
class TestCreateSession:
    @pytest.mark.asyncio
    async def test_creates_pending_session_on_resolved_backend(self, orchestrator, memory_store):
        created = await orchestrator.create_session(
            owner_id=OWNER, text="12345678", action=EnhanceAction.SUMMARIZE
        )

        session = await memory_store.get(created.session_id)
        assert created.backend_name == "scripted"
        assert created.estimated_tokens == 2
        assert session.status is SessionStatus.PENDING
        assert session.owner_id == OWNER
        assert session.backend_name == "scripted"
        assert session.options.temperature == orchestrator.settings.session.DEFAULT_TEMPERATURE

    @pytest.mark.asyncio
    async def test_unknown_backend_hint_creates_nothing(self, orchestrator, memory_store):
        with pytest.raises(BackendUnavailableError):
            await orchestrator.create_session(
                owner_id=OWNER, text="x", action=EnhanceAction.IMPROVE, backend_hint="nope"
            )

        assert await memory_store.list_for_owner(OWNER) == []

    @pytest.mark.asyncio
    async def test_get_session_for_owner(self, orchestrator):
        session_id = await _create(orchestrator)

        session = await orchestrator.get_session(session_id, OWNER)

        assert session.session_id == session_id

    @pytest.mark.asyncio
    async def test_foreign_session_looks_missing(self, orchestrator):
        session_id = await _create(orchestrator)

        with pytest.raises(SessionNotFoundError) as foreign:
            await orchestrator.get_session(session_id, "intruder")
        with pytest.raises(SessionNotFoundError) as missing:
            await orchestrator.get_session("no-such-session", "intruder")

        assert isinstance(foreign.value, SessionOwnershipError)
        assert foreign.value.error_code == missing.value.error_code
        assert foreign.value.message == missing.value.message

    @pytest.mark.asyncio
    async def test_list_sessions_only_returns_own(self, orchestrator):
        mine = await _create(orchestrator)
        await _create(orchestrator, owner_id="someone-else")

        sessions = await orchestrator.list_sessions(OWNER)

        assert [s.session_id for s in sessions] == [mine]


# ============================================================================
# stream
# ============================================================================


@pytest.mark.unit
class TestStreamSession:
    @pytest.mark.asyncio
    async def test_event_order(self, orchestrator, connection):
        session_id = await _create(orchestrator)

        await orchestrator.stream_session(session_id, OWNER, connection)

        assert connection.event_types == [
            "connected",
            "chunk",
            "metadata",
            "chunk",
            "metadata",
            "chunk",
            "metadata",
            "done",
        ]
        assert [e.data["text"] for e in connection.events if e.event.value == "chunk"] == [
            "a",
            "bb",
            "ccc",
        ]
        assert connection.is_closed

    @pytest.mark.asyncio
    async def test_token_accounting(self, orchestrator, connection, scripted_backend, memory_store):
        session_id = await _create(orchestrator)

        await orchestrator.stream_session(session_id, OWNER, connection)

        input_tokens = _prompt_estimate(scripted_backend)
        metadata = [e.data["totalTokens"] for e in connection.events if e.event.value == "metadata"]
        done = connection.events[-1].data
        assert metadata == [input_tokens + 1, input_tokens + 3, input_tokens + 6]
        assert done["totalTokens"] == input_tokens + 6
        assert done["usage"]["inputTokens"] == input_tokens
        assert done["usage"]["outputTokens"] == 6
        assert done["usage"]["cost"] == calculate_cost("scripted", input_tokens, 6)

        session = await memory_store.get(session_id)
        assert session.status is SessionStatus.COMPLETED
        assert session.enhanced_text == "abbccc"
        assert session.usage.total_tokens == input_tokens + 6
        assert session.completed_at is not None

    @pytest.mark.asyncio
    async def test_prompt_carries_session_options(self, orchestrator, connection, scripted_backend):
        session_id = await _create(orchestrator, text="original words")

        await orchestrator.stream_session(session_id, OWNER, connection)

        request = scripted_backend.requests[0]
        assert "Original Text:\noriginal words" in request.prompt
        assert request.system_prompt
        assert request.max_tokens == orchestrator.settings.session.DEFAULT_MAX_TOKENS

    @pytest.mark.asyncio
    async def test_empty_generation_completes(self, memory_store, transport, test_settings, connection):
        backend = ScriptedBackend(name="empty", chunks=[])
        orchestrator = _orchestrator_for(backend, memory_store, transport, test_settings)
        session_id = await _create(orchestrator)

        await orchestrator.stream_session(session_id, OWNER, connection)

        assert connection.event_types == ["connected", "done"]
        assert connection.events[-1].data["totalTokens"] == _prompt_estimate(backend)
        assert (await memory_store.get(session_id)).enhanced_text == ""

    @pytest.mark.asyncio
    async def test_unknown_session_gets_single_error(self, orchestrator, connection, transport):
        await orchestrator.stream_session("no-such-session", OWNER, connection)

        assert connection.event_types == ["error"]
        assert connection.events[0].data == {
            "code": "SESSION_NOT_FOUND",
            "message": "Session not found",
        }
        assert connection.is_closed
        assert transport.active_count == 0

    @pytest.mark.asyncio
    async def test_foreign_requester_gets_same_error_as_unknown(self, orchestrator, memory_store):
        session_id = await _create(orchestrator)
        foreign = RecordingConnection()
        unknown = RecordingConnection()

        await orchestrator.stream_session(session_id, "intruder", foreign)
        await orchestrator.stream_session("no-such-session", "intruder", unknown)

        assert foreign.frames == unknown.frames
        assert (await memory_store.get(session_id)).status is SessionStatus.PENDING

    @pytest.mark.asyncio
    async def test_backend_failure_records_error(
        self, memory_store, transport, test_settings, connection
    ):
        backend = ScriptedBackend(
            name="flaky", chunks=text_chunks("a", "b"), error=RuntimeError("socket reset"), fail_after=1
        )
        orchestrator = _orchestrator_for(backend, memory_store, transport, test_settings)
        session_id = await _create(orchestrator)

        await orchestrator.stream_session(session_id, OWNER, connection)

        assert connection.event_types == ["connected", "chunk", "metadata", "error"]
        assert connection.events[-1].data == {"code": "BACKEND_ERROR", "message": "socket reset"}
        session = await memory_store.get(session_id)
        assert session.status is SessionStatus.ERROR
        assert session.error == "socket reset"
        assert session.enhanced_text is None
        assert transport.active_count == 0

    @pytest.mark.asyncio
    async def test_setup_failure_is_a_single_error_frame(
        self, memory_store, selector, transport, test_settings, connection
    ):
        class BrokenPromptBuilder:
            def build(self, action, context, overrides=None):
                raise ValueError("template missing")

        orchestrator = EnhancementOrchestrator(
            store=memory_store,
            selector=selector,
            transport=transport,
            prompt_builder=BrokenPromptBuilder(),
            settings=test_settings,
        )
        session_id = await _create(orchestrator)

        await orchestrator.stream_session(session_id, OWNER, connection)

        assert connection.event_types == ["error"]
        assert connection.events[0].data["code"] == "INTERNAL_ERROR"
        assert (await memory_store.get(session_id)).status is SessionStatus.ERROR

    @pytest.mark.asyncio
    async def test_peer_disconnect_stops_stream(
        self, memory_store, transport, test_settings, connection
    ):
        async def drop_client(index):
            if index == 1:
                connection.disconnect()

        backend = ScriptedBackend(
            name="s", chunks=text_chunks("a", "b", "c"), before_chunk=drop_client
        )
        orchestrator = _orchestrator_for(backend, memory_store, transport, test_settings)
        session_id = await _create(orchestrator)

        await orchestrator.stream_session(session_id, OWNER, connection)

        assert connection.event_types == ["connected", "chunk", "metadata"]
        session = await memory_store.get(session_id)
        assert session.status is SessionStatus.CANCELLED
        assert session.error == "Client disconnected"
        assert orchestrator.active_stream_count == 0


# ============================================================================
# cancellation
# ============================================================================


@pytest.mark.unit
class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_recorded_in_store_between_chunks(
        self, memory_store, transport, test_settings, connection
    ):
        session_ids = []

        async def cancel_before_third(index):
            if index == 2:
                await memory_store.cancel(session_ids[0])

        backend = ScriptedBackend(
            name="s", chunks=text_chunks("a", "b", "c"), before_chunk=cancel_before_third
        )
        orchestrator = _orchestrator_for(backend, memory_store, transport, test_settings)
        session_ids.append(await _create(orchestrator))

        await orchestrator.stream_session(session_ids[0], OWNER, connection)

        assert connection.event_types == [
            "connected",
            "chunk",
            "metadata",
            "chunk",
            "metadata",
            "cancelled",
        ]
        session = await memory_store.get(session_ids[0])
        assert session.status is SessionStatus.CANCELLED
        assert session.enhanced_text is None

    @pytest.mark.asyncio
    async def test_cancel_through_orchestrator_mid_stream(
        self, memory_store, transport, test_settings, connection
    ):
        results = []
        session_ids = []

        async def cancel_before_third(index):
            if index == 2:
                results.append(await orchestrator.cancel_session(session_ids[0], OWNER))

        backend = ScriptedBackend(
            name="s", chunks=text_chunks("a", "b", "c"), before_chunk=cancel_before_third
        )
        orchestrator = _orchestrator_for(backend, memory_store, transport, test_settings)
        session_ids.append(await _create(orchestrator))

        await orchestrator.stream_session(session_ids[0], OWNER, connection)

        assert results[0].status is SessionStatus.CANCELLED
        assert results[0].stream_closed is True
        assert connection.event_types == [
            "connected",
            "chunk",
            "metadata",
            "chunk",
            "metadata",
            "cancelled",
        ]

    @pytest.mark.asyncio
    async def test_cancel_interrupts_a_stalled_backend(
        self, memory_store, transport, test_settings, connection
    ):
        backend = BlockingBackend(chunks=text_chunks("a"))
        orchestrator = _orchestrator_for(backend, memory_store, transport, test_settings)
        session_id = await _create(orchestrator)

        task = asyncio.create_task(orchestrator.stream_session(session_id, OWNER, connection))
        await asyncio.wait_for(backend.waiting.wait(), timeout=1)

        result = await orchestrator.cancel_session(session_id, OWNER)
        await asyncio.wait_for(task, timeout=1)

        assert result.stream_closed is True
        assert result.message == "Session cancelled"
        assert connection.event_types == ["connected", "chunk", "metadata", "cancelled"]
        assert backend.closed.is_set()
        assert orchestrator.active_stream_count == 0
        assert transport.active_count == 0

    @pytest.mark.asyncio
    async def test_duplicate_stream_is_rejected(self, memory_store, transport, test_settings):
        backend = BlockingBackend()
        orchestrator = _orchestrator_for(backend, memory_store, transport, test_settings)
        session_id = await _create(orchestrator)
        first = RecordingConnection()
        second = RecordingConnection()

        task = asyncio.create_task(orchestrator.stream_session(session_id, OWNER, first))
        await asyncio.wait_for(backend.waiting.wait(), timeout=1)
        await orchestrator.stream_session(session_id, OWNER, second)

        assert second.event_types == ["error"]
        assert second.events[0].data["code"] == "STREAM_ALREADY_ACTIVE"
        assert transport.is_active(session_id)

        await orchestrator.cancel_session(session_id, OWNER)
        await asyncio.wait_for(task, timeout=1)
        assert first.event_types == ["connected", "cancelled"]

    @pytest.mark.asyncio
    async def test_create_cancel_stream(self, orchestrator, scripted_backend, connection):
        session_id = await _create(orchestrator)

        result = await orchestrator.cancel_session(session_id, OWNER)
        await orchestrator.stream_session(session_id, OWNER, connection)

        assert result.status is SessionStatus.CANCELLED
        assert result.stream_closed is False
        assert connection.event_types == ["connected", "cancelled"]
        assert scripted_backend.requests == []

    @pytest.mark.asyncio
    async def test_failure_after_cancel_reports_cancelled(
        self, memory_store, transport, test_settings, connection
    ):
        session_ids = []

        async def cancel_then_fail(index):
            if index == 1:
                await memory_store.cancel(session_ids[0])
                raise RuntimeError("connection reset")

        backend = ScriptedBackend(
            name="s", chunks=text_chunks("a", "b"), before_chunk=cancel_then_fail
        )
        orchestrator = _orchestrator_for(backend, memory_store, transport, test_settings)
        session_ids.append(await _create(orchestrator))

        await orchestrator.stream_session(session_ids[0], OWNER, connection)

        assert connection.event_types == ["connected", "chunk", "metadata", "cancelled"]
        session = await memory_store.get(session_ids[0])
        assert session.status is SessionStatus.CANCELLED
        assert session.error is None

    @pytest.mark.asyncio
    async def test_cancel_finished_session_is_a_no_op(self, orchestrator, connection, memory_store):
        session_id = await _create(orchestrator)
        await orchestrator.stream_session(session_id, OWNER, connection)

        result = await orchestrator.cancel_session(session_id, OWNER)

        assert result.status is SessionStatus.COMPLETED
        assert result.stream_closed is False
        assert result.message == "Session is already completed"
        assert (await memory_store.get(session_id)).status is SessionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_cancel_foreign_session_changes_nothing(self, orchestrator, memory_store):
        session_id = await _create(orchestrator)

        with pytest.raises(SessionNotFoundError):
            await orchestrator.cancel_session(session_id, "intruder")

        assert (await memory_store.get(session_id)).status is SessionStatus.PENDING
