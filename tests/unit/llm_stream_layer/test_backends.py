"""
Unit Tests for Generation Backends

Tests the base stream wrapper, the mock backend, and the OpenAI and Gemini
backends with their SDK clients mocked.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.api_core import exceptions as google_exceptions

from enhance_stream.core.exceptions import (
    BackendAuthenticationError,
    BackendConnectionError,
    BackendError,
    BackendRateLimitError,
    BackendUnavailableError,
)
from enhance_stream.llm_stream.backends import BackendConfig, CompletionRequest, MockBackend
from enhance_stream.llm_stream.backends.deepseek_backend import DeepSeekBackend
from enhance_stream.llm_stream.backends.gemini_backend import GeminiBackend
from enhance_stream.llm_stream.backends.openai_backend import OpenAIBackend
from tests.test_fixtures import ScriptedBackend, text_chunks


async def _collect(backend, request):
    return [chunk async for chunk in backend.stream(request)]


@pytest.mark.unit
class TestBaseBackend:
    def test_estimate_tokens_rounds_up(self):
        backend = ScriptedBackend()

        assert backend.estimate_tokens("") == 0
        assert backend.estimate_tokens("abcd") == 1
        assert backend.estimate_tokens("abcde") == 2

    def test_name(self):
        assert ScriptedBackend(name="x").get_name() == "x"

    @pytest.mark.asyncio
    async def test_stream_yields_in_order(self):
        backend = ScriptedBackend(chunks=text_chunks("a", "b", "c"))

        chunks = await _collect(backend, CompletionRequest(prompt="p"))

        assert [c.text for c in chunks] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_foreign_errors_are_wrapped(self):
        backend = ScriptedBackend(chunks=text_chunks("a"), error=KeyError("boom"), fail_after=1)

        with pytest.raises(BackendError) as exc_info:
            await _collect(backend, CompletionRequest(prompt="p"))

        assert exc_info.value.details["backend"] == "scripted"
        assert exc_info.value.details["original_error"] == "KeyError"

    @pytest.mark.asyncio
    async def test_own_errors_pass_through(self):
        backend = ScriptedBackend(error=BackendRateLimitError("slow down"))

        with pytest.raises(BackendRateLimitError):
            await _collect(backend, CompletionRequest(prompt="p"))


@pytest.mark.unit
class TestMockBackend:
    @pytest.fixture
    def backend(self):
        return MockBackend(BackendConfig(name="mock"), chunk_delay=0)

    @pytest.mark.asyncio
    async def test_streams_five_word_chunks_then_stop(self, backend):
        chunks = await _collect(backend, CompletionRequest(prompt="Enhance and improve this text"))

        assert all(len(c.text.split()) <= 5 for c in chunks[:-1])
        assert chunks[-1].finish_reason == "stop"
        assert chunks[-1].text == ""
        assert "sample enhanced text" in "".join(c.text for c in chunks)

    @pytest.mark.asyncio
    async def test_tokens_match_estimate(self, backend):
        chunks = await _collect(backend, CompletionRequest(prompt="Summarize this text"))

        for chunk in chunks:
            assert chunk.tokens == backend.estimate_tokens(chunk.text)

    def test_canned_text_selection(self, backend):
        assert "translated" in backend.generate_text(CompletionRequest(prompt="translate it"))
        assert "summary" in backend.generate_text(CompletionRequest(prompt="give a summary"))

    def test_default_text_is_bounded(self, backend):
        text = backend.generate_text(CompletionRequest(prompt="hello", max_tokens=100000))

        assert text.count("placeholder text") == 3

    @pytest.mark.asyncio
    async def test_disabled_backend(self):
        backend = MockBackend(BackendConfig(name="mock"), chunk_delay=0, enabled=False)

        assert await backend.is_available() is False
        with pytest.raises(BackendUnavailableError):
            await _collect(backend, CompletionRequest(prompt="p"))


def _openai_event(content=None, finish_reason=None):
    return SimpleNamespace(
        choices=[
            SimpleNamespace(delta=SimpleNamespace(content=content), finish_reason=finish_reason)
        ]
    )


class _AsyncEvents:
    def __init__(self, events):
        self._events = list(events)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._events:
            raise StopAsyncIteration
        return self._events.pop(0)


@pytest.mark.unit
class TestOpenAIBackend:
    @pytest.fixture
    def backend(self):
        backend = OpenAIBackend(
            BackendConfig(name="openai", api_key="sk-test", default_model="gpt-4o-mini")
        )
        backend.client = MagicMock()
        return backend

    @pytest.mark.asyncio
    async def test_streams_deltas(self, backend):
        backend.client.chat.completions.create = AsyncMock(
            return_value=_AsyncEvents(
                [_openai_event("Hello"), _openai_event(" world"), _openai_event(None, "stop")]
            )
        )

        chunks = await _collect(
            backend, CompletionRequest(prompt="p", system_prompt="s", max_tokens=20)
        )

        assert [c.text for c in chunks] == ["Hello", " world", ""]
        assert chunks[-1].finish_reason == "stop"
        kwargs = backend.client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "s"}
        assert kwargs["max_tokens"] == 20
        assert kwargs["stream"] is True

    @pytest.mark.asyncio
    async def test_unavailable_when_model_listing_fails(self, backend):
        backend.client.models.list = AsyncMock(side_effect=RuntimeError("down"))

        assert await backend.is_available() is False

    @pytest.mark.asyncio
    async def test_available_when_model_listing_succeeds(self, backend):
        backend.client.models.list = AsyncMock(return_value=[])

        assert await backend.is_available() is True

    def test_deepseek_is_openai_compatible(self):
        backend = DeepSeekBackend(
            BackendConfig(
                name="deepseek", api_key="ds-test", base_url="https://api.deepseek.com/v1"
            )
        )

        assert isinstance(backend, OpenAIBackend)
        assert backend.display_name == "DeepSeek"
        assert "deepseek" in str(backend.client.base_url)


@pytest.mark.unit
class TestGeminiBackend:
    @pytest.fixture
    def genai(self):
        with patch("enhance_stream.llm_stream.backends.gemini_backend.genai") as genai:
            yield genai

    @pytest.fixture
    def backend(self, genai):
        return GeminiBackend(
            BackendConfig(name="gemini", api_key="g-test", default_model="gemini-pro")
        )

    def test_configures_sdk_with_api_key(self, genai, backend):
        genai.configure.assert_called_once_with(api_key="g-test")

    @pytest.mark.asyncio
    async def test_streams_text_parts(self, genai, backend):
        genai.GenerativeModel.return_value.generate_content_async = AsyncMock(
            return_value=_AsyncEvents(
                [
                    SimpleNamespace(text="Hello"),
                    SimpleNamespace(text=""),
                    SimpleNamespace(text=" there"),
                ]
            )
        )

        chunks = await _collect(backend, CompletionRequest(prompt="p", system_prompt="s"))

        assert [c.text for c in chunks] == ["Hello", " there", ""]
        assert chunks[-1].finish_reason == "stop"
        genai.GenerativeModel.assert_called_once_with("gemini-pro")
        prompt = genai.GenerativeModel.return_value.generate_content_async.call_args.args[0]
        assert prompt == "s\n\np"

    @pytest.mark.parametrize(
        "sdk_error, expected",
        [
            (google_exceptions.Unauthenticated("bad key"), BackendAuthenticationError),
            (google_exceptions.ResourceExhausted("quota"), BackendRateLimitError),
            (google_exceptions.ServiceUnavailable("down"), BackendConnectionError),
            (google_exceptions.DeadlineExceeded("slow"), BackendConnectionError),
        ],
    )
    @pytest.mark.asyncio
    async def test_sdk_errors_are_mapped(self, genai, backend, sdk_error, expected):
        genai.GenerativeModel.return_value.generate_content_async = AsyncMock(
            side_effect=sdk_error
        )

        with pytest.raises(expected) as exc_info:
            await _collect(backend, CompletionRequest(prompt="p"))

        assert exc_info.value.__cause__ is sdk_error

    @pytest.mark.asyncio
    async def test_unavailable_when_model_listing_fails(self, genai, backend):
        genai.list_models.side_effect = RuntimeError("down")

        assert await backend.is_available() is False
