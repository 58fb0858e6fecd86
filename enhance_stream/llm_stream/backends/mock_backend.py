"""
Mock Generation Backend

A deterministic stand-in backend for development and tests. It never calls
out to a network service: it picks a canned response from keywords in the
prompt and streams it five words at a time with a fixed delay.
"""

import asyncio
from collections.abc import AsyncGenerator

from enhance_stream.core.config.constants import Stage
from enhance_stream.core.exceptions import BackendUnavailableError
from enhance_stream.core.logging import get_logger
from enhance_stream.llm_stream.backends.base_backend import (
    BackendConfig,
    BaseBackend,
    CompletionRequest,
    GenerationChunk,
)

logger = get_logger(__name__)

IMPROVED_TEXT = (
    "This is a sample enhanced text that demonstrates how the assistant improves your content. "
    "It provides suggestions and refinements to make your writing more clear, concise, and engaging. "
    "The system analyzes your input and generates improvements that maintain your original intent. "
    "You can use this for testing streaming functionality without making actual API calls. "
)
TRANSLATED_TEXT = (
    "This is a translated version of your text. The translation maintains the original "
    "meaning while adapting to the target language naturally. "
)
SUMMARY_TEXT = (
    "Here is a concise summary of the key points: The main concepts are presented clearly, "
    "important details are highlighted, and the overall message is preserved in a more compact form. "
)
DEFAULT_TEXT = (
    "This is a stream of placeholder text for testing purposes. It simulates the streaming "
    "behavior of a generation backend without making actual API calls. Each chunk is delivered "
    "with a small delay to mimic real-world streaming. "
)

WORDS_PER_CHUNK = 5
MAX_REPETITIONS = 3


class MockBackend(BaseBackend):
    """
    Deterministic backend producing canned text.

    Args:
        config: Backend configuration (only ``name`` is used)
        chunk_delay: Seconds to sleep before each chunk
        enabled: Whether the backend reports itself available
    """

    def __init__(self, config: BackendConfig, chunk_delay: float = 0.2, enabled: bool = True):
        super().__init__(config)
        self.chunk_delay = chunk_delay
        self.enabled = enabled

    async def is_available(self) -> bool:
        return self.enabled

    def generate_text(self, request: CompletionRequest) -> str:
        prompt = request.prompt.lower()

        if "improve" in prompt or "enhance" in prompt:
            return IMPROVED_TEXT
        if "translate" in prompt:
            return TRANSLATED_TEXT
        if "summarize" in prompt or "summary" in prompt:
            return SUMMARY_TEXT

        # Pad the default text towards the requested length
        repetitions = max(1, -(-request.max_tokens // self.estimate_tokens(DEFAULT_TEXT)))
        return DEFAULT_TEXT * min(repetitions, MAX_REPETITIONS)

    @staticmethod
    def split_words(text: str) -> list[str]:
        words = text.split()
        return [
            " ".join(words[i : i + WORDS_PER_CHUNK]) + " "
            for i in range(0, len(words), WORDS_PER_CHUNK)
        ]

    async def _stream_internal(
        self, request: CompletionRequest
    ) -> AsyncGenerator[GenerationChunk, None]:
        if not self.enabled:
            raise BackendUnavailableError(
                "Mock backend is disabled", details={"backend": self.name}
            )

        logger.debug("Streaming canned response", stage=Stage.GENERATION, backend=self.name)

        for piece in self.split_words(self.generate_text(request)):
            if self.chunk_delay:
                await asyncio.sleep(self.chunk_delay)
            yield GenerationChunk(text=piece, tokens=self.estimate_tokens(piece))

        yield GenerationChunk(text="", tokens=0, finish_reason="stop")
