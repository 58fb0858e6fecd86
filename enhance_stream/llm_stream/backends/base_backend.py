"""
Base Generation Backend

This module defines the abstract base class for all generation backends.
Concrete implementations (OpenAI, DeepSeek, Gemini, mock) inherit from it.

Every backend offers the same capability set:
- stream(): a lazy, finite, non-restartable sequence of GenerationChunk
- estimate_tokens(): rough token cost of an arbitrary string
- name: the backend's registered name
- is_available(): a liveness check that never raises
"""

import math
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from dataclasses import dataclass

from enhance_stream.core.config.constants import CHARS_PER_TOKEN, Stage
from enhance_stream.core.exceptions import BackendError, EnhanceStreamError
from enhance_stream.core.logging.logger import get_logger

logger = get_logger(__name__)


@dataclass
class GenerationChunk:
    """
    A unit of incrementally produced text.

    Attributes:
        text: Text content of the chunk
        tokens: Estimated token cost of the text
        finish_reason: Why generation ended (only on the last chunk)
    """

    text: str
    tokens: int = 0
    finish_reason: str | None = None


@dataclass
class CompletionRequest:
    """Prompt and sampling parameters for one generation."""

    prompt: str
    system_prompt: str = ""
    temperature: float = 0.7
    max_tokens: int = 1000


@dataclass
class BackendConfig:
    """
    Configuration for a generation backend.

    Attributes:
        name: Backend name
        api_key: API key for authentication
        base_url: Base URL for API
        timeout: Request timeout in seconds
        default_model: Model used for every request
    """

    name: str
    api_key: str = ""
    base_url: str = ""
    timeout: int = 30
    default_model: str = ""


class BaseBackend(ABC):
    """
    Abstract base class for generation backends.

    Subclasses must implement:
    - _stream_internal(): backend-specific streaming
    - is_available(): availability check

    stream() wraps _stream_internal() with logging and translates any
    failure that is not already one of ours into BackendError.
    """

    def __init__(self, config: BackendConfig):
        self.config = config
        self.name = config.name

        logger.info(
            "Backend initialized",
            stage=Stage.BACKEND_SELECTION,
            backend=config.name,
            model=config.default_model,
        )

    def get_name(self) -> str:
        return self.name

    def estimate_tokens(self, text: str) -> int:
        """Approximate token count: one token per four characters, rounded up."""
        return math.ceil(len(text) / CHARS_PER_TOKEN)

    async def stream(self, request: CompletionRequest) -> AsyncGenerator[GenerationChunk, None]:
        """
        Stream a completion.

        Args:
            request: Prompt and sampling parameters

        Yields:
            GenerationChunk: Response chunks in production order

        Raises:
            BackendError: On any backend failure
        """
        logger.info(
            "Starting generation",
            stage=Stage.GENERATION,
            backend=self.name,
            model=self.config.default_model,
            prompt_length=len(request.prompt),
        )

        chunk_count = 0
        total_length = 0
        try:
            async for chunk in self._stream_internal(request):
                chunk_count += 1
                total_length += len(chunk.text)
                yield chunk
        except EnhanceStreamError:
            raise
        except Exception as e:
            logger.error(
                "Generation failed",
                stage=Stage.GENERATION,
                backend=self.name,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise BackendError.from_exception(e, backend=self.name) from e

        logger.info(
            "Generation completed",
            stage=Stage.GENERATION,
            backend=self.name,
            chunk_count=chunk_count,
            total_length=total_length,
        )

    @abstractmethod
    def _stream_internal(self, request: CompletionRequest) -> AsyncGenerator[GenerationChunk, None]:
        """
        Backend-specific streaming implementation.

        Implemented as an async generator yielding GenerationChunk.
        """

    @abstractmethod
    async def is_available(self) -> bool:
        """
        Check whether the backend can serve requests.

        Returns:
            True if the backend can currently serve requests. Never raises.
        """
