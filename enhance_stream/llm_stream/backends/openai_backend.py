"""
OpenAI Generation Backend

Streams chat completions through the official AsyncOpenAI client and maps
SDK exceptions onto the internal BackendError hierarchy.
"""

from collections.abc import AsyncGenerator

from openai import APIConnectionError, APIError, AsyncOpenAI, AuthenticationError, RateLimitError

from enhance_stream.core.config.constants import Stage
from enhance_stream.core.exceptions import (
    BackendAPIError,
    BackendAuthenticationError,
    BackendConnectionError,
    BackendRateLimitError,
)
from enhance_stream.core.logging import get_logger
from enhance_stream.llm_stream.backends.base_backend import (
    BackendConfig,
    BaseBackend,
    CompletionRequest,
    GenerationChunk,
)

logger = get_logger(__name__)

OPENAI_DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAIBackend(BaseBackend):
    """
    Generation backend for OpenAI's chat completions API.

    Also serves any OpenAI-compatible API through ``config.base_url``
    (see DeepSeekBackend).
    """

    display_name = "OpenAI"

    def __init__(self, config: BackendConfig):
        super().__init__(config)

        base_url = config.base_url if config.base_url != OPENAI_DEFAULT_BASE_URL else None
        self.client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=base_url or None,
            timeout=config.timeout,
            max_retries=0,
        )

    def _build_messages(self, request: CompletionRequest) -> list[dict[str, str]]:
        messages = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})
        return messages

    async def _stream_internal(
        self, request: CompletionRequest
    ) -> AsyncGenerator[GenerationChunk, None]:
        """
        Yields:
            GenerationChunk: one per content delta, then a final empty chunk
            carrying the finish reason

        Raises:
            BackendAuthenticationError: For invalid API keys
            BackendRateLimitError: When the API throttles us
            BackendConnectionError: For network failures and timeouts
            BackendAPIError: For any other API error
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.config.default_model,
                messages=self._build_messages(request),
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                stream=True,
            )

            async for event in response:
                if not event.choices:
                    continue
                choice = event.choices[0]
                content = choice.delta.content if choice.delta else None
                if content:
                    yield GenerationChunk(text=content, tokens=self.estimate_tokens(content))
                if choice.finish_reason:
                    yield GenerationChunk(text="", tokens=0, finish_reason=choice.finish_reason)

        except AuthenticationError as auth_error:
            logger.error(
                f"{self.display_name} authentication failed",
                stage=Stage.GENERATION,
                backend=self.name,
                error=str(auth_error),
            )
            raise BackendAuthenticationError(
                message=f"Invalid {self.display_name} API key",
                details={"backend": self.name},
            ) from auth_error

        except RateLimitError as rate_error:
            logger.warning(
                f"{self.display_name} rate limit exceeded",
                stage=Stage.GENERATION,
                backend=self.name,
                error=str(rate_error),
            )
            raise BackendRateLimitError(
                message=f"{self.display_name} rate limit exceeded",
                details={"backend": self.name},
            ) from rate_error

        except APIConnectionError as conn_error:
            logger.error(
                f"{self.display_name} connection failed",
                stage=Stage.GENERATION,
                backend=self.name,
                error=str(conn_error),
            )
            raise BackendConnectionError(
                message=f"Could not connect to {self.display_name}",
                details={"backend": self.name},
            ) from conn_error

        except APIError as api_error:
            logger.error(
                f"{self.display_name} API error",
                stage=Stage.GENERATION,
                backend=self.name,
                error=str(api_error),
            )
            raise BackendAPIError(
                message=f"{self.display_name} API returned an error: {api_error.message}",
                details={"backend": self.name, "code": api_error.code},
            ) from api_error

    async def is_available(self) -> bool:
        """Check by listing models, the cheapest authenticated call."""
        try:
            await self.client.models.list()
            return True
        except Exception as e:
            logger.warning(
                f"{self.display_name} availability check failed",
                stage=Stage.BACKEND_SELECTION,
                backend=self.name,
                error=str(e),
            )
            return False
