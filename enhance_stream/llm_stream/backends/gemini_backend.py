"""
Google Gemini Generation Backend

Uses the google-generativeai SDK. The SDK is configured once per backend
instance with the API key; the availability check runs the SDK's blocking
``list_models`` call in a worker thread.
"""

import asyncio
from collections.abc import AsyncGenerator

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

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


class GeminiBackend(BaseBackend):
    """Generation backend for Google's Gemini models."""

    def __init__(self, config: BackendConfig):
        super().__init__(config)
        genai.configure(api_key=config.api_key)

    @staticmethod
    def _chunk_text(chunk) -> str:
        # .text raises when a chunk carries no text part (e.g. a safety stop)
        try:
            return chunk.text or ""
        except ValueError:
            return ""

    async def _stream_internal(
        self, request: CompletionRequest
    ) -> AsyncGenerator[GenerationChunk, None]:
        prompt = request.prompt
        if request.system_prompt:
            prompt = f"{request.system_prompt}\n\n{request.prompt}"

        try:
            model = genai.GenerativeModel(self.config.default_model)
            response_stream = await model.generate_content_async(
                prompt,
                stream=True,
                generation_config=genai.GenerationConfig(
                    temperature=request.temperature,
                    max_output_tokens=request.max_tokens,
                ),
                request_options={"timeout": self.config.timeout},
            )

            async for chunk in response_stream:
                text = self._chunk_text(chunk)
                if text:
                    yield GenerationChunk(text=text, tokens=self.estimate_tokens(text))

            yield GenerationChunk(text="", tokens=0, finish_reason="stop")

        except google_exceptions.Unauthenticated as auth_error:
            logger.error(
                "Gemini authentication failed", stage=Stage.GENERATION, error=str(auth_error)
            )
            raise BackendAuthenticationError(
                message="Invalid Gemini API key", details={"backend": self.name}
            ) from auth_error

        except google_exceptions.ResourceExhausted as rate_error:
            logger.warning(
                "Gemini rate limit exceeded", stage=Stage.GENERATION, error=str(rate_error)
            )
            raise BackendRateLimitError(
                message="Gemini rate limit exceeded", details={"backend": self.name}
            ) from rate_error

        except (google_exceptions.ServiceUnavailable, google_exceptions.DeadlineExceeded) as conn_error:
            logger.error(
                "Gemini service unavailable", stage=Stage.GENERATION, error=str(conn_error)
            )
            raise BackendConnectionError(
                message="Gemini service unavailable", details={"backend": self.name}
            ) from conn_error

        except google_exceptions.GoogleAPIError as api_error:
            logger.error("Gemini API error", stage=Stage.GENERATION, error=str(api_error))
            raise BackendAPIError(
                message=f"Gemini API error: {api_error}", details={"backend": self.name}
            ) from api_error

    async def is_available(self) -> bool:
        try:
            await asyncio.to_thread(lambda: next(iter(genai.list_models(page_size=1)), None))
            return True
        except Exception as e:
            logger.warning(
                "Gemini availability check failed",
                stage=Stage.BACKEND_SELECTION,
                backend=self.name,
                error=str(e),
            )
            return False
