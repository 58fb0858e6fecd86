"""
DeepSeek Generation Backend

DeepSeek's API is OpenAI-compatible, so the backend reuses the OpenAI
streaming and error mapping against DeepSeek's base URL. It stays a
separate class so it is registered, priced and logged under its own name.
"""

from enhance_stream.core.config.constants import Stage
from enhance_stream.core.logging import get_logger
from enhance_stream.llm_stream.backends.base_backend import BackendConfig
from enhance_stream.llm_stream.backends.openai_backend import OpenAIBackend

logger = get_logger(__name__)


class DeepSeekBackend(OpenAIBackend):
    """Generation backend for DeepSeek chat models."""

    display_name = "DeepSeek"

    def __init__(self, config: BackendConfig):
        super().__init__(config)

        logger.info(
            "DeepSeek backend initialized",
            stage=Stage.BACKEND_SELECTION,
            backend=self.name,
            base_url=config.base_url,
        )
