"""
Generation Backend Registry

Registers the available generation backends with a BackendSelector during
application startup. A backend is only registered when its API key is
configured; the mock backend is registered when enabled outside production.
"""

from enhance_stream.core.config.constants import BackendName, Stage
from enhance_stream.core.config.settings import Settings, get_settings
from enhance_stream.core.logging.logger import get_logger
from enhance_stream.llm_stream.backends import BackendConfig, BackendSelector, MockBackend
from enhance_stream.llm_stream.backends.deepseek_backend import DeepSeekBackend
from enhance_stream.llm_stream.backends.gemini_backend import GeminiBackend
from enhance_stream.llm_stream.backends.openai_backend import OpenAIBackend

logger = get_logger(__name__)


def register_backends(selector: BackendSelector, settings: Settings | None = None) -> None:
    """
    Register all configured generation backends with the selector.

    Args:
        selector: Selector to register with
        settings: Settings to read keys from (defaults to the global settings)
    """
    settings = settings or get_settings()
    llm = settings.llm

    if llm.OPENAI_API_KEY:
        selector.register(
            name=BackendName.OPENAI.value,
            backend_class=OpenAIBackend,
            config=BackendConfig(
                name=BackendName.OPENAI.value,
                api_key=llm.OPENAI_API_KEY,
                base_url=llm.OPENAI_BASE_URL,
                timeout=llm.OPENAI_TIMEOUT,
                default_model=llm.OPENAI_MODEL,
            ),
        )

    if llm.DEEPSEEK_API_KEY:
        selector.register(
            name=BackendName.DEEPSEEK.value,
            backend_class=DeepSeekBackend,
            config=BackendConfig(
                name=BackendName.DEEPSEEK.value,
                api_key=llm.DEEPSEEK_API_KEY,
                base_url=llm.DEEPSEEK_BASE_URL,
                timeout=llm.DEEPSEEK_TIMEOUT,
                default_model=llm.DEEPSEEK_MODEL,
            ),
        )

    if llm.GOOGLE_API_KEY:
        selector.register(
            name=BackendName.GEMINI.value,
            backend_class=GeminiBackend,
            config=BackendConfig(
                name=BackendName.GEMINI.value,
                api_key=llm.GOOGLE_API_KEY,
                timeout=llm.GEMINI_TIMEOUT,
                default_model=llm.GEMINI_MODEL,
            ),
        )

    if settings.mock_backend_enabled:
        selector.register_instance(
            MockBackend(
                BackendConfig(name=BackendName.MOCK.value, default_model="mock"),
                chunk_delay=llm.MOCK_CHUNK_DELAY_MS / 1000,
            )
        )
    elif llm.USE_MOCK_LLM_BACKEND:
        logger.warning(
            "USE_MOCK_LLM_BACKEND ignored outside development and test",
            stage=Stage.INITIALIZATION,
            environment=settings.ENVIRONMENT,
        )

    logger.info(
        "Backends registered",
        stage=Stage.INITIALIZATION,
        backends=selector.list_backends(),
        default=selector.default,
        fallbacks=selector.fallbacks,
    )
