"""
Generation backends.

Concrete backends import their SDKs, so they are imported from their own
modules (openai_backend, deepseek_backend, gemini_backend) by the
registration code rather than re-exported here.
"""

from enhance_stream.llm_stream.backends.base_backend import (
    BackendConfig,
    BaseBackend,
    CompletionRequest,
    GenerationChunk,
)
from enhance_stream.llm_stream.backends.mock_backend import MockBackend
from enhance_stream.llm_stream.backends.selector import BackendSelector, create_backend_selector

__all__ = [
    "BackendConfig",
    "BackendSelector",
    "BaseBackend",
    "CompletionRequest",
    "GenerationChunk",
    "MockBackend",
    "create_backend_selector",
]
