from enhance_stream.llm_stream.transport.connection import (
    BaseConnection,
    ConnectionHandle,
    SSEConnection,
)
from enhance_stream.llm_stream.transport.sse_transport import StreamTransport

__all__ = [
    "BaseConnection",
    "ConnectionHandle",
    "SSEConnection",
    "StreamTransport",
]
