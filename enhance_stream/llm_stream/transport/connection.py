"""
Connection handles.

A connection handle is the write side of one client's event stream. The
transport only needs four things from it: write a frame, close it, tell
whether it is closed, and call back when it closes (including when the
peer goes away).
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable

from enhance_stream.core.config.constants import Stage
from enhance_stream.core.logging import get_logger

logger = get_logger(__name__)


class ConnectionHandle(ABC):
    """Write side of one client event stream."""

    @abstractmethod
    def write(self, frame: str) -> None:
        """Queue a frame for the client. Raises if the connection is closed."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection server-side. Idempotent."""

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """True once closed by either side."""

    @abstractmethod
    def add_close_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once when the connection closes."""


class BaseConnection(ConnectionHandle):
    """Closed-flag and close-callback bookkeeping shared by all handles."""

    def __init__(self):
        self._closed = False
        self._close_callbacks: list[Callable[[], None]] = []

    @property
    def is_closed(self) -> bool:
        return self._closed

    def add_close_callback(self, callback: Callable[[], None]) -> None:
        if self._closed:
            callback()
            return
        self._close_callbacks.append(callback)

    def write(self, frame: str) -> None:
        if self._closed:
            raise ConnectionError("Connection is closed")
        self._write(frame)

    def close(self) -> None:
        self._mark_closed()

    def _mark_closed(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._on_close()

        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(
                    "Connection close callback failed", stage=Stage.TRANSPORT, error=str(e)
                )

    @abstractmethod
    def _write(self, frame: str) -> None:
        """Deliver one frame."""

    def _on_close(self) -> None:
        """Hook for subclasses, runs before the close callbacks."""


_END_OF_STREAM = object()


class SSEConnection(BaseConnection):
    """
    Queue-backed handle feeding a Starlette StreamingResponse.

    The producer (the orchestrator's stream task) writes frames; the
    response consumes iter_frames(). When the client disconnects, Starlette
    stops consuming and closes the generator, which marks the connection
    closed and fires the registry cleanup.

    Usage:
        connection = SSEConnection()
        asyncio.create_task(orchestrator.stream_session(session_id, user_id, connection))
        return StreamingResponse(connection.iter_frames(), media_type="text/event-stream")
    """

    def __init__(self):
        super().__init__()
        self._queue: asyncio.Queue = asyncio.Queue()
        self.producer: asyncio.Task | None = None

    def _write(self, frame: str) -> None:
        self._queue.put_nowait(frame)

    def _on_close(self) -> None:
        self._queue.put_nowait(_END_OF_STREAM)

    async def iter_frames(self) -> AsyncIterator[str]:
        """Yield frames until the connection is closed server-side."""
        try:
            while True:
                frame = await self._queue.get()
                if frame is _END_OF_STREAM:
                    break
                yield frame
        finally:
            # Peer went away, or the server closed the stream
            self._mark_closed()
