"""
Streaming Transport

Owns the registry of live client connections, one per session ID, and
delivers StreamEvents to them as SSE frames.

Guarantees:
- open() emits ``connected`` first and removes the registry entry when the
  peer disconnects.
- send() never raises; it is a no-op for closed or untracked sessions.
- close_with_terminal() is idempotent. The first call sends the terminal
  event, closes and deregisters; later calls find nothing registered and
  do nothing, so at most one terminal event reaches a connection.

A transport instance is created by the application and passed to the
orchestrator; tests build their own independent instances.
"""

from enhance_stream.core.config.constants import Stage
from enhance_stream.core.logging import get_logger
from enhance_stream.llm_stream.models.stream_event import StreamEvent
from enhance_stream.llm_stream.transport.connection import ConnectionHandle

logger = get_logger(__name__)


class StreamTransport:
    """Registry of live connections keyed by session ID."""

    def __init__(self):
        self._connections: dict[str, ConnectionHandle] = {}

    @property
    def active_count(self) -> int:
        return sum(1 for handle in self._connections.values() if not handle.is_closed)

    def open(self, session_id: str, handle: ConnectionHandle) -> None:
        """
        Track ``handle`` for ``session_id`` and send ``connected``.

        A previously tracked connection for the same session is closed.
        """
        previous = self._connections.pop(session_id, None)
        if previous is not None and previous is not handle:
            logger.warning(
                "Replacing existing connection", stage=Stage.TRANSPORT, session_id=session_id
            )
            self._safe_close(session_id, previous)

        self._connections[session_id] = handle
        handle.add_close_callback(lambda: self._forget(session_id, handle))

        logger.info("Connection opened", stage=Stage.TRANSPORT, session_id=session_id)
        self.send(session_id, StreamEvent.connected(session_id))

    def send(self, session_id: str, event: StreamEvent) -> bool:
        """
        Send a non-terminal event.

        Returns:
            True if the frame was handed to the connection
        """
        handle = self._connections.get(session_id)
        if handle is None or handle.is_closed:
            return False
        return self._safe_write(session_id, handle, event)

    def is_active(self, session_id: str) -> bool:
        handle = self._connections.get(session_id)
        return handle is not None and not handle.is_closed

    def close_with_terminal(self, session_id: str, event: StreamEvent) -> bool:
        """
        Send the terminal ``event``, then close and deregister the connection.

        Returns:
            True if a live tracked connection was closed by this call
        """
        handle = self._connections.pop(session_id, None)
        if handle is None or handle.is_closed:
            return False

        self._safe_write(session_id, handle, event)
        self._safe_close(session_id, handle)

        logger.info(
            "Connection closed",
            stage=Stage.TRANSPORT,
            session_id=session_id,
            terminal_event=event.event.value,
        )
        return True

    def deregister(self, session_id: str) -> None:
        """Drop and close the session's connection without sending anything."""
        handle = self._connections.pop(session_id, None)
        if handle is not None:
            self._safe_close(session_id, handle)

    def reject(self, handle: ConnectionHandle, event: StreamEvent) -> None:
        """
        Answer an untracked connection with a single terminal event and close it.

        Used for failures that happen before a connection is opened.
        """
        if handle.is_closed:
            return
        try:
            handle.write(event.format())
        except Exception as e:
            logger.warning("Failed to write rejection", stage=Stage.TRANSPORT, error=str(e))
        finally:
            handle.close()

    # ------------------------------------------------------------------

    def _forget(self, session_id: str, handle: ConnectionHandle) -> None:
        if self._connections.get(session_id) is handle:
            del self._connections[session_id]
            logger.info("Peer disconnected", stage=Stage.TRANSPORT, session_id=session_id)

    def _safe_write(self, session_id: str, handle: ConnectionHandle, event: StreamEvent) -> bool:
        try:
            handle.write(event.format())
            return True
        except Exception as e:
            logger.warning(
                "Failed to write event",
                stage=Stage.TRANSPORT,
                session_id=session_id,
                event_type=event.event.value,
                error=str(e),
            )
            return False

    def _safe_close(self, session_id: str, handle: ConnectionHandle) -> None:
        try:
            handle.close()
        except Exception as e:
            logger.warning(
                "Failed to close connection", stage=Stage.TRANSPORT, session_id=session_id, error=str(e)
            )
