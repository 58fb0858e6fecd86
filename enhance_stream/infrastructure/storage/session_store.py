"""
Session Store

Durable-ish key/value record of session state.

Architecture:
    SessionStore (public API: create / get / require / update / cancel)
        ├── RedisSessionRepository   (used while Redis is connected)
        └── InMemorySessionRepository (local fallback)

Which repository serves a call is decided per call from the Redis client's
connectivity flag. A Redis failure during a call is logged and the call is
served by the in-memory repository instead, so callers never see storage
errors and never need to know which repository answered.

There is no cross-call locking: update() is a read-modify-write and the
last writer wins. The only rule enforced on writes is that a status never
moves backwards through the lifecycle.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import orjson

from enhance_stream.core.config.constants import (
    REDIS_KEY_OWNER_INDEX,
    REDIS_KEY_SESSION,
    EnhanceAction,
    SessionStatus,
    Stage,
)
from enhance_stream.core.exceptions import (
    InvalidSessionTransitionError,
    SessionNotFoundError,
    StorageError,
)
from enhance_stream.core.logging.logger import get_logger
from enhance_stream.infrastructure.storage.redis_client import RedisClient
from enhance_stream.llm_stream.models.session import GenerationOptions, Session, utc_now

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Repositories
# =============================================================================


class SessionRepository(ABC):
    """Raw persistence of session records, keyed by session ID."""

    name: str = "abstract"

    @abstractmethod
    async def load(self, session_id: str) -> Session | None:
        """Return the stored session or None if absent or expired."""

    @abstractmethod
    async def save(self, session: Session, ttl: int) -> None:
        """Store (or overwrite) the session with a fresh time-to-live."""

    @abstractmethod
    async def session_ids_for_owner(self, owner_id: str) -> list[str]:
        """Return IDs of sessions created by ``owner_id``."""

    @abstractmethod
    async def forget_for_owner(self, owner_id: str, session_ids: list[str]) -> None:
        """Drop expired ``session_ids`` from the owner index."""


class InMemorySessionRepository(SessionRepository):
    """Process-local repository with lazy TTL expiry."""

    name = "memory"

    def __init__(self):
        self._sessions: dict[str, tuple[Session, float]] = {}
        self._owners: dict[str, set[str]] = {}

    async def load(self, session_id: str) -> Session | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        session, expires_at = entry
        if expires_at <= time.monotonic():
            self._evict(session)
            return None
        return session.model_copy(deep=True)

    async def save(self, session: Session, ttl: int) -> None:
        self._sessions[session.session_id] = (
            session.model_copy(deep=True),
            time.monotonic() + ttl,
        )
        self._owners.setdefault(session.owner_id, set()).add(session.session_id)

    async def session_ids_for_owner(self, owner_id: str) -> list[str]:
        return list(self._owners.get(owner_id, ()))

    async def forget_for_owner(self, owner_id: str, session_ids: list[str]) -> None:
        owned = self._owners.get(owner_id)
        if owned is not None:
            owned.difference_update(session_ids)

    def _evict(self, session: Session) -> None:
        self._sessions.pop(session.session_id, None)
        owned = self._owners.get(session.owner_id)
        if owned is not None:
            owned.discard(session.session_id)

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionRepository(SessionRepository):
    """
    Redis repository.

    Keys:
        session:{session_id}        JSON document, expires after the TTL
        session:owner:{owner_id}    set of the owner's session IDs
    """

    name = "redis"

    def __init__(self, redis_client: RedisClient):
        self._redis = redis_client

    @staticmethod
    def session_key(session_id: str) -> str:
        return f"{REDIS_KEY_SESSION}:{session_id}"

    @staticmethod
    def owner_key(owner_id: str) -> str:
        return f"{REDIS_KEY_OWNER_INDEX}:{owner_id}"

    async def load(self, session_id: str) -> Session | None:
        raw = await self._redis.get(self.session_key(session_id))
        if raw is None:
            return None
        return Session.model_validate(orjson.loads(raw))

    async def save(self, session: Session, ttl: int) -> None:
        payload = orjson.dumps(session.model_dump(mode="json")).decode()
        await self._redis.set(self.session_key(session.session_id), payload, ttl=ttl)
        owner_key = self.owner_key(session.owner_id)
        await self._redis.sadd(owner_key, session.session_id)
        await self._redis.expire(owner_key, ttl)

    async def session_ids_for_owner(self, owner_id: str) -> list[str]:
        return sorted(await self._redis.smembers(self.owner_key(owner_id)))

    async def forget_for_owner(self, owner_id: str, session_ids: list[str]) -> None:
        if session_ids:
            await self._redis.srem(self.owner_key(owner_id), *session_ids)


# =============================================================================
# Store
# =============================================================================


class SessionStore:
    """
    Session persistence with transparent fallback to process memory.

    Args:
        redis_client: Redis client, or None to always use memory
        ttl_seconds: Time-to-live applied on every write
    """

    def __init__(self, redis_client: RedisClient | None, ttl_seconds: int = 3600):
        self._redis_client = redis_client
        self._ttl = ttl_seconds
        self._memory = InMemorySessionRepository()
        self._redis_repo = RedisSessionRepository(redis_client) if redis_client else None

    @property
    def backend_name(self) -> str:
        """Name of the repository that would serve the next call."""
        return self._active_repository().name

    def _active_repository(self) -> SessionRepository:
        if self._redis_repo is not None and self._redis_client.is_connected():
            return self._redis_repo
        return self._memory

    async def _call(
        self, operation: str, action: Callable[[SessionRepository], Awaitable[T]]
    ) -> T:
        repository = self._active_repository()
        if repository is self._memory:
            return await action(self._memory)
        try:
            return await action(repository)
        except StorageError as e:
            logger.warning(
                "Redis unavailable, using in-memory session storage",
                stage=Stage.SESSION_STORE,
                operation=operation,
                error=str(e),
            )
            return await action(self._memory)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def create(
        self,
        owner_id: str,
        text: str,
        action: EnhanceAction,
        backend_name: str,
        context: dict[str, Any] | None = None,
        options: GenerationOptions | None = None,
    ) -> Session:
        """Persist a new ``pending`` session and return it."""
        session = Session(
            owner_id=owner_id,
            original_text=text,
            action=action,
            backend_name=backend_name,
            context=context or {},
            options=options or GenerationOptions(),
        )
        await self._call("create", lambda repo: repo.save(session, self._ttl))

        logger.info(
            "Session created",
            stage=Stage.SESSION_STORE,
            session_id=session.session_id,
            owner_id=owner_id,
            action=action.value,
            backend=backend_name,
        )
        return session

    async def get(self, session_id: str) -> Session | None:
        return await self._call("get", lambda repo: repo.load(session_id))

    async def require(self, session_id: str) -> Session:
        """
        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = await self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id=session_id)
        return session

    async def update(self, session_id: str, **fields: Any) -> Session:
        """
        Apply a partial update.

        Reaching a terminal status stamps ``completed_at``.

        Raises:
            SessionNotFoundError: If the session does not exist
            InvalidSessionTransitionError: If the status would move backwards
        """
        session = await self.require(session_id)

        new_status = fields.get("status")
        if new_status is not None:
            new_status = SessionStatus(new_status)
            if not session.status.can_transition_to(new_status):
                raise InvalidSessionTransitionError(
                    f"Cannot move session from {session.status.value} to {new_status.value}",
                    session_id=session_id,
                    details={"from": session.status.value, "to": new_status.value},
                )
            fields["status"] = new_status
            if new_status.is_terminal and "completed_at" not in fields:
                fields["completed_at"] = utc_now()

        updated = session.model_copy(update=fields)
        await self._call("update", lambda repo: repo.save(updated, self._ttl))

        logger.debug(
            "Session updated",
            stage=Stage.SESSION_STORE,
            session_id=session_id,
            fields=sorted(fields),
            status=updated.status.value,
        )
        return updated

    async def cancel(self, session_id: str) -> Session:
        """
        Mark the session ``cancelled``.

        Idempotent: a session already in a terminal status is returned as is.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = await self.require(session_id)
        if session.is_terminal:
            return session
        try:
            return await self.update(session_id, status=SessionStatus.CANCELLED)
        except InvalidSessionTransitionError:
            # Finished between our read and the update's own read
            return await self.require(session_id)

    async def list_for_owner(self, owner_id: str) -> list[Session]:
        """Return the owner's live sessions, newest first."""
        session_ids = await self._call(
            "list_for_owner", lambda repo: repo.session_ids_for_owner(owner_id)
        )
        sessions = []
        expired = []
        for session_id in session_ids:
            session = await self.get(session_id)
            if session is None:
                expired.append(session_id)
            elif session.owner_id == owner_id:
                sessions.append(session)

        if expired:
            await self._call(
                "list_for_owner", lambda repo: repo.forget_for_owner(owner_id, expired)
            )
        sessions.sort(key=lambda s: s.created_at, reverse=True)
        return sessions
