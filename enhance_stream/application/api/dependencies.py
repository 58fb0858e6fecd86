"""
FastAPI Dependency Injection Module
===================================

Reusable dependencies for the enhancement routes. Application singletons
(the orchestrator and its collaborators) are created once in the lifespan
manager and stored on ``app.state``; routes receive them through the
``Annotated`` aliases at the bottom of this module.

Example:
    @router.get("/ai/sessions")
    async def list_sessions(orchestrator: OrchestratorDep, user_id: UserIdDep):
        return await orchestrator.list_sessions(user_id)
"""

from typing import Annotated

from fastapi import Depends, Request

from enhance_stream.core.config.backend_registry import register_backends
from enhance_stream.core.config.constants import HEADER_USER_ID, Stage
from enhance_stream.core.config.settings import Settings, get_settings
from enhance_stream.core.logging.logger import get_logger
from enhance_stream.infrastructure.storage.redis_client import RedisClient
from enhance_stream.infrastructure.storage.session_store import SessionStore
from enhance_stream.llm_stream.backends.selector import create_backend_selector
from enhance_stream.llm_stream.services.enhancement_orchestrator import EnhancementOrchestrator
from enhance_stream.llm_stream.transport.sse_transport import StreamTransport

logger = get_logger(__name__)


def build_orchestrator(
    settings: Settings, redis_client: RedisClient | None = None
) -> EnhancementOrchestrator:
    """
    Wire the session store, backend selector and transport together.

    Without a connected ``redis_client`` sessions live in process memory.
    """
    store = SessionStore(redis_client, ttl_seconds=settings.session.SESSION_TTL_SECONDS)

    selector = create_backend_selector(settings)
    register_backends(selector, settings)

    logger.info(
        "Orchestrator wired",
        stage=Stage.INITIALIZATION,
        session_store=store.backend_name,
        backends=selector.list_backends(),
    )
    return EnhancementOrchestrator(
        store=store,
        selector=selector,
        transport=StreamTransport(),
        settings=settings,
    )


def get_orchestrator(request: Request) -> EnhancementOrchestrator:
    """
    Retrieve the orchestrator singleton from application state.

    When the lifespan did not run (a bare TestClient without a ``with``
    block) an in-memory orchestrator is created and cached on the app.
    """
    if hasattr(request.app.state, "orchestrator"):
        return request.app.state.orchestrator

    orchestrator = build_orchestrator(get_settings())
    request.app.state.orchestrator = orchestrator
    return orchestrator


def get_user_id(request: Request) -> str:
    """
    Identify the requester.

    The ``X-User-ID`` header wins; anonymous callers are identified by their
    client address.
    """
    user_id = request.headers.get(HEADER_USER_ID)
    if user_id:
        return user_id

    return request.client.host if request.client else "unknown"


OrchestratorDep = Annotated[EnhancementOrchestrator, Depends(get_orchestrator)]
UserIdDep = Annotated[str, Depends(get_user_id)]
