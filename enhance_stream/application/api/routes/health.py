"""
Health Check Routes
===================

A single readiness-style endpoint for load balancers and operators. It
reports where sessions are stored, whether Redis answers, how many streams
this process is serving and which generation backends are registered.

The endpoint always answers 200: a Redis outage degrades the service to the
in-memory session store instead of taking it down.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from enhance_stream.application.api.dependencies import OrchestratorDep
from enhance_stream.infrastructure.storage.redis_client import get_redis_client

router = APIRouter(prefix="/health", tags=["Health"])


class HealthResponse(BaseModel):
    status: str  # "healthy" or "degraded"
    timestamp: str
    version: str
    environment: str
    session_store: str
    redis: dict | None = None
    active_streams: int
    backends: list[str]


@router.get("", response_model=HealthResponse)
async def health_check(orchestrator: OrchestratorDep):
    settings = orchestrator.settings

    redis_health = None
    if settings.redis.REDIS_ENABLED:
        redis_health = await get_redis_client().health_check()

    degraded = redis_health is not None and redis_health["status"] != "healthy"
    return HealthResponse(
        status="degraded" if degraded else "healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app.APP_VERSION,
        environment=settings.app.ENVIRONMENT,
        session_store=orchestrator.store.backend_name,
        redis=redis_health,
        active_streams=orchestrator.transport.active_count,
        backends=orchestrator.selector.list_backends(),
    )
