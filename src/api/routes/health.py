"""
Health Check Routes.

Provides health and readiness endpoints for monitoring.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import APIRouter, Depends

from src.config import get_settings
from src.utils.logging import get_logger
from src.api.routes.sessions import get_agent
from src.api.schemas import HealthResponse, ServiceHealth
from src.core.agent import SearchAgent


logger = get_logger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


async def _check(name: str, probe: Callable[[], Awaitable[bool]]) -> ServiceHealth:
    """Time one service probe."""
    start = time.time()
    healthy = await probe()
    return ServiceHealth(
        name=name,
        healthy=healthy,
        latency_ms=(time.time() - start) * 1000,
        error=None if healthy else f"{name} unavailable",
    )


async def _check_brave(agent: SearchAgent) -> ServiceHealth:
    return await _check("brave", agent.search_service.health_check)


async def _check_ollama(agent: SearchAgent) -> ServiceHealth:
    if agent.llm_service is None:
        return ServiceHealth(name="ollama", healthy=False, error="No LLM service configured")

    settings = get_settings()
    start = time.time()
    models = await agent.llm_service.list_models()
    latency = (time.time() - start) * 1000

    if not models:
        return ServiceHealth(name="ollama", healthy=False, latency_ms=latency, error="Ollama unavailable")

    # Ollama tags may omit or include :latest
    required_model = settings.llm.model
    has_model = any(name == required_model or name.split(":")[0] == required_model for name in models)
    return ServiceHealth(
        name="ollama",
        healthy=has_model,
        latency_ms=latency,
        error=None if has_model else f"Model {required_model} not found",
    )


@router.get("/", response_model=HealthResponse)
async def health_check(agent: SearchAgent = Depends(get_agent)):
    """
    Comprehensive health check.

    Checks all dependent services and returns overall status.
    """
    settings = get_settings()

    # Check all services in parallel
    services = list(await asyncio.gather(
        _check_brave(agent),
        _check_ollama(agent),
    ))

    # Overall status
    all_healthy = all(s.healthy for s in services)
    any_healthy = any(s.healthy for s in services)

    if all_healthy:
        status = "healthy"
    elif any_healthy:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(
        status=status,
        version=settings.version,
        services=services,
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/live")
async def liveness():
    """
    Kubernetes liveness probe.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus exposition format for scraping.
    """
    from src.api.metrics import metrics_response
    return metrics_response()
