"""
Health Check Schemas.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class ServiceHealth(BaseModel):
    """Health status of a service."""
    name: str
    healthy: bool
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Overall health check response."""
    status: str = Field(..., description="healthy, degraded, or unhealthy")
    version: str
    services: list[ServiceHealth]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
