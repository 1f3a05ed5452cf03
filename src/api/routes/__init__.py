"""API Routes."""
from src.api.routes.sessions import router as sessions_router
from src.api.routes.health import router as health_router

__all__ = ["sessions_router", "health_router"]
