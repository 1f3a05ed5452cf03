"""
FastAPI Application.

Main entry point for the Scout Search API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from src.config import get_settings
from src.utils.logging import setup_logging, get_logger
from src.utils.exceptions import ScoutError, TransportError, ValidationError
from src.api.routes import sessions_router, health_router
from src.api.routes.sessions import close_agent


logger = get_logger(__name__)

_LOCAL_HOSTS = ("127.0.0.1", "localhost", "::1")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    settings = get_settings()
    setup_logging(level=settings.logging.level)

    logger.info(
        f"Starting Scout API v{settings.version} "
        f"({settings.environment})"
    )

    # Warn if binding to non-localhost: network exposure
    if settings.api.host not in _LOCAL_HOSTS:
        logger.warning(
            f"Binding to {settings.api.host} exposes Scout to your network. "
            "Set SCOUT_API_HOST=127.0.0.1 for localhost-only access."
        )
        if not settings.api.require_api_key:
            logger.warning(
                "No API key required while bound to network. "
                "Set SCOUT_API_REQUIRE_API_KEY=true and SCOUT_API_API_KEY=<secret>."
            )

    if not settings.brave.api_key:
        logger.warning("SCOUT_BRAVE_API_KEY is not set; search requests will fail upstream")

    yield

    # Shutdown
    logger.info("Shutting down Scout API")
    await close_agent()


def _error_body(exc: ScoutError, is_production: bool) -> dict:
    return {
        "error": exc.code,
        "message": exc.message if not is_production else "An error occurred",
        "recoverable": exc.recoverable,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()
    is_production = settings.environment == "production"

    app = FastAPI(
        title="Scout Search API",
        description="""
        Search assistant built on Brave Search with per-session memory.

        ## Endpoints

        - `POST /api/v1/sessions/{session_id}/search` - One web search
        - `POST /api/v1/sessions/{session_id}/optimized-search` - Query plus suggestions, merged
        - `POST /api/v1/sessions/{session_id}/agentic-search` - LLM answer using search tools
        - `POST /api/v1/sessions/{session_id}/suggest` - Query suggestions
        - `GET /api/v1/sessions/{session_id}/state` - Session state
        - `WS /api/v1/sessions/{session_id}/ws` - All of the above over a WebSocket
        - `GET /health/` - Health check
        """,
        version=settings.version,
        docs_url="/docs" if not is_production else None,
        redoc_url="/redoc" if not is_production else None,
        lifespan=lifespan
    )

    # CORS middleware: block wildcard origins in production
    cors_origins = settings.api.cors_origins
    if is_production and "*" in cors_origins:
        logger.warning(
            "CORS allow_origins=['*'] is insecure in production. "
            "Falling back to empty origins list. Set specific origins in config."
        )
        cors_origins = []

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Request timing middleware
    @app.middleware("http")
    async def add_timing_header(request: Request, call_next):
        start_time = datetime.now()
        response = await call_next(request)
        process_time = (datetime.now() - start_time).total_seconds() * 1000
        response.headers["X-Process-Time-Ms"] = str(int(process_time))
        return response

    # Optional API key middleware (off by default)
    if settings.api.require_api_key:
        expected_key = settings.api.api_key
        if not expected_key:
            logger.error(
                "SCOUT_API_REQUIRE_API_KEY=true but SCOUT_API_API_KEY is empty. "
                "API key enforcement disabled."
            )
        else:
            # Exempt paths that should always be accessible
            _EXEMPT_PATHS = frozenset({"/", "/docs", "/redoc", "/openapi.json", "/health/", "/health"})

            @app.middleware("http")
            async def api_key_guard(request: Request, call_next):
                if request.url.path in _EXEMPT_PATHS:
                    return await call_next(request)

                provided_key = request.headers.get("X-API-Key", "")
                if provided_key != expected_key:
                    return JSONResponse(
                        status_code=HTTP_401_UNAUTHORIZED,
                        content={
                            "error": "Unauthorized",
                            "message": "Invalid or missing API key. Provide X-API-Key header.",
                        }
                    )
                return await call_next(request)

            logger.info("API key guard enabled; X-API-Key header required for protected endpoints")

    # Prometheus metrics middleware
    from src.api.metrics import PrometheusMiddleware, set_app_info
    app.add_middleware(PrometheusMiddleware)
    set_app_info(version=settings.version, environment=settings.environment)

    # Exception handlers
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.warning(f"Rejected request: {exc.message}")
        return JSONResponse(
            status_code=HTTP_400_BAD_REQUEST,
            content={"error": exc.message},
        )

    @app.exception_handler(TransportError)
    async def transport_error_handler(request: Request, exc: TransportError):
        logger.error(f"Upstream failure: {exc.message}")
        return JSONResponse(
            status_code=HTTP_502_BAD_GATEWAY,
            content=_error_body(exc, is_production),
        )

    @app.exception_handler(ScoutError)
    async def scout_error_handler(request: Request, exc: ScoutError):
        logger.error(f"ScoutError: {exc}")
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(exc, is_production),
        )

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "InternalServerError",
                "message": "An unexpected error occurred",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    # Include routers
    app.include_router(sessions_router, prefix="/api/v1")
    app.include_router(health_router)  # health at /health/

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "name": "Scout Search API",
            "version": settings.version,
            "environment": settings.environment,
            "docs": "/docs" if not is_production else None
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    workers = settings.api.workers
    if workers <= 0 and settings.environment == "production":
        import multiprocessing
        workers = min(multiprocessing.cpu_count(), 4)
    else:
        workers = max(workers, 1)

    uvicorn.run(
        "src.api.app:app",
        host=settings.api.host,
        port=settings.api.port,
        workers=workers,
        reload=settings.environment == "development" and workers == 1,
        log_level="info"
    )
