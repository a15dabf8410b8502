"""
FastAPI application entry point.

Run with:
    uvicorn backend.app.main:app --reload --port 8080

Or from the project root:
    python -m uvicorn backend.app.main:app --reload
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

# ── Core infrastructure ──
from backend.app.core.backend import BackendHandle
from backend.app.core.config import settings
from backend.app.core.logging_config import setup_logging, get_logger
from backend.app.core.errors import register_error_handlers
from backend.app.core.middleware import RequestLoggingMiddleware
from backend.app.core.health import HealthStatus, run_health_check

# ── API routers ──
from backend.app.api.v1.triggers import router as trigger_router

# ── Initialise logging ──
setup_logging()
logger = get_logger(__name__)


# ── Application lifespan (startup / shutdown) ──

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the backend handle once; release it on shutdown."""
    logger.info(
        "Starting %s v%s [%s]",
        settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
    )
    backend: BackendHandle = app.state.backend
    backend.initialise()
    yield
    backend.close()
    logger.info("Shutting down %s", settings.APP_NAME)


# ── Create application ──

def create_app(backend: Optional[BackendHandle] = None) -> FastAPI:
    """Build the app around ``backend`` (a settings-driven handle by default)."""
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Emergency notification fan-out. Reacts to emergency documents "
            "being raised or cancelled, resolves every family member "
            "subscribed to the senior, and delivers a push notification "
            "to each of their devices."
        ),
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.backend = backend or BackendHandle()

    app.add_middleware(RequestLoggingMiddleware)
    register_error_handlers(app)
    app.include_router(trigger_router)

    # ── Root & health endpoints ──

    @app.get("/", tags=["root"])
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "triggers": [
                "/api/v1/triggers/emergencies/created",
                "/api/v1/triggers/emergencies/updated",
            ],
            "docs": "/docs",
        }

    @app.get("/health", tags=["health"])
    async def health_check():
        """Deep health probe — checks all subsystems."""
        report = await run_health_check(app.state.backend)
        return report.to_dict()

    @app.get("/health/live", tags=["health"])
    async def liveness():
        """Liveness probe — is the process alive?"""
        return {"status": "alive"}

    @app.get("/health/ready", tags=["health"])
    async def readiness():
        """Readiness probe — can we serve traffic?"""
        report = await run_health_check(app.state.backend)
        if report.status == HealthStatus.UNHEALTHY:
            return JSONResponse(status_code=503, content=report.to_dict())
        return report.to_dict()

    return app


app = create_app()
