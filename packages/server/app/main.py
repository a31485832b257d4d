"""
Teamchat API Server

Entry point for the FastAPI application.
"""

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.errors import TeamchatError, teamchat_error_handler
from app.core.logging_config import configure_logging
from app.core.middleware import CSRFMiddleware, RequestContextMiddleware, SecurityHeadersMiddleware
from app.core.database import dispose_db
from app.core.redis import close_redis
from app.api.v1 import router as api_v1_router
from app.api.v1.auth import router as auth_router

settings = get_settings()
log = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Teamchat",
        description="Team chat API with channel access control.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware (the last one added runs outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(TeamchatError, teamchat_error_handler)

    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check endpoint for startup probes."""
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info("Teamchat starting")

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("Teamchat shutting down")
        await close_redis()
        await dispose_db()

    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn using the configured host and port."""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    run()
