"""
Taskline API Server

Entry point for the FastAPI application.
"""

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskline.core.config import get_settings
from taskline.core.database import get_session, init_db, ping_db
from taskline.core.errors import install_error_handlers
from taskline.core.middleware import RequestLogMiddleware, SecurityHeadersMiddleware
from taskline.api.v1 import router as api_v1_router

settings = get_settings()
log = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Taskline",
        description="Multi-tenant task tracking with delegated administration.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware (last added is outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Dev-Account-Id", "X-Dev-God-Mode"],
    )
    app.add_middleware(RequestLogMiddleware)

    install_error_handlers(app)

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness checks."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check(session: AsyncSession = Depends(get_session)):
        """Readiness check endpoint: the database must answer."""
        try:
            await ping_db(session)
        except (SQLAlchemyError, OSError) as exc:
            log.error("ready.database_unavailable", error_type=type(exc).__name__)
            await session.rollback()
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info(
            "Taskline starting",
            environment=settings.environment,
            dev_auth_bypass=settings.dev_bypass_enabled,
        )
        if settings.dev_auth_bypass and settings.is_production:
            log.warning("Development auth bypass requested in production; ignoring")
        if not settings.is_production:
            await init_db()

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("Taskline shutting down")

    return app


app = create_app()
