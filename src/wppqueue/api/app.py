"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wppqueue import __version__
from wppqueue.api.deps import header_account_resolver
from wppqueue.api.routes import metrics, phones, queue
from wppqueue.config import Settings, get_settings
from wppqueue.db.connection import close_database, get_database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("Starting WPP Redirect Queue API...")
    db = await get_database(app.state.settings.db_path)
    app.state.db = db
    logger.info("Database connected")

    yield

    logger.info("Shutting down WPP Redirect Queue API...")
    await close_database()
    logger.info("Database disconnected")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="WPP Redirect Queue",
        description="Per-phone waiting queues for WhatsApp lines",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    # Swap this for a real identity provider lookup
    app.state.resolve_account = header_account_resolver

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(phones.router, prefix="/api/phones", tags=["phones"])
    app.include_router(queue.router, prefix="/api/queue", tags=["queue"])
    app.include_router(metrics.router, prefix="/api", tags=["metrics"])

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: "
            f"{type(exc).__name__}: {exc}"
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()
