"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - CORS middleware
  - Global exception handlers (ValueError → 404/409/400, KeyError → 404)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``questionnaire-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from questionnaire_db.engine import dispose_engine, get_engine

from questionnaire_server.config import ServerSettings, load_settings
from questionnaire_server.errors import (
    generic_error_handler,
    key_error_handler,
    value_error_handler,
)
from questionnaire_server.routes import register_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup; dispose the database connection pool on shutdown."""
    settings: ServerSettings = app.state.settings
    logger.info(
        "Questionnaire API starting (admin endpoints %s)",
        "enabled" if settings.admin_api_key else "disabled",
    )
    yield
    await dispose_engine()
    logger.info("Database engine disposed")


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Questionnaire API Server",
        description="Templates, pages and submissions for multi-page questionnaires",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(KeyError, key_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    @app.get("/health")
    async def health() -> JSONResponse:
        """Readiness probe — verifies DB connectivity."""
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return JSONResponse(status_code=503, content={"status": "error"})
        return JSONResponse(content={"status": "ok"})

    register_routes(app)
    return app


# Module-level ASGI export (for uvicorn questionnaire_server.app:app)
app = create_app()


def cli() -> None:
    """Console-script entry point: ``questionnaire-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "questionnaire_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
