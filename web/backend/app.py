#!/usr/bin/env python3
"""
Resume Knowledge API - FastAPI Application

Upload resumes, follow their processing, review extracted facts against the
confirmed profile and merge them.

Usage:
    python main.py serve

Then open:
    - http://localhost:8080/docs - API Documentation (Swagger UI)
    - http://localhost:8080/redoc - Alternative API Documentation
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException

from core.config_loader import AppConfig
from core.exceptions import PipelineError
from database.database import configure_database
from .config import get_config
from .exceptions import (
    pipeline_exception_handler,
    http_exception_handler,
    general_exception_handler
)
from .routers import (
    resumes_router,
    review_router,
    profile_router
)
from .routers.resumes import add_rate_limit_handlers

logger = logging.getLogger(__name__)


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Build the FastAPI application with routers and error handlers.

    On startup the session factory is pointed at ``config.database.url``
    (config.yaml plus env overrides when no config is given).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db_config = (config or get_config()).database
        configure_database(db_config.url, db_config.echo)
        logger.info("Database configured for Resume Knowledge API")
        yield

    app = FastAPI(
        title="Resume Knowledge API",
        description="Versioned resume ingestion and reconciliation with the confirmed profile",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # Configure rate limiting
    add_rate_limit_handlers(app)

    # Register exception handlers
    app.add_exception_handler(PipelineError, pipeline_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include routers
    app.include_router(resumes_router)
    app.include_router(review_router)
    app.include_router(profile_router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "resume-knowledge"}

    return app


app = create_app()


def main():
    """Run the web server."""
    import uvicorn

    config = get_config()
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.INFO),
        format=config.logging.format
    )

    logger.info(f"Starting Resume Knowledge API on {config.web.host}:{config.web.port}")
    logger.info(f"API Docs: http://{config.web.host}:{config.web.port}/docs")

    uvicorn.run(
        "web.backend.app:app",
        host=config.web.host,
        port=config.web.port,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    main()
