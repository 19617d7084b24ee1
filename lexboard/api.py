"""
Lexboard API
============

FastAPI application for the legal case-management service.

Endpoints:
- /auth/*     - register, login, me, logout
- /users/*    - profile and password
- /cases/*    - cases, document upload, comments
- /clients/*  - clients
- /tasks/*    - tasks
- /reports/*  - async report jobs, dashboard summary and charts
- GET /health - Health check

Run with:
    uvicorn lexboard.api:app --host 0.0.0.0 --port 8000
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api_auth import router as auth_router
from .api_cases import router as cases_router
from .api_clients import router as clients_router
from .api_reports import router as reports_router
from .api_tasks import router as tasks_router
from .config import Settings, get_settings
from .errors import install_error_handlers
from .middleware.rate_limit import RateLimitMiddleware
from .middleware.security import SecurityHeadersMiddleware
from .resources import open_resources
from .schemas import HealthResponse

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    for warning in settings.validate_config():
        logger.warning(warning)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        with open_resources(settings) as resources:
            app.state.resources = resources
            logger.info(f"Lexboard {settings.service_version} started (queue backend: {settings.queue_backend})")
            yield
        logger.info("Lexboard stopped")

    app = FastAPI(
        title="Lexboard",
        description="Legal case management: cases, clients, tasks and async reports",
        version=settings.service_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )
    logger.info(f"CORS allow origins: {settings.cors_origins}")

    app.add_middleware(
        SecurityHeadersMiddleware,
        enforce_https=settings.enforce_https,
        hsts_max_age=settings.hsts_max_age,
    )

    if settings.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            limit=settings.rate_limit_per_minute,
            redis_url=settings.redis_url,
        )
        logger.info("Rate limiting middleware enabled")

    install_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(cases_router)
    app.include_router(clients_router)
    app.include_router(tasks_router)
    app.include_router(reports_router)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Health check endpoint"""
        return HealthResponse(
            status="healthy",
            version=settings.service_version,
            timestamp=datetime.now(timezone.utc),
        )

    return app


app = create_app()
