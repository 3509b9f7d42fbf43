"""API application factory."""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.logging import get_logger, request_id_var
from app.schemas.common import ErrorResponse
from app.simulation.service import DayService
from app.websocket import ConnectionManager

from .routes import days, health, participants, public, ws


logger = get_logger("api")


async def start_services(app: FastAPI) -> None:
    """Create (unless injected) and initialize the process-wide day service."""
    if app.state.day_service is None:
        from app.cache.client import init_valkey_pool
        from app.database.connection import init_database
        from app.simulation.service import build_day_service

        await init_database()
        try:
            await init_valkey_pool()
        except Exception as e:
            logger.warning(f"Valkey initialization failed (cache disabled): {e}")

        app.state.day_service = build_day_service(app.state.connection_manager)
        app.state.owns_resources = True

    await app.state.day_service.initialize()
    logger.info("Day service ready")


async def stop_services(app: FastAPI) -> None:
    """Disarm the scheduler and release connections this app opened."""
    service: Optional[DayService] = app.state.day_service
    if service is not None:
        await service.shutdown()

    if app.state.owns_resources:
        from app.cache.client import close_valkey_client
        from app.database.connection import close_database

        try:
            await close_valkey_client()
            await close_database()
        except Exception as e:
            logger.warning(f"Resource cleanup failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Runs when the API app is served directly (tests, standalone)."""
    await start_services(app)
    yield
    await stop_services(app)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add request ID to all requests for tracing."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        request_id_var.set(request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all requests."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.monotonic()

        response = await call_next(request)

        duration = time.monotonic() - start_time

        # Log path only (not query params)
        path = request.url.path

        logger.info(
            f"{request.method} {path} -> {response.status_code} ({duration:.3f}s)",
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": int(duration * 1000),
            },
        )

        return response


def create_api_app(day_service: Optional[DayService] = None) -> FastAPI:
    """Create and configure the API application.

    Pass `day_service` to run against injected collaborators; otherwise one
    is built against PostgreSQL and Valkey at startup.
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Trading-day simulation control, valuation and leaderboard API",
        root_path=settings.root_path,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        responses={
            400: {"model": ErrorResponse, "description": "Bad Request"},
            401: {"model": ErrorResponse, "description": "Unauthorized"},
            403: {"model": ErrorResponse, "description": "Forbidden"},
            404: {"model": ErrorResponse, "description": "Not Found"},
            422: {"model": ErrorResponse, "description": "Validation Error"},
            500: {"model": ErrorResponse, "description": "Internal Server Error"},
        },
    )

    app.state.connection_manager = ConnectionManager()
    app.state.day_service = day_service
    app.state.owns_resources = False

    # Add middlewares (order matters - first added is outermost)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(days.router, tags=["Day Control"])
    app.include_router(participants.router, tags=["Participants"])
    app.include_router(public.router, tags=["Public"])
    app.include_router(ws.router)

    return app
