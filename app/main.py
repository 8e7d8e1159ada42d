"""FastAPI application for the Smart Task Manager service."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Union

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded  # type: ignore[import-not-found]
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.db.supabase_client import get_supabase_client
from app.middleware.logging import RequestLoggingMiddleware, configure_logging
from app.middleware.rate_limit import get_limiter, rate_limit_exceeded_handler
from app.middleware.request_id import RequestIDMiddleware
from app.routers import classification, stats, tasks
from app.utils.responses import json_response

logger = logging.getLogger(__name__)

# Application metadata
VERSION = "1.0.0"
COMMIT_HASH = "development"  # This can be set via environment variable or build process


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan event handler for startup and shutdown."""
    try:
        # This will raise ValidationError if required env vars are missing
        settings = get_settings()
        configure_logging(settings.log_level)

        logger.info(f"Starting Smart Task Manager API v{VERSION}")
        logger.info(f"Environment: {settings.environment}")
        logger.info(f"Rate limit: {settings.api_rate_limit}")
        logger.info("Environment validation: OK")

    except Exception as e:
        logger.error(f"Startup validation failed: {e}")
        raise

    yield

    logger.info("Shutting down Smart Task Manager API")


def create_app() -> FastAPI:
    """Build the FastAPI application from the current settings."""
    settings = get_settings()

    app = FastAPI(
        title="Smart Task Manager API",
        description="Task tracking backend with automatic category, priority and entity classification",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add rate limiter to app state (required by slowapi)
    app.state.limiter = get_limiter()
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Middleware added last runs first: request ID, then logging, then CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-History-Status"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> Response:
        """Report request validation failures as 400 with one message per field."""
        errors = []
        for error in exc.errors():
            location = [str(part) for part in error.get("loc", ())]
            field = ".".join(location[1:]) if len(location) > 1 else ".".join(location)
            errors.append({"field": field, "message": error.get("msg", "Invalid value")})

        return json_response(
            {"success": False, "message": "Validation error", "errors": errors},
            status_code=400,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
        message = exc.detail
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route {request.method} {request.url.path} not found"
        return json_response(
            {"success": False, "message": message},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> Response:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        message = "Internal server error" if get_settings().is_production else str(exc) or "Something went wrong"
        return json_response({"success": False, "message": message}, status_code=500)

    @app.get("/health", response_model=None)
    async def health_check() -> Union[Dict[str, Any], Response]:
        """
        Health check endpoint that verifies the database is reachable.

        Returns:
            JSON response with overall status and individual service statuses.

        Status Codes:
            200: All services healthy
            503: One or more services unavailable
        """
        timestamp = datetime.now(timezone.utc).isoformat()
        services: Dict[str, str] = {}
        overall_healthy = True

        # Check Supabase connection
        try:
            supabase_client = get_supabase_client()
            response = await asyncio.to_thread(
                lambda: supabase_client.table("tasks").select("id").limit(1).execute()
            )
            if response is not None:
                services["supabase"] = "healthy"
            else:
                services["supabase"] = "unhealthy: no response"
                overall_healthy = False
        except Exception as e:
            services["supabase"] = f"unhealthy: {str(e)}"
            overall_healthy = False

        response_data: Dict[str, Any] = {
            "status": "healthy" if overall_healthy else "unhealthy",
            "timestamp": timestamp,
            "environment": get_settings().environment,
            "services": services,
        }

        if not overall_healthy:
            return json_response(response_data, status_code=503)

        return response_data

    @app.get("/version")
    async def version_info() -> Dict[str, str]:
        """
        Get version information for the API.

        Returns:
            JSON with version number and commit hash.
        """
        return {
            "version": VERSION,
            "commit_hash": COMMIT_HASH,
        }

    app.include_router(classification.router)
    app.include_router(stats.router)
    app.include_router(tasks.router)

    return app


app = create_app()
