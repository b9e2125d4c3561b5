"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import health, permissions, roles, users
from core.cache import CacheClient, set_cache_client
from core.config import get_settings
from db.session import close_backend, open_backend
from repositories.exceptions import (
    BackendUnavailableError,
    ConflictError,
    NotFoundError,
    TransactionError,
)
from repositories.factory import RepositoryFactory, set_repositories
from services.exceptions import InvalidIdError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    # Startup: Connect to Redis (never fails; runs disabled if unreachable)
    cache = CacheClient(
        url=app_settings.redis_url,
        enabled=app_settings.redis_enabled,
        pool_size=app_settings.redis_pool_size,
        default_ttl=app_settings.redis_cache_ttl,
        op_timeout=app_settings.cache_op_timeout,
    )
    await cache.connect()
    set_cache_client(cache)

    # Startup: Open the configured storage backend and wire repositories
    backend = await open_backend(app_settings)
    set_repositories(RepositoryFactory(app_settings, backend, cache).create())

    yield

    # Shutdown: Release repositories, backend and Redis
    set_repositories(None)
    await close_backend(backend)
    await cache.close()
    set_cache_client(None)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking - API shouldn't be framed
        response.headers["X-Frame-Options"] = "DENY"
        return response


app_settings = get_settings()

logging.basicConfig(
    level=app_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="User Management API",
    description="Users, roles and permissions with pluggable storage and Redis caching.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(NotFoundError)
async def not_found_exception_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    """Map repository not-found errors to 404."""
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_exception_handler(_request: Request, exc: ConflictError) -> JSONResponse:
    """Map backend unique-constraint violations to 409."""
    return JSONResponse(
        status_code=409,
        content={"detail": f"{exc.entity} conflicts with existing data"},
    )


@app.exception_handler(InvalidIdError)
async def invalid_id_exception_handler(_request: Request, exc: InvalidIdError) -> JSONResponse:
    """Map malformed or unknown client-supplied ids to 400."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(BackendUnavailableError)
@app.exception_handler(TransactionError)
async def storage_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Map storage failures to 503 without leaking backend details."""
    logger.error("Storage failure: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "Storage temporarily unavailable"})


# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(users.router)
app.include_router(roles.router)
app.include_router(permissions.router)
