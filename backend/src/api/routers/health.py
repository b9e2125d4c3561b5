"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_cache, get_repos
from core.cache import CacheClient
from repositories.factory import Repositories

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    cache: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    repos: Repositories = Depends(get_repos),
    cache: CacheClient | None = Depends(get_cache),
) -> HealthResponse:
    """
    Check application, backend and cache health.

    A down cache only degrades performance, so it never makes the service unhealthy.
    """
    db_status = "healthy"
    try:
        await repos.permissions.ping()
    except Exception:
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    if cache is None or not cache.is_enabled:
        cache_status = "disabled"
    else:
        cache_status = "healthy" if await cache.ping() else "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        database=db_status,
        cache=cache_status,
    )
