"""FastAPI dependencies for injection."""
from fastapi import Depends, HTTPException, status

from core.cache import CacheClient, get_cache_client
from repositories.factory import Repositories, get_repositories
from services.permission_service import PermissionService
from services.role_service import RoleService
from services.user_service import UserService


def get_repos() -> Repositories:
    """Return the repository bundle built at startup."""
    repositories = get_repositories()
    if repositories is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage backend is not initialized",
        )
    return repositories


def get_cache() -> CacheClient | None:
    """Return the process-wide cache client, if one was created."""
    return get_cache_client()


def get_user_service(repos: Repositories = Depends(get_repos)) -> UserService:
    return UserService(repos.users, repos.roles)


def get_role_service(repos: Repositories = Depends(get_repos)) -> RoleService:
    return RoleService(repos.roles, repos.permissions)


def get_permission_service(repos: Repositories = Depends(get_repos)) -> PermissionService:
    return PermissionService(repos.permissions)


__all__ = [
    "get_cache",
    "get_permission_service",
    "get_repos",
    "get_role_service",
    "get_user_service",
]
