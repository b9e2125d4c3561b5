"""User management endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.dependencies import get_user_service
from schemas.permission import PermissionResponse
from schemas.user import (
    PasswordChange,
    PasswordResetResponse,
    PermissionCheckResponse,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from services.exceptions import DuplicateUsernameError, IncorrectPasswordError
from services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    """
    Create a user, optionally assigning roles.

    Returns 409 if the username or email is taken, 400 if a role id is invalid.
    """
    try:
        user = await service.create_user(data)
    except DuplicateUsernameError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return UserResponse.model_validate(user)


@router.get("/", response_model=UserListResponse)
async def list_users(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    service: UserService = Depends(get_user_service),
) -> UserListResponse:
    """List users, newest first."""
    users, total = await service.list_users(page, page_size)
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/by-username/{username}", response_model=UserResponse)
async def get_user_by_username(
    username: str,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    """Get a user by username."""
    return UserResponse.model_validate(await service.get_user_by_username(username))


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    """Get a user with their roles."""
    return UserResponse.model_validate(await service.get_user(user_id))


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    data: UserUpdate,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    """
    Update a user.

    Profile fields, password and roles can be changed together; the change is
    applied atomically. Returns 409 if the new username is taken.
    """
    try:
        user = await service.update_user(user_id, data)
    except DuplicateUsernameError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    service: UserService = Depends(get_user_service),
) -> None:
    """Delete a user and their role assignments."""
    await service.delete_user(user_id)


@router.put("/{user_id}/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    user_id: str,
    data: PasswordChange,
    service: UserService = Depends(get_user_service),
) -> None:
    """Change a user's password. Returns 400 if the current password is wrong."""
    try:
        await service.change_password(user_id, data.current_password, data.new_password)
    except IncorrectPasswordError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.post("/{user_id}/password/reset", response_model=PasswordResetResponse)
async def reset_password(
    user_id: str,
    service: UserService = Depends(get_user_service),
) -> PasswordResetResponse:
    """Replace a user's password with a generated one and return it once."""
    new_password = await service.reset_password(user_id)
    return PasswordResetResponse(user_id=user_id, new_password=new_password)


@router.get("/{user_id}/permissions", response_model=list[PermissionResponse])
async def get_user_permissions(
    user_id: str,
    service: UserService = Depends(get_user_service),
) -> list[PermissionResponse]:
    """Get the permissions a user holds through their roles."""
    permissions = await service.get_user_permissions(user_id)
    return [PermissionResponse.model_validate(p) for p in permissions]


@router.get("/{user_id}/permissions/check", response_model=PermissionCheckResponse)
async def check_permission(
    user_id: str,
    resource: str = Query(..., min_length=1),
    action: str = Query(..., min_length=1),
    service: UserService = Depends(get_user_service),
) -> PermissionCheckResponse:
    """Check whether a user may perform an action on a resource."""
    allowed = await service.has_permission(user_id, resource, action)
    return PermissionCheckResponse(
        user_id=user_id, resource=resource, action=action, allowed=allowed,
    )
