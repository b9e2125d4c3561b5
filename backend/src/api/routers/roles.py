"""Role management endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_role_service
from schemas.permission import PermissionResponse
from schemas.role import RoleCreate, RoleResponse, RoleUpdate
from services.exceptions import DuplicateRoleNameError
from services.role_service import RoleService

router = APIRouter(prefix="/roles", tags=["roles"])


@router.post("/", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    data: RoleCreate,
    service: RoleService = Depends(get_role_service),
) -> RoleResponse:
    """
    Create a role, optionally assigning permissions.

    Returns 409 if the name is taken, 400 if a permission id is invalid.
    """
    try:
        role = await service.create_role(data)
    except DuplicateRoleNameError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return RoleResponse.model_validate(role)


@router.get("/", response_model=list[RoleResponse])
async def list_roles(service: RoleService = Depends(get_role_service)) -> list[RoleResponse]:
    """List every role with its permissions."""
    return [RoleResponse.model_validate(r) for r in await service.list_roles()]


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: str,
    service: RoleService = Depends(get_role_service),
) -> RoleResponse:
    """Get a role with its permissions."""
    return RoleResponse.model_validate(await service.get_role(role_id))


@router.patch("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: str,
    data: RoleUpdate,
    service: RoleService = Depends(get_role_service),
) -> RoleResponse:
    """Update a role; ``permission_ids`` replaces its permissions when given."""
    try:
        role = await service.update_role(role_id, data)
    except DuplicateRoleNameError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return RoleResponse.model_validate(role)


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: str,
    service: RoleService = Depends(get_role_service),
) -> None:
    """Delete a role; it is removed from every user that held it."""
    await service.delete_role(role_id)


@router.get("/{role_id}/permissions", response_model=list[PermissionResponse])
async def get_role_permissions(
    role_id: str,
    service: RoleService = Depends(get_role_service),
) -> list[PermissionResponse]:
    """Get the permissions assigned to a role."""
    permissions = await service.get_role_permissions(role_id)
    return [PermissionResponse.model_validate(p) for p in permissions]
