"""Permission management endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_permission_service
from schemas.permission import PermissionCreate, PermissionResponse, PermissionUpdate
from services.exceptions import DuplicatePermissionError
from services.permission_service import PermissionService

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.post("/", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED)
async def create_permission(
    data: PermissionCreate,
    service: PermissionService = Depends(get_permission_service),
) -> PermissionResponse:
    """Create a permission. Returns 409 if the resource/action pair exists."""
    try:
        permission = await service.create_permission(data)
    except DuplicatePermissionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return PermissionResponse.model_validate(permission)


@router.get("/", response_model=list[PermissionResponse])
async def list_permissions(
    resource: str | None = None,
    service: PermissionService = Depends(get_permission_service),
) -> list[PermissionResponse]:
    """List permissions, optionally only those on one resource."""
    return [
        PermissionResponse.model_validate(p) for p in await service.list_permissions(resource)
    ]


@router.get("/{permission_id}", response_model=PermissionResponse)
async def get_permission(
    permission_id: str,
    service: PermissionService = Depends(get_permission_service),
) -> PermissionResponse:
    """Get a permission."""
    return PermissionResponse.model_validate(await service.get_permission(permission_id))


@router.patch("/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: str,
    data: PermissionUpdate,
    service: PermissionService = Depends(get_permission_service),
) -> PermissionResponse:
    """Update a permission. Returns 409 if the new resource/action pair exists."""
    try:
        permission = await service.update_permission(permission_id, data)
    except DuplicatePermissionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return PermissionResponse.model_validate(permission)


@router.delete("/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_permission(
    permission_id: str,
    service: PermissionService = Depends(get_permission_service),
) -> None:
    """Delete a permission; it is removed from every role that held it."""
    await service.delete_permission(permission_id)
