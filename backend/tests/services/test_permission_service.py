"""Tests for the permission service, run against both backends."""
from uuid import uuid4

import pytest

from repositories.exceptions import NotFoundError
from repositories.factory import Repositories
from schemas.permission import PermissionCreate, PermissionUpdate
from services.exceptions import DuplicatePermissionError, InvalidIdError
from services.permission_service import PermissionService


@pytest.fixture
def service(repos: Repositories) -> PermissionService:
    return PermissionService(repos.permissions)


def permission_create(resource: str, action: str) -> PermissionCreate:
    return PermissionCreate(name=f"{resource}:{action}", resource=resource, action=action)


class TestCreatePermission:
    """Tests for creating permissions."""

    async def test__create_permission__persists(self, service: PermissionService) -> None:
        permission = await service.create_permission(permission_create("invoice", "approve"))

        fetched = await service.get_permission(str(permission.id))
        assert (fetched.resource, fetched.action) == ("invoice", "approve")

    async def test__create_permission__duplicate_pair(self, service: PermissionService) -> None:
        await service.create_permission(permission_create("invoice", "approve"))

        with pytest.raises(DuplicatePermissionError, match="invoice:approve"):
            await service.create_permission(
                PermissionCreate(name="approve-invoices", resource="invoice", action="approve"),
            )


class TestListPermissions:
    """Tests for listing permissions, optionally by resource."""

    async def test__list_permissions__filters_by_resource(
        self, service: PermissionService,
    ) -> None:
        await service.create_permission(permission_create("invoice", "approve"))
        await service.create_permission(permission_create("invoice", "read"))
        await service.create_permission(permission_create("report", "read"))

        assert len(await service.list_permissions()) == 3
        invoice = await service.list_permissions(resource="invoice")
        assert sorted(p.action for p in invoice) == ["approve", "read"]
        assert await service.list_permissions(resource="unknown") == []


class TestUpdatePermission:
    """Tests for updating permissions."""

    async def test__update_permission__changes_action(self, service: PermissionService) -> None:
        permission = await service.create_permission(permission_create("invoice", "approve"))

        updated = await service.update_permission(
            str(permission.id), PermissionUpdate(action="sign"),
        )

        assert updated.action == "sign"
        assert updated.resource == "invoice"
        assert (await service.get_permission(str(permission.id))).action == "sign"

    async def test__update_permission__pair_taken(self, service: PermissionService) -> None:
        await service.create_permission(permission_create("invoice", "read"))
        permission = await service.create_permission(permission_create("invoice", "approve"))

        with pytest.raises(DuplicatePermissionError):
            await service.update_permission(str(permission.id), PermissionUpdate(action="read"))


class TestDeletePermission:
    """Tests for deleting permissions."""

    async def test__delete_permission__then_lookup_fails(
        self, service: PermissionService,
    ) -> None:
        permission = await service.create_permission(permission_create("invoice", "approve"))

        await service.delete_permission(str(permission.id))

        with pytest.raises(NotFoundError):
            await service.get_permission(str(permission.id))

    async def test__delete_permission__malformed_id(self, service: PermissionService) -> None:
        with pytest.raises(InvalidIdError):
            await service.delete_permission("42")

    async def test__delete_permission__unknown(self, service: PermissionService) -> None:
        with pytest.raises(NotFoundError):
            await service.delete_permission(str(uuid4()))
