"""Tests for user endpoints."""
from uuid import uuid4

from httpx import AsyncClient


async def create_role(
    client: AsyncClient, name: str, permission_ids: list[str] | None = None,
) -> dict:
    response = await client.post(
        "/roles/", json={"name": name, "permission_ids": permission_ids or []},
    )
    assert response.status_code == 201
    return response.json()


async def create_user(client: AsyncClient, username: str = "alice", **fields: object) -> dict:
    payload = {
        "username": username,
        "email": f"{username}@example.com",
        "password": "s3cret-pass",
        **fields,
    }
    response = await client.post("/users/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_user_returns_201_without_password(client: AsyncClient) -> None:
    """Created users are returned with roles and without any password material."""
    role = await create_role(client, "admin")

    data = await create_user(client, "alice", first_name="Alice", role_ids=[role["id"]])

    assert data["username"] == "alice"
    assert data["first_name"] == "Alice"
    assert [r["name"] for r in data["roles"]] == ["admin"]
    assert "password" not in data
    assert "password_hash" not in data


async def test_create_user_duplicate_username_returns_409(client: AsyncClient) -> None:
    """Username uniqueness is reported as a conflict."""
    await create_user(client, "alice")

    response = await client.post(
        "/users/",
        json={"username": "alice", "email": "second@example.com", "password": "s3cret-pass"},
    )

    assert response.status_code == 409
    assert "alice" in response.json()["detail"]


async def test_create_user_duplicate_email_returns_409(client: AsyncClient) -> None:
    """A backend unique constraint violation maps to 409."""
    await create_user(client, "alice")

    response = await client.post(
        "/users/",
        json={"username": "bob", "email": "alice@example.com", "password": "s3cret-pass"},
    )

    assert response.status_code == 409


async def test_create_user_invalid_role_id_returns_400_and_creates_nothing(
    client: AsyncClient,
) -> None:
    """An invalid role id rolls the whole creation back."""
    response = await client.post(
        "/users/",
        json={
            "username": "alice",
            "email": "alice@example.com",
            "password": "s3cret-pass",
            "role_ids": ["not-a-uuid"],
        },
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid role ID: not-a-uuid"
    assert (await client.get("/users/by-username/alice")).status_code == 404


async def test_create_user_validation_errors_return_422(client: AsyncClient) -> None:
    """Schema validation rejects short passwords and malformed emails."""
    response = await client.post(
        "/users/", json={"username": "alice", "email": "not-an-email", "password": "short"},
    )

    assert response.status_code == 422


async def test_get_user_by_id_and_username(client: AsyncClient) -> None:
    """A user can be fetched by id or by username."""
    created = await create_user(client, "alice")

    by_id = await client.get(f"/users/{created['id']}")
    by_name = await client.get("/users/by-username/alice")

    assert by_id.status_code == 200
    assert by_name.status_code == 200
    assert by_id.json()["id"] == by_name.json()["id"] == created["id"]


async def test_get_user_unknown_returns_404_and_malformed_returns_400(
    client: AsyncClient,
) -> None:
    """Unknown ids are 404; ids that are not UUIDs are 400."""
    assert (await client.get(f"/users/{uuid4()}")).status_code == 404
    assert (await client.get("/users/123")).status_code == 400


async def test_list_users_paginates(client: AsyncClient) -> None:
    """The list endpoint returns one page and the overall total."""
    for name in ("anna", "bert", "cara"):
        await create_user(client, name)

    response = await client.get("/users/", params={"page": 2, "page_size": 2})

    data = response.json()
    assert response.status_code == 200
    assert data["total"] == 3
    assert data["page"] == 2
    assert data["page_size"] == 2
    assert len(data["items"]) == 1


async def test_update_user_replaces_roles(client: AsyncClient) -> None:
    """PATCH with role_ids replaces the user's roles."""
    admin = await create_role(client, "admin")
    editor = await create_role(client, "editor")
    user = await create_user(client, "alice", role_ids=[admin["id"]])

    response = await client.patch(
        f"/users/{user['id']}", json={"last_name": "Liddell", "role_ids": [editor["id"]]},
    )

    assert response.status_code == 200
    assert response.json()["last_name"] == "Liddell"
    assert [r["name"] for r in response.json()["roles"]] == ["editor"]
    refetched = await client.get(f"/users/{user['id']}")
    assert [r["name"] for r in refetched.json()["roles"]] == ["editor"]


async def test_update_user_unknown_role_returns_400(client: AsyncClient) -> None:
    """An unknown role id on update is rejected and nothing changes."""
    user = await create_user(client, "alice")

    response = await client.patch(
        f"/users/{user['id']}", json={"first_name": "Changed", "role_ids": [str(uuid4())]},
    )

    assert response.status_code == 400
    assert (await client.get(f"/users/{user['id']}")).json()["first_name"] == ""


async def test_delete_user_returns_204(client: AsyncClient) -> None:
    """Deleted users are gone; deleting again is 404."""
    user = await create_user(client, "alice")

    assert (await client.delete(f"/users/{user['id']}")).status_code == 204
    assert (await client.get(f"/users/{user['id']}")).status_code == 404
    assert (await client.delete(f"/users/{user['id']}")).status_code == 404


async def test_change_password(client: AsyncClient) -> None:
    """Password change requires the current password."""
    user = await create_user(client, "alice")

    wrong = await client.put(
        f"/users/{user['id']}/password",
        json={"current_password": "nope", "new_password": "n3w-password"},
    )
    right = await client.put(
        f"/users/{user['id']}/password",
        json={"current_password": "s3cret-pass", "new_password": "n3w-password"},
    )

    assert wrong.status_code == 400
    assert right.status_code == 204


async def test_reset_password_returns_working_password(client: AsyncClient) -> None:
    """A reset returns a generated password that replaces the old one."""
    user = await create_user(client, "alice")

    response = await client.post(f"/users/{user['id']}/password/reset")

    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == user["id"]
    old = await client.put(
        f"/users/{user['id']}/password",
        json={"current_password": "s3cret-pass", "new_password": "n3w-password"},
    )
    new = await client.put(
        f"/users/{user['id']}/password",
        json={"current_password": data["new_password"], "new_password": "n3w-password"},
    )
    assert old.status_code == 400
    assert new.status_code == 204


async def test_reset_password_unknown_user_returns_404(client: AsyncClient) -> None:
    """Resetting a missing user is 404; a malformed id is 400."""
    assert (await client.post(f"/users/{uuid4()}/password/reset")).status_code == 404
    assert (await client.post("/users/123/password/reset")).status_code == 400


async def test_user_permissions_and_check(client: AsyncClient) -> None:
    """Permissions granted through a role are listed and pass the check."""
    permission = (await client.post(
        "/permissions/",
        json={"name": "invoice:approve", "resource": "invoice", "action": "approve"},
    )).json()
    role = await create_role(client, "approver", [permission["id"]])
    user = await create_user(client, "alice", role_ids=[role["id"]])

    listed = await client.get(f"/users/{user['id']}/permissions")
    allowed = await client.get(
        f"/users/{user['id']}/permissions/check",
        params={"resource": "invoice", "action": "approve"},
    )
    denied = await client.get(
        f"/users/{user['id']}/permissions/check",
        params={"resource": "invoice", "action": "delete"},
    )

    assert [p["action"] for p in listed.json()] == ["approve"]
    assert allowed.json() == {
        "user_id": user["id"],
        "resource": "invoice",
        "action": "approve",
        "allowed": True,
    }
    assert denied.json()["allowed"] is False
