"""
Cache key builders and invalidation patterns for repository reads.

One entity can be cached under several keys (by id, by lookup key, inside list and
count results), so writes invalidate by glob pattern rather than by exact key.
"""
from uuid import UUID

# --- Users ---


def user_by_id(user_id: UUID) -> str:
    return f"user:{user_id}"


def user_by_username(username: str) -> str:
    return f"user:username:{username}"


def users_page(limit: int, offset: int) -> str:
    return f"users:limit:{limit}:offset:{offset}"


USERS_COUNT = "users:count"


def user_permissions(user_id: UUID) -> str:
    return f"user:permissions:{user_id}"


# --- Roles ---


def role_by_id(role_id: UUID) -> str:
    return f"role:{role_id}"


def role_by_name(name: str) -> str:
    return f"role:name:{name}"


ROLES_ALL = "roles:all"

# --- Permissions ---


def permission_by_id(permission_id: UUID) -> str:
    return f"permission:{permission_id}"


def permission_by_resource_action(resource: str, action: str) -> str:
    return f"permission:resource:{resource}:action:{action}"


PERMISSIONS_ALL = "permissions:all"


def permissions_by_resource(resource: str) -> str:
    return f"permissions:resource:{resource}"


PERMISSIONS_COUNT = "permissions:count"

# --- Invalidation patterns ---

USER_PATTERNS = ("user:*", "users:*")
ROLE_PATTERNS = ("role:*", "roles:*")
PERMISSION_PATTERNS = ("permission:*", "permissions:*")
USER_PERMISSIONS_PATTERN = "user:permissions:*"

# Any change to the permission graph makes role reads and resolved user
# permissions stale as well
PERMISSION_GRAPH_PATTERNS = (*ROLE_PATTERNS, USER_PERMISSIONS_PATTERN)

# A scoped write repository can touch every entity type
TRANSACTION_PATTERNS = (*USER_PATTERNS, *ROLE_PATTERNS, *PERMISSION_PATTERNS)
