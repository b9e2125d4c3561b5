"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDMixin
from models.user import User, user_roles
from models.role import Role, role_permissions
from models.permission import Permission

__all__ = [
    "Base",
    "Permission",
    "Role",
    "TimestampMixin",
    "UUIDMixin",
    "User",
    "role_permissions",
    "user_roles",
]
