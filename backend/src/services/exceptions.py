"""Shared exceptions for service layer operations."""
from uuid import UUID


class InvalidIdError(Exception):
    """Raised when a client-supplied id is not a valid UUID or names nothing."""

    def __init__(self, kind: str, value: str) -> None:
        self.kind = kind
        self.value = value
        super().__init__(f"Invalid {kind} ID: {value}")


class DuplicateUsernameError(Exception):
    """Raised when a username is already taken."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f"Username already exists: {username}")


class DuplicateRoleNameError(Exception):
    """Raised when a role name is already taken."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Role name already exists: {name}")


class DuplicatePermissionError(Exception):
    """Raised when a permission already exists for a resource/action pair."""

    def __init__(self, resource: str, action: str) -> None:
        self.resource = resource
        self.action = action
        super().__init__(f"Permission already exists for {resource}:{action}")


class IncorrectPasswordError(Exception):
    """Raised when the current password supplied for a change does not match."""

    def __init__(self) -> None:
        super().__init__("Current password is incorrect")


def parse_id(kind: str, value: str) -> UUID:
    """
    Parse a client-supplied id.

    Raises:
        InvalidIdError: ``value`` is not a UUID.
    """
    try:
        return UUID(value)
    except (TypeError, ValueError) as e:
        raise InvalidIdError(kind, value) from e
