"""Shared validation functions for Pydantic schemas."""
import re

# Deliberately loose: one "@", no whitespace, a dot in the domain
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_email(email: str) -> str:
    """
    Normalize and validate an email address.

    Raises:
        ValueError: If the address is malformed.
    """
    normalized = email.strip()
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError(f"Invalid email address: '{normalized}'")
    return normalized


def validate_required_text(value: str) -> str:
    """Strip surrounding whitespace and reject blank strings."""
    stripped = value.strip()
    if not stripped:
        raise ValueError("Value cannot be blank")
    return stripped
