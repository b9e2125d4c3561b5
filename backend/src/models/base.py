"""SQLAlchemy declarative base with common mixins."""
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class UUIDMixin:
    """
    Mixin that adds a UUID primary key.

    The id is generated application-side (uuid4) so inserts can return it without a
    database-specific default, and so the document backend uses the same id scheme.
    """

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at columns.

    Both default to the database clock on insert and are returned via RETURNING.
    Updates set updated_at explicitly.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
