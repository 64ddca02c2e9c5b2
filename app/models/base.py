"""
Declarative base & shared mixins for all models.

Every table gets:
- An auto-incrementing integer primary key.
- `created_at` / `updated_at` timestamps (UTC, auto-managed).

Catalog tables (roles, permissions, categories) also carry a
`deleted_at` marker: they are soft-deleted, never removed.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base — all models inherit from this."""
    pass


class TimestampMixin:
    """Adds created_at / updated_at to any model that inherits it."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class IntegerPrimaryKeyMixin:
    """Adds an auto-incrementing integer `id` primary key."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)


class SoftDeleteMixin:
    """Adds a nullable `deleted_at` marker.  NULL means the row is live."""

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = datetime.now(timezone.utc)
