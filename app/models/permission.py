from __future__ import annotations

"""
Permission model.

Permissions are `resource.action` slugs (e.g. `categories.read`),
optionally with `*` wildcard segments (`categories.*`, `*.read`, `*`).
Most rows are discovered from route declarations by the permission
sync; they are referenced by role ↔ permission associations and are
never hard-deleted.
"""

from sqlalchemy import Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from typing import TYPE_CHECKING

from app.models.base import Base, IntegerPrimaryKeyMixin, SoftDeleteMixin, TimestampMixin
from app.rbac.matcher import normalize_permission_slug

if TYPE_CHECKING:
    from app.models.role import Role


class Permission(Base, IntegerPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "permissions"
    __table_args__ = (
        # Slugs are unique among live rows only.
        Index(
            "uq_permissions_slug_live",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    slug: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # ── Relationships ────────────────────────────────────────────────
    roles: Mapped[list["Role"]] = relationship(  # noqa: F821
        secondary="role_permissions",
        back_populates="permissions",
        lazy="noload",
    )

    @validates("slug")
    def _normalize_slug(self, key: str, value: str) -> str:
        return normalize_permission_slug(value)

    def __repr__(self) -> str:
        return f"<Permission {self.slug}>"
