from __future__ import annotations

"""
Role model & association tables.

Roles are named groups of permissions.  The many-to-many tables
`user_roles` and `role_permissions` are intentionally plain
association tables (no extra columns) — SQLAlchemy `secondary`
handles them transparently.  The composite primary keys guarantee a
role never holds the same permission twice.
"""

from sqlalchemy import Column, ForeignKey, Index, String, Table, text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from typing import TYPE_CHECKING

from app.models.base import Base, IntegerPrimaryKeyMixin, SoftDeleteMixin, TimestampMixin
from app.rbac.matcher import normalize_role_slug

if TYPE_CHECKING:
    from app.models.permission import Permission
    from app.models.user import User

# ── Association tables ───────────────────────────────────────────────
user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)

role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base, IntegerPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "roles"
    __table_args__ = (
        Index(
            "uq_roles_slug_live",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    slug: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # ── Relationships ────────────────────────────────────────────────
    users: Mapped[list["User"]] = relationship(  # noqa: F821
        secondary=user_roles,
        back_populates="roles",
        lazy="noload",
    )
    permissions: Mapped[list["Permission"]] = relationship(  # noqa: F821
        secondary=role_permissions,
        back_populates="roles",
        lazy="selectin",
        order_by="Permission.slug",
    )

    @validates("slug")
    def _normalize_slug(self, key: str, value: str) -> str:
        return normalize_role_slug(value)

    @property
    def permission_ids(self) -> set[int]:
        return {p.id for p in self.permissions}

    def __repr__(self) -> str:
        return f"<Role {self.slug}>"
