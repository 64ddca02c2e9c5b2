"""
Category model — product catalog grouping.

Soft-deleted like the access-control catalog; the name is unique among
live rows only so a deleted category's name can be reused.
"""

from sqlalchemy import Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, IntegerPrimaryKeyMixin, SoftDeleteMixin, TimestampMixin


class Category(Base, IntegerPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "categories"
    __table_args__ = (
        Index(
            "uq_categories_name_live",
            "name",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(String(512), nullable=True)

    def __repr__(self) -> str:
        return f"<Category {self.name}>"
