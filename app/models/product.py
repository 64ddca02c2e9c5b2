from __future__ import annotations

"""
Product model.

Every product belongs to one category.  Products are soft-deleted like
the rest of the catalog; `tags` is a free-form JSON list.
"""

from typing import TYPE_CHECKING

from sqlalchemy import JSON, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, IntegerPrimaryKeyMixin, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.category import Category


class Product(Base, IntegerPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"),
        index=True,
        nullable=False,
    )

    # ── Relationships ────────────────────────────────────────────────
    category: Mapped["Category"] = relationship(lazy="selectin")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Product {self.name}>"
