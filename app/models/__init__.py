"""
Models package — import every model so SQLAlchemy's Base.metadata
knows about all tables (critical for `create_all` / Alembic).
"""

from app.models.base import Base, IntegerPrimaryKeyMixin, SoftDeleteMixin, TimestampMixin
from app.models.user import User
from app.models.role import Role, user_roles, role_permissions
from app.models.permission import Permission
from app.models.category import Category
from app.models.product import Product

__all__ = [
    "Base",
    "IntegerPrimaryKeyMixin",
    "SoftDeleteMixin",
    "TimestampMixin",
    "User",
    "Role",
    "user_roles",
    "role_permissions",
    "Permission",
    "Category",
    "Product",
]
