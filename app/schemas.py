"""
Pydantic schemas for request / response serialization.

Kept in a single file for now — split per-domain when it grows.
Schemas are deliberately decoupled from SQLAlchemy models so the
API surface can evolve independently of the DB layer.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


# ── Auth ─────────────────────────────────────────────────────────────
class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str = Field(min_length=1, max_length=256)


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user_id: int
    roles: list[str]


# ── User ─────────────────────────────────────────────────────────────
class UserOut(BaseModel):
    id: int
    email: str
    full_name: str
    is_active: bool
    roles: list[str] = []
    permissions: list[str] = []
    created_at: datetime


# ── Permission ───────────────────────────────────────────────────────
class PermissionOut(BaseModel):
    id: int
    slug: str
    description: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SyncSummary(BaseModel):
    totalFound: int
    created: int
    existing: int


class SyncDetails(BaseModel):
    found: list[str]
    created: list[str]
    existing: list[str]


class SyncResponse(BaseModel):
    message: str
    summary: SyncSummary
    details: SyncDetails


# ── Role ─────────────────────────────────────────────────────────────
class CreateRoleRequest(BaseModel):
    slug: str = Field(min_length=3, max_length=50)
    description: str | None = Field(default=None, max_length=255)
    permission_ids: list[int] | None = None


class UpdateRoleRequest(BaseModel):
    slug: str | None = Field(default=None, min_length=3, max_length=50)
    description: str | None = Field(default=None, max_length=255)
    # None → leave untouched, [] → clear every permission.
    permission_ids: list[int] | None = None


class AssignPermissionsRequest(BaseModel):
    permission_ids: list[int] = Field(min_length=1)


class RoleOut(BaseModel):
    id: int
    slug: str
    description: str | None = None
    permissions: list[PermissionOut] = []
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Category ─────────────────────────────────────────────────────────
class CreateCategoryRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=512)


class UpdateCategoryRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=512)


class CategoryOut(BaseModel):
    id: int
    name: str
    description: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Product ──────────────────────────────────────────────────────────
class CreateProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    description: str = Field(min_length=1)
    tags: list[str] | None = None
    category_id: int = Field(gt=0)


class UpdateProductRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=256)
    description: str | None = Field(default=None, min_length=1)
    tags: list[str] | None = None
    category_id: int | None = Field(default=None, gt=0)


class ProductOut(BaseModel):
    id: int
    name: str
    description: str
    tags: list[str] | None = None
    category: CategoryOut
    created_at: datetime

    model_config = {"from_attributes": True}
