"""
Access-control service — roles & permissions.

Roles support full CRUD (soft delete only) plus three ways to change
their permission set:
- assign: replace the whole set,
- add: append ids not already present,
- remove: drop the given ids.

Permissions are read-only here; rows are created by the permission
sync.  Unknown permission ids are reported back as a 400 listing the
offending ids, duplicate role slugs as a 409, missing rows as a 404.
"""

import logging
from collections.abc import Sequence

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.db_errors import raise_for_db_error
from app.models.permission import Permission
from app.models.role import Role
from app.rbac.matcher import normalize_role_slug

logger = logging.getLogger(__name__)


# ── Helpers ──────────────────────────────────────────────────────────

async def _resolve_permissions(permission_ids: Sequence[int], db: AsyncSession) -> list[Permission]:
    """Load live permissions by id; 400 with the unknown ids if any are missing."""
    wanted = list(dict.fromkeys(permission_ids))
    if not wanted:
        return []

    stmt = (
        select(Permission)
        .where(Permission.id.in_(wanted), Permission.deleted_at.is_(None))
        .order_by(Permission.slug)
    )
    result = await db.execute(stmt)
    permissions = list(result.scalars().all())

    invalid = sorted(set(wanted) - {p.id for p in permissions})
    if invalid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Some permission IDs are invalid", "invalid_ids": invalid},
        )
    return permissions


async def _ensure_slug_available(slug: str, db: AsyncSession, exclude_id: int | None = None) -> str:
    normalized = normalize_role_slug(slug)
    if len(normalized) < 3:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Role slug must contain at least 3 valid characters (a-z, 0-9, -)",
        )

    stmt = select(Role.id).where(Role.slug == normalized, Role.deleted_at.is_(None))
    if exclude_id is not None:
        stmt = stmt.where(Role.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Role '{normalized}' already exists",
        )
    return normalized


# ── Roles ────────────────────────────────────────────────────────────

async def create_role(
    slug: str,
    description: str | None,
    permission_ids: Sequence[int] | None,
    db: AsyncSession,
) -> Role:
    normalized = await _ensure_slug_available(slug, db)
    permissions = await _resolve_permissions(permission_ids or [], db)

    role = Role(slug=normalized, description=description, permissions=permissions)
    db.add(role)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        raise_for_db_error(exc, "access_control_service.create_role")

    logger.info("Role created: %s (ID: %s)", role.slug, role.id)
    return role


async def list_roles(db: AsyncSession, skip: int = 0, limit: int = 50) -> list[Role]:
    stmt = (
        select(Role)
        .options(selectinload(Role.permissions))
        .where(Role.deleted_at.is_(None))
        .order_by(Role.created_at.desc(), Role.id.desc())
        .offset(skip)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_role(role_id: int, db: AsyncSession) -> Role:
    stmt = (
        select(Role)
        .options(selectinload(Role.permissions))
        .where(Role.id == role_id, Role.deleted_at.is_(None))
    )
    result = await db.execute(stmt)
    role = result.scalar_one_or_none()
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Role with ID {role_id} not found",
        )
    return role


async def get_role_by_slug(slug: str, db: AsyncSession) -> Role | None:
    stmt = (
        select(Role)
        .options(selectinload(Role.permissions))
        .where(Role.slug == normalize_role_slug(slug), Role.deleted_at.is_(None))
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def update_role(
    role_id: int,
    db: AsyncSession,
    slug: str | None = None,
    description: str | None = None,
    permission_ids: Sequence[int] | None = None,
) -> Role:
    """Patch a role.  `permission_ids=[]` clears the role's permissions."""
    role = await get_role(role_id, db)

    if slug is not None:
        role.slug = await _ensure_slug_available(slug, db, exclude_id=role.id)
    if description is not None:
        role.description = description
    if permission_ids is not None:
        role.permissions = await _resolve_permissions(permission_ids, db)

    try:
        await db.flush()
    except SQLAlchemyError as exc:
        raise_for_db_error(exc, "access_control_service.update_role")

    logger.info("Role updated: %s (ID: %s)", role.slug, role.id)
    return role


async def delete_role(role_id: int, db: AsyncSession) -> None:
    """Soft delete; the row and its associations stay for auditing."""
    role = await get_role(role_id, db)
    role.soft_delete()
    await db.flush()
    logger.info("Role soft deleted: %s (ID: %s)", role.slug, role.id)


# ── Role ↔ permission assignment ─────────────────────────────────────

async def assign_permissions(role_id: int, permission_ids: Sequence[int], db: AsyncSession) -> Role:
    """Replace the role's permissions with exactly `permission_ids`."""
    role = await get_role(role_id, db)
    role.permissions = await _resolve_permissions(permission_ids, db)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        raise_for_db_error(exc, "access_control_service.assign_permissions")

    logger.info(
        "Permissions assigned to role %s: [%s]",
        role.slug,
        ", ".join(p.slug for p in role.permissions),
    )
    return role


async def add_permissions(role_id: int, permission_ids: Sequence[int], db: AsyncSession) -> Role:
    """Append permissions the role doesn't hold yet."""
    role = await get_role(role_id, db)
    permissions = await _resolve_permissions(permission_ids, db)

    owned = role.permission_ids
    to_add = [p for p in permissions if p.id not in owned]
    if not to_add:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All specified permissions are already assigned to this role",
        )

    role.permissions.extend(to_add)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        raise_for_db_error(exc, "access_control_service.add_permissions")

    logger.info(
        "Permissions added to role %s: [%s]",
        role.slug,
        ", ".join(p.slug for p in to_add),
    )
    return role


async def remove_permissions(role_id: int, permission_ids: Sequence[int], db: AsyncSession) -> Role:
    """Drop the given permission ids from the role; unknown ids are ignored."""
    role = await get_role(role_id, db)
    to_remove = set(permission_ids)
    role.permissions = [p for p in role.permissions if p.id not in to_remove]
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        raise_for_db_error(exc, "access_control_service.remove_permissions")

    logger.info(
        "Permissions removed from role %s: IDs [%s]",
        role.slug,
        ", ".join(str(i) for i in sorted(to_remove)),
    )
    return role


# ── Permissions (read-only) ──────────────────────────────────────────

async def list_permissions(db: AsyncSession) -> list[Permission]:
    stmt = select(Permission).where(Permission.deleted_at.is_(None)).order_by(Permission.slug)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_permission(permission_id: int, db: AsyncSession) -> Permission:
    stmt = select(Permission).where(
        Permission.id == permission_id,
        Permission.deleted_at.is_(None),
    )
    result = await db.execute(stmt)
    permission = result.scalar_one_or_none()
    if permission is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Permission with ID {permission_id} not found",
        )
    return permission
