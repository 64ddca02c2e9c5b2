"""
Authentication service.

Handles:
- Self-registration (the configured default role is attached when it
  exists)
- Login with email + password
- Refresh-token exchange
- Building the `/auth/me` view with effective permissions

All business logic lives here — controllers call service methods
and return the result.
"""

import logging

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.db_errors import raise_for_db_error
from app.core.security import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from app.models.role import Role
from app.models.user import User
from app.rbac.decision import principal_from_user
from app.schemas import UserOut

logger = logging.getLogger(__name__)


# ── Helpers ──────────────────────────────────────────────────────────

def _live_role_slugs(user: User) -> list[str]:
    return [r.slug for r in user.roles if r.deleted_at is None]


def _issue_tokens(user: User) -> dict:
    role_slugs = _live_role_slugs(user)
    access_token = create_access_token({"sub": str(user.id), "roles": role_slugs})
    refresh_token = create_refresh_token({"sub": str(user.id)})
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "user_id": user.id,
        "roles": role_slugs,
    }


async def _load_user(db: AsyncSession, **filters) -> User | None:
    stmt = (
        select(User)
        .options(selectinload(User.roles).selectinload(Role.permissions))
        .filter_by(**filters)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def user_out(user: User) -> UserOut:
    principal = principal_from_user(user)
    return UserOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        is_active=user.is_active,
        roles=sorted(principal.role_slugs),
        permissions=principal.permissions,
        created_at=user.created_at,
    )


# ── Register ─────────────────────────────────────────────────────────

async def register_user(email: str, password: str, full_name: str, db: AsyncSession) -> User:
    email = email.strip().lower()
    existing = await db.execute(select(User.id).where(func.lower(User.email) == email))
    if existing.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        email=email,
        full_name=full_name.strip(),
        password_hash=hash_password(password),
        is_active=True,
    )

    default_role = (
        await db.execute(
            select(Role).where(
                Role.slug == settings.DEFAULT_USER_ROLE,
                Role.deleted_at.is_(None),
            )
        )
    ).scalar_one_or_none()
    user.roles = [default_role] if default_role is not None else []
    if default_role is None:
        logger.warning("Default role '%s' not found; user has no roles.", settings.DEFAULT_USER_ROLE)

    db.add(user)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        raise_for_db_error(exc, "auth_service.register_user")

    logger.info("User registered: %s (ID: %s)", user.email, user.id)
    return user


# ── Login ────────────────────────────────────────────────────────────

async def authenticate_user(email: str, password: str, db: AsyncSession) -> dict:
    user = await _load_user(db, email=email.strip().lower())

    if user is None or not verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )

    return _issue_tokens(user)


# ── Refresh ──────────────────────────────────────────────────────────

async def refresh_access_token(refresh_token_raw: str, db: AsyncSession) -> dict:
    payload = decode_token(refresh_token_raw, expected_type=REFRESH_TOKEN)

    user_id = str(payload.get("sub", ""))
    if not user_id.isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token payload",
        )

    user = await _load_user(db, id=int(user_id))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )

    return _issue_tokens(user)
