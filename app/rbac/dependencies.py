"""
RBAC dependencies — the heart of permission enforcement.

`require_access` is a *dependency class*: construct it with the
permission slugs (and optionally role slugs) an operation requires,
and it becomes a FastAPI dependency that will:

1. Decode the JWT (via `get_current_user_token`).
2. Load the full User (with roles → permissions eagerly loaded).
3. Snapshot the user into an `AuthenticatedPrincipal`.
4. Ask the decision engine whether the principal satisfies the
   declared requirement.
5. Return 403 on failure, naming which dimension (role or permission)
   was not met.

The instance keeps its `requirement`, which is what the permission
scanner reads to discover the slugs the application uses.

Usage in a route:
    @router.get("/categories", dependencies=[Depends(require_access("categories.read"))])
    async def list_categories(...): ...

Or inject the user object:
    @router.post("/roles")
    async def create_role(user: User = Depends(require_access("roles.create", roles=["admin"]))): ...
"""

import logging
from collections.abc import Iterable
from typing import Any

from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import get_db
from app.core.security import get_current_user_token
from app.models.role import Role
from app.models.user import User
from app.rbac.decision import AccessRequirement, decide, principal_from_user
from app.rbac.matcher import is_valid_permission_slug, normalize_role_slug

logger = logging.getLogger("rbac")


async def _load_user_with_permissions(user_id: int, db: AsyncSession) -> User:
    """Fetch the user and eagerly load roles → permissions in one query."""
    stmt = (
        select(User)
        .options(selectinload(User.roles).selectinload(Role.permissions))
        .where(User.id == user_id)
    )
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


async def get_current_user(
    token_payload: dict[str, Any] = Depends(get_current_user_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Dependency that returns the current user WITHOUT permission checks.
    Useful for routes that only need authentication, not authorization."""
    user = await _load_user_with_permissions(int(token_payload["sub"]), db)

    # Disabled users must never pass
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account disabled",
        )
    return user


class require_access:
    """
    Dependency class.

    Can be used as:
        Depends(require_access("categories.read"))
        Depends(require_access("roles.update", "permissions.read"))
        Depends(require_access("roles.create", roles=["super-admin", "admin"]))
        Depends(require_access(roles=["admin"]))
    """

    def __init__(self, *permission_slugs: str, roles: Iterable[str] = ()):
        invalid = [slug for slug in permission_slugs if not is_valid_permission_slug(slug)]
        if invalid:
            raise ValueError(f"Invalid permission slug(s): {', '.join(invalid)}")

        roles = list(roles)
        role_slugs = [normalize_role_slug(role) for role in roles]
        if not all(role_slugs):
            raise ValueError(f"Invalid role slug(s): {', '.join(map(repr, roles))}")

        self.requirement = AccessRequirement(
            permissions=tuple(dict.fromkeys(permission_slugs)),
            roles=tuple(dict.fromkeys(role_slugs)),
        )

    def __repr__(self) -> str:
        return (
            f"require_access(permissions={list(self.requirement.permissions)}, "
            f"roles={list(self.requirement.roles)})"
        )

    async def __call__(self, user: User = Depends(get_current_user)) -> User:
        principal = principal_from_user(user)
        decision = decide(principal.roles, self.requirement)

        if not decision:
            logger.warning(
                "Access denied for user %s: %s %s",
                user.id,
                decision.reason,
                list(decision.missing),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "message": decision.reason,
                    "dimension": decision.dimension.value,
                    "required": list(decision.missing),
                },
            )

        return user
