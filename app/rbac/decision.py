"""
Authorization decision engine.

`decide` is a pure function: it receives the caller's roles (each with
its permission slugs) and a route's declared requirement, and returns
a `Decision`.  No I/O and no shared state, so it is safe to call
concurrently on every request.

Evaluation order:
1. No roles and no permissions declared → allow (authentication alone
   suffices, and was verified upstream).
2. Caller holds no roles → deny.  Permissions only ever come from
   roles, so a role-less user can satisfy nothing.
3. Roles declared → the caller needs ANY of them.
4. Permissions declared → the caller needs ALL of them; a granted
   wildcard (`categories.*`) covers concrete requirements.

Roles are checked before permissions and the first failure wins.
"""

import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from app.rbac import matcher

if TYPE_CHECKING:
    from app.models.user import User


class Dimension(str, enum.Enum):
    ROLES = "roles"
    PERMISSIONS = "permissions"


@dataclass(frozen=True)
class AccessRequirement:
    """What a protected operation declares.  Both fields may be empty."""

    permissions: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.permissions and not self.roles


@dataclass(frozen=True)
class RoleGrant:
    slug: str
    permissions: frozenset[str] = frozenset()


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """The authenticated caller, as seen by the decision engine."""

    user_id: int
    email: str
    roles: tuple[RoleGrant, ...] = ()

    @property
    def role_slugs(self) -> frozenset[str]:
        return frozenset(role.slug for role in self.roles)

    @property
    def permissions(self) -> list[str]:
        return effective_permissions(self.roles)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None
    dimension: Dimension | None = None
    missing: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(
        cls,
        reason: str,
        dimension: Dimension,
        missing: Iterable[str] = (),
    ) -> "Decision":
        return cls(allowed=False, reason=reason, dimension=dimension, missing=tuple(missing))

    def __bool__(self) -> bool:
        return self.allowed


NO_ROLES = "no roles assigned"
MISSING_ROLE = "missing required role"
MISSING_PERMISSION = "missing required permission"


def effective_permissions(roles: Iterable[RoleGrant]) -> list[str]:
    """Deduplicated union of permission slugs across `roles`, sorted."""
    slugs: set[str] = set()
    for role in roles:
        slugs.update(role.permissions)
    return sorted(slugs)


def decide(roles: Sequence[RoleGrant], requirement: AccessRequirement) -> Decision:
    if requirement.is_empty:
        return Decision.allow()

    if not roles:
        return Decision.deny(
            NO_ROLES,
            Dimension.ROLES if requirement.roles else Dimension.PERMISSIONS,
        )

    if requirement.roles:
        held = {role.slug for role in roles}
        if held.isdisjoint(requirement.roles):
            return Decision.deny(MISSING_ROLE, Dimension.ROLES, requirement.roles)

    if requirement.permissions:
        granted = effective_permissions(roles)
        if not matcher.has_all(requirement.permissions, granted):
            return Decision.deny(
                MISSING_PERMISSION,
                Dimension.PERMISSIONS,
                matcher.missing(requirement.permissions, granted),
            )

    return Decision.allow()


def principal_from_user(user: "User") -> AuthenticatedPrincipal:
    """Snapshot a loaded user (roles → permissions) into a principal.

    Soft-deleted roles and permissions grant nothing.
    """
    grants = tuple(
        RoleGrant(
            slug=role.slug,
            permissions=frozenset(
                perm.slug for perm in role.permissions if perm.deleted_at is None
            ),
        )
        for role in user.roles
        if role.deleted_at is None
    )
    return AuthenticatedPrincipal(user_id=user.id, email=user.email, roles=grants)
