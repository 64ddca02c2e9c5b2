"""
Auto-assignment of newly discovered permissions.

Rules map a role slug to wildcard patterns, e.g.

    {"super-admin": ["*"], "admin": ["*.read", "*.create", "*.update"]}

Only permissions created by the current sync are considered: rules
never retro-actively grant permissions that already existed.  Each
rule is committed on its own, and a rule that fails is rolled back and
logged without stopping the ones after it.
"""

import logging
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.permission import Permission
from app.models.role import Role
from app.rbac.config import AutoAssignRule
from app.rbac.matcher import matches

logger = logging.getLogger("rbac.sync")


class PermissionAutoAssigner:
    def __init__(self, db: AsyncSession, rules: Sequence[AutoAssignRule]):
        self.db = db
        self.rules = rules

    async def _load_permissions(self, slugs: Sequence[str]) -> list[Permission]:
        stmt = (
            select(Permission)
            .where(Permission.slug.in_(slugs), Permission.deleted_at.is_(None))
            .order_by(Permission.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _load_role(self, slug: str) -> Role | None:
        stmt = (
            select(Role)
            .options(selectinload(Role.permissions))
            .where(Role.slug == slug, Role.deleted_at.is_(None))
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _apply_rule(self, rule: AutoAssignRule, candidates: list[Permission]) -> list[str]:
        role = await self._load_role(rule.role_slug)
        if role is None:
            logger.warning("Auto-assign: role '%s' not found, rule skipped.", rule.role_slug)
            return []

        owned = role.permission_ids
        to_grant = [
            perm
            for perm in candidates
            if perm.id not in owned
            and any(matches(perm.slug, pattern) for pattern in rule.patterns)
        ]
        if not to_grant:
            return []

        role.permissions.extend(to_grant)
        await self.db.commit()

        granted = [perm.slug for perm in to_grant]
        logger.info("Auto-assigned to '%s': %s", role.slug, ", ".join(granted))
        return granted

    async def auto_assign(self, new_slugs: Sequence[str]) -> dict[str, list[str]]:
        """Grant `new_slugs` to the configured roles.

        Returns role slug → slugs granted during this call.
        """
        granted: dict[str, list[str]] = {}
        if not self.rules or not new_slugs:
            return granted

        candidates = await self._load_permissions(new_slugs)

        for rule in self.rules:
            try:
                slugs = await self._apply_rule(rule, candidates)
            except Exception:
                logger.exception("Auto-assign rule for '%s' failed; continuing.", rule.role_slug)
                await self.db.rollback()
                # rollback expires loaded rows
                candidates = await self._load_permissions(new_slugs)
                continue
            if slugs:
                granted[rule.role_slug] = slugs

        return granted
