"""
Permission reconciler.

Diffs the slugs found by the scanner against the live `permissions`
table and inserts what is missing, in one batch.  Running it twice
with the same input writes nothing the second time.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.permission import Permission
from app.rbac.scanner import OperationLocation

logger = logging.getLogger("rbac.sync")


@dataclass
class ReconcileResult:
    found: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)


def describe_permission(slug: str, location: OperationLocation) -> str:
    """`categories.read` at category_controller.list_categories →
    `read categories (category_controller.list_categories)`."""
    parts = slug.split(".")
    if len(parts) == 2:
        resource, action = parts
        return f"{action} {resource} ({location})"
    return f"Permission: {slug} ({location})"


class PermissionReconciler:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def existing_slugs(self) -> set[str]:
        stmt = select(Permission.slug).where(Permission.deleted_at.is_(None))
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    async def reconcile(self, found: Mapping[str, OperationLocation]) -> ReconcileResult:
        existing_slugs = await self.existing_slugs()

        result = ReconcileResult(found=list(found))
        for slug in found:
            if slug in existing_slugs:
                result.existing.append(slug)
            else:
                result.created.append(slug)

        if not result.created:
            logger.info("Permissions up to date (%d existing).", len(result.existing))
            return result

        # Single batch: a failure surfaces for the whole set.
        self.db.add_all(
            [
                Permission(slug=slug, description=describe_permission(slug, found[slug]))
                for slug in result.created
            ]
        )
        await self.db.flush()
        await self.db.commit()

        logger.info(
            "Created %d new permission(s): %s",
            len(result.created),
            ", ".join(result.created),
        )
        return result
