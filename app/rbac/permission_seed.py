"""
Default role seeding script.

Permissions are NOT listed here: they are discovered from the routes
by the permission sync and handed to roles by the auto-assign rules.
This script only makes sure the roles those rules target exist.  It is
IDEMPOTENT — safe to re-run.

Usage:
    python -m app.rbac.permission_seed
"""

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.models import Base  # registers every table
from app.models.role import Role

logger = logging.getLogger("rbac.seed")

# ────────────────────────────────────────────────────────────────────
# 1.  DEFAULT ROLES
#
#     super-admin receives every permission through the `*` rule,
#     admin receives read/create/update, user starts empty.
# ────────────────────────────────────────────────────────────────────
DEFAULT_ROLES: list[dict[str, str]] = [
    {"slug": "super-admin", "description": "Full access to every operation"},
    {"slug": "admin", "description": "Manages the catalog and roles"},
    {"slug": "user", "description": "Default role for registered users"},
]


# ────────────────────────────────────────────────────────────────────
# 2.  SEED FUNCTION (idempotent)
# ────────────────────────────────────────────────────────────────────
async def seed(session: AsyncSession) -> list[str]:
    """Create the default roles that don't already exist.

    Returns the slugs that were created.
    """
    stmt = select(Role.slug).where(Role.deleted_at.is_(None))
    existing = set((await session.execute(stmt)).scalars().all())

    created: list[str] = []
    for rdata in DEFAULT_ROLES:
        if rdata["slug"] in existing:
            continue
        session.add(Role(**rdata))
        created.append(rdata["slug"])

    await session.commit()
    if created:
        logger.info("Seeded roles: %s", ", ".join(created))
    return created


# ────────────────────────────────────────────────────────────────────
# 3.  CLI entrypoint:  python -m app.rbac.permission_seed
# ────────────────────────────────────────────────────────────────────
async def main() -> None:
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(engine, expire_on_commit=False)
    async with async_session() as session:
        created = await seed(session)
    await engine.dispose()
    print(f"✔  Roles seeded ({len(created)} new).")


if __name__ == "__main__":
    asyncio.run(main())
