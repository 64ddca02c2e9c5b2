"""Application startup: role seeding and the optional permission sync."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from app.main import create_app
from app.models.permission import Permission
from app.models.role import Role
from app.rbac.config import AccessControlConfig

pytestmark = pytest.mark.asyncio

AUTO_ASSIGN_RULES = {
    "super-admin": ["*"],
    "admin": ["*.read", "*.create", "*.update"],
}


@pytest.fixture()
def bind_startup_session(monkeypatch, session_factory):
    monkeypatch.setattr("app.main.SessionLocal", session_factory)


async def start_and_stop(app) -> None:
    async with app.router.lifespan_context(app):
        pass


async def role_permissions(session_factory, slug: str) -> set[str]:
    async with session_factory() as session:
        stmt = select(Role).options(selectinload(Role.permissions)).where(Role.slug == slug)
        role = (await session.execute(stmt)).scalar_one()
        return {p.slug for p in role.permissions}


async def test_startup_seeds_roles_and_syncs_permissions(bind_startup_session, session_factory):
    app = create_app(AccessControlConfig.from_rules(AUTO_ASSIGN_RULES, auto_sync_on_startup=True))

    await start_and_stop(app)

    async with session_factory() as session:
        roles = set((await session.execute(select(Role.slug))).scalars().all())
        slugs = set((await session.execute(select(Permission.slug))).scalars().all())

    assert roles == {"super-admin", "admin", "user"}
    assert {"categories.read", "products.delete", "permissions.sync"} <= slugs
    assert slugs <= await role_permissions(session_factory, "super-admin")
    assert "products.delete" not in await role_permissions(session_factory, "admin")
    assert await role_permissions(session_factory, "user") == set()


async def test_startup_twice_creates_nothing_new(bind_startup_session, session_factory):
    config = AccessControlConfig.from_rules(AUTO_ASSIGN_RULES, auto_sync_on_startup=True)

    await start_and_stop(create_app(config))
    async with session_factory() as session:
        first = (await session.execute(select(func.count(Permission.id)))).scalar_one()

    await start_and_stop(create_app(config))
    async with session_factory() as session:
        second = (await session.execute(select(func.count(Permission.id)))).scalar_one()

    assert first == second


async def test_startup_without_sync_only_seeds_roles(bind_startup_session, session_factory):
    app = create_app(AccessControlConfig.from_rules(AUTO_ASSIGN_RULES, auto_sync_on_startup=False))

    await start_and_stop(app)

    async with session_factory() as session:
        roles = (await session.execute(select(func.count(Role.id)))).scalar_one()
        permissions = (await session.execute(select(func.count(Permission.id)))).scalar_one()

    assert roles == 3
    assert permissions == 0
