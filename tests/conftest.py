"""Shared pytest fixtures.

Every test gets its own file-backed SQLite database (aiosqlite) with
the schema created from the models, so tests never share state.
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

from collections.abc import AsyncIterator, Awaitable, Callable, Sequence

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.database import get_db
from app.core.security import create_access_token, hash_password
from app.main import create_app
from app.models import Base
from app.models.permission import Permission
from app.models.role import Role
from app.models.user import User
from app.rbac.config import AccessControlConfig
from app.rbac.permission_seed import seed

AUTO_ASSIGN_RULES = {
    "super-admin": ["*"],
    "admin": ["*.read", "*.create", "*.update"],
}


@pytest_asyncio.fixture()
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.sqlite'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def seeded_db(db: AsyncSession) -> AsyncSession:
    """Session over a database holding the default roles."""
    await seed(db)
    return db


@pytest.fixture()
def access_config() -> AccessControlConfig:
    return AccessControlConfig.from_rules(AUTO_ASSIGN_RULES)


@pytest.fixture()
def app(session_factory, access_config: AccessControlConfig) -> FastAPI:
    """Application bound to the per-test database."""
    application = create_app(access_config)

    async def _get_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = _get_db
    return application


@pytest_asyncio.fixture()
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture()
def add_permissions() -> Callable[..., Awaitable[list[Permission]]]:
    async def _add(db: AsyncSession, *slugs: str) -> list[Permission]:
        permissions = [Permission(slug=slug, description=f"test {slug}") for slug in slugs]
        db.add_all(permissions)
        await db.commit()
        return permissions

    return _add


@pytest.fixture()
def make_user(session_factory) -> Callable[..., Awaitable[tuple[User, dict[str, str]]]]:
    """Create a user holding `roles` and return it with auth headers."""

    counter = {"n": 0}

    async def _make(roles: Sequence[str] = (), email: str | None = None):
        counter["n"] += 1
        async with session_factory() as session:
            role_rows = []
            if roles:
                result = await session.execute(select(Role).where(Role.slug.in_(roles)))
                role_rows = list(result.scalars().all())
                assert len(role_rows) == len(set(roles)), f"missing roles in {roles}"

            user = User(
                email=email or f"user{counter['n']}@example.com",
                full_name=f"User {counter['n']}",
                password_hash=hash_password("s3cret-pass"),
                is_active=True,
            )
            user.roles.extend(role_rows)
            session.add(user)
            await session.commit()

        token = create_access_token({"sub": str(user.id)})
        return user, {"Authorization": f"Bearer {token}"}

    return _make
