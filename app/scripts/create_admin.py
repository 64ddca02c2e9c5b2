"""
Bootstrap script — creates the first super-admin user.

Usage:
    python -m app.scripts.create_admin

Run it once after the first start: the app seeds the `super-admin`
role, and the first permission sync hands that role every discovered
permission through the `*` auto-assign rule.
"""

import asyncio
import getpass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.core.security import hash_password
from app.models import Base  # noqa: F401 — ensures all models are registered
from app.models.role import Role
from app.models.user import User

ADMIN_ROLE = "super-admin"


class BootstrapError(Exception):
    pass


async def create_super_admin(
    session: AsyncSession,
    email: str,
    full_name: str,
    password: str,
) -> User:
    """Create a user holding the super-admin role.  Raises BootstrapError."""
    email = email.strip().lower()
    full_name = full_name.strip()
    if not email or not full_name or not password:
        raise BootstrapError("All fields are required.")

    taken = await session.execute(select(User.id).where(func.lower(User.email) == email))
    if taken.first() is not None:
        raise BootstrapError(f"User with email '{email}' already exists.")

    role = (
        await session.execute(
            select(Role).where(Role.slug == ADMIN_ROLE, Role.deleted_at.is_(None))
        )
    ).scalar_one_or_none()
    if role is None:
        raise BootstrapError(
            f"'{ADMIN_ROLE}' role not found. Start the app once (or run "
            "`python -m app.rbac.permission_seed`) and retry."
        )

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        is_active=True,
    )
    user.roles.append(role)
    session.add(user)
    await session.commit()
    return user


def _prompt() -> tuple[str, str, str]:
    print(f"\n🔧  {settings.APP_NAME} — First Admin Setup\n")
    email = input("  Admin email: ")
    full_name = input("  Full name:   ")
    password = getpass.getpass("  Password:    ")
    if password != getpass.getpass("  Confirm:     "):
        raise BootstrapError("Passwords do not match.")
    return email, full_name, password


async def main() -> None:
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        email, full_name, password = _prompt()
        async with session_factory() as session:
            user = await create_super_admin(session, email, full_name, password)
    except BootstrapError as exc:
        print(f"\n❌  {exc}")
        return
    finally:
        await engine.dispose()

    print("\n✅  Admin user created successfully!")
    print(f"    ID:    {user.id}")
    print(f"    Email: {user.email}")
    print("\n   You can now log in via POST /auth/login\n")


if __name__ == "__main__":
    asyncio.run(main())
