"""
FastAPI application factory.

Assembles the app, registers all routers, and wires up lifecycle
events.  Database schema is managed by Alembic — NOT create_all.
"""

import logging

from fastapi import FastAPI

from app.controllers.access_control_controller import router as access_control_router
from app.controllers.auth_controller import router as auth_router
from app.controllers.category_controller import router as category_router
from app.controllers.product_controller import router as product_router
from app.core.config import settings
from app.core.database import SessionLocal, engine
from app.models import Base  # noqa: F401 — ensures all models are registered
from app.rbac.config import AccessControlConfig
from app.rbac.errors import SyncError
from app.rbac.sync import PermissionSyncService

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

# Controller routers, in mount order.  The permission scanner reads these
# directly; `app.routes` nests included routers on newer FastAPI releases.
ROUTERS = (auth_router, access_control_router, category_router, product_router)


def create_app(access_config: AccessControlConfig | None = None) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    access_config = access_config or AccessControlConfig.from_settings(settings)
    app.state.access_config = access_config
    app.state.permission_sync = PermissionSyncService(access_config)

    # ── Register routers ─────────────────────────────────────────────
    for router in ROUTERS:
        app.include_router(router)
    app.state.routers = ROUTERS

    # ── Startup / Shutdown ───────────────────────────────────────────
    @app.on_event("startup")
    async def on_startup() -> None:
        """Seed default roles, then sync permissions if enabled.

        NOTE: Database schema is managed by Alembic migrations.
        Run `alembic upgrade head` before starting the app.
        """
        from app.rbac.permission_seed import seed

        async with SessionLocal() as session:
            await seed(session)

        if not access_config.auto_sync_on_startup:
            logger.info("Permission auto-sync disabled.")
            return

        async with SessionLocal() as session:
            try:
                await app.state.permission_sync.run(session, app.state.routers)
            except SyncError as exc:
                logger.error("Startup permission sync failed at %s: %s", exc.stage, exc.cause)
                raise

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await engine.dispose()
        logger.info("Database engine disposed.")

    # ── Health check ─────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
