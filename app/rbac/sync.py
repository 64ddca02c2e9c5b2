"""
Permission sync pipeline.

    IDLE → SCANNING → RECONCILING → AUTO_ASSIGNING → IDLE

Each stage runs to completion before the next.  If one fails the
pipeline stops with a `SyncError` naming the stage; whatever earlier
stages committed (e.g. newly created permissions) stays in place.

One sync runs at a time per service instance: a second caller gets
`SyncInProgressError` instead of racing on the permissions table.
"""

import asyncio
import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from fastapi import APIRouter
from sqlalchemy.ext.asyncio import AsyncSession

from app.rbac.auto_assign import PermissionAutoAssigner
from app.rbac.config import AccessControlConfig
from app.rbac.errors import SyncError, SyncInProgressError
from app.rbac.reconciler import PermissionReconciler, ReconcileResult
from app.rbac.scanner import PermissionScanner, declarations_from_routers

logger = logging.getLogger("rbac.sync")


class SyncState(str, enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    RECONCILING = "reconciling"
    AUTO_ASSIGNING = "auto_assigning"


@dataclass
class SyncReport:
    found: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)
    assigned: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_result(cls, result: ReconcileResult, assigned: dict[str, list[str]]) -> "SyncReport":
        return cls(
            found=result.found,
            created=result.created,
            existing=result.existing,
            assigned=assigned,
        )

    def to_response(self) -> dict:
        return {
            "message": "Permissions synchronized successfully",
            "summary": {
                "totalFound": len(self.found),
                "created": len(self.created),
                "existing": len(self.existing),
            },
            "details": {
                "found": self.found,
                "created": self.created,
                "existing": self.existing,
            },
        }


class PermissionSyncService:
    def __init__(self, config: AccessControlConfig):
        self.config = config
        self.state = SyncState.IDLE
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def run(self, db: AsyncSession, routers: Iterable[APIRouter]) -> SyncReport:
        if self._lock.locked():
            raise SyncInProgressError()

        async with self._lock:
            try:
                return await self._run(db, routers)
            finally:
                self.state = SyncState.IDLE

    async def _run(self, db: AsyncSession, routers: Iterable[APIRouter]) -> SyncReport:
        logger.info("Scanning routes for declared permissions...")
        self.state = SyncState.SCANNING
        try:
            found = PermissionScanner(declarations_from_routers(routers)).scan()
        except Exception as exc:
            raise SyncError(self.state.value, exc) from exc

        self.state = SyncState.RECONCILING
        try:
            result = await PermissionReconciler(db).reconcile(found)
        except Exception as exc:
            await db.rollback()
            raise SyncError(self.state.value, exc) from exc

        assigned: dict[str, list[str]] = {}
        if result.created:
            self.state = SyncState.AUTO_ASSIGNING
            try:
                assigned = await PermissionAutoAssigner(
                    db, self.config.auto_assign_rules
                ).auto_assign(result.created)
            except Exception as exc:
                await db.rollback()
                raise SyncError(self.state.value, exc) from exc

        logger.info(
            "Permission sync done: %d found, %d created, %d existing.",
            len(result.found),
            len(result.created),
            len(result.existing),
        )
        return SyncReport.from_result(result, assigned)
