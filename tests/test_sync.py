import pytest
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from app.models.permission import Permission
from app.models.role import Role
from app.rbac.auto_assign import PermissionAutoAssigner
from app.rbac.config import AccessControlConfig, AutoAssignRule
from app.rbac.dependencies import require_access
from app.rbac.errors import SyncError, SyncInProgressError
from app.rbac.reconciler import PermissionReconciler, describe_permission
from app.rbac.scanner import OperationLocation
from app.rbac.sync import PermissionSyncService, SyncState

LOC_READ = OperationLocation("users_controller", "find_all")
LOC_DELETE = OperationLocation("users_controller", "remove")


async def role_permission_slugs(db, slug: str) -> list[str]:
    stmt = select(Role).options(selectinload(Role.permissions)).where(Role.slug == slug)
    role = (await db.execute(stmt.execution_options(populate_existing=True))).scalar_one()
    return sorted(p.slug for p in role.permissions)


async def permission_count(db) -> int:
    return (await db.execute(select(func.count(Permission.id)))).scalar_one()


def rules(mapping) -> tuple[AutoAssignRule, ...]:
    return AccessControlConfig.from_rules(mapping).auto_assign_rules


# ── Reconciler ───────────────────────────────────────────────────────


def test_describe_permission():
    assert describe_permission("users.read", LOC_READ) == "read users (users_controller.find_all)"
    assert describe_permission("*", LOC_READ) == "Permission: * (users_controller.find_all)"


@pytest.mark.asyncio
async def test_reconcile_partitions_found_slugs(db, add_permissions):
    await add_permissions(db, "users.read")

    result = await PermissionReconciler(db).reconcile(
        {"users.read": LOC_READ, "users.delete": LOC_DELETE}
    )

    assert result.found == ["users.read", "users.delete"]
    assert result.created == ["users.delete"]
    assert result.existing == ["users.read"]

    created = (
        await db.execute(select(Permission).where(Permission.slug == "users.delete"))
    ).scalar_one()
    assert created.description == "delete users (users_controller.remove)"


@pytest.mark.asyncio
async def test_reconcile_is_idempotent(db):
    found = {"users.read": LOC_READ, "users.delete": LOC_DELETE}

    first = await PermissionReconciler(db).reconcile(found)
    count = await permission_count(db)
    second = await PermissionReconciler(db).reconcile(found)

    assert first.created == ["users.read", "users.delete"]
    assert second.created == []
    assert sorted(second.existing) == ["users.delete", "users.read"]
    assert await permission_count(db) == count == 2


@pytest.mark.asyncio
async def test_reconcile_ignores_soft_deleted_rows(db, add_permissions):
    (old,) = await add_permissions(db, "users.read")
    old.soft_delete()
    await db.commit()

    result = await PermissionReconciler(db).reconcile({"users.read": LOC_READ})

    assert result.created == ["users.read"]
    assert await permission_count(db) == 2


# ── Auto-assignment ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_scenario_reconcile_then_auto_assign(db, add_permissions):
    await add_permissions(db, "users.read")
    db.add(Role(slug="admin"))
    await db.commit()

    result = await PermissionReconciler(db).reconcile(
        {"users.read": LOC_READ, "users.delete": LOC_DELETE}
    )
    granted = await PermissionAutoAssigner(db, rules({"admin": ["users.*"]})).auto_assign(
        result.created
    )

    assert granted == {"admin": ["users.delete"]}
    assert await role_permission_slugs(db, "admin") == ["users.delete"]


@pytest.mark.asyncio
async def test_auto_assign_is_idempotent(seeded_db, add_permissions):
    await add_permissions(seeded_db, "users.read", "users.create", "users.delete")
    assigner = PermissionAutoAssigner(seeded_db, rules({"admin": ["*.read", "*.create"]}))
    new = ["users.read", "users.create", "users.delete"]

    first = await assigner.auto_assign(new)
    second = await assigner.auto_assign(new)

    assert first == {"admin": ["users.read", "users.create"]}
    assert second == {}
    assert await role_permission_slugs(seeded_db, "admin") == ["users.create", "users.read"]


@pytest.mark.asyncio
async def test_auto_assign_only_considers_new_permissions(seeded_db, add_permissions):
    await add_permissions(seeded_db, "users.read", "roles.read")

    await PermissionAutoAssigner(seeded_db, rules({"super-admin": ["*"]})).auto_assign(
        ["roles.read"]
    )

    assert await role_permission_slugs(seeded_db, "super-admin") == ["roles.read"]


@pytest.mark.asyncio
async def test_auto_assign_without_rules_is_noop(seeded_db, add_permissions):
    await add_permissions(seeded_db, "users.read")

    assert await PermissionAutoAssigner(seeded_db, ()).auto_assign(["users.read"]) == {}
    assert await role_permission_slugs(seeded_db, "super-admin") == []


@pytest.mark.asyncio
async def test_missing_role_is_skipped(seeded_db, add_permissions, caplog):
    await add_permissions(seeded_db, "users.read")

    granted = await PermissionAutoAssigner(
        seeded_db, rules({"ghost": ["*"], "user": ["users.read"]})
    ).auto_assign(["users.read"])

    assert granted == {"user": ["users.read"]}
    assert "role 'ghost' not found" in caplog.text


@pytest.mark.asyncio
async def test_failing_rule_does_not_stop_later_rules(seeded_db, add_permissions, monkeypatch):
    await add_permissions(seeded_db, "users.read")
    original = PermissionAutoAssigner._apply_rule

    async def flaky(self, rule, candidates):
        if rule.role_slug == "admin":
            raise RuntimeError("boom")
        return await original(self, rule, candidates)

    monkeypatch.setattr(PermissionAutoAssigner, "_apply_rule", flaky)

    granted = await PermissionAutoAssigner(
        seeded_db, rules({"admin": ["*"], "super-admin": ["*"]})
    ).auto_assign(["users.read"])

    assert granted == {"super-admin": ["users.read"]}
    assert await role_permission_slugs(seeded_db, "admin") == []


# ── Pipeline ─────────────────────────────────────────────────────────


async def find_all():
    return []


async def remove(user_id: int):
    return None


def users_router() -> APIRouter:
    router = APIRouter(prefix="/users")
    router.add_api_route("", find_all, dependencies=[Depends(require_access("users.read"))])
    router.add_api_route(
        "/{user_id}",
        remove,
        methods=["DELETE"],
        dependencies=[Depends(require_access("users.delete"))],
    )
    return router


@pytest.mark.asyncio
async def test_pipeline_runs_all_stages(seeded_db):
    service = PermissionSyncService(
        AccessControlConfig.from_rules({"super-admin": ["*"], "admin": ["*.read"]})
    )

    report = await service.run(seeded_db, [users_router()])

    assert report.created == ["users.read", "users.delete"]
    assert report.assigned == {
        "super-admin": ["users.read", "users.delete"],
        "admin": ["users.read"],
    }
    assert service.state is SyncState.IDLE
    assert report.to_response() == {
        "message": "Permissions synchronized successfully",
        "summary": {"totalFound": 2, "created": 2, "existing": 0},
        "details": {
            "found": ["users.read", "users.delete"],
            "created": ["users.read", "users.delete"],
            "existing": [],
        },
    }

    again = await service.run(seeded_db, [users_router()])
    assert again.created == []
    assert again.existing == ["users.read", "users.delete"]
    assert again.assigned == {}


@pytest.mark.asyncio
async def test_pipeline_reports_failing_stage(seeded_db, monkeypatch):
    async def broken(self, found):
        raise RuntimeError("database unreachable")

    monkeypatch.setattr(PermissionReconciler, "reconcile", broken)
    service = PermissionSyncService(AccessControlConfig())

    with pytest.raises(SyncError) as excinfo:
        await service.run(seeded_db, [users_router()])

    assert excinfo.value.stage == "reconciling"
    assert "database unreachable" in str(excinfo.value)
    assert service.state is SyncState.IDLE
    assert not service.is_running


@pytest.mark.asyncio
async def test_auto_assign_failure_keeps_created_permissions(seeded_db, monkeypatch):
    async def broken(self, new_slugs):
        raise RuntimeError("lost connection")

    monkeypatch.setattr(PermissionAutoAssigner, "auto_assign", broken)
    service = PermissionSyncService(AccessControlConfig.from_rules({"admin": ["*"]}))

    with pytest.raises(SyncError) as excinfo:
        await service.run(seeded_db, [users_router()])

    assert excinfo.value.stage == "auto_assigning"
    assert await permission_count(seeded_db) == 2


@pytest.mark.asyncio
async def test_pipeline_is_single_flight(seeded_db):
    service = PermissionSyncService(AccessControlConfig())

    async with service._lock:
        with pytest.raises(SyncInProgressError):
            await service.run(seeded_db, [users_router()])
