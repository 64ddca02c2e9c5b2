"""
Access-control controller — roles, permissions & permission sync.

Every route uses `Depends(require_access(...))` for enforcement.
Mutating role routes require BOTH an administrative role and the
matching permission.  Controllers are THIN — they delegate to services
and return schemas.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.rbac.dependencies import require_access
from app.rbac.errors import SyncError, SyncInProgressError
from app.rbac.sync import PermissionSyncService
from app.schemas import (
    AssignPermissionsRequest,
    CreateRoleRequest,
    PermissionOut,
    RoleOut,
    SyncResponse,
    UpdateRoleRequest,
)
from app.services import access_control_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/access-control", tags=["Access Control"])

ADMIN_ROLES = ("super-admin", "admin")


def get_sync_service(request: Request) -> PermissionSyncService:
    return request.app.state.permission_sync


# ── Permission sync ──────────────────────────────────────────────────
@router.post(
    "/permissions/sync",
    response_model=SyncResponse,
    dependencies=[Depends(require_access("permissions.sync", roles=ADMIN_ROLES))],
)
async def sync_permissions(
    request: Request,
    db: AsyncSession = Depends(get_db),
    sync_service: PermissionSyncService = Depends(get_sync_service),
):
    """Scan the controllers, create missing permissions and auto-assign them."""
    try:
        report = await sync_service.run(db, request.app.state.routers)
    except SyncInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except SyncError as exc:
        logger.error("Manual permission sync failed at %s: %s", exc.stage, exc.cause)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": "Permission sync failed",
                "stage": exc.stage,
                "error": str(exc.cause),
            },
        )
    return report.to_response()


# ── Permissions (read-only) ──────────────────────────────────────────
@router.get(
    "/permissions",
    response_model=list[PermissionOut],
    dependencies=[Depends(require_access("permissions.read"))],
)
async def list_permissions(db: AsyncSession = Depends(get_db)):
    permissions = await access_control_service.list_permissions(db)
    return [PermissionOut.model_validate(p) for p in permissions]


@router.get(
    "/permissions/{permission_id}",
    response_model=PermissionOut,
    dependencies=[Depends(require_access("permissions.read"))],
)
async def get_permission(permission_id: int, db: AsyncSession = Depends(get_db)):
    permission = await access_control_service.get_permission(permission_id, db)
    return PermissionOut.model_validate(permission)


# ── Roles ────────────────────────────────────────────────────────────
@router.post(
    "/roles",
    response_model=RoleOut,
    status_code=201,
    dependencies=[Depends(require_access("roles.create", roles=ADMIN_ROLES))],
)
async def create_role(body: CreateRoleRequest, db: AsyncSession = Depends(get_db)):
    role = await access_control_service.create_role(
        slug=body.slug,
        description=body.description,
        permission_ids=body.permission_ids,
        db=db,
    )
    return RoleOut.model_validate(role)


@router.get(
    "/roles",
    response_model=list[RoleOut],
    dependencies=[Depends(require_access("roles.read"))],
)
async def list_roles(
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    roles = await access_control_service.list_roles(db, skip, limit)
    return [RoleOut.model_validate(r) for r in roles]


@router.get(
    "/roles/{role_id}",
    response_model=RoleOut,
    dependencies=[Depends(require_access("roles.read"))],
)
async def get_role(role_id: int, db: AsyncSession = Depends(get_db)):
    role = await access_control_service.get_role(role_id, db)
    return RoleOut.model_validate(role)


@router.patch(
    "/roles/{role_id}",
    response_model=RoleOut,
    dependencies=[Depends(require_access("roles.update", roles=ADMIN_ROLES))],
)
async def update_role(
    role_id: int,
    body: UpdateRoleRequest,
    db: AsyncSession = Depends(get_db),
):
    role = await access_control_service.update_role(
        role_id,
        db,
        slug=body.slug,
        description=body.description,
        permission_ids=body.permission_ids,
    )
    return RoleOut.model_validate(role)


@router.delete(
    "/roles/{role_id}",
    status_code=204,
    dependencies=[Depends(require_access("roles.delete", roles=ADMIN_ROLES))],
)
async def delete_role(role_id: int, db: AsyncSession = Depends(get_db)):
    await access_control_service.delete_role(role_id, db)
    return Response(status_code=204)


# ── Role ↔ permission assignment ─────────────────────────────────────
@router.post(
    "/roles/{role_id}/permissions",
    response_model=RoleOut,
    dependencies=[Depends(require_access("roles.update", roles=ADMIN_ROLES))],
)
async def assign_permissions(
    role_id: int,
    body: AssignPermissionsRequest,
    db: AsyncSession = Depends(get_db),
):
    """Replace the role's permissions."""
    role = await access_control_service.assign_permissions(role_id, body.permission_ids, db)
    return RoleOut.model_validate(role)


@router.patch(
    "/roles/{role_id}/permissions/add",
    response_model=RoleOut,
    dependencies=[Depends(require_access("roles.update", roles=ADMIN_ROLES))],
)
async def add_permissions(
    role_id: int,
    body: AssignPermissionsRequest,
    db: AsyncSession = Depends(get_db),
):
    """Add permissions without touching the ones already assigned."""
    role = await access_control_service.add_permissions(role_id, body.permission_ids, db)
    return RoleOut.model_validate(role)


@router.patch(
    "/roles/{role_id}/permissions/remove",
    response_model=RoleOut,
    dependencies=[Depends(require_access("roles.update", roles=ADMIN_ROLES))],
)
async def remove_permissions(
    role_id: int,
    body: AssignPermissionsRequest,
    db: AsyncSession = Depends(get_db),
):
    role = await access_control_service.remove_permissions(role_id, body.permission_ids, db)
    return RoleOut.model_validate(role)
