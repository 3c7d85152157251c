"""
Super-admin API routes for platform roles, permission matrices and
platform-wide master data.

The permission endpoints accept any role id: the platform panel manages
platform roles and can inspect or repair organization roles. The
organization's org_admin role stays immutable here too.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from hr_admin.api.schemas.common import success_response
from hr_admin.api.schemas.records import MasterDataCreate, MasterDataUpdate
from hr_admin.api.schemas.roles import (
    ModulePermissionUpdate,
    PermissionsReplace,
    RoleCreate,
    RoleUpdate,
)
from hr_admin.auth.middleware import get_current_user, require_super_admin
from hr_admin.constants.messages import RoleMessages
from hr_admin.constants.modules import PermissionAction, PlatformModuleCode
from hr_admin.database.session import get_db_session
from hr_admin.models.role import Role
from hr_admin.platform.errors import NotFoundError
from hr_admin.platform.policy import can_view_audit_info
from hr_admin.platform.rbac import check_any_permission, check_permission, resolve_caller_grant
from hr_admin.services.master_data_service import MasterDataService, parse_resource
from hr_admin.services.permission_service import PermissionService
from hr_admin.services.role_service import RoleService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/superadmin",
    tags=["superadmin"],
    dependencies=[Depends(require_super_admin)],
)

ROLES = PlatformModuleCode.PLATFORM_ROLES
MASTER_DATA = PlatformModuleCode.MASTER_DATA


def _get_any_role(db: Session, role_id: str) -> Role:
    role = db.query(Role).filter(Role.id == role_id).first()
    if role is None:
        raise NotFoundError(RoleMessages.NOT_FOUND, code="role_not_found")
    return role


# --- Platform roles ---


@router.get("/platform-roles", dependencies=[Depends(check_any_permission(ROLES))])
async def list_platform_roles(db: Session = Depends(get_db_session)):
    """Active platform roles, for assignment dropdowns."""
    return success_response(RoleService(db).list_roles(include_inactive=False))


@router.get("/roles", dependencies=[Depends(check_permission(ROLES, PermissionAction.READ))])
async def list_roles(db: Session = Depends(get_db_session)):
    return success_response(RoleService(db).list_roles())


@router.get("/roles/{role_id}", dependencies=[Depends(check_permission(ROLES, PermissionAction.READ))])
async def get_role(role_id: str, db: Session = Depends(get_db_session)):
    service = RoleService(db)
    role = service.get_role(role_id)
    data = service.serialize(role)
    data["permissions"] = PermissionService(db).get_role_permissions(role)
    return success_response(data)


@router.post("/roles", status_code=201, dependencies=[Depends(check_permission(ROLES, PermissionAction.WRITE))])
async def create_role(request: Request, body: RoleCreate, db: Session = Depends(get_db_session)):
    user = get_current_user(request)
    service = RoleService(db)
    role = service.create_role(body.name, body.code, body.description, created_by=user.user_id)
    db.commit()
    return success_response(service.serialize(role, 0), "Role created successfully")


@router.put("/roles/{role_id}", dependencies=[Depends(check_permission(ROLES, PermissionAction.UPDATE))])
async def update_role(role_id: str, body: RoleUpdate, db: Session = Depends(get_db_session)):
    service = RoleService(db)
    role = service.update_role(role_id, **body.model_dump(exclude_unset=True))
    db.commit()
    return success_response(service.serialize(role), "Role updated successfully")


@router.delete("/roles/{role_id}", dependencies=[Depends(check_permission(ROLES, PermissionAction.DELETE))])
async def delete_role(role_id: str, db: Session = Depends(get_db_session)):
    RoleService(db).delete_role(role_id)
    db.commit()
    return success_response(None, "Role deleted successfully")


# --- Permission matrices ---


@router.get("/permissions/{role_id}", dependencies=[Depends(check_permission(ROLES, PermissionAction.READ))])
async def get_role_permissions(role_id: str, db: Session = Depends(get_db_session)):
    role = _get_any_role(db, role_id)
    return success_response({"role_id": role.id, "permissions": PermissionService(db).get_role_permissions(role)})


@router.put("/permissions/{role_id}", dependencies=[Depends(check_permission(ROLES, PermissionAction.UPDATE))])
async def replace_role_permissions(role_id: str, body: PermissionsReplace, db: Session = Depends(get_db_session)):
    role = _get_any_role(db, role_id)
    permissions = PermissionService(db).replace_role_permissions(
        role, [entry.model_dump() for entry in body.permissions]
    )
    db.commit()
    return success_response({"role_id": role.id, "permissions": permissions}, "Permissions updated successfully")


@router.patch(
    "/permissions/{role_id}/{module_code}",
    dependencies=[Depends(check_permission(ROLES, PermissionAction.UPDATE))],
)
async def update_module_permission(
    role_id: str,
    module_code: str,
    body: ModulePermissionUpdate,
    db: Session = Depends(get_db_session),
):
    role = _get_any_role(db, role_id)
    permission = PermissionService(db).update_module_permission(role, module_code, body.model_dump())
    db.commit()
    return success_response(permission, "Permission updated successfully")


# --- Platform master data ---


@router.get(
    "/master-data/{resource}",
    dependencies=[Depends(check_permission(MASTER_DATA, PermissionAction.READ))],
)
async def list_platform_master_data(
    request: Request,
    resource: str,
    active_only: bool = Query(False),
    search: str = Query(None),
    db: Session = Depends(get_db_session),
):
    service = MasterDataService(db, parse_resource(resource, None))
    audit = can_view_audit_info(resolve_caller_grant(db, get_current_user(request), MASTER_DATA.value))
    records = service.list_records(active_only=active_only, search=search)
    return success_response([service.serialize(r, include_audit=audit) for r in records])


@router.post(
    "/master-data/{resource}",
    status_code=201,
    dependencies=[Depends(check_permission(MASTER_DATA, PermissionAction.WRITE))],
)
async def create_platform_master_data(
    request: Request,
    resource: str,
    body: MasterDataCreate,
    db: Session = Depends(get_db_session),
):
    service = MasterDataService(db, parse_resource(resource, None))
    record = service.create_record(body.model_dump(), user_id=get_current_user(request).user_id)
    db.commit()
    return success_response(service.serialize(record), "Record created successfully")


@router.get(
    "/master-data/{resource}/{record_id}",
    dependencies=[Depends(check_permission(MASTER_DATA, PermissionAction.READ))],
)
async def get_platform_master_data(
    request: Request,
    resource: str,
    record_id: str,
    db: Session = Depends(get_db_session),
):
    service = MasterDataService(db, parse_resource(resource, None))
    audit = can_view_audit_info(resolve_caller_grant(db, get_current_user(request), MASTER_DATA.value))
    return success_response(service.serialize(service.get_record(record_id), include_audit=audit))


@router.put(
    "/master-data/{resource}/{record_id}",
    dependencies=[Depends(check_permission(MASTER_DATA, PermissionAction.UPDATE))],
)
async def update_platform_master_data(
    request: Request,
    resource: str,
    record_id: str,
    body: MasterDataUpdate,
    db: Session = Depends(get_db_session),
):
    service = MasterDataService(db, parse_resource(resource, None))
    record = service.update_record(
        record_id, body.model_dump(exclude_unset=True), user_id=get_current_user(request).user_id
    )
    db.commit()
    return success_response(service.serialize(record), "Record updated successfully")


@router.delete(
    "/master-data/{resource}/{record_id}",
    dependencies=[Depends(check_permission(MASTER_DATA, PermissionAction.DELETE))],
)
async def delete_platform_master_data(resource: str, record_id: str, db: Session = Depends(get_db_session)):
    MasterDataService(db, parse_resource(resource, None)).delete_record(record_id)
    db.commit()
    return success_response(None, "Record deleted successfully")
