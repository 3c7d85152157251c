"""
Organization portal routes for access management: enabled modules, roles,
permission matrices, portal users and the organization profile.

Every route resolves the tenant context (authentication, organization
status, membership or support mode) before its permission dependency runs.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from hr_admin.api.schemas.common import success_response
from hr_admin.api.schemas.organizations import OrganizationProfileUpdate
from hr_admin.api.schemas.records import UserCreate, UserUpdate
from hr_admin.api.schemas.roles import (
    ModulePermissionUpdate,
    PermissionsReplace,
    RoleCreate,
    RoleUpdate,
)
from hr_admin.constants.modules import OrgModuleCode, PermissionAction
from hr_admin.database.session import get_db_session
from hr_admin.platform.rbac import check_any_org_permission, check_org_permission
from hr_admin.platform.tenant_context import get_tenant_context, resolve_tenant_context
from hr_admin.services.auth_service import serialize_user
from hr_admin.services.module_service import ModuleService, serialize_org_module
from hr_admin.services.organization_service import OrganizationService
from hr_admin.services.permission_service import PermissionService
from hr_admin.services.role_service import RoleService
from hr_admin.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/{org_slug}",
    tags=["organization"],
    dependencies=[Depends(resolve_tenant_context)],
)

ROLES = OrgModuleCode.ROLES
USERS = OrgModuleCode.USERS
SETTINGS = OrgModuleCode.SETTINGS


@router.get("/modules")
async def list_enabled_modules(request: Request, db: Session = Depends(get_db_session)):
    """Modules enabled for the organization; open to every member."""
    tenant = get_tenant_context(request)
    modules = ModuleService(db).list_enabled_modules(tenant.organization_id)
    return success_response([serialize_org_module(m) for m in modules])


# --- Roles ---


@router.get("/roles", dependencies=[Depends(check_any_org_permission(ROLES))])
async def list_roles(
    request: Request,
    include_inactive: bool = Query(True),
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    return success_response(RoleService(db, tenant.organization_id).list_roles(include_inactive=include_inactive))


@router.get("/roles/{role_id}", dependencies=[Depends(check_org_permission(ROLES, PermissionAction.READ))])
async def get_role(request: Request, role_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = RoleService(db, tenant.organization_id)
    role = service.get_role(role_id)
    data = service.serialize(role)
    data["permissions"] = PermissionService(db).get_role_permissions(role)
    return success_response(data)


@router.post(
    "/roles",
    status_code=201,
    dependencies=[Depends(check_org_permission(ROLES, PermissionAction.WRITE))],
)
async def create_role(request: Request, body: RoleCreate, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = RoleService(db, tenant.organization_id)
    role = service.create_role(body.name, body.code, body.description, created_by=tenant.user_id)
    db.commit()
    return success_response(service.serialize(role, 0), "Role created successfully")


@router.put("/roles/{role_id}", dependencies=[Depends(check_org_permission(ROLES, PermissionAction.UPDATE))])
async def update_role(request: Request, role_id: str, body: RoleUpdate, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = RoleService(db, tenant.organization_id)
    role = service.update_role(role_id, **body.model_dump(exclude_unset=True))
    db.commit()
    return success_response(service.serialize(role), "Role updated successfully")


@router.delete("/roles/{role_id}", dependencies=[Depends(check_org_permission(ROLES, PermissionAction.DELETE))])
async def delete_role(request: Request, role_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    RoleService(db, tenant.organization_id).delete_role(role_id)
    db.commit()
    return success_response(None, "Role deleted successfully")


# --- Permission matrices ---


@router.get("/permissions/{role_id}", dependencies=[Depends(check_org_permission(ROLES, PermissionAction.READ))])
async def get_role_permissions(request: Request, role_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    role = RoleService(db, tenant.organization_id).get_role(role_id)
    return success_response({"role_id": role.id, "permissions": PermissionService(db).get_role_permissions(role)})


@router.put("/permissions/{role_id}", dependencies=[Depends(check_org_permission(ROLES, PermissionAction.UPDATE))])
async def replace_role_permissions(
    request: Request,
    role_id: str,
    body: PermissionsReplace,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    role = RoleService(db, tenant.organization_id).get_role(role_id)
    permissions = PermissionService(db).replace_role_permissions(
        role, [entry.model_dump() for entry in body.permissions]
    )
    db.commit()
    return success_response({"role_id": role.id, "permissions": permissions}, "Permissions updated successfully")


@router.patch(
    "/permissions/{role_id}/{module_code}",
    dependencies=[Depends(check_org_permission(ROLES, PermissionAction.UPDATE))],
)
async def update_module_permission(
    request: Request,
    role_id: str,
    module_code: str,
    body: ModulePermissionUpdate,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    role = RoleService(db, tenant.organization_id).get_role(role_id)
    permission = PermissionService(db).update_module_permission(role, module_code, body.model_dump())
    db.commit()
    return success_response(permission, "Permission updated successfully")


# --- Users ---


@router.get("/users", dependencies=[Depends(check_any_org_permission(USERS))])
async def list_users(
    request: Request,
    role_id: str = Query(None),
    active_only: bool = Query(False),
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    users = UserService(db, tenant.organization_id).list_users(role_id=role_id, active_only=active_only)
    return success_response([serialize_user(u) for u in users])


@router.get("/users/{user_id}", dependencies=[Depends(check_org_permission(USERS, PermissionAction.READ))])
async def get_user(request: Request, user_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    return success_response(serialize_user(UserService(db, tenant.organization_id).get_user(user_id)))


@router.post(
    "/users",
    status_code=201,
    dependencies=[Depends(check_org_permission(USERS, PermissionAction.WRITE))],
)
async def create_user(request: Request, body: UserCreate, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    user = UserService(db, tenant.organization_id).create_user(body.model_dump(), created_by=tenant.user_id)
    db.commit()
    return success_response(serialize_user(user), "User created successfully")


@router.put("/users/{user_id}", dependencies=[Depends(check_org_permission(USERS, PermissionAction.UPDATE))])
async def update_user(request: Request, user_id: str, body: UserUpdate, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    user = UserService(db, tenant.organization_id).update_user(
        user_id, body.model_dump(exclude_unset=True), acting_user_id=tenant.user_id
    )
    db.commit()
    return success_response(serialize_user(user), "User updated successfully")


@router.delete("/users/{user_id}", dependencies=[Depends(check_org_permission(USERS, PermissionAction.DELETE))])
async def delete_user(request: Request, user_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    UserService(db, tenant.organization_id).delete_user(user_id, acting_user_id=tenant.user_id)
    db.commit()
    return success_response(None, "User deleted successfully")


# --- Organization profile ---


@router.get(
    "/organization/profile",
    dependencies=[Depends(check_org_permission(SETTINGS, PermissionAction.READ))],
)
async def get_organization_profile(request: Request, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = OrganizationService(db)
    return success_response(service.serialize(service.get_organization(tenant.organization_id)))


@router.put(
    "/organization/profile",
    dependencies=[Depends(check_org_permission(SETTINGS, PermissionAction.UPDATE))],
)
async def update_organization_profile(
    request: Request,
    body: OrganizationProfileUpdate,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = OrganizationService(db)
    org = service.update_profile(
        tenant.organization_id, body.model_dump(exclude_unset=True), updated_by=tenant.user_id
    )
    db.commit()
    return success_response(service.serialize(org), "Organization profile updated successfully")
