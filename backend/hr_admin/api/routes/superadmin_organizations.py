"""
Super-admin API routes for organizations, subscription plans and modules.

SECURITY:
- Every route requires a super admin (require_super_admin)
- Each route additionally requires the platform permission named in its
  dependencies; a super admin without a platform role holds all of them
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from hr_admin.api.schemas.common import success_response
from hr_admin.api.schemas.organizations import (
    OrganizationCreate,
    OrganizationModulesUpdate,
    OrganizationUpdate,
    PlanCreate,
    PlanModulesUpdate,
    PlanUpdate,
)
from hr_admin.auth.middleware import get_current_user, require_super_admin
from hr_admin.constants.modules import PermissionAction, PlatformModuleCode
from hr_admin.database.session import get_db_session
from hr_admin.platform.rbac import check_any_permission, check_permission
from hr_admin.services.auth_service import serialize_user
from hr_admin.services.module_service import (
    ModuleService,
    ModuleToggle,
    serialize_org_module,
    serialize_platform_module,
)
from hr_admin.services.organization_service import OrganizationService
from hr_admin.services.plan_service import PlanService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/superadmin",
    tags=["superadmin"],
    dependencies=[Depends(require_super_admin)],
)

ORGS = PlatformModuleCode.ORGANIZATIONS
PLANS = PlatformModuleCode.SUBSCRIPTION_PLANS
MODULES = PlatformModuleCode.SYSTEM_MODULES


# --- Organizations ---


@router.get("/organizations", dependencies=[Depends(check_permission(ORGS, PermissionAction.READ))])
async def list_organizations(
    status: str = Query(None, description="Filter by status"),
    search: str = Query(None, description="Match name or slug"),
    db: Session = Depends(get_db_session),
):
    service = OrganizationService(db)
    organizations = [service.serialize(o) for o in service.list_organizations(status=status, search=search)]
    return success_response(organizations)


@router.get("/organizations/{org_id}", dependencies=[Depends(check_permission(ORGS, PermissionAction.READ))])
async def get_organization(org_id: str, db: Session = Depends(get_db_session)):
    service = OrganizationService(db)
    return success_response(service.serialize(service.get_organization(org_id)))


@router.post(
    "/organizations",
    status_code=201,
    dependencies=[Depends(check_permission(ORGS, PermissionAction.WRITE))],
)
async def create_organization(
    request: Request,
    body: OrganizationCreate,
    db: Session = Depends(get_db_session),
):
    user = get_current_user(request)
    service = OrganizationService(db)
    org, admin = service.create_organization(body.model_dump(), created_by=user.user_id)
    db.commit()
    return success_response(
        {"organization": service.serialize(org), "admin_user": serialize_user(admin)},
        "Organization created successfully",
    )


@router.put("/organizations/{org_id}", dependencies=[Depends(check_permission(ORGS, PermissionAction.UPDATE))])
async def update_organization(
    request: Request,
    org_id: str,
    body: OrganizationUpdate,
    db: Session = Depends(get_db_session),
):
    user = get_current_user(request)
    service = OrganizationService(db)
    org = service.update_organization(org_id, body.model_dump(exclude_unset=True), updated_by=user.user_id)
    db.commit()
    return success_response(service.serialize(org), "Organization updated successfully")


@router.delete("/organizations/{org_id}", dependencies=[Depends(check_permission(ORGS, PermissionAction.DELETE))])
async def delete_organization(org_id: str, db: Session = Depends(get_db_session)):
    OrganizationService(db).delete_organization(org_id)
    db.commit()
    return success_response(None, "Organization deleted successfully")


@router.get(
    "/organizations/{org_id}/modules",
    dependencies=[Depends(check_permission(ORGS, PermissionAction.READ))],
)
async def get_organization_modules(org_id: str, db: Session = Depends(get_db_session)):
    org, modules = ModuleService(db).get_organization_modules(org_id)
    return success_response({"organization_id": org.id, "modules": modules})


@router.put(
    "/organizations/{org_id}/modules",
    dependencies=[Depends(check_permission(ORGS, PermissionAction.UPDATE))],
)
async def update_organization_modules(
    org_id: str,
    body: OrganizationModulesUpdate,
    db: Session = Depends(get_db_session),
):
    toggles = [ModuleToggle(org_module_id=m.org_module_id, is_enabled=m.is_enabled) for m in body.modules]
    modules = ModuleService(db).update_organization_modules(org_id, toggles)
    db.commit()
    return success_response({"organization_id": org_id, "modules": modules}, "Organization modules updated")


# --- Subscription plans ---


@router.get("/subscription-plans", dependencies=[Depends(check_any_permission(PLANS))])
async def list_plans(
    include_inactive: bool = Query(True),
    db: Session = Depends(get_db_session),
):
    return success_response(PlanService(db).list_plans(include_inactive=include_inactive))


@router.get("/subscription-plans/{plan_id}", dependencies=[Depends(check_permission(PLANS, PermissionAction.READ))])
async def get_plan(plan_id: str, db: Session = Depends(get_db_session)):
    service = PlanService(db)
    return success_response(service.serialize(service.get_plan(plan_id)))


@router.post(
    "/subscription-plans",
    status_code=201,
    dependencies=[Depends(check_permission(PLANS, PermissionAction.WRITE))],
)
async def create_plan(body: PlanCreate, db: Session = Depends(get_db_session)):
    service = PlanService(db)
    plan = service.create_plan(body.model_dump())
    db.commit()
    return success_response(service.serialize(plan), "Subscription plan created successfully")


@router.put("/subscription-plans/{plan_id}", dependencies=[Depends(check_permission(PLANS, PermissionAction.UPDATE))])
async def update_plan(plan_id: str, body: PlanUpdate, db: Session = Depends(get_db_session)):
    service = PlanService(db)
    plan = service.update_plan(plan_id, body.model_dump(exclude_unset=True))
    db.commit()
    return success_response(service.serialize(plan), "Subscription plan updated successfully")


@router.delete(
    "/subscription-plans/{plan_id}",
    dependencies=[Depends(check_permission(PLANS, PermissionAction.DELETE))],
)
async def delete_plan(plan_id: str, db: Session = Depends(get_db_session)):
    PlanService(db).delete_plan(plan_id)
    db.commit()
    return success_response(None, "Subscription plan deleted successfully")


@router.get(
    "/subscription-plans/{plan_id}/modules",
    dependencies=[Depends(check_permission(PLANS, PermissionAction.READ))],
)
async def get_plan_modules(plan_id: str, db: Session = Depends(get_db_session)):
    plan, modules = ModuleService(db).get_plan_modules(plan_id)
    return success_response({"plan_id": plan.id, "plan_name": plan.name, "modules": modules})


@router.put(
    "/subscription-plans/{plan_id}/modules",
    dependencies=[Depends(check_permission(PLANS, PermissionAction.UPDATE))],
)
async def update_plan_modules(plan_id: str, body: PlanModulesUpdate, db: Session = Depends(get_db_session)):
    modules = ModuleService(db).update_plan_modules(plan_id, body.module_ids)
    synced = OrganizationService(db).resync_plan_organizations(plan_id)
    db.commit()
    logger.info("Plan modules saved", extra={"plan_id": plan_id, "organizations_synced": synced})
    return success_response(
        {"plan_id": plan_id, "modules": [serialize_org_module(m) for m in modules]},
        "Plan modules updated successfully",
    )


# --- Module catalogs ---


@router.get("/platform-modules", dependencies=[Depends(check_any_permission(MODULES))])
async def list_platform_modules(db: Session = Depends(get_db_session)):
    modules = ModuleService(db).list_platform_modules()
    return success_response([serialize_platform_module(m) for m in modules])


@router.get("/org-modules", dependencies=[Depends(check_any_permission(MODULES))])
async def list_org_modules(db: Session = Depends(get_db_session)):
    modules = ModuleService(db).list_org_modules()
    return success_response([serialize_org_module(m) for m in modules])
