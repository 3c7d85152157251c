"""
Role-Based Access Control (RBAC) enforcement for the HR Admin API.

CRITICAL SECURITY REQUIREMENTS:
- RBAC MUST be enforced server-side for every protected endpoint
- UI permission gating is NOT security; treat it as UX only
- Every decision is re-evaluated against the database per request; the
  profile cache is never consulted here
- Errors during the lookup are logged and answered with a generic 500

Usage:
    from hr_admin.platform.rbac import check_org_permission, check_any_org_permission

    @router.get("/roles", dependencies=[Depends(check_any_org_permission(OrgModuleCode.ROLES))])
    async def list_roles(request: Request):
        ...

    @router.post(
        "/roles",
        dependencies=[Depends(check_org_permission(OrgModuleCode.ROLES, PermissionAction.WRITE))],
    )
    async def create_role(request: Request):
        ...
"""

import logging
from typing import Callable, Optional, Union

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from hr_admin.auth.jwt import AuthenticatedUser
from hr_admin.auth.middleware import authenticate, refresh_identity
from hr_admin.constants.messages import PermissionMessages
from hr_admin.constants.modules import OrgModuleCode, PermissionAction, PlatformModuleCode
from hr_admin.database.session import get_db_session
from hr_admin.models.role import Role, RolePermission
from hr_admin.platform.errors import AppError, InternalError
from hr_admin.platform.policy import (
    AccessDecision,
    ModuleState,
    PermissionGrant,
    evaluate_module_state,
    evaluate_org_access,
    evaluate_platform_access,
)
from hr_admin.platform.tenant_context import TenantContext, resolve_tenant_context
from hr_admin.services.module_service import ModuleService

logger = logging.getLogger(__name__)


class DatabasePermissionFacts:
    """PermissionFacts backed by the request's database session."""

    def __init__(self, db: Session, organization_id: Optional[str] = None):
        self.db = db
        self.organization_id = organization_id

    def module_state(self, module_code: str) -> ModuleState:
        return ModuleService(self.db).module_state(self.organization_id, module_code)

    def grant(self, role_id: str, module_code: str) -> Optional[PermissionGrant]:
        row = (
            self.db.query(RolePermission)
            .join(Role, Role.id == RolePermission.role_id)
            .filter(
                RolePermission.role_id == role_id,
                RolePermission.module_code == module_code,
                Role.is_active.is_(True),
            )
            .first()
        )
        if row is None:
            return None
        return PermissionGrant.from_flags(row.flags())


def _log_decision(
    request: Request,
    decision: AccessDecision,
    user: Optional[AuthenticatedUser],
    module_code: str,
    action: Optional[PermissionAction],
    organization_id: Optional[str] = None,
    is_impersonating: bool = False,
) -> None:
    extra = {
        "user_id": user.user_id if user else None,
        "org_id": organization_id,
        "module": module_code,
        "action": action.value if action else "any",
        "impersonating": is_impersonating,
        "path": request.url.path,
        "method": request.method,
    }
    if decision.allowed:
        logger.debug("Permission check passed", extra=extra)
    else:
        logger.warning("Permission denied", extra={**extra, "reason": decision.reason.value})


def _run_check(evaluate: Callable[[], AccessDecision]) -> AccessDecision:
    """Evaluate a decision, turning unexpected lookup failures into a 500."""
    try:
        return evaluate()
    except AppError:
        raise
    except Exception as e:
        logger.error(
            "Permission check failed",
            extra={"error": str(e), "error_type": type(e).__name__},
            exc_info=True,
        )
        raise InternalError(PermissionMessages.CHECK_FAILED, code="permission_check_failed")


def _org_dependency(module: OrgModuleCode, action: Optional[PermissionAction]) -> Callable:
    module_code = OrgModuleCode(module).value

    async def dependency(
        request: Request,
        tenant: TenantContext = Depends(resolve_tenant_context),
        db: Session = Depends(get_db_session),
    ) -> TenantContext:
        user = tenant.user
        facts = DatabasePermissionFacts(db, tenant.organization_id)
        decision = _run_check(
            lambda: evaluate_org_access(
                is_authenticated=True,
                organization_id=tenant.organization_id,
                is_super_admin=user.is_super_admin,
                is_impersonating=tenant.is_impersonating,
                role_id=user.role_id,
                module_code=module_code,
                action=action,
                facts=facts,
            )
        )
        _log_decision(
            request,
            decision,
            user,
            module_code,
            action,
            organization_id=tenant.organization_id,
            is_impersonating=tenant.is_impersonating,
        )
        decision.raise_if_denied()
        return tenant

    return dependency


def check_org_permission(module: OrgModuleCode, action: PermissionAction) -> Callable:
    """
    Dependency factory requiring `action` on an org module.

    Resolves the tenant context first, so inactive organizations are
    rejected before any permission lookup.
    """
    return _org_dependency(module, PermissionAction(action))


def check_any_org_permission(module: OrgModuleCode) -> Callable:
    """Dependency factory requiring any of the six actions on an org module."""
    return _org_dependency(module, None)


def check_module_enabled(module: OrgModuleCode) -> Callable:
    """
    Dependency factory requiring an org module to be enabled.

    Applies to every caller in the organization, including support mode.
    """
    module_code = OrgModuleCode(module).value

    async def dependency(
        request: Request,
        tenant: TenantContext = Depends(resolve_tenant_context),
        db: Session = Depends(get_db_session),
    ) -> TenantContext:
        facts = DatabasePermissionFacts(db, tenant.organization_id)
        decision = _run_check(
            lambda: evaluate_module_state(facts.module_state(module_code), module_code)
        )
        _log_decision(request, decision, tenant.user, module_code, None, tenant.organization_id)
        decision.raise_if_denied()
        return tenant

    return dependency


def _platform_dependency(module: PlatformModuleCode, action: Optional[PermissionAction]) -> Callable:
    module_code = PlatformModuleCode(module).value

    async def dependency(
        request: Request,
        db: Session = Depends(get_db_session),
    ) -> AuthenticatedUser:
        user = refresh_identity(db, await authenticate(request))
        request.state.user = user
        facts = DatabasePermissionFacts(db)
        decision = _run_check(
            lambda: evaluate_platform_access(
                is_authenticated=True,
                is_super_admin=user.is_super_admin,
                role_id=user.role_id,
                module_code=module_code,
                action=action,
                facts=facts,
            )
        )
        _log_decision(request, decision, user, module_code, action)
        decision.raise_if_denied()
        return user

    return dependency


def check_permission(module: Union[PlatformModuleCode, str], action: PermissionAction) -> Callable:
    """Dependency factory requiring `action` on a platform module."""
    return _platform_dependency(PlatformModuleCode(module), PermissionAction(action))


def check_any_permission(module: Union[PlatformModuleCode, str]) -> Callable:
    """Dependency factory requiring any action on a platform module."""
    return _platform_dependency(PlatformModuleCode(module), None)


def resolve_caller_grant(db: Session, user: AuthenticatedUser, module_code: str) -> Optional[PermissionGrant]:
    """
    The caller's own grant on a module, for shaping responses.

    A super admin without a role holds every action. This never replaces
    the permission dependencies above.
    """
    if user.role_id is None:
        return PermissionGrant.full() if user.is_super_admin else None
    return DatabasePermissionFacts(db).grant(user.role_id, module_code)
