"""
Client-side permission mirror.

Evaluates the same policy as the server (hr_admin.platform.policy) against
the profile returned by GET /api/v1/auth/me, so a UI can hide or disable
controls the server would reject. This is UX only; the server re-checks
every request.
"""

from typing import Any, Mapping, Optional

from hr_admin.constants.modules import PermissionAction, is_core_module, parse_org_module_code
from hr_admin.platform.errors import NotFoundError
from hr_admin.platform.policy import (
    ModuleState,
    PermissionGrant,
    can_view_audit_info,
    evaluate_org_access,
)


class ProfilePermissionFacts:
    """PermissionFacts read from a /auth/me profile payload."""

    def __init__(self, profile: Mapping[str, Any]):
        self._enabled = set(profile.get("enabled_modules") or [])
        self._grants = {}
        for entry in profile.get("permissions") or []:
            code = entry.get("module_code")
            if code:
                self._grants[code] = PermissionGrant.from_flags(entry)

    def module_state(self, module_code: str) -> ModuleState:
        try:
            module = parse_org_module_code(module_code)
        except NotFoundError:
            return ModuleState.UNKNOWN
        if is_core_module(module) or module.value in self._enabled:
            return ModuleState.ENABLED
        return ModuleState.DISABLED

    def grant(self, role_id: str, module_code: str) -> Optional[PermissionGrant]:
        return self._grants.get(module_code)


class PermissionMirror:
    """
    Permission checks for one loaded profile.

    Args:
        profile: the data of GET /api/v1/auth/me
        impersonated_organization_id: set while a super admin works in
            support mode; their profile has no organization of its own
    """

    def __init__(self, profile: Mapping[str, Any], impersonated_organization_id: Optional[str] = None):
        self.profile = profile
        user = profile.get("user") or {}
        self._user_id = user.get("id")
        self._role_id = user.get("role_id")
        self._is_super_admin = user.get("is_super_admin") is True
        self._is_impersonating = self._is_super_admin and bool(impersonated_organization_id)
        self._organization_id = (
            impersonated_organization_id if self._is_impersonating else user.get("organization_id")
        )
        self._facts = ProfilePermissionFacts(profile)

    @property
    def is_impersonating(self) -> bool:
        return self._is_impersonating

    def _allowed(self, module_code: str, action: Optional[PermissionAction]) -> bool:
        decision = evaluate_org_access(
            is_authenticated=self._user_id is not None,
            organization_id=self._organization_id,
            is_super_admin=self._is_super_admin,
            is_impersonating=self._is_impersonating,
            role_id=self._role_id,
            module_code=module_code,
            action=action,
            facts=self._facts,
        )
        return decision.allowed

    def can(self, module_code: str, action) -> bool:
        return self._allowed(module_code, PermissionAction(action))

    def can_any(self, module_code: str) -> bool:
        return self._allowed(module_code, None)

    def can_read(self, module_code: str) -> bool:
        return self.can(module_code, PermissionAction.READ)

    def can_write(self, module_code: str) -> bool:
        return self.can(module_code, PermissionAction.WRITE)

    def can_update(self, module_code: str) -> bool:
        return self.can(module_code, PermissionAction.UPDATE)

    def can_delete(self, module_code: str) -> bool:
        return self.can(module_code, PermissionAction.DELETE)

    def can_approve(self, module_code: str) -> bool:
        return self.can(module_code, PermissionAction.APPROVE)

    def can_export(self, module_code: str) -> bool:
        return self.can(module_code, PermissionAction.EXPORT)

    def can_view_audit_info(self, module_code: str) -> bool:
        if self._is_super_admin and self._role_id is None:
            return True
        return can_view_audit_info(self._facts.grant(self._role_id, module_code))

    def is_module_enabled(self, module_code: str) -> bool:
        return self._facts.module_state(module_code) is ModuleState.ENABLED
