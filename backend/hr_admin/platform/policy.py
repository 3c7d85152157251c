"""
Pure permission policy.

The decision logic lives here, free of FastAPI and SQLAlchemy, so that
the server-side dependencies (platform/rbac.py) and the client-side
mirror (client/permissions.py) evaluate exactly the same priority order.
Facts (module enablement, role grants) are supplied through the
PermissionFacts protocol and loaded lazily, in policy order.

Organization route policy, in priority order:
1. Super admin not impersonating -> denied (platform and org routes are
   mutually exclusive).
2. Super admin impersonating -> delete/export denied unconditionally;
   otherwise the super admin's own platform role grant for the module
   decides; no role at all means full access (bootstrap account).
3. Regular user without a role -> denied.
4. Regular user with a role -> module must exist and be enabled for the
   organization, then the role's grant must allow the action.

Only the server decision is a security boundary; the client mirror is
for hiding and disabling controls.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Protocol

from hr_admin.constants.messages import AuthMessages, OrgMessages, PermissionMessages
from hr_admin.constants.modules import (
    ALL_ACTIONS,
    IMPERSONATION_RESTRICTED_ACTIONS,
    PermissionAction,
)
from hr_admin.platform.errors import (
    AppError,
    AuthenticationError,
    FeatureDisabledError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


def _strict(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    return False


@dataclass(frozen=True)
class PermissionGrant:
    """Normalized six-flag grant of one role on one module."""

    read: bool = False
    write: bool = False
    update: bool = False
    delete: bool = False
    approve: bool = False
    export: bool = False

    @classmethod
    def from_flags(cls, flags: Mapping[str, Any]) -> "PermissionGrant":
        """
        Build from {action: value} or {can_action: value} / {canAction: value}.

        Anything other than True or 1 is treated as not granted.
        """
        values = {}
        for action in ALL_ACTIONS:
            camel = "can" + action.value.capitalize()
            raw = flags.get(action.value, flags.get(action.column, flags.get(camel, False)))
            values[action.value] = _strict(raw)
        return cls(**values)

    @classmethod
    def full(cls) -> "PermissionGrant":
        return cls(**{action.value: True for action in ALL_ACTIONS})

    def allows(self, action: PermissionAction) -> bool:
        return getattr(self, action.value)

    def allows_any(self, actions: Iterable[PermissionAction] = ALL_ACTIONS) -> bool:
        return any(self.allows(action) for action in actions)

    def as_dict(self) -> dict[str, bool]:
        return {action.value: self.allows(action) for action in ALL_ACTIONS}


class ModuleState(str, Enum):
    UNKNOWN = "unknown"
    DISABLED = "disabled"
    ENABLED = "enabled"


class DenialReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    ORG_CONTEXT_REQUIRED = "org_context_required"
    SUPER_ADMIN_NOT_IMPERSONATING = "super_admin_not_impersonating"
    SUPER_ADMIN_REQUIRED = "super_admin_required"
    SUPPORT_MODE_RESTRICTED = "support_mode_restricted"
    NO_ROLE = "no_role"
    MODULE_NOT_FOUND = "module_not_found"
    MODULE_DISABLED = "module_disabled"
    PERMISSION_MISSING = "permission_missing"


_REASON_ERRORS: dict[DenialReason, type[AppError]] = {
    DenialReason.UNAUTHENTICATED: AuthenticationError,
    DenialReason.ORG_CONTEXT_REQUIRED: ValidationError,
    DenialReason.MODULE_NOT_FOUND: NotFoundError,
    DenialReason.MODULE_DISABLED: FeatureDisabledError,
}


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of a permission evaluation."""

    allowed: bool
    reason: Optional[DenialReason] = None
    message: str = ""

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason, message: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason, message=message)

    def to_error(self) -> AppError:
        error_class = _REASON_ERRORS.get(self.reason, PermissionDeniedError)
        return error_class(self.message, code=self.reason.value)

    def raise_if_denied(self) -> None:
        if not self.allowed:
            raise self.to_error()


class PermissionFacts(Protocol):
    """Lazy source of the facts a decision needs."""

    def module_state(self, module_code: str) -> ModuleState:
        ...

    def grant(self, role_id: str, module_code: str) -> Optional[PermissionGrant]:
        ...


def evaluate_module_state(state: ModuleState, module_code: str) -> AccessDecision:
    """Map a module's enablement state to a decision."""
    if state is ModuleState.UNKNOWN:
        return AccessDecision.deny(
            DenialReason.MODULE_NOT_FOUND,
            PermissionMessages.module_not_found(module_code),
        )
    if state is ModuleState.DISABLED:
        return AccessDecision.deny(
            DenialReason.MODULE_DISABLED,
            PermissionMessages.module_disabled(module_code),
        )
    return AccessDecision.allow()


def evaluate_org_access(
    *,
    is_authenticated: bool,
    organization_id: Optional[str],
    is_super_admin: bool,
    is_impersonating: bool,
    role_id: Optional[str],
    module_code: str,
    action: Optional[PermissionAction],
    facts: PermissionFacts,
) -> AccessDecision:
    """
    Decide whether the caller may perform `action` on an org module.

    Args:
        action: the required action, or None for "any of the six"
        facts: lookup of module enablement and role grants

    Returns:
        AccessDecision; never raises for a denial
    """
    if not is_authenticated:
        return AccessDecision.deny(DenialReason.UNAUTHENTICATED, AuthMessages.UNAUTHORIZED)

    if not organization_id:
        return AccessDecision.deny(DenialReason.ORG_CONTEXT_REQUIRED, OrgMessages.CONTEXT_REQUIRED)

    denied_message = PermissionMessages.DENIED if action else PermissionMessages.DENIED_ANY

    if is_super_admin:
        if not is_impersonating:
            return AccessDecision.deny(
                DenialReason.SUPER_ADMIN_NOT_IMPERSONATING,
                PermissionMessages.SUPER_ADMIN_ORG_ROUTE,
            )

        if action in IMPERSONATION_RESTRICTED_ACTIONS:
            return AccessDecision.deny(
                DenialReason.SUPPORT_MODE_RESTRICTED,
                PermissionMessages.SUPPORT_MODE_RESTRICTED,
            )

        if role_id is None:
            # Bootstrap super admin without a platform role
            return AccessDecision.allow()

        grant = facts.grant(role_id, module_code)
        if grant is None:
            return AccessDecision.deny(DenialReason.PERMISSION_MISSING, denied_message)
        if action is not None:
            allowed = grant.allows(action)
        else:
            allowed = grant.allows_any(
                a for a in ALL_ACTIONS if a not in IMPERSONATION_RESTRICTED_ACTIONS
            )
        if not allowed:
            return AccessDecision.deny(DenialReason.PERMISSION_MISSING, denied_message)
        return AccessDecision.allow()

    if role_id is None:
        return AccessDecision.deny(DenialReason.NO_ROLE, PermissionMessages.NO_ROLE)

    # Module state is checked before the grant so a disabled module never
    # reveals the shape of the role's permissions.
    module_decision = evaluate_module_state(facts.module_state(module_code), module_code)
    if not module_decision.allowed:
        return module_decision

    grant = facts.grant(role_id, module_code)
    if grant is None:
        return AccessDecision.deny(DenialReason.PERMISSION_MISSING, denied_message)
    allowed = grant.allows(action) if action is not None else grant.allows_any()
    if not allowed:
        return AccessDecision.deny(DenialReason.PERMISSION_MISSING, denied_message)
    return AccessDecision.allow()


def evaluate_platform_access(
    *,
    is_authenticated: bool,
    is_super_admin: bool,
    role_id: Optional[str],
    module_code: str,
    action: Optional[PermissionAction],
    facts: PermissionFacts,
) -> AccessDecision:
    """
    Decide whether the caller may perform `action` on a platform module.

    Only super admins reach platform modules. One without a role has full
    platform access; otherwise the platform role's grant decides.
    """
    if not is_authenticated:
        return AccessDecision.deny(DenialReason.UNAUTHENTICATED, AuthMessages.UNAUTHORIZED)

    if not is_super_admin:
        return AccessDecision.deny(DenialReason.SUPER_ADMIN_REQUIRED, AuthMessages.SUPER_ADMIN_REQUIRED)

    denied_message = PermissionMessages.DENIED if action else PermissionMessages.DENIED_ANY

    if role_id is None:
        return AccessDecision.allow()

    grant = facts.grant(role_id, module_code)
    if grant is None:
        return AccessDecision.deny(DenialReason.PERMISSION_MISSING, denied_message)
    allowed = grant.allows(action) if action is not None else grant.allows_any()
    if not allowed:
        return AccessDecision.deny(DenialReason.PERMISSION_MISSING, denied_message)
    return AccessDecision.allow()


def can_view_audit_info(grant: Optional[PermissionGrant]) -> bool:
    """Audit columns (created/updated by) are visible to approvers."""
    return grant is not None and grant.approve
