"""
Permission policy tests.

CRITICAL: these pin the priority order every server-side check follows:
super admin outside support mode, support-mode restrictions, missing role,
module enablement, then the role grant.
"""

import pytest

from hr_admin.constants.modules import PermissionAction
from hr_admin.platform.errors import FeatureDisabledError, NotFoundError, PermissionDeniedError
from hr_admin.platform.policy import (
    DenialReason,
    ModuleState,
    PermissionGrant,
    can_view_audit_info,
    evaluate_org_access,
    evaluate_platform_access,
)


class FakeFacts:
    """In-memory PermissionFacts that records which lookups ran."""

    def __init__(self, modules=None, grants=None):
        self.modules = modules or {}
        self.grants = grants or {}
        self.calls = []

    def module_state(self, module_code):
        self.calls.append(("module", module_code))
        return self.modules.get(module_code, ModuleState.UNKNOWN)

    def grant(self, role_id, module_code):
        self.calls.append(("grant", role_id, module_code))
        flags = self.grants.get((role_id, module_code))
        return PermissionGrant.from_flags(flags) if flags is not None else None


def org_access(facts, action=PermissionAction.READ, module="employees", **overrides):
    params = dict(
        is_authenticated=True,
        organization_id="org-1",
        is_super_admin=False,
        is_impersonating=False,
        role_id="role-1",
        module_code=module,
        action=action,
        facts=facts,
    )
    params.update(overrides)
    return evaluate_org_access(**params)


# ============================================================================
# TEST SUITE: GRANT NORMALIZATION
# ============================================================================

class TestPermissionGrant:

    def test_accepts_all_flag_spellings(self):
        grant = PermissionGrant.from_flags({"read": True, "can_write": 1, "canUpdate": True})
        assert grant.read and grant.write and grant.update
        assert not grant.delete

    @pytest.mark.parametrize("value", ["true", "1", 2, None, "yes", 1.0])
    def test_only_true_and_one_grant(self, value):
        assert PermissionGrant.from_flags({"read": value}).read is False

    def test_full_grant_allows_everything(self):
        grant = PermissionGrant.full()
        assert all(grant.as_dict().values())

    def test_audit_info_requires_approve(self):
        assert can_view_audit_info(PermissionGrant(read=True, approve=True))
        assert not can_view_audit_info(PermissionGrant(read=True))
        assert not can_view_audit_info(None)


# ============================================================================
# TEST SUITE: ORGANIZATION POLICY
# ============================================================================

@pytest.mark.security
class TestOrgAccessPriority:

    def test_super_admin_without_impersonation_is_denied(self):
        facts = FakeFacts()
        decision = org_access(facts, is_super_admin=True, role_id=None)
        assert not decision.allowed
        assert decision.reason is DenialReason.SUPER_ADMIN_NOT_IMPERSONATING
        assert facts.calls == []

    @pytest.mark.parametrize("action", [PermissionAction.DELETE, PermissionAction.EXPORT])
    def test_impersonation_denies_delete_and_export_even_with_grant(self, action):
        facts = FakeFacts(grants={("platform-role", "recruitment"): {"delete": True, "export": True}})
        decision = org_access(
            facts,
            action=action,
            module="recruitment",
            is_super_admin=True,
            is_impersonating=True,
            role_id="platform-role",
        )
        assert not decision.allowed
        assert decision.reason is DenialReason.SUPPORT_MODE_RESTRICTED
        assert "support mode" in decision.message

    def test_impersonation_without_role_allows_unrestricted_actions(self):
        decision = org_access(FakeFacts(), is_super_admin=True, is_impersonating=True, role_id=None)
        assert decision.allowed

    def test_impersonation_uses_platform_role_grant(self):
        facts = FakeFacts(grants={("platform-role", "employees"): {"read": True}})
        allowed = org_access(facts, is_super_admin=True, is_impersonating=True, role_id="platform-role")
        denied = org_access(
            facts,
            action=PermissionAction.WRITE,
            is_super_admin=True,
            is_impersonating=True,
            role_id="platform-role",
        )
        assert allowed.allowed
        assert not denied.allowed

    def test_impersonation_any_check_ignores_restricted_actions(self):
        facts = FakeFacts(grants={("platform-role", "employees"): {"delete": True, "export": True}})
        decision = org_access(
            facts, action=None, is_super_admin=True, is_impersonating=True, role_id="platform-role"
        )
        assert not decision.allowed

    def test_impersonation_skips_module_enablement(self):
        facts = FakeFacts(modules={"recruitment": ModuleState.DISABLED})
        decision = org_access(
            facts, module="recruitment", is_super_admin=True, is_impersonating=True, role_id=None
        )
        assert decision.allowed
        assert ("module", "recruitment") not in facts.calls

    def test_user_without_role_never_passes(self):
        facts = FakeFacts(modules={"employees": ModuleState.ENABLED})
        for action in list(PermissionAction) + [None]:
            decision = org_access(facts, action=action, role_id=None)
            assert not decision.allowed
            assert decision.reason is DenialReason.NO_ROLE
            assert decision.message == "You do not have a role assigned"

    def test_unknown_module_is_not_found(self):
        decision = org_access(FakeFacts(), module="payrol")
        assert decision.reason is DenialReason.MODULE_NOT_FOUND
        assert isinstance(decision.to_error(), NotFoundError)

    def test_disabled_module_denies_despite_grant(self):
        facts = FakeFacts(
            modules={"recruitment": ModuleState.DISABLED},
            grants={("role-1", "recruitment"): {"read": True}},
        )
        decision = org_access(facts, module="recruitment")
        assert decision.reason is DenialReason.MODULE_DISABLED
        assert isinstance(decision.to_error(), FeatureDisabledError)
        assert decision.to_error().status_code == 403

    def test_module_check_runs_before_grant_lookup(self):
        facts = FakeFacts(modules={"recruitment": ModuleState.DISABLED})
        org_access(facts, module="recruitment")
        assert facts.calls == [("module", "recruitment")]

    def test_grant_decides_for_enabled_module(self):
        facts = FakeFacts(
            modules={"master_data": ModuleState.ENABLED},
            grants={("role-1", "master_data"): {"read": True, "write": False}},
        )
        assert org_access(facts, module="master_data").allowed
        denied = org_access(facts, module="master_data", action=PermissionAction.WRITE)
        assert denied.reason is DenialReason.PERMISSION_MISSING
        assert isinstance(denied.to_error(), PermissionDeniedError)

    def test_any_check_passes_with_single_flag(self):
        facts = FakeFacts(
            modules={"employees": ModuleState.ENABLED},
            grants={("role-1", "employees"): {"export": True}},
        )
        assert org_access(facts, action=None).allowed

    def test_missing_grant_row_denies(self):
        facts = FakeFacts(modules={"employees": ModuleState.ENABLED})
        assert not org_access(facts).allowed

    def test_missing_organization_context(self):
        decision = org_access(FakeFacts(), organization_id=None)
        assert decision.reason is DenialReason.ORG_CONTEXT_REQUIRED

    def test_unauthenticated(self):
        decision = org_access(FakeFacts(), is_authenticated=False)
        assert decision.to_error().status_code == 401


# ============================================================================
# TEST SUITE: PLATFORM POLICY
# ============================================================================

class TestPlatformAccess:

    def platform(self, facts, **overrides):
        params = dict(
            is_authenticated=True,
            is_super_admin=True,
            role_id=None,
            module_code="organizations",
            action=PermissionAction.DELETE,
            facts=facts,
        )
        params.update(overrides)
        return evaluate_platform_access(**params)

    def test_super_admin_without_role_has_full_access(self):
        assert self.platform(FakeFacts()).allowed

    def test_platform_role_grant_decides(self):
        facts = FakeFacts(grants={("ops", "organizations"): {"read": True}})
        assert self.platform(facts, role_id="ops", action=PermissionAction.READ).allowed
        assert not self.platform(facts, role_id="ops").allowed

    def test_non_super_admin_without_role_denied(self):
        assert not self.platform(FakeFacts(), is_super_admin=False).allowed

    def test_non_super_admin_with_matching_role_denied(self):
        facts = FakeFacts(grants={("clerk", "master_data"): {"read": True}})
        decision = self.platform(
            facts,
            is_super_admin=False,
            role_id="clerk",
            module_code="master_data",
            action=PermissionAction.READ,
        )
        assert decision.reason is DenialReason.SUPER_ADMIN_REQUIRED
        assert isinstance(decision.to_error(), PermissionDeniedError)
        assert facts.calls == []
