"""
Tenant context tests.

CRITICAL: organization status is checked before membership, support mode
and any permission lookup; no request reaches an inactive, suspended or
expired organization.
"""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from hr_admin.auth.jwt import AuthenticatedUser
from hr_admin.constants.modules import OrganizationStatus
from hr_admin.models.base import utc_now
from hr_admin.platform.errors import ValidationError
from hr_admin.platform.tenant_context import TenantContext, get_tenant_context


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def acme(make_org):
    return make_org("acme")


@pytest.fixture
def beta(make_org):
    return make_org("beta")


def _set(db_session, org, **values):
    for key, value in values.items():
        setattr(org, key, value)
    db_session.commit()


# ============================================================================
# TEST SUITE: MEMBERSHIP
# ============================================================================

@pytest.mark.security
class TestMembership:

    def test_member_resolves_own_organization(self, client, acme, headers_for):
        _, admin = acme
        resp = client.get("/api/v1/acme/modules", headers=headers_for(admin))
        assert resp.status_code == 200
        assert resp.json()["success"] is True

    def test_slug_is_case_insensitive(self, client, acme, headers_for):
        _, admin = acme
        assert client.get("/api/v1/ACME/modules", headers=headers_for(admin)).status_code == 200

    def test_missing_token_is_401(self, client, acme):
        resp = client.get("/api/v1/acme/modules")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Unauthorized access"

    def test_forged_token_is_401(self, client, acme):
        resp = client.get("/api/v1/acme/modules", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_unknown_organization_is_404(self, client, acme, headers_for):
        _, admin = acme
        resp = client.get("/api/v1/nowhere/modules", headers=headers_for(admin))
        assert resp.status_code == 404
        assert resp.json()["message"] == "Organization not found"

    def test_cross_tenant_access_is_403(self, client, acme, beta, headers_for):
        _, acme_admin = acme
        resp = client.get("/api/v1/beta/roles", headers=headers_for(acme_admin))
        assert resp.status_code == 403
        assert resp.json()["message"] == "You do not have access to this organization"

    def test_user_without_organization_is_403(self, client, acme, make_user, headers_for):
        orphan = make_user()
        resp = client.get("/api/v1/acme/modules", headers=headers_for(orphan))
        assert resp.status_code == 403
        assert resp.json()["message"] == "User does not belong to any organization"

    def test_deactivated_user_token_stops_working(self, client, db_session, acme, headers_for):
        _, admin = acme
        headers = headers_for(admin)
        admin.is_active = False
        db_session.commit()
        assert client.get("/api/v1/acme/modules", headers=headers).status_code == 401


# ============================================================================
# TEST SUITE: ORGANIZATION STATUS
# ============================================================================

@pytest.mark.security
class TestOrganizationStatus:

    def test_suspended_organization_rejected(self, client, db_session, acme, headers_for):
        org, admin = acme
        _set(db_session, org, status=OrganizationStatus.SUSPENDED.value)
        resp = client.get("/api/v1/acme/roles", headers=headers_for(admin))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Organization subscription is suspended"

    def test_inactive_organization_rejected(self, client, db_session, acme, headers_for):
        org, admin = acme
        _set(db_session, org, is_active=False)
        resp = client.get("/api/v1/acme/modules", headers=headers_for(admin))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Organization is inactive"

    def test_cancelled_organization_reports_inactive(self, client, db_session, acme, headers_for):
        org, admin = acme
        _set(db_session, org, status=OrganizationStatus.CANCELLED.value)
        resp = client.get("/api/v1/acme/modules", headers=headers_for(admin))
        assert resp.json()["message"] == "Organization is inactive"

    def test_expired_subscription_rejected(self, client, db_session, acme, headers_for):
        org, admin = acme
        _set(db_session, org, subscription_expiry_date=utc_now() - timedelta(days=1))
        for path in ("/api/v1/acme/modules", "/api/v1/acme/employees", "/api/v1/acme/organization/profile"):
            resp = client.get(path, headers=headers_for(admin))
            assert resp.status_code == 403
            assert "expired" in resp.json()["message"]

    def test_future_expiry_allowed(self, client, db_session, acme, headers_for):
        org, admin = acme
        _set(db_session, org, subscription_expiry_date=utc_now() + timedelta(days=30))
        assert client.get("/api/v1/acme/modules", headers=headers_for(admin)).status_code == 200

    def test_status_checked_before_permissions(self, client, db_session, acme, make_user, headers_for):
        """A user with no role gets the suspension error, not the missing-role error."""
        org, _ = acme
        no_role = make_user(organization=org)
        _set(db_session, org, status=OrganizationStatus.SUSPENDED.value)
        resp = client.get("/api/v1/acme/employees", headers=headers_for(no_role))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Organization subscription is suspended"

    def test_status_checked_before_support_mode(self, client, db_session, acme, super_admin, headers_for):
        org, _ = acme
        _set(db_session, org, is_active=False)
        resp = client.get("/api/v1/acme/modules", headers=headers_for(super_admin, impersonate="acme"))
        assert resp.json()["message"] == "Organization is inactive"


# ============================================================================
# TEST SUITE: SUPPORT MODE
# ============================================================================

@pytest.mark.security
class TestSupportMode:

    def test_super_admin_without_header_is_rejected(self, client, acme, super_admin, headers_for):
        resp = client.get("/api/v1/acme/modules", headers=headers_for(super_admin))
        assert resp.status_code == 403
        assert "Super admins cannot access organization portal" in resp.json()["message"]

    def test_header_for_another_organization_is_rejected(self, client, acme, beta, super_admin, headers_for):
        resp = client.get("/api/v1/acme/modules", headers=headers_for(super_admin, impersonate="beta"))
        assert resp.status_code == 403

    def test_header_matching_slug_enters_support_mode(self, client, acme, super_admin, headers_for):
        resp = client.get("/api/v1/acme/modules", headers=headers_for(super_admin, impersonate="ACME"))
        assert resp.status_code == 200


# ============================================================================
# TEST SUITE: CONTEXT OBJECT
# ============================================================================

class TestTenantContextObject:

    def user(self, **overrides):
        values = dict(user_id="u1", email="u1@example.test", organization_id="org-1", role_id="r1")
        values.update(overrides)
        return AuthenticatedUser(**values)

    def test_context_is_immutable(self):
        context = TenantContext(organization_id="org-1", organization_slug="acme", user=self.user())
        with pytest.raises(AttributeError):
            context.organization_id = "org-2"

    def test_only_super_admin_can_impersonate(self):
        with pytest.raises(ValueError):
            TenantContext(organization_id="org-1", organization_slug="acme", user=self.user(), is_impersonating=True)

    def test_empty_organization_rejected(self):
        with pytest.raises(ValueError):
            TenantContext(organization_id="", organization_slug="acme", user=self.user())

    def test_get_tenant_context_requires_resolution(self):
        request = Mock()
        request.state = Mock(spec=[])
        with pytest.raises(ValidationError) as exc_info:
            get_tenant_context(request)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Organization context is required"
