"""
Server-side RBAC enforcement tests.

CRITICAL: These tests verify that RBAC is enforced server-side through the
route dependencies, against the database, on every request.
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from hr_admin.platform.rbac import DatabasePermissionFacts


@pytest.fixture
def acme(make_org):
    return make_org("acme")


@pytest.fixture
def member(acme, make_role, make_user):
    """Factory: an acme user whose role carries the given matrix."""
    org, _ = acme

    def _make(permissions, code="custom"):
        role = make_role(org.id, permissions, code=code)
        return make_user(organization=org, role=role)
    return _make


# ============================================================================
# TEST SUITE: ORGANIZATION ROUTES
# ============================================================================

@pytest.mark.security
class TestOrgPermissions:

    def test_read_only_master_data(self, client, member, headers_for):
        user = member({"master_data": {"read": True, "write": False}})
        headers = headers_for(user)

        listed = client.get("/api/v1/acme/master-data/departments", headers=headers)
        created = client.post("/api/v1/acme/master-data/departments", json={"name": "Finance"}, headers=headers)

        assert listed.status_code == 200
        assert created.status_code == 403
        assert created.json()["message"] == "You do not have permission to perform this action"

    def test_write_grant_creates_record(self, client, member, headers_for):
        user = member({"master_data": {"read": True, "write": True}})
        resp = client.post(
            "/api/v1/acme/master-data/departments",
            json={"name": "Finance", "code": "FIN"},
            headers=headers_for(user),
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["name"] == "Finance"

    def test_user_without_role_is_denied_everywhere(self, client, acme, make_user, headers_for):
        org, _ = acme
        user = make_user(organization=org)
        for path in ("/api/v1/acme/employees", "/api/v1/acme/roles", "/api/v1/acme/users"):
            resp = client.get(path, headers=headers_for(user))
            assert resp.status_code == 403
            assert resp.json()["message"] == "You do not have a role assigned"

    def test_any_permission_gates_list(self, client, member, headers_for):
        user = member({"employees": {"export": True}})
        headers = headers_for(user)
        assert client.get("/api/v1/acme/employees", headers=headers).status_code == 200
        assert client.get("/api/v1/acme/employees/some-id", headers=headers).status_code == 403

    def test_export_requires_export_flag(self, client, member, headers_for):
        reader = member({"employees": {"read": True}}, code="reader")
        exporter = member({"employees": {"read": True, "export": True}}, code="exporter")
        assert client.get("/api/v1/acme/employees/export", headers=headers_for(reader)).status_code == 403
        resp = client.get("/api/v1/acme/employees/export", headers=headers_for(exporter))
        assert resp.status_code == 200
        assert resp.json()["data"] == []

    def test_role_change_applies_to_existing_token(self, client, db_session, member, headers_for):
        user = member({"employees": {"read": True}})
        headers = headers_for(user)
        assert client.get("/api/v1/acme/employees", headers=headers).status_code == 200

        user.role_id = None
        db_session.commit()
        assert client.get("/api/v1/acme/employees", headers=headers).status_code == 403

    def test_inactive_role_grants_nothing(self, client, db_session, member, headers_for):
        user = member({"employees": {"read": True}})
        user.role.is_active = False
        db_session.commit()
        assert client.get("/api/v1/acme/employees", headers=headers_for(user)).status_code == 403

    def test_org_admin_has_full_access(self, client, acme, headers_for):
        _, admin = acme
        headers = headers_for(admin)
        assert client.get("/api/v1/acme/roles", headers=headers).status_code == 200
        assert client.get("/api/v1/acme/users", headers=headers).status_code == 200
        assert client.get("/api/v1/acme/organization/profile", headers=headers).status_code == 200

    def test_lookup_failure_is_generic_500(self, client, member, headers_for):
        user = member({"employees": {"read": True}})
        with patch.object(DatabasePermissionFacts, "grant", side_effect=OperationalError("SELECT", {}, Exception("down"))):
            resp = client.get("/api/v1/acme/employees", headers=headers_for(user))
        assert resp.status_code == 500
        assert resp.json()["message"] == "Permission check failed"


# ============================================================================
# TEST SUITE: MODULE ENABLEMENT
# ============================================================================

@pytest.mark.security
class TestModuleEnablement:

    @pytest.fixture
    def core_org(self, make_org, core_plan):
        return make_org("basic", plan=core_plan)

    def test_non_core_module_outside_plan_denied_despite_grant(
        self, client, core_org, make_role, make_user, headers_for
    ):
        org, _ = core_org
        role = make_role(org.id, {"recruitment": {"read": True, "write": True}})
        user = make_user(organization=org, role=role)
        resp = client.get("/api/v1/basic/recruitment/candidates", headers=headers_for(user))
        assert resp.status_code == 403
        assert resp.json()["message"] == "The recruitment module is not enabled for your organization"

    def test_module_disabled_wins_over_missing_permission(
        self, client, core_org, make_role, make_user, headers_for
    ):
        org, _ = core_org
        role = make_role(org.id, {"employees": {"read": True}})
        user = make_user(organization=org, role=role)
        resp = client.get("/api/v1/basic/recruitment/candidates", headers=headers_for(user))
        assert resp.json()["code"] == "module_disabled"

    def test_enabled_add_on_module_allowed(self, client, member, headers_for):
        user = member({"recruitment": {"read": True}})
        assert client.get("/api/v1/acme/recruitment/candidates", headers=headers_for(user)).status_code == 200

    def test_support_mode_respects_disabled_module(self, client, core_org, super_admin, headers_for):
        resp = client.get(
            "/api/v1/basic/recruitment/candidates",
            headers=headers_for(super_admin, impersonate="basic"),
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == "module_disabled"


# ============================================================================
# TEST SUITE: SUPPORT MODE
# ============================================================================

@pytest.mark.security
class TestSupportModeRestrictions:

    @pytest.fixture
    def platform_admin(self, make_role, make_user, db_session):
        """Super admin holding a platform role with recruitment delete granted."""
        role = make_role(None, {"recruitment": {"read": True, "delete": True}, "employees": {"read": True}}, code="support")
        user = make_user(is_super_admin=True, email="support@platform.test")
        user.role_id = role.id
        db_session.commit()
        return user

    def test_delete_denied_even_with_platform_grant(self, client, acme, platform_admin, headers_for):
        resp = client.delete(
            "/api/v1/acme/recruitment/candidates/any-id",
            headers=headers_for(platform_admin, impersonate="acme"),
        )
        assert resp.status_code == 403
        assert resp.json()["message"] == "Delete and export operations are restricted in support mode"

    def test_platform_grant_allows_read(self, client, acme, platform_admin, headers_for):
        headers = headers_for(platform_admin, impersonate="acme")
        assert client.get("/api/v1/acme/recruitment/candidates", headers=headers).status_code == 200
        assert client.get("/api/v1/acme/employees", headers=headers).status_code == 200

    def test_platform_grant_missing_write(self, client, acme, platform_admin, headers_for):
        resp = client.post(
            "/api/v1/acme/recruitment/candidates",
            json={"first_name": "Ann", "email": "ann@example.test"},
            headers=headers_for(platform_admin, impersonate="acme"),
        )
        assert resp.status_code == 403

    def test_bootstrap_super_admin_reads_and_writes(self, client, acme, super_admin, headers_for):
        headers = headers_for(super_admin, impersonate="acme")
        resp = client.post(
            "/api/v1/acme/master-data/departments",
            json={"name": "Support"},
            headers=headers,
        )
        assert resp.status_code == 201

    def test_bootstrap_super_admin_cannot_export_or_delete(self, client, acme, super_admin, headers_for):
        headers = headers_for(super_admin, impersonate="acme")
        assert client.get("/api/v1/acme/employees/export", headers=headers).status_code == 403
        assert client.delete("/api/v1/acme/users/any-id", headers=headers).status_code == 403


# ============================================================================
# TEST SUITE: PLATFORM ROUTES
# ============================================================================

@pytest.mark.security
class TestPlatformPermissions:

    def test_org_user_cannot_reach_superadmin(self, client, acme, headers_for):
        _, admin = acme
        resp = client.get("/api/v1/superadmin/organizations", headers=headers_for(admin))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Super admin access required"

    def test_bootstrap_super_admin_full_access(self, client, acme, super_admin, headers_for):
        resp = client.get("/api/v1/superadmin/organizations", headers=headers_for(super_admin))
        assert resp.status_code == 200
        assert [o["slug"] for o in resp.json()["data"]] == ["acme"]

    def test_platform_role_limits_super_admin(self, client, db_session, acme, make_role, make_user, headers_for):
        role = make_role(None, {"organizations": {"read": True}}, code="viewer")
        user = make_user(is_super_admin=True, email="viewer@platform.test")
        user.role_id = role.id
        db_session.commit()
        headers = headers_for(user)

        assert client.get("/api/v1/superadmin/organizations", headers=headers).status_code == 200
        org, _ = acme
        assert client.delete(f"/api/v1/superadmin/organizations/{org.id}", headers=headers).status_code == 403
        assert client.get("/api/v1/superadmin/subscription-plans", headers=headers).status_code == 403

    def test_platform_master_data_read_only(self, client, db_session, make_role, make_user, headers_for):
        role = make_role(None, {"master_data": {"read": True}}, code="data_viewer")
        user = make_user(is_super_admin=True, email="data@platform.test")
        user.role_id = role.id
        db_session.commit()
        headers = headers_for(user)

        assert client.get("/api/v1/superadmin/master-data/countries", headers=headers).status_code == 200
        resp = client.post("/api/v1/superadmin/master-data/countries", json={"name": "India"}, headers=headers)
        assert resp.status_code == 403

    def test_demoted_super_admin_loses_platform_access(self, client, db_session, acme, make_role, make_user, headers_for):
        org, _ = acme
        user = make_user(is_super_admin=True, email="former@platform.test")
        headers = headers_for(user)
        assert client.get("/api/v1/superadmin/master-data/countries", headers=headers).status_code == 200

        role = make_role(org.id, {"master_data": {"read": True}}, code="clerk")
        user.is_super_admin = False
        user.organization_id = org.id
        user.role_id = role.id
        db_session.commit()

        resp = client.get("/api/v1/superadmin/master-data/countries", headers=headers)
        assert resp.status_code == 403
        assert resp.json()["code"] == "super_admin_required"
        assert client.get("/api/v1/superadmin/organizations", headers=headers).status_code == 403

    def test_deactivated_super_admin_token_rejected(self, client, db_session, super_admin, headers_for):
        headers = headers_for(super_admin)
        super_admin.is_active = False
        db_session.commit()

        resp = client.get("/api/v1/superadmin/organizations", headers=headers)
        assert resp.status_code == 401
