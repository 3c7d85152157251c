"""
Super-admin organization management.
"""

import pytest

from conftest import TEST_PASSWORD
from hr_admin.constants.modules import OrganizationStatus


@pytest.fixture
def root_headers(super_admin, headers_for):
    return headers_for(super_admin)


def payload(plan, slug="globex", **overrides):
    data = {
        "name": "Globex",
        "slug": slug,
        "subscription_plan_id": plan.id,
        "admin_email": f"owner@{slug}.test",
        "admin_password": TEST_PASSWORD,
    }
    data.update(overrides)
    return data


class TestCreateOrganization:

    def test_create_provisions_admin_with_full_access(self, client, full_plan, root_headers):
        resp = client.post("/api/v1/superadmin/organizations", json=payload(full_plan), headers=root_headers)
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["organization"]["slug"] == "globex"
        assert data["organization"]["status"] == OrganizationStatus.ACTIVE.value
        assert data["admin_user"]["role"]["code"] == "org_admin"

        login = client.post(
            "/api/v1/auth/login",
            json={"email": "owner@globex.test", "password": TEST_PASSWORD, "org_slug": "globex"},
        )
        assert login.status_code == 200
        token = login.json()["data"]["token"]
        roles = client.get("/api/v1/globex/roles", headers={"Authorization": f"Bearer {token}"})
        assert roles.status_code == 200

    @pytest.mark.parametrize("slug", ["superadmin", "auth", "health"])
    def test_reserved_slug_rejected(self, client, full_plan, root_headers, slug):
        resp = client.post(
            "/api/v1/superadmin/organizations",
            json=payload(full_plan, slug=slug, admin_email="x@example.test"),
            headers=root_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "reserved_slug"

    def test_invalid_slug_rejected(self, client, full_plan, root_headers):
        resp = client.post(
            "/api/v1/superadmin/organizations",
            json=payload(full_plan, slug="acme corp", admin_email="x@example.test"),
            headers=root_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_slug"

    def test_duplicate_slug_conflicts(self, client, full_plan, root_headers):
        client.post("/api/v1/superadmin/organizations", json=payload(full_plan), headers=root_headers)
        resp = client.post(
            "/api/v1/superadmin/organizations",
            json=payload(full_plan, admin_email="other@globex.test"),
            headers=root_headers,
        )
        assert resp.status_code == 409

    def test_weak_admin_password_rejected(self, client, full_plan, root_headers):
        resp = client.post(
            "/api/v1/superadmin/organizations",
            json=payload(full_plan, admin_password="short"),
            headers=root_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "weak_password"


class TestUpdateOrganization:

    def test_suspend_blocks_portal(self, client, make_org, root_headers, headers_for):
        org, admin = make_org("acme")
        resp = client.put(
            f"/api/v1/superadmin/organizations/{org.id}",
            json={"status": "suspended"},
            headers=root_headers,
        )
        assert resp.status_code == 200
        assert client.get("/api/v1/acme/roles", headers=headers_for(admin)).status_code == 403

    def test_invalid_status(self, client, make_org, root_headers):
        org, _ = make_org("acme")
        resp = client.put(
            f"/api/v1/superadmin/organizations/{org.id}",
            json={"status": "paused"},
            headers=root_headers,
        )
        assert resp.status_code == 400

    def test_plan_change_resyncs_modules(self, client, make_org, core_plan, root_headers, headers_for):
        org, admin = make_org("acme")
        resp = client.put(
            f"/api/v1/superadmin/organizations/{org.id}",
            json={"subscription_plan_id": core_plan.id},
            headers=root_headers,
        )
        assert resp.status_code == 200
        recruitment = client.get("/api/v1/acme/recruitment/candidates", headers=headers_for(admin))
        assert recruitment.json()["code"] == "module_disabled"

    def test_delete_removes_organization(self, client, make_org, root_headers):
        org, _ = make_org("acme")
        assert client.delete(f"/api/v1/superadmin/organizations/{org.id}", headers=root_headers).status_code == 200
        assert client.get(f"/api/v1/superadmin/organizations/{org.id}", headers=root_headers).status_code == 404
