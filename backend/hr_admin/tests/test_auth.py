"""
Authentication tests: login rules, lockout, profile, refresh and logout.
"""

import pytest

from conftest import TEST_PASSWORD
from hr_admin.constants.modules import OrganizationStatus
from hr_admin.models.user import User


def login(client, email, password=TEST_PASSWORD, org_slug=None):
    payload = {"email": email, "password": password}
    if org_slug is not None:
        payload["org_slug"] = org_slug
    return client.post("/api/v1/auth/login", json=payload)


@pytest.fixture
def acme(make_org):
    return make_org("acme")


# ============================================================================
# TEST SUITE: LOGIN
# ============================================================================

@pytest.mark.security
class TestLogin:

    def test_org_admin_login_returns_tokens_and_profile(self, client, acme):
        resp = login(client, "Admin@Acme.test", org_slug="acme")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Login successful"

        data = body["data"]
        assert data["token"] and data["refresh_token"]
        profile = data["user"]
        assert profile["user"]["email"] == "admin@acme.test"
        assert profile["organization"]["slug"] == "acme"
        assert "recruitment" in profile["enabled_modules"]
        employees = next(p for p in profile["permissions"] if p["module_code"] == "employees")
        assert employees["can_delete"] is True

    def test_unknown_email(self, client, acme):
        resp = login(client, "nobody@acme.test")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid email or password"

    def test_wrong_password_counts_attempts(self, client, db_session, acme):
        _, admin = acme
        resp = login(client, admin.email, password="wrong-password")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid email or password"

        db_session.expire_all()
        assert db_session.get(User, admin.id).failed_login_attempts == 1

    def test_account_locks_after_max_attempts(self, client, db_session, acme):
        _, admin = acme
        for _ in range(3):
            assert login(client, admin.email, password="wrong-password").status_code == 401

        resp = login(client, admin.email, org_slug="acme")
        assert resp.status_code == 403
        assert resp.json()["code"] == "account_locked"

        db_session.expire_all()
        assert db_session.get(User, admin.id).locked_until is not None

    def test_locked_account_reported_before_password_check(self, client, db_session, acme):
        _, admin = acme
        for _ in range(3):
            login(client, admin.email, password="wrong-password")

        resp = login(client, admin.email, password="wrong-password")
        assert resp.json()["code"] == "account_locked"

        db_session.expire_all()
        assert db_session.get(User, admin.id).failed_login_attempts == 3

    def test_success_resets_failed_attempts(self, client, db_session, acme):
        _, admin = acme
        login(client, admin.email, password="wrong-password")
        assert login(client, admin.email, org_slug="acme").status_code == 200

        db_session.expire_all()
        user = db_session.get(User, admin.id)
        assert user.failed_login_attempts == 0
        assert user.last_login_at is not None

    def test_inactive_account(self, client, acme, make_user):
        org, _ = acme
        user = make_user(organization=org, is_active=False)
        resp = login(client, user.email)
        assert resp.status_code == 403
        assert resp.json()["message"] == "Account is inactive"

    def test_super_admin_cannot_name_organization(self, client, super_admin):
        resp = login(client, super_admin.email, org_slug="acme")
        assert resp.status_code == 403
        assert resp.json()["message"] == "Super admins must sign in through the admin panel"

    def test_super_admin_login_without_slug(self, client, super_admin):
        resp = login(client, super_admin.email)
        assert resp.status_code == 200
        profile = resp.json()["data"]["user"]
        assert profile["user"]["is_super_admin"] is True
        assert profile["organization"] is None
        assert profile["enabled_modules"] == []

    def test_wrong_organization_slug(self, client, acme, make_org):
        make_org("beta")
        _, admin = acme
        resp = login(client, admin.email, org_slug="beta")
        assert resp.status_code == 403
        assert resp.json()["message"] == "You do not belong to this organization"

    def test_user_without_organization(self, client, make_user):
        orphan = make_user()
        resp = login(client, orphan.email)
        assert resp.status_code == 403
        assert resp.json()["message"] == "User does not belong to any organization"

    def test_suspended_organization_blocks_login(self, client, db_session, acme):
        org, admin = acme
        org.status = OrganizationStatus.SUSPENDED.value
        db_session.commit()
        resp = login(client, admin.email, org_slug="acme")
        assert resp.status_code == 403
        assert resp.json()["message"] == "Organization subscription is suspended"

    def test_missing_password_is_validation_error(self, client):
        resp = client.post("/api/v1/auth/login", json={"email": "admin@acme.test"})
        assert resp.status_code == 400
        assert resp.json()["success"] is False


# ============================================================================
# TEST SUITE: PROFILE, REFRESH AND LOGOUT
# ============================================================================

class TestSession:

    def test_me_returns_profile(self, client, acme, headers_for):
        _, admin = acme
        resp = client.get("/api/v1/auth/me", headers=headers_for(admin))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["user"]["id"] == admin.id
        assert data["user"]["role"]["code"] == "org_admin"

    def test_me_requires_token(self, client):
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_profile_reflects_permission_change(self, client, acme, make_role, make_user, headers_for):
        org, admin = acme
        role = make_role(org.id, {"employees": {"read": True}}, code="clerk")
        user = make_user(organization=org, role=role)
        headers = headers_for(user)

        before = client.get("/api/v1/auth/me", headers=headers).json()["data"]["permissions"]
        assert [p["module_code"] for p in before] == ["employees"]

        resp = client.put(
            f"/api/v1/acme/permissions/{role.id}",
            json={"permissions": [{"module_code": "leave", "read": True}]},
            headers=headers_for(admin),
        )
        assert resp.status_code == 200

        after = client.get("/api/v1/auth/me", headers=headers).json()["data"]["permissions"]
        assert [p["module_code"] for p in after] == ["leave"]

    def test_refresh_issues_new_access_token(self, client, acme):
        tokens = login(client, "admin@acme.test", org_slug="acme").json()["data"]
        resp = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert resp.status_code == 200
        token = resp.json()["data"]["token"]

        me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200

    def test_access_token_is_not_a_refresh_token(self, client, acme):
        tokens = login(client, "admin@acme.test", org_slug="acme").json()["data"]
        resp = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["token"]})
        assert resp.status_code == 401

    def test_refresh_token_is_not_an_access_token(self, client, acme):
        tokens = login(client, "admin@acme.test", org_slug="acme").json()["data"]
        resp = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
        assert resp.status_code == 401

    def test_refresh_rejected_for_deactivated_user(self, client, db_session, acme):
        _, admin = acme
        tokens = login(client, admin.email, org_slug="acme").json()["data"]
        admin.is_active = False
        db_session.commit()
        resp = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert resp.status_code == 401

    def test_logout(self, client, acme, headers_for):
        _, admin = acme
        resp = client.post("/api/v1/auth/logout", headers=headers_for(admin))
        assert resp.status_code == 200
        assert resp.json()["message"] == "Logout successful"
