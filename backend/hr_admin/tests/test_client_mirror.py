"""
Client-side permission mirror, profile store and API client tests.

The mirror must reach the same decision as the server for the same
profile; the end-to-end tests drive HRAdminClient through the app.
"""

import json

import httpx
import pytest

from conftest import TEST_PASSWORD
from hr_admin.client import ClientAPIError, HRAdminClient, PermissionMirror, ProfileStore
from hr_admin.platform.tenant_context import IMPERSONATION_HEADER


def org_profile(permissions=None, enabled_modules=None, role_id="role-1"):
    return {
        "user": {
            "id": "u1",
            "role_id": role_id,
            "organization_id": "org-1",
            "is_super_admin": False,
        },
        "organization": {"id": "org-1", "slug": "acme"},
        "permissions": permissions or [],
        "enabled_modules": enabled_modules or [],
    }


def super_admin_profile(permissions=None, role_id=None):
    return {
        "user": {"id": "root", "role_id": role_id, "organization_id": None, "is_super_admin": True},
        "organization": None,
        "permissions": permissions or [],
        "enabled_modules": [],
    }


# ============================================================================
# TEST SUITE: PERMISSION MIRROR
# ============================================================================

class TestPermissionMirror:

    def test_granted_flags(self):
        mirror = PermissionMirror(org_profile([{"module_code": "employees", "can_read": True, "can_export": 1}]))
        assert mirror.can_read("employees")
        assert mirror.can_export("employees")
        assert not mirror.can_write("employees")
        assert mirror.can_any("employees")
        assert not mirror.can_any("leave")

    def test_string_flag_is_not_a_grant(self):
        mirror = PermissionMirror(org_profile([{"module_code": "employees", "can_read": "true"}]))
        assert not mirror.can_read("employees")

    def test_disabled_module_denies_despite_grant(self):
        mirror = PermissionMirror(org_profile([{"module_code": "recruitment", "can_read": True}]))
        assert not mirror.is_module_enabled("recruitment")
        assert not mirror.can_read("recruitment")

        enabled = PermissionMirror(
            org_profile([{"module_code": "recruitment", "can_read": True}], enabled_modules=["recruitment"])
        )
        assert enabled.can_read("recruitment")

    def test_unknown_module(self):
        mirror = PermissionMirror(org_profile([{"module_code": "employees", "can_read": True}]))
        assert not mirror.is_module_enabled("payrol")
        assert not mirror.can_read("payrol")

    def test_no_role_denies_everything(self):
        mirror = PermissionMirror(org_profile([{"module_code": "employees", "can_read": True}], role_id=None))
        assert not mirror.can_read("employees")

    def test_audit_info_requires_approve(self):
        mirror = PermissionMirror(
            org_profile([
                {"module_code": "employees", "can_read": True, "can_approve": True},
                {"module_code": "leave", "can_read": True},
            ])
        )
        assert mirror.can_view_audit_info("employees")
        assert not mirror.can_view_audit_info("leave")

    def test_super_admin_outside_support_mode_has_no_org_access(self):
        mirror = PermissionMirror(super_admin_profile())
        assert not mirror.is_impersonating
        assert not mirror.can_read("employees")

    def test_support_mode_restrictions(self):
        mirror = PermissionMirror(super_admin_profile(), impersonated_organization_id="org-1")
        assert mirror.is_impersonating
        assert mirror.can_read("recruitment")
        assert mirror.can_write("employees")
        assert not mirror.can_delete("employees")
        assert not mirror.can_export("employees")
        assert mirror.can_view_audit_info("employees")

    def test_support_mode_uses_platform_role(self):
        profile = super_admin_profile([{"module_code": "employees", "can_read": True}], role_id="ops")
        mirror = PermissionMirror(profile, impersonated_organization_id="org-1")
        assert mirror.can_read("employees")
        assert not mirror.can_write("employees")

    def test_org_user_cannot_impersonate(self):
        mirror = PermissionMirror(org_profile(), impersonated_organization_id="org-2")
        assert not mirror.is_impersonating


# ============================================================================
# TEST SUITE: PROFILE STORE
# ============================================================================

class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestProfileStore:

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def loads(self):
        return []

    @pytest.fixture
    def store(self, clock, loads):
        def loader():
            loads.append(clock.now)
            return org_profile()
        return ProfileStore(loader, ttl_seconds=30, clock=clock)

    def test_get_reuses_fresh_profile(self, store, loads, clock):
        store.get()
        clock.now += 29
        store.get()
        assert len(loads) == 1

    def test_get_reloads_after_ttl(self, store, loads, clock):
        store.get()
        clock.now += 30
        store.get()
        assert len(loads) == 2

    def test_refresh_on_focus_only_when_stale(self, store, loads, clock):
        store.get()
        assert store.refresh_on_focus() is None
        clock.now += 31
        assert store.refresh_on_focus() is not None
        assert len(loads) == 2

    def test_invalidate_forces_reload(self, store, loads):
        store.get()
        store.invalidate()
        assert store.poll_due()
        store.get()
        assert len(loads) == 2

    def test_poll_due(self, store, clock):
        assert store.poll_due()
        store.get()
        assert not store.poll_due()
        clock.now += 30
        assert store.poll_due()

    def test_mirror_uses_cached_profile(self, store):
        assert isinstance(store.mirror(), PermissionMirror)


# ============================================================================
# TEST SUITE: HTTP CLIENT
# ============================================================================

class TestHRAdminClient:

    def make(self, handler, **kwargs):
        http = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://hr.test")
        return HRAdminClient("http://hr.test", http_client=http, **kwargs)

    def test_unwraps_envelope_and_sends_headers(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            seen["impersonate"] = request.headers.get(IMPERSONATION_HEADER)
            return httpx.Response(200, json={"success": True, "message": "ok", "data": [1, 2]})

        client = self.make(handler, token="abc", impersonate_org="acme")
        assert client.get("/api/v1/acme/roles") == [1, 2]
        assert seen == {"auth": "Bearer abc", "impersonate": "acme"}

    def test_failure_envelope_raises(self):
        def handler(request):
            return httpx.Response(
                403,
                json={"success": False, "message": "Nope", "code": "module_disabled"},
            )

        with pytest.raises(ClientAPIError) as exc_info:
            self.make(handler).get("/api/v1/acme/recruitment/candidates")
        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "module_disabled"
        assert exc_info.value.message == "Nope"

    def test_non_json_body(self):
        def handler(request):
            return httpx.Response(502, text="Bad gateway")

        with pytest.raises(ClientAPIError) as exc_info:
            self.make(handler).get("/health")
        assert exc_info.value.code == "invalid_response"

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ClientAPIError) as exc_info:
            self.make(handler).get("/health")
        assert exc_info.value.status_code == 0

    def test_login_stores_tokens(self):
        def handler(request):
            body = json.loads(request.content)
            assert body == {"email": "a@b.test", "password": "pw", "org_slug": "acme"}
            return httpx.Response(
                200,
                json={"success": True, "data": {"token": "t1", "refresh_token": "r1", "user": {}}},
            )

        client = self.make(handler)
        client.login("a@b.test", "pw", org_slug="acme")
        assert client.token == "t1"
        assert client.refresh_token == "r1"

    def test_refresh_without_token(self):
        client = self.make(lambda request: httpx.Response(500))
        with pytest.raises(ClientAPIError):
            client.refresh()


# ============================================================================
# TEST SUITE: MIRROR AGREES WITH SERVER
# ============================================================================

@pytest.mark.security
class TestMirrorAgainstServer:

    def test_org_user_decisions_match(self, client, make_org, make_role, make_user):
        org, _ = make_org("acme")
        role = make_role(org.id, {"employees": {"read": True}, "master_data": {"read": True}}, code="clerk")
        user = make_user(organization=org, role=role)

        api = HRAdminClient("http://testserver", http_client=client)
        api.login(user.email, TEST_PASSWORD, org_slug="acme")
        mirror = api.profile.mirror()

        assert mirror.can_read("employees")
        assert api.get("/api/v1/acme/employees") == []

        assert not mirror.can_write("master_data")
        with pytest.raises(ClientAPIError) as exc_info:
            api.post("/api/v1/acme/master-data/branches", json={"name": "HQ"})
        assert exc_info.value.status_code == 403

    def test_support_mode_decisions_match(self, client, make_org, super_admin):
        org, _ = make_org("acme")
        api = HRAdminClient("http://testserver", http_client=client)
        api.login(super_admin.email, TEST_PASSWORD)
        api.impersonate("acme")
        mirror = api.profile.mirror(impersonated_organization_id=org.id)

        assert mirror.can_read("employees")
        assert api.get("/api/v1/acme/employees") == []

        assert not mirror.can_export("employees")
        with pytest.raises(ClientAPIError) as exc_info:
            api.get("/api/v1/acme/employees/export")
        assert exc_info.value.message == "Delete and export operations are restricted in support mode"
