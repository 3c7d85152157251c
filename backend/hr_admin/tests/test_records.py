"""
Tenant-scoped records: master data and employees, plus the health check.
"""

import pytest


@pytest.fixture
def acme(make_org):
    return make_org("acme")


@pytest.fixture
def headers(acme, headers_for):
    return headers_for(acme[1])


def test_health_is_public(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


class TestMasterData:

    def test_crud_cycle(self, client, headers):
        base = "/api/v1/acme/master-data/departments"
        created = client.post(base, json={"name": "Finance", "code": "FIN"}, headers=headers).json()["data"]

        updated = client.put(f"{base}/{created['id']}", json={"name": "Finance & Tax"}, headers=headers)
        assert updated.json()["data"]["name"] == "Finance & Tax"

        assert [r["id"] for r in client.get(base, headers=headers).json()["data"]] == [created["id"]]
        assert client.delete(f"{base}/{created['id']}", headers=headers).status_code == 200
        assert client.get(f"{base}/{created['id']}", headers=headers).status_code == 404

    def test_duplicate_code_conflicts(self, client, headers):
        base = "/api/v1/acme/master-data/branches"
        client.post(base, json={"name": "HQ", "code": "HQ"}, headers=headers)
        resp = client.post(base, json={"name": "Head Office", "code": "HQ"}, headers=headers)
        assert resp.status_code == 409

    def test_platform_resource_not_served_to_organizations(self, client, headers):
        assert client.get("/api/v1/acme/master-data/countries", headers=headers).status_code == 404

    def test_unknown_resource(self, client, headers):
        resp = client.get("/api/v1/acme/master-data/widgets", headers=headers)
        assert resp.status_code == 404

    @pytest.mark.security
    def test_records_are_isolated_per_organization(self, client, headers, make_org, headers_for):
        created = client.post(
            "/api/v1/acme/master-data/departments", json={"name": "Finance"}, headers=headers
        ).json()["data"]
        _, beta_admin = make_org("beta")
        beta_headers = headers_for(beta_admin)

        assert client.get("/api/v1/beta/master-data/departments", headers=beta_headers).json()["data"] == []
        resp = client.get(f"/api/v1/beta/master-data/departments/{created['id']}", headers=beta_headers)
        assert resp.status_code == 404

    def test_platform_master_data(self, client, super_admin, headers_for):
        headers = headers_for(super_admin)
        resp = client.post("/api/v1/superadmin/master-data/countries", json={"name": "India", "code": "IN"}, headers=headers)
        assert resp.status_code == 201
        assert client.get("/api/v1/superadmin/master-data/departments", headers=headers).status_code == 404


class TestEmployees:

    def department(self, client, headers, name="Engineering"):
        return client.post(
            "/api/v1/acme/master-data/departments", json={"name": name}, headers=headers
        ).json()["data"]

    def test_create_with_department(self, client, headers):
        dept = self.department(client, headers)
        resp = client.post(
            "/api/v1/acme/employees",
            json={"employee_code": "E001", "first_name": "Ada", "department_id": dept["id"]},
            headers=headers,
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["department_id"] == dept["id"]

    def test_department_of_another_organization_rejected(self, client, headers, make_org, headers_for):
        _, beta_admin = make_org("beta")
        foreign = client.post(
            "/api/v1/beta/master-data/departments", json={"name": "Ops"}, headers=headers_for(beta_admin)
        ).json()["data"]
        resp = client.post(
            "/api/v1/acme/employees",
            json={"employee_code": "E001", "first_name": "Ada", "department_id": foreign["id"]},
            headers=headers,
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_department"

    def test_duplicate_employee_code(self, client, headers):
        body = {"employee_code": "E001", "first_name": "Ada"}
        client.post("/api/v1/acme/employees", json=body, headers=headers)
        assert client.post("/api/v1/acme/employees", json=body, headers=headers).status_code == 409

    def test_export_resolves_department_names(self, client, headers):
        dept = self.department(client, headers)
        client.post(
            "/api/v1/acme/employees",
            json={"employee_code": "E001", "first_name": "Ada", "department_id": dept["id"]},
            headers=headers,
        )
        rows = client.get("/api/v1/acme/employees/export", headers=headers).json()["data"]
        assert rows[0]["department"] == "Engineering"

    def test_update_and_delete(self, client, headers):
        emp = client.post(
            "/api/v1/acme/employees", json={"employee_code": "E001", "first_name": "Ada"}, headers=headers
        ).json()["data"]
        resp = client.put(f"/api/v1/acme/employees/{emp['id']}", json={"status": "exited"}, headers=headers)
        assert resp.json()["data"]["status"] == "exited"

        bad = client.put(f"/api/v1/acme/employees/{emp['id']}", json={"status": "gone"}, headers=headers)
        assert bad.status_code == 400

        assert client.delete(f"/api/v1/acme/employees/{emp['id']}", headers=headers).status_code == 200

    def employee(self, client, headers, code):
        return client.post(
            "/api/v1/acme/employees", json={"employee_code": code, "first_name": "Ada"}, headers=headers
        ).json()["data"]

    def test_bulk_status_update(self, client, headers):
        ids = [self.employee(client, headers, code)["id"] for code in ("E001", "E002")]
        resp = client.patch(
            "/api/v1/acme/employees/bulk-status",
            json={"employee_ids": ids + ids[:1], "status": "inactive"},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"] == {"count": 2}
        for employee_id in ids:
            emp = client.get(f"/api/v1/acme/employees/{employee_id}", headers=headers).json()["data"]
            assert emp["status"] == "inactive"

    @pytest.mark.security
    def test_bulk_status_rejects_foreign_employee(self, client, headers, make_org, headers_for):
        mine = self.employee(client, headers, "E001")
        _, beta_admin = make_org("beta")
        foreign = client.post(
            "/api/v1/beta/employees", json={"employee_code": "B001", "first_name": "Bo"}, headers=headers_for(beta_admin)
        ).json()["data"]

        resp = client.patch(
            "/api/v1/acme/employees/bulk-status",
            json={"employee_ids": [mine["id"], foreign["id"]], "status": "exited"},
            headers=headers,
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "employees_not_found"
        emp = client.get(f"/api/v1/acme/employees/{mine['id']}", headers=headers).json()["data"]
        assert emp["status"] == "active"

    @pytest.mark.parametrize(
        "body, code",
        [
            ({"employee_ids": [], "status": "inactive"}, "employee_ids_required"),
            ({"employee_ids": ["x"], "status": "gone"}, "invalid_status"),
        ],
    )
    def test_bulk_status_validation(self, client, headers, body, code):
        resp = client.patch("/api/v1/acme/employees/bulk-status", json=body, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["code"] == code
