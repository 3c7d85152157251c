"""
Candidate status derivation and the recruitment pipeline API.
"""

import pytest

from hr_admin.models.recruitment import CandidateStatus
from hr_admin.services.recruitment_service import derive_candidate_status


@pytest.mark.parametrize(
    "statuses, expected",
    [
        ([], CandidateStatus.NEW),
        (["Applied"], CandidateStatus.IN_PROCESS),
        (["Rejected", "Interview Scheduled"], CandidateStatus.IN_PROCESS),
        (["Rejected", "Selected"], CandidateStatus.SELECTED),
        (["Shortlisted", "Selected"], CandidateStatus.SELECTED),
        (["Rejected", "Rejected"], CandidateStatus.REJECTED),
    ],
)
def test_derive_candidate_status(statuses, expected):
    assert derive_candidate_status(statuses) is expected


def test_unknown_status_rejected():
    with pytest.raises(ValueError):
        derive_candidate_status(["Hired"])


class TestPipeline:

    @pytest.fixture
    def acme(self, make_org):
        return make_org("acme")

    @pytest.fixture
    def headers(self, acme, headers_for):
        _, admin = acme
        return headers_for(admin)

    def candidate(self, client, headers, email="ann@example.test"):
        resp = client.post(
            "/api/v1/acme/recruitment/candidates",
            json={"first_name": "Ann", "email": email},
            headers=headers,
        )
        assert resp.status_code == 201, resp.json()
        return resp.json()["data"]

    def apply(self, client, headers, candidate_id, job_title="Engineer", **extra):
        resp = client.post(
            "/api/v1/acme/recruitment/applications",
            json={"candidate_id": candidate_id, "job_title": job_title, **extra},
            headers=headers,
        )
        assert resp.status_code == 201, resp.json()
        return resp.json()["data"]

    def status_of(self, client, headers, candidate_id):
        return client.get(f"/api/v1/acme/recruitment/candidates/{candidate_id}", headers=headers).json()["data"]["status"]

    def test_new_candidate_starts_new(self, client, headers):
        assert self.candidate(client, headers)["status"] == "New"

    def test_status_follows_applications(self, client, headers):
        cand = self.candidate(client, headers)
        first = self.apply(client, headers, cand["id"])
        assert self.status_of(client, headers, cand["id"]) == "In Process"

        resp = client.put(
            f"/api/v1/acme/recruitment/applications/{first['id']}",
            json={"status": "Rejected"},
            headers=headers,
        )
        assert resp.json()["data"]["candidate_status"] == "Rejected"

        second = self.apply(client, headers, cand["id"], job_title="Analyst", status="Selected")
        assert self.status_of(client, headers, cand["id"]) == "Selected"

        client.delete(f"/api/v1/acme/recruitment/applications/{second['id']}", headers=headers)
        assert self.status_of(client, headers, cand["id"]) == "Rejected"

    def test_removing_last_application_resets_to_new(self, client, headers):
        cand = self.candidate(client, headers)
        app = self.apply(client, headers, cand["id"])
        client.delete(f"/api/v1/acme/recruitment/applications/{app['id']}", headers=headers)
        assert self.status_of(client, headers, cand["id"]) == "New"

    def test_invalid_application_status(self, client, headers):
        cand = self.candidate(client, headers)
        resp = client.post(
            "/api/v1/acme/recruitment/applications",
            json={"candidate_id": cand["id"], "job_title": "Engineer", "status": "Hired"},
            headers=headers,
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_status"

    def test_duplicate_candidate_email(self, client, headers):
        self.candidate(client, headers)
        resp = client.post(
            "/api/v1/acme/recruitment/candidates",
            json={"first_name": "Ann", "email": "ANN@example.test"},
            headers=headers,
        )
        assert resp.status_code == 409

    def test_filter_candidates_by_status(self, client, headers):
        busy = self.candidate(client, headers)
        self.candidate(client, headers, email="bob@example.test")
        self.apply(client, headers, busy["id"])

        resp = client.get("/api/v1/acme/recruitment/candidates", params={"status": "In Process"}, headers=headers)
        assert [c["id"] for c in resp.json()["data"]] == [busy["id"]]

    def test_audit_fields_follow_approve_grant(self, client, headers, acme, make_role, make_user, headers_for):
        org, admin = acme
        cand = self.candidate(client, headers)
        path = f"/api/v1/acme/recruitment/candidates/{cand['id']}"

        approver = client.get(path, headers=headers).json()["data"]
        assert approver["created_by"] == admin.id

        reader_role = make_role(org.id, {"recruitment": {"read": True}}, code="recruiter")
        reader = make_user(organization=org, role=reader_role)
        data = client.get(path, headers=headers_for(reader)).json()["data"]
        assert "created_by" not in data
        assert "updated_by" not in data
