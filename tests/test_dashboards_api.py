"""Role dashboards."""

from pathfinder.models import db
from pathfinder.models.auth import CeoRoleRequest
from pathfinder.models.project import StepStatus


def _submit_diagnosis(project):
    project.set_step_status("diagnosis", StepStatus.SUBMITTED)
    db.session.commit()


class TestHrManagerDashboard:
    def test_no_company(self, client, make_user, auth_headers):
        user = make_user("fresh@acme.test")
        body = client.get("/api/v1/dashboard/hr-manager", headers=auth_headers(user)).get_json()
        assert body["current_company"] is None
        assert body["project"] is None
        assert body["current_step_number"] == 1
        assert body["stats"]["total_companies"] == 0

    def test_progress(self, client, project, hr_manager, auth_headers):
        _submit_diagnosis(project)
        body = client.get("/api/v1/dashboard/hr-manager", headers=auth_headers(hr_manager)).get_json()
        assert body["current_company"]["name"] == "Acme Manufacturing"
        assert body["progress_count"] == 1
        assert body["current_step_number"] == 2
        assert body["verified_steps"]["diagnosis"] is False
        assert body["has_ceo"] is True
        assert body["smtp_configured"] is False
        assert body["companies"][0]["overall_status"] == "in_progress"

    def test_ceo_forbidden(self, client, ceo, auth_headers):
        assert client.get("/api/v1/dashboard/hr-manager", headers=auth_headers(ceo)).status_code == 403


class TestCeoDashboard:
    def test_no_company(self, client, make_user, auth_headers):
        lonely = make_user("lonely@acme.test", roles=["ceo"])
        body = client.get("/api/v1/dashboard/ceo", headers=auth_headers(lonely)).get_json()
        assert body["no_company"] is True
        assert body["pending_verifications"] == []

    def test_pending_verification_and_survey_prompt(self, client, project, ceo, auth_headers):
        _submit_diagnosis(project)
        body = client.get("/api/v1/dashboard/ceo", headers=auth_headers(ceo)).get_json()
        assert body["no_company"] is False
        [pending] = body["pending_verifications"]
        assert pending["submitted_steps"] == ["diagnosis"]
        assert [p["id"] for p in body["survey_required"]] == [project.id]
        assert body["stats"]["pending_verifications"] == 1


class TestConsultantDashboard:
    def test_overview(self, client, project, consultant, auth_headers):
        _submit_diagnosis(project)
        body = client.get("/api/v1/dashboard/consultant", headers=auth_headers(consultant)).get_json()
        assert [c["name"] for c in body["active_companies"]] == ["Acme Manufacturing"]
        assert body["workflow_status"] == {"step1": 1, "step2": 0, "step3": 0, "step4": 0}
        assert body["stats"]["steps_complete"] == "0/1"
        assert body["stats"]["ceo_survey_status"] == "pending"

    def test_admin_allowed(self, client, admin_user, auth_headers):
        assert client.get("/api/v1/dashboard/consultant", headers=auth_headers(admin_user)).status_code == 200

    def test_hr_manager_forbidden(self, client, hr_manager, auth_headers):
        assert client.get("/api/v1/dashboard/consultant", headers=auth_headers(hr_manager)).status_code == 403


class TestAdminDashboard:
    def test_counters(self, client, company, project, hr_manager, admin_user, auth_headers):
        _submit_diagnosis(project)
        db.session.add(CeoRoleRequest(user_id=hr_manager.id, company_id=company.id, status="pending"))
        db.session.commit()

        body = client.get("/api/v1/dashboard/admin", headers=auth_headers(admin_user)).get_json()
        stats = body["stats"]
        assert stats["total_projects"] == 1
        assert stats["total_companies"] == 1
        assert stats["pending_diagnosis"] == 1
        assert stats["pending_ceo_survey"] == 1
        assert stats["pending_ceo_role_requests"] == 1
        assert [p["id"] for p in body["recent_projects"]] == [project.id]
