"""
Projects API — companies, HR projects and the four-step workflow.

Tests cover:
  - Company creation / visibility
  - Project creation and derived workflow state
  - Step save / start / submit / verify, forward-only and current-step rules
  - Survey gate on the diagnosis, CEO verification, whole-system lock
  - Mails sent on submit / unlock / lock (EmailLog)
"""

from pathfinder.models import db
from pathfinder.models.audit import AuditLog
from pathfinder.models.auth import Company
from pathfinder.models.catalog import IndustryCategory
from pathfinder.models.notification import EmailLog
from pathfinder.models.project import CeoPhilosophy, HrProject, StepStatus
from pathfinder.utils.helpers import utcnow


def _url(project, suffix=""):
    return f"/api/v1/projects/{project.id}{suffix}"


def _complete_philosophy(project, ceo):
    db.session.add(CeoPhilosophy(hr_project_id=project.id, user_id=ceo.id, completed_at=utcnow()))
    db.session.commit()


# ═══════════════════════════════════════════════════════════════
# BLOCK 1: Companies
# ═══════════════════════════════════════════════════════════════

class TestCompanies:
    def test_create_company(self, client, hr_manager, auth_headers):
        industry = IndustryCategory(name="Manufacturing", order=1)
        db.session.add(industry)
        db.session.commit()

        res = client.post("/api/v1/companies", json={"name": "  Globex  ", "industry_category_id": industry.id},
                          headers=auth_headers(hr_manager))
        assert res.status_code == 201
        body = res.get_json()
        assert body["name"] == "Globex"
        company = db.session.get(Company, body["id"])
        assert company.is_member(hr_manager, "hr_manager")

    def test_create_company_requires_name(self, client, hr_manager, auth_headers):
        res = client.post("/api/v1/companies", json={}, headers=auth_headers(hr_manager))
        assert res.status_code == 422
        assert "name" in res.get_json()["details"]

    def test_unknown_industry(self, client, hr_manager, auth_headers):
        res = client.post("/api/v1/companies", json={"name": "X", "industry_category_id": 999},
                          headers=auth_headers(hr_manager))
        assert res.status_code == 422

    def test_ceo_cannot_create_company(self, client, ceo, auth_headers):
        res = client.post("/api/v1/companies", json={"name": "X"}, headers=auth_headers(ceo))
        assert res.status_code == 403

    def test_company_detail(self, client, company, project, ceo, auth_headers):
        res = client.get(f"/api/v1/companies/{company.id}", headers=auth_headers(ceo))
        assert res.status_code == 200
        body = res.get_json()
        assert [u["email"] for u in body["ceos"]] == ["ceo@acme.test"]
        assert [u["email"] for u in body["hr_managers"]] == ["hr@acme.test"]
        assert body["projects"][0]["id"] == project.id

    def test_outsider_cannot_view(self, client, company, make_user, auth_headers):
        outsider = make_user("other@else.test")
        res = client.get(f"/api/v1/companies/{company.id}", headers=auth_headers(outsider))
        assert res.status_code == 403

    def test_consultant_can_view(self, client, company, consultant, auth_headers):
        res = client.get(f"/api/v1/companies/{company.id}", headers=auth_headers(consultant))
        assert res.status_code == 200

    def test_unknown_company(self, client, hr_manager, auth_headers):
        res = client.get("/api/v1/companies/404", headers=auth_headers(hr_manager))
        assert res.status_code == 404

    def test_industries_list(self, client, hr_manager, auth_headers):
        db.session.add(IndustryCategory(name="Retail", order=2))
        db.session.add(IndustryCategory(name="Finance", order=1))
        db.session.commit()
        res = client.get("/api/v1/industries", headers=auth_headers(hr_manager))
        assert [i["name"] for i in res.get_json()] == ["Finance", "Retail"]


# ═══════════════════════════════════════════════════════════════
# BLOCK 2: Projects & step transitions
# ═══════════════════════════════════════════════════════════════

class TestProjects:
    def test_create_project(self, client, company, hr_manager, auth_headers):
        res = client.post(f"/api/v1/companies/{company.id}/projects", headers=auth_headers(hr_manager))
        assert res.status_code == 201
        body = res.get_json()
        assert body["project"]["step_statuses"] == {
            "diagnosis": "not_started", "organization": "not_started",
            "performance": "not_started", "compensation": "not_started",
        }
        assert body["workflow"]["current_step"] == "diagnosis"
        assert body["workflow"]["progress"] == 0

    def test_hr_manager_of_other_company_cannot_create(self, client, company, make_user, auth_headers):
        other = make_user("hr2@else.test")
        res = client.post(f"/api/v1/companies/{company.id}/projects", headers=auth_headers(other))
        assert res.status_code == 403

    def test_get_project(self, client, project, ceo, auth_headers):
        res = client.get(_url(project), headers=auth_headers(ceo))
        assert res.status_code == 200
        body = res.get_json()
        assert body["step_data"] == {}
        steps = body["workflow"]["steps"]
        assert [s["state"] for s in steps] == ["current", "locked", "locked", "locked"]
        assert steps[0]["badge"] == {"label": "Not Started", "variant": "outline"}

    def test_save_step_data_starts_step(self, client, project, hr_manager, auth_headers):
        res = client.put(_url(project, "/steps/diagnosis"), json={"data": {"headcount": 120}},
                         headers=auth_headers(hr_manager))
        assert res.status_code == 200
        db.session.refresh(project)
        assert project.step_statuses["diagnosis"] == "in_progress"
        assert project.step_data == {"diagnosis": {"headcount": 120}}

    def test_save_locked_step_conflicts(self, client, project, hr_manager, auth_headers):
        res = client.put(_url(project, "/steps/organization"), json={"data": {}},
                         headers=auth_headers(hr_manager))
        assert res.status_code == 409

    def test_unknown_step(self, client, project, hr_manager, auth_headers):
        res = client.post(_url(project, "/steps/payroll/start"), headers=auth_headers(hr_manager))
        assert res.status_code == 404

    def test_start_twice_conflicts(self, client, project, hr_manager, auth_headers):
        assert client.post(_url(project, "/steps/diagnosis/start"), headers=auth_headers(hr_manager)).status_code == 200
        res = client.post(_url(project, "/steps/diagnosis/start"), headers=auth_headers(hr_manager))
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"

    def test_submit_mails_ceo(self, client, project, hr_manager, ceo, auth_headers):
        res = client.post(_url(project, "/steps/diagnosis/submit"), headers=auth_headers(hr_manager))
        assert res.status_code == 200
        assert res.get_json()["project"]["step_statuses"]["diagnosis"] == "submitted"

        types = {log.notification_type: log for log in EmailLog.query.all()}
        assert types["StepSubmittedNotification"].delivery_mode == "sync"
        assert types["StepSubmittedNotification"].recipient_email == ceo.email
        assert types["DiagnosisSubmittedNotification"].delivery_mode == "queued"
        assert AuditLog.query.filter_by(action="step.submit").count() == 1

    def test_ceo_cannot_submit(self, client, project, ceo, auth_headers):
        res = client.post(_url(project, "/steps/diagnosis/submit"), headers=auth_headers(ceo))
        assert res.status_code == 403

    def test_resubmit_conflicts(self, client, project, hr_manager, auth_headers):
        client.post(_url(project, "/steps/diagnosis/submit"), headers=auth_headers(hr_manager))
        res = client.post(_url(project, "/steps/diagnosis/submit"), headers=auth_headers(hr_manager))
        assert res.status_code == 409

    def test_verify_diagnosis_needs_survey(self, client, project, hr_manager, ceo, auth_headers):
        client.post(_url(project, "/steps/diagnosis/submit"), headers=auth_headers(hr_manager))
        res = client.post(_url(project, "/steps/diagnosis/verify"), headers=auth_headers(ceo))
        assert res.status_code == 409
        assert "Philosophy Survey" in res.get_json()["error"]

    def test_verify_unsubmitted_step(self, client, project, ceo, auth_headers):
        res = client.post(_url(project, "/steps/diagnosis/verify"), headers=auth_headers(ceo))
        assert res.status_code == 409

    def test_verify_diagnosis_unlocks_organization(self, client, project, hr_manager, ceo, auth_headers):
        client.post(_url(project, "/steps/diagnosis/submit"), headers=auth_headers(hr_manager))
        _complete_philosophy(project, ceo)

        res = client.post(_url(project, "/steps/diagnosis/verify"), headers=auth_headers(ceo))
        assert res.status_code == 200
        body = res.get_json()
        assert body["unlocked_step"] == "organization"
        assert body["project"]["step_statuses"]["diagnosis"] == "locked"
        assert body["project"]["step_statuses"]["organization"] == "in_progress"
        assert body["workflow"]["current_step"] == "organization"

        unlocked = EmailLog.query.filter_by(notification_type="StepUnlockedNotification").one()
        assert unlocked.recipient_email == hr_manager.email
        assert unlocked.subject == "Diagnosis – Step 1 Verified – Organization Design – Step 2 Unlocked"

    def test_full_run_and_lock(self, client, project, hr_manager, ceo, auth_headers):
        hr, boss = auth_headers(hr_manager), auth_headers(ceo)
        client.post(_url(project, "/steps/diagnosis/submit"), headers=hr)
        _complete_philosophy(project, ceo)
        client.post(_url(project, "/steps/diagnosis/verify"), headers=boss)

        for step in ("organization", "performance"):
            assert client.post(_url(project, f"/steps/{step}/submit"), headers=hr).status_code == 200
            assert client.post(_url(project, f"/steps/{step}/verify"), headers=boss).status_code == 200
        assert client.post(_url(project, "/steps/compensation/submit"), headers=hr).status_code == 200

        res = client.get(_url(project, "/workflow"), headers=hr)
        assert res.get_json()["show_overview_cta"] is True

        res = client.post(_url(project, "/lock"), headers=boss)
        assert res.status_code == 200
        body = res.get_json()
        assert body["project"]["status"] == "locked"
        assert set(body["project"]["step_statuses"].values()) == {"locked"}
        assert body["project"]["ceo_philosophy_status"] == "locked"
        assert EmailLog.query.filter_by(notification_type="SystemLockedNotification").count() == 1

        res = client.put(_url(project, "/steps/compensation"), json={"data": {}}, headers=hr)
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_PROJECT_LOCKED"

    def test_lock_requires_all_steps(self, client, project, ceo, auth_headers):
        res = client.post(_url(project, "/lock"), headers=auth_headers(ceo))
        assert res.status_code == 409
        assert "diagnosis" in res.get_json()["error"]

    def test_workflow_raw_statuses_and_names(self, client, project, hr_manager, auth_headers):
        project.set_step_status("diagnosis", StepStatus.COMPLETED)
        db.session.commit()
        res = client.get(_url(project, "/workflow"), headers=auth_headers(hr_manager))
        body = res.get_json()
        assert body["raw_statuses"]["diagnosis"] == "completed"
        assert body["step_names"]["compensation"] == "Compensation System – Step 4"
        assert body["steps"][0]["state"] == "completed"
        assert body["steps"][1]["state"] == "locked"

    def test_unknown_project(self, client, hr_manager, auth_headers):
        assert client.get("/api/v1/projects/999", headers=auth_headers(hr_manager)).status_code == 404


def test_project_cascade_with_company(project, company):
    db.session.delete(company)
    db.session.commit()
    assert HrProject.query.count() == 0
