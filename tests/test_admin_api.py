"""
Admin API Tests — reference-data maintenance.

Test blocks:
  1. Access control
  2. Industries & subcategories
  3. CEO survey questions (incl. reorder)
  4. Performance snapshot questions (incl. reorder)
  5. HR issues
  6. Compensation snapshot questions
  7. CEO accounts
"""

import pytest

from pathfinder.models import db
from pathfinder.models.audit import AuditLog
from pathfinder.models.auth import ROLE_CEO, ROLE_HR_MANAGER, CompanyMember, User
from pathfinder.models.catalog import (
    CompensationSnapshotQuestion,
    DiagnosisQuestion,
    HrIssue,
    IndustryCategory,
    IndustrySubCategory,
    PerformanceSnapshotQuestion,
)
from pathfinder.models.invitation import CompanyInvitation
from pathfinder.models.notification import EmailLog


@pytest.fixture()
def admin(admin_user, auth_headers):
    """Bearer headers of the admin."""
    return auth_headers(admin_user)


def _question(category="general", text="What drives growth?", order=1, **kw):
    q = DiagnosisQuestion(category=category, question_text=text, question_type="text", order=order, **kw)
    db.session.add(q)
    db.session.commit()
    return q


# ═══════════════════════════════════════════════════════════════
# BLOCK 1: Access control
# ═══════════════════════════════════════════════════════════════

class TestAccess:
    @pytest.mark.parametrize("path", [
        "/api/v1/admin/industries",
        "/api/v1/admin/ceo-questions",
        "/api/v1/admin/performance-snapshot-questions",
        "/api/v1/admin/compensation-snapshot-questions",
        "/api/v1/admin/hr-issues",
        "/api/v1/admin/ceos",
    ])
    def test_non_admin_forbidden(self, client, hr_manager, auth_headers, path):
        assert client.get(path, headers=auth_headers(hr_manager)).status_code == 403

    def test_anonymous_unauthorized(self, client):
        assert client.get("/api/v1/admin/industries").status_code == 401


# ═══════════════════════════════════════════════════════════════
# BLOCK 2: Industries
# ═══════════════════════════════════════════════════════════════

class TestIndustries:
    def test_create_defaults_order(self, client, admin):
        first = client.post("/api/v1/admin/industries", json={"name": "Retail"}, headers=admin)
        second = client.post("/api/v1/admin/industries", json={"name": "Finance"}, headers=admin)
        assert first.status_code == 201
        assert (first.get_json()["order"], second.get_json()["order"]) == (1, 2)
        assert AuditLog.query.filter_by(action="catalog.create").count() == 2

    def test_create_requires_name(self, client, admin):
        res = client.post("/api/v1/admin/industries", json={"name": "  "}, headers=admin)
        assert res.status_code == 422
        assert "name" in res.get_json()["details"]

    def test_partial_update(self, client, admin):
        industry = IndustryCategory(name="Retail", order=3)
        db.session.add(industry)
        db.session.commit()

        res = client.put(f"/api/v1/admin/industries/{industry.id}", json={"order": 1}, headers=admin)
        assert res.status_code == 200
        body = res.get_json()
        assert (body["name"], body["order"]) == ("Retail", 1)
        log = AuditLog.query.filter_by(action="catalog.update").one()
        assert log.diff == {"order": {"old": 3, "new": 1}}

    def test_subcategories(self, client, admin):
        industry = IndustryCategory(name="Manufacturing", order=1)
        db.session.add(industry)
        db.session.commit()

        res = client.post(f"/api/v1/admin/industries/{industry.id}/subcategories",
                          json={"name": "Automotive"}, headers=admin)
        assert res.status_code == 201
        sub_id = res.get_json()["id"]

        res = client.get(f"/api/v1/admin/industries/{industry.id}", headers=admin)
        assert [s["name"] for s in res.get_json()["subcategories"]] == ["Automotive"]

        res = client.delete(f"/api/v1/admin/subcategories/{sub_id}?confirm=true", headers=admin)
        assert res.status_code == 200
        assert db.session.get(IndustrySubCategory, sub_id) is None

    def test_delete_requires_confirmation(self, client, admin):
        industry = IndustryCategory(name="Retail", order=1)
        db.session.add(industry)
        db.session.commit()

        res = client.delete(f"/api/v1/admin/industries/{industry.id}", headers=admin)
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_CONFIRMATION_REQUIRED"
        assert db.session.get(IndustryCategory, industry.id) is not None

        res = client.delete(f"/api/v1/admin/industries/{industry.id}?confirm=true", headers=admin)
        assert res.status_code == 200
        assert IndustryCategory.query.count() == 0

    def test_unknown_industry(self, client, admin):
        assert client.get("/api/v1/admin/industries/999", headers=admin).status_code == 404


# ═══════════════════════════════════════════════════════════════
# BLOCK 3: CEO survey questions
# ═══════════════════════════════════════════════════════════════

class TestCeoQuestions:
    def test_list_with_filter(self, client, admin):
        _question("general", "Q1")
        _question("leadership", "Q2")
        res = client.get("/api/v1/admin/ceo-questions?category=leadership", headers=admin)
        body = res.get_json()
        assert [q["question_text"] for q in body["questions"]] == ["Q2"]
        assert body["current_category"] == "leadership"
        assert "likert" in body["question_types"]
        assert "management_philosophy" in body["categories"]

    def test_create_normalizes_options(self, client, admin):
        res = client.post("/api/v1/admin/ceo-questions", json={
            "category": "growth_stage",
            "question_text": "Which stage are you in?",
            "question_type": "select",
            "options": ["Startup", {"value": "scale", "label": "Scale-up"}, "Startup"],
            "metadata": {"help": "Pick one"},
        }, headers=admin)
        assert res.status_code == 201
        body = res.get_json()
        assert body["options"] == [
            {"value": "Startup", "label": "Startup"},
            {"value": "scale", "label": "Scale-up"},
        ]
        assert body["metadata"] == {"help": "Pick one"}
        assert body["is_active"] is True
        assert body["order"] == 1

    def test_create_invalid_category(self, client, admin):
        res = client.post("/api/v1/admin/ceo-questions", json={
            "category": "astrology", "question_text": "?", "question_type": "text",
        }, headers=admin)
        assert res.status_code == 422
        assert "category" in res.get_json()["details"]

    def test_update_keeps_unspecified_fields(self, client, admin):
        q = _question(options=[{"value": "a", "label": "A"}])
        res = client.put(f"/api/v1/admin/ceo-questions/{q.id}", json={"is_active": False}, headers=admin)
        assert res.status_code == 200
        body = res.get_json()
        assert body["is_active"] is False
        assert body["question_text"] == "What drives growth?"
        assert body["options"] == [{"value": "a", "label": "A"}]

    def test_reorder(self, client, admin):
        a, b = _question(text="A", order=1), _question(text="B", order=2)
        res = client.post("/api/v1/admin/ceo-questions/reorder",
                          json={"questions": [{"id": a.id, "order": 2}, {"id": b.id, "order": 1}]},
                          headers=admin)
        assert res.get_json() == {"success": True, "updated": 2}
        res = client.get("/api/v1/admin/ceo-questions", headers=admin)
        assert [q["question_text"] for q in res.get_json()["questions"]] == ["B", "A"]

    def test_reorder_unknown_id_changes_nothing(self, client, admin):
        a = _question(order=1)
        res = client.post("/api/v1/admin/ceo-questions/reorder",
                          json={"questions": [{"id": a.id, "order": 5}, {"id": 999, "order": 1}]},
                          headers=admin)
        assert res.status_code == 422
        assert "questions.1.id" in res.get_json()["details"]
        db.session.refresh(a)
        assert a.order == 1

    def test_delete(self, client, admin):
        q = _question()
        assert client.delete(f"/api/v1/admin/ceo-questions/{q.id}", headers=admin).status_code == 400
        assert client.delete(f"/api/v1/admin/ceo-questions/{q.id}?confirm=1", headers=admin).status_code == 200
        assert DiagnosisQuestion.query.count() == 0


# ═══════════════════════════════════════════════════════════════
# BLOCK 4: Performance snapshot questions
# ═══════════════════════════════════════════════════════════════

class TestSnapshotQuestions:
    def test_create_and_list(self, client, admin):
        res = client.post("/api/v1/admin/performance-snapshot-questions", json={
            "question_text": "How are goals set?",
            "answer_type": "select_one",
            "options": ["Top-down", "Bottom-up"],
            "version": "v2",
        }, headers=admin)
        assert res.status_code == 201
        assert res.get_json()["version"] == "v2"

        body = client.get("/api/v1/admin/performance-snapshot-questions", headers=admin).get_json()
        assert len(body["questions"]) == 1
        assert body["answer_types"] == ["select_one", "select_up_to_2", "select_all_that_apply"]

    def test_options_required(self, client, admin):
        res = client.post("/api/v1/admin/performance-snapshot-questions", json={
            "question_text": "How are goals set?", "answer_type": "select_one", "options": [],
        }, headers=admin)
        assert res.status_code == 422
        assert "options" in res.get_json()["details"]

    def test_bad_answer_type(self, client, admin):
        res = client.post("/api/v1/admin/performance-snapshot-questions", json={
            "question_text": "?", "answer_type": "free_text", "options": ["x"],
        }, headers=admin)
        assert res.status_code == 422

    def test_reorder(self, client, admin):
        a = PerformanceSnapshotQuestion(question_text="A", answer_type="select_one", options=["x"], order=1)
        b = PerformanceSnapshotQuestion(question_text="B", answer_type="select_one", options=["x"], order=2)
        db.session.add_all([a, b])
        db.session.commit()

        res = client.post("/api/v1/admin/performance-snapshot-questions/reorder",
                          json={"questions": [{"id": a.id, "order": 2}, {"id": b.id, "order": 1}]},
                          headers=admin)
        assert res.get_json() == {"success": True, "updated": 2}
        body = client.get("/api/v1/admin/performance-snapshot-questions", headers=admin).get_json()
        assert [q["question_text"] for q in body["questions"]] == ["B", "A"]

    @pytest.mark.parametrize("bad_id", [{"x": 1}, "1", None, True])
    def test_reorder_rejects_malformed_id(self, client, admin, bad_id):
        res = client.post("/api/v1/admin/performance-snapshot-questions/reorder",
                          json={"questions": [{"id": bad_id, "order": 1}]}, headers=admin)
        assert res.status_code == 422
        assert "questions.0.id" in res.get_json()["details"]


# ═══════════════════════════════════════════════════════════════
# BLOCK 5: HR issues
# ═══════════════════════════════════════════════════════════════

class TestHrIssues:
    def test_order_is_per_category(self, client, admin):
        db.session.add(HrIssue(category="upskilling", name="No training budget", order=4, is_active=True))
        db.session.commit()

        res = client.post("/api/v1/admin/hr-issues", json={"category": "upskilling", "name": "No mentoring"},
                          headers=admin)
        assert res.get_json()["order"] == 5
        res = client.post("/api/v1/admin/hr-issues", json={"category": "others", "name": "Misc"}, headers=admin)
        assert res.get_json()["order"] == 1

    def test_list(self, client, admin):
        db.session.add(HrIssue(category="others", name="Misc", order=1, is_active=False))
        db.session.commit()
        body = client.get("/api/v1/admin/hr-issues?category=others", headers=admin).get_json()
        assert [i["name"] for i in body["issues"]] == ["Misc"]
        assert body["categories"]["upskilling"] == "Upskilling"

    def test_delete_audited(self, client, admin):
        issue = HrIssue(category="others", name="Misc", order=1, is_active=True)
        db.session.add(issue)
        db.session.commit()
        res = client.delete(f"/api/v1/admin/hr-issues/{issue.id}?confirm=true", headers=admin)
        assert res.status_code == 200
        assert AuditLog.query.filter_by(action="catalog.delete", entity_type="hr_issues").count() == 1


# ═══════════════════════════════════════════════════════════════
# BLOCK 6: Compensation snapshot questions
# ═══════════════════════════════════════════════════════════════

COMPENSATION_URL = "/api/v1/admin/compensation-snapshot-questions"


class TestCompensationQuestions:
    def test_create_choice_question(self, client, admin):
        res = client.post(COMPENSATION_URL, json={
            "question_text": "How is base pay set?",
            "answer_type": "multiple",
            "options": ["Market benchmark", "Internal grades"],
            "metadata": {"rule": "pay_basis"},
        }, headers=admin)
        assert res.status_code == 201
        body = res.get_json()
        assert [o["value"] for o in body["options"]] == ["Market benchmark", "Internal grades"]
        assert (body["order"], body["is_active"]) == (1, True)
        assert body["metadata"] == {"rule": "pay_basis"}

    def test_list(self, client, admin):
        db.session.add(CompensationSnapshotQuestion(question_text="Budget?", answer_type="numeric", order=1))
        db.session.commit()
        body = client.get(COMPENSATION_URL, headers=admin).get_json()
        assert [q["question_text"] for q in body["questions"]] == ["Budget?"]
        assert body["answer_types"] == ["select_one", "select_up_to_2", "multiple", "numeric", "text"]

    def test_choice_question_needs_options(self, client, admin):
        res = client.post(COMPENSATION_URL, json={
            "question_text": "Pay mix?", "answer_type": "select_one",
        }, headers=admin)
        assert res.status_code == 422
        assert "options" in res.get_json()["details"]

    def test_numeric_question_drops_options(self, client, admin):
        res = client.post(COMPENSATION_URL, json={
            "question_text": "Annual raise budget (%)", "answer_type": "numeric", "options": ["ignored"],
        }, headers=admin)
        assert res.status_code == 201
        q = db.session.get(CompensationSnapshotQuestion, res.get_json()["id"])
        assert q.options is None
        assert res.get_json()["options"] is None

    def test_update_to_text_clears_options(self, client, admin):
        q = CompensationSnapshotQuestion(question_text="Pay mix?", answer_type="select_one",
                                         options=["Fixed", "Variable"], order=1)
        db.session.add(q)
        db.session.commit()

        res = client.put(f"{COMPENSATION_URL}/{q.id}", json={"answer_type": "text"}, headers=admin)
        assert res.status_code == 200
        assert res.get_json()["answer_type"] == "text"
        db.session.refresh(q)
        assert q.options is None

    def test_update_keeps_existing_options(self, client, admin):
        q = CompensationSnapshotQuestion(question_text="Pay mix?", answer_type="select_one",
                                         options=["Fixed", "Variable"], order=1)
        db.session.add(q)
        db.session.commit()

        res = client.put(f"{COMPENSATION_URL}/{q.id}", json={"answer_type": "select_up_to_2"}, headers=admin)
        assert res.status_code == 200
        assert [o["value"] for o in res.get_json()["options"]] == ["Fixed", "Variable"]

    def test_reorder_and_delete(self, client, admin):
        a = CompensationSnapshotQuestion(question_text="A", answer_type="text", order=1)
        b = CompensationSnapshotQuestion(question_text="B", answer_type="text", order=2)
        db.session.add_all([a, b])
        db.session.commit()

        res = client.post(f"{COMPENSATION_URL}/reorder",
                          json={"questions": [{"id": a.id, "order": 9}, {"id": b.id, "order": 0}]},
                          headers=admin)
        assert res.get_json() == {"success": True, "updated": 2}
        body = client.get(COMPENSATION_URL, headers=admin).get_json()
        assert [q["question_text"] for q in body["questions"]] == ["B", "A"]

        assert client.delete(f"{COMPENSATION_URL}/{a.id}", headers=admin).status_code == 400
        assert client.delete(f"{COMPENSATION_URL}/{a.id}?confirm=true", headers=admin).status_code == 200
        assert CompensationSnapshotQuestion.query.count() == 1

    def test_unknown_question(self, client, admin):
        assert client.get(f"{COMPENSATION_URL}/999", headers=admin).status_code == 404


# ═══════════════════════════════════════════════════════════════
# BLOCK 7: CEO accounts
# ═══════════════════════════════════════════════════════════════

class TestCeoAccounts:
    def test_list(self, client, admin, company, ceo):
        db.session.add(CompanyInvitation(company_id=company.id, email="next@acme.test", role=ROLE_CEO,
                                         token="d" * 64))
        db.session.commit()

        body = client.get("/api/v1/admin/ceos", headers=admin).get_json()
        [listed] = body["ceos"]
        assert listed["email"] == ceo.email
        assert listed["companies"] == [{"id": company.id, "name": "Acme Manufacturing"}]
        assert [c["name"] for c in body["companies"]] == ["Acme Manufacturing"]
        [invitation] = body["invitations"]
        assert (invitation["email"], invitation["status"]) == ("next@acme.test", "pending")

    def test_create_new_ceo_for_company(self, client, admin, admin_user, company):
        res = client.post("/api/v1/admin/ceos",
                          json={"name": "New Boss", "email": "Boss@Acme.test", "company_id": company.id},
                          headers=admin)
        assert res.status_code == 201
        body = res.get_json()
        assert (body["created"], body["assigned"]) == (True, True)
        assert body["ceo"]["roles"] == [ROLE_CEO]
        assert body["ceo"]["companies"] == [{"id": company.id, "name": "Acme Manufacturing"}]

        user = User.query.filter_by(email="Boss@acme.test").one()
        assert user.password_hash
        assert user.email_verified_at is not None
        invitation = CompanyInvitation.query.filter_by(email="Boss@acme.test").one()
        assert (invitation.status, invitation.inviter_id) == ("accepted", admin_user.id)
        assert invitation.temporary_password is None

        welcome = EmailLog.query.filter_by(recipient_email="Boss@acme.test").one()
        assert welcome.subject == "Welcome to Acme Manufacturing - Your CEO Account Credentials"
        assert AuditLog.query.filter_by(action="ceo.assign").count() == 1

    def test_existing_user_gains_role(self, client, admin, company, hr_manager):
        res = client.post("/api/v1/admin/ceos",
                          json={"name": "Ignored", "email": hr_manager.email, "company_id": company.id},
                          headers=admin)
        assert res.status_code == 200
        body = res.get_json()
        assert (body["created"], body["assigned"]) == (False, True)
        db.session.refresh(hr_manager)
        assert set(hr_manager.roles) == {ROLE_HR_MANAGER, ROLE_CEO}
        assert CompanyMember.query.filter_by(user_id=hr_manager.id, role=ROLE_CEO).count() == 1
        assert EmailLog.query.filter(EmailLog.subject.like("%CEO Project Assignment")).count() == 1

    def test_already_attached_is_noop(self, client, admin, company, ceo):
        res = client.post("/api/v1/admin/ceos",
                          json={"name": ceo.name, "email": ceo.email, "company_id": company.id},
                          headers=admin)
        assert res.status_code == 200
        body = res.get_json()
        assert body["assigned"] is False
        assert body["message"] == "CEO is already associated with Acme Manufacturing."
        assert CompanyMember.query.filter_by(user_id=ceo.id, role=ROLE_CEO).count() == 1
        assert EmailLog.query.count() == 0

    def test_without_company(self, client, admin):
        res = client.post("/api/v1/admin/ceos", json={"name": "Solo", "email": "solo@acme.test"},
                          headers=admin)
        assert res.status_code == 201
        assert res.get_json()["message"] == "CEO created successfully. Please assign to a company."
        assert CompanyInvitation.query.count() == 0

    @pytest.mark.parametrize("payload,field", [
        ({"email": "x@acme.test"}, "name"),
        ({"name": "X", "email": "not-an-email"}, "email"),
        ({"name": "X", "email": "x@acme.test", "company_id": 999}, "company_id"),
        ({"name": "X", "email": "x@acme.test", "company_id": "1"}, "company_id"),
    ])
    def test_validation(self, client, admin, payload, field):
        res = client.post("/api/v1/admin/ceos", json=payload, headers=admin)
        assert res.status_code == 422
        assert field in res.get_json()["details"]
        assert User.query.filter_by(email="x@acme.test").count() == 0
