"""
CEO Management Philosophy Survey — wizard, issue helpers, payload rules and API.
"""

import random
from types import SimpleNamespace

import pytest

from pathfinder.core.exceptions import ValidationError
from pathfinder.models import db
from pathfinder.models.catalog import DiagnosisQuestion, HrIssue
from pathfinder.models.notification import EmailLog
from pathfinder.models.project import CeoPhilosophy
from pathfinder.services.philosophy_survey import (
    LAST_SECTION,
    SurveyWizard,
    build_survey_context,
    group_issues,
    toggle_issue,
    validate_survey_payload,
)


def _payload(**overrides):
    data = {
        "management_philosophy": {"1": 5, "2": 3},
        "vision_mission": {"3": "Be the regional leader", "4": 2030},
        "growth_stage": "growth",
        "leadership": {"5": 7},
        "general": {"6": 1},
        "organizational_issues": ["11", 12],
        "concerns": "Retention of senior engineers",
    }
    data.update(overrides)
    return data


def _submit_diagnosis(project):
    project.set_step_status("diagnosis", "submitted")
    db.session.commit()


# ═══════════════════════════════════════════════════════════════
# BLOCK 1: Wizard
# ═══════════════════════════════════════════════════════════════

class TestSurveyWizard:
    def test_intro_blocks_until_agreed(self):
        wizard = SurveyWizard()
        assert wizard.can_advance() is False
        assert wizard.next() == 0
        wizard.agree()
        assert wizard.next() == 1

    def test_previous_stops_at_zero(self):
        wizard = SurveyWizard()
        assert wizard.previous() == 0

    def test_free_navigation_after_consent(self):
        wizard = SurveyWizard(has_agreed=True)
        for _ in range(LAST_SECTION):
            wizard.next()
        assert wizard.current_step_index == LAST_SECTION
        assert wizard.next() == LAST_SECTION
        assert wizard.previous() == LAST_SECTION - 1

    def test_submit_only_from_last_section(self):
        wizard = SurveyWizard(current_step_index=3, has_agreed=True)
        with pytest.raises(ValidationError):
            wizard.submit(_payload())

        wizard.current_step_index = LAST_SECTION
        assert wizard.submit(_payload())["growth_stage"] == "growth"

    def test_to_dict(self):
        d = SurveyWizard().to_dict()
        assert d["section"] == "intro"
        assert d["section_name"] == "Welcome"
        assert d["can_submit"] is False
        assert 0 < d["progress"] <= 100


# ═══════════════════════════════════════════════════════════════
# BLOCK 2: Organisational issues
# ═══════════════════════════════════════════════════════════════

class TestIssueHelpers:
    def test_toggle_adds_and_removes(self):
        assert toggle_issue([], 3) == [3]
        assert toggle_issue([3, 4], 3) == [4]

    def test_toggle_compares_as_strings(self):
        assert toggle_issue(["3"], 3) == []
        assert toggle_issue([3], "3") == []

    @pytest.mark.parametrize("selected", [[], [1, "2"], ["7", 9, 12], [5, "3"]])
    @pytest.mark.parametrize("first, second", [(3, "3"), ("3", 3), (3, 3)])
    def test_toggle_twice_restores_selection(self, selected, first, second):
        if str(first) in map(str, selected):
            # Re-adding appends, so only a trailing id round-trips exactly
            assert str(selected[-1]) == str(first)
            restored = toggle_issue(toggle_issue(selected, first), second)
            assert [str(i) for i in restored] == [str(i) for i in selected]
        else:
            assert toggle_issue(toggle_issue(selected, first), second) == selected

    def test_toggle_does_not_mutate_input(self):
        selected = [1]
        toggle_issue(selected, 2)
        assert selected == [1]

    def test_group_taxonomy_order_then_unknown(self):
        issues = [
            SimpleNamespace(category="upskilling", name="a"),
            SimpleNamespace(category="zzz_custom", name="b"),
            SimpleNamespace(category="recruitment_retention", name="c"),
            SimpleNamespace(category=None, name="d"),
        ]
        groups = group_issues(issues)
        assert [g["category"] for g in groups] == [
            "recruitment_retention", "upskilling", "others", "zzz_custom",
        ]
        assert groups[-1]["label"] == "Others"
        assert groups[0]["label"] == "Recruitment / Retention"

    def test_group_ignores_category_case(self):
        issues = [
            SimpleNamespace(category="Upskilling", name="a"),
            SimpleNamespace(category="upskilling", name="b"),
            SimpleNamespace(category=" UPSKILLING ", name="c"),
        ]
        [group] = group_issues(issues)
        assert (group["category"], group["label"]) == ("upskilling", "Upskilling")
        assert [i.name for i in group["issues"]] == ["a", "b", "c"]


# ═══════════════════════════════════════════════════════════════
# BLOCK 3: Payload validation
# ═══════════════════════════════════════════════════════════════

class TestPayloadValidation:
    def test_valid_payload_normalised(self):
        data = validate_survey_payload(_payload(management_philosophy={1: "4", 2: 6.0}))
        assert data["management_philosophy"] == {"1": 4, "2": 6}
        assert data["organizational_issues"] == ["11", "12"]
        assert data["concerns"] == "Retention of senior engineers"

    def test_missing_sections_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_survey_payload({})
        details = exc_info.value.details
        for field in ("management_philosophy", "vision_mission", "leadership",
                      "general", "growth_stage", "concerns"):
            assert field in details

    def test_likert_out_of_range(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_survey_payload(_payload(leadership={"5": 8}))
        assert "leadership.5" in exc_info.value.details

    def test_boolean_is_not_a_likert_score(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_survey_payload(_payload(general={"6": True}))
        assert "general.6" in exc_info.value.details

    def test_issues_optional(self):
        payload = _payload()
        del payload["organizational_issues"]
        assert validate_survey_payload(payload)["organizational_issues"] == []

    def test_partial_only_returns_supplied_keys(self):
        data = validate_survey_payload({"concerns": "Cost"}, partial=True)
        assert data == {"concerns": "Cost"}

    def test_partial_still_checks_shape(self):
        with pytest.raises(ValidationError):
            validate_survey_payload({"leadership": {"1": 0}}, partial=True)


# ═══════════════════════════════════════════════════════════════
# BLOCK 4: Survey API
# ═══════════════════════════════════════════════════════════════

class TestSurveyApi:
    def test_context_requires_submitted_diagnosis(self, client, project, ceo, auth_headers):
        res = client.get(f"/api/v1/ceo/philosophy/survey/{project.id}", headers=auth_headers(ceo))
        assert res.status_code == 409
        assert "wait for HR Manager" in res.get_json()["error"]

    def test_context_payload(self, client, project, ceo, auth_headers):
        _submit_diagnosis(project)
        db.session.add_all([
            DiagnosisQuestion(category="management_philosophy", question_text="Q1", order=1),
            DiagnosisQuestion(category="management_philosophy", question_text="Q2", order=2),
            DiagnosisQuestion(category="management_philosophy", question_text="Hidden", is_active=False),
            DiagnosisQuestion(category="growth_stage", question_text="Stage?", question_type="select",
                              options=["startup", {"value": "growth", "label": "Growth"}]),
            HrIssue(category="upskilling", name="No training budget"),
        ])
        db.session.commit()

        res = client.get(f"/api/v1/ceo/philosophy/survey/{project.id}", headers=auth_headers(ceo))
        assert res.status_code == 200
        body = res.get_json()
        assert {q["question_text"] for q in body["management_philosophy_questions"]} == {"Q1", "Q2"}
        assert body["growth_stage_question"]["options"][0] == {"value": "startup", "label": "startup"}
        assert body["hr_issues"][0]["category"] == "upskilling"
        assert body["wizard"]["section"] == "intro"
        assert body["philosophy"] is None

    def test_context_shuffles_with_injected_rng(self, project, ceo):
        _submit_diagnosis(project)
        for i in range(6):
            db.session.add(DiagnosisQuestion(category="management_philosophy", question_text=f"Q{i}", order=i))
        db.session.commit()

        first = build_survey_context(project, ceo, rng=random.Random(7))
        second = build_survey_context(project, ceo, rng=random.Random(7))
        ids = [q["id"] for q in first["management_philosophy_questions"]]
        assert ids == [q["id"] for q in second["management_philosophy_questions"]]
        assert sorted(ids) == sorted(q.id for q in DiagnosisQuestion.query.all())

    def test_hr_manager_cannot_answer(self, client, project, hr_manager, auth_headers):
        _submit_diagnosis(project)
        res = client.post(f"/api/v1/ceo/philosophy/survey/{project.id}",
                          json=_payload(), headers=auth_headers(hr_manager))
        assert res.status_code == 403

    def test_ceo_of_other_company_forbidden(self, client, project, make_user, auth_headers):
        _submit_diagnosis(project)
        outsider = make_user("other-ceo@else.test", roles=["ceo"])
        res = client.post(f"/api/v1/ceo/philosophy/survey/{project.id}",
                          json=_payload(), headers=auth_headers(outsider))
        assert res.status_code == 403

    def test_submit_unlocks_organization(self, client, project, ceo, hr_manager, auth_headers):
        _submit_diagnosis(project)
        res = client.post(f"/api/v1/ceo/philosophy/survey/{project.id}",
                          json=_payload(), headers=auth_headers(ceo))
        assert res.status_code == 200, res.get_json()
        body = res.get_json()
        assert body["philosophy"]["completed_at"] is not None
        assert body["redirect_url"].endswith("/ceo/dashboard")
        assert body["workflow"]["current_step"] == "organization"

        db.session.refresh(project)
        assert project.step_statuses["diagnosis"] == "locked"
        assert project.step_statuses["organization"] == "in_progress"
        assert project.ceo_philosophy_status == "completed"

        log = EmailLog.query.filter_by(notification_type="PhilosophyCompletedNotification").one()
        assert log.recipient_email == hr_manager.email

    def test_resubmit_updates_without_second_mail(self, client, project, ceo, auth_headers):
        _submit_diagnosis(project)
        client.post(f"/api/v1/ceo/philosophy/survey/{project.id}", json=_payload(), headers=auth_headers(ceo))
        res = client.post(f"/api/v1/ceo/philosophy/survey/{project.id}",
                          json=_payload(concerns="Succession"), headers=auth_headers(ceo))
        assert res.status_code == 200
        assert CeoPhilosophy.query.count() == 1
        assert CeoPhilosophy.query.one().concerns == "Succession"
        assert EmailLog.query.filter_by(notification_type="PhilosophyCompletedNotification").count() == 1

    def test_invalid_submission_422(self, client, project, ceo, auth_headers):
        _submit_diagnosis(project)
        res = client.post(f"/api/v1/ceo/philosophy/survey/{project.id}",
                          json=_payload(concerns=""), headers=auth_headers(ceo))
        assert res.status_code == 422
        assert "concerns" in res.get_json()["details"]
        assert CeoPhilosophy.query.count() == 0

    def test_draft_keeps_survey_in_progress(self, client, project, ceo, auth_headers):
        _submit_diagnosis(project)
        res = client.put(f"/api/v1/ceo/philosophy/survey/{project.id}/draft",
                         json={"leadership": {"5": 4}}, headers=auth_headers(ceo))
        assert res.status_code == 200
        assert res.get_json()["ceo_philosophy_status"] == "in_progress"
        assert res.get_json()["philosophy"]["leadership"] == {"5": 4}

    def test_draft_after_completion_conflicts(self, client, project, ceo, auth_headers):
        _submit_diagnosis(project)
        client.post(f"/api/v1/ceo/philosophy/survey/{project.id}", json=_payload(), headers=auth_headers(ceo))
        res = client.put(f"/api/v1/ceo/philosophy/survey/{project.id}/draft",
                         json={"concerns": "x"}, headers=auth_headers(ceo))
        assert res.status_code == 409

    def test_locked_project_rejects_survey(self, client, project, ceo, auth_headers):
        project.status = "locked"
        db.session.commit()
        res = client.post(f"/api/v1/ceo/philosophy/survey/{project.id}",
                          json=_payload(), headers=auth_headers(ceo))
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_PROJECT_LOCKED"
