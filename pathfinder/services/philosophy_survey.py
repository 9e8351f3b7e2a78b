"""
HR Path-Finder
CEO Management Philosophy Survey.

The survey is an eight-section wizard.  Section 0 is a consent screen that
must be agreed to before anything else; after that the CEO moves freely
back and forth and submits from the last section.  Sections do not block
on unanswered questions, the full payload is validated on submit.

Submitting requires the diagnosis to be submitted.  A completed survey on a
submitted diagnosis approves and locks the diagnosis and opens
Organization Design, which is what the HR manager's
"philosophy completed" mail announces.

Submission payload:

    {
        "management_philosophy": {"<question id>": 1..7, ...},
        "vision_mission":        {"<question id>": str | number, ...},
        "growth_stage":          str,
        "leadership":            {"<question id>": 1..7, ...},
        "general":               {"<question id>": 1..7, ...},
        "organizational_issues": [str, ...],          # optional
        "concerns":              str,
    }
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone

from pathfinder.core.exceptions import ConflictStateError, PermissionDenied, ValidationError
from pathfinder.models import db
from pathfinder.models.audit import write_audit
from pathfinder.models.auth import ROLE_CEO, ROLE_HR_MANAGER
from pathfinder.models.catalog import DiagnosisQuestion, HrIssue
from pathfinder.models.project import STEP_KEYS, CeoPhilosophy, HrProject, StepStatus
from pathfinder.notifications import PhilosophyCompletedNotification, notify
from pathfinder.services.project_service import approve_and_lock, ensure_writable
from pathfinder.services.workflow import is_completed_for_display, normalize_status

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Sections & wizard
# ═══════════════════════════════════════════════════════════════════════════

SURVEY_SECTIONS: tuple[tuple[str, str], ...] = (
    ("intro", "Welcome"),
    ("management", "Management Philosophy"),
    ("vision", "Vision/Mission"),
    ("growth", "Growth Stage"),
    ("leadership", "Leadership"),
    ("general", "General Questions"),
    ("issues", "Organizational Issues"),
    ("concerns", "CEO Concerns"),
)

LAST_SECTION = len(SURVEY_SECTIONS) - 1

INTRO_TEXT = (
    "This diagnostic is not an evaluation of your leadership or performance.\n"
    "There are no right or wrong answers.\n"
    "This assessment is designed to understand your current management priorities and "
    "decision-making perspective, based on your responses at this point in time.\n"
    "Please note the following:\n"
    "• Your individual responses will not be shared as-is with the HR manager or any other employees.\n"
    "• No one will be able to view your original answers to individual questions.\n"
    "• Results will be used only after being aggregated, interpreted, and anonymized into summary insights.\n"
    "• Any comparison with HR input is intended to understand differences in perspective, "
    "not to judge or evaluate individuals.\n"
    "For the most meaningful outcome, please answer honestly and instinctively, based on what you "
    "consider most important right now, rather than what may appear ideal or socially desirable."
)


@dataclass
class SurveyWizard:
    """Linear navigation over SURVEY_SECTIONS."""

    current_step_index: int = 0
    has_agreed: bool = False

    def agree(self) -> None:
        self.has_agreed = True

    def can_advance(self) -> bool:
        if self.current_step_index >= LAST_SECTION:
            return False
        return self.current_step_index > 0 or self.has_agreed

    def next(self) -> int:
        if self.can_advance():
            self.current_step_index += 1
        return self.current_step_index

    def previous(self) -> int:
        if self.current_step_index > 0:
            self.current_step_index -= 1
        return self.current_step_index

    @property
    def can_submit(self) -> bool:
        return self.current_step_index == LAST_SECTION

    def submit(self, payload: dict) -> dict:
        """Validate the accumulated answers; only allowed from the last section."""
        if not self.can_submit:
            raise ValidationError(
                "The survey can only be submitted from the last section",
                details={"section": self.section},
            )
        return validate_survey_payload(payload)

    @property
    def section(self) -> str:
        return SURVEY_SECTIONS[self.current_step_index][0]

    @property
    def section_name(self) -> str:
        return SURVEY_SECTIONS[self.current_step_index][1]

    @property
    def progress(self) -> int:
        return round((self.current_step_index + 1) * 100 / len(SURVEY_SECTIONS))

    def to_dict(self):
        return {
            "current_step_index": self.current_step_index,
            "section": self.section,
            "section_name": self.section_name,
            "has_agreed": self.has_agreed,
            "can_advance": self.can_advance(),
            "can_submit": self.can_submit,
            "progress": self.progress,
        }


# ═══════════════════════════════════════════════════════════════════════════
#  Organizational issues
# ═══════════════════════════════════════════════════════════════════════════

ISSUE_CATEGORIES: dict[str, str] = {
    "recruitment_retention": "Recruitment / Retention",
    "organizations": "Organizations",
    "culture_leadership": "Culture / Leadership",
    "evaluation_compensation": "Evaluation / Compensation",
    "upskilling": "Upskilling",
    "others": "Others",
}

OTHERS = "others"


def toggle_issue(selected, issue_id) -> list:
    """Add or remove ``issue_id``; ids compare as strings (``3 == "3"``)."""
    selected = list(selected or [])
    key = str(issue_id)
    if any(str(item) == key for item in selected):
        return [item for item in selected if str(item) != key]
    return [*selected, issue_id]


def group_issues(issues) -> list[dict]:
    """Group issues by category, taxonomy order first.

    Category keys are matched case-insensitively.  Unknown categories keep
    their (lower-cased) key and sort after the taxonomy, displayed under the
    "Others" label.
    """
    groups: dict[str, list] = {}
    for issue in issues:
        category = (getattr(issue, "category", None) or OTHERS).strip().lower() or OTHERS
        groups.setdefault(category, []).append(issue)

    known = [k for k in ISSUE_CATEGORIES if k in groups]
    unknown = [k for k in groups if k not in ISSUE_CATEGORIES]
    return [
        {
            "category": key,
            "label": ISSUE_CATEGORIES.get(key, ISSUE_CATEGORIES[OTHERS]),
            "issues": [i.to_dict() if hasattr(i, "to_dict") else i for i in groups[key]],
        }
        for key in known + unknown
    ]


# ═══════════════════════════════════════════════════════════════════════════
#  Payload validation
# ═══════════════════════════════════════════════════════════════════════════

LIKERT_MIN, LIKERT_MAX = 1, 7
LIKERT_SECTIONS = ("management_philosophy", "leadership", "general")


def _likert(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and LIKERT_MIN <= value <= LIKERT_MAX:
        return value
    return None


def _answers(field, raw, errors, *, required, likert):
    if raw is None:
        if required:
            errors[field] = f"The {field.replace('_', ' ')} field is required."
        return None
    if not isinstance(raw, dict) or (required and not raw):
        errors[field] = f"The {field.replace('_', ' ')} field must be a non-empty object."
        return None

    cleaned = {}
    for qid, value in raw.items():
        key = str(qid)
        if likert:
            score = _likert(value)
            if score is None:
                errors[f"{field}.{key}"] = f"Answers must be between {LIKERT_MIN} and {LIKERT_MAX}."
                continue
            cleaned[key] = score
        else:
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                errors[f"{field}.{key}"] = "Answers must be text or a number."
                continue
            cleaned[key] = value
    return cleaned


def _text(field, raw, errors, *, required):
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        if required:
            errors[field] = f"The {field.replace('_', ' ')} field is required."
        return None
    if not isinstance(raw, str):
        errors[field] = f"The {field.replace('_', ' ')} field must be a string."
        return None
    return raw.strip()


def validate_survey_payload(payload, *, partial: bool = False) -> dict:
    """Validate and normalise a survey payload.

    With ``partial`` (drafts) every section is optional but whatever is
    present must still be well-formed.  Only supplied keys are returned.

    Raises:
        ValidationError: ``details`` maps field (or ``field.<question id>``)
            to a message.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Survey payload must be an object", details={"payload": "Expected an object."})

    required = not partial
    errors: dict[str, str] = {}
    data: dict = {}

    for field in ("management_philosophy", "vision_mission", "leadership", "general"):
        if partial and field not in payload:
            continue
        data[field] = _answers(field, payload.get(field), errors,
                               required=required, likert=field in LIKERT_SECTIONS)

    for field in ("growth_stage", "concerns"):
        if partial and field not in payload:
            continue
        data[field] = _text(field, payload.get(field), errors, required=required)

    if not partial or "organizational_issues" in payload:
        issues = payload.get("organizational_issues")
        if issues is None:
            data["organizational_issues"] = []
        elif not isinstance(issues, list):
            errors["organizational_issues"] = "The organizational issues field must be an array."
        else:
            data["organizational_issues"] = [str(i) for i in issues]

    if errors:
        raise ValidationError("The survey has invalid or missing answers", details=errors)
    return data


# ═══════════════════════════════════════════════════════════════════════════
#  Persistence
# ═══════════════════════════════════════════════════════════════════════════

_COLUMNS = {
    "management_philosophy": "management_philosophy_responses",
    "vision_mission": "vision_mission_responses",
    "growth_stage": "growth_stage",
    "leadership": "leadership_responses",
    "general": "general_responses",
    "organizational_issues": "organizational_issues",
    "concerns": "concerns",
}


def ensure_can_answer(project: HrProject, user) -> None:
    """CEO member of the company, project not locked, diagnosis submitted."""
    ensure_writable(project)
    if not user.has_role(ROLE_CEO) or not project.company.is_member(user, ROLE_CEO):
        raise PermissionDenied("Only the company's CEO can answer the philosophy survey")
    diagnosis = project.get_step_status(STEP_KEYS[0])
    if not is_completed_for_display(diagnosis):
        raise ConflictStateError(
            "philosophy", diagnosis, "completed",
            message="Please wait for HR Manager to submit the diagnosis before completing the survey.",
        )


def _philosophy_for(project: HrProject, user) -> CeoPhilosophy:
    philosophy = CeoPhilosophy.query.filter_by(hr_project_id=project.id, user_id=user.id).first()
    if philosophy is None:
        philosophy = CeoPhilosophy(hr_project_id=project.id, user_id=user.id)
        db.session.add(philosophy)
    return philosophy


def _apply(philosophy: CeoPhilosophy, data: dict) -> None:
    for field, column in _COLUMNS.items():
        if field in data:
            setattr(philosophy, column, data[field])


def store_survey(project: HrProject, user, payload) -> CeoPhilosophy:
    """Save the completed survey (upsert per project and CEO)."""
    ensure_can_answer(project, user)
    data = validate_survey_payload(payload)

    philosophy = _philosophy_for(project, user)
    first_completion = philosophy.completed_at is None
    _apply(philosophy, data)
    if first_completion:
        philosophy.completed_at = datetime.now(timezone.utc)
    db.session.flush()

    unlocked = None
    if normalize_status(project.get_step_status(STEP_KEYS[0])) is StepStatus.SUBMITTED:
        unlocked = approve_and_lock(project, STEP_KEYS[0], user.id)

    write_audit(
        entity_type="ceo_philosophy",
        entity_id=philosophy.id,
        action="philosophy.complete",
        actor_user_id=user.id,
        project_id=project.id,
        diff={"first_completion": first_completion, "unlocked_step": unlocked},
    )
    db.session.commit()
    logger.info("Philosophy survey completed for project %s", project.id,
                extra={"event_type": "philosophy.complete", "project_id": project.id, "user_id": user.id})

    if first_completion:
        notify(project.company.users_with_role(ROLE_HR_MANAGER), PhilosophyCompletedNotification(project))
    return philosophy


def save_survey_draft(project: HrProject, user, payload) -> CeoPhilosophy:
    """Save partial answers; leaves the survey in progress."""
    ensure_can_answer(project, user)
    data = validate_survey_payload(payload, partial=True)

    philosophy = _philosophy_for(project, user)
    if philosophy.completed_at is not None:
        raise ConflictStateError(
            "philosophy", "completed", "in_progress",
            message="The survey is already completed; submit it again to update your answers",
        )
    _apply(philosophy, data)
    db.session.commit()
    return philosophy


# ═══════════════════════════════════════════════════════════════════════════
#  Survey page context
# ═══════════════════════════════════════════════════════════════════════════

def _questions(category: str):
    return (
        DiagnosisQuestion.query
        .filter_by(category=category, is_active=True)
        .order_by(DiagnosisQuestion.order, DiagnosisQuestion.id)
        .all()
    )


def build_survey_context(project: HrProject, user, rng: random.Random | None = None) -> dict:
    """Everything the survey page needs, in one payload.

    Management-philosophy items are shuffled on every call.
    """
    ensure_can_answer(project, user)

    management = _questions("management_philosophy")
    (rng or random).shuffle(management)
    growth = _questions("growth_stage")
    concerns = _questions("concerns")

    issues = (
        HrIssue.query.filter_by(is_active=True)
        .order_by(HrIssue.category, HrIssue.order, HrIssue.id)
        .all()
    )
    philosophy = CeoPhilosophy.query.filter_by(hr_project_id=project.id, user_id=user.id).first()

    return {
        "project": project.to_dict(),
        "philosophy": philosophy.to_dict() if philosophy else None,
        "sections": [{"key": key, "name": name} for key, name in SURVEY_SECTIONS],
        "intro_text": INTRO_TEXT,
        "management_philosophy_questions": [q.to_dict() for q in management],
        "vision_mission_questions": [q.to_dict() for q in _questions("vision_mission")],
        "growth_stage_question": growth[0].to_dict() if growth else None,
        "leadership_questions": [q.to_dict() for q in _questions("leadership")],
        "general_questions": [q.to_dict() for q in _questions("general")],
        "concerns_question": concerns[0].to_dict() if concerns else None,
        "hr_issues": group_issues(issues),
        "wizard": SurveyWizard().to_dict(),
    }
