"""
HR Path-Finder
Project service layer.

Companies, projects and the four-step workflow.  Every step transition goes
through ``_transition`` so the forward-only rule, the audit row and the log
line stay in one place.

Transaction policy: these functions own the commit.  Notifications are
dispatched after the commit, so a failed synchronous mail (MailDeliveryError)
never rolls back a transition that already happened.
"""

import logging
from datetime import datetime, timezone

from pathfinder.core.exceptions import (
    ConflictStateError,
    NotFoundError,
    PermissionDenied,
    ProjectLockedError,
    ValidationError,
)
from pathfinder.models import db
from pathfinder.models.audit import write_audit
from pathfinder.models.auth import (
    ROLE_ADMIN,
    ROLE_CEO,
    ROLE_CONSULTANT,
    ROLE_HR_MANAGER,
    Company,
    CompanyMember,
)
from pathfinder.models.catalog import IndustryCategory
from pathfinder.models.project import (
    STEP_KEYS,
    HrProject,
    ProjectStatus,
    StepStatus,
    step_display_name,
)
from pathfinder.notifications import (
    DiagnosisSubmittedNotification,
    StepSubmittedNotification,
    StepUnlockedNotification,
    SystemLockedNotification,
    notify,
)
from pathfinder.services.workflow import (
    PHILOSOPHY_DONE,
    StepState,
    derive_project_states,
    is_completed_for_display,
    normalize_status,
    validate_step_transition,
    workflow_summary,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Guards
# ═══════════════════════════════════════════════════════════════════════════

def ensure_step_key(step: str) -> None:
    if step not in STEP_KEYS:
        raise NotFoundError("Step", step)


def ensure_writable(project: HrProject) -> None:
    if project.is_locked:
        raise ProjectLockedError(project.id)


def require_company_role(company: Company, user, role: str) -> None:
    if not company.is_member(user, role):
        raise PermissionDenied(f"Only the company's {role.replace('_', ' ')} can do this")


def can_view_company(company: Company, user) -> bool:
    if user.has_role(ROLE_ADMIN) or user.has_role(ROLE_CONSULTANT):
        return True
    return company.is_member(user)


def get_project(project_id: int, user) -> HrProject:
    """Load a project visible to ``user``.

    Raises:
        NotFoundError: no such project.
        PermissionDenied: user is neither a member nor staff.
    """
    project = db.session.get(HrProject, project_id)
    if project is None:
        raise NotFoundError("HrProject", project_id)
    if not can_view_company(project.company, user):
        raise PermissionDenied("You do not have access to this project")
    return project


def get_company(company_id: int, user) -> Company:
    company = db.session.get(Company, company_id)
    if company is None:
        raise NotFoundError("Company", company_id)
    if not can_view_company(company, user):
        raise PermissionDenied("You do not have access to this company")
    return company


# ═══════════════════════════════════════════════════════════════════════════
#  Companies & projects
# ═══════════════════════════════════════════════════════════════════════════

def create_company(user, data: dict) -> Company:
    """Create a company with ``user`` as its HR manager."""
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Company name is required", details={"name": "The name field is required."})
    if len(name) > 200:
        raise ValidationError("Company name is too long",
                              details={"name": "The name may not be greater than 200 characters."})

    industry_id = data.get("industry_category_id")
    if industry_id is not None and db.session.get(IndustryCategory, industry_id) is None:
        raise ValidationError("Unknown industry", details={"industry_category_id": "The selected industry is invalid."})

    company = Company(
        name=name,
        logo_path=data.get("logo_path"),
        industry_category_id=industry_id,
        created_by=user.id,
    )
    db.session.add(company)
    db.session.flush()
    db.session.add(CompanyMember(company_id=company.id, user_id=user.id, role=ROLE_HR_MANAGER))
    user.assign_role(ROLE_HR_MANAGER)
    db.session.commit()

    logger.info("Company created: %s (id=%s)", company.name, company.id,
                extra={"event_type": "company.create", "company_id": company.id, "user_id": user.id})
    return company


def create_project(company: Company, user) -> HrProject:
    require_company_role(company, user, ROLE_HR_MANAGER)
    project = HrProject(company_id=company.id, created_by=user.id)
    project.initialize_step_statuses()
    db.session.add(project)
    db.session.commit()

    logger.info("HR project created: id=%s company=%s", project.id, company.id,
                extra={"event_type": "project.create", "project_id": project.id, "company_id": company.id})
    return project


# ═══════════════════════════════════════════════════════════════════════════
#  Step transitions
# ═══════════════════════════════════════════════════════════════════════════

def _transition(project: HrProject, step: str, new: StepStatus, actor_id, *, action: str) -> None:
    old = project.get_step_status(step)
    validate_step_transition(step, old, new)
    project.set_step_status(step, new)
    write_audit(
        entity_type="hr_project_step",
        entity_id=f"{project.id}:{step}",
        action=action,
        actor_user_id=actor_id,
        project_id=project.id,
        diff={"step": step, "status": {"old": old, "new": new.value}},
    )
    logger.info(
        "Step %s of project %s: %s -> %s", step, project.id, old, new.value,
        extra={"event_type": "step.transition", "project_id": project.id, "step": step, "user_id": actor_id},
    )


def _require_current(project: HrProject, step: str) -> None:
    view = next(v for v in derive_project_states(project) if v.key == step)
    if view.state is not StepState.CURRENT:
        raise ConflictStateError(
            "step", view.state.value, StepState.CURRENT.value,
            message=f"{step_display_name(step)} is {view.state.value} and cannot be edited",
        )


def unlock_next_step(project: HrProject, step: str, actor_id) -> str | None:
    """Open the step after ``step``; returns its key, or None after the last step."""
    index = STEP_KEYS.index(step)
    if index + 1 >= len(STEP_KEYS):
        return None
    next_step = STEP_KEYS[index + 1]
    if normalize_status(project.get_step_status(next_step)) is StepStatus.NOT_STARTED:
        _transition(project, next_step, StepStatus.IN_PROGRESS, actor_id, action="step.unlock")
    return next_step


def approve_and_lock(project: HrProject, step: str, actor_id) -> str | None:
    """submitted → approved → locked, then unlock the following step.

    Flushes only; the caller commits and notifies.
    """
    _transition(project, step, StepStatus.APPROVED, actor_id, action="step.approve")
    _transition(project, step, StepStatus.LOCKED, actor_id, action="step.lock")
    return unlock_next_step(project, step, actor_id)


def save_step_data(project: HrProject, step: str, user, data: dict) -> HrProject:
    """Store the HR manager's working payload for the current step."""
    ensure_step_key(step)
    ensure_writable(project)
    require_company_role(project.company, user, ROLE_HR_MANAGER)
    _require_current(project, step)
    if not isinstance(data, dict):
        raise ValidationError("Step data must be an object", details={"data": "Expected an object."})

    if normalize_status(project.get_step_status(step)) is StepStatus.NOT_STARTED:
        _transition(project, step, StepStatus.IN_PROGRESS, user.id, action="step.start")
    project.step_data = {**(project.step_data or {}), step: data}
    db.session.commit()
    return project


def start_step(project: HrProject, step: str, user) -> HrProject:
    ensure_step_key(step)
    ensure_writable(project)
    require_company_role(project.company, user, ROLE_HR_MANAGER)
    _require_current(project, step)
    _transition(project, step, StepStatus.IN_PROGRESS, user.id, action="step.start")
    db.session.commit()
    return project


def submit_step(project: HrProject, step: str, user) -> HrProject:
    """HR manager submits a step for CEO verification.

    CEOs get the synchronous step-submitted mail; a diagnosis submission also
    queues the review request that links to the philosophy survey.
    """
    ensure_step_key(step)
    ensure_writable(project)
    require_company_role(project.company, user, ROLE_HR_MANAGER)
    _require_current(project, step)
    _transition(project, step, StepStatus.SUBMITTED, user.id, action="step.submit")
    db.session.commit()

    ceos = project.company.users_with_role(ROLE_CEO)
    if not ceos:
        logger.warning("Project %s has no CEO to notify about %s", project.id, step,
                       extra={"event_type": "notification.no_recipient", "project_id": project.id, "step": step})
    notify(ceos, StepSubmittedNotification(project, step))
    if step == STEP_KEYS[0]:
        notify(ceos, DiagnosisSubmittedNotification(project))
    return project


def verify_step(project: HrProject, step: str, user) -> str | None:
    """CEO verifies a submitted step; returns the key of the step it unlocked."""
    ensure_step_key(step)
    ensure_writable(project)
    require_company_role(project.company, user, ROLE_CEO)

    raw = project.get_step_status(step)
    if normalize_status(raw) is not StepStatus.SUBMITTED:
        raise ConflictStateError(
            "step", raw, StepStatus.APPROVED.value,
            message=f"{step_display_name(step)} must be submitted before it can be verified",
        )
    if step == STEP_KEYS[0] and project.ceo_philosophy_status not in PHILOSOPHY_DONE:
        raise ConflictStateError(
            "step", raw, StepStatus.APPROVED.value,
            message="Complete the Management Philosophy Survey before verifying the diagnosis",
        )

    next_step = approve_and_lock(project, step, user.id)
    db.session.commit()

    if next_step:
        notify(project.company.users_with_role(ROLE_HR_MANAGER),
               StepUnlockedNotification(project, next_step, step))
    return next_step


def lock_project(project: HrProject, user) -> HrProject:
    """CEO signs off the whole HR system; every step ends up locked."""
    ensure_writable(project)
    require_company_role(project.company, user, ROLE_CEO)

    pending = [k for k in STEP_KEYS if not is_completed_for_display(project.get_step_status(k))]
    if pending:
        raise ConflictStateError(
            "project", project.status, ProjectStatus.LOCKED.value,
            message="All steps must be completed before locking: " + ", ".join(pending),
        )

    for key in STEP_KEYS:
        status = normalize_status(project.get_step_status(key))
        if status is StepStatus.SUBMITTED:
            _transition(project, key, StepStatus.APPROVED, user.id, action="step.approve")
            status = StepStatus.APPROVED
        if status is not StepStatus.LOCKED:
            _transition(project, key, StepStatus.LOCKED, user.id, action="step.lock")

    project.status = ProjectStatus.LOCKED.value
    project.locked_at = datetime.now(timezone.utc)
    write_audit(
        entity_type="hr_project",
        entity_id=project.id,
        action="project.lock",
        actor_user_id=user.id,
        project_id=project.id,
        diff={"status": {"old": ProjectStatus.ACTIVE.value, "new": ProjectStatus.LOCKED.value}},
    )
    db.session.commit()
    logger.info("Project %s locked", project.id,
                extra={"event_type": "project.lock", "project_id": project.id, "user_id": user.id})

    notify(project.company.users_with_role(ROLE_HR_MANAGER), SystemLockedNotification(project))
    return project


def get_workflow_state(project: HrProject) -> dict:
    summary = workflow_summary(project)
    summary["raw_statuses"] = dict(project.step_statuses or {})
    summary["step_names"] = {key: step_display_name(key) for key in STEP_KEYS}
    return summary
