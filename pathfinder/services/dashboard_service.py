"""
HR Path-Finder
Role dashboards.

Read-only aggregations for the four landing pages:
  - HR manager: current company/project, step progress, mail setup
  - CEO: companies, steps awaiting verification, survey prompt
  - Consultant: every project's workflow and the review queue
  - Admin: platform counters and recent projects
"""

import logging

from pathfinder.models.auth import (
    CEO_REQUEST_PENDING,
    ROLE_CEO,
    ROLE_HR_MANAGER,
    CeoRoleRequest,
    Company,
    CompanyMember,
)
from pathfinder.models.invitation import INVITATION_PENDING, CompanyInvitation
from pathfinder.models.project import STEP_KEYS, HrProject, PhilosophyStatus, StepStatus
from pathfinder.services.email_service import EmailService
from pathfinder.services.workflow import (
    is_completed_for_display,
    normalize_status,
    workflow_summary,
)

logger = logging.getLogger(__name__)

VERIFIED_STATUSES = {StepStatus.APPROVED, StepStatus.LOCKED, StepStatus.COMPLETED}
RECENT_LIMIT = 5


def _companies_for(user, role: str) -> list[Company]:
    return (
        Company.query.join(CompanyMember, CompanyMember.company_id == Company.id)
        .filter(CompanyMember.user_id == user.id, CompanyMember.role == role)
        .order_by(Company.created_at.desc(), Company.id.desc())
        .all()
    )


def _latest_project(company: Company) -> HrProject | None:
    return company.projects.order_by(HrProject.created_at.desc(), HrProject.id.desc()).first()


def _step_statuses(project: HrProject) -> dict:
    raw = project.step_statuses or {}
    return {key: raw.get(key, StepStatus.NOT_STARTED.value) for key in STEP_KEYS}


def _overall_status(project: HrProject | None) -> str:
    if project is None:
        return "not_started"
    if project.is_locked:
        return "completed"
    statuses = _step_statuses(project).values()
    if all(normalize_status(s) is StepStatus.NOT_STARTED for s in statuses):
        return "not_started"
    return "in_progress"


def _project_card(project: HrProject) -> dict:
    statuses = _step_statuses(project)
    return {
        "id": project.id,
        "company_id": project.company_id,
        "company_name": project.company.name,
        "status": project.status,
        "step_statuses": statuses,
        "all_steps_complete": all(is_completed_for_display(s) for s in statuses.values()),
        "ceo_philosophy_status": project.ceo_philosophy_status,
        "created_at": project.to_dict()["created_at"],
    }


def current_step_number(step_statuses: dict) -> int:
    """1-based number of the first step not yet done; the last step once all are."""
    for number, key in enumerate(STEP_KEYS, start=1):
        if not is_completed_for_display(step_statuses.get(key)):
            return number
    return len(STEP_KEYS)


# ═══════════════════════════════════════════════════════════════════════════
#  HR manager
# ═══════════════════════════════════════════════════════════════════════════

def hr_manager_dashboard(user) -> dict:
    companies = _companies_for(user, ROLE_HR_MANAGER)
    current_company = companies[0] if companies else None
    project = _latest_project(current_company) if current_company else None

    overall = {c.id: _overall_status(_latest_project(c)) for c in companies}
    if project is not None:
        statuses = _step_statuses(project)
    else:
        statuses = {key: StepStatus.NOT_STARTED.value for key in STEP_KEYS}

    pending_invitations = 0
    if current_company is not None:
        pending_invitations = CompanyInvitation.query.filter_by(
            company_id=current_company.id, status=INVITATION_PENDING,
        ).count()

    return {
        "companies": [{**c.to_dict(), "overall_status": overall[c.id]} for c in companies],
        "current_company": current_company.to_dict() if current_company else None,
        "project": workflow_summary(project) if project else None,
        "step_statuses": statuses,
        "verified_steps": {k: normalize_status(v) in VERIFIED_STATUSES for k, v in statuses.items()},
        "progress_count": sum(1 for s in statuses.values() if is_completed_for_display(s)),
        "current_step_number": current_step_number(statuses),
        "has_ceo": bool(current_company and current_company.users_with_role(ROLE_CEO)),
        "pending_invitations": pending_invitations,
        "smtp_configured": EmailService.is_configured(),
        "stats": {
            "total_companies": len(companies),
            "in_progress": sum(1 for s in overall.values() if s == "in_progress"),
            "completed": sum(1 for s in overall.values() if s == "completed"),
            "not_started": sum(1 for s in overall.values() if s == "not_started"),
        },
    }


# ═══════════════════════════════════════════════════════════════════════════
#  CEO
# ═══════════════════════════════════════════════════════════════════════════

def ceo_dashboard(user) -> dict:
    companies = _companies_for(user, ROLE_CEO)
    if not companies:
        return {
            "companies": [],
            "pending_verifications": [],
            "survey_required": [],
            "completed_projects": [],
            "no_company": True,
            "message": (
                "You have not been invited to any company yet. "
                "Please wait for an invitation from the HR Manager."
            ),
            "stats": {"total_companies": 0, "pending_verifications": 0, "completed_projects": 0},
        }

    company_ids = [c.id for c in companies]
    projects = (
        HrProject.query.filter(HrProject.company_id.in_(company_ids))
        .order_by(HrProject.created_at.desc(), HrProject.id.desc())
        .all()
    )

    pending = []
    survey_required = []
    for project in projects:
        if project.is_locked:
            continue
        statuses = _step_statuses(project)
        submitted = [k for k, s in statuses.items() if normalize_status(s) is StepStatus.SUBMITTED]
        if submitted:
            pending.append({**_project_card(project), "submitted_steps": submitted})
        philosophy = project.ceo_philosophy_status
        if (is_completed_for_display(statuses["diagnosis"])
                and philosophy not in (PhilosophyStatus.COMPLETED.value, PhilosophyStatus.LOCKED.value)):
            survey_required.append(_project_card(project))

    completed = [_project_card(p) for p in projects if p.is_locked][:RECENT_LIMIT]
    return {
        "companies": [c.to_dict() for c in companies],
        "pending_verifications": pending,
        "survey_required": survey_required,
        "completed_projects": completed,
        "no_company": False,
        "stats": {
            "total_companies": len(companies),
            "pending_verifications": len(pending),
            "completed_projects": len(completed),
        },
    }


# ═══════════════════════════════════════════════════════════════════════════
#  Consultant
# ═══════════════════════════════════════════════════════════════════════════

def consultant_dashboard(user) -> dict:
    projects = HrProject.query.order_by(HrProject.created_at.desc(), HrProject.id.desc()).all()
    cards = [_project_card(p) for p in projects]

    active_companies = []
    seen = set()
    for card in cards:
        if card["company_id"] in seen or card["status"] == "locked":
            continue
        seen.add(card["company_id"])
        active_companies.append({
            "id": card["company_id"],
            "name": card["company_name"],
            "project_id": card["id"],
            "step_statuses": card["step_statuses"],
        })

    workflow_status = {
        f"step{number}": sum(1 for c in cards if is_completed_for_display(c["step_statuses"][key]))
        for number, key in enumerate(STEP_KEYS, start=1)
    }
    needs_review = [c for c in cards if c["all_steps_complete"] and c["status"] != "locked"]
    surveys_done = sum(
        1 for c in cards
        if c["ceo_philosophy_status"] in (PhilosophyStatus.COMPLETED.value, PhilosophyStatus.LOCKED.value)
    )

    return {
        "active_companies": active_companies,
        "projects": cards,
        "needs_review": needs_review,
        "workflow_status": workflow_status,
        "stats": {
            "active_companies": len(active_companies),
            "steps_complete": f"{sum(1 for c in cards if c['all_steps_complete'])}/{len(cards)}",
            "ceo_survey_status": "submitted" if surveys_done else "pending",
            "pending_reviews": len(needs_review),
        },
    }


# ═══════════════════════════════════════════════════════════════════════════
#  Admin
# ═══════════════════════════════════════════════════════════════════════════

def admin_dashboard() -> dict:
    projects = HrProject.query.order_by(HrProject.created_at.desc(), HrProject.id.desc()).all()

    def diagnosis_submitted(project):
        return normalize_status(project.get_step_status("diagnosis")) is StepStatus.SUBMITTED

    locked = [p for p in projects if p.is_locked]
    return {
        "stats": {
            "total_projects": len(projects),
            "total_companies": Company.query.count(),
            "active_projects": len(projects) - len(locked),
            "completed_projects": len(locked),
            "pending_diagnosis": sum(1 for p in projects if diagnosis_submitted(p)),
            "pending_ceo_survey": sum(
                1 for p in projects
                if diagnosis_submitted(p) and p.ceo_philosophy_status == PhilosophyStatus.NOT_STARTED.value
            ),
            "pending_ceo_role_requests": CeoRoleRequest.query.filter_by(status=CEO_REQUEST_PENDING).count(),
        },
        "recent_projects": [_project_card(p) for p in projects[:RECENT_LIMIT]],
        "smtp_configured": EmailService.is_configured(),
    }
