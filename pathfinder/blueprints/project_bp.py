"""
Project Blueprint — companies, HR projects and the four-step workflow.

  GET  /api/v1/industries                              — Industry picker (with subcategories)
  POST /api/v1/companies                               — Create company (caller becomes HR manager)
  GET  /api/v1/companies/<cid>                         — Company detail + projects
  POST /api/v1/companies/<cid>/projects                — Create HR project
  GET  /api/v1/projects/<pid>                          — Project + workflow state
  GET  /api/v1/projects/<pid>/workflow                 — Derived step states only
  PUT  /api/v1/projects/<pid>/steps/<step>             — Save step working data
  POST /api/v1/projects/<pid>/steps/<step>/start       — not_started → in_progress
  POST /api/v1/projects/<pid>/steps/<step>/submit      — → submitted (mails CEOs)
  POST /api/v1/projects/<pid>/steps/<step>/verify      — CEO: → locked, unlock next
  POST /api/v1/projects/<pid>/lock                     — CEO: lock the whole system

Business-rule failures are raised by project_service and mapped to HTTP
by the app-level handlers.
"""

from flask import Blueprint, g, jsonify

from pathfinder.auth import login_required, require_role
from pathfinder.blueprints import json_body
from pathfinder.models.auth import ROLE_CEO, ROLE_HR_MANAGER
from pathfinder.models.project import HrProject
from pathfinder.services import admin_service, project_service

project_bp = Blueprint("project", __name__, url_prefix="/api/v1")


def _project_payload(project: HrProject) -> dict:
    return {
        "project": project.to_dict(),
        "workflow": project_service.get_workflow_state(project),
    }


# ═════════════════════════════════════════════════════════════════════════════
# Companies
# ═════════════════════════════════════════════════════════════════════════════

@project_bp.route("/industries", methods=["GET"])
@login_required
def list_industries():
    industries = admin_service.list_industries()
    return jsonify([i.to_dict(include_subcategories=True) for i in industries]), 200


@project_bp.route("/companies", methods=["POST"])
@require_role(ROLE_HR_MANAGER)
def create_company():
    company = project_service.create_company(g.current_user, json_body())
    return jsonify(company.to_dict()), 201


@project_bp.route("/companies/<int:cid>", methods=["GET"])
@login_required
def get_company(cid):
    company = project_service.get_company(cid, g.current_user)
    projects = company.projects.order_by(HrProject.created_at.desc(), HrProject.id.desc()).all()
    return jsonify({
        **company.to_dict(),
        "hr_managers": [u.to_dict() for u in company.users_with_role(ROLE_HR_MANAGER)],
        "ceos": [u.to_dict() for u in company.users_with_role(ROLE_CEO)],
        "projects": [p.to_dict() for p in projects],
    }), 200


@project_bp.route("/companies/<int:cid>/projects", methods=["POST"])
@require_role(ROLE_HR_MANAGER)
def create_project(cid):
    company = project_service.get_company(cid, g.current_user)
    project = project_service.create_project(company, g.current_user)
    return jsonify(_project_payload(project)), 201


# ═════════════════════════════════════════════════════════════════════════════
# Projects & workflow
# ═════════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects/<int:pid>", methods=["GET"])
@login_required
def get_project(pid):
    project = project_service.get_project(pid, g.current_user)
    payload = _project_payload(project)
    payload["step_data"] = dict(project.step_data or {})
    return jsonify(payload), 200


@project_bp.route("/projects/<int:pid>/workflow", methods=["GET"])
@login_required
def get_workflow(pid):
    project = project_service.get_project(pid, g.current_user)
    return jsonify(project_service.get_workflow_state(project)), 200


@project_bp.route("/projects/<int:pid>/steps/<step>", methods=["PUT"])
@require_role(ROLE_HR_MANAGER)
def save_step(pid, step):
    project = project_service.get_project(pid, g.current_user)
    data = json_body()
    project_service.save_step_data(project, step, g.current_user, data.get("data", data))
    return jsonify(_project_payload(project)), 200


@project_bp.route("/projects/<int:pid>/steps/<step>/start", methods=["POST"])
@require_role(ROLE_HR_MANAGER)
def start_step(pid, step):
    project = project_service.get_project(pid, g.current_user)
    project_service.start_step(project, step, g.current_user)
    return jsonify(_project_payload(project)), 200


@project_bp.route("/projects/<int:pid>/steps/<step>/submit", methods=["POST"])
@require_role(ROLE_HR_MANAGER)
def submit_step(pid, step):
    project = project_service.get_project(pid, g.current_user)
    project_service.submit_step(project, step, g.current_user)
    return jsonify(_project_payload(project)), 200


@project_bp.route("/projects/<int:pid>/steps/<step>/verify", methods=["POST"])
@require_role(ROLE_CEO)
def verify_step(pid, step):
    project = project_service.get_project(pid, g.current_user)
    next_step = project_service.verify_step(project, step, g.current_user)
    payload = _project_payload(project)
    payload["unlocked_step"] = next_step
    return jsonify(payload), 200


@project_bp.route("/projects/<int:pid>/lock", methods=["POST"])
@require_role(ROLE_CEO)
def lock_project(pid):
    project = project_service.get_project(pid, g.current_user)
    project_service.lock_project(project, g.current_user)
    return jsonify(_project_payload(project)), 200
