"""
Philosophy Blueprint — the CEO Management Philosophy Survey.

  GET  /api/v1/ceo/philosophy/survey/<pid>        — Questions, grouped issues, saved answers
  POST /api/v1/ceo/philosophy/survey/<pid>        — Submit the completed survey
  PUT  /api/v1/ceo/philosophy/survey/<pid>/draft  — Save partial answers
"""

from flask import Blueprint, g, jsonify

from pathfinder.auth import require_role
from pathfinder.blueprints import json_body
from pathfinder.models.auth import ROLE_CEO
from pathfinder.services import philosophy_survey, project_service
from pathfinder.utils.routes import route_url

philosophy_bp = Blueprint("philosophy", __name__, url_prefix="/api/v1/ceo/philosophy")


@philosophy_bp.route("/survey/<int:pid>", methods=["GET"])
@require_role(ROLE_CEO)
def survey_context(pid):
    project = project_service.get_project(pid, g.current_user)
    return jsonify(philosophy_survey.build_survey_context(project, g.current_user)), 200


@philosophy_bp.route("/survey/<int:pid>", methods=["POST"])
@require_role(ROLE_CEO)
def submit_survey(pid):
    project = project_service.get_project(pid, g.current_user)
    philosophy = philosophy_survey.store_survey(project, g.current_user, json_body())
    return jsonify({
        "message": "Management Philosophy Survey submitted successfully.",
        "philosophy": philosophy.to_dict(),
        "workflow": project_service.get_workflow_state(project),
        "redirect_url": route_url("dashboard.ceo"),
    }), 200


@philosophy_bp.route("/survey/<int:pid>/draft", methods=["PUT"])
@require_role(ROLE_CEO)
def save_draft(pid):
    project = project_service.get_project(pid, g.current_user)
    philosophy = philosophy_survey.save_survey_draft(project, g.current_user, json_body())
    return jsonify({
        "philosophy": philosophy.to_dict(),
        "ceo_philosophy_status": project.ceo_philosophy_status,
    }), 200
