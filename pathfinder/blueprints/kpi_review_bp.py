"""
KPI Review Blueprint — tokenised review links for organisation KPIs.

  POST /api/v1/projects/<pid>/kpi-review-tokens            — HR manager issues links (mailed)
  GET  /api/v1/kpi-review/<token>                          — Public: review context
  GET  /api/v1/kpi-review/<token>/organizations/<name>     — Public: KPIs of another unit
  POST /api/v1/kpi-review/<token>                          — Public: submit proposals (spends a use)

Unknown tokens are 404; used-up or expired tokens are 410.
"""

from flask import Blueprint, g, jsonify

from pathfinder.auth import require_role
from pathfinder.blueprints import json_body
from pathfinder.models.auth import ROLE_HR_MANAGER
from pathfinder.services import kpi_review_service, project_service

kpi_review_bp = Blueprint("kpi_review", __name__, url_prefix="/api/v1")


@kpi_review_bp.route("/projects/<int:pid>/kpi-review-tokens", methods=["POST"])
@require_role(ROLE_HR_MANAGER)
def request_review(pid):
    project = project_service.get_project(pid, g.current_user)
    tokens = kpi_review_service.request_review(project, g.current_user, json_body())
    return jsonify({
        "message": f"Review request sent to {len(tokens)} reviewer(s).",
        "tokens": [t.to_dict() for t in tokens],
    }), 201


@kpi_review_bp.route("/kpi-review/<string:token>", methods=["GET"])
def review_context(token):
    return jsonify(kpi_review_service.get_review_context(token)), 200


@kpi_review_bp.route("/kpi-review/<string:token>/organizations/<path:organization_name>", methods=["GET"])
def organization_kpis(token, organization_name):
    kpis = kpi_review_service.get_organization_kpis(token, organization_name)
    return jsonify({
        "organization_name": organization_name,
        "kpis": [k.to_dict() for k in kpis],
    }), 200


@kpi_review_bp.route("/kpi-review/<string:token>", methods=["POST"])
def submit_review(token):
    result = kpi_review_service.submit_review(token, json_body())
    return jsonify({"message": "KPI review submitted successfully.", **result}), 200
