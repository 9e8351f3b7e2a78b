"""
Dashboard Blueprint — one landing payload per role.

  GET /api/v1/dashboard/hr-manager
  GET /api/v1/dashboard/ceo
  GET /api/v1/dashboard/consultant   (consultants and admins)
  GET /api/v1/dashboard/admin
"""

from flask import Blueprint, g, jsonify

from pathfinder.auth import require_role
from pathfinder.models.auth import ROLE_ADMIN, ROLE_CEO, ROLE_CONSULTANT, ROLE_HR_MANAGER
from pathfinder.services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1/dashboard")


@dashboard_bp.route("/hr-manager", methods=["GET"])
@require_role(ROLE_HR_MANAGER)
def hr_manager():
    return jsonify(dashboard_service.hr_manager_dashboard(g.current_user)), 200


@dashboard_bp.route("/ceo", methods=["GET"])
@require_role(ROLE_CEO)
def ceo():
    return jsonify(dashboard_service.ceo_dashboard(g.current_user)), 200


@dashboard_bp.route("/consultant", methods=["GET"])
@require_role(ROLE_CONSULTANT, ROLE_ADMIN)
def consultant():
    return jsonify(dashboard_service.consultant_dashboard(g.current_user)), 200


@dashboard_bp.route("/admin", methods=["GET"])
@require_role(ROLE_ADMIN)
def admin():
    return jsonify(dashboard_service.admin_dashboard()), 200
