"""
CEO Role Blueprint — HR managers asking to act as their company's CEO.

  POST /api/v1/ceo-role-requests                          — Request CEO role for a company
  GET  /api/v1/ceo-role-requests                          — Caller's own requests
  GET  /api/v1/admin/ceo-role-requests?status=            — Admin queue (paginated)
  POST /api/v1/admin/ceo-role-requests/<rid>/approve      — Approve (mail sent)
  POST /api/v1/admin/ceo-role-requests/<rid>/reject       — Reject with optional reason
"""

from flask import Blueprint, g, jsonify, request

from pathfinder.auth import login_required, require_role
from pathfinder.blueprints import json_body, paginate_query
from pathfinder.models.auth import ROLE_ADMIN, CeoRoleRequest
from pathfinder.services import ceo_role_service

ceo_role_bp = Blueprint("ceo_role", __name__, url_prefix="/api/v1")


@ceo_role_bp.route("/ceo-role-requests", methods=["POST"])
@login_required
def request_ceo_role():
    data = json_body()
    req = ceo_role_service.request_ceo_role(g.current_user, data.get("company_id"))
    return jsonify({
        "message": "Your CEO role request has been submitted. An administrator will review it.",
        "request": req.to_dict(),
    }), 201


@ceo_role_bp.route("/ceo-role-requests", methods=["GET"])
@login_required
def my_requests():
    reqs = (
        CeoRoleRequest.query.filter_by(user_id=g.current_user.id)
        .order_by(CeoRoleRequest.requested_at.desc(), CeoRoleRequest.id.desc())
        .all()
    )
    return jsonify([r.to_dict() for r in reqs]), 200


@ceo_role_bp.route("/admin/ceo-role-requests", methods=["GET"])
@require_role(ROLE_ADMIN)
def list_requests():
    status = request.args.get("status") or None
    items, total = paginate_query(ceo_role_service.list_requests(status))
    return jsonify({"items": [r.to_dict() for r in items], "total": total}), 200


@ceo_role_bp.route("/admin/ceo-role-requests/<int:rid>/approve", methods=["POST"])
@require_role(ROLE_ADMIN)
def approve_request(rid):
    req = ceo_role_service.approve_request(rid, g.current_user)
    return jsonify({
        "message": "CEO role request approved. User has been notified via email.",
        "request": req.to_dict(),
    }), 200


@ceo_role_bp.route("/admin/ceo-role-requests/<int:rid>/reject", methods=["POST"])
@require_role(ROLE_ADMIN)
def reject_request(rid):
    data = json_body()
    req = ceo_role_service.reject_request(rid, g.current_user, data.get("rejection_reason"))
    return jsonify({"message": "CEO role request rejected.", "request": req.to_dict()}), 200
