"""
Invitation Blueprint — CEO invitations.

  POST   /api/v1/companies/<cid>/invite-ceo     — HR manager invites a CEO (mail sent)
  GET    /api/v1/companies/<cid>/invitations    — Invitations of a company
  GET    /api/v1/invitations/<token>            — Public: invitation preview
  POST   /api/v1/invitations/<token>/accept     — Public: accept (single use, expiry)
  POST   /api/v1/invitations/<token>/reject     — Public: reject, inviter notified
  POST   /api/v1/invitations/<iid>/resend       — Member/admin: resend pending invitation
  DELETE /api/v1/invitations/<iid>              — Member/admin: delete non-accepted invitation

Token routes take the 64-char token as a string; management routes take the
numeric id.
"""

from flask import Blueprint, g, jsonify

from pathfinder.auth import login_required, require_role
from pathfinder.blueprints import json_body
from pathfinder.models.auth import ROLE_ADMIN, ROLE_HR_MANAGER
from pathfinder.services import invitation_service, project_service
from pathfinder.utils.routes import route_url

invitation_bp = Blueprint("invitation", __name__, url_prefix="/api/v1")


@invitation_bp.route("/companies/<int:cid>/invite-ceo", methods=["POST"])
@require_role(ROLE_HR_MANAGER, ROLE_ADMIN)
def invite_ceo(cid):
    company = project_service.get_company(cid, g.current_user)
    inv = invitation_service.invite_ceo(company, g.current_user, json_body())
    return jsonify({
        "message": f"CEO invitation sent successfully to {inv.email}.",
        "invitation": inv.to_dict(),
    }), 201


@invitation_bp.route("/companies/<int:cid>/invitations", methods=["GET"])
@login_required
def list_invitations(cid):
    company = project_service.get_company(cid, g.current_user)
    invitations = invitation_service.list_company_invitations(company)
    return jsonify([i.to_dict() for i in invitations]), 200


# ── Public token routes ──────────────────────────────────────────────────────

@invitation_bp.route("/invitations/<string:token>", methods=["GET"])
def show_invitation(token):
    inv = invitation_service.get_by_token(token)
    return jsonify({
        "invitation": inv.to_dict(),
        "company_name": inv.company.name,
        "is_expired": inv.is_expired(),
    }), 200


@invitation_bp.route("/invitations/<string:token>/accept", methods=["POST"])
def accept_invitation(token):
    inv, is_new_user = invitation_service.accept_invitation(token)
    if is_new_user:
        message = "Invitation accepted! Please check your email for login credentials."
    else:
        message = "Invitation accepted! Please login with your existing credentials."
    return jsonify({
        "message": message,
        "is_new_user": is_new_user,
        "invitation": inv.to_dict(),
        "login_url": route_url("login"),
    }), 200


@invitation_bp.route("/invitations/<string:token>/reject", methods=["POST"])
def reject_invitation(token):
    inv = invitation_service.reject_invitation(token)
    return jsonify({
        "message": "Invitation rejected. The HR Manager has been notified.",
        "invitation": inv.to_dict(),
    }), 200


# ── Management ───────────────────────────────────────────────────────────────

@invitation_bp.route("/invitations/<int:iid>/resend", methods=["POST"])
@login_required
def resend_invitation(iid):
    inv = invitation_service.resend_invitation(iid, g.current_user)
    return jsonify({
        "message": f"Invitation resent to {inv.email}.",
        "invitation": inv.to_dict(),
    }), 200


@invitation_bp.route("/invitations/<int:iid>", methods=["DELETE"])
@login_required
def delete_invitation(iid):
    invitation_service.delete_invitation(iid, g.current_user)
    return jsonify({"message": "Invitation deleted."}), 200
