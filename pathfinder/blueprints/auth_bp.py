"""
Auth Blueprint — login, current user and password reset.

  POST /api/v1/auth/login                 — Email + password → JWT access token
  GET  /api/v1/auth/me                    — Current user, companies, dashboard
  POST /api/v1/auth/password/otp          — Mail a 6-digit reset code (rate limited)
  POST /api/v1/auth/password/verify-otp   — Code → short-lived reset token
  POST /api/v1/auth/password/reset        — Reset token + new password
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request

from pathfinder import limiter
from pathfinder.auth import login_required
from pathfinder.blueprints import json_body
from pathfinder.models.auth import ROLE_ADMIN, ROLE_CEO, ROLE_CONSULTANT, ROLE_HR_MANAGER
from pathfinder.services import password_reset_service, user_service
from pathfinder.services.jwt_service import token_response
from pathfinder.utils.errors import E, api_error
from pathfinder.utils.helpers import missing_fields
from pathfinder.utils.routes import route_url

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")

_otp_limit = limiter.shared_limit(lambda: current_app.config.get("OTP_RATE_LIMIT", "5/minute"),
                                  scope="password_otp")

# First matching role decides the landing dashboard
_DASHBOARD_ROUTES = (
    (ROLE_ADMIN, "dashboard"),
    (ROLE_CONSULTANT, "dashboard"),
    (ROLE_CEO, "dashboard.ceo"),
    (ROLE_HR_MANAGER, "dashboard.hr-manager"),
)


def _dashboard_for(user) -> str:
    for role, name in _DASHBOARD_ROUTES:
        if user.has_role(role):
            return route_url(name)
    return route_url("dashboard")


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/login
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Body: { "email": "...", "password": "..." }
    """
    data = json_body()
    missing = missing_fields(data, "email", "password")
    if missing:
        return api_error(E.VALIDATION_REQUIRED, "Email and password are required", details=missing)

    email = str(data["email"]).strip()
    password = str(data["password"])

    user = user_service.authenticate(email, password)
    if user is None:
        logger.warning("Failed login for %s", email, extra={"event_type": "auth.login_failed"})
        return api_error(E.UNAUTHORIZED, "Invalid email or password")

    logger.info("User %s logged in", user.id, extra={"event_type": "auth.login", "user_id": user.id})
    return jsonify(token_response(user)), 200


# ═══════════════════════════════════════════════════════════════
# GET /api/v1/auth/me
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    user = g.current_user
    companies = [
        {**m.company.to_dict(), "role": m.role}
        for m in user.memberships
    ]
    return jsonify({
        "user": user.to_dict(),
        "companies": companies,
        "dashboard_url": _dashboard_for(user),
    }), 200


# ═══════════════════════════════════════════════════════════════
# Password reset
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/password/otp", methods=["POST"])
@_otp_limit
def send_password_otp():
    data = json_body()
    password_reset_service.send_otp(data.get("email"), request.remote_addr)
    ttl = current_app.config.get("OTP_TTL_MINUTES", 10)
    return jsonify({
        "message": "We have sent a 6-digit OTP to your email address. Please check your inbox.",
        "expires_in_minutes": ttl,
    }), 200


@auth_bp.route("/password/verify-otp", methods=["POST"])
@_otp_limit
def verify_password_otp():
    data = json_body()
    otp = data.get("otp")
    if isinstance(otp, int) and not isinstance(otp, bool):
        otp = f"{otp:06d}"
    reset_token = password_reset_service.verify_otp(data.get("email"), otp)
    return jsonify({
        "message": "OTP verified successfully. Please set your new password.",
        "reset_token": reset_token,
    }), 200


@auth_bp.route("/password/reset", methods=["POST"])
def reset_password():
    data = json_body()
    password_reset_service.reset_password(
        data.get("reset_token") or data.get("token"),
        data.get("password"),
        data.get("password_confirmation"),
    )
    return jsonify({
        "message": "Your password has been reset successfully. Please login with your new password.",
        "login_url": route_url("login"),
    }), 200
