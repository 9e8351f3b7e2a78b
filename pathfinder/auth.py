"""
HR Path-Finder
Authentication & Authorization.

Provides:
    - JWT bearer authentication: ``Authorization: Bearer <token>`` resolves
      ``g.current_user`` once per request
    - ``login_required`` / ``require_role`` decorators for blueprints

Services never read ``g``; blueprints pass ``g.current_user`` explicitly.
"""

import functools
import logging

import jwt as pyjwt
from flask import g, request

from pathfinder.models import db
from pathfinder.models.auth import User
from pathfinder.services.jwt_service import decode_access_token
from pathfinder.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def _bearer_token() -> str | None:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header[7:].strip() or None


def init_auth(app):
    """Register the JWT before_request hook."""

    @app.before_request
    def _load_current_user():
        g.current_user = None
        g.auth_error = None

        token = _bearer_token()
        if not token:
            return

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            g.auth_error = "Token has expired"
            return
        except pyjwt.InvalidTokenError:
            g.auth_error = "Invalid token"
            return

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            g.auth_error = "Invalid token"
            return

        user = db.session.get(User, user_id)
        if user is None:
            g.auth_error = "User no longer exists"
            return
        g.current_user = user


# ── Decorators ───────────────────────────────────────────────────────────────

def login_required(f):
    """Decorator: require an authenticated user."""

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "current_user", None) is None:
            message = getattr(g, "auth_error", None) or "Authentication required"
            return api_error(E.UNAUTHORIZED, message)
        return f(*args, **kwargs)

    return decorated


def require_role(*roles: str):
    """
    Decorator: require at least one of ``roles``.

    Usage:
        @bp.route("/companies", methods=["POST"])
        @require_role("hr_manager")
        def create_company(): ...

    Implies ``login_required``.
    """

    def decorator(f):
        @functools.wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            user = g.current_user
            if not any(user.has_role(role) for role in roles):
                logger.warning(
                    "Access denied: user %s (%s) tried %s %s",
                    user.id, ",".join(user.roles or []), request.method, request.path,
                    extra={"event_type": "auth.forbidden", "user_id": user.id},
                )
                return api_error(E.FORBIDDEN, "You do not have permission to perform this action")
            return f(*args, **kwargs)

        return decorated

    return decorator
