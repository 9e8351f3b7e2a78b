"""
JWT Service — Token generation and verification.

Access token:          1 hour     (configurable via JWT_ACCESS_EXPIRES)
Password reset token:  15 minutes (PASSWORD_RESET_TOKEN_TTL_MINUTES)
Algorithm:             HS256

Token payload (access):
{
    "sub": "<user_id>",
    "roles": ["hr_manager", ...],
    "type": "access",
    "iat": <issued_at>,
    "exp": <expires_at>,
    "jti": <unique_id>
}

The reset token is issued after a successful OTP check and carries the
email instead of a user id (``"type": "password_reset"``).
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

# ─── Defaults ────────────────────────────────────────────────
DEFAULT_ACCESS_EXPIRES = 3600       # 1 hour
DEFAULT_RESET_EXPIRES_MINUTES = 15
ALGORITHM = "HS256"


def _get_secret():
    """Get the JWT secret key from app config."""
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def _get_access_expires():
    return current_app.config.get("JWT_ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES)


# ═══════════════════════════════════════════════════════════════
# Token Generation
# ═══════════════════════════════════════════════════════════════
def generate_access_token(user_id: int, roles: list[str]) -> str:
    """Generate an access token for an authenticated user."""
    now = datetime.now(timezone.utc)
    payload = {
        # PyJWT requires a string subject
        "sub": str(user_id),
        "roles": list(roles or []),
        "type": "access",
        "iat": now,
        "exp": now + timedelta(seconds=_get_access_expires()),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


def generate_password_reset_token(email: str) -> str:
    now = datetime.now(timezone.utc)
    minutes = current_app.config.get("PASSWORD_RESET_TOKEN_TTL_MINUTES", DEFAULT_RESET_EXPIRES_MINUTES)
    payload = {
        "email": email,
        "type": "password_reset",
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


def token_response(user) -> dict:
    """Login response body for ``user``."""
    return {
        "access_token": generate_access_token(user.id, user.roles),
        "token_type": "Bearer",
        "expires_in": _get_access_expires(),
        "user": user.to_dict(),
    }


# ═══════════════════════════════════════════════════════════════
# Token Verification
# ═══════════════════════════════════════════════════════════════
def decode_token(token: str, expected_type: str = "access") -> dict:
    """
    Decode and verify a JWT token.

    Returns the payload dict on success.
    Raises jwt.exceptions on failure (ExpiredSignatureError, InvalidTokenError, etc.)
    """
    payload = jwt.decode(token, _get_secret(), algorithms=[ALGORITHM])

    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"Expected {expected_type} token, got {payload.get('type')}")

    return payload


def decode_access_token(token: str) -> dict:
    """Decode an access token — convenience wrapper."""
    return decode_token(token, expected_type="access")


def decode_password_reset_token(token: str) -> dict:
    return decode_token(token, expected_type="password_reset")
