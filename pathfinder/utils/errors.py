"""Standardised API error responses.

Usage
-----
    from pathfinder.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Project not found")
    return api_error(E.VALIDATION_REQUIRED, "email is required")
    return api_error(E.CONFLICT_STATE, "Step already submitted", details={"step": "diagnosis"})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400 (malformed) / 422 (business rule)
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    VALIDATION_RULE = "ERR_VALIDATION_RULE"
    CONFIRMATION_REQUIRED = "ERR_CONFIRMATION_REQUIRED"

    # Auth – HTTP 401 / 403
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    PROJECT_LOCKED = "ERR_PROJECT_LOCKED"

    # Expired / exhausted tokens – HTTP 410
    TOKEN_EXPIRED = "ERR_TOKEN_EXPIRED"
    TOKEN_EXHAUSTED = "ERR_TOKEN_EXHAUSTED"

    # Upstream mail relay – HTTP 502
    MAIL_DELIVERY = "ERR_MAIL_DELIVERY"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_RULE: 422,
    E.CONFIRMATION_REQUIRED: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.PROJECT_LOCKED: 409,
    E.TOKEN_EXPIRED: 410,
    E.TOKEN_EXHAUSTED: 410,
    E.MAIL_DELIVERY: 502,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """(jsonify(body), status) with body ``{"error", "code", "details"?}``.

    ``status`` defaults to the code's entry in ``_DEFAULT_STATUS`` (400 when
    unmapped).  ``details`` carries per-field messages such as
    ``{"email": "The email field is required."}`` or structured context.
    """
    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status
