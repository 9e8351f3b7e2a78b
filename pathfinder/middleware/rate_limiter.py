"""
Rate limiting configuration.

The Limiter instance is created in pathfinder/__init__.py with no default
limits; this module applies limits per blueprint. Unauthenticated token
and OTP endpoints get the tightest quota since they are brute-force targets.

Usage:
    from pathfinder.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Public token endpoints (invitations, KPI review): 30/minute
        - Authenticated write-heavy blueprints:              120/minute
        - Health check:                                      exempt

    The password OTP routes carry their own decorator limit
    (``OTP_RATE_LIMIT``) in auth_bp.

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in ("invitation", "kpi_review"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("30/minute")(bp)

    for bp_name in ("project", "philosophy", "admin", "ceo_role"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("120/minute")(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — public tokens: 30/min, write: 120/min")
