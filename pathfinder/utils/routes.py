"""Named front-end routes.

Emails and API payloads link to pages by route name, never by raw path,
so the web client can move pages without touching the mailers.

    route_url("invitations.accept", token=inv.token)
    -> "https://app.example.com/invitations/accept/<token>"
"""

from urllib.parse import quote

from flask import current_app

ROUTES: dict[str, str] = {
    "home": "/",
    "login": "/login",
    "register": "/register",
    "dashboard": "/dashboard",
    "companies.show": "/companies/{company}",
    "invitations.accept": "/invitations/accept/{token}",
    "invitations.reject": "/invitations/reject/{token}",
    "ceo.review.diagnosis": "/ceo/review/diagnosis/{project}",
    "hr-manager.dashboard": "/hr-manager/dashboard",
    "dashboard.ceo": "/ceo/dashboard",
    "dashboard.hr-manager": "/hr-manager/dashboard",
    "hr-system.overview": "/hr-system/{project}",
    "kpi-review.token": "/kpi-review/token/{token}",
}


def route_path(name: str, **params) -> str:
    """Resolve a route name to its path.

    Raises:
        KeyError: unknown route name, or a path parameter is missing.
    """
    template = ROUTES[name]
    return template.format(**{k: quote(str(v), safe="") for k, v in params.items()})


def route_url(name: str, **params) -> str:
    """Absolute URL for a route name, rooted at ``FRONTEND_BASE_URL``."""
    base = current_app.config.get("FRONTEND_BASE_URL", "").rstrip("/")
    return f"{base}{route_path(name, **params)}"
