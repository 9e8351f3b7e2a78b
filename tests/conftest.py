"""
Shared pytest fixtures for the HR Path-Finder test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / auth_headers: user factory and bearer headers
    - hr_manager, ceo, admin_user, consultant: one user per role
    - company: company with the HR manager and CEO as members
    - project: fresh HR project of that company
"""

import email_validator
import pytest

from pathfinder import create_app
from pathfinder.models import db as _db
from pathfinder.models.auth import (
    ROLE_ADMIN,
    ROLE_CEO,
    ROLE_CONSULTANT,
    ROLE_HR_MANAGER,
    Company,
    CompanyMember,
    User,
)
from pathfinder.models.project import HrProject
from pathfinder.services.jwt_service import generate_access_token
from pathfinder.utils.crypto import hash_password

# Fixtures use reserved ``.test`` domains; let email-validator accept them.
email_validator.TEST_ENVIRONMENT = True


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Users ────────────────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    """Factory: ``make_user("a@x.com", roles=["ceo"], password="...")``.

    Hashing is skipped unless a password is given (bcrypt is slow).
    """

    def _make(email, *, roles=(ROLE_HR_MANAGER,), name=None, password=None):
        user = User(
            email=email,
            name=name or email.split("@")[0].title(),
            roles=list(roles),
            password_hash=hash_password(password) if password else None,
        )
        _db.session.add(user)
        _db.session.commit()
        return user

    return _make


@pytest.fixture()
def auth_headers():
    """Factory: bearer headers for a user."""

    def _headers(user):
        token = generate_access_token(user.id, user.roles)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def hr_manager(make_user):
    return make_user("hr@acme.test", roles=[ROLE_HR_MANAGER], name="Hana Reyes")


@pytest.fixture()
def ceo(make_user):
    return make_user("ceo@acme.test", roles=[ROLE_CEO], name="Cem Ozan")


@pytest.fixture()
def admin_user(make_user):
    return make_user("admin@pathfinder.test", roles=[ROLE_ADMIN], name="Ada Admin")


@pytest.fixture()
def consultant(make_user):
    return make_user("consultant@pathfinder.test", roles=[ROLE_CONSULTANT], name="Con Sultant")


# ── Company & project ────────────────────────────────────────────────────


@pytest.fixture()
def company(hr_manager, ceo):
    """Company with ``hr_manager`` and ``ceo`` as members."""
    c = Company(name="Acme Manufacturing", created_by=hr_manager.id)
    _db.session.add(c)
    _db.session.flush()
    _db.session.add_all([
        CompanyMember(company_id=c.id, user_id=hr_manager.id, role=ROLE_HR_MANAGER),
        CompanyMember(company_id=c.id, user_id=ceo.id, role=ROLE_CEO),
    ])
    _db.session.commit()
    return c


@pytest.fixture()
def project(company, hr_manager):
    """Fresh project: every step not_started."""
    p = HrProject(company_id=company.id, created_by=hr_manager.id)
    p.initialize_step_statuses()
    _db.session.add(p)
    _db.session.commit()
    return p
