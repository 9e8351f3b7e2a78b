"""
User Service — account lookup, creation and credentials.
"""

from datetime import datetime, timezone

from sqlalchemy import func

from pathfinder.core.exceptions import ConflictError, ValidationError
from pathfinder.models import db
from pathfinder.models.auth import VALID_ROLES, User
from pathfinder.utils.crypto import hash_password, verify_password
from pathfinder.utils.helpers import normalize_email

MIN_PASSWORD_LENGTH = 8


def get_user_by_email(email: str) -> User | None:
    """Case-insensitive lookup."""
    if not email:
        return None
    return User.query.filter(func.lower(User.email) == email.strip().lower()).first()


def create_user(
    email: str,
    name: str | None = None,
    password: str | None = None,
    roles: list[str] | None = None,
    *,
    verified: bool = False,
) -> User:
    """Create a user; flushes so the caller controls the transaction."""
    email = normalize_email(email)
    if get_user_by_email(email):
        raise ConflictError("User", "email", email)

    unknown = set(roles or []) - VALID_ROLES
    if unknown:
        raise ValidationError("Unknown role", details={"roles": ", ".join(sorted(unknown))})

    user = User(
        email=email,
        name=(name or email.split("@")[0]).strip(),
        password_hash=hash_password(password) if password else None,
        roles=list(roles or []),
        email_verified_at=datetime.now(timezone.utc) if verified else None,
    )
    db.session.add(user)
    db.session.flush()
    return user


def authenticate(email: str, password: str) -> User | None:
    """Return the user when the credentials match, else None."""
    user = get_user_by_email(email)
    if user is None or not verify_password(password or "", user.password_hash):
        return None
    return user


def validate_new_password(password, confirmation=None) -> str:
    errors = {}
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"The password must be at least {MIN_PASSWORD_LENGTH} characters."
    elif confirmation is not None and confirmation != password:
        errors["password_confirmation"] = "The password confirmation does not match."
    if errors:
        raise ValidationError("Invalid password", details=errors)
    return password


def set_password(user: User, password: str) -> None:
    user.password_hash = hash_password(password)
