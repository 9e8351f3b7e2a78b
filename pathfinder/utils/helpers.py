"""Shared utility functions for blueprints and services.

missing_fields:  required-field check producing per-field messages
utcnow / as_utc: timezone-safe timestamps (SQLite drops tzinfo on read)
"""
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email

from pathfinder.core.exceptions import ValidationError


def missing_fields(data: dict, *fields: str) -> dict[str, str]:
    """Return ``{field: message}`` for every required field that is blank."""
    errors = {}
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors[field] = f"The {field.replace('_', ' ')} field is required."
    return errors


def is_truthy(value) -> bool:
    """Interpret query-string style booleans ("true", "1", "yes")."""
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes loaded back from SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def isoformat(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def normalize_email(value, field: str = "email") -> str:
    """Validate an address (syntax only) and return its normalized form.

    Raises:
        ValidationError: blank or malformed address, keyed by ``field``.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", details={field: f"The {field} field is required."})
    try:
        return validate_email(value.strip(), check_deliverability=False).normalized
    except EmailNotValidError as exc:
        raise ValidationError(f"Invalid {field}", details={field: str(exc)}) from exc
