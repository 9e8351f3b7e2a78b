"""
Platform-wide exception hierarchy.

Services raise these types; the app-level handlers registered in
``create_app`` translate them to HTTP responses once, so blueprints never
carry their own try/except ladders for business-rule failures.

Usage:
    from pathfinder.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="HrProject", resource_id=42)
    raise ValidationError("Concerns are required", details={"concerns": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist or is not visible.

    Maps to HTTP 404.

    Args:
        resource: Human-readable model/entity name (e.g. "HrProject").
        resource_id: The key that was looked up. Included in logs, not in HTTP response.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Distinct from HTTP 400 (malformed input, caught in blueprint): the data
    was well-formed but violated a rule.  Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Field-level breakdown, keyed by field name.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique record.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class ConflictStateError(Exception):
    """Raised for a status change the lifecycle does not allow.

    Maps to HTTP 409.

    Args:
        entity: Entity name ("step", "invitation", ...).
        current: Status the entity is in now.
        target: Status the caller asked for.
    """

    def __init__(self, entity: str, current: str | None, target: str, message: str | None = None) -> None:
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(message or f"Cannot move {entity} from {current!r} to {target!r}")


class ProjectLockedError(ConflictStateError):
    """Raised on any write to a project whose overall status is locked."""

    def __init__(self, project_id: int) -> None:
        self.project_id = project_id
        super().__init__(
            "project", "locked", "modified",
            message=f"HR project {project_id} is locked and read-only",
        )


class PermissionDenied(Exception):
    """Raised when the acting user lacks the role or membership for an action.

    Maps to HTTP 403.
    """


class TokenExpiredError(Exception):
    """Raised when a single-use or time-bounded token is past its expiry
    or was already consumed.

    Maps to HTTP 410.
    """


class TokenExhaustedError(TokenExpiredError):
    """Raised when a bounded-use token has no submissions left."""


class MailDeliveryError(Exception):
    """Raised when a mail that must go out inside the request could not be sent.

    Maps to HTTP 502.
    """

    def __init__(self, recipient: str, reason: str | None = None) -> None:
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Mail to {recipient} could not be delivered")
