"""
HR Path-Finder
Audit domain model.

Models:
    - AuditLog: immutable, append-only trail of step transitions and
      admin decisions.
"""

from datetime import datetime, timezone

from pathfinder.models import db
from pathfinder.utils.helpers import isoformat

AUDIT_ACTIONS = {
    # Step lifecycle
    "step.start",
    "step.submit",
    "step.approve",
    "step.lock",
    "step.unlock",
    "project.lock",
    # Survey
    "philosophy.complete",
    # Invitations
    "invitation.create",
    "invitation.accept",
    "invitation.reject",
    "invitation.delete",
    # CEO role requests
    "ceo_role.request",
    "ceo_role.approve",
    "ceo_role.reject",
    "ceo.assign",
    # KPI review
    "kpi_review.submit",
    # Accounts
    "password.reset",
    # Admin catalogue
    "catalog.create",
    "catalog.update",
    "catalog.delete",
}


class AuditLog(db.Model):
    """
    One row per action.  ``diff`` carries the old→new snapshot,
    e.g. ``{"status": {"old": "submitted", "new": "approved"}}``.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_entity", "entity_type", "entity_id"),
        db.Index("idx_audit_project", "project_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    entity_type = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.String(64), nullable=False)
    action = db.Column(db.String(50), nullable=False)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    project_id = db.Column(db.Integer, db.ForeignKey("hr_projects.id", ondelete="CASCADE"), nullable=True)
    diff = db.Column(db.JSON)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "actor_user_id": self.actor_user_id,
            "project_id": self.project_id,
            "diff": self.diff or {},
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} {self.entity_type}#{self.entity_id}>"


def write_audit(
    *,
    entity_type: str,
    entity_id,
    action: str,
    actor_user_id: int | None = None,
    project_id: int | None = None,
    diff: dict | None = None,
) -> AuditLog:
    """
    Append a single audit row.  Uses ``flush`` so callers keep
    transaction control.
    """
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action: {action}")
    log = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        actor_user_id=actor_user_id,
        project_id=project_id,
        diff=diff,
    )
    db.session.add(log)
    db.session.flush()
    return log
