"""
HR Path-Finder
Company invitation model.

An HR Manager invites a CEO by email.  The invitation carries a 64-char
token used exactly once, to accept or to reject, before ``expires_at``.
"""

from datetime import datetime, timedelta, timezone

from pathfinder.models import db
from pathfinder.utils.helpers import as_utc, isoformat

INVITATION_PENDING = "pending"
INVITATION_ACCEPTED = "accepted"
INVITATION_REJECTED = "rejected"

DEFAULT_TTL_DAYS = 7


def _default_expiry():
    return datetime.now(timezone.utc) + timedelta(days=DEFAULT_TTL_DAYS)


class CompanyInvitation(db.Model):
    __tablename__ = "company_invitations"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    hr_project_id = db.Column(
        db.Integer, db.ForeignKey("hr_projects.id", ondelete="SET NULL"), nullable=True,
    )
    email = db.Column(db.String(255), nullable=False, index=True)
    role = db.Column(db.String(30), nullable=False, default="ceo")
    token = db.Column(db.String(64), nullable=False, unique=True)
    inviter_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status = db.Column(db.String(20), nullable=False, default=INVITATION_PENDING)
    temporary_password = db.Column(db.String(64), comment="Cleared once the welcome email is rendered")
    accepted_at = db.Column(db.DateTime(timezone=True))
    rejected_at = db.Column(db.DateTime(timezone=True))
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_default_expiry)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    company = db.relationship("Company")
    project = db.relationship("HrProject")
    inviter = db.relationship("User")

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return as_utc(self.expires_at) <= now

    @property
    def is_accepted(self) -> bool:
        return self.accepted_at is not None

    @property
    def is_pending(self) -> bool:
        return self.status == INVITATION_PENDING

    def to_dict(self):
        return {
            "id": self.id,
            "company_id": self.company_id,
            "company_name": self.company.name if self.company else None,
            "hr_project_id": self.hr_project_id,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "inviter_id": self.inviter_id,
            "accepted_at": isoformat(self.accepted_at),
            "rejected_at": isoformat(self.rejected_at),
            "expires_at": isoformat(self.expires_at),
            "is_expired": self.is_expired(),
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<CompanyInvitation {self.id}: {self.email} {self.status}>"
