"""
HR Path-Finder
Outbound email log.

Every notification mail handed to delivery gets one row here.  It is the
only persisted trace of a notification event.
"""

from datetime import datetime, timezone

from pathfinder.models import db
from pathfinder.utils.helpers import isoformat

EMAIL_QUEUED = "queued"
EMAIL_SENT = "sent"
EMAIL_FAILED = "failed"


class EmailLog(db.Model):
    __tablename__ = "email_logs"

    id = db.Column(db.Integer, primary_key=True)
    recipient_email = db.Column(db.String(255), nullable=False, index=True)
    recipient_name = db.Column(db.String(200), nullable=True)
    subject = db.Column(db.String(500), nullable=False)
    notification_type = db.Column(db.String(100), nullable=True,
                                  comment="Notification class that produced this email")
    delivery_mode = db.Column(db.String(10), nullable=False, default="sync",
                              comment="queued or sync")
    status = db.Column(db.String(20), default=EMAIL_QUEUED,
                       comment="queued, sent, failed")
    error_message = db.Column(db.Text, nullable=True)
    project_id = db.Column(db.Integer, db.ForeignKey("hr_projects.id", ondelete="SET NULL"),
                           nullable=True, index=True)

    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "recipient_email": self.recipient_email,
            "recipient_name": self.recipient_name,
            "subject": self.subject,
            "notification_type": self.notification_type,
            "delivery_mode": self.delivery_mode,
            "status": self.status,
            "error_message": self.error_message,
            "project_id": self.project_id,
            "sent_at": isoformat(self.sent_at),
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<EmailLog {self.id}: {self.subject[:40]} → {self.recipient_email}>"
