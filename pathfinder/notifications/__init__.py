"""
HR Path-Finder
Email notifications.
"""

from pathfinder.notifications.account import (  # noqa: F401
    CeoRoleApprovedNotification,
    CompanyInvitationNotification,
    InvitationRejectedNotification,
    PasswordResetOtpNotification,
)
from pathfinder.notifications.base import BaseNotification, MailMessage, MailRecipient  # noqa: F401
from pathfinder.notifications.dispatch import notify  # noqa: F401
from pathfinder.notifications.project import (  # noqa: F401
    DiagnosisSubmittedNotification,
    KpiReviewRequestNotification,
    PhilosophyCompletedNotification,
    StepSubmittedNotification,
    StepUnlockedNotification,
    SystemLockedNotification,
)
