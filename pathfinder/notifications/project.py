"""
Project workflow notifications.

Step-progression pings (submitted / unlocked) are delivered synchronously;
the rest are queued.
"""

from __future__ import annotations

from pathfinder.models.project import step_display_name
from pathfinder.notifications.base import BaseNotification, MailMessage
from pathfinder.utils.helpers import as_utc
from pathfinder.utils.routes import route_url

THANKS = "Thank you for using our application!"


class _ProjectNotification(BaseNotification):
    def __init__(self, project):
        self.project = project
        self.company = project.company
        self.project_id = project.id

    @property
    def company_name(self) -> str:
        return self.company.name if self.company else "the company"

    def to_dict(self):
        return {"hr_project_id": self.project.id, "company_name": self.company_name}


class DiagnosisSubmittedNotification(_ProjectNotification):
    """Tells the CEO the diagnosis is ready for their review."""

    should_queue = True

    def to_mail(self, recipient):
        return (
            MailMessage()
            .with_subject(f"Diagnosis Submitted for {self.company_name}")
            .greet("Hello!")
            .line(f"The HR Manager has submitted the diagnosis for **{self.company_name}**.")
            .line("**What you need to do:**")
            .line("• Review the diagnosis data")
            .line("• Edit any fields if necessary")
            .line("• Complete the Management Philosophy Survey")
            .line("• Confirm and approve the diagnosis")
            .action("Review Diagnosis", route_url("ceo.review.diagnosis", project=self.project.id))
            .line(THANKS)
        )


class PhilosophyCompletedNotification(_ProjectNotification):
    should_queue = True

    def to_mail(self, recipient):
        return (
            MailMessage()
            .with_subject(f"Management Philosophy Completed for {self.company_name}")
            .greet("Hello!")
            .line(f"The CEO has completed the Management Philosophy Survey for **{self.company_name}**.")
            .line("**What you can do now:**")
            .line("• Proceed with Organization Design step")
            .line("• The diagnosis has been locked and approved")
            .action("View Dashboard", route_url("hr-manager.dashboard"))
            .line(THANKS)
        )


class StepSubmittedNotification(_ProjectNotification):
    should_queue = False

    def __init__(self, project, step: str):
        super().__init__(project)
        self.step = step

    def to_mail(self, recipient):
        step_name = step_display_name(self.step)
        return (
            MailMessage()
            .with_subject(f"HR has completed {step_name}")
            .line(f"The HR Manager has completed and submitted {step_name} for {self.company_name}.")
            .line("Please review and verify the submission from your dashboard.")
            .action("View Dashboard", route_url("dashboard.ceo"))
            .line(THANKS)
        )

    def to_dict(self):
        return {**super().to_dict(), "step_name": self.step}


class StepUnlockedNotification(_ProjectNotification):
    should_queue = False

    def __init__(self, project, step: str, previous_step: str):
        super().__init__(project)
        self.step = step
        self.previous_step = previous_step

    def to_mail(self, recipient):
        step_name = step_display_name(self.step)
        previous_name = step_display_name(self.previous_step)
        return (
            MailMessage()
            .with_subject(f"{previous_name} Verified – {step_name} Unlocked")
            .line(f"Great news! The CEO has verified {previous_name} for {self.company_name}.")
            .line(f"You can now proceed with {step_name}.")
            .action("View Dashboard", route_url("dashboard.hr-manager"))
            .line(THANKS)
        )

    def to_dict(self):
        return {**super().to_dict(), "step_name": self.step, "previous_step_name": self.previous_step}


class SystemLockedNotification(_ProjectNotification):
    should_queue = True

    def to_mail(self, recipient):
        return (
            MailMessage()
            .with_subject(f"HR System Locked for {self.company_name}")
            .greet("Congratulations!")
            .line(f"The HR System for **{self.company_name}** has been approved and locked by the CEO.")
            .line("**Your HR System is now complete and immutable.**")
            .line("**What you can do:**")
            .line("• View the complete HR System overview")
            .line("• Use this as a baseline for future iterations")
            .line("• All steps are now read-only")
            .action("View HR System Overview", route_url("hr-system.overview", project=self.project.id))
            .line(THANKS)
        )


class KpiReviewRequestNotification(_ProjectNotification):
    should_queue = True

    def __init__(self, review_token, project):
        super().__init__(project)
        self.review_token = review_token

    def to_mail(self, recipient):
        token = self.review_token
        expires = as_utc(token.expires_at).strftime("%B %d, %Y")
        reviewer = token.name or recipient.name
        return (
            MailMessage()
            .with_subject(f"KPI Review Request - {token.organization_name} - {self.company_name}")
            .greet(f"Hello {reviewer}," if reviewer else "Hello!")
            .line(
                "You have been requested to review the Key Performance Indicators (KPIs) "
                f"for **{token.organization_name}** in {self.company_name}."
            )
            .line("Please review the proposed KPIs and provide your feedback.")
            .action("Review KPIs", route_url("kpi-review.token", token=token.token))
            .line(f"This review link will expire on {expires}.")
            .line(f"You can submit your review up to {token.max_uses} times using this link.")
            .line("If you did not expect this request, please ignore this email.")
            .salute("Best regards, HR Path-Finder Team")
        )

    def to_dict(self):
        return {**super().to_dict(), "organization_name": self.review_token.organization_name}
