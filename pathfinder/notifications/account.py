"""
Account, invitation and role notifications.
"""

from __future__ import annotations

from pathfinder.notifications.base import BaseNotification, MailMessage
from pathfinder.utils.helpers import as_utc
from pathfinder.utils.routes import route_url


def _human_datetime(value) -> str:
    """``March 5, 2026 at 3:07 PM`` (strftime's %-d is not portable)."""
    value = as_utc(value)
    hour = value.hour % 12 or 12
    return f"{value.strftime('%B')} {value.day}, {value.year} at {hour}:{value.strftime('%M %p')}"


class CeoRoleApprovedNotification(BaseNotification):
    should_queue = True

    def __init__(self, role_request):
        self.role_request = role_request
        self.company = role_request.company

    def to_mail(self, recipient):
        name = self.company.name
        return (
            MailMessage()
            .with_subject(f"🎉 Welcome! You are now a CEO for {name}")
            .greet("Congratulations!")
            .line(f"Your request to become CEO for **{name}** has been **approved** by the administrator.")
            .line("**You are now a CEO!**")
            .line("**What this means:**")
            .line(f"✅ You now have CEO role for **{name}**")
            .line("✅ You can access the CEO dashboard")
            .line("✅ You can review and approve HR strategy steps")
            .line("✅ You can complete the Management Philosophy Survey")
            .line("✅ You can collaborate with HR Manager on projects")
            .line("**Next Steps:**")
            .line("1. Login to your account using your existing credentials")
            .line("2. You will be redirected to the CEO dashboard")
            .line("3. Complete the Management Philosophy Survey if there's an active project")
            .line("4. Start reviewing and managing HR projects")
            .action("🔑 Login to CEO Dashboard", route_url("login"), is_login=True)
            .line("If you have any questions, please contact the administrator.")
        )

    def to_dict(self):
        return {
            "request_id": self.role_request.id,
            "company_id": self.role_request.company_id,
            "company_name": self.company.name,
        }


class CompanyInvitationNotification(BaseNotification):
    """Three variants keyed on invitation state.

    - pending: accept / reject links and the expiry date
    - accepted, new account: login credentials with the temporary password
    - accepted, existing account: project assignment only
    """

    should_queue = True

    def __init__(self, invitation, *, existing_user: bool = False):
        self.invitation = invitation
        self.company = invitation.company
        self.project_id = invitation.hr_project_id
        self.existing_user = existing_user

    @property
    def variant(self) -> str:
        if not self.invitation.is_accepted:
            return "initial"
        return "welcome_new" if self.invitation.temporary_password else "welcome_existing"

    def to_mail(self, recipient):
        if self.variant == "initial":
            return self._initial()
        if self.variant == "welcome_new":
            return self._welcome_new()
        return self._welcome_existing()

    @property
    def _inviter_name(self) -> str:
        inviter = self.invitation.inviter
        return inviter.name if inviter else "Your HR Manager"

    def _initial(self):
        inv = self.invitation
        company = self.company.name
        accept_url = route_url("invitations.accept", token=inv.token)
        reject_url = route_url("invitations.reject", token=inv.token)
        expires = _human_datetime(inv.expires_at) if inv.expires_at else "7 days from now"
        role_line = (
            "As the CEO, you will play a crucial role in shaping the HR strategy "
            "and organizational design for your company."
        )

        mail = (
            MailMessage()
            .with_subject(f"🎯 CEO Invitation: Join {company} on HR Path-Finder")
            .greet("Hello!")
            .line(f"**{self._inviter_name}** has invited you to join **{company}** as **CEO** on HR Path-Finder.")
        )
        if inv.hr_project_id:
            mail.line("**Project Assignment:**")
            mail.line(f"You have been invited to participate in the HR project for **{company}**.")
        mail.line(role_line)
        (
            mail.line("**What you will be able to do:**")
            .line("✅ Review and modify company information")
            .line("✅ Complete the Management Philosophy Survey")
            .line("✅ Collaborate on the HR project with the HR Manager")
            .line("✅ Review and approve HR strategy steps")
            .line("✅ Provide strategic input on performance and compensation systems")
            .invitation_buttons(accept_url, reject_url)
            .line("**Important Details:**")
            .line(f"• **Expires:** {expires}")
        )
        if self.existing_user:
            mail.line("• After accepting, you will receive a welcome email with project details")
            mail.line("• You can use your existing account credentials to login")
        else:
            mail.line("• After accepting, you will receive your login credentials via email")
            mail.line("• Your email will be automatically verified upon acceptance")
        return (
            mail.line("**Not interested?**")
            .line(f"If you do not wish to accept this invitation, you can [reject it here]({reject_url}).")
            .line(
                "If you did not expect this invitation, you can safely ignore this email "
                "or reject it using the link above."
            )
        )

    def _welcome_new(self):
        inv = self.invitation
        company = self.company.name
        mail = (
            MailMessage()
            .with_subject(f"Welcome to {company} - Your CEO Account Credentials")
            .greet("Welcome!")
            .line(f"{self._inviter_name} has created your CEO account for **{company}** on HR Path-Finder.")
            .line("**Your Login Credentials:**")
            .line(f"**Email:** {inv.email}")
            .line(f"**Password:** {inv.temporary_password}")
            .line("**Important:** Please change your password after your first login for security.")
        )
        if inv.hr_project_id:
            mail.line("**Project Assignment:**")
            mail.line(f"You have been assigned to the HR project for **{company}**.")
        return (
            mail.line("**What you can do:**")
            .line("• Review and modify company information")
            .line("• Complete the Management Philosophy Survey")
            .line("• Collaborate on the HR project with the HR Manager")
            .line("• Review and approve HR strategy steps")
            .action("Login to Your Account", route_url("login"), is_login=True)
            .line("We recommend changing your password after your first login.")
            .line(f"If you did not expect this invitation, please contact {self._inviter_name} immediately.")
        )

    def _welcome_existing(self):
        inv = self.invitation
        company = self.company.name
        mail = (
            MailMessage()
            .with_subject(f"Welcome to {company} - CEO Project Assignment")
            .greet("Welcome back!")
            .line(f"{self._inviter_name} has assigned you as CEO for **{company}** on HR Path-Finder.")
        )
        if inv.hr_project_id:
            mail.line("**Project Assignment:**")
            mail.line(f"You have been assigned to the HR project for **{company}**.")
            mail.line("Please complete the Management Philosophy Survey to proceed with the project.")
        return (
            mail.line("**What you need to do:**")
            .line("• Complete the Management Philosophy Survey")
            .line("• Review and verify HR strategy steps")
            .line("• Collaborate with the HR Manager on the project")
            .action("Login to Your Account", route_url("login"), is_login=True)
            .line(f"If you did not expect this invitation, please contact {self._inviter_name} immediately.")
        )

    def to_dict(self):
        return {
            "invitation_id": self.invitation.id,
            "company_id": self.invitation.company_id,
            "company_name": self.company.name,
            "role": self.invitation.role,
            "variant": self.variant,
        }


class InvitationRejectedNotification(BaseNotification):
    should_queue = True

    def __init__(self, invitation):
        self.invitation = invitation
        self.company = invitation.company
        self.project_id = invitation.hr_project_id

    def to_mail(self, recipient):
        inv = self.invitation
        inviter_name = inv.inviter.name if inv.inviter else (recipient.name or "")
        return (
            MailMessage()
            .with_subject(f"❌ CEO Invitation Rejected - {self.company.name}")
            .greet(f"Hello {inviter_name},")
            .line("We wanted to inform you that the CEO invitation you sent has been **rejected**.")
            .line("**Invitation Details:**")
            .line(f"• **Company:** {self.company.name}")
            .line(f"• **Invited Email:** {inv.email}")
            .line("• **Role:** CEO")
            .line(f"• **Invited On:** {_human_datetime(inv.created_at)}")
            .line("**What to do next:**")
            .line("• You may want to reach out to the invited person directly to understand their decision")
            .line("• You can invite a different person to fill the CEO role")
            .line("• If this was sent by mistake, no further action is needed")
            .action("View Company Details", route_url("companies.show", company=self.company.id))
            .line("If you have any questions or need assistance, please contact our support team.")
        )

    def to_dict(self):
        return {
            "invitation_id": self.invitation.id,
            "company_id": self.invitation.company_id,
            "company_name": self.company.name,
            "email": self.invitation.email,
        }


class PasswordResetOtpNotification(BaseNotification):
    should_queue = False

    def __init__(self, otp: str, expires_in: int = 10):
        self.otp = otp
        self.expires_in = expires_in

    def to_mail(self, recipient):
        return (
            MailMessage()
            .with_subject("🔐 Password Reset OTP - HR Path-Finder")
            .greet("Hello!")
            .line("You have requested to reset your password for your HR Path-Finder account.")
            .line("**Your OTP Code:**")
            .line(f"## {self.otp}")
            .line("**Important:**")
            .line(f"• This OTP is valid for {self.expires_in} minutes only")
            .line("• Do not share this OTP with anyone")
            .line("• If you did not request this, please ignore this email")
            .line("• For security, this OTP can only be used once")
        )
