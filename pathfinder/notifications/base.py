"""
Notification primitives.

A notification turns one domain event into one email:

    class StepSubmittedNotification(BaseNotification):
        should_queue = False
        def to_mail(self, recipient) -> MailMessage: ...

``via()`` names the delivery channels (mail only).  ``should_queue``
decides whether dispatch hands the rendered mail to the background queue
or delivers it inside the request, where a failure surfaces to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_SALUTATION = "Best regards,<br>The HR Path-Finder Team"


@dataclass(frozen=True)
class MailRecipient:
    """Where a mail goes: a User row or an ad-hoc address."""

    email: str
    name: str | None = None
    user_id: int | None = None


def as_recipient(target) -> MailRecipient:
    if isinstance(target, MailRecipient):
        return target
    if isinstance(target, str):
        return MailRecipient(email=target)
    return MailRecipient(email=target.email, name=getattr(target, "name", None), user_id=getattr(target, "id", None))


class MailMessage:
    """Chainable mail builder.

    Lines added before ``action()`` go above the button, later ones below.
    """

    def __init__(self):
        self.subject: str = ""
        self.greeting: str | None = None
        self.intro_lines: list[str] = []
        self.outro_lines: list[str] = []
        self.action_text: str | None = None
        self.action_url: str | None = None
        self.login_url: str | None = None
        self.accept_url: str | None = None
        self.reject_url: str | None = None
        self.salutation: str = DEFAULT_SALUTATION

    def with_subject(self, subject: str) -> "MailMessage":
        self.subject = subject
        return self

    def greet(self, greeting: str) -> "MailMessage":
        self.greeting = greeting
        return self

    def line(self, text: str) -> "MailMessage":
        if self.action_url is None and self.accept_url is None:
            self.intro_lines.append(text)
        else:
            self.outro_lines.append(text)
        return self

    def action(self, text: str, url: str, *, is_login: bool = False) -> "MailMessage":
        self.action_text = text
        self.action_url = url
        if is_login:
            self.login_url = url
        return self

    def invitation_buttons(self, accept_url: str, reject_url: str) -> "MailMessage":
        self.accept_url = accept_url
        self.reject_url = reject_url
        self.action_text = "Accept Invitation"
        self.action_url = accept_url
        return self

    def salute(self, salutation: str) -> "MailMessage":
        self.salutation = salutation
        return self

    def to_dict(self):
        return {
            "subject": self.subject,
            "greeting": self.greeting,
            "intro_lines": list(self.intro_lines),
            "action": {"text": self.action_text, "url": self.action_url} if self.action_url else None,
            "outro_lines": list(self.outro_lines),
            "salutation": self.salutation,
        }


class BaseNotification:
    """One domain event → one mail."""

    should_queue: bool = True

    #: Company whose logo/name brands the mail header, if any
    company = None
    #: Project the event belongs to, recorded on the email log
    project_id: int | None = None

    def via(self, recipient: MailRecipient) -> list[str]:
        return ["mail"]

    def to_mail(self, recipient: MailRecipient) -> MailMessage:
        raise NotImplementedError

    def to_dict(self) -> dict:
        return {}

    @property
    def type_name(self) -> str:
        return type(self).__name__
