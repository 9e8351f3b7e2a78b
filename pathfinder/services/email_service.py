"""
HR Path-Finder
Email Service.

Renders notification mails into the shared HTML layout and sends them.
When SMTP is not configured, emails are logged but not sent (dev/test mode).

Configuration (env vars):
    MAIL_SERVER     SMTP host (default: None → log-only mode)
    MAIL_PORT       SMTP port (default: 587)
    MAIL_USE_TLS    Use TLS (default: true)
    MAIL_USERNAME   SMTP username
    MAIL_PASSWORD   SMTP password
    MAIL_DEFAULT_SENDER  Default from address

Template variables (emails/layout.html and its partials):
    companyLogo, companyName, subject, greeting, content, introLines,
    outroLines, acceptUrl / rejectUrl or loginUrl, actionUrl, actionText,
    salutation
"""

from __future__ import annotations

import logging
import re
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app, render_template
from markupsafe import Markup, escape

from pathfinder.core.exceptions import MailDeliveryError
from pathfinder.models import db
from pathfinder.models.notification import EMAIL_FAILED, EMAIL_SENT, EmailLog

logger = logging.getLogger(__name__)

LAYOUT_TEMPLATE = "emails/layout.html"

_BOLD = re.compile(r"\*\*(.+?)\*\*")
_LINK = re.compile(r"\[([^\]]+)\]\((https?://[^)\s]+)\)")


# ═══════════════════════════════════════════════════════════════════════════
#  Rendering
# ═══════════════════════════════════════════════════════════════════════════

def format_line(text: str) -> Markup:
    """Render one mail line; supports **bold**, [label](url) and a ``## `` heading."""
    if text.startswith("## "):
        return Markup('<h2 style="margin: 16px 0; letter-spacing: 4px;">{}</h2>').format(text[3:])
    html = str(escape(text))
    html = _LINK.sub(r'<a href="\2">\1</a>', html)
    html = _BOLD.sub(r"<strong>\1</strong>", html)
    return Markup(html)


def format_salutation(text: str | None) -> Markup:
    if not text:
        return Markup("")
    return Markup("<br>").join(escape(part) for part in text.split("<br>"))


def company_logo_url(company) -> str | None:
    path = getattr(company, "logo_path", None) if company else None
    if not path:
        return None
    if path.startswith(("http://", "https://")):
        return path
    base = current_app.config.get("FRONTEND_BASE_URL", "").rstrip("/")
    if path.startswith("/storage/"):
        return f"{base}{path}"
    return f"{base}/storage/{path.lstrip('/')}"


def mail_context(message, company=None) -> dict:
    """Build the template variables for a MailMessage."""
    intro = [format_line(line) for line in message.intro_lines]
    outro = [format_line(line) for line in message.outro_lines]
    return {
        "companyLogo": company_logo_url(company),
        "companyName": company.name if company else None,
        "subject": message.subject,
        "greeting": message.greeting,
        "introLines": intro,
        "outroLines": outro,
        "content": Markup("\n").join(intro + outro),
        "acceptUrl": message.accept_url,
        "rejectUrl": message.reject_url,
        "loginUrl": message.login_url,
        "actionUrl": message.action_url,
        "actionText": message.action_text,
        "salutation": format_salutation(message.salutation),
    }


def render_mail(message, company=None) -> str:
    return render_template(LAYOUT_TEMPLATE, **mail_context(message, company))


# ═══════════════════════════════════════════════════════════════════════════
#  Delivery
# ═══════════════════════════════════════════════════════════════════════════

class EmailService:
    """
    Email sending service.

    In development/test mode (no MAIL_SERVER configured), emails are
    logged to the database but not actually sent via SMTP.
    """

    @staticmethod
    def is_configured() -> bool:
        return bool(current_app.config.get("MAIL_SERVER"))

    @classmethod
    def send(
        cls,
        *,
        to_email: str,
        to_name: str | None = None,
        subject: str,
        html_body: str,
        notification_type: str | None = None,
        delivery_mode: str = "sync",
        project_id: int | None = None,
        raise_on_failure: bool = False,
    ) -> EmailLog:
        """
        Send an email and record it in EmailLog.

        The log row is flushed, not committed; callers own the transaction.

        Raises:
            MailDeliveryError: SMTP failed and ``raise_on_failure`` is set.
        """
        log = EmailLog(
            recipient_email=to_email,
            recipient_name=to_name,
            subject=subject,
            notification_type=notification_type,
            delivery_mode=delivery_mode,
            project_id=project_id,
        )
        db.session.add(log)
        db.session.flush()

        if not cls.is_configured():
            log.status = EMAIL_SENT
            log.sent_at = datetime.now(timezone.utc)
            logger.info(
                "Email (dev mode): to=%s subject='%s' type=%s",
                to_email, subject, notification_type,
                extra={"event_type": "mail.logged", "notification": notification_type},
            )
            return log

        try:
            cls._send_smtp(to_email=to_email, to_name=to_name,
                           subject=subject, html_body=html_body)
            log.status = EMAIL_SENT
            log.sent_at = datetime.now(timezone.utc)
            logger.info("Email sent: to=%s subject='%s'", to_email, subject,
                        extra={"event_type": "mail.sent", "notification": notification_type})
        except (smtplib.SMTPException, OSError) as exc:
            log.status = EMAIL_FAILED
            log.error_message = str(exc)[:1000]
            logger.error("Email failed: to=%s error=%s", to_email, exc,
                         extra={"event_type": "mail.failed", "notification": notification_type})
            if raise_on_failure:
                raise MailDeliveryError(to_email, str(exc)) from exc

        return log

    @staticmethod
    def _send_smtp(*, to_email: str, to_name: str | None,
                   subject: str, html_body: str) -> None:
        cfg = current_app.config
        server = cfg.get("MAIL_SERVER")
        port = cfg.get("MAIL_PORT", 587)
        use_tls = cfg.get("MAIL_USE_TLS", True)
        username = cfg.get("MAIL_USERNAME")
        password = cfg.get("MAIL_PASSWORD")
        sender = cfg.get("MAIL_DEFAULT_SENDER", f"noreply@{server}")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = f"{to_name} <{to_email}>" if to_name else to_email
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(server, port, timeout=30) as smtp:
            if use_tls:
                smtp.starttls()
            if username and password:
                smtp.login(username, password)
            smtp.send_message(msg)
