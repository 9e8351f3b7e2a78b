"""
Notification dispatch.

    notify(project.company.users_with_role(ROLE_CEO), StepSubmittedNotification(project, step))

Each recipient gets the mail rendered inside the current request.  Queued
notifications hand the rendered HTML to MailQueue; the others are sent
before ``notify`` returns and a delivery failure propagates as
MailDeliveryError after its EmailLog row is committed.

Callers commit their own domain changes before calling ``notify``.
"""

from __future__ import annotations

import logging
from typing import Iterable

from pathfinder.core.exceptions import MailDeliveryError
from pathfinder.models import db
from pathfinder.notifications.base import BaseNotification, as_recipient
from pathfinder.services.email_service import EmailService, render_mail
from pathfinder.services.mail_queue import MailQueue, QueuedMail

logger = logging.getLogger(__name__)


def notify(recipients, notification: BaseNotification) -> int:
    """Deliver ``notification`` to every recipient; returns the number of mails handed off."""
    if recipients is None:
        return 0
    if isinstance(recipients, (str, bytes)) or not isinstance(recipients, Iterable):
        recipients = [recipients]

    seen: set[str] = set()
    count = 0
    for target in recipients:
        recipient = as_recipient(target)
        key = recipient.email.lower()
        if key in seen or "mail" not in notification.via(recipient):
            continue
        seen.add(key)

        message = notification.to_mail(recipient)
        html = render_mail(message, notification.company)

        if notification.should_queue:
            MailQueue.enqueue(QueuedMail(
                to_email=recipient.email,
                to_name=recipient.name,
                subject=message.subject,
                html_body=html,
                notification_type=notification.type_name,
                project_id=notification.project_id,
            ))
        else:
            try:
                EmailService.send(
                    to_email=recipient.email,
                    to_name=recipient.name,
                    subject=message.subject,
                    html_body=html,
                    notification_type=notification.type_name,
                    delivery_mode="sync",
                    project_id=notification.project_id,
                    raise_on_failure=True,
                )
            except MailDeliveryError:
                db.session.commit()
                raise
            db.session.commit()
        count += 1

    logger.info(
        "Notification %s dispatched to %d recipient(s)", notification.type_name, count,
        extra={"event_type": "notification.dispatch", "notification": notification.type_name,
               "project_id": notification.project_id},
    )
    return count
