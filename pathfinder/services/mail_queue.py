"""
HR Path-Finder
Mail Queue.

Background delivery for queued notifications.  The request renders the
mail (so the worker never touches request-scoped ORM objects) and hands
a ``QueuedMail`` to a single daemon thread, which sends it through
EmailService inside its own app context.

With MAIL_QUEUE_EAGER=true (tests, CLI scripts) the job runs inline in
the caller's app context instead.

Failures are logged at ERROR and recorded on the EmailLog row; there is
no retry.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass

from flask import Flask

from pathfinder.models import db
from pathfinder.services.email_service import EmailService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedMail:
    to_email: str
    subject: str
    html_body: str
    to_name: str | None = None
    notification_type: str | None = None
    project_id: int | None = None


class MailQueue:
    """Single-worker mail queue bound to one Flask app."""

    _app: Flask | None = None
    _queue: "queue.Queue[QueuedMail]" = queue.Queue()
    _thread: threading.Thread | None = None
    _lock = threading.Lock()

    @classmethod
    def init_app(cls, app: Flask) -> None:
        cls._app = app
        cls._queue = queue.Queue()
        cls._thread = None
        app.extensions["mail_queue"] = cls
        logger.info("MailQueue initialized (eager=%s)", app.config.get("MAIL_QUEUE_EAGER"))

    @classmethod
    def is_eager(cls) -> bool:
        return bool(cls._app and cls._app.config.get("MAIL_QUEUE_EAGER"))

    @classmethod
    def enqueue(cls, mail: QueuedMail) -> None:
        if cls._app is None:
            raise RuntimeError("MailQueue is not initialized; call init_app first")

        if cls.is_eager():
            cls._deliver(mail)
            db.session.commit()
            return

        cls._ensure_worker()
        cls._queue.put(mail)
        logger.debug("Mail queued: to=%s type=%s", mail.to_email, mail.notification_type,
                     extra={"event_type": "mail.queued", "notification": mail.notification_type})

    @classmethod
    def pending(cls) -> int:
        return cls._queue.qsize()

    @classmethod
    def join(cls) -> None:
        """Block until every queued mail has been processed."""
        cls._queue.join()

    # ── Internal ──────────────────────────────────────────────────────────

    @classmethod
    def _ensure_worker(cls) -> None:
        with cls._lock:
            if cls._thread and cls._thread.is_alive():
                return
            cls._thread = threading.Thread(target=cls._worker, name="mail-queue", daemon=True)
            cls._thread.start()

    @classmethod
    def _worker(cls) -> None:
        while True:
            mail = cls._queue.get()
            try:
                with cls._app.app_context():
                    try:
                        cls._deliver(mail)
                        db.session.commit()
                    except Exception:
                        db.session.rollback()
                        logger.exception("Queued mail to %s failed", mail.to_email,
                                         extra={"event_type": "mail.failed",
                                                "notification": mail.notification_type})
            finally:
                cls._queue.task_done()

    @staticmethod
    def _deliver(mail: QueuedMail) -> None:
        EmailService.send(
            to_email=mail.to_email,
            to_name=mail.to_name,
            subject=mail.subject,
            html_body=mail.html_body,
            notification_type=mail.notification_type,
            delivery_mode="queued",
            project_id=mail.project_id,
        )
