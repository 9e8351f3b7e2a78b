"""
HR Path-Finder
CEO invitation service.

Flow:
    invite_ceo   → pending invitation + "join as CEO" mail (accept / reject links)
    accept       → account created or reused, CEO membership, welcome mail
    reject       → invitation marked rejected, inviter notified

Tokens are 64 hex chars, usable once (accept OR reject) and only before
``expires_at``.  A spent or expired token raises TokenExpiredError (HTTP 410).
"""

import logging
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy import func, or_

from pathfinder.core.exceptions import (
    ConflictError,
    ConflictStateError,
    MailDeliveryError,
    NotFoundError,
    PermissionDenied,
    TokenExpiredError,
    ValidationError,
)
from pathfinder.models import db
from pathfinder.models.audit import write_audit
from pathfinder.models.auth import ROLE_ADMIN, ROLE_CEO, ROLE_CONSULTANT, ROLE_HR_MANAGER, Company, CompanyMember
from pathfinder.models.invitation import (
    INVITATION_ACCEPTED,
    INVITATION_PENDING,
    INVITATION_REJECTED,
    CompanyInvitation,
)
from pathfinder.models.project import HrProject
from pathfinder.notifications import CompanyInvitationNotification, InvitationRejectedNotification, notify
from pathfinder.services import user_service
from pathfinder.utils.crypto import generate_temporary_password, generate_token
from pathfinder.utils.helpers import normalize_email

logger = logging.getLogger(__name__)


def _log_extra(inv: CompanyInvitation, event: str) -> dict:
    return {"event_type": event, "company_id": inv.company_id, "project_id": inv.hr_project_id}


def get_by_token(token: str) -> CompanyInvitation:
    inv = CompanyInvitation.query.filter_by(token=token).first()
    if inv is None:
        raise NotFoundError("CompanyInvitation")
    return inv


def _ensure_usable(inv: CompanyInvitation) -> None:
    if inv.status == INVITATION_ACCEPTED or inv.is_accepted:
        logger.info("Spent invitation token used (accepted) id=%s", inv.id, extra=_log_extra(inv, "invitation.token_rejected"))
        raise TokenExpiredError("This invitation has already been accepted.")
    if inv.status == INVITATION_REJECTED:
        logger.info("Spent invitation token used (rejected) id=%s", inv.id, extra=_log_extra(inv, "invitation.token_rejected"))
        raise TokenExpiredError("This invitation has already been rejected.")
    if inv.is_expired():
        logger.info("Expired invitation token used id=%s", inv.id, extra=_log_extra(inv, "invitation.token_rejected"))
        raise TokenExpiredError("This invitation has expired.")


def _can_manage(inv: CompanyInvitation, user) -> bool:
    if user.has_role(ROLE_ADMIN) or user.has_role(ROLE_CONSULTANT):
        return True
    return inv.company.is_member(user)


# ═══════════════════════════════════════════════════════════════════════════
#  Create
# ═══════════════════════════════════════════════════════════════════════════

def invite_ceo(company: Company, inviter, data: dict) -> CompanyInvitation:
    """Create a pending CEO invitation and mail it.

    The invitation only survives if its mail could be handed off; on any
    delivery error it is deleted and MailDeliveryError is raised.
    """
    if not (company.is_member(inviter, ROLE_HR_MANAGER) or inviter.has_role(ROLE_ADMIN)):
        raise PermissionDenied("Only the company's HR manager can invite a CEO")

    email = normalize_email(data.get("email"))

    project_id = data.get("hr_project_id")
    if project_id is not None:
        project = db.session.get(HrProject, project_id)
        if project is None or project.company_id != company.id:
            raise ValidationError("Unknown project", details={"hr_project_id": "The selected hr project id is invalid."})

    existing_user = user_service.get_user_by_email(email)
    if existing_user and company.is_member(existing_user, ROLE_CEO):
        raise ConflictError("CompanyMember", "email", email)

    now = datetime.now(timezone.utc)
    pending = (
        CompanyInvitation.query
        .filter(
            CompanyInvitation.company_id == company.id,
            func.lower(CompanyInvitation.email) == email.lower(),
            CompanyInvitation.status == INVITATION_PENDING,
            or_(CompanyInvitation.expires_at.is_(None), CompanyInvitation.expires_at > now),
        )
        .first()
    )
    if pending:
        raise ConflictError("CompanyInvitation", "email", email)

    ttl = current_app.config.get("INVITATION_TTL_DAYS", 7)
    inv = CompanyInvitation(
        company_id=company.id,
        hr_project_id=project_id,
        email=email,
        role=ROLE_CEO,
        token=generate_token(64),
        inviter_id=inviter.id,
        expires_at=now + timedelta(days=ttl),
    )
    db.session.add(inv)
    db.session.flush()
    write_audit(entity_type="company_invitation", entity_id=inv.id, action="invitation.create",
                actor_user_id=inviter.id, project_id=project_id, diff={"email": email})
    db.session.commit()

    try:
        notify(email, CompanyInvitationNotification(inv, existing_user=existing_user is not None))
    except Exception as exc:
        logger.error("Invitation mail failed, invitation %s deleted: %s", inv.id, exc,
                     extra=_log_extra(inv, "invitation.mail_failed"))
        db.session.rollback()
        db.session.delete(inv)
        db.session.commit()
        if isinstance(exc, MailDeliveryError):
            raise
        raise MailDeliveryError(email, str(exc)) from exc

    logger.info("CEO invitation sent: id=%s company=%s", inv.id, company.id,
                extra=_log_extra(inv, "invitation.create"))
    return inv


# ═══════════════════════════════════════════════════════════════════════════
#  Accept / reject (public, token-based)
# ═══════════════════════════════════════════════════════════════════════════

def accept_invitation(token: str) -> tuple[CompanyInvitation, bool]:
    """Accept an invitation; returns ``(invitation, is_new_user)``."""
    inv = get_by_token(token)
    _ensure_usable(inv)

    user = user_service.get_user_by_email(inv.email)
    is_new_user = user is None
    if is_new_user:
        temporary_password = generate_temporary_password()
        user = user_service.create_user(
            inv.email, password=temporary_password, roles=[ROLE_CEO], verified=True,
        )
        inv.temporary_password = temporary_password
    else:
        user.assign_role(ROLE_CEO)

    if not inv.company.is_member(user, inv.role):
        db.session.add(CompanyMember(company_id=inv.company_id, user_id=user.id, role=inv.role))

    inv.status = INVITATION_ACCEPTED
    inv.accepted_at = datetime.now(timezone.utc)
    write_audit(entity_type="company_invitation", entity_id=inv.id, action="invitation.accept",
                actor_user_id=user.id, project_id=inv.hr_project_id,
                diff={"status": {"old": INVITATION_PENDING, "new": INVITATION_ACCEPTED},
                      "new_user": is_new_user})
    db.session.commit()

    notify(user, CompanyInvitationNotification(inv, existing_user=not is_new_user))

    # The welcome mail is rendered; the plain-text password is no longer needed
    if inv.temporary_password:
        inv.temporary_password = None
        db.session.commit()

    logger.info("Invitation %s accepted (new_user=%s)", inv.id, is_new_user,
                extra={**_log_extra(inv, "invitation.accept"), "user_id": user.id})
    return inv, is_new_user


def reject_invitation(token: str) -> CompanyInvitation:
    inv = get_by_token(token)
    _ensure_usable(inv)

    inv.status = INVITATION_REJECTED
    inv.rejected_at = datetime.now(timezone.utc)
    write_audit(entity_type="company_invitation", entity_id=inv.id, action="invitation.reject",
                project_id=inv.hr_project_id,
                diff={"status": {"old": INVITATION_PENDING, "new": INVITATION_REJECTED}})
    db.session.commit()

    if inv.inviter:
        notify(inv.inviter, InvitationRejectedNotification(inv))
    else:
        logger.warning("Invitation %s rejected but has no inviter to notify", inv.id,
                       extra=_log_extra(inv, "notification.no_recipient"))

    logger.info("Invitation %s rejected", inv.id, extra=_log_extra(inv, "invitation.reject"))
    return inv


# ═══════════════════════════════════════════════════════════════════════════
#  Manage (company members, admins, consultants)
# ═══════════════════════════════════════════════════════════════════════════

def _get_managed(invitation_id: int, user) -> CompanyInvitation:
    inv = db.session.get(CompanyInvitation, invitation_id)
    if inv is None:
        raise NotFoundError("CompanyInvitation", invitation_id)
    if not _can_manage(inv, user):
        raise PermissionDenied("You are not authorized to manage this invitation.")
    return inv


def resend_invitation(invitation_id: int, user) -> CompanyInvitation:
    inv = _get_managed(invitation_id, user)
    if not inv.is_pending:
        raise ConflictStateError("invitation", inv.status, INVITATION_PENDING,
                                 message=f"This invitation has already been {inv.status}.")
    if inv.is_expired():
        raise TokenExpiredError("This invitation has expired. Please create a new invitation.")

    existing_user = user_service.get_user_by_email(inv.email) is not None
    notify(inv.email, CompanyInvitationNotification(inv, existing_user=existing_user))
    logger.info("Invitation %s resent by user %s", inv.id, user.id,
                extra={**_log_extra(inv, "invitation.resend"), "user_id": user.id})
    return inv


def delete_invitation(invitation_id: int, user) -> None:
    inv = _get_managed(invitation_id, user)
    if inv.is_accepted:
        raise ConflictStateError("invitation", INVITATION_ACCEPTED, "deleted",
                                 message="Cannot delete an accepted invitation.")

    write_audit(entity_type="company_invitation", entity_id=inv.id, action="invitation.delete",
                actor_user_id=user.id, project_id=inv.hr_project_id, diff={"email": inv.email})
    db.session.delete(inv)
    db.session.commit()
    logger.info("Invitation %s deleted by user %s", invitation_id, user.id,
                extra={"event_type": "invitation.delete", "user_id": user.id})


def list_company_invitations(company: Company) -> list[CompanyInvitation]:
    return (
        CompanyInvitation.query.filter_by(company_id=company.id)
        .order_by(CompanyInvitation.created_at.desc())
        .all()
    )
