"""
HR Path-Finder
CEO role requests.

An HR manager of a company may ask to also act as its CEO.  An admin
approves (user gains the CEO role and membership, and is mailed) or
rejects with an optional reason.
"""

import logging
from datetime import datetime, timezone

from pathfinder.core.exceptions import (
    ConflictError,
    ConflictStateError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from pathfinder.models import db
from pathfinder.models.audit import write_audit
from pathfinder.models.auth import (
    CEO_REQUEST_APPROVED,
    CEO_REQUEST_PENDING,
    CEO_REQUEST_REJECTED,
    ROLE_CEO,
    ROLE_HR_MANAGER,
    CeoRoleRequest,
    Company,
    CompanyMember,
)
from pathfinder.notifications import CeoRoleApprovedNotification, notify

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 1000


def request_ceo_role(user, company_id) -> CeoRoleRequest:
    if not user.has_role(ROLE_HR_MANAGER):
        raise PermissionDenied("Only HR Managers can request CEO role.")
    if company_id is None:
        raise ValidationError("company_id is required", details={"company_id": "The company id field is required."})

    company = db.session.get(Company, company_id)
    if company is None:
        raise ValidationError("Unknown company", details={"company_id": "The selected company id is invalid."})
    if not company.is_member(user, ROLE_HR_MANAGER):
        raise ValidationError(
            "Not this company's HR manager",
            details={"company_id": "You must be the HR Manager of this company to request CEO role."},
        )
    if company.is_member(user, ROLE_CEO):
        raise ConflictError("CompanyMember", "role", ROLE_CEO)

    pending = CeoRoleRequest.query.filter_by(
        user_id=user.id, company_id=company.id, status=CEO_REQUEST_PENDING,
    ).first()
    if pending:
        raise ConflictError("CeoRoleRequest", "company_id", str(company.id))

    req = CeoRoleRequest(user_id=user.id, company_id=company.id, status=CEO_REQUEST_PENDING)
    db.session.add(req)
    db.session.flush()
    write_audit(entity_type="ceo_role_request", entity_id=req.id, action="ceo_role.request",
                actor_user_id=user.id, diff={"company_id": company.id})
    db.session.commit()

    logger.info("CEO role requested: request=%s user=%s company=%s", req.id, user.id, company.id,
                extra={"event_type": "ceo_role.request", "user_id": user.id, "company_id": company.id})
    return req


def list_requests(status: str | None = None):
    q = CeoRoleRequest.query
    if status:
        q = q.filter_by(status=status)
    return q.order_by(CeoRoleRequest.requested_at.desc(), CeoRoleRequest.id.desc())


def _get_pending(request_id: int) -> CeoRoleRequest:
    req = db.session.get(CeoRoleRequest, request_id)
    if req is None:
        raise NotFoundError("CeoRoleRequest", request_id)
    if not req.is_pending:
        raise ConflictStateError("ceo_role_request", req.status, "reviewed",
                                 message="This request has already been processed.")
    return req


def approve_request(request_id: int, admin) -> CeoRoleRequest:
    req = _get_pending(request_id)
    user = req.user

    user.assign_role(ROLE_CEO)
    if not req.company.is_member(user, ROLE_CEO):
        db.session.add(CompanyMember(company_id=req.company_id, user_id=user.id, role=ROLE_CEO))

    req.status = CEO_REQUEST_APPROVED
    req.reviewed_at = datetime.now(timezone.utc)
    req.reviewed_by = admin.id
    write_audit(entity_type="ceo_role_request", entity_id=req.id, action="ceo_role.approve",
                actor_user_id=admin.id,
                diff={"status": {"old": CEO_REQUEST_PENDING, "new": CEO_REQUEST_APPROVED}})
    db.session.commit()

    notify(user, CeoRoleApprovedNotification(req))
    logger.info("CEO role request %s approved by %s", req.id, admin.id,
                extra={"event_type": "ceo_role.approve", "user_id": user.id, "company_id": req.company_id})
    return req


def reject_request(request_id: int, admin, reason: str | None = None) -> CeoRoleRequest:
    if reason is not None and (not isinstance(reason, str) or len(reason) > MAX_REASON_LENGTH):
        raise ValidationError(
            "Invalid rejection reason",
            details={"rejection_reason": f"The rejection reason may not be greater than {MAX_REASON_LENGTH} characters."},
        )
    req = _get_pending(request_id)

    req.status = CEO_REQUEST_REJECTED
    req.reviewed_at = datetime.now(timezone.utc)
    req.reviewed_by = admin.id
    req.rejection_reason = reason
    write_audit(entity_type="ceo_role_request", entity_id=req.id, action="ceo_role.reject",
                actor_user_id=admin.id,
                diff={"status": {"old": CEO_REQUEST_PENDING, "new": CEO_REQUEST_REJECTED}, "reason": reason})
    db.session.commit()

    logger.info("CEO role request %s rejected by %s", req.id, admin.id,
                extra={"event_type": "ceo_role.reject", "user_id": req.user_id, "company_id": req.company_id})
    return req
