"""
HR Path-Finder
KPI review links.

The HR manager sends an organisation unit's KPIs out for review.  Each
reviewer gets a personal link (a KpiReviewToken) that expires after
KPI_REVIEW_TTL_DAYS and accepts at most KPI_REVIEW_MAX_USES submissions.
Reviewers are unauthenticated; the token is their only credential.

Token checks, in order:
    unknown token          → NotFoundError        (404)
    used up (is_used / uses_count >= max_uses)
                           → TokenExhaustedError  (410)
    past expires_at        → TokenExpiredError    (410)

A submission spends its use through KpiReviewToken.claim_use, a conditional
UPDATE, so concurrent submissions on one link never exceed max_uses.
"""

import logging
from datetime import datetime, timedelta, timezone

from flask import current_app

from pathfinder.core.exceptions import (
    NotFoundError,
    TokenExhaustedError,
    TokenExpiredError,
    ValidationError,
)
from pathfinder.models import db
from pathfinder.models.audit import write_audit
from pathfinder.models.auth import ROLE_ADMIN, ROLE_CEO, ROLE_HR_MANAGER, User
from pathfinder.models.kpi import (
    KPI_STATUS_PROPOSED,
    KpiEditHistory,
    KpiReviewToken,
    OrganizationalKpi,
)
from pathfinder.models.project import HrProject
from pathfinder.notifications import KpiReviewRequestNotification, MailRecipient, notify
from pathfinder.services.project_service import ensure_writable, require_company_role
from pathfinder.utils.crypto import generate_token
from pathfinder.utils.helpers import normalize_email

logger = logging.getLogger(__name__)

MAX_ROW_ID = 2**63 - 1

_TEXT_FIELDS = ("purpose", "category", "linked_csf", "formula", "measurement_method")


# ═══════════════════════════════════════════════════════════════════════════
#  Issue tokens
# ═══════════════════════════════════════════════════════════════════════════

def _reviewers(project: HrProject, data: dict) -> list[MailRecipient]:
    if data.get("email"):
        email = normalize_email(data.get("email"))
        return [MailRecipient(email=email, name=(data.get("name") or None))]

    reviewers = project.company.users_with_role(ROLE_CEO)
    admins = [u for u in User.query.order_by(User.id).all() if u.has_role(ROLE_ADMIN)]
    seen, result = set(), []
    for user in reviewers + admins:
        if user.email.lower() in seen:
            continue
        seen.add(user.email.lower())
        result.append(MailRecipient(email=user.email, name=user.name, user_id=user.id))
    return result


def request_review(project: HrProject, user, data: dict) -> list[KpiReviewToken]:
    """Issue one token per reviewer and mail each their link.

    Without an explicit ``email`` the reviewers are the company's CEOs plus
    every admin.
    """
    ensure_writable(project)
    require_company_role(project.company, user, ROLE_HR_MANAGER)

    organization_name = (data.get("organization_name") or "").strip()
    if not organization_name:
        raise ValidationError("organization_name is required",
                              details={"organization_name": "The organization name field is required."})

    recipients = _reviewers(project, data)
    if not recipients:
        raise ValidationError("No reviewers available",
                              details={"email": "The company has no CEO or admin to review KPIs."})

    cfg = current_app.config
    expires_at = datetime.now(timezone.utc) + timedelta(days=cfg.get("KPI_REVIEW_TTL_DAYS", 7))
    tokens = []
    for recipient in recipients:
        token = KpiReviewToken(
            hr_project_id=project.id,
            organization_name=organization_name,
            token=generate_token(64),
            email=recipient.email,
            name=recipient.name,
            expires_at=expires_at,
            max_uses=cfg.get("KPI_REVIEW_MAX_USES", 3),
        )
        db.session.add(token)
        tokens.append((recipient, token))
    db.session.commit()

    for recipient, token in tokens:
        notify(recipient, KpiReviewRequestNotification(token, project))

    logger.info("KPI review requested for '%s' (project %s): %d link(s)",
                organization_name, project.id, len(tokens),
                extra={"event_type": "kpi_review.request", "project_id": project.id, "user_id": user.id})
    return [t for _, t in tokens]


# ═══════════════════════════════════════════════════════════════════════════
#  Token access
# ═══════════════════════════════════════════════════════════════════════════

def get_valid_token(token: str) -> KpiReviewToken:
    review_token = KpiReviewToken.query.filter_by(token=token).first()
    if review_token is None:
        raise NotFoundError("KpiReviewToken")

    extra = {"event_type": "kpi_review.token_rejected", "project_id": review_token.hr_project_id}
    if review_token.is_exhausted:
        logger.warning("KPI review token %s used up (%d/%d)", review_token.id,
                       review_token.uses_count, review_token.max_uses, extra=extra)
        raise TokenExhaustedError("This review link has already been used the maximum number of times.")
    if review_token.is_expired():
        logger.warning("KPI review token %s expired", review_token.id, extra=extra)
        raise TokenExpiredError("This review link has expired.")
    return review_token


def _organizations(project_id: int) -> list[str]:
    rows = (
        db.session.query(OrganizationalKpi.organization_name)
        .filter(OrganizationalKpi.hr_project_id == project_id)
        .distinct()
        .all()
    )
    return sorted({name for (name,) in rows if name})


def _kpis(project_id: int, organization_name: str) -> list[OrganizationalKpi]:
    return (
        OrganizationalKpi.query
        .filter_by(hr_project_id=project_id, organization_name=organization_name)
        .order_by(OrganizationalKpi.id)
        .all()
    )


def get_review_context(token: str) -> dict:
    review_token = get_valid_token(token)
    project = review_token.project
    organizations = _organizations(project.id)
    if review_token.organization_name not in organizations:
        organizations = sorted({*organizations, review_token.organization_name})

    return {
        "token": review_token.to_dict(),
        "project": {"id": project.id, "company_name": project.company.name},
        "organization_name": review_token.organization_name,
        "all_organizations": organizations,
        "kpis": [k.to_dict() for k in _kpis(project.id, review_token.organization_name)],
        "reviewer_name": review_token.name,
        "reviewer_email": review_token.email,
    }


def get_organization_kpis(token: str, organization_name: str) -> list[OrganizationalKpi]:
    review_token = get_valid_token(token)
    return _kpis(review_token.hr_project_id, organization_name)


# ═══════════════════════════════════════════════════════════════════════════
#  Submit
# ═══════════════════════════════════════════════════════════════════════════

def _clean_id(value, key: str, errors: dict):
    """Accept an integer id (or its digit string); anything else is invalid."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip().isdecimal():
        value = int(value.strip())
    if isinstance(value, bool) or not isinstance(value, int) or not 0 < value <= MAX_ROW_ID:
        errors[key] = "The selected kpi id is invalid."
        return None
    return value


def _clean_weight(value, key: str, errors: dict):
    """Numbers and numeric strings in 0..100, stored as float."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            value = None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 100:
        errors[key] = "The weight must be a number between 0 and 100."
        return None
    return float(value)


def _clean_kpi(index: int, raw, errors: dict) -> dict | None:
    prefix = f"kpis.{index}"
    if not isinstance(raw, dict):
        errors[prefix] = "Each KPI must be an object."
        return None

    name = raw.get("kpi_name")
    if not isinstance(name, str) or not name.strip():
        errors[f"{prefix}.kpi_name"] = "The kpi name field is required."
        return None
    cleaned = {"id": _clean_id(raw.get("id"), f"{prefix}.id", errors), "kpi_name": name.strip()}

    for field in _TEXT_FIELDS:
        value = raw.get(field)
        if value is not None and not isinstance(value, str):
            errors[f"{prefix}.{field}"] = f"The {field.replace('_', ' ')} must be a string."
        cleaned[field] = value

    cleaned["weight"] = _clean_weight(raw.get("weight"), f"{prefix}.weight", errors)

    # null means "leave active", same as omitting the field
    is_active = raw.get("is_active")
    if is_active is None:
        is_active = True
    elif not isinstance(is_active, bool):
        errors[f"{prefix}.is_active"] = "The is active field must be true or false."
    cleaned["is_active"] = is_active
    return cleaned


def submit_review(token: str, data: dict) -> dict:
    """Apply a reviewer's proposed KPI changes and spend one use of the token.

    Existing KPIs (by ``id``) are updated, others created; every change is
    recorded in KpiEditHistory and the KPI moves to ``proposed``.
    """
    review_token = get_valid_token(token)
    ensure_writable(review_token.project)

    organization_name = data.get("organization_name") or review_token.organization_name
    kpis = data.get("kpis")
    errors: dict[str, str] = {}
    if not isinstance(organization_name, str) or not organization_name.strip():
        errors["organization_name"] = "The organization name field is required."
    if not isinstance(kpis, list) or not kpis:
        errors["kpis"] = "The kpis field is required."
        kpis = []

    cleaned = [_clean_kpi(i, raw, errors) for i, raw in enumerate(kpis)]
    targets = {}
    for i, item in enumerate(cleaned):
        if item and item["id"] is not None:
            kpi = db.session.get(OrganizationalKpi, item["id"])
            if (kpi is None or kpi.hr_project_id != review_token.hr_project_id
                    or kpi.organization_name != organization_name):
                errors[f"kpis.{i}.id"] = "The selected kpi id is invalid."
            else:
                targets[i] = kpi
    if errors:
        raise ValidationError("The review has invalid KPIs", details=errors)

    if not review_token.claim_use():
        logger.warning("KPI review token %s lost the race for its last use", review_token.id,
                       extra={"event_type": "kpi_review.token_rejected",
                              "project_id": review_token.hr_project_id})
        db.session.rollback()
        raise TokenExhaustedError("This review link has already been used the maximum number of times.")

    created = updated = 0
    for i, item in enumerate(cleaned):
        values = {k: v for k, v in item.items() if k != "id"}
        kpi = targets.get(i)
        if kpi is not None:
            old_values = kpi.snapshot()
            for field, value in values.items():
                setattr(kpi, field, value)
            kpi.status = KPI_STATUS_PROPOSED
            action, description = "updated", "Organization manager proposed changes"
            updated += 1
        else:
            kpi = OrganizationalKpi(
                hr_project_id=review_token.hr_project_id,
                organization_name=organization_name,
                status=KPI_STATUS_PROPOSED,
                **values,
            )
            db.session.add(kpi)
            old_values = None
            action, description = "created", "Organization manager created new KPI"
            created += 1
        db.session.flush()
        db.session.add(KpiEditHistory(
            kpi_id=kpi.id,
            editor_name=review_token.name,
            editor_email=review_token.email,
            action=action,
            old_values=old_values,
            new_values=kpi.snapshot(),
            change_description=description,
        ))

    write_audit(entity_type="kpi_review_token", entity_id=review_token.id, action="kpi_review.submit",
                project_id=review_token.hr_project_id,
                diff={"created": created, "updated": updated, "uses_count": review_token.uses_count})
    db.session.commit()

    logger.info("KPI review submitted via token %s: %d created, %d updated (%d uses left)",
                review_token.id, created, updated, review_token.remaining_uses,
                extra={"event_type": "kpi_review.submit", "project_id": review_token.hr_project_id})
    return {
        "created": created,
        "updated": updated,
        "remaining_uses": review_token.remaining_uses,
    }
