"""
HR Path-Finder
Admin catalogue service.

Reference data maintained by admins:
    - industry categories and their subcategories
    - CEO survey questions (DiagnosisQuestion)
    - performance and compensation snapshot questions (with bulk reorder)
    - HR issue taxonomy

It also manages CEO accounts: listing them with their companies and
invitations, and creating or attaching one directly.

Creates default ``order`` to max(order)+1 within the entity's scope
(per category for questions and issues, per industry for subcategories).
Updates are partial: only keys present in the payload are validated and
applied.  Every mutation is audited and committed here.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func

from pathfinder.core.exceptions import NotFoundError, ValidationError
from pathfinder.models import db
from pathfinder.models.audit import write_audit
from pathfinder.models.auth import ROLE_CEO, Company, CompanyMember, User
from pathfinder.models.catalog import (
    COMPENSATION_ANSWER_TYPES,
    COMPENSATION_CHOICE_TYPES,
    QUESTION_CATEGORIES,
    QUESTION_TYPES,
    SNAPSHOT_ANSWER_TYPES,
    CompensationSnapshotQuestion,
    DiagnosisQuestion,
    HrIssue,
    IndustryCategory,
    IndustrySubCategory,
    PerformanceSnapshotQuestion,
)
from pathfinder.models.invitation import INVITATION_ACCEPTED, CompanyInvitation
from pathfinder.notifications import CompanyInvitationNotification, notify
from pathfinder.services import user_service
from pathfinder.utils.crypto import generate_temporary_password, generate_token
from pathfinder.utils.helpers import normalize_email
from pathfinder.utils.options import normalize_options

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255


# ──────────────────────────────────────────────────────────────────────────────
# Field validation
# ──────────────────────────────────────────────────────────────────────────────

def _label(field: str) -> str:
    return field.replace("_", " ")


def _clean(data: dict, rules: dict, *, partial: bool) -> dict:
    """Validate ``data`` against ``rules`` ({field: (kind, required, extra)}).

    kinds: ``str`` (extra = max length), ``choice`` (extra = allowed values),
    ``order``, ``bool``, ``options`` (extra = minimum count), ``mapping``.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid payload", details={"body": "Expected a JSON object."})

    errors: dict[str, str] = {}
    cleaned: dict = {}
    for field, (kind, required, extra) in rules.items():
        if field not in data:
            if required and not partial:
                errors[field] = f"The {_label(field)} field is required."
            continue
        value = data[field]

        if kind in ("str", "choice"):
            if required and (not isinstance(value, str) or not value.strip()):
                errors[field] = f"The {_label(field)} field is required."
                continue
            if value is not None and not isinstance(value, str):
                errors[field] = f"The {_label(field)} must be a string."
                continue
            value = value.strip() if value is not None else None
            if kind == "str" and extra and value and len(value) > extra:
                errors[field] = f"The {_label(field)} may not be greater than {extra} characters."
                continue
            if kind == "choice" and value not in extra:
                errors[field] = f"The selected {_label(field)} is invalid."
                continue
        elif kind == "order":
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                errors[field] = f"The {_label(field)} must be an integer of at least 0."
                continue
        elif kind == "bool":
            if value is None:
                continue
            if not isinstance(value, bool):
                errors[field] = f"The {_label(field)} field must be true or false."
                continue
        elif kind == "options":
            if value is None and not extra:
                cleaned[field] = None
                continue
            try:
                value = normalize_options(value)
            except ValidationError as exc:
                errors[field] = str(exc)
                continue
            if extra and len(value) < extra:
                errors[field] = f"The {_label(field)} must have at least {extra} item(s)."
                continue
        elif kind == "mapping":
            if value is not None and not isinstance(value, dict):
                errors[field] = f"The {_label(field)} must be an object."
                continue
        cleaned[field] = value

    if errors:
        raise ValidationError("The given data was invalid.", details=errors)
    return cleaned


def _next_order(model, **scope) -> int:
    q = db.session.query(func.max(model.order))
    for column, value in scope.items():
        q = q.filter(getattr(model, column) == value)
    current = q.scalar()
    return (current if current is not None else 0) + 1


def _get(model, pk):
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(model.__name__, pk)
    return obj


def _audit(obj, action: str, actor, diff: dict | None = None) -> None:
    write_audit(entity_type=obj.__tablename__, entity_id=obj.id, action=action,
                actor_user_id=getattr(actor, "id", None), diff=diff)


def _create(obj, actor):
    db.session.add(obj)
    db.session.flush()
    _audit(obj, "catalog.create", actor)
    db.session.commit()
    logger.info("%s %s created", type(obj).__name__, obj.id,
                extra={"event_type": "catalog.create", "user_id": getattr(actor, "id", None)})
    return obj


def _update(obj, values: dict, actor):
    changes = {}
    for field, value in values.items():
        old = getattr(obj, field)
        if old != value:
            changes[field] = {"old": old, "new": value}
            setattr(obj, field, value)
    if changes:
        _audit(obj, "catalog.update", actor, changes)
        db.session.commit()
        logger.info("%s %s updated: %s", type(obj).__name__, obj.id, ", ".join(changes),
                    extra={"event_type": "catalog.update", "user_id": getattr(actor, "id", None)})
    return obj


def _delete(obj, actor) -> None:
    name = type(obj).__name__
    pk = obj.id
    _audit(obj, "catalog.delete", actor)
    db.session.delete(obj)
    db.session.commit()
    logger.info("%s %s deleted", name, pk,
                extra={"event_type": "catalog.delete", "user_id": getattr(actor, "id", None)})


def _reorder(model, items, actor=None) -> int:
    """Apply ``[{"id": .., "order": ..}]`` to rows of ``model`` in one transaction."""
    if not isinstance(items, list) or not items:
        raise ValidationError("questions is required", details={"questions": "The questions field is required."})

    errors: dict[str, str] = {}
    updates = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            errors[f"questions.{i}"] = "Each entry must be an object."
            continue
        order = item.get("order")
        if isinstance(order, bool) or not isinstance(order, int):
            errors[f"questions.{i}.order"] = "The order must be an integer."
            continue
        pk = item.get("id")
        valid_pk = isinstance(pk, int) and not isinstance(pk, bool) and 0 < pk < 2**63
        row = db.session.get(model, pk) if valid_pk else None
        if row is None:
            errors[f"questions.{i}.id"] = "The selected id is invalid."
            continue
        updates.append((row, order))
    if errors:
        raise ValidationError("The given data was invalid.", details=errors)

    for row, order in updates:
        row.order = order
    db.session.commit()
    logger.info("Reordered %d %s row(s)", len(updates), model.__name__,
                extra={"event_type": "catalog.update", "user_id": getattr(actor, "id", None)})
    return len(updates)


# ──────────────────────────────────────────────────────────────────────────────
# Industries
# ──────────────────────────────────────────────────────────────────────────────

_NAMED_RULES = {
    "name": ("str", True, MAX_NAME_LENGTH),
    "order": ("order", False, None),
}


def list_industries() -> list[IndustryCategory]:
    return IndustryCategory.query.order_by(IndustryCategory.order, IndustryCategory.id).all()


def get_industry(industry_id: int) -> IndustryCategory:
    return _get(IndustryCategory, industry_id)


def create_industry(data: dict, actor=None) -> IndustryCategory:
    values = _clean(data, _NAMED_RULES, partial=False)
    if values.get("order") is None:
        values["order"] = _next_order(IndustryCategory)
    return _create(IndustryCategory(**values), actor)


def update_industry(industry_id: int, data: dict, actor=None) -> IndustryCategory:
    industry = get_industry(industry_id)
    values = _clean(data, _NAMED_RULES, partial=True)
    values = {k: v for k, v in values.items() if v is not None}
    return _update(industry, values, actor)


def delete_industry(industry_id: int, actor=None) -> None:
    _delete(get_industry(industry_id), actor)


def list_subcategories(industry_id: int) -> list[IndustrySubCategory]:
    return get_industry(industry_id).subcategories


def create_subcategory(industry_id: int, data: dict, actor=None) -> IndustrySubCategory:
    industry = get_industry(industry_id)
    values = _clean(data, _NAMED_RULES, partial=False)
    if values.get("order") is None:
        values["order"] = _next_order(IndustrySubCategory, industry_category_id=industry.id)
    return _create(IndustrySubCategory(industry_category_id=industry.id, **values), actor)


def update_subcategory(subcategory_id: int, data: dict, actor=None) -> IndustrySubCategory:
    sub = _get(IndustrySubCategory, subcategory_id)
    values = _clean(data, _NAMED_RULES, partial=True)
    values = {k: v for k, v in values.items() if v is not None}
    return _update(sub, values, actor)


def delete_subcategory(subcategory_id: int, actor=None) -> None:
    _delete(_get(IndustrySubCategory, subcategory_id), actor)


# ──────────────────────────────────────────────────────────────────────────────
# CEO survey questions
# ──────────────────────────────────────────────────────────────────────────────

_CEO_QUESTION_RULES = {
    "category": ("choice", True, QUESTION_CATEGORIES),
    "question_text": ("str", True, None),
    "question_type": ("choice", True, QUESTION_TYPES),
    "order": ("order", False, None),
    "is_active": ("bool", False, None),
    "metadata": ("mapping", False, None),
    "options": ("options", False, 0),
}


def _question_values(values: dict) -> dict:
    if "metadata" in values:
        values["question_metadata"] = values.pop("metadata")
    return values


def list_ceo_questions(category: str | None = None) -> list[DiagnosisQuestion]:
    q = DiagnosisQuestion.query
    if category:
        q = q.filter_by(category=category)
    return q.order_by(DiagnosisQuestion.order, DiagnosisQuestion.id).all()


def get_ceo_question(question_id: int) -> DiagnosisQuestion:
    return _get(DiagnosisQuestion, question_id)


def create_ceo_question(data: dict, actor=None) -> DiagnosisQuestion:
    values = _question_values(_clean(data, _CEO_QUESTION_RULES, partial=False))
    if values.get("order") is None:
        values["order"] = _next_order(DiagnosisQuestion, category=values["category"])
    if values.get("is_active") is None:
        values["is_active"] = True
    return _create(DiagnosisQuestion(**values), actor)


def update_ceo_question(question_id: int, data: dict, actor=None) -> DiagnosisQuestion:
    question = get_ceo_question(question_id)
    values = _question_values(_clean(data, _CEO_QUESTION_RULES, partial=True))
    for field in ("order", "is_active"):
        if field in values and values[field] is None:
            del values[field]
    return _update(question, values, actor)


def delete_ceo_question(question_id: int, actor=None) -> None:
    _delete(get_ceo_question(question_id), actor)


def reorder_ceo_questions(items, actor=None) -> int:
    return _reorder(DiagnosisQuestion, items, actor)


# ──────────────────────────────────────────────────────────────────────────────
# Performance snapshot questions
# ──────────────────────────────────────────────────────────────────────────────

_SNAPSHOT_RULES = {
    "question_text": ("str", True, None),
    "answer_type": ("choice", True, SNAPSHOT_ANSWER_TYPES),
    "options": ("options", True, 1),
    "order": ("order", False, None),
    "is_active": ("bool", False, None),
    "version": ("str", False, 20),
    "metadata": ("mapping", False, None),
}


def list_snapshot_questions() -> list[PerformanceSnapshotQuestion]:
    return (
        PerformanceSnapshotQuestion.query
        .order_by(PerformanceSnapshotQuestion.order, PerformanceSnapshotQuestion.id)
        .all()
    )


def get_snapshot_question(question_id: int) -> PerformanceSnapshotQuestion:
    return _get(PerformanceSnapshotQuestion, question_id)


def create_snapshot_question(data: dict, actor=None) -> PerformanceSnapshotQuestion:
    values = _question_values(_clean(data, _SNAPSHOT_RULES, partial=False))
    if values.get("order") is None:
        values["order"] = _next_order(PerformanceSnapshotQuestion)
    if values.get("is_active") is None:
        values["is_active"] = True
    return _create(PerformanceSnapshotQuestion(**values), actor)


def update_snapshot_question(question_id: int, data: dict, actor=None) -> PerformanceSnapshotQuestion:
    question = get_snapshot_question(question_id)
    values = _question_values(_clean(data, _SNAPSHOT_RULES, partial=True))
    for field in ("order", "is_active"):
        if field in values and values[field] is None:
            del values[field]
    return _update(question, values, actor)


def delete_snapshot_question(question_id: int, actor=None) -> None:
    _delete(get_snapshot_question(question_id), actor)


def reorder_snapshot_questions(items, actor=None) -> int:
    return _reorder(PerformanceSnapshotQuestion, items, actor)


# ──────────────────────────────────────────────────────────────────────────────
# Compensation snapshot questions
# ──────────────────────────────────────────────────────────────────────────────

_COMPENSATION_RULES = {
    "question_text": ("str", True, None),
    "answer_type": ("choice", True, COMPENSATION_ANSWER_TYPES),
    "options": ("options", False, 0),
    "order": ("order", False, None),
    "is_active": ("bool", False, None),
    "version": ("str", False, 20),
    "metadata": ("mapping", False, None),
}


def _compensation_options(values: dict, answer_type: str, current=None) -> None:
    """Choice answers need at least one option; numeric and text answers drop them."""
    if answer_type not in COMPENSATION_CHOICE_TYPES:
        values["options"] = None
        return
    options = values["options"] if "options" in values else current
    if not options:
        raise ValidationError("The given data was invalid.",
                              details={"options": "The options field is required for this answer type."})


def list_compensation_questions() -> list[CompensationSnapshotQuestion]:
    return (
        CompensationSnapshotQuestion.query
        .order_by(CompensationSnapshotQuestion.order, CompensationSnapshotQuestion.id)
        .all()
    )


def get_compensation_question(question_id: int) -> CompensationSnapshotQuestion:
    return _get(CompensationSnapshotQuestion, question_id)


def create_compensation_question(data: dict, actor=None) -> CompensationSnapshotQuestion:
    values = _question_values(_clean(data, _COMPENSATION_RULES, partial=False))
    _compensation_options(values, values["answer_type"])
    if values.get("order") is None:
        values["order"] = _next_order(CompensationSnapshotQuestion)
    if values.get("is_active") is None:
        values["is_active"] = True
    return _create(CompensationSnapshotQuestion(**values), actor)


def update_compensation_question(question_id: int, data: dict, actor=None) -> CompensationSnapshotQuestion:
    question = get_compensation_question(question_id)
    values = _question_values(_clean(data, _COMPENSATION_RULES, partial=True))
    for field in ("order", "is_active"):
        if field in values and values[field] is None:
            del values[field]
    _compensation_options(values, values.get("answer_type", question.answer_type), question.options)
    return _update(question, values, actor)


def delete_compensation_question(question_id: int, actor=None) -> None:
    _delete(get_compensation_question(question_id), actor)


def reorder_compensation_questions(items, actor=None) -> int:
    return _reorder(CompensationSnapshotQuestion, items, actor)


# ──────────────────────────────────────────────────────────────────────────────
# HR issues
# ──────────────────────────────────────────────────────────────────────────────

_HR_ISSUE_RULES = {
    "category": ("str", True, 50),
    "name": ("str", True, MAX_NAME_LENGTH),
    "order": ("order", False, None),
    "is_active": ("bool", False, None),
}


def list_hr_issues(category: str | None = None, *, active_only: bool = False) -> list[HrIssue]:
    q = HrIssue.query
    if category:
        q = q.filter_by(category=category)
    if active_only:
        q = q.filter_by(is_active=True)
    return q.order_by(HrIssue.order, HrIssue.id).all()


def get_hr_issue(issue_id: int) -> HrIssue:
    return _get(HrIssue, issue_id)


def create_hr_issue(data: dict, actor=None) -> HrIssue:
    values = _clean(data, _HR_ISSUE_RULES, partial=False)
    if values.get("order") is None:
        values["order"] = _next_order(HrIssue, category=values["category"])
    if values.get("is_active") is None:
        values["is_active"] = True
    return _create(HrIssue(**values), actor)


def update_hr_issue(issue_id: int, data: dict, actor=None) -> HrIssue:
    issue = get_hr_issue(issue_id)
    values = _clean(data, _HR_ISSUE_RULES, partial=True)
    for field in ("order", "is_active"):
        if field in values and values[field] is None:
            del values[field]
    return _update(issue, values, actor)


def delete_hr_issue(issue_id: int, actor=None) -> None:
    _delete(get_hr_issue(issue_id), actor)


# ──────────────────────────────────────────────────────────────────────────────
# CEO accounts
# ──────────────────────────────────────────────────────────────────────────────

_CEO_RULES = {
    "name": ("str", True, MAX_NAME_LENGTH),
    "email": ("str", True, MAX_NAME_LENGTH),
}


def _ceo_dict(user: User) -> dict:
    companies = [m.company for m in user.memberships.filter_by(role=ROLE_CEO).all()]
    return {**user.to_dict(), "companies": [{"id": c.id, "name": c.name} for c in companies]}


def _ceo_invitation_dict(inv: CompanyInvitation) -> dict:
    inviter = inv.inviter
    return {
        **inv.to_dict(),
        "invited_by": {"id": inviter.id, "name": inviter.name, "email": inviter.email} if inviter else None,
    }


def list_ceos() -> dict:
    """CEO accounts with their companies, plus every CEO invitation, newest first."""
    ceos = [u for u in User.query.order_by(User.name, User.id).all() if u.has_role(ROLE_CEO)]
    invitations = (
        CompanyInvitation.query
        .filter_by(role=ROLE_CEO)
        .order_by(CompanyInvitation.created_at.desc(), CompanyInvitation.id.desc())
        .all()
    )
    companies = Company.query.order_by(Company.name, Company.id).all()
    return {
        "ceos": [_ceo_dict(u) for u in ceos],
        "companies": [{"id": c.id, "name": c.name} for c in companies],
        "invitations": [_ceo_invitation_dict(inv) for inv in invitations],
    }


def create_ceo(data: dict, actor) -> dict:
    """Create (or reuse) a CEO account and optionally attach it to a company.

    A new account gets a temporary password.  Attaching records an already
    accepted invitation and queues the welcome mail, which carries the
    credentials for new accounts.  Re-attaching an existing CEO is a no-op.
    """
    values = _clean(data, _CEO_RULES, partial=False)
    email = normalize_email(values["email"])

    company = None
    company_id = data.get("company_id")
    if company_id is not None:
        valid_pk = isinstance(company_id, int) and not isinstance(company_id, bool) and 0 < company_id < 2**63
        company = db.session.get(Company, company_id) if valid_pk else None
        if company is None:
            raise ValidationError("Unknown company", details={"company_id": "The selected company id is invalid."})

    user = user_service.get_user_by_email(email)
    is_new_user = user is None
    temporary_password = None
    if is_new_user:
        temporary_password = generate_temporary_password()
        user = user_service.create_user(
            email, name=values["name"], password=temporary_password, roles=[ROLE_CEO], verified=True,
        )
    else:
        user.assign_role(ROLE_CEO)

    invitation = None
    if company is not None and not company.is_member(user, ROLE_CEO):
        db.session.add(CompanyMember(company_id=company.id, user_id=user.id, role=ROLE_CEO))
        invitation = CompanyInvitation(
            company_id=company.id,
            email=email,
            role=ROLE_CEO,
            token=generate_token(64),
            inviter_id=actor.id,
            status=INVITATION_ACCEPTED,
            accepted_at=datetime.now(timezone.utc),
            temporary_password=temporary_password,
        )
        db.session.add(invitation)

    db.session.flush()
    write_audit(entity_type="user", entity_id=user.id, action="ceo.assign", actor_user_id=actor.id,
                diff={"company_id": company.id if company else None, "new_user": is_new_user,
                      "attached": invitation is not None})
    db.session.commit()

    if invitation is not None:
        notify(email, CompanyInvitationNotification(invitation, existing_user=not is_new_user))
        # The welcome mail is rendered; the plain-text password is no longer needed
        if invitation.temporary_password:
            invitation.temporary_password = None
            db.session.commit()

    if company is None:
        message = ("CEO created successfully. Please assign to a company." if is_new_user
                   else "CEO account already exists. Please assign to a company.")
    elif invitation is None:
        message = f"CEO is already associated with {company.name}."
    elif is_new_user:
        message = f"CEO account created and assigned to {company.name}. Welcome email with credentials sent."
    else:
        message = f"CEO account has been successfully assigned to {company.name}. Welcome email sent."

    logger.info("CEO account %s %s (company=%s)", user.id, "created" if is_new_user else "updated",
                company.id if company else None,
                extra={"event_type": "ceo.assign", "user_id": actor.id,
                       "company_id": company.id if company else None})
    return {
        "ceo": _ceo_dict(user),
        "created": is_new_user,
        "assigned": invitation is not None,
        "message": message,
    }
