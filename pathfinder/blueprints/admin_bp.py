"""
Admin Blueprint — reference-data maintenance.

All routes require the ``admin`` role.  Deletes additionally require
``?confirm=true``; without it the API answers 400 ERR_CONFIRMATION_REQUIRED.

  Industries:
    GET/POST            /admin/industries
    GET/PUT/DELETE      /admin/industries/<id>
    GET/POST            /admin/industries/<id>/subcategories
    PUT/DELETE          /admin/subcategories/<id>

  CEO survey questions:
    GET/POST            /admin/ceo-questions            (?category=)
    GET/PUT/DELETE      /admin/ceo-questions/<id>
    POST                /admin/ceo-questions/reorder

  Performance snapshot questions:
    GET/POST            /admin/performance-snapshot-questions
    GET/PUT/DELETE      /admin/performance-snapshot-questions/<id>
    POST                /admin/performance-snapshot-questions/reorder

  Compensation snapshot questions:
    GET/POST            /admin/compensation-snapshot-questions
    GET/PUT/DELETE      /admin/compensation-snapshot-questions/<id>
    POST                /admin/compensation-snapshot-questions/reorder

  HR issues:
    GET/POST            /admin/hr-issues                (?category=)
    GET/PUT/DELETE      /admin/hr-issues/<id>

  CEO accounts:
    GET/POST            /admin/ceos
"""

from flask import Blueprint, g, jsonify, request

from pathfinder.auth import require_role
from pathfinder.blueprints import json_body
from pathfinder.models.auth import ROLE_ADMIN
from pathfinder.models.catalog import (
    COMPENSATION_ANSWER_TYPES,
    QUESTION_CATEGORIES,
    QUESTION_TYPES,
    SNAPSHOT_ANSWER_TYPES,
)
from pathfinder.services import admin_service
from pathfinder.services.philosophy_survey import ISSUE_CATEGORIES
from pathfinder.utils.errors import E, api_error
from pathfinder.utils.helpers import is_truthy

admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1/admin")


@admin_bp.before_request
@require_role(ROLE_ADMIN)
def _admin_only():
    return None


def _confirmed():
    """None when the delete is confirmed, else the 400 response."""
    if is_truthy(request.args.get("confirm")):
        return None
    return api_error(E.CONFIRMATION_REQUIRED, "Deletion must be confirmed with ?confirm=true")


def _deleted(message: str):
    return jsonify({"message": message}), 200


# ═════════════════════════════════════════════════════════════════════════════
# Industries & subcategories
# ═════════════════════════════════════════════════════════════════════════════

@admin_bp.route("/industries", methods=["GET"])
def list_industries():
    return jsonify([i.to_dict(include_subcategories=True) for i in admin_service.list_industries()]), 200


@admin_bp.route("/industries", methods=["POST"])
def create_industry():
    industry = admin_service.create_industry(json_body(), g.current_user)
    return jsonify(industry.to_dict(include_subcategories=True)), 201


@admin_bp.route("/industries/<int:iid>", methods=["GET"])
def get_industry(iid):
    return jsonify(admin_service.get_industry(iid).to_dict(include_subcategories=True)), 200


@admin_bp.route("/industries/<int:iid>", methods=["PUT"])
def update_industry(iid):
    industry = admin_service.update_industry(iid, json_body(), g.current_user)
    return jsonify(industry.to_dict(include_subcategories=True)), 200


@admin_bp.route("/industries/<int:iid>", methods=["DELETE"])
def delete_industry(iid):
    err = _confirmed()
    if err:
        return err
    admin_service.delete_industry(iid, g.current_user)
    return _deleted("Industry category deleted successfully.")


@admin_bp.route("/industries/<int:iid>/subcategories", methods=["GET"])
def list_subcategories(iid):
    return jsonify([s.to_dict() for s in admin_service.list_subcategories(iid)]), 200


@admin_bp.route("/industries/<int:iid>/subcategories", methods=["POST"])
def create_subcategory(iid):
    sub = admin_service.create_subcategory(iid, json_body(), g.current_user)
    return jsonify(sub.to_dict()), 201


@admin_bp.route("/subcategories/<int:sid>", methods=["PUT"])
def update_subcategory(sid):
    sub = admin_service.update_subcategory(sid, json_body(), g.current_user)
    return jsonify(sub.to_dict()), 200


@admin_bp.route("/subcategories/<int:sid>", methods=["DELETE"])
def delete_subcategory(sid):
    err = _confirmed()
    if err:
        return err
    admin_service.delete_subcategory(sid, g.current_user)
    return _deleted("Subcategory deleted successfully.")


# ═════════════════════════════════════════════════════════════════════════════
# CEO survey questions
# ═════════════════════════════════════════════════════════════════════════════

@admin_bp.route("/ceo-questions", methods=["GET"])
def list_ceo_questions():
    category = request.args.get("category") or None
    questions = admin_service.list_ceo_questions(category)
    return jsonify({
        "questions": [q.to_dict() for q in questions],
        "categories": list(QUESTION_CATEGORIES),
        "question_types": list(QUESTION_TYPES),
        "current_category": category,
    }), 200


@admin_bp.route("/ceo-questions", methods=["POST"])
def create_ceo_question():
    question = admin_service.create_ceo_question(json_body(), g.current_user)
    return jsonify(question.to_dict()), 201


@admin_bp.route("/ceo-questions/reorder", methods=["POST"])
def reorder_ceo_questions():
    count = admin_service.reorder_ceo_questions(json_body().get("questions"), g.current_user)
    return jsonify({"success": True, "updated": count}), 200


@admin_bp.route("/ceo-questions/<int:qid>", methods=["GET"])
def get_ceo_question(qid):
    return jsonify(admin_service.get_ceo_question(qid).to_dict()), 200


@admin_bp.route("/ceo-questions/<int:qid>", methods=["PUT"])
def update_ceo_question(qid):
    question = admin_service.update_ceo_question(qid, json_body(), g.current_user)
    return jsonify(question.to_dict()), 200


@admin_bp.route("/ceo-questions/<int:qid>", methods=["DELETE"])
def delete_ceo_question(qid):
    err = _confirmed()
    if err:
        return err
    admin_service.delete_ceo_question(qid, g.current_user)
    return _deleted("Question deleted successfully.")


# ═════════════════════════════════════════════════════════════════════════════
# Performance snapshot questions
# ═════════════════════════════════════════════════════════════════════════════

@admin_bp.route("/performance-snapshot-questions", methods=["GET"])
def list_snapshot_questions():
    questions = admin_service.list_snapshot_questions()
    return jsonify({
        "questions": [q.to_dict() for q in questions],
        "answer_types": list(SNAPSHOT_ANSWER_TYPES),
    }), 200


@admin_bp.route("/performance-snapshot-questions", methods=["POST"])
def create_snapshot_question():
    question = admin_service.create_snapshot_question(json_body(), g.current_user)
    return jsonify(question.to_dict()), 201


@admin_bp.route("/performance-snapshot-questions/reorder", methods=["POST"])
def reorder_snapshot_questions():
    count = admin_service.reorder_snapshot_questions(json_body().get("questions"), g.current_user)
    return jsonify({"success": True, "updated": count}), 200


@admin_bp.route("/performance-snapshot-questions/<int:qid>", methods=["GET"])
def get_snapshot_question(qid):
    return jsonify(admin_service.get_snapshot_question(qid).to_dict()), 200


@admin_bp.route("/performance-snapshot-questions/<int:qid>", methods=["PUT"])
def update_snapshot_question(qid):
    question = admin_service.update_snapshot_question(qid, json_body(), g.current_user)
    return jsonify(question.to_dict()), 200


@admin_bp.route("/performance-snapshot-questions/<int:qid>", methods=["DELETE"])
def delete_snapshot_question(qid):
    err = _confirmed()
    if err:
        return err
    admin_service.delete_snapshot_question(qid, g.current_user)
    return _deleted("Question deleted successfully.")


# ═════════════════════════════════════════════════════════════════════════════
# Compensation snapshot questions
# ═════════════════════════════════════════════════════════════════════════════

@admin_bp.route("/compensation-snapshot-questions", methods=["GET"])
def list_compensation_questions():
    questions = admin_service.list_compensation_questions()
    return jsonify({
        "questions": [q.to_dict() for q in questions],
        "answer_types": list(COMPENSATION_ANSWER_TYPES),
    }), 200


@admin_bp.route("/compensation-snapshot-questions", methods=["POST"])
def create_compensation_question():
    question = admin_service.create_compensation_question(json_body(), g.current_user)
    return jsonify(question.to_dict()), 201


@admin_bp.route("/compensation-snapshot-questions/reorder", methods=["POST"])
def reorder_compensation_questions():
    count = admin_service.reorder_compensation_questions(json_body().get("questions"), g.current_user)
    return jsonify({"success": True, "updated": count}), 200


@admin_bp.route("/compensation-snapshot-questions/<int:qid>", methods=["GET"])
def get_compensation_question(qid):
    return jsonify(admin_service.get_compensation_question(qid).to_dict()), 200


@admin_bp.route("/compensation-snapshot-questions/<int:qid>", methods=["PUT"])
def update_compensation_question(qid):
    question = admin_service.update_compensation_question(qid, json_body(), g.current_user)
    return jsonify(question.to_dict()), 200


@admin_bp.route("/compensation-snapshot-questions/<int:qid>", methods=["DELETE"])
def delete_compensation_question(qid):
    err = _confirmed()
    if err:
        return err
    admin_service.delete_compensation_question(qid, g.current_user)
    return _deleted("Question deleted successfully.")


# ═════════════════════════════════════════════════════════════════════════════
# HR issues
# ═════════════════════════════════════════════════════════════════════════════

@admin_bp.route("/hr-issues", methods=["GET"])
def list_hr_issues():
    category = request.args.get("category") or None
    issues = admin_service.list_hr_issues(category)
    return jsonify({
        "issues": [i.to_dict() for i in issues],
        "categories": ISSUE_CATEGORIES,
        "current_category": category,
    }), 200


@admin_bp.route("/hr-issues", methods=["POST"])
def create_hr_issue():
    issue = admin_service.create_hr_issue(json_body(), g.current_user)
    return jsonify(issue.to_dict()), 201


@admin_bp.route("/hr-issues/<int:hid>", methods=["GET"])
def get_hr_issue(hid):
    return jsonify(admin_service.get_hr_issue(hid).to_dict()), 200


@admin_bp.route("/hr-issues/<int:hid>", methods=["PUT"])
def update_hr_issue(hid):
    issue = admin_service.update_hr_issue(hid, json_body(), g.current_user)
    return jsonify(issue.to_dict()), 200


@admin_bp.route("/hr-issues/<int:hid>", methods=["DELETE"])
def delete_hr_issue(hid):
    err = _confirmed()
    if err:
        return err
    admin_service.delete_hr_issue(hid, g.current_user)
    return _deleted("HR Issue deleted successfully.")


# ═════════════════════════════════════════════════════════════════════════════
# CEO accounts
# ═════════════════════════════════════════════════════════════════════════════

@admin_bp.route("/ceos", methods=["GET"])
def list_ceos():
    return jsonify(admin_service.list_ceos()), 200


@admin_bp.route("/ceos", methods=["POST"])
def create_ceo():
    result = admin_service.create_ceo(json_body(), g.current_user)
    return jsonify(result), 201 if result["created"] else 200
