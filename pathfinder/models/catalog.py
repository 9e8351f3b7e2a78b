"""
HR Path-Finder
Admin-managed reference data.

Models:
    - IndustryCategory / IndustrySubCategory: company industry taxonomy
    - DiagnosisQuestion: CEO philosophy survey questions, grouped by category
    - PerformanceSnapshotQuestion: performance-system snapshot questions
    - CompensationSnapshotQuestion: compensation-system snapshot questions;
      numeric and text answers carry no options
    - HrIssue: organisational-issue catalogue offered in the survey

All ordered lists default ``order`` to max(order)+1 within their scope.
"""

from datetime import datetime, timezone

from pathfinder.models import db
from pathfinder.utils.helpers import isoformat
from pathfinder.utils.options import normalize_options

QUESTION_CATEGORIES = (
    "management_philosophy",
    "vision_mission",
    "growth_stage",
    "leadership",
    "general",
    "issues",
    "concerns",
)
QUESTION_TYPES = ("likert", "text", "select", "slider", "number")
SNAPSHOT_ANSWER_TYPES = ("select_one", "select_up_to_2", "select_all_that_apply")
COMPENSATION_ANSWER_TYPES = ("select_one", "select_up_to_2", "multiple", "numeric", "text")
# Answer types that are picked from ``options``
COMPENSATION_CHOICE_TYPES = ("select_one", "select_up_to_2", "multiple")


def _created():
    return db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class IndustryCategory(db.Model):
    __tablename__ = "industry_categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    created_at = _created()

    subcategories = db.relationship(
        "IndustrySubCategory", back_populates="category",
        order_by="IndustrySubCategory.order", cascade="all, delete-orphan",
    )

    def to_dict(self, include_subcategories=False):
        d = {
            "id": self.id,
            "name": self.name,
            "order": self.order,
            "subcategory_count": len(self.subcategories),
        }
        if include_subcategories:
            d["subcategories"] = [s.to_dict() for s in self.subcategories]
        return d

    def __repr__(self):
        return f"<IndustryCategory {self.id}: {self.name}>"


class IndustrySubCategory(db.Model):
    __tablename__ = "industry_sub_categories"

    id = db.Column(db.Integer, primary_key=True)
    industry_category_id = db.Column(
        db.Integer, db.ForeignKey("industry_categories.id", ondelete="CASCADE"), nullable=False,
    )
    name = db.Column(db.String(255), nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    created_at = _created()

    category = db.relationship("IndustryCategory", back_populates="subcategories")

    def to_dict(self):
        return {
            "id": self.id,
            "industry_category_id": self.industry_category_id,
            "name": self.name,
            "order": self.order,
        }


class DiagnosisQuestion(db.Model):
    __tablename__ = "diagnosis_questions"

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(50), nullable=False, index=True)
    question_text = db.Column(db.Text, nullable=False)
    question_type = db.Column(db.String(20), nullable=False, default="likert")
    options = db.Column(db.JSON)
    question_metadata = db.Column("metadata", db.JSON)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = _created()

    def to_dict(self):
        return {
            "id": self.id,
            "category": self.category,
            "question_text": self.question_text,
            "question_type": self.question_type,
            "options": normalize_options(self.options),
            "metadata": self.question_metadata or {},
            "order": self.order,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<DiagnosisQuestion {self.id}: {self.category}>"


class PerformanceSnapshotQuestion(db.Model):
    __tablename__ = "performance_snapshot_questions"

    id = db.Column(db.Integer, primary_key=True)
    question_text = db.Column(db.Text, nullable=False)
    answer_type = db.Column(db.String(30), nullable=False)
    options = db.Column(db.JSON, nullable=False, default=list)
    version = db.Column(db.String(20))
    question_metadata = db.Column("metadata", db.JSON)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = _created()

    def to_dict(self):
        return {
            "id": self.id,
            "question_text": self.question_text,
            "answer_type": self.answer_type,
            "options": normalize_options(self.options),
            "version": self.version,
            "metadata": self.question_metadata or {},
            "order": self.order,
            "is_active": self.is_active,
        }


class CompensationSnapshotQuestion(db.Model):
    __tablename__ = "compensation_snapshot_questions"

    id = db.Column(db.Integer, primary_key=True)
    question_text = db.Column(db.Text, nullable=False)
    answer_type = db.Column(db.String(30), nullable=False)
    options = db.Column(db.JSON)
    version = db.Column(db.String(20), index=True)
    question_metadata = db.Column("metadata", db.JSON)
    order = db.Column(db.Integer, nullable=False, default=0, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = _created()

    @property
    def has_options(self) -> bool:
        return self.answer_type in COMPENSATION_CHOICE_TYPES

    def to_dict(self):
        return {
            "id": self.id,
            "question_text": self.question_text,
            "answer_type": self.answer_type,
            "options": normalize_options(self.options) if self.has_options else None,
            "version": self.version,
            "metadata": self.question_metadata or {},
            "order": self.order,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<CompensationSnapshotQuestion {self.id}: {self.answer_type}>"


class HrIssue(db.Model):
    __tablename__ = "hr_issues"

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(50), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = _created()

    def to_dict(self):
        return {
            "id": self.id,
            "category": self.category,
            "name": self.name,
            "order": self.order,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<HrIssue {self.id}: {self.name}>"
