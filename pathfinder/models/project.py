"""
HR Path-Finder
HR project domain model.

Models:
    - HrProject: one company's run through the four design steps
    - CeoPhilosophy: the CEO's Management Philosophy Survey answers

Lifecycle:
    Each step key maps to a ``StepStatus`` in ``step_statuses``.  Statuses
    only move forward; the project itself goes active → locked once the CEO
    signs off the whole system, after which nothing is writable.
"""

import enum
from datetime import datetime, timezone

from pathfinder.models import db
from pathfinder.utils.helpers import isoformat


class StepStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    LOCKED = "locked"
    # Legacy "verified by CEO" value still found in older rows
    COMPLETED = "completed"


class ProjectStatus(str, enum.Enum):
    ACTIVE = "active"
    LOCKED = "locked"


class PhilosophyStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    LOCKED = "locked"


STEP_KEYS = ("diagnosis", "organization", "performance", "compensation")

STEP_DISPLAY_NAMES = {
    "diagnosis": "Diagnosis – Step 1",
    "organization": "Organization Design – Step 2",
    "performance": "Performance System – Step 3",
    "compensation": "Compensation System – Step 4",
}


def step_display_name(step: str) -> str:
    return STEP_DISPLAY_NAMES.get(step, step)


class HrProject(db.Model):
    __tablename__ = "hr_projects"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    status = db.Column(db.String(20), nullable=False, default=ProjectStatus.ACTIVE.value)
    step_statuses = db.Column(db.JSON, nullable=False, default=dict)
    step_data = db.Column(db.JSON, nullable=False, default=dict, comment="Per-step working payloads")
    locked_at = db.Column(db.DateTime(timezone=True))
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    company = db.relationship("Company", back_populates="projects")
    philosophies = db.relationship(
        "CeoPhilosophy", back_populates="project", lazy="dynamic", cascade="all, delete-orphan",
    )

    def initialize_step_statuses(self) -> None:
        self.step_statuses = {key: StepStatus.NOT_STARTED.value for key in STEP_KEYS}

    def get_step_status(self, step: str) -> str | None:
        return (self.step_statuses or {}).get(step)

    def set_step_status(self, step: str, status: StepStatus) -> None:
        # Reassign so SQLAlchemy notices the JSON change
        self.step_statuses = {**(self.step_statuses or {}), step: StepStatus(status).value}

    @property
    def is_locked(self) -> bool:
        return self.status == ProjectStatus.LOCKED.value

    @property
    def ceo_philosophy(self):
        return self.philosophies.order_by(CeoPhilosophy.completed_at.desc()).first()

    @property
    def ceo_philosophy_status(self) -> str:
        if self.is_locked:
            return PhilosophyStatus.LOCKED.value
        if self.philosophies.filter(CeoPhilosophy.completed_at.isnot(None)).first():
            return PhilosophyStatus.COMPLETED.value
        if self.philosophies.first():
            return PhilosophyStatus.IN_PROGRESS.value
        return PhilosophyStatus.NOT_STARTED.value

    def to_dict(self):
        return {
            "id": self.id,
            "company_id": self.company_id,
            "company_name": self.company.name if self.company else None,
            "status": self.status,
            "step_statuses": dict(self.step_statuses or {}),
            "ceo_philosophy_status": self.ceo_philosophy_status,
            "locked_at": isoformat(self.locked_at),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<HrProject {self.id}: company={self.company_id} {self.status}>"


class CeoPhilosophy(db.Model):
    __tablename__ = "ceo_philosophies"

    id = db.Column(db.Integer, primary_key=True)
    hr_project_id = db.Column(
        db.Integer, db.ForeignKey("hr_projects.id", ondelete="CASCADE"), nullable=False,
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    management_philosophy_responses = db.Column(db.JSON)
    vision_mission_responses = db.Column(db.JSON)
    growth_stage = db.Column(db.String(100))
    leadership_responses = db.Column(db.JSON)
    general_responses = db.Column(db.JSON)
    organizational_issues = db.Column(db.JSON)
    concerns = db.Column(db.Text)
    completed_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("hr_project_id", "user_id", name="uq_ceo_philosophy_project_user"),
    )

    project = db.relationship("HrProject", back_populates="philosophies")
    user = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "hr_project_id": self.hr_project_id,
            "user_id": self.user_id,
            "management_philosophy": self.management_philosophy_responses or {},
            "vision_mission": self.vision_mission_responses or {},
            "growth_stage": self.growth_stage,
            "leadership": self.leadership_responses or {},
            "general": self.general_responses or {},
            "organizational_issues": self.organizational_issues or [],
            "concerns": self.concerns,
            "completed_at": isoformat(self.completed_at),
        }

    def __repr__(self):
        return f"<CeoPhilosophy {self.id}: project={self.hr_project_id}>"
