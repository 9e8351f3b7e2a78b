"""
HR Path-Finder
KPI review domain model.

Models:
    - OrganizationalKpi: a KPI proposed for one organisation unit of a project
    - KpiEditHistory: append-only record of reviewer edits to a KPI
    - KpiReviewToken: expiring, bounded-use link for an external reviewer
"""

from datetime import datetime, timezone

from pathfinder.models import db
from pathfinder.utils.helpers import as_utc, isoformat

KPI_STATUS_DRAFT = "draft"
KPI_STATUS_PROPOSED = "proposed"
KPI_STATUS_APPROVED = "approved"

DEFAULT_MAX_USES = 3


class OrganizationalKpi(db.Model):
    __tablename__ = "organizational_kpis"

    id = db.Column(db.Integer, primary_key=True)
    hr_project_id = db.Column(
        db.Integer, db.ForeignKey("hr_projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    organization_name = db.Column(db.String(200), nullable=False, index=True)
    kpi_name = db.Column(db.String(255), nullable=False)
    purpose = db.Column(db.Text)
    category = db.Column(db.String(100))
    linked_csf = db.Column(db.String(255))
    formula = db.Column(db.Text)
    measurement_method = db.Column(db.Text)
    weight = db.Column(db.Float)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    status = db.Column(db.String(20), nullable=False, default=KPI_STATUS_DRAFT)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    history = db.relationship(
        "KpiEditHistory", back_populates="kpi", lazy="dynamic", cascade="all, delete-orphan",
    )

    EDITABLE_FIELDS = (
        "kpi_name", "purpose", "category", "linked_csf",
        "formula", "measurement_method", "weight", "is_active",
    )

    def snapshot(self) -> dict:
        return {field: getattr(self, field) for field in ("organization_name", "status", *self.EDITABLE_FIELDS)}

    def to_dict(self):
        return {
            "id": self.id,
            "hr_project_id": self.hr_project_id,
            **self.snapshot(),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<OrganizationalKpi {self.id}: {self.kpi_name}>"


class KpiEditHistory(db.Model):
    __tablename__ = "kpi_edit_history"

    id = db.Column(db.Integer, primary_key=True)
    kpi_id = db.Column(
        db.Integer, db.ForeignKey("organizational_kpis.id", ondelete="CASCADE"), nullable=False,
    )
    editor_name = db.Column(db.String(200))
    editor_email = db.Column(db.String(255))
    action = db.Column(db.String(20), nullable=False)  # created, updated
    old_values = db.Column(db.JSON)
    new_values = db.Column(db.JSON)
    change_description = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    kpi = db.relationship("OrganizationalKpi", back_populates="history")

    def to_dict(self):
        return {
            "id": self.id,
            "kpi_id": self.kpi_id,
            "editor_name": self.editor_name,
            "editor_email": self.editor_email,
            "action": self.action,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "change_description": self.change_description,
            "created_at": isoformat(self.created_at),
        }


class KpiReviewToken(db.Model):
    __tablename__ = "kpi_review_tokens"

    id = db.Column(db.Integer, primary_key=True)
    hr_project_id = db.Column(
        db.Integer, db.ForeignKey("hr_projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    organization_name = db.Column(db.String(200), nullable=False)
    token = db.Column(db.String(64), nullable=False, unique=True)
    email = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(200))
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    max_uses = db.Column(db.Integer, nullable=False, default=DEFAULT_MAX_USES)
    uses_count = db.Column(db.Integer, nullable=False, default=0)
    is_used = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    project = db.relationship("HrProject")

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return as_utc(self.expires_at) <= now

    @property
    def is_exhausted(self) -> bool:
        return self.is_used or (self.uses_count or 0) >= self.max_uses

    def is_valid(self, now: datetime | None = None) -> bool:
        return not self.is_exhausted and not self.is_expired(now)

    def claim_use(self) -> bool:
        """Spend one use with a conditional UPDATE; False if none was left.

        The row is only bumped while ``uses_count < max_uses`` holds in the
        database, so two submissions racing on the last use cannot both win
        whatever the in-memory counter says.
        """
        cls = type(self)
        count = (
            cls.query
            .filter(cls.id == self.id, cls.is_used.is_(False), cls.uses_count < cls.max_uses)
            .update({"uses_count": cls.uses_count + 1}, synchronize_session="fetch")
        )
        if count != 1:
            return False
        if self.uses_count >= self.max_uses:
            self.is_used = True
        return True

    @property
    def remaining_uses(self) -> int:
        return max(self.max_uses - (self.uses_count or 0), 0)

    def to_dict(self):
        return {
            "id": self.id,
            "hr_project_id": self.hr_project_id,
            "organization_name": self.organization_name,
            "email": self.email,
            "name": self.name,
            "expires_at": isoformat(self.expires_at),
            "max_uses": self.max_uses,
            "uses_count": self.uses_count,
            "remaining_uses": self.remaining_uses,
            "is_used": self.is_used,
        }

    def __repr__(self):
        return f"<KpiReviewToken {self.id}: {self.email} {self.uses_count}/{self.max_uses}>"
