"""
HR Path-Finder
Identity & company models.

Models:
    - User: platform account; roles are a small fixed set stored on the row
    - Company: the organisation whose HR system is being designed
    - CompanyMember: user ↔ company link carrying the member's role
    - CeoRoleRequest: user asks an admin for the CEO role on a company
    - PasswordResetOtp: 6-digit, 10-minute, single-use reset code
"""

from datetime import datetime, timezone

from pathfinder.models import db
from pathfinder.utils.helpers import as_utc, isoformat

ROLE_HR_MANAGER = "hr_manager"
ROLE_CEO = "ceo"
ROLE_CONSULTANT = "consultant"
ROLE_ADMIN = "admin"
VALID_ROLES = {ROLE_HR_MANAGER, ROLE_CEO, ROLE_CONSULTANT, ROLE_ADMIN}

CEO_REQUEST_PENDING = "pending"
CEO_REQUEST_APPROVED = "approved"
CEO_REQUEST_REJECTED = "rejected"


# ═══════════════════════════════════════════════════════════════
# 1. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(200), nullable=False)
    password_hash = db.Column(db.String(256))
    roles = db.Column(db.JSON, nullable=False, default=list)
    email_verified_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    memberships = db.relationship(
        "CompanyMember", back_populates="user", lazy="dynamic", cascade="all, delete-orphan",
    )

    def has_role(self, role: str) -> bool:
        return role in (self.roles or [])

    def assign_role(self, role: str) -> None:
        # JSON columns only track reassignment
        if not self.has_role(role):
            self.roles = [*(self.roles or []), role]

    @property
    def companies(self):
        return [m.company for m in self.memberships]

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "roles": list(self.roles or []),
            "email_verified_at": isoformat(self.email_verified_at),
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email}>"


# ═══════════════════════════════════════════════════════════════
# 2. COMPANIES
# ═══════════════════════════════════════════════════════════════
class Company(db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    logo_path = db.Column(db.String(500))
    industry_category_id = db.Column(
        db.Integer, db.ForeignKey("industry_categories.id", ondelete="SET NULL"), nullable=True,
    )
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    members = db.relationship(
        "CompanyMember", back_populates="company", lazy="dynamic", cascade="all, delete-orphan",
    )
    projects = db.relationship(
        "HrProject", back_populates="company", lazy="dynamic", cascade="all, delete-orphan",
    )

    def users_with_role(self, role: str) -> list[User]:
        return [m.user for m in self.members.filter_by(role=role).all()]

    def is_member(self, user: User, role: str | None = None) -> bool:
        q = self.members.filter_by(user_id=user.id)
        if role:
            q = q.filter_by(role=role)
        return q.first() is not None

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "logo_path": self.logo_path,
            "industry_category_id": self.industry_category_id,
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Company {self.id}: {self.name}>"


class CompanyMember(db.Model):
    __tablename__ = "company_users"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False,
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = db.Column(db.String(30), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("company_id", "user_id", "role", name="uq_company_user_role"),
    )

    company = db.relationship("Company", back_populates="members")
    user = db.relationship("User", back_populates="memberships")

    def __repr__(self):
        return f"<CompanyMember company={self.company_id} user={self.user_id} role={self.role}>"


# ═══════════════════════════════════════════════════════════════
# 3. CEO ROLE REQUESTS
# ═══════════════════════════════════════════════════════════════
class CeoRoleRequest(db.Model):
    __tablename__ = "ceo_role_requests"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False,
    )
    status = db.Column(db.String(20), nullable=False, default=CEO_REQUEST_PENDING)
    requested_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    reviewed_at = db.Column(db.DateTime(timezone=True))
    reviewed_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    rejection_reason = db.Column(db.Text)

    user = db.relationship("User", foreign_keys=[user_id])
    reviewer = db.relationship("User", foreign_keys=[reviewed_by])
    company = db.relationship("Company")

    @property
    def is_pending(self) -> bool:
        return self.status == CEO_REQUEST_PENDING

    def to_dict(self):
        return {
            "id": self.id,
            "user": self.user.to_dict() if self.user else None,
            "company": self.company.to_dict() if self.company else None,
            "status": self.status,
            "requested_at": isoformat(self.requested_at),
            "reviewed_at": isoformat(self.reviewed_at),
            "reviewed_by": self.reviewed_by,
            "rejection_reason": self.rejection_reason,
        }

    def __repr__(self):
        return f"<CeoRoleRequest {self.id}: user={self.user_id} {self.status}>"


# ═══════════════════════════════════════════════════════════════
# 4. PASSWORD RESET OTP
# ═══════════════════════════════════════════════════════════════
class PasswordResetOtp(db.Model):
    __tablename__ = "password_reset_otps"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    otp_hash = db.Column(db.String(256), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    used = db.Column(db.Boolean, nullable=False, default=False)
    ip_address = db.Column(db.String(45))
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return as_utc(self.expires_at) <= now

    def is_valid(self, now: datetime | None = None) -> bool:
        return not self.used and not self.is_expired(now)

    def __repr__(self):
        return f"<PasswordResetOtp {self.id}: {self.email} used={self.used}>"
