"""
Auth Models — organizations (tenants) and users.

A user belongs to at most one organization; ``organization_id`` stays NULL
between self-registration and the create-organization / invite step.
Users are never hard-deleted, only deactivated via ``is_active``.
"""

from activity_tracker.models import db
from activity_tracker.models.base import TimestampMixin, iso

ROLE_ADMIN = "ADMIN"
ROLE_PMO = "PMO"
ROLE_PROJECT_MANAGER = "PROJECT_MANAGER"
ROLE_MEMBER = "MEMBER"

ROLES = (ROLE_ADMIN, ROLE_PMO, ROLE_PROJECT_MANAGER, ROLE_MEMBER)

DEFAULT_ORGANIZATION_SETTINGS = {
    "branding": {"logoPosition": "left", "primaryColor": "#3B82F6"},
    "workingHours": {"start": "09:00", "end": "17:00", "days": [1, 2, 3, 4, 5]},
    "registration": {"allowSelfRegistration": False, "defaultRole": ROLE_MEMBER},
}


# ═══════════════════════════════════════════════════════════════
# 1. ORGANIZATIONS
# ═══════════════════════════════════════════════════════════════
class Organization(TimestampMixin, db.Model):
    __tablename__ = "organizations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    industry = db.Column(db.String(100))
    timezone = db.Column(db.String(64), default="UTC")
    logo_url = db.Column(db.String(500))
    created_by = db.Column(db.Integer, nullable=True)  # users.id of the bootstrap admin
    settings = db.Column(db.JSON, default=dict)

    users = db.relationship(
        "User", back_populates="organization", lazy="dynamic",
        foreign_keys="User.organization_id",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "industry": self.industry,
            "timezone": self.timezone,
            "logoUrl": self.logo_url,
            "createdBy": self.created_by,
            "settings": self.settings or {},
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


# ═══════════════════════════════════════════════════════════════
# 2. USERS
# ═══════════════════════════════════════════════════════════════
class User(TimestampMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(30), nullable=False, default=ROLE_MEMBER)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True,
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    preferences = db.Column(db.JSON, default=dict)
    last_login_at = db.Column(db.DateTime)

    __table_args__ = (
        db.Index("ix_users_organization_id", "organization_id"),
        db.Index("ix_users_org_role", "organization_id", "role"),
    )

    organization = db.relationship(
        "Organization", back_populates="users", foreign_keys=[organization_id],
    )

    def to_dict(self, include_preferences=False):
        d = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "organizationId": self.organization_id,
            "isActive": self.is_active,
            "lastLoginAt": iso(self.last_login_at),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if include_preferences:
            d["preferences"] = self.preferences or {}
        return d

    def to_summary(self):
        """Compact shape used by organization user listings."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "created_at": iso(self.created_at),
        }
