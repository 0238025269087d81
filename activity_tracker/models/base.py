"""
OrganizationModel — Abstract base class for organization-scoped models.

All tenant data inherits from OrganizationModel instead of db.Model directly.
This adds:
  - organization_id FK column with index
  - query_for_org(organization_id) classmethod
  - get_for_org(organization_id, pk) scoped primary-key lookup
  - created_at / updated_at timestamps
"""

from datetime import datetime, timezone

from activity_tracker.models import db


def utcnow():
    return datetime.now(timezone.utc)


def iso(value):
    """ISO-8601 string or None (dates and datetimes)."""
    return value.isoformat() if value else None


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class OrganizationModel(TimestampMixin, db.Model):
    """Abstract base for organization-scoped tables."""
    __abstract__ = True

    organization_id = db.Column(
        db.Integer,
        db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    @classmethod
    def query_for_org(cls, organization_id):
        """Return a query filtered by organization_id."""
        return cls.query.filter_by(organization_id=organization_id)

    @classmethod
    def get_for_org(cls, organization_id, pk):
        """Primary-key lookup that returns None for rows of other organizations."""
        return cls.query.filter_by(organization_id=organization_id, id=pk).first()
