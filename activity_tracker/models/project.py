"""
Project model — organization-scoped container for activities and tasks.

Membership is a plain association table; a MEMBER only sees projects
they belong to.
"""

from activity_tracker.models import db
from activity_tracker.models.base import OrganizationModel, iso, utcnow

PROJECT_STATUSES = ("active", "on_hold", "completed", "archived")

project_members = db.Table(
    "project_members",
    db.Column("project_id", db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    db.Column("added_at", db.DateTime, default=utcnow),
)


class Project(OrganizationModel):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default="active")
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))

    __table_args__ = (
        db.UniqueConstraint("organization_id", "name", name="uq_project_org_name"),
    )

    members = db.relationship("User", secondary=project_members, lazy="selectin")

    def has_member(self, user_id):
        return any(m.id == user_id for m in self.members)

    def to_dict(self, include_members=False):
        d = {
            "id": self.id,
            "organizationId": self.organization_id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "createdById": self.created_by_id,
            "memberCount": len(self.members),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if include_members:
            d["members"] = [m.to_summary() for m in self.members]
        return d
