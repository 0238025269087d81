"""
Activity domain models.

Models:
    - Activity: unit of tracked work with an execution ``status`` (driven by
      the status configuration registry) and an ``approval_state`` that only
      moves through APPROVAL_TRANSITIONS.
    - ActivityApproval: append-only record of every approval decision.
"""

from activity_tracker.models import db
from activity_tracker.models.base import OrganizationModel, iso, utcnow

# ── Approval workflow ────────────────────────────────────────────────────────

APPROVAL_DRAFT = "draft"
APPROVAL_SUBMITTED = "submitted"
APPROVAL_APPROVED = "approved"
APPROVAL_REJECTED = "rejected"
APPROVAL_CLOSED = "closed"

APPROVAL_STATES = (
    APPROVAL_DRAFT,
    APPROVAL_SUBMITTED,
    APPROVAL_APPROVED,
    APPROVAL_REJECTED,
    APPROVAL_CLOSED,
)

APPROVAL_TRANSITIONS = {
    "submit": {"from": [APPROVAL_DRAFT], "to": APPROVAL_SUBMITTED},
    "approve": {"from": [APPROVAL_SUBMITTED], "to": APPROVAL_APPROVED},
    "reject": {"from": [APPROVAL_SUBMITTED], "to": APPROVAL_REJECTED},
    "close": {"from": [APPROVAL_APPROVED], "to": APPROVAL_CLOSED},
}

ACTIVITY_PRIORITIES = ("low", "medium", "high")
DEFAULT_ACTIVITY_STATUS = "to_do"


activity_assignees = db.Table(
    "activity_assignees",
    db.Column("activity_id", db.Integer, db.ForeignKey("activities.id", ondelete="CASCADE"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Activity(OrganizationModel):
    __tablename__ = "activities"
    __table_args__ = (
        db.Index("ix_activities_org_approval", "organization_id", "approval_state"),
        db.Index("ix_activities_org_status", "organization_id", "status"),
        db.Index("ix_activities_created_by", "created_by_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    ticket_number = db.Column(db.String(40), unique=True, nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    status = db.Column(db.String(50), nullable=False, default=DEFAULT_ACTIVITY_STATUS)
    approval_state = db.Column(db.String(20), nullable=False, default=APPROVAL_DRAFT)
    priority = db.Column(db.String(10), nullable=False, default="medium")
    tags = db.Column(db.JSON, default=list)
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)

    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    task_id = db.Column(db.Integer, db.ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    updated_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    approved_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    approved_at = db.Column(db.DateTime)
    approval_comment = db.Column(db.Text)

    # Bumped on every approval transition; transitions update WHERE approval_state matches
    version = db.Column(db.Integer, nullable=False, default=1)

    assignees = db.relationship("User", secondary=activity_assignees, lazy="selectin")
    project = db.relationship("Project", foreign_keys=[project_id])
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    approvals = db.relationship(
        "ActivityApproval", back_populates="activity", lazy="dynamic",
        cascade="all, delete-orphan", order_by="ActivityApproval.id",
    )

    def is_assigned(self, user_id):
        return any(u.id == user_id for u in self.assignees)

    def to_dict(self):
        return {
            "id": self.id,
            "ticketNumber": self.ticket_number,
            "organizationId": self.organization_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "approvalState": self.approval_state,
            "priority": self.priority,
            "tags": self.tags or [],
            "startDate": iso(self.start_date),
            "endDate": iso(self.end_date),
            "projectId": self.project_id,
            "taskId": self.task_id,
            "createdById": self.created_by_id,
            "updatedById": self.updated_by_id,
            "approvedById": self.approved_by_id,
            "approvedAt": iso(self.approved_at),
            "approvalComment": self.approval_comment,
            "assignees": [u.to_summary() for u in self.assignees],
            "version": self.version,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class ActivityApproval(db.Model):
    """Immutable approval decision: one row per submit/approve/reject/close."""

    __tablename__ = "activity_approvals"
    __table_args__ = (
        db.Index("ix_activity_approvals_activity", "activity_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    activity_id = db.Column(
        db.Integer, db.ForeignKey("activities.id", ondelete="CASCADE"), nullable=False,
    )
    action = db.Column(db.String(20), nullable=False)
    from_state = db.Column(db.String(20), nullable=False)
    to_state = db.Column(db.String(20), nullable=False)
    actor_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    comment = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)

    activity = db.relationship("Activity", back_populates="approvals")

    def to_dict(self):
        return {
            "id": self.id,
            "activityId": self.activity_id,
            "action": self.action,
            "fromState": self.from_state,
            "toState": self.to_state,
            "actorId": self.actor_id,
            "comment": self.comment,
            "createdAt": iso(self.created_at),
        }
