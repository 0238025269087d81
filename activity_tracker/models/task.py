"""
Task model.

Tasks are either assigned by a PM/Admin or self-created by a member.
Starting a task spawns the Activity that tracks the actual work.
"""

from activity_tracker.models import db
from activity_tracker.models.base import OrganizationModel, iso

TASK_PRIORITIES = ("Low", "Medium", "High", "Urgent")
DEFAULT_TASK_STATUS = "to_do"

# Task priority → activity priority when a task spawns its activity
TASK_TO_ACTIVITY_PRIORITY = {
    "Low": "low",
    "Medium": "medium",
    "High": "high",
    "Urgent": "high",
}


class Task(OrganizationModel):
    __tablename__ = "tasks"
    __table_args__ = (
        db.Index("ix_tasks_org_status", "organization_id", "status"),
        db.Index("ix_tasks_assignee", "assignee_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    status = db.Column(db.String(50), nullable=False, default=DEFAULT_TASK_STATUS)
    priority = db.Column(db.String(10), nullable=False, default="Medium")
    due_date = db.Column(db.Date)

    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    assignee_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))

    project = db.relationship("Project", foreign_keys=[project_id])
    assignee = db.relationship("User", foreign_keys=[assignee_id])

    def to_dict(self, activity_id=None):
        d = {
            "id": self.id,
            "organizationId": self.organization_id,
            "projectId": self.project_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "dueDate": iso(self.due_date),
            "assigneeId": self.assignee_id,
            "assignee": self.assignee.to_summary() if self.assignee else None,
            "createdById": self.created_by_id,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if activity_id is not None:
            d["activityId"] = activity_id
        return d
