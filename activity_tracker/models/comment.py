"""
Discussion threads.

Models:
    - Comment: note on an activity. Author edits; author, ADMIN and
      PROJECT_MANAGER delete.
    - TaskComment: note on a task, with optional @mentions. Posting one is
      also recorded in the task history (audit trail).
"""

from activity_tracker.models import db
from activity_tracker.models.base import OrganizationModel, iso


def _author(user):
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


class Comment(OrganizationModel):
    __tablename__ = "comments"
    __table_args__ = (
        db.Index("ix_comments_activity", "activity_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    activity_id = db.Column(
        db.Integer, db.ForeignKey("activities.id", ondelete="CASCADE"), nullable=False,
    )
    body = db.Column(db.Text, nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))

    created_by = db.relationship("User", foreign_keys=[created_by_id])

    def to_dict(self):
        return {
            "id": self.id,
            "activityId": self.activity_id,
            "body": self.body,
            "createdById": self.created_by_id,
            "createdBy": _author(self.created_by),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Comment {self.id} on activity {self.activity_id}>"


class TaskComment(OrganizationModel):
    __tablename__ = "task_comments"
    __table_args__ = (
        db.Index("ix_task_comments_task", "task_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    body = db.Column(db.Text, nullable=False)
    # user ids
    mentions = db.Column(db.JSON, default=list)

    author = db.relationship("User", foreign_keys=[author_id])

    def to_dict(self):
        return {
            "id": self.id,
            "taskId": self.task_id,
            "body": self.body,
            "author": _author(self.author),
            "mentions": self.mentions or [],
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
