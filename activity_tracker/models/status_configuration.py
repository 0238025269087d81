"""
Status configuration registry model.

Organization-scoped catalog of named statuses for activities, tasks and
approvals. The frontend resolves labels and colours from here instead of
hard-coding them; ``workflow_rules`` optionally restricts transitions.

workflow_rules shape::

    {
        "allowedTransitions": ["in_progress", "done"],   # targets reachable from this status
        "requiredRole": ["ADMIN", "PROJECT_MANAGER"],      # roles allowed to move INTO this status
        "autoTransitions": [{"when": "all_tasks_done", "to": "done"}]
    }
"""

from activity_tracker.models import db
from activity_tracker.models.base import OrganizationModel, iso

STATUS_TYPES = ("activity", "task", "approval")
DEFAULT_COLOR = "#6B7280"

DEFAULT_STATUSES = {
    "activity": [
        {"name": "to_do", "displayName": "To Do", "color": "#6B7280"},
        {"name": "in_progress", "displayName": "In Progress", "color": "#3B82F6"},
        {"name": "in_review", "displayName": "In Review", "color": "#F59E0B"},
        {"name": "done", "displayName": "Done", "color": "#10B981"},
    ],
    "task": [
        {"name": "to_do", "displayName": "To Do", "color": "#6B7280"},
        {"name": "in_progress", "displayName": "Working on it", "color": "#3B82F6"},
        {"name": "stuck", "displayName": "Stuck", "color": "#EF4444"},
        {"name": "done", "displayName": "Done", "color": "#10B981"},
    ],
    "approval": [
        {"name": "draft", "displayName": "Draft", "color": "#6B7280"},
        {"name": "submitted", "displayName": "Submitted", "color": "#F59E0B"},
        {"name": "approved", "displayName": "Approved", "color": "#10B981"},
        {"name": "rejected", "displayName": "Rejected", "color": "#EF4444"},
        {"name": "closed", "displayName": "Closed", "color": "#374151"},
    ],
}


class StatusConfiguration(OrganizationModel):
    __tablename__ = "status_configurations"
    __table_args__ = (
        db.UniqueConstraint("organization_id", "type", "name", name="uq_status_config_org_type_name"),
        db.Index("ix_status_config_org_type_order", "organization_id", "type", "sort_order"),
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(20), nullable=False)
    name = db.Column(db.String(50), nullable=False)
    display_name = db.Column(db.String(100), nullable=False)
    color = db.Column(db.String(7), nullable=False, default=DEFAULT_COLOR)
    # "order" is reserved in SQL; exposed as "order" in JSON
    sort_order = db.Column("sort_order", db.Integer, nullable=False, default=0)
    description = db.Column(db.Text)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    workflow_rules = db.Column(db.JSON)

    @property
    def allowed_transitions(self):
        return list((self.workflow_rules or {}).get("allowedTransitions") or [])

    @property
    def required_roles(self):
        roles = (self.workflow_rules or {}).get("requiredRole") or []
        return [roles] if isinstance(roles, str) else list(roles)

    def to_dict(self):
        return {
            "id": self.id,
            "organizationId": self.organization_id,
            "type": self.type,
            "name": self.name,
            "displayName": self.display_name,
            "color": self.color,
            "order": self.sort_order,
            "description": self.description,
            "isDefault": self.is_default,
            "isActive": self.is_active,
            "workflowRules": self.workflow_rules,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
