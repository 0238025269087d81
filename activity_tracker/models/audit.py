"""
Audit trail.

Append-only rows written by the services in the same transaction as the
change they describe. Rows are never updated; ``diff`` holds
``{field: {"old": .., "new": ..}}`` for updates and a small snapshot for
creates, deletes and workflow actions.
"""

import json
from datetime import datetime, timezone

from activity_tracker.models import db

ENTITY_TYPES = frozenset({
    "activity", "comment", "task", "project", "user", "organization", "status_configuration",
})


def _utcnow():
    return datetime.now(timezone.utc)


class AuditLog(db.Model):
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_entity", "entity_type", "entity_id"),
        db.Index("idx_audit_org_ts", "organization_id", "timestamp"),
        db.Index("idx_audit_action", "action"),
    )

    id = db.Column(db.Integer, primary_key=True)
    # NULL only for events that happen before an organization exists
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"))
    entity_type = db.Column(db.String(30), nullable=False)
    # Stored as text: reorder/seed events reference a status type or org id
    entity_id = db.Column(db.String(36), nullable=False)
    action = db.Column(db.String(60), nullable=False)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), index=True)
    diff = db.Column(db.JSON, nullable=False, default=dict)
    timestamp = db.Column(db.DateTime, nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "organizationId": self.organization_id,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "action": self.action,
            "actorUserId": self.actor_user_id,
            "diff": self.diff or {},
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} {self.entity_type}/{self.entity_id}>"


def write_audit(*, entity_type, entity_id, action, organization_id, actor_user_id=None, diff=None):
    """Add one audit row and flush; the caller owns the commit."""
    if entity_type not in ENTITY_TYPES:
        raise ValueError(f"Unknown audit entity type: {entity_type}")
    log = AuditLog(
        organization_id=organization_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        actor_user_id=actor_user_id,
        # Round-trip through json so dates and other values land as strings
        diff=json.loads(json.dumps(diff or {}, default=str)),
    )
    db.session.add(log)
    db.session.flush()
    return log
