"""
Capability table tests — role, ownership and state conditions.
"""

import pytest

from activity_tracker.core.exceptions import PermissionDenied
from activity_tracker.models.auth import User
from activity_tracker.services.permission import (
    POLICY,
    check_permission,
    get_role_actions,
    has_permission,
)


def _user(role, user_id=1, active=True):
    return User(id=user_id, email=f"{role.lower()}@example.com", name=role, role=role, is_active=active)


@pytest.mark.parametrize("role,action,expected", [
    ("ADMIN", "status_config.manage", True),
    ("PMO", "status_config.manage", False),
    ("PMO", "status_config.usage_stats", True),
    ("PROJECT_MANAGER", "status_config.usage_stats", False),
    ("PROJECT_MANAGER", "activity.approve", True),
    ("PMO", "activity.approve", False),
    ("MEMBER", "activity.approve", False),
    ("MEMBER", "approvals.view_pending", False),
    ("PMO", "approvals.view_pending", True),
    ("PROJECT_MANAGER", "audit.view", False),
    ("PMO", "audit.view", True),
    ("PMO", "reports.view", True),
    ("MEMBER", "reports.view", False),
    ("PROJECT_MANAGER", "comments.delete", True),
    ("PMO", "comments.delete", False),
])
def test_role_rules(role, action, expected):
    assert has_permission(_user(role), action) is expected


def test_owner_rule():
    member = _user("MEMBER", user_id=5)
    assert has_permission(member, "activity.submit", owner_id=5)
    assert not has_permission(member, "activity.submit", owner_id=6)
    assert not has_permission(member, "activity.submit")


def test_state_rule():
    member = _user("MEMBER", user_id=5)
    assert has_permission(member, "activity.update", owner_id=5, state="draft")
    assert not has_permission(member, "activity.update", owner_id=5, state="submitted")
    assert has_permission(_user("PROJECT_MANAGER"), "activity.update", state="submitted")


def test_inactive_user_denied_everything():
    admin = _user("ADMIN", active=False)
    assert not any(has_permission(admin, action) for action in POLICY)


def test_unknown_action_denied():
    assert not has_permission(_user("ADMIN"), "launch.missiles")


def test_check_permission_raises():
    with pytest.raises(PermissionDenied):
        check_permission(_user("MEMBER"), "users.deactivate")


def test_role_actions_exclude_conditional_rules():
    actions = get_role_actions("MEMBER")
    assert "activity.update" not in actions
    assert "tasks.start" not in actions
    assert "status_config.manage" not in actions
    assert "status_config.manage" in get_role_actions("ADMIN")
