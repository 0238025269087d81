"""
Role-Based Access Control — central capability table.

Every authorization decision goes through POLICY: for an action, a user is
allowed when ANY of its rules matches. A rule matches when

  - the user's role is in ``roles``, and
  - if ``owner`` is set, the user is the resource owner (creator, assignee,
    or the user record itself), and
  - if ``states`` is set, the resource is currently in one of those states.

Role-only rules can guard whole endpoints (``require_permission``);
rules with ownership/state conditions are evaluated by services once the
resource is loaded.

Usage:
    from activity_tracker.services.permission import check_permission

    # Raises PermissionDenied if not allowed
    check_permission(user, "activity.delete", owner_id=act.created_by_id, state=act.approval_state)

    # Boolean check
    if has_permission(user, "activity.view_all"):
        ...
"""

import logging

from activity_tracker.core.exceptions import PermissionDenied
from activity_tracker.models.auth import (
    ROLE_ADMIN,
    ROLE_MEMBER,
    ROLE_PMO,
    ROLE_PROJECT_MANAGER,
    ROLES,
)

logger = logging.getLogger(__name__)

ALL = frozenset(ROLES)
MANAGERS = frozenset({ROLE_ADMIN, ROLE_PROJECT_MANAGER})
OVERSIGHT = frozenset({ROLE_ADMIN, ROLE_PMO, ROLE_PROJECT_MANAGER})
ADMIN_ONLY = frozenset({ROLE_ADMIN})


def _rule(roles, *, owner=False, states=None):
    return {
        "roles": frozenset(roles),
        "owner": owner,
        "states": frozenset(states) if states else None,
    }


POLICY: dict[str, list[dict]] = {
    # ── Organization & users ──
    "organization.update": [_rule(ADMIN_ONLY)],
    "users.list": [_rule(OVERSIGHT)],
    "users.create": [_rule(MANAGERS)],
    "users.view": [_rule(OVERSIGHT), _rule(ALL, owner=True)],
    "users.change_role": [_rule(ADMIN_ONLY)],
    "users.deactivate": [_rule(ADMIN_ONLY)],

    # ── Projects ──
    "projects.view_all": [_rule(OVERSIGHT)],
    "projects.create": [_rule(MANAGERS)],
    "projects.manage_members": [_rule(MANAGERS)],

    # ── Activities ──
    "activity.view_all": [_rule(OVERSIGHT)],
    "activity.create_any_project": [_rule(OVERSIGHT)],
    "activity.update": [_rule(MANAGERS), _rule(ALL, owner=True, states={"draft"})],
    "activity.delete": [_rule(ADMIN_ONLY), _rule(ALL, owner=True, states={"draft"})],
    "activity.submit": [_rule(ALL - {ROLE_MEMBER}), _rule({ROLE_MEMBER}, owner=True)],
    "activity.approve": [_rule(MANAGERS)],
    "activity.reject": [_rule(MANAGERS)],
    "activity.close": [_rule(MANAGERS)],
    "approvals.view_pending": [_rule(OVERSIGHT)],

    # ── Tasks ──
    "tasks.assign": [_rule(MANAGERS)],
    "tasks.view_all": [_rule(OVERSIGHT)],
    "tasks.start": [_rule(ALL, owner=True)],
    "tasks.update_status": [_rule(MANAGERS), _rule(ALL, owner=True)],

    # ── Comments ──
    "comments.update": [_rule(ALL, owner=True)],
    "comments.delete": [_rule(MANAGERS), _rule(ALL, owner=True)],

    # ── Reports ──
    "reports.view": [_rule(OVERSIGHT)],

    # ── Status configuration registry ──
    "status_config.view_all": [_rule(OVERSIGHT)],
    "status_config.manage": [_rule(ADMIN_ONLY)],
    "status_config.usage_stats": [_rule({ROLE_ADMIN, ROLE_PMO})],

    # ── Audit ──
    "audit.view": [_rule({ROLE_ADMIN, ROLE_PMO})],
}


def _rule_matches(rule: dict, user, owner_id, state) -> bool:
    if user.role not in rule["roles"]:
        return False
    if rule["owner"] and (owner_id is None or owner_id != user.id):
        return False
    if rule["states"] is not None and state not in rule["states"]:
        return False
    return True


def has_permission(user, action: str, *, owner_id: int | None = None, state: str | None = None) -> bool:
    """
    Check whether ``user`` may perform ``action``.

    Args:
        user: User instance (role and id are read from it).
        action: Key of POLICY, e.g. 'activity.approve'.
        owner_id: User id that owns the resource, for ownership rules.
        state: Current resource state, for state-conditioned rules.

    Unknown actions are denied.
    """
    if user is None or not getattr(user, "is_active", False):
        return False
    rules = POLICY.get(action)
    if not rules:
        return False
    return any(_rule_matches(r, user, owner_id, state) for r in rules)


def check_permission(user, action: str, *, owner_id: int | None = None, state: str | None = None) -> None:
    """Assert permission; raise PermissionDenied (HTTP 403) if not allowed."""
    if not has_permission(user, action, owner_id=owner_id, state=state):
        user_id = getattr(user, "id", None)
        logger.warning(
            "User %s (role=%s) denied '%s' owner=%s state=%s",
            user_id, getattr(user, "role", None), action, owner_id, state,
        )
        raise PermissionDenied(user_id, action)


def get_role_actions(role: str) -> set[str]:
    """Actions a role can perform unconditionally (used by /auth/profile)."""
    return {
        action for action, rules in POLICY.items()
        if any(role in r["roles"] and not r["owner"] and r["states"] is None for r in rules)
    }
