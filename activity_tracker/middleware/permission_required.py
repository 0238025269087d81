"""
Permission Decorators — role checks against the central policy table.

Usage:
    @bp.route("/status-configuration", methods=["POST"])
    @require_permission("status_config.manage")
    def create_status():
        ...

Only role-level rules are evaluated here. Rules that depend on who owns
the resource or its current state are checked by the services after the
resource is loaded.
"""

import functools
import logging

from flask import g

from activity_tracker.core.exceptions import PermissionDenied
from activity_tracker.services.permission import has_permission

logger = logging.getLogger(__name__)


def require_permission(action: str):
    """
    Decorator: require the authenticated user to hold ``action`` by role.

    Args:
        action: Policy key, e.g. "status_config.manage"
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if not has_permission(user, action):
                logger.warning(
                    "User %s (role=%s) denied '%s' on %s",
                    getattr(user, "id", None), getattr(user, "role", None), action, f.__name__,
                )
                raise PermissionDenied(getattr(user, "id", None), action)
            return f(*args, **kwargs)
        return decorated
    return decorator
