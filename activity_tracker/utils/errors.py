"""JSON error bodies shared by every error handler.

Body shape::

    {"error": "<message>", "code": "ERR_...", "details": {...}}   # details only when present

Usage:
    from activity_tracker.utils.errors import E, api_error

    return api_error(E.NOT_FOUND, "Activity not found")
"""

from flask import jsonify


class E:
    """Error codes; the HTTP status follows from the code (see STATUS_BY_CODE)."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    INTERNAL = "ERR_INTERNAL"


STATUS_BY_CODE = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.INTERNAL: 500,
}


def api_error(code, message, *, details=None, status=None):
    """``(response, status)`` tuple for a Flask view or error handler."""
    body = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_BY_CODE.get(code, 400)
