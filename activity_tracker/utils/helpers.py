"""Shared request/parsing helpers used across blueprints and services.

json_body:           request body as a dict; 400 for any other JSON value
parse_date:          returns None on empty input, raises ValidationError on garbage
parse_int:           optional integer from query/body values
optional_text:       stripped string or None; 400 for non-string values
require_fields:      400 for missing required body fields or non-string values
db_commit_or_raise:  commit, translating IntegrityError into ConflictError
"""
import logging
from datetime import date, datetime

from flask import request
from sqlalchemy.exc import IntegrityError

from activity_tracker.core.exceptions import ConflictError, ValidationError
from activity_tracker.models import db

logger = logging.getLogger(__name__)


def json_body() -> dict:
    """The JSON request body; an absent or unparsable body is ``{}``."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", details={"body": "invalid"})
    return data


def parse_date(value, field: str = "date"):
    """Parse an ISO date / datetime string to a ``date``.

    Supports:
    - YYYY-MM-DD
    - YYYY-MM-DDTHH:MM:SS(.fff)(Z) (→ .date())
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise ValidationError(
            f"{field} must be an ISO date (YYYY-MM-DD)", details={field: "invalid date"}
        ) from exc


def parse_int(value, field: str = "id"):
    """Optional integer; raises ValidationError on non-numeric input."""
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer", details={field: "not an integer"}) from exc


def optional_text(value, field: str):
    """Stripped string, or None when absent."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", details={field: "invalid"})
    return value.strip()


def require_fields(data: dict, *fields: str) -> None:
    """Raise ValidationError naming every missing/blank or non-string field."""
    missing = [
        f for f in fields
        if data.get(f) is None or (isinstance(data.get(f), str) and not data.get(f).strip())
    ]
    if missing:
        raise ValidationError(
            f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required",
            details={f: "required" for f in missing},
        )
    invalid = [f for f in fields if not isinstance(data[f], str)]
    if invalid:
        raise ValidationError(
            f"{', '.join(invalid)} must be {'a string' if len(invalid) == 1 else 'strings'}",
            details={f: "invalid" for f in invalid},
        )


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_raise(resource: str = "Record", field: str = "unique key", value=None):
    """Commit the current session; IntegrityError → ConflictError (409).

    Other database errors propagate to the app-level 500 handler, which
    rolls the session back.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        raise ConflictError(resource, field, value) from exc
