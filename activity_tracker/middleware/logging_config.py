"""
Logging setup.

One stderr handler on the root logger. Production writes one JSON object
per line; development and tests get a short readable line. A filter
stamps every record emitted inside a request with the request id and the
resolved user / organization, so service logs can be joined with the
access log written by ``timing.py``.

LOG_LEVEL overrides the level (default INFO in production, DEBUG otherwise).
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

CONTEXT_FIELDS = ("request_id", "user_id", "organization_id")
ACCESS_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr")

_QUIET_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine", "alembic.runtime.migration")


class RequestContextFilter(logging.Filter):
    """Copy request id, user id and organization id from ``g`` onto records."""

    def filter(self, record):
        if has_request_context():
            user = getattr(g, "current_user", None)
            defaults = {
                "request_id": getattr(g, "request_id", None),
                "user_id": getattr(user, "id", None),
                "organization_id": getattr(g, "organization_id", None),
            }
            for key, value in defaults.items():
                if getattr(record, key, None) is None:
                    setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS + ACCESS_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``12:00:01 INFO     activity_tracker.services.task_service: ... [org=3 user=7 abc123]``"""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, color=True):
        super().__init__()
        self.color = color

    def format(self, record):
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:<8}"
        if self.color:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"

        ctx = []
        if getattr(record, "organization_id", None) is not None:
            ctx.append(f"org={record.organization_id}")
        if getattr(record, "user_id", None) is not None:
            ctx.append(f"user={record.user_id}")
        if getattr(record, "request_id", None):
            ctx.append(record.request_id)
        suffix = f" [{' '.join(ctx)}]" if ctx else ""

        line = f"{ts} {level} {record.name}: {record.getMessage()}{suffix}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install the handler, filter and level for ``app``'s environment."""
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if production else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if production else ReadableFormatter(color=sys.stderr.isatty()))
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    # create_app runs once per test session and per CLI call; never stack handlers
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging configured (level=%s, %s)", level_name, "json" if production else "readable")
