"""
Process entry point.

    activity-tracker            # console script
    python -m activity_tracker

Verifies the database before serving: a failed round trip exits with
status 1. SIGTERM disposes the connection pool and exits with status 0.
"""

import logging
import signal
import sys

from sqlalchemy.exc import SQLAlchemyError

from activity_tracker import create_app
from activity_tracker.models import db

logger = logging.getLogger(__name__)


def _verify_database(app) -> bool:
    with app.app_context():
        try:
            db.session.execute(db.text("SELECT 1"))
            db.create_all()
        except SQLAlchemyError as exc:
            logger.error("Database connection failed: %s", exc)
            return False
    logger.info("Database connection established")
    return True


def main():
    app = create_app()

    if not _verify_database(app):
        sys.exit(1)

    def _shutdown(signum, frame):
        logger.info("SIGTERM received, shutting down")
        with app.app_context():
            db.engine.dispose()
        sys.exit(0)

    signal.signal(signal.SIGTERM, _shutdown)

    port = app.config["PORT"]
    logger.info("Activity tracker listening on port %s", port)
    app.run(host="0.0.0.0", port=port, debug=app.config.get("DEBUG", False), use_reloader=False)


if __name__ == "__main__":
    main()
