"""
Rate limiting configuration.

The Limiter instance is created in activity_tracker/__init__.py with no
default limits; this module applies per-endpoint limits to the
credential endpoints (brute-force protection), keyed by client IP.

Usage:
    from activity_tracker.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

# Endpoints (blueprint.view) limited by AUTH_RATE_LIMIT
RATE_LIMITED_ENDPOINTS = (
    "auth_bp.login",
    "auth_bp.register",
    "auth_bp.create_organization",
    "auth_bp.change_password",
)


def init_rate_limits(app, limiter):
    """
    Apply rate limits to the credential endpoints.

    Must be called after blueprints are registered so view functions exist.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    auth_limit = app.config.get("AUTH_RATE_LIMIT", "10/minute")
    for endpoint in RATE_LIMITED_ENDPOINTS:
        view = app.view_functions.get(endpoint)
        if view is None:
            logger.warning("Rate limit target %s not registered", endpoint)
            continue
        app.view_functions[endpoint] = limiter.limit(auth_limit)(view)

    # Health checks are exempt
    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    logger.debug("Rate limits applied: %s on %s", auth_limit, ", ".join(RATE_LIMITED_ENDPOINTS))
