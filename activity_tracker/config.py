"""
Activity Tracker
Configuration classes for Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV") or os.getenv("NODE_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import re
import secrets
from urllib.parse import quote_plus

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Default SQLite path for local dev when MySQL is not configured
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'activity_tracker_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)

_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value, default: int = 86400) -> int:
    """Convert ``"24h"`` / ``"30m"`` / ``"3600"`` style values to seconds."""
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    match = re.fullmatch(r"\s*(\d+)\s*([smhd]?)\s*", str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS.get(unit or "s", 1)


def _database_uri(fallback: str | None) -> str | None:
    """DATABASE_URL wins; otherwise build a MySQL URI from DB_* variables."""
    raw = os.getenv("DATABASE_URL", "")
    if raw:
        return raw
    host = os.getenv("DB_HOST")
    if not host:
        return fallback
    user = quote_plus(os.getenv("DB_USERNAME", "root"))
    password = quote_plus(os.getenv("DB_PASSWORD", ""))
    port = os.getenv("DB_PORT", "3306")
    name = os.getenv("DB_NAME", "activity_tracker")
    return f"mysql+pymysql://{user}:{password}@{host}:{port}/{name}?charset=utf8mb4"


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False
    ENV_NAME = "development"

    PORT = int(os.getenv("PORT", "3001"))

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 10,
        "pool_recycle": 300,   # recycle connections every 5 min
        "pool_timeout": 20,    # wait max 20s for a connection from pool
    }

    # JWT
    JWT_SECRET = os.getenv("JWT_SECRET", _DEV_SECRET)
    JWT_EXPIRES_IN = parse_duration(os.getenv("JWT_EXPIRES_IN", "24h"))

    # Passwords
    BCRYPT_ROUNDS = 10
    DEFAULT_USER_PASSWORD_LENGTH = 12

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")

    # Rate limiting (Flask-Limiter)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "10/minute")

    MAX_CONTENT_LENGTH = 2 * 1024 * 1024  # 2 MB


class DevelopmentConfig(Config):
    """Development environment configuration."""

    ENV_NAME = "development"
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_uri(_SQLITE_DEV)
    # Wide-open CORS only when nothing is configured locally
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")


class TestingConfig(Config):
    """Testing environment configuration."""

    ENV_NAME = "testing"
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_SECRET = "test-jwt-secret-with-enough-bytes-for-hs256"
    RATELIMIT_ENABLED = False
    CORS_ORIGINS = "http://localhost:3000"


class ProductionConfig(Config):
    """Production environment configuration."""

    ENV_NAME = "production"
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _database_uri(None)
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL or DB_HOST environment variable is required in production")
        if not os.getenv("JWT_SECRET"):
            raise RuntimeError("JWT_SECRET environment variable must be set in production")
        if not self.CORS_ORIGINS or self.CORS_ORIGINS.strip() == "*":
            raise RuntimeError("CORS_ORIGINS must list the allowed frontend origins in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "test": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
