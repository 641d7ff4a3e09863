# backend/retailpos/config.py
from __future__ import annotations
import os

BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/retailpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///retailpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Alembic scripts live next to the package, not relative to the cwd
    MIGRATIONS_DIR = os.environ.get("MIGRATIONS_DIR", os.path.join(BACKEND_DIR, "migrations"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
    DEFAULT_ADMIN_PASSWORD = os.environ.get("DEFAULT_ADMIN_PASSWORD", "admin123")

    LOW_STOCK_NOTIFY = _env_bool("LOW_STOCK_NOTIFY", True)
    EXPIRY_WARNING_DAYS = int(os.environ.get("EXPIRY_WARNING_DAYS", "7"))

    # Compare FK delete actions with ORM relationship cascades at startup
    VERIFY_ASSOCIATION_POLICIES = _env_bool("VERIFY_ASSOCIATION_POLICIES", True)
