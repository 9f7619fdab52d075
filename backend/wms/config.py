# backend/wms/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the backend by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # e.g. postgresql+psycopg://wms@localhost/wms
        "sqlite:///wms.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Audit events are written after each successful workflow commit
    AUDIT_ENABLED = _env_flag("AUDIT_ENABLED", True)

    # Width of the zero-padded counter in document numbers (PO-000001)
    SEQUENCE_PAD = int(os.environ.get("SEQUENCE_PAD", "6"))

    # SQLite has no row locks; take the write lock at transaction start instead
    SQLITE_IMMEDIATE_TRANSACTIONS = _env_flag("SQLITE_IMMEDIATE_TRANSACTIONS", True)


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "DEBUG"
