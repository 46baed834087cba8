# backend/settlement/config.py
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

    # SQLite DB stored in backend/instance/settlement.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///settlement.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # True: one commit per settlement operation (unit of work).
    # False: every step commits on its own, matching the legacy sequence.
    SETTLEMENT_ATOMIC_WRITES = _env_flag("SETTLEMENT_ATOMIC_WRITES", True)

    # Header set by the upstream auth layer with the identity-provider subject
    IDENTITY_HEADER = os.environ.get("IDENTITY_HEADER", "X-Identity-Subject")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
