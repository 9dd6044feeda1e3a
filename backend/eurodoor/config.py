# backend/eurodoor/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/eurodoor.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///eurodoor.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Retry policy for lock/version conflicts (see services/concurrency.py)
    WORKFLOW_RETRY_ATTEMPTS = int(os.environ.get("WORKFLOW_RETRY_ATTEMPTS", "3"))
    WORKFLOW_RETRY_BACKOFF = float(os.environ.get("WORKFLOW_RETRY_BACKOFF", "0.1"))
