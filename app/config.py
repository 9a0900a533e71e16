"""Configuration defaults for the scheduling backend."""
from __future__ import annotations

import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///salon_booking.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens expire after 24 hours by default.
    AUTH_TOKEN_MAX_AGE = int(os.environ.get("AUTH_TOKEN_MAX_AGE", 86400))

    # Ledger entries for finished appointments are dropped after this many days.
    NOTIFICATION_LEDGER_RETENTION_DAYS = int(
        os.environ.get("NOTIFICATION_LEDGER_RETENTION_DAYS", 30)
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")
