# backend/lynn_ops/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/lynn_ops.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///lynn_ops.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session lifetimes: short by default, long when "remember me" is ticked
    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "1"))
    REMEMBER_ME_TTL_DAYS = int(os.environ.get("REMEMBER_ME_TTL_DAYS", "30"))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "10"))

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",")
        if origin.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
