# backend/counterpos/config.py
from __future__ import annotations
import os


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Session tokens are signed with JWT_SECRET (defaults to SECRET_KEY)
    JWT_SECRET = os.environ.get("JWT_SECRET") or SECRET_KEY
    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    # bcrypt cost factor for password hashes
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # SQLite DB stored in backend/instance/counterpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///counterpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Product images and the store logo live here, served at /product-image/<name>
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.join(os.getcwd(), "product image"))
    MAX_IMAGE_BYTES = int(os.environ.get("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))

    # Backup payloads embed every image as base64
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", str(64 * 1024 * 1024)))

    CORS_ORIGINS = _split_csv(
        os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://localhost:8080")
    )

    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "PHP")
