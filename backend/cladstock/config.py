# backend/cladstock/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # A DATABASE_URL selects the SQL backend; without it the app runs on the local JSON file
    DATABASE_URL = os.environ.get("DATABASE_URL")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL or "sqlite:///cladstock.sqlite3"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql", "local" or "none"; empty means pick from DATABASE_URL
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "")
    # Relative paths resolve against the Flask instance folder
    LOCAL_STORAGE_PATH = os.environ.get("LOCAL_STORAGE_PATH", "cladstock.json")

    # Server-side spreadsheets offered by /api/data-files
    DATA_DIR = os.environ.get("DATA_DIR", "data")

    ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY")
    ANTHROPIC_MODEL = os.environ.get("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
    ANTHROPIC_API_URL = os.environ.get("ANTHROPIC_API_URL", "https://api.anthropic.com/v1/messages")
    AI_TIMEOUT_SECONDS = float(os.environ.get("AI_TIMEOUT_SECONDS", "60"))

    # bcrypt cost for PIN hashes
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Pulls larger than on-hand stock are clamped to zero unless this is set
    ENFORCE_STOCK_ON_PULL = _env_flag("ENFORCE_STOCK_ON_PULL")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    ]
