import os
from datetime import timedelta

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

DEFAULT_CATEGORIES = ["Driver", "Plumbing", "Electrician", "Gardening", "Cleaning"]


def _database_url() -> str:
    url = os.environ.get("DATABASE_URL", "sqlite:///marketplace.db")
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def _categories(raw: str):
    if not raw:
        return list(DEFAULT_CATEGORIES)
    cleaned = []
    for x in raw.split(","):
        x = x.strip()
        if x and x not in cleaned:
            cleaned.append(x)
    return cleaned or list(DEFAULT_CATEGORIES)


def _is_production() -> bool:
    env = os.environ.get("APP_ENV") or os.environ.get("FLASK_ENV") or ""
    return env.lower() == "production"


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-marketplace-secret-key")

    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    BASE_CATEGORIES = _categories(os.environ.get("BASE_CATEGORIES", ""))
    TRIAL_DAYS = int(os.environ.get("TRIAL_DAYS", "7"))

    # sql / memory
    SESSION_BACKEND = os.environ.get("SESSION_BACKEND", "sql")
    PERMANENT_SESSION_LIFETIME = timedelta(hours=24)
    SESSION_COOKIE_NAME = "marketplace_session"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _is_production()

    UPLOAD_FOLDER = os.path.join(BASE_DIR, "static", "uploads")
    MAX_CONTENT_LENGTH = 4 * 1024 * 1024  # 4MB

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SESSION_BACKEND = "memory"
    SESSION_COOKIE_SECURE = False
    BASE_CATEGORIES = list(DEFAULT_CATEGORIES)
    TRIAL_DAYS = 7
    LOG_LEVEL = "WARNING"
