from __future__ import annotations
import os
from datetime import timedelta
from pathlib import Path

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite file in project directory
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'campus.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # сессии: cookie хранит только sid, данные лежат в SessionStore
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)
    SESSION_CHECK_PERIOD = 24 * 60 * 60
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_HTTPONLY = True

    WTF_CSRF_TIME_LIMIT = None
    WTF_CSRF_HEADERS = ["X-CSRF-Token", "X-CSRFToken"]

    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "20"))
    CHAT_CONTEXT_MESSAGES = 6

    CAMPUS_TZ = os.getenv("CAMPUS_TZ", "UTC")

    SEED_TEST_DATA = False
    DEFAULT_USERS: list[dict] = []

class DevConfig(BaseConfig):
    DEBUG = True
    SEED_TEST_DATA = True
    DEFAULT_USERS = [
        {"username": "pulkit", "password": "password123", "full_name": "Pulkit",
         "email": "pulkit@campus.edu", "role": "student"},
    ]

class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    GEMINI_API_KEY = ""

class ProdConfig(BaseConfig):
    DEBUG = False
    SESSION_COOKIE_SECURE = True

config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
