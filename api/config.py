"""
Environment-aware configuration.
Values come from the process environment, with .env read if present.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present

DEV_JWT_SECRET = "dev-secret-change-me"


def _csv(value: str) -> list:
    return [v.strip() for v in value.split(",") if v.strip()]


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Relational store
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///event-checkin.db")
    DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000"))

    # Token codec
    JWT_SECRET = os.getenv("JWT_SECRET", DEV_JWT_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "event-checkin-api")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("ACCESS_TOKEN_EXPIRES_SECONDS", "900")))
    REFRESH_TOKEN_EXPIRES_WEB = timedelta(seconds=int(os.getenv("REFRESH_TOKEN_EXPIRES_WEB_SECONDS", "604800")))
    REFRESH_TOKEN_EXPIRES_MOBILE = timedelta(
        seconds=int(os.getenv("REFRESH_TOKEN_EXPIRES_MOBILE_SECONDS", "7776000"))
    )

    # Revocation store
    REVOCATION_BACKEND = os.getenv("REVOCATION_BACKEND", "redis")
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "2"))
    REVOCATION_KEY_PREFIX = os.getenv("REVOCATION_KEY_PREFIX", "blacklist:token:")

    SELF_REGISTRATION_ROLES = _csv(os.getenv("SELF_REGISTRATION_ROLES", "organizer,staff"))
    PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", "8"))

    @classmethod
    def validate(cls):
        """Hook for environment-specific startup checks."""


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # No Redis needed for local runs unless asked for
    REVOCATION_BACKEND = os.getenv("REVOCATION_BACKEND", "memory")


class TestingConfig(BaseConfig):
    TESTING = True
    LOG_LEVEL = "WARNING"
    DATABASE_URL = "sqlite:///:memory:"
    DB_STATEMENT_TIMEOUT_MS = 0
    JWT_SECRET = "testing-secret"
    REVOCATION_BACKEND = "memory"
    PASSWORD_MIN_LENGTH = 8


class ProductionConfig(BaseConfig):
    DEBUG = False

    @classmethod
    def validate(cls):
        if not cls.JWT_SECRET or cls.JWT_SECRET == DEV_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set to a non-default value in production")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
