"""
Configuration module for Pastebin Lite.
Loads environment variables and provides config objects.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    # "redis" (falls back to memory when unreachable) or "memory"
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "redis").lower()
    KEY_PREFIX: str = os.getenv("KEY_PREFIX", "paste")
    DEBUG: bool = _flag("DEBUG", "False")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    # Empty means "derive from the incoming request"
    APP_DOMAIN: str = os.getenv("APP_DOMAIN", "")
    TEST_MODE: bool = _flag("TEST_MODE", "0")


settings = Settings()
