"""
Practice Console Configuration
"""
import logging
import os
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Core settings loaded from environment"""

    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"),
        case_sensitive=True,
        extra="ignore"
    )

    # App
    APP_NAME: str = "Practice Console"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Users
    # False: a user needs a username or an email. True: both are required.
    STRICT_USER_VALIDATION: bool = False
    DEFAULT_CREATED_BY: str = "admin"

    # Security bookkeeping
    MAX_LOGIN_ATTEMPTS: int = 5
    LOCKOUT_MINUTES: int = 30

    # Audit
    TOP_USERS_LIMIT: int = 10
    RECENT_ACTIVITY_LIMIT: int = 10
    RECORD_ADMIN_ACTIONS: bool = False

    # Demo data
    DEMO_SEED: int = 42
    DEMO_AUDIT_ENTRIES: int = 50


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s | %(levelname)s | %(message)s'
    )
