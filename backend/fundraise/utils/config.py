"""
Configuration Module

This module provides configuration settings for the wallet service.
It loads environment variables from a .env file and provides default values.

"""

import os
import json
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from dotenv import load_dotenv
from typing import Dict, List, Any

# Load environment variables from .env file
load_dotenv()

# Backends the wallet store knows how to build
SUPPORTED_BACKENDS = ("redis", "sql", "memory")

PACKAGE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


def parse_backend_list(env_value: Any) -> List[str]:
    """Parse STORE_BACKENDS from a JSON array or a comma-separated string"""
    if isinstance(env_value, (list, tuple)):
        items = list(env_value)
    elif not env_value:
        return ["redis", "sql"]
    else:
        env_value = str(env_value).strip()
        if env_value.startswith("["):
            items = json.loads(env_value)
        else:
            items = env_value.split(",")
    backends = [str(item).strip().lower() for item in items if str(item).strip()]
    unknown = [b for b in backends if b not in SUPPORTED_BACKENDS]
    if unknown:
        raise ValueError(f"Unsupported store backends {unknown}, expected any of {SUPPORTED_BACKENDS}")
    if not backends:
        raise ValueError("STORE_BACKENDS must name at least one backend")
    return backends


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables with defaults.
    Settings are validated using Pydantic's BaseSettings.
    """

    model_config = SettingsConfigDict(
        env_file=os.path.join(PACKAGE_DIR, "..", "..", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Core settings
    PROJECT_NAME: str = "Startup Wallet Service"
    VERSION: str = "1.0.0"

    # Environment
    ENVIRONMENT: str = "development"

    # Wallet store backends, in read precedence order
    STORE_BACKENDS: Any = ["redis", "sql"]
    STORE_TIMEOUT_SECONDS: float = 5.0

    # Primary key-value store
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_KEY_PREFIX: str = "fundraise"

    # Legacy relational store
    DATABASE_URL: str = "sqlite+aiosqlite:///./wallets.db"
    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Seeding and resolution policy
    SEED_FILE: str = os.path.join(PACKAGE_DIR, "data", "known_wallets.json")
    SEED_ON_STARTUP: bool = True
    DEFAULT_WALLET_FALLBACK_ENABLED: bool = True
    IDENTITY_ID_MIN_LENGTH: int = 20

    # CORS Settings
    CORS_ORIGINS: Any = ["http://localhost:3000", "http://localhost:5000"]

    # Celery configuration
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOGS_DIR: str = os.path.join(PACKAGE_DIR, "data", "logs")

    @field_validator("STORE_BACKENDS", mode="before")
    @classmethod
    def validate_backends(cls, v):
        return parse_backend_list(v)

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def validate_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("STORE_TIMEOUT_SECONDS")
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("STORE_TIMEOUT_SECONDS must be positive")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        return v.upper()


# Create settings instance
settings = Settings()

# Export settings as dictionary for easier access in other modules
settings_dict: Dict[str, Any] = {
    k: v for k, v in settings.model_dump().items()
    if not k.startswith("_") and not callable(v)
}
