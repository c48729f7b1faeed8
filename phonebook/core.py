"""Application configuration and settings management.

This module defines the application settings loaded from environment
variables and provides a helper for accessing the cached settings.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Attributes:
        PROJECT_NAME: Title shown in the OpenAPI schema.
        DATABASE_URL: Database connection string.
        DATABASE_SSLMODE: ``sslmode`` passed to the Postgres driver
            (``require`` encrypts without verifying the certificate).
        DATABASE_POOL_SIZE: Number of pooled connections for server databases.
        SECRET_KEY: Secret key used for JWT signing.
        ALGORITHM: Algorithm used to encode JWT tokens.
        ACCESS_TOKEN_EXPIRE_MINUTES: Access token lifetime in minutes.
        ALLOWED_ORIGINS: Allowed origins for CORS.
        DEFAULT_PHONE_REGION: Region assumed for user phone numbers
            written without a country code.
        LOG_LEVEL: Root logging level.
    """

    PROJECT_NAME: str = "Phonebook API"
    DATABASE_URL: str = "sqlite:///./phonebook.db"
    DATABASE_SSLMODE: str | None = None
    DATABASE_POOL_SIZE: int = 5
    SECRET_KEY: str = "dev-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ALLOWED_ORIGINS: List[str] = ["*"]
    DEFAULT_PHONE_REGION: str = "US"
    LOG_LEVEL: str = "INFO"

    class Config:
        """Pydantic configuration for loading environment variables."""

        env_file = ".env"
        extra = "allow"


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings.

    The settings object is cached to prevent reloading environment
    variables multiple times during application lifetime.
    """

    return Settings()
