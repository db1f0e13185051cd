"""Catalog service configuration (environment variables, then .env)."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Catalog settings.

    Environment variables win over the .env file. ADMIN_TOKEN unset means
    the destructive endpoints always answer 401.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    DATABASE_URL: str = "sqlite:///./catalog.db"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Destructive endpoints (DELETE /items) require this bearer token
    ADMIN_TOKEN: Optional[str] = None
    IP_HASH_SALT: str = ""

    # Read path
    READ_CACHE_TTL_SECONDS: int = 3600
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 200


settings = Settings()
