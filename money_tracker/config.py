"""
Configuration settings for the Money Tracker backend.

Uses Pydantic Settings to load environment variables for database connections,
pool tuning, credential lookup and logging. Settings are resolved once per
process (see `get_settings`) and handed to the pool manager explicitly.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("mymoney", alias="DB_NAME")

    # Cloud SQL socket directory, e.g. /cloudsql/<project>:<region>:<instance>.
    # When set it wins over DB_HOST/DB_PORT.
    instance_unix_socket: Optional[str] = Field(None, alias="INSTANCE_UNIX_SOCKET")
    # Full Secret Manager version name holding the database password.
    db_password_secret: Optional[str] = Field(None, alias="CLOUD_SQL_CREDENTIALS_SECRET")

    # Pool
    db_pool_min_size: int = Field(1, ge=0, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(5, ge=1, alias="DB_POOL_MAX_SIZE")
    db_connect_timeout: float = Field(10.0, gt=0, alias="DB_CONNECT_TIMEOUT")
    db_acquire_timeout: float = Field(10.0, gt=0, alias="DB_ACQUIRE_TIMEOUT")
    db_pool_queue_limit: int = Field(0, ge=0, alias="DB_POOL_QUEUE_LIMIT")
    db_connect_attempts: int = Field(3, ge=1, alias="DB_CONNECT_ATTEMPTS")
    db_backoff_min: float = Field(1.0, ge=0, alias="DB_BACKOFF_MIN")
    db_backoff_max: float = Field(10.0, ge=0, alias="DB_BACKOFF_MAX")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> "Settings":
        if self.db_pool_min_size > self.db_pool_max_size:
            raise ValueError(
                f"DB_POOL_MIN_SIZE ({self.db_pool_min_size}) must not exceed"
                f" DB_POOL_MAX_SIZE ({self.db_pool_max_size})"
            )
        return self

    @property
    def uses_unix_socket(self) -> bool:
        return bool(self.instance_unix_socket)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
