"""Application configuration using pydantic-settings."""
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Storage backend - exactly one is active per process
    db_backend: Literal["postgres", "mongodb"] = Field(
        default="postgres", validation_alias="DB_BACKEND",
    )

    # Relational backend
    database_url: str = Field(default="", validation_alias="DATABASE_URL")
    db_pool_size: int = Field(default=10, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, validation_alias="DB_MAX_OVERFLOW")

    # Document backend
    mongodb_url: str = Field(
        default="mongodb://localhost:27017", validation_alias="MONGODB_URL",
    )
    mongodb_database: str = Field(default="user_api", validation_alias="MONGODB_DATABASE")

    # Redis - cache-aside for repository reads
    redis_url: str = Field(default="redis://localhost:6379", validation_alias="REDIS_URL")
    redis_enabled: bool = Field(default=True, validation_alias="REDIS_ENABLED")
    redis_pool_size: int = Field(default=20, validation_alias="REDIS_POOL_SIZE")
    redis_cache_ttl: int = Field(default=3600, validation_alias="REDIS_CACHE_TTL")
    cache_op_timeout: float | None = Field(default=None, validation_alias="CACHE_OP_TIMEOUT")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:8080",
        validation_alias="CORS_ORIGINS",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @model_validator(mode="after")
    def validate_backend_connection(self) -> "Settings":
        """Require a database URL when the relational backend is selected."""
        if self.db_backend == "postgres" and not self.database_url:
            raise ValueError("DATABASE_URL must be set when DB_BACKEND is 'postgres'")
        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
