"""Application configuration."""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "Wallet Link Service"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:3000"
    # Mount point for the /link and /user routes (e.g. "/api").
    API_PREFIX: str = ""

    # Database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Wallet address policy:
    #   strict     -> must match 0x + 40 hex digits
    #   permissive -> any non-empty string
    # Both policies store the lowercased value.
    ADDRESS_VALIDATION: Literal["strict", "permissive"] = "strict"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def strict_addresses(self) -> bool:
        return self.ADDRESS_VALIDATION == "strict"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
