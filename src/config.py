"""
Configuration management for the gradebook.

Uses Pydantic Settings for type-safe configuration loading from environment variables.
All configuration is validated at startup to fail fast on misconfiguration.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are validated at startup. Invalid values
    will raise clear validation errors.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GRADEBOOK_",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Storage Configuration
    # ==========================================================================
    data_file: Path = Field(
        default=Path("./data/gradebook.json"),
        description="JSON file holding all school records",
    )

    # ==========================================================================
    # Presentation Configuration
    # ==========================================================================
    grade_scale: float = Field(
        default=10.0,
        gt=0.0,
        le=1000.0,
        description="Maximum grade shown to users (score 1.0 maps to this value)",
    )

    # ==========================================================================
    # Logging Configuration
    # ==========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum level for log records",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @field_validator("data_file")
    @classmethod
    def validate_data_file(cls, v: Path) -> Path:
        """Expand a leading ~ so the path can come straight from .env."""
        return v.expanduser()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.
    """
    return Settings()
