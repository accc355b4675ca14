"""
Configuration settings for Meridian.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from meridian.core.constants import AUTHORITY_EPSG


class Settings(BaseSettings):
    """
    Library settings with environment variable support.

    Attributes:
        default_authority: Authority used by single-argument CRS lookups
        definitions_package: Package holding built-in definition tables
        log_level: Log level used by setup_logging
        log_file: Optional log file path
        json_logs: Whether file logs are written as JSON
        build_warn_threshold_ms: CRS builds slower than this are logged as warnings
        environment: Deployment environment
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="MERIDIAN_",
        extra="ignore",
    )

    # Resolution settings
    default_authority: str = AUTHORITY_EPSG
    definitions_package: str = "meridian.data"

    # Logging settings
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    json_logs: bool = False
    build_warn_threshold_ms: float = 250.0

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    @field_validator("default_authority")
    @classmethod
    def _authority_not_blank(cls, value: str) -> str:
        """Reject blank authorities; codes are never looked up under ''."""
        if not value.strip():
            raise ValueError("default_authority must not be blank")
        return value.strip()


# Global settings instance
settings = Settings()
