"""
Application Settings
===================

Settings for locating, installing and running PhantomJS, read from
environment variables prefixed with ``PHANTOMSHOT_`` or from a ``.env`` file.
"""

from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Optional rotating log file")

    # Installer Configuration
    phantomjs_version: str = Field(default="2.1.1", description="PhantomJS version to install")
    download_base_url: str = Field(
        default="https://github.com/wch/webshot/releases/download/v0.3.1/",
        description="Base URL of the PhantomJS release archives",
    )
    download_timeout: int = Field(default=300, description="Download timeout in seconds")
    install_dir: Optional[Path] = Field(
        default=None, description="Preferred directory for the PhantomJS executable"
    )

    # Runner Configuration
    phantomjs_path: Optional[Path] = Field(
        default=None, description="Explicit path to a PhantomJS executable"
    )
    poll_interval_ms: int = Field(
        default=200, gt=0, description="Child process polling interval in milliseconds"
    )

    # Port Discovery Configuration
    port_min: int = Field(default=3000, description="Lowest candidate port")
    port_max: int = Field(default=9000, description="Highest candidate port")
    port_attempts: int = Field(default=20, gt=0, description="Ports to try before giving up")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("download_base_url")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        """Archive filenames are appended directly to the base URL."""
        return v if v.endswith("/") else v + "/"

    @field_validator("install_dir", "phantomjs_path", "log_file")
    @classmethod
    def expand_user(cls, v: Optional[Path]) -> Optional[Path]:
        """Expand ``~`` in configured paths."""
        return v.expanduser() if v is not None else None

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="PHANTOMSHOT_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
