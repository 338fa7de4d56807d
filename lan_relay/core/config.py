"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
The relay service runs on a single machine in the restaurant LAN, so almost
everything has a sensible default; the usual override is API_PORT or
WORKING_DIR.

Usage:
    from lan_relay.core.config import get_settings

    settings = get_settings()
    print(settings.database_url, settings.public_dir)
"""

import os
import logging
import sys
from enum import Enum
from typing import Optional
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local testing on a developer machine
        PRODUCTION: Running on the restaurant LAN box
        STAGING: Pre-production testing
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.

    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging and error details

        # Server
        api_host: Host to bind the relay server
        api_port: Port for the relay server
        working_dir: Directory holding the store file and the public assets

        # Persistence
        database_url: SQLAlchemy async URL (defaults to a SQLite file in working_dir)

        # Broadcast
        broadcast_topic: Name of the POS fan-out topic
        subscriber_queue_size: Max undelivered frames per POS connection
        ws_idle_timeout_seconds: Close silent POS connections after this long
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Restaurant LAN Relay",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="Relay server host"
    )
    api_port: int = Field(
        default=3000,
        description="Relay server port"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    # ==========================================================================
    # FILE LOCATIONS
    # ==========================================================================

    working_dir: str = Field(
        default_factory=os.getcwd,
        description="Directory used to locate the store file and public assets"
    )
    public_dirname: str = Field(
        default="public",
        description="Static asset directory, relative to working_dir"
    )
    store_filename: str = Field(
        default="restaurant.sqlite",
        description="SQLite store file, relative to working_dir"
    )

    # ==========================================================================
    # DATABASE
    # ==========================================================================

    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy async URL; derived from store_filename when unset"
    )

    # ==========================================================================
    # BROADCAST
    # ==========================================================================

    broadcast_topic: str = Field(
        default="pos-updates",
        description="Topic every POS terminal subscribes to"
    )
    subscriber_queue_size: int = Field(
        default=256,
        ge=1,
        description="Frames buffered per subscriber before it is evicted"
    )
    ws_idle_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Idle timeout for POS connections (disabled when unset)"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def public_dir(self) -> Path:
        """Root directory for static assets."""
        return Path(self.working_dir) / self.public_dirname

    @property
    def store_url(self) -> str:
        """Effective SQLAlchemy URL for the persistence store."""
        if self.database_url:
            return self.database_url
        store_path = Path(self.working_dir) / self.store_filename
        return f"sqlite+aiosqlite:///{store_path}"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Configured application settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured root logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return logging.getLogger("lan_relay")
