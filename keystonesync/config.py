"""
Configuration for KeystoneSync.
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Runtime settings read from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="KEYSTONESYNC_",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_to_file: bool = Field(default=False, description="Write JSON logs to logs/keystonesync.log")

    # Peer communication
    comm_prefix: str = Field(default="KeystoneSync", description="Addon message channel prefix")

    # Seasonal data loading
    startup_delay_seconds: float = Field(default=1.0, ge=0)
    retry_delay_seconds: float = Field(default=1.0, gt=0)
    readiness_check_interval: float = Field(default=1.5, gt=0)
    max_load_attempts: int = Field(default=5, ge=1)

    # Zone / inspection handling
    zone_debounce_seconds: float = Field(default=1.0, ge=0)
    inspect_timeout_seconds: float = Field(default=5.0, gt=0)

    # Localized system message announcing an instance reset; %s is the instance name
    instance_reset_message: str = Field(default="%s has been reset.")

    # Season naming across expansion boundaries
    previous_expansion_name: str = "Shadowlands"
    current_expansion_name: str = "Dragonflight"
    previous_expansion_last_season: int = 4
    previous_expansion_last_season_id: int = 8

    # Persistence
    mongodb_url: Optional[str] = Field(default=None, description="MongoDB URL; memory store when unset")
    database_name: str = "keystonesync"


class DatabaseConfig(BaseModel):
    """Database layout settings."""

    sessions_collection: str = "active_sessions"
    connection_timeout: int = 5
    enable_indexes: bool = True


@lru_cache
def get_config() -> Config:
    """Get the cached application config."""
    return Config()


@lru_cache
def get_db_config() -> DatabaseConfig:
    """Get the cached database config."""
    return DatabaseConfig()
