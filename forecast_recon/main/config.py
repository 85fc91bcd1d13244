"""
Application Settings - Main Layer

Use Pydantic Settings for configuration management.
This module handles configuration settings provided using
environment variables, .env files and default values.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from forecast_recon.domain.entities.time_series import SeriesName
from forecast_recon.shared import EnumEnvironment, EnumLogLevel
from forecast_recon.shared.env import load_secret_file_variables


class DatabaseSettings(BaseSettings):
    """Database configuration settings for the analysis cache."""

    mongo_uri: str = Field(
        default="mongodb://localhost:27017/forecast_recon",
        description="MongoDB connection URI",
    )
    database_name: str = Field(
        default="forecast_recon", description="Name of the MongoDB database"
    )

    model_config = SettingsConfigDict(
        env_prefix="DB_", case_sensitive=False, extra="ignore"
    )


class CacheSettings(BaseSettings):
    """Analysis cache configuration settings."""

    enabled: bool = Field(default=False, description="Store computed analyses")
    ttl_seconds: int = Field(
        default=3600, gt=0, description="Seconds a cached analysis stays valid"
    )
    collection: str = Field(
        default="analysis_cache", description="Name of the cache collection"
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_", case_sensitive=False, extra="ignore"
    )


class ReconciliationSettings(BaseSettings):
    """Numeric policy shared by every reconciliation request."""

    accuracy_threshold: float = Field(
        default=75.0, ge=0, le=100, description="Default low-accuracy threshold"
    )
    trend_margin: float = Field(
        default=0.10,
        ge=0,
        lt=1,
        description="Relative error change needed to call a trend",
    )
    zero_actual_epsilon: float = Field(
        default=1e-9, ge=0, description="Actuals at or below this count as zero"
    )
    waterfall_precision: int = Field(
        default=2, ge=0, le=6, description="Decimals kept on waterfall components"
    )
    editable_series: List[SeriesName] = Field(
        default_factory=lambda: [SeriesName.DEMAND_PLANNER],
        description=(
            "Series whose total cells accept fair-share edits, "
            "as a JSON list in the environment"
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="RECON_", case_sensitive=False, extra="ignore"
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    level: EnumLogLevel = Field(default=EnumLogLevel.INFO, description="Logging level")
    file_path: Optional[str] = Field(
        default=None, description="Log file path (if None, logs to console)"
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_", case_sensitive=False, extra="ignore"
    )


class AppSettings(BaseSettings):
    """Main application settings, aggregating all sub-settings."""

    environment: EnumEnvironment = Field(
        default=EnumEnvironment.DEVELOPMENT, description="Application environment"
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    reconciliation: ReconciliationSettings = Field(
        default_factory=ReconciliationSettings
    )
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )


def get_settings() -> AppSettings:
    """
    Get application settings instance Factory.

    Secret files (`*_FILE` variables) are resolved first. Used to be mocked
    in tests, allowing different settings based on environment.
    """
    load_secret_file_variables()
    return AppSettings()
