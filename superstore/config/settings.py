"""
Superstore Sales Analytics
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from enum import Enum
from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OutputFormat(str, Enum):
    """File format for curated outputs"""
    PARQUET = "parquet"
    CSV = "csv"


class ZeroGapScope(str, Enum):
    """Which reorder statistics drop same-day (zero) gaps"""
    CUSTOMER_AVERAGE = "customer_average"  # only the per-customer aggregate
    ALL = "all"  # every reorder statistic and the enriched view


class TieBreak(str, Enum):
    """Rule for choosing between equally frequent variants of one key"""
    LEXICOGRAPHIC = "lexicographic"
    FIRST_SEEN = "first_seen"


class LoadPolicy(str, Enum):
    """What happens to a batch when load-time checks reject records"""
    REJECT_RECORD = "reject_record"
    ABORT_BATCH = "abort_batch"


class DataLakeSettings(BaseSettings):
    """Raw and curated zone locations"""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    raw_path: str = Field(default="./data/raw", description="Raw input zone path")
    curated_path: str = Field(default="./data/curated", description="Curated output zone path")
    dead_letter_path: str = Field(default="./data/dead_letter", description="Rejected records path")

    # Source files
    orders_file: str = Field(default="orders.csv", description="Transaction records file")
    customers_file: str = Field(default="customers.csv", description="Customer records file")
    products_file: str = Field(default="products.csv", description="Raw product records file")
    source_date_format: str = Field(default="%m/%d/%Y", description="Date format used by the source files")

    output_format: OutputFormat = Field(default=OutputFormat.PARQUET, description="Curated file format")


class DatabaseSettings(BaseSettings):
    """Relational sink for clean and derived tables"""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: str = Field(default="sqlite:///./data/superstore.db", description="SQLAlchemy database URL")
    enabled: bool = Field(default=False, description="Write tables to the database")
    echo: bool = Field(default=False, description="Echo SQL statements")


class AnalyticsSettings(BaseSettings):
    """Reorder-interval and report parameters"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    zero_gap_scope: ZeroGapScope = Field(
        default=ZeroGapScope.CUSTOMER_AVERAGE,
        description="Where zero-day gaps are excluded",
    )
    tie_break: TieBreak = Field(default=TieBreak.LEXICOGRAPHIC, description="Deduplication tie-break rule")
    top_n: int = Field(default=10, ge=1, description="Row limit for top-N reports")
    percent_precision: int = Field(default=2, ge=0, description="Decimal places for percentages")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class DataQualitySettings(BaseSettings):
    """Data Quality Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    enable_data_quality_checks: bool = Field(
        default=True,
        alias="ENABLE_DATA_QUALITY_CHECKS",
        description="Run validation suites on loaded data"
    )
    load_policy: LoadPolicy = Field(
        default=LoadPolicy.REJECT_RECORD,
        alias="LOAD_POLICY",
        description="Reject offending records or abort the whole batch"
    )


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="superstore-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    data_lake: DataLakeSettings = Field(default_factory=DataLakeSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    data_quality: DataQualitySettings = Field(default_factory=DataQualitySettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
