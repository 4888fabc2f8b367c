"""
Application configuration using Pydantic Settings.
"""

import os
from functools import lru_cache
from pydantic_settings import BaseSettings

from loan_appraisal.calculations.config import ENGINE_VERSION, EngineConfig


def get_env_file() -> str:
    """Determine which env file to use based on environment."""
    env = os.getenv("APP_ENV", "development")
    if env == "production":
        return ".env.production"
    return ".env.development"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./dev.db"

    # App settings
    app_name: str = "Loan Appraisal Service"
    debug: bool = False
    log_level: str = "INFO"
    app_env: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Calculation engine
    currency_places: int = 2
    ratio_places: int = 6
    periods_per_year: int = 12
    max_experiment_variants: int = 1000
    experiment_max_workers: int = 1
    engine_version: str = ENGINE_VERSION

    def engine_config(self) -> EngineConfig:
        """Explicit configuration handed to the calculation engine."""
        return EngineConfig.from_settings(self)

    class Config:
        env_file = get_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
