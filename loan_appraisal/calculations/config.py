"""
Engine configuration.

Explicit configuration passed into engine components at construction.
Engine modules never read process settings on their own.
"""

from dataclasses import dataclass

ENGINE_VERSION = "1.0.0"


@dataclass(frozen=True)
class EngineConfig:
    """Numeric conventions and limits for the calculation engine."""

    currency_places: int = 2  # Fixed-point precision for money
    ratio_places: int = 6
    periods_per_year: int = 12  # Monthly compounding convention
    max_experiment_variants: int = 1000
    max_workers: int = 1  # 1 = sequential reference execution
    engine_version: str = ENGINE_VERSION

    def __post_init__(self):
        if self.currency_places < 0:
            raise ValueError("currency_places must be non-negative")
        if self.ratio_places < 0:
            raise ValueError("ratio_places must be non-negative")
        if self.periods_per_year <= 0:
            raise ValueError("periods_per_year must be positive")
        if self.max_experiment_variants <= 0:
            raise ValueError("max_experiment_variants must be positive")
        if self.max_workers <= 0:
            raise ValueError("max_workers must be positive")

    @classmethod
    def from_settings(cls, settings) -> "EngineConfig":
        """Build engine configuration from application settings."""
        return cls(
            currency_places=settings.currency_places,
            ratio_places=settings.ratio_places,
            periods_per_year=settings.periods_per_year,
            max_experiment_variants=settings.max_experiment_variants,
            max_workers=settings.experiment_max_workers,
            engine_version=settings.engine_version,
        )


DEFAULT_CONFIG = EngineConfig()
