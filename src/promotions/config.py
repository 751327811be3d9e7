"""Settings for the Promotions context.

Values are read from ``PROMOTIONS_*`` environment variables (or a ``.env``
file) and validated by pydantic-settings.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PromotionsSettings(BaseSettings):
    """Runtime configuration for coupon evaluation."""

    env: str = "development"  # development, staging, production, test
    log_level: str | None = None
    log_dir: str = "logs"
    log_to_file: bool = False

    default_currency: str = "USD"
    default_decimal_places: int = Field(default=2, ge=0)
    # Currencies whose minor unit differs from the default
    currency_precision: dict[str, int] = Field(default_factory=lambda: {"JPY": 0})

    model_config = SettingsConfigDict(
        env_prefix="PROMOTIONS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.env.lower() in ("production", "staging")

    def decimal_places_for(self, currency: str) -> int:
        """Return the number of minor-unit digits used for ``currency``."""
        return self.currency_precision.get(currency.upper(), self.default_decimal_places)


@lru_cache
def get_settings() -> PromotionsSettings:
    """Return the process-wide settings (cached)."""
    return PromotionsSettings()


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
