"""Runtime settings loaded from the environment (``VSIBL_PRICING_*``) or ``.env``."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MEMORY_URL = "memory://"
MEMORY_CACHE_TTL_SECONDS = 30.0


class PricingSettings(BaseSettings):
    """Settings for the stores and services.  The engine itself takes none."""

    # ── Storage ──────────────────────────────────────────
    database_url: str = Field(
        default=MEMORY_URL,
        description="'memory://' for the in-process store, otherwise a SQLAlchemy URL "
                    "(e.g. 'postgresql+psycopg://…' or 'sqlite:///pricing.db').",
    )
    echo_sql: bool = False

    # ── Pricing behaviour ────────────────────────────────
    strict_time_slots: bool = Field(
        default=False,
        description="Reject quotes that select a time slot the active version does not define. "
                    "When False, unknown ids are ignored by the engine.",
    )
    config_cache_ttl_seconds: Optional[float] = Field(
        default=None, ge=0,
        description="How long the resolved active version is cached in-process. 0 disables. "
                    "Unset: 30s for the memory store, 0 for a database another process may publish to.",
    )
    default_config_name: str = "VSIBL Global Pricing"
    default_config_description: str = "Live master pricing configuration"

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="VSIBL_PRICING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cache_ttl_seconds(self) -> float:
        """The TTL the resolver runs with."""
        if self.config_cache_ttl_seconds is not None:
            return self.config_cache_ttl_seconds
        return MEMORY_CACHE_TTL_SECONDS if self.database_url == MEMORY_URL else 0.0


@lru_cache()
def get_settings() -> PricingSettings:
    """Return cached settings (singleton)."""
    return PricingSettings()
