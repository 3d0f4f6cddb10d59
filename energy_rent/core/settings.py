"""Application configuration using pydantic settings with structured sections."""

from decimal import Decimal
from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PricingSettings(BaseModel):
    unit_price: Decimal = Field(default=Decimal("0.50"), gt=0)   # per kWh
    plans: List[Decimal] = [Decimal("10"), Decimal("25"), Decimal("50")]
    currency_symbol: str = "$"


class DestinationSettings(BaseModel):
    """Address grammar of the delegation network (TRON by default)."""

    prefix: str = "T"
    length: int = Field(default=34, gt=1)
    body_pattern: str = "[A-Za-z0-9]"


class PlatformSettings(BaseModel):
    """Remote platform API. The remote variant is enabled when base_url is set."""

    base_url: Optional[str] = None
    api_token: Optional[str] = None
    timeout_seconds: float = Field(default=10.0, gt=0)
    read_retries: int = Field(default=2, ge=0)


class Settings(BaseSettings):
    """Top-level settings, loaded from ENERGY_RENT_* variables and .env."""

    model_config = SettingsConfigDict(
        env_prefix="ENERGY_RENT_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    log_level: str = "INFO"
    strict_invariants: bool = True

    pricing: PricingSettings = PricingSettings()
    destination: DestinationSettings = DestinationSettings()
    platform: PlatformSettings = PlatformSettings()

    @property
    def unit_price(self) -> Decimal:
        return self.pricing.unit_price

    @property
    def remote_enabled(self) -> bool:
        return bool(self.platform.base_url)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
