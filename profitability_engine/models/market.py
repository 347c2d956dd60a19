"""Shared market inputs fetched once per run."""

from datetime import datetime, timezone
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """Timestamps without a timezone are taken to be UTC."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class ReferencePrice(BaseModel):
    """USD spot price of the coin payout rates are denominated in."""

    model_config = ConfigDict(frozen=True)

    usd: float = Field(..., gt=0, description="USD value of one reference coin")
    source: str = Field(..., description="Provider that produced the price")
    fetched_at: Optional[datetime] = Field(None, description="When the price was fetched")
    is_fallback: bool = Field(
        default=False,
        description="True when read back from the persisted last-known-good slot",
    )

    _utc_fetched_at = field_validator("fetched_at")(as_utc)


class PayoutRateTable(BaseModel):
    """Provider payout rates keyed by the provider's own algorithm keys."""

    model_config = ConfigDict(frozen=True)

    rates: Dict[str, float] = Field(default_factory=dict)
    source: str = Field(default="nicehash")
    fetched_at: datetime
    is_live: bool = Field(default=True)

    _utc_fetched_at = field_validator("fetched_at")(as_utc)

    def rate_for(self, provider_key: str) -> Optional[float]:
        """Positive rate for a provider key, or None when unknown."""
        rate = self.rates.get(provider_key)
        if rate is None:
            rate = self.rates.get(provider_key.upper())
        if rate is None or not rate > 0:
            return None
        return rate


class FxRateSet(BaseModel):
    """Currency code -> units of that currency per one USD."""

    model_config = ConfigDict(frozen=True)

    rates: Dict[str, float] = Field(default_factory=lambda: {"USD": 1.0})
    fetched_at: Optional[datetime] = None

    _utc_fetched_at = field_validator("fetched_at")(as_utc)


class CoinEstimate(BaseModel):
    """Per-coin revenue estimate normalized to one base unit (H/s, Sol/s)."""

    model_config = ConfigDict(frozen=True)

    coin_key: str
    usd_per_day_per_base: float = Field(..., gt=0)
    unit_detected: Optional[str] = None
