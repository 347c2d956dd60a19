"""Currency conversion against a run-wide FX rate set."""

import math
from typing import Optional, Protocol

from profitability_engine.models.market import FxRateSet


class FxProvider(Protocol):
    def latest_rates(self) -> FxRateSet:
        ...


class StaticFxProvider:
    """Fixed rate table, e.g. from configuration or tests."""

    def __init__(self, rates: Optional[dict[str, float]] = None):
        self._rates = normalize_rates(rates or {})

    def latest_rates(self) -> FxRateSet:
        return FxRateSet(rates=dict(self._rates))


def normalize_rates(raw: dict) -> dict[str, float]:
    """Uppercase codes, drop non-positive entries, pin USD to 1."""
    rates: dict[str, float] = {}
    for code, value in raw.items():
        try:
            rate = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(rate) and rate > 0:
            rates[str(code).strip().upper()] = rate
    rates["USD"] = 1.0
    return rates


def _rate(currency: str, rates: Optional[FxRateSet]) -> Optional[float]:
    code = (currency or "").strip().upper()
    if code == "USD":
        return 1.0
    if rates is None:
        return None
    rate = rates.rates.get(code)
    if rate is None or not rate > 0:
        return None
    return rate


def to_usd(amount: float, currency: str, rates: Optional[FxRateSet]) -> Optional[float]:
    """Convert an amount in `currency` to USD, or None if the currency is unknown."""
    rate = _rate(currency, rates)
    if rate is None or not math.isfinite(amount):
        return None
    return amount / rate


def from_usd(amount_usd: float, currency: str, rates: Optional[FxRateSet]) -> Optional[float]:
    """Convert a USD amount to `currency`, or None if the currency is unknown."""
    rate = _rate(currency, rates)
    if rate is None or not math.isfinite(amount_usd):
        return None
    return amount_usd * rate
