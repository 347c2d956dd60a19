"""Payout-rate revenue calculations."""

import math

from profitability_engine.core.config import DEFAULT_REFERENCE_UNIT_BASE


def _usable(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value) and value > 0


def compute_usd_per_day(
    speed_base_hs: float,
    provider_rate: float,
    ref_price_usd: float,
    reference_unit_base: float = DEFAULT_REFERENCE_UNIT_BASE,
) -> float:
    """
    Calculate gross USD revenue per day for one device.

    Args:
        speed_base_hs: Device hashrate in base units (H/s or Sol/s)
        provider_rate: Reward coin paid per reference unit per day
        ref_price_usd: USD price of the reward coin
        reference_unit_base: Base-unit size of the provider's reference unit
            (1e12 when rates are quoted per TH/s)

    Returns:
        USD per day; 0.0 when any input is zero, negative or non-finite
    """
    if not all(_usable(v) for v in (speed_base_hs, provider_rate, ref_price_usd, reference_unit_base)):
        return 0.0

    reference_units = speed_base_hs / reference_unit_base
    coins_per_day = reference_units * provider_rate
    revenue = coins_per_day * ref_price_usd
    return revenue if math.isfinite(revenue) else 0.0


def compute_coin_usd_per_day(speed_base_hs: float, usd_per_day_per_base: float) -> float:
    """Revenue from a per-coin estimate already normalized to one base unit."""
    if not _usable(speed_base_hs) or not _usable(usd_per_day_per_base):
        return 0.0
    revenue = speed_base_hs * usd_per_day_per_base
    return revenue if math.isfinite(revenue) else 0.0
