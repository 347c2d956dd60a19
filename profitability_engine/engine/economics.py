"""Operating cost, ROI and payback calculations."""

import math
from datetime import datetime, timedelta
from math import ceil
from typing import NamedTuple, Optional


def _non_negative(value: Optional[float]) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _round(value: float, dp: int = 6) -> float:
    if not math.isfinite(value):
        return 0.0
    return round(value, dp)


def electricity_usd_per_day(power_w: Optional[float], usd_per_kwh: Optional[float]) -> float:
    """
    Calculate daily electricity cost.

    Negative or non-finite inputs are clamped to zero, so a malformed power
    reading can never turn into a negative cost.
    """
    return (_non_negative(power_w) / 1000) * 24 * _non_negative(usd_per_kwh)


class CostBreakdown(NamedTuple):
    electricity_usd_per_day: float
    pool_fee_usd_per_day: float
    hosting_usd_per_day: float
    total_daily_cost_usd: float
    net_profit_usd_per_day: float
    gross_margin_pct: Optional[float]
    capex_total_usd: Optional[float]


def cost_breakdown(
    power_w: Optional[float],
    electricity_usd_per_kwh: float,
    revenue_usd_per_day: float,
    pool_fee_pct: float = 0.0,
    hosting_usd_per_day: float = 0.0,
    hardware_price_usd: Optional[float] = None,
    shipping_usd: Optional[float] = None,
) -> CostBreakdown:
    """
    Calculate daily costs and net profit.

    Args:
        power_w: Device power draw in watts
        electricity_usd_per_kwh: Electricity price
        revenue_usd_per_day: Gross revenue
        pool_fee_pct: Pool fee as a percentage of revenue (0-100)
        hosting_usd_per_day: Flat hosting cost
        hardware_price_usd: Acquisition price, if known
        shipping_usd: Shipping for the acquisition listing, if known

    Returns:
        Daily costs, net profit (revenue - costs), margin and capex
    """
    revenue = _non_negative(revenue_usd_per_day)
    fee_pct = min(100.0, _non_negative(pool_fee_pct))
    hosting = _non_negative(hosting_usd_per_day)

    electricity = electricity_usd_per_day(power_w, electricity_usd_per_kwh)
    pool_fee = revenue * (fee_pct / 100)
    total_cost = electricity + pool_fee + hosting
    net_profit = revenue - total_cost

    capex_parts = [_non_negative(v) for v in (hardware_price_usd, shipping_usd) if v is not None]
    capex_total = sum(capex_parts) if capex_parts else None

    gross_margin = (net_profit / revenue) * 100 if revenue > 0 else None

    return CostBreakdown(
        electricity_usd_per_day=_round(electricity),
        pool_fee_usd_per_day=_round(pool_fee),
        hosting_usd_per_day=_round(hosting),
        total_daily_cost_usd=_round(total_cost),
        net_profit_usd_per_day=_round(net_profit),
        gross_margin_pct=None if gross_margin is None else _round(gross_margin, 4),
        capex_total_usd=None if capex_total is None else _round(capex_total),
    )


def roi_days(
    acquisition_usd: Optional[float],
    net_profit_usd_per_day: float,
) -> Optional[int]:
    """
    Calculate days to recoup the acquisition price.

    Returns:
        Days to breakeven, or None if the price is unknown or the device
        never turns a profit
    """
    if acquisition_usd is None or net_profit_usd_per_day is None:
        return None
    if not math.isfinite(acquisition_usd) or acquisition_usd <= 0:
        return None
    if not math.isfinite(net_profit_usd_per_day) or net_profit_usd_per_day <= 0:
        return None
    days = ceil(acquisition_usd / net_profit_usd_per_day)
    return days if days > 0 else None


def payback_date(computed_at: datetime, days: Optional[int]) -> Optional[str]:
    """ISO date (YYYY-MM-DD) when the device pays for itself."""
    if not days or days <= 0:
        return None
    try:
        return (computed_at + timedelta(days=days)).date().isoformat()
    except OverflowError:
        return None
