"""Profitability snapshot record and its typed breakdown."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


BREAKDOWN_SCHEMA_VERSION = 2


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class BreakdownInputs(_Frozen):
    power_w: float
    electricity_usd_per_kwh: float
    revenue_usd_per_day: float
    pool_fee_pct: float
    hosting_usd_per_day: float
    hardware_price_usd: Optional[float] = None
    shipping_usd: Optional[float] = None


class BreakdownSpeed(_Frozen):
    hashrate: Optional[str] = None
    hashrate_unit: str
    base_value: float
    base_unit: Literal["H/s", "Sol/s"]
    efficiency_j_per_th: Optional[float] = None


class BreakdownRevenue(_Frozen):
    provider: str
    provider_algorithm_key: str
    payout_rate: float
    reference_unit_base: float
    reference_price_usd: float
    reference_price_source: str
    reference_price_is_fallback: bool


class BreakdownDaily(_Frozen):
    electricity_usd_per_day: float
    pool_fee_usd_per_day: float
    hosting_usd_per_day: float
    total_daily_cost_usd: float


class BreakdownTotals(_Frozen):
    net_profit_usd_per_day: float
    gross_margin_pct: Optional[float] = None
    roi_days: Optional[int] = None
    capex_total_usd: Optional[float] = None


class BreakdownBestCoin(_Frozen):
    coin_id: Optional[str] = None
    symbol: Optional[str] = None
    confidence: Optional[int] = None
    reason: Optional[str] = None
    candidates: int = 0
    estimated_revenue_usd_per_day: Optional[float] = None


class BreakdownMeta(_Frozen):
    computed_at: datetime
    policy_version: str
    payback_date: Optional[str] = None


class SnapshotBreakdown(_Frozen):
    """Every intermediate value used to build a snapshot."""

    schema_version: int = BREAKDOWN_SCHEMA_VERSION
    inputs: BreakdownInputs
    speed: BreakdownSpeed
    revenue: BreakdownRevenue
    daily: BreakdownDaily
    totals: BreakdownTotals
    best_coin: BreakdownBestCoin
    meta: BreakdownMeta


class ProfitabilitySnapshot(_Frozen):
    """Immutable per-device profitability record for one run."""

    device_id: str
    computed_at: datetime
    electricity_usd_per_kwh: float = Field(..., ge=0)
    revenue_usd_per_day: float
    electricity_usd_per_day: float
    profit_usd_per_day: float
    lowest_price_usd: Optional[float] = None
    roi_days: Optional[int] = Field(None, gt=0)
    best_coin_id: Optional[str] = None
    best_coin_confidence: Optional[int] = Field(None, ge=0, le=100)
    best_coin_reason: Optional[str] = None
    breakdown: SnapshotBreakdown
