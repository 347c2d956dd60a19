"""Best-coin recommendation with confidence and rationale."""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional, Sequence

from profitability_engine.engine.revenue import compute_coin_usd_per_day
from profitability_engine.models.assumptions import EnginePolicy
from profitability_engine.models.catalog import Coin
from profitability_engine.models.market import CoinEstimate


@dataclass(frozen=True)
class InputQuality:
    """Provenance of the run-wide inputs behind a device's revenue."""

    price_is_live: bool
    rate_is_live: bool
    rate_fetched_at: datetime
    as_of: datetime


@dataclass(frozen=True)
class BestCoinSelection:
    coin: Optional[Coin]
    confidence: Optional[int]
    reason: Optional[str]
    candidates: int
    estimated_revenue_usd_per_day: Optional[float] = None


def _margin_confidence(best: float, second: float, policy: EnginePolicy) -> int:
    margin = (best - second) / best
    for step in sorted(policy.margin_steps, key=lambda s: s.min_margin, reverse=True):
        if margin >= step.min_margin:
            return step.confidence
    return policy.close_race_confidence


def _penalties(quality: InputQuality, policy: EnginePolicy) -> int:
    penalty = 0
    if not quality.price_is_live:
        penalty += policy.stale_price_penalty
    if not quality.rate_is_live:
        penalty += policy.stale_rate_penalty

    age_seconds = (quality.as_of - quality.rate_fetched_at).total_seconds()
    overdue = age_seconds - policy.rate_fresh_seconds
    if overdue > 0:
        hours = int(overdue // 3600) + 1
        penalty += min(policy.recency_penalty_cap, hours * policy.recency_penalty_per_hour)
    return penalty


def _clamp(confidence: int) -> int:
    return max(0, min(100, int(confidence)))


def select_best_coin(
    candidates: Sequence[Coin],
    estimates: Mapping[str, CoinEstimate],
    speed_base: float,
    quality: InputQuality,
    policy: EnginePolicy,
    payout_coin: Optional[Coin] = None,
    has_payout_revenue: bool = True,
) -> BestCoinSelection:
    """
    Rank a device's mineable coins and pick one.

    Coins are ordered by estimated revenue, highest first, with the coin id as
    a tie-break so identical inputs always produce the same pick. Confidence
    starts from how decisively #1 beats #2 and is reduced for fallback inputs
    and an aging payout table.
    """
    candidate_list = list(candidates)[: policy.max_candidates]

    ranked: list[tuple[float, Coin]] = []
    for coin in candidate_list:
        estimate = estimates.get(coin.id)
        if estimate is None:
            continue
        revenue = compute_coin_usd_per_day(speed_base, estimate.usd_per_day_per_base)
        if revenue > 0 and math.isfinite(revenue):
            ranked.append((revenue, coin))
    ranked.sort(key=lambda item: (-item[0], item[1].id))

    penalty = _penalties(quality, policy)

    if len(ranked) >= 2:
        (best_revenue, best), (second_revenue, _) = ranked[0], ranked[1]
        margin_pct = max(0.0, (best_revenue - second_revenue) / best_revenue * 100)
        return BestCoinSelection(
            coin=best,
            confidence=_clamp(_margin_confidence(best_revenue, second_revenue, policy) - penalty),
            reason=(
                f"highest network payout rate currently available: {best.symbol} leads "
                f"#2 by ~{margin_pct:.1f}% (best of {len(candidate_list)})"
            ),
            candidates=len(candidate_list),
            estimated_revenue_usd_per_day=round(best_revenue, 6),
        )

    if len(ranked) == 1:
        revenue, only = ranked[0]
        return BestCoinSelection(
            coin=only,
            confidence=_clamp(policy.single_candidate_confidence - penalty),
            reason=f"only mineable coin with known pricing: {only.symbol}",
            candidates=len(candidate_list),
            estimated_revenue_usd_per_day=round(revenue, 6),
        )

    if payout_coin is not None and has_payout_revenue:
        return BestCoinSelection(
            coin=payout_coin,
            confidence=_clamp(policy.payout_coin_confidence - penalty),
            reason=(
                f"hashrate-market payout settled in {payout_coin.symbol}; "
                "no per-coin estimates available"
            ),
            candidates=len(candidate_list),
        )

    return BestCoinSelection(coin=None, confidence=None, reason=None, candidates=len(candidate_list))
