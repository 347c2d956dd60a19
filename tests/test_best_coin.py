"""Best-coin ranking, confidence and rationale tests."""

from datetime import timedelta

import pytest

from profitability_engine.engine.best_coin import InputQuality, select_best_coin
from profitability_engine.models.assumptions import EnginePolicy
from profitability_engine.models.market import CoinEstimate
from tests.factories import RUN_AT, make_coin

SPEED = 100e12

BTC = make_coin("coin-btc", "BTC")
BCH = make_coin("coin-bch", "BCH")
BSV = make_coin("coin-bsv", "BSV")


def estimate(coin, usd_per_day_per_base):
    return CoinEstimate(coin_key=coin.key, usd_per_day_per_base=usd_per_day_per_base)


def quality(price_is_live=True, rate_is_live=True, rate_age=timedelta(0)):
    return InputQuality(
        price_is_live=price_is_live,
        rate_is_live=rate_is_live,
        rate_fetched_at=RUN_AT - rate_age,
        as_of=RUN_AT,
    )


@pytest.fixture
def policy():
    return EnginePolicy(reference_unit_base=1e12)


def test_clear_winner_gets_high_confidence(policy):
    """A >30% lead with live inputs scores 90."""
    estimates = {BTC.id: estimate(BTC, 3e-12), BCH.id: estimate(BCH, 2e-12)}
    pick = select_best_coin([BTC, BCH], estimates, SPEED, quality(), policy)

    assert pick.coin == BTC
    assert pick.confidence == 90
    assert pick.candidates == 2
    assert pick.estimated_revenue_usd_per_day == pytest.approx(300.0)
    assert pick.reason == (
        "highest network payout rate currently available: BTC leads #2 by ~33.3% (best of 2)"
    )


@pytest.mark.parametrize(
    "second, expected",
    [(2.0e-12, 90), (2.5e-12, 75), (2.75e-12, 60), (2.9e-12, 45), (2.95e-12, 30)],
)
def test_confidence_follows_margin_steps(policy, second, expected):
    """Narrower leads earn less confidence."""
    estimates = {BTC.id: estimate(BTC, 3e-12), BCH.id: estimate(BCH, second)}
    pick = select_best_coin([BTC, BCH], estimates, SPEED, quality(), policy)
    assert pick.confidence == expected


def test_ties_break_on_coin_id(policy):
    """Identical inputs always give the same pick."""
    estimates = {BSV.id: estimate(BSV, 1e-12), BCH.id: estimate(BCH, 1e-12)}
    first = select_best_coin([BSV, BCH], estimates, SPEED, quality(), policy)
    second = select_best_coin([BCH, BSV], estimates, SPEED, quality(), policy)

    assert first.coin == second.coin == BCH
    assert first.confidence == policy.close_race_confidence


def test_fallback_price_and_stale_rate_are_penalized(policy):
    """Each fallback input costs 15 points."""
    estimates = {BTC.id: estimate(BTC, 3e-12), BCH.id: estimate(BCH, 2e-12)}

    stale_price = select_best_coin(
        [BTC, BCH], estimates, SPEED, quality(price_is_live=False), policy
    )
    assert stale_price.confidence == 75

    both = select_best_coin(
        [BTC, BCH], estimates, SPEED, quality(price_is_live=False, rate_is_live=False), policy
    )
    assert both.confidence == 60


@pytest.mark.parametrize(
    "age, penalty",
    [
        (timedelta(seconds=900), 0),
        (timedelta(seconds=901), 5),
        (timedelta(hours=2), 10),
        (timedelta(hours=12), 30),
    ],
)
def test_aging_rate_table_is_penalized_per_hour(policy, age, penalty):
    """Past the freshness window each started hour costs 5, capped at 30."""
    estimates = {BTC.id: estimate(BTC, 3e-12), BCH.id: estimate(BCH, 2e-12)}
    pick = select_best_coin([BTC, BCH], estimates, SPEED, quality(rate_age=age), policy)
    assert pick.confidence == 90 - penalty


def test_single_estimated_coin(policy):
    """One priced candidate gets the single-candidate confidence."""
    estimates = {BCH.id: estimate(BCH, 2e-12)}
    pick = select_best_coin([BTC, BCH], estimates, SPEED, quality(), policy)

    assert pick.coin == BCH
    assert pick.confidence == 55
    assert pick.reason == "only mineable coin with known pricing: BCH"
    assert pick.candidates == 2


def test_payout_coin_when_no_estimates(policy):
    """Without estimates the payout settlement coin is recommended."""
    pick = select_best_coin([BTC, BCH], {}, SPEED, quality(price_is_live=False), policy, payout_coin=BTC)

    assert pick.coin == BTC
    assert pick.confidence == 40
    assert pick.reason == (
        "hashrate-market payout settled in BTC; no per-coin estimates available"
    )
    assert pick.estimated_revenue_usd_per_day is None


def test_no_pick_without_estimates_or_payout_revenue(policy):
    """Nothing to rank and no payout revenue means no recommendation."""
    pick = select_best_coin([BTC], {}, SPEED, quality(), policy, payout_coin=BTC, has_payout_revenue=False)
    assert pick.coin is None
    assert pick.confidence is None
    assert pick.reason is None


def test_candidates_are_capped(policy):
    """Only the first max_candidates coins are considered."""
    capped = EnginePolicy(reference_unit_base=1e12, max_candidates=1)
    estimates = {BTC.id: estimate(BTC, 1e-12), BCH.id: estimate(BCH, 9e-12)}
    pick = select_best_coin([BTC, BCH], estimates, SPEED, quality(), capped)

    assert pick.coin == BTC
    assert pick.candidates == 1


def test_confidence_never_negative():
    """Heavy penalties clamp at zero."""
    harsh = EnginePolicy(reference_unit_base=1e12, stale_price_penalty=80, stale_rate_penalty=80)
    estimates = {BTC.id: estimate(BTC, 3e-12), BCH.id: estimate(BCH, 2e-12)}
    pick = select_best_coin(
        [BTC, BCH], estimates, SPEED, quality(price_is_live=False, rate_is_live=False), harsh
    )
    assert pick.confidence == 0
