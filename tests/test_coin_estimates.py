"""hashrate.no coin estimate scraping, caching and prefetch tests."""

from unittest.mock import patch, Mock

import httpx
import pytest

from profitability_engine.engine.coin_estimates import (
    HashrateNoEstimator,
    parse_revenue_per_unit,
    prefetch_estimates,
)
from tests.factories import FakeEstimator, make_coin


KASPA_PAGE = """
<section class="coin">
  <div class="label">Est. Revenue</div>
  <span class="value">$0.000252</span>
  <small>per 1 Gh/s</small>
</section>
"""


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def html_response(text):
    response = Mock()
    response.raise_for_status = Mock()
    response.text = text
    return response


def test_parse_revenue_per_unit():
    """Revenue and its unit are read across markup."""
    assert parse_revenue_per_unit(KASPA_PAGE) == (pytest.approx(0.000252), "Gh/s")
    assert parse_revenue_per_unit("Est. Revenue $1.25 per TH/s") == (pytest.approx(1.25), "TH/s")


@pytest.mark.parametrize("html", ["", None, "<p>No data</p>", "Est. Revenue $0 per TH/s"])
def test_parse_revenue_per_unit_missing(html):
    """Pages without a positive revenue figure give None."""
    assert parse_revenue_per_unit(html) is None


def test_estimate_normalizes_to_base_unit():
    """USD/day per Gh/s is divided down to USD/day per H/s."""
    with patch("httpx.get") as mock_get:
        mock_get.return_value = html_response(KASPA_PAGE)

        estimator = HashrateNoEstimator(base_url="https://hr.test", timeout=3.0)
        estimate = estimator.estimate("KAS")

        assert mock_get.call_args[0][0] == "https://hr.test/coins/kas"
        assert mock_get.call_args.kwargs["timeout"] == 3.0
        assert estimate.coin_key == "kas"
        assert estimate.unit_detected == "Gh/s"
        assert estimate.usd_per_day_per_base == pytest.approx(0.000252 / 1e9)


def test_estimate_unknown_unit_is_none():
    """Units outside the hash and sol families are not guessed."""
    with patch("httpx.get") as mock_get:
        mock_get.return_value = html_response("Est. Revenue $0.5 per Graph/s")
        assert HashrateNoEstimator(base_url="https://hr.test").estimate("grin") is None


def test_successful_estimates_are_cached_for_ten_minutes():
    """A second lookup inside the TTL does not hit the network."""
    clock = Clock()
    with patch("httpx.get") as mock_get:
        mock_get.return_value = html_response(KASPA_PAGE)
        estimator = HashrateNoEstimator(base_url="https://hr.test", clock=clock)

        first = estimator.estimate("kas")
        clock.now += 599
        assert estimator.estimate("kas") == first
        assert mock_get.call_count == 1

        clock.now += 2
        estimator.estimate("kas")
        assert mock_get.call_count == 2


def test_failures_are_cached_briefly():
    """Failed lookups are retried after a minute, not before."""
    clock = Clock()
    with patch("httpx.get") as mock_get:
        mock_get.side_effect = httpx.ConnectError("refused")
        estimator = HashrateNoEstimator(base_url="https://hr.test", clock=clock)

        assert estimator.estimate("kas") is None
        clock.now += 30
        assert estimator.estimate("kas") is None
        assert mock_get.call_count == 1

        clock.now += 31
        mock_get.side_effect = None
        mock_get.return_value = html_response(KASPA_PAGE)
        assert estimator.estimate("kas") is not None
        assert mock_get.call_count == 2


def test_clear_cache():
    """Clearing the cache forces a refetch."""
    with patch("httpx.get") as mock_get:
        mock_get.return_value = html_response(KASPA_PAGE)
        estimator = HashrateNoEstimator(base_url="https://hr.test")

        estimator.estimate("kas")
        estimator.clear_cache()
        estimator.estimate("kas")
        assert mock_get.call_count == 2


def test_prefetch_tries_key_then_symbol():
    """Coins are looked up by key first and by symbol when the key misses."""
    btc = make_coin("coin-btc", "BTC", key="bitcoin")
    bch = make_coin("coin-bch", "BCH")
    source = FakeEstimator({"BTC": 3e-12, "bch": 2e-12})

    estimates = prefetch_estimates(source, [btc, bch, btc], concurrency=2)

    assert set(estimates) == {"coin-btc", "coin-bch"}
    assert estimates["coin-btc"].usd_per_day_per_base == 3e-12
    assert sorted(source.requested) == ["BTC", "bch", "bitcoin"]


def test_prefetch_drops_failures():
    """Coins whose lookups raise or miss are absent from the result."""

    class ExplodingEstimator:
        def estimate(self, coin_key):
            raise RuntimeError("boom")

    coins = [make_coin("coin-kas", "KAS", algorithm="kheavyhash")]
    assert prefetch_estimates(ExplodingEstimator(), coins, concurrency=1) == {}
    assert prefetch_estimates(FakeEstimator(), coins, concurrency=1) == {}
    assert prefetch_estimates(FakeEstimator(), [], concurrency=1) == {}
