"""FX conversion and lowest-offer selection tests."""

import pytest

from profitability_engine.engine.fx import StaticFxProvider, from_usd, normalize_rates, to_usd
from profitability_engine.engine.offers import lowest_usd
from profitability_engine.models.market import FxRateSet
from tests.factories import make_listing


RATES = FxRateSet(rates={"USD": 1.0, "EUR": 0.9, "GBP": 0.8})


def test_normalize_rates_pins_usd_and_drops_bad_entries():
    """Codes are uppercased; non-positive and non-numeric rates are dropped."""
    rates = normalize_rates({"eur": "0.9", "JPY": 0, "XXX": "n/a", "usd": 3.0})
    assert rates == {"EUR": 0.9, "USD": 1.0}


def test_static_provider_returns_copy():
    """Callers cannot mutate the provider's table."""
    provider = StaticFxProvider({"EUR": 0.9})
    first = provider.latest_rates()
    first.rates["EUR"] = 5.0
    assert provider.latest_rates().rates["EUR"] == 0.9


def test_to_usd_divides_by_units_per_usd():
    """Rates are units of currency per one USD."""
    assert to_usd(90.0, "EUR", RATES) == pytest.approx(100.0)
    assert to_usd(80.0, "gbp", RATES) == pytest.approx(100.0)
    assert to_usd(42.0, "USD", None) == 42.0


def test_from_usd_multiplies():
    """Converting back out of USD applies the same rate."""
    assert from_usd(100.0, "EUR", RATES) == pytest.approx(90.0)


@pytest.mark.parametrize("currency", ["JPY", "", None])
def test_unknown_currency_is_none(currency):
    """Unknown currencies never convert."""
    assert to_usd(10.0, currency, RATES) is None
    assert from_usd(10.0, currency, RATES) is None


def test_lowest_usd_compares_after_conversion():
    """The cheapest listing is picked in USD, not in listing currency."""
    listings = [
        make_listing(price="3100", currency="USD"),
        make_listing(price="2700", currency="EUR"),  # $3000
        make_listing(price="2480", currency="GBP"),  # $3100
    ]
    quote = lowest_usd(listings, RATES)
    assert quote.price_usd == pytest.approx(3000.0)
    assert quote.currency == "EUR"


def test_lowest_usd_skips_unusable_listings():
    """Out-of-stock, unparsable, non-positive and unconvertible listings are ignored."""
    listings = [
        make_listing(price="1", in_stock=False),
        make_listing(price="call us"),
        make_listing(price="0"),
        make_listing(price="-10"),
        make_listing(price="5", currency="JPY"),
        make_listing(price="1,999.50", shipping_cost="45"),
    ]
    quote = lowest_usd(listings, RATES)
    assert quote.price_usd == pytest.approx(1999.5)
    assert quote.shipping_usd == pytest.approx(45.0)


def test_lowest_usd_shipping_follows_winner():
    """Shipping comes from the winning listing, converted to USD."""
    listings = [
        make_listing(price="2000", currency="USD", shipping_cost="10"),
        make_listing(price="1800", currency="EUR", shipping_cost="90"),
    ]
    quote = lowest_usd(listings, RATES)
    assert quote.price_usd == pytest.approx(2000.0)
    assert quote.shipping_usd == pytest.approx(10.0)

    cheaper = lowest_usd(listings[1:], RATES)
    assert cheaper.shipping_usd == pytest.approx(100.0)


def test_lowest_usd_no_listings():
    """No usable listing means no quote."""
    assert lowest_usd([], RATES) is None
    assert lowest_usd([make_listing(in_stock=False)], RATES) is None
