"""Reference price resolution and last-known-good fallback tests."""

from unittest.mock import patch, Mock

import httpx
import pytest

from profitability_engine.core.config import REFERENCE_PRICE_SETTINGS_KEY
from profitability_engine.engine.errors import PriceUnavailable
from profitability_engine.engine.reference_price import (
    PriceFallbackRepository,
    ReferencePriceResolver,
)
from profitability_engine.storage.memory import InMemoryStore
from tests.factories import RUN_AT, failing_provider, price_provider


def make_resolver(store, providers=None):
    return ReferencePriceResolver(
        PriceFallbackRepository(store),
        providers=providers if providers is not None else [price_provider(61000.0, "Live")],
        clock=lambda: RUN_AT,
    )


def test_resolve_live_persists_value():
    """A live price is returned and written to the settings slot."""
    store = InMemoryStore()
    price = make_resolver(store).resolve()

    assert price.usd == 61000.0
    assert price.source == "Live"
    assert price.is_fallback is False
    assert store.settings[REFERENCE_PRICE_SETTINGS_KEY] == {
        "usd": 61000.0,
        "source": "Live",
        "fetchedAt": RUN_AT.isoformat(),
    }


def test_resolve_first_successful_provider_wins():
    """Providers are tried in order until one succeeds."""
    store = InMemoryStore()
    price = make_resolver(
        store, [failing_provider("A"), price_provider(62000.0, "B"), price_provider(1.0, "C")]
    ).resolve()
    assert (price.usd, price.source) == (62000.0, "B")


def test_resolve_falls_back_to_stored_value_unmodified():
    """When every provider fails the stored value comes back as-is."""
    stored = {"usd": 58000.5, "source": "Binance", "fetchedAt": "2026-10-17T05:00:00+00:00"}
    store = InMemoryStore(settings={REFERENCE_PRICE_SETTINGS_KEY: stored})

    price = make_resolver(store, [failing_provider("A"), failing_provider("B")]).resolve()

    assert price.usd == 58000.5
    assert price.source == "Binance"
    assert price.is_fallback is True
    assert price.fetched_at.isoformat() == "2026-10-17T05:00:00+00:00"
    # fallback reads never rewrite the slot
    assert store.settings[REFERENCE_PRICE_SETTINGS_KEY] == stored


def test_resolve_fails_without_any_usable_price():
    """No live price and no stored price raises PriceUnavailable."""
    with pytest.raises(PriceUnavailable):
        make_resolver(InMemoryStore(), [failing_provider()]).resolve()


@pytest.mark.parametrize("stored", [{"usd": 0, "source": "x"}, {"usd": "nope"}, "60000", None])
def test_resolve_rejects_unusable_stored_values(stored):
    """A stored price that is not a positive number is not a fallback."""
    store = InMemoryStore(settings={REFERENCE_PRICE_SETTINGS_KEY: stored})
    with pytest.raises(PriceUnavailable):
        make_resolver(store, [failing_provider()]).resolve()


def test_persistence_failure_does_not_fail_resolve():
    """Saving the fresh price is best-effort."""

    class BrokenSettingsStore(InMemoryStore):
        def set_setting(self, key, value):
            raise RuntimeError("disk full")

    store = BrokenSettingsStore(settings={REFERENCE_PRICE_SETTINGS_KEY: {"usd": 50000, "source": "Old"}})
    price = make_resolver(store).resolve()

    assert price.usd == 61000.0
    # previous value is still intact because the new write never landed
    assert store.settings[REFERENCE_PRICE_SETTINGS_KEY] == {"usd": 50000, "source": "Old"}


def test_default_providers_parse_exchange_payloads():
    """The default provider chain reads CoinGecko first."""
    with patch("httpx.get") as mock_get:
        response = Mock()
        response.raise_for_status = Mock()
        response.json = Mock(return_value={"bitcoin": {"usd": 95000.5}})
        mock_get.return_value = response

        store = InMemoryStore()
        price = ReferencePriceResolver(PriceFallbackRepository(store)).resolve()

        assert price.usd == 95000.5
        assert price.source == "CoinGecko"
        assert "coingecko" in mock_get.call_args[0][0]
        assert mock_get.call_args.kwargs["timeout"] > 0


def test_default_providers_skip_to_kraken():
    """Bad payloads and HTTP errors fall through to the next exchange."""
    with patch("httpx.get") as mock_get:

        def mock_response(url, **kwargs):
            response = Mock()
            response.raise_for_status = Mock()

            if "coingecko" in url:
                response.json = Mock(return_value={"bitcoin": {"usd": 0}})
            elif "binance" in url:
                response.raise_for_status = Mock(
                    side_effect=httpx.HTTPStatusError(
                        "451 Unavailable", request=Mock(), response=Mock()
                    )
                )
            elif "coinbase" in url:
                response.json = Mock(return_value={"data": {}})
            elif "kraken" in url:
                response.json = Mock(
                    return_value={"result": {"XXBTZUSD": {"c": ["64250.10000", "0.01"]}}}
                )

            return response

        mock_get.side_effect = mock_response

        price = ReferencePriceResolver(PriceFallbackRepository(InMemoryStore())).resolve()

        assert price.usd == 64250.1
        assert price.source == "Kraken"


def test_timeout_degrades_to_fallback():
    """A timed-out exchange uses the stored price instead of failing."""
    store = InMemoryStore(settings={REFERENCE_PRICE_SETTINGS_KEY: {"usd": 57000, "source": "Coinbase"}})
    with patch("httpx.get") as mock_get:
        mock_get.side_effect = httpx.ReadTimeout("timed out")

        price = ReferencePriceResolver(PriceFallbackRepository(store)).resolve()

        assert price.usd == 57000
        assert price.source == "Coinbase"
        assert price.is_fallback is True
