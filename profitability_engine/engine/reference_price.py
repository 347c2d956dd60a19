"""Reference-coin (BTC) USD price with a durable last-known-good fallback."""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

from profitability_engine.core.config import REFERENCE_PRICE_SETTINGS_KEY
from profitability_engine.engine.errors import PriceUnavailable
from profitability_engine.engine.http import fetch_json
from profitability_engine.models.market import ReferencePrice
from profitability_engine.storage.base import SnapshotStore

log = logging.getLogger(__name__)


def _positive(value: Any, provider: str) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {provider} price: {value!r}") from None
    if not math.isfinite(price) or price <= 0:
        raise ValueError(f"Invalid {provider} price: {value!r}")
    return price


def from_coingecko() -> float:
    data = fetch_json("https://api.coingecko.com/api/v3/simple/price?ids=bitcoin&vs_currencies=usd")
    return _positive((data.get("bitcoin") or {}).get("usd"), "CoinGecko")


def from_binance() -> float:
    data = fetch_json("https://api.binance.com/api/v3/ticker/price?symbol=BTCUSDT")
    return _positive(data.get("price"), "Binance")


def from_coinbase() -> float:
    data = fetch_json("https://api.coinbase.com/v2/prices/BTC-USD/spot")
    return _positive((data.get("data") or {}).get("amount"), "Coinbase")


def from_kraken() -> float:
    data = fetch_json("https://api.kraken.com/0/public/Ticker?pair=XBTUSD")
    result = data.get("result") or {}
    # Kraken keys the pair as "XXBTZUSD"; take whichever pair came back
    pair = next(iter(result.values()), {})
    last_trade = (pair.get("c") or [None])[0]
    return _positive(last_trade, "Kraken")


@dataclass(frozen=True)
class PriceProvider:
    name: str
    fetch: Callable[[], float]


DEFAULT_PROVIDERS: tuple[PriceProvider, ...] = (
    PriceProvider("CoinGecko", from_coingecko),
    PriceProvider("Binance", from_binance),
    PriceProvider("Coinbase", from_coinbase),
    PriceProvider("Kraken", from_kraken),
)


class PriceFallbackRepository:
    """Last-known-good reference price kept in the durable settings store."""

    def __init__(self, store: SnapshotStore, key: str = REFERENCE_PRICE_SETTINGS_KEY):
        self._store = store
        self._key = key

    def save(self, price: ReferencePrice) -> None:
        fetched_at = price.fetched_at or datetime.now(timezone.utc)
        self._store.set_setting(
            self._key,
            {"usd": price.usd, "source": price.source, "fetchedAt": fetched_at.isoformat()},
        )

    def load(self) -> Optional[ReferencePrice]:
        """Stored price, or None when the slot is empty or unusable."""
        value = self._store.get_setting(self._key)
        if not isinstance(value, dict):
            return None
        try:
            usd = float(value.get("usd"))
        except (TypeError, ValueError):
            return None
        if not math.isfinite(usd) or usd <= 0:
            return None

        fetched_at = None
        raw_fetched_at = value.get("fetchedAt")
        if isinstance(raw_fetched_at, str):
            try:
                fetched_at = datetime.fromisoformat(raw_fetched_at.replace("Z", "+00:00"))
            except ValueError:
                fetched_at = None

        return ReferencePrice(
            usd=usd,
            source=str(value.get("source") or "Stored"),
            fetched_at=fetched_at,
            is_fallback=True,
        )


class ReferencePriceResolver:
    """
    Resolve the reference USD price.

    Live providers are tried in priority order and the first success wins and
    is persisted. When every provider fails the stored last-known-good value is
    returned as-is. Only when that is missing too does resolve() raise.
    """

    def __init__(
        self,
        repository: PriceFallbackRepository,
        providers: Sequence[PriceProvider] = DEFAULT_PROVIDERS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._repository = repository
        self._providers = tuple(providers)
        self._clock = clock

    def fetch_live(self) -> ReferencePrice:
        errors: list[str] = []
        for provider in self._providers:
            try:
                usd = provider.fetch()
                return ReferencePrice(usd=usd, source=provider.name, fetched_at=self._clock())
            except Exception as e:
                log.warning("Reference price provider %s failed: %s", provider.name, e)
                errors.append(f"{provider.name}: {e}")
        raise PriceUnavailable("All reference price providers failed: " + "; ".join(errors))

    def resolve(self) -> ReferencePrice:
        try:
            price = self.fetch_live()
        except PriceUnavailable as live_error:
            stored = self._repository.load()
            if stored is None:
                raise PriceUnavailable(f"Reference price unavailable ({live_error})") from live_error
            log.warning(
                "Using stored reference price %.2f from %s (fetched %s)",
                stored.usd,
                stored.source,
                stored.fetched_at,
            )
            return stored

        try:
            self._repository.save(price)
        except Exception:
            log.exception("Failed to persist reference price; continuing with live value")
        return price
