"""Per-coin revenue estimates scraped from hashrate.no coin pages, with caching."""

import logging
import math
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional, Protocol
from urllib.parse import quote

from profitability_engine.core.config import (
    get_coin_estimate_concurrency,
    get_hashrateno_base_url,
)
from profitability_engine.engine.http import fetch_text
from profitability_engine.models.catalog import Coin
from profitability_engine.models.market import CoinEstimate

log = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 10 * 60
NEGATIVE_TTL_SECONDS = 60

# "Est. Revenue ... $0.000252 ... per Gh/s", with markup and newlines in between
_REVENUE_PATTERN = re.compile(
    r"Est\.?\s*Revenue[\s\S]{0,600}?\$?\s*([0-9]+(?:\.[0-9]+)?)\s*[\s\S]{0,200}?"
    r"\bper\b[\s\S]{0,40}?(?:1\s*)?([A-Za-z0-9]+/[A-Za-z]+)\b",
    re.IGNORECASE,
)

_BASE_MULTIPLIERS = {
    "h/s": 1.0,
    "kh/s": 1e3,
    "mh/s": 1e6,
    "gh/s": 1e9,
    "th/s": 1e12,
    "ph/s": 1e15,
    "eh/s": 1e18,
    "sol/s": 1.0,
    "ksol/s": 1e3,
    "msol/s": 1e6,
    "gsol/s": 1e9,
}


class CoinEstimateSource(Protocol):
    def estimate(self, coin_key: str) -> Optional[CoinEstimate]:
        ...


def parse_revenue_per_unit(html: str) -> Optional[tuple[float, str]]:
    """Find the advertised USD/day revenue and the unit it is quoted per."""
    match = _REVENUE_PATTERN.search(html or "")
    if not match:
        return None
    try:
        revenue = float(match.group(1))
    except ValueError:
        return None
    unit = match.group(2).strip()
    if not math.isfinite(revenue) or revenue <= 0 or not unit:
        return None
    return revenue, unit


class HashrateNoEstimator:
    """
    Fetch per-coin USD/day-per-base-unit estimates.

    Results are cached in-process: successes for 10 minutes, failures for one
    minute so a flapping page is retried soon without hammering it.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._base_url = (base_url or get_hashrateno_base_url()).rstrip("/")
        self._timeout = timeout
        self._clock = clock
        self._cache: dict[str, tuple[float, Optional[CoinEstimate]]] = {}
        self._lock = threading.Lock()

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def _cached(self, coin: str) -> tuple[bool, Optional[CoinEstimate]]:
        with self._lock:
            entry = self._cache.get(coin)
            if entry is None:
                return False, None
            stored_at, estimate = entry
            ttl = CACHE_TTL_SECONDS if estimate is not None else NEGATIVE_TTL_SECONDS
            if self._clock() - stored_at > ttl:
                del self._cache[coin]
                return False, None
            return True, estimate

    def _remember(self, coin: str, estimate: Optional[CoinEstimate]) -> Optional[CoinEstimate]:
        with self._lock:
            self._cache[coin] = (self._clock(), estimate)
        return estimate

    def estimate(self, coin_key: str) -> Optional[CoinEstimate]:
        coin = (coin_key or "").strip().lower()
        if not coin:
            return None

        hit, cached = self._cached(coin)
        if hit:
            return cached

        try:
            html = fetch_text(f"{self._base_url}/coins/{quote(coin)}", timeout=self._timeout)
        except Exception as e:
            log.debug("hashrate.no lookup for %s failed: %s", coin, e)
            return self._remember(coin, None)

        parsed = parse_revenue_per_unit(html)
        if parsed is None:
            return self._remember(coin, None)
        revenue, unit = parsed

        multiplier = _BASE_MULTIPLIERS.get("".join(unit.split()).lower())
        if multiplier is None:
            return self._remember(coin, None)

        per_base = revenue / multiplier
        if not math.isfinite(per_base) or per_base <= 0:
            return self._remember(coin, None)

        return self._remember(
            coin,
            CoinEstimate(coin_key=coin, usd_per_day_per_base=per_base, unit_detected=unit),
        )


def prefetch_estimates(
    source: CoinEstimateSource,
    coins: Iterable[Coin],
    concurrency: Optional[int] = None,
) -> dict[str, CoinEstimate]:
    """
    Look up every unique coin once, trying its key then its symbol.

    Returns estimates keyed by coin id; coins without an estimate are absent.
    """
    unique = {coin.id: coin for coin in coins}
    if not unique:
        return {}

    def lookup(coin: Coin) -> Optional[CoinEstimate]:
        for identifier in (coin.key, coin.symbol):
            if not identifier:
                continue
            try:
                found = source.estimate(identifier)
            except Exception as e:
                log.warning("Coin estimate for %s failed: %s", identifier, e)
                found = None
            if found is not None:
                return found
        return None

    workers = concurrency or get_coin_estimate_concurrency()
    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        results = list(pool.map(lookup, unique.values()))

    return {
        coin_id: estimate
        for coin_id, estimate in zip(unique.keys(), results)
        if estimate is not None
    }
