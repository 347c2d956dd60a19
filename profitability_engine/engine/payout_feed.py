"""Hashrate-rental market payout rates (NiceHash)."""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from profitability_engine.core.config import get_nicehash_base_url
from profitability_engine.engine.algorithms import normalize_provider_key
from profitability_engine.engine.errors import PayoutFeedError
from profitability_engine.engine.http import fetch_json
from profitability_engine.models.market import PayoutRateTable

log = logging.getLogger(__name__)


class PayoutRateFeed(Protocol):
    """Source of per-algorithm payout rates, fetched once per run."""

    name: str

    def fetch_all(self) -> PayoutRateTable:
        ...


def parse_nicehash_paying(data: Any) -> dict[str, float]:
    """Extract {ALGORITHM: paying} from a simplemultialgo/info body."""
    if not isinstance(data, dict) or not isinstance(data.get("miningAlgorithms"), list):
        raise PayoutFeedError("NiceHash response has no miningAlgorithms list")

    rates: dict[str, float] = {}
    for row in data["miningAlgorithms"]:
        if not isinstance(row, dict):
            continue
        key = normalize_provider_key(row.get("algorithm"))
        try:
            paying = float(row.get("paying"))
        except (TypeError, ValueError):
            continue
        if not key or not math.isfinite(paying) or paying <= 0:
            continue
        rates[key] = paying
    return rates


class NiceHashPayoutFeed:
    """
    NiceHash public multi-algorithm info.

    `paying` is BTC per reference hashrate unit per day. There is no local
    fallback: any failure surfaces as PayoutFeedError.
    """

    name = "nicehash"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._base_url = (base_url or get_nicehash_base_url()).rstrip("/")
        self._timeout = timeout
        self._clock = clock

    def fetch_all(self) -> PayoutRateTable:
        url = f"{self._base_url}/main/api/v2/public/simplemultialgo/info"
        try:
            data = fetch_json(url, timeout=self._timeout)
        except Exception as e:
            raise PayoutFeedError(f"NiceHash request failed: {e}") from e

        rates = parse_nicehash_paying(data)
        if not rates:
            raise PayoutFeedError("NiceHash returned no positive payout rates")

        log.info("Fetched %d NiceHash payout rates", len(rates))
        return PayoutRateTable(rates=rates, source=self.name, fetched_at=self._clock())
