"""Lowest in-stock acquisition price across vendor listings."""

import logging
from typing import Iterable, NamedTuple, Optional

from profitability_engine.engine.fx import to_usd
from profitability_engine.engine.units import parse_magnitude
from profitability_engine.models.catalog import VendorListing
from profitability_engine.models.market import FxRateSet

log = logging.getLogger(__name__)


class OfferQuote(NamedTuple):
    price_usd: float
    shipping_usd: Optional[float]
    currency: str


def lowest_usd(
    listings: Iterable[VendorListing],
    rates: Optional[FxRateSet],
) -> Optional[OfferQuote]:
    """
    Cheapest in-stock listing converted to USD.

    Listings without a parseable price or whose currency cannot be converted
    are skipped. Shipping follows the winning listing.
    """
    best: Optional[OfferQuote] = None
    for listing in listings:
        if not listing.in_stock:
            continue
        price = parse_magnitude(listing.price)
        if price is None or price <= 0:
            continue
        price_usd = to_usd(price, listing.currency, rates)
        if price_usd is None:
            log.debug("Skipping %s listing for %s: no FX rate", listing.currency, listing.device_id)
            continue
        if best is not None and price_usd >= best.price_usd:
            continue

        shipping_usd = None
        shipping = parse_magnitude(listing.shipping_cost)
        if shipping is not None and shipping >= 0:
            shipping_usd = to_usd(shipping, listing.currency, rates)
        best = OfferQuote(price_usd=price_usd, shipping_usd=shipping_usd, currency=listing.currency)
    return best
