"""Catalog algorithm key -> payout provider algorithm key."""

import re

from profitability_engine.models.algorithms import ALGORITHM_CATALOG

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def normalize_provider_key(key: str | None) -> str:
    """NiceHash naming: uppercase alphanumerics only ("daggerhashimoto" -> "DAGGERHASHIMOTO")."""
    return _NON_ALNUM.sub("", str(key or "").strip().upper())


def _build_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for entry in ALGORITHM_CATALOG:
        catalog_key = entry.key.strip().lower()
        if not catalog_key:
            continue
        overrides[catalog_key] = normalize_provider_key(entry.provider_key or entry.key)
    return overrides


_PROVIDER_KEY_BY_CATALOG_KEY = _build_overrides()


def map_to_provider_key(catalog_key: str | None) -> str:
    """
    Translate a catalog algorithm key into the payout provider's key.

    Total and deterministic: unknown keys pass through normalized, so a missing
    rate-table entry is the only place an unknown algorithm is detected.
    """
    key = str(catalog_key or "").strip().lower()
    if not key:
        return ""
    return _PROVIDER_KEY_BY_CATALOG_KEY.get(key) or normalize_provider_key(key)
