"""In-process store used for local runs and tests."""

from __future__ import annotations

import copy
import threading
from datetime import datetime
from typing import Any, Iterable, Sequence

from profitability_engine.models.catalog import Coin, Device, VendorListing
from profitability_engine.models.snapshots import ProfitabilitySnapshot


class InMemoryStore:
    """Dict-backed SnapshotStore; snapshots are append-only like the real table."""

    def __init__(
        self,
        devices: Iterable[Device] = (),
        listings: Iterable[VendorListing] = (),
        coins: Iterable[Coin] = (),
        settings: dict[str, Any] | None = None,
    ) -> None:
        self.devices: list[Device] = list(devices)
        self.listings: list[VendorListing] = list(listings)
        self.coins: list[Coin] = list(coins)
        self.settings: dict[str, Any] = dict(settings or {})
        self.snapshots: list[ProfitabilitySnapshot] = []
        self._keys: set[tuple[str, datetime]] = set()
        self._lock = threading.Lock()

    def find_devices(self) -> list[Device]:
        return list(self.devices)

    def find_listings(self, device_id: str) -> list[VendorListing]:
        return [listing for listing in self.listings if listing.device_id == device_id]

    def find_coins(self) -> list[Coin]:
        return list(self.coins)

    def get_setting(self, key: str) -> Any | None:
        with self._lock:
            return copy.deepcopy(self.settings.get(key))

    def set_setting(self, key: str, value: Any) -> None:
        with self._lock:
            self.settings[key] = copy.deepcopy(value)

    def write_snapshots(self, records: Sequence[ProfitabilitySnapshot]) -> int:
        with self._lock:
            fresh = []
            seen = set(self._keys)
            for record in records:
                key = (record.device_id, record.computed_at)
                if key in seen:
                    continue
                seen.add(key)
                fresh.append(record)
            self.snapshots.extend(fresh)
            self._keys = seen
            return len(fresh)
