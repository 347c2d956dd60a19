"""SnapshotStore protocol - the only storage shapes the engine relies on."""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from profitability_engine.models.catalog import Coin, Device, VendorListing
from profitability_engine.models.snapshots import ProfitabilitySnapshot


class SnapshotStore(Protocol):
    """Catalog reads, the settings slot and the append-only snapshot table."""

    # ── Catalog ────────────────────────────────────────────

    def find_devices(self) -> list[Device]:
        ...

    def find_listings(self, device_id: str) -> list[VendorListing]:
        ...

    def find_coins(self) -> list[Coin]:
        ...

    # ── Settings ───────────────────────────────────────────

    def get_setting(self, key: str) -> Any | None:
        ...

    def set_setting(self, key: str, value: Any) -> None:
        """Upsert a JSON-serializable value (last write wins)."""
        ...

    # ── Snapshots ──────────────────────────────────────────

    def write_snapshots(self, records: Sequence[ProfitabilitySnapshot]) -> int:
        """Append records atomically; existing (device_id, computed_at) rows are
        left untouched. Returns the number of rows inserted."""
        ...
