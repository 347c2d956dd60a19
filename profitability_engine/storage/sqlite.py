"""SQLite-backed store.

Implements the ``SnapshotStore`` protocol plus ``FxProvider`` so a single file
holds the catalog, the durable settings slot, FX rate snapshots and the
append-only snapshot history. ``:memory:`` is accepted for tests.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Sequence

from profitability_engine.engine.fx import normalize_rates
from profitability_engine.models.catalog import AlgorithmRef, Coin, Device, VendorListing
from profitability_engine.models.market import FxRateSet
from profitability_engine.models.snapshots import ProfitabilitySnapshot, SnapshotBreakdown

SCHEMA = """
CREATE TABLE IF NOT EXISTS devices (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    hashrate TEXT,
    hashrate_unit TEXT NOT NULL DEFAULT '',
    power_w REAL,
    algorithm_key TEXT NOT NULL,
    algorithm_name TEXT NOT NULL DEFAULT '',
    efficiency TEXT,
    efficiency_unit TEXT,
    coin_ids TEXT NOT NULL DEFAULT '[]'
);
CREATE TABLE IF NOT EXISTS vendor_listings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    device_id TEXT NOT NULL,
    price TEXT,
    currency TEXT NOT NULL DEFAULT 'USD',
    in_stock INTEGER NOT NULL DEFAULT 1,
    shipping_cost TEXT
);
CREATE INDEX IF NOT EXISTS ix_vendor_listings_device_id ON vendor_listings(device_id);
CREATE TABLE IF NOT EXISTS coins (
    id TEXT PRIMARY KEY,
    key TEXT NOT NULL,
    symbol TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    algorithm_key TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS fx_rate_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    fetched_at TEXT NOT NULL,
    rates TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS profitability_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    device_id TEXT NOT NULL,
    computed_at TEXT NOT NULL,
    electricity_usd_per_kwh REAL NOT NULL,
    revenue_usd_per_day REAL NOT NULL,
    electricity_usd_per_day REAL NOT NULL,
    profit_usd_per_day REAL NOT NULL,
    lowest_price_usd REAL,
    roi_days INTEGER,
    best_coin_id TEXT,
    best_coin_confidence INTEGER,
    best_coin_reason TEXT,
    breakdown TEXT NOT NULL,
    UNIQUE(device_id, computed_at)
);
CREATE INDEX IF NOT EXISTS ix_profitability_snapshots_computed_at
ON profitability_snapshots(computed_at);
"""


def _iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat()


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


class SQLiteStore:
    """Durable store on a single sqlite3 connection guarded by a lock."""

    def __init__(self, path: str | Path = ":memory:") -> None:
        path = str(path)
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        with self._session() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ── Catalog seeding ────────────────────────────────────

    def upsert_device(self, device: Device) -> None:
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO devices (id, name, hashrate, hashrate_unit, power_w, algorithm_key,
                                     algorithm_name, efficiency, efficiency_unit, coin_ids)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    hashrate = excluded.hashrate,
                    hashrate_unit = excluded.hashrate_unit,
                    power_w = excluded.power_w,
                    algorithm_key = excluded.algorithm_key,
                    algorithm_name = excluded.algorithm_name,
                    efficiency = excluded.efficiency,
                    efficiency_unit = excluded.efficiency_unit,
                    coin_ids = excluded.coin_ids
                """,
                (
                    device.id,
                    device.name,
                    _text(device.hashrate),
                    device.hashrate_unit,
                    device.power_w,
                    device.algorithm.key,
                    device.algorithm.name,
                    _text(device.efficiency),
                    device.efficiency_unit,
                    json.dumps(device.coin_ids),
                ),
            )

    def add_listing(self, listing: VendorListing) -> None:
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO vendor_listings (device_id, price, currency, in_stock, shipping_cost)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    listing.device_id,
                    _text(listing.price),
                    listing.currency,
                    1 if listing.in_stock else 0,
                    _text(listing.shipping_cost),
                ),
            )

    def upsert_coin(self, coin: Coin) -> None:
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO coins (id, key, symbol, name, algorithm_key) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    key = excluded.key,
                    symbol = excluded.symbol,
                    name = excluded.name,
                    algorithm_key = excluded.algorithm_key
                """,
                (coin.id, coin.key, coin.symbol, coin.name, coin.algorithm_key),
            )

    def record_fx_rates(self, rates: dict[str, float], fetched_at: datetime | None = None) -> None:
        moment = fetched_at or datetime.now(timezone.utc)
        with self._session() as conn:
            conn.execute(
                "INSERT INTO fx_rate_snapshots (fetched_at, rates) VALUES (?, ?)",
                (_iso(moment), json.dumps(rates)),
            )

    # ── SnapshotStore ──────────────────────────────────────

    def find_devices(self) -> list[Device]:
        with self._session() as conn:
            rows = conn.execute("SELECT * FROM devices ORDER BY id").fetchall()
        return [
            Device(
                id=row["id"],
                name=row["name"],
                hashrate=row["hashrate"],
                hashrate_unit=row["hashrate_unit"],
                power_w=row["power_w"],
                algorithm=AlgorithmRef(key=row["algorithm_key"], name=row["algorithm_name"]),
                efficiency=row["efficiency"],
                efficiency_unit=row["efficiency_unit"],
                coin_ids=json.loads(row["coin_ids"] or "[]"),
            )
            for row in rows
        ]

    def find_listings(self, device_id: str) -> list[VendorListing]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM vendor_listings WHERE device_id = ? ORDER BY id", (device_id,)
            ).fetchall()
        return [
            VendorListing(
                device_id=row["device_id"],
                price=row["price"],
                currency=row["currency"],
                in_stock=bool(row["in_stock"]),
                shipping_cost=row["shipping_cost"],
            )
            for row in rows
        ]

    def find_coins(self) -> list[Coin]:
        with self._session() as conn:
            rows = conn.execute("SELECT * FROM coins ORDER BY id").fetchall()
        return [Coin(**dict(row)) for row in rows]

    def get_setting(self, key: str) -> Any | None:
        with self._session() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return None if row is None else json.loads(row["value"])

    def set_setting(self, key: str, value: Any) -> None:
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, json.dumps(value), _iso(datetime.now(timezone.utc))),
            )

    def write_snapshots(self, records: Sequence[ProfitabilitySnapshot]) -> int:
        rows = [
            (
                r.device_id,
                _iso(r.computed_at),
                r.electricity_usd_per_kwh,
                r.revenue_usd_per_day,
                r.electricity_usd_per_day,
                r.profit_usd_per_day,
                r.lowest_price_usd,
                r.roi_days,
                r.best_coin_id,
                r.best_coin_confidence,
                r.best_coin_reason,
                r.breakdown.model_dump_json(),
            )
            for r in records
        ]
        # one transaction: either the whole cohort lands or nothing does
        with self._session() as conn:
            before = conn.total_changes
            conn.executemany(
                """
                INSERT OR IGNORE INTO profitability_snapshots (
                    device_id, computed_at, electricity_usd_per_kwh, revenue_usd_per_day,
                    electricity_usd_per_day, profit_usd_per_day, lowest_price_usd, roi_days,
                    best_coin_id, best_coin_confidence, best_coin_reason, breakdown
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
            return conn.total_changes - before

    def find_snapshots(self, device_id: str | None = None) -> list[ProfitabilitySnapshot]:
        """Snapshot history, oldest first."""
        query = "SELECT * FROM profitability_snapshots"
        params: tuple = ()
        if device_id is not None:
            query += " WHERE device_id = ?"
            params = (device_id,)
        with self._session() as conn:
            rows = conn.execute(query + " ORDER BY computed_at, device_id", params).fetchall()
        return [
            ProfitabilitySnapshot(
                device_id=row["device_id"],
                computed_at=datetime.fromisoformat(row["computed_at"]),
                electricity_usd_per_kwh=row["electricity_usd_per_kwh"],
                revenue_usd_per_day=row["revenue_usd_per_day"],
                electricity_usd_per_day=row["electricity_usd_per_day"],
                profit_usd_per_day=row["profit_usd_per_day"],
                lowest_price_usd=row["lowest_price_usd"],
                roi_days=row["roi_days"],
                best_coin_id=row["best_coin_id"],
                best_coin_confidence=row["best_coin_confidence"],
                best_coin_reason=row["best_coin_reason"],
                breakdown=SnapshotBreakdown.model_validate_json(row["breakdown"]),
            )
            for row in rows
        ]

    # ── FxProvider ─────────────────────────────────────────

    def latest_rates(self) -> FxRateSet:
        with self._session() as conn:
            row = conn.execute(
                "SELECT fetched_at, rates FROM fx_rate_snapshots ORDER BY fetched_at DESC, id DESC LIMIT 1"
            ).fetchone()
        if row is None:
            return FxRateSet(rates={"USD": 1.0})
        raw = json.loads(row["rates"])
        return FxRateSet(
            rates=normalize_rates(raw if isinstance(raw, dict) else {}),
            fetched_at=datetime.fromisoformat(row["fetched_at"]),
        )
