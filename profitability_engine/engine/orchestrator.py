"""Snapshot run orchestration."""

import logging
import math
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from profitability_engine.core.config import (
    get_baseline_electricity_usd_per_kwh,
    get_hosting_usd_per_day,
    get_pool_fee_pct,
    get_snapshot_bucket,
)
from profitability_engine.engine.algorithms import map_to_provider_key
from profitability_engine.engine.auth import TriggerCredentials, authorize
from profitability_engine.engine.best_coin import InputQuality, select_best_coin
from profitability_engine.engine.coin_estimates import CoinEstimateSource, prefetch_estimates
from profitability_engine.engine.economics import cost_breakdown, payback_date, roi_days
from profitability_engine.engine.errors import (
    DeviceSkipped,
    EngineError,
    PersistenceFailure,
    SharedInputUnavailable,
    Unauthorized,
)
from profitability_engine.engine.fx import FxProvider
from profitability_engine.engine.offers import lowest_usd
from profitability_engine.engine.payout_feed import PayoutRateFeed
from profitability_engine.engine.reference_price import ReferencePriceResolver
from profitability_engine.engine.revenue import compute_usd_per_day
from profitability_engine.engine.units import to_base_rate, to_joules_per_th
from profitability_engine.engine.writer import SnapshotWriter
from profitability_engine.models.assumptions import EnginePolicy, get_default_policy
from profitability_engine.models.catalog import Coin, Device
from profitability_engine.models.market import (
    CoinEstimate,
    FxRateSet,
    PayoutRateTable,
    ReferencePrice,
)
from profitability_engine.models.responses import RunSummaryResponse
from profitability_engine.models.snapshots import (
    BreakdownBestCoin,
    BreakdownDaily,
    BreakdownInputs,
    BreakdownMeta,
    BreakdownRevenue,
    BreakdownSpeed,
    BreakdownTotals,
    ProfitabilitySnapshot,
    SnapshotBreakdown,
)
from profitability_engine.storage.base import SnapshotStore

log = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    AUTHORIZING = "authorizing"
    FETCHING_SHARED_INPUTS = "fetching_shared_inputs"
    PER_DEVICE_LOOP = "per_device_loop"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class RunParameters:
    computed_at: datetime
    started_at: datetime
    bucket: str
    electricity_usd_per_kwh: float
    pool_fee_pct: float
    hosting_usd_per_day: float


@dataclass
class SharedInputs:
    """Run-wide inputs; read-only once the device loop starts."""

    payout: PayoutRateTable
    price: ReferencePrice
    fx: FxRateSet
    devices: list[Device]
    coins: list[Coin]
    estimates: dict[str, CoinEstimate] = field(default_factory=dict)
    payout_coin: Optional[Coin] = None


@dataclass
class RunResult:
    state: RunState
    summary: Optional[RunSummaryResponse] = None
    error: Optional[EngineError] = None
    snapshots: list[ProfitabilitySnapshot] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state == RunState.COMPLETED


def _dec(value: float, dp: int) -> float:
    if value is None or not math.isfinite(value):
        return 0.0
    return round(value, dp)


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def bucket_timestamp(moment: datetime, bucket: str) -> datetime:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    if bucket == "hour":
        return moment.replace(minute=0, second=0, microsecond=0)
    return moment


class SnapshotOrchestrator:
    """
    Builds one profitability snapshot per catalog device.

    Run-wide inputs (payout rates, reference price, FX rates) are fetched once;
    if any is missing the run fails before any per-device work. Devices that
    cannot be computed are skipped and counted, and the surviving snapshots are
    written in one batch that shares a single computed_at.
    """

    def __init__(
        self,
        store: SnapshotStore,
        payout_feed: PayoutRateFeed,
        price_resolver: ReferencePriceResolver,
        fx_provider: FxProvider,
        coin_estimator: Optional[CoinEstimateSource] = None,
        policy: Optional[EnginePolicy] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._store = store
        self._payout_feed = payout_feed
        self._price_resolver = price_resolver
        self._fx_provider = fx_provider
        self._coin_estimator = coin_estimator
        self._policy = policy or get_default_policy()
        self._clock = clock
        self._writer = SnapshotWriter(store)
        self.state = RunState.IDLE

    # ── Entry point ────────────────────────────────────────

    def run(
        self,
        credentials: TriggerCredentials,
        device_ids: Optional[Sequence[str]] = None,
        computed_at: Optional[datetime] = None,
        electricity_usd_per_kwh: Optional[float] = None,
        pool_fee_pct: Optional[float] = None,
        hosting_usd_per_day: Optional[float] = None,
    ) -> RunResult:
        started = time.monotonic()
        self.state = RunState.AUTHORIZING
        try:
            authorize(credentials)
        except Unauthorized as e:
            log.warning("Rejected snapshot trigger")
            return self._fail(e)

        params = self._parameters(computed_at, electricity_usd_per_kwh, pool_fee_pct, hosting_usd_per_day)
        log.info(
            "Snapshot run starting for %s (electricity $%.5f/kWh)",
            params.computed_at.isoformat(),
            params.electricity_usd_per_kwh,
        )

        self.state = RunState.FETCHING_SHARED_INPUTS
        try:
            inputs = self._fetch_shared_inputs(device_ids, params)
        except SharedInputUnavailable as e:
            log.error("Snapshot run aborted: %s", e)
            return self._fail(e)

        self.state = RunState.PER_DEVICE_LOOP
        snapshots, skip_reasons, errors = self._compute_all(inputs, params)

        self.state = RunState.FINALIZING
        try:
            written = self._writer.write(snapshots)
        except PersistenceFailure as e:
            return self._fail(e)

        self.state = RunState.COMPLETED
        duration_ms = int((time.monotonic() - started) * 1000)
        skipped = sum(skip_reasons.values())
        log.info(
            "Snapshot run finished: %d devices, %d written, %d skipped in %d ms",
            len(inputs.devices),
            written,
            skipped,
            duration_ms,
        )

        summary = RunSummaryResponse(
            computed_at=params.computed_at.isoformat().replace("+00:00", "Z"),
            bucket=params.bucket,
            duration_ms=duration_ms,
            devices_total=len(inputs.devices),
            snapshots_written=written,
            skipped=skipped,
            reference_price_usd=inputs.price.usd,
            reference_price_source=inputs.price.source,
            reference_price_is_fallback=inputs.price.is_fallback,
            electricity_usd_per_kwh=params.electricity_usd_per_kwh,
            pool_fee_pct=params.pool_fee_pct,
            hosting_usd_per_day=params.hosting_usd_per_day,
            skip_reasons=dict(skip_reasons),
            errors=errors,
            device_ids_computed=list(device_ids) if device_ids else None,
        )
        return RunResult(state=self.state, summary=summary, snapshots=snapshots)

    def _fail(self, error: EngineError) -> RunResult:
        self.state = RunState.FAILED
        return RunResult(state=self.state, error=error)

    def _parameters(
        self,
        computed_at: Optional[datetime],
        electricity_usd_per_kwh: Optional[float],
        pool_fee_pct: Optional[float],
        hosting_usd_per_day: Optional[float],
    ) -> RunParameters:
        bucket = get_snapshot_bucket()
        started_at = bucket_timestamp(self._clock(), "none")
        if computed_at is not None:
            moment = bucket_timestamp(computed_at, "none")
        else:
            moment = bucket_timestamp(started_at, bucket)

        electricity = _finite_or_none(electricity_usd_per_kwh)
        if electricity is None or electricity < 0:
            electricity = get_baseline_electricity_usd_per_kwh()

        fee = _finite_or_none(pool_fee_pct)
        fee = get_pool_fee_pct() if fee is None else min(100.0, max(0.0, round(fee, 3)))

        hosting = _finite_or_none(hosting_usd_per_day)
        hosting = get_hosting_usd_per_day() if hosting is None else max(0.0, hosting)

        return RunParameters(
            computed_at=moment,
            started_at=started_at,
            bucket=bucket if computed_at is None else "none",
            electricity_usd_per_kwh=electricity,
            pool_fee_pct=fee,
            hosting_usd_per_day=hosting,
        )

    # ── Shared inputs ──────────────────────────────────────

    def _fetch_shared_inputs(
        self,
        device_ids: Optional[Sequence[str]],
        params: RunParameters,
    ) -> SharedInputs:
        # the two upstream calls are independent, so issue them together
        with ThreadPoolExecutor(max_workers=2) as pool:
            payout_future = pool.submit(self._payout_feed.fetch_all)
            price_future = pool.submit(self._price_resolver.resolve)
            try:
                payout = payout_future.result()
            except Exception as e:
                raise SharedInputUnavailable("payout rates", e) from e
            try:
                price = price_future.result()
            except Exception as e:
                raise SharedInputUnavailable("reference price", e) from e

        if price.is_fallback:
            log.warning("Reference price is the stored fallback from %s", price.source)

        try:
            fx = self._fx_provider.latest_rates()
        except Exception as e:
            raise SharedInputUnavailable("fx rates", e) from e

        try:
            devices = self._store.find_devices()
            coins = self._store.find_coins()
        except Exception as e:
            raise SharedInputUnavailable("device catalog", e) from e

        if not devices:
            log.warning("Device catalog is empty; nothing to snapshot")

        if device_ids:
            wanted = set(device_ids)
            devices = [d for d in devices if d.id in wanted]

        inputs = SharedInputs(
            payout=payout,
            price=price,
            fx=fx,
            devices=devices,
            coins=coins,
            payout_coin=self._find_payout_coin(coins),
        )

        if self._coin_estimator is not None:
            unique: dict[str, Coin] = {}
            for device in devices:
                for coin in self._candidates(device, coins):
                    unique.setdefault(coin.id, coin)
            inputs.estimates = prefetch_estimates(self._coin_estimator, unique.values())
            log.info("Prefetched estimates for %d of %d candidate coins", len(inputs.estimates), len(unique))

        return inputs

    def _find_payout_coin(self, coins: Iterable[Coin]) -> Optional[Coin]:
        wanted = self._policy.reference_coin_key.lower()
        for coin in coins:
            if coin.key.lower() == wanted or coin.symbol.lower() == wanted:
                return coin
        return None

    def _candidates(self, device: Device, coins: Sequence[Coin]) -> list[Coin]:
        if device.coin_ids:
            by_id = {coin.id: coin for coin in coins}
            chosen = [by_id[coin_id] for coin_id in device.coin_ids if coin_id in by_id]
        else:
            algorithm_key = device.algorithm.key.strip().lower()
            chosen = [coin for coin in coins if coin.algorithm_key.strip().lower() == algorithm_key]
        return chosen[: self._policy.max_candidates]

    # ── Per-device loop ────────────────────────────────────

    def _compute_all(
        self,
        inputs: SharedInputs,
        params: RunParameters,
    ) -> tuple[list[ProfitabilitySnapshot], Counter, list[str]]:
        snapshots: list[ProfitabilitySnapshot] = []
        skip_reasons: Counter = Counter()
        errors: list[str] = []

        for device in inputs.devices:
            try:
                snapshots.append(self.build_snapshot(device, inputs, params))
            except DeviceSkipped as e:
                log.debug("%s", e)
                skip_reasons[e.reason] += 1
            except Exception as e:
                log.exception("Snapshot computation failed for device %s", device.id)
                skip_reasons[DeviceSkipped.DEVICE_ERROR] += 1
                errors.append(f"{device.id}: {e}")

        return snapshots, skip_reasons, errors

    def build_snapshot(
        self,
        device: Device,
        inputs: SharedInputs,
        params: RunParameters,
    ) -> ProfitabilitySnapshot:
        """Compute one device's snapshot; raises DeviceSkipped when it cannot."""
        speed = to_base_rate(device.hashrate, device.hashrate_unit)
        if speed is None:
            raise DeviceSkipped(
                device.id,
                DeviceSkipped.UNPARSABLE_SPEED,
                f"{device.hashrate!r} {device.hashrate_unit!r}",
            )

        provider_key = map_to_provider_key(device.algorithm.key)
        rate = inputs.payout.rate_for(provider_key) if provider_key else None
        if rate is None:
            raise DeviceSkipped(device.id, DeviceSkipped.NO_PAYOUT_RATE, provider_key or device.algorithm.key)

        reference_unit = self._policy.reference_unit_for(provider_key)
        revenue = compute_usd_per_day(speed.value, rate, inputs.price.usd, reference_unit)

        quote = lowest_usd(self._store.find_listings(device.id), inputs.fx)
        hardware_usd = quote.price_usd if quote else None
        shipping_usd = quote.shipping_usd if quote else None

        costs = cost_breakdown(
            power_w=device.power_w,
            electricity_usd_per_kwh=params.electricity_usd_per_kwh,
            revenue_usd_per_day=revenue,
            pool_fee_pct=params.pool_fee_pct,
            hosting_usd_per_day=params.hosting_usd_per_day,
            hardware_price_usd=hardware_usd,
            shipping_usd=shipping_usd,
        )
        roi = roi_days(costs.capex_total_usd, costs.net_profit_usd_per_day)

        selection = select_best_coin(
            candidates=self._candidates(device, inputs.coins),
            estimates=inputs.estimates,
            speed_base=speed.value,
            quality=InputQuality(
                price_is_live=not inputs.price.is_fallback,
                rate_is_live=inputs.payout.is_live,
                rate_fetched_at=inputs.payout.fetched_at,
                as_of=params.started_at,
            ),
            policy=self._policy,
            payout_coin=inputs.payout_coin,
            has_payout_revenue=revenue > 0,
        )

        breakdown = SnapshotBreakdown(
            inputs=BreakdownInputs(
                power_w=_dec(device.power_w or 0.0, 6),
                electricity_usd_per_kwh=params.electricity_usd_per_kwh,
                revenue_usd_per_day=_dec(revenue, 6),
                pool_fee_pct=params.pool_fee_pct,
                hosting_usd_per_day=params.hosting_usd_per_day,
                hardware_price_usd=None if hardware_usd is None else _dec(hardware_usd, 6),
                shipping_usd=None if shipping_usd is None else _dec(shipping_usd, 6),
            ),
            speed=BreakdownSpeed(
                hashrate=None if device.hashrate is None else str(device.hashrate),
                hashrate_unit=device.hashrate_unit,
                base_value=speed.value,
                base_unit=speed.base_unit,
                efficiency_j_per_th=to_joules_per_th(
                    device.efficiency, device.efficiency_unit, device.power_w, speed
                ),
            ),
            revenue=BreakdownRevenue(
                provider=inputs.payout.source,
                provider_algorithm_key=provider_key,
                payout_rate=rate,
                reference_unit_base=reference_unit,
                reference_price_usd=inputs.price.usd,
                reference_price_source=inputs.price.source,
                reference_price_is_fallback=inputs.price.is_fallback,
            ),
            daily=BreakdownDaily(
                electricity_usd_per_day=costs.electricity_usd_per_day,
                pool_fee_usd_per_day=costs.pool_fee_usd_per_day,
                hosting_usd_per_day=costs.hosting_usd_per_day,
                total_daily_cost_usd=costs.total_daily_cost_usd,
            ),
            totals=BreakdownTotals(
                net_profit_usd_per_day=costs.net_profit_usd_per_day,
                gross_margin_pct=costs.gross_margin_pct,
                roi_days=roi,
                capex_total_usd=costs.capex_total_usd,
            ),
            best_coin=BreakdownBestCoin(
                coin_id=selection.coin.id if selection.coin else None,
                symbol=selection.coin.symbol if selection.coin else None,
                confidence=selection.confidence,
                reason=selection.reason,
                candidates=selection.candidates,
                estimated_revenue_usd_per_day=selection.estimated_revenue_usd_per_day,
            ),
            meta=BreakdownMeta(
                computed_at=params.computed_at,
                policy_version=self._policy.policy_version,
                payback_date=payback_date(params.computed_at, roi),
            ),
        )

        return ProfitabilitySnapshot(
            device_id=device.id,
            computed_at=params.computed_at,
            electricity_usd_per_kwh=_dec(params.electricity_usd_per_kwh, 5),
            revenue_usd_per_day=_dec(revenue, 6),
            electricity_usd_per_day=_dec(costs.electricity_usd_per_day, 6),
            profit_usd_per_day=_dec(costs.net_profit_usd_per_day, 6),
            lowest_price_usd=None if hardware_usd is None else _dec(hardware_usd, 2),
            roi_days=roi,
            best_coin_id=selection.coin.id if selection.coin else None,
            best_coin_confidence=selection.confidence,
            best_coin_reason=selection.reason,
            breakdown=breakdown,
        )
