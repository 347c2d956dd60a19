"""FastAPI dependencies wiring the engine to its collaborators."""

from functools import lru_cache

from fastapi import Depends

from profitability_engine.core.config import get_coin_estimates_enabled, get_database_path
from profitability_engine.engine.coin_estimates import HashrateNoEstimator
from profitability_engine.engine.fx import FxProvider, StaticFxProvider
from profitability_engine.engine.orchestrator import SnapshotOrchestrator
from profitability_engine.engine.payout_feed import NiceHashPayoutFeed
from profitability_engine.engine.reference_price import (
    PriceFallbackRepository,
    ReferencePriceResolver,
)
from profitability_engine.storage.base import SnapshotStore
from profitability_engine.storage.sqlite import SQLiteStore


@lru_cache
def get_store() -> SnapshotStore:
    """Process-wide SQLite store; history survives restarts."""
    return SQLiteStore(get_database_path())


def get_fx_provider(store: SnapshotStore = Depends(get_store)) -> FxProvider:
    if isinstance(store, SQLiteStore):
        return store
    return StaticFxProvider()


@lru_cache
def get_coin_estimator() -> HashrateNoEstimator | None:
    # one instance so its cache survives between runs
    if not get_coin_estimates_enabled():
        return None
    return HashrateNoEstimator()


def get_orchestrator(
    store: SnapshotStore = Depends(get_store),
    fx_provider: FxProvider = Depends(get_fx_provider),
) -> SnapshotOrchestrator:
    return SnapshotOrchestrator(
        store=store,
        payout_feed=NiceHashPayoutFeed(),
        price_resolver=ReferencePriceResolver(PriceFallbackRepository(store)),
        fx_provider=fx_provider,
        coin_estimator=get_coin_estimator(),
    )
