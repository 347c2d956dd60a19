"""API v1 route handlers."""

from typing import List
from fastapi import APIRouter, HTTPException

from profitability_engine.engine.algorithms import map_to_provider_key
from profitability_engine.models.algorithms import (
    AlgorithmCatalogEntry,
    ALGORITHM_CATALOG,
    get_algorithm_by_key,
)
from profitability_engine.models.assumptions import EnginePolicy, get_default_policy


router = APIRouter()


@router.get("/algorithms", response_model=List[AlgorithmCatalogEntry])
def get_algorithms() -> List[AlgorithmCatalogEntry]:
    """Get the algorithm catalog with resolved payout-provider keys."""
    return [
        entry.model_copy(update={"provider_key": map_to_provider_key(entry.key)})
        for entry in ALGORITHM_CATALOG
    ]


@router.get("/assumptions", response_model=EnginePolicy)
def get_assumptions() -> EnginePolicy:
    """Get the current revenue and best-coin scoring policy."""
    return get_default_policy()


@router.get("/algorithms/{key}", response_model=AlgorithmCatalogEntry)
def get_algorithm(key: str) -> AlgorithmCatalogEntry:
    """Get one catalog algorithm by key."""
    entry = get_algorithm_by_key(key)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Unknown algorithm: {key}")
    return entry.model_copy(update={"provider_key": map_to_provider_key(entry.key)})
