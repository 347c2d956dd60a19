from pydantic import BaseModel, Field

from profitability_engine.core.config import (
    ENGINE_POLICY_VERSION,
    REFERENCE_COIN_KEY,
    get_reference_unit_base,
)


class ConfidenceMarginStep(BaseModel):
    """Confidence awarded when #1 beats #2 by at least `min_margin`."""

    min_margin: float = Field(..., ge=0, le=1)
    confidence: int = Field(..., ge=0, le=100)


class EnginePolicy(BaseModel):
    """Overridable policy constants used by the snapshot engine."""

    policy_version: str = Field(
        default=ENGINE_POLICY_VERSION,
        description="Version identifier for the scoring and revenue policy",
    )
    reference_unit_base: float = Field(
        default_factory=get_reference_unit_base,
        gt=0,
        description="Hashrate (in H/s) the provider's payout rates are quoted per",
    )
    reference_unit_overrides: dict[str, float] = Field(
        default_factory=dict,
        description="Per provider-algorithm reference unit base, in H/s",
    )
    reference_coin_key: str = Field(
        default=REFERENCE_COIN_KEY,
        description="Coin the payout provider settles in",
    )
    max_candidates: int = Field(default=25, gt=0, description="Best-coin candidates per device")
    margin_steps: list[ConfidenceMarginStep] = Field(
        default=[
            ConfidenceMarginStep(min_margin=0.30, confidence=90),
            ConfidenceMarginStep(min_margin=0.15, confidence=75),
            ConfidenceMarginStep(min_margin=0.07, confidence=60),
            ConfidenceMarginStep(min_margin=0.03, confidence=45),
        ],
        description="Margin thresholds, highest first",
    )
    close_race_confidence: int = Field(default=30, ge=0, le=100)
    single_candidate_confidence: int = Field(default=55, ge=0, le=100)
    payout_coin_confidence: int = Field(default=55, ge=0, le=100)
    stale_price_penalty: int = Field(
        default=15, ge=0, description="Deducted when the reference price came from fallback"
    )
    stale_rate_penalty: int = Field(
        default=15, ge=0, description="Deducted when the payout rate was not fetched live"
    )
    rate_fresh_seconds: int = Field(default=900, ge=0)
    recency_penalty_per_hour: int = Field(default=5, ge=0)
    recency_penalty_cap: int = Field(default=30, ge=0)
    simplifications: list[str] = Field(
        default=[
            "Revenue comes from the hashrate-rental market's payout for the device's algorithm",
            "Per-coin estimates only rank best-coin candidates",
            "Difficulty and price assumed constant over the ROI horizon",
            "Transaction fee swings are not modeled beyond the provider payout",
        ],
        description="Known simplifications in the current model",
    )

    def reference_unit_for(self, provider_key: str) -> float:
        override = self.reference_unit_overrides.get(provider_key)
        if override is not None and override > 0:
            return override
        return self.reference_unit_base


def get_default_policy() -> EnginePolicy:
    """Get the default engine policy."""
    return EnginePolicy()
