from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="ok")
    service: str = Field(default="profitability-engine")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RunSummaryResponse(_CamelModel):
    """Summary returned by the snapshot trigger on success."""

    ok: bool = Field(default=True)
    computed_at: str = Field(..., description="UTC ISO timestamp shared by the run's snapshots")
    bucket: str = Field(default="hour", description="Timestamp bucketing applied to the run")
    duration_ms: int = Field(..., ge=0)
    devices_total: int = Field(..., ge=0)
    snapshots_written: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    reference_price_usd: float
    reference_price_source: str
    reference_price_is_fallback: bool = Field(default=False)
    electricity_usd_per_kwh: float
    pool_fee_pct: float
    hosting_usd_per_day: float
    skip_reasons: Dict[str, int] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list, description="Per-device failures")
    device_ids_computed: Optional[List[str]] = None


class ErrorResponse(_CamelModel):
    """Failure body returned by the snapshot trigger."""

    ok: bool = Field(default=False)
    error: str
