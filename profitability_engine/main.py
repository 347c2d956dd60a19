"""Profitability Engine FastAPI application."""

from fastapi import FastAPI

from profitability_engine.core.logging import configure_logging
from profitability_engine.models.responses import HealthResponse
from profitability_engine.api.cron.routes import router as cron_router
from profitability_engine.api.v1.routes import router as v1_router


configure_logging()

app = FastAPI(
    title="Profitability Engine",
    description="Daily mining-hardware profitability snapshots",
    version="0.1.0",
)

# Scheduler trigger
app.include_router(cron_router, prefix="/api/cron", tags=["cron"])

# Include v1 routes
app.include_router(v1_router, prefix="/v1", tags=["v1"])


@app.get("/health", response_model=HealthResponse, tags=["health"])
def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", service="profitability-engine")
