"""Scheduler-facing snapshot trigger."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from profitability_engine.api.deps import get_orchestrator
from profitability_engine.engine.auth import TriggerCredentials
from profitability_engine.engine.errors import Unauthorized
from profitability_engine.engine.orchestrator import SnapshotOrchestrator
from profitability_engine.models.responses import ErrorResponse, RunSummaryResponse


router = APIRouter()


@router.get(
    "/profitability",
    response_model=RunSummaryResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def trigger_profitability(
    request: Request,
    secret: Optional[str] = Query(None, description="Shared cron secret"),
    device_id: Optional[List[str]] = Query(None, description="Restrict the run to these devices"),
    orchestrator: SnapshotOrchestrator = Depends(get_orchestrator),
):
    """
    Compute and persist one profitability snapshot per device.

    Authorized by the x-cron-secret header, a Bearer token or ?secret=; when no
    secret is configured only the scheduler's user agent is accepted.
    """
    credentials = TriggerCredentials(
        header_secret=request.headers.get("x-cron-secret"),
        authorization=request.headers.get("authorization"),
        query_secret=secret,
        user_agent=request.headers.get("user-agent"),
    )
    result = orchestrator.run(credentials, device_ids=device_id)

    if result.ok:
        return result.summary

    status_code = 401 if isinstance(result.error, Unauthorized) else 500
    body = ErrorResponse(error=str(result.error) or "Failed to compute profitability")
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))
