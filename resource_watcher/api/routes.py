"""Admin API routes."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from resource_watcher.api.schemas import CycleResultResponse, ErrorResponse, HealthResponse, StatusResponse

_log = structlog.get_logger(component="api.routes")

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    from resource_watcher import __version__

    return HealthResponse(version=__version__)


@router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    reconciler = request.app.state.reconciler
    last = reconciler.last_result
    return StatusResponse(
        account_id=reconciler.account_id,
        state=reconciler.state.value,
        busy=reconciler.busy,
        last_cycle=CycleResultResponse.from_result(last) if last is not None else None,
    )


@router.post("/reconcile", response_model=CycleResultResponse, responses={409: {"model": ErrorResponse}})
async def reconcile(request: Request) -> CycleResultResponse | JSONResponse:
    """Run a cycle now. Rejected while another cycle is in progress."""
    reconciler = request.app.state.reconciler
    if reconciler.busy:
        return JSONResponse(
            status_code=409,
            content=ErrorResponse(
                error="CYCLE_IN_PROGRESS",
                detail="A reconciliation cycle is already running.",
            ).model_dump(),
        )
    _log.info("manual_reconcile_requested", account_id=reconciler.account_id)
    result = await reconciler.run_cycle()
    return CycleResultResponse.from_result(result)
