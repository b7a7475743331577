"""Pydantic response models for the admin API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from resource_watcher.models.resources import CycleResult


class ErrorResponse(BaseModel):
    """Error envelope returned for every non-2xx response."""

    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


class CycleResultResponse(BaseModel):
    account_id: str
    outcome: str
    started_at: datetime
    finished_at: datetime
    resource_count: int
    added_count: int
    removed_count: int
    notified: bool
    notification_ok: bool | None = None
    failed_partitions: list[str] = Field(default_factory=list)
    error: str = ""

    @classmethod
    def from_result(cls, result: CycleResult) -> CycleResultResponse:
        return cls(
            account_id=result.account_id,
            outcome=result.outcome.value,
            started_at=result.started_at,
            finished_at=result.finished_at,
            resource_count=result.resource_count,
            added_count=result.added_count,
            removed_count=result.removed_count,
            notified=result.notified,
            notification_ok=result.notification_ok,
            failed_partitions=list(result.failed_partitions),
            error=result.error,
        )


class StatusResponse(BaseModel):
    account_id: str
    state: str
    busy: bool
    last_cycle: CycleResultResponse | None = None
