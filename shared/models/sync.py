"""Sync run models: structured log entries and the aggregate result of a run."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

SyncLogLevel = Literal["info", "success", "warning", "error"]


class SyncLog(BaseModel):
    timestamp: datetime
    level: SyncLogLevel
    message: str
    file_id: str | None = None
    file_name: str | None = None


class SyncResult(BaseModel):
    """Outcome of one sync run.

    Attributes:
        success:         False only when the run driver itself failed.
        processed_count: Files ingested successfully.
        error_count:     Files whose ingestion failed (skip causes included).
        limit_reached:   True when the per-run file cap stopped the run early.
        logs:            Most recent log entries of the run, oldest first.
    """

    success: bool
    processed_count: int = 0
    error_count: int = 0
    limit_reached: bool = False
    logs: list[SyncLog] = []
