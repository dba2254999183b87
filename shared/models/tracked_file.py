"""Tracked file model: a cloud file or folder registered for incremental sync."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

TrackedFileStatus = Literal["pending", "processing", "completed", "error"]


class TrackedFile(BaseModel):
    """Sync record for one cloud file or folder, unique per (source_id, file_id).

    Status machine: pending → processing → completed | error; error re-enters
    pending on retry. ``last_processed_at`` stays None until the first
    successful ingestion, which decides whether a failure deletes the record
    or marks it as error.
    """

    id: int
    source_id: int
    file_id: str
    file_name: str
    file_path: str
    file_hash: str | None = None
    last_modified: datetime
    last_processed_at: datetime | None = None
    is_folder: bool = False
    include_children: bool = False
    status: TrackedFileStatus = "pending"
    error_message: str | None = None
    chunks_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def was_ever_processed(self) -> bool:
        return self.last_processed_at is not None


class TrackedFileCreate(BaseModel):
    """Fields needed to register a new tracked file."""

    source_id: int
    file_id: str
    file_name: str
    file_path: str
    last_modified: datetime
    is_folder: bool = False
    include_children: bool = False
    file_hash: str | None = None
