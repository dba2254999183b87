from datetime import datetime, timezone
from itertools import count

from shared.models.errors import UniqueConstraintError
from shared.models.tracked_file import TrackedFile, TrackedFileCreate, TrackedFileStatus
from shared.repositories.RepositoryInterfaces import TrackedFileRepository


class TrackedFileRepositoryMemory(TrackedFileRepository):
    """Process-local tracked file store, unique per (source_id, file_id)."""

    def __init__(self) -> None:
        self._files: dict[int, TrackedFile] = {}
        self._ids = count(1)

    async def create(self, data: TrackedFileCreate) -> TrackedFile:
        if await self.find_by_source_and_file_id(data.source_id, data.file_id):
            raise UniqueConstraintError(
                f"Tracked file already exists for source {data.source_id} and file {data.file_id}"
            )
        now = datetime.now(timezone.utc)
        tracked = TrackedFile(id=next(self._ids), created_at=now, updated_at=now, **data.model_dump())
        self._files[tracked.id] = tracked
        return tracked.model_copy()

    async def find_by_id(self, tracked_id: int) -> TrackedFile | None:
        tracked = self._files.get(tracked_id)
        return tracked.model_copy() if tracked else None

    async def find_by_source_and_file_id(self, source_id: int, file_id: str) -> TrackedFile | None:
        for tracked in self._files.values():
            if tracked.source_id == source_id and tracked.file_id == file_id:
                return tracked.model_copy()
        return None

    async def find_by_source_id(self, source_id: int) -> list[TrackedFile]:
        return [t.model_copy() for t in self._files.values() if t.source_id == source_id]

    async def find_pending(self, limit: int) -> list[TrackedFile]:
        pending = [t for t in self._files.values() if t.status == "pending"]
        pending.sort(key=lambda t: (t.created_at, t.id))
        return [t.model_copy() for t in pending[:limit]]

    async def find_stale(self, statuses: list[TrackedFileStatus], updated_before: datetime) -> list[TrackedFile]:
        stale = [
            t for t in self._files.values()
            if t.status in statuses and t.updated_at is not None and t.updated_at <= updated_before
        ]
        stale.sort(key=lambda t: (t.updated_at, t.id))
        return [t.model_copy() for t in stale]

    async def update_status(self, tracked_id: int, status: TrackedFileStatus, error_message: str | None = None) -> None:
        await self.update(tracked_id, status=status, error_message=error_message)

    async def update_processed(self, tracked_id: int, file_hash: str | None, chunks_count: int) -> None:
        await self.update(
            tracked_id,
            status="completed",
            file_hash=file_hash,
            chunks_count=chunks_count,
            error_message=None,
            last_processed_at=datetime.now(timezone.utc),
        )

    async def update(self, tracked_id: int, **fields) -> TrackedFile:
        tracked = self._files[tracked_id]
        fields["updated_at"] = datetime.now(timezone.utc)
        updated = tracked.model_copy(update=fields)
        self._files[tracked_id] = updated
        return updated.model_copy()

    async def delete(self, tracked_id: int) -> None:
        self._files.pop(tracked_id, None)

    async def delete_by_source_id(self, source_id: int) -> None:
        for tracked_id in [t.id for t in self._files.values() if t.source_id == source_id]:
            del self._files[tracked_id]
