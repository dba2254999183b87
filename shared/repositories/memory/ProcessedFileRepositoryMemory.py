from datetime import datetime, timezone

from shared.models.document import ProcessedFile
from shared.models.errors import UniqueConstraintError
from shared.repositories.RepositoryInterfaces import ProcessedFileRepository


class ProcessedFileRepositoryMemory(ProcessedFileRepository):
    """Process-local processed-file ledger keyed by filename."""

    def __init__(self) -> None:
        self._files: dict[str, ProcessedFile] = {}

    async def exists(self, filename: str, file_hash: str) -> bool:
        entry = self._files.get(filename)
        return entry is not None and entry.file_hash == file_hash

    async def find_by_filename(self, filename: str) -> ProcessedFile | None:
        return self._files.get(filename)

    async def insert(self, filename: str, file_hash: str, chunks_count: int) -> ProcessedFile:
        if filename in self._files:
            raise UniqueConstraintError(f"Unique constraint failed on the fields: (`filename`) = {filename}")
        entry = ProcessedFile(
            filename=filename,
            file_hash=file_hash,
            chunks_count=chunks_count,
            processed_at=datetime.now(timezone.utc),
        )
        self._files[filename] = entry
        return entry

    async def delete_by_filename(self, filename: str) -> None:
        self._files.pop(filename, None)

    async def find_all(self) -> list[ProcessedFile]:
        return sorted(self._files.values(), key=lambda f: f.processed_at, reverse=True)

    async def clear_all(self) -> None:
        self._files.clear()
