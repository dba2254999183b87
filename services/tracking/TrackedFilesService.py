from datetime import datetime, timedelta, timezone

from services.sync.SyncService import STALE_PROCESSING_MINUTES
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperFilename import sanitize_filename
from shared.models.errors import SourceNotFoundError, TrackedFileNotFoundError
from shared.models.source import DocumentSource
from shared.models.tracked_file import TrackedFile, TrackedFileCreate
from shared.repositories.RepositoryInterfaces import (
    DocumentSourceRepository,
    DocumentVectorRepository,
    ProcessedFileRepository,
    TrackedFileRepository,
)


class TrackedFilesService:
    """Registers cloud files and folders for sync and removes them again."""

    def __init__(
        self,
        helper_config: HelperConfig,
        tracked_file_repository: TrackedFileRepository,
        source_repository: DocumentSourceRepository,
        vector_repository: DocumentVectorRepository,
        processed_file_repository: ProcessedFileRepository,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._tracked_files = tracked_file_repository
        self._sources = source_repository
        self._vectors = vector_repository
        self._processed_files = processed_file_repository
        self.stale_minutes = helper_config.get_int_val(
            "SYNC_STALE_PROCESSING_MINUTES", default=STALE_PROCESSING_MINUTES, minimum=0
        )

    async def _get_owned_source(self, source_id: int, user_id: int) -> DocumentSource:
        source = await self._sources.find_by_id(source_id)
        if source is None or source.user_id != user_id:
            raise SourceNotFoundError(f"Document source {source_id} not found")
        return source

    async def _get_tracked(self, source_id: int, file_id: str) -> TrackedFile:
        tracked = await self._tracked_files.find_by_source_and_file_id(source_id, file_id)
        if tracked is None:
            raise TrackedFileNotFoundError(f"File {file_id} is not tracked in source {source_id}")
        return tracked

    async def do_track_file(
        self,
        user_id: int,
        source_id: int,
        file_id: str,
        file_name: str,
        file_path: str,
        is_folder: bool = False,
        include_children: bool = True,
        last_modified: datetime | None = None,
    ) -> TrackedFile:
        """Register a file or folder for sync; tracking it twice returns the existing record."""
        await self._get_owned_source(source_id, user_id)
        existing = await self._tracked_files.find_by_source_and_file_id(source_id, file_id)
        if existing is not None:
            return existing

        tracked = await self._tracked_files.create(TrackedFileCreate(
            source_id=source_id,
            file_id=file_id,
            file_name=file_name,
            file_path=file_path,
            is_folder=is_folder,
            include_children=include_children,
            last_modified=last_modified or datetime.now(timezone.utc),
        ))
        self.logging.info("Tracking %s '%s' of source %d", "folder" if is_folder else "file", file_name, source_id)
        return tracked

    async def do_untrack_file(self, user_id: int, source_id: int, file_id: str) -> None:
        """Stop tracking; indexed chunks stay searchable."""
        await self._get_owned_source(source_id, user_id)
        tracked = await self._get_tracked(source_id, file_id)
        await self._tracked_files.delete(tracked.id)

    async def do_unrag_file(self, user_id: int, source_id: int, file_id: str) -> None:
        """Remove a file's chunks and ledger entry from the index, then stop tracking it.

        Raises:
            ValueError: If the tracked record is a folder.
        """
        await self._get_owned_source(source_id, user_id)
        tracked = await self._get_tracked(source_id, file_id)
        if tracked.is_folder:
            raise ValueError("Folders cannot be removed from the index, remove the files inside them")

        # Google-native documents are indexed under their exported ".pdf" name
        candidates = [sanitize_filename(tracked.file_name)]
        if not candidates[0].lower().endswith(".pdf"):
            candidates.append(sanitize_filename(f"{tracked.file_name}.pdf"))

        removed = False
        for name in candidates:
            if await self._processed_files.find_by_filename(name) is not None:
                await self._vectors.delete_by_source(name)
                await self._processed_files.delete_by_filename(name)
                removed = True
        if not removed:
            await self._vectors.delete_by_source(candidates[0])

        await self._tracked_files.delete(tracked.id)
        self.logging.info("Removed '%s' from the index", tracked.file_name)

    async def do_get_tracked_files(self, user_id: int, source_id: int) -> list[TrackedFile]:
        await self._get_owned_source(source_id, user_id)
        return await self._tracked_files.find_by_source_id(source_id)

    async def do_is_file_tracked(self, user_id: int, source_id: int, file_id: str) -> bool:
        source = await self._sources.find_by_id(source_id)
        if source is None or source.user_id != user_id:
            return False
        return await self._tracked_files.find_by_source_and_file_id(source_id, file_id) is not None

    async def do_retry_file(self, user_id: int, source_id: int, file_id: str) -> TrackedFile:
        """Move a record back to pending so the next sync picks it up.

        Accepted are records in error, completed folders (queued for a rescan)
        and records stuck in processing for longer than SYNC_STALE_PROCESSING_MINUTES.

        Raises:
            ValueError: If the record is in any other state.
        """
        await self._get_owned_source(source_id, user_id)
        tracked = await self._get_tracked(source_id, file_id)
        if tracked.status == "completed" and tracked.is_folder:
            self.logging.info("Folder '%s' queued for rescan", tracked.file_path)
        elif tracked.status == "processing":
            cutoff = datetime.now(timezone.utc) - timedelta(minutes=self.stale_minutes)
            if tracked.updated_at is not None and tracked.updated_at > cutoff:
                raise ValueError(f"{tracked.file_name} is being processed right now")
            self.logging.warning("'%s' was left processing since %s, queued again", tracked.file_path, tracked.updated_at)
        elif tracked.status != "error":
            raise ValueError(f"Only files in error or completed folders can be retried, status is '{tracked.status}'")
        return await self._tracked_files.update(tracked.id, status="pending", error_message=None)
