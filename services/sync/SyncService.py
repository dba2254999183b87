"""Incremental synchronisation of tracked cloud files into the RAG index.

Each run takes the oldest pending tracked records (files and folders), walks
folders through the storage provider, and ingests files one at a time:

  pending → processing → completed | error

A run is bounded by a per-run file cap; an interrupted folder goes back to
pending so the next run resumes it. Failures of records that were never
indexed delete the record so the next folder walk rediscovers the file from
scratch; records with history are marked as error instead. A folder that lost
children this way ends in error rather than completed, and walked folders are
queued again once they are due for a rescan.
"""

from collections import deque
from datetime import datetime, timedelta, timezone

from services.rag.IngestionService import IngestionService
from services.sources.DocumentSourceService import DocumentSourceService
from shared.clients.storage.googledrive.StorageClientGoogledrive import StorageClientGoogledrive
from shared.extractors.TextExtractorRegistry import TextExtractorRegistry
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import SyncAlreadyRunningError, UniqueConstraintError, UnsupportedFormatError
from shared.models.source import CloudFile, DocumentSource
from shared.models.sync import SyncLog, SyncLogLevel, SyncResult
from shared.models.tracked_file import TrackedFile, TrackedFileCreate
from shared.repositories.RepositoryInterfaces import DocumentSourceRepository, TrackedFileRepository

PENDING_BATCH_SIZE = 50
MAX_FILES_PER_RUN = 20
MAX_LOG_ENTRIES = 500
FOLDER_RESCAN_MINUTES = 60
STALE_PROCESSING_MINUTES = 30

# failures that keep the record (as error) regardless of its history
SKIP_REASONS = ("already_processed", "no_text", "unsupported_format", "duplicate_name", "source_unavailable")
SKIP_EXCEPTIONS = (UnsupportedFormatError, UniqueConstraintError)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SyncRun:
    """Mutable state of a single run: counters, file budget and the capped log."""

    def __init__(self, max_files: int, max_logs: int, logger) -> None:
        self.logging = logger
        self.max_files = max_files
        self.files_attempted = 0
        self.processed_count = 0
        self.error_count = 0
        self.removed_count = 0
        self.limit_reached = False
        self.touched_sources: set[int] = set()
        self.logs: deque[SyncLog] = deque(maxlen=max_logs)

    def log(self, level: SyncLogLevel, message: str, file_id: str | None = None, file_name: str | None = None) -> None:
        self.logs.append(SyncLog(
            timestamp=datetime.now(timezone.utc),
            level=level,
            message=message,
            file_id=file_id,
            file_name=file_name,
        ))
        if level == "error":
            self.logging.error("[sync] %s", message)
        elif level == "warning":
            self.logging.warning("[sync] %s", message)
        else:
            self.logging.info("[sync] %s", message)

    def take_file_slot(self) -> bool:
        """Reserve budget for one file; flags the cap when it is exhausted."""
        if self.files_attempted >= self.max_files:
            self.limit_reached = True
            return False
        self.files_attempted += 1
        return True

    def to_result(self, success: bool) -> SyncResult:
        return SyncResult(
            success=success,
            processed_count=self.processed_count,
            error_count=self.error_count,
            limit_reached=self.limit_reached,
            logs=list(self.logs),
        )


class SyncService:
    def __init__(
        self,
        helper_config: HelperConfig,
        tracked_file_repository: TrackedFileRepository,
        source_repository: DocumentSourceRepository,
        source_service: DocumentSourceService,
        ingestion_service: IngestionService,
        extractor_registry: TextExtractorRegistry | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._tracked_files = tracked_file_repository
        self._sources = source_repository
        self._source_service = source_service
        self._ingestion = ingestion_service
        self._registry = extractor_registry or TextExtractorRegistry()

        self.batch_size = helper_config.get_int_val("SYNC_PENDING_BATCH_SIZE", default=PENDING_BATCH_SIZE, minimum=1)
        self.max_files = helper_config.get_int_val("SYNC_MAX_FILES_PER_RUN", default=MAX_FILES_PER_RUN, minimum=1)
        self.max_logs = helper_config.get_int_val("SYNC_MAX_LOG_ENTRIES", default=MAX_LOG_ENTRIES, minimum=1)
        # 0 turns the periodic folder rescan off
        self.rescan_minutes = helper_config.get_int_val(
            "SYNC_FOLDER_RESCAN_MINUTES", default=FOLDER_RESCAN_MINUTES, minimum=0
        )
        self.stale_minutes = helper_config.get_int_val(
            "SYNC_STALE_PROCESSING_MINUTES", default=STALE_PROCESSING_MINUTES, minimum=0
        )

        self._is_running = False
        self._run: SyncRun | None = None

    ##########################################
    ################## STATE #################
    ##########################################

    def is_currently_running(self) -> bool:
        return self._is_running

    def get_logs(self) -> list[SyncLog]:
        """Logs of the current run, or of the last finished one."""
        return list(self._run.logs) if self._run else []

    ##########################################
    ################### RUN ##################
    ##########################################

    async def do_sync_pending_files(self, user_id: int) -> SyncResult:
        """Process pending tracked files of `user_id`.

        Args:
            user_id (int): Only records of this user's sources are processed.

        Returns:
            SyncResult: Counts and logs; ``success`` is False when the run itself failed.

        Raises:
            SyncAlreadyRunningError: If a run is already in flight on this service.
        """
        if self._is_running:
            raise SyncAlreadyRunningError("A sync is already running, try again later")
        self._is_running = True
        run = SyncRun(max_files=self.max_files, max_logs=self.max_logs, logger=self.logging)
        self._run = run

        try:
            run.log("info", "Starting file sync...")
            await self._requeue_stale(user_id, run)
            pending = await self._tracked_files.find_pending(self.batch_size)
            if not pending:
                run.log("info", "No pending files to process")
                return run.to_result(True)
            run.log("info", f"Found {len(pending)} pending records")

            sources: dict[int, DocumentSource | None] = {}
            for candidate in pending:
                if run.limit_reached:
                    break
                # an earlier folder walk of this run may have handled it already
                tracked = await self._tracked_files.find_by_id(candidate.id)
                if tracked is None or tracked.status != "pending":
                    continue
                source = await self._resolve_source(tracked, user_id, sources, run)
                if source is None:
                    continue
                run.touched_sources.add(source.id)
                if tracked.is_folder:
                    await self._sync_folder(tracked, source, user_id, run)
                else:
                    await self._sync_file(tracked, source, user_id, run)

            for source_id in run.touched_sources:
                await self._sources.update_last_sync(source_id)

            if run.limit_reached:
                run.log(
                    "warning",
                    f"Limit of {self.max_files} files per run reached, run the sync again to continue",
                )
            run.log("info", f"Sync finished: {run.processed_count} processed, {run.error_count} errors")
            return run.to_result(True)
        except Exception as e:
            self.logging.exception("Sync run failed")
            run.log("error", f"Fatal sync error: {e}")
            return run.to_result(False)
        finally:
            self._is_running = False

    async def _resolve_source(
        self,
        tracked: TrackedFile,
        user_id: int,
        cache: dict[int, DocumentSource | None],
        run: SyncRun,
    ) -> DocumentSource | None:
        if tracked.source_id not in cache:
            cache[tracked.source_id] = await self._sources.find_by_id(tracked.source_id)
        source = cache[tracked.source_id]
        if source is None or source.user_id != user_id:
            run.log("warning", f"{tracked.file_name} belongs to another source, skipping", tracked.file_id, tracked.file_name)
            return None
        if not source.is_active:
            run.log(
                "warning",
                f"Source {source.name} is inactive ({source.last_error or 'no error recorded'}), skipping {tracked.file_name}",
                tracked.file_id,
                tracked.file_name,
            )
            return None
        return source

    async def _requeue_stale(self, user_id: int, run: SyncRun) -> None:
        """Queue records of the user's active sources that no pending scan would reach.

        Records left in processing by an interrupted run go back to pending after
        SYNC_STALE_PROCESSING_MINUTES. Walked folders, completed or in error, are
        walked again after SYNC_FOLDER_RESCAN_MINUTES; that walk is what notices
        changed files and rediscovers dropped ones.
        """
        now = datetime.now(timezone.utc)
        stuck = await self._tracked_files.find_stale(["processing"], now - timedelta(minutes=self.stale_minutes))
        due: list[TrackedFile] = []
        if self.rescan_minutes:
            walked = await self._tracked_files.find_stale(
                ["completed", "error"], now - timedelta(minutes=self.rescan_minutes)
            )
            due = [t for t in walked if t.is_folder and t.include_children]

        sources: dict[int, DocumentSource | None] = {}
        for tracked in stuck + due:
            if tracked.source_id not in sources:
                sources[tracked.source_id] = await self._sources.find_by_id(tracked.source_id)
            source = sources[tracked.source_id]
            if source is None or source.user_id != user_id or not source.is_active:
                continue
            await self._tracked_files.update(tracked.id, status="pending", error_message=None)
            if tracked.status == "processing":
                run.log("warning", f"{tracked.file_name} was left processing, queued again", tracked.file_id, tracked.file_name)
            else:
                run.log("info", f"Folder {tracked.file_name} queued for rescan", tracked.file_id, tracked.file_name)

    ##########################################
    ################## FILES #################
    ##########################################

    async def _sync_file(self, tracked: TrackedFile, source: DocumentSource, user_id: int, run: SyncRun) -> None:
        if not run.take_file_slot():
            return

        await self._tracked_files.update_status(tracked.id, "processing")
        run.log("info", f"Processing {tracked.file_name}...", tracked.file_id, tracked.file_name)
        try:
            result = await self._ingestion.do_process_file_from_source(
                user_id,
                source.id,
                tracked.file_id,
                tracked.file_name,
                replace_existing=tracked.was_ever_processed(),
            )
        except Exception as e:
            await self._handle_failure(tracked, str(e) or e.__class__.__name__, isinstance(e, SKIP_EXCEPTIONS), run)
            return

        if result.success:
            await self._tracked_files.update_processed(tracked.id, result.file_hash, result.chunks_count or 0)
            run.processed_count += 1
            run.log(
                "success",
                f"{tracked.file_name} indexed ({result.chunks_count or 0} chunks)",
                tracked.file_id,
                tracked.file_name,
            )
            return
        await self._handle_failure(tracked, result.message, result.reason in SKIP_REASONS, run)

    async def _handle_failure(self, tracked: TrackedFile, message: str, is_skip: bool, run: SyncRun) -> None:
        run.error_count += 1
        if is_skip or tracked.was_ever_processed():
            await self._tracked_files.update_status(tracked.id, "error", message)
            run.log("error", f"Error in {tracked.file_name}: {message}", tracked.file_id, tracked.file_name)
            return
        await self._tracked_files.delete(tracked.id)
        run.removed_count += 1
        run.log(
            "error",
            f"Error in {tracked.file_name}: {message}. Record removed, it will be rediscovered on the next folder sync",
            tracked.file_id,
            tracked.file_name,
        )

    ##########################################
    ################# FOLDERS ################
    ##########################################

    async def _sync_folder(self, folder: TrackedFile, source: DocumentSource, user_id: int, run: SyncRun) -> bool:
        """Walk a tracked folder.

        Returns:
            bool: False when the file cap interrupted the walk; the folder is
                then left pending so the next run resumes it.
        """
        if not folder.include_children:
            run.log("info", f"Folder {folder.file_name} does not include children, skipping", folder.file_id, folder.file_name)
            await self._tracked_files.update_processed(folder.id, None, 0)
            return True

        await self._tracked_files.update_status(folder.id, "processing")
        run.log("info", f"Processing folder {folder.file_name}...", folder.file_id, folder.file_name)
        try:
            children = await self._source_service.do_list_files(source.id, user_id, folder.file_id)
        except Exception as e:
            run.error_count += 1
            await self._tracked_files.update_status(folder.id, "error", str(e))
            run.log("error", f"Could not list folder {folder.file_name}: {e}", folder.file_id, folder.file_name)
            return True
        run.log("info", f"Found {len(children)} items in {folder.file_name}", folder.file_id, folder.file_name)

        removed_before = run.removed_count
        for child in children:
            if not await self._sync_child(folder, child, source, user_id, run):
                await self._tracked_files.update_status(folder.id, "pending")
                run.log("info", f"Folder {folder.file_name} will resume on the next run", folder.file_id, folder.file_name)
                return False

        removed = run.removed_count - removed_before
        if removed:
            # dropped children are only rediscovered by walking the folder again
            message = f"{removed} file(s) failed and were dropped, retry the folder to rediscover them"
            await self._tracked_files.update_status(folder.id, "error", message)
            run.log("warning", f"Folder {folder.file_name}: {message}", folder.file_id, folder.file_name)
            return True

        await self._tracked_files.update_processed(folder.id, None, 0)
        run.log("success", f"Folder {folder.file_name} synced", folder.file_id, folder.file_name)
        return True

    async def _sync_child(
        self, folder: TrackedFile, child: CloudFile, source: DocumentSource, user_id: int, run: SyncRun
    ) -> bool:
        tracked = await self._tracked_files.find_by_source_and_file_id(source.id, child.id)
        if tracked is None:
            tracked = await self._tracked_files.create(TrackedFileCreate(
                source_id=source.id,
                file_id=child.id,
                file_name=child.name,
                file_path=f"{folder.file_path}/{child.name}",
                last_modified=child.modified_time or datetime.now(timezone.utc),
                is_folder=child.is_folder,
                include_children=child.is_folder and folder.include_children,
            ))

        if child.is_folder:
            if tracked.status in ("pending", "error"):
                return await self._sync_folder(tracked, source, user_id, run)
            return True

        effective_name = child.name
        if StorageClientGoogledrive.is_google_native(child.mime_type):
            effective_name = f"{child.name}.pdf"
        if not self._registry.is_supported_extension(effective_name):
            if tracked.status != "error":
                extension = self._registry.get_extension(effective_name) or "(no extension)"
                await self._tracked_files.update_status(tracked.id, "error", f"Unsupported format: {extension}")
                run.log("warning", f"{child.name} skipped: unsupported format {extension}", child.id, child.name)
            return True

        if tracked.status == "completed" and self._is_modified(tracked, child):
            tracked = await self._tracked_files.update(
                tracked.id, status="pending", last_modified=child.modified_time
            )
            run.log("info", f"{child.name} changed upstream, re-indexing", child.id, child.name)

        if tracked.status == "pending":
            await self._sync_file(tracked, source, user_id, run)
            if run.limit_reached:
                return False
        return True

    @staticmethod
    def _is_modified(tracked: TrackedFile, child: CloudFile) -> bool:
        if child.modified_time is None or tracked.last_processed_at is None:
            return False
        return _as_utc(child.modified_time) > _as_utc(tracked.last_processed_at)
