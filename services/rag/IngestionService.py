"""File ingestion: download or read a file, extract its text, chunk, embed and store it.

Content problems (unsupported format, no text, already processed, duplicate
name) come back as ``ProcessResult(success=False, reason=...)``. Infrastructure
failures (provider, embeddings, vector store) propagate to the caller.
"""

import hashlib
import os
import tempfile
import time

import aiofiles
import aiofiles.os

from services.rag.SemanticChunker import SemanticChunker
from services.rag.SourceUrlGenerator import generate_source_url
from services.sources.DocumentSourceService import DocumentSourceService
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.storage.googledrive.StorageClientGoogledrive import StorageClientGoogledrive
from shared.extractors.TextExtractorRegistry import TextExtractorRegistry
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperFilename import sanitize_filename
from shared.models.document import DirectoryProcessResult, DocumentChunk, ProcessResult
from shared.models.errors import UniqueConstraintError
from shared.repositories.RepositoryInterfaces import DocumentVectorRepository, ProcessedFileRepository

DEFAULT_DIRECTORY_EXTENSIONS = [".pdf", ".docx", ".doc", ".txt", ".xlsx"]


def compute_hash(content: bytes) -> str:
    return hashlib.md5(content).hexdigest()


class IngestionService:
    def __init__(
        self,
        helper_config: HelperConfig,
        vector_repository: DocumentVectorRepository,
        processed_file_repository: ProcessedFileRepository,
        embed_client: EmbedClientInterface,
        source_service: DocumentSourceService | None = None,
        extractor_registry: TextExtractorRegistry | None = None,
        chunker: SemanticChunker | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._vectors = vector_repository
        self._processed_files = processed_file_repository
        self._embed_client = embed_client
        self._sources = source_service
        self._registry = extractor_registry or TextExtractorRegistry()
        self._chunker = chunker or SemanticChunker(helper_config)
        self._temp_dir = helper_config.get_path_val("INGESTION_TEMP_DIR", default=tempfile.gettempdir(), create=True)

    def is_supported_file(self, filename: str) -> bool:
        return self._registry.is_supported_extension(filename)

    ##########################################
    ################# LEDGER #################
    ##########################################

    async def do_restore_ledger(self) -> int:
        """Re-create missing ledger entries from the rows already in the vector store.

        The vector store outlives the process while the ledger may not, so this runs
        at startup. Without it a restart would let the same file be indexed twice.

        Returns:
            int: Number of entries added.
        """
        restored = 0
        for entry in await self._vectors.find_indexed_sources():
            if await self._processed_files.find_by_filename(entry.filename) is not None:
                continue
            await self._processed_files.insert(entry.filename, entry.file_hash, entry.chunks_count)
            restored += 1
        if restored:
            self.logging.info("Restored %d ledger entries from the vector store", restored)
        return restored

    ##########################################
    ############### FROM SOURCE ##############
    ##########################################

    async def do_process_file_from_source(
        self,
        user_id: int,
        source_id: int,
        file_id: str,
        file_name: str | None = None,
        replace_existing: bool = False,
    ) -> ProcessResult:
        """Ingest one cloud file of a document source.

        Args:
            user_id (int): Owner of the source.
            source_id (int): The document source.
            file_id (str): Provider file id.
            file_name (str | None): Display name overriding the provider's.
            replace_existing (bool): Replace the stored rows of a changed file with
                the same sanitized name instead of rejecting it as a duplicate.

        Returns:
            ProcessResult: The outcome; ``chunks_count`` is set on success.

        Raises:
            SourceNotFoundError: If the source does not exist or belongs to another user.
            SourceAccessError: If the provider rejects the metadata or download call.
        """
        if self._sources is None:
            raise RuntimeError("Document sources are not configured")

        source = await self._sources.do_get_source(source_id, user_id)
        if not source.is_active:
            return ProcessResult(
                success=False,
                reason="source_unavailable",
                message=f"Source {source.name} is inactive: {source.last_error or 're-authenticate it'}",
            )

        metadata = await self._sources.do_get_file_metadata(source_id, user_id, file_id)
        filename = file_name or metadata.name or file_id
        if StorageClientGoogledrive.is_google_native(metadata.mime_type) and not filename.lower().endswith(".pdf"):
            filename = f"{filename}.pdf"

        if not self._registry.is_supported_extension(filename):
            extension = self._registry.get_extension(filename) or "(no extension)"
            return ProcessResult(success=False, reason="unsupported_format", message=f"Unsupported format: {extension}")

        content = await self._sources.do_download_file(source_id, user_id, file_id)
        url_key = (metadata.path or filename) if source.provider == "dropbox" else filename
        return await self._ingest_bytes(
            content=content,
            filename=filename,
            source_url=generate_source_url(file_id, source.provider, url_key),
            source_type=source.provider,
            replace_existing=replace_existing,
        )

    ##########################################
    ################## LOCAL #################
    ##########################################

    async def do_process_file(self, file_path: str) -> ProcessResult:
        """Ingest a file already on local disk, e.g. an upload."""
        filename = os.path.basename(file_path)
        if not self._registry.is_supported_extension(filename):
            extension = self._registry.get_extension(filename) or "(no extension)"
            return ProcessResult(success=False, reason="unsupported_format", message=f"Unsupported format: {extension}")

        async with aiofiles.open(file_path, "rb") as f:
            content = await f.read()
        return await self._ingest_bytes(
            content=content,
            filename=filename,
            source_url=generate_source_url(filename, "local", filename),
            source_type="local",
            sanitize=False,
        )

    async def do_process_directory(
        self, directory_path: str, extensions: list[str] | None = None
    ) -> DirectoryProcessResult:
        """Ingest every file in `directory_path` whose extension is listed.

        Per-file failures are counted, never raised.
        """
        wanted = [e.lower() for e in (extensions or DEFAULT_DIRECTORY_EXTENSIONS)]
        entries = sorted(await aiofiles.os.listdir(directory_path))
        files = [
            os.path.join(directory_path, name)
            for name in entries
            if os.path.splitext(name)[1].lower() in wanted
        ]
        result = DirectoryProcessResult()
        if not files:
            result.details.append("No supported files found")
            return result

        for path in files:
            name = os.path.basename(path)
            try:
                outcome = await self.do_process_file(path)
            except Exception as e:
                self.logging.error("Failed to ingest '%s': %s", path, e)
                result.errors += 1
                result.details.append(f"{name}: {e}")
                continue
            if outcome.success:
                result.processed += 1
                result.details.append(f"{name}: {outcome.chunks_count} chunks")
            elif outcome.reason == "already_processed":
                result.skipped += 1
                result.details.append(f"{name}: already processed")
            else:
                result.errors += 1
                result.details.append(f"{name}: {outcome.message}")
        self.logging.info(
            "Directory '%s': %d processed, %d skipped, %d errors",
            directory_path, result.processed, result.skipped, result.errors,
        )
        return result

    ##########################################
    ################# PIPELINE ###############
    ##########################################

    async def _ingest_bytes(
        self,
        content: bytes,
        filename: str,
        source_url: str,
        source_type: str,
        replace_existing: bool = False,
        sanitize: bool = True,
    ) -> ProcessResult:
        file_hash = compute_hash(content)
        source = sanitize_filename(filename) if sanitize else filename

        if await self._processed_files.exists(source, file_hash):
            if replace_existing:
                # unchanged bytes behind a newer timestamp
                ledger = await self._processed_files.find_by_filename(source)
                return ProcessResult(
                    success=True,
                    message=f"File {filename} is unchanged",
                    chunks_count=ledger.chunks_count if ledger else 0,
                    file_hash=file_hash,
                )
            return ProcessResult(
                success=False,
                reason="already_processed",
                message=f"File {filename} was already processed",
                file_hash=file_hash,
            )

        previous = await self._processed_files.find_by_filename(source)
        if previous is not None and not replace_existing:
            return ProcessResult(
                success=False,
                reason="duplicate_name",
                message=f"A different file named {source} is already indexed",
                file_hash=file_hash,
            )

        temp_path = os.path.join(self._temp_dir, f"{time.time_ns()}-{source}")
        try:
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(content)
            extractor = self._registry.get_extractor(temp_path)
            text = await extractor.do_extract(temp_path)
        finally:
            try:
                await aiofiles.os.remove(temp_path)
            except FileNotFoundError:
                pass
            except OSError as e:
                self.logging.warning("Could not delete temp file '%s': %s", temp_path, e)

        chunks = self._chunker.chunk(text) if text.strip() else []
        if not chunks:
            return ProcessResult(
                success=False,
                reason="no_text",
                message=f"File {filename} has no extractable text",
                file_hash=file_hash,
            )

        embeddings = []
        for chunk in chunks:
            embeddings.append(await self._embed_client.do_generate_embedding(chunk))

        if previous is not None:
            self.logging.info("Replacing %d stored chunks of '%s'", previous.chunks_count, source)
            await self._vectors.delete_by_source(source)
            await self._processed_files.delete_by_filename(source)

        inserted: list[str] = []
        for index, (chunk, embedding) in enumerate(zip(chunks, embeddings), start=1):
            inserted.append(await self._vectors.insert_chunk(DocumentChunk(
                text=chunk,
                embedding=embedding,
                source=source,
                source_url=source_url,
                source_type=source_type,
                chunk_index=index,
                total_chunks=len(chunks),
                file_hash=file_hash,
            )))

        try:
            await self._processed_files.insert(source, file_hash, len(chunks))
        except UniqueConstraintError:
            self.logging.warning("'%s' was claimed concurrently, removing %d new chunks", source, len(inserted))
            await self._vectors.delete_chunks(inserted)
            return ProcessResult(
                success=False,
                reason="duplicate_name",
                message=f"A different file named {source} is already indexed",
                file_hash=file_hash,
            )

        self.logging.info("Indexed '%s' as %d chunks", source, len(chunks))
        return ProcessResult(
            success=True,
            message=f"File {filename} processed successfully",
            chunks_count=len(chunks),
            file_hash=file_hash,
        )
