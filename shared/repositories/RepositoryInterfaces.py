"""Persistence ports used by the services.

Repositories hold no business logic. Each call is atomic on its own; no
transaction spans several calls, so services compensate explicitly.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from shared.models.conversation import Conversation, ConversationMessage, Role
from shared.models.document import DocumentChunk, ProcessedFile, SimilarDocument, SourceChunk
from shared.models.source import DocumentSource
from shared.models.tracked_file import TrackedFile, TrackedFileCreate, TrackedFileStatus


class DocumentSourceRepository(ABC):

    @abstractmethod
    async def create(
        self,
        user_id: int,
        name: str,
        provider: str,
        credentials: str,
        root_folder_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
    ) -> DocumentSource:
        pass

    @abstractmethod
    async def find_by_id(self, source_id: int) -> DocumentSource | None:
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: int) -> list[DocumentSource]:
        pass

    @abstractmethod
    async def update(self, source_id: int, **fields) -> DocumentSource:
        """Apply a partial update.

        Raises:
            KeyError: If the source does not exist.
        """
        pass

    @abstractmethod
    async def update_last_error(self, source_id: int, error: str | None) -> None:
        pass

    @abstractmethod
    async def update_last_sync(self, source_id: int) -> None:
        pass

    @abstractmethod
    async def delete(self, source_id: int) -> None:
        pass


class TrackedFileRepository(ABC):

    @abstractmethod
    async def create(self, data: TrackedFileCreate) -> TrackedFile:
        """Insert a new record in status "pending".

        Raises:
            UniqueConstraintError: If (source_id, file_id) is already tracked.
        """
        pass

    @abstractmethod
    async def find_by_id(self, tracked_id: int) -> TrackedFile | None:
        pass

    @abstractmethod
    async def find_by_source_and_file_id(self, source_id: int, file_id: str) -> TrackedFile | None:
        pass

    @abstractmethod
    async def find_by_source_id(self, source_id: int) -> list[TrackedFile]:
        pass

    @abstractmethod
    async def find_pending(self, limit: int) -> list[TrackedFile]:
        """Return up to `limit` records in status "pending", oldest first."""
        pass

    @abstractmethod
    async def find_stale(self, statuses: list[TrackedFileStatus], updated_before: datetime) -> list[TrackedFile]:
        """Return records in one of `statuses` last updated at or before `updated_before`."""
        pass

    @abstractmethod
    async def update_status(self, tracked_id: int, status: TrackedFileStatus, error_message: str | None = None) -> None:
        pass

    @abstractmethod
    async def update_processed(self, tracked_id: int, file_hash: str | None, chunks_count: int) -> None:
        """Mark as completed, stamp last_processed_at and clear any error."""
        pass

    @abstractmethod
    async def update(self, tracked_id: int, **fields) -> TrackedFile:
        pass

    @abstractmethod
    async def delete(self, tracked_id: int) -> None:
        pass

    @abstractmethod
    async def delete_by_source_id(self, source_id: int) -> None:
        pass


class DocumentVectorRepository(ABC):

    @abstractmethod
    async def insert_chunk(self, chunk: DocumentChunk) -> str:
        """Store one chunk and return its point id."""
        pass

    @abstractmethod
    async def find_similar(self, embedding: list[float], k: int) -> list[SimilarDocument]:
        """Return the k nearest chunks, best first."""
        pass

    @abstractmethod
    async def get_all_chunks_by_source(self, source: str) -> list[SourceChunk]:
        """Return every chunk of a document ordered by chunk_index."""
        pass

    @abstractmethod
    async def find_indexed_sources(self) -> list[ProcessedFile]:
        """Summarize the stored rows as one ledger entry per source.

        Rows written without a content hash come back with an empty ``file_hash``.
        """
        pass

    @abstractmethod
    async def delete_by_source(self, source: str) -> None:
        pass

    @abstractmethod
    async def delete_chunks(self, point_ids: list[str]) -> None:
        pass

    @abstractmethod
    async def count_all(self) -> int:
        pass

    @abstractmethod
    async def clear_all(self) -> None:
        pass


class ConversationRepository(ABC):

    @abstractmethod
    async def create(self, user_id: int, title: str) -> Conversation:
        pass

    @abstractmethod
    async def find_by_id(self, conversation_id: int) -> Conversation | None:
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: int) -> list[Conversation]:
        """Return the user's active conversations, most recently updated first."""
        pass

    @abstractmethod
    async def add_message(self, conversation_id: int, role: Role, content: str) -> ConversationMessage:
        pass

    @abstractmethod
    async def get_messages(self, conversation_id: int) -> list[ConversationMessage]:
        """Return every message of the conversation in creation order."""
        pass

    @abstractmethod
    async def deactivate(self, conversation_id: int) -> bool:
        pass

    @abstractmethod
    async def update_title(self, conversation_id: int, title: str) -> Conversation:
        pass


class ProcessedFileRepository(ABC):

    @abstractmethod
    async def exists(self, filename: str, file_hash: str) -> bool:
        pass

    @abstractmethod
    async def find_by_filename(self, filename: str) -> ProcessedFile | None:
        pass

    @abstractmethod
    async def insert(self, filename: str, file_hash: str, chunks_count: int) -> ProcessedFile:
        """Record an ingested file.

        Raises:
            UniqueConstraintError: If the filename is already in the ledger.
        """
        pass

    @abstractmethod
    async def delete_by_filename(self, filename: str) -> None:
        pass

    @abstractmethod
    async def find_all(self) -> list[ProcessedFile]:
        pass

    @abstractmethod
    async def clear_all(self) -> None:
        pass
