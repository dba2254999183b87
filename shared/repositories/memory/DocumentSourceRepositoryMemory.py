from datetime import datetime, timezone
from itertools import count

from shared.models.source import DocumentSource
from shared.repositories.RepositoryInterfaces import DocumentSourceRepository


class DocumentSourceRepositoryMemory(DocumentSourceRepository):
    """Process-local document source store."""

    def __init__(self) -> None:
        self._sources: dict[int, DocumentSource] = {}
        self._ids = count(1)

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
        now = datetime.now(timezone.utc)
        source = DocumentSource(
            id=next(self._ids),
            user_id=user_id,
            name=name,
            provider=provider,
            credentials=credentials,
            root_folder_id=root_folder_id,
            client_id=client_id,
            client_secret=client_secret,
            created_at=now,
            updated_at=now,
        )
        self._sources[source.id] = source
        return source.model_copy()

    async def find_by_id(self, source_id: int) -> DocumentSource | None:
        source = self._sources.get(source_id)
        return source.model_copy() if source else None

    async def find_by_user_id(self, user_id: int) -> list[DocumentSource]:
        return [s.model_copy() for s in self._sources.values() if s.user_id == user_id]

    async def update(self, source_id: int, **fields) -> DocumentSource:
        source = self._sources[source_id]
        fields["updated_at"] = datetime.now(timezone.utc)
        updated = source.model_copy(update=fields)
        self._sources[source_id] = updated
        return updated.model_copy()

    async def update_last_error(self, source_id: int, error: str | None) -> None:
        await self.update(source_id, last_error=error)

    async def update_last_sync(self, source_id: int) -> None:
        await self.update(source_id, last_sync_at=datetime.now(timezone.utc))

    async def delete(self, source_id: int) -> None:
        self._sources.pop(source_id, None)
