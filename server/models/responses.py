from datetime import datetime

from pydantic import BaseModel

from shared.models.document import SimilarDocument
from shared.models.source import DocumentSource, ProviderType


class DocumentSourceResponse(BaseModel):
    """A document source without its encrypted credentials."""

    id: int
    user_id: int
    name: str
    provider: ProviderType
    root_folder_id: str | None
    is_active: bool
    last_error: str | None
    last_sync_at: datetime | None
    has_oauth_client: bool
    created_at: datetime | None

    @classmethod
    def from_source(cls, source: DocumentSource) -> "DocumentSourceResponse":
        return cls(
            id=source.id,
            user_id=source.user_id,
            name=source.name,
            provider=source.provider,
            root_folder_id=source.root_folder_id,
            is_active=source.is_active,
            last_error=source.last_error,
            last_sync_at=source.last_sync_at,
            has_oauth_client=bool(source.client_id and source.client_secret),
            created_at=source.created_at,
        )


class ConversationCreatedResponse(BaseModel):
    conversation_id: int


class SearchResponse(BaseModel):
    query: str
    results: list[SimilarDocument]
    total: int


class SyncStatusResponse(BaseModel):
    is_running: bool
