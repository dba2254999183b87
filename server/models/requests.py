from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from shared.models.source import ProviderType


class AskRequest(BaseModel):
    question: str = Field(min_length=1)
    conversation_id: int
    user_id: int


class CreateConversationRequest(BaseModel):
    user_id: int
    title: str = "Nueva conversación"


class UpdateConversationTitleRequest(BaseModel):
    user_id: int
    title: str = Field(min_length=1)


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    limit: int = Field(default=5, ge=1, le=50)


class ProcessDirectoryRequest(BaseModel):
    path: str
    extensions: list[str] | None = None


class CreateSourceRequest(BaseModel):
    user_id: int
    name: str
    provider: ProviderType
    credentials: dict[str, Any]
    root_folder_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = None


class UpdateSourceRequest(BaseModel):
    user_id: int
    name: str | None = None
    root_folder_id: str | None = None
    is_active: bool | None = None
    credentials: dict[str, Any] | None = None


class ProcessSourceFileRequest(BaseModel):
    user_id: int
    file_id: str
    file_name: str | None = None


class TrackFileRequest(BaseModel):
    user_id: int
    source_id: int
    file_id: str
    file_name: str
    file_path: str
    is_folder: bool = False
    include_children: bool = True
    last_modified: datetime | None = None


class SyncRequest(BaseModel):
    user_id: int
