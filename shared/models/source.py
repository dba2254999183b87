"""Document source models: configured origins of documents and the files they expose."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

ProviderType = Literal["google_drive", "dropbox", "onedrive", "local"]

SUPPORTED_PROVIDERS: tuple[str, ...] = ("google_drive", "dropbox", "onedrive", "local")
CLOUD_PROVIDERS: tuple[str, ...] = ("google_drive", "dropbox", "onedrive")


class DocumentSourceCredentials(BaseModel):
    """Decrypted OAuth credential blob stored (encrypted) on a DocumentSource.

    Unknown keys returned by a provider are kept so they survive a token rotation.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str | None = None
    refresh_token: str | None = None


class DocumentSource(BaseModel):
    """A configured origin of documents owned by exactly one user.

    ``credentials``, ``client_id`` and ``client_secret`` hold encrypted
    "<ivHex>:<cipherHex>" strings, never plaintext.
    """

    id: int
    user_id: int
    name: str
    provider: ProviderType
    credentials: str
    client_id: str | None = None
    client_secret: str | None = None
    root_folder_id: str | None = None
    is_active: bool = True
    last_error: str | None = None
    last_sync_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CloudFile(BaseModel):
    """A file or folder as reported by a cloud-storage provider."""

    id: str
    name: str
    mime_type: str
    is_folder: bool = False
    size: int | None = None
    modified_time: datetime | None = None
    web_view_link: str | None = None
    parent_id: str | None = None
    # provider path (Dropbox "path_display"), used for source URLs
    path: str | None = None


class TokenRefreshResult(BaseModel):
    """Tokens issued by a provider's OAuth refresh endpoint."""

    access_token: str
    refresh_token: str | None = None
