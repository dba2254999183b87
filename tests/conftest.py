"""
Shared fixtures: in-memory repositories and fake capability clients.
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from services.rag.IngestionService import IngestionService
from services.rag.RAGService import RAGService
from services.sources.DocumentSourceService import DocumentSourceService
from services.sync.SyncService import SyncService
from services.tracking.TrackedFilesService import TrackedFilesService
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import StorageError
from shared.models.source import CloudFile, DocumentSourceCredentials, TokenRefreshResult
from shared.repositories.memory.ConversationRepositoryMemory import ConversationRepositoryMemory
from shared.repositories.memory.DocumentSourceRepositoryMemory import DocumentSourceRepositoryMemory
from shared.repositories.memory.DocumentVectorRepositoryMemory import DocumentVectorRepositoryMemory
from shared.repositories.memory.ProcessedFileRepositoryMemory import ProcessedFileRepositoryMemory
from shared.repositories.memory.TrackedFileRepositoryMemory import TrackedFileRepositoryMemory
from shared.security.EncryptionService import EncryptionService

TEST_SECRET = "test-secret-for-credentials"


def text_vector(text: str) -> list[float]:
    """Deterministic letter-frequency embedding, good enough for ranking in tests."""
    vector = [0.0] * 26
    for char in text.lower():
        if "a" <= char <= "z":
            vector[ord(char) - ord("a")] += 1.0
    vector[0] += 0.001
    return vector


def paragraph(seed: str, length: int = 300) -> str:
    """A sentence-structured paragraph of roughly `length` characters."""
    sentence = f"The {seed} section explains how the {seed} process works in practice. "
    return (sentence * (length // len(sentence) + 1))[:length].rsplit(" ", 1)[0].strip() + "."


def backdate(tracked_file_repository, tracked_id: int, minutes: int) -> None:
    """Pretend a tracked record was last touched `minutes` ago."""
    tracked = tracked_file_repository._files[tracked_id]
    tracked_file_repository._files[tracked_id] = tracked.model_copy(
        update={"updated_at": datetime.now(timezone.utc) - timedelta(minutes=minutes)}
    )


class FakeEmbedClient:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.fail_with: Exception | None = None

    async def do_generate_embedding(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_with is not None:
            raise self.fail_with
        return text_vector(text)

    async def do_fetch_embedding_vector_size(self) -> tuple[int, str]:
        return 26, "Cosine"


class FakeLLMClient:
    """Returns queued responses (or raises queued exceptions) and records every call."""

    def __init__(self, responses: list | None = None, default: str = "respuesta") -> None:
        self.responses = list(responses or [])
        self.default = default
        self.calls: list[list[dict]] = []

    async def do_chat(self, messages: list[dict]) -> str:
        self.calls.append(messages)
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return self.default


class FakeStorageClient:
    """
    In-memory cloud drive. Only tokens in ``valid_tokens`` are accepted, others
    fail with a 401 StorageError. Refresh issues ``refreshed_token``.
    """

    def __init__(self, provider: str = "google_drive") -> None:
        self.provider = provider
        self.folders: dict[str | None, list[CloudFile]] = {}
        self.contents: dict[str, bytes] = {}
        self.metadata: dict[str, CloudFile] = {}
        self.valid_tokens = {"good-token"}
        self.refreshed_token = "fresh-token"
        self.refresh_rotates_refresh_token = True
        self.refresh_error: Exception | None = None
        self.errors: dict[str, Exception] = {}
        self.refresh_calls: list[str] = []
        self.list_calls: list[tuple[str | None, str | None]] = []
        self.download_calls: list[str] = []

    def get_provider(self) -> str:
        return self.provider

    def add_file(self, file_id: str, name: str, content: bytes, folder_id: str | None = None,
                 mime_type: str = "text/plain", modified_time: datetime | None = None) -> CloudFile:
        cloud_file = CloudFile(
            id=file_id,
            name=name,
            mime_type=mime_type,
            size=len(content),
            modified_time=modified_time or datetime(2024, 1, 1, tzinfo=timezone.utc),
            parent_id=folder_id,
        )
        self.folders.setdefault(folder_id, []).append(cloud_file)
        self.contents[file_id] = content
        self.metadata[file_id] = cloud_file
        return cloud_file

    def add_folder(self, folder_id: str, name: str, parent_id: str | None = None) -> CloudFile:
        folder = CloudFile(
            id=folder_id,
            name=name,
            mime_type="application/vnd.google-apps.folder",
            is_folder=True,
            parent_id=parent_id,
        )
        self.folders.setdefault(parent_id, []).append(folder)
        self.folders.setdefault(folder_id, [])
        self.metadata[folder_id] = folder
        return folder

    def _check(self, credentials: DocumentSourceCredentials, key: str) -> None:
        if key in self.errors:
            raise self.errors[key]
        if credentials.access_token not in self.valid_tokens:
            raise StorageError("Fake request failed with status 401", kind="auth", status_code=401)

    async def do_refresh_access_token(self, refresh_token: str, client_id: str, client_secret: str) -> TokenRefreshResult:
        self.refresh_calls.append(refresh_token)
        if self.refresh_error is not None:
            raise self.refresh_error
        self.valid_tokens.add(self.refreshed_token)
        return TokenRefreshResult(
            access_token=self.refreshed_token,
            refresh_token="rotated-refresh" if self.refresh_rotates_refresh_token else None,
        )

    async def do_list_files(self, credentials: DocumentSourceCredentials, folder_id: str | None = None) -> list[CloudFile]:
        self.list_calls.append((credentials.access_token, folder_id))
        self._check(credentials, f"list:{folder_id}")
        if folder_id not in self.folders:
            raise StorageError("Fake list failed with status 404", kind="not_found", status_code=404)
        return list(self.folders[folder_id])

    async def do_download_file(self, credentials: DocumentSourceCredentials, file_id: str) -> bytes:
        self.download_calls.append(file_id)
        self._check(credentials, f"download:{file_id}")
        return self.contents[file_id]

    async def do_get_file_metadata(self, credentials: DocumentSourceCredentials, file_id: str) -> CloudFile:
        self._check(credentials, f"metadata:{file_id}")
        if file_id not in self.metadata:
            raise StorageError("Fake metadata failed with status 404", kind="not_found", status_code=404)
        return self.metadata[file_id]


class FakeStorageManager:
    def __init__(self, client: FakeStorageClient) -> None:
        self.client = client

    def get_client(self, provider: str) -> FakeStorageClient:
        if provider == "local":
            raise ValueError("No cloud storage client for provider: 'local'")
        return self.client


@pytest.fixture
def helper_config(monkeypatch) -> HelperConfig:
    monkeypatch.setenv("ENCRYPTION_KEY", TEST_SECRET)
    return HelperConfig(logger=logging.getLogger("tests"))


@pytest.fixture
def encryption() -> EncryptionService:
    return EncryptionService(secret=TEST_SECRET)


@pytest.fixture
def source_repository() -> DocumentSourceRepositoryMemory:
    return DocumentSourceRepositoryMemory()


@pytest.fixture
def tracked_file_repository() -> TrackedFileRepositoryMemory:
    return TrackedFileRepositoryMemory()


@pytest.fixture
def processed_file_repository() -> ProcessedFileRepositoryMemory:
    return ProcessedFileRepositoryMemory()


@pytest.fixture
def conversation_repository() -> ConversationRepositoryMemory:
    return ConversationRepositoryMemory()


@pytest.fixture
def vector_repository() -> DocumentVectorRepositoryMemory:
    return DocumentVectorRepositoryMemory()


@pytest.fixture
def embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def storage_client() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def source_service(helper_config, source_repository, tracked_file_repository, storage_client, encryption) -> DocumentSourceService:
    return DocumentSourceService(
        helper_config=helper_config,
        source_repository=source_repository,
        tracked_file_repository=tracked_file_repository,
        storage_manager=FakeStorageManager(storage_client),
        encryption=encryption,
    )


@pytest.fixture
def ingestion_service(helper_config, vector_repository, processed_file_repository, embed_client, source_service, tmp_path, monkeypatch) -> IngestionService:
    monkeypatch.setenv("INGESTION_TEMP_DIR", str(tmp_path))
    return IngestionService(
        helper_config=helper_config,
        vector_repository=vector_repository,
        processed_file_repository=processed_file_repository,
        embed_client=embed_client,
        source_service=source_service,
    )


@pytest.fixture
def rag_service(helper_config, conversation_repository, vector_repository, processed_file_repository, embed_client, llm_client) -> RAGService:
    return RAGService(
        helper_config=helper_config,
        conversation_repository=conversation_repository,
        vector_repository=vector_repository,
        processed_file_repository=processed_file_repository,
        embed_client=embed_client,
        llm_client=llm_client,
    )


@pytest.fixture
def sync_service(helper_config, tracked_file_repository, source_repository, source_service, ingestion_service) -> SyncService:
    return SyncService(
        helper_config=helper_config,
        tracked_file_repository=tracked_file_repository,
        source_repository=source_repository,
        source_service=source_service,
        ingestion_service=ingestion_service,
    )


@pytest.fixture
def tracked_files_service(helper_config, tracked_file_repository, source_repository, vector_repository, processed_file_repository) -> TrackedFilesService:
    return TrackedFilesService(
        helper_config=helper_config,
        tracked_file_repository=tracked_file_repository,
        source_repository=source_repository,
        vector_repository=vector_repository,
        processed_file_repository=processed_file_repository,
    )


@pytest.fixture
async def drive_source(source_service):
    """An active Google Drive source of user 1 with a refreshable token."""
    return await source_service.do_create_source(
        user_id=1,
        name="Drive",
        provider="google_drive",
        credentials={"access_token": "good-token", "refresh_token": "refresh-1"},
        root_folder_id="root",
        client_id="client-id",
        client_secret="client-secret",
    )
