"""Document sources: creation, encrypted credentials and access to the cloud files behind them.

Every provider call goes through one refresh-once cycle:

  attempt → auth failure with refresh token + OAuth client → refresh token,
  persist rotated credentials, reactivate → retry exactly once.

Any success clears ``last_error`` and reactivates the source. Failures are
recorded on ``last_error``; only authorization failures deactivate it.
"""

from typing import Any, Awaitable, Callable, TypeVar

from shared.clients.storage.StorageClientInterface import StorageClientInterface
from shared.clients.storage.StorageClientManager import StorageClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import ErrorKind, SourceAccessError, SourceNotFoundError, kind_from_status
from shared.models.source import (
    CloudFile,
    DocumentSource,
    DocumentSourceCredentials,
    SUPPORTED_PROVIDERS,
)
from shared.repositories.RepositoryInterfaces import DocumentSourceRepository, TrackedFileRepository
from shared.security.EncryptionService import EncryptionService

T = TypeVar("T")
StorageOperation = Callable[[StorageClientInterface, DocumentSourceCredentials], Awaitable[T]]

REFRESH_FAILED_MESSAGE = "Could not refresh token, re-authenticate the source"
AUTH_MESSAGE = "Invalid or expired access token"
PERMISSION_MESSAGE = "No permission to access this resource"


def classify_error(error: Exception) -> ErrorKind:
    """Return the structured kind of an error.

    Errors raised by the storage clients carry a kind; anything else falls
    back to inspecting the message text.
    """
    kind = getattr(error, "kind", None)
    if kind in ("auth", "permission", "not_found", "other"):
        return kind
    if getattr(error, "status_code", None) is not None:
        return kind_from_status(error.status_code)
    text = str(error)
    if "401" in text or "Unauthorized" in text or "Invalid Credentials" in text:
        return "auth"
    if "403" in text or "Forbidden" in text:
        return "permission"
    if "404" in text:
        return "not_found"
    return "other"


def describe_error(kind: ErrorKind, error: Exception, not_found_message: str) -> str:
    if kind == "auth":
        return AUTH_MESSAGE
    if kind == "permission":
        return PERMISSION_MESSAGE
    if kind == "not_found":
        return not_found_message
    return str(error) or error.__class__.__name__


class DocumentSourceService:
    def __init__(
        self,
        helper_config: HelperConfig,
        source_repository: DocumentSourceRepository,
        tracked_file_repository: TrackedFileRepository,
        storage_manager: StorageClientManager,
        encryption: EncryptionService,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._sources = source_repository
        self._tracked_files = tracked_file_repository
        self._storage = storage_manager
        self._encryption = encryption

    ##########################################
    ############### MANAGEMENT ###############
    ##########################################

    async def do_create_source(
        self,
        user_id: int,
        name: str,
        provider: str,
        credentials: dict[str, Any],
        root_folder_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
    ) -> DocumentSource:
        """Validate and store a new source with encrypted credentials.

        Raises:
            ValueError: If the name is empty, the provider unknown or the access token missing.
        """
        if not name or not name.strip():
            raise ValueError("Source name is required")
        if provider not in SUPPORTED_PROVIDERS:
            raise ValueError("Invalid provider, expected one of: %s" % ", ".join(SUPPORTED_PROVIDERS))
        parsed = DocumentSourceCredentials.model_validate(credentials or {})
        if not parsed.access_token:
            raise ValueError("Credentials must include an access_token")

        source = await self._sources.create(
            user_id=user_id,
            name=name.strip(),
            provider=provider,
            credentials=self._encryption.encrypt_json(parsed.model_dump(exclude_none=True)),
            root_folder_id=root_folder_id or None,
            client_id=self._encryption.encrypt(client_id) if client_id else None,
            client_secret=self._encryption.encrypt(client_secret) if client_secret else None,
        )
        self.logging.info("Created %s source %d for user %d", provider, source.id, user_id)
        return source

    async def do_get_user_sources(self, user_id: int) -> list[DocumentSource]:
        return await self._sources.find_by_user_id(user_id)

    async def do_get_source(self, source_id: int, user_id: int) -> DocumentSource:
        """Return the source if it belongs to `user_id`.

        Raises:
            SourceNotFoundError: If it does not exist or belongs to another user.
        """
        source = await self._sources.find_by_id(source_id)
        if source is None or source.user_id != user_id:
            raise SourceNotFoundError(f"Document source {source_id} not found")
        return source

    async def do_update_source(
        self,
        source_id: int,
        user_id: int,
        name: str | None = None,
        root_folder_id: str | None = None,
        is_active: bool | None = None,
        credentials: dict[str, Any] | None = None,
    ) -> DocumentSource:
        await self.do_get_source(source_id, user_id)
        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = name.strip()
        if root_folder_id is not None:
            fields["root_folder_id"] = root_folder_id or None
        if is_active is not None:
            fields["is_active"] = is_active
        if credentials is not None:
            parsed = DocumentSourceCredentials.model_validate(credentials)
            fields["credentials"] = self._encryption.encrypt_json(parsed.model_dump(exclude_none=True))
            # new credentials give the source a fresh start
            fields["is_active"] = True if is_active is None else is_active
            fields["last_error"] = None
        return await self._sources.update(source_id, **fields)

    async def do_delete_source(self, source_id: int, user_id: int) -> bool:
        """Delete the source and every tracked file under it."""
        source = await self._sources.find_by_id(source_id)
        if source is None or source.user_id != user_id:
            return False
        await self._tracked_files.delete_by_source_id(source_id)
        await self._sources.delete(source_id)
        self.logging.info("Deleted source %d and its tracked files", source_id)
        return True

    ##########################################
    ############### FILE ACCESS ##############
    ##########################################

    async def do_list_files(self, source_id: int, user_id: int, folder_id: str | None = None) -> list[CloudFile]:
        """List a folder (the source's root scope when folder_id is None)."""
        source = await self.do_get_source(source_id, user_id)
        target = folder_id or source.root_folder_id

        async def operation(client: StorageClientInterface, credentials: DocumentSourceCredentials) -> list[CloudFile]:
            return await client.do_list_files(credentials, target)

        return await self._execute_with_refresh(source, operation, "Folder not found")

    async def do_download_file(self, source_id: int, user_id: int, file_id: str) -> bytes:
        source = await self.do_get_source(source_id, user_id)

        async def operation(client: StorageClientInterface, credentials: DocumentSourceCredentials) -> bytes:
            return await client.do_download_file(credentials, file_id)

        return await self._execute_with_refresh(source, operation, "File not found")

    async def do_get_file_metadata(self, source_id: int, user_id: int, file_id: str) -> CloudFile:
        source = await self.do_get_source(source_id, user_id)

        async def operation(client: StorageClientInterface, credentials: DocumentSourceCredentials) -> CloudFile:
            return await client.do_get_file_metadata(credentials, file_id)

        return await self._execute_with_refresh(source, operation, "File not found")

    ##########################################
    ########### CREDENTIAL LIFECYCLE #########
    ##########################################

    def _decrypt_credentials(self, source: DocumentSource) -> DocumentSourceCredentials:
        return DocumentSourceCredentials.model_validate(self._encryption.decrypt_json(source.credentials))

    def _decrypt_optional(self, value: str | None) -> str | None:
        return self._encryption.decrypt(value) if value else None

    async def _execute_with_refresh(self, source: DocumentSource, operation: StorageOperation, not_found_message: str) -> T:
        if source.provider == "local":
            raise SourceAccessError("Local sources have no remote storage", kind="other")
        client = self._storage.get_client(source.provider)
        credentials = self._decrypt_credentials(source)

        try:
            result = await operation(client, credentials)
        except Exception as e:
            kind = classify_error(e)
            if kind == "auth":
                return await self._refresh_and_retry(source, client, credentials, operation, e, not_found_message)
            await self._record_failure(source, kind, describe_error(kind, e, not_found_message))
            raise SourceAccessError(describe_error(kind, e, not_found_message), kind=kind) from e

        await self._mark_healthy(source)
        return result

    async def _refresh_and_retry(
        self,
        source: DocumentSource,
        client: StorageClientInterface,
        credentials: DocumentSourceCredentials,
        operation: StorageOperation,
        error: Exception,
        not_found_message: str,
    ) -> T:
        client_id = self._decrypt_optional(source.client_id)
        client_secret = self._decrypt_optional(source.client_secret)
        if not (credentials.refresh_token and client_id and client_secret):
            self.logging.warning("Source %d rejected its token and cannot refresh it", source.id)
            await self._record_failure(source, "auth", AUTH_MESSAGE)
            raise SourceAccessError(AUTH_MESSAGE, kind="auth") from error

        self.logging.info("Access token expired for source %d, refreshing", source.id)
        try:
            tokens = await client.do_refresh_access_token(credentials.refresh_token, client_id, client_secret)
        except Exception as refresh_error:
            self.logging.error("Token refresh failed for source %d: %s", source.id, refresh_error)
            await self._record_failure(source, "auth", REFRESH_FAILED_MESSAGE)
            raise SourceAccessError(REFRESH_FAILED_MESSAGE, kind="auth") from refresh_error

        refreshed = credentials.model_copy(update={
            "access_token": tokens.access_token,
            "refresh_token": tokens.refresh_token or credentials.refresh_token,
        })
        await self._sources.update(
            source.id,
            credentials=self._encryption.encrypt_json(refreshed.model_dump(exclude_none=True)),
            is_active=True,
            last_error=None,
        )
        self.logging.info("Token refreshed for source %d", source.id)

        try:
            return await operation(client, refreshed)
        except Exception as retry_error:
            kind = classify_error(retry_error)
            message = describe_error(kind, retry_error, not_found_message)
            await self._record_failure(source, kind, message)
            raise SourceAccessError(message, kind=kind) from retry_error

    async def _record_failure(self, source: DocumentSource, kind: ErrorKind, message: str) -> None:
        await self._sources.update_last_error(source.id, message)
        if kind == "auth":
            await self._sources.update(source.id, is_active=False)
            self.logging.warning("Source %d deactivated: %s", source.id, message)

    async def _mark_healthy(self, source: DocumentSource) -> None:
        if source.last_error is not None:
            await self._sources.update_last_error(source.id, None)
        if not source.is_active:
            await self._sources.update(source.id, is_active=True)
            self.logging.info("Source %d reactivated after a successful call", source.id)
