from abc import abstractmethod

import httpx
from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import StorageError, kind_from_status
from shared.models.source import CloudFile, DocumentSourceCredentials, TokenRefreshResult


class StorageClientInterface(ClientInterface):
    """Cloud-storage capability shared by the Google Drive, Dropbox and OneDrive clients.

    Every call authenticates with the bearer token of the credentials passed in,
    so one booted client serves all sources of its provider. Non-2xx responses
    raise StorageError carrying a structured kind (auth / permission / not_found / other).
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "storage"

    @abstractmethod
    def get_provider(self) -> str:
        """
        Returns the DocumentSource provider value served by this client (e.g. "google_drive").
        """
        pass

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        # tokens are per source, see _get_bearer_header
        return {}

    def _get_bearer_header(self, credentials: DocumentSourceCredentials) -> dict:
        return {"Authorization": f"Bearer {credentials.access_token}"}

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_token_url(self) -> str:
        """
        Returns the absolute URL of the provider's OAuth token endpoint.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    def _make_error(self, response: httpx.Response, action: str) -> Exception:
        # kind drives the credential lifecycle: only "auth" triggers refresh and deactivation
        return StorageError(
            "%s %s failed with status %d" % (self._get_engine_name(), action, response.status_code),
            kind=kind_from_status(response.status_code),
            status_code=response.status_code,
        )

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_refresh_access_token(self, refresh_token: str, client_id: str, client_secret: str) -> TokenRefreshResult:
        """Exchange a refresh token for a new access token.

        Args:
            refresh_token (str): The stored refresh token.
            client_id (str): The OAuth client id the token was issued to.
            client_secret (str): The OAuth client secret.

        Returns:
            TokenRefreshResult: The new access token and, when the provider rotated it, the new refresh token.

        Raises:
            StorageError: If the token endpoint rejects the request.
        """
        response = await self.do_request(
            method="POST",
            url=self._get_token_url(),
            data={
                "refresh_token": refresh_token,
                "client_id": client_id,
                "client_secret": client_secret,
                "grant_type": "refresh_token",
            },
        )
        self._raise_for_status(response, "token refresh")
        body = response.json()
        return TokenRefreshResult(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
        )

    @abstractmethod
    async def do_list_files(self, credentials: DocumentSourceCredentials, folder_id: str | None = None) -> list[CloudFile]:
        """List the direct children of a folder (the drive root when folder_id is None).

        Args:
            credentials (DocumentSourceCredentials): Decrypted source credentials.
            folder_id (str | None): Provider id (or path, for Dropbox) of the folder.

        Returns:
            list[CloudFile]: Every child across all result pages.
        """
        pass

    @abstractmethod
    async def do_download_file(self, credentials: DocumentSourceCredentials, file_id: str) -> bytes:
        """Download the raw bytes of a file.

        Args:
            credentials (DocumentSourceCredentials): Decrypted source credentials.
            file_id (str): Provider id of the file.

        Returns:
            bytes: The file content.
        """
        pass

    @abstractmethod
    async def do_get_file_metadata(self, credentials: DocumentSourceCredentials, file_id: str) -> CloudFile:
        """Fetch the metadata of a single file or folder.

        Args:
            credentials (DocumentSourceCredentials): Decrypted source credentials.
            file_id (str): Provider id of the file.

        Returns:
            CloudFile: The file metadata.
        """
        pass
