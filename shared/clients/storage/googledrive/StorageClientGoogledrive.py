from shared.clients.storage.StorageClientInterface import StorageClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.source import CloudFile, DocumentSourceCredentials

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
GOOGLE_NATIVE_PREFIX = "application/vnd.google-apps."
FILE_FIELDS = "id,name,mimeType,size,modifiedTime,webViewLink,parents"


class StorageClientGoogledrive(StorageClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://www.googleapis.com/drive/v3", val_type="string")
        self._token_url = self.get_config_val("TOKEN_URL", default="https://oauth2.googleapis.com/token", val_type="string")
        self._page_size = self.get_config_val("PAGE_SIZE", default=1000, val_type="number")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Googledrive"

    def get_provider(self) -> str:
        return "google_drive"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://www.googleapis.com/drive/v3"),
            EnvConfig(env_key="TOKEN_URL", val_type="string", default="https://oauth2.googleapis.com/token"),
        ]

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/about"

    def _get_token_url(self) -> str:
        return self._token_url

    ##########################################
    ################# OTHER ##################
    ##########################################

    @staticmethod
    def is_google_native(mime_type: str) -> bool:
        """Google Docs/Sheets/Slides have no binary content and must be exported."""
        return mime_type.startswith(GOOGLE_NATIVE_PREFIX) and mime_type != FOLDER_MIME_TYPE

    def _to_cloud_file(self, item: dict) -> CloudFile:
        parents = item.get("parents") or []
        return CloudFile(
            id=item["id"],
            name=item["name"],
            mime_type=item.get("mimeType", "application/octet-stream"),
            is_folder=item.get("mimeType") == FOLDER_MIME_TYPE,
            size=int(item["size"]) if item.get("size") else None,
            modified_time=item.get("modifiedTime"),
            web_view_link=item.get("webViewLink"),
            parent_id=parents[0] if parents else None,
        )

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_list_files(self, credentials: DocumentSourceCredentials, folder_id: str | None = None) -> list[CloudFile]:
        parent = folder_id or "root"
        files: list[CloudFile] = []
        page_token: str | None = None
        while True:
            params = {
                "q": f"'{parent}' in parents and trashed=false",
                "fields": f"nextPageToken,files({FILE_FIELDS})",
                "pageSize": self._page_size,
            }
            if page_token:
                params["pageToken"] = page_token
            response = await self.do_request(
                method="GET",
                endpoint="/files",
                params=params,
                additional_headers=self._get_bearer_header(credentials),
            )
            self._raise_for_status(response, "list files")
            body = response.json()
            files.extend(self._to_cloud_file(item) for item in body.get("files", []))
            page_token = body.get("nextPageToken")
            if not page_token:
                break
        self.logging.debug("Listed %d items in Google Drive folder %s", len(files), parent)
        return files

    async def do_get_file_metadata(self, credentials: DocumentSourceCredentials, file_id: str) -> CloudFile:
        response = await self.do_request(
            method="GET",
            endpoint=f"/files/{file_id}",
            params={"fields": FILE_FIELDS},
            additional_headers=self._get_bearer_header(credentials),
        )
        self._raise_for_status(response, "get metadata")
        return self._to_cloud_file(response.json())

    async def do_download_file(self, credentials: DocumentSourceCredentials, file_id: str) -> bytes:
        metadata = await self.do_get_file_metadata(credentials, file_id)
        if self.is_google_native(metadata.mime_type):
            # exported as PDF, callers force the .pdf extension
            endpoint = f"/files/{file_id}/export"
            params = {"mimeType": "application/pdf"}
        else:
            endpoint = f"/files/{file_id}"
            params = {"alt": "media"}
        response = await self.do_request(
            method="GET",
            endpoint=endpoint,
            params=params,
            additional_headers=self._get_bearer_header(credentials),
        )
        self._raise_for_status(response, "download")
        return response.content
