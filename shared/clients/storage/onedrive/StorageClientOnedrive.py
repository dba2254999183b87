from shared.clients.storage.StorageClientInterface import StorageClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.source import CloudFile, DocumentSourceCredentials


class StorageClientOnedrive(StorageClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://graph.microsoft.com/v1.0", val_type="string")
        self._token_url = self.get_config_val("TOKEN_URL", default="https://login.microsoftonline.com/common/oauth2/v2.0/token", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Onedrive"

    def get_provider(self) -> str:
        return "onedrive"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://graph.microsoft.com/v1.0"),
            EnvConfig(env_key="TOKEN_URL", val_type="string", default="https://login.microsoftonline.com/common/oauth2/v2.0/token"),
        ]

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/me/drive"

    def _get_token_url(self) -> str:
        return self._token_url

    ##########################################
    ################# OTHER ##################
    ##########################################

    def _to_cloud_file(self, item: dict) -> CloudFile:
        is_folder = "folder" in item
        if is_folder:
            mime_type = "folder"
        else:
            mime_type = (item.get("file") or {}).get("mimeType", "application/octet-stream")
        return CloudFile(
            id=item["id"],
            name=item["name"],
            mime_type=mime_type,
            is_folder=is_folder,
            size=item.get("size"),
            modified_time=item.get("lastModifiedDateTime"),
            web_view_link=item.get("webUrl"),
            parent_id=(item.get("parentReference") or {}).get("id"),
        )

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_list_files(self, credentials: DocumentSourceCredentials, folder_id: str | None = None) -> list[CloudFile]:
        headers = self._get_bearer_header(credentials)
        endpoint = f"/me/drive/items/{folder_id}/children" if folder_id else "/me/drive/root/children"
        response = await self.do_request(method="GET", endpoint=endpoint, additional_headers=headers)
        self._raise_for_status(response, "list files")
        body = response.json()
        files = [self._to_cloud_file(item) for item in body.get("value", [])]

        # Graph returns an absolute link for the next page
        while body.get("@odata.nextLink"):
            response = await self.do_request(method="GET", url=body["@odata.nextLink"], additional_headers=headers)
            self._raise_for_status(response, "list files")
            body = response.json()
            files.extend(self._to_cloud_file(item) for item in body.get("value", []))

        self.logging.debug("Listed %d items in OneDrive folder %s", len(files), folder_id or "root")
        return files

    async def do_get_file_metadata(self, credentials: DocumentSourceCredentials, file_id: str) -> CloudFile:
        response = await self.do_request(
            method="GET",
            endpoint=f"/me/drive/items/{file_id}",
            additional_headers=self._get_bearer_header(credentials),
        )
        self._raise_for_status(response, "get metadata")
        return self._to_cloud_file(response.json())

    async def do_download_file(self, credentials: DocumentSourceCredentials, file_id: str) -> bytes:
        response = await self.do_request(
            method="GET",
            endpoint=f"/me/drive/items/{file_id}/content",
            additional_headers=self._get_bearer_header(credentials),
        )
        self._raise_for_status(response, "download")
        return response.content
