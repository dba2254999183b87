import json
import mimetypes

from shared.clients.storage.StorageClientInterface import StorageClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.source import CloudFile, DocumentSourceCredentials


class StorageClientDropbox(StorageClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.dropboxapi.com/2", val_type="string")
        self._content_url = self.get_config_val("CONTENT_URL", default="https://content.dropboxapi.com/2", val_type="string")
        self._token_url = self.get_config_val("TOKEN_URL", default="https://api.dropboxapi.com/oauth2/token", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Dropbox"

    def get_provider(self) -> str:
        return "dropbox"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.dropboxapi.com/2"),
            EnvConfig(env_key="CONTENT_URL", val_type="string", default="https://content.dropboxapi.com/2"),
            EnvConfig(env_key="TOKEN_URL", val_type="string", default="https://api.dropboxapi.com/oauth2/token"),
        ]

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/check/app"

    def _get_token_url(self) -> str:
        return self._token_url

    ##########################################
    ################# OTHER ##################
    ##########################################

    def _to_cloud_file(self, entry: dict, parent_id: str | None = None) -> CloudFile:
        is_folder = entry.get(".tag") == "folder"
        if is_folder:
            mime_type = "folder"
        else:
            mime_type = mimetypes.guess_type(entry["name"])[0] or "application/octet-stream"
        return CloudFile(
            id=entry["id"],
            name=entry["name"],
            mime_type=mime_type,
            is_folder=is_folder,
            size=entry.get("size"),
            modified_time=entry.get("client_modified") or entry.get("server_modified"),
            parent_id=parent_id,
            path=entry.get("path_display"),
        )

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_list_files(self, credentials: DocumentSourceCredentials, folder_id: str | None = None) -> list[CloudFile]:
        headers = self._get_bearer_header(credentials)
        response = await self.do_request(
            method="POST",
            endpoint="/files/list_folder",
            json={"path": folder_id or "", "recursive": False, "include_deleted": False},
            additional_headers=headers,
        )
        self._raise_for_status(response, "list files")
        body = response.json()
        files = [self._to_cloud_file(entry, folder_id) for entry in body.get("entries", [])]

        while body.get("has_more"):
            response = await self.do_request(
                method="POST",
                endpoint="/files/list_folder/continue",
                json={"cursor": body["cursor"]},
                additional_headers=headers,
            )
            self._raise_for_status(response, "list files")
            body = response.json()
            files.extend(self._to_cloud_file(entry, folder_id) for entry in body.get("entries", []))

        self.logging.debug("Listed %d items in Dropbox folder '%s'", len(files), folder_id or "/")
        return files

    async def do_get_file_metadata(self, credentials: DocumentSourceCredentials, file_id: str) -> CloudFile:
        response = await self.do_request(
            method="POST",
            endpoint="/files/get_metadata",
            json={"path": file_id},
            additional_headers=self._get_bearer_header(credentials),
        )
        self._raise_for_status(response, "get metadata")
        return self._to_cloud_file(response.json())

    async def do_download_file(self, credentials: DocumentSourceCredentials, file_id: str) -> bytes:
        headers = self._get_bearer_header(credentials)
        headers["Dropbox-API-Arg"] = json.dumps({"path": file_id})
        response = await self.do_request(
            method="POST",
            url=f"{self._content_url.rstrip('/')}/files/download",
            additional_headers=headers,
        )
        self._raise_for_status(response, "download")
        return response.content
