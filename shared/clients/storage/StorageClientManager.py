from shared.helper.HelperConfig import HelperConfig
from shared.clients.storage.StorageClientInterface import StorageClientInterface
from shared.clients.storage.dropbox.StorageClientDropbox import StorageClientDropbox
from shared.clients.storage.googledrive.StorageClientGoogledrive import StorageClientGoogledrive
from shared.clients.storage.onedrive.StorageClientOnedrive import StorageClientOnedrive

# closed set of cloud providers; "local" sources have no storage client
PROVIDER_CLIENTS: dict[str, type[StorageClientInterface]] = {
    "google_drive": StorageClientGoogledrive,
    "dropbox": StorageClientDropbox,
    "onedrive": StorageClientOnedrive,
}


class StorageClientManager:
    """
    Holds one storage client per cloud provider and resolves a source's provider to its client.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.clients: dict[str, StorageClientInterface] = {
            provider: client_class(helper_config=helper_config)
            for provider, client_class in PROVIDER_CLIENTS.items()
        }

    async def boot(self) -> None:
        for client in self.clients.values():
            await client.boot()

    async def close(self) -> None:
        for client in self.clients.values():
            await client.close()

    def get_client(self, provider: str) -> StorageClientInterface:
        """
        Returns the storage client for a DocumentSource provider.

        Args:
            provider (str): "google_drive", "dropbox" or "onedrive".

        Raises:
            ValueError: If the provider has no cloud storage client (e.g. "local").
        """
        client = self.clients.get(provider)
        if client is None:
            raise ValueError(f"No cloud storage client for provider: '{provider}'")
        return client
