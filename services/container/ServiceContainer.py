"""Builds the clients, repositories and services of one process and owns their lifecycle."""

import httpx

from services.rag.IngestionService import IngestionService
from services.rag.RAGService import RAGService
from services.sources.DocumentSourceService import DocumentSourceService
from services.sync.SyncService import SyncService
from services.tracking.TrackedFilesService import TrackedFilesService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.storage.StorageClientManager import StorageClientManager
from shared.extractors.TextExtractorRegistry import TextExtractorRegistry
from shared.helper.HelperConfig import HelperConfig
from shared.repositories.memory.ConversationRepositoryMemory import ConversationRepositoryMemory
from shared.repositories.memory.DocumentSourceRepositoryMemory import DocumentSourceRepositoryMemory
from shared.repositories.memory.ProcessedFileRepositoryMemory import ProcessedFileRepositoryMemory
from shared.repositories.memory.TrackedFileRepositoryMemory import TrackedFileRepositoryMemory
from shared.repositories.qdrant.DocumentVectorRepositoryQdrant import DocumentVectorRepositoryQdrant
from shared.security.EncryptionService import EncryptionService


class ServiceContainer:
    def __init__(self, helper_config: HelperConfig) -> None:
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()

        # clients
        self.embed_client = EmbedClientManager(helper_config=helper_config).get_client()
        self.llm_client = LLMClientManager(helper_config=helper_config).get_client()
        self.rag_client = RAGClientManager(helper_config=helper_config).get_client()
        self.storage_manager = StorageClientManager(helper_config=helper_config)
        self.encryption = EncryptionService(helper_config=helper_config)

        # repositories
        self.source_repository = DocumentSourceRepositoryMemory()
        self.tracked_file_repository = TrackedFileRepositoryMemory()
        self.processed_file_repository = ProcessedFileRepositoryMemory()
        self.conversation_repository = ConversationRepositoryMemory()
        self.vector_repository = DocumentVectorRepositoryQdrant(helper_config=helper_config, rag_client=self.rag_client)

        # services
        registry = TextExtractorRegistry()
        self.source_service = DocumentSourceService(
            helper_config=helper_config,
            source_repository=self.source_repository,
            tracked_file_repository=self.tracked_file_repository,
            storage_manager=self.storage_manager,
            encryption=self.encryption,
        )
        self.ingestion_service = IngestionService(
            helper_config=helper_config,
            vector_repository=self.vector_repository,
            processed_file_repository=self.processed_file_repository,
            embed_client=self.embed_client,
            source_service=self.source_service,
            extractor_registry=registry,
        )
        self.rag_service = RAGService(
            helper_config=helper_config,
            conversation_repository=self.conversation_repository,
            vector_repository=self.vector_repository,
            processed_file_repository=self.processed_file_repository,
            embed_client=self.embed_client,
            llm_client=self.llm_client,
        )
        self.sync_service = SyncService(
            helper_config=helper_config,
            tracked_file_repository=self.tracked_file_repository,
            source_repository=self.source_repository,
            source_service=self.source_service,
            ingestion_service=self.ingestion_service,
            extractor_registry=registry,
        )
        self.tracked_files_service = TrackedFilesService(
            helper_config=helper_config,
            tracked_file_repository=self.tracked_file_repository,
            source_repository=self.source_repository,
            vector_repository=self.vector_repository,
            processed_file_repository=self.processed_file_repository,
        )

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Boot every client, check the backends, ensure the collection and restore the ledger.

        Raises:
            Exception: If the vector store, the embedding or the chat backend is unreachable.
        """
        self.logging.info("Booting all clients...")
        for client in [self.embed_client, self.llm_client, self.rag_client]:
            await client.boot()
        await self.storage_manager.boot()
        self.logging.info("All clients booted successfully.")

        await self.check_connections()

        vector_size, distance = await self.embed_client.do_fetch_embedding_vector_size()
        await self.vector_repository.do_ensure_collection(vector_size, distance)
        await self.ingestion_service.do_restore_ledger()

    async def close(self) -> None:
        self.logging.info("Closing all clients...")
        for client in [self.embed_client, self.llm_client, self.rag_client]:
            await client.close()
        await self.storage_manager.close()
        self.logging.info("All clients closed.")

    async def check_connections(self) -> None:
        """The vector store and both model backends are required; nothing works without them."""
        for client in [self.rag_client, self.embed_client, self.llm_client]:
            try:
                result: httpx.Response = await client.do_healthcheck()
            except httpx.HTTPError as e:
                raise Exception(
                    f"{client.get_client_type().upper()} client '{client.get_engine_name()}' is not reachable: {e}"
                ) from e
            if not result.is_success:
                raise Exception(
                    f"{client.get_client_type().upper()} client '{client.get_engine_name()}' is not reachable "
                    f"(status {result.status_code})."
                )
