import uuid

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentChunk, ProcessedFile, SimilarDocument, SourceChunk
from shared.repositories.RepositoryInterfaces import DocumentVectorRepository


class DocumentVectorRepositoryQdrant(DocumentVectorRepository):
    """Vector store backed by a RAG client collection.

    Each chunk is one point with a random UUID id and a VectorPoint payload.
    """

    def __init__(self, helper_config: HelperConfig, rag_client: RAGClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._client = rag_client
        self._vector_size: int | None = None
        self._distance = "Cosine"

    async def do_ensure_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        """Create the collection if needed and remember its shape for clear_all()."""
        self._vector_size = vector_size
        self._distance = distance
        await self._client.do_ensure_collection(vector_size=vector_size, distance=distance)

    ##########################################
    ############### REPOSITORY ###############
    ##########################################

    async def insert_chunk(self, chunk: DocumentChunk) -> str:
        point_id = str(uuid.uuid4())
        payload = VectorPoint(
            text=chunk.text,
            source=chunk.source,
            source_url=chunk.source_url,
            source_type=chunk.source_type,
            chunk_index=chunk.chunk_index,
            total_chunks=chunk.total_chunks,
            file_hash=chunk.file_hash,
        )
        await self._client.do_upsert_points([
            {"id": point_id, "vector": chunk.embedding, "payload": payload.model_dump()}
        ])
        return point_id

    async def find_similar(self, embedding: list[float], k: int) -> list[SimilarDocument]:
        hits = await self._client.do_search(vector=embedding, limit=k)
        results = []
        for hit in hits:
            payload = hit["payload"]
            results.append(SimilarDocument(
                text=payload.get("text", ""),
                source=payload.get("source", ""),
                source_url=payload.get("source_url"),
                source_type=payload.get("source_type"),
                chunk_index=payload.get("chunk_index"),
                score=hit.get("score"),
            ))
        return results

    async def get_all_chunks_by_source(self, source: str) -> list[SourceChunk]:
        scroll = await self._client.do_scroll_all(
            filters=[self._client.get_field_match("source", source)],
            with_payload=["text", "chunk_index"],
            with_vector=False,
        )
        chunks = [
            SourceChunk(text=point["payload"]["text"], chunk_index=point["payload"]["chunk_index"])
            for point in scroll.result
        ]
        return sorted(chunks, key=lambda c: c.chunk_index)

    async def find_indexed_sources(self) -> list[ProcessedFile]:
        # every document has exactly one first chunk
        scroll = await self._client.do_scroll_all(
            filters=[self._client.get_field_match("chunk_index", 1)],
            with_payload=["source", "file_hash", "total_chunks"],
            with_vector=False,
        )
        return [
            ProcessedFile(
                filename=point["payload"]["source"],
                file_hash=point["payload"].get("file_hash") or "",
                chunks_count=point["payload"].get("total_chunks", 0),
            )
            for point in scroll.result
        ]

    async def delete_by_source(self, source: str) -> None:
        await self._client.do_delete_points_by_filter([self._client.get_field_match("source", source)])

    async def delete_chunks(self, point_ids: list[str]) -> None:
        await self._client.do_delete_points_by_ids(point_ids)

    async def count_all(self) -> int:
        return await self._client.do_count([])

    async def clear_all(self) -> None:
        await self._client.do_delete_collection()
        if self._vector_size:
            await self._client.do_create_collection(vector_size=self._vector_size, distance=self._distance)
        else:
            self.logging.warning("Vector collection dropped; it is recreated on next startup.")
