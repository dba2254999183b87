import math
import uuid

from shared.models.document import DocumentChunk, ProcessedFile, SimilarDocument, SourceChunk
from shared.repositories.RepositoryInterfaces import DocumentVectorRepository


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class DocumentVectorRepositoryMemory(DocumentVectorRepository):
    """Process-local vector store ranking by cosine similarity."""

    def __init__(self) -> None:
        self._rows: dict[str, DocumentChunk] = {}

    async def insert_chunk(self, chunk: DocumentChunk) -> str:
        point_id = str(uuid.uuid4())
        self._rows[point_id] = chunk
        return point_id

    async def find_similar(self, embedding: list[float], k: int) -> list[SimilarDocument]:
        scored = [(cosine_similarity(embedding, row.embedding), row) for row in self._rows.values()]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [
            SimilarDocument(
                text=row.text,
                source=row.source,
                source_url=row.source_url,
                source_type=row.source_type,
                chunk_index=row.chunk_index,
                score=score,
            )
            for score, row in scored[:k]
        ]

    async def get_all_chunks_by_source(self, source: str) -> list[SourceChunk]:
        chunks = [SourceChunk(text=r.text, chunk_index=r.chunk_index) for r in self._rows.values() if r.source == source]
        return sorted(chunks, key=lambda c: c.chunk_index)

    async def find_indexed_sources(self) -> list[ProcessedFile]:
        sources: dict[str, ProcessedFile] = {}
        for row in self._rows.values():
            sources.setdefault(row.source, ProcessedFile(
                filename=row.source,
                file_hash=row.file_hash or "",
                chunks_count=row.total_chunks,
            ))
        return list(sources.values())

    async def delete_by_source(self, source: str) -> None:
        for point_id in [pid for pid, row in self._rows.items() if row.source == source]:
            del self._rows[point_id]

    async def delete_chunks(self, point_ids: list[str]) -> None:
        for point_id in point_ids:
            self._rows.pop(point_id, None)

    async def count_all(self) -> int:
        return len(self._rows)

    async def clear_all(self) -> None:
        self._rows.clear()
