"""Payload stored alongside each chunk vector in the vector store."""

from pydantic import BaseModel


class VectorPoint(BaseModel):
    """Payload of one vector-store point.

    Field names are part of the stored row shape and must stay stable:
    text, source, source_url, source_type, chunk_index, total_chunks, file_hash.

    Attributes:
        text:         Raw text of the chunk.
        source:       Sanitized filename of the document the chunk belongs to.
        source_url:   Link back to the original file (provider web view or local download).
        source_type:  Provider of the document ("google_drive", "dropbox", "onedrive", "local").
        chunk_index:  One-based position of the chunk within the document.
        total_chunks: Number of chunks the document was split into.
        file_hash:    MD5 of the ingested bytes, lets the ledger be rebuilt from the rows.
    """

    text: str
    source: str
    source_url: str | None = None
    source_type: str | None = None
    chunk_index: int
    total_chunks: int
    file_hash: str | None = None
