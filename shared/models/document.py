"""Pydantic models for indexed document data.

Hierarchy:
  DocumentChunk: one vector-store row (text + embedding + source metadata).
  SimilarDocument: a chunk returned by similarity search, without its vector.
  ProcessedFile: ledger entry guarding against re-ingesting identical content.
  ProcessResult: outcome of one ingestion attempt.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

ProcessFailureReason = Literal[
    "already_processed",
    "no_text",
    "unsupported_format",
    "duplicate_name",
    "source_unavailable",
]


class DocumentChunk(BaseModel):
    """A vector-store row.

    ``source`` is the sanitized filename and identifies the document the chunk
    belongs to. Rows for a source are append-only during ingestion.
    """

    text: str
    embedding: list[float]
    source: str
    source_url: str | None = None
    source_type: str | None = None
    chunk_index: int
    total_chunks: int
    file_hash: str | None = None


class SimilarDocument(BaseModel):
    """A chunk returned by a similarity search, best match first."""

    text: str
    source: str
    source_url: str | None = None
    source_type: str | None = None
    chunk_index: int | None = None
    score: float | None = None


class SourceChunk(BaseModel):
    """A chunk's text and position, as returned when reading a whole document back."""

    text: str
    chunk_index: int


class ProcessedFile(BaseModel):
    """Ledger entry: (filename, content hash) → number of chunks stored."""

    filename: str
    file_hash: str
    chunks_count: int
    processed_at: datetime | None = None


class ProcessResult(BaseModel):
    """Outcome of a single ingestion attempt.

    Content problems never raise; they come back as ``success=False`` with a
    machine-readable ``reason`` and a human-readable ``message``.
    """

    success: bool
    message: str
    chunks_count: int | None = None
    reason: ProcessFailureReason | None = None
    file_hash: str | None = None


class DirectoryProcessResult(BaseModel):
    """Aggregate outcome of ingesting every supported file in a local directory."""

    processed: int = 0
    skipped: int = 0
    errors: int = 0
    details: list[str] = []


class IndexStats(BaseModel):
    """Index statistics for the admin surface."""

    total_files: int
    total_chunks: int
    files: list[ProcessedFile]
