import os

import pytest

from services.rag.IngestionService import IngestionService, compute_hash
from shared.extractors.TextExtractorRegistry import TextExtractorRegistry
from shared.extractors.formats.TextExtractorTxt import TextExtractorTxt
from shared.models.document import DocumentChunk
from shared.models.errors import SourceNotFoundError, UniqueConstraintError
from shared.repositories.memory.ProcessedFileRepositoryMemory import ProcessedFileRepositoryMemory
from tests.conftest import paragraph

GOOGLE_DOC = "application/vnd.google-apps.document"


class ExportedPdfExtractor(TextExtractorTxt):
    """Reads exported "PDF" fixtures as plain text."""

    def get_extensions(self) -> tuple[str, ...]:
        return (".pdf", ".txt")


async def stored_sources(vector_repository) -> list[str]:
    return sorted({row.source for row in vector_repository._rows.values()})


async def test_cloud_file_is_chunked_embedded_and_recorded(
    ingestion_service, storage_client, drive_source, vector_repository, processed_file_repository, embed_client
):
    content = paragraph("budget", 4000).encode()
    storage_client.add_file("f1", "Budget Q1/2024.txt", content, folder_id="root")

    result = await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1")

    assert result.success
    assert result.chunks_count >= 2
    assert result.file_hash == compute_hash(content)
    assert await vector_repository.count_all() == result.chunks_count
    assert len(embed_client.calls) == result.chunks_count

    rows = sorted(vector_repository._rows.values(), key=lambda r: r.chunk_index)
    assert [r.chunk_index for r in rows] == list(range(1, result.chunks_count + 1))
    assert {r.source for r in rows} == {"Budget_Q1_2024.txt"}
    assert {r.total_chunks for r in rows} == {result.chunks_count}
    assert rows[0].source_url == "https://drive.google.com/file/d/f1/view"
    assert rows[0].source_type == "google_drive"

    ledger = await processed_file_repository.find_by_filename("Budget_Q1_2024.txt")
    assert ledger.chunks_count == result.chunks_count


async def test_same_content_twice_is_already_processed(ingestion_service, storage_client, drive_source, vector_repository):
    storage_client.add_file("f1", "Notes.txt", paragraph("notes", 900).encode(), folder_id="root")
    first = await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1")
    rows = await vector_repository.count_all()

    second = await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1")

    assert first.success
    assert not second.success
    assert second.reason == "already_processed"
    assert await vector_repository.count_all() == rows


async def test_different_content_under_same_name_is_duplicate(ingestion_service, storage_client, drive_source, vector_repository):
    storage_client.add_file("a", "Report.txt", paragraph("first", 900).encode(), folder_id="root")
    storage_client.add_file("b", "Report.txt", paragraph("second", 900).encode(), folder_id="root")
    await ingestion_service.do_process_file_from_source(1, drive_source.id, "a")
    rows = await vector_repository.count_all()

    result = await ingestion_service.do_process_file_from_source(1, drive_source.id, "b")

    assert not result.success
    assert result.reason == "duplicate_name"
    assert await vector_repository.count_all() == rows


async def test_replace_existing_swaps_the_stored_rows(
    ingestion_service, storage_client, drive_source, vector_repository, processed_file_repository
):
    storage_client.add_file("f1", "Policy.txt", paragraph("original", 4000).encode(), folder_id="root")
    await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1")
    updated = paragraph("revised", 900).encode()
    storage_client.contents["f1"] = updated

    result = await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1", replace_existing=True)

    assert result.success
    assert await vector_repository.count_all() == result.chunks_count == 1
    assert all("revised" in row.text for row in vector_repository._rows.values())
    assert (await processed_file_repository.find_by_filename("Policy.txt")).file_hash == compute_hash(updated)


async def test_replace_existing_with_unchanged_bytes_is_a_success(ingestion_service, storage_client, drive_source, vector_repository):
    storage_client.add_file("f1", "Policy.txt", paragraph("policy", 900).encode(), folder_id="root")
    first = await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1")

    again = await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1", replace_existing=True)

    assert again.success
    assert again.chunks_count == first.chunks_count
    assert await vector_repository.count_all() == first.chunks_count


@pytest.mark.parametrize("content", [b"   \n\n  ", b"tiny"])
async def test_file_without_usable_text_is_no_text(ingestion_service, storage_client, drive_source, vector_repository, processed_file_repository, content):
    storage_client.add_file("f1", "Empty.txt", content, folder_id="root")

    result = await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1")

    assert result.reason == "no_text"
    assert await vector_repository.count_all() == 0
    assert await processed_file_repository.find_all() == []


async def test_unsupported_extension_is_rejected_before_download(ingestion_service, storage_client, drive_source):
    storage_client.add_file("img", "photo.png", b"\x89PNG", folder_id="root", mime_type="image/png")

    result = await ingestion_service.do_process_file_from_source(1, drive_source.id, "img")

    assert result.reason == "unsupported_format"
    assert ".png" in result.message
    assert storage_client.download_calls == []


async def test_google_native_document_is_named_as_pdf(
    helper_config, vector_repository, processed_file_repository, embed_client, source_service, storage_client, drive_source
):
    service = IngestionService(
        helper_config=helper_config,
        vector_repository=vector_repository,
        processed_file_repository=processed_file_repository,
        embed_client=embed_client,
        source_service=source_service,
        extractor_registry=TextExtractorRegistry([ExportedPdfExtractor()]),
    )
    storage_client.add_file("doc1", "Plan Estratégico", paragraph("plan", 900).encode(), folder_id="root", mime_type=GOOGLE_DOC)

    result = await service.do_process_file_from_source(1, drive_source.id, "doc1")

    assert result.success
    assert await stored_sources(vector_repository) == ["Plan_Estratégico.pdf"]


async def test_file_name_override(ingestion_service, storage_client, drive_source, vector_repository):
    storage_client.add_file("f1", "raw.txt", paragraph("minutes", 900).encode(), folder_id="root")

    await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1", file_name="Board minutes.txt")

    assert await stored_sources(vector_repository) == ["Board_minutes.txt"]


async def test_concurrent_ledger_claim_removes_new_chunks(
    ingestion_service, storage_client, drive_source, vector_repository, processed_file_repository, monkeypatch
):
    async def claimed(filename, file_hash, chunks_count):
        raise UniqueConstraintError("Unique constraint failed on the fields: (`filename`)")

    monkeypatch.setattr(processed_file_repository, "insert", claimed)
    storage_client.add_file("f1", "Race.txt", paragraph("race", 4000).encode(), folder_id="root")

    result = await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1")

    assert result.reason == "duplicate_name"
    assert await vector_repository.count_all() == 0


async def test_embedding_failure_stores_nothing(ingestion_service, storage_client, drive_source, vector_repository, embed_client):
    embed_client.fail_with = RuntimeError("embedding backend down")
    storage_client.add_file("f1", "Doc.txt", paragraph("doc", 900).encode(), folder_id="root")

    with pytest.raises(RuntimeError):
        await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1")

    assert await vector_repository.count_all() == 0


async def test_temp_files_are_removed(ingestion_service, storage_client, drive_source, tmp_path):
    storage_client.add_file("f1", "Doc.txt", paragraph("doc", 900).encode(), folder_id="root")
    storage_client.add_file("f2", "Empty.txt", b"", folder_id="root")

    await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1")
    await ingestion_service.do_process_file_from_source(1, drive_source.id, "f2")

    assert os.listdir(tmp_path) == []


class FailingWriter:
    """Creates the target file, then fails the write like a full disk would."""

    def __init__(self, path, mode):
        self.path = path

    async def __aenter__(self):
        open(self.path, "wb").close()
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def write(self, data):
        raise OSError(28, "No space left on device")


async def test_failed_temp_write_leaves_no_file_behind(ingestion_service, storage_client, drive_source, tmp_path, monkeypatch):
    storage_client.add_file("f1", "Doc.txt", paragraph("doc", 900).encode(), folder_id="root")
    monkeypatch.setattr("services.rag.IngestionService.aiofiles.open", FailingWriter)

    with pytest.raises(OSError):
        await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1")

    assert os.listdir(tmp_path) == []


async def test_inactive_source_is_unavailable(ingestion_service, source_service, storage_client, drive_source):
    storage_client.add_file("f1", "Doc.txt", paragraph("doc", 900).encode(), folder_id="root")
    await source_service.do_update_source(drive_source.id, 1, is_active=False)

    result = await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1")

    assert result.reason == "source_unavailable"
    assert storage_client.download_calls == []


async def test_foreign_source_is_not_found(ingestion_service, drive_source):
    with pytest.raises(SourceNotFoundError):
        await ingestion_service.do_process_file_from_source(2, drive_source.id, "f1")


async def test_local_file_keeps_its_name(ingestion_service, vector_repository, tmp_path):
    docs = tmp_path / "docs"
    docs.mkdir()
    path = docs / "Informe anual.txt"
    path.write_text(paragraph("annual", 900), encoding="utf-8")

    result = await ingestion_service.do_process_file(str(path))

    assert result.success
    rows = list(vector_repository._rows.values())
    assert rows[0].source == "Informe anual.txt"
    assert rows[0].source_type == "local"
    assert rows[0].source_url == "/api/files/Informe%20anual.txt"


async def test_directory_ingestion_counts_outcomes(ingestion_service, tmp_path):
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "a.txt").write_text(paragraph("alpha", 900), encoding="utf-8")
    (docs / "b.txt").write_text("", encoding="utf-8")
    (docs / "c.png").write_bytes(b"\x89PNG")
    await ingestion_service.do_process_file(str(docs / "a.txt"))
    (docs / "d.txt").write_text(paragraph("delta", 900), encoding="utf-8")

    result = await ingestion_service.do_process_directory(str(docs))

    assert (result.processed, result.skipped, result.errors) == (1, 1, 1)
    assert any(detail.startswith("d.txt") for detail in result.details)


async def test_directory_without_supported_files(ingestion_service, tmp_path):
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "c.png").write_bytes(b"\x89PNG")

    result = await ingestion_service.do_process_directory(str(docs))

    assert result.processed == 0
    assert result.details == ["No supported files found"]


async def test_ledger_is_restored_from_stored_rows_after_restart(
    ingestion_service, helper_config, storage_client, drive_source, source_service, vector_repository, embed_client
):
    storage_client.add_file("a", "Report.txt", paragraph("first", 900).encode(), folder_id="root")
    storage_client.add_file("b", "Report.txt", paragraph("second", 900).encode(), folder_id="root")
    first = await ingestion_service.do_process_file_from_source(1, drive_source.id, "a")
    rows = await vector_repository.count_all()

    # a new process: empty ledger, same vector store
    ledger = ProcessedFileRepositoryMemory()
    restarted = IngestionService(
        helper_config=helper_config,
        vector_repository=vector_repository,
        processed_file_repository=ledger,
        embed_client=embed_client,
        source_service=source_service,
    )
    assert await restarted.do_restore_ledger() == 1
    assert await restarted.do_restore_ledger() == 0

    entry = await ledger.find_by_filename("Report.txt")
    assert entry.file_hash == first.file_hash
    assert entry.chunks_count == first.chunks_count

    again = await restarted.do_process_file_from_source(1, drive_source.id, "a")
    other = await restarted.do_process_file_from_source(1, drive_source.id, "b")

    assert again.reason == "already_processed"
    assert other.reason == "duplicate_name"
    assert await vector_repository.count_all() == rows


async def test_rows_without_hash_still_block_a_second_copy(ingestion_service, storage_client, drive_source, vector_repository, processed_file_repository):
    await vector_repository.insert_chunk(DocumentChunk(
        text="legacy row", embedding=[1.0], source="Old.txt", chunk_index=1, total_chunks=1,
    ))
    storage_client.add_file("f1", "Old.txt", paragraph("old", 900).encode(), folder_id="root")

    await ingestion_service.do_restore_ledger()
    result = await ingestion_service.do_process_file_from_source(1, drive_source.id, "f1")

    assert (await processed_file_repository.find_by_filename("Old.txt")).file_hash == ""
    assert result.reason == "duplicate_name"
    assert await vector_repository.count_all() == 1
