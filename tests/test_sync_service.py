import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest

from services.rag_sync.rag_sync import run_sync_once
from services.sync.SyncService import SyncService
from shared.models.errors import StorageError, SyncAlreadyRunningError
from tests.conftest import backdate, paragraph


async def track(tracked_files_service, source, file_id, name, is_folder=False, include_children=True):
    return await tracked_files_service.do_track_file(
        user_id=source.user_id,
        source_id=source.id,
        file_id=file_id,
        file_name=name,
        file_path=f"/{name}",
        is_folder=is_folder,
        include_children=include_children,
    )


async def status_of(tracked_file_repository, source, file_id):
    tracked = await tracked_file_repository.find_by_source_and_file_id(source.id, file_id)
    return tracked.status if tracked else None


async def test_nothing_pending(sync_service):
    result = await sync_service.do_sync_pending_files(1)
    assert result.success
    assert result.processed_count == 0
    assert result.logs[-1].message == "No pending files to process"


async def test_tracked_file_is_indexed_once(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository, source_repository):
    storage_client.add_file("f1", "Guide.txt", paragraph("guide", 900).encode(), folder_id="root")
    await track(tracked_files_service, drive_source, "f1", "Guide.txt")

    first = await sync_service.do_sync_pending_files(1)
    second = await sync_service.do_sync_pending_files(1)

    assert (first.processed_count, first.error_count) == (1, 0)
    assert second.processed_count == 0
    tracked = await tracked_file_repository.find_by_source_and_file_id(drive_source.id, "f1")
    assert tracked.status == "completed"
    assert tracked.chunks_count == 1
    assert tracked.last_processed_at is not None
    assert (await source_repository.find_by_id(drive_source.id)).last_sync_at is not None
    assert storage_client.download_calls == ["f1"]


async def test_failure_of_never_processed_file_deletes_the_record(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository):
    storage_client.add_file("f1", "Guide.txt", paragraph("guide", 900).encode(), folder_id="root")
    storage_client.errors["download:f1"] = StorageError("status 500", kind="other", status_code=500)
    await track(tracked_files_service, drive_source, "f1", "Guide.txt")

    result = await sync_service.do_sync_pending_files(1)

    assert result.error_count == 1
    assert await status_of(tracked_file_repository, drive_source, "f1") is None
    assert "rediscovered" in result.logs[-2].message


async def test_failure_of_previously_indexed_file_marks_error(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository):
    storage_client.add_file("f1", "Guide.txt", paragraph("guide", 900).encode(), folder_id="root")
    tracked = await track(tracked_files_service, drive_source, "f1", "Guide.txt")
    await sync_service.do_sync_pending_files(1)
    await tracked_file_repository.update_status(tracked.id, "pending")
    storage_client.errors["download:f1"] = StorageError("status 500", kind="other", status_code=500)

    result = await sync_service.do_sync_pending_files(1)

    assert result.error_count == 1
    saved = await tracked_file_repository.find_by_id(tracked.id)
    assert saved.status == "error"
    assert saved.error_message


async def test_skip_reason_keeps_the_record_as_error(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository):
    storage_client.add_file("f1", "Blank.txt", b"", folder_id="root")
    await track(tracked_files_service, drive_source, "f1", "Blank.txt")

    result = await sync_service.do_sync_pending_files(1)

    assert result.error_count == 1
    assert await status_of(tracked_file_repository, drive_source, "f1") == "error"


async def test_folder_walk_tracks_and_indexes_children(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository):
    storage_client.add_folder("docs", "Docs", parent_id="root")
    storage_client.add_file("a", "a.txt", paragraph("alpha", 900).encode(), folder_id="docs")
    storage_client.add_folder("sub", "Sub", parent_id="docs")
    storage_client.add_file("b", "b.txt", paragraph("beta", 900).encode(), folder_id="sub")
    storage_client.add_file("img", "photo.png", b"\x89PNG", folder_id="docs", mime_type="image/png")
    await track(tracked_files_service, drive_source, "docs", "Docs", is_folder=True)

    result = await sync_service.do_sync_pending_files(1)

    assert result.processed_count == 2
    assert await status_of(tracked_file_repository, drive_source, "docs") == "completed"
    assert await status_of(tracked_file_repository, drive_source, "sub") == "completed"
    assert await status_of(tracked_file_repository, drive_source, "a") == "completed"
    assert await status_of(tracked_file_repository, drive_source, "b") == "completed"
    image = await tracked_file_repository.find_by_source_and_file_id(drive_source.id, "img")
    assert image.status == "error"
    assert image.error_message == "Unsupported format: .png"
    assert "img" not in storage_client.download_calls
    child = await tracked_file_repository.find_by_source_and_file_id(drive_source.id, "b")
    assert child.file_path == "/Docs/Sub/b.txt"


async def test_folder_without_children_is_completed_without_listing(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository):
    await track(tracked_files_service, drive_source, "docs", "Docs", is_folder=True, include_children=False)

    await sync_service.do_sync_pending_files(1)

    assert await status_of(tracked_file_repository, drive_source, "docs") == "completed"
    assert storage_client.list_calls == []


async def test_folder_listing_failure_marks_folder_error(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository):
    storage_client.add_folder("docs", "Docs", parent_id="root")
    storage_client.errors["list:docs"] = StorageError("status 500", kind="other", status_code=500)
    await track(tracked_files_service, drive_source, "docs", "Docs", is_folder=True)

    result = await sync_service.do_sync_pending_files(1)

    assert result.error_count == 1
    assert await status_of(tracked_file_repository, drive_source, "docs") == "error"


async def test_file_cap_stops_the_run_and_the_next_run_resumes(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository):
    storage_client.add_folder("big", "Big", parent_id="root")
    for i in range(25):
        storage_client.add_file(f"f{i:02}", f"doc{i:02}.txt", paragraph(f"topic{i:02}", 300).encode(), folder_id="big")
    await track(tracked_files_service, drive_source, "big", "Big", is_folder=True)

    first = await sync_service.do_sync_pending_files(1)

    assert first.processed_count == 20
    assert first.limit_reached
    assert any("Limit of 20 files" in log.message for log in first.logs)
    assert await status_of(tracked_file_repository, drive_source, "big") == "pending"

    second = await sync_service.do_sync_pending_files(1)

    assert second.processed_count == 5
    assert not second.limit_reached
    assert await status_of(tracked_file_repository, drive_source, "big") == "completed"
    assert len(storage_client.download_calls) == 25


async def test_exactly_the_cap_does_not_flag_limit(sync_service, tracked_files_service, storage_client, drive_source):
    for i in range(20):
        storage_client.add_file(f"f{i:02}", f"doc{i:02}.txt", paragraph(f"topic{i:02}", 300).encode(), folder_id="root")
        await track(tracked_files_service, drive_source, f"f{i:02}", f"doc{i:02}.txt")

    result = await sync_service.do_sync_pending_files(1)

    assert result.processed_count == 20
    assert not result.limit_reached


async def test_modified_file_is_reindexed_on_next_walk(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository, vector_repository):
    storage_client.add_folder("docs", "Docs", parent_id="root")
    cloud_file = storage_client.add_file("a", "a.txt", paragraph("original", 900).encode(), folder_id="docs")
    await track(tracked_files_service, drive_source, "docs", "Docs", is_folder=True)
    await sync_service.do_sync_pending_files(1)

    cloud_file.modified_time = datetime.now(timezone.utc) + timedelta(days=1)
    storage_client.contents["a"] = paragraph("revised", 900).encode()
    await tracked_files_service.do_retry_file(1, drive_source.id, "docs")

    result = await sync_service.do_sync_pending_files(1)

    assert result.processed_count == 1
    assert await vector_repository.count_all() == 1
    assert all("revised" in row.text for row in vector_repository._rows.values())


async def test_unmodified_children_are_not_downloaded_again(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository):
    storage_client.add_folder("docs", "Docs", parent_id="root")
    storage_client.add_file("a", "a.txt", paragraph("alpha", 900).encode(), folder_id="docs")
    await track(tracked_files_service, drive_source, "docs", "Docs", is_folder=True)
    await sync_service.do_sync_pending_files(1)
    await tracked_files_service.do_retry_file(1, drive_source.id, "docs")

    result = await sync_service.do_sync_pending_files(1)

    assert result.processed_count == 0
    assert storage_client.download_calls == ["a"]


async def test_folder_that_dropped_a_child_ends_in_error_until_retried(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository):
    storage_client.add_folder("docs", "Docs", parent_id="root")
    storage_client.add_file("a", "a.txt", paragraph("alpha", 900).encode(), folder_id="docs")
    storage_client.add_file("b", "b.txt", paragraph("beta", 900).encode(), folder_id="docs")
    storage_client.errors["download:b"] = StorageError("status 500", kind="other", status_code=500)
    await track(tracked_files_service, drive_source, "docs", "Docs", is_folder=True)

    first = await sync_service.do_sync_pending_files(1)

    assert (first.processed_count, first.error_count) == (1, 1)
    assert await status_of(tracked_file_repository, drive_source, "b") is None
    folder = await tracked_file_repository.find_by_source_and_file_id(drive_source.id, "docs")
    assert folder.status == "error"
    assert folder.error_message.startswith("1 file(s) failed")

    # nothing else is pending, so only a retry walks the folder again
    assert (await sync_service.do_sync_pending_files(1)).processed_count == 0

    del storage_client.errors["download:b"]
    await tracked_files_service.do_retry_file(1, drive_source.id, "docs")
    second = await sync_service.do_sync_pending_files(1)

    assert second.processed_count == 1
    assert await status_of(tracked_file_repository, drive_source, "b") == "completed"
    assert await status_of(tracked_file_repository, drive_source, "docs") == "completed"
    assert storage_client.download_calls == ["a", "b", "b"]


async def test_due_folder_is_rescanned_and_picks_up_changes(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository, vector_repository):
    storage_client.add_folder("docs", "Docs", parent_id="root")
    cloud_file = storage_client.add_file("a", "a.txt", paragraph("original", 900).encode(), folder_id="docs")
    folder = await track(tracked_files_service, drive_source, "docs", "Docs", is_folder=True)
    await sync_service.do_sync_pending_files(1)

    cloud_file.modified_time = datetime.now(timezone.utc) + timedelta(days=1)
    storage_client.contents["a"] = paragraph("revised", 900).encode()

    # not due yet
    assert (await sync_service.do_sync_pending_files(1)).processed_count == 0

    backdate(tracked_file_repository, folder.id, sync_service.rescan_minutes + 1)
    result = await sync_service.do_sync_pending_files(1)

    assert result.processed_count == 1
    assert any(log.message == "Folder Docs queued for rescan" for log in result.logs)
    assert all("revised" in row.text for row in vector_repository._rows.values())
    assert await status_of(tracked_file_repository, drive_source, "docs") == "completed"


async def test_record_left_processing_is_queued_again(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository):
    storage_client.add_file("f1", "Stuck.txt", paragraph("stuck", 900).encode(), folder_id="root")
    storage_client.add_file("f2", "Busy.txt", paragraph("busy", 900).encode(), folder_id="root")
    stuck = await track(tracked_files_service, drive_source, "f1", "Stuck.txt")
    busy = await track(tracked_files_service, drive_source, "f2", "Busy.txt")
    await tracked_file_repository.update_status(stuck.id, "processing")
    await tracked_file_repository.update_status(busy.id, "processing")
    backdate(tracked_file_repository, stuck.id, sync_service.stale_minutes + 1)

    result = await sync_service.do_sync_pending_files(1)

    assert result.processed_count == 1
    assert await status_of(tracked_file_repository, drive_source, "f1") == "completed"
    assert await status_of(tracked_file_repository, drive_source, "f2") == "processing"
    assert storage_client.download_calls == ["f1"]


async def test_other_users_records_are_skipped(sync_service, tracked_files_service, storage_client, drive_source, tracked_file_repository):
    storage_client.add_file("f1", "Guide.txt", paragraph("guide", 900).encode(), folder_id="root")
    await track(tracked_files_service, drive_source, "f1", "Guide.txt")

    result = await sync_service.do_sync_pending_files(2)

    assert result.processed_count == 0
    assert any(log.level == "warning" for log in result.logs)
    assert await status_of(tracked_file_repository, drive_source, "f1") == "pending"
    assert storage_client.download_calls == []


async def test_inactive_source_is_skipped(sync_service, tracked_files_service, source_service, storage_client, drive_source, tracked_file_repository):
    storage_client.add_file("f1", "Guide.txt", paragraph("guide", 900).encode(), folder_id="root")
    await track(tracked_files_service, drive_source, "f1", "Guide.txt")
    await source_service.do_update_source(drive_source.id, 1, is_active=False)

    result = await sync_service.do_sync_pending_files(1)

    assert result.processed_count == 0
    assert await status_of(tracked_file_repository, drive_source, "f1") == "pending"


async def test_concurrent_run_is_rejected(sync_service, tracked_files_service, storage_client, drive_source, ingestion_service, monkeypatch):
    storage_client.add_file("f1", "Guide.txt", paragraph("guide", 900).encode(), folder_id="root")
    await track(tracked_files_service, drive_source, "f1", "Guide.txt")
    release = asyncio.Event()
    original = ingestion_service.do_process_file_from_source

    async def slow_process(*args, **kwargs):
        await release.wait()
        return await original(*args, **kwargs)

    monkeypatch.setattr(ingestion_service, "do_process_file_from_source", slow_process)

    running = asyncio.create_task(sync_service.do_sync_pending_files(1))
    await asyncio.sleep(0)
    while not sync_service.is_currently_running():
        await asyncio.sleep(0)

    with pytest.raises(SyncAlreadyRunningError):
        await sync_service.do_sync_pending_files(1)

    release.set()
    result = await running
    assert result.processed_count == 1
    assert not sync_service.is_currently_running()
    assert sync_service.get_logs()


async def test_log_is_capped(helper_config, tracked_file_repository, source_repository, source_service, ingestion_service, tracked_files_service, storage_client, drive_source, monkeypatch):
    monkeypatch.setenv("SYNC_MAX_LOG_ENTRIES", "5")
    service = SyncService(
        helper_config=helper_config,
        tracked_file_repository=tracked_file_repository,
        source_repository=source_repository,
        source_service=source_service,
        ingestion_service=ingestion_service,
    )
    for i in range(4):
        storage_client.add_file(f"f{i}", f"doc{i}.txt", paragraph(f"topic{i}", 300).encode(), folder_id="root")
        await track(tracked_files_service, drive_source, f"f{i}", f"doc{i}.txt")

    result = await service.do_sync_pending_files(1)

    assert result.processed_count == 4
    assert len(result.logs) == 5
    assert result.logs[-1].message.startswith("Sync finished")


async def test_scheduled_run_skips_when_busy(sync_service, caplog):
    sync_service._is_running = True
    logger = logging.getLogger("tests.rag_sync")

    with caplog.at_level(logging.WARNING, logger="tests.rag_sync"):
        await run_sync_once(sync_service, 1, logger)

    assert "Skipping scheduled sync" in caplog.text
