from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import TrackFileRequest
from shared.models.tracked_file import TrackedFile

router = APIRouter(prefix="/tracked-files", tags=["tracked-files"])


@router.post("")
async def track_file(request: Request, body: TrackFileRequest, _: None = Depends(verify_api_key)) -> TrackedFile:
    """Register a cloud file or folder for sync. Tracking the same file twice is a no-op."""
    return await request.app.state.tracked_files_service.do_track_file(
        user_id=body.user_id,
        source_id=body.source_id,
        file_id=body.file_id,
        file_name=body.file_name,
        file_path=body.file_path,
        is_folder=body.is_folder,
        include_children=body.include_children,
        last_modified=body.last_modified,
    )


@router.get("")
async def list_tracked_files(
    request: Request, source_id: int, user_id: int, _: None = Depends(verify_api_key)
) -> list[TrackedFile]:
    return await request.app.state.tracked_files_service.do_get_tracked_files(user_id, source_id)


@router.delete("/{source_id}/{file_id}")
async def untrack_file(
    request: Request, source_id: int, file_id: str, user_id: int, _: None = Depends(verify_api_key)
) -> dict:
    await request.app.state.tracked_files_service.do_untrack_file(user_id, source_id, file_id)
    return {"status": "untracked", "file_id": file_id}


@router.delete("/{source_id}/{file_id}/index")
async def unrag_file(
    request: Request, source_id: int, file_id: str, user_id: int, _: None = Depends(verify_api_key)
) -> dict:
    await request.app.state.tracked_files_service.do_unrag_file(user_id, source_id, file_id)
    return {"status": "removed", "file_id": file_id}


@router.post("/{source_id}/{file_id}/retry")
async def retry_file(
    request: Request, source_id: int, file_id: str, user_id: int, _: None = Depends(verify_api_key)
) -> TrackedFile:
    return await request.app.state.tracked_files_service.do_retry_file(user_id, source_id, file_id)
