from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import SyncRequest
from server.models.responses import SyncStatusResponse
from shared.models.sync import SyncLog, SyncResult

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("")
async def run_sync(request: Request, body: SyncRequest, _: None = Depends(verify_api_key)) -> SyncResult:
    """Process the caller's pending tracked files.

    Args:
        request (Request): FastAPI request (provides app.state.sync_service).
        body (SyncRequest): The user whose sources are synced.
        _ (None): Auth dependency result (unused).

    Returns:
        SyncResult: Counts and logs of the run. A run already in flight answers 409.
    """
    return await request.app.state.sync_service.do_sync_pending_files(body.user_id)


@router.get("/status")
async def sync_status(request: Request, _: None = Depends(verify_api_key)) -> SyncStatusResponse:
    return SyncStatusResponse(is_running=request.app.state.sync_service.is_currently_running())


@router.get("/logs")
async def sync_logs(request: Request, _: None = Depends(verify_api_key)) -> list[SyncLog]:
    return request.app.state.sync_service.get_logs()
