import os

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse

from server.dependencies.auth import verify_api_key

# local source URLs point here: "/api/files/<urlencoded name>"
router = APIRouter(prefix="/api/files", tags=["files"])


@router.get("/{filename}")
async def get_file(request: Request, filename: str, _: None = Depends(verify_api_key)) -> FileResponse:
    """Serve an uploaded file by name.

    Raises:
        HTTPException: 404 if no such upload exists.
    """
    upload_dir = request.app.state.upload_dir
    path = os.path.join(upload_dir, os.path.basename(filename))
    if not os.path.isfile(path):
        raise HTTPException(status_code=404, detail=f"File {filename} not found")
    return FileResponse(path, filename=os.path.basename(path))
