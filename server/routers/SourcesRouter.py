from fastapi import APIRouter, Depends, HTTPException, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import CreateSourceRequest, ProcessSourceFileRequest, UpdateSourceRequest
from server.models.responses import DocumentSourceResponse
from shared.models.document import ProcessResult
from shared.models.source import CloudFile

router = APIRouter(prefix="/sources", tags=["sources"])


@router.post("")
async def create_source(
    request: Request, body: CreateSourceRequest, _: None = Depends(verify_api_key)
) -> DocumentSourceResponse:
    """Register a document source; credentials are stored encrypted.

    Args:
        request (Request): FastAPI request (provides app.state.source_service).
        body (CreateSourceRequest): Source name, provider and OAuth credentials.
        _ (None): Auth dependency result (unused).

    Returns:
        DocumentSourceResponse: The created source without its credentials.
    """
    source = await request.app.state.source_service.do_create_source(
        user_id=body.user_id,
        name=body.name,
        provider=body.provider,
        credentials=body.credentials,
        root_folder_id=body.root_folder_id,
        client_id=body.client_id,
        client_secret=body.client_secret,
    )
    return DocumentSourceResponse.from_source(source)


@router.get("")
async def list_sources(request: Request, user_id: int, _: None = Depends(verify_api_key)) -> list[DocumentSourceResponse]:
    sources = await request.app.state.source_service.do_get_user_sources(user_id)
    return [DocumentSourceResponse.from_source(s) for s in sources]


@router.patch("/{source_id}")
async def update_source(
    request: Request, source_id: int, body: UpdateSourceRequest, _: None = Depends(verify_api_key)
) -> DocumentSourceResponse:
    source = await request.app.state.source_service.do_update_source(
        source_id,
        body.user_id,
        name=body.name,
        root_folder_id=body.root_folder_id,
        is_active=body.is_active,
        credentials=body.credentials,
    )
    return DocumentSourceResponse.from_source(source)


@router.delete("/{source_id}")
async def delete_source(request: Request, source_id: int, user_id: int, _: None = Depends(verify_api_key)) -> dict:
    if not await request.app.state.source_service.do_delete_source(source_id, user_id):
        raise HTTPException(status_code=404, detail=f"Document source {source_id} not found")
    return {"status": "deleted", "source_id": source_id}


@router.get("/{source_id}/files")
async def list_files(
    request: Request,
    source_id: int,
    user_id: int,
    folder_id: str | None = None,
    _: None = Depends(verify_api_key),
) -> list[CloudFile]:
    return await request.app.state.source_service.do_list_files(source_id, user_id, folder_id)


@router.get("/{source_id}/files/{file_id}")
async def file_metadata(
    request: Request, source_id: int, file_id: str, user_id: int, _: None = Depends(verify_api_key)
) -> CloudFile:
    return await request.app.state.source_service.do_get_file_metadata(source_id, user_id, file_id)


@router.post("/{source_id}/process")
async def process_file(
    request: Request, source_id: int, body: ProcessSourceFileRequest, _: None = Depends(verify_api_key)
) -> ProcessResult:
    """Index one file of the source right away, outside of the sync run."""
    ingestion_service = request.app.state.ingestion_service
    return await ingestion_service.do_process_file_from_source(body.user_id, source_id, body.file_id, body.file_name)
