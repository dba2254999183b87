import os

import aiofiles
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from server.dependencies.auth import verify_api_key
from server.models.requests import (
    AskRequest,
    CreateConversationRequest,
    ProcessDirectoryRequest,
    SearchRequest,
    UpdateConversationTitleRequest,
)
from server.models.responses import ConversationCreatedResponse, SearchResponse
from shared.models.conversation import AskResponse, Conversation, ConversationMessage
from shared.models.document import DirectoryProcessResult, IndexStats, ProcessResult

router = APIRouter(prefix="/rag", tags=["rag"])

UPLOAD_CHUNK_SIZE = 1024 * 64


@router.post("/ask")
async def ask(request: Request, body: AskRequest, _: None = Depends(verify_api_key)) -> AskResponse:
    """Answer a question inside a conversation using the indexed documents.

    Args:
        request (Request): FastAPI request (provides app.state.rag_service).
        body (AskRequest): Question, conversation and user.
        _ (None): Auth dependency result (unused).

    Returns:
        AskResponse: The assistant answer.
    """
    rag_service = request.app.state.rag_service
    return await rag_service.do_ask_with_rag(body.question, body.conversation_id, body.user_id)


@router.post("/conversations")
async def create_conversation(
    request: Request, body: CreateConversationRequest, _: None = Depends(verify_api_key)
) -> ConversationCreatedResponse:
    conversation_id = await request.app.state.rag_service.do_create_conversation(body.user_id, body.title)
    return ConversationCreatedResponse(conversation_id=conversation_id)


@router.get("/conversations")
async def list_conversations(request: Request, user_id: int, _: None = Depends(verify_api_key)) -> list[Conversation]:
    return await request.app.state.rag_service.do_get_user_conversations(user_id)


@router.get("/conversations/{conversation_id}/messages")
async def conversation_history(
    request: Request, conversation_id: int, _: None = Depends(verify_api_key)
) -> list[ConversationMessage]:
    return await request.app.state.rag_service.do_get_conversation_history(conversation_id)


@router.patch("/conversations/{conversation_id}")
async def update_conversation_title(
    request: Request,
    conversation_id: int,
    body: UpdateConversationTitleRequest,
    _: None = Depends(verify_api_key),
) -> Conversation:
    return await request.app.state.rag_service.do_update_conversation_title(conversation_id, body.user_id, body.title)


@router.delete("/conversations/{conversation_id}")
async def deactivate_conversation(request: Request, conversation_id: int, _: None = Depends(verify_api_key)) -> dict:
    if not await request.app.state.rag_service.do_deactivate_conversation(conversation_id):
        raise HTTPException(status_code=404, detail=f"Conversation {conversation_id} not found")
    return {"status": "deactivated", "conversation_id": conversation_id}


@router.post("/search")
async def search(request: Request, body: SearchRequest, _: None = Depends(verify_api_key)) -> SearchResponse:
    results = await request.app.state.rag_service.do_search_similar_documents(body.query, body.limit)
    return SearchResponse(query=body.query, results=results, total=len(results))


@router.get("/stats")
async def stats(request: Request, _: None = Depends(verify_api_key)) -> IndexStats:
    return await request.app.state.rag_service.do_get_stats()


@router.delete("/index")
async def clear_index(request: Request, _: None = Depends(verify_api_key)) -> dict:
    await request.app.state.rag_service.do_clear_database()
    return {"status": "cleared"}


@router.post("/upload")
async def upload(request: Request, file: UploadFile = File(...), _: None = Depends(verify_api_key)) -> ProcessResult:
    """Store an uploaded file in the upload directory and index it.

    Raises:
        HTTPException: 400 if the extension is not supported.
    """
    ingestion_service = request.app.state.ingestion_service
    filename = os.path.basename(file.filename or "uploaded")
    if not ingestion_service.is_supported_file(filename):
        raise HTTPException(status_code=400, detail=f"Unsupported format: {os.path.splitext(filename)[1] or filename}")

    upload_dir = request.app.state.upload_dir
    path = os.path.join(upload_dir, filename)
    async with aiofiles.open(path, "wb") as out_file:
        while True:
            chunk = await file.read(UPLOAD_CHUNK_SIZE)
            if not chunk:
                break
            await out_file.write(chunk)
    return await ingestion_service.do_process_file(path)


@router.post("/directory")
async def process_directory(
    request: Request, body: ProcessDirectoryRequest, _: None = Depends(verify_api_key)
) -> DirectoryProcessResult:
    if not os.path.isdir(body.path):
        raise HTTPException(status_code=400, detail=f"Not a directory: {body.path}")
    return await request.app.state.ingestion_service.do_process_directory(body.path, body.extensions)
