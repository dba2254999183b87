"""Maps service exceptions to HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.models.errors import (
    ClientResponseError,
    ConversationNotFoundError,
    SourceAccessError,
    SourceNotFoundError,
    SyncAlreadyRunningError,
    TrackedFileNotFoundError,
    UnsupportedFormatError,
)

SOURCE_ACCESS_STATUS = {
    "auth": 401,
    "permission": 403,
    "not_found": 404,
    "other": 502,
}


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=status_code)


async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error(404, exc)


async def bad_request_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error(400, exc)


async def sync_running_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error(409, exc)


async def upstream_handler(request: Request, exc: ClientResponseError) -> JSONResponse:
    request.app.state.helper_config.get_logger().error("Backend request failed: %s", exc)
    return _error(502, exc)


async def source_access_handler(request: Request, exc: SourceAccessError) -> JSONResponse:
    return JSONResponse(
        {"detail": str(exc), "kind": exc.kind},
        status_code=SOURCE_ACCESS_STATUS.get(exc.kind, 502),
    )


def register_exception_handlers(app: FastAPI) -> None:
    for not_found in (SourceNotFoundError, ConversationNotFoundError, TrackedFileNotFoundError):
        app.add_exception_handler(not_found, not_found_handler)
    app.add_exception_handler(ValueError, bad_request_handler)
    app.add_exception_handler(UnsupportedFormatError, bad_request_handler)
    app.add_exception_handler(SyncAlreadyRunningError, sync_running_handler)
    app.add_exception_handler(SourceAccessError, source_access_handler)
    app.add_exception_handler(ClientResponseError, upstream_handler)
