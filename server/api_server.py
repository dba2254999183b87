"""FastAPI application entry point for the cloud RAG backend."""

import asyncio
import contextlib
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.dependencies.errors import register_exception_handlers
from server.routers.FilesRouter import router as files_router
from server.routers.RAGRouter import router as rag_router
from server.routers.SourcesRouter import router as sources_router
from server.routers.SyncRouter import router as sync_router
from server.routers.TrackedFilesRouter import router as tracked_files_router
from services.container.ServiceContainer import ServiceContainer
from services.rag_sync.rag_sync import run_periodic_sync
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")
helper_config = HelperConfig(logger=logging)

ROUTERS = [rag_router, sources_router, tracked_files_router, sync_router, files_router]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = helper_config

    container = ServiceContainer(helper_config=app.state.helper_config)
    await container.boot()

    app.state.container = container
    app.state.rag_service = container.rag_service
    app.state.ingestion_service = container.ingestion_service
    app.state.source_service = container.source_service
    app.state.tracked_files_service = container.tracked_files_service
    app.state.sync_service = container.sync_service

    app.state.upload_dir = app.state.helper_config.get_path_val("UPLOAD_DIR", default="uploads", create=True)

    # optional background sync for a single configured user
    sync_task: asyncio.Task | None = None
    interval = app.state.helper_config.get_number_val("SYNC_INTERVAL_MINUTES", default=0)
    if interval > 0:
        user_id = app.state.helper_config.get_int_val("SYNC_USER_ID")
        sync_task = asyncio.create_task(run_periodic_sync(container.sync_service, user_id, interval, logging))

    # while the app is running...
    yield

    # when the app shuts down, stop the sync loop and close all client connections
    logging.info("Shutting down...")
    if sync_task is not None:
        sync_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sync_task
    await container.close()


app = FastAPI(
    title="cloud_rag_backend",
    description=(
        "Retrieval-augmented question answering over documents uploaded locally or "
        "synced from Google Drive, Dropbox and OneDrive. Tracked cloud files are "
        "indexed incrementally via POST /sync; questions are answered via POST /rag/ask."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in helper_config.get_string_val("API_SERVER_CORS_ORIGINS", default="*").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
for router in ROUTERS:
    app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    port = helper_config.get_int_val("API_SERVER_PORT", default=8000)

    logging.info(
        "Starting cloud_rag_backend API Server v%s from root dir: %s on port %d...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
        port,
    )
    uvicorn.run(app, host=helper_config.get_string_val("API_SERVER_HOST", default="0.0.0.0"), port=port)
