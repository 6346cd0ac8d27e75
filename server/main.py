"""Entry point for the chunked upload server."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from common.exceptions import (
    ArtifactNotFoundError,
    IncompleteUploadError,
    InvalidIdentifierError,
    MergeIOFailureError,
    MissingFileNameError,
    MissingIdentifierError,
    MissingIndexError,
    SessionBusyError,
    SessionNotFoundError,
    StorageFailureError,
    UploadError,
    ValidationError,
)
from common.logging_config import setup_logging
from server.config import CORS_ALLOW_ORIGINS, UPLOAD_SERVER_HOST, UPLOAD_SERVER_PORT
from server.dependencies import get_components
from server.routes.artifact_routes import router as artifact_router
from server.routes.upload_routes import router as upload_router

logger = setup_logging('server')

app = FastAPI(
    title="Chunkyard Upload Server",
    description="Chunked file upload staging and merge service",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Prepare storage directories and start the stale session reaper.
    """
    logger.info("Upload server starting up...")

    components = get_components()
    logger.info(f"Staging chunks in {components.chunk_store.__class__.__name__}")

    await components.reaper.start()


@app.on_event("shutdown")
async def shutdown_event():
    """
    Stop background tasks on application shutdown.
    """
    logger.info("Upload server shutting down...")

    await get_components().reaper.stop()


def _client_error(request: Request, exc: Exception, status_code: int, code: str) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "code": code})


def _server_error(request: Request, exc: Exception, code: str) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc), "code": code}
    )


@app.exception_handler(MissingIdentifierError)
async def missing_identifier_handler(request: Request, exc: MissingIdentifierError):
    return _client_error(request, exc, status.HTTP_400_BAD_REQUEST, "MISSING_IDENTIFIER")


@app.exception_handler(MissingIndexError)
async def missing_index_handler(request: Request, exc: MissingIndexError):
    return _client_error(request, exc, status.HTTP_400_BAD_REQUEST, "MISSING_INDEX")


@app.exception_handler(MissingFileNameError)
async def missing_file_name_handler(request: Request, exc: MissingFileNameError):
    return _client_error(request, exc, status.HTTP_400_BAD_REQUEST, "MISSING_FILE_NAME")


@app.exception_handler(InvalidIdentifierError)
async def invalid_identifier_handler(request: Request, exc: InvalidIdentifierError):
    return _client_error(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_IDENTIFIER")


@app.exception_handler(IncompleteUploadError)
async def incomplete_upload_handler(request: Request, exc: IncompleteUploadError):
    return _client_error(request, exc, status.HTTP_400_BAD_REQUEST, "INCOMPLETE_UPLOAD")


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _client_error(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_REQUEST")


@app.exception_handler(SessionNotFoundError)
async def session_not_found_handler(request: Request, exc: SessionNotFoundError):
    return _client_error(request, exc, status.HTTP_404_NOT_FOUND, "SESSION_NOT_FOUND")


@app.exception_handler(ArtifactNotFoundError)
async def artifact_not_found_handler(request: Request, exc: ArtifactNotFoundError):
    return _client_error(request, exc, status.HTTP_404_NOT_FOUND, "ARTIFACT_NOT_FOUND")


@app.exception_handler(SessionBusyError)
async def session_busy_handler(request: Request, exc: SessionBusyError):
    return _client_error(request, exc, status.HTTP_409_CONFLICT, "SESSION_BUSY")


@app.exception_handler(StorageFailureError)
async def storage_failure_handler(request: Request, exc: StorageFailureError):
    return _server_error(request, exc, "STORAGE_FAILURE")


@app.exception_handler(MergeIOFailureError)
async def merge_io_failure_handler(request: Request, exc: MergeIOFailureError):
    return _server_error(request, exc, "MERGE_IO_FAILURE")


@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    return _server_error(request, exc, "INTERNAL_ERROR")


app.include_router(upload_router)
app.include_router(artifact_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "Chunkyard Upload Server", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "upload-server"}


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "server.main:app",
        host=UPLOAD_SERVER_HOST,
        port=UPLOAD_SERVER_PORT,
    )


if __name__ == "__main__":
    main()
