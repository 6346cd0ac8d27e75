"""Chunk upload, merge and abandon API routes."""

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.concurrency import run_in_threadpool

from assembly.merge_engine import MergeEngine
from server import config
from server.dependencies import get_chunk_receiver, get_merge_engine
from server.schemas.common import ErrorResponse
from server.schemas.uploads import (
    AbandonUploadResponse,
    MergeRequest,
    MergeResponse,
    UploadChunkResponse,
)
from staging.chunk_receiver import ChunkReceiver

router = APIRouter(
    prefix="/api",
    tags=["Uploads"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def artifact_url(file_name: str) -> str:
    return f"{config.UPLOAD_PUBLIC_BASE_URL}{config.ARTIFACT_URL_PREFIX}/{quote(file_name)}"


@router.post("/upload-chunk", response_model=UploadChunkResponse)
async def upload_chunk(
    chunk: UploadFile = File(...),
    file_id: Optional[str] = Query(None, alias="fileId"),
    chunk_index: Optional[str] = Query(None, alias="chunkIndex"),
    receiver: ChunkReceiver = Depends(get_chunk_receiver),
):
    """
    Store one chunk of an upload.

    Parameters:
        - fileId: Upload identifier (query)
        - chunkIndex: Non-negative chunk sequence index (query)
        - chunk: Chunk payload (multipart/form-data)

    Returns:
        - fileId, chunkIndex: Echo of the stored slot
        - size: Bytes written

    Raises:
        - 400: Missing or invalid fileId / chunkIndex
        - 409: Upload is being merged
        - 500: Chunk could not be stored
    """
    receipt = await run_in_threadpool(receiver.receive, file_id, chunk_index, chunk.file)

    return UploadChunkResponse(
        file_id=receipt.upload_id,
        chunk_index=receipt.chunk_index,
        size=receipt.size,
        message=f"Chunk {receipt.chunk_index} uploaded",
    )


@router.post("/merge", response_model=MergeResponse)
async def merge_chunks(
    request: MergeRequest,
    merge_engine: MergeEngine = Depends(get_merge_engine),
):
    """
    Merge all chunks of an upload into a single file.

    Parameters:
        - fileId: Upload identifier
        - fileName: Name of the merged file (an existing file is replaced)
        - expectedChunks: Optional chunk count; when set, chunks 0..N-1 must all be present

    Returns:
        - url: Public URL of the merged file
        - size, chunkCount: Merged byte and chunk totals

    Raises:
        - 400: Missing or invalid fileId / fileName, or incomplete upload
        - 404: No chunks staged for fileId
        - 409: Upload is already being merged or still receiving chunks
        - 500: Merge I/O failure (staged chunks are kept for retry)
    """
    result = await run_in_threadpool(
        merge_engine.merge,
        request.file_id,
        request.file_name,
        request.expected_chunks,
    )

    return MergeResponse(
        url=artifact_url(result.file_name),
        file_name=result.file_name,
        file_id=result.upload_id,
        size=result.size,
        chunk_count=result.chunk_count,
    )


@router.delete("/upload/{file_id}", response_model=AbandonUploadResponse)
async def abandon_upload(
    file_id: str,
    merge_engine: MergeEngine = Depends(get_merge_engine),
):
    """
    Discard every staged chunk of an upload.

    Raises:
        - 400: Invalid fileId
        - 404: No chunks staged for fileId
        - 409: Upload is being merged or still receiving chunks
    """
    await run_in_threadpool(merge_engine.abandon, file_id)

    return AbandonUploadResponse(file_id=file_id)
