"""Pydantic schemas for API requests and responses."""

from server.schemas.uploads import (
    UploadChunkResponse,
    MergeRequest,
    MergeResponse,
    AbandonUploadResponse
)
from server.schemas.common import ErrorResponse

__all__ = [
    "UploadChunkResponse",
    "MergeRequest",
    "MergeResponse",
    "AbandonUploadResponse",
    "ErrorResponse"
]
