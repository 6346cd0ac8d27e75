"""Pydantic schemas for chunk upload and merge endpoints."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadChunkResponse(BaseModel):
    """Response model for a stored chunk."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    file_id: str = Field(alias="fileId")
    chunk_index: int = Field(alias="chunkIndex")
    size: int
    message: str


class MergeRequest(BaseModel):
    """Request model for merging the chunks of an upload."""
    model_config = ConfigDict(populate_by_name=True)

    file_id: Optional[str] = Field(default=None, alias="fileId")
    file_name: Optional[str] = Field(default=None, alias="fileName")
    expected_chunks: Optional[int] = Field(default=None, alias="expectedChunks", ge=0)


class MergeResponse(BaseModel):
    """Response model for a completed merge."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    url: str
    file_name: str = Field(alias="fileName")
    file_id: str = Field(alias="fileId")
    size: int
    chunk_count: int = Field(alias="chunkCount")


class AbandonUploadResponse(BaseModel):
    """Response model for an abandoned upload."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    file_id: str = Field(alias="fileId")
    status: str = "abandoned"
