"""Shared data type definitions (ChunkReceipt, MergeResult, SessionState)."""

from dataclasses import dataclass
from enum import Enum


class SessionState(str, Enum):
    """
    Lifecycle of an upload session.
    """
    OPEN = "open"
    MERGING = "merging"
    CLOSED = "closed"


@dataclass(frozen=True)
class ChunkReceipt:
    """
    Acknowledgement for a persisted chunk.
    """
    upload_id: str
    chunk_index: int
    size: int


@dataclass(frozen=True)
class MergeResult:
    """
    Outcome of a successful merge.
    """
    upload_id: str
    file_name: str
    location: str
    size: int
    chunk_count: int
