"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal, Optional, Union


@dataclass(frozen=True)
class UploadCommand:
    """Upload a local file in chunks and merge it on the server."""

    path: str
    file_name: Optional[str] = None
    upload_id: Optional[str] = None
    shuffle: bool = False
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class FetchCommand:
    """Download a merged file by name."""

    file_name: str
    output_path: Optional[str] = None
    command: Literal["fetch"] = "fetch"


@dataclass(frozen=True)
class AbandonCommand:
    """Discard the staged chunks of an upload."""

    upload_id: str
    command: Literal["abandon"] = "abandon"


CommandRequest = Union[UploadCommand, FetchCommand, AbandonCommand]
