"""Staging namespace: stores chunk payloads keyed by (upload_id, chunk_index)."""

import os
import shutil
import threading
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, List, Optional, Union

from common.constants import CHUNK_FILE_SUFFIX, PARTIAL_FILE_SUFFIX, STREAM_PIECE_SIZE

Payload = Union[bytes, bytearray, memoryview, BinaryIO]


def iter_payload(payload: Payload, piece_size: int = STREAM_PIECE_SIZE) -> Iterator[bytes]:
    """
    Yield a payload in pieces, whether it is a bytes object or a binary stream.

    Args:
        payload: Raw bytes or a readable binary file-like object
        piece_size: Size of each piece in bytes (default 64KB)

    Yields:
        Payload pieces
    """
    if isinstance(payload, (bytes, bytearray, memoryview)):
        view = memoryview(payload)
        for offset in range(0, len(view), piece_size):
            yield bytes(view[offset:offset + piece_size])
        return

    while True:
        piece = payload.read(piece_size)
        if not piece:
            break
        yield piece


def parse_chunk_filename(name: str) -> Optional[int]:
    """
    Extract the sequence index from a chunk file name.

    Args:
        name: Directory entry name, e.g. "12.chunk"

    Returns:
        The index, or None if the entry is not chunk data
    """
    if not name.endswith(CHUNK_FILE_SUFFIX):
        return None
    stem = name[:-len(CHUNK_FILE_SUFFIX)]
    if not (stem.isascii() and stem.isdigit()):
        return None
    return int(stem)


class ChunkStore(ABC):
    """
    Key-value view of the staging area.

    A namespace exists per upload identifier and holds at most one payload
    per chunk index; writing an index again replaces its payload.
    """

    @abstractmethod
    def namespace_exists(self, upload_id: str) -> bool:
        """Return True if a staging namespace exists for upload_id."""

    @abstractmethod
    def ensure_namespace(self, upload_id: str) -> None:
        """Create the staging namespace for upload_id if it is absent."""

    @abstractmethod
    def write_chunk(self, upload_id: str, chunk_index: int, payload: Payload) -> int:
        """
        Persist a chunk payload, replacing any payload at the same index.

        Returns:
            Number of bytes written

        Raises:
            OSError: If the write fails
        """

    @abstractmethod
    def list_indices(self, upload_id: str) -> List[int]:
        """
        List chunk indices present in a namespace, in ascending numeric order.

        Raises:
            OSError: If the namespace cannot be listed
        """

    @abstractmethod
    def read_chunk_streaming(
        self,
        upload_id: str,
        chunk_index: int,
        piece_size: int = STREAM_PIECE_SIZE
    ) -> Iterator[bytes]:
        """
        Stream a chunk payload in pieces.

        Raises:
            OSError: If the chunk cannot be read
        """

    @abstractmethod
    def delete_namespace(self, upload_id: str) -> bool:
        """
        Delete a namespace and every chunk in it.

        Returns:
            True if the namespace existed
        """

    @abstractmethod
    def list_namespaces(self) -> List[str]:
        """List upload identifiers that currently have a staging namespace."""

    @abstractmethod
    def last_modified(self, upload_id: str) -> Optional[float]:
        """Return the newest modification time in a namespace, or None if absent."""


class DirectoryChunkStore(ChunkStore):
    """
    Chunk store backed by one directory per upload: <root>/<upload_id>/<index>.chunk
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def ensure_root(self) -> None:
        """Ensure the staging root directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def get_namespace_path(self, upload_id: str) -> Path:
        return self.root / upload_id

    def get_chunk_path(self, upload_id: str, chunk_index: int) -> Path:
        """
        Get file path for a chunk.

        Args:
            upload_id: Upload identifier
            chunk_index: Sequence index of the chunk

        Returns:
            Path object for chunk file
        """
        return self.get_namespace_path(upload_id) / f"{chunk_index}{CHUNK_FILE_SUFFIX}"

    def namespace_exists(self, upload_id: str) -> bool:
        return self.get_namespace_path(upload_id).is_dir()

    def ensure_namespace(self, upload_id: str) -> None:
        self.get_namespace_path(upload_id).mkdir(parents=True, exist_ok=True)

    def write_chunk(self, upload_id: str, chunk_index: int, payload: Payload) -> int:
        """
        Write chunk data to disk.

        The payload is streamed into a hidden partial file next to the final
        chunk and renamed over it once complete, so a reader never observes a
        truncated chunk.
        """
        namespace = self.get_namespace_path(upload_id)
        filepath = self.get_chunk_path(upload_id, chunk_index)
        partial = namespace / f".{chunk_index}.{uuid.uuid4().hex}{PARTIAL_FILE_SUFFIX}"

        written = 0
        try:
            with open(partial, 'wb') as f:
                for piece in iter_payload(payload):
                    f.write(piece)
                    written += len(piece)
            os.replace(partial, filepath)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        return written

    def list_indices(self, upload_id: str) -> List[int]:
        indices = []
        with os.scandir(self.get_namespace_path(upload_id)) as entries:
            for entry in entries:
                index = parse_chunk_filename(entry.name)
                if index is not None and entry.is_file():
                    indices.append(index)
        return sorted(indices)

    def read_chunk_streaming(
        self,
        upload_id: str,
        chunk_index: int,
        piece_size: int = STREAM_PIECE_SIZE
    ) -> Iterator[bytes]:
        filepath = self.get_chunk_path(upload_id, chunk_index)
        with open(filepath, 'rb') as f:
            while True:
                piece = f.read(piece_size)
                if not piece:
                    break
                yield piece

    def delete_namespace(self, upload_id: str) -> bool:
        namespace = self.get_namespace_path(upload_id)
        if not namespace.exists():
            return False
        shutil.rmtree(namespace)
        return True

    def list_namespaces(self) -> List[str]:
        if not self.root.exists():
            return []
        return sorted(
            path.name for path in self.root.iterdir()
            if path.is_dir() and not path.name.startswith('.')
        )

    def last_modified(self, upload_id: str) -> Optional[float]:
        namespace = self.get_namespace_path(upload_id)
        try:
            newest = namespace.stat().st_mtime
            with os.scandir(namespace) as entries:
                for entry in entries:
                    newest = max(newest, entry.stat().st_mtime)
        except FileNotFoundError:
            return None
        return newest


class InMemoryChunkStore(ChunkStore):
    """
    Chunk store held in process memory. Used by tests and ephemeral setups.
    """

    def __init__(self):
        self._namespaces: Dict[str, Dict[int, bytes]] = {}
        self._modified: Dict[str, float] = {}
        self._lock = threading.Lock()

    def namespace_exists(self, upload_id: str) -> bool:
        with self._lock:
            return upload_id in self._namespaces

    def ensure_namespace(self, upload_id: str) -> None:
        with self._lock:
            if upload_id not in self._namespaces:
                self._namespaces[upload_id] = {}
                self._modified[upload_id] = time.time()

    def write_chunk(self, upload_id: str, chunk_index: int, payload: Payload) -> int:
        data = b"".join(iter_payload(payload))
        with self._lock:
            if upload_id not in self._namespaces:
                raise FileNotFoundError(f"No staging namespace for {upload_id}")
            self._namespaces[upload_id][chunk_index] = data
            self._modified[upload_id] = time.time()
        return len(data)

    def list_indices(self, upload_id: str) -> List[int]:
        with self._lock:
            if upload_id not in self._namespaces:
                raise FileNotFoundError(f"No staging namespace for {upload_id}")
            return sorted(self._namespaces[upload_id])

    def read_chunk_streaming(
        self,
        upload_id: str,
        chunk_index: int,
        piece_size: int = STREAM_PIECE_SIZE
    ) -> Iterator[bytes]:
        with self._lock:
            try:
                data = self._namespaces[upload_id][chunk_index]
            except KeyError:
                raise FileNotFoundError(f"No chunk {chunk_index} for {upload_id}") from None
        return iter_payload(data, piece_size)

    def delete_namespace(self, upload_id: str) -> bool:
        with self._lock:
            self._modified.pop(upload_id, None)
            return self._namespaces.pop(upload_id, None) is not None

    def list_namespaces(self) -> List[str]:
        with self._lock:
            return sorted(self._namespaces)

    def last_modified(self, upload_id: str) -> Optional[float]:
        with self._lock:
            return self._modified.get(upload_id)

    def set_last_modified(self, upload_id: str, timestamp: float) -> None:
        """Override a namespace's modification time."""
        with self._lock:
            if upload_id in self._modified:
                self._modified[upload_id] = timestamp
