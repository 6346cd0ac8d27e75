"""Public namespace of merged artifacts, keyed by file name."""

import io
import os
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, Iterator, Optional, Set, Union

from common.constants import PARTIAL_FILE_SUFFIX, STREAM_PIECE_SIZE


class ArtifactStore(ABC):
    """
    Flat store of finished files.

    Writers are atomic: an artifact appears under its name only once the
    writer block completes, replacing any artifact of the same name.
    """

    @abstractmethod
    def open_writer(self, file_name: str):
        """
        Context manager yielding a binary writer for a new artifact.

        The artifact is published when the block exits normally and discarded
        when it raises.
        """

    @abstractmethod
    def exists(self, file_name: str) -> bool:
        """Return True if an artifact with this name is published."""

    @abstractmethod
    def get_size(self, file_name: str) -> Optional[int]:
        """Return the artifact size in bytes, or None if absent."""

    @abstractmethod
    def read_streaming(self, file_name: str, piece_size: int = STREAM_PIECE_SIZE) -> Iterator[bytes]:
        """
        Stream an artifact in pieces.

        Raises:
            FileNotFoundError: If no artifact has this name
        """

    @abstractmethod
    def location(self, file_name: str) -> str:
        """Describe where an artifact lives (a filesystem path or a URI)."""

    def is_reserved(self, file_name: str) -> bool:
        """Return True if the name is held back for internal use and cannot be published."""
        return False


class DirectoryArtifactStore(ArtifactStore):
    """
    Artifact store backed by a single directory.
    """

    def __init__(self, root: Union[str, Path], reserved_names: Iterable[str] = ()):
        self.root = Path(root)
        self.reserved_names: Set[str] = set(reserved_names)

    def ensure_root(self) -> None:
        """Ensure the artifact directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def get_artifact_path(self, file_name: str) -> Path:
        return self.root / file_name

    def reserve_path(self, path: Union[str, Path]) -> None:
        """
        Hold back the top-level entry of the artifact directory that contains path.

        Used when the staging directory lives under the artifact root, so that
        no artifact can be published over it. Paths outside the root are ignored.
        """
        try:
            relative = Path(path).resolve().relative_to(self.root.resolve())
        except ValueError:
            return
        if relative.parts:
            self.reserved_names.add(relative.parts[0])

    def is_reserved(self, file_name: str) -> bool:
        return file_name in self.reserved_names

    @contextmanager
    def open_writer(self, file_name: str) -> Iterator[BinaryIO]:
        final_path = self.get_artifact_path(file_name)
        partial = self.root / f".{file_name}.{uuid.uuid4().hex}{PARTIAL_FILE_SUFFIX}"

        f = open(partial, 'wb')
        try:
            yield f
            f.flush()
            os.fsync(f.fileno())
            f.close()
            os.replace(partial, final_path)
        except BaseException:
            f.close()
            partial.unlink(missing_ok=True)
            raise

    def exists(self, file_name: str) -> bool:
        return self.get_artifact_path(file_name).is_file()

    def get_size(self, file_name: str) -> Optional[int]:
        filepath = self.get_artifact_path(file_name)
        if filepath.is_file():
            return filepath.stat().st_size
        return None

    def read_streaming(self, file_name: str, piece_size: int = STREAM_PIECE_SIZE) -> Iterator[bytes]:
        with open(self.get_artifact_path(file_name), 'rb') as f:
            while True:
                piece = f.read(piece_size)
                if not piece:
                    break
                yield piece

    def location(self, file_name: str) -> str:
        return str(self.get_artifact_path(file_name))


class InMemoryArtifactStore(ArtifactStore):
    """
    Artifact store held in process memory.
    """

    def __init__(self):
        self._artifacts: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    @contextmanager
    def open_writer(self, file_name: str) -> Iterator[BinaryIO]:
        buffer = io.BytesIO()
        yield buffer
        with self._lock:
            self._artifacts[file_name] = buffer.getvalue()

    def exists(self, file_name: str) -> bool:
        with self._lock:
            return file_name in self._artifacts

    def get_size(self, file_name: str) -> Optional[int]:
        with self._lock:
            data = self._artifacts.get(file_name)
        return len(data) if data is not None else None

    def read_streaming(self, file_name: str, piece_size: int = STREAM_PIECE_SIZE) -> Iterator[bytes]:
        with self._lock:
            data = self._artifacts.get(file_name)
        if data is None:
            raise FileNotFoundError(f"No artifact named {file_name}")
        for offset in range(0, len(data), piece_size):
            yield data[offset:offset + piece_size]

    def get_bytes(self, file_name: str) -> Optional[bytes]:
        with self._lock:
            return self._artifacts.get(file_name)

    def location(self, file_name: str) -> str:
        return f"memory://{file_name}"
