"""Reassembles the staged chunks of an upload into a single artifact."""

import logging
from typing import List, Optional

from assembly.artifact_store import ArtifactStore
from common.exceptions import (
    IncompleteUploadError,
    InvalidIdentifierError,
    MergeIOFailureError,
    SessionNotFoundError,
    ValidationError,
)
from common.types import MergeResult
from common.utils import require_file_name, require_upload_id
from staging.chunk_store import ChunkStore
from staging.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class MergeEngine:
    """
    Concatenates chunks in ascending index order and reclaims staging storage.

    The chunk listing is a snapshot taken after the session enters MERGING;
    chunk writes for the same upload are refused until the merge ends. Gaps
    in the index sequence are merged over unless an expected chunk count is
    supplied.
    """

    def __init__(self, chunk_store: ChunkStore, artifact_store: ArtifactStore, registry: SessionRegistry):
        self.chunk_store = chunk_store
        self.artifact_store = artifact_store
        self.registry = registry

    def merge(
        self,
        upload_id: Optional[str],
        file_name: Optional[str],
        expected_chunks: Optional[int] = None,
    ) -> MergeResult:
        """
        Merge all staged chunks of an upload into the named artifact.

        Args:
            upload_id: Upload identifier whose chunks are merged
            file_name: Name of the artifact; an existing artifact with this
                name is replaced
            expected_chunks: If given, require exactly the indices
                0..expected_chunks-1 to be present

        Returns:
            MergeResult with the artifact location, size and chunk count

        Raises:
            MissingIdentifierError: If upload_id is absent
            MissingFileNameError: If file_name is absent
            InvalidIdentifierError: If either name is not filesystem-safe, or
                file_name is reserved by the artifact store
            SessionNotFoundError: If no chunks were staged for upload_id
            SessionBusyError: If the upload is being merged or still receiving chunks
            IncompleteUploadError: If expected_chunks is given and indices are missing
            MergeIOFailureError: If reading a chunk or writing the artifact fails
        """
        upload_id = require_upload_id(upload_id)
        file_name = require_file_name(file_name)
        if self.artifact_store.is_reserved(file_name):
            raise InvalidIdentifierError(f"File name is reserved for upload staging: {file_name!r}")
        if expected_chunks is not None and expected_chunks < 0:
            raise ValidationError(f"expected_chunks must be non-negative: {expected_chunks}")

        if not self.chunk_store.namespace_exists(upload_id):
            raise SessionNotFoundError(f"No staged chunks for upload {upload_id}")

        with self.registry.exclusive(upload_id):
            indices = self._snapshot_indices(upload_id)

            if expected_chunks is not None:
                self._check_complete(upload_id, indices, expected_chunks)

            logger.info(f"Merging {len(indices)} chunks of upload {upload_id} into {file_name}")
            size = self._concatenate(upload_id, file_name, indices)

            try:
                self.chunk_store.delete_namespace(upload_id)
            except OSError as e:
                logger.error(f"Merged upload {upload_id} but failed to remove its staging namespace: {e}")
                raise MergeIOFailureError(
                    f"Artifact {file_name} written but staging cleanup failed for upload {upload_id}"
                ) from e

        location = self.artifact_store.location(file_name)
        logger.info(f"Merged upload {upload_id} into {location} ({size} bytes, {len(indices)} chunks)")

        return MergeResult(
            upload_id=upload_id,
            file_name=file_name,
            location=location,
            size=size,
            chunk_count=len(indices),
        )

    def abandon(self, upload_id: Optional[str]) -> None:
        """
        Discard every staged chunk of an upload without merging.

        Raises:
            MissingIdentifierError: If upload_id is absent
            InvalidIdentifierError: If upload_id is not filesystem-safe
            SessionNotFoundError: If no chunks were staged for upload_id
            SessionBusyError: If the upload is being merged or still receiving chunks
            MergeIOFailureError: If the staged chunks cannot be removed
        """
        upload_id = require_upload_id(upload_id)

        if not self.chunk_store.namespace_exists(upload_id):
            raise SessionNotFoundError(f"No staged chunks for upload {upload_id}")

        with self.registry.exclusive(upload_id):
            self._delete_staging(upload_id)

        logger.info(f"Abandoned upload {upload_id}")

    def abandon_if_idle(self, upload_id: str, idle_before: float) -> bool:
        """
        Abandon an upload only if its newest chunk is older than idle_before.

        The idle check is made while the session is held exclusively, so a
        chunk written after the caller last looked keeps the upload alive.

        Returns:
            True if the upload was abandoned, False if it was active again

        Raises:
            SessionNotFoundError: If no chunks were staged for upload_id
            SessionBusyError: If the upload is being merged or still receiving chunks
            MergeIOFailureError: If the staged chunks cannot be removed
        """
        upload_id = require_upload_id(upload_id)

        if not self.chunk_store.namespace_exists(upload_id):
            raise SessionNotFoundError(f"No staged chunks for upload {upload_id}")

        self.registry.begin_exclusive(upload_id)
        closed = False
        try:
            modified = self.chunk_store.last_modified(upload_id)
            if modified is None or modified >= idle_before:
                return False
            self._delete_staging(upload_id)
            closed = True
        finally:
            self.registry.end_exclusive(upload_id, closed=closed)

        logger.info(f"Abandoned idle upload {upload_id}")
        return True

    def _delete_staging(self, upload_id: str) -> None:
        try:
            self.chunk_store.delete_namespace(upload_id)
        except OSError as e:
            logger.error(f"Failed to abandon upload {upload_id}: {e}")
            raise MergeIOFailureError(f"Failed to remove staged chunks for upload {upload_id}") from e

    def _snapshot_indices(self, upload_id: str) -> List[int]:
        try:
            return self.chunk_store.list_indices(upload_id)
        except FileNotFoundError:
            raise SessionNotFoundError(f"No staged chunks for upload {upload_id}") from None
        except OSError as e:
            logger.error(f"Failed to list chunks of upload {upload_id}: {e}")
            raise MergeIOFailureError(f"Failed to list chunks of upload {upload_id}") from e

    def _check_complete(self, upload_id: str, indices: List[int], expected_chunks: int) -> None:
        present = set(indices)
        missing = [i for i in range(expected_chunks) if i not in present]
        unexpected = [i for i in indices if i >= expected_chunks]
        if missing or unexpected:
            logger.warning(
                f"Refusing to merge upload {upload_id}: missing={missing} unexpected={unexpected}"
            )
            raise IncompleteUploadError(upload_id, missing, unexpected)

    def _concatenate(self, upload_id: str, file_name: str, indices: List[int]) -> int:
        """
        Stream chunks into the artifact writer in the given order.

        Returns:
            Total bytes written
        """
        written = 0
        try:
            with self.artifact_store.open_writer(file_name) as out:
                for index in indices:
                    for piece in self.chunk_store.read_chunk_streaming(upload_id, index):
                        out.write(piece)
                        written += len(piece)
                    logger.debug(f"Appended chunk {index} of upload {upload_id} to {file_name}")
        except OSError as e:
            logger.error(
                f"Merge of upload {upload_id} into {file_name} failed after {written} bytes: {e}"
            )
            raise MergeIOFailureError(
                f"Failed to merge upload {upload_id} into {file_name}: {e.strerror or e}"
            ) from e
        return written
