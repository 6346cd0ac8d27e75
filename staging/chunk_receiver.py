"""Persists incoming chunks into the staging namespace of their upload."""

import logging
from typing import Optional, Union

from common.exceptions import StorageFailureError
from common.types import ChunkReceipt
from common.utils import parse_chunk_index, require_upload_id
from staging.chunk_store import ChunkStore, Payload
from staging.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class ChunkReceiver:
    def __init__(self, chunk_store: ChunkStore, registry: SessionRegistry):
        self.chunk_store = chunk_store
        self.registry = registry

    def receive(
        self,
        upload_id: Optional[str],
        chunk_index: Union[str, int, None],
        payload: Payload,
    ) -> ChunkReceipt:
        """
        Store one chunk of an upload.

        The staging namespace is created on the first chunk. Writing an index
        that already exists replaces its payload.

        Args:
            upload_id: Caller-chosen upload identifier
            chunk_index: Sequence index, as text or integer
            payload: Chunk bytes or a readable binary stream (may be empty)

        Returns:
            ChunkReceipt echoing the identifier, index and bytes written

        Raises:
            MissingIdentifierError: If upload_id is absent
            InvalidIdentifierError: If upload_id is not filesystem-safe
            MissingIndexError: If chunk_index is absent or not a non-negative integer
            SessionBusyError: If the upload is currently being merged
            StorageFailureError: If the chunk cannot be persisted
        """
        upload_id = require_upload_id(upload_id)
        index = parse_chunk_index(chunk_index)

        with self.registry.writing(upload_id):
            try:
                self.chunk_store.ensure_namespace(upload_id)
                size = self.chunk_store.write_chunk(upload_id, index, payload)
            except OSError as e:
                logger.error(f"Failed to store chunk {index} for upload {upload_id}: {e}")
                raise StorageFailureError(
                    f"Failed to store chunk {index} for upload {upload_id}: {e.strerror or e}"
                ) from e

        logger.info(f"Stored chunk {index} for upload {upload_id} ({size} bytes)")
        return ChunkReceipt(upload_id=upload_id, chunk_index=index, size=size)
