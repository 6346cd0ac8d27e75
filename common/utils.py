"""Validation helpers for upload identifiers, file names and chunk indices."""

import uuid
from typing import Optional, Union

from common.exceptions import (
    InvalidIdentifierError,
    MissingFileNameError,
    MissingIdentifierError,
    MissingIndexError,
)

_FORBIDDEN_CHARACTERS = ('/', '\\', '\x00')


def generate_upload_id() -> str:
    """
    Generate a new upload identifier.

    Returns:
        UUID4 hex string
    """
    return uuid.uuid4().hex


def is_safe_name(value: str) -> bool:
    """
    Check whether a value can be used as a single path component.

    Args:
        value: Candidate directory or file name

    Returns:
        True if the value contains no separators and is not hidden or relative
    """
    if not value or value.startswith('.'):
        return False
    return not any(ch in value for ch in _FORBIDDEN_CHARACTERS)


def require_upload_id(upload_id: Optional[str]) -> str:
    """
    Validate an upload identifier.

    Raises:
        MissingIdentifierError: If upload_id is None or empty
        InvalidIdentifierError: If upload_id is not filesystem-safe
    """
    if not upload_id:
        raise MissingIdentifierError("Missing upload identifier (fileId)")
    if not is_safe_name(upload_id):
        raise InvalidIdentifierError(f"Upload identifier is not a safe name: {upload_id!r}")
    return upload_id


def require_file_name(file_name: Optional[str]) -> str:
    """
    Validate a merged artifact name.

    Raises:
        MissingFileNameError: If file_name is None or empty
        InvalidIdentifierError: If file_name is not filesystem-safe
    """
    if not file_name:
        raise MissingFileNameError("Missing target file name (fileName)")
    if not is_safe_name(file_name):
        raise InvalidIdentifierError(f"File name is not a safe name: {file_name!r}")
    return file_name


def parse_chunk_index(chunk_index: Union[str, int, None]) -> int:
    """
    Parse a chunk index supplied as text or integer.

    Args:
        chunk_index: Raw index value, e.g. "3" or 3

    Returns:
        Non-negative integer index

    Raises:
        MissingIndexError: If the index is absent, not an integer, or negative
    """
    if chunk_index is None or isinstance(chunk_index, bool):
        raise MissingIndexError("Missing chunk index (chunkIndex)")

    if isinstance(chunk_index, int):
        index = chunk_index
    else:
        text = str(chunk_index).strip()
        if not (text.isascii() and text.isdigit()):
            raise MissingIndexError(f"Chunk index is not a non-negative integer: {chunk_index!r}")
        index = int(text)

    if index < 0:
        raise MissingIndexError(f"Chunk index must be non-negative: {index}")
    return index
