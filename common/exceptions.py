"""Custom exception classes shared by the staging and assembly layers."""

from typing import List


class UploadError(Exception):
    """
    Base exception class for all chunked-upload errors.
    """
    pass


class ValidationError(UploadError):
    """
    Raised when a request carries a missing or malformed argument.
    """
    pass


class MissingIdentifierError(ValidationError):
    """
    Raised when the upload identifier is absent or empty.
    """
    pass


class MissingIndexError(ValidationError):
    """
    Raised when the chunk index is absent, not an integer, or negative.
    """
    pass


class MissingFileNameError(ValidationError):
    """
    Raised when a merge is requested without a target file name.
    """
    pass


class InvalidIdentifierError(ValidationError):
    """
    Raised when an upload identifier or file name is not filesystem-safe.
    """
    pass


class IncompleteUploadError(ValidationError):
    """
    Raised when a merge with an expected chunk count finds missing indices.
    """

    def __init__(self, upload_id: str, missing: List[int], unexpected: List[int] = None):
        self.upload_id = upload_id
        self.missing = missing
        self.unexpected = unexpected or []
        message = f"Upload {upload_id} is incomplete: missing chunks {missing}"
        if self.unexpected:
            message += f", unexpected chunks {self.unexpected}"
        super().__init__(message)


class SessionNotFoundError(UploadError):
    """
    Raised when no staging namespace exists for an upload identifier.
    """
    pass


class ArtifactNotFoundError(UploadError):
    """
    Raised when a requested merged artifact does not exist.
    """
    pass


class SessionBusyError(UploadError):
    """
    Raised when an upload session is being merged and cannot accept the request.
    """
    pass


class StorageFailureError(UploadError):
    """
    Raised when persisting a chunk fails at the I/O level.
    """
    pass


class MergeIOFailureError(UploadError):
    """
    Raised when reading chunks or writing the artifact fails during a merge.
    """
    pass
