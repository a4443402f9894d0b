"""Custom exceptions for the upload client."""

from typing import Optional


class UploadError(Exception):
    """Base exception for upload failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UploadRejectedError(UploadError):
    """Exception raised when the backend rejects an upload with a 4xx status."""
    pass


class ChunkUploadFailedError(UploadError):
    """Exception raised when a chunk still fails after every retry."""

    def __init__(
        self,
        message: str,
        chunk_index: int,
        attempts: int,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, status_code=status_code)
        self.chunk_index = chunk_index
        self.attempts = attempts


class MissingPathError(UploadError):
    """Exception raised when an upload succeeds but no storage path comes back."""
    pass


class AudioValidationError(UploadError):
    """Exception raised when an audio file fails the WAV format checks."""
    pass
