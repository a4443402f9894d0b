"""
Upload client

Sends audio and cover-art files to the distribution backend, either in
sequential 1 MiB chunks with retry and backoff or as a single direct
request.
"""

from tuneflow.upload.chunk_uploader import upload_file_directly, upload_file_in_chunks
from tuneflow.upload.exceptions import (
    AudioValidationError,
    ChunkUploadFailedError,
    MissingPathError,
    UploadError,
    UploadRejectedError,
)
from tuneflow.upload.models import UploadMetaData, UploadResult, UploadSession

__all__ = [
    "upload_file_in_chunks",
    "upload_file_directly",
    "UploadResult",
    "UploadMetaData",
    "UploadSession",
    "UploadError",
    "UploadRejectedError",
    "ChunkUploadFailedError",
    "MissingPathError",
    "AudioValidationError",
]
