"""Chunked and direct upload clients for the distribution backend.

The chunked path splits a file into fixed 1 MiB pieces and sends them one
at a time under a shared session identifier. Network errors and 5xx
responses are retried with capped exponential backoff; a 4xx response is a
definitive rejection (duplicate content, bad metadata) and aborts at once.
Only the response to the final chunk carries the storage path and the
extracted metadata.

The direct path sends the whole file in a single request without retries
and reports progress from the bytes the HTTP client reads off the file.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import (
    Any,
    AsyncIterator,
    BinaryIO,
    Callable,
    Dict,
    Iterator,
    Optional,
    Tuple,
    Union,
)

import httpx

from tuneflow.core.config import settings
from tuneflow.core.http import (
    auth_headers,
    error_message,
    is_client_error,
    response_of,
    server_message,
)
from tuneflow.core.logging import upload_identifier_context
from tuneflow.upload.chunking import (
    MAX_RETRIES,
    backoff_delay_ms,
    progress_percent,
    start_session,
)
from tuneflow.upload.exceptions import (
    ChunkUploadFailedError,
    MissingPathError,
    UploadError,
    UploadRejectedError,
)
from tuneflow.upload.models import ChunkRange, UploadResult, UploadSession

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
SourceFile = Union[str, os.PathLike, BinaryIO]

CHUNK_ENDPOINT = "/chunk_files/upload"
SINGLE_ENDPOINT = "/chunk_files/single"


def _descriptive_fields(
    upload_type: Optional[str],
    artist_name: Optional[str],
    track_title: Optional[str],
    consent: Optional[bool],
) -> Dict[str, str]:
    """Optional form fields, sent with every request of an upload."""
    fields: Dict[str, str] = {}
    if upload_type:
        fields["type"] = upload_type
    if artist_name:
        fields["artistName"] = artist_name
    if track_title:
        fields["trackTitle"] = track_title
    if consent:
        fields["consent"] = "true"
    return fields


@contextmanager
def _open_source(file: SourceFile, filename: Optional[str]) -> Iterator[Tuple[BinaryIO, str, int]]:
    """Yield ``(handle, name, size)`` for a path or an open binary file.

    Paths are opened here and closed on exit. Caller-owned file objects are
    left open, with their position restored.
    """
    if isinstance(file, (str, os.PathLike)):
        path = Path(file)
        with open(path, "rb") as handle:
            yield handle, filename or path.name, os.fstat(handle.fileno()).st_size
        return

    original_position = file.tell()
    size = file.seek(0, os.SEEK_END)
    file.seek(0)
    raw_name = getattr(file, "name", None)
    name = filename or (Path(raw_name).name if isinstance(raw_name, str) else "upload.bin")
    try:
        yield file, name, size
    finally:
        file.seek(original_position)


@asynccontextmanager
async def _client_scope(client: Optional[httpx.AsyncClient]) -> AsyncIterator[httpx.AsyncClient]:
    """Use the caller's client, or own one for the duration of the upload."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT) as owned:
        yield owned


def _json_or_none(response: Optional[httpx.Response]) -> Optional[Dict[str, Any]]:
    if response is None:
        return None
    try:
        payload = response.json()
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


async def _upload_chunk(
    client: httpx.AsyncClient,
    session: UploadSession,
    chunk: ChunkRange,
    data: bytes,
    fields: Dict[str, str],
    headers: Dict[str, str],
) -> httpx.Response:
    """Send one chunk, retrying transport errors and 5xx responses.

    Raises:
        UploadRejectedError: On a 4xx response (never retried)
        ChunkUploadFailedError: When the last retry also fails
    """
    form = {
        "identifier": session.identifier,
        "totalChunks": str(session.total_chunks),
        "currentChunk": str(chunk.index),
        **fields,
    }
    url = f"{settings.api_base_url}{CHUNK_ENDPOINT}"
    last_error: Optional[httpx.HTTPError] = None
    last_server_message: Optional[str] = None
    last_status: Optional[int] = None

    for retry_count in range(MAX_RETRIES + 1):
        try:
            response = await client.post(
                url,
                data=form,
                files={"chunk": (session.file_name, data, "application/octet-stream")},
                headers=headers,
            )
            response.raise_for_status()
            return response

        except httpx.HTTPError as e:
            failed_response = response_of(e)
            status_code = failed_response.status_code if failed_response is not None else None

            logger.warning(
                f"Error uploading chunk {chunk.index} (attempt {retry_count + 1})",
                extra={
                    "chunk_index": chunk.index,
                    "attempt": retry_count + 1,
                    "status_code": status_code,
                    "error": str(e),
                },
            )

            if is_client_error(status_code):
                message = error_message(e, default=f"Chunk {chunk.index} was rejected by the server.")
                logger.error(
                    "Upload rejected by server",
                    extra={"chunk_index": chunk.index, "status_code": status_code, "error": message},
                )
                raise UploadRejectedError(message, status_code=status_code) from e

            last_error = e
            last_status = status_code
            last_server_message = server_message(failed_response) or last_server_message

            if retry_count < MAX_RETRIES:
                await asyncio.sleep(backoff_delay_ms(retry_count) / 1000)

    logger.error(
        f"Chunk {chunk.index} failed after {MAX_RETRIES} retries",
        extra={
            "chunk_index": chunk.index,
            "total_attempts": MAX_RETRIES + 1,
            "final_status_code": last_status,
            "final_error": str(last_error),
        },
    )
    raise ChunkUploadFailedError(
        last_server_message or f"Failed to upload chunk {chunk.index} after {MAX_RETRIES} retries.",
        chunk_index=chunk.index,
        attempts=MAX_RETRIES + 1,
        status_code=last_status,
    ) from last_error


async def upload_file_in_chunks(
    file: SourceFile,
    access_token: Optional[str],
    on_progress: Optional[ProgressCallback] = None,
    upload_type: Optional[str] = None,
    artist_name: Optional[str] = None,
    track_title: Optional[str] = None,
    consent: Optional[bool] = None,
    *,
    filename: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> UploadResult:
    """Upload a file in sequential 1 MiB chunks.

    Args:
        file: Path or readable, seekable binary file object
        access_token: Bearer token for the backend (may be empty)
        on_progress: Called with an integer percentage after every chunk
        upload_type: Asset kind, e.g. ``audio`` or ``cover``
        artist_name: Artist credited on the upload
        track_title: Track the upload belongs to
        consent: Whether the artist confirmed rights to the content
        filename: Overrides the name taken from ``file``
        client: Shared HTTP client; a private one is used when omitted

    Returns:
        UploadResult built from the final chunk's response

    Raises:
        UploadRejectedError: The backend answered a chunk with 4xx
        ChunkUploadFailedError: A chunk kept failing after all retries
        MissingPathError: The final response carried no ``path``
    """
    fields = _descriptive_fields(upload_type, artist_name, track_title, consent)
    headers = auth_headers(access_token)

    with _open_source(file, filename) as (handle, name, size):
        session = start_session(name, size)
        token = upload_identifier_context.set(session.identifier)
        try:
            logger.info(
                "Starting chunked upload",
                extra={
                    "identifier": session.identifier,
                    "file_size": session.file_size,
                    "total_chunks": session.total_chunks,
                    "upload_type": upload_type,
                },
            )

            last_response: Optional[httpx.Response] = None
            async with _client_scope(client) as http:
                for chunk in session.ranges():
                    handle.seek(chunk.start)
                    data = handle.read(chunk.length)
                    last_response = await _upload_chunk(http, session, chunk, data, fields, headers)

                    percent = progress_percent(chunk.index + 1, session.total_chunks)
                    logger.debug(f"Chunk {chunk.index} uploaded ({percent}%)")
                    if on_progress:
                        on_progress(percent)

            # Intermediate chunks only acknowledge receipt
            payload = _json_or_none(last_response)
            if not payload or not payload.get("path"):
                raise MissingPathError("Upload completed but no path returned.")

            result = UploadResult.from_response(payload)
            logger.info(
                "Chunked upload completed",
                extra={"identifier": session.identifier, "path": result.path, "status": result.status},
            )
            return result
        finally:
            upload_identifier_context.reset(token)


class _ProgressReader:
    """File wrapper that reports how much of the file has been read."""

    def __init__(self, handle: BinaryIO, total: int, on_progress: Optional[ProgressCallback]):
        self._handle = handle
        self._total = total
        self._on_progress = on_progress
        self._loaded = 0

    def read(self, size: int = -1) -> bytes:
        data = self._handle.read(size)
        if data:
            self._loaded += len(data)
            if self._on_progress and self._total:
                self._on_progress(progress_percent(min(self._loaded, self._total), self._total))
        return data

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        position = self._handle.seek(offset, whence)
        self._loaded = position
        return position

    def tell(self) -> int:
        return self._handle.tell()


async def upload_file_directly(
    file: SourceFile,
    access_token: Optional[str],
    on_progress: Optional[ProgressCallback] = None,
    upload_type: Optional[str] = None,
    artist_name: Optional[str] = None,
    track_title: Optional[str] = None,
    consent: Optional[bool] = None,
    *,
    filename: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> UploadResult:
    """Upload a whole file in one request, without retries.

    Takes the same arguments as :func:`upload_file_in_chunks`.

    Raises:
        UploadRejectedError: The backend answered with 4xx
        UploadError: Transport failure or 5xx response
        MissingPathError: The response carried no ``path``
    """
    fields = _descriptive_fields(upload_type, artist_name, track_title, consent)
    headers = auth_headers(access_token)
    url = f"{settings.api_base_url}{SINGLE_ENDPOINT}"

    with _open_source(file, filename) as (handle, name, size):
        reader = _ProgressReader(handle, size, on_progress)
        logger.info(
            "Starting direct upload",
            extra={"file_name": name, "file_size": size, "upload_type": upload_type},
        )

        async with _client_scope(client) as http:
            try:
                response = await http.post(
                    url,
                    data=fields,
                    files={"file": (name, reader)},
                    headers=headers,
                )
                response.raise_for_status()

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                message = error_message(e, default="Direct upload failed.")
                logger.error(
                    "Direct upload failed",
                    extra={"file_name": name, "status_code": status_code, "error": message},
                )
                if is_client_error(status_code):
                    raise UploadRejectedError(message, status_code=status_code) from e
                raise UploadError(message, status_code=status_code) from e

            except httpx.HTTPError as e:
                message = error_message(e, default="Direct upload failed.")
                logger.error(
                    "Direct upload failed",
                    extra={"file_name": name, "error": message},
                )
                raise UploadError(message) from e

    payload = _json_or_none(response)
    if not payload or not payload.get("path"):
        raise MissingPathError("Direct upload completed but no path returned.")

    result = UploadResult.from_response(payload)
    logger.info("Direct upload completed", extra={"file_name": name, "path": result.path})
    return result
