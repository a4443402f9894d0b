"""Chunk arithmetic for sequential uploads."""

import math
import re
import time
from typing import Iterator, Optional

from tuneflow.upload.models import ChunkRange, UploadSession

CHUNK_SIZE = 1024 * 1024  # 1 MiB, not negotiated with the backend

MAX_RETRIES = 10
BACKOFF_BASE_MS = 1000
BACKOFF_CAP_MS = 10000

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def count_chunks(file_size: int, chunk_size: int = CHUNK_SIZE) -> int:
    """Number of chunks needed to cover ``file_size`` bytes."""
    if file_size < 0:
        raise ValueError("file_size must not be negative")
    return math.ceil(file_size / chunk_size)


def sanitize_file_name(file_name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9.-]`` with an underscore."""
    return _UNSAFE_NAME_CHARS.sub("_", file_name)


def make_identifier(file_name: str, now_ms: Optional[int] = None) -> str:
    """Build the session identifier ``<epoch-ms>-<sanitized name>``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{now_ms}-{sanitize_file_name(file_name)}"


def chunk_ranges(file_size: int, chunk_size: int = CHUNK_SIZE) -> Iterator[ChunkRange]:
    """Yield contiguous byte ranges covering ``[0, file_size)``."""
    for index in range(count_chunks(file_size, chunk_size)):
        start = index * chunk_size
        yield ChunkRange(index, start, min(start + chunk_size, file_size))


def backoff_delay_ms(retry_count: int) -> int:
    """Capped exponential delay before retry number ``retry_count + 1``."""
    return min(BACKOFF_BASE_MS * 2 ** retry_count, BACKOFF_CAP_MS)


def progress_percent(done: int, total: int) -> int:
    """Integer percentage, rounding halves up."""
    if total <= 0:
        return 0
    return math.floor(done * 100 / total + 0.5)


def start_session(
    file_name: str,
    file_size: int,
    chunk_size: int = CHUNK_SIZE,
    now_ms: Optional[int] = None,
) -> UploadSession:
    """Create the in-memory session for one chunked upload."""
    return UploadSession(
        identifier=make_identifier(file_name, now_ms),
        file_name=file_name,
        file_size=file_size,
        chunk_size=chunk_size,
        total_chunks=count_chunks(file_size, chunk_size),
    )
