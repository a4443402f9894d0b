"""WAV format checks applied to audio before it is uploaded.

Distribution partners only accept 16-bit, 44.1 kHz WAV masters, so audio
is rejected here before any bytes go over the network.
"""

import logging
import os
import struct
from pathlib import Path
from typing import BinaryIO, NamedTuple, Optional, Union

from tuneflow.upload.exceptions import AudioValidationError

logger = logging.getLogger(__name__)

WAV_HEADER_SIZE = 44
REQUIRED_SAMPLE_RATE = 44100
REQUIRED_BIT_DEPTH = 16


class WavHeader(NamedTuple):
    """Format fields read from a canonical WAV header."""
    sample_rate: int
    bit_depth: int


def is_wav(filename: Optional[str], content_type: Optional[str] = None) -> bool:
    """True when the name or MIME type says the file is WAV."""
    if content_type and "wav" in content_type.lower():
        return True
    return bool(filename) and filename.lower().endswith(".wav")


def parse_wav_header(data: bytes) -> WavHeader:
    """Read sample rate and bit depth from the first 44 bytes of a WAV file.

    Args:
        data: At least the first 44 bytes of the file

    Returns:
        WavHeader with the sample rate and bits per sample

    Raises:
        AudioValidationError: If the header is truncated or not RIFF/WAVE
    """
    if len(data) < WAV_HEADER_SIZE:
        raise AudioValidationError("Invalid audio file format (header too short)")
    if data[0:4] != b"RIFF":
        raise AudioValidationError("Invalid audio file format (Header missing RIFF)")
    if data[8:12] != b"WAVE":
        raise AudioValidationError("Invalid audio file format (Header missing WAVE)")

    (sample_rate,) = struct.unpack_from("<I", data, 24)
    (bit_depth,) = struct.unpack_from("<H", data, 34)
    return WavHeader(sample_rate=sample_rate, bit_depth=bit_depth)


def _read_header(file: Union[str, os.PathLike, BinaryIO]) -> bytes:
    if isinstance(file, (str, os.PathLike)):
        with open(file, "rb") as handle:
            return handle.read(WAV_HEADER_SIZE)

    position = file.tell()
    try:
        file.seek(0)
        return file.read(WAV_HEADER_SIZE)
    finally:
        file.seek(position)


def validate_wav(
    file: Union[str, os.PathLike, BinaryIO],
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
) -> WavHeader:
    """Check that a file is a 16-bit, 44.1 kHz WAV.

    Raises:
        AudioValidationError: Naming the first requirement the file misses
    """
    if filename is None and isinstance(file, (str, os.PathLike)):
        filename = Path(file).name

    if not is_wav(filename, content_type):
        raise AudioValidationError(f"File rejected: {filename}. Only WAV files are accepted.")

    header = parse_wav_header(_read_header(file))

    if header.sample_rate != REQUIRED_SAMPLE_RATE:
        raise AudioValidationError(
            f"Invalid Sample Rate for {filename}: {header.sample_rate}Hz. File must be 44,100Hz."
        )
    if header.bit_depth != REQUIRED_BIT_DEPTH:
        raise AudioValidationError(
            f"Invalid Bit Depth for {filename}: {header.bit_depth}-bit. File must be 16-bit."
        )

    logger.debug(
        "WAV header accepted",
        extra={"file_name": filename, "sample_rate": header.sample_rate, "bit_depth": header.bit_depth},
    )
    return header
