"""Tests for WAV header validation."""

import io
import struct

import pytest

from tuneflow.upload.audio_validation import (
    WavHeader,
    is_wav,
    parse_wav_header,
    validate_wav,
)
from tuneflow.upload.exceptions import AudioValidationError, UploadError


def wav_header(sample_rate=44100, bit_depth=16, channels=2):
    block_align = channels * bit_depth // 8
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF", 36, b"WAVE", b"fmt ", 16, 1, channels,
        sample_rate, sample_rate * block_align, block_align, bit_depth,
        b"data", 0,
    )


def test_header_is_44_bytes():
    assert len(wav_header()) == 44


def test_parse_wav_header():
    assert parse_wav_header(wav_header(48000, 24)) == WavHeader(sample_rate=48000, bit_depth=24)


def test_parse_rejects_missing_riff():
    data = b"RIFX" + wav_header()[4:]
    with pytest.raises(AudioValidationError, match="RIFF"):
        parse_wav_header(data)


def test_parse_rejects_missing_wave():
    data = wav_header()[:8] + b"AVI " + wav_header()[12:]
    with pytest.raises(AudioValidationError, match="WAVE"):
        parse_wav_header(data)


def test_parse_rejects_truncated_header():
    with pytest.raises(AudioValidationError, match="too short"):
        parse_wav_header(wav_header()[:20])


@pytest.mark.parametrize(
    "filename,content_type,expected",
    [
        ("song.wav", None, True),
        ("SONG.WAV", None, True),
        ("song.mp3", "audio/wav", True),
        ("song.mp3", "audio/x-wav", True),
        ("song.mp3", "audio/mpeg", False),
        (None, None, False),
    ],
)
def test_is_wav(filename, content_type, expected):
    assert is_wav(filename, content_type) is expected


def test_validate_accepts_cd_quality_file_object():
    source = io.BytesIO(wav_header() + b"\x00" * 100)
    source.seek(50)

    header = validate_wav(source, filename="master.wav")

    assert header == WavHeader(44100, 16)
    assert source.tell() == 50


def test_validate_from_path(tmp_path):
    path = tmp_path / "master.wav"
    path.write_bytes(wav_header())
    assert validate_wav(path).sample_rate == 44100


def test_validate_rejects_wrong_sample_rate():
    with pytest.raises(AudioValidationError, match="48000Hz. File must be 44,100Hz."):
        validate_wav(io.BytesIO(wav_header(sample_rate=48000)), filename="hi-res.wav")


def test_validate_rejects_wrong_bit_depth():
    with pytest.raises(AudioValidationError, match="24-bit. File must be 16-bit."):
        validate_wav(io.BytesIO(wav_header(bit_depth=24)), filename="hi-res.wav")


def test_validate_rejects_non_wav_name():
    with pytest.raises(AudioValidationError, match="Only WAV files are accepted"):
        validate_wav(io.BytesIO(wav_header()), filename="song.mp3", content_type="audio/mpeg")


def test_validation_error_is_upload_error():
    assert issubclass(AudioValidationError, UploadError)
