"""Upload relay API routes.

Accepts a file from the dashboard and forwards it to the distribution
backend: small files in one direct request, larger ones in chunks.
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, Header, HTTPException, UploadFile

from tuneflow.core.config import settings
from tuneflow.upload.audio_validation import validate_wav
from tuneflow.upload.chunk_uploader import upload_file_directly, upload_file_in_chunks
from tuneflow.upload.exceptions import (
    AudioValidationError,
    UploadError,
    UploadRejectedError,
)
from tuneflow.upload.models import UploadResult

router = APIRouter(prefix="/api/v1", tags=["upload"])
logger = logging.getLogger(__name__)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    # Other schemes are not meaningful to the backend
    logger.warning(f"Ignoring unsupported authorization scheme: {scheme}")
    return None


@router.post(
    "/uploads",
    response_model=UploadResult,
    response_model_by_alias=True,
    status_code=201,
)
async def relay_upload(
    file: UploadFile = File(...),
    upload_type: Optional[str] = Form(None, alias="type"),
    artist_name: Optional[str] = Form(None, alias="artistName"),
    track_title: Optional[str] = Form(None, alias="trackTitle"),
    consent: Optional[bool] = Form(None),
    authorization: Optional[str] = Header(None),
) -> UploadResult:
    """Validate a file and forward it to the distribution backend."""
    file_name = file.filename or "unnamed"
    access_token = _bearer_token(authorization)

    file.file.seek(0, 2)
    size_bytes = file.file.tell()
    file.file.seek(0)

    if size_bytes == 0:
        raise HTTPException(status_code=400, detail="File is empty")

    if upload_type == "audio":
        try:
            validate_wav(file.file, filename=file_name, content_type=file.content_type)
        except AudioValidationError as e:
            logger.info(f"Audio rejected: {file_name}: {e.message}")
            raise HTTPException(status_code=422, detail=e.message)

    if size_bytes <= settings.direct_upload_max_bytes:
        method, uploader = "direct", upload_file_directly
    else:
        method, uploader = "chunked", upload_file_in_chunks

    def log_progress(percent: int) -> None:
        logger.debug(f"Relaying {file_name}: {percent}%")

    try:
        result = await uploader(
            file.file,
            access_token,
            log_progress,
            upload_type,
            artist_name,
            track_title,
            consent,
            filename=file_name,
        )
    except UploadRejectedError as e:
        raise HTTPException(status_code=e.status_code or 400, detail=e.message)
    except UploadError as e:
        logger.error(f"Upload relay failed for {file_name}: {e.message}")
        raise HTTPException(status_code=502, detail=e.message)

    logger.info(
        f"Upload relayed: file={file_name}, size={size_bytes}, "
        f"method={method}, path={result.path}"
    )
    return result
