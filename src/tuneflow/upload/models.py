"""Upload data models."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, NamedTuple, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from tuneflow.upload.exceptions import UploadError

logger = logging.getLogger(__name__)


class ChunkRange(NamedTuple):
    """Half-open byte range ``[start, end)`` of one chunk."""

    index: int
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class UploadSession:
    """One logical chunked transfer.

    Lives only for the duration of a single upload call; nothing about it
    is persisted, so an interrupted upload restarts from chunk 0 under a
    new identifier.
    """

    identifier: str
    file_name: str
    file_size: int
    chunk_size: int
    total_chunks: int

    def ranges(self) -> Iterator[ChunkRange]:
        """Yield the byte range of every chunk in upload order."""
        from tuneflow.upload.chunking import chunk_ranges

        return chunk_ranges(self.file_size, self.chunk_size)


class Resolution(BaseModel):
    """Pixel dimensions extracted from an uploaded image or video."""

    model_config = ConfigDict(populate_by_name=True)

    width: Optional[Any] = None
    # Some backend builds send the misspelled "heigth"
    height: Optional[Any] = Field(
        default=None, validation_alias=AliasChoices("height", "heigth")
    )


class UploadMetaData(BaseModel):
    """Properties the backend extracts from a completed upload.

    Values are kept as the backend sent them; ``duration`` may be seconds
    or a formatted string, ``hash`` may be numeric.
    """

    model_config = ConfigDict(extra="ignore")

    duration: Optional[Any] = None
    resolution: Optional[Any] = None
    hash: Optional[Union[str, int]] = None
    fingerprint: Optional[Union[str, int]] = None

    @field_validator("resolution", mode="before")
    @classmethod
    def _parse_resolution(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return Resolution.model_validate(value)
        return value


class UploadResult(BaseModel):
    """Terminal description of an uploaded artifact."""

    model_config = ConfigDict(populate_by_name=True)

    path: str = Field(..., description="Server-assigned storage location")
    status: Optional[str] = Field(None, description="e.g. duplicate-detection outcome")
    message: Optional[str] = None
    meta_data: UploadMetaData = Field(default_factory=UploadMetaData, alias="metaData")

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "UploadResult":
        """Build a result from the backend's final JSON response.

        Args:
            payload: Decoded JSON body that contains ``path``

        Returns:
            UploadResult with metadata copied from ``metaData``

        Raises:
            UploadError: If the body does not fit the result shape
        """
        try:
            return cls(
                path=payload["path"],
                status=payload.get("status"),
                message=payload.get("message"),
                meta_data=UploadMetaData.model_validate(payload.get("metaData") or {}),
            )
        except ValidationError as e:
            logger.error(
                "Unreadable upload response",
                extra={"path": payload.get("path"), "error": str(e)},
            )
            raise UploadError(
                f"Upload completed but the response could not be read: {e.error_count()} invalid field(s)."
            ) from e
