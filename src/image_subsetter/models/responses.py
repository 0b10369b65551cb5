"""
Request outcome models for image-subsetter.

Each request produces exactly one outcome, consumed once by the response
builder: either an image (in memory or as a temporary artifact) or an error.
"""

from pathlib import Path
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from ..constants import OUTPUT_CONTENT_TYPE


class ImageOutcome(BaseModel):
    """Successful request: image bytes, or the temporary file holding them."""

    model_config = ConfigDict(extra="forbid")

    content_type: str = Field(OUTPUT_CONTENT_TYPE, description="MIME type of the image")
    body: bytes = Field(b"", description="Image bytes, when already in memory")
    artifact: Path | None = Field(
        None, description="Temporary encoded file; deleted once its bytes are sent"
    )

    def to_text(self) -> str:
        source = str(self.artifact) if self.artifact else f"{len(self.body)} bytes"
        return f"Image ({self.content_type}): {source}"


class ErrorOutcome(BaseModel):
    """Failed request: status code and human readable message."""

    model_config = ConfigDict(extra="forbid")

    status: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Error message describing what went wrong")

    def to_text(self) -> str:
        return f"Error {self.status}: {self.message}"


RequestOutcome = Union[ImageOutcome, ErrorOutcome]
