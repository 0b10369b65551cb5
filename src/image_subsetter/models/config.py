"""
Configuration models for image-subsetter.

The configuration mode is a tagged union discriminated by ``kind``; it is
fixed for the lifetime of the process.
"""

from collections.abc import Callable
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from ..constants import ModeKind, SuccessMessages


class SingleMode(BaseModel):
    """One fixed raster, opened once at startup. Bboxes are georeferenced."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["single"] = ModeKind.SINGLE
    filename: str = Field(..., min_length=1, description="Raster path, URL, or GDAL /vsi path")

    def describe(self) -> str:
        return SuccessMessages.MODE_SINGLE.format(self.filename)


class DynamicIDMode(BaseModel):
    """Raster path built as prefix + ID + suffix from the request's ID parameter."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["dynamic_id"] = ModeKind.DYNAMIC_ID
    prefix: str = Field("", description="Path prefix placed before the ID")
    suffix: str = Field("", description="Path suffix placed after the ID")

    def path_for(self, identifier: str) -> str:
        return f"{self.prefix}{identifier}{self.suffix}"

    def describe(self) -> str:
        return SuccessMessages.MODE_DYNAMIC.format(self.prefix, self.suffix)


class ScriptMode(BaseModel):
    """Raster path returned by a resolver function called with the raw query string."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["script"] = ModeKind.SCRIPT
    script_path: str = Field(..., description="Resolver script the function was loaded from")
    resolver: Callable[[str], object] = Field(
        ..., exclude=True, description="query_handler(query_string) -> raster path"
    )

    def describe(self) -> str:
        return SuccessMessages.MODE_SCRIPT.format(self.script_path)


ConfigurationMode = Annotated[
    Union[SingleMode, DynamicIDMode, ScriptMode],
    Field(discriminator="kind"),
]


class ServerSettings(BaseModel):
    """Validated startup configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    mode: ConfigurationMode
    missing_path: str | None = Field(
        None, description="Placeholder image sent when a dynamic dataset does not open"
    )
    temp_dir: str | None = Field(None, description="Directory for temporary output artifacts")
