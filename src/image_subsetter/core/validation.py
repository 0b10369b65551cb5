"""
Request validation: output size negotiation and bbox checks against raster extents.

Validation runs in two phases. ``validate_params`` checks the ``size`` and
``bbox`` parameters before any dataset is touched; ``validate_window`` runs
once a raster is open and produces the crop window in the convention the
raster engine expects.
"""

import math
import re
from dataclasses import dataclass

from ..constants import (
    BBOX_VALUE_COUNT,
    DEFAULT_OUTPUT_SIZE,
    MAX_OUTPUT_SIZE,
    ErrorMessages,
    ModeKind,
)
from ..errors import BadRequest
from .bbox import bbox_error_message, parse_bbox
from .geometry import BoundingBox, OutputSize, ProjectionWindow, SourceWindow, WindowSpec

_SIZE_PATTERN = re.compile(r"\s*(\d+)\s*,\s*(\d+)\s*")


@dataclass(frozen=True)
class ValidatedRequest:
    """Output of a fully validated request, ready for the raster engine."""

    size: OutputSize
    bbox: BoundingBox
    window: WindowSpec


def clamp_size(width: int, height: int) -> OutputSize:
    """All-or-nothing clamp: if either axis is over the limit, both become the default."""
    if width > MAX_OUTPUT_SIZE or height > MAX_OUTPUT_SIZE:
        return OutputSize(DEFAULT_OUTPUT_SIZE, DEFAULT_OUTPUT_SIZE)
    return OutputSize(width, height)


def parse_size(raw: str | None) -> OutputSize:
    """Parse and clamp a ``width,height`` size parameter."""
    if not raw:
        raise BadRequest(ErrorMessages.MISSING_SIZE)

    match = _SIZE_PATTERN.fullmatch(raw)
    if match is None:
        raise BadRequest(ErrorMessages.INVALID_SIZE)

    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        raise BadRequest(ErrorMessages.INVALID_SIZE)

    return clamp_size(width, height)


def parse_request_bbox(raw: str | None) -> BoundingBox:
    """Parse the bbox parameter, defaulting to the full geographic extent."""
    if not raw:
        return BoundingBox.geographic_default()

    bbox, count = parse_bbox(raw)
    if count != BBOX_VALUE_COUNT:
        raise BadRequest(bbox_error_message(count))
    return bbox


def validate_params(raw_size: str | None, raw_bbox: str | None) -> tuple[OutputSize, BoundingBox]:
    """First phase: size and bbox syntax, before the dataset is resolved."""
    size = parse_size(raw_size)
    bbox = parse_request_bbox(raw_bbox)
    return size, bbox


def to_pixel_bbox(bbox: BoundingBox, raster_width: int, raster_height: int) -> BoundingBox:
    """
    Convert a request bbox into pixel space for a raster of the given size.

    The untouched geographic default stands for "the whole raster". All
    components are floored; the result must lie within the raster and keep
    a non-zero area.
    """
    if bbox.is_geographic_default:
        return BoundingBox(0, 0, raster_width, raster_height)

    pixel = BoundingBox(*(math.floor(v) for v in bbox.as_tuple()))
    if (
        pixel.min_x < 0
        or pixel.min_y < 0
        or pixel.max_x > raster_width
        or pixel.max_y > raster_height
        or pixel.width <= 0
        or pixel.height <= 0
    ):
        raise BadRequest(ErrorMessages.BAD_BBOX_VALUES)
    return pixel


def validate_window(
    size: OutputSize,
    bbox: BoundingBox,
    raster_width: int,
    raster_height: int,
    mode_kind: str,
) -> ValidatedRequest:
    """Second phase: bbox against the open raster, producing the crop window."""
    if mode_kind == ModeKind.SINGLE:
        # Geographic space: no pixel defaults, no extent clamping
        return ValidatedRequest(size=size, bbox=bbox, window=ProjectionWindow.from_bbox(bbox))

    pixel = to_pixel_bbox(bbox, raster_width, raster_height)
    return ValidatedRequest(
        size=size,
        bbox=pixel,
        window=SourceWindow.from_bbox(pixel, raster_height),
    )
