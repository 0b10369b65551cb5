"""
Bounding box parsing.

``parse_bbox`` reads up to four comma separated numbers and reports how many
it managed to parse. Ordering violations are reported as negative
pseudo-counts, one per axis, so callers can tell them apart from short input.
"""

import math
import re

from ..constants import (
    BBOX_VALUE_COUNT,
    BBOX_X_ORDER_VIOLATION,
    BBOX_Y_ORDER_VIOLATION,
    ErrorMessages,
)
from .geometry import BoundingBox

# Plain decimal or exponent notation; leading blanks only, no digit separators
_NUMBER_PATTERN = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def _parse_number(token: str) -> float | None:
    """Locale independent float parsing; None for malformed or non-finite tokens."""
    if _NUMBER_PATTERN.fullmatch(token) is None:
        return None
    value = float(token)
    if not math.isfinite(value):
        return None
    return value


def parse_bbox(text: str, default: BoundingBox | None = None) -> tuple[BoundingBox, int]:
    """
    Parse a ``minX,minY,maxX,maxY`` string.

    Args:
        text: Raw bbox parameter value
        default: Values kept for positions that were not parsed

    Returns:
        Tuple of (bbox, count). ``count`` is the number of values parsed
        (0-4), or BBOX_X_ORDER_VIOLATION / BBOX_Y_ORDER_VIOLATION when all
        four parsed but maxX <= minX / maxY <= minY. Only a count of 4 is
        a usable box.
    """
    values = list((default or BoundingBox.geographic_default()).as_tuple())

    count = 0
    for token in text.split(",")[:BBOX_VALUE_COUNT]:
        value = _parse_number(token)
        if value is None:
            break
        values[count] = value
        count += 1

    bbox = BoundingBox(*values)
    if count < BBOX_VALUE_COUNT:
        return bbox, count

    if bbox.max_x <= bbox.min_x:
        return bbox, BBOX_X_ORDER_VIOLATION
    if bbox.max_y <= bbox.min_y:
        return bbox, BBOX_Y_ORDER_VIOLATION
    return bbox, BBOX_VALUE_COUNT


def bbox_error_message(count: int) -> str:
    """Human readable reason for a failed parse_bbox() count."""
    if count == BBOX_X_ORDER_VIOLATION:
        return ErrorMessages.INVALID_BBOX_X_ORDER
    if count == BBOX_Y_ORDER_VIOLATION:
        return ErrorMessages.INVALID_BBOX_Y_ORDER
    return ErrorMessages.INVALID_BBOX
