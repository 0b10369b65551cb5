"""
Value types for request geometry: bounding boxes, output sizes, crop windows.
"""

from dataclasses import astuple, dataclass

from ..constants import GEOGRAPHIC_DEFAULT_BBOX


@dataclass(frozen=True)
class BoundingBox:
    """Bounding box as (minX, minY, maxX, maxY), Y axis increasing upward."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def geographic_default(cls) -> "BoundingBox":
        return cls(*GEOGRAPHIC_DEFAULT_BBOX)

    @property
    def is_geographic_default(self) -> bool:
        return self.as_tuple() == GEOGRAPHIC_DEFAULT_BBOX

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def as_tuple(self) -> tuple[float, float, float, float]:
        return astuple(self)


@dataclass(frozen=True)
class OutputSize:
    """Output image size in pixels."""

    width: int
    height: int


@dataclass(frozen=True)
class ProjectionWindow:
    """Crop in the raster's georeferenced space, ordered (ulx, uly, lrx, lry)."""

    ulx: float
    uly: float
    lrx: float
    lry: float

    @classmethod
    def from_bbox(cls, bbox: BoundingBox) -> "ProjectionWindow":
        return cls(ulx=bbox.min_x, uly=bbox.max_y, lrx=bbox.max_x, lry=bbox.min_y)


@dataclass(frozen=True)
class SourceWindow:
    """Crop in pixel row/column space, origin at the top-left corner."""

    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_bbox(cls, bbox: BoundingBox, raster_height: int) -> "SourceWindow":
        # Pixel row 0 is the top edge, the bbox Y axis points up
        return cls(
            x=int(bbox.min_x),
            y=int(raster_height - bbox.max_y),
            width=int(bbox.max_x - bbox.min_x),
            height=int(bbox.max_y - bbox.min_y),
        )


WindowSpec = ProjectionWindow | SourceWindow
