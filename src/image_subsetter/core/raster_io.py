"""
Raster I/O operations for image subsetting.

All functions are synchronous and block for the duration of the read/encode.
Handles raster opening (with retries for remote paths), window reads
resampled to the output size, JPEG encoding into a temporary artifact,
and artifact read-back and cleanup.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import numpy as np
from numpy.typing import NDArray
from PIL import Image
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import (
    MAX_ARTIFACT_BYTES,
    OUTPUT_FORMAT,
    OUTPUT_QUALITY,
    OUTPUT_SUFFIX,
    REMOTE_PATH_PREFIXES,
    RETRY_ATTEMPTS,
    RETRY_WAIT_MAX,
    RETRY_WAIT_MIN,
)
from ..errors import RenderError, WindowOutsideRaster
from .geometry import OutputSize, ProjectionWindow, SourceWindow, WindowSpec

logger = logging.getLogger(__name__)

# Type aliases
ByteArray = NDArray[np.uint8]
Dataset = Any  # rasterio.io.DatasetReader


# ---------------------------------------------------------------------------
# Retry decorator for network I/O
# ---------------------------------------------------------------------------

_retry_network = retry(
    stop=stop_after_attempt(RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=1, min=RETRY_WAIT_MIN, max=RETRY_WAIT_MAX),
    retry=retry_if_exception_type((ConnectionError, TimeoutError, OSError)),
    reraise=True,
)


# ---------------------------------------------------------------------------
# Opening
# ---------------------------------------------------------------------------


def is_remote_path(path: str) -> bool:
    """True for URLs and GDAL virtual network filesystems."""
    return "://" in path or path.startswith(REMOTE_PATH_PREFIXES)


@_retry_network
def _open_remote(path: str) -> Dataset:
    import rasterio

    return rasterio.open(path)


def open_raster(path: str) -> Dataset:
    """
    Open a raster read-only.

    Args:
        path: Local path, URL, or GDAL /vsi path

    Returns:
        Open rasterio dataset

    Raises:
        OSError: (rasterio.errors.RasterioIOError) if the raster can't be opened
    """
    import rasterio

    if is_remote_path(path):
        return _open_remote(path)
    return rasterio.open(path)


# ---------------------------------------------------------------------------
# Window reads
# ---------------------------------------------------------------------------


def to_rasterio_window(dataset: Dataset, window: WindowSpec) -> tuple[Any, bool]:
    """
    Convert a WindowSpec to a rasterio Window.

    Returns:
        Tuple of (window, boundless). Projection windows may extend past the
        raster edge and are read boundless; source windows are pre-validated.
    """
    from rasterio.windows import Window, from_bounds

    if isinstance(window, SourceWindow):
        return Window(window.x, window.y, window.width, window.height), False

    if isinstance(window, ProjectionWindow):
        rio_window = from_bounds(
            window.ulx, window.lry, window.lrx, window.uly, transform=dataset.transform
        )
        if (
            rio_window.col_off >= dataset.width
            or rio_window.row_off >= dataset.height
            or rio_window.col_off + rio_window.width <= 0
            or rio_window.row_off + rio_window.height <= 0
        ):
            raise WindowOutsideRaster(f"Window {window} does not overlap the raster")
        return rio_window, True

    raise RenderError(f"Unknown window type: {type(window).__name__}")


def _band_indexes(count: int) -> list[int]:
    """JPEG output carries either one grey band or three colour bands."""
    return [1, 2, 3] if count >= 3 else [1]


def to_byte_image(data: NDArray[Any]) -> ByteArray:
    """
    Convert a (bands, rows, cols) array to an 8-bit image array.

    Non-byte data is clipped to 0-255. Returns (rows, cols) for one band and
    (rows, cols, 3) for three.
    """
    if data.dtype != np.uint8:
        data = np.clip(np.nan_to_num(data.astype(np.float64), nan=0.0), 0, 255).astype(np.uint8)

    if data.shape[0] == 1:
        return data[0]
    return np.moveaxis(data[:3], 0, -1)


def read_window(dataset: Dataset, window: WindowSpec, size: OutputSize) -> ByteArray:
    """
    Read a window resampled to the output size.

    Args:
        dataset: Open rasterio dataset
        window: Crop window (pixel or georeferenced)
        size: Output width and height

    Returns:
        8-bit image array ready for encoding
    """
    from rasterio.enums import Resampling

    rio_window, boundless = to_rasterio_window(dataset, window)
    indexes = _band_indexes(dataset.count)

    read_kwargs: dict[str, Any] = {
        "window": rio_window,
        "out_shape": (len(indexes), size.height, size.width),
        "resampling": Resampling.nearest,
    }
    if boundless:
        read_kwargs["boundless"] = True
        read_kwargs["fill_value"] = 0

    data = dataset.read(indexes, **read_kwargs)
    return to_byte_image(data)


# ---------------------------------------------------------------------------
# Encoding and artifacts
# ---------------------------------------------------------------------------


def render_window(
    dataset: Dataset,
    window: WindowSpec,
    size: OutputSize,
    temp_dir: str | None = None,
) -> Path:
    """
    Crop, resample, and encode a window into a temporary JPEG file.

    The caller owns the returned file and must remove it with remove_artifact().

    Raises:
        WindowOutsideRaster: projection window misses the raster entirely
        RenderError: the read or the encode failed
    """
    try:
        pixels = read_window(dataset, window, size)
    except RenderError:
        raise
    except Exception as e:
        raise RenderError(f"Failed to read window {window}: {e}") from e

    fd, name = tempfile.mkstemp(suffix=OUTPUT_SUFFIX, dir=temp_dir)
    os.close(fd)
    path = Path(name)

    try:
        img = Image.fromarray(pixels)
        img.save(path, format=OUTPUT_FORMAT, quality=OUTPUT_QUALITY)
    except Exception as e:
        remove_artifact(path)
        raise RenderError(f"Failed to encode {OUTPUT_FORMAT}: {e}") from e

    return path


def read_artifact(path: Path | str, max_bytes: int = MAX_ARTIFACT_BYTES) -> bytes | None:
    """
    Read an encoded artifact back into memory.

    Returns:
        File contents, or None if the file is missing, empty, or over max_bytes
    """
    try:
        size = os.stat(path).st_size
    except OSError:
        return None
    if size == 0 or size > max_bytes:
        logger.warning(f"Refusing to send artifact {path} of {size} bytes")
        return None
    try:
        return Path(path).read_bytes()
    except OSError as e:
        logger.warning(f"Failed to read artifact {path}: {e}")
        return None


def remove_artifact(path: Path | str) -> None:
    """Best-effort removal of a temporary artifact."""
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Failed to remove artifact {path}: {e}")
