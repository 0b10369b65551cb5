"""Shared test fixtures for image-subsetter."""

import io

import numpy as np
import pytest
from unittest.mock import MagicMock


@pytest.fixture
def sample_pixels():
    """100x100 byte raster with a horizontal gradient."""
    return np.tile(np.arange(100, dtype=np.uint8), (100, 1))


@pytest.fixture
def sample_transform():
    """Affine transform for a 1-degree tile at N46 E007."""
    from rasterio.transform import Affine

    return Affine(0.01, 0.0, 7.0, 0.0, -0.01, 47.0)


@pytest.fixture
def sample_crs():
    """EPSG:4326 CRS."""
    from rasterio.crs import CRS

    return CRS.from_epsg(4326)


@pytest.fixture
def geotiff_path(tmp_path, sample_pixels, sample_transform, sample_crs):
    """Single band GeoTIFF covering lon 7-8, lat 46-47."""
    import rasterio

    path = tmp_path / "tile.tif"
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=sample_pixels.shape[0],
        width=sample_pixels.shape[1],
        count=1,
        dtype="uint8",
        crs=sample_crs,
        transform=sample_transform,
    ) as dst:
        dst.write(sample_pixels, 1)
    return path


@pytest.fixture
def rgb_geotiff_path(tmp_path, sample_pixels, sample_transform, sample_crs):
    """Three band GeoTIFF with the same footprint as geotiff_path."""
    import rasterio

    path = tmp_path / "rgb.tif"
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=sample_pixels.shape[0],
        width=sample_pixels.shape[1],
        count=3,
        dtype="uint8",
        crs=sample_crs,
        transform=sample_transform,
    ) as dst:
        for band in (1, 2, 3):
            dst.write(sample_pixels, band)
    return path


@pytest.fixture
def missing_image(tmp_path):
    """Placeholder JPEG bytes on disk."""
    path = tmp_path / "missing.jpg"
    path.write_bytes(b"\xff\xd8placeholder\xff\xd9")
    return path


@pytest.fixture
def mock_dataset():
    """Open dataset stand-in, 200x100 pixels."""
    dataset = MagicMock()
    dataset.width = 200
    dataset.height = 100
    dataset.count = 1
    return dataset


@pytest.fixture
def make_request():
    """
    Factory for CGI requests backed by an in-memory stdout.

    Returns (request, stdout); stdout.getvalue() holds the written response.
    """
    from image_subsetter.transport import CGITransport

    def _make(query_string="", **environ):
        env = {"QUERY_STRING": query_string, "REQUEST_METHOD": "GET"}
        env.update(environ)
        stdout = io.BytesIO()
        transport = CGITransport(environ=env, stdin=io.BytesIO(), stdout=stdout)
        return transport.accept(), stdout

    return _make


@pytest.fixture
def single_settings(geotiff_path):
    from image_subsetter.models import ServerSettings, SingleMode

    return ServerSettings(mode=SingleMode(filename=str(geotiff_path)))


@pytest.fixture
def dynamic_settings(tmp_path):
    from image_subsetter.models import DynamicIDMode, ServerSettings

    return ServerSettings(mode=DynamicIDMode(prefix=f"{tmp_path}/", suffix=".tif"))


@pytest.fixture
def script_settings(tmp_path):
    """Script mode whose resolver maps ?name=X to <tmp_path>/X.tif."""
    from urllib.parse import parse_qs

    from image_subsetter.models import ScriptMode, ServerSettings

    def query_handler(query_string):
        names = parse_qs(query_string).get("name")
        return f"{tmp_path}/{names[0]}.tif" if names else None

    return ServerSettings(
        mode=ScriptMode(script_path="resolver.py", resolver=query_handler)
    )
