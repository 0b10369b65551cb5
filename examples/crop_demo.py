#!/usr/bin/env python3
"""
Crop Demo -- image-subsetter

Writes a small synthetic GeoTIFF to a temp directory, then runs a few
requests through the server loop in CGI mode (both DynamicID and Single
configurations) and saves the returned JPEGs next to the raster. No network
access needed.

Usage:
    python examples/crop_demo.py
"""

import io
import tempfile
from pathlib import Path

import numpy as np
import rasterio
from rasterio.transform import from_origin

from image_subsetter.config import load_settings
from image_subsetter.core.subset_manager import SubsetManager
from image_subsetter.server_loop import ServerLoop
from image_subsetter.transport import CGITransport


def write_raster(path: Path) -> None:
    """512x256 RGB gradient covering the whole globe in EPSG:4326."""
    rows, cols = np.mgrid[0:256, 0:512]
    bands = np.stack([cols // 2, rows, 255 - cols // 2]).astype(np.uint8)
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=256,
        width=512,
        count=3,
        dtype="uint8",
        crs="EPSG:4326",
        transform=from_origin(-180.0, 90.0, 360.0 / 512, 180.0 / 256),
    ) as dst:
        dst.write(bands)


def run(basename: str, query_string: str) -> bytes:
    """Serve one CGI request and return the full response."""
    stdout = io.BytesIO()
    transport = CGITransport(
        environ={"QUERY_STRING": query_string, "REQUEST_METHOD": "GET"},
        stdin=io.BytesIO(),
        stdout=stdout,
    )
    manager = SubsetManager(load_settings(basename, environ={}))
    manager.startup()
    try:
        ServerLoop(manager, transport).run()
    finally:
        manager.close()
    return stdout.getvalue()


def main() -> None:
    work = Path(tempfile.mkdtemp(prefix="subsetter-demo-"))
    write_raster(work / "globe.tif")

    (work / "dynamic.config").write_text(f"DPrefix={work}/\nDSuffix=.tif\n")
    (work / "single.config").write_text(f"Filename={work / 'globe.tif'}\n")

    print("=" * 60)
    print("image-subsetter -- Crop Demo")
    print("=" * 60)
    print(f"\nWorking directory: {work}")

    requests = [
        ("dynamic", "ID=globe&size=256,128&RAW", "full_extent.jpg"),
        ("dynamic", "ID=globe&size=200,200&bbox=100,50,300,250&RAW", "pixel_crop.jpg"),
        ("single", "size=300,200&bbox=-10,35,30,60&RAW", "europe.jpg"),
        ("dynamic", "ID=nope&size=10,10", None),
        ("dynamic", "ID=globe&bbox=1,2,3", None),
    ]

    for config, query, output in requests:
        response = run(str(work / config), query)
        print(f"\n[{config}] ?{query}")
        if output:
            (work / output).write_bytes(response)
            print(f"  -> {output} ({len(response)} bytes)")
        else:
            status = response.split(b"\r\n", 1)[0].decode()
            print(f"  -> {status}")

    print("\n" + "=" * 60)
    print("Done.")


if __name__ == "__main__":
    main()
