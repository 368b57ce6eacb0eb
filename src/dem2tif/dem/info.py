"""GeoTIFF inspection helpers."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import rasterio
from rasterio.errors import RasterioIOError

from dem2tif.dem.models import RasterInfo
from dem2tif.errors import SourceError


def inspect_geotiff(path: Path) -> RasterInfo:
    """Collect metadata about a written GeoTIFF on disk."""
    try:
        dataset = rasterio.open(path)
    except RasterioIOError as exc:
        raise SourceError(f"Failed to open GeoTIFF {path}: {exc}") from exc
    with dataset:
        crs = dataset.crs.to_string() if dataset.crs else None
        bounds = dataset.bounds
        description = dataset.tags().get("TIFFTAG_IMAGEDESCRIPTION")
        return RasterInfo(
            path=str(path),
            width=dataset.width,
            height=dataset.height,
            count=dataset.count,
            dtype=dataset.dtypes[0],
            crs=crs,
            bounds=(bounds.left, bounds.bottom, bounds.right, bounds.top),
            resolution=(abs(dataset.res[0]), abs(dataset.res[1])),
            nodata=dataset.nodata,
            description=description,
        )


def read_band(path: Path, band: int = 1) -> np.ndarray:
    """Read one band of a GeoTIFF into memory."""
    with rasterio.open(path) as dataset:
        return dataset.read(band)


def read_pixels(path: Path) -> np.ndarray:
    """Read every band as an interleaved (rows, cols, bands) array."""
    with rasterio.open(path) as dataset:
        return np.moveaxis(dataset.read(), 0, -1)
