"""Data models used by DEM tile parsing, mosaicking, and encoding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np
from rasterio.transform import Affine

NODATA = -9999.0

Bounds = Tuple[float, float, float, float]


@dataclass(frozen=True)
class LatLon:
    """Latitude/longitude pair in degrees."""

    lat: float
    lon: float


@dataclass(frozen=True)
class GridXY:
    """Integer x/y pair used for grid lengths and start points."""

    x: int
    y: int


@dataclass(frozen=True)
class PixelSize:
    """Signed pixel size in degrees; y is negative going north."""

    x: float
    y: float


@dataclass(frozen=True)
class TileMetadata:
    """Georeferencing metadata extracted from one DEM tile."""

    mesh_code: int
    lower_corner: LatLon
    upper_corner: LatLon
    grid_length: GridXY
    start_point: GridXY
    pixel_size: PixelSize


@dataclass(frozen=True)
class TileElevation:
    """Raw elevation value strings for one tile, row-major from start_point."""

    mesh_code: int
    items: tuple[str, ...]


@dataclass(frozen=True)
class TileRecord:
    """Parsed DEM tile: metadata plus its elevation samples."""

    metadata: TileMetadata
    elevation: TileElevation

    @property
    def mesh_code(self) -> int:
        return self.metadata.mesh_code


@dataclass(frozen=True)
class GeographicBounds:
    """Lower-left and upper-right corners covering a set of tiles."""

    lower_left: LatLon
    upper_right: LatLon

    def as_tuple(self) -> Bounds:
        """Return bounds as (min_lon, min_lat, max_lon, max_lat)."""
        return (
            self.lower_left.lon,
            self.lower_left.lat,
            self.upper_right.lon,
            self.upper_right.lat,
        )

    def as_dict(self) -> dict[str, dict[str, float]]:
        return {
            "lower_left": {"lat": self.lower_left.lat, "lon": self.lower_left.lon},
            "upper_right": {"lat": self.upper_right.lat, "lon": self.upper_right.lon},
        }


@dataclass(frozen=True)
class ImageSize:
    """Mosaic dimensions in pixels."""

    x: int
    y: int


@dataclass(frozen=True)
class GeoTransform:
    """Affine mapping from pixel (col, row) to geographic (lon, lat)."""

    upper_left_x: float
    pixel_size_x: float
    rotation_x: float
    upper_left_y: float
    rotation_y: float
    pixel_size_y: float

    def to_gdal(self) -> tuple[float, float, float, float, float, float]:
        """Return the transform in GDAL geotransform order."""
        return (
            self.upper_left_x,
            self.pixel_size_x,
            self.rotation_x,
            self.upper_left_y,
            self.rotation_y,
            self.pixel_size_y,
        )

    def to_affine(self) -> Affine:
        """Return the transform as a rasterio Affine."""
        return Affine.from_gdal(*self.to_gdal())

    def pixel_to_lonlat(self, col: float, row: float) -> tuple[float, float]:
        """Map the upper-left corner of a pixel to lon/lat."""
        lon = self.upper_left_x + col * self.pixel_size_x + row * self.rotation_x
        lat = self.upper_left_y + col * self.rotation_y + row * self.pixel_size_y
        return lon, lat


@dataclass(frozen=True)
class Statistics:
    """Summary of valid and no-data pixels in a mosaic."""

    valid_pixels: int
    invalid_pixels: int
    min_elevation: float
    max_elevation: float
    mean_elevation: float
    bounds: GeographicBounds
    image_size: ImageSize

    def as_dict(self) -> dict[str, Any]:
        return {
            "valid_pixels": self.valid_pixels,
            "invalid_pixels": self.invalid_pixels,
            "min_elevation": self.min_elevation,
            "max_elevation": self.max_elevation,
            "mean_elevation": self.mean_elevation,
            "bounds": self.bounds.as_dict(),
            "image_size": {"x": self.image_size.x, "y": self.image_size.y},
        }


@dataclass(frozen=True)
class MosaicResult:
    """Dense mosaic array with its georeferencing and statistics."""

    grid: np.ndarray
    transform: GeoTransform
    image_size: ImageSize
    stats: Statistics


@dataclass(frozen=True)
class RasterInfo:
    """Metadata read back from a written GeoTIFF."""

    path: str
    width: int
    height: int
    count: int
    dtype: str
    crs: str | None
    bounds: Bounds
    resolution: Tuple[float, float]
    nodata: float | None
    description: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "width": self.width,
            "height": self.height,
            "count": self.count,
            "dtype": self.dtype,
            "crs": self.crs,
            "bounds": list(self.bounds),
            "resolution": list(self.resolution),
            "nodata": self.nodata,
            "description": self.description,
        }
