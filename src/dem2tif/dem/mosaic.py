"""Assemble catalogued DEM tiles into one georeferenced elevation array."""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from dem2tif.dem.catalog import MeshCatalog
from dem2tif.dem.models import (
    NODATA,
    GeographicBounds,
    GeoTransform,
    ImageSize,
    MosaicResult,
    PixelSize,
    Statistics,
    TileMetadata,
    TileRecord,
)
from dem2tif.errors import AssemblyError, ImageTooLargeError, PixelSizeMismatchError

LOGGER = logging.getLogger("dem2tif.mosaic")

MAX_DIMENSION = 32000
PIXEL_SIZE_REL_TOL = 1e-9


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _parse_value(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return math.nan


def tile_array(record: TileRecord) -> np.ndarray:
    """Return a tile's samples as a (rows, cols) array, north row first.

    Samples fill the grid row by row from the start point. Values that do
    not parse are left at NODATA; a short sample list leaves the trailing
    cells at NODATA and surplus samples are ignored.
    """
    meta = record.metadata
    width, height = meta.grid_length.x, meta.grid_length.y
    flat = np.full(width * height, NODATA, dtype=np.float64)
    start_x = max(0, meta.start_point.x)
    start_y = max(0, meta.start_point.y)
    if start_x >= width:
        start_x, start_y = 0, start_y + 1
    offset = start_y * width + start_x
    items = record.elevation.items
    count = min(len(items), flat.size - offset)
    if count > 0:
        values = np.fromiter(
            (_parse_value(text) for text in items[:count]),
            dtype=np.float64,
            count=count,
        )
        valid = ~np.isnan(values)
        target = flat[offset : offset + count]
        target[valid] = values[valid]
    return flat.reshape(height, width)


def calc_image_size(bounds: GeographicBounds, pixel_size: PixelSize) -> ImageSize:
    """Return the mosaic size for the bounds at the given pixel size."""
    if pixel_size.x == 0 or pixel_size.y == 0:
        raise AssemblyError("Tile pixel size must be non-zero.")
    width = _round_half_up(abs((bounds.upper_right.lon - bounds.lower_left.lon) / pixel_size.x))
    height = _round_half_up(
        abs((bounds.upper_right.lat - bounds.lower_left.lat) / abs(pixel_size.y))
    )
    if width >= MAX_DIMENSION or height >= MAX_DIMENSION:
        raise ImageTooLargeError(width, height)
    if width == 0 or height == 0:
        raise AssemblyError(f"Mosaic has an empty dimension: x={width}, y={height}")
    return ImageSize(width, height)


def _check_pixel_sizes(metadata: Sequence[TileMetadata], *, strict: bool) -> None:
    """Compare each tile's pixel size with the first tile's."""
    reference = metadata[0].pixel_size
    for meta in metadata[1:]:
        size = meta.pixel_size
        if math.isclose(size.x, reference.x, rel_tol=PIXEL_SIZE_REL_TOL) and math.isclose(
            size.y, reference.y, rel_tol=PIXEL_SIZE_REL_TOL
        ):
            continue
        if strict:
            raise PixelSizeMismatchError(
                meta.mesh_code, (reference.x, reference.y), (size.x, size.y)
            )
        LOGGER.warning(
            "Pixel size %s differs from mosaic pixel size %s",
            (size.x, size.y),
            (reference.x, reference.y),
            extra={"mesh": str(meta.mesh_code)},
        )


def _place_tile(
    grid: np.ndarray,
    array: np.ndarray,
    meta: TileMetadata,
    bounds: GeographicBounds,
    transform: GeoTransform,
) -> bool:
    """Copy a tile's valid samples into the mosaic; return False if off-grid."""
    height, width = grid.shape
    tile_height, tile_width = array.shape
    x_offset = _round_half_up(
        (meta.lower_corner.lon - bounds.lower_left.lon) / transform.pixel_size_x
    )
    y_offset = _round_half_up(
        (meta.lower_corner.lat - bounds.lower_left.lat) / -transform.pixel_size_y
    )
    top = height - (y_offset + tile_height)
    left = x_offset

    row_start, row_end = max(0, top), min(height, top + tile_height)
    col_start, col_end = max(0, left), min(width, left + tile_width)
    if row_start >= row_end or col_start >= col_end:
        return False

    source = array[row_start - top : row_end - top, col_start - left : col_end - left]
    window = grid[row_start:row_end, col_start:col_end]
    valid = source != NODATA
    window[valid] = source[valid]
    return True


def compute_statistics(
    grid: np.ndarray, bounds: GeographicBounds, image_size: ImageSize
) -> Statistics:
    """Summarize valid and NODATA pixels in a mosaic grid."""
    valid = grid != NODATA
    valid_pixels = int(valid.sum())
    if valid_pixels:
        values = grid[valid]
        min_elevation = float(values.min())
        max_elevation = float(values.max())
        mean_elevation = float(values.mean())
    else:
        min_elevation = max_elevation = mean_elevation = 0.0
    return Statistics(
        valid_pixels=valid_pixels,
        invalid_pixels=int(grid.size - valid_pixels),
        min_elevation=min_elevation,
        max_elevation=max_elevation,
        mean_elevation=mean_elevation,
        bounds=bounds,
        image_size=image_size,
    )


def assemble(catalog: MeshCatalog, *, check_pixel_size: bool = False) -> MosaicResult:
    """Build the dense mosaic grid and its transform from a catalog."""
    if not len(catalog):
        raise AssemblyError("Catalog contains no tiles.")
    metadata = catalog.metadata
    bounds = catalog.bounds
    _check_pixel_sizes(metadata, strict=check_pixel_size)
    image_size = calc_image_size(bounds, metadata[0].pixel_size)

    grid = np.full((image_size.y, image_size.x), NODATA, dtype=np.float64)
    transform = GeoTransform(
        upper_left_x=bounds.lower_left.lon,
        pixel_size_x=(bounds.upper_right.lon - bounds.lower_left.lon) / image_size.x,
        rotation_x=0.0,
        upper_left_y=bounds.upper_right.lat,
        rotation_y=0.0,
        pixel_size_y=(bounds.lower_left.lat - bounds.upper_right.lat) / image_size.y,
    )

    for record in catalog:
        placed = _place_tile(grid, tile_array(record), record.metadata, bounds, transform)
        if not placed:
            LOGGER.warning(
                "Tile falls outside the mosaic bounds",
                extra={"mesh": str(record.mesh_code)},
            )

    stats = compute_statistics(grid, bounds, image_size)
    LOGGER.info(
        "Assembled %sx%s mosaic from %s tile(s): %s valid, %s nodata pixels",
        image_size.x,
        image_size.y,
        len(catalog),
        stats.valid_pixels,
        stats.invalid_pixels,
    )
    return MosaicResult(grid=grid, transform=transform, image_size=image_size, stats=stats)
