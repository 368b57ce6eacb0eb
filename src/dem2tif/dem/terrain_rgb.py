"""Terrain-RGB elevation codec.

Elevations map to a 24-bit integer ``round((elevation + 10000) * 10)``
clamped to ``[0, 16777215]`` and split into R, G and B bytes. Decoding is
``(R * 65536 + G * 256 + B) / 10 - 10000``.
"""

from __future__ import annotations

import numpy as np

from dem2tif.dem.models import NODATA

ELEVATION_OFFSET = 10000.0
ELEVATION_SCALE = 10.0
MAX_VALUE = 16777215
OPAQUE = 255


def invalid_mask(grid: np.ndarray) -> np.ndarray:
    """Return True where a sample is NODATA or not finite."""
    return (grid == NODATA) | ~np.isfinite(grid)


def encode_values(elevation: np.ndarray) -> np.ndarray:
    """Return the clamped 24-bit Terrain-RGB integers for finite elevations."""
    scaled = (np.asarray(elevation, dtype=np.float64) + ELEVATION_OFFSET) * ELEVATION_SCALE
    rounded = np.floor(scaled + 0.5)
    return np.clip(rounded, 0, MAX_VALUE).astype(np.uint32)


def terrain_rgb_pixels(grid: np.ndarray, *, alpha: bool = True) -> np.ndarray:
    """Encode a 2D elevation grid as an interleaved (rows, cols, 3|4) uint8 array.

    NODATA samples become (0, 0, 0, 0) with alpha, or (0, 0, 0) without.
    """
    grid = np.asarray(grid, dtype=np.float64)
    invalid = invalid_mask(grid)
    values = encode_values(np.where(invalid, 0.0, grid))
    channels = 4 if alpha else 3
    pixels = np.empty(grid.shape + (channels,), dtype=np.uint8)
    pixels[..., 0] = values // 65536
    pixels[..., 1] = (values % 65536) // 256
    pixels[..., 2] = values % 256
    if alpha:
        pixels[..., 3] = OPAQUE
    pixels[invalid] = 0
    return pixels


def decode_terrain_rgb(pixels: np.ndarray) -> np.ndarray:
    """Decode (rows, cols, 3|4) Terrain-RGB pixels back to elevations.

    Transparent pixels (RGBA) or black pixels (RGB) decode to NODATA.
    """
    pixels = np.asarray(pixels)
    if pixels.ndim != 3 or pixels.shape[-1] not in (3, 4):
        raise ValueError("Terrain-RGB pixels must have shape (rows, cols, 3|4).")
    red = pixels[..., 0].astype(np.float64)
    green = pixels[..., 1].astype(np.float64)
    blue = pixels[..., 2].astype(np.float64)
    elevation = (red * 65536 + green * 256 + blue) / ELEVATION_SCALE - ELEVATION_OFFSET
    if pixels.shape[-1] == 4:
        invalid = pixels[..., 3] == 0
    else:
        invalid = (red == 0) & (green == 0) & (blue == 0)
    elevation[invalid] = NODATA
    return elevation
