"""Uncompressed GeoTIFF writer for float and Terrain-RGB mosaics.

The container is a little-endian classic TIFF with a single IFD and a
single strip. Out-of-line tag payloads follow the IFD, grouped by type and
aligned to their element size, and the pixel strip starts on a 4 byte
boundary. Encoding the same input twice yields identical bytes.
"""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass, replace
from typing import Sequence

import numpy as np

from dem2tif.dem.models import NODATA, GeoTransform, ImageSize
from dem2tif.dem.terrain_rgb import terrain_rgb_pixels
from dem2tif.errors import EncodeError

LOGGER = logging.getLogger("dem2tif.geotiff")

FLOAT_MODE = "float"
TERRAIN_RGB_MODE = "terrain-rgb"
MODES = (FLOAT_MODE, TERRAIN_RGB_MODE)

# Field types.
ASCII = 2
SHORT = 3
LONG = 4
RATIONAL = 5
DOUBLE = 12

_TYPE_FORMATS = {SHORT: "H", LONG: "I", RATIONAL: "I", DOUBLE: "d"}
_ALIGNMENT = {ASCII: 1, SHORT: 2, LONG: 4, RATIONAL: 4, DOUBLE: 8}
_LAYOUT_ORDER = (ASCII, SHORT, LONG, RATIONAL, DOUBLE)

# Baseline tags.
IMAGE_WIDTH = 256
IMAGE_LENGTH = 257
BITS_PER_SAMPLE = 258
COMPRESSION = 259
PHOTOMETRIC = 262
IMAGE_DESCRIPTION = 270
STRIP_OFFSETS = 273
SAMPLES_PER_PIXEL = 277
ROWS_PER_STRIP = 278
STRIP_BYTE_COUNTS = 279
X_RESOLUTION = 282
Y_RESOLUTION = 283
PLANAR_CONFIGURATION = 284
RESOLUTION_UNIT = 296
EXTRA_SAMPLES = 338
SAMPLE_FORMAT = 339

# GeoTIFF and GDAL tags.
MODEL_PIXEL_SCALE = 33550
MODEL_TIEPOINT = 33922
GEO_KEY_DIRECTORY = 34735
GDAL_NODATA = 42113

HEADER_SIZE = 8
ENTRY_SIZE = 12
PIXEL_ALIGNMENT = 4

PHOTOMETRIC_MIN_IS_BLACK = 1
PHOTOMETRIC_RGB = 2
SAMPLE_FORMAT_IEEE_FLOAT = 3
EXTRA_SAMPLES_UNASSOCIATED_ALPHA = 2

# Version 1.1.0 with three keys: geographic model, pixel-is-area, WGS84.
GEO_KEYS = (
    1, 1, 0, 3,
    1024, 0, 1, 2,
    1025, 0, 1, 1,
    2048, 0, 1, 4326,
)

TERRAIN_RGB_DESCRIPTION = "Terrain RGB encoded elevation data"


@dataclass(frozen=True)
class IfdEntry:
    """One IFD field: tag, field type and its values."""

    tag: int
    field_type: int
    values: tuple[float, ...] | bytes

    @property
    def count(self) -> int:
        if self.field_type == ASCII:
            return len(self.values)
        if self.field_type == RATIONAL:
            return len(self.values) // 2
        return len(self.values)

    @property
    def payload(self) -> bytes:
        if self.field_type == ASCII:
            return bytes(self.values)
        fmt = _TYPE_FORMATS[self.field_type]
        return struct.pack(f"<{len(self.values)}{fmt}", *self.values)

    @property
    def inline(self) -> bool:
        return len(self.payload) <= 4


def ascii_entry(tag: int, text: str) -> IfdEntry:
    """Return a NUL-terminated ASCII entry."""
    return IfdEntry(tag, ASCII, text.encode("ascii") + b"\0")


@dataclass(frozen=True)
class TiffLayout:
    """Byte offsets of out-of-line payloads and the pixel strip."""

    payload_offsets: dict[int, int]
    strip_offset: int
    total_size: int


def _align(value: int, alignment: int) -> int:
    return -(-value // alignment) * alignment


def plan_layout(entries: Sequence[IfdEntry], strip_size: int) -> TiffLayout:
    """Walk forward from the IFD assigning aligned offsets to each payload."""
    cursor = HEADER_SIZE + 2 + ENTRY_SIZE * len(entries) + 4
    offsets: dict[int, int] = {}
    for field_type in _LAYOUT_ORDER:
        for entry in entries:
            if entry.field_type != field_type or entry.inline:
                continue
            cursor = _align(cursor, _ALIGNMENT[field_type])
            offsets[entry.tag] = cursor
            cursor += len(entry.payload)
    strip_offset = _align(cursor, PIXEL_ALIGNMENT)
    return TiffLayout(offsets, strip_offset, strip_offset + strip_size)


def write_tiff(entries: Sequence[IfdEntry], strip: bytes) -> bytes:
    """Serialize IFD entries and one pixel strip into a TIFF byte string."""
    ordered = sorted(entries, key=lambda entry: entry.tag)
    layout = plan_layout(ordered, len(strip))
    ordered = [
        replace(entry, values=(layout.strip_offset,)) if entry.tag == STRIP_OFFSETS else entry
        for entry in ordered
    ]

    buffer = bytearray(layout.total_size)
    struct.pack_into("<2sHI", buffer, 0, b"II", 42, HEADER_SIZE)
    position = HEADER_SIZE
    struct.pack_into("<H", buffer, position, len(ordered))
    position += 2
    for entry in ordered:
        payload = entry.payload
        if entry.inline:
            value_field = payload.ljust(4, b"\0")
        else:
            offset = layout.payload_offsets[entry.tag]
            buffer[offset : offset + len(payload)] = payload
            value_field = struct.pack("<I", offset)
        struct.pack_into(
            "<HHI4s", buffer, position, entry.tag, entry.field_type, entry.count, value_field
        )
        position += ENTRY_SIZE
    struct.pack_into("<I", buffer, position, 0)
    buffer[layout.strip_offset :] = strip
    return bytes(buffer)


def _baseline_entries(
    width: int,
    height: int,
    *,
    bits_per_sample: tuple[int, ...],
    photometric: int,
    strip_size: int,
) -> list[IfdEntry]:
    return [
        IfdEntry(IMAGE_WIDTH, LONG, (width,)),
        IfdEntry(IMAGE_LENGTH, LONG, (height,)),
        IfdEntry(BITS_PER_SAMPLE, SHORT, bits_per_sample),
        IfdEntry(COMPRESSION, SHORT, (1,)),
        IfdEntry(PHOTOMETRIC, SHORT, (photometric,)),
        IfdEntry(STRIP_OFFSETS, LONG, (0,)),
        IfdEntry(SAMPLES_PER_PIXEL, SHORT, (len(bits_per_sample),)),
        IfdEntry(ROWS_PER_STRIP, LONG, (height,)),
        IfdEntry(STRIP_BYTE_COUNTS, LONG, (strip_size,)),
        IfdEntry(X_RESOLUTION, RATIONAL, (1, 1)),
        IfdEntry(Y_RESOLUTION, RATIONAL, (1, 1)),
        IfdEntry(PLANAR_CONFIGURATION, SHORT, (1,)),
        IfdEntry(RESOLUTION_UNIT, SHORT, (1,)),
    ]


def _geo_entries(transform: GeoTransform) -> list[IfdEntry]:
    return [
        IfdEntry(
            MODEL_PIXEL_SCALE,
            DOUBLE,
            (abs(transform.pixel_size_x), abs(transform.pixel_size_y), 0.0),
        ),
        IfdEntry(
            MODEL_TIEPOINT,
            DOUBLE,
            (0.0, 0.0, 0.0, transform.upper_left_x, transform.upper_left_y, 0.0),
        ),
        IfdEntry(GEO_KEY_DIRECTORY, SHORT, GEO_KEYS),
    ]


def _nodata_text(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _validate(
    grid: object, transform: GeoTransform, image_size: ImageSize | None
) -> np.ndarray:
    """Return the grid as a float64 array or raise EncodeError."""
    try:
        array = np.asarray(grid, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise EncodeError(f"Grid is not a numeric 2D array: {exc}") from exc
    if array.ndim != 2:
        raise EncodeError(f"Grid must be 2D, got {array.ndim} dimension(s).")
    height, width = array.shape
    if height == 0 or width == 0:
        raise EncodeError("Grid must not be empty.")
    if image_size is not None and (image_size.x, image_size.y) != (width, height):
        raise EncodeError(
            f"Grid shape {width}x{height} does not match image size "
            f"{image_size.x}x{image_size.y}."
        )
    if transform.rotation_x != 0 or transform.rotation_y != 0:
        raise EncodeError("Rotated transforms cannot be encoded.")
    if not all(math.isfinite(value) for value in transform.to_gdal()):
        raise EncodeError("Transform values must be finite.")
    if transform.pixel_size_x == 0 or transform.pixel_size_y == 0:
        raise EncodeError("Transform pixel sizes must be non-zero.")
    return array


def encode_float32(
    grid: object,
    transform: GeoTransform,
    *,
    image_size: ImageSize | None = None,
    nodata: float = NODATA,
) -> bytes:
    """Encode an elevation grid as a single-band float32 GeoTIFF."""
    array = _validate(grid, transform, image_size)
    height, width = array.shape
    strip = np.ascontiguousarray(array, dtype="<f4").tobytes()
    entries = _baseline_entries(
        width,
        height,
        bits_per_sample=(32,),
        photometric=PHOTOMETRIC_MIN_IS_BLACK,
        strip_size=len(strip),
    )
    entries.append(IfdEntry(SAMPLE_FORMAT, SHORT, (SAMPLE_FORMAT_IEEE_FLOAT,)))
    entries.extend(_geo_entries(transform))
    entries.append(ascii_entry(GDAL_NODATA, _nodata_text(nodata)))
    LOGGER.debug("Encoding %sx%s float32 GeoTIFF", width, height)
    return write_tiff(entries, strip)


def encode_terrain_rgb(
    grid: object,
    transform: GeoTransform,
    *,
    alpha: bool = True,
    image_size: ImageSize | None = None,
) -> bytes:
    """Encode an elevation grid as an 8-bit Terrain-RGB(A) GeoTIFF."""
    array = _validate(grid, transform, image_size)
    height, width = array.shape
    pixels = terrain_rgb_pixels(array, alpha=alpha)
    strip = np.ascontiguousarray(pixels).tobytes()
    channels = pixels.shape[-1]
    entries = _baseline_entries(
        width,
        height,
        bits_per_sample=(8,) * channels,
        photometric=PHOTOMETRIC_RGB,
        strip_size=len(strip),
    )
    description = TERRAIN_RGB_DESCRIPTION if alpha else f"{TERRAIN_RGB_DESCRIPTION} (RGB-only)"
    entries.append(ascii_entry(IMAGE_DESCRIPTION, description))
    if alpha:
        entries.append(IfdEntry(EXTRA_SAMPLES, SHORT, (EXTRA_SAMPLES_UNASSOCIATED_ALPHA,)))
    entries.extend(_geo_entries(transform))
    entries.append(ascii_entry(GDAL_NODATA, " ".join(["0"] * channels)))
    LOGGER.debug("Encoding %sx%s Terrain-RGB GeoTIFF with %s channels", width, height, channels)
    return write_tiff(entries, strip)


def encode(
    grid: object,
    transform: GeoTransform,
    mode: str = FLOAT_MODE,
    *,
    alpha: bool = True,
    image_size: ImageSize | None = None,
) -> bytes:
    """Encode a grid in the requested mode ("float" or "terrain-rgb")."""
    if mode == FLOAT_MODE:
        return encode_float32(grid, transform, image_size=image_size)
    if mode == TERRAIN_RGB_MODE:
        return encode_terrain_rgb(grid, transform, alpha=alpha, image_size=image_size)
    raise EncodeError(f"Unknown encoding mode: {mode}")
