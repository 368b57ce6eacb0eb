"""Parse GSI FG-GML DEM tile XML into tile records."""

from __future__ import annotations

import logging
from typing import Any

from dem2tif.dem.markup import get_either, node_text, parse_markup
from dem2tif.dem.models import (
    GridXY,
    LatLon,
    PixelSize,
    TileElevation,
    TileMetadata,
    TileRecord,
)
from dem2tif.errors import FieldMissingError, InvalidFieldError, StructureMissingError

LOGGER = logging.getLogger("dem2tif.parser")

DATASET_PREFIX = "dataset"
GML_PREFIX = "gml"
SEA_CATEGORIES = frozenset({"海水面", "海水底面"})
NODATA_LITERAL = "-9999."
SEA_LEVEL_VALUE = "0.0"


def _child(node: Any, prefix: str, name: str) -> Any:
    """Look up a child element under its prefixed or bare name."""
    return get_either(node, f"{prefix}:{name}", name)


def _require(node: Any, prefix: str, name: str) -> Any:
    """Return a required child element or raise FieldMissingError."""
    value = _child(node, prefix, name)
    if value is None or value == "":
        raise FieldMissingError(name)
    return value


def _require_text(node: Any, prefix: str, name: str) -> str:
    """Return the text of a required leaf element."""
    text = node_text(_require(node, prefix, name))
    if not text:
        raise FieldMissingError(name)
    return text


def _pair(text: str, field: str, cast: type) -> tuple[Any, Any]:
    """Split a space-separated pair and cast both halves."""
    parts = text.split()
    if len(parts) < 2:
        raise InvalidFieldError(field, text)
    try:
        return cast(parts[0]), cast(parts[1])
    except ValueError as exc:
        raise InvalidFieldError(field, text) from exc


def _mesh_code(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError as exc:
        raise InvalidFieldError("mesh", text) from exc


def split_tuple_list(tuple_list: str, *, sea_level_as_zero: bool = False) -> tuple[str, ...]:
    """Return the value column of a ``category,value`` tuple list.

    Values stay as unparsed strings. With ``sea_level_as_zero`` the no-data
    literal on sea surface and sea bottom rows is replaced by ``0.0``.
    Interior blank lines yield ``""`` so later samples keep their position.
    """
    items: list[str] = []
    for line in tuple_list.strip().splitlines():
        category, _, value = line.strip().partition(",")
        value = value.strip()
        if sea_level_as_zero and category in SEA_CATEGORIES and value == NODATA_LITERAL:
            items.append(SEA_LEVEL_VALUE)
        else:
            items.append(value)
    return tuple(items)


def parse_tile(xml_text: str, sea_level_as_zero: bool = False) -> TileRecord:
    """Parse one DEM tile XML document into a TileRecord."""
    tree = parse_markup(xml_text)

    dataset = _child(tree, DATASET_PREFIX, "Dataset")
    if dataset is None:
        raise StructureMissingError("Dataset")
    dem = _child(dataset, DATASET_PREFIX, "DEM")
    if not dem:
        raise StructureMissingError("DEM")
    if isinstance(dem, list):
        dem = dem[0]

    mesh_code = _mesh_code(_require_text(dem, DATASET_PREFIX, "mesh"))
    coverage = _require(dem, DATASET_PREFIX, "coverage")

    envelope = _require(_require(coverage, GML_PREFIX, "boundedBy"), GML_PREFIX, "Envelope")
    lower_lat, lower_lon = _pair(
        _require_text(envelope, GML_PREFIX, "lowerCorner"), "lowerCorner", float
    )
    upper_lat, upper_lon = _pair(
        _require_text(envelope, GML_PREFIX, "upperCorner"), "upperCorner", float
    )
    # Lower corner must be south-west of the upper one.
    if lower_lat > upper_lat or lower_lon > upper_lon:
        raise InvalidFieldError(
            "lowerCorner", f"{lower_lat} {lower_lon} (upperCorner {upper_lat} {upper_lon})"
        )

    grid = _require(_require(coverage, GML_PREFIX, "gridDomain"), GML_PREFIX, "Grid")
    grid_envelope = _require(_require(grid, GML_PREFIX, "limits"), GML_PREFIX, "GridEnvelope")
    high_x, high_y = _pair(_require_text(grid_envelope, GML_PREFIX, "high"), "high", int)
    if high_x < 0 or high_y < 0:
        raise InvalidFieldError("high", f"{high_x} {high_y}")

    grid_function = _require(
        _require(coverage, GML_PREFIX, "coverageFunction"), GML_PREFIX, "GridFunction"
    )
    start_x, start_y = _pair(
        _require_text(grid_function, GML_PREFIX, "startPoint"), "startPoint", int
    )

    data_block = _require(_require(coverage, GML_PREFIX, "rangeSet"), GML_PREFIX, "DataBlock")
    tuple_list = _require_text(data_block, GML_PREFIX, "tupleList")

    grid_length = GridXY(high_x + 1, high_y + 1)
    metadata = TileMetadata(
        mesh_code=mesh_code,
        lower_corner=LatLon(lower_lat, lower_lon),
        upper_corner=LatLon(upper_lat, upper_lon),
        grid_length=grid_length,
        start_point=GridXY(start_x, start_y),
        pixel_size=PixelSize(
            x=(upper_lon - lower_lon) / grid_length.x,
            y=(lower_lat - upper_lat) / grid_length.y,
        ),
    )
    items = split_tuple_list(tuple_list, sea_level_as_zero=sea_level_as_zero)
    LOGGER.debug(
        "Parsed tile %sx%s with %s samples",
        grid_length.x,
        grid_length.y,
        len(items),
        extra={"mesh": str(mesh_code)},
    )
    return TileRecord(metadata=metadata, elevation=TileElevation(mesh_code, items))
