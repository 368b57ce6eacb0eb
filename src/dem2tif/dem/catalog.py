"""Validated, ordered collection of parsed DEM tiles."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from dem2tif.dem.models import GeographicBounds, LatLon, TileMetadata, TileRecord
from dem2tif.errors import CatalogError, InvalidMeshCodeError, MixedMeshFormatError

LOGGER = logging.getLogger("dem2tif.catalog")

SECOND_MESH_DIGITS = 6
THIRD_MESH_DIGITS = 8


def mesh_format(code: int) -> str:
    """Return "second" or "third" for a mesh code, by its digit count."""
    digits = len(str(code))
    if digits == SECOND_MESH_DIGITS:
        return "second"
    if digits == THIRD_MESH_DIGITS:
        return "third"
    raise InvalidMeshCodeError(code)


def check_mesh_codes(codes: Iterable[int]) -> str:
    """Validate mesh codes share one format and return that format."""
    formats = {mesh_format(code) for code in codes}
    if len(formats) > 1:
        raise MixedMeshFormatError()
    if not formats:
        raise CatalogError("No tiles to catalog.")
    return formats.pop()


def compute_bounds(metadata: Iterable[TileMetadata]) -> GeographicBounds:
    """Return the bounds covering every tile's corners."""
    items = list(metadata)
    if not items:
        raise CatalogError("No tiles to compute bounds from.")
    return GeographicBounds(
        lower_left=LatLon(
            lat=min(meta.lower_corner.lat for meta in items),
            lon=min(meta.lower_corner.lon for meta in items),
        ),
        upper_right=LatLon(
            lat=max(meta.upper_corner.lat for meta in items),
            lon=max(meta.upper_corner.lon for meta in items),
        ),
    )


class MeshCatalog:
    """Tile records sorted by mesh code with their aggregate bounds."""

    def __init__(
        self,
        records: tuple[TileRecord, ...],
        bounds: GeographicBounds,
        mesh_format: str,
    ) -> None:
        self._records = records
        self._bounds = bounds
        self._mesh_format = mesh_format

    @classmethod
    def build(cls, records: Iterable[TileRecord]) -> "MeshCatalog":
        """Sort and validate records; raise CatalogError on any problem."""
        ordered = tuple(sorted(records, key=lambda record: record.mesh_code))
        fmt = check_mesh_codes(record.mesh_code for record in ordered)
        bounds = compute_bounds(record.metadata for record in ordered)
        LOGGER.info(
            "Catalogued %s %s-mesh tile(s) covering %s",
            len(ordered),
            fmt,
            bounds.as_tuple(),
        )
        return cls(ordered, bounds, fmt)

    @property
    def records(self) -> tuple[TileRecord, ...]:
        return self._records

    @property
    def bounds(self) -> GeographicBounds:
        return self._bounds

    @property
    def mesh_format(self) -> str:
        return self._mesh_format

    @property
    def mesh_codes(self) -> list[int]:
        return [record.mesh_code for record in self._records]

    @property
    def metadata(self) -> list[TileMetadata]:
        return [record.metadata for record in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TileRecord]:
        return iter(self._records)
