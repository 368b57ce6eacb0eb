from __future__ import annotations

import struct
from pathlib import Path
from typing import Sequence

from dem2tif.dem.models import (
    NODATA,
    GridXY,
    LatLon,
    PixelSize,
    TileElevation,
    TileMetadata,
    TileRecord,
)

FGD_NAMESPACE = "http://fgd.gsi.go.jp/spec/2008/FGD_GMLSchema"
GML_NAMESPACE = "http://www.opengis.net/gml/3.2"

_TYPE_SIZES = {1: 1, 2: 1, 3: 2, 4: 4, 5: 8, 12: 8}
_TYPE_FORMATS = {3: "H", 4: "I", 5: "I", 12: "d"}


def tuple_lines(rows: Sequence[Sequence[float]]) -> list[str]:
    """Render grid rows as GSI ``category,value`` lines."""
    lines = []
    for row in rows:
        for value in row:
            if value == NODATA:
                lines.append("データなし,-9999.")
            else:
                lines.append(f"地表面,{value:.2f}")
    return lines


def make_tile_xml(
    mesh_code: int | str,
    lower: tuple[float, float],
    upper: tuple[float, float],
    rows: Sequence[Sequence[float]] | None = None,
    *,
    grid: tuple[int, int] | None = None,
    start_point: tuple[int, int] = (0, 0),
    dataset_prefix: bool = False,
    lines: Sequence[str] | None = None,
) -> str:
    """Build a GSI FG-GML DEM document for tests.

    ``lower`` and ``upper`` are (lat, lon) corners. The grid size defaults
    to the shape of ``rows``; ``lines`` overrides the tuple list body.
    """
    rows = rows or []
    if grid is None:
        grid = (len(rows[0]) if rows else 1, len(rows) or 1)
    body = "\n".join(lines if lines is not None else tuple_lines(rows))
    if dataset_prefix:
        ns = f'xmlns:dataset="{FGD_NAMESPACE}"'
        p = "dataset:"
    else:
        ns = f'xmlns="{FGD_NAMESPACE}"'
        p = ""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<{p}Dataset {ns} xmlns:gml="{GML_NAMESPACE}" gml:id="Dataset1">
  <gml:description>基盤地図情報メタデータ ID=fmdid:15-3101</gml:description>
  <{p}DEM gml:id="DEM001">
    <{p}fid>fgoid:10-00100-15-60101-{mesh_code}</{p}fid>
    <{p}type>5mメッシュ（標高）</{p}type>
    <{p}mesh>{mesh_code}</{p}mesh>
    <{p}coverage gml:id="DEM001-3">
      <gml:boundedBy>
        <gml:Envelope srsName="fguuid:jgd2011.bl">
          <gml:lowerCorner>{lower[0]} {lower[1]}</gml:lowerCorner>
          <gml:upperCorner>{upper[0]} {upper[1]}</gml:upperCorner>
        </gml:Envelope>
      </gml:boundedBy>
      <gml:gridDomain>
        <gml:Grid dimension="2" gml:id="DEM001-4">
          <gml:limits>
            <gml:GridEnvelope>
              <gml:low>0 0</gml:low>
              <gml:high>{grid[0] - 1} {grid[1] - 1}</gml:high>
            </gml:GridEnvelope>
          </gml:limits>
          <gml:axisLabels>x y</gml:axisLabels>
        </gml:Grid>
      </gml:gridDomain>
      <gml:rangeSet>
        <gml:DataBlock>
          <gml:rangeParameters>
            <gml:QuantityList uom="DEM構成点"/>
          </gml:rangeParameters>
          <gml:tupleList>
{body}
</gml:tupleList>
        </gml:DataBlock>
      </gml:rangeSet>
      <gml:coverageFunction>
        <gml:GridFunction>
          <gml:sequenceRule order="+x-y">Linear</gml:sequenceRule>
          <gml:startPoint>{start_point[0]} {start_point[1]}</gml:startPoint>
        </gml:GridFunction>
      </gml:coverageFunction>
    </{p}coverage>
  </{p}DEM>
</{p}Dataset>
"""


def make_record(
    mesh_code: int,
    lower: tuple[float, float],
    upper: tuple[float, float],
    grid: tuple[int, int],
    items: Sequence[str] = (),
    *,
    start_point: tuple[int, int] = (0, 0),
) -> TileRecord:
    """Build a TileRecord directly, bypassing XML."""
    width, height = grid
    metadata = TileMetadata(
        mesh_code=mesh_code,
        lower_corner=LatLon(*lower),
        upper_corner=LatLon(*upper),
        grid_length=GridXY(width, height),
        start_point=GridXY(*start_point),
        pixel_size=PixelSize(
            x=(upper[1] - lower[1]) / width,
            y=(lower[0] - upper[0]) / height,
        ),
    )
    return TileRecord(metadata, TileElevation(mesh_code, tuple(items)))


def read_ifd(data: bytes) -> dict[int, tuple[int, int, tuple]]:
    """Decode the first IFD of a little-endian TIFF into {tag: (type, count, values)}."""
    assert data[:4] == b"II*\0"
    (ifd_offset,) = struct.unpack_from("<I", data, 4)
    (count,) = struct.unpack_from("<H", data, ifd_offset)
    entries: dict[int, tuple[int, int, tuple]] = {}
    for index in range(count):
        position = ifd_offset + 2 + index * 12
        tag, field_type, value_count = struct.unpack_from("<HHI", data, position)
        size = _TYPE_SIZES[field_type] * value_count
        if size <= 4:
            value_offset = position + 8
        else:
            (value_offset,) = struct.unpack_from("<I", data, position + 8)
        raw = data[value_offset : value_offset + size]
        if field_type in (1, 2):
            values: tuple = (raw,)
        else:
            fmt = _TYPE_FORMATS[field_type]
            number = value_count * 2 if field_type == 5 else value_count
            values = struct.unpack(f"<{number}{fmt}", raw)
        entries[tag] = (field_type, value_count, values)
    return entries


def ifd_tags(data: bytes) -> list[int]:
    """Return the IFD tags in file order."""
    (ifd_offset,) = struct.unpack_from("<I", data, 4)
    (count,) = struct.unpack_from("<H", data, ifd_offset)
    return [
        struct.unpack_from("<H", data, ifd_offset + 2 + index * 12)[0] for index in range(count)
    ]


def write_tiles(directory: Path, tiles: Sequence[tuple[str, str]]) -> list[Path]:
    """Write (name, xml) pairs to disk and return their paths."""
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for name, xml in tiles:
        path = directory / name
        path.write_text(xml, encoding="utf-8")
        paths.append(path)
    return paths
