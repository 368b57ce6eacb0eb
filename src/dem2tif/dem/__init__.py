"""DEM tile parsing, mosaicking, and GeoTIFF encoding."""

from dem2tif.dem.catalog import MeshCatalog
from dem2tif.dem.geotiff import (
    FLOAT_MODE,
    MODES,
    TERRAIN_RGB_MODE,
    encode_float32,
    encode_terrain_rgb,
)
from dem2tif.dem.info import inspect_geotiff
from dem2tif.dem.markup import get_either, parse_markup
from dem2tif.dem.models import (
    NODATA,
    GeographicBounds,
    GeoTransform,
    ImageSize,
    MosaicResult,
    RasterInfo,
    Statistics,
    TileElevation,
    TileMetadata,
    TileRecord,
)
from dem2tif.dem.mosaic import assemble, compute_statistics, tile_array
from dem2tif.dem.parser import parse_tile
from dem2tif.dem.pipeline import ConvertResult, build_mosaic, convert, encode, ingest
from dem2tif.dem.pool import parse_all, parse_all_async
from dem2tif.dem.terrain_rgb import decode_terrain_rgb, terrain_rgb_pixels

__all__ = [
    "ConvertResult",
    "FLOAT_MODE",
    "GeoTransform",
    "GeographicBounds",
    "ImageSize",
    "MODES",
    "MeshCatalog",
    "MosaicResult",
    "NODATA",
    "RasterInfo",
    "Statistics",
    "TERRAIN_RGB_MODE",
    "TileElevation",
    "TileMetadata",
    "TileRecord",
    "assemble",
    "build_mosaic",
    "compute_statistics",
    "convert",
    "decode_terrain_rgb",
    "encode",
    "encode_float32",
    "encode_terrain_rgb",
    "get_either",
    "ingest",
    "inspect_geotiff",
    "parse_all",
    "parse_all_async",
    "parse_markup",
    "parse_tile",
    "terrain_rgb_pixels",
    "tile_array",
]
