"""End-to-end pipeline: tile texts to catalog, mosaic, and GeoTIFF bytes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Sequence

import numpy as np

from dem2tif.dem.catalog import MeshCatalog
from dem2tif.dem.geotiff import FLOAT_MODE
from dem2tif.dem.geotiff import encode as encode_geotiff
from dem2tif.dem.pool import DEFAULT_POOL_SIZE, parse_all
from dem2tif.dem.models import GeoTransform, ImageSize, MosaicResult, Statistics
from dem2tif.dem.mosaic import assemble
from dem2tif.perf import PerfTracker
from dem2tif.sources import load_tile_texts

LOGGER = logging.getLogger("dem2tif.pipeline")


@dataclass(frozen=True)
class ConvertResult:
    """Outputs from a file-to-file conversion."""

    output_path: Path
    mode: str
    tile_count: int
    image_size: ImageSize
    stats: Statistics
    byte_size: int
    perf: dict[str, Any] = field(default_factory=dict)


def ingest(
    texts: Sequence[str],
    sea_level_as_zero: bool = False,
    pool_size: int = DEFAULT_POOL_SIZE,
) -> MeshCatalog:
    """Parse every tile text and build a validated catalog."""
    return MeshCatalog.build(parse_all(texts, sea_level_as_zero, pool_size))


def build_mosaic(catalog: MeshCatalog, *, check_pixel_size: bool = False) -> MosaicResult:
    """Assemble the catalog into one grid with its transform and statistics."""
    return assemble(catalog, check_pixel_size=check_pixel_size)


def encode(
    grid: np.ndarray,
    transform: GeoTransform,
    mode: str = FLOAT_MODE,
    *,
    alpha: bool = True,
) -> bytes:
    """Serialize a mosaic grid as GeoTIFF bytes in the given mode."""
    return encode_geotiff(grid, transform, mode, alpha=alpha)


def convert(
    inputs: Iterable[Path],
    output_path: Path,
    *,
    mode: str = FLOAT_MODE,
    alpha: bool = True,
    sea_level_as_zero: bool = False,
    pool_size: int = DEFAULT_POOL_SIZE,
    check_pixel_size: bool = False,
    profile: bool = False,
) -> ConvertResult:
    """Read tile XML inputs and write a GeoTIFF mosaic to ``output_path``.

    The output file is only written once encoding has succeeded.
    """
    tracker = PerfTracker(enabled=profile)
    tracker.start()
    try:
        with tracker.span("load"):
            texts = load_tile_texts(inputs)
        with tracker.span("ingest"):
            catalog = ingest(texts, sea_level_as_zero, pool_size)
        with tracker.span("assemble"):
            mosaic = build_mosaic(catalog, check_pixel_size=check_pixel_size)
        with tracker.span("encode"):
            payload = encode_geotiff(
                mosaic.grid,
                mosaic.transform,
                mode,
                alpha=alpha,
                image_size=mosaic.image_size,
            )
        with tracker.span("write"):
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(payload)
    finally:
        tracker.stop()
    LOGGER.info("Wrote %s (%s bytes, mode=%s)", output_path, len(payload), mode)
    return ConvertResult(
        output_path=output_path,
        mode=mode,
        tile_count=len(catalog),
        image_size=mosaic.image_size,
        stats=mosaic.stats,
        byte_size=len(payload),
        perf=tracker.summary(),
    )
