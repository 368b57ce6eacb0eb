"""Command-line interface for dem2tif."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from dem2tif import __version__
from dem2tif.config import ConvertConfig, load_convert_config
from dem2tif.dem.geotiff import MODES
from dem2tif.dem.info import inspect_geotiff
from dem2tif.dem.pipeline import build_mosaic, convert, ingest
from dem2tif.errors import Dem2TifError
from dem2tif.logging_utils import LogOptions, configure_logging
from dem2tif.perf import resolve_metrics_path, write_metrics
from dem2tif.sources import load_tile_texts

LOGGER = logging.getLogger("dem2tif.cli")


def _add_ingest_arguments(parser: argparse.ArgumentParser) -> None:
    """Attach the options shared by commands that parse tiles."""
    parser.add_argument(
        "inputs",
        nargs="*",
        help="DEM XML files, directories, or zip archives.",
    )
    parser.add_argument(
        "--sea-level-as-zero",
        action="store_true",
        default=None,
        help="Treat no-data sea surface and sea bottom samples as 0 m.",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=None,
        help="Number of parallel tile parsers (default: 4).",
    )


def _add_convert_parser(subparsers: argparse._SubParsersAction) -> None:
    convert_parser = subparsers.add_parser(
        "convert", help="Merge DEM tiles into a GeoTIFF mosaic."
    )
    _add_ingest_arguments(convert_parser)
    convert_parser.add_argument("-o", "--output", help="Output GeoTIFF path.")
    convert_parser.add_argument(
        "--mode",
        choices=MODES,
        default=None,
        help="Raster encoding: float32 elevations or Terrain-RGB (default: float).",
    )
    convert_parser.add_argument(
        "--no-alpha",
        dest="alpha",
        action="store_false",
        default=None,
        help="Write 3-channel Terrain-RGB without an alpha band.",
    )
    convert_parser.add_argument(
        "--check-pixel-size",
        action="store_true",
        default=None,
        help="Fail when tiles do not share the same pixel size.",
    )
    convert_parser.add_argument("--config", help="Convert config JSON path.")
    convert_parser.add_argument(
        "--profile",
        action="store_true",
        default=None,
        help="Capture stage timings and peak memory.",
    )
    convert_parser.add_argument(
        "--metrics-json",
        help="Write profiling metrics to this JSON path.",
    )


def _add_stats_parser(subparsers: argparse._SubParsersAction) -> None:
    stats = subparsers.add_parser(
        "stats", help="Print mosaic statistics without writing a raster."
    )
    _add_ingest_arguments(stats)


def _add_inspect_parser(subparsers: argparse._SubParsersAction) -> None:
    inspect = subparsers.add_parser("inspect", help="Describe a written GeoTIFF.")
    inspect.add_argument("path", help="GeoTIFF path.")


def _check_jobs(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    """Reject a non-positive ``--jobs`` before any work starts."""
    if args.jobs is not None and args.jobs < 1:
        parser.error(f"--jobs must be >= 1, got {args.jobs}")


def _resolve_convert_config(
    args: argparse.Namespace, parser: argparse.ArgumentParser
) -> ConvertConfig:
    """Merge the optional config file with command-line overrides."""
    _check_jobs(args, parser)
    config = load_convert_config(Path(args.config)) if args.config else ConvertConfig()
    config = config.with_overrides(
        inputs=args.inputs or None,
        output=args.output,
        mode=args.mode,
        alpha=args.alpha,
        sea_level_as_zero=args.sea_level_as_zero,
        pool_size=args.jobs,
        check_pixel_size=args.check_pixel_size,
        profile=args.profile,
    )
    if not config.inputs:
        parser.error("at least one input is required for convert")
    if not config.output:
        parser.error("--output is required for convert")
    return config


def _run_convert(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    config = _resolve_convert_config(args, parser)
    metrics_path = resolve_metrics_path(args.metrics_json)
    result = convert(
        [Path(path) for path in config.inputs],
        Path(config.output),
        mode=config.mode,
        alpha=config.alpha,
        sea_level_as_zero=config.sea_level_as_zero,
        pool_size=config.pool_size,
        check_pixel_size=config.check_pixel_size,
        profile=config.profile or metrics_path is not None,
    )
    stats = result.stats
    LOGGER.info(
        "Mosaic %sx%s from %s tile(s): %s valid pixel(s), elevation %.2f..%.2f",
        result.image_size.x,
        result.image_size.y,
        result.tile_count,
        stats.valid_pixels,
        stats.min_elevation,
        stats.max_elevation,
    )
    if metrics_path and result.perf:
        write_metrics(metrics_path, result.perf)
        LOGGER.info("Metrics written to %s", metrics_path)
    return 0


def _run_stats(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    if not args.inputs:
        parser.error("at least one input is required for stats")
    _check_jobs(args, parser)
    config = ConvertConfig().with_overrides(pool_size=args.jobs)
    catalog = ingest(
        load_tile_texts(Path(path) for path in args.inputs),
        bool(args.sea_level_as_zero),
        config.pool_size,
    )
    mosaic = build_mosaic(catalog)
    payload = mosaic.stats.as_dict()
    payload["tile_count"] = len(catalog)
    payload["mesh_format"] = catalog.mesh_format
    print(json.dumps(payload, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the CLI entrypoint and return an exit code."""
    parser = argparse.ArgumentParser(
        prog="dem2tif",
        description="Merge GSI DEM XML tiles into GeoTIFF mosaics",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeatable).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce log output to warnings and errors.",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON on stderr.",
    )
    parser.add_argument(
        "--log-file",
        help="Optional path for JSON log output.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_convert_parser(subparsers)
    _add_stats_parser(subparsers)
    _add_inspect_parser(subparsers)
    subparsers.add_parser("version", help="Print the current version.")

    args = parser.parse_args(argv)
    log_file_value = getattr(args, "log_file", None)
    configure_logging(
        LogOptions(
            verbose=getattr(args, "verbose", 0) or 0,
            quiet=bool(getattr(args, "quiet", False)),
            log_file=Path(log_file_value) if log_file_value else None,
            json_console=bool(getattr(args, "log_json", False)),
        )
    )

    if args.command == "version":
        print(__version__)
        return 0
    try:
        if args.command == "convert":
            return _run_convert(args, parser)
        if args.command == "stats":
            return _run_stats(args, parser)
        if args.command == "inspect":
            print(json.dumps(inspect_geotiff(Path(args.path)).as_dict(), indent=2))
            return 0
    except Dem2TifError as exc:
        LOGGER.error("%s", exc)
        return 1
    parser.error(f"Unknown command: {args.command}")
    return 2
