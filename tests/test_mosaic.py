from __future__ import annotations

import logging

import numpy as np
import pytest

from dem2tif.dem import mosaic as mosaic_module
from dem2tif.dem.catalog import MeshCatalog
from dem2tif.dem.models import NODATA, GeographicBounds, ImageSize, LatLon, PixelSize
from dem2tif.dem.mosaic import assemble, calc_image_size, compute_statistics, tile_array
from dem2tif.dem.parser import parse_tile
from dem2tif.errors import AssemblyError, ImageTooLargeError, PixelSizeMismatchError
from tests.utils import make_record, make_tile_xml


def _two_tile_catalog() -> MeshCatalog:
    west = make_tile_xml(10000000, (35.0, 139.0), (35.01, 139.01), [[1.0, 2.0], [3.0, 4.0]])
    east = make_tile_xml(10000001, (35.0, 139.01), (35.01, 139.02), [[5.0, 6.0], [7.0, 8.0]])
    return MeshCatalog.build([parse_tile(east), parse_tile(west)])


def test_tile_array_fills_rows_from_start_point() -> None:
    record = make_record(
        533946, (35.0, 139.0), (35.1, 139.1), (3, 2), ["1", "2", "3", "4"], start_point=(1, 0)
    )

    array = tile_array(record)

    assert array.tolist() == [[NODATA, 1.0, 2.0], [3.0, 4.0, NODATA]]


def test_tile_array_short_list_leaves_nodata() -> None:
    record = make_record(533946, (35.0, 139.0), (35.1, 139.1), (2, 2), ["1", "2", "3"])

    array = tile_array(record)

    assert array.tolist() == [[1.0, 2.0], [3.0, NODATA]]


def test_tile_array_ignores_surplus_and_unparseable_values() -> None:
    record = make_record(
        533946, (35.0, 139.0), (35.1, 139.1), (2, 1), ["oops", "2", "3", "4"]
    )

    array = tile_array(record)

    assert array.tolist() == [[NODATA, 2.0]]


def test_tile_array_blank_line_keeps_later_samples_in_place() -> None:
    xml = make_tile_xml(
        533946, (35.0, 139.0), (35.1, 139.1), grid=(2, 2),
        lines=["地表面,1.00", "", "地表面,3.00", "地表面,4.00"],
    )

    array = tile_array(parse_tile(xml))

    assert array.tolist() == [[1.0, NODATA], [3.0, 4.0]]


def test_calc_image_size_rounds_half_up() -> None:
    bounds = GeographicBounds(LatLon(35.0, 139.0), LatLon(35.25, 139.625))

    size = calc_image_size(bounds, PixelSize(0.25, -0.25))

    assert (size.x, size.y) == (3, 1)


def test_assemble_places_adjacent_tiles() -> None:
    result = assemble(_two_tile_catalog())

    assert (result.image_size.x, result.image_size.y) == (4, 2)
    assert result.grid.tolist() == [[1.0, 2.0, 5.0, 6.0], [3.0, 4.0, 7.0, 8.0]]
    assert result.transform.upper_left_x == 139.0
    assert result.transform.upper_left_y == 35.01
    assert result.transform.pixel_size_x == pytest.approx(0.005)
    assert result.transform.pixel_size_y == pytest.approx(-0.005)
    assert result.transform.rotation_x == 0.0
    assert result.transform.rotation_y == 0.0


def test_assemble_statistics() -> None:
    stats = assemble(_two_tile_catalog()).stats

    assert stats.valid_pixels == 8
    assert stats.invalid_pixels == 0
    assert stats.min_elevation == 1.0
    assert stats.max_elevation == 8.0
    assert stats.mean_elevation == pytest.approx(4.5)


def test_assemble_stacks_tiles_north_above_south() -> None:
    south = make_record(10000000, (35.0, 139.0), (35.01, 139.01), (1, 1), ["1"])
    north = make_record(10000010, (35.01, 139.0), (35.02, 139.01), (1, 1), ["2"])

    result = assemble(MeshCatalog.build([south, north]))

    assert result.grid.tolist() == [[2.0], [1.0]]


def test_assemble_leaves_gaps_as_nodata() -> None:
    west = make_record(10000000, (35.0, 139.0), (35.01, 139.01), (1, 1), ["1"])
    east = make_record(10000002, (35.0, 139.02), (35.01, 139.03), (1, 1), ["3"])

    result = assemble(MeshCatalog.build([west, east]))

    assert result.grid.tolist() == [[1.0, NODATA, 3.0]]
    assert result.stats.invalid_pixels == 1


def test_assemble_valid_samples_win_over_nodata() -> None:
    full = make_record(10000000, (35.0, 139.0), (35.01, 139.01), (1, 1), ["5"])
    empty = make_record(10000001, (35.0, 139.0), (35.01, 139.01), (1, 1), ["-9999."])

    result = assemble(MeshCatalog.build([full, empty]))

    assert result.grid.tolist() == [[5.0]]


def test_assemble_single_nodata_tile_keeps_zero_stats() -> None:
    record = make_record(533946, (35.0, 139.0), (35.1, 139.1), (2, 1), ["-9999.", "-9999."])

    stats = assemble(MeshCatalog.build([record])).stats

    assert stats.valid_pixels == 0
    assert stats.invalid_pixels == 2
    assert (stats.min_elevation, stats.max_elevation, stats.mean_elevation) == (0.0, 0.0, 0.0)


def test_assemble_too_large_fails_before_allocation(monkeypatch) -> None:
    record = make_record(
        533946,
        (35.0, 139.0),
        (35.001, 139.0 + 32000 * 1e-4),
        (32000, 1),
    )

    def _fail(*args, **kwargs):
        raise AssertionError("mosaic allocated")

    monkeypatch.setattr(mosaic_module.np, "full", _fail)

    with pytest.raises(ImageTooLargeError) as excinfo:
        assemble(MeshCatalog.build([record]))

    assert excinfo.value.width == 32000
    assert excinfo.value.height == 1


def test_assemble_pixel_size_mismatch_warns_by_default(caplog) -> None:
    fine = make_record(10000000, (35.0, 139.0), (35.01, 139.01), (2, 2), ["1"] * 4)
    coarse = make_record(10000001, (35.0, 139.01), (35.01, 139.02), (1, 1), ["2"])
    catalog = MeshCatalog.build([fine, coarse])

    with caplog.at_level(logging.WARNING, logger="dem2tif.mosaic"):
        result = assemble(catalog)

    assert (result.image_size.x, result.image_size.y) == (4, 2)
    assert any("Pixel size" in message for message in caplog.messages)


def test_assemble_pixel_size_mismatch_strict() -> None:
    fine = make_record(10000000, (35.0, 139.0), (35.01, 139.01), (2, 2), ["1"] * 4)
    coarse = make_record(10000001, (35.0, 139.01), (35.01, 139.02), (1, 1), ["2"])

    with pytest.raises(PixelSizeMismatchError) as excinfo:
        assemble(MeshCatalog.build([fine, coarse]), check_pixel_size=True)

    assert excinfo.value.mesh_code == 10000001


def test_calc_image_size_rejects_empty_dimension() -> None:
    bounds = GeographicBounds(LatLon(35.0, 139.0), LatLon(35.0, 139.1))

    with pytest.raises(AssemblyError):
        calc_image_size(bounds, PixelSize(0.1, -0.1))


def test_compute_statistics_ignores_nodata() -> None:
    grid = np.array([[NODATA, -5.0], [10.0, NODATA]])
    bounds = GeographicBounds(LatLon(35.0, 139.0), LatLon(35.1, 139.1))

    stats = compute_statistics(grid, bounds, ImageSize(2, 2))

    assert stats.valid_pixels == 2
    assert stats.invalid_pixels == 2
    assert stats.min_elevation == -5.0
    assert stats.max_elevation == 10.0
    assert stats.mean_elevation == 2.5
