import json

import pytest

from build_swbd import build_archive
from coast_reader import CoastlineArchive
from coastline_pipeline import (
    cells_in_bbox,
    compute_basic_stats,
    line_bbox,
    line_length_meters,
    parse_bbox,
    parse_cell,
)
import export_coast_geojson
import inspect_coast
import plot_coast


@pytest.fixture
def built_archive(swbd_dir, tmp_path):
    output = tmp_path / "coast.ccl"
    build_archive(swbd_dir, output, verbose=False)
    return output


def test_parse_bbox_and_cell():
    assert parse_bbox([-123.5, 46.9, -122.0, 49.1]) == (-123.5, 46.9, -122.0, 49.1)
    assert parse_cell("100,0") == (100, 0)
    with pytest.raises(ValueError):
        parse_bbox([1, 2, 3])
    with pytest.raises(ValueError):
        parse_bbox([1, 2, 0, 3])


def test_cells_in_bbox():
    assert cells_in_bbox(-180.0, 10.0, -179.0, 11.0) == [(100, 0)]
    assert cells_in_bbox(-179.5, 10.5, -178.5, 10.9) == [(100, 0), (100, 1)]
    assert len(cells_in_bbox(-180, -90, 180, 90)) == 64800


def test_line_length_one_degree_of_latitude():
    assert line_length_meters([(0.0, 0.0), (0.0, 1.0)]) == pytest.approx(110574, rel=1e-3)
    assert line_length_meters([(0.0, 0.0)]) == 0.0


def test_stats_and_bbox():
    lines = [[(0.0, 0.0), (1.0, 2.0)], [(3.0, 1.0), (2.0, 0.5), (4.0, 4.0)]]
    stats = compute_basic_stats(lines)
    assert stats == {"segments": 2, "points": 5, "avg_points_per_segment": 2.5}
    assert compute_basic_stats([], with_length=True)["total_len_km"] == 0.0
    assert line_bbox(lines[1]) == (2.0, 0.5, 4.0, 4.0)


def test_export_geojson(built_archive, tmp_path, capsys):
    out = tmp_path / "coast.geojson"
    rc = export_coast_geojson.main([str(built_archive), str(out), "--bbox", "-180", "10", "-179", "11"])
    assert rc == 0
    obj = json.loads(out.read_text())
    assert [f["properties"]["segment_id"] for f in obj["features"]] == [0, 1]
    assert all(f["properties"]["cell"] == [100, 0] for f in obj["features"])
    first = obj["features"][0]["geometry"]["coordinates"]
    assert first[0] == pytest.approx([-179.9, 10.4])


def test_export_outside_data_is_empty(built_archive, tmp_path):
    out = tmp_path / "empty.geojson"
    assert export_coast_geojson.main([str(built_archive), str(out), "--bbox", "0", "0", "1", "1"]) == 0
    assert json.loads(out.read_text())["features"] == []


def test_export_whole_globe_by_default(built_archive, tmp_path):
    out = tmp_path / "globe.geojson"
    assert export_coast_geojson.main([str(built_archive), str(out)]) == 0
    assert len(json.loads(out.read_text())["features"]) == 2


def test_export_rejects_inverted_bbox(built_archive, tmp_path, capsys):
    out = tmp_path / "bad.geojson"
    rc = export_coast_geojson.main([str(built_archive), str(out), "--bbox", "-179", "10", "-180", "11"])
    assert rc == 1
    assert "bbox minimums" in capsys.readouterr().err
    assert not out.exists()


def test_iter_cells_skips_empty_cells(built_archive):
    with CoastlineArchive(built_archive) as archive:
        everything = list(archive.iter_cells())
        assert [cell for cell, _ in everything] == [(100, 0)]
        assert everything[0][1] == archive.read_cell_lonlat(100, 0)
        assert [cell for cell, _ in archive.iter_cells([(100, 1), (100, 0), (0, 0)])] == [(100, 0)]


def test_inspect_cell(built_archive, capsys):
    assert inspect_coast.main([str(built_archive), "--cell", "100,0"]) == 0
    out = capsys.readouterr().out
    assert "Populated cells: 1" in out
    assert "Segments: 2" in out
    assert "Vertices: 9" in out
    with CoastlineArchive(built_archive) as archive:
        stats = inspect_coast.describe_cell(archive, 100, 0)
    assert stats["block_bytes"] == archive.size - stats["offset"]
    assert stats["total_len_km"] > 0


def test_inspect_missing_archive(tmp_path, capsys):
    assert inspect_coast.main([str(tmp_path / "missing.ccl")]) == 1
    assert "error:" in capsys.readouterr().err


def test_plot(built_archive, tmp_path):
    png = tmp_path / "coast.png"
    rc = plot_coast.main([str(built_archive), str(png), "--bbox", "-180", "10", "-179", "11", "--dpi", "50"])
    assert rc == 0
    assert png.read_bytes()[:4] == b"\x89PNG"


def test_plot_empty_bbox(built_archive, tmp_path):
    assert plot_coast.main([str(built_archive), str(tmp_path / "x.png"), "--bbox", "0", "0", "1", "1"]) == 1
