from pathlib import Path

import pytest
import shapefile


def write_tile(path: Path, polygons):
    """Write a polygon shapefile; each polygon is a list of closed rings."""
    with shapefile.Writer(str(path), shapeType=shapefile.POLYGON) as writer:
        writer.field("ID", "N")
        for i, rings in enumerate(polygons):
            writer.poly([[list(p) for p in ring] for ring in rings])
            writer.record(i)
    return path.with_suffix(".shp") if path.suffix != ".shp" else path


# Cell (100, 0): 180W-179W, 10N-11N. Clockwise rings closed along the west edge.
TILE_POLYGONS = [
    [
        [
            (-180.0, 10.2),
            (-179.9, 10.4),
            (-179.6, 10.5),
            (-179.3, 10.3),
            (-179.1, 10.1),
            (-179.0, 10.05),
            (-179.0, 10.0),
            (-180.0, 10.0),
            (-180.0, 10.2),
        ],
    ],
    [
        [
            (-179.5, 10.8),
            (-179.4, 10.9),
            (-179.3, 10.8),
            (-179.4, 10.7),
            (-179.5, 10.8),
        ],
    ],
]


@pytest.fixture
def swbd_dir(tmp_path):
    """Input directory holding one SWBD tile for cell (100, 0)."""
    input_dir = tmp_path / "swbd"
    input_dir.mkdir()
    write_tile(input_dir / "w180n10n", TILE_POLYGONS)
    return input_dir
