"""
shape_source.py
---------------

Read SWBD water-body shapefiles into plain vertex records.

SWBD ships one shapefile per one-degree tile, named after the tile's
south-west corner plus a letter for the source region, e.g.
``w123n45n.shp`` for the tile spanning 123W-122W, 45N-46N. A tile can be
delivered by more than one region, so every matching file is returned.
"""

from __future__ import annotations

import re
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Sequence, Tuple

import shapefile

from coast_errors import CoastlineError
from swbd_grid import CELL_COLS, CELL_ROWS, LonLat

DATASET_SUFFIXES = ("a", "e", "f", "i", "n", "s")

TILE_RE = re.compile(r"^([we])(\d{3})([ns])(\d{2})([a-z])\.shp$", re.IGNORECASE)


@dataclass
class ShapeRecord:
    """One shape: parallel lon/lat arrays in degrees split into rings at part_starts."""

    shape_type: int
    part_starts: List[int]
    lons: List[float]
    lats: List[float]

    @property
    def n_vertices(self) -> int:
        return len(self.lons)

    def rings(self) -> List[List[LonLat]]:
        bounds = list(self.part_starts) + [self.n_vertices]
        out: List[List[LonLat]] = []
        for start, stop in zip(bounds[:-1], bounds[1:]):
            out.append(list(zip(self.lons[start:stop], self.lats[start:stop])))
        return out

    @classmethod
    def from_rings(cls, rings: Sequence[Sequence[LonLat]], shape_type: int = shapefile.POLYGON) -> "ShapeRecord":
        part_starts: List[int] = []
        lons: List[float] = []
        lats: List[float] = []
        for ring in rings:
            part_starts.append(len(lons))
            for lon, lat in ring:
                lons.append(float(lon))
                lats.append(float(lat))
        return cls(shape_type=shape_type, part_starts=part_starts, lons=lons, lats=lats)


def read_shape_records(path: Path) -> Iterator[ShapeRecord]:
    """Yield every shape in an ESRI shapefile as a ShapeRecord.

    Unreadable or truncated files raise CoastlineError naming the file,
    whether the damage is in the header or in a later record.
    """
    try:
        with shapefile.Reader(str(path)) as reader:
            for shape in reader.iterShapes():
                points = shape.points
                yield ShapeRecord(
                    shape_type=shape.shapeType,
                    part_starts=[int(p) for p in shape.parts],
                    lons=[float(p[0]) for p in points],
                    lats=[float(p[1]) for p in points],
                )
    except (shapefile.ShapefileException, struct.error, ValueError) as exc:
        raise CoastlineError(f"{path}: unreadable shapefile ({exc})") from exc


def tile_name(lat_index: int, lon_index: int, suffix: str) -> str:
    """SWBD shapefile name for a cell and source-region suffix."""
    lon_deg = lon_index - 180
    lat_deg = lat_index - 90
    lon_part = f"w{-lon_deg:03d}" if lon_deg < 0 else f"e{lon_deg:03d}"
    lat_part = f"s{-lat_deg:02d}" if lat_deg < 0 else f"n{lat_deg:02d}"
    return f"{lon_part}{lat_part}{suffix}.shp"


def parse_tile_name(name: str) -> Tuple[int, int, str]:
    """Return (lat_index, lon_index, suffix) for an SWBD shapefile name."""
    m = TILE_RE.match(name)
    if not m:
        raise ValueError(f"not an SWBD tile name: {name}")
    lon_hem, lon_deg, lat_hem, lat_deg, suffix = m.groups()
    lon = int(lon_deg) * (-1 if lon_hem.lower() == "w" else 1)
    lat = int(lat_deg) * (-1 if lat_hem.lower() == "s" else 1)
    lon_index = lon + 180
    lat_index = lat + 90
    if not (0 <= lat_index < CELL_ROWS and 0 <= lon_index < CELL_COLS):
        raise ValueError(f"tile {name} is outside the 180x360 grid")
    return lat_index, lon_index, suffix.lower()


def index_input_dir(input_dir: Path) -> Dict[Tuple[int, int], List[Path]]:
    """Map (lat_index, lon_index) to the cell's shapefiles, in suffix order.

    The directory is listed once. Files that are not SWBD tiles, or carry a
    region letter outside DATASET_SUFFIXES, are ignored; cells without data
    are absent from the result.
    """
    found: Dict[Tuple[int, int], List[Tuple[int, Path]]] = {}
    for path in input_dir.iterdir():
        if not path.is_file():
            continue
        try:
            lat_index, lon_index, suffix = parse_tile_name(path.name)
        except ValueError:
            continue
        if suffix not in DATASET_SUFFIXES:
            continue
        found.setdefault((lat_index, lon_index), []).append((DATASET_SUFFIXES.index(suffix), path))
    return {cell: [p for _, p in sorted(paths)] for cell, paths in sorted(found.items())}
