#!/usr/bin/env python3
"""
Shared helpers for the archive inspection/export scripts: bbox handling,
line statistics and GeoJSON output for decoded coastline segments.
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple

from pyproj import Geod

from swbd_grid import CELL_COLS, CELL_ROWS

LonLat = Tuple[float, float]
Line = List[LonLat]
Cell = Tuple[int, int]

WGS84 = Geod(ellps="WGS84")


def parse_bbox(values: Sequence[float]) -> Tuple[float, float, float, float]:
    """Validate lon_min, lat_min, lon_max, lat_max as given to ``--bbox``."""
    parts = [float(v) for v in values]
    if len(parts) != 4:
        raise ValueError("bbox must be lon_min lat_min lon_max lat_max")
    lon_min, lat_min, lon_max, lat_max = parts
    if lon_min >= lon_max or lat_min >= lat_max:
        raise ValueError("bbox minimums must be below maximums")
    return lon_min, lat_min, lon_max, lat_max


def parse_cell(text: str) -> Cell:
    """'LAT_INDEX,LON_INDEX' -> (lat_index, lon_index)."""
    parts = [int(x.strip()) for x in text.split(",")]
    if len(parts) != 2:
        raise ValueError("cell must be lat_index,lon_index")
    return parts[0], parts[1]


def cells_in_bbox(lon_min: float, lat_min: float, lon_max: float, lat_max: float) -> List[Cell]:
    """Cells (lat_index, lon_index) whose one-degree square intersects the bbox."""
    lat_lo = max(int(math.floor(lat_min + 90.0)), 0)
    lat_hi = min(int(math.ceil(lat_max + 90.0)), CELL_ROWS)
    lon_lo = max(int(math.floor(lon_min + 180.0)), 0)
    lon_hi = min(int(math.ceil(lon_max + 180.0)), CELL_COLS)
    return [(lat, lon) for lat in range(lat_lo, lat_hi) for lon in range(lon_lo, lon_hi)]


def save_geojson(path: Path, obj: Dict) -> None:
    """Write compact GeoJSON to disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fp:
        json.dump(obj, fp, separators=(",", ":"))


def line_length_meters(line: Sequence[LonLat]) -> float:
    """Geodesic length of a line on the WGS84 ellipsoid."""
    if len(line) < 2:
        return 0.0
    return float(WGS84.line_length([p[0] for p in line], [p[1] for p in line]))


def line_bbox(line: Sequence[LonLat]) -> Tuple[float, float, float, float]:
    """Return (lon_min, lat_min, lon_max, lat_max) for a line."""
    xs = [p[0] for p in line]
    ys = [p[1] for p in line]
    return (min(xs), min(ys), max(xs), max(ys))


def lines_to_feature_collection_with_bboxes(
    cell_lines: Iterable[Tuple[Cell, Sequence[Line]]], source_name: str
) -> Dict:
    """
    One LineString feature per decoded segment, tagged with its cell and a
    precomputed bbox.
    """
    features = []
    for cell, lines in cell_lines:
        for i, line in enumerate(lines):
            if len(line) < 2:
                continue
            bbox = line_bbox(line)
            features.append(
                {
                    "type": "Feature",
                    "properties": {
                        "source": source_name,
                        "cell": [cell[0], cell[1]],
                        "segment_id": i,
                        "bbox": [bbox[0], bbox[1], bbox[2], bbox[3]],
                    },
                    "geometry": {"type": "LineString", "coordinates": [list(p) for p in line]},
                }
            )
    return {
        "type": "FeatureCollection",
        "name": "swbd_coastline",
        "features": features,
    }


def compute_basic_stats(lines: Sequence[Line], with_length: bool = False) -> Dict[str, float]:
    """Segment/point counts, optionally with total geodesic length in km."""
    if not lines:
        stats = {"segments": 0, "points": 0, "avg_points_per_segment": 0.0}
        if with_length:
            stats["total_len_km"] = 0.0
        return stats
    points = sum(len(line) for line in lines)
    stats = {
        "segments": len(lines),
        "points": points,
        "avg_points_per_segment": points / len(lines),
    }
    if with_length:
        stats["total_len_km"] = sum(line_length_meters(line) for line in lines) / 1000.0
    return stats
