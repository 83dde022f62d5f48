"""
swbd_grid.py
------------

Geometry of the one-degree cell grid and the fixed-point coordinate space
used by the coastline archive.

Latitudes and longitudes are biased by +90/+180 so everything is positive,
then scaled by 100000 (about 1 m at the equator). Cells run west to east,
south to north starting at -90/-180:

    index = lat_index * 360 + lon_index
"""

from __future__ import annotations

from typing import List, Tuple

import numpy as np

CELL_ROWS = 180
CELL_COLS = 360
CELL_COUNT = CELL_ROWS * CELL_COLS

COORD_SCALE = 100000
ARCSEC_PER_DEGREE = 3600.0

# Points this close (arc-seconds) to a cell edge are closure lines of the
# water polygons. Longitude gets fuzzier away from the equator, hence the
# slightly wider window. Keep these values exactly.
LAT_EDGE_TOLERANCE = 1.0
LON_EDGE_TOLERANCE = 1.0000000000000002

MAX_SCALED_LON = 359.99999

VERSION_SIZE = 128
HEADER_ENTRY_SIZE = 12
HEADER_SIZE = CELL_COUNT * HEADER_ENTRY_SIZE
BODY_START = VERSION_SIZE + HEADER_SIZE

LonLat = Tuple[float, float]
ScaledPoint = Tuple[int, int]
Segment = List[ScaledPoint]


def cell_index(lat_index: int, lon_index: int) -> int:
    """Row-major cell index; raises ValueError outside the grid."""
    if not (0 <= lat_index < CELL_ROWS and 0 <= lon_index < CELL_COLS):
        raise ValueError(f"cell ({lat_index}, {lon_index}) is outside the 180x360 grid")
    return lat_index * CELL_COLS + lon_index


def cell_from_index(index: int) -> Tuple[int, int]:
    """Inverse of cell_index: return (lat_index, lon_index)."""
    if not 0 <= index < CELL_COUNT:
        raise ValueError(f"cell index {index} is outside 0..{CELL_COUNT - 1}")
    return divmod(index, CELL_COLS)


def cell_corners(lat_index: int, lon_index: int) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """
    Cell edges in normalized arc-seconds.

    Returns ((west, east), (south, north)).
    """
    cell_index(lat_index, lon_index)
    corner_x = (lon_index * ARCSEC_PER_DEGREE, (lon_index + 1) * ARCSEC_PER_DEGREE)
    corner_y = (lat_index * ARCSEC_PER_DEGREE, (lat_index + 1) * ARCSEC_PER_DEGREE)
    return corner_x, corner_y


def header_entry_offset(index: int) -> int:
    """File offset of a cell's header entry."""
    return VERSION_SIZE + index * HEADER_ENTRY_SIZE


def _nint(value: float) -> int:
    # Round half away from zero, not to even.
    if value < 0.0:
        return int(value - 0.5)
    return int(value + 0.5)


def scale_lon(lon: float) -> int:
    """Degrees longitude -> biased fixed-point integer in [0, 36000000)."""
    biased = lon + 180.0
    if biased == 360.0:
        biased = MAX_SCALED_LON
    return _nint(biased * COORD_SCALE)


def scale_lat(lat: float) -> int:
    """Degrees latitude -> biased fixed-point integer in [0, 18000000]."""
    return _nint((lat + 90.0) * COORD_SCALE)


def descale(x: int, y: int) -> LonLat:
    """Fixed-point archive coordinates -> (lon, lat) in degrees."""
    return x / COORD_SCALE - 180.0, y / COORD_SCALE - 90.0


def scale_points(lons, lats) -> Tuple[np.ndarray, np.ndarray]:
    """Vectorized scale_lon/scale_lat over coordinate sequences."""
    lon = np.asarray(lons, dtype=np.float64) + 180.0
    lat = np.asarray(lats, dtype=np.float64) + 90.0
    lon = np.where(lon == 360.0, MAX_SCALED_LON, lon)
    return _nint_array(lon * COORD_SCALE), _nint_array(lat * COORD_SCALE)


def _nint_array(values: np.ndarray) -> np.ndarray:
    rounded = np.where(values < 0.0, np.ceil(values - 0.5), np.floor(values + 0.5))
    return rounded.astype(np.int64)
