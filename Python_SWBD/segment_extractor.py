"""
Split SWBD water polygons into coastline segments for one cell.

SWBD polygons are closed rings around water. Where a ring is cut by the
tile edge the closure runs along the edge itself; those vertices are not
coastline, so they are dropped and the line is broken there instead of
drawing a chord along the seam.
"""

from __future__ import annotations

from typing import Iterable, Iterator

import numpy as np

from shape_source import ShapeRecord
from swbd_grid import (
    ARCSEC_PER_DEGREE,
    LAT_EDGE_TOLERANCE,
    LON_EDGE_TOLERANCE,
    Segment,
    cell_corners,
    scale_points,
)


def edge_mask(record: ShapeRecord, lat_index: int, lon_index: int) -> np.ndarray:
    """Boolean mask of the record's vertices lying (almost) on the cell edges."""
    (west, east), (south, north) = cell_corners(lat_index, lon_index)
    slon = (np.asarray(record.lons, dtype=np.float64) + 180.0) * ARCSEC_PER_DEGREE
    slat = (np.asarray(record.lats, dtype=np.float64) + 90.0) * ARCSEC_PER_DEGREE
    return (
        (np.abs(slon - west) < LON_EDGE_TOLERANCE)
        | (np.abs(slon - east) < LON_EDGE_TOLERANCE)
        | (np.abs(slat - south) < LAT_EDGE_TOLERANCE)
        | (np.abs(slat - north) < LAT_EDGE_TOLERANCE)
    )


def extract_segments(
    records: Iterable[ShapeRecord], lat_index: int, lon_index: int
) -> Iterator[Segment]:
    """
    Yield the coastline segments of a cell from its shape records.

    A new segment starts at the first vertex of every record and ring, and
    after every dropped edge vertex. Runs of fewer than two points are
    discarded.
    """
    current: Segment = []
    after_edge = False

    for record in records:
        n = record.n_vertices
        if n < 2:
            continue

        on_edge = edge_mask(record, lat_index, lon_index)
        xs, ys = scale_points(record.lons, record.lats)
        ring_starts = set(record.part_starts[1:])

        for j in range(n):
            start_segment = (j == 0 and len(record.part_starts) > 0) or j in ring_starts
            if after_edge:
                start_segment = True
                after_edge = False

            if on_edge[j]:
                after_edge = True
                continue

            if start_segment:
                if len(current) > 1:
                    yield current
                current = []

            current.append((int(xs[j]), int(ys[j])))

    if len(current) > 1:
        yield current
