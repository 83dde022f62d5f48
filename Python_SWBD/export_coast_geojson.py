#!/usr/bin/env python3
"""
Decode the cells of a coastline archive that intersect a bbox and write
them as GeoJSON, one LineString per segment with precomputed bboxes.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from coast_errors import CoastlineError
from coast_reader import CoastlineArchive
from coastline_pipeline import (
    cells_in_bbox,
    lines_to_feature_collection_with_bboxes,
    parse_bbox,
    save_geojson,
)


def export_bbox(archive: CoastlineArchive, bbox, source_name: str) -> dict:
    cell_lines = list(archive.iter_cells(cells_in_bbox(*bbox)))
    return lines_to_feature_collection_with_bboxes(cell_lines, source_name=source_name)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Export coastline archive cells to GeoJSON.")
    parser.add_argument("archive", type=Path, help="Coastline archive")
    parser.add_argument("output", type=Path, help="Output GeoJSON")
    parser.add_argument(
        "--bbox",
        nargs=4,
        type=float,
        default=[-180.0, -90.0, 180.0, 90.0],
        metavar=("LON_MIN", "LAT_MIN", "LON_MAX", "LAT_MAX"),
        help="Area to export (default: whole globe)",
    )
    parser.add_argument("--source-name", default="SWBD", help="Source tag written to properties")
    args = parser.parse_args(argv)

    try:
        bbox = parse_bbox(args.bbox)
        with CoastlineArchive(args.archive) as archive:
            out = export_bbox(archive, bbox, args.source_name)
        save_geojson(args.output, out)
    except (CoastlineError, OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(f"Features: {len(out['features'])}")
    print(f"Wrote {args.output}")
    print(f"File size: {args.output.stat().st_size / (1024 * 1024):.2f} MB")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
