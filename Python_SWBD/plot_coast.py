#!/usr/bin/env python3
"""
Plot decoded archive coastline for a bbox as a quick matplotlib diagnostic image.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection

from coast_errors import CoastlineError
from coast_reader import CoastlineArchive
from coastline_pipeline import cells_in_bbox, parse_bbox


def collect_segments(archive: CoastlineArchive, bbox) -> list:
    segments = []
    for _cell, lines in archive.iter_cells(cells_in_bbox(*bbox)):
        segments.extend(lines)
    return segments


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Plot coastline archive cells to PNG.")
    parser.add_argument("archive", type=Path, help="Coastline archive")
    parser.add_argument("output", type=Path, help="Output PNG path")
    parser.add_argument(
        "--bbox",
        nargs=4,
        type=float,
        required=True,
        metavar=("LON_MIN", "LAT_MIN", "LON_MAX", "LAT_MAX"),
        help="Area to plot in degrees",
    )
    parser.add_argument("--title", default="SWBD Coastline", help="Plot title")
    parser.add_argument("--line-width", type=float, default=0.25, help="Line width in px")
    parser.add_argument("--dpi", type=int, default=220, help="PNG DPI")
    parser.add_argument("--figsize", default="10,10", help="Figure size in inches, e.g. 10,10")
    args = parser.parse_args(argv)

    try:
        lon_min, lat_min, lon_max, lat_max = parse_bbox(args.bbox)
        with CoastlineArchive(args.archive) as archive:
            segments = collect_segments(archive, (lon_min, lat_min, lon_max, lat_max))
    except (CoastlineError, OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if not segments:
        print("error: no coastline segments inside the bbox", file=sys.stderr)
        return 1

    w, h = [float(v.strip()) for v in args.figsize.split(",")]
    fig, ax = plt.subplots(figsize=(w, h), dpi=args.dpi)
    lc = LineCollection(segments, colors="black", linewidths=args.line_width, alpha=0.9)
    ax.add_collection(lc)
    ax.set_xlim(lon_min, lon_max)
    ax.set_ylim(lat_min, lat_max)
    ax.set_aspect("equal", adjustable="box")
    ax.set_title(args.title)
    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    ax.grid(True, alpha=0.2)
    fig.tight_layout()

    args.output.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(args.output)
    plt.close(fig)

    print(f"saved: {args.output}")
    print(f"segments: {len(segments)}")
    print(f"size_mb: {args.output.stat().st_size / (1024 * 1024):.2f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
