#!/usr/bin/env python3
"""
Summarize a coastline archive: version, populated cells, totals, and
optionally the decoded contents of a single cell.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from coast_errors import CoastlineError
from coast_reader import CoastlineArchive
from coastline_pipeline import compute_basic_stats, parse_cell
from swbd_grid import BODY_START


def summarize_archive(archive: CoastlineArchive) -> dict:
    cells = archive.populated_cells()
    segments = 0
    vertices = 0
    for cell in cells:
        entry = archive.entry(*cell)
        segments += entry.segments
        vertices += entry.vertices
    return {
        "version": archive.version,
        "cells": len(cells),
        "segments": segments,
        "vertices": vertices,
        "body_bytes": archive.size - BODY_START,
    }


def describe_cell(archive: CoastlineArchive, lat_index: int, lon_index: int) -> dict:
    entry = archive.entry(lat_index, lon_index)
    lines = archive.read_cell_lonlat(lat_index, lon_index)
    stats = compute_basic_stats(lines, with_length=True)
    stats["offset"] = entry.offset
    stats["block_bytes"] = archive.cell_extent(lat_index, lon_index) if entry.segments else 0
    return stats


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Summarize a .ccl coastline archive.")
    parser.add_argument("archive", type=Path, help="Coastline archive")
    parser.add_argument(
        "--cell",
        default=None,
        help="Also describe one cell, given as lat_index,lon_index (0-179,0-359)",
    )
    args = parser.parse_args(argv)

    try:
        with CoastlineArchive(args.archive) as archive:
            summary = summarize_archive(archive)
            print(f"Version: {summary['version']}")
            print(f"Populated cells: {summary['cells']}")
            print(f"Segments: {summary['segments']}")
            print(f"Vertices: {summary['vertices']}")
            print(f"Body size: {summary['body_bytes'] / (1024 * 1024):.2f} MB")
            if args.cell:
                lat_index, lon_index = parse_cell(args.cell)
                print(f"Cell ({lat_index}, {lon_index}): {describe_cell(archive, lat_index, lon_index)}")
    except (CoastlineError, OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
