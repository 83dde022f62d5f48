#!/usr/bin/env python3
"""
Build a compressed coastline archive from the one-degree SRTM Water Body
Data (SWBD) shapefiles:

1) read every tile's shapefile(s) found in INPUT_DIR
2) split the water polygons into coastline segments, dropping the
   closure points that lie on the tile edges
3) stage segments per cell
4) difference-code and bit-pack each cell into OUTPUT_FILE (.ccl)

Example:
    python build_swbd.py /data1/SWBDdata coast_swbd.ccl
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, Iterator, Optional

from archive_assembler import DEFAULT_FILE_VERSION, archive_path, assemble_archive
from cell_stager import make_stager
from coast_errors import CoastlineError
from segment_extractor import extract_segments
from shape_source import ShapeRecord, index_input_dir, read_shape_records
from swbd_grid import cell_index


class VertexCounter:
    """Pass records through while counting raw input vertices."""

    def __init__(self):
        self.total = 0

    def wrap(self, records: Iterable[ShapeRecord]) -> Iterator[ShapeRecord]:
        for record in records:
            self.total += record.n_vertices
            yield record


def stage_input_dir(input_dir: Path, stager, verbose: bool = True) -> dict:
    """Extract and stage the segments of every cell that has source data."""
    counter = VertexCounter()
    files_read = 0
    segments_staged = 0
    for (lat_index, lon_index), sources in index_input_dir(input_dir).items():
        index = cell_index(lat_index, lon_index)
        for path in sources:
            if verbose:
                print(f"Reading {path}", end="\r", flush=True)
            records = counter.wrap(read_shape_records(path))
            for segment in extract_segments(records, lat_index, lon_index):
                stager.append(index, segment)
                segments_staged += 1
            files_read += 1
    if verbose:
        print()
    return {"files": files_read, "raw_vertices": counter.total, "segments": segments_staged}


def build_archive(
    input_dir: Path,
    output: Path,
    scratch_dir: Optional[Path] = None,
    version: str = DEFAULT_FILE_VERSION,
    verbose: bool = True,
):
    """Run both phases. Returns (staging stats, AssemblySummary)."""
    if not input_dir.is_dir():
        raise NotADirectoryError(f"{input_dir}: input directory not found")
    stager = make_stager(scratch_dir, verbose=verbose)
    staged = stage_input_dir(input_dir, stager, verbose=verbose)
    if verbose:
        print(f"Input files: {staged['files']}")
        print(f"Cells staged: {len(stager.staged_cells())}")
        print(f"Writing {output}")
    summary = assemble_archive(output, stager, version=version, verbose=verbose)
    return staged, summary


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Build a bit-packed coastline archive from SWBD shapefiles.",
        epilog="If OUTPUT_FILE does not end in .ccl the extension is added.",
    )
    parser.add_argument("input_dir", type=Path, help="Directory holding the SWBD .shp tiles")
    parser.add_argument("output_file", type=Path, help="Output coastline archive")
    parser.add_argument(
        "--scratch-dir",
        type=Path,
        default=None,
        help="Stage segments in per-cell scratch files here instead of in memory",
    )
    parser.add_argument(
        "--file-version",
        default=DEFAULT_FILE_VERSION,
        help=f"Version string written to the archive preamble (default: {DEFAULT_FILE_VERSION!r})",
    )
    parser.add_argument("--quiet", action="store_true", help="Only print errors")
    args = parser.parse_args(argv)
    verbose = not args.quiet

    output = archive_path(args.output_file)
    try:
        staged, summary = build_archive(
            args.input_dir,
            output,
            scratch_dir=args.scratch_dir,
            version=args.file_version,
            verbose=verbose,
        )
    except (CoastlineError, OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        if output.exists():
            print(f"error: {output} is incomplete and should be deleted", file=sys.stderr)
        return 1

    if verbose:
        print(f"Total points read = {staged['raw_vertices']}")
        print(f"Total points packed = {summary.vertices_packed}")
        print(f"Segments packed: {summary.segments_packed} in {summary.cells_populated} cells")
        print(f"File size: {output.stat().st_size / (1024 * 1024):.2f} MB")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
