"""
cell_stager.py
--------------

Per-cell, append-only accumulation of coastline segments between reading
the source shapefiles and packing the archive.

Two interchangeable stores:

* ``MemoryCellStager`` keeps everything in a dict, fine for regional runs.
* ``ScratchCellStager`` spills each cell to its own scratch file so a full
  global build does not need all segments in memory at once.

Both expose ``append(cell_id, segment)`` and ``drain(cell_id)``. Draining is
destructive: once a cell has been handed to the packer its data is gone.
"""

from __future__ import annotations

from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np

from coast_errors import StagingError
from swbd_grid import CELL_COUNT, ScaledPoint, Segment, cell_from_index, cell_index

# Scratch records: int32 count, then count (x, y) int32 pairs, little-endian.
SCRATCH_DTYPE = np.dtype("<i4")
SCRATCH_PREFIX = "cell_"


class MemoryCellStager:
    """In-memory cell_id -> [segments] store."""

    def __init__(self):
        self._cells: Dict[int, List[Segment]] = defaultdict(list)

    def append(self, cell_id: int, segment: Sequence[ScaledPoint]) -> None:
        if len(segment) < 2:
            return
        self._cells[cell_id].append([(int(x), int(y)) for x, y in segment])

    def drain(self, cell_id: int) -> List[Segment]:
        return self._cells.pop(cell_id, [])

    def staged_cells(self) -> List[int]:
        return sorted(self._cells)


class ScratchCellStager:
    """
    One scratch file per cell under ``scratch_dir``.

    Leftover scratch files from a crashed run would silently merge into the
    next build, so they are removed when the stager is created.
    """

    def __init__(self, scratch_dir: Path, verbose: bool = False):
        self.scratch_dir = Path(scratch_dir)
        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        removed = self.clear()
        if verbose and removed:
            print(f"Removed {removed} stale scratch files from {self.scratch_dir}")

    def path_for(self, cell_id: int) -> Path:
        lat_index, lon_index = cell_from_index(cell_id)
        return self.scratch_dir / f"{SCRATCH_PREFIX}{lon_index:03d}_{lat_index:03d}"

    def clear(self) -> int:
        removed = 0
        for path in self.scratch_dir.glob(f"{SCRATCH_PREFIX}[0-9][0-9][0-9]_[0-9][0-9][0-9]"):
            path.unlink()
            removed += 1
        return removed

    def append(self, cell_id: int, segment: Sequence[ScaledPoint]) -> None:
        if len(segment) < 2:
            return
        if not 0 <= cell_id < CELL_COUNT:
            raise ValueError(f"cell index {cell_id} is outside 0..{CELL_COUNT - 1}")
        record = np.empty(1 + 2 * len(segment), dtype=SCRATCH_DTYPE)
        record[0] = len(segment)
        record[1:] = np.asarray(segment, dtype=np.int64).reshape(-1)
        with self.path_for(cell_id).open("ab") as fp:
            record.tofile(fp)

    def drain(self, cell_id: int) -> List[Segment]:
        path = self.path_for(cell_id)
        if not path.exists():
            return []
        if path.stat().st_size % SCRATCH_DTYPE.itemsize:
            raise StagingError(f"{path}: size is not a whole number of int32 words")
        data = np.fromfile(path, dtype=SCRATCH_DTYPE)

        segments: List[Segment] = []
        pos = 0
        while pos < data.size:
            count = int(data[pos])
            pos += 1
            if count < 0:
                raise StagingError(f"{path}: negative segment count {count} at word {pos - 1}")
            end = pos + 2 * count
            if end > data.size:
                raise StagingError(
                    f"{path}: segment of {count} points truncated at word {data.size}"
                )
            if count > 1:
                pairs = data[pos:end].reshape(count, 2)
                segments.append([(int(x), int(y)) for x, y in pairs])
            pos = end

        path.unlink()
        return segments

    def staged_cells(self) -> List[int]:
        cells = []
        for path in self.scratch_dir.glob(f"{SCRATCH_PREFIX}[0-9][0-9][0-9]_[0-9][0-9][0-9]"):
            lon_index, lat_index = (int(v) for v in path.name[len(SCRATCH_PREFIX):].split("_"))
            cells.append(cell_index(lat_index, lon_index))
        return sorted(cells)


def make_stager(scratch_dir: Optional[Path] = None, verbose: bool = False):
    """Scratch-file stager when a directory is given, in-memory otherwise."""
    if scratch_dir is None:
        return MemoryCellStager()
    return ScratchCellStager(scratch_dir, verbose=verbose)
