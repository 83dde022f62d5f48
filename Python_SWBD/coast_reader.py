"""
coast_reader.py
---------------

Random-access reader for coastline archives written by build_swbd.

Usage:
    from coast_reader import CoastlineArchive

    with CoastlineArchive("coast_swbd.ccl") as archive:
        for lon_lat_line in archive.read_cell_lonlat(137, 57):
            ...
"""

from __future__ import annotations

import mmap
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from archive_assembler import HeaderEntry
from coast_errors import ArchiveFormatError, CoastlineError
from segment_encoder import decode_segment
from swbd_grid import (
    BODY_START,
    CELL_COUNT,
    HEADER_ENTRY_SIZE,
    LonLat,
    ScaledPoint,
    VERSION_SIZE,
    cell_from_index,
    cell_index,
    descale,
)


class CoastlineArchive:
    """Memory-mapped view of a .ccl archive."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._fp = open(self.path, "rb")
        try:
            self.size = self.path.stat().st_size
            if self.size < BODY_START:
                raise ArchiveFormatError(
                    f"{self.path}: {self.size} bytes is shorter than the {BODY_START}-byte header"
                )
            self._data = mmap.mmap(self._fp.fileno(), 0, access=mmap.ACCESS_READ)
        except Exception:
            self._fp.close()
            raise
        self.version = bytes(self._data[:VERSION_SIZE]).split(b"\0", 1)[0].decode("ascii").strip()
        self._entries = [
            HeaderEntry.unpack(self._data, VERSION_SIZE + i * HEADER_ENTRY_SIZE)
            for i in range(CELL_COUNT)
        ]
        self._validate()

    def _validate(self) -> None:
        for index, entry in enumerate(self._entries):
            if not entry.segments:
                continue
            if not BODY_START <= entry.offset < self.size:
                lat_index, lon_index = cell_from_index(index)
                raise ArchiveFormatError(
                    f"{self.path}: cell ({lat_index}, {lon_index}) points at offset "
                    f"{entry.offset} outside the body [{BODY_START}, {self.size})"
                )

    def close(self) -> None:
        self._data.close()
        self._fp.close()

    def __enter__(self) -> "CoastlineArchive":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def entry(self, lat_index: int, lon_index: int) -> HeaderEntry:
        return self._entries[cell_index(lat_index, lon_index)]

    def populated_cells(self) -> List[Tuple[int, int]]:
        return [cell_from_index(i) for i, e in enumerate(self._entries) if e.segments]

    def read_cell(self, lat_index: int, lon_index: int) -> List[List[ScaledPoint]]:
        """Decode a cell's segments as scaled integer points."""
        entry = self.entry(lat_index, lon_index)
        segments = []
        pos = entry.offset
        vertices = 0
        for _ in range(entry.segments):
            try:
                points, used = decode_segment(self._data, pos)
            except CoastlineError as exc:
                raise ArchiveFormatError(
                    f"{self.path}: cell ({lat_index}, {lon_index}) segment at byte {pos}: {exc}"
                ) from exc
            segments.append(points)
            vertices += len(points)
            pos += used
        if vertices != entry.vertices:
            raise ArchiveFormatError(
                f"{self.path}: cell ({lat_index}, {lon_index}) decoded {vertices} vertices, "
                f"header says {entry.vertices}"
            )
        return segments

    def cell_extent(self, lat_index: int, lon_index: int) -> int:
        """Bytes occupied by a cell's block, found by decoding it."""
        entry = self.entry(lat_index, lon_index)
        pos = entry.offset
        for _ in range(entry.segments):
            _points, used = decode_segment(self._data, pos)
            pos += used
        return pos - entry.offset

    def read_cell_lonlat(self, lat_index: int, lon_index: int) -> List[List[LonLat]]:
        """Decode a cell's segments as (lon, lat) degrees."""
        return [
            [descale(x, y) for x, y in segment]
            for segment in self.read_cell(lat_index, lon_index)
        ]

    def iter_cells(
        self, cells: Optional[Iterable[Tuple[int, int]]] = None
    ) -> Iterator[Tuple[Tuple[int, int], List[List[LonLat]]]]:
        """Yield (cell, lon/lat segments) for each populated cell, skipping empty ones.

        Defaults to every populated cell in index order.
        """
        for cell in self.populated_cells() if cells is None else cells:
            if self.entry(*cell).segments:
                yield cell, self.read_cell_lonlat(*cell)
