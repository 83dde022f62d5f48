"""
archive_assembler.py
--------------------

Write the coastline archive:

    bytes 0-127                  ASCII version string, null padded
    128 .. 128 + 64800*12 - 1    one header entry per cell
    remainder                    packed segments, cell by cell

A header entry is three 32-bit fields (file offset of the cell's first
segment, segment count, vertex count), bit-packed MSB-first so the file is
identical on every architecture. Entries are written as zeros up front and
patched once each cell's block has been written, since the block size is
only known after packing. Cells without segments keep the zero entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Sequence

from bitpack import BitReader, BitWriter
from segment_encoder import encode_segment
from swbd_grid import (
    CELL_COLS,
    CELL_COUNT,
    CELL_ROWS,
    HEADER_ENTRY_SIZE,
    ScaledPoint,
    VERSION_SIZE,
    cell_index,
    header_entry_offset,
)

DEFAULT_FILE_VERSION = "SWBD Coastline File V1.0"
ARCHIVE_EXTENSION = ".ccl"
HEADER_FIELD_BITS = 32


@dataclass(frozen=True)
class HeaderEntry:
    offset: int = 0
    segments: int = 0
    vertices: int = 0

    def pack(self) -> bytes:
        writer = BitWriter(HEADER_ENTRY_SIZE)
        writer.write(HEADER_FIELD_BITS, self.offset)
        writer.write(HEADER_FIELD_BITS, self.segments)
        writer.write(HEADER_FIELD_BITS, self.vertices)
        return writer.getvalue()

    @classmethod
    def unpack(cls, buffer: bytes, pos: int = 0) -> "HeaderEntry":
        reader = BitReader(buffer, pos * 8)
        return cls(
            offset=reader.read(HEADER_FIELD_BITS),
            segments=reader.read(HEADER_FIELD_BITS),
            vertices=reader.read(HEADER_FIELD_BITS),
        )


EMPTY_ENTRY = HeaderEntry()


@dataclass
class AssemblySummary:
    cells_populated: int = 0
    segments_packed: int = 0
    vertices_packed: int = 0
    body_bytes: int = 0


def format_version(text: str) -> bytes:
    """Version string plus newline, null padded to 128 bytes."""
    raw = (text + "\n").encode("ascii")
    if len(raw) >= VERSION_SIZE:
        raise ValueError(f"version string must be shorter than {VERSION_SIZE - 1} characters")
    return raw.ljust(VERSION_SIZE, b"\0")


def archive_path(name: Path) -> Path:
    """Append the .ccl extension when missing."""
    name = Path(name)
    if name.name.endswith(ARCHIVE_EXTENSION):
        return name
    return name.with_name(name.name + ARCHIVE_EXTENSION)


class ArchiveAssembler:
    """
    Streams cells into an open, seekable binary file.

    Stages run strictly in order: write_preamble, reserve_header, then
    add_cell for ascending cell indices, then finish.
    """

    PREAMBLE = "preamble"
    HEADER_RESERVED = "header_reserved"
    STREAMING = "streaming"
    DONE = "done"

    def __init__(self, fp: BinaryIO):
        self.fp = fp
        self.state = self.PREAMBLE
        self.last_index = -1
        self.summary = AssemblySummary()

    def _expect(self, *states: str) -> None:
        if self.state not in states:
            raise RuntimeError(f"archive assembler is in state {self.state!r}, expected {states}")

    def write_preamble(self, version: str = DEFAULT_FILE_VERSION) -> None:
        self._expect(self.PREAMBLE)
        self.fp.seek(0)
        self.fp.write(format_version(version))
        self.state = self.HEADER_RESERVED

    def reserve_header(self) -> None:
        self._expect(self.HEADER_RESERVED)
        self.fp.seek(VERSION_SIZE)
        self.fp.write(EMPTY_ENTRY.pack() * CELL_COUNT)
        self.state = self.STREAMING

    def add_cell(self, index: int, segments: Iterable[Sequence[ScaledPoint]]) -> HeaderEntry:
        """Pack one cell's segments at the end of the file and patch its header entry."""
        self._expect(self.STREAMING)
        if not self.last_index < index < CELL_COUNT:
            raise ValueError(f"cell {index} is out of order (last written {self.last_index})")
        self.last_index = index

        address = self.fp.seek(0, 2)
        num_segments = 0
        num_vertices = 0
        for segment in segments:
            if len(segment) < 2:
                continue
            buffer, count = encode_segment(segment)
            self.fp.write(buffer)
            num_segments += 1
            num_vertices += count
            self.summary.body_bytes += len(buffer)

        if not num_segments:
            return EMPTY_ENTRY

        entry = HeaderEntry(offset=address, segments=num_segments, vertices=num_vertices)
        self.fp.flush()
        self.fp.seek(header_entry_offset(index))
        self.fp.write(entry.pack())
        self.fp.seek(0, 2)

        self.summary.cells_populated += 1
        self.summary.segments_packed += num_segments
        self.summary.vertices_packed += num_vertices
        return entry

    def finish(self) -> AssemblySummary:
        self._expect(self.STREAMING)
        self.fp.flush()
        self.state = self.DONE
        return self.summary


def assemble_archive(
    output: Path,
    stager,
    version: str = DEFAULT_FILE_VERSION,
    verbose: bool = True,
) -> AssemblySummary:
    """
    Drain every cell from ``stager`` (south to north, west to east) into a new archive.

    Returns counts for the run. A failure leaves a partial file behind that
    must not be used.
    """
    old_percent: Optional[int] = None
    with open(output, "wb") as fp:
        assembler = ArchiveAssembler(fp)
        assembler.write_preamble(version)
        assembler.reserve_header()
        for lat_index in range(CELL_ROWS):
            for lon_index in range(CELL_COLS):
                index = cell_index(lat_index, lon_index)
                assembler.add_cell(index, stager.drain(index))
            percent = int(lat_index / CELL_ROWS * 100)
            if verbose and percent != old_percent:
                print(f"{percent:03d}% packed", end="\r", flush=True)
                old_percent = percent
        summary = assembler.finish()

    if verbose:
        print("100% packed")
    return summary
