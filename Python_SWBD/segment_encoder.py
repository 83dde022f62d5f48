"""
segment_encoder.py
------------------

Difference-coded, bit-packed storage for one coastline segment.

Each segment is packed MSB-first with no alignment between fields:

    5 bits            count bits
    5 bits            lon offset bits
    5 bits            lat offset bits
    count bits        number of vertices N
    18 bits           lon bias + 131071
    18 bits           lat bias + 131071
    26 bits           start lon (scaled)
    25 bits           start lat (scaled)
    (N - 1) pairs     lon offset + lon bias, lat offset + lat bias

The bias is minus the smallest delta, so every stored offset is a
non-negative number no larger than the delta range. Offset widths are the
minimum that hold that range. Segments whose adjacent points are more than
131071 units (about 1.3 degrees) apart cannot be stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from bitpack import BitReader, BitWriter
from coast_errors import ArchiveFormatError, RangeOverflowError
from swbd_grid import ScaledPoint, Segment

WIDTH_FIELD_BITS = 5
BIAS_FIELD_BITS = 18
START_LON_BITS = 26
START_LAT_BITS = 25
MAX_BIAS = (1 << (BIAS_FIELD_BITS - 1)) - 1
MAX_FIELD_WIDTH = (1 << WIDTH_FIELD_BITS) - 1

FIXED_BITS = 3 * WIDTH_FIELD_BITS + 2 * BIAS_FIELD_BITS + START_LON_BITS + START_LAT_BITS


@dataclass(frozen=True)
class SegmentLayout:
    """Field widths and biases chosen for one segment."""

    count: int
    count_bits: int
    lon_offset_bits: int
    lat_offset_bits: int
    bias_x: int
    bias_y: int

    @property
    def nbytes(self) -> int:
        return encoded_size(self.count, self.count_bits, self.lon_offset_bits, self.lat_offset_bits)


def bits_needed(value: int) -> int:
    """floor(log2(value)) + 1 for value >= 1."""
    if value < 1:
        raise ValueError(f"bits_needed requires a positive value, got {value}")
    return int(value).bit_length()


def encoded_size(count: int, count_bits: int, lon_offset_bits: int, lat_offset_bits: int) -> int:
    """
    Bytes occupied by a packed segment.

    The bit total includes one offset pair more than is written (N pairs,
    not N - 1) and is then rounded down plus one byte, so the buffer always
    ends in zero padding. Readers must size segments the same way.
    """
    total_bits = FIXED_BITS + count_bits + count * (lon_offset_bits + lat_offset_bits)
    return total_bits // 8 + 1


def plan_segment(segment: Sequence[ScaledPoint]) -> SegmentLayout:
    """Compute biases and minimal field widths, rejecting anything that cannot be stored."""
    count = len(segment)
    if count < 2:
        raise ValueError(f"a segment needs at least 2 vertices, got {count}")

    points = np.asarray(segment, dtype=np.int64)
    dx = np.diff(points[:, 0])
    dy = np.diff(points[:, 1])
    min_dx, max_dx = int(dx.min()), int(dx.max())
    min_dy, max_dy = int(dy.min()), int(dy.max())

    bias_x = -min_dx
    bias_y = -min_dy
    if abs(bias_x) > MAX_BIAS:
        raise RangeOverflowError(f"lon bias {bias_x} out of range (limit +/-{MAX_BIAS})")
    if abs(bias_y) > MAX_BIAS:
        raise RangeOverflowError(f"lat bias {bias_y} out of range (limit +/-{MAX_BIAS})")

    range_x = (max_dx - min_dx) or 1
    range_y = (max_dy - min_dy) or 1

    layout = SegmentLayout(
        count=count,
        count_bits=bits_needed(count),
        lon_offset_bits=bits_needed(range_x),
        lat_offset_bits=bits_needed(range_y),
        bias_x=bias_x,
        bias_y=bias_y,
    )
    for name, width in (
        ("count", layout.count_bits),
        ("lon offset", layout.lon_offset_bits),
        ("lat offset", layout.lat_offset_bits),
    ):
        if width > MAX_FIELD_WIDTH:
            raise RangeOverflowError(f"{name} needs {width} bits; at most 31 can be stored")
    return layout


def encode_segment(segment: Sequence[ScaledPoint]) -> Tuple[bytes, int]:
    """Pack a segment. Returns (buffer, vertex count)."""
    layout = plan_segment(segment)
    points = np.asarray(segment, dtype=np.int64)
    x_offsets = np.diff(points[:, 0]) + layout.bias_x
    y_offsets = np.diff(points[:, 1]) + layout.bias_y

    writer = BitWriter(layout.nbytes)
    writer.write(WIDTH_FIELD_BITS, layout.count_bits)
    writer.write(WIDTH_FIELD_BITS, layout.lon_offset_bits)
    writer.write(WIDTH_FIELD_BITS, layout.lat_offset_bits)
    writer.write(layout.count_bits, layout.count)
    writer.write(BIAS_FIELD_BITS, layout.bias_x + MAX_BIAS)
    writer.write(BIAS_FIELD_BITS, layout.bias_y + MAX_BIAS)
    writer.write(START_LON_BITS, int(points[0, 0]))
    writer.write(START_LAT_BITS, int(points[0, 1]))
    for xoff, yoff in zip(x_offsets.tolist(), y_offsets.tolist()):
        writer.write(layout.lon_offset_bits, xoff)
        writer.write(layout.lat_offset_bits, yoff)

    return writer.getvalue(), layout.count


def decode_segment(buffer: bytes, offset: int = 0) -> Tuple[Segment, int]:
    """
    Unpack the segment starting at byte ``offset`` of ``buffer``.

    Returns (points, bytes consumed).
    """
    reader = BitReader(buffer, offset * 8)
    count_bits = reader.read(WIDTH_FIELD_BITS)
    lon_offset_bits = reader.read(WIDTH_FIELD_BITS)
    lat_offset_bits = reader.read(WIDTH_FIELD_BITS)
    if not (count_bits and lon_offset_bits and lat_offset_bits):
        raise ArchiveFormatError(f"zero-width field in segment header at byte {offset}")
    count = reader.read(count_bits)
    bias_x = reader.read(BIAS_FIELD_BITS) - MAX_BIAS
    bias_y = reader.read(BIAS_FIELD_BITS) - MAX_BIAS
    x = reader.read(START_LON_BITS)
    y = reader.read(START_LAT_BITS)

    points: Segment = [(x, y)]
    for _ in range(count - 1):
        x += reader.read(lon_offset_bits) - bias_x
        y += reader.read(lat_offset_bits) - bias_y
        points.append((x, y))

    return points, encoded_size(count, count_bits, lon_offset_bits, lat_offset_bits)
