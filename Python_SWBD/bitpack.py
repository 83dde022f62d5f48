"""
MSB-first bit packing into byte buffers.

Fields are packed contiguously with no alignment between them, the first
bit of a field landing in the high bit of its byte. Because values are
assembled byte by byte, packed data reads back identically regardless of
the host's native endianness.
"""

from __future__ import annotations

from coast_errors import RangeOverflowError


def _check_width(numbits: int) -> None:
    if numbits < 1 or numbits > 32:
        raise RangeOverflowError(f"bit field width must be 1..32, got {numbits}")


def bit_pack(buffer: bytearray, start: int, numbits: int, value: int) -> None:
    """
    Write ``value`` into ``numbits`` bits of ``buffer`` starting at bit ``start``.

    Bits outside the field are left untouched. Raises RangeOverflowError when
    ``value`` is negative or does not fit the field, or the field runs past
    the end of the buffer.
    """
    _check_width(numbits)
    if value < 0 or value >> numbits:
        raise RangeOverflowError(f"value {value} does not fit in {numbits} bits")
    end = start + numbits
    if start < 0 or end > len(buffer) * 8:
        raise RangeOverflowError(
            f"bit field [{start}, {end}) overruns a {len(buffer)}-byte buffer"
        )

    first_byte = start // 8
    last_byte = (end - 1) // 8
    span = last_byte - first_byte + 1
    # Right-hand padding inside the last byte touched.
    shift = span * 8 - (start % 8) - numbits
    mask = ((1 << numbits) - 1) << shift

    window = int.from_bytes(buffer[first_byte:last_byte + 1], "big")
    window = (window & ~mask) | (value << shift)
    buffer[first_byte:last_byte + 1] = window.to_bytes(span, "big")


def bit_unpack(buffer: bytes, start: int, numbits: int) -> int:
    """Read an unsigned ``numbits``-bit field from ``buffer`` at bit ``start``."""
    _check_width(numbits)
    end = start + numbits
    if start < 0 or end > len(buffer) * 8:
        raise RangeOverflowError(
            f"bit field [{start}, {end}) overruns a {len(buffer)}-byte buffer"
        )
    first_byte = start // 8
    last_byte = (end - 1) // 8
    span = last_byte - first_byte + 1
    shift = span * 8 - (start % 8) - numbits
    window = int.from_bytes(buffer[first_byte:last_byte + 1], "big")
    return (window >> shift) & ((1 << numbits) - 1)


class BitWriter:
    """Sequential bit_pack over a fixed-size, zero-filled buffer."""

    def __init__(self, size: int):
        self.buffer = bytearray(size)
        self.pos = 0

    def write(self, numbits: int, value: int) -> None:
        bit_pack(self.buffer, self.pos, numbits, value)
        self.pos += numbits

    def getvalue(self) -> bytes:
        return bytes(self.buffer)


class BitReader:
    """Sequential bit_unpack over a byte buffer."""

    def __init__(self, buffer: bytes, pos: int = 0):
        self.buffer = buffer
        self.pos = pos

    def read(self, numbits: int) -> int:
        value = bit_unpack(self.buffer, self.pos, numbits)
        self.pos += numbits
        return value
