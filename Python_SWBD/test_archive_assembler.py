import io

import pytest

from archive_assembler import (
    ArchiveAssembler,
    HeaderEntry,
    archive_path,
    assemble_archive,
    format_version,
)
from cell_stager import MemoryCellStager
from coast_errors import ArchiveFormatError, RangeOverflowError
from coast_reader import CoastlineArchive
from segment_encoder import encode_segment
from swbd_grid import BODY_START, cell_index, header_entry_offset

CELLS = {
    (0, 0): [[(10, 10), (20, 25), (15, 40)]],
    (100, 0): [[(50000, 10025000), (75000, 10075000)], [(60000, 10500000), (61000, 10501000), (62000, 10499000)]],
    (100, 1): [[(150000, 10050000), (150001, 10050002)]],
    (179, 359): [[(35999000, 17999000), (35999999, 17999999)]],
}


@pytest.fixture
def archive_file(tmp_path):
    stager = MemoryCellStager()
    for (lat, lon), segments in CELLS.items():
        for segment in segments:
            stager.append(cell_index(lat, lon), segment)
    path = tmp_path / "coast.ccl"
    summary = assemble_archive(path, stager, version="Test Archive V0", verbose=False)
    return path, summary


def test_header_entry_packs_three_big_endian_words():
    entry = HeaderEntry(offset=0x00BDE080, segments=3, vertices=0x01020304)
    assert entry.pack() == b"\x00\xbd\xe0\x80\x00\x00\x00\x03\x01\x02\x03\x04"
    assert HeaderEntry.unpack(entry.pack()) == entry


def test_header_fields_must_fit_32_bits():
    with pytest.raises(RangeOverflowError):
        HeaderEntry(offset=1 << 32).pack()


def test_version_preamble():
    raw = format_version("SWBD Coastline File V1.0")
    assert len(raw) == 128
    assert raw.startswith(b"SWBD Coastline File V1.0\n\0")
    with pytest.raises(ValueError):
        format_version("x" * 127)


def test_archive_path_adds_extension(tmp_path):
    assert archive_path(tmp_path / "coast").name == "coast.ccl"
    assert archive_path(tmp_path / "coast.ccl").name == "coast.ccl"


def test_summary_counts(archive_file):
    path, summary = archive_file
    assert summary.cells_populated == 4
    assert summary.segments_packed == 5
    assert summary.vertices_packed == 12
    assert path.stat().st_size == BODY_START + summary.body_bytes


def test_empty_cells_keep_zero_entries(archive_file):
    path, _ = archive_file
    data = path.read_bytes()
    start = header_entry_offset(cell_index(0, 1))
    assert data[start:start + 12] == bytes(12)
    with CoastlineArchive(path) as archive:
        assert archive.entry(50, 50) == HeaderEntry()
        assert archive.read_cell(50, 50) == []


def test_first_block_starts_after_header(archive_file):
    path, _ = archive_file
    with CoastlineArchive(path) as archive:
        assert archive.version == "Test Archive V0"
        entry = archive.entry(0, 0)
        assert entry == HeaderEntry(offset=BODY_START, segments=1, vertices=3)


def test_decoded_cells_match_input(archive_file):
    path, _ = archive_file
    with CoastlineArchive(path) as archive:
        assert archive.populated_cells() == sorted(CELLS)
        for cell, segments in CELLS.items():
            assert archive.read_cell(*cell) == segments
            assert archive.entry(*cell).vertices == sum(len(s) for s in segments)


def test_blocks_are_contiguous_in_cell_order(archive_file):
    path, _ = archive_file
    with CoastlineArchive(path) as archive:
        cells = archive.populated_cells()
        offsets = [archive.entry(*c).offset for c in cells] + [archive.size]
        for cell, start, end in zip(cells, offsets, offsets[1:]):
            assert archive.cell_extent(*cell) == end - start


def test_block_bytes_are_the_encoded_segments(archive_file):
    path, _ = archive_file
    data = path.read_bytes()
    with CoastlineArchive(path) as archive:
        entry = archive.entry(100, 0)
    expected = b"".join(encode_segment(s)[0] for s in CELLS[(100, 0)])
    assert data[entry.offset:entry.offset + len(expected)] == expected


def test_assembler_enforces_stage_order():
    assembler = ArchiveAssembler(io.BytesIO())
    with pytest.raises(RuntimeError):
        assembler.reserve_header()
    assembler.write_preamble()
    with pytest.raises(RuntimeError):
        assembler.add_cell(0, [])
    assembler.reserve_header()
    assembler.add_cell(5, [])
    with pytest.raises(ValueError):
        assembler.add_cell(5, [])
    assembler.finish()
    with pytest.raises(RuntimeError):
        assembler.add_cell(6, [])


def test_header_is_patched_in_place():
    fp = io.BytesIO()
    assembler = ArchiveAssembler(fp)
    assembler.write_preamble()
    assembler.reserve_header()
    entry = assembler.add_cell(cell_index(1, 2), [[(1, 1), (2, 2)], [(3, 3)]])
    assembler.finish()
    data = fp.getvalue()
    assert entry.segments == 1 and entry.vertices == 2
    start = header_entry_offset(cell_index(1, 2))
    assert HeaderEntry.unpack(data, start) == entry
    assert fp.tell() == len(data)


def test_overflow_aborts_assembly(tmp_path):
    stager = MemoryCellStager()
    stager.append(cell_index(10, 10), [(1_000_000, 1_000_000), (1_150_000, 1_000_000)])
    with pytest.raises(RangeOverflowError):
        assemble_archive(tmp_path / "bad.ccl", stager, verbose=False)


def test_reader_rejects_short_files(tmp_path):
    path = tmp_path / "short.ccl"
    path.write_bytes(format_version("x"))
    with pytest.raises(ArchiveFormatError):
        CoastlineArchive(path)


def test_reader_rejects_offsets_past_eof(tmp_path):
    path = tmp_path / "bad_offset.ccl"
    data = bytearray(format_version("x") + bytes(BODY_START - 128))
    start = header_entry_offset(0)
    data[start:start + 12] = HeaderEntry(offset=BODY_START + 50, segments=1, vertices=2).pack()
    path.write_bytes(bytes(data))
    with pytest.raises(ArchiveFormatError):
        CoastlineArchive(path)
