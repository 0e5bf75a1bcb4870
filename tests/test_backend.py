import pytest

from pdfstream.backend import Backend, to_range
from pdfstream.errors import (
    ContentReadPastBoundaryError,
    NotFoundError,
    PdfError,
    UnexpectedEof,
)


@pytest.mark.parametrize(
    "start,end,length,expected",
    [
        (None, None, 10, (0, 10)),
        (3, None, 10, (3, 10)),
        (None, 4, 10, (0, 4)),
        (2, 5, 10, (2, 5)),
        (10, None, 10, (10, 10)),
    ],
)
def test_to_range_valid(start, end, length, expected):
    assert to_range(start, end, length) == expected


@pytest.mark.parametrize(
    "start,end,length",
    [(11, None, 10), (None, 11, 10), (5, 2, 10), (0, 11, 10)],
)
def test_to_range_invalid(start, end, length):
    with pytest.raises(ContentReadPastBoundaryError):
        to_range(start, end, length)


def test_read_slices():
    data = b"abcdefghij"
    backend = Backend(data)
    assert len(backend) == len(data)
    assert backend.read() == data
    assert backend.read(2, 5) == data[2:5]
    assert backend.read(7) == data[7:]
    assert backend.read(None, 3) == data[:3]


def test_read_out_of_bounds():
    backend = Backend(b"abc")
    with pytest.raises(ContentReadPastBoundaryError):
        backend.read(0, 4)


def test_locate_start_offset():
    prefix = b"junk bytes\n"
    backend = Backend(prefix + b"%PDF-1.7\n")
    assert backend.locate_start_offset() == len(prefix)


def test_locate_start_offset_at_beginning():
    assert Backend(b"%PDF-1.4\nrest").locate_start_offset() == 0


def test_header_missing():
    with pytest.raises(PdfError):
        Backend(b"no header here").locate_start_offset()


def test_header_beyond_first_kilobyte():
    data = b" " * 2000 + b"%PDF-1.7"
    with pytest.raises(PdfError):
        Backend(data).locate_start_offset()


def test_locate_xref_offset():
    offset = 4711
    data = b"%PDF-1.7\nstuff\nstartxref\n" + str(offset).encode() + b"\n%%EOF"
    assert Backend(data).locate_xref_offset() == offset


def test_locate_xref_offset_uses_last():
    first, last = 100, 250
    data = (
        b"%PDF-1.7\nstartxref\n"
        + str(first).encode()
        + b"\n%%EOF\nmore\nstartxref\n"
        + str(last).encode()
        + b"\n%%EOF"
    )
    assert Backend(data).locate_xref_offset() == last


def test_locate_xref_missing_keyword():
    with pytest.raises(NotFoundError):
        Backend(b"%PDF-1.7\n%%EOF").locate_xref_offset()


def test_locate_xref_missing_number():
    with pytest.raises(UnexpectedEof) as info:
        Backend(b"%PDF-1.7\nstartxref\n").locate_xref_offset()
    assert info.value.is_eof()


def test_locate_xref_not_a_number():
    with pytest.raises(PdfError):
        Backend(b"%PDF-1.7\nstartxref\nabc\n%%EOF").locate_xref_offset()