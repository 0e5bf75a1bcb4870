"""Byte-level access to the raw data of a PDF file."""

from __future__ import annotations

from .errors import ContentReadPastBoundaryError, NotFoundError, PdfError, UnexpectedEof

_HEADER = b"%PDF-"
_HEADER_WINDOW = 1024
_WHITESPACE = b" \t\r\n\x0c\x00"
_DELIMITERS = b"()<>[]{}/%"


def to_range(start: int | None, end: int | None, length: int) -> tuple[int, int]:
    """Resolve optional bounds against a container length into a checked (start, end) pair."""
    lo = 0 if start is None else start
    hi = length if end is None else end
    if lo < 0 or hi < 0 or lo > hi or hi > length:
        raise ContentReadPastBoundaryError()
    return lo, hi


class Backend:
    """Immutable bytes of a PDF file with bounds-checked reads."""

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)

    def __len__(self) -> int:
        return len(self._data)

    def read(self, start: int | None = None, end: int | None = None) -> bytes:
        """Return the bytes between start (inclusive) and end (exclusive)."""
        lo, hi = to_range(start, end, len(self._data))
        return self._data[lo:hi]

    def locate_start_offset(self) -> int:
        """Return the offset of the ``%PDF-`` header, searched for in the first kilobyte."""
        head = self.read(None, min(_HEADER_WINDOW, len(self)))
        pos = head.find(_HEADER)
        if pos < 0:
            raise PdfError("file header is missing")
        return pos

    def locate_xref_offset(self) -> int:
        """Return the number that follows the last ``startxref`` keyword."""
        data = self._data
        pos = data.rfind(b"startxref")
        if pos < 0:
            raise NotFoundError("startxref")
        i = pos + len(b"startxref")
        while i < len(data) and data[i] in _WHITESPACE:
            i += 1
        j = i
        while j < len(data) and data[j] not in _WHITESPACE and data[j] not in _DELIMITERS:
            j += 1
        if i == j:
            raise UnexpectedEof()
        token = data[i:j]
        if not token.isdigit():
            raise PdfError(f"invalid xref offset {token.decode('latin-1')!r}")
        return int(token)