"""Stream filters: the encodings and compressions applied to PDF stream data.

Decode parameters are read from plain Python dictionaries whose keys are the
PDF names without the leading slash.
"""

from __future__ import annotations

import io
import zlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any

from .errors import (
    Ascii85TailError,
    HexDecodeError,
    IncorrectPredictorTypeError,
    PdfError,
    UnexpectedPrimitiveError,
)

DecodeFn = Callable[[bytes], bytes]

_HEX_WHITESPACE = frozenset((0, 9, 10, 12, 13, 32))
_A85_WHITESPACE = frozenset(b" \n\r\t")

_LZW_CLEAR = 256
_LZW_EOI = 257
_LZW_FIRST_FREE = 258
_LZW_MAX_TABLE = 4096
_LZW_MIN_WIDTH = 9
_LZW_MAX_WIDTH = 12

_JBIG2_END_OF_PAGE = bytes([0x00, 0x00, 0x00, 0x03, 0x31, 0x00, 0x01, 0x00, 0x00, 0x00, 0x00])
_JBIG2_END_OF_STREAM = bytes([0x00, 0x00, 0x00, 0x04, 0x33, 0x01, 0x00, 0x00, 0x00, 0x00])

_external_decoders: dict[str, DecodeFn] = {}


def _kind_name(value: Any) -> str:
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, int):
        return "Integer"
    if isinstance(value, float):
        return "Number"
    if isinstance(value, str):
        return "Name"
    if isinstance(value, (bytes, bytearray)):
        return "String"
    if isinstance(value, list):
        return "Array"
    if isinstance(value, dict):
        return "Dictionary"
    if value is None:
        return "Null"
    return type(value).__name__


def _int_entry(params: Mapping[str, Any], key: str, default: int | None) -> int | None:
    value = params.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise UnexpectedPrimitiveError("Integer", _kind_name(value))
    return value


def _bool_entry(params: Mapping[str, Any], key: str, default: bool) -> bool:
    value = params.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise UnexpectedPrimitiveError("Boolean", _kind_name(value))
    return value


@dataclass(frozen=True)
class LZWFlateParams:
    """Decode parameters shared by LZWDecode and FlateDecode."""

    predictor: int = 1
    n_components: int = 1
    bits_per_component: int = 8
    columns: int = 1
    early_change: int = 1

    @classmethod
    def from_dict(cls, params: Mapping[str, Any] | None) -> LZWFlateParams:
        """Read the parameters from a decode-parameters dictionary."""
        params = params or {}
        return cls(
            predictor=_int_entry(params, "Predictor", 1),
            n_components=_int_entry(params, "Colors", 1),
            bits_per_component=_int_entry(params, "BitsPerComponent", 8),
            columns=_int_entry(params, "Columns", 1),
            early_change=_int_entry(params, "EarlyChange", 1),
        )


@dataclass(frozen=True)
class DCTDecodeParams:
    """Decode parameters of DCTDecode (JPEG)."""

    color_transform: int | None = None

    @classmethod
    def from_dict(cls, params: Mapping[str, Any] | None) -> DCTDecodeParams:
        """Read the parameters from a decode-parameters dictionary."""
        params = params or {}
        return cls(color_transform=_int_entry(params, "ColorTransform", None))


@dataclass(frozen=True)
class CCITTFaxDecodeParams:
    """Decode parameters of CCITTFaxDecode."""

    k: int = 0
    end_of_line: bool = False
    encoded_byte_align: bool = False
    columns: int = 1728
    rows: int = 0
    end_of_block: bool = True
    black_is_1: bool = False
    damaged_rows_before_error: int = 0

    @classmethod
    def from_dict(cls, params: Mapping[str, Any] | None) -> CCITTFaxDecodeParams:
        """Read the parameters from a decode-parameters dictionary."""
        params = params or {}
        return cls(
            k=_int_entry(params, "K", 0),
            end_of_line=_bool_entry(params, "EndOfLine", False),
            encoded_byte_align=_bool_entry(params, "EncodedByteAlign", False),
            columns=_int_entry(params, "Columns", 1728),
            rows=_int_entry(params, "Rows", 0),
            end_of_block=_bool_entry(params, "EndOfBlock", True),
            black_is_1=_bool_entry(params, "BlackIs1", False),
            damaged_rows_before_error=_int_entry(params, "DamagedRowsBeforeError", 0),
        )


@dataclass(frozen=True)
class JBIG2DecodeParams:
    """Decode parameters of JBIG2Decode."""

    globals: Any = None

    @classmethod
    def from_dict(cls, params: Mapping[str, Any] | None) -> JBIG2DecodeParams:
        """Read the parameters from a decode-parameters dictionary."""
        params = params or {}
        return cls(globals=params.get("JBIG2Globals"))


class FilterKind(Enum):
    """The standard stream filters, valued by their PDF names."""

    ASCII_HEX_DECODE = "ASCIIHexDecode"
    ASCII85_DECODE = "ASCII85Decode"
    LZW_DECODE = "LZWDecode"
    FLATE_DECODE = "FlateDecode"
    JPX_DECODE = "JPXDecode"
    DCT_DECODE = "DCTDecode"
    CCITT_FAX_DECODE = "CCITTFaxDecode"
    JBIG2_DECODE = "JBIG2Decode"
    CRYPT = "Crypt"
    RUN_LENGTH_DECODE = "RunLengthDecode"


_PARAM_TYPES: dict[FilterKind, type] = {
    FilterKind.LZW_DECODE: LZWFlateParams,
    FilterKind.FLATE_DECODE: LZWFlateParams,
    FilterKind.DCT_DECODE: DCTDecodeParams,
    FilterKind.CCITT_FAX_DECODE: CCITTFaxDecodeParams,
    FilterKind.JBIG2_DECODE: JBIG2DecodeParams,
}


@dataclass(frozen=True)
class StreamFilter:
    """A filter together with its decode parameters, if the filter takes any."""

    kind: FilterKind
    params: Any = None

    def __post_init__(self) -> None:
        param_type = _PARAM_TYPES.get(self.kind)
        if param_type is not None and self.params is None:
            object.__setattr__(self, "params", param_type())

    @property
    def name(self) -> str:
        """The PDF name of the filter."""
        return self.kind.value

    @classmethod
    def from_kind_and_params(
        cls, kind: str, params: Mapping[str, Any] | None
    ) -> StreamFilter:
        """Build a filter from its PDF name and its decode-parameters dictionary."""
        try:
            filter_kind = FilterKind(kind)
        except ValueError:
            raise PdfError(f'Unrecognized filter type "{kind}"') from None
        param_type = _PARAM_TYPES.get(filter_kind)
        if param_type is None:
            return cls(filter_kind)
        return cls(filter_kind, param_type.from_dict(params))


class PredictorType(IntEnum):
    """PNG row predictors."""

    NO_FILTER = 0
    SUB = 1
    UP = 2
    AVG = 3
    PAETH = 4

    @classmethod
    def from_int(cls, n: int) -> PredictorType:
        """Return the predictor with the given number."""
        try:
            return cls(n)
        except ValueError:
            raise IncorrectPredictorTypeError(n) from None


# Hex


def decode_nibble(c: int) -> int | None:
    """Return the value of one hex digit byte, or None if it is not one."""
    if 0x30 <= c <= 0x39:
        return c - 0x30
    if 0x61 <= c <= 0x68:
        return c - 0x61 + 0xA
    if 0x41 <= c <= 0x48:
        return c - 0x41 + 0xA
    return None


def decode_hex(data: bytes) -> bytes:
    """Decode ASCIIHex data up to the ``>`` marker; an unpaired last digit is dropped."""
    body = bytes(data).split(b">", 1)[0]
    digits = iter([b for b in body if b not in _HEX_WHITESPACE])
    out = bytearray()
    for i, (high, low) in enumerate(zip(digits, digits)):
        hi, lo = decode_nibble(high), decode_nibble(low)
        if hi is None or lo is None:
            raise HexDecodeError(i * 2, bytes([high, low]))
        out.append(((hi << 4) | lo) & 0xFF)
    return bytes(out)


def encode_hex(data: bytes) -> bytes:
    """Encode data as lower-case hex digits."""
    return bytes(data).hex().encode("ascii")


# ASCII85


def _word_85(group: bytes) -> bytes:
    value = 0
    for byte in group:
        if not 0x21 <= byte <= 0x75:
            raise Ascii85TailError()
        value = value * 85 + (byte - 0x21)
    return (value & 0xFFFFFFFF).to_bytes(4, "big")


def decode_85(data: bytes) -> bytes:
    """Decode ASCII85 data that ends with ``~>``."""
    cleaned = bytes(b for b in data if b not in _A85_WHITESPACE)
    end = cleaned.find(b"~")
    if end < 0 or cleaned[end + 1 :] != b">":
        raise Ascii85TailError()
    body = cleaned[:end]

    out = bytearray()
    pos = 0
    while pos < len(body):
        if body[pos] == ord("z"):
            out += bytes(4)
            pos += 1
            continue
        group = body[pos : pos + 5]
        if len(group) == 5:
            out += _word_85(group)
            pos += 5
        else:
            tail = _word_85(group + b"u" * (5 - len(group)))
            out += tail[: len(group) - 1]
            break
    return bytes(out)


def _base85_chunk(chunk: bytes) -> bytes:
    n = int.from_bytes(chunk, "big")
    digits = []
    for _ in range(5):
        n, rem = divmod(n, 85)
        digits.append(rem + 0x21)
    return bytes(reversed(digits))


def encode_85(data: bytes) -> bytes:
    """Encode data as ASCII85 followed by the ``~>`` marker."""
    data = bytes(data)
    whole = len(data) - len(data) % 4
    out = bytearray()
    for start in range(0, whole, 4):
        chunk = data[start : start + 4]
        out += b"z" if chunk == bytes(4) else _base85_chunk(chunk)
    rest = data[whole:]
    if rest:
        out += _base85_chunk(rest + bytes(4 - len(rest)))[: len(rest) + 1]
    out += b"~>"
    return bytes(out)


# Flate


def _inflate(data: bytes) -> bytes:
    try:
        return zlib.decompress(data)
    except zlib.error:
        pass
    try:
        return zlib.decompress(data, -15)
    except zlib.error:
        raise PdfError("can't inflate") from None


def flate_decode(data: bytes, params: LZWFlateParams) -> bytes:
    """Inflate zlib or raw deflate data and undo any PNG predictor."""
    decoded = _inflate(bytes(data))
    if params.predictor <= 10:
        return decoded

    if params.columns < 0 or params.n_components < 0:
        raise PdfError("invalid predictor parameters")
    bpp = params.n_components
    stride = params.columns * params.n_components
    row_len = stride + 1
    rows = len(decoded) // row_len

    out = bytearray()
    prev = bytes(stride)
    for start in range(0, rows * row_len, row_len):
        predictor = PredictorType.from_int(decoded[start])
        row = unfilter(predictor, bpp, prev, decoded[start + 1 : start + row_len])
        out += row
        prev = row
    return bytes(out)


def flate_encode(data: bytes) -> bytes:
    """Compress data as a raw deflate stream."""
    compressor = zlib.compressobj(wbits=-15)
    return compressor.compress(bytes(data)) + compressor.flush()


# DCT


def dct_decode(data: bytes, params: DCTDecodeParams) -> bytes:
    """Decode JPEG data into raw pixel bytes (gray, RGB or CMYK)."""
    from PIL import Image, UnidentifiedImageError

    try:
        with Image.open(io.BytesIO(bytes(data))) as img:
            if img.format != "JPEG":
                raise PdfError(f"JPEG Error, caused by\n  not a JPEG image ({img.format})")
            img.load()
            if img.mode in ("L", "RGB", "CMYK"):
                return img.tobytes()
            return img.convert("RGB").tobytes()
    except (OSError, UnidentifiedImageError, ValueError) as exc:
        raise PdfError(f"JPEG Error, caused by\n  {exc}") from exc


# LZW


def _lzw_width(table_size: int, early_change: int) -> int:
    width = _LZW_MIN_WIDTH
    while width < _LZW_MAX_WIDTH and table_size + early_change >= (1 << width):
        width += 1
    return width


def _lzw_initial_table() -> list[bytes]:
    return [bytes((i,)) for i in range(256)] + [b"", b""]


def lzw_decode(data: bytes, params: LZWFlateParams) -> bytes:
    """Decode LZW data with MSB-first codes starting at 9 bits."""
    early = 1 if params.early_change != 0 else 0
    table = _lzw_initial_table()
    prev: bytes | None = None
    out = bytearray()

    acc = 0
    nbits = 0
    source = iter(bytes(data))
    while True:
        width = _lzw_width(len(table), early)
        while nbits < width:
            byte = next(source, None)
            if byte is None:
                return bytes(out)
            acc = (acc << 8) | byte
            nbits += 8
        nbits -= width
        code = acc >> nbits
        acc &= (1 << nbits) - 1

        if code == _LZW_CLEAR:
            table = _lzw_initial_table()
            prev = None
            continue
        if code == _LZW_EOI:
            return bytes(out)

        if prev is None:
            if code >= _LZW_FIRST_FREE:
                raise PdfError(f"invalid LZW code {code}")
            entry = table[code]
        else:
            if code < len(table):
                entry = table[code]
            elif code == len(table):
                entry = prev + prev[:1]
            else:
                raise PdfError(f"invalid LZW code {code}")
            if len(table) < _LZW_MAX_TABLE:
                table.append(prev + entry[:1])
        out += entry
        prev = entry


class _BitWriter:
    def __init__(self) -> None:
        self._out = bytearray()
        self._acc = 0
        self._nbits = 0

    def write(self, code: int, width: int) -> None:
        self._acc = (self._acc << width) | code
        self._nbits += width
        while self._nbits >= 8:
            self._nbits -= 8
            self._out.append((self._acc >> self._nbits) & 0xFF)
        self._acc &= (1 << self._nbits) - 1

    def finish(self) -> bytes:
        if self._nbits:
            self._out.append((self._acc << (8 - self._nbits)) & 0xFF)
            self._acc = 0
            self._nbits = 0
        return bytes(self._out)


def lzw_encode(data: bytes, params: LZWFlateParams) -> bytes:
    """Encode data as LZW without early change; other settings are refused."""
    if params.early_change != 0:
        raise PdfError("encoding early_change != 0 is not supported")

    writer = _BitWriter()
    writer.write(_LZW_CLEAR, _LZW_MIN_WIDTH)
    table = {bytes((i,)): i for i in range(256)}
    size = _LZW_FIRST_FREE
    current = b""
    for byte in bytes(data):
        extended = current + bytes((byte,))
        if extended in table:
            current = extended
            continue
        writer.write(table[current], _lzw_width(size - 1, 0))
        if size < _LZW_MAX_TABLE:
            table[extended] = size
            size += 1
        current = bytes((byte,))
    if current:
        writer.write(table[current], _lzw_width(size - 1, 0))
        writer.write(_LZW_EOI, _lzw_width(size, 0))
    else:
        writer.write(_LZW_EOI, _LZW_MIN_WIDTH)
    return writer.finish()


# Run length


def run_length_decode(data: bytes) -> bytes:
    """Decode RunLengthDecode data up to the end-of-data byte 128."""
    data = bytes(data)
    out = bytearray()
    pos = 0
    while pos < len(data):
        length = data[pos]
        if length < 128:
            start = pos + 1
            end = start + length + 1
            if end > len(data):
                raise PdfError("run length data is truncated")
            out += data[start:end]
            pos = end
        elif length >= 129:
            if pos + 1 >= len(data):
                raise PdfError("run length data is truncated")
            out += bytes((data[pos + 1],)) * (257 - length)
            pos += 2
        else:
            break
    return bytes(out)


# External decoders


def set_jpx_decoder(f: DecodeFn) -> None:
    """Install the JPEG 2000 decoder; only the first one installed is kept."""
    _external_decoders.setdefault("jpx", f)


def set_jbig2_decoder(f: DecodeFn) -> None:
    """Install the JBIG2 decoder; only the first one installed is kept."""
    _external_decoders.setdefault("jbig2", f)


def jpx_decode(data: bytes) -> bytes:
    """Decode JPEG 2000 data with the installed decoder."""
    decoder = _external_decoders.get("jpx")
    if decoder is None:
        raise PdfError("jp2k decoder not set")
    return decoder(bytes(data))


def jbig2_decode(data: bytes, globals: bytes) -> bytes:
    """Decode embedded JBIG2 data, with its global segments, using the installed decoder."""
    decoder = _external_decoders.get("jbig2")
    if decoder is None:
        raise PdfError("jbig2 decoder not set")
    stream = bytes(globals) + bytes(data) + _JBIG2_END_OF_PAGE + _JBIG2_END_OF_STREAM
    return decoder(stream)


# Dispatch


def decode(data: bytes, filter: StreamFilter) -> bytes:
    """Undo one filter."""
    kind = filter.kind
    if kind is FilterKind.ASCII_HEX_DECODE:
        return decode_hex(data)
    if kind is FilterKind.ASCII85_DECODE:
        return decode_85(data)
    if kind is FilterKind.LZW_DECODE:
        return lzw_decode(data, filter.params)
    if kind is FilterKind.FLATE_DECODE:
        return flate_decode(data, filter.params)
    if kind is FilterKind.RUN_LENGTH_DECODE:
        return run_length_decode(data)
    if kind is FilterKind.DCT_DECODE:
        return dct_decode(data, filter.params)
    raise PdfError(f"unimplemented {filter!r}")


def encode(data: bytes, filter: StreamFilter) -> bytes:
    """Apply one filter."""
    kind = filter.kind
    if kind is FilterKind.ASCII_HEX_DECODE:
        return encode_hex(data)
    if kind is FilterKind.ASCII85_DECODE:
        return encode_85(data)
    if kind is FilterKind.LZW_DECODE:
        return lzw_encode(data, filter.params)
    if kind is FilterKind.FLATE_DECODE:
        return flate_encode(data)
    raise PdfError(f"unimplemented encoding for {filter.name}")


# PNG predictors


def _paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def unfilter(filter: PredictorType, bpp: int, prev: bytes, inp: bytes) -> bytes:
    """Reverse a PNG predictor on one row, given the previous decoded row."""
    length = len(inp)
    if len(prev) != length:
        raise ValueError("previous row and input row differ in length")
    if bpp > length:
        return bytes(length)

    if filter is PredictorType.NO_FILTER:
        return bytes(inp)
    if filter is PredictorType.UP:
        return bytes((x + p) & 0xFF for x, p in zip(inp, prev))

    out = bytearray(length)
    if filter is PredictorType.SUB:
        out[:bpp] = inp[:bpp]
        for i in range(bpp, length):
            out[i] = (inp[i] + out[i - bpp]) & 0xFF
    elif filter is PredictorType.AVG:
        for i in range(bpp):
            out[i] = (inp[i] + prev[i] // 2) & 0xFF
        for i in range(bpp, length):
            out[i] = (inp[i] + (out[i - bpp] + prev[i]) // 2) & 0xFF
    elif filter is PredictorType.PAETH:
        for i in range(bpp):
            out[i] = (inp[i] + _paeth(0, prev[i], 0)) & 0xFF
        for i in range(bpp, length):
            out[i] = (inp[i] + _paeth(out[i - bpp], prev[i], prev[i - bpp])) & 0xFF
    return bytes(out)


def filter_row(method: PredictorType, bpp: int, previous: bytes, current: bytes) -> bytes:
    """Apply a PNG predictor to one row, given the previous unfiltered row."""
    cur = bytes(current)
    if method is PredictorType.NO_FILTER:
        return cur
    if method is PredictorType.SUB:
        return bytes(
            c if i < bpp else (c - cur[i - bpp]) & 0xFF for i, c in enumerate(cur)
        )
    if method is PredictorType.UP:
        return bytes((c - p) & 0xFF for c, p in zip(cur, previous))
    if method is PredictorType.AVG:
        return bytes(
            (c - previous[i] // 2) & 0xFF
            if i < bpp
            else (c - ((cur[i - bpp] + previous[i]) & 0xFF) // 2) & 0xFF
            for i, c in enumerate(cur)
        )
    return bytes(
        (c - _paeth(0, previous[i], 0)) & 0xFF
        if i < bpp
        else (c - _paeth(cur[i - bpp], previous[i], previous[i - bpp])) & 0xFF
        for i, c in enumerate(cur)
    )