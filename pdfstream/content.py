"""Content streams: parsing operators out of stream data and writing them back.

PDF values are given as plain Python objects: names as ``str``, strings as
``bytes``, integers as ``int``, reals as ``float``, arrays as ``list``,
dictionaries as ``dict``, booleans as ``bool`` and null as ``None``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from .errors import (
    ContentReadPastBoundaryError,
    MissingEntryError,
    NoOpArgError,
    PdfError,
    UnexpectedEof,
    UnexpectedLexemeError,
    UnexpectedPrimitiveError,
    UnknownVariantError,
)
from .filters import StreamFilter
from .ops import (
    BeginMarkedContent,
    BeginText,
    CharSpacing,
    Clip,
    Close,
    Cmyk,
    CurveTo,
    Dash,
    DrawRect,
    EndMarkedContent,
    EndPath,
    EndText,
    Fill,
    FillAndStroke,
    FillColor,
    FillColorSpace,
    Flatness,
    GraphicsState,
    Gray,
    InlineImage,
    InlineImageOp,
    Leading,
    LineCap,
    LineJoin,
    LineTo,
    LineWidth,
    MarkedContentPoint,
    Matrix,
    MiterLimit,
    MoveTextPosition,
    MoveTo,
    OtherColor,
    Point,
    Rect,
    RenderingIntent,
    Restore,
    Rgb,
    Save,
    SetLineCap,
    SetLineJoin,
    SetRenderingIntent,
    SetTextMatrix,
    Stroke,
    StrokeColor,
    StrokeColorSpace,
    TextDraw,
    TextDrawAdjusted,
    TextFont,
    TextMode,
    TextNewline,
    TextRenderMode,
    TextRise,
    TextScaling,
    Transform,
    Winding,
    WordSpacing,
    XObject,
    serialize_ops,
)

logger = logging.getLogger(__name__)

_WHITESPACE = frozenset(b" \t\r\n\x0c\x00")
_DELIMITERS = frozenset(b"()<>[]{}/%")
_NUMBER = re.compile(rb"[+-]?(?:\d+\.?\d*|\.\d+)")
_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")
_STRING_ESCAPES = {
    ord("n"): 10,
    ord("r"): 13,
    ord("t"): 9,
    ord("b"): 8,
    ord("f"): 12,
    ord("("): ord("("),
    ord(")"): ord(")"),
    ord("\\"): ord("\\"),
}

_INLINE_KEYS = {
    "BPC": "BitsPerComponent",
    "CS": "ColorSpace",
    "D": "Decode",
    "DP": "DecodeParms",
    "F": "Filter",
    "H": "Height",
    "IM": "ImageMask",
    "I": "Interpolate",
    "W": "Width",
}
_INLINE_COLOR_SPACES = {
    "G": "DeviceGray",
    "RGB": "DeviceRGB",
    "CMYK": "DeviceCMYK",
    "I": "Indexed",
}
_INLINE_FILTERS = {
    "AHx": "ASCIIHexDecode",
    "A85": "ASCII85Decode",
    "LZW": "LZWDecode",
    "Fl": "FlateDecode",
    "RL": "RunLengthDecode",
    "CCF": "CCITTFaxDecode",
    "DCT": "DCTDecode",
}


def _kind(value: Any) -> str:
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


# Lexing and primitive parsing


class _Lexer:
    def __init__(self, data: bytes) -> None:
        self.data = bytes(data)
        self.pos = 0

    def skip_whitespace(self) -> None:
        data, i, n = self.data, self.pos, len(self.data)
        while i < n:
            c = data[i]
            if c in _WHITESPACE:
                i += 1
            elif c == 0x25:
                while i < n and data[i] not in (10, 13):
                    i += 1
            else:
                break
        self.pos = i

    def next_token(self) -> bytes:
        self.skip_whitespace()
        data, i = self.data, self.pos
        if i >= len(data):
            raise UnexpectedEof()
        if data[i] in _DELIMITERS:
            self.pos = i + 2 if data[i : i + 2] in (b"<<", b">>") else i + 1
            return data[i : self.pos]
        j = i
        while j < len(data) and data[j] not in _WHITESPACE and data[j] not in _DELIMITERS:
            j += 1
        self.pos = j
        return data[i:j]

    def next_expect(self, expected: bytes) -> None:
        self.skip_whitespace()
        start = self.pos
        token = self.next_token()
        if token != expected:
            raise UnexpectedLexemeError(
                start, token.decode("latin-1"), expected.decode("latin-1")
            )

    def seek_substr(self, needle: bytes) -> bool:
        idx = self.data.find(needle, self.pos)
        if idx < 0:
            return False
        self.pos = idx + len(needle)
        return True


def _read_name(lexer: _Lexer) -> str:
    data, i = lexer.data, lexer.pos
    j = i
    while j < len(data) and data[j] not in _WHITESPACE and data[j] not in _DELIMITERS:
        j += 1
    lexer.pos = j
    raw = data[i:j]
    out = bytearray()
    k = 0
    while k < len(raw):
        if raw[k] == ord("#") and k + 2 < len(raw) + 0 and all(
            b in _HEX_DIGITS for b in raw[k + 1 : k + 3]
        ) and len(raw[k + 1 : k + 3]) == 2:
            out.append(int(raw[k + 1 : k + 3], 16))
            k += 3
        else:
            out.append(raw[k])
            k += 1
    try:
        return out.decode("utf-8")
    except UnicodeDecodeError:
        return out.decode("latin-1")


def _read_literal_string(lexer: _Lexer) -> bytes:
    data, i, n = lexer.data, lexer.pos, len(lexer.data)
    out = bytearray()
    depth = 1
    while True:
        if i >= n:
            raise UnexpectedEof()
        c = data[i]
        i += 1
        if c == 0x5C:
            if i >= n:
                raise UnexpectedEof()
            e = data[i]
            i += 1
            if e in _STRING_ESCAPES:
                out.append(_STRING_ESCAPES[e])
            elif 0x30 <= e <= 0x37:
                value = e - 0x30
                for _ in range(2):
                    if i < n and 0x30 <= data[i] <= 0x37:
                        value = value * 8 + data[i] - 0x30
                        i += 1
                    else:
                        break
                out.append(value & 0xFF)
            elif e == 13:
                if i < n and data[i] == 10:
                    i += 1
            elif e != 10:
                out.append(e)
        elif c == ord("("):
            depth += 1
            out.append(c)
        elif c == ord(")"):
            depth -= 1
            if depth == 0:
                break
            out.append(c)
        else:
            out.append(c)
    lexer.pos = i
    return bytes(out)


def _read_hex_string(lexer: _Lexer) -> bytes:
    end = lexer.data.find(b">", lexer.pos)
    if end < 0:
        raise UnexpectedEof()
    digits = bytes(b for b in lexer.data[lexer.pos : end] if b not in _WHITESPACE)
    if any(b not in _HEX_DIGITS for b in digits):
        raise PdfError(f"invalid hex string at {lexer.pos}")
    if len(digits) % 2:
        digits += b"0"
    lexer.pos = end + 1
    return bytes.fromhex(digits.decode("ascii"))


def _read_array(lexer: _Lexer) -> list[Any]:
    items: list[Any] = []
    while True:
        lexer.skip_whitespace()
        if lexer.pos >= len(lexer.data):
            raise UnexpectedEof()
        if lexer.data[lexer.pos] == ord("]"):
            lexer.pos += 1
            return items
        items.append(_parse_object(lexer))


def _read_dict(lexer: _Lexer) -> dict[str, Any]:
    entries: dict[str, Any] = {}
    while True:
        lexer.skip_whitespace()
        if lexer.pos >= len(lexer.data):
            raise UnexpectedEof()
        if lexer.data.startswith(b">>", lexer.pos):
            lexer.pos += 2
            return entries
        key = _parse_object(lexer)
        if not isinstance(key, str):
            raise PdfError("dictionary key must be a name")
        entries[key] = _parse_object(lexer)


def _parse_object(lexer: _Lexer) -> Any:
    lexer.skip_whitespace()
    data, i = lexer.data, lexer.pos
    if i >= len(data):
        raise UnexpectedEof()
    c = data[i]
    if c == ord("/"):
        lexer.pos = i + 1
        return _read_name(lexer)
    if c == ord("("):
        lexer.pos = i + 1
        return _read_literal_string(lexer)
    if data.startswith(b"<<", i):
        lexer.pos = i + 2
        return _read_dict(lexer)
    if c == ord("<"):
        lexer.pos = i + 1
        return _read_hex_string(lexer)
    if c == ord("["):
        lexer.pos = i + 1
        return _read_array(lexer)
    token = lexer.next_token()
    if token == b"true":
        return True
    if token == b"false":
        return False
    if token == b"null":
        return None
    if _NUMBER.fullmatch(token):
        return float(token) if b"." in token else int(token)
    raise PdfError(f"Expecting an object, encountered {token!r} at pos {i}")


# Operand access


def _take(args: Iterator[Any]) -> Any:
    try:
        return next(args)
    except StopIteration:
        raise NoOpArgError() from None


def _as_name(value: Any) -> str:
    if not isinstance(value, str):
        raise UnexpectedPrimitiveError("Name", _kind(value))
    return value


def _as_number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise UnexpectedPrimitiveError("Number", _kind(value))
    return float(value)


def _as_integer(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise UnexpectedPrimitiveError("Integer", _kind(value))
    return value


def _as_u32(value: Any) -> int:
    n = _as_integer(value)
    if not 0 <= n <= 0xFFFFFFFF:
        raise PdfError(f"{n} is out of range for an unsigned integer")
    return n


def _as_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise UnexpectedPrimitiveError("Boolean", _kind(value))
    return value


def _name(args: Iterator[Any]) -> str:
    return _as_name(_take(args))


def _number(args: Iterator[Any]) -> float:
    return _as_number(_take(args))


def _string(args: Iterator[Any]) -> bytes:
    value = _take(args)
    if not isinstance(value, (bytes, bytearray)):
        raise UnexpectedPrimitiveError("String", _kind(value))
    return bytes(value)


def _point(args: Iterator[Any]) -> Point:
    x = _number(args)
    y = _number(args)
    return Point(x, y)


def _array(args: Iterator[Any]) -> list[Any]:
    value = next(args, _MISSING)
    if value is _MISSING:
        return []
    if not isinstance(value, list):
        raise NoOpArgError()
    return value


_MISSING = object()


def _expand(value: Any, table: dict[str, str]) -> Any:
    if isinstance(value, str):
        return table.get(value, value)
    if isinstance(value, list):
        return [_expand(item, table) for item in value]
    return value


# Inline images


def _read_inline_image(lexer: _Lexer) -> InlineImage:
    entries: dict[str, Any] = {}
    while True:
        backup = lexer.pos
        try:
            key = _parse_object(lexer)
        except PdfError as exc:
            if exc.is_eof():
                raise
            lexer.pos = backup
            break
        if not isinstance(key, str):
            raise PdfError("invalid key type")
        entries[_INLINE_KEYS.get(key, key)] = _parse_object(lexer)

    lexer.next_expect(b"ID")
    data_start = lexer.pos + 1
    if not lexer.seek_substr(b"\nEI"):
        raise PdfError("inline image exceeds expected data range")
    data_end = lexer.pos - 3

    bpc_value = entries.get("BitsPerComponent")
    bits_per_component = None if bpc_value is None else _as_integer(bpc_value)

    cs_value = entries.get("ColorSpace")
    color_space = None if cs_value is None else _expand(cs_value, _INLINE_COLOR_SPACES)

    decode_value = entries.get("Decode")
    decode = None
    if decode_value is not None:
        if not isinstance(decode_value, list):
            raise UnexpectedPrimitiveError("Array", _kind(decode_value))
        decode = tuple(_as_number(v) for v in decode_value)

    parms = entries.get("DecodeParms")
    if parms is None:
        parms = {}
    elif not isinstance(parms, dict):
        raise UnexpectedPrimitiveError("Dictionary", _kind(parms))

    filter_value = entries.pop("Filter", None)
    filter_value = None if filter_value is None else _expand(filter_value, _INLINE_FILTERS)
    if filter_value is None:
        filters: tuple[StreamFilter, ...] = ()
    elif isinstance(filter_value, list):
        filters = tuple(
            StreamFilter.from_kind_and_params(_as_name(kind), dict(parms))
            for kind in filter_value
        )
    elif isinstance(filter_value, str):
        filters = (StreamFilter.from_kind_and_params(filter_value, parms),)
    else:
        raise PdfError("invalid filter")

    if "Height" not in entries:
        raise MissingEntryError("InlineImage", "Height")
    height = _as_u32(entries["Height"])
    mask_value = entries.get("ImageMask")
    image_mask = False if mask_value is None else _as_bool(mask_value)

    intent_value = entries.pop("Intent", None)
    intent = None
    if intent_value is not None:
        intent_name = _as_name(intent_value)
        intent = RenderingIntent.from_str(intent_name)
        if intent is None:
            raise UnknownVariantError("RenderingIntent", intent_name)

    interp_value = entries.get("Interpolate")
    interpolate = False if interp_value is None else _as_bool(interp_value)

    if "Width" not in entries:
        raise MissingEntryError("InlineImage", "Width")
    width = _as_u32(entries["Width"])

    return InlineImage(
        width=width,
        height=height,
        data=lexer.data[data_start:data_end],
        filters=filters,
        color_space=color_space,
        bits_per_component=bits_per_component,
        intent=intent,
        image_mask=image_mask,
        decode=decode,
        interpolate=interpolate,
        other=entries,
    )


def parse_inline_image(data: bytes) -> InlineImage:
    """Read an inline image: its abbreviated dictionary, ``ID`` and data up to ``EI``."""
    return _read_inline_image(_Lexer(data))


# Operators


class _OpBuilder:
    def __init__(self) -> None:
        self.last = Point(0.0, 0.0)
        self.compatibility_section = False
        self.ops: list[Any] = []

    def parse(self, data: bytes, allow_invalid_ops: bool) -> None:
        lexer = _Lexer(data)
        operands: list[Any] = []
        while True:
            backup = lexer.pos
            try:
                operands.append(_parse_object(lexer))
            except PdfError as exc:
                if exc.is_eof():
                    break
                lexer.pos = backup
                token = lexer.next_token()
                try:
                    operator = token.decode("ascii")
                except UnicodeDecodeError:
                    raise PdfError(f"invalid operator {token!r}") from None
                args, operands = iter(operands), []
                try:
                    self._add(operator, args, lexer)
                except PdfError as op_error:
                    if not allow_invalid_ops:
                        raise
                    logger.warning("OP Err: %s", op_error)
            if lexer.pos > len(lexer.data):
                raise ContentReadPastBoundaryError()
            if lexer.pos == len(lexer.data):
                break

    def _add(self, op: str, args: Iterator[Any], lexer: _Lexer) -> None:
        push = self.ops.append
        match op:
            case "b":
                push(Close())
                push(FillAndStroke(Winding.NON_ZERO))
            case "B":
                push(FillAndStroke(Winding.NON_ZERO))
            case "b*":
                push(Close())
                push(FillAndStroke(Winding.EVEN_ODD))
            case "B*":
                push(FillAndStroke(Winding.EVEN_ODD))
            case "BDC":
                tag = _name(args)
                push(BeginMarkedContent(tag, _take(args)))
            case "BI":
                push(InlineImageOp(_read_inline_image(lexer)))
            case "BMC":
                push(BeginMarkedContent(_name(args), None))
            case "BT":
                push(BeginText())
            case "BX":
                self.compatibility_section = True
            case "c":
                c1, c2, p = _point(args), _point(args), _point(args)
                push(CurveTo(c1, c2, p))
                self.last = p
            case "cm":
                push(Transform(Matrix(*(_number(args) for _ in range(6)))))
            case "CS":
                push(StrokeColorSpace(_name(args)))
            case "cs":
                push(FillColorSpace(_name(args)))
            case "d":
                pattern_value = _take(args)
                if not isinstance(pattern_value, list):
                    raise UnexpectedPrimitiveError("Array", _kind(pattern_value))
                pattern = tuple(_as_number(v) for v in pattern_value)
                push(Dash(pattern, _number(args)))
            case "d0" | "d1":
                pass
            case "Do" | "Do0":
                push(XObject(_name(args)))
            case "DP":
                tag = _name(args)
                push(MarkedContentPoint(tag, _take(args)))
            case "EI":
                raise PdfError("Parse Error. Unexpected 'EI'")
            case "EMC":
                push(EndMarkedContent())
            case "ET":
                push(EndText())
            case "EX":
                self.compatibility_section = False
            case "f" | "F":
                push(Fill(Winding.NON_ZERO))
            case "f*":
                push(Fill(Winding.EVEN_ODD))
            case "G":
                push(StrokeColor(Gray(_number(args))))
            case "g":
                push(FillColor(Gray(_number(args))))
            case "gs":
                push(GraphicsState(_name(args)))
            case "h":
                push(Close())
            case "i":
                push(Flatness(_number(args)))
            case "ID":
                raise PdfError("Parse Error. Unexpected 'ID'")
            case "j":
                n = _as_integer(_take(args))
                if n not in (0, 1, 2):
                    raise PdfError(f"invalid line join {n}")
                push(SetLineJoin(LineJoin(n)))
            case "J":
                n = _as_integer(_take(args))
                if n not in (0, 1, 2):
                    raise PdfError(f"invalid line cap {n}")
                push(SetLineCap(LineCap(n)))
            case "K":
                push(StrokeColor(Cmyk(*(_number(args) for _ in range(4)))))
            case "k":
                push(FillColor(Cmyk(*(_number(args) for _ in range(4)))))
            case "l":
                p = _point(args)
                push(LineTo(p))
                self.last = p
            case "m":
                p = _point(args)
                push(MoveTo(p))
                self.last = p
            case "M":
                push(MiterLimit(_number(args)))
            case "MP":
                push(MarkedContentPoint(_name(args), None))
            case "n":
                push(EndPath())
            case "q":
                push(Save())
            case "Q":
                push(Restore())
            case "re":
                push(DrawRect(Rect(*(_number(args) for _ in range(4)))))
            case "RG":
                push(StrokeColor(Rgb(*(_number(args) for _ in range(3)))))
            case "rg":
                push(FillColor(Rgb(*(_number(args) for _ in range(3)))))
            case "ri":
                s = _name(args)
                intent = RenderingIntent.from_str(s)
                if intent is None:
                    raise PdfError(f"invalid rendering intent {s}")
                push(SetRenderingIntent(intent))
            case "s":
                push(Close())
                push(Stroke())
            case "S":
                push(Stroke())
            case "SC" | "SCN":
                push(StrokeColor(OtherColor(tuple(args))))
            case "sc" | "scn":
                push(FillColor(OtherColor(tuple(args))))
            case "sh":
                pass
            case "T*":
                push(TextNewline())
            case "Tc":
                push(CharSpacing(_number(args)))
            case "Td":
                push(MoveTextPosition(_point(args)))
            case "TD":
                translation = _point(args)
                push(Leading(-translation.y))
                push(MoveTextPosition(translation))
            case "Tf":
                name = _name(args)
                push(TextFont(name, _number(args)))
            case "Tj":
                push(TextDraw(_string(args)))
            case "TJ":
                items: list[float | bytes] = []
                for item in _array(args):
                    if isinstance(item, (bytes, bytearray)):
                        items.append(bytes(item))
                    elif isinstance(item, (int, float)) and not isinstance(item, bool):
                        items.append(float(item))
                    else:
                        raise PdfError(f"invalid primitive in TJ operator: {item!r}")
                push(TextDrawAdjusted(tuple(items)))
            case "TL":
                push(Leading(_number(args)))
            case "Tm":
                push(SetTextMatrix(Matrix(*(_number(args) for _ in range(6)))))
            case "Tr":
                n = _as_integer(_take(args))
                if not 0 <= n <= 5:
                    raise PdfError(f"Invalid text render mode: {n}")
                push(TextRenderMode(TextMode(n)))
            case "Ts":
                push(TextRise(_number(args)))
            case "Tw":
                push(WordSpacing(_number(args)))
            case "Tz":
                push(TextScaling(_number(args)))
            case "v":
                c2, p = _point(args), _point(args)
                push(CurveTo(self.last, c2, p))
                self.last = p
            case "w":
                push(LineWidth(_number(args)))
            case "W":
                push(Clip(Winding.NON_ZERO))
            case "W*":
                push(Clip(Winding.EVEN_ODD))
            case "y":
                c1, p = _point(args), _point(args)
                push(CurveTo(c1, p, p))
                self.last = p
            case "'":
                push(TextNewline())
                push(TextDraw(_string(args)))
            case '"':
                push(WordSpacing(_number(args)))
                push(CharSpacing(_number(args)))
                push(TextNewline())
                push(TextDraw(_string(args)))
            case _ if not self.compatibility_section:
                raise PdfError(f"invalid operator {op}")
            case _:
                pass


def parse_ops(data: bytes, allow_invalid_ops: bool = False) -> list[Any]:
    """Parse content stream bytes into operators.

    With ``allow_invalid_ops`` an operator that cannot be read is logged and skipped.
    """
    builder = _OpBuilder()
    builder.parse(bytes(data), allow_invalid_ops)
    return builder.ops


@dataclass
class Content:
    """A content stream made of one or more parts of decoded data."""

    parts: list[bytes] = field(default_factory=list)

    def operations(self, allow_invalid_ops: bool = False) -> list[Any]:
        """Parse the operators of all parts joined together."""
        return parse_ops(b"".join(self.parts), allow_invalid_ops)

    @classmethod
    def from_ops(cls, ops: Iterable[Any]) -> Content:
        """Build a single-part content stream from operators."""
        return cls([serialize_ops(ops)])