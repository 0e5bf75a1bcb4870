"""Graphics operators of PDF content streams and their serialization.

PDF values are given as plain Python objects: names as ``str``, strings as
``bytes``, integers as ``int``, reals as ``float``, arrays as ``list``,
dictionaries as ``dict``, booleans as ``bool`` and null as ``None``.
"""

from __future__ import annotations

import math
import struct
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, Union

from .errors import NoOpArgError, PdfError, UnexpectedPrimitiveError
from .filters import StreamFilter

_NAME_DELIMITERS = frozenset(b"()<>[]{}/%#")


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


def _to_f32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return value


def format_number(value: float) -> str:
    """Write a number the way content streams expect it: shortest form, no exponent."""
    if isinstance(value, bool):
        raise UnexpectedPrimitiveError("Number", "Boolean")
    if isinstance(value, int):
        return str(value)
    number = float(value)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    single = _to_f32(number)
    text = repr(single)
    for precision in range(1, 18):
        candidate = f"{single:.{precision}g}"
        if _to_f32(float(candidate)) == single:
            text = candidate
            break
    plain = format(Decimal(text), "f")
    if "." in plain:
        plain = plain.rstrip("0").rstrip(".")
    return plain


def _serialize_name(name: str) -> bytes:
    out = bytearray(b"/")
    for byte in name.encode("utf-8"):
        if 0x21 <= byte <= 0x7E and byte not in _NAME_DELIMITERS:
            out.append(byte)
        else:
            out += b"#%02X" % byte
    return bytes(out)


def _serialize_string(data: bytes) -> bytes:
    data = bytes(data)
    if all(0x20 <= byte <= 0x7E for byte in data):
        escaped = (
            data.replace(b"\\", b"\\\\").replace(b"(", b"\\(").replace(b")", b"\\)")
        )
        return b"(" + escaped + b")"
    return b"<" + data.hex().upper().encode("ascii") + b">"


def serialize_primitive(value: Any) -> bytes:
    """Write one PDF value in its textual form."""
    if value is None:
        return b"null"
    if isinstance(value, bool):
        return b"true" if value else b"false"
    if isinstance(value, (int, float)):
        return format_number(value).encode("ascii")
    if isinstance(value, str):
        return _serialize_name(value)
    if isinstance(value, (bytes, bytearray)):
        return _serialize_string(value)
    if isinstance(value, (list, tuple)):
        return b"[" + b" ".join(serialize_primitive(item) for item in value) + b"]"
    if isinstance(value, dict):
        if not value:
            return b"<<>>"
        entries = b" ".join(
            _serialize_name(key) + b" " + serialize_primitive(item)
            for key, item in value.items()
        )
        return b"<< " + entries + b" >>"
    raise PdfError(f"cannot serialize {value!r}")


class Winding(Enum):
    """Rule deciding which points lie inside a path."""

    EVEN_ODD = "EvenOdd"
    NON_ZERO = "NonZero"


class LineCap(IntEnum):
    """Shape at the ends of stroked open paths."""

    BUTT = 0
    ROUND = 1
    SQUARE = 2


class LineJoin(IntEnum):
    """Shape at the corners of stroked paths."""

    MITER = 0
    ROUND = 1
    BEVEL = 2


class TextMode(IntEnum):
    """Text rendering modes."""

    FILL = 0
    STROKE = 1
    FILL_THEN_STROKE = 2
    INVISIBLE = 3
    FILL_AND_CLIP = 4
    STROKE_AND_CLIP = 5


class RenderingIntent(Enum):
    """Colour rendering intents, valued by their PDF names."""

    ABSOLUTE_COLORIMETRIC = "AbsoluteColorimetric"
    RELATIVE_COLORIMETRIC = "RelativeColorimetric"
    SATURATION = "Saturation"
    PERCEPTUAL = "Perceptual"

    @classmethod
    def from_str(cls, s: str) -> RenderingIntent | None:
        """Return the intent with the given PDF name, or None if there is none."""
        try:
            return cls(s)
        except ValueError:
            return None

    def to_str(self) -> str:
        """Return the PDF name of the intent."""
        return self.value


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise UnexpectedPrimitiveError("Number", _kind(value))
    return float(value)


@dataclass(frozen=True)
class Point:
    x: float = 0.0
    y: float = 0.0

    def __str__(self) -> str:
        return f"{format_number(self.x)} {format_number(self.y)}"


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    def __str__(self) -> str:
        return " ".join(
            format_number(v) for v in (self.x, self.y, self.width, self.height)
        )


@dataclass(frozen=True)
class Matrix:
    """An affine transformation; the default is the identity."""

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @classmethod
    def from_array(cls, values: Sequence[Any]) -> Matrix:
        """Read a matrix from an array of six numbers."""
        if not isinstance(values, (list, tuple)):
            raise UnexpectedPrimitiveError("Array", _kind(values))
        if len(values) < 6:
            raise NoOpArgError()
        return cls(*(_number(v) for v in values[:6]))

    def to_array(self) -> list[float]:
        """Return the six numbers of the matrix."""
        return [self.a, self.b, self.c, self.d, self.e, self.f]

    def __str__(self) -> str:
        return " ".join(format_number(v) for v in self.to_array())


@dataclass(frozen=True)
class Gray:
    value: float


@dataclass(frozen=True)
class Rgb:
    red: float
    green: float
    blue: float

    def __str__(self) -> str:
        return " ".join(format_number(v) for v in (self.red, self.green, self.blue))


@dataclass(frozen=True)
class Cmyk:
    cyan: float
    magenta: float
    yellow: float
    key: float

    def __str__(self) -> str:
        return " ".join(
            format_number(v) for v in (self.cyan, self.magenta, self.yellow, self.key)
        )


@dataclass(frozen=True)
class OtherColor:
    """Colour operands for a colour space given by name (``sc``/``scn``)."""

    args: tuple[Any, ...] = ()


Color = Union[Gray, Rgb, Cmyk, OtherColor]


@dataclass(frozen=True)
class InlineImage:
    """An image embedded in a content stream between ``BI`` and ``EI``."""

    width: int
    height: int
    data: bytes
    filters: tuple[StreamFilter, ...] = ()
    color_space: Any = None
    bits_per_component: int | None = None
    intent: RenderingIntent | None = None
    image_mask: bool = False
    decode: Any = None
    interpolate: bool = False
    other: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BeginMarkedContent:
    """``BMC`` / ``BDC``."""

    tag: str
    properties: Any = None


@dataclass(frozen=True)
class EndMarkedContent:
    """``EMC``."""


@dataclass(frozen=True)
class MarkedContentPoint:
    """``MP`` / ``DP``."""

    tag: str
    properties: Any = None


@dataclass(frozen=True)
class Close:
    """``h``."""


@dataclass(frozen=True)
class MoveTo:
    p: Point


@dataclass(frozen=True)
class LineTo:
    p: Point


@dataclass(frozen=True)
class CurveTo:
    c1: Point
    c2: Point
    p: Point


@dataclass(frozen=True)
class DrawRect:
    """``re``."""

    rect: Rect


@dataclass(frozen=True)
class EndPath:
    """``n``."""


@dataclass(frozen=True)
class Stroke:
    """``S``."""


@dataclass(frozen=True)
class FillAndStroke:
    winding: Winding


@dataclass(frozen=True)
class Fill:
    winding: Winding


@dataclass(frozen=True)
class Shade:
    """Fill with a named shading (``sh``)."""

    name: str


@dataclass(frozen=True)
class Clip:
    winding: Winding


@dataclass(frozen=True)
class Save:
    """``q``."""


@dataclass(frozen=True)
class Restore:
    """``Q``."""


@dataclass(frozen=True)
class Transform:
    matrix: Matrix


@dataclass(frozen=True)
class LineWidth:
    width: float


@dataclass(frozen=True)
class Dash:
    pattern: tuple[float, ...]
    phase: float


@dataclass(frozen=True)
class SetLineJoin:
    join: LineJoin


@dataclass(frozen=True)
class SetLineCap:
    cap: LineCap


@dataclass(frozen=True)
class MiterLimit:
    limit: float


@dataclass(frozen=True)
class Flatness:
    tolerance: float


@dataclass(frozen=True)
class GraphicsState:
    name: str


@dataclass(frozen=True)
class StrokeColor:
    color: Color


@dataclass(frozen=True)
class FillColor:
    color: Color


@dataclass(frozen=True)
class FillColorSpace:
    name: str


@dataclass(frozen=True)
class StrokeColorSpace:
    name: str


@dataclass(frozen=True)
class SetRenderingIntent:
    intent: RenderingIntent


@dataclass(frozen=True)
class BeginText:
    """``BT``."""


@dataclass(frozen=True)
class EndText:
    """``ET``."""


@dataclass(frozen=True)
class CharSpacing:
    char_space: float


@dataclass(frozen=True)
class WordSpacing:
    word_space: float


@dataclass(frozen=True)
class TextScaling:
    horiz_scale: float


@dataclass(frozen=True)
class Leading:
    leading: float


@dataclass(frozen=True)
class TextFont:
    name: str
    size: float


@dataclass(frozen=True)
class TextRenderMode:
    mode: TextMode


@dataclass(frozen=True)
class TextRise:
    """``Ts``."""

    rise: float


@dataclass(frozen=True)
class MoveTextPosition:
    """``Td`` / ``TD``."""

    translation: Point


@dataclass(frozen=True)
class SetTextMatrix:
    """``Tm``."""

    matrix: Matrix


@dataclass(frozen=True)
class TextNewline:
    """``T*``."""


@dataclass(frozen=True)
class TextDraw:
    """``Tj``."""

    text: bytes


@dataclass(frozen=True)
class TextDrawAdjusted:
    """``TJ``: strings interleaved with spacing adjustments."""

    array: tuple[float | bytes, ...]


@dataclass(frozen=True)
class XObject:
    """``Do``."""

    name: str


@dataclass(frozen=True)
class InlineImageOp:
    image: InlineImage


def _line(text: str) -> bytes:
    return (text + "\n").encode("ascii")


def _color_operands(color: Color) -> bytes:
    return b"".join(serialize_primitive(arg) + b" " for arg in color.args)


def _serialize_one(
    op: Any, following: list[Any], current: Point | None, out: bytearray
) -> tuple[int, Point | None]:
    match op:
        case BeginMarkedContent(tag=tag, properties=None):
            out += _serialize_name(tag) + b" BMC\n"
        case BeginMarkedContent(tag=tag, properties=props):
            out += _serialize_name(tag) + b" " + serialize_primitive(props) + b" BDC\n"
        case MarkedContentPoint(tag=tag, properties=None):
            out += _serialize_name(tag) + b" MP\n"
        case MarkedContentPoint(tag=tag, properties=props):
            out += _serialize_name(tag) + b" " + serialize_primitive(props) + b" DP\n"
        case EndMarkedContent():
            out += b"EMC\n"
        case Close():
            match following:
                case [Stroke(), *_]:
                    out += b"s\n"
                    return 2, current
                case [FillAndStroke(winding=Winding.NON_ZERO), *_]:
                    out += b"b\n"
                    return 2, current
                case [FillAndStroke(winding=Winding.EVEN_ODD), *_]:
                    out += b"b*\n"
                    return 2, current
                case _:
                    out += b"h\n"
        case MoveTo(p=p):
            out += _line(f"{p} m")
            return 1, p
        case LineTo(p=p):
            out += _line(f"{p} l")
            return 1, p
        case CurveTo(c1=c1, c2=c2, p=p):
            if c1 == current:
                out += _line(f"{c2} {p} v")
            elif c2 == p:
                out += _line(f"{c1} {p} y")
            else:
                out += _line(f"{c1} {c2} {p} c")
            return 1, p
        case DrawRect(rect=rect):
            out += _line(f"{rect} re")
        case EndPath():
            out += b"n\n"
        case Stroke():
            out += b"S\n"
        case FillAndStroke(winding=Winding.NON_ZERO):
            out += b"B\n"
        case FillAndStroke(winding=Winding.EVEN_ODD):
            out += b"B*\n"
        case Fill(winding=Winding.NON_ZERO):
            out += b"f\n"
        case Fill(winding=Winding.EVEN_ODD):
            out += b"f*\n"
        case Shade(name=name):
            out += _serialize_name(name) + b" sh\n"
        case Clip(winding=Winding.NON_ZERO):
            out += b"W\n"
        case Clip(winding=Winding.EVEN_ODD):
            out += b"W*\n"
        case Save():
            out += b"q\n"
        case Restore():
            out += b"Q\n"
        case Transform(matrix=matrix):
            out += _line(f"{matrix} cm")
        case LineWidth(width=width):
            out += _line(f"{format_number(width)} w")
        case Dash(pattern=pattern, phase=phase):
            dashes = " ".join(format_number(v) for v in pattern)
            out += _line(f"[{dashes}] {format_number(phase)} d")
        case SetLineJoin(join=join):
            out += _line(f"{int(join)} j")
        case SetLineCap(cap=cap):
            out += _line(f"{int(cap)} J")
        case MiterLimit(limit=limit):
            out += _line(f"{format_number(limit)} M")
        case Flatness(tolerance=tolerance):
            out += _line(f"{format_number(tolerance)} i")
        case GraphicsState(name=name):
            out += _serialize_name(name) + b" gs\n"
        case StrokeColor(color=Gray(value=g)):
            out += _line(f"{format_number(g)} G")
        case StrokeColor(color=Rgb() as rgb):
            out += _line(f"{rgb} RG")
        case StrokeColor(color=Cmyk() as cmyk):
            out += _line(f"{cmyk} K")
        case StrokeColor(color=OtherColor() as other):
            out += _color_operands(other) + b"SCN\n"
        case FillColor(color=Gray(value=g)):
            out += _line(f"{format_number(g)} g")
        case FillColor(color=Rgb() as rgb):
            out += _line(f"{rgb} rg")
        case FillColor(color=Cmyk() as cmyk):
            out += _line(f"{cmyk} k")
        case FillColor(color=OtherColor() as other):
            out += _color_operands(other) + b"scn\n"
        case FillColorSpace(name=name):
            out += _serialize_name(name) + b" cs\n"
        case StrokeColorSpace(name=name):
            out += _serialize_name(name) + b" CS\n"
        case SetRenderingIntent(intent=intent):
            out += _line(f"{intent.to_str()} ri")
        case BeginText():
            out += b"BT\n"
        case EndText():
            out += b"ET\n"
        case CharSpacing(char_space=cs):
            out += _line(f"{format_number(cs)} Tc")
        case WordSpacing(word_space=ws):
            match following:
                case [CharSpacing(char_space=cs), TextNewline(), TextDraw(text=text), *_]:
                    out += f"{format_number(ws)} {format_number(cs)} ".encode("ascii")
                    out += _serialize_string(text) + b' "\n'
                    return 4, current
                case _:
                    out += _line(f"{format_number(ws)} Tw")
        case TextScaling(horiz_scale=scale):
            out += _line(f"{format_number(scale)} Tz")
        case Leading(leading=leading):
            match following:
                case [MoveTextPosition(translation=t), *_] if leading == -t.x:
                    out += _line(f"{format_number(t.x)} {format_number(t.y)} TD")
                    return 2, current
                case _:
                    out += _line(f"{format_number(leading)} TL")
        case TextFont(name=name, size=size):
            out += _serialize_name(name) + f" {format_number(size)} Tf\n".encode("ascii")
        case TextRenderMode(mode=mode):
            out += _line(f"{int(mode)} Tr")
        case TextRise(rise=rise):
            out += _line(f"{format_number(rise)} Ts")
        case MoveTextPosition(translation=t):
            out += _line(f"{format_number(t.x)} {format_number(t.y)} Td")
        case SetTextMatrix(matrix=matrix):
            out += _line(f"{matrix} Tm")
        case TextNewline():
            match following:
                case [TextDraw(text=text), *_]:
                    out += _serialize_string(text) + b" '\n"
                    return 2, current
                case _:
                    out += b"T*\n"
        case TextDraw(text=text):
            out += _serialize_string(text) + b" Tj\n"
        case TextDrawAdjusted(array=array):
            parts = [
                _serialize_string(item)
                if isinstance(item, (bytes, bytearray))
                else format_number(item).encode("ascii")
                for item in array
            ]
            out += b"[" + b" ".join(parts) + b"] TJ\n"
        case InlineImageOp():
            raise PdfError("Unimplemented: inline images cannot be serialized")
        case XObject(name=name):
            out += _serialize_name(name) + b" Do\n"
        case _:
            raise PdfError(f"not a content stream operator: {op!r}")
    return 1, current


def serialize_ops(ops: Iterable[Any]) -> bytes:
    """Write operators as content stream bytes, using the short forms where they apply."""
    pending = list(ops)
    out = bytearray()
    current: Point | None = None
    pos = 0
    while pos < len(pending):
        advance, current = _serialize_one(
            pending[pos], pending[pos + 1 : pos + 4], current, out
        )
        pos += advance
    return bytes(out)