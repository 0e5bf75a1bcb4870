import pytest

from pdfstream.content import Content, parse_inline_image, parse_ops
from pdfstream.errors import MissingEntryError, NoOpArgError, PdfError, UnexpectedPrimitiveError
from pdfstream.filters import FilterKind
from pdfstream.ops import (
    BeginText,
    CharSpacing,
    Close,
    CurveTo,
    Dash,
    EndText,
    FillColor,
    Gray,
    InlineImageOp,
    Leading,
    LineTo,
    LineWidth,
    Matrix,
    MoveTextPosition,
    MoveTo,
    OtherColor,
    Point,
    Restore,
    Rgb,
    Save,
    SetTextMatrix,
    Stroke,
    TextDraw,
    TextDrawAdjusted,
    TextFont,
    TextNewline,
    Transform,
    WordSpacing,
    XObject,
)

INLINE = rb"""
/W 768
/H 150
/BPC 1
/IM true
/F [/A85 /Fl]
ID
Gb"0F_%"1&#XD6"#B1qiGGG^V6GZ#ZkijB5'RjB4S^5I61&$Ni:Xh=4S_9KYN;c9MUZPn/h,c]oCLUmg*Fo?0Hs0nQHp41KkO\Ls5+g0aoD*btT?l]lq0YAucfaoqHp4
1KkO\Ls5+g0aoD*btT?l^#mD&ORf[0~>
EI
"""

SQUARE = [
    MoveTo(Point(100.0, 100.0)),
    LineTo(Point(100.0, 200.0)),
    LineTo(Point(200.0, 200.0)),
    LineTo(Point(200.0, 100.0)),
    Close(),
    Stroke(),
]


def test_inline_image():
    image = parse_inline_image(INLINE)
    assert image.width == 768
    assert image.height == 150
    assert image.bits_per_component == 1
    assert image.image_mask is True
    assert [f.kind for f in image.filters] == [
        FilterKind.ASCII85_DECODE,
        FilterKind.FLATE_DECODE,
    ]
    assert image.data.startswith(b'Gb"0F_')
    assert image.data.endswith(b"~>")


def test_inline_image_missing_width():
    with pytest.raises(MissingEntryError):
        parse_inline_image(b"/H 1 ID x\nEI")


def test_inline_image_without_end():
    with pytest.raises(PdfError):
        parse_inline_image(b"/W 1 /H 1 ID xyz")


def test_inline_image_in_stream():
    ops = parse_ops(b"q BI /W 2 /H 1 /BPC 8 /CS /G ID \x01\x02\nEI Q")
    assert ops[0] == Save()
    assert ops[2] == Restore()
    assert isinstance(ops[1], InlineImageOp)
    assert ops[1].image.data == b"\x01\x02"
    assert ops[1].image.color_space == "DeviceGray"


def test_from_ops_serializes_square():
    content = Content.from_ops(SQUARE)
    assert content.parts == [b"100 100 m\n100 200 l\n200 200 l\n200 100 l\ns\n"]


def test_square_round_trip():
    assert Content.from_ops(SQUARE).operations() == SQUARE


def test_text_round_trip():
    ops = [
        BeginText(),
        SetTextMatrix(Matrix(1.0, 0.0, 0.0, 1.0, 10.0, 10.0)),
        TextFont("F42", 20.0),
        TextDraw(b"hello (world)"),
        TextDrawAdjusted((b"A", -120.0, b"B")),
        EndText(),
    ]
    assert Content.from_ops(ops).operations() == ops


def test_color_and_dash_round_trip():
    ops = [
        FillColor(Rgb(0.5, 0.25, 1.0)),
        FillColor(OtherColor((0.5, "P1"))),
        Dash((3.0, 2.0), 0.0),
        Transform(Matrix(2.0, 0.0, 0.0, 2.0, 5.0, 5.0)),
        XObject("Im1"),
    ]
    assert Content.from_ops(ops).operations() == ops


def test_parts_are_joined():
    assert Content([b"q ", b"Q"]).operations() == [Save(), Restore()]


def test_v_uses_current_point():
    ops = parse_ops(b"1 2 m 3 4 5 6 v")
    assert ops[1] == CurveTo(Point(1.0, 2.0), Point(3.0, 4.0), Point(5.0, 6.0))


def test_y_repeats_end_point():
    ops = parse_ops(b"1 2 3 4 y")
    assert ops == [CurveTo(Point(1.0, 2.0), Point(3.0, 4.0), Point(3.0, 4.0))]


def test_td_sets_leading():
    ops = parse_ops(b"0 -12 TD")
    assert ops == [Leading(12.0), MoveTextPosition(Point(0.0, -12.0))]


def test_double_quote_operator():
    ops = parse_ops(b'1 2 (x) "')
    assert ops == [WordSpacing(1.0), CharSpacing(2.0), TextNewline(), TextDraw(b"x")]


def test_string_forms():
    ops = parse_ops(b"(a\\(b) Tj <48656c6c6f> Tj")
    assert ops == [TextDraw(b"a(b"), TextDraw(b"Hello")]


def test_comments_are_skipped():
    assert parse_ops(b"% note\n1 w\n0 g") == [LineWidth(1.0), FillColor(Gray(0.0))]


def test_shade_is_dropped():
    assert parse_ops(b"/Sh1 sh q") == [Save()]


def test_invalid_operator():
    with pytest.raises(PdfError, match="invalid operator"):
        parse_ops(b"1 foo")


def test_invalid_operator_allowed():
    assert parse_ops(b"foo q", allow_invalid_ops=True) == [Save()]


def test_compatibility_section():
    assert parse_ops(b"BX foo EX Q") == [Restore()]


def test_missing_operand():
    with pytest.raises(NoOpArgError):
        parse_ops(b"1 m")


def test_wrong_operand_type():
    with pytest.raises(UnexpectedPrimitiveError):
        parse_ops(b"(a) 1 Tf")


def test_invalid_line_join():
    with pytest.raises(PdfError, match="line join"):
        parse_ops(b"3 j")


def test_invalid_rendering_intent():
    with pytest.raises(PdfError, match="rendering intent"):
        parse_ops(b"/Nope ri")


def test_unexpected_ei():
    with pytest.raises(PdfError):
        parse_ops(b"EI")


def test_empty_and_whitespace_data():
    assert parse_ops(b"") == []
    assert parse_ops(b"  \n ") == []


def test_text_font_parsed():
    assert parse_ops(b"/F1 12 Tf") == [TextFont("F1", 12.0)]