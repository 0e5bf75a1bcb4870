# pdfstream

A library for the low-level pieces of PDF files: content-stream operators,
stream filters, simple font encodings, and locating the header and the
cross-reference offset in raw file data.

PDF values are handled as plain Python objects throughout: names as `str`,
strings as `bytes`, integers as `int`, reals as `float`, arrays as `list`,
dictionaries as `dict`, booleans as `bool` and null as `None`.

## Installation

```
pip install pdfstream
```

For running the tests:

```
pip install "pdfstream[test]"
pytest
```

## Content streams

`pdfstream.content` parses content-stream bytes into operator objects, and
`pdfstream.ops` holds the operator classes (`MoveTo`, `LineTo`, `CurveTo`,
`TextDraw`, `FillColor`, `Transform`, …) and writes them back as bytes.

```python
from pdfstream.content import Content, parse_ops
from pdfstream.ops import Close, LineTo, MoveTo, Point, Stroke, serialize_ops

ops = [
    MoveTo(Point(100, 100)),
    LineTo(Point(100, 200)),
    LineTo(Point(200, 200)),
    LineTo(Point(200, 100)),
    Close(),
    Stroke(),
]
data = serialize_ops(ops)   # b"100 100 m\n100 200 l\n200 200 l\n200 100 l\ns\n"
assert parse_ops(data) == ops

content = Content.from_ops(ops)
print(content.operations())
```

While parsing, combined operators are split into their parts: `s` gives
`Close` and `Stroke`, `b`/`b*` give `Close` and `FillAndStroke`, `'` gives
`TextNewline` and `TextDraw`, `"` gives `WordSpacing`, `CharSpacing`,
`TextNewline` and `TextDraw`, `TD` gives `Leading` and `MoveTextPosition`, and
`v`/`y` give a full `CurveTo`. `serialize_ops` writes the short forms again
where the sequence of operators allows it (`s`, `b`, `b*`, `'`, `"`, `v`, `y`).

An unknown operator raises a `PdfError`, except inside a `BX` … `EX`
compatibility section, where it is ignored. With
`parse_ops(data, allow_invalid_ops=True)` (or `Content.operations(True)`) an
operator that cannot be read is logged and skipped instead. The `sh`, `d0` and
`d1` operators are accepted but produce no operator.

Inline images (`BI` … `ID` … `EI`) are read into `InlineImage` objects, with
abbreviated keys, colour spaces and filter names expanded; `parse_inline_image`
reads one directly from the bytes after `BI`. Inline images cannot be
serialized: `serialize_ops` raises a `PdfError` for them.

`pdfstream.ops` also offers `format_number` (shortest plain decimal form of a
number) and `serialize_primitive` (textual form of any PDF value).

## Stream filters

`pdfstream.filters` decodes and encodes stream data:

```python
from pdfstream.filters import decode_85, encode_85, run_length_decode

encode_85(b"hello world!")                        # b"BOu!rD]j7BEbo80~>"
decode_85(b"BOu!rD]j7BEbo80~>")                   # b"hello world!"
run_length_decode(bytes([254, ord("a"), 128]))    # b"aaa"
```

Decoding is available for ASCIIHex, ASCII85, LZW (with or without early
change), Flate (zlib or raw deflate, with PNG predictors) and RunLength, and
for DCT (JPEG) through Pillow. Encoding is available for ASCIIHex, ASCII85,
Flate (raw deflate) and LZW; LZW encoding only works with `EarlyChange` set to
0 and raises a `PdfError` otherwise.

`StreamFilter.from_kind_and_params` builds a filter from its name and its
`DecodeParms` dictionary, and `decode` / `encode` apply it. `unfilter` and
`filter_row` undo and apply a single PNG predictor row.

JPEG 2000 and JBIG2 have no built-in decoder. A decoding function can be
installed once with `set_jpx_decoder` and `set_jbig2_decoder` and is then used
by `jpx_decode` and `jbig2_decode`; without one they raise a `PdfError`.

## Encodings

`pdfstream.encoding.Encoding` reads a font `/Encoding` entry, given either as
a base encoding name or as a dictionary with `/BaseEncoding` and
`/Differences`, and writes it back with `to_primitive`:

```python
from pdfstream.encoding import Encoding

enc = Encoding.from_primitive(
    {"BaseEncoding": "WinAnsiEncoding", "Differences": [32, "space", "exclam"]}
)
enc.differences                  # {32: "space", 33: "exclam"}
Encoding.standard().to_primitive()   # "StandardEncoding"
```

## Raw file data

`pdfstream.backend.Backend` wraps the bytes of a PDF file with bounds-checked
reads:

```python
from pathlib import Path
from pdfstream.backend import Backend

backend = Backend(Path("document.pdf").read_bytes())
backend.locate_start_offset()   # position of the %PDF- header in the first kilobyte
backend.locate_xref_offset()    # the number after the last startxref
backend.read(0, 8)              # b"%PDF-1.7"
```

## What it does not do

This package does not open a whole PDF document: it does not read
cross-reference tables, resolve indirect objects, walk page trees, decrypt
files or write complete PDF files. It works on content-stream bytes, stream
data and values you have already extracted.

## Errors

Every failure raises a subclass of `pdfstream.errors.PdfError`, for example
`UnexpectedEof`, `HexDecodeError`, `Ascii85TailError`, `NoOpArgError` or
`MissingEntryError`. `PdfError.is_eof()` tells whether an error comes from the
input ending early.