import io
import random
import zlib

import pytest
from PIL import Image

from pdfstream.errors import (
    Ascii85TailError,
    HexDecodeError,
    IncorrectPredictorTypeError,
    PdfError,
    UnexpectedPrimitiveError,
)
from pdfstream.filters import (
    CCITTFaxDecodeParams,
    DCTDecodeParams,
    FilterKind,
    JBIG2DecodeParams,
    LZWFlateParams,
    PredictorType,
    StreamFilter,
    dct_decode,
    decode,
    decode_85,
    decode_hex,
    decode_nibble,
    encode,
    encode_85,
    encode_hex,
    filter_row,
    flate_decode,
    flate_encode,
    jbig2_decode,
    jpx_decode,
    lzw_decode,
    lzw_encode,
    run_length_decode,
    set_jbig2_decoder,
    unfilter,
)


def _random_bytes(n, seed=7):
    return random.Random(seed).randbytes(n)


def _jpeg(mode, size, color):
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format="JPEG")
    return buf.getvalue()


# ASCII85 (cases from the source's own tests)


def test_base_85_hello_world():
    encoded = encode_85(b"hello world!")
    assert encoded == b"BOu!rD]j7BEbo80~>"
    assert decode_85(encoded) == b"hello world!"


@pytest.mark.parametrize("length", [0, 1, 2, 3, 4, 5, 7, 8, 13, 256])
def test_base_85_round_trip(length):
    data = _random_bytes(length, seed=length)
    assert decode_85(encode_85(data)) == data


def test_base_85_zero_group_uses_z():
    assert encode_85(bytes(4)) == b"z~>"
    assert decode_85(b"z~>") == bytes(4)


def test_base_85_ignores_whitespace():
    encoded = encode_85(b"hello world!")
    spaced = b" \n".join(encoded[i : i + 3] for i in range(0, len(encoded), 3))
    assert decode_85(spaced) == b"hello world!"


@pytest.mark.parametrize("bad", [b"BOu!r", b"BOu!r~>x", b"BO{!r~>", b"BOu!r~"])
def test_base_85_errors(bad):
    with pytest.raises(Ascii85TailError):
        decode_85(bad)


# Hex


def test_encode_hex_lower_case():
    assert encode_hex(b"\x01\xab") == b"01ab"


def test_decode_hex_with_whitespace_and_marker():
    assert decode_hex(b"48 65 6C6c\n6F>ffff") == b"Hello"


def test_hex_round_trip_all_bytes():
    data = bytes(range(256))
    assert decode_hex(encode_hex(data)) == data
    assert decode_hex(encode_hex(data).upper()) == data


def test_decode_hex_drops_unpaired_digit():
    assert decode_hex(b"414") == decode_hex(b"41")


def test_decode_hex_error_reports_position():
    with pytest.raises(HexDecodeError) as info:
        decode_hex(b"414x")
    assert info.value.pos == 2
    assert info.value.pair == b"4x"


def test_decode_nibble():
    assert decode_nibble(ord("A")) == decode_nibble(ord("a"))
    assert decode_nibble(ord("0")) == 0
    assert decode_nibble(ord("z")) is None


# Run length (case from the source's own tests)


def test_run_length_decode():
    data = bytes([254, ord("a"), 255, ord("b"), 2, ord("c"), ord("b"), ord("c"), 254, ord("a"), 128])
    assert run_length_decode(data) == b"aaabbcbcaaa"


def test_run_length_decode_truncated():
    with pytest.raises(PdfError):
        run_length_decode(bytes([5, 1, 2]))


# Flate


def test_flate_encode_is_raw_deflate():
    data = _random_bytes(500) * 3
    assert zlib.decompress(flate_encode(data), -15) == data


def test_flate_decode_zlib_and_raw():
    data = b"stream data " * 50
    assert flate_decode(zlib.compress(data), LZWFlateParams()) == data
    assert flate_decode(flate_encode(data), LZWFlateParams()) == data


def test_flate_decode_garbage():
    with pytest.raises(PdfError, match="can't inflate"):
        flate_decode(b"garbage", LZWFlateParams())


def test_flate_decode_png_predictor_round_trip():
    colors, columns = 3, 4
    stride = colors * columns
    rng = random.Random(3)
    rows = [bytes(rng.randrange(128) for _ in range(stride)) for _ in range(5)]
    methods = [PredictorType.NO_FILTER, PredictorType.SUB, PredictorType.UP,
               PredictorType.AVG, PredictorType.PAETH]
    encoded = bytearray()
    prev = bytes(stride)
    for method, row in zip(methods, rows):
        encoded.append(method)
        encoded += filter_row(method, colors, prev, row)
        prev = row
    params = LZWFlateParams(predictor=15, n_components=colors, columns=columns)
    assert flate_decode(zlib.compress(bytes(encoded)), params) == b"".join(rows)


def test_flate_decode_bad_predictor_byte():
    params = LZWFlateParams(predictor=12, columns=2)
    with pytest.raises(IncorrectPredictorTypeError) as info:
        flate_decode(zlib.compress(bytes([7, 1, 2])), params)
    assert info.value.n == 7


# LZW (worked example from the PDF reference)

_LZW_EXAMPLE = bytes.fromhex("800B6050220C0C8501")


def test_lzw_decode_reference_example():
    assert lzw_decode(_LZW_EXAMPLE, LZWFlateParams()) == b"-----A---B"


def test_lzw_encode_reference_example():
    assert lzw_encode(b"-----A---B", LZWFlateParams(early_change=0)) == _LZW_EXAMPLE


@pytest.mark.parametrize("data", [b"", b"a", _random_bytes(3000), b"abcabcabc" * 2000])
def test_lzw_round_trip(data):
    params = LZWFlateParams(early_change=0)
    assert lzw_decode(lzw_encode(data, params), params) == data


def test_lzw_encode_refuses_early_change():
    with pytest.raises(PdfError, match="early_change"):
        lzw_encode(b"abc", LZWFlateParams())


def test_lzw_decode_invalid_code():
    # clear code followed by code 300 while the table holds 258 entries
    bits = format(256, "09b") + format(300, "09b")
    bits += "0" * (-len(bits) % 8)
    data = int(bits, 2).to_bytes(len(bits) // 8, "big")
    with pytest.raises(PdfError):
        lzw_decode(data, LZWFlateParams())


# DCT


def test_dct_decode_rgb():
    pixels = dct_decode(_jpeg("RGB", (4, 3), (255, 0, 0)), DCTDecodeParams())
    assert len(pixels) == 4 * 3 * 3
    assert pixels[0] > 200 and pixels[1] < 60 and pixels[2] < 60


def test_dct_decode_gray():
    pixels = dct_decode(_jpeg("L", (5, 2), 128), DCTDecodeParams())
    assert len(pixels) == 10


def test_dct_decode_invalid():
    with pytest.raises(PdfError):
        dct_decode(b"not a jpeg", DCTDecodeParams())


# Parameters and filters


def test_params_defaults_from_empty_dict():
    assert LZWFlateParams.from_dict({}) == LZWFlateParams()
    assert LZWFlateParams.from_dict(None).early_change == 1
    ccitt = CCITTFaxDecodeParams.from_dict({})
    assert ccitt.columns == 1728
    assert ccitt.end_of_block is True
    assert DCTDecodeParams.from_dict({}).color_transform is None
    assert JBIG2DecodeParams.from_dict({"JBIG2Globals": b"g"}).globals == b"g"


def test_params_wrong_type():
    with pytest.raises(UnexpectedPrimitiveError):
        LZWFlateParams.from_dict({"Predictor": "Twelve"})
    with pytest.raises(UnexpectedPrimitiveError):
        CCITTFaxDecodeParams.from_dict({"BlackIs1": 1})


def test_from_kind_and_params():
    flt = StreamFilter.from_kind_and_params("FlateDecode", {"Predictor": 12, "Columns": 4})
    assert flt.kind is FilterKind.FLATE_DECODE
    assert flt.params.predictor == 12
    assert flt.params.columns == 4
    assert flt.params.n_components == 1
    hex_filter = StreamFilter.from_kind_and_params("ASCIIHexDecode", {})
    assert hex_filter.params is None
    assert hex_filter.name == "ASCIIHexDecode"


def test_from_kind_and_params_unknown():
    with pytest.raises(PdfError, match="Unrecognized filter type"):
        StreamFilter.from_kind_and_params("Bogus", {})


def test_stream_filter_fills_default_params():
    assert StreamFilter(FilterKind.LZW_DECODE).params == LZWFlateParams()


def test_predictor_from_int():
    assert PredictorType.from_int(4) is PredictorType.PAETH
    with pytest.raises(IncorrectPredictorTypeError):
        PredictorType.from_int(5)


@pytest.mark.parametrize(
    "kind",
    [FilterKind.ASCII_HEX_DECODE, FilterKind.ASCII85_DECODE, FilterKind.FLATE_DECODE],
)
def test_encode_decode_round_trip(kind):
    data = _random_bytes(333)
    flt = StreamFilter(kind)
    assert decode(encode(data, flt), flt) == data


def test_encode_decode_lzw_round_trip():
    flt = StreamFilter(FilterKind.LZW_DECODE, LZWFlateParams(early_change=0))
    data = b"to be or not to be " * 40
    assert decode(encode(data, flt), flt) == data


def test_decode_dispatches_run_length():
    flt = StreamFilter(FilterKind.RUN_LENGTH_DECODE)
    assert decode(bytes([253, ord("x"), 128]), flt) == b"xxxx"


def test_decode_unsupported_filter():
    with pytest.raises(PdfError):
        decode(b"data", StreamFilter(FilterKind.JPX_DECODE))


def test_encode_unsupported_filter():
    with pytest.raises(PdfError):
        encode(b"data", StreamFilter(FilterKind.DCT_DECODE))


# External decoders


def test_jpx_decoder_not_set():
    with pytest.raises(PdfError, match="jp2k decoder not set"):
        jpx_decode(b"data")


def test_jbig2_decoder_set_once():
    set_jbig2_decoder(lambda stream: stream)
    set_jbig2_decoder(lambda stream: b"")
    result = jbig2_decode(b"DATA", b"GLOB")
    assert result.startswith(b"GLOBDATA")
    assert len(result) == 8 + 21


# Predictors


@pytest.mark.parametrize(
    "method",
    [PredictorType.NO_FILTER, PredictorType.SUB, PredictorType.UP, PredictorType.PAETH],
)
@pytest.mark.parametrize("bpp", [1, 3])
def test_filter_unfilter_round_trip(method, bpp):
    prev = _random_bytes(12, seed=1)
    row = _random_bytes(12, seed=2)
    assert unfilter(method, bpp, prev, filter_row(method, bpp, prev, row)) == row


def test_avg_round_trip_small_values():
    rng = random.Random(9)
    prev = bytes(rng.randrange(128) for _ in range(9))
    row = bytes(rng.randrange(128) for _ in range(9))
    filtered = filter_row(PredictorType.AVG, 3, prev, row)
    assert unfilter(PredictorType.AVG, 3, prev, filtered) == row


def test_unfilter_bpp_larger_than_row():
    assert unfilter(PredictorType.SUB, 5, b"\0\0", b"\1\2") == bytes(2)


def test_unfilter_length_mismatch():
    with pytest.raises(ValueError):
        unfilter(PredictorType.UP, 1, b"\0", b"\1\2")