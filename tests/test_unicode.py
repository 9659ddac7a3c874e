import pytest

from nekort import unicode as uni
from nekort.unicode import Encoding, UnicodeBuffer
from nekort.values import NekoError, NekoThrow

CODECS = {
    Encoding.ASCII: "ascii",
    Encoding.ISO_LATIN1: "latin-1",
    Encoding.UTF8: "utf-8",
    Encoding.UCS2_BE: "utf-16-be",
    Encoding.UCS2_LE: "utf-16-le",
    Encoding.UTF16_BE: "utf-16-be",
    Encoding.UTF16_LE: "utf-16-le",
    Encoding.UTF32_BE: "utf-32-be",
    Encoding.UTF32_LE: "utf-32-le",
}


def sample(enc):
    if enc is Encoding.ASCII:
        return "hello"
    if enc is Encoding.ISO_LATIN1:
        return "h\u00e9llo"
    if enc in (Encoding.UCS2_BE, Encoding.UCS2_LE):
        return "h\u00e9llo\u20ac"
    return "h\u00e9llo\u20ac\U0001F600"


ALL = list(Encoding)


def test_documented_codes():
    assert uni.encoding_code("utf8") == 2
    assert uni.encoding_code(b"ucs2-be") == 3
    assert uni.encoding_name(0) == "ascii"


@pytest.mark.parametrize("enc", ALL)
def test_code_name_round_trip(enc):
    assert uni.encoding_code(uni.encoding_name(int(enc))) is enc
    assert enc.label == uni.encoding_name(enc)


def test_unknown_encoding_name():
    with pytest.raises(NekoError):
        uni.encoding_code("latin9")
    with pytest.raises(NekoError):
        uni.encoding_name(9)


def test_invalid_encoding_value():
    with pytest.raises(NekoThrow):
        uni.length(b"a", 42)


@pytest.mark.parametrize("enc", ALL)
def test_buffer_matches_codec(enc):
    text = sample(enc)
    buf = UnicodeBuffer(4, enc)
    for ch in text:
        buf.add(ord(ch))
    expected = text.encode(CODECS[enc])
    assert buf.content() == expected
    assert buf.length() == len(text)
    assert buf.size() == len(expected)


def test_buffer_out_of_range():
    buf = UnicodeBuffer(0, Encoding.ASCII)
    with pytest.raises(NekoError):
        buf.add(0x80)
    assert buf.length() == 0


def test_buffer_negative_size():
    with pytest.raises(NekoError):
        UnicodeBuffer(-1, Encoding.UTF8)


@pytest.mark.parametrize("enc", ALL)
def test_validate_good(enc):
    assert uni.validate(sample(enc).encode(CODECS[enc]), enc) is True


def test_validate_bad():
    assert uni.validate(b"\x80", Encoding.UTF8) is False
    assert uni.validate(b"ab\x80", Encoding.ASCII) is False
    assert uni.validate(b"\xff\x80", Encoding.ISO_LATIN1) is True
    assert uni.validate(b"abc", Encoding.UCS2_LE) is False
    half = "\U0001F600".encode("utf-16-le")[:2]
    assert uni.validate(half, Encoding.UTF16_LE) is False
    half_be = "\U0001F600".encode("utf-16-be")[:2]
    assert uni.validate(half_be, Encoding.UTF16_BE) is False
    assert uni.validate(b"\xff\xfe\x00\x00", Encoding.UTF32_BE) is False


@pytest.mark.parametrize("enc", ALL)
def test_length(enc):
    text = sample(enc)
    assert uni.length(text.encode(CODECS[enc]), enc) == len(text)


@pytest.mark.parametrize("enc", ALL)
def test_sub(enc):
    text = sample(enc)
    data = text.encode(CODECS[enc])
    assert uni.sub(data, enc, 1, 3) == text[1:4].encode(CODECS[enc])
    assert uni.sub(data, enc, 0, len(text)) == data


def test_sub_negative():
    with pytest.raises(NekoError):
        uni.sub(b"abc", Encoding.UTF8, -1, 1)
    with pytest.raises(NekoError):
        uni.sub(b"abc", Encoding.ASCII, 4, 0)


@pytest.mark.parametrize("enc", ALL)
def test_get_each_char(enc):
    text = sample(enc)
    data = text.encode(CODECS[enc])
    assert [uni.get(data, enc, i) for i in range(len(text))] == [ord(c) for c in text]
    with pytest.raises(NekoError):
        uni.get(data, enc, len(text))


@pytest.mark.parametrize("enc", ALL)
def test_iterate(enc):
    text = sample(enc)
    assert list(uni.iterate(text.encode(CODECS[enc]), enc)) == [ord(c) for c in text]


def test_iterate_malformed():
    with pytest.raises(NekoError):
        list(uni.iterate(b"a\xe2\x82", Encoding.UTF8))


PAIRS = [("abc", "abd"), ("ab", "abc"), ("abc", "abc"), ("\u20ac", "\U0001F600"),
         ("\U0001F600", "\uffff"), ("h\u00e9", "he")]


@pytest.mark.parametrize("enc", [Encoding.UTF8, Encoding.UTF16_BE, Encoding.UTF16_LE,
                                 Encoding.UTF32_BE, Encoding.UTF32_LE])
@pytest.mark.parametrize("a,b", PAIRS)
def test_compare_follows_code_points(enc, a, b):
    codec = CODECS[enc]
    expected = (a > b) - (a < b)
    assert uni.compare(a.encode(codec), b.encode(codec), enc) == expected
    assert uni.compare(b.encode(codec), a.encode(codec), enc) == -expected


@pytest.mark.parametrize("enc", [Encoding.UCS2_BE, Encoding.UCS2_LE, Encoding.ISO_LATIN1])
def test_compare_bmp(enc):
    codec = CODECS[enc]
    assert uni.compare("h\u00e9".encode(codec), "ha".encode(codec), enc) == 1
    assert uni.compare("a".encode(codec), "ab".encode(codec), enc) == -1


@pytest.mark.parametrize("src", [Encoding.UTF8, Encoding.UTF16_LE, Encoding.UTF32_BE])
@pytest.mark.parametrize("dst", [Encoding.UTF8, Encoding.UTF16_BE, Encoding.UTF32_LE])
def test_convert_round_trip(src, dst):
    text = sample(Encoding.UTF8)
    converted = uni.convert(text.encode(CODECS[src]), src, dst)
    assert bytes(converted) == text.encode(CODECS[dst])
    assert bytes(uni.convert(converted, dst, src)) == text.encode(CODECS[src])


def test_convert_replacements():
    assert uni.convert("h\u00e9llo".encode("utf-8"), Encoding.UTF8, Encoding.ASCII) == b"h?llo"
    out = uni.convert("\U0001F600".encode("utf-8"), Encoding.UTF8, Encoding.UCS2_BE)
    assert out == "\ufffd".encode("utf-16-be")


def test_convert_same_encoding_returns_input():
    data = bytearray(b"abc")
    assert uni.convert(data, Encoding.UTF8, Encoding.UTF8) is data


def test_convert_malformed():
    with pytest.raises(NekoError):
        uni.convert(b"\x80", Encoding.UTF8, Encoding.UTF16_LE)