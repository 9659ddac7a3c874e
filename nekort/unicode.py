"""Operations on Unicode strings held as bytes in one of several encodings.

Most operations are tuned for speed and may succeed on some malformed input;
only validate() checks the encoding thoroughly. Others raise or not
depending on the malformed data.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Iterator, Optional, Tuple, Union

from nekort.values import NekoError

INVALID_CHAR = 0xFFFFFFFF


class Encoding(IntEnum):
    """Supported encodings and their numeric codes."""

    ASCII = 0
    ISO_LATIN1 = 1
    UTF8 = 2
    UCS2_BE = 3
    UCS2_LE = 4
    UTF16_BE = 5
    UTF16_LE = 6
    UTF32_BE = 7
    UTF32_LE = 8

    @property
    def label(self) -> str:
        return _NAMES[self]


_NAMES = {
    Encoding.ASCII: "ascii",
    Encoding.ISO_LATIN1: "iso-latin1",
    Encoding.UTF8: "utf8",
    Encoding.UCS2_BE: "ucs2-be",
    Encoding.UCS2_LE: "ucs2-le",
    Encoding.UTF16_BE: "utf16-be",
    Encoding.UTF16_LE: "utf16-le",
    Encoding.UTF32_BE: "utf32-be",
    Encoding.UTF32_LE: "utf32-le",
}

_FIXED_WIDTH = {
    Encoding.ASCII: 1,
    Encoding.ISO_LATIN1: 1,
    Encoding.UCS2_BE: 2,
    Encoding.UCS2_LE: 2,
    Encoding.UTF32_BE: 4,
    Encoding.UTF32_LE: 4,
}

_BIG_ENDIAN = frozenset({Encoding.UCS2_BE, Encoding.UTF16_BE, Encoding.UTF32_BE})
_UTF16 = frozenset({Encoding.UTF16_BE, Encoding.UTF16_LE})
_SINGLE_BYTE = frozenset({Encoding.ASCII, Encoding.ISO_LATIN1})
_BYTE_ORDER = {enc: ("big" if enc in _BIG_ENDIAN else "little") for enc in Encoding}

# Byte length of a UTF-8 sequence from the high nibble of its lead byte.
_UTF8_CODELEN = (1, 1, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 2, 2, 3, 4)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _check_int(v: Any, name: str) -> int:
    if not _is_int(v):
        raise NekoError(name)
    return v


def _check_bytes(s: Any, name: str) -> bytes:
    if not isinstance(s, (bytes, bytearray)):
        raise NekoError(name)
    return bytes(s)


def _coerce_encoding(v: Any) -> Encoding:
    if not _is_int(v) or not 0 <= v < len(Encoding):
        raise NekoError("Invalid encoding value")
    return Encoding(v)


def _sign(d: int) -> int:
    return (d > 0) - (d < 0)


def encoding_code(name: Union[str, bytes, bytearray]) -> Encoding:
    """Return the encoding with the given name."""
    if isinstance(name, (bytes, bytearray)):
        name = bytes(name).decode("latin-1")
    if not isinstance(name, str):
        raise NekoError("unicode_encoding")
    for enc, label in _NAMES.items():
        if label == name:
            return enc
    raise NekoError("unicode_encoding")


def encoding_name(code: Any) -> str:
    """Return the name of the encoding with the given code."""
    code = _check_int(code, "unicode_encoding")
    if not 0 <= code < len(Encoding):
        raise NekoError("unicode_encoding")
    return _NAMES[Encoding(code)]


# ----- character level ------------------------------------------------------


def _char_size(c: int, enc: Encoding) -> int:
    """Bytes needed to store c in enc, or 0 when c is out of range."""
    if enc is Encoding.ASCII:
        return 0 if c >= 0x80 else 1
    if enc is Encoding.ISO_LATIN1:
        return 0 if c >= 0x100 else 1
    if enc in (Encoding.UCS2_BE, Encoding.UCS2_LE):
        return 0 if c >= 0x10000 else 2
    if enc in _UTF16:
        if c >= 0x110000:
            return 0
        return 4 if c >= 0x10000 else 2
    if enc in (Encoding.UTF32_BE, Encoding.UTF32_LE):
        return 4
    if c >= 0x200000:
        return 0
    if c < 0x80:
        return 1
    if c < 0x800:
        return 2
    return 3 if c < 0x10000 else 4


def _encode(c: int, enc: Encoding) -> bytes:
    """Encode a code point already known to fit in enc."""
    order = _BYTE_ORDER[enc]
    if enc in _SINGLE_BYTE:
        return bytes((c,))
    if enc is Encoding.UTF8:
        if c < 0x80:
            return bytes((c,))
        if c < 0x800:
            return bytes((0xC0 | (c >> 6), 0x80 | (c & 63)))
        if c < 0x10000:
            return bytes((0xE0 | (c >> 12), 0x80 | ((c >> 6) & 63), 0x80 | (c & 63)))
        return bytes((
            0xF0 | (c >> 18),
            0x80 | ((c >> 12) & 63),
            0x80 | ((c >> 6) & 63),
            0x80 | (c & 63),
        ))
    if enc in _UTF16 and c >= 0x10000:
        c -= 0x10000
        high = 0xD800 | (c >> 10)
        low = 0xDC00 | (c & 0x3FF)
        return high.to_bytes(2, order) + low.to_bytes(2, order)
    return c.to_bytes(_FIXED_WIDTH.get(enc, 2), order)


def _position(data: bytes, start: int, end: int, enc: Encoding, pos: int) -> Optional[int]:
    """Byte offset of the pos-th character counted from start, or None."""
    if pos < 0:
        return None
    width = _FIXED_WIDTH.get(enc)
    if width is not None:
        if pos > (end - start) // width:
            return None
        return start + pos * width
    off = start
    if enc in _UTF16:
        high = 0 if enc in _BIG_ENDIAN else 1
        while off + 1 < end and pos > 0:
            pos -= 1
            off += 4 if (data[off + high] & 0xFC) == 0xD8 else 2
    else:
        while off < end and pos > 0:
            pos -= 1
            step = _UTF8_CODELEN[data[off] >> 4]
            if step == 0:
                return None
            off += step
    return None if off > end else off


def _decode(data: bytes, off: int, end: int, enc: Encoding) -> Optional[Tuple[int, int]]:
    """Decode the character at off; return it with the next offset, or None."""
    size = end - off
    order = _BYTE_ORDER[enc]
    width = _FIXED_WIDTH.get(enc)
    if width is not None:
        if size < width:
            return None
        c = int.from_bytes(data[off:off + width], order)
        if c == INVALID_CHAR:
            return None
        return c, off + width
    if enc in _UTF16:
        if size < 2:
            return None
        c = int.from_bytes(data[off:off + 2], order)
        if (c & 0xFC00) != 0xD800:
            return c, off + 2
        if size < 4:
            return None
        c2 = int.from_bytes(data[off + 2:off + 4], order)
        if (c2 & 0xFC00) != 0xDC00:
            return None
        return (((c & 0x3FF) << 10) | (c2 & 0x3FF)) + 0x10000, off + 4
    if size < 1:
        return None
    c = data[off]
    if c < 0x80:
        return c, off + 1
    n = _UTF8_CODELEN[c >> 4]
    if n == 0 or size < n:
        return None
    tail = data[off + 1:off + n]
    if n == 2:
        c = ((c & 0x3F) << 6) | (tail[0] & 0x7F)
    elif n == 3:
        c = ((c & 0x1F) << 12) | ((tail[0] & 0x7F) << 6) | (tail[1] & 0x7F)
    else:
        c = (((c & 0x0F) << 18) | ((tail[0] & 0x7F) << 12)
             | ((tail[1] & 0x7F) << 6) | (tail[2] & 0x7F))
    return c, off + n


def _decode_all(data: bytes, enc: Encoding, message: str) -> Iterator[int]:
    off, end = 0, len(data)
    while off < end:
        decoded = _decode(data, off, end, enc)
        if decoded is None:
            raise NekoError(message)
        c, off = decoded
        yield c


# ----- buffer ---------------------------------------------------------------


class UnicodeBuffer:
    """Accumulates characters into a string of a given encoding."""

    def __init__(self, size: Any = 0, encoding: Any = Encoding.UTF8) -> None:
        size = _check_int(size, "unicode_buf_alloc")
        if size < 0:
            raise NekoError("unicode_buf_alloc")
        self.encoding = _coerce_encoding(encoding)
        self._data = bytearray()
        self._nchars = 0

    def add(self, c: Any) -> None:
        """Append one character."""
        c = _check_int(c, "unicode_buf_add") & 0xFFFFFFFF
        if _char_size(c, self.encoding) == 0:
            raise NekoError("Unicode char outside of encoding range")
        self._data += _encode(c, self.encoding)
        self._nchars += 1

    def content(self) -> bytearray:
        return bytearray(self._data)

    def length(self) -> int:
        """Number of characters added."""
        return self._nchars

    def size(self) -> int:
        """Number of bytes stored."""
        return len(self._data)


# ----- string operations ----------------------------------------------------


def _valid_utf16(data: bytes, big: bool) -> bool:
    high = 0 if big else 1
    off, end = 0, len(data)
    while off + 1 < end:
        if (data[off + high] & 0xFC) == 0xD8:
            if off + 3 >= end:
                return False
            if (data[off + 2 + high] & 0xFC) != 0xDC:
                return False
            off += 4
        else:
            off += 2
    return off == end


def validate(s: Any, encoding: Any) -> bool:
    """Tell whether s is correctly encoded in the given encoding."""
    data = _check_bytes(s, "unicode_validate")
    enc = _coerce_encoding(encoding)
    if enc is Encoding.ASCII:
        return all(c < 0x80 for c in data)
    if enc is Encoding.ISO_LATIN1:
        return True
    if enc is Encoding.UCS2_LE:
        return data[:2] != b"\xfe\xff" and len(data) % 2 == 0
    if enc is Encoding.UCS2_BE:
        return data[:2] != b"\xff\xfe" and len(data) % 2 == 0
    if enc is Encoding.UTF32_LE:
        return data[:4] != b"\x00\x00\xfe\xff" and len(data) % 4 == 0
    if enc is Encoding.UTF32_BE:
        return data[:4] != b"\xff\xfe\x00\x00" and len(data) % 4 == 0
    if enc is Encoding.UTF16_LE:
        return data[:2] != b"\xfe\xff" and _valid_utf16(data, False)
    if enc is Encoding.UTF16_BE:
        return data[:2] != b"\xff\xfe" and _valid_utf16(data, True)
    off, end = 0, len(data)
    while off < end:
        step = _UTF8_CODELEN[data[off] >> 4]
        if step == 0:
            return False
        off += step
    return off == end


def length(s: Any, encoding: Any) -> int:
    """Return the number of characters in s."""
    data = _check_bytes(s, "unicode_length")
    enc = _coerce_encoding(encoding)
    width = _FIXED_WIDTH.get(enc)
    if width is not None:
        return len(data) // width
    count, off, end = 0, 0, len(data)
    if enc in _UTF16:
        high = 0 if enc in _BIG_ENDIAN else 1
        while off + 1 < end:
            off += 4 if (data[off + high] & 0xFC) == 0xD8 else 2
            count += 1
    else:
        while off < end:
            off += _UTF8_CODELEN[data[off] >> 4] or 1
            count += 1
    return count - 1 if off > end else count


def sub(s: Any, encoding: Any, pos: Any, count: Any) -> bytearray:
    """Return count characters of s starting at character pos."""
    data = _check_bytes(s, "unicode_sub")
    pos = _check_int(pos, "unicode_sub")
    count = _check_int(count, "unicode_sub")
    enc = _coerce_encoding(encoding)
    end = len(data)
    start = _position(data, 0, end, enc, pos)
    if start is None:
        raise NekoError("unicode_sub")
    stop = _position(data, start, end, enc, count)
    if stop is None:
        raise NekoError("unicode_sub")
    return bytearray(data[start:stop])


def get(s: Any, encoding: Any, pos: Any) -> int:
    """Return the code of the pos-th character of s."""
    data = _check_bytes(s, "unicode_get")
    pos = _check_int(pos, "unicode_get")
    enc = _coerce_encoding(encoding)
    off = _position(data, 0, len(data), enc, pos)
    decoded = None if off is None else _decode(data, off, len(data), enc)
    if decoded is None:
        raise NekoError("unicode_get")
    return decoded[0]


def iterate(s: Any, encoding: Any) -> Iterator[int]:
    """Yield the code of each character of s."""
    data = _check_bytes(s, "unicode_iter")
    enc = _coerce_encoding(encoding)
    return _decode_all(data, enc, "unicode_iter")


def _units(data: bytes, width: int, order: str) -> list:
    return [int.from_bytes(data[i:i + width], order)
            for i in range(0, len(data) - width + 1, width)]


def _utf16_point(units: list, i: int) -> Tuple[int, int]:
    c = units[i]
    i += 1
    if (c & 0xFC00) == 0xD800:
        if i == len(units):
            raise NekoError("unicode_compare")
        c = (((c & 0x3FF) << 10) | (units[i] & 0x3FF)) + 0x10000
        i += 1
    return c, i


def compare(s1: Any, s2: Any, encoding: Any) -> int:
    """Compare two strings by character codes: -1, 0 or 1."""
    a = _check_bytes(s1, "unicode_compare")
    b = _check_bytes(s2, "unicode_compare")
    enc = _coerce_encoding(encoding)
    n = min(len(a), len(b))
    if enc in (Encoding.ASCII, Encoding.ISO_LATIN1, Encoding.UCS2_BE, Encoding.UTF32_BE):
        if a[:n] != b[:n]:
            return 1 if a[:n] > b[:n] else -1
    elif enc in (Encoding.UCS2_LE, Encoding.UTF32_LE):
        width = _FIXED_WIDTH[enc]
        for c1, c2 in zip(_units(a, width, "little"), _units(b, width, "little")):
            if c1 != c2:
                return -1 if c1 < c2 else 1
    elif enc in _UTF16:
        order = _BYTE_ORDER[enc]
        u1, u2 = _units(a, 2, order), _units(b, 2, order)
        i1 = i2 = 0
        while i1 < len(u1) and i2 < len(u2):
            c1, i1 = _utf16_point(u1, i1)
            c2, i2 = _utf16_point(u2, i2)
            if c1 != c2:
                return -1 if c1 < c2 else 1
        return _sign((len(u1) - i1) - (len(u2) - i2))
    else:
        i = 0
        while i < n:
            c1, c2 = a[i], b[i]
            if c1 != c2:
                return 1 if c1 > c2 else -1
            if c1 < 0x80:
                i += 1
                continue
            if c1 < 0xC0:
                raise NekoError("unicode_compare")
            extra = 1 if c1 < 0xE0 else 2 if c1 < 0xF0 else 3
            if i + 1 + extra > n:
                raise NekoError("unicode_compare")
            t1, t2 = a[i + 1:i + 1 + extra], b[i + 1:i + 1 + extra]
            if t1 != t2:
                return 1 if t1 > t2 else -1
            i += 1 + extra
    return _sign(len(a) - len(b))


def convert(s: Any, encoding: Any, to_encoding: Any) -> Any:
    """Re-encode s; characters the target cannot hold become '?' or U+FFFD."""
    data = _check_bytes(s, "unicode_convert")
    enc = _coerce_encoding(encoding)
    target = _coerce_encoding(to_encoding)
    if enc == target:
        return s
    out = bytearray()
    for c in _decode_all(data, enc, "Input string is not correctly encoded"):
        if _char_size(c, target) == 0:
            c = ord("?") if target in _SINGLE_BYTE else 0xFFFD
        out += _encode(c, target)
    return out