"""Operations on UTF-8 strings held as bytes.

Most operations are tuned for speed and may succeed on some malformed input;
only validate() checks the format thoroughly. Others raise or not depending
on the malformed data.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional, Tuple

from nekort.values import NekoError


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


def _seq_len(lead: int) -> Optional[int]:
    """Length of the sequence started by lead, or None for a continuation byte."""
    if lead < 0x80:
        return 1
    if lead < 0xC0:
        return None
    if lead < 0xE0:
        return 2
    if lead < 0xF0:
        return 3
    return 4


def _decode_at(data: bytes, off: int, name: str) -> Tuple[int, int]:
    """Decode the character at off; return it with the sequence length."""
    c = data[off]
    n = _seq_len(c)
    if n is None or off + n > len(data):
        raise NekoError(name)
    if n == 1:
        return c, 1
    t = data[off + 1:off + n]
    if n == 2:
        return ((c & 0x3F) << 6) | (t[0] & 0x7F), 2
    if n == 3:
        return ((c & 0x1F) << 12) | ((t[0] & 0x7F) << 6) | (t[1] & 0x7F), 3
    return (((c & 0x0F) << 18) | ((t[0] & 0x7F) << 12)
            | ((t[1] & 0x7F) << 6) | (t[2] & 0x7F)), 4


def _advance(data: bytes, off: int, count: int, name: str) -> int:
    """Skip count characters from off; return the new byte offset."""
    end = len(data)
    while count > 0 and off < end:
        n = _seq_len(data[off])
        if n is None:
            raise NekoError(name)
        off += n
        count -= 1
    if off > end:
        raise NekoError(name)
    return off


class Utf8Buffer:
    """Accumulates code points as UTF-8 bytes."""

    def __init__(self, size: Any = 0) -> None:
        size = _check_int(size, "utf8_buf_alloc")
        if size < 0:
            raise NekoError("utf8_buf_alloc")
        self._data = bytearray()
        self._nesc = 0

    def add(self, c: Any) -> None:
        """Append a code point in the range 0 .. 0x10FFFF."""
        c = _check_int(c, "utf8_buf_add") & 0xFFFFFFFF
        if c <= 0x7F:
            self._data.append(c)
        elif c <= 0x7FF:
            self._nesc += 1
            self._data += bytes((0xC0 | (c >> 6), 0x80 | (c & 63)))
        elif c <= 0xFFFF:
            self._nesc += 2
            self._data += bytes((0xE0 | (c >> 12), 0x80 | ((c >> 6) & 63), 0x80 | (c & 63)))
        elif c <= 0x10FFFF:
            self._nesc += 3
            self._data += bytes((
                0xF0 | (c >> 18),
                0x80 | ((c >> 12) & 63),
                0x80 | ((c >> 6) & 63),
                0x80 | (c & 63),
            ))
        else:
            raise NekoError("utf8_buf_add")

    def content(self) -> bytearray:
        return bytearray(self._data)

    def length(self) -> int:
        """Number of characters stored."""
        return len(self._data) - self._nesc

    def size(self) -> int:
        """Number of bytes stored."""
        return len(self._data)


def validate(s: Any) -> bool:
    """Tell whether s is validly encoded as UTF-8."""
    data = _check_bytes(s, "utf8_validate")
    end = len(data)
    off = 0
    while off < end:
        c = data[off]
        off += 1
        n = _seq_len(c)
        if n is None:
            return False
        for _ in range(n - 1):
            if off >= end or (data[off] & 0x80) != 0x80:
                return False
            off += 1
    return True


def length(s: Any) -> int:
    """Return the number of characters in s."""
    data = _check_bytes(s, "utf8_length")
    count = 0
    off = 0
    end = len(data)
    while off < end:
        n = _seq_len(data[off])
        if n is None:
            raise NekoError("utf8_length")
        off += n
        count += 1
    if off > end:
        raise NekoError("utf8_length")
    return count


def sub(s: Any, pos: Any, count: Any) -> bytearray:
    """Return count characters of s starting at character pos."""
    data = _check_bytes(s, "utf8_sub")
    pos = _check_int(pos, "utf8_sub")
    count = _check_int(count, "utf8_sub")
    if pos < 0:
        raise NekoError("utf8_sub")
    start = _advance(data, 0, pos, "utf8_sub")
    if count < 0:
        raise NekoError("utf8_sub")
    stop = _advance(data, start, count, "utf8_sub")
    return bytearray(data[start:stop])


def get(s: Any, pos: Any) -> int:
    """Return the code of the pos-th character of s."""
    pos = _check_int(pos, "utf8_get")
    data = _check_bytes(s, "utf8_get")
    if pos < 0:
        raise NekoError("utf8_get")
    off = 0
    while off < len(data):
        c, n = _decode_at(data, off, "utf8_get")
        if pos == 0:
            return c
        pos -= 1
        off += n
    raise NekoError("utf8_get")


def _iterate(data: bytes) -> Iterator[int]:
    off = 0
    while off < len(data):
        c, n = _decode_at(data, off, "utf8_iter")
        yield c
        off += n


def iterate(s: Any) -> Iterator[int]:
    """Yield the code of each character of s."""
    return _iterate(_check_bytes(s, "utf8_iter"))


def compare(s1: Any, s2: Any) -> int:
    """Compare two UTF-8 strings by character codes: -1, 0 or 1."""
    a = _check_bytes(s1, "utf8_compare")
    b = _check_bytes(s2, "utf8_compare")
    n = min(len(a), len(b))
    i = 0
    while i < n:
        c1, c2 = a[i], b[i]
        if c1 != c2:
            return 1 if c1 > c2 else -1
        i += 1
        if c1 < 0x7F:
            continue
        if c1 < 0xC0:
            raise NekoError("utf8_compare")
        extra = 1 if c1 < 0xE0 else 2 if c1 < 0xF0 else 3
        if i + extra > n:
            raise NekoError("utf8_compare")
        for _ in range(extra):
            if a[i] != b[i]:
                return 1 if a[i] > b[i] else -1
            i += 1
    if len(a) != len(b):
        return 1 if len(a) > len(b) else -1
    return 0