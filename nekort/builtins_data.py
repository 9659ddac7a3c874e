"""Builtins working on arrays, strings, binary encodings and numbers."""

from __future__ import annotations

import math
import re
import struct
import sys
from typing import Any, List, Optional

from nekort.values import MAX_ARRAY_SIZE, NekoError, empty_string

_HOST_BIG = sys.byteorder == "big"
_FLOAT32_MAX = 3.4028234663852886e38


def _fail(name: str) -> NekoError:
    return NekoError("$" + name)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _is_string(v: Any) -> bool:
    return isinstance(v, (bytes, bytearray))


def _check_int(v: Any, name: str) -> int:
    if not _is_int(v):
        raise _fail(name)
    return v


def _check_string(v: Any, name: str) -> Any:
    if not _is_string(v):
        raise _fail(name)
    return v


def _check_mutable(v: Any, name: str) -> bytearray:
    if not isinstance(v, bytearray):
        raise _fail(name)
    return v


def _check_array(v: Any, name: str) -> List[Any]:
    if not isinstance(v, list):
        raise _fail(name)
    return v


def _check_float(v: Any, name: str) -> float:
    if not isinstance(v, float):
        raise _fail(name)
    return v


def _int32(x: int) -> int:
    x &= 0xFFFFFFFF
    return x - 0x100000000 if x & 0x80000000 else x


def _swap(bigendian: Any) -> bool:
    """Tell whether bytes must be swapped from the host order."""
    if _HOST_BIG:
        return bigendian is False
    return bigendian is True


def _bswap16(v: int) -> int:
    return ((v & 0xFF) << 8) | ((v >> 8) & 0xFF)


def _bswap32(v: int) -> int:
    v &= 0xFFFFFFFF
    return int.from_bytes(v.to_bytes(4, "little"), "big")


def _to_float32(f: float) -> float:
    if math.isfinite(f) and abs(f) > _FLOAT32_MAX:
        return math.copysign(math.inf, f)
    return f


def _in_bounds(pos: int, width: int, size: int) -> bool:
    return pos >= 0 and pos + width <= size


# ----- arrays ---------------------------------------------------------------


def array(*args: Any) -> List[Any]:
    """Create an array from the given values."""
    return list(args)


def amake(n: Any) -> List[Any]:
    """Create an array of n nulls."""
    n = _check_int(n, "amake")
    if n < 0 or n > MAX_ARRAY_SIZE:
        raise NekoError("max_array_size reached")
    return [None] * n


def acopy(a: Any) -> List[Any]:
    return list(_check_array(a, "acopy"))


def asize(a: Any) -> int:
    return len(_check_array(a, "asize"))


def asub(a: Any, pos: Any, length: Any) -> List[Any]:
    """Return length elements of a starting at pos."""
    a = _check_array(a, "asub")
    pos = _check_int(pos, "asub")
    length = _check_int(length, "asub")
    if pos < 0 or length < 0 or pos + length > len(a):
        raise _fail("asub")
    return a[pos:pos + length]


def ablit(dst: Any, dst_pos: Any, src: Any, src_pos: Any, length: Any) -> None:
    """Copy length elements from src[src_pos:] to dst[dst_pos:]."""
    dst = _check_array(dst, "ablit")
    dst_pos = _check_int(dst_pos, "ablit")
    src = _check_array(src, "ablit")
    src_pos = _check_int(src_pos, "ablit")
    length = _check_int(length, "ablit")
    if (dst_pos < 0 or src_pos < 0 or length < 0
            or dst_pos + length > len(dst) or src_pos + length > len(src)):
        raise _fail("ablit")
    dst[dst_pos:dst_pos + length] = src[src_pos:src_pos + length]


def aconcat(arrays: Any) -> List[Any]:
    """Concatenate an array of arrays."""
    arrays = _check_array(arrays, "aconcat")
    for a in arrays:
        _check_array(a, "aconcat")
    return [item for a in arrays for item in a]


# ----- strings --------------------------------------------------------------


def smake(n: Any) -> bytearray:
    """Return a zero-filled string of n bytes."""
    return empty_string(_check_int(n, "smake"))


def ssize(s: Any) -> int:
    return len(_check_string(s, "ssize"))


def scopy(s: Any) -> bytearray:
    return bytearray(_check_string(s, "scopy"))


def ssub(s: Any, pos: Any, length: Any) -> bytearray:
    """Return length bytes of s starting at pos."""
    s = _check_string(s, "ssub")
    pos = _check_int(pos, "ssub")
    length = _check_int(length, "ssub")
    if pos < 0 or length < 0 or pos + length > len(s):
        raise _fail("ssub")
    return bytearray(s[pos:pos + length])


def sget(s: Any, pos: Any) -> Optional[int]:
    """Return the byte at pos, or None when out of bounds."""
    s = _check_string(s, "sget")
    pos = _check_int(pos, "sget")
    if pos < 0 or pos >= len(s):
        return None
    return s[pos]


def sset(s: Any, pos: Any, c: Any) -> Optional[int]:
    """Set the byte at pos to c & 255; return it, or None when out of bounds."""
    s = _check_mutable(s, "sset")
    pos = _check_int(pos, "sset")
    c = _check_int(c, "sset")
    if pos < 0 or pos >= len(s):
        return None
    s[pos] = c & 0xFF
    return s[pos]


def sblit(dst: Any, dst_pos: Any, src: Any, src_pos: Any, length: Any) -> None:
    """Copy length bytes from src[src_pos:] to dst[dst_pos:]."""
    dst = _check_mutable(dst, "sblit")
    dst_pos = _check_int(dst_pos, "sblit")
    src = _check_string(src, "sblit")
    src_pos = _check_int(src_pos, "sblit")
    length = _check_int(length, "sblit")
    if (dst_pos < 0 or src_pos < 0 or length < 0
            or dst_pos + length > len(dst) or src_pos + length > len(src)):
        raise _fail("sblit")
    dst[dst_pos:dst_pos + length] = bytes(src[src_pos:src_pos + length])


def sfind(src: Any, pos: Any, pat: Any) -> Optional[int]:
    """Return the first position at or after pos where pat occurs, or None."""
    src = _check_string(src, "sfind")
    pos = _check_int(pos, "sfind")
    pat = _check_string(pat, "sfind")
    if pos < 0 or pos >= len(src):
        raise _fail("sfind")
    found = bytes(src).find(bytes(pat), pos)
    return None if found < 0 else found


# ----- binary encodings -----------------------------------------------------


def sget16(s: Any, pos: Any, bigendian: Any) -> Optional[int]:
    s = _check_string(s, "sget16")
    pos = _check_int(pos, "sget16")
    if not _in_bounds(pos, 2, len(s)):
        return None
    (v,) = struct.unpack("=H", bytes(s[pos:pos + 2]))
    return _bswap16(v) if _swap(bigendian) else v


def sset16(s: Any, pos: Any, value: Any, bigendian: Any) -> None:
    s = _check_mutable(s, "sset16")
    pos = _check_int(pos, "sset16")
    value = _check_int(value, "sset16")
    if not _in_bounds(pos, 2, len(s)):
        raise _fail("sset16")
    v = value & 0xFFFF
    if _swap(bigendian):
        v = _bswap16(v)
    s[pos:pos + 2] = struct.pack("=H", v)


def sget32(s: Any, pos: Any, bigendian: Any) -> Optional[int]:
    s = _check_string(s, "sget32")
    pos = _check_int(pos, "sget32")
    if not _in_bounds(pos, 4, len(s)):
        return None
    (v,) = struct.unpack("=I", bytes(s[pos:pos + 4]))
    if _swap(bigendian):
        v = _bswap32(v)
    return _int32(v)


def sset32(s: Any, pos: Any, value: Any, bigendian: Any) -> None:
    s = _check_mutable(s, "sset32")
    pos = _check_int(pos, "sset32")
    value = _check_int(value, "sset32")
    if not _in_bounds(pos, 4, len(s)):
        raise _fail("sset32")
    v = value & 0xFFFFFFFF
    if _swap(bigendian):
        v = _bswap32(v)
    s[pos:pos + 4] = struct.pack("=I", v)


def sgetf(s: Any, pos: Any, bigendian: Any) -> Optional[float]:
    s = _check_string(s, "sgetf")
    pos = _check_int(pos, "sgetf")
    if not _in_bounds(pos, 4, len(s)):
        return None
    raw = bytes(s[pos:pos + 4])
    if _swap(bigendian):
        raw = raw[::-1]
    return struct.unpack("=f", raw)[0]


def ssetf(s: Any, pos: Any, value: Any, bigendian: Any) -> None:
    s = _check_mutable(s, "ssetf")
    pos = _check_int(pos, "ssetf")
    value = _check_float(value, "ssetf")
    if not _in_bounds(pos, 4, len(s)):
        raise _fail("ssetf")
    raw = struct.pack("=f", _to_float32(value))
    if _swap(bigendian):
        raw = raw[::-1]
    s[pos:pos + 4] = raw


def sgetd(s: Any, pos: Any, bigendian: Any) -> Optional[float]:
    s = _check_string(s, "sgetd")
    pos = _check_int(pos, "sgetd")
    if not _in_bounds(pos, 8, len(s)):
        return None
    raw = bytes(s[pos:pos + 8])
    if _swap(bigendian):
        raw = raw[::-1]
    return struct.unpack("=d", raw)[0]


def ssetd(s: Any, pos: Any, value: Any, bigendian: Any) -> None:
    s = _check_mutable(s, "ssetd")
    pos = _check_int(pos, "ssetd")
    value = _check_float(value, "ssetd")
    if not _in_bounds(pos, 8, len(s)):
        raise _fail("ssetd")
    raw = struct.pack("=d", value)
    if _swap(bigendian):
        raw = raw[::-1]
    s[pos:pos + 8] = raw


def itof(bits: Any, bigendian: Any) -> float:
    """Reinterpret 32 integer bits as a single-precision float."""
    v = _check_int(bits, "itof") & 0xFFFFFFFF
    if _swap(bigendian):
        v = _bswap32(v)
    return struct.unpack("=f", struct.pack("=I", v))[0]


def ftoi(value: Any, bigendian: Any) -> int:
    """Return the 32 bits of a single-precision float as an integer."""
    f = _check_float(value, "ftoi")
    (v,) = struct.unpack("=I", struct.pack("=f", _to_float32(f)))
    if _swap(bigendian):
        v = _bswap32(v)
    return _int32(v)


def itod(low: Any, high: Any, bigendian: Any) -> float:
    """Build a double from two 32-bit integer words."""
    lo = _check_int(low, "itod") & 0xFFFFFFFF
    hi = _check_int(high, "itod") & 0xFFFFFFFF
    if _swap(bigendian):
        words = (_bswap32(hi), _bswap32(lo))
    else:
        words = (lo, hi)
    return struct.unpack("=d", struct.pack("=II", *words))[0]


def dtoi(value: Any, out: Any, bigendian: Any) -> None:
    """Store the two 32-bit words of a double into out[0] and out[1]."""
    f = _check_float(value, "dtoi")
    out = _check_array(out, "dtoi")
    if len(out) < 2:
        raise _fail("dtoi")
    w0, w1 = struct.unpack("=II", struct.pack("=d", f))
    if _swap(bigendian):
        out[1] = _int32(_bswap32(w0))
        out[0] = _int32(_bswap32(w1))
    else:
        out[0] = _int32(w0)
        out[1] = _int32(w1)


def isbigendian() -> bool:
    return _HOST_BIG


# ----- numbers --------------------------------------------------------------


def iadd(a: Any, b: Any) -> int:
    return _int32(_check_int(a, "iadd") + _check_int(b, "iadd"))


def isub(a: Any, b: Any) -> int:
    return _int32(_check_int(a, "isub") - _check_int(b, "isub"))


def imult(a: Any, b: Any) -> int:
    return _int32(_check_int(a, "imult") * _check_int(b, "imult"))


def idiv(a: Any, b: Any) -> int:
    """Divide with truncation toward zero; dividing by zero is an error."""
    a = _int32(_check_int(a, "idiv"))
    b = _int32(_check_int(b, "idiv"))
    if b == 0:
        raise _fail("idiv")
    q = abs(a) // abs(b)
    return _int32(-q if (a < 0) != (b < 0) else q)


def isnan(v: Any) -> bool:
    return isinstance(v, float) and math.isnan(v)


def isinfinite(v: Any) -> bool:
    return isinstance(v, float) and math.isinf(v)


_SPACES = b" \t\n\v\f\r"
_DECIMAL_INT = re.compile(rb"[ \t\n\v\f\r]*([+-]?[0-9]+)")
_HEX_DIGITS = b"0123456789abcdefABCDEF"
_FLOAT_RE = re.compile(
    rb"[ \t\n\v\f\r]*([+-]?)(?:"
    rb"0[xX]([0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)([pP][+-]?[0-9]+)?"
    rb"|((?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)"
    rb"|(inf(?:inity)?|nan))",
    re.IGNORECASE,
)


def _cstring(s: Any) -> bytes:
    return bytes(s).split(b"\0", 1)[0]


def _string_to_int(s: Any) -> Optional[int]:
    text = _cstring(s).lstrip(_SPACES)
    sign = text[:1]
    signed = sign in (b"-", b"+")
    body = text[1:] if signed else text
    if body[:2] in (b"0x", b"0X"):
        h = 0
        for k in body[2:]:
            if k not in _HEX_DIGITS:
                break
            h = ((h << 4) | int(chr(k), 16)) & 0xFFFFFFFF
        h = _int32(h)
        if sign == b"-":
            h = -h
        return _int32(h)
    m = _DECIMAL_INT.match(text)
    if m is None:
        return None
    v = int(m.group(1))
    v = max(-(1 << 63), min((1 << 63) - 1, v))
    return _int32(v)


def to_int(v: Any) -> Optional[int]:
    """Convert a value to an integer, or return None."""
    if isinstance(v, bool):
        return None
    if _is_int(v):
        return v
    if isinstance(v, float):
        if not math.isfinite(v):
            return 0
        return _int32(int(math.fmod(v, 4294967296.0)))
    if _is_string(v):
        return _string_to_int(v)
    return None


def _string_to_float(s: Any) -> Optional[float]:
    m = _FLOAT_RE.match(_cstring(s))
    if m is None:
        return None
    sign, hex_mant, hex_exp, dec, special = m.groups()
    neg = sign == b"-"
    if hex_mant is not None:
        f = float.fromhex("0x" + hex_mant.decode() + ("p" + hex_exp[1:].decode() if hex_exp else ""))
    elif dec is not None:
        f = float(dec)
    else:
        f = float(special.decode())
    return -f if neg else f


def to_float(v: Any) -> Optional[float]:
    """Convert a value to a float, or return None."""
    if _is_string(v):
        return _string_to_float(v)
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return float(v)
    return None