"""Streaming compression and decompression over caller-supplied byte buffers.

A stream is fed a source buffer from a position and writes into a destination
buffer from a position. Each call reports how many bytes were read and
written, and whether the end of the stream was reached.
"""

from __future__ import annotations

import re
import zlib
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple, Union

from nekort.values import NekoError

MAX_WBITS = 15
_Z_STREAM_ERROR = -2
_Z_BUF_ERROR = -5
_ZLIB_MESSAGE = re.compile(r"Error (-?\d+)[^:]*(?::\s*(.*))?")


class ZStreamError(NekoError):
    """Raised when the compression library reports an error."""


class FlushMode(IntEnum):
    """Flush modes a stream can be switched to."""

    NO = zlib.Z_NO_FLUSH
    SYNC = zlib.Z_SYNC_FLUSH
    FULL = zlib.Z_FULL_FLUSH
    FINISH = zlib.Z_FINISH
    BLOCK = zlib.Z_BLOCK


def _int32(x: int) -> int:
    x &= 0xFFFFFFFF
    return x - 0x100000000 if x & 0x80000000 else x


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _check_int(v: Any, name: str) -> int:
    if not _is_int(v):
        raise NekoError(name)
    return v


def _error(code: int, message: Optional[str] = None) -> ZStreamError:
    if message:
        return ZStreamError(f"ZLib Error : {message} ({code})")
    return ZStreamError(f"ZLib Error : {code}")


def _from_zlib(exc: zlib.error) -> ZStreamError:
    m = _ZLIB_MESSAGE.match(str(exc))
    if m is None:
        return ZStreamError("ZLib Error : " + str(exc))
    return _error(int(m.group(1)), m.group(2))


def _coerce_mode(mode: Union[FlushMode, str, bytes, bytearray]) -> FlushMode:
    if isinstance(mode, FlushMode):
        return mode
    if isinstance(mode, (bytes, bytearray)):
        mode = bytes(mode).decode("latin-1")
    if isinstance(mode, str):
        try:
            return FlushMode[mode]
        except KeyError:
            pass
    raise NekoError("set_flush_mode")


class _Stream:
    _name = "stream"

    def __init__(self) -> None:
        self._mode = FlushMode.NO
        self._closed = False
        self._adler = 1

    def _check_open(self) -> None:
        if self._closed:
            raise NekoError(self._name)

    def _prepare(self, src: Any, src_pos: Any, dst: Any,
                 dst_pos: Any) -> Tuple[bytes, bytearray, int, int]:
        self._check_open()
        if not isinstance(src, (bytes, bytearray)) or not isinstance(dst, bytearray):
            raise NekoError(self._name)
        src_pos = _check_int(src_pos, self._name)
        dst_pos = _check_int(dst_pos, self._name)
        if src_pos < 0 or dst_pos < 0:
            raise NekoError(self._name)
        slen = len(src) - src_pos
        dlen = len(dst) - dst_pos
        if slen < 0 or dlen < 0:
            raise NekoError(self._name)
        return bytes(src[src_pos:]), dst, dst_pos, dlen

    def _change_mode(self, mode: Union[FlushMode, str]) -> None:
        self._check_open()
        self._mode = _coerce_mode(mode)

    def _checksum(self) -> int:
        self._check_open()
        return _int32(self._adler)

    def _release(self) -> None:
        self._check_open()
        self._closed = True

    def __enter__(self) -> "_Stream":
        return self

    def __exit__(self, *exc: Any) -> None:
        if not self._closed:
            self._release()


class Deflater(_Stream):
    """A compression stream producing zlib-wrapped data."""

    _name = "deflate"

    def __init__(self, level: Any = -1) -> None:
        super().__init__()
        level = _check_int(level, "deflate_init")
        try:
            self._z = zlib.compressobj(level)
        except (zlib.error, ValueError):
            raise _error(_Z_STREAM_ERROR) from None
        self._pending = bytearray()
        self._finished = False

    def process(self, src: Any, src_pos: Any, dst: Any, dst_pos: Any) -> Dict[str, Any]:
        """Compress src[src_pos:] into dst[dst_pos:]; return done, read and write."""
        data, dst, dst_pos, dlen = self._prepare(src, src_pos, dst, dst_pos)
        if self._finished and data:
            raise _error(_Z_BUF_ERROR, "buffer error")
        try:
            if data:
                self._pending += self._z.compress(data)
                self._adler = zlib.adler32(data, self._adler)
            if self._mode is FlushMode.FINISH:
                if not self._finished:
                    self._pending += self._z.flush(zlib.Z_FINISH)
                    self._finished = True
            elif self._mode is not FlushMode.NO and not self._finished:
                self._pending += self._z.flush(int(self._mode))
        except zlib.error as exc:
            raise _from_zlib(exc) from None
        n = min(len(self._pending), dlen)
        dst[dst_pos:dst_pos + n] = self._pending[:n]
        del self._pending[:n]
        return {
            "done": self._finished and not self._pending,
            "read": len(data),
            "write": n,
        }

    def set_flush_mode(self, mode: Union[FlushMode, str]) -> None:
        """Change the flush mode: NO, SYNC, FULL, FINISH or BLOCK."""
        self._change_mode(mode)

    def adler32(self) -> int:
        """Return the running checksum of the input as a signed 32-bit int."""
        return self._checksum()

    def bound(self, n: Any) -> int:
        """Return the largest compressed size of n input bytes."""
        self._check_open()
        n = _check_int(n, "deflate_bound")
        if n < 0:
            raise NekoError("deflate_bound")
        return n + (n >> 12) + (n >> 14) + (n >> 25) + 13

    def close(self) -> None:
        """Release the stream; it cannot be used afterwards."""
        self._release()


class Inflater(_Stream):
    """A decompression stream."""

    _name = "inflate"

    def __init__(self, window_bits: Any = None) -> None:
        super().__init__()
        wbits = MAX_WBITS if window_bits is None else _check_int(window_bits, "inflate_init")
        try:
            self._z = zlib.decompressobj(wbits)
        except (zlib.error, ValueError):
            raise _error(_Z_STREAM_ERROR) from None
        if wbits < 0:
            self._check = None
            self._adler = 0
        elif 16 <= wbits < 32:
            self._check = zlib.crc32
            self._adler = 0
        else:
            self._check = zlib.adler32

    def process(self, src: Any, src_pos: Any, dst: Any, dst_pos: Any) -> Dict[str, Any]:
        """Decompress src[src_pos:] into dst[dst_pos:]; return done, read and write."""
        data, dst, dst_pos, dlen = self._prepare(src, src_pos, dst, dst_pos)
        if dlen == 0:
            return {"done": self._z.eof, "read": 0, "write": 0}
        before = len(self._z.unused_data)
        try:
            out = self._z.decompress(data, dlen)
        except zlib.error as exc:
            raise _from_zlib(exc) from None
        extra = len(self._z.unused_data) - before
        read = len(data) - len(self._z.unconsumed_tail) - extra
        dst[dst_pos:dst_pos + len(out)] = out
        if self._check is not None and out:
            self._adler = self._check(out, self._adler)
        return {"done": self._z.eof, "read": read, "write": len(out)}

    def set_flush_mode(self, mode: Union[FlushMode, str]) -> None:
        """Change the flush mode: NO, SYNC, FULL, FINISH or BLOCK."""
        self._change_mode(mode)

    def adler32(self) -> int:
        """Return the running checksum of the output as a signed 32-bit int."""
        return self._checksum()

    def close(self) -> None:
        """Release the stream; it cannot be used afterwards."""
        self._release()


def _checked_range(s: Any, pos: Any, length: Any, name: str) -> bytes:
    if not isinstance(s, (bytes, bytearray)):
        raise NekoError(name)
    pos = _check_int(pos, name)
    length = _check_int(length, name)
    if pos < 0 or length < 0 or pos + length > len(s):
        raise NekoError(name)
    return bytes(s[pos:pos + length])


def update_adler32(adler: Any, s: Any, pos: Any, length: Any) -> int:
    """Update an adler32 value with s[pos:pos+length]."""
    adler = _check_int(adler, "update_adler32")
    data = _checked_range(s, pos, length, "update_adler32")
    return _int32(zlib.adler32(data, adler & 0xFFFFFFFF))


def update_crc32(crc: Any, s: Any, pos: Any, length: Any) -> int:
    """Update a CRC32 value with s[pos:pos+length]."""
    crc = _check_int(crc, "update_crc32")
    data = _checked_range(s, pos, length, "update_crc32")
    return _int32(zlib.crc32(data, crc & 0xFFFFFFFF))