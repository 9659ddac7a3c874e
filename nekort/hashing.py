"""Structural hashing of runtime values, stable with respect to memory."""

from __future__ import annotations

import struct
from typing import Any, List, Optional

from nekort.values import NekoObject

_MASK32 = 0xFFFFFFFF


def _int32(x: int) -> int:
    x &= _MASK32
    return x - 0x100000000 if x & 0x80000000 else x


def _signed_char(c: int) -> int:
    return c - 256 if c >= 128 else c


class _State:
    __slots__ = ("h",)

    def __init__(self) -> None:
        self.h = 0

    def big(self, x: int) -> None:
        self.h = (self.h * 65599 + x) & _MASK32

    def small(self, x: int) -> None:
        self.h = (self.h * 19 + x) & _MASK32

    def raw(self, data: bytes) -> None:
        for c in reversed(data):
            self.small(_signed_char(c))


def _hash_rec(v: Any, st: _State, seen: Optional[List[Any]]) -> None:
    if v is None:
        st.small(0)
    elif isinstance(v, bool):
        st.small(1 if v else 0)
    elif isinstance(v, int):
        st.big(_int32(v))
    elif isinstance(v, float):
        st.raw(struct.pack("=d", v))
    elif isinstance(v, (bytes, bytearray)):
        st.raw(bytes(v))
    elif isinstance(v, (NekoObject, list)):
        chain = seen or []
        for k, prev in enumerate(chain):
            if prev is v:
                st.small(k)
                return
        inner = [v, *chain]
        if isinstance(v, NekoObject):
            for fid in v.fields():
                st.big(_int32(fid))
                _hash_rec(v.table[fid], st, inner)
            if v.proto is not None:
                _hash_rec(v.proto, st, inner)
        else:
            for item in reversed(v):
                _hash_rec(item, st, inner)
    # functions and abstracts are ignored so hashes stay stable wrt memory


def value_hash(v: Any) -> int:
    """Return the structural hash of a value, in the range 0 .. 0x3FFFFFFF."""
    st = _State()
    _hash_rec(v, st, None)
    return st.h & 0x3FFFFFFF