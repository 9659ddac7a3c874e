"""Runtime values: objects, functions, abstracts, field ids and comparison."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

VAR_ARGS = -1
MAX_STRING_SIZE = (1 << 28) - 1
MAX_ARRAY_SIZE = (1 << 28) - 1


class NekoThrow(Exception):
    """A value thrown by running code."""

    def __init__(self, value: Any) -> None:
        super().__init__(value)
        self.value = value


class NekoError(NekoThrow):
    """A runtime failure; the thrown value is the message as a string."""

    def __init__(self, message: str = "Neko error") -> None:
        super().__init__(bytearray(message.encode("utf-8")))
        self.message = message

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, eq=False)
class Kind:
    """Tag identifying the type of an abstract value."""

    name: str


@dataclass(eq=False)
class Abstract:
    """Opaque data tagged with a kind."""

    kind: Optional[Kind]
    data: Any = None


@dataclass(eq=False)
class NekoFunction:
    """A callable value with a fixed argument count or VAR_ARGS."""

    impl: Callable[..., Any]
    nargs: int
    name: Optional[Union[str, bytes]] = None
    env: Any = field(default_factory=list)

    def __post_init__(self) -> None:
        if not callable(self.impl) or (self.nargs < 0 and self.nargs != VAR_ARGS):
            raise NekoError("alloc_function")
        if isinstance(self.name, str):
            self.name = bytearray(self.name.encode("utf-8"))
        elif isinstance(self.name, (bytes, bytearray)):
            self.name = bytearray(self.name)


@dataclass(eq=False)
class NekoObject:
    """An object: a table of field ids to values plus an optional prototype."""

    table: Dict[int, Any] = field(default_factory=dict)
    proto: Optional["NekoObject"] = None

    def get(self, fid: int) -> Any:
        """Return the field, looking through the prototype chain, or None."""
        obj: Optional[NekoObject] = self
        while obj is not None:
            if fid in obj.table:
                return obj.table[fid]
            obj = obj.proto
        return None

    def set(self, fid: int, value: Any) -> None:
        self.table[fid] = value

    def remove(self, fid: int) -> bool:
        return self.table.pop(fid, _MISSING) is not _MISSING

    def has(self, fid: int) -> bool:
        """Tell whether the object itself (not its prototype) holds the field."""
        return fid in self.table

    def fields(self) -> List[int]:
        """Return the object's own field ids in ascending order."""
        return sorted(self.table)

    def copy(self) -> "NekoObject":
        return NekoObject(dict(self.table), self.proto)


_MISSING = object()


class KindRegistry:
    """Kinds shared between libraries by name."""

    def __init__(self) -> None:
        self._kinds: Dict[str, Kind] = {}
        self._lock = threading.Lock()

    def lookup(self, name: str) -> Optional[Kind]:
        with self._lock:
            return self._kinds.get(name)

    def share(self, kind: Kind, name: str) -> Kind:
        """Return the kind already shared under name, or register this one."""
        with self._lock:
            return self._kinds.setdefault(name, kind)


def _as_bytes(name: Union[str, bytes, bytearray]) -> bytes:
    if isinstance(name, str):
        return name.encode("utf-8")
    return bytes(name)


def _wrap31(x: int) -> int:
    x &= 0x7FFFFFFF
    return x - 0x80000000 if x >= 0x40000000 else x


_fields: Dict[int, bytes] = {}
_fields_lock = threading.Lock()


def field_id(name: Union[str, bytes, bytearray]) -> int:
    """Hash a field name into its id and remember the name."""
    raw = _as_bytes(name).split(b"\0", 1)[0]
    acc = 0
    for c in raw:
        acc = _wrap31(223 * acc + c)
    with _fields_lock:
        _fields.setdefault(acc, raw)
    return acc


def field_name(fid: int) -> Optional[bytearray]:
    """Return the name registered for a field id, or None."""
    with _fields_lock:
        raw = _fields.get(fid)
    return None if raw is None else bytearray(raw)


def new_object(source: Optional[NekoObject] = None) -> NekoObject:
    """Create an empty object, or a copy of source."""
    if source is None:
        return NekoObject()
    if not isinstance(source, NekoObject):
        raise NekoThrow(bytearray(b"$new"))
    return source.copy()


def empty_string(size: int) -> bytearray:
    """Allocate a zero-filled string of the given size."""
    if size < 0 or size > MAX_STRING_SIZE:
        raise NekoError("max_string_size reached")
    return bytearray(size)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def compare(a: Any, b: Any) -> Optional[int]:
    """Compare two values: -1, 0 or 1, or None when they cannot be compared."""
    if a is None or b is None:
        return 0 if a is None and b is None else None
    if isinstance(a, bool) or isinstance(b, bool):
        return 0 if a is b else None
    if _is_number(a) and _is_number(b):
        if isinstance(a, float) and math.isnan(a) or isinstance(b, float) and math.isnan(b):
            return None
        return (a > b) - (a < b)
    if isinstance(a, (bytes, bytearray)) and isinstance(b, (bytes, bytearray)):
        return (bytes(a) > bytes(b)) - (bytes(a) < bytes(b))
    return 0 if a is b else None