"""Builtins working on objects, functions, kinds, hashtables and comparisons."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

from nekort.calls import VM, make_apply
from nekort.hashing import value_hash
from nekort.values import (
    VAR_ARGS,
    Abstract,
    Kind,
    NekoError,
    NekoFunction,
    NekoObject,
    NekoThrow,
    compare,
    field_id,
    field_name,
    new_object,
)

HASH_DEF_SIZE = 7

KIND_KIND = Kind("kind")
OLD_INT32_KIND = Kind("int32")
HASH_KIND = Kind("hash")


def _fail(name: str) -> NekoError:
    return NekoError("$" + name)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _is_int32(v: Any) -> bool:
    """Integers that do not fit in the 31-bit tagged representation."""
    return _is_int(v) and not (-(1 << 30) <= v < (1 << 30))


def _check_int(v: Any, name: str) -> int:
    if not _is_int(v):
        raise _fail(name)
    return v


def _check_object(v: Any, name: str) -> NekoObject:
    if not isinstance(v, NekoObject):
        raise _fail(name)
    return v


def _check_function(f: Any, n: int, name: str) -> NekoFunction:
    if not isinstance(f, NekoFunction) or (f.nargs != n and f.nargs != VAR_ARGS):
        raise _fail(name)
    return f


# ----- hashtables -----------------------------------------------------------


@dataclass(eq=False)
class _Cell:
    hkey: int
    key: Any
    value: Any


class HashTable:
    """A chained hashtable keyed by structural hash, with optional comparators."""

    def __init__(self, size: Any = HASH_DEF_SIZE, vm: Optional[VM] = None) -> None:
        n = _check_int(size, "hnew")
        if n <= 0:
            n = HASH_DEF_SIZE
        self._cells: List[List[_Cell]] = [[] for _ in range(n)]
        self._nitems = 0
        self._vm = vm

    def _machine(self) -> VM:
        if self._vm is None:
            self._vm = VM()
        return self._vm

    def _matches(self, key: Any, other: Any, cmp: Any) -> bool:
        if cmp is None:
            return compare(key, other) == 0
        r = self._machine().call(cmp, [key, other])
        return _is_int(r) and r == 0

    def _bucket(self, key: Any) -> List[_Cell]:
        return self._cells[value_hash(key) % len(self._cells)]

    def _find(self, key: Any, cmp: Any, name: str) -> Optional[_Cell]:
        if cmp is not None:
            _check_function(cmp, 2, name)
        for cell in self._bucket(key):
            if self._matches(key, cell.key, cmp):
                return cell
        return None

    def get(self, key: Any, cmp: Any = None) -> Any:
        """Return the value bound to key, or None."""
        cell = self._find(key, cmp, "hget")
        return None if cell is None else cell.value

    def mem(self, key: Any, cmp: Any = None) -> bool:
        return self._find(key, cmp, "hmem") is not None

    def remove(self, key: Any, cmp: Any = None) -> bool:
        """Remove the most recent binding of key; tell whether one existed."""
        if cmp is not None:
            _check_function(cmp, 2, "hremove")
        bucket = self._bucket(key)
        for i, cell in enumerate(bucket):
            if self._matches(key, cell.key, cmp):
                del bucket[i]
                self._nitems -= 1
                return True
        return False

    def _insert(self, hkey: int, key: Any, value: Any) -> None:
        if self._nitems >= len(self._cells) << 1:
            self.resize(len(self._cells) << 1)
        self._cells[hkey % len(self._cells)].insert(0, _Cell(hkey, key, value))
        self._nitems += 1

    def set(self, key: Any, value: Any, cmp: Any = None) -> bool:
        """Rebind key or add it; return True when a new binding was added."""
        cell = self._find(key, cmp, "hset")
        if cell is not None:
            cell.value = value
            return False
        self._insert(value_hash(key), key, value)
        return True

    def add(self, key: Any, value: Any) -> None:
        """Add a binding that masks, but does not remove, any previous one."""
        hkey = value_hash(key)
        if hkey < 0:
            raise _fail("hadd")
        self._insert(hkey, key, value)

    def resize(self, size: Any) -> None:
        n = _check_int(size, "hresize")
        if n <= 0:
            n = HASH_DEF_SIZE
        cells: List[List[_Cell]] = [[] for _ in range(n)]
        for bucket in self._cells:
            for cell in reversed(bucket):
                cells[cell.hkey % n].insert(0, cell)
        self._cells = cells

    def iterate(self, f: Any) -> None:
        """Call f with every key and value."""
        _check_function(f, 2, "hiter")
        vm = self._machine()
        for bucket in self._cells:
            for cell in list(bucket):
                vm.call(f, [cell.key, cell.value])

    def count(self) -> int:
        return self._nitems

    def size(self) -> int:
        return len(self._cells)

    def __len__(self) -> int:
        return self._nitems


# ----- objects --------------------------------------------------------------


def new(o: Any) -> NekoObject:
    """Return a copy of o, or a new object when o is None."""
    if o is not None and not isinstance(o, NekoObject):
        raise _fail("new")
    return new_object(o)


def objget(o: Any, fid: Any) -> Any:
    if not isinstance(o, NekoObject):
        return None
    return o.get(_check_int(fid, "objget"))


def objset(o: Any, fid: Any, value: Any) -> Any:
    if not isinstance(o, NekoObject):
        return None
    o.set(_check_int(fid, "objset"), value)
    return value


def objcall(vm: VM, o: Any, fid: Any, args: Any) -> Any:
    if not isinstance(o, NekoObject):
        return None
    fid = _check_int(fid, "objcall")
    if not isinstance(args, list):
        raise _fail("objcall")
    return vm.ocall(o, fid, args)


def objfield(o: Any, fid: Any) -> bool:
    fid = _check_int(fid, "objfield")
    return isinstance(o, NekoObject) and o.has(fid)


def objremove(o: Any, fid: Any) -> bool:
    o = _check_object(o, "objremove")
    return o.remove(_check_int(fid, "objremove"))


def objfields(o: Any) -> List[int]:
    return _check_object(o, "objfields").fields()


def hash_field(name: Any) -> int:
    if not isinstance(name, (bytes, bytearray)):
        raise _fail("hash")
    return field_id(name)


def fasthash(name: Any) -> int:
    """Hash a field name without registering it."""
    if not isinstance(name, (bytes, bytearray)):
        raise _fail("fasthash")
    acc = 0
    for c in bytes(name).split(b"\0", 1)[0]:
        acc = (223 * acc + c) & 0x7FFFFFFF
        if acc >= 0x40000000:
            acc -= 0x80000000
    return acc


def field(fid: Any) -> Optional[bytearray]:
    return field_name(_check_int(fid, "field"))


def objsetproto(o: Any, proto: Any) -> None:
    o = _check_object(o, "objsetproto")
    if proto is None:
        o.proto = None
    else:
        o.proto = _check_object(proto, "objsetproto")


def objgetproto(o: Any) -> Optional[NekoObject]:
    return _check_object(o, "objgetproto").proto


# ----- functions ------------------------------------------------------------


def nargs(f: Any) -> int:
    if not isinstance(f, NekoFunction):
        raise _fail("nargs")
    return f.nargs


def call(vm: VM, f: Any, this: Any, args: Any) -> Any:
    """Call f with the given this and argument array."""
    if not isinstance(args, list):
        raise _fail("call")
    return vm.call(f, args, this)


def closure(vm: VM, f: Any, this: Any, *args: Any) -> NekoFunction:
    """Bind this and leading arguments to f."""
    if not isinstance(f, NekoFunction):
        raise _fail("closure")
    fargs = f.nargs
    if fargs != VAR_ARGS and fargs < len(args):
        raise NekoError("Invalid closure arguments number")
    bound = list(args)

    def _callback(*params: Any) -> Any:
        if fargs != len(bound) + len(params) and fargs != VAR_ARGS:
            return None
        return vm.call(f, [*bound, *params], this)

    return NekoFunction(_callback, VAR_ARGS, "closure_callback", [f, this, *bound])


def apply(vm: VM, f: Any, *args: Any) -> Any:
    """Call f when enough arguments are given, else return a partial application."""
    if not isinstance(f, NekoFunction):
        raise _fail("apply")
    n = len(args)
    if n == 0:
        return f
    fargs = f.nargs
    if fargs == n or fargs == VAR_ARGS:
        return vm.call(f, list(args))
    if n > fargs:
        raise _fail("apply")
    env = [f, *args, *([None] * (fargs - n))]
    return make_apply(vm, fargs - n, env)


def varargs(vm: VM, f: Any) -> NekoFunction:
    """Return a variable-argument function calling f with the argument array."""
    _check_function(f, 1, "varargs")

    def _callback(*params: Any) -> Any:
        return vm.call(f, [list(params)])

    return NekoFunction(_callback, VAR_ARGS, "varargs", f)


# ----- kinds ----------------------------------------------------------------


def getkind(v: Any) -> Abstract:
    if _is_int32(v):
        return Abstract(KIND_KIND, OLD_INT32_KIND)
    if not isinstance(v, Abstract):
        raise _fail("getkind")
    return Abstract(KIND_KIND, v.kind)


def iskind(v: Any, kind: Any) -> bool:
    if not isinstance(kind, Abstract) or kind.kind is not KIND_KIND:
        raise _fail("iskind")
    if isinstance(v, Abstract):
        return v.kind is kind.data
    if kind.data is OLD_INT32_KIND:
        return _is_int32(v)
    return False


# ----- other ----------------------------------------------------------------


def hkey(v: Any) -> int:
    return value_hash(v)


def typeof(v: Any) -> int:
    """Return the type code: null 0, int 1, float 2, bool 3, string 4,
    object 5, array 6, function 7, abstract 8."""
    if v is None:
        return 0
    if isinstance(v, bool):
        return 3
    if isinstance(v, int):
        return 1
    if isinstance(v, float):
        return 2
    if isinstance(v, (bytes, bytearray)):
        return 4
    if isinstance(v, NekoObject):
        return 5
    if isinstance(v, list):
        return 6
    if isinstance(v, NekoFunction):
        return 7
    if isinstance(v, Abstract):
        return 8
    raise _fail("typeof")


def compare_values(a: Any, b: Any) -> Optional[int]:
    """Compare two values: -1, 0 or 1, or None when not comparable."""
    return compare(a, b)


def pcompare(a: Any, b: Any) -> int:
    """Compare physically: integers by value, everything else by identity."""
    if _is_int(a) and _is_int(b):
        x, y = a, b
    else:
        x, y = id(a), id(b)
    return (x > y) - (x < y)


def istrue(v: Any) -> bool:
    """True unless v is false, null or integer 0."""
    return not (v is None or v is False or (_is_int(v) and v == 0))


def not_(v: Any) -> bool:
    return not istrue(v)


def throw(v: Any) -> None:
    """Throw v as an exception."""
    raise NekoThrow(v)