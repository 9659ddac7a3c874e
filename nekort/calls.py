"""The virtual machine context and calling of function values."""

from __future__ import annotations

import sys
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from nekort.values import VAR_ARGS, Kind, NekoError, NekoFunction, NekoObject, NekoThrow

CALL_MAX_ARGS = 5
MAX_CALLS = 350

Printer = Callable[[bytes], None]

_KEEP = object()


def _default_printer(data: bytes) -> None:
    out = sys.stdout
    buf = getattr(out, "buffer", None)
    if buf is not None:
        out.flush()
        buf.write(data)
        buf.flush()
    else:
        out.write(data.decode("latin-1"))
    out.flush()


class VM:
    """Execution context: current this, environment, printer and custom slots."""

    def __init__(self, printer: Optional[Printer] = None, max_depth: int = MAX_CALLS) -> None:
        self.this: Any = None
        self.env: Any = []
        self.resolver: Optional[NekoFunction] = None
        self.exc_stack: List[Any] = []
        self.max_depth = max_depth
        self._depth = 0
        self._customs: Dict[Kind, Any] = {}
        self._printer: Printer = printer or _default_printer
        self._previous: List[Printer] = []

    def call(self, f: Any, args: Sequence[Any] = (), this: Any = _KEEP) -> Any:
        """Call a function value; this is kept unchanged unless given."""
        args = list(args)
        old_this, old_env = self.this, self.env
        if this is not _KEEP:
            self.this = this
        try:
            if self._depth >= self.max_depth:
                raise NekoThrow(bytearray(b"C Stack Overflow"))
            if not isinstance(f, NekoFunction):
                raise NekoThrow(bytearray(b"Invalid call"))
            self.env = f.env
            n = len(args)
            if n == f.nargs:
                if n > CALL_MAX_ARGS:
                    raise NekoError("Too many arguments for a call")
            elif f.nargs != VAR_ARGS:
                raise NekoThrow(bytearray(b"Invalid call"))
            self._depth += 1
            try:
                return f.impl(*args)
            except RecursionError:
                raise NekoThrow(bytearray(b"C Stack Overflow")) from None
            finally:
                self._depth -= 1
        finally:
            self.this = old_this
            self.env = old_env

    def call_catching(
        self, f: Any, args: Sequence[Any] = (), this: Any = _KEEP
    ) -> Tuple[bool, Any]:
        """Call f; return (True, result) or (False, thrown value)."""
        try:
            return True, self.call(f, args, this)
        except NekoThrow as exc:
            return False, exc.value

    def ocall(self, obj: Any, fid: int, args: Sequence[Any] = ()) -> Any:
        """Call the field fid of obj with obj as this."""
        f = obj.get(fid) if isinstance(obj, NekoObject) else None
        return self.call(f, args, obj)

    def custom(self, kind: Kind) -> Any:
        return self._customs.get(kind)

    def set_custom(self, kind: Kind, value: Any) -> None:
        """Store a value under kind; None removes it."""
        if value is None:
            self._customs.pop(kind, None)
        else:
            self._customs[kind] = value

    def redirect(self, printer: Optional[Printer]) -> None:
        """Send output to printer; None restores the previous printer."""
        if printer is None:
            if self._previous:
                self._printer = self._previous.pop()
            return
        self._previous.append(self._printer)
        self._printer = printer

    def print(self, data: Any) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._printer(bytes(data))


def make_apply(vm: VM, nargs: int, env: List[Any]) -> NekoFunction:
    """Build a function waiting for the last nargs arguments of env[0].

    env holds the target function followed by its arguments, the last nargs
    of which are filled in at call time.
    """
    if not 1 <= nargs <= 5:
        raise NekoError("Too many apply arguments")

    def _apply(*params: Any) -> Any:
        bound = env[1:len(env) - nargs]
        return vm.call(env[0], [*bound, *params])

    return NekoFunction(_apply, nargs, "apply", env)