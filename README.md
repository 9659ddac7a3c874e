# nekort

`nekort` is the runtime core of a small dynamic virtual machine, in plain
Python with no third-party dependencies. Strings are held as `bytes` or
`bytearray`, arrays as `list`, null as `None`; objects, functions and
abstract values have their own classes.

## What is in it

- **`nekort.values`**: `NekoObject` (a table of field ids with an optional
  prototype; `get`, `set`, `remove`, `has`, `fields`, `copy`),
  `NekoFunction` (a callable with a fixed argument count or `VAR_ARGS`),
  `Abstract` and `Kind`, `KindRegistry` (`lookup`, `share`), `field_id` and
  `field_name` for hashed field names, `new_object`, `empty_string`,
  `compare`, and the exceptions `NekoThrow` (carries any thrown value) and
  `NekoError` (a runtime failure whose thrown value is its message).
- **`nekort.calls`**: `VM`, which calls function values with a `this`
  context (`call`, `call_catching`, `ocall`), limits call depth, keeps
  per-kind custom data (`custom`, `set_custom`) and sends output to a
  printer that can be stacked with `redirect` and written with `print`.
  `make_apply` builds a function waiting for its last arguments.
- **`nekort.builtins_data`**: array operations (`array`, `amake`, `acopy`,
  `asize`, `asub`, `ablit`, `aconcat`), string operations (`smake`, `ssize`,
  `scopy`, `ssub`, `sget`, `sset`, `sblit`, `sfind`), binary reads and
  writes (`sget16`/`sset16`, `sget32`/`sset32`, `sgetf`/`ssetf`,
  `sgetd`/`ssetd`, `itof`, `ftoi`, `itod`, `dtoi`, `isbigendian`), 32-bit
  integer arithmetic (`iadd`, `isub`, `imult`, `idiv`), `isnan`,
  `isinfinite`, `to_int` and `to_float`.
- **`nekort.builtins_objects`**: object builtins (`new`, `objget`, `objset`,
  `objcall`, `objfield`, `objremove`, `objfields`, `objsetproto`,
  `objgetproto`, `hash_field`, `fasthash`, `field`), function builtins
  (`nargs`, `call`, `closure`, `apply`, `varargs`), kinds (`getkind`,
  `iskind`), `typeof`, `compare_values`, `pcompare`, `istrue`, `not_`,
  `throw`, `hkey`, and `HashTable`, a chained hashtable with optional
  comparison functions (`get`, `mem`, `set`, `add`, `remove`, `resize`,
  `iterate`, `count`, `size`).
- **`nekort.hashing`**: `value_hash`, a structural hash in the range
  0 .. 0x3FFFFFFF that is safe on cyclic objects and arrays and ignores
  functions and abstracts.
- **`nekort.unicode`**: `Encoding` (ASCII, ISO Latin-1, UTF-8, UCS-2,
  UTF-16 and UTF-32 in both byte orders), `encoding_code`, `encoding_name`,
  `UnicodeBuffer`, and `validate`, `length`, `sub`, `get`, `iterate`,
  `compare`, `convert`.
- **`nekort.utf8`**: `Utf8Buffer` and `validate`, `length`, `sub`, `get`,
  `iterate`, `compare` for UTF-8 bytes.
- **`nekort.xmlparser`**: `parse_xml`, an event-driven parser, and
  `XmlParseError`.
- **`nekort.zstream`**: `Deflater` and `Inflater` streams that read from and
  write into caller-supplied buffers, `FlushMode`, `ZStreamError`,
  `update_adler32` and `update_crc32`.
- **`nekort.elf`**: `read_header` (`ElfHeader`), `find_section` and
  `find_embedded_bytecode`, which returns the start and end offsets of the
  `.nekobytecode` section of an executable, or `None`.
- **`nekort.opcodes`**: the `Opcode` instruction set with
  `parameter_count` and `stack_effect`.

## Install

```
pip install .
```

## Examples

```python
from nekort.values import NekoObject, field_id, field_name
from nekort import builtins_data as bd
from nekort import utf8

obj = NekoObject()
obj.set(field_id("x"), 42)
assert obj.get(field_id("x")) == 42
assert field_name(field_id("x")) == b"x"

buf = bd.smake(4)
bd.sset32(buf, 0, 0x01020304, True)
assert buf == b"\x01\x02\x03\x04"
assert bd.sget32(buf, 0, True) == 0x01020304

assert utf8.length("héllo".encode()) == 5
```

Calling function values:

```python
from nekort.calls import VM
from nekort.values import NekoFunction
from nekort import builtins_objects as bo

vm = VM()
add = NekoFunction(lambda a, b: a + b, 2, "add")
assert vm.call(add, [1, 2]) == 3

add1 = bo.apply(vm, add, 1)        # partial application
assert vm.call(add1, [41]) == 42
```

Parsing XML with an events object:

```python
from nekort.xmlparser import parse_xml

class Events:
    def __init__(self):
        self.log = []
    def xml(self, name, attribs):
        self.log.append(("open", name, attribs))
    def done(self):
        self.log.append(("close",))
    def pcdata(self, text):
        self.log.append(("text", text))
    def cdata(self, text):
        self.log.append(("cdata", text))
    def comment(self, text):
        self.log.append(("comment", text))
    def doctype(self, text):
        self.log.append(("doctype", text))

events = Events()
parse_xml('<a id="1">hi</a>', events)
assert events.log == [("open", "a", {"id": "1"}), ("text", "hi"), ("close",)]
```

Compressing and decompressing a buffer:

```python
from nekort.zstream import Deflater, FlushMode, Inflater

with Deflater(6) as d:
    d.set_flush_mode(FlushMode.FINISH)
    packed = bytearray(d.bound(5))
    result = d.process(b"hello", 0, packed, 0)
    assert result["done"]
    packed = packed[:result["write"]]

with Inflater() as i:
    out = bytearray(16)
    result = i.process(packed, 0, out, 0)
    assert out[:result["write"]] == b"hello"
```

## What it does not do

The package holds the runtime pieces around a virtual machine, not the
machine itself: there is no bytecode loader or instruction loop, so
`nekort.opcodes` only describes instructions and `nekort.elf` only finds
where bytecode sits in a file. There is no command-line program and no
user-interface event loop.

## Running the tests

```
pip install .[test]
pytest
```