import pytest

from nekort import builtins_objects as bo
from nekort.calls import VM
from nekort.values import (
    VAR_ARGS,
    Abstract,
    Kind,
    NekoError,
    NekoFunction,
    NekoObject,
    NekoThrow,
    field_id,
)


@pytest.fixture
def vm():
    return VM()


# ----- hashtables -----------------------------------------------------------


def test_hashtable_default_size():
    assert bo.HashTable(0).size() == bo.HASH_DEF_SIZE
    assert bo.HashTable(-3).size() == bo.HASH_DEF_SIZE
    assert bo.HashTable(20).size() == 20


def test_hashtable_bad_size():
    with pytest.raises(NekoError):
        bo.HashTable(b"x")


def test_hashtable_set_get_remove():
    h = bo.HashTable(7)
    assert h.set(b"a", 1) is True
    assert h.set(b"a", 2) is False
    assert h.get(b"a") == 2
    assert h.mem(b"a") is True
    assert h.count() == 1
    assert h.remove(b"a") is True
    assert h.remove(b"a") is False
    assert h.get(b"a") is None
    assert h.count() == 0


def test_hashtable_add_masks_previous():
    h = bo.HashTable(5)
    h.add(b"k", 1)
    h.add(b"k", 2)
    assert h.get(b"k") == 2
    assert h.count() == 2
    h.remove(b"k")
    assert h.get(b"k") == 1


def test_hashtable_grows():
    h = bo.HashTable(7)
    for i in range(15):
        h.set(i, i * 10)
    assert h.size() == 14
    assert all(h.get(i) == i * 10 for i in range(15))
    assert len(h) == 15


def test_hashtable_resize_keeps_items():
    h = bo.HashTable(3)
    for i in range(5):
        h.set(i, -i)
    h.resize(11)
    assert h.size() == 11
    assert [h.get(i) for i in range(5)] == [0, -1, -2, -3, -4]


def test_hashtable_custom_compare(vm):
    h = bo.HashTable(1, vm)
    h.set(b"x", 1)
    always = NekoFunction(lambda a, b: 0, 2)
    never = NekoFunction(lambda a, b: 1, 2)
    assert h.get(b"anything", always) == 1
    assert h.get(b"x", never) is None
    assert h.mem(b"x", never) is False


def test_hashtable_compare_arity_checked():
    h = bo.HashTable(3)
    with pytest.raises(NekoError):
        h.get(b"x", NekoFunction(lambda a: 0, 1))


def test_hashtable_iterate(vm):
    h = bo.HashTable(4, vm)
    pairs = {b"a": 1, b"b": 2, b"c": 3}
    for k, v in pairs.items():
        h.set(k, v)
    seen = []
    h.iterate(NekoFunction(lambda k, v: seen.append((bytes(k), v)), 2))
    assert sorted(seen) == sorted(pairs.items())


# ----- objects --------------------------------------------------------------


def test_new_and_copy():
    o = bo.new(None)
    bo.objset(o, field_id("a"), 1)
    c = bo.new(o)
    bo.objset(c, field_id("a"), 2)
    assert bo.objget(o, field_id("a")) == 1
    assert bo.objget(c, field_id("a")) == 2
    with pytest.raises(NekoError):
        bo.new(5)


def test_objget_non_object_returns_none():
    assert bo.objget(5, field_id("a")) is None
    assert bo.objset([], field_id("a"), 1) is None


def test_objfield_remove_fields():
    o = NekoObject()
    fa, fb = field_id("a"), field_id("b")
    assert bo.objset(o, fb, b"v") == b"v"
    bo.objset(o, fa, None)
    assert bo.objfield(o, fa) is True
    assert bo.objfield(5, fa) is False
    assert bo.objfields(o) == sorted([fa, fb])
    assert bo.objremove(o, fa) is True
    assert bo.objremove(o, fa) is False
    with pytest.raises(NekoError):
        bo.objremove(5, fa)


def test_hash_and_field_round_trip():
    fid = bo.hash_field(b"foo")
    assert fid == field_id("foo")
    assert bo.fasthash(b"foo") == fid
    assert bo.field(fid) == b"foo"
    with pytest.raises(NekoError):
        bo.hash_field(3)


def test_prototypes():
    proto = NekoObject()
    bo.objset(proto, field_id("p"), 9)
    o = NekoObject()
    bo.objsetproto(o, proto)
    assert bo.objgetproto(o) is proto
    assert bo.objget(o, field_id("p")) == 9
    bo.objsetproto(o, None)
    assert bo.objgetproto(o) is None
    with pytest.raises(NekoError):
        bo.objsetproto(o, 3)


def test_objcall(vm):
    o = NekoObject()
    bo.objset(o, field_id("m"), NekoFunction(lambda x: (vm.this, x), 1))
    this, x = bo.objcall(vm, o, field_id("m"), [4])
    assert this is o and x == 4
    assert bo.objcall(vm, 3, field_id("m"), []) is None


# ----- functions ------------------------------------------------------------


def test_nargs():
    assert bo.nargs(NekoFunction(lambda a, b: a, 2)) == 2
    assert bo.nargs(NekoFunction(lambda *a: a, VAR_ARGS)) == VAR_ARGS
    with pytest.raises(NekoError):
        bo.nargs(1)


def test_call_sets_this(vm):
    f = NekoFunction(lambda a: (vm.this, a), 1)
    assert bo.call(vm, f, b"ctx", [7]) == (b"ctx", 7)
    assert vm.this is None


def test_closure(vm):
    f = NekoFunction(lambda a, b, c: (vm.this, a, b, c), 3)
    c = bo.closure(vm, f, b"me", 1, 2)
    assert c.nargs == VAR_ARGS
    assert vm.call(c, [3]) == (b"me", 1, 2, 3)
    assert vm.call(c, [3, 4]) is None
    with pytest.raises(NekoError):
        bo.closure(vm, f, None, 1, 2, 3, 4)


def test_apply(vm):
    f = NekoFunction(lambda a, b, c: [a, b, c], 3)
    assert bo.apply(vm, f) is f
    assert bo.apply(vm, f, 1, 2, 3) == [1, 2, 3]
    partial = bo.apply(vm, f, 1)
    assert partial.nargs == 2
    assert vm.call(partial, [2, 3]) == [1, 2, 3]
    with pytest.raises(NekoError):
        bo.apply(vm, f, 1, 2, 3, 4)


def test_varargs(vm):
    f = NekoFunction(lambda arr: arr, 1)
    v = bo.varargs(vm, f)
    assert vm.call(v, [1, 2, 3]) == [1, 2, 3]
    with pytest.raises(NekoError):
        bo.varargs(vm, NekoFunction(lambda a, b: a, 2))


# ----- kinds and others -----------------------------------------------------


def test_kinds():
    k = Kind("thing")
    a = Abstract(k, None)
    kv = bo.getkind(a)
    assert bo.iskind(a, kv) is True
    assert bo.iskind(Abstract(Kind("other")), kv) is False
    assert bo.iskind(5, kv) is False
    big = 1 << 31
    assert bo.iskind(big, bo.getkind(big)) is True
    with pytest.raises(NekoError):
        bo.getkind(5)
    with pytest.raises(NekoError):
        bo.iskind(a, a)


def test_typeof():
    values = [None, 1, 1.0, True, b"s", NekoObject(), [],
              NekoFunction(lambda: 0, 0), Abstract(Kind("k"))]
    assert [bo.typeof(v) for v in values] == list(range(9))
    with pytest.raises(NekoError):
        bo.typeof(object())


def test_truthiness():
    assert [bo.istrue(v) for v in (None, False, 0, 0.0, 1, b"")] == [
        False, False, False, True, True, True]
    assert bo.not_(0) is True
    assert bo.not_(b"x") is False


def test_compare_and_pcompare():
    assert bo.compare_values(1, 2) == -1
    assert bo.compare_values(b"b", b"a") == 1
    assert bo.compare_values(1, b"a") is None
    assert bo.pcompare(3, 3) == 0
    assert bo.pcompare(5, 2) == 1
    o = NekoObject()
    assert bo.pcompare(o, o) == 0


def test_hkey_matches_hash():
    from nekort.hashing import value_hash
    assert bo.hkey([1, b"x"]) == value_hash([1, b"x"])


def test_throw():
    with pytest.raises(NekoThrow) as info:
        bo.throw(b"boom")
    assert info.value.value == b"boom"