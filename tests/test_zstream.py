import random
import zlib

import pytest

from nekort.values import NekoError
from nekort.zstream import (
    Deflater,
    FlushMode,
    Inflater,
    ZStreamError,
    update_adler32,
    update_crc32,
)

DATA = b"the quick brown fox jumps over the lazy dog " * 40


def _deflate_all(d, data, chunk=16):
    out = bytearray()
    dst = bytearray(chunk)
    pos = 0
    for _ in range(100000):
        r = d.process(data, pos, dst, 0)
        pos += r["read"]
        out += dst[:r["write"]]
        if r["done"]:
            return bytes(out), pos
    raise AssertionError("deflate did not finish")


def _inflate_all(i, data, chunk=16):
    out = bytearray()
    dst = bytearray(chunk)
    pos = 0
    for _ in range(100000):
        r = i.process(data, pos, dst, 0)
        pos += r["read"]
        out += dst[:r["write"]]
        if r["done"]:
            return bytes(out), pos
    raise AssertionError("inflate did not finish")


def test_deflate_round_trip_through_zlib():
    d = Deflater(6)
    d.set_flush_mode("FINISH")
    out, read = _deflate_all(d, DATA)
    assert read == len(DATA)
    assert zlib.decompress(out) == DATA


def test_inflate_round_trip():
    compressed = zlib.compress(DATA)
    out, read = _inflate_all(Inflater(), compressed)
    assert out == DATA
    assert read == len(compressed)


def test_deflate_then_inflate():
    d = Deflater(9)
    d.set_flush_mode(FlushMode.FINISH)
    compressed, _ = _deflate_all(d, DATA, chunk=7)
    out, _ = _inflate_all(Inflater(None), compressed, chunk=5)
    assert out == DATA


def test_deflate_adler_matches_input_checksum():
    d = Deflater()
    d.set_flush_mode("FINISH")
    _deflate_all(d, DATA)
    assert d.adler32() & 0xFFFFFFFF == zlib.adler32(DATA)


def test_inflate_adler_matches_output_checksum():
    i = Inflater()
    _inflate_all(i, zlib.compress(DATA))
    assert i.adler32() & 0xFFFFFFFF == zlib.adler32(DATA)


def test_fresh_deflater_adler_is_one():
    assert Deflater().adler32() == 1


def test_sync_flush_output_is_decodable():
    d = Deflater()
    d.set_flush_mode("SYNC")
    dst = bytearray(4096)
    r = d.process(DATA, 0, dst, 0)
    assert r["done"] is False
    assert zlib.decompressobj().decompress(bytes(dst[:r["write"]])) == DATA


def test_no_flush_is_not_done():
    d = Deflater()
    r = d.process(b"abc", 0, bytearray(64), 0)
    assert r["done"] is False
    assert r["read"] == 3


def test_bound_covers_incompressible_data():
    data = random.Random(0).randbytes(5000)
    d = Deflater(9)
    assert d.bound(len(data)) >= len(zlib.compress(data, 9))


def test_positions_are_respected():
    d = Deflater()
    d.set_flush_mode("FINISH")
    src = b"XXXX" + DATA
    dst = bytearray(4096)
    r = d.process(src, 4, dst, 10)
    assert r["done"] is True
    assert dst[:10] == bytearray(10)
    assert zlib.decompress(bytes(dst[10:10 + r["write"]])) == DATA


@pytest.mark.parametrize("src_pos,dst_pos", [(-1, 0), (0, -1), (100, 0), (0, 100)])
def test_bad_positions(src_pos, dst_pos):
    with pytest.raises(NekoError):
        Deflater().process(b"abc", src_pos, bytearray(10), dst_pos)


def test_unknown_flush_mode():
    with pytest.raises(NekoError):
        Deflater().set_flush_mode("SOMETIMES")


def test_closed_stream_rejects_use():
    d = Deflater()
    d.close()
    with pytest.raises(NekoError):
        d.process(b"abc", 0, bytearray(10), 0)


def test_context_manager_closes():
    with Inflater() as i:
        pass
    with pytest.raises(NekoError):
        i.adler32()


def test_bad_level():
    with pytest.raises(ZStreamError):
        Deflater(42)


def test_bad_window_bits():
    with pytest.raises(ZStreamError):
        Inflater(3)


def test_corrupt_input():
    with pytest.raises(ZStreamError):
        Inflater().process(b"not compressed at all", 0, bytearray(100), 0)


def test_raw_inflate():
    c = zlib.compressobj(6, zlib.DEFLATED, -15)
    raw = c.compress(DATA) + c.flush()
    out, _ = _inflate_all(Inflater(-15), raw)
    assert out == DATA


def test_update_adler32_empty_is_identity():
    assert update_adler32(1, b"", 0, 0) == 1


def test_update_adler32_substring():
    r = update_adler32(1, b"xxabcxx", 2, 3)
    assert r & 0xFFFFFFFF == zlib.adler32(b"abc")


def test_update_crc32_chains():
    first = update_crc32(0, b"hello world", 0, 5)
    both = update_crc32(first, b"hello world", 5, 6)
    assert both & 0xFFFFFFFF == zlib.crc32(b"hello world")


def test_checksum_range_errors():
    with pytest.raises(NekoError):
        update_crc32(0, b"abc", 2, 5)
    with pytest.raises(NekoError):
        update_adler32(1, b"abc", -1, 1)