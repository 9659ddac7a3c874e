import struct

import pytest

from nekort.elf import find_embedded_bytecode, find_section, read_header

PAYLOAD = b"NEKO-bytecode-payload"
STRTAB = b"\0.shstrtab\0.nekobytecode\0"


def _build(is_32=False, e_type=2, with_bytecode=True):
    ehdr_fmt = "<16sHHIIIIIHHHHHH" if is_32 else "<16sHHIQQQIHHHHHH"
    shdr_fmt = "<10I" if is_32 else "<IIQQQQIIQQ"
    ehsize = struct.calcsize(ehdr_fmt)
    shsize = struct.calcsize(shdr_fmt)
    strtab = STRTAB if with_bytecode else b"\0.shstrtab\0.text\0"
    payload_off = ehsize
    strtab_off = payload_off + len(PAYLOAD)
    shoff = strtab_off + len(strtab)
    ident = b"\x7fELF" + bytes([1 if is_32 else 2, 1, 1]) + bytes(9)
    header = struct.pack(ehdr_fmt, ident, e_type, 62, 1, 0, 0, shoff, 0,
                         ehsize, 0, 0, shsize, 3, 1)
    sections = [
        struct.pack(shdr_fmt, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0),
        struct.pack(shdr_fmt, 1, 3, 0, 0, strtab_off, len(strtab), 0, 0, 1, 0),
        struct.pack(shdr_fmt, 11, 1, 0, 0, payload_off, len(PAYLOAD), 0, 0, 1, 0),
    ]
    return header + PAYLOAD + strtab + b"".join(sections), payload_off


@pytest.mark.parametrize("is_32", [False, True])
def test_read_header(is_32):
    data, _ = _build(is_32)
    hdr = read_header(data)
    assert hdr.is_32 is is_32
    assert hdr.shnum == 3
    assert hdr.shstrndx == 1
    assert hdr.byteorder == "little"


@pytest.mark.parametrize("is_32", [False, True])
def test_find_section(is_32):
    data, _ = _build(is_32)
    assert find_section(data, ".nekobytecode") == 2
    assert find_section(data, b".shstrtab") == 1
    assert find_section(data, ".missing") is None


def test_not_executable_rejected():
    data, _ = _build(e_type=3)
    with pytest.raises(ValueError):
        read_header(data)


def test_bad_class_rejected():
    data, _ = _build()
    broken = data[:4] + b"\x07" + data[5:]
    with pytest.raises(ValueError):
        read_header(broken)


def test_truncated_rejected():
    data, _ = _build()
    with pytest.raises(ValueError):
        read_header(data[:20])


@pytest.mark.parametrize("is_32", [False, True])
def test_find_embedded_bytecode(tmp_path, is_32):
    data, off = _build(is_32)
    path = tmp_path / "program"
    path.write_bytes(data)
    beg, end = find_embedded_bytecode(str(path))
    assert data[beg:end] == PAYLOAD
    assert beg == off


def test_find_embedded_bytecode_without_section(tmp_path):
    data, _ = _build(with_bytecode=False)
    path = tmp_path / "program"
    path.write_bytes(data)
    assert find_embedded_bytecode(str(path)) is None


def test_find_embedded_bytecode_missing_file(tmp_path):
    assert find_embedded_bytecode(str(tmp_path / "absent")) is None


def test_find_embedded_bytecode_not_elf(tmp_path):
    path = tmp_path / "text"
    path.write_bytes(b"just some text, not an executable")
    assert find_embedded_bytecode(str(path)) is None