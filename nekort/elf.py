"""Locating bytecode embedded in a dedicated section of an ELF executable."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional, Tuple, Union

BYTECODE_SECTION = b".nekobytecode"

EI_NIDENT = 16
EI_CLASS = 4
EI_DATA = 5
ELFCLASS32 = 1
ELFCLASS64 = 2
ELFDATA2MSB = 2
ET_EXEC = 2

_EHDR = {True: "16sHHIIIIIHHHHHH", False: "16sHHIQQQIHHHHHH"}
_SHDR = {True: "IIIIIIIIII", False: "IIQQQQIIQQ"}


@dataclass(frozen=True)
class ElfHeader:
    """The fields of an ELF file header that locate its section headers."""

    is_32: bool
    byteorder: str
    e_type: int
    shoff: int
    shentsize: int
    shnum: int
    shstrndx: int


def read_header(data: bytes) -> ElfHeader:
    """Parse the header of an ELF executable; raise ValueError if it is not one."""
    if len(data) < EI_NIDENT:
        raise ValueError("truncated ELF identification")
    cls = data[EI_CLASS]
    if cls not in (ELFCLASS32, ELFCLASS64):
        raise ValueError("unknown ELF class")
    is_32 = cls == ELFCLASS32
    order = ">" if data[EI_DATA] == ELFDATA2MSB else "<"
    fmt = order + _EHDR[is_32]
    if len(data) < struct.calcsize(fmt):
        raise ValueError("truncated ELF header")
    fields = struct.unpack_from(fmt, data)
    if fields[1] != ET_EXEC:
        raise ValueError("not an ELF executable")
    return ElfHeader(
        is_32=is_32,
        byteorder="big" if order == ">" else "little",
        e_type=fields[1],
        shoff=fields[6],
        shentsize=fields[11],
        shnum=fields[12],
        shstrndx=fields[13],
    )


def _section(data: bytes, hdr: ElfHeader, index: int) -> Tuple[int, int, int]:
    """Return the name index, file offset and size of a section."""
    order = ">" if hdr.byteorder == "big" else "<"
    fmt = order + _SHDR[hdr.is_32]
    start = hdr.shoff + index * hdr.shentsize
    if start < 0 or start + struct.calcsize(fmt) > len(data):
        raise ValueError("section header outside file")
    fields = struct.unpack_from(fmt, data, start)
    return fields[0], fields[4], fields[5]


def find_section(data: bytes, name: Union[str, bytes]) -> Optional[int]:
    """Return the index of the first section whose name starts with name, or None."""
    if isinstance(name, str):
        name = name.encode()
    hdr = read_header(data)
    _, stroff, strsize = _section(data, hdr, hdr.shstrndx)
    if stroff + strsize > len(data):
        raise ValueError("string table outside file")
    strtab = data[stroff:stroff + strsize]
    for index in range(hdr.shnum):
        shname, _, _ = _section(data, hdr, index)
        if shname < strsize and strtab[shname:shname + len(name)] == name:
            return index
    return None


def find_embedded_bytecode(path: str) -> Optional[Tuple[int, int]]:
    """Return the start and end offsets of the bytecode section of a file, or None."""
    try:
        with open(path, "rb") as f:
            data = f.read()
        index = find_section(data, BYTECODE_SECTION)
        if index is None:
            return None
        _, offset, size = _section(data, read_header(data), index)
    except (OSError, ValueError):
        return None
    return offset, offset + size