"""The virtual machine instruction set and its static properties."""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, Optional, Tuple, Union


class Opcode(IntEnum):
    """Instruction codes, numbered in encoding order."""

    AccNull = 0
    AccTrue = 1
    AccFalse = 2
    AccThis = 3
    AccInt = 4
    AccStack = 5
    AccGlobal = 6
    AccEnv = 7
    AccField = 8
    AccArray = 9
    AccIndex = 10
    AccBuiltin = 11
    SetStack = 12
    SetGlobal = 13
    SetEnv = 14
    SetField = 15
    SetArray = 16
    SetIndex = 17
    SetThis = 18
    Push = 19
    Pop = 20
    Call = 21
    ObjCall = 22
    Jump = 23
    JumpIf = 24
    JumpIfNot = 25
    Trap = 26
    EndTrap = 27
    Ret = 28
    MakeEnv = 29
    MakeArray = 30
    Bool = 31
    IsNull = 32
    IsNotNull = 33
    Add = 34
    Sub = 35
    Mult = 36
    Div = 37
    Mod = 38
    Shl = 39
    Shr = 40
    UShr = 41
    Or = 42
    And = 43
    Xor = 44
    Eq = 45
    Neq = 46
    Gt = 47
    Gte = 48
    Lt = 49
    Lte = 50
    Not = 51
    TypeOf = 52
    Compare = 53
    Hash = 54
    New = 55
    JumpTable = 56
    Apply = 57
    AccStack0 = 58
    AccStack1 = 59
    AccIndex0 = 60
    AccIndex1 = 61
    PhysCompare = 62
    TailCall = 63
    Loop = 64
    MakeArray2 = 65
    AccInt32 = 66
    Last = 67


# None as a stack effect marks an instruction whose effect depends on its parameter.
_VAR = None

_TABLE: Dict[Opcode, Tuple[int, Optional[int]]] = {
    Opcode.AccNull: (0, 0),
    Opcode.AccTrue: (0, 0),
    Opcode.AccFalse: (0, 0),
    Opcode.AccThis: (0, 0),
    Opcode.AccInt: (1, 0),
    Opcode.AccStack: (1, 0),
    Opcode.AccGlobal: (1, 0),
    Opcode.AccEnv: (1, 0),
    Opcode.AccField: (1, 0),
    Opcode.AccArray: (0, -1),
    Opcode.AccIndex: (1, 0),
    Opcode.AccBuiltin: (1, 0),
    Opcode.SetStack: (1, 0),
    Opcode.SetGlobal: (1, 0),
    Opcode.SetEnv: (1, 0),
    Opcode.SetField: (1, -1),
    Opcode.SetArray: (0, -2),
    Opcode.SetIndex: (1, -1),
    Opcode.SetThis: (0, 0),
    Opcode.Push: (0, 1),
    Opcode.Pop: (1, _VAR),
    Opcode.Call: (1, _VAR),
    Opcode.ObjCall: (1, _VAR),
    Opcode.Jump: (1, 0),
    Opcode.JumpIf: (1, 0),
    Opcode.JumpIfNot: (1, 0),
    Opcode.Trap: (1, 6),
    Opcode.EndTrap: (0, -6),
    Opcode.Ret: (1, 0),
    Opcode.MakeEnv: (1, _VAR),
    Opcode.MakeArray: (1, _VAR),
    Opcode.Bool: (0, 0),
    Opcode.IsNull: (0, 0),
    Opcode.IsNotNull: (0, 0),
    Opcode.Add: (0, -1),
    Opcode.Sub: (0, -1),
    Opcode.Mult: (0, -1),
    Opcode.Div: (0, -1),
    Opcode.Mod: (0, -1),
    Opcode.Shl: (0, -1),
    Opcode.Shr: (0, -1),
    Opcode.UShr: (0, -1),
    Opcode.Or: (0, -1),
    Opcode.And: (0, -1),
    Opcode.Xor: (0, -1),
    Opcode.Eq: (0, -1),
    Opcode.Neq: (0, -1),
    Opcode.Gt: (0, -1),
    Opcode.Gte: (0, -1),
    Opcode.Lt: (0, -1),
    Opcode.Lte: (0, -1),
    Opcode.Not: (0, 0),
    Opcode.TypeOf: (0, 0),
    Opcode.Compare: (0, -1),
    Opcode.Hash: (0, 0),
    Opcode.New: (0, 0),
    Opcode.JumpTable: (1, 0),
    Opcode.Apply: (1, _VAR),
    Opcode.AccStack0: (0, 0),
    Opcode.AccStack1: (0, 0),
    Opcode.AccIndex0: (0, 0),
    Opcode.AccIndex1: (0, 0),
    Opcode.PhysCompare: (0, -1),
    Opcode.TailCall: (1, 0),
    Opcode.Loop: (0, 0),
    Opcode.MakeArray2: (1, _VAR),
    Opcode.AccInt32: (1, 0),
}


def parameter_count(op: Union[Opcode, int]) -> int:
    """Return how many inline parameters follow the instruction."""
    code = Opcode(op)
    if code not in _TABLE:
        raise ValueError(f"{code.name} takes no parameters table entry")
    return _TABLE[code][0]


def stack_effect(op: Union[Opcode, int]) -> Optional[int]:
    """Return the change in stack depth, or None when it depends on the parameter."""
    code = Opcode(op)
    if code is Opcode.Last:
        return 0
    return _TABLE[code][1]