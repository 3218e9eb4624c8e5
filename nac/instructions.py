"""Instruction set and compiled module for the VM.

The compiler turns source text into a flat sequence of the instructions
defined here, plus a table of numeric constants. Every operand is a plain
integer: global indices, field ids, constant indices and interner ids are
unsigned 32-bit values, argument counts fit in a byte and jump displacements
are signed 32-bit values measured from the instruction after the jump.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Instruction:
    """Base class for all instructions."""
    pass


@dataclass(frozen=True)
class Load(Instruction):
    gid: int


@dataclass(frozen=True)
class Store(Instruction):
    gid: int


@dataclass(frozen=True)
class IndexGet(Instruction):
    fid: int


@dataclass(frozen=True)
class IndexSet(Instruction):
    fid: int


@dataclass(frozen=True)
class LoadNil(Instruction):
    pass


@dataclass(frozen=True)
class LoadTrue(Instruction):
    pass


@dataclass(frozen=True)
class LoadFalse(Instruction):
    pass


@dataclass(frozen=True)
class LoadConst(Instruction):
    cid: int


@dataclass(frozen=True)
class LoadString(Instruction):
    sid: int


@dataclass(frozen=True)
class Alloc(Instruction):
    pass


@dataclass(frozen=True)
class Call(Instruction):
    args: int


@dataclass(frozen=True)
class Invoke(Instruction):
    """Method invocation on the value below the arguments. Reserved."""
    args: int
    sym: int


@dataclass(frozen=True)
class Jmp(Instruction):
    rel: int


@dataclass(frozen=True)
class JmpIfFalse(Instruction):
    rel: int


@dataclass(frozen=True)
class Pop(Instruction):
    pass


@dataclass(frozen=True)
class Halt(Instruction):
    pass


JUMPS = (Jmp, JmpIfFalse)


@dataclass(frozen=True)
class Module:
    """The immutable result of compiling one source text."""
    code: Tuple[Instruction, ...]
    constants: Tuple[float, ...]

    def __len__(self) -> int:
        return len(self.code)

    def jump_target(self, addr: int) -> int:
        """Return the address a jump at `addr` transfers control to."""
        inst = self.code[addr]
        if not isinstance(inst, JUMPS):
            raise ValueError(f"instruction {addr} is not a jump: {inst}")
        return max(0, addr + 1 + inst.rel)
