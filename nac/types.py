"""Value definitions and helpers for the VM.

This module defines the values the virtual machine pushes on its stack,
stores in globals and keeps inside heap objects. Every value is a small
immutable dataclass. Handles to runtime-owned data (interned strings, native
functions, heap slots) are plain integer indices, so two values are equal
exactly when they have the same variant and the same payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import math
import struct


class Value:
    """Base class for all VM values."""


@dataclass(frozen=True)
class Nil(Value):
    def __repr__(self) -> str:
        return 'Nil'


@dataclass(frozen=True)
class Bool(Value):
    value: bool


@dataclass(frozen=True)
class Number(Value):
    value: float


@dataclass(frozen=True)
class String(Value):
    """An interned string, identified by its interner index."""
    id: int


@dataclass(frozen=True)
class FunctionPtr(Value):
    """A native function, identified by its index in the function table."""
    id: int


@dataclass(frozen=True)
class Object(Value):
    """A plain object living in heap slot `addr`."""
    addr: int


@dataclass(frozen=True)
class Extern(Value):
    """An opaque foreign payload living in heap slot `addr`."""
    addr: int


NIL = Nil()
TRUE = Bool(True)
FALSE = Bool(False)


@dataclass
class Fault:
    """Describes a fatal runtime fault.

    Faults carry a short category `name` (such as 'TypeError' or
    'SegmentationFault') and a human readable message.
    """
    name: str
    message: str

    def __repr__(self) -> str:
        return f"Fault(name={self.name!r}, message={self.message!r})"


def is_truthy(value: Value) -> bool:
    """Only `nil` and `false` are falsy. Zero and the empty string are truthy."""
    return not (isinstance(value, Nil) or value == FALSE)


def type_name(value: Value) -> str:
    """Return the language-level type name of a value."""
    if isinstance(value, Nil):
        return 'nil'
    if isinstance(value, Bool):
        return 'bool'
    if isinstance(value, Number):
        return 'number'
    if isinstance(value, String):
        return 'string'
    if isinstance(value, FunctionPtr):
        return 'function'
    if isinstance(value, Object):
        return 'object'
    if isinstance(value, Extern):
        return 'extern'
    return type(value).__name__


def format_number(num: float) -> str:
    """Format a number the way the language prints it.

    Whole numbers print without a fractional part (`3`, not `3.0`), the
    special values print as `inf`, `-inf` and `NaN`. Digits are the shortest
    round-tripping ones, always written out positionally (`0.00001`, never
    `1e-05`).
    """
    if math.isnan(num):
        return 'NaN'
    if math.isinf(num):
        return 'inf' if num > 0 else '-inf'
    if num == 0 and math.copysign(1.0, num) < 0:
        return '-0'
    digits = Decimal(repr(num))
    if num.is_integer():
        digits = digits.to_integral_value()
    return format(digits, 'f')


def to_u64(value: Value) -> int:
    """Return the raw 64-bit image of a value, as shown to the collector.

    Numbers show their IEEE-754 bits, handles show their index and booleans
    show 0 or 1. `nil` is 0.
    """
    if isinstance(value, Nil):
        return 0
    if isinstance(value, Bool):
        return int(value.value)
    if isinstance(value, Number):
        return struct.unpack('<Q', struct.pack('<d', value.value))[0]
    if isinstance(value, String):
        return value.id
    if isinstance(value, FunctionPtr):
        return value.id
    if isinstance(value, (Object, Extern)):
        return value.addr
    raise TypeError(f"not a value: {value!r}")
