"""Process-wide runtime state.

A `Runtime` owns everything that outlives a single compiled module: the
globals table and its name index, the field-name to field-id map, the native
function table, the value stack, the instruction pointer, the heap, the
string interner and the collection metrics. Compiling and running several
modules against one runtime shares all of these; `reset` only clears the
stack and the instruction pointer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, TYPE_CHECKING

from nac.errors import VmError
from nac.gc import GcMetrics
from nac.heap import ExternObject, Heap, PlainObject
from nac.interner import Interner
from nac.types import (
    Fault, Value, NIL, Nil, Bool, Number, String, FunctionPtr, Object, Extern,
    format_number,
)

if TYPE_CHECKING:
    from nac.instructions import Module
    from nac.vm import Vm

DEFAULT_HEAP_SIZE = 20
MAX_ARITY = 255


def intern_field(field_to_id_map: Dict[str, int], name: str) -> int:
    """Return the id of field `name`, assigning the next id on first use."""
    fid = field_to_id_map.get(name)
    if fid is None:
        fid = len(field_to_id_map)
        field_to_id_map[name] = fid
    return fid


def format_value(value: Value, heap: Heap, strings: Interner,
                 field_to_id_map: Optional[Mapping[str, int]] = None) -> str:
    """Render a value for printing.

    Objects show their fields by name when a field map is supplied; nested
    objects are shown by address only. Handles to freed slots render as
    `<oops>` markers instead of failing.
    """
    if isinstance(value, Nil):
        return 'nil'
    if isinstance(value, Bool):
        return 'true' if value.value else 'false'
    if isinstance(value, Number):
        return format_number(value.value)
    if isinstance(value, String):
        return strings.get(value.id)
    if isinstance(value, FunctionPtr):
        return f"fn<{value.id}>"
    if isinstance(value, Object):
        slot = heap.slots[value.addr] if 0 <= value.addr < heap.size() else None
        if not isinstance(slot, PlainObject):
            return f"Object {{ <oops.__{value.addr}> }}"
        names = {fid: name for name, fid in (field_to_id_map or {}).items()}
        fields = []
        for fid, field_value in slot.data.items():
            if isinstance(field_value, (Object, Extern)):
                rendered = f"{type(field_value).__name__}<{field_value.addr}>"
            else:
                rendered = format_value(field_value, heap, strings)
            fields.append(f"{names.get(fid, f'#{fid}')}: {rendered}")
        return 'Object { ' + ', '.join(fields) + ' }' if fields else 'Object {}'
    if isinstance(value, Extern):
        slot = heap.slots[value.addr] if 0 <= value.addr < heap.size() else None
        if not isinstance(slot, ExternObject):
            return f"ExternObject {{ <oops.__{value.addr}> }}"
        return repr(slot)
    return repr(value)


class NativeCallContext:
    """Everything a native function may touch while it runs.

    Natives pop their arguments from `stack` (the last argument is on top)
    and return a Value. A native that cannot continue until memory is
    reclaimed must put the stack back exactly as it found it and call
    `request_gc`; the call is retried after the collection cycle.
    """
    def __init__(self, stack: List[Value], heap: Heap, strings: Interner,
                 field_to_id_map: Dict[str, int]):
        self.stack = stack
        self.heap = heap
        self.strings = strings
        self.field_to_id_map = field_to_id_map
        self.needs_gc = False

    def pop(self) -> Value:
        if not self.stack:
            raise VmError(Fault('StackError', 'missing argument'))
        return self.stack.pop()

    def field_id(self, name: str) -> int:
        return intern_field(self.field_to_id_map, name)

    def request_gc(self) -> None:
        self.needs_gc = True

    def format(self, value: Value) -> str:
        return format_value(value, self.heap, self.strings, self.field_to_id_map)


NativeFn = Callable[[NativeCallContext], Value]


@dataclass
class FunctionDef:
    name: str
    arity: int
    fn: NativeFn

    def __repr__(self) -> str:
        return f"<native {self.name}/{self.arity}>"


class Runtime:
    def __init__(self, heap_size: int = DEFAULT_HEAP_SIZE):
        self.globals: List[Value] = []
        self.global_name_map: Dict[str, int] = {}
        self.field_to_id_map: Dict[str, int] = {}
        self.functions: List[FunctionDef] = []
        self.stack: List[Value] = []
        self.ip = 0
        self.heap = Heap(heap_size)
        self.interner = Interner()
        self.gc_metrics = GcMetrics()

    def spawn_vm(self, module: 'Module') -> 'Vm':
        from nac.vm import Vm
        return Vm(self, module)

    def set_global(self, name: str, value: Value) -> int:
        index = self.global_name_map.get(name)
        if index is None:
            index = len(self.globals)
            self.globals.append(value)
            self.global_name_map[name] = index
        else:
            self.globals[index] = value
        return index

    def get_global_index(self, name: str) -> int:
        """Return the slot of global `name`, creating it as nil if unknown."""
        index = self.global_name_map.get(name)
        if index is None:
            index = self.set_global(name, NIL)
        return index

    def get_global(self, name: str) -> Optional[Value]:
        index = self.global_name_map.get(name)
        return None if index is None else self.globals[index]

    def global_name(self, gid: int) -> Optional[str]:
        for name, index in self.global_name_map.items():
            if index == gid:
                return name
        return None

    def get_field_index(self, name: str) -> int:
        return intern_field(self.field_to_id_map, name)

    def field_name(self, fid: int) -> Optional[str]:
        for name, index in self.field_to_id_map.items():
            if index == fid:
                return name
        return None

    def register_function(self, name: str, arity: int, fn: NativeFn) -> FunctionPtr:
        """Append a native to the function table and bind it to global `name`."""
        if not 0 <= arity <= MAX_ARITY:
            raise ValueError(f"arity of {name} must be between 0 and {MAX_ARITY}, got {arity}")
        pointer = FunctionPtr(len(self.functions))
        self.functions.append(FunctionDef(name, arity, fn))
        self.set_global(name, pointer)
        return pointer

    def call_context(self) -> NativeCallContext:
        return NativeCallContext(self.stack, self.heap, self.interner, self.field_to_id_map)

    def format_value(self, value: Value) -> str:
        return format_value(value, self.heap, self.interner, self.field_to_id_map)

    def reset(self) -> None:
        self.stack.clear()
        self.ip = 0
