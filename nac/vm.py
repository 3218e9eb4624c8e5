"""Single-stepping virtual machine.

`Vm.step` executes exactly one instruction of a module against a runtime
and reports what the driver should do next. Two instructions can suspend
execution to ask for a collection cycle: `Alloc` when the heap is full, and
`Call` when the native it invokes asks for one. In both cases the
instruction pointer is moved back onto the suspended instruction before the
step returns, and the value stack is exactly as it was before the
instruction ran, so stepping again after the collection simply retries it.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from nac.errors import VmError
from nac.heap import PlainObject
from nac.instructions import (
    Instruction, Module,
    Load, Store, IndexGet, IndexSet, LoadNil, LoadTrue, LoadFalse, LoadConst,
    LoadString, Alloc, Call, Invoke, Jmp, JmpIfFalse, Pop, Halt,
)
from nac.types import (
    Fault, Value, NIL, TRUE, FALSE, Number, String, FunctionPtr, Object,
    is_truthy, type_name,
)

if TYPE_CHECKING:
    from nac.runtime import Runtime


class ControlFlow(Enum):
    CONTINUE = 'continue'
    REQUEST_GC = 'request_gc'
    HALT = 'halt'


class Vm:
    """Executes one module against a runtime."""
    def __init__(self, runtime: 'Runtime', module: Module):
        self.vm = runtime
        self.module = module

    @property
    def ip(self) -> int:
        return self.vm.ip

    def current_instruction(self) -> Instruction:
        code = self.module.code
        if not 0 <= self.vm.ip < len(code):
            raise VmError(Fault('SegmentationFault', f'instruction pointer {self.vm.ip} is outside the module'))
        return code[self.vm.ip]

    def pop(self) -> Value:
        if not self.vm.stack:
            raise VmError(Fault('StackError', 'stack is empty'))
        return self.vm.stack.pop()

    def deref(self, value: Value) -> PlainObject:
        """Resolve an object handle to its live heap object."""
        if not isinstance(value, Object):
            raise VmError(Fault('TypeError', f'cannot access a field on type {type_name(value)}'))
        heap = self.vm.heap
        slot = heap.slots[value.addr] if 0 <= value.addr < heap.size() else None
        if not isinstance(slot, PlainObject):
            raise VmError(Fault('SegmentationFault', f'attempt to access freed object {value.addr:#x}'))
        return slot

    def invoke(self, args: int, sym: int) -> None:
        # Receiver dispatch (field-stored function vs. prototype lookup) is undecided.
        raise VmError(Fault('NotImplemented', 'method dispatch not implemented'))

    def step(self) -> ControlFlow:
        inst = self.current_instruction()
        rt = self.vm
        rt.ip += 1

        if isinstance(inst, Load):
            rt.stack.append(rt.globals[inst.gid])
        elif isinstance(inst, Store):
            rt.globals[inst.gid] = self.pop()
        elif isinstance(inst, IndexGet):
            obj = self.deref(self.pop())
            rt.stack.append(obj.data.get(inst.fid, NIL))
        elif isinstance(inst, IndexSet):
            new_value = self.pop()
            obj = self.deref(self.pop())
            obj.data[inst.fid] = new_value
        elif isinstance(inst, LoadNil):
            rt.stack.append(NIL)
        elif isinstance(inst, LoadTrue):
            rt.stack.append(TRUE)
        elif isinstance(inst, LoadFalse):
            rt.stack.append(FALSE)
        elif isinstance(inst, LoadConst):
            rt.stack.append(Number(self.module.constants[inst.cid]))
        elif isinstance(inst, LoadString):
            rt.stack.append(String(inst.sid))
        elif isinstance(inst, Alloc):
            addr = rt.heap.alloc()
            if addr is None:
                # Repeat this instruction on the next step.
                rt.ip -= 1
                return ControlFlow.REQUEST_GC
            rt.stack.append(Object(addr))
        elif isinstance(inst, Call):
            return self.call(inst.args)
        elif isinstance(inst, Invoke):
            self.invoke(inst.args, inst.sym)
        elif isinstance(inst, Jmp):
            rt.ip = max(0, rt.ip + inst.rel)
        elif isinstance(inst, JmpIfFalse):
            if rt.stack and not is_truthy(rt.stack.pop()):
                rt.ip = max(0, rt.ip + inst.rel)
        elif isinstance(inst, Pop):
            if rt.stack:
                rt.stack.pop()
        elif isinstance(inst, Halt):
            return ControlFlow.HALT
        else:
            raise VmError(Fault('NotImplemented', f'unknown instruction {inst!r}'))

        return ControlFlow.CONTINUE

    def call(self, args: int) -> ControlFlow:
        rt = self.vm
        func_offset = len(rt.stack) - (args + 1)
        if func_offset < 0:
            raise VmError(Fault('StackError', f'call with {args} arguments on a stack of {len(rt.stack)}'))

        func_ptr = rt.stack[func_offset]
        if not isinstance(func_ptr, FunctionPtr):
            raise VmError(Fault('TypeError', f'{type_name(func_ptr)} is not callable'))

        definition = rt.functions[func_ptr.id]
        if definition.arity > args:
            raise VmError(Fault(
                'ArityError',
                f'{definition.name}: missing arguments. Expected {definition.arity} but only got {args}',
            ))
        if definition.arity < args:
            raise VmError(Fault(
                'ArityError',
                f'{definition.name}: too many arguments. Expected {definition.arity} but got {args}',
            ))

        pre_call_height = len(rt.stack)
        ctx = rt.call_context()
        result = definition.fn(ctx)

        if ctx.needs_gc:
            if len(rt.stack) != pre_call_height:
                raise VmError(Fault(
                    'StackError',
                    f'{definition.name} requested a collection without restoring the stack',
                ))
            # Roll back so this call runs again once the collection cycle finishes.
            rt.ip -= 1
            return ControlFlow.REQUEST_GC

        if not isinstance(result, Value):
            raise VmError(Fault('TypeError', f'{definition.name} returned {result!r}, not a value'))

        del rt.stack[func_offset:]
        rt.stack.append(result)
        return ControlFlow.CONTINUE
