"""Human readable listings of compiled modules.

`format_module` prints one instruction per line with its address. When a
runtime is supplied, operands are annotated with the names and values they
refer to: global names, field names, constants and interned strings. Jumps
show their absolute target.
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from nac.instructions import (
    Instruction, Module, JUMPS,
    Load, Store, IndexGet, IndexSet, LoadConst, LoadString, Invoke,
)
from nac.types import format_number

if TYPE_CHECKING:
    from nac.runtime import Runtime


def instruction_to_obj(inst: Instruction) -> Dict[str, Any]:
    obj: Dict[str, Any] = {"op": type(inst).__name__}
    for f in fields(inst):
        obj[f.name] = getattr(inst, f.name)
    return obj


def format_instruction(inst: Instruction) -> str:
    obj = instruction_to_obj(inst)
    op = obj.pop("op")
    operands = ' '.join(f"{k}={v}" for k, v in obj.items())
    return f"{op} {operands}" if operands else op


def annotate(module: Module, addr: int, runtime: Optional['Runtime']) -> str:
    inst = module.code[addr]
    if isinstance(inst, JUMPS):
        return f"-> {module.jump_target(addr):04d}"
    if isinstance(inst, LoadConst):
        return format_number(module.constants[inst.cid])
    if runtime is None:
        return ''
    if isinstance(inst, (Load, Store)):
        return runtime.global_name(inst.gid) or ''
    if isinstance(inst, (IndexGet, IndexSet)):
        return '.' + (runtime.field_name(inst.fid) or '?')
    if isinstance(inst, Invoke):
        return '.' + (runtime.field_name(inst.sym) or '?') + '()'
    if isinstance(inst, LoadString):
        return repr(runtime.interner.get(inst.sid))
    return ''


def format_module(module: Module, runtime: Optional['Runtime'] = None) -> str:
    lines: List[str] = []
    for addr, inst in enumerate(module.code):
        text = f"{addr:04d}  {format_instruction(inst):<24}"
        note = annotate(module, addr, runtime)
        if note:
            text += f"; {note}"
        lines.append(text.rstrip())
    if module.constants:
        lines.append('constants: ' + ', '.join(format_number(c) for c in module.constants))
    return '\n'.join(lines)
