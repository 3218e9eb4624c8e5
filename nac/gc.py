"""Externalized garbage collection.

The runtime never decides on its own what memory is garbage. When the VM
suspends with a collection request, the driver hands the heap to a
`Collector`, which marks the slots that must survive. Everything left
unmarked is freed by `Heap.sweep` and execution resumes.

The default collector is a person. `ConsoleCollector` prints every heap slot
together with its raw contents and asks which ones to keep. Getting it wrong
is allowed; the program will fault with a segmentation fault the next time
it touches a slot that was freed under it.
"""

from __future__ import annotations

import builtins
from dataclasses import dataclass
from typing import Callable, List, Set, TYPE_CHECKING

from nac.heap import ExternObject, Free, HeapValue
from nac.types import Object, to_u64

if TYPE_CHECKING:
    from nac.runtime import Runtime


@dataclass
class GcMetrics:
    total_cycles: int = 0
    total_garbage_collected: int = 0


class Collector:
    """Decides which heap slots survive a collection cycle."""

    def mark(self, runtime: 'Runtime', marks: List[bool]) -> None:
        """Set `marks[addr] = True` for every slot that must be kept."""
        raise NotImplementedError


class CallbackCollector(Collector):
    """Keeps every slot for which `keep(addr, slot)` returns true."""

    def __init__(self, keep: Callable[[int, HeapValue], bool]):
        self.keep = keep

    def mark(self, runtime: 'Runtime', marks: List[bool]) -> None:
        for addr, slot in runtime.heap.entries():
            if self.keep(addr, slot):
                marks[addr] = True


def collect(runtime: 'Runtime', collector: Collector) -> int:
    """Run one collection cycle and return how many slots it freed."""
    marks = [False] * runtime.heap.size()
    collector.mark(runtime, marks)
    freed = runtime.heap.sweep(marks)
    runtime.gc_metrics.total_cycles += 1
    runtime.gc_metrics.total_garbage_collected += freed
    return freed


def parse_selection(answer: str, size: int) -> Set[int]:
    """Parse the addresses typed by the user.

    Addresses may be decimal or `0x` hex and are separated by commas or
    spaces. `all` selects every slot; an empty answer selects none.
    """
    answer = answer.strip()
    if answer.lower() == 'all':
        return set(range(size))
    selected: Set[int] = set()
    for part in answer.replace(',', ' ').split():
        try:
            addr = int(part, 0)
        except ValueError:
            raise ValueError(f"not an address: {part!r}") from None
        if not 0 <= addr < size:
            raise ValueError(f"address {part} is outside the heap (0x0 - {size - 1:#x})")
        selected.add(addr)
    return selected


class ConsoleCollector(Collector):
    """Asks the person at the terminal which slots to keep."""

    prompt = 'keep> '

    def describe(self, runtime: 'Runtime', addr: int, slot: HeapValue) -> List[str]:
        if isinstance(slot, Free):
            return [f"<the void>  next 0x{slot.next:06x}"]
        if isinstance(slot, ExternObject):
            return [f"{slot!r}  0x{slot.value_id():016x}"]
        lines = [runtime.format_value(Object(addr))]
        for fid, value in slot.data.items():
            name = runtime.field_name(fid) or f"#{fid}"
            lines.append(f"    .{name:<12} {to_u64(value):016x}")
        return lines

    def mark(self, runtime: 'Runtime', marks: List[bool]) -> None:
        heap = runtime.heap
        metrics = runtime.gc_metrics
        print("Garbage collection triggered")
        print(f"Cycles survived: {metrics.total_cycles}  "
              f"Total garbage collected: {metrics.total_garbage_collected}")
        for addr, slot in heap.entries():
            lines = self.describe(runtime, addr, slot)
            print(f"  0x{addr:06x}  {lines[0]}")
            for extra in lines[1:]:
                print(extra)
        print("♥ Select the objects you'd like to keep (addresses, 'all', or nothing).")
        print("♥ Unselected objects are garbage and will be freed at the end of this cycle.")

        while True:
            try:
                answer = builtins.input(self.prompt)
            except EOFError:
                answer = ''
            try:
                keep = parse_selection(answer, heap.size())
                break
            except ValueError as e:
                print(f"  {e}")

        for addr in keep:
            marks[addr] = True
