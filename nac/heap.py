"""Fixed-capacity object heap.

The heap is a vector of slots. A slot is either free, holds a plain object
(a mapping from field id to value) or holds an extern payload owned on behalf
of native code. Free slots are chained into a singly linked free list: each
free slot records the index of the next free slot and `next_free` is the head
of the chain. An index equal to the heap size terminates the chain, so an
allocation finding the head out of range means the heap is exhausted.

The heap never reclaims anything on its own. Slots only return to the free
list through `free`, `take_extern` or a `sweep` driven by a collector.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from nac.errors import HeapError, VmError
from nac.types import Fault, Value

T = TypeVar('T')


@dataclass
class Free:
    next: int


@dataclass
class PlainObject:
    data: Dict[int, Value] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"Object {{ data: {self.data!r} }}"


class ExternObject:
    """An opaque payload tagged with its Python type.

    Natives get the payload back only by naming the type they expect, so a
    slot holding a window can never be mistaken for a slot holding a file.
    """
    def __init__(self, value: Any):
        self.type_tag: type = type(value)
        self._value = value

    def __repr__(self) -> str:
        return f"ExternObject {{ type: {self.type_tag.__name__} }}"

    def holds(self, cls: type) -> bool:
        return self.type_tag is cls

    def value_id(self) -> int:
        return id(self._value)

    def try_borrow(self, cls: Type[T]) -> Optional[T]:
        if self.holds(cls):
            return self._value
        return None

    def borrow(self, cls: Type[T]) -> T:
        if not self.holds(cls):
            raise VmError(Fault(
                'TypeError',
                f"expected extern {cls.__name__}, found {self.type_tag.__name__}",
            ))
        return self._value

    def into_obj(self, cls: Type[T]) -> Optional[T]:
        return self.try_borrow(cls)


HeapValue = Union[Free, PlainObject, ExternObject]


class Heap:
    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"heap size must not be negative, got {size}")
        self.next_free = 0
        self.slots: List[HeapValue] = [Free(next=i + 1) for i in range(size)]

    def size(self) -> int:
        return len(self.slots)

    def entries(self) -> Iterator[Tuple[int, HeapValue]]:
        return enumerate(self.slots)

    def slot(self, addr: int) -> HeapValue:
        if not 0 <= addr < len(self.slots):
            raise HeapError(f"bug: invalid address {addr}")
        return self.slots[addr]

    def _claim(self) -> Optional[int]:
        if self.next_free >= len(self.slots):
            return None
        index = self.next_free
        head = self.slots[index]
        if not isinstance(head, Free):
            raise HeapError(f"bug: cell {index} is on the free list but is not free")
        self.next_free = head.next
        return index

    def alloc(self) -> Optional[int]:
        """Allocate an empty object and return its address, or None when full."""
        index = self._claim()
        if index is not None:
            self.slots[index] = PlainObject()
        return index

    def alloc_extern(self, value: Any) -> Optional[int]:
        """Move `value` into a fresh extern slot and return its address, or None when full."""
        index = self._claim()
        if index is not None:
            self.slots[index] = ExternObject(value)
        return index

    def get(self, addr: int) -> Optional[PlainObject]:
        """Returns `None` if the object has been freed."""
        slot = self.slot(addr)
        if isinstance(slot, Free):
            return None
        if isinstance(slot, ExternObject):
            raise HeapError(f"bug: slot {addr} is not an object")
        return slot

    def get_extern(self, addr: int) -> Optional[ExternObject]:
        """Returns `None` if the extern object has been freed."""
        slot = self.slot(addr)
        if isinstance(slot, Free):
            return None
        if isinstance(slot, PlainObject):
            raise HeapError(f"bug: slot {addr} is not an extern object")
        return slot

    def take_extern(self, addr: int) -> ExternObject:
        """Move an extern payload out of the heap, freeing its slot."""
        slot = self.slot(addr)
        if not isinstance(slot, ExternObject):
            raise HeapError(f"bug: slot {addr} does not hold an extern object")
        self.free(addr)
        return slot

    def try_take_extern(self, addr: int) -> Optional[ExternObject]:
        if isinstance(self.slot(addr), ExternObject):
            return self.take_extern(addr)
        return None

    def free(self, addr: int) -> bool:
        """Put slot `addr` at the head of the free list.

        The previous contents are dropped. A slot that is already free is
        already on the chain and is left alone. Returns whether the slot
        changed state.
        """
        if isinstance(self.slot(addr), Free):
            return False
        self.slots[addr] = Free(next=self.next_free)
        self.next_free = addr
        return True

    def sweep(self, marked: Sequence[bool]) -> int:
        """Free every slot whose mark is false. Returns how many slots were released."""
        if len(marked) != len(self.slots):
            raise ValueError(f"expected {len(self.slots)} marks, got {len(marked)}")
        freed = 0
        for addr, keep in enumerate(marked):
            if not keep and self.free(addr):
                freed += 1
        return freed

    def free_slots(self) -> List[int]:
        """Walk the free list from its head and return the addresses on it."""
        chain: List[int] = []
        seen = set()
        addr = self.next_free
        while addr < len(self.slots):
            if addr in seen:
                raise HeapError(f"bug: free list loops back to slot {addr}")
            slot = self.slots[addr]
            if not isinstance(slot, Free):
                raise HeapError(f"bug: live slot {addr} is on the free list")
            seen.add(addr)
            chain.append(addr)
            addr = slot.next
        return chain

    def live_count(self) -> int:
        return sum(1 for slot in self.slots if not isinstance(slot, Free))
