# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Addressable storage for values tracked by the borrow runtime.

Python has no raw pointers, so values live in a caller-owned `Heap` (an
arena of slots) and are identified by `Address(heap_id, index, generation)`.
Freeing a slot bumps its generation, which keeps a stale address from ever
comparing equal to the next value stored in the same slot.

The heap knows nothing about borrows. It only answers "is this address still
live" so that loads through a freed address fail loudly instead of reading
whatever reused the slot.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, List

from borrowrt.errors import RegistryFault

logger = logging.getLogger(__name__)

_heap_ids = itertools.count(1)


@dataclass(frozen=True)
class Address:
	"""
	Stable identity of a heap slot.

	Hashing and equality use `(heap_id, index, generation)` only; the back
	reference to the owning heap is carried for convenience loads/stores.
	"""

	heap_id: int
	index: int
	generation: int
	heap: "Heap" = field(compare=False, hash=False, repr=False)

	def load(self) -> Any:
		return self.heap.load(self)

	def store(self, value: Any) -> None:
		self.heap.store(self, value)

	def format_short(self) -> str:
		return f"{self.heap_id}:{self.index}@{self.generation}"

	def to_dict(self) -> dict[str, int]:
		return {"heap_id": self.heap_id, "index": self.index, "generation": self.generation}


@dataclass
class _Cell:
	value: Any = None
	generation: int = 0
	live: bool = False


class Heap:
	"""
	Arena of value slots.

	`alloc` reuses freed slots (lowest index first) with a bumped generation.
	"""

	def __init__(self) -> None:
		self.heap_id: int = next(_heap_ids)
		self._cells: List[_Cell] = []
		self._free: List[int] = []
		self._live = 0

	def alloc(self, value: Any) -> Address:
		if self._free:
			index = heapq.heappop(self._free)
			cell = self._cells[index]
		else:
			index = len(self._cells)
			cell = _Cell()
			self._cells.append(cell)
		cell.value = value
		cell.live = True
		self._live += 1
		addr = Address(self.heap_id, index, cell.generation, self)
		logger.debug("heap %d: alloc %s", self.heap_id, addr.format_short())
		return addr

	def load(self, addr: Address) -> Any:
		return self._cell_for(addr).value

	def store(self, addr: Address, value: Any) -> None:
		self._cell_for(addr).value = value

	def free(self, addr: Address) -> Any:
		"""Release the slot and return the value it held."""
		cell = self._cell_for(addr, freeing=True)
		value = cell.value
		cell.value = None
		cell.live = False
		cell.generation += 1
		heapq.heappush(self._free, addr.index)
		self._live -= 1
		logger.debug("heap %d: free %s", self.heap_id, addr.format_short())
		return value

	def is_live(self, addr: Address) -> bool:
		if addr.heap_id != self.heap_id or addr.index >= len(self._cells):
			return False
		cell = self._cells[addr.index]
		return cell.live and cell.generation == addr.generation

	def __len__(self) -> int:
		return self._live

	def _cell_for(self, addr: Address, *, freeing: bool = False) -> _Cell:
		if addr.heap_id != self.heap_id or addr.index >= len(self._cells):
			raise RegistryFault("FOREIGN_ADDRESS", f"address does not belong to heap {self.heap_id}", addr)
		cell = self._cells[addr.index]
		if cell.generation == addr.generation and cell.live:
			return cell
		if freeing and cell.generation == addr.generation + 1 and not cell.live:
			raise RegistryFault("DOUBLE_FREE", "address was already freed", addr)
		raise RegistryFault("DANGLING_ADDRESS", "address refers to a freed slot", addr)


__all__ = ["Address", "Heap"]
