# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Borrow registry: per-address access state, with no knowledge of handle types.

Bookkeeping model:
  * An address carries either a state entry (MUTABLY_BORROWED / OWNED /
    INVALID) or a positive shared-borrow count, never both.
  * `register(addr, VALID)` adds one shared borrow; every other state inserts
    an entry. `unregister(addr)` removes the entry, or one shared borrow.
  * `query` reports the entry state and falls back to VALID, so an address
    with only shared borrows still reads as VALID. Callers that must also
    exclude shared borrows (mutable borrows, ownership transfer) consult
    `shared_count` / `is_borrowed`.

Two storage strategies implement the same contract: `BorrowRegistry` (dict,
unbounded) and `BoundedBorrowRegistry` (fixed slot array, linear scan).
Protocol violations raise `RegistryFault`; nothing here raises BorrowError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from borrowrt.errors import RegistryFault
from borrowrt.memory import Address
from borrowrt.state import BorrowState, RegistryEntry

logger = logging.getLogger(__name__)


@dataclass
class _Slot:
	state: BorrowState
	shared: int = 0


class BaseRegistry:
	"""
	Registry contract over an abstract slot store.

	Subclasses provide `_lookup`, `_insert`, `_discard` and `_items`.
	With `strict=True`, unregistering an untracked address is a fault instead
	of a no-op.
	"""

	def __init__(self, *, strict: bool = False) -> None:
		self.strict = strict

	# --- storage primitives -------------------------------------------------

	def _lookup(self, address: Address) -> Optional[_Slot]:
		raise NotImplementedError

	def _insert(self, address: Address, slot: _Slot) -> None:
		raise NotImplementedError

	def _discard(self, address: Address) -> None:
		raise NotImplementedError

	def _items(self) -> Iterator[Tuple[Address, _Slot]]:
		raise NotImplementedError

	# --- contract -----------------------------------------------------------

	def register(self, address: Address, state: BorrowState) -> None:
		slot = self._lookup(address)
		if state is BorrowState.VALID:
			if slot is None:
				self._insert(address, _Slot(BorrowState.VALID, 1))
			elif slot.state is BorrowState.VALID:
				slot.shared += 1
			else:
				raise RegistryFault(
					"DOUBLE_REGISTER",
					f"shared borrow registered over an address already marked {slot.state.name}",
					address,
				)
			logger.debug("register %s shared (count=%d)", address.format_short(), self.shared_count(address))
			return
		if slot is not None:
			raise RegistryFault("DOUBLE_REGISTER", f"address already registered, cannot register as {state.name}", address)
		self._insert(address, _Slot(state))
		logger.debug("register %s %s", address.format_short(), state.name)

	def unregister(self, address: Address) -> None:
		slot = self._lookup(address)
		if slot is None:
			if self.strict:
				raise RegistryFault("UNREGISTER_ABSENT", "address is not registered", address)
			return
		if slot.state is BorrowState.VALID and slot.shared > 1:
			slot.shared -= 1
			logger.debug("unregister %s shared (count=%d)", address.format_short(), slot.shared)
			return
		self._discard(address)
		logger.debug("unregister %s %s", address.format_short(), slot.state.name)

	def query(self, address: Address) -> BorrowState:
		slot = self._lookup(address)
		if slot is None:
			return BorrowState.VALID
		return slot.state

	def mark_owned(self, address: Address) -> None:
		slot = self._lookup(address)
		# Shared-only slots are counters, not entries: leave them alone.
		if slot is not None and slot.state is not BorrowState.VALID:
			slot.state = BorrowState.OWNED
			logger.debug("mark %s OWNED", address.format_short())

	def is_owned(self, address: Address) -> bool:
		slot = self._lookup(address)
		return slot is not None and slot.state is BorrowState.OWNED

	def shared_count(self, address: Address) -> int:
		slot = self._lookup(address)
		if slot is None or slot.state is not BorrowState.VALID:
			return 0
		return slot.shared

	def is_borrowed(self, address: Address) -> bool:
		"""True while any shared borrow or a mutable borrow is live."""
		slot = self._lookup(address)
		if slot is None:
			return False
		return slot.state is BorrowState.MUTABLY_BORROWED or (slot.state is BorrowState.VALID and slot.shared > 0)

	def entries(self) -> List[RegistryEntry]:
		"""Snapshot of every tracked address, sorted by address."""
		out = [RegistryEntry(addr, slot.state, slot.shared) for addr, slot in self._items()]
		out.sort(key=lambda e: (e.address.heap_id, e.address.index, e.address.generation))
		return out

	def __contains__(self, address: object) -> bool:
		return isinstance(address, Address) and self._lookup(address) is not None

	def __len__(self) -> int:
		return sum(1 for _ in self._items())


class BorrowRegistry(BaseRegistry):
	"""Unbounded registry keyed by address."""

	def __init__(self, *, strict: bool = False) -> None:
		super().__init__(strict=strict)
		self._slots: Dict[Address, _Slot] = {}

	def _lookup(self, address: Address) -> Optional[_Slot]:
		return self._slots.get(address)

	def _insert(self, address: Address, slot: _Slot) -> None:
		self._slots[address] = slot

	def _discard(self, address: Address) -> None:
		self._slots.pop(address, None)

	def _items(self) -> Iterator[Tuple[Address, _Slot]]:
		return iter(list(self._slots.items()))

	def __len__(self) -> int:
		return len(self._slots)


class BoundedBorrowRegistry(BaseRegistry):
	"""
	Registry with a fixed number of slots, for callers that want a hard bound
	on tracked addresses. Running out of slots is a `RegistryFault`.
	"""

	def __init__(self, capacity: int, *, strict: bool = False) -> None:
		if capacity < 1:
			raise ValueError(f"registry capacity must be at least 1, got {capacity}")
		super().__init__(strict=strict)
		self.capacity = capacity
		self._slots: List[Optional[Tuple[Address, _Slot]]] = [None] * capacity

	def _index_of(self, address: Address) -> int:
		for i, item in enumerate(self._slots):
			if item is not None and item[0] == address:
				return i
		return -1

	def _lookup(self, address: Address) -> Optional[_Slot]:
		for item in self._slots:
			if item is not None and item[0] == address:
				return item[1]
		return None

	def _insert(self, address: Address, slot: _Slot) -> None:
		for i, item in enumerate(self._slots):
			if item is None:
				self._slots[i] = (address, slot)
				return
		raise RegistryFault("CAPACITY_EXCEEDED", f"all {self.capacity} registry slots are in use", address)

	def _discard(self, address: Address) -> None:
		i = self._index_of(address)
		if i >= 0:
			self._slots[i] = None

	def _items(self) -> Iterator[Tuple[Address, _Slot]]:
		return iter([item for item in self._slots if item is not None])


__all__ = ["BaseRegistry", "BorrowRegistry", "BoundedBorrowRegistry"]
