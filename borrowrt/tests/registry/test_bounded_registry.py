# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Fixed-capacity registry specifics."""

import pytest

from borrowrt.errors import RegistryFault
from borrowrt.memory import Heap
from borrowrt.registry import BoundedBorrowRegistry
from borrowrt.state import BorrowState


def test_capacity_must_be_positive():
	with pytest.raises(ValueError):
		BoundedBorrowRegistry(0)


def test_capacity_exhaustion_is_a_fault():
	"""Running out of slots is a protocol violation, not a borrow error."""
	reg = BoundedBorrowRegistry(2)
	heap = Heap()
	reg.register(heap.alloc(1), BorrowState.VALID)
	reg.register(heap.alloc(2), BorrowState.MUTABLY_BORROWED)
	with pytest.raises(RegistryFault) as excinfo:
		reg.register(heap.alloc(3), BorrowState.OWNED)
	assert excinfo.value.reason_code == "CAPACITY_EXCEEDED"


def test_shared_borrows_of_one_address_use_one_slot():
	reg = BoundedBorrowRegistry(1)
	addr = Heap().alloc(1)
	for _ in range(5):
		reg.register(addr, BorrowState.VALID)
	assert reg.shared_count(addr) == 5
	assert len(reg) == 1


def test_freed_slots_are_reused():
	reg = BoundedBorrowRegistry(1)
	heap = Heap()
	first = heap.alloc(1)
	second = heap.alloc(2)
	reg.register(first, BorrowState.MUTABLY_BORROWED)
	reg.unregister(first)
	reg.register(second, BorrowState.OWNED)
	assert reg.is_owned(second)
	assert reg.query(first) is BorrowState.VALID
