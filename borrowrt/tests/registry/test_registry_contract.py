# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Registry contract, checked against both storage strategies."""

import pytest

from borrowrt.errors import RegistryFault
from borrowrt.memory import Heap
from borrowrt.registry import BorrowRegistry, BoundedBorrowRegistry
from borrowrt.state import BorrowState


@pytest.fixture(params=["hash", "bounded"])
def make(request):
	"""Factory for a fresh registry of the parametrized kind."""
	def _make(*, strict: bool = False):
		if request.param == "hash":
			return BorrowRegistry(strict=strict)
		return BoundedBorrowRegistry(8, strict=strict)
	return _make


def test_untracked_address_reads_valid(make):
	reg = make()
	addr = Heap().alloc(1)
	assert reg.query(addr) is BorrowState.VALID
	assert addr not in reg
	assert not reg.is_owned(addr)
	assert reg.shared_count(addr) == 0


def test_register_then_unregister_restores_valid(make):
	"""query(a) is VALID again once the entry is removed."""
	reg = make()
	addr = Heap().alloc(1)
	for state in (BorrowState.MUTABLY_BORROWED, BorrowState.OWNED, BorrowState.INVALID, BorrowState.VALID):
		reg.register(addr, state)
		assert addr in reg
		reg.unregister(addr)
		assert reg.query(addr) is BorrowState.VALID
		assert addr not in reg


def test_query_is_valid_iff_no_entry(make):
	"""Shared borrows are counted, not stored as state entries."""
	reg = make()
	heap = Heap()
	shared = heap.alloc(1)
	mut = heap.alloc(2)
	reg.register(shared, BorrowState.VALID)
	reg.register(mut, BorrowState.MUTABLY_BORROWED)
	assert reg.query(shared) is BorrowState.VALID
	assert reg.query(mut) is BorrowState.MUTABLY_BORROWED
	assert reg.shared_count(shared) == 1
	assert reg.is_borrowed(shared)
	assert reg.is_borrowed(mut)


def test_shared_borrows_are_reference_counted(make):
	reg = make()
	addr = Heap().alloc(1)
	reg.register(addr, BorrowState.VALID)
	reg.register(addr, BorrowState.VALID)
	reg.register(addr, BorrowState.VALID)
	assert reg.shared_count(addr) == 3
	reg.unregister(addr)
	reg.unregister(addr)
	assert reg.shared_count(addr) == 1
	assert reg.is_borrowed(addr)
	reg.unregister(addr)
	assert not reg.is_borrowed(addr)
	assert len(reg) == 0


def test_double_register_is_a_fault(make):
	reg = make()
	addr = Heap().alloc(1)
	reg.register(addr, BorrowState.MUTABLY_BORROWED)
	with pytest.raises(RegistryFault) as excinfo:
		reg.register(addr, BorrowState.OWNED)
	assert excinfo.value.reason_code == "DOUBLE_REGISTER"
	with pytest.raises(RegistryFault):
		reg.register(addr, BorrowState.VALID)


def test_exclusive_register_over_shared_is_a_fault(make):
	reg = make()
	addr = Heap().alloc(1)
	reg.register(addr, BorrowState.VALID)
	with pytest.raises(RegistryFault):
		reg.register(addr, BorrowState.MUTABLY_BORROWED)
	assert reg.shared_count(addr) == 1


def test_unregister_absent_is_idempotent_by_default(make):
	reg = make()
	addr = Heap().alloc(1)
	reg.unregister(addr)
	reg.register(addr, BorrowState.OWNED)
	reg.unregister(addr)
	reg.unregister(addr)
	assert reg.query(addr) is BorrowState.VALID


def test_strict_unregister_absent_is_a_fault(make):
	reg = make(strict=True)
	addr = Heap().alloc(1)
	with pytest.raises(RegistryFault) as excinfo:
		reg.unregister(addr)
	assert excinfo.value.reason_code == "UNREGISTER_ABSENT"


def test_mark_owned_only_touches_existing_entries(make):
	reg = make()
	heap = Heap()
	absent = heap.alloc(1)
	shared = heap.alloc(2)
	held = heap.alloc(3)
	reg.mark_owned(absent)
	assert absent not in reg
	reg.register(shared, BorrowState.VALID)
	reg.mark_owned(shared)
	assert reg.shared_count(shared) == 1
	assert not reg.is_owned(shared)
	reg.register(held, BorrowState.INVALID)
	reg.mark_owned(held)
	assert reg.is_owned(held)
	assert reg.query(held) is BorrowState.OWNED


def test_entries_snapshot_is_sorted(make):
	reg = make()
	heap = Heap()
	a = heap.alloc("a")
	b = heap.alloc("b")
	reg.register(b, BorrowState.OWNED)
	reg.register(a, BorrowState.VALID)
	reg.register(a, BorrowState.VALID)
	entries = reg.entries()
	assert [e.address for e in entries] == [a, b]
	assert [(e.state, e.shared) for e in entries] == [(BorrowState.VALID, 2), (BorrowState.OWNED, 0)]
	assert entries[1].to_dict()["state"] == "OWNED"
	assert len(reg) == 2
