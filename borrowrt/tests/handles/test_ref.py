# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Shared-access handle: coexistence, copy and move semantics."""

import copy
import gc

import pytest

from borrowrt.errors import AliasingViolation, EmptyHandleError
from borrowrt.handles import MutRef, Ref
from borrowrt.memory import Heap
from borrowrt.registry import BorrowRegistry
from borrowrt.state import BorrowState


def test_many_shared_borrows_coexist():
	reg = BorrowRegistry()
	addr = Heap().alloc([1, 2, 3])
	refs = [Ref(addr, reg) for _ in range(3)]
	assert all(r.value == [1, 2, 3] for r in refs)
	assert reg.shared_count(addr) == 3
	assert reg.query(addr) is BorrowState.VALID


def test_mutable_borrow_waits_for_last_shared():
	"""N shared borrows keep the address non-mutable until the last one drops."""
	reg = BorrowRegistry()
	addr = Heap().alloc(1)
	r1 = Ref(addr, reg)
	r2 = Ref(addr, reg)
	r1.drop()
	with pytest.raises(AliasingViolation):
		MutRef(addr, reg)
	r2.drop()
	with MutRef(addr, reg) as m:
		m.value = 2
	assert addr.load() == 2


def test_shared_borrow_rejected_while_mutably_borrowed():
	reg = BorrowRegistry()
	addr = Heap().alloc(1)
	with MutRef(addr, reg):
		with pytest.raises(AliasingViolation) as excinfo:
			Ref(addr, reg)
	err = excinfo.value
	assert err.reason_code == "SHARED_WHILE_EXCLUSIVE"
	assert err.message == "cannot borrow as shared, already exclusively borrowed"
	assert err.state is BorrowState.MUTABLY_BORROWED
	assert err.address == addr
	Ref(addr, reg).drop()


def test_clone_registers_another_borrow():
	reg = BorrowRegistry()
	addr = Heap().alloc(1)
	r1 = Ref(addr, reg)
	r2 = r1.clone()
	r3 = copy.copy(r1)
	assert reg.shared_count(addr) == 3
	for r in (r1, r2, r3):
		r.drop()
	assert addr not in reg


def test_copy_from_rebinds_and_releases():
	reg = BorrowRegistry()
	heap = Heap()
	a = heap.alloc("a")
	b = heap.alloc("b")
	ra = Ref(a, reg)
	rb = Ref(b, reg)
	ra.copy_from(rb)
	assert ra.value == "b"
	assert a not in reg
	assert reg.shared_count(b) == 2
	ra.copy_from(ra)
	assert reg.shared_count(b) == 2


def test_move_transfers_without_reregistering():
	reg = BorrowRegistry()
	addr = Heap().alloc(7)
	r1 = Ref(addr, reg)
	r2 = r1.move()
	assert reg.shared_count(addr) == 1
	assert not r1
	assert r2.value == 7
	with pytest.raises(EmptyHandleError) as excinfo:
		r1.value
	assert str(excinfo.value).startswith("[EMPTY_HANDLE] Ref is empty")
	r1.drop()
	assert reg.shared_count(addr) == 1
	r2.drop()
	assert addr not in reg


def test_move_from_releases_destination_borrow():
	reg = BorrowRegistry()
	heap = Heap()
	a = heap.alloc("a")
	b = heap.alloc("b")
	dest = Ref(a, reg)
	src = Ref(b, reg)
	dest.move_from(src)
	assert dest.value == "b"
	assert a not in reg
	assert reg.shared_count(b) == 1
	assert src.observe() is BorrowState.INVALID
	with pytest.raises(EmptyHandleError):
		dest.move_from(src)


def test_drop_is_idempotent():
	reg = BorrowRegistry(strict=True)
	addr = Heap().alloc(1)
	r = Ref(addr, reg)
	r.release()
	r.drop()
	assert addr not in reg


def test_ref_observes_valid_while_live():
	reg = BorrowRegistry()
	with Ref(Heap().alloc(1), reg) as r:
		assert r.observe() is BorrowState.VALID
		assert "VALID" in repr(r)
	assert r.observe() is BorrowState.INVALID


def test_unreachable_shared_borrow_is_released():
	reg = BorrowRegistry(strict=True)
	addr = Heap().alloc(42)
	assert Ref(addr, reg).value == 42
	gc.collect()
	assert addr not in reg
	MutRef(addr, reg).drop()
