# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Access handles over registry-tracked addresses.

  * `Own`    - owns the value's storage; frees it on drop. Not registered
               until `claim_owned()` / `borrow_into_owned()`.
  * `Ref`    - shared (read-only) borrow; any number may coexist.
  * `MutRef` - exclusive (read/write) borrow; excludes every other borrow.

Handles acquire in their constructor and release in `drop()` (also reached
via `release()` and leaving a `with` block). Moving a handle transfers its
binding and leaves the source inert; dropping an inert handle is a no-op.
The registry is passed in explicitly and must outlive its handles. A `Ref` or
`MutRef` collected while still live gives its borrow back; an `Own` never
frees on collection and must be dropped.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar

from borrowrt.errors import AliasingViolation, EmptyHandleError, RegistryFault
from borrowrt.memory import Address
from borrowrt.registry import BaseRegistry
from borrowrt.state import BorrowState

logger = logging.getLogger(__name__)

H = TypeVar("H", bound="Handle")


class Handle:
	"""Shared surface of all handles: acquire / release / observe."""

	# State reported by `observe()` while the handle is live.
	live_state: BorrowState = BorrowState.VALID

	def __init__(self, address: Address, registry: BaseRegistry) -> None:
		self._address: Optional[Address] = address
		self._registry = registry

	@classmethod
	def _adopt(cls: type[H], address: Address, registry: BaseRegistry) -> H:
		"""Build a live handle over an already-acquired binding (move targets)."""
		obj = cls.__new__(cls)
		Handle.__init__(obj, address, registry)
		return obj

	@property
	def address(self) -> Optional[Address]:
		return self._address

	@property
	def registry(self) -> BaseRegistry:
		return self._registry

	@property
	def live(self) -> bool:
		return self._address is not None

	def observe(self) -> BorrowState:
		return self.live_state if self.live else BorrowState.INVALID

	def drop(self) -> None:
		raise NotImplementedError

	def release(self) -> None:
		self.drop()

	def _require(self, what: str) -> Address:
		if self._address is None:
			raise EmptyHandleError("EMPTY_HANDLE", f"{what} is empty", state=BorrowState.INVALID)
		return self._address

	def __enter__(self: H) -> H:
		return self

	def __exit__(self, exc_type, exc, tb) -> None:
		if exc_type is None:
			self.drop()
			return
		# Unwinding: the in-flight exception wins over a refused drop.
		try:
			self.drop()
		except AliasingViolation as err:
			logger.debug("%r kept while unwinding %s: %s", self, exc_type.__name__, err.reason_code)

	def _release_unreachable(self) -> None:
		"""Finalizer body for borrows: give the registry back its slot, never raise."""
		addr = getattr(self, "_address", None)
		if addr is None:
			return
		self._address = None
		try:
			self._registry.unregister(addr)
		except RegistryFault as err:
			logger.debug("finalizer for %s: %s", addr.format_short(), err.reason_code)

	def __bool__(self) -> bool:
		return self.live

	def __copy__(self):
		raise TypeError(f"{type(self).__name__} is not copyable")

	def __deepcopy__(self, memo):
		raise TypeError(f"{type(self).__name__} is not copyable")

	def __repr__(self) -> str:
		where = self._address.format_short() if self._address is not None else "-"
		return f"{type(self).__name__}({where}, {self.observe().name})"


class Own(Handle):
	"""
	Exclusive owner of a heap value.

	Ownership is implicit: an untracked address is own-able. `claim_owned()`
	records it as OWNED in the registry, which also makes it non-lendable
	until the claim is dropped.
	"""

	live_state = BorrowState.OWNED

	def __init__(self, address: Address, registry: BaseRegistry) -> None:
		if address is None:
			raise EmptyHandleError("EMPTY_HANDLE", "cannot own an empty address", state=BorrowState.INVALID)
		super().__init__(address, registry)
		self._is_owner = True

	@classmethod
	def new(cls, heap, value: Any, registry: BaseRegistry) -> "Own":
		"""Allocate `value` on `heap` and own it."""
		return cls(heap.alloc(value), registry)

	@classmethod
	def _adopt(cls, address: Address, registry: BaseRegistry) -> "Own":
		obj = super()._adopt(address, registry)
		obj._is_owner = True
		return obj

	def get(self) -> Optional[Address]:
		return self._address

	@property
	def live(self) -> bool:
		return self._is_owner

	def is_owner(self) -> bool:
		return self._is_owner

	def is_owned(self) -> bool:
		"""Owner and the registry confirms an explicit OWNED claim."""
		return self._is_owner and self._registry.is_owned(self._address)

	@property
	def value(self) -> Any:
		addr = self._require("Own")
		state = self._registry.query(addr)
		if state is BorrowState.MUTABLY_BORROWED:
			raise AliasingViolation("USE_WHILE_MUT_BORROWED", "cannot use value while it is mutably borrowed", addr, state)
		return addr.load()

	@value.setter
	def value(self, new_value: Any) -> None:
		addr = self._require("Own")
		if self._registry.is_borrowed(addr):
			raise AliasingViolation(
				"ASSIGN_WHILE_BORROWED",
				"cannot assign to value while it is borrowed",
				addr,
				self._registry.query(addr),
			)
		addr.store(new_value)

	def borrow(self) -> "Ref":
		return Ref(self._require("Own"), self._registry)

	def borrow_mut(self) -> "MutRef":
		return MutRef(self._require("Own"), self._registry)

	def claim_owned(self) -> None:
		if not self._is_owner:
			raise AliasingViolation("NOT_OWNER", "value already has an owner", state=BorrowState.INVALID)
		addr = self._address
		if self._registry.is_borrowed(addr):
			raise AliasingViolation("CLAIM_WHILE_BORROWED", "setting owned of borrowed data", addr, self._registry.query(addr))
		if self._registry.query(addr) is BorrowState.VALID:
			self._registry.register(addr, BorrowState.OWNED)
		else:
			self._registry.mark_owned(addr)

	def move(self) -> "Own":
		addr = self._movable()
		moved = Own._adopt(addr, self._registry)
		self._vacate()
		return moved

	def move_from(self, other: "Own") -> None:
		"""Move-assign: drop what this handle owns, then take over `other`."""
		if other is self:
			return
		addr = other._movable()
		if self._is_owner and self._registry.is_borrowed(self._address):
			raise AliasingViolation(
				"DROP_WHILE_BORROWED",
				"cannot overwrite value while it is borrowed",
				self._address,
				self._registry.query(self._address),
			)
		self.drop()
		self._address = addr
		self._registry = other._registry
		self._is_owner = True
		other._vacate()

	def borrow_into_owned(self) -> "Own":
		"""Hand ownership to a new `Own`, recording the claim in the registry."""
		addr = self._require("Own")
		state = self._registry.query(addr)
		if state is not BorrowState.VALID or self._registry.shared_count(addr) > 0:
			logger.debug("rejecting owned borrow of %s (%s)", addr.format_short(), state.name)
			raise AliasingViolation("BORROW_OF_BORROWED", "borrow of already borrowed data", addr, state)
		self._registry.register(addr, BorrowState.OWNED)
		handed = Own._adopt(addr, self._registry)
		self._vacate()
		return handed

	def drop(self) -> None:
		if not self._is_owner:
			return
		addr = self._address
		if self._registry.is_borrowed(addr):
			raise AliasingViolation(
				"DROP_WHILE_BORROWED",
				"cannot drop value while it is borrowed",
				addr,
				self._registry.query(addr),
			)
		if self._registry.query(addr) is not BorrowState.VALID:
			self._registry.unregister(addr)
		addr.heap.free(addr)
		self._vacate()

	def _movable(self) -> Address:
		if not self._is_owner:
			raise EmptyHandleError("MOVED_FROM", "use of moved value", state=BorrowState.INVALID)
		addr = self._address
		if self._registry.is_borrowed(addr):
			raise AliasingViolation(
				"MOVE_WHILE_BORROWED",
				"cannot move out of value while it is borrowed",
				addr,
				self._registry.query(addr),
			)
		return addr

	def _vacate(self) -> None:
		self._address = None
		self._is_owner = False


class Ref(Handle):
	"""Shared, read-only borrow."""

	live_state = BorrowState.VALID

	def __init__(self, address: Optional[Address], registry: BaseRegistry) -> None:
		if address is None:
			raise EmptyHandleError("EMPTY_HANDLE", "cannot borrow from an empty handle", state=BorrowState.INVALID)
		state = registry.query(address)
		if state is not BorrowState.VALID:
			logger.debug("rejecting shared borrow of %s (%s)", address.format_short(), state.name)
			raise AliasingViolation(
				"SHARED_WHILE_EXCLUSIVE",
				"cannot borrow as shared, already exclusively borrowed",
				address,
				state,
			)
		registry.register(address, BorrowState.VALID)
		super().__init__(address, registry)

	@property
	def value(self) -> Any:
		return self._require("Ref").load()

	def clone(self) -> "Ref":
		return Ref(self._require("Ref"), self._registry)

	__copy__ = clone

	def copy_from(self, other: "Ref") -> None:
		"""Copy-assign: release the current borrow and share `other`'s value."""
		if other is self:
			return
		addr = other._require("Ref")
		other._registry.register(addr, BorrowState.VALID)
		self.drop()
		self._address = addr
		self._registry = other._registry

	def move(self) -> "Ref":
		addr = self._require("Ref")
		moved = Ref._adopt(addr, self._registry)
		self._address = None
		return moved

	def move_from(self, other: "Ref") -> None:
		if other is self:
			return
		addr = other._require("Ref")
		self.drop()
		self._address = addr
		self._registry = other._registry
		other._address = None

	def drop(self) -> None:
		if self._address is None:
			return
		addr = self._address
		self._address = None
		self._registry.unregister(addr)

	def __del__(self) -> None:
		self._release_unreachable()


class MutRef(Handle):
	"""
	Exclusive, read/write borrow.

	Neither copyable nor movable; once constructed, reads and writes through
	`value` are unchecked until the borrow is dropped.
	"""

	live_state = BorrowState.MUTABLY_BORROWED

	def __init__(self, address: Optional[Address], registry: BaseRegistry) -> None:
		if address is None:
			raise EmptyHandleError("EMPTY_HANDLE", "cannot borrow from an empty handle", state=BorrowState.INVALID)
		state = registry.query(address)
		if state is not BorrowState.VALID or registry.shared_count(address) > 0:
			logger.debug("rejecting mutable borrow of %s (%s)", address.format_short(), state.name)
			raise AliasingViolation(
				"MUT_BORROW_CONFLICT",
				"cannot borrow as mutable more than once, already borrowed",
				address,
				state,
			)
		registry.register(address, BorrowState.MUTABLY_BORROWED)
		super().__init__(address, registry)

	@property
	def value(self) -> Any:
		return self._require("MutRef").load()

	@value.setter
	def value(self, new_value: Any) -> None:
		self._require("MutRef").store(new_value)

	def drop(self) -> None:
		if self._address is None:
			return
		addr = self._address
		self._address = None
		self._registry.unregister(addr)

	def __del__(self) -> None:
		self._release_unreachable()


__all__ = ["Handle", "Own", "Ref", "MutRef"]
