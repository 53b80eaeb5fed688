# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Error channels for the borrow runtime.

Two channels are kept apart on purpose:
  * `BorrowError` (and its subclasses) are recoverable: the caller asked for an
    access the current borrows do not allow, or used an inert handle.
  * `RegistryFault` is a protocol violation (double registration, exhausted
    capacity, dangling heap address). It signals corrupted bookkeeping and is
    not meant to be caught by application code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
	from borrowrt.memory import Address
	from borrowrt.state import BorrowState


@dataclass(frozen=True)
class BorrowError(Exception):
	"""
	A structured, serializable borrow failure.

	`reason_code` is stable and meant for programmatic checks; `message` is
	the human text.
	"""

	reason_code: str
	message: str
	address: "Address | None" = None
	state: "BorrowState | None" = None

	def __str__(self) -> str:
		return self.format_human()

	def to_dict(self) -> dict[str, Any]:
		return {
			"reason_code": self.reason_code,
			"message": self.message,
			"address": self.address.to_dict() if self.address is not None else None,
			"state": self.state.name if self.state is not None else None,
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.address is not None:
			parts.append(f"address={self.address.format_short()}")
		if self.state is not None:
			parts.append(f"state={self.state.name}")
		return " ".join(parts)


class AliasingViolation(BorrowError):
	"""The requested access breaks "one exclusive, or many shared, never both"."""


class EmptyHandleError(BorrowError):
	"""The handle was moved-from or dropped and no longer refers to a value."""


@dataclass(frozen=True)
class RegistryFault(Exception):
	"""
	Caller protocol violation against a registry or heap.

	Raised for double registration, capacity exhaustion, strict unregister of an
	untracked address, and dangling/foreign/double-freed heap addresses.
	"""

	reason_code: str
	message: str
	address: "Address | None" = None

	def __str__(self) -> str:
		if self.address is None:
			return f"[{self.reason_code}] {self.message}"
		return f"[{self.reason_code}] {self.message} address={self.address.format_short()}"


__all__ = ["BorrowError", "AliasingViolation", "EmptyHandleError", "RegistryFault"]
