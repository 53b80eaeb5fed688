# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Borrow states tracked per address by the registry.

The set is closed on purpose: every registry answer and every handle
observation is one of these four values.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from borrowrt.memory import Address


class BorrowState(Enum):
	"""Access state of an address as recorded by a registry."""

	VALID = auto()             # No exclusive alias recorded; default for untracked addresses.
	INVALID = auto()           # Moved-from / dropped handle; never a successful check result.
	MUTABLY_BORROWED = auto()  # A MutRef currently holds the address.
	OWNED = auto()             # An Own explicitly claimed the address.


@dataclass(frozen=True)
class RegistryEntry:
	"""Point-in-time view of one tracked address (see `entries()` on registries)."""

	address: "Address"
	state: BorrowState
	shared: int = 0

	def to_dict(self) -> dict[str, object]:
		return {"address": self.address.to_dict(), "state": self.state.name, "shared": self.shared}


__all__ = ["BorrowState", "RegistryEntry"]
