# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
borrowrt: runtime enforcement of "one exclusive, or many shared" access.

Modules:
  state     BorrowState and registry snapshots
  memory    Heap arena and generation-stamped Address
  registry  BorrowRegistry / BoundedBorrowRegistry
  handles   Own, Ref, MutRef
  config    RegistryOptions and registry factory
  demo      checked walkthrough scenarios (used by the CLI)
"""

from borrowrt.errors import AliasingViolation, BorrowError, EmptyHandleError, RegistryFault
from borrowrt.handles import Handle, MutRef, Own, Ref
from borrowrt.memory import Address, Heap
from borrowrt.registry import BaseRegistry, BorrowRegistry, BoundedBorrowRegistry
from borrowrt.state import BorrowState, RegistryEntry
from borrowrt.config import RegistryOptions, load_options, make_registry

__all__ = [
	"AliasingViolation",
	"BorrowError",
	"EmptyHandleError",
	"RegistryFault",
	"Handle",
	"MutRef",
	"Own",
	"Ref",
	"Address",
	"Heap",
	"BaseRegistry",
	"BorrowRegistry",
	"BoundedBorrowRegistry",
	"BorrowState",
	"RegistryEntry",
	"RegistryOptions",
	"load_options",
	"make_registry",
]
