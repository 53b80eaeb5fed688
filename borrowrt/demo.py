# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Checked walkthroughs of the borrow runtime.

Each scenario performs a fixed sequence of handle operations and records, per
step, whether it succeeded or which `reason_code` rejected it, next to what
was expected. A report is `ok` only when every step matched.

Scenarios:
  shared-then-mutable  shared read, exclusive write, rejected second &mut
  ownership-transfer   borrow conflicts under an owner, then move semantics
  bounded-handoff      owner claims / hand-off on a fixed-capacity registry
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from borrowrt.config import RegistryOptions, make_registry
from borrowrt.errors import BorrowError
from borrowrt.handles import Handle, MutRef, Own, Ref
from borrowrt.memory import Heap
from borrowrt.registry import BaseRegistry, BoundedBorrowRegistry
from borrowrt.state import BorrowState

logger = logging.getLogger(__name__)

BOUNDED_DEFAULT_CAPACITY = 3


@dataclass(frozen=True)
class StepResult:
	step: str
	expected: str  # "ok" or a reason_code
	observed: str  # "ok", a reason_code, or CHECK_FAILED
	detail: str | None = None

	@property
	def matched(self) -> bool:
		return self.expected == self.observed

	def to_dict(self) -> dict[str, Any]:
		return {
			"step": self.step,
			"expected": self.expected,
			"observed": self.observed,
			"detail": self.detail,
			"matched": self.matched,
		}


@dataclass(frozen=True)
class ScenarioResult:
	name: str
	steps: list[StepResult]
	aborted: bool = False

	@property
	def ok(self) -> bool:
		return not self.aborted and all(s.matched for s in self.steps)

	def to_dict(self) -> dict[str, Any]:
		return {
			"name": self.name,
			"ok": self.ok,
			"aborted": self.aborted,
			"steps": [s.to_dict() for s in self.steps],
		}


@dataclass(frozen=True)
class DemoReport:
	ok: bool
	options: RegistryOptions
	scenarios: list[ScenarioResult]

	def to_dict(self) -> dict[str, Any]:
		return {
			"ok": self.ok,
			"options": self.options.to_dict(),
			"scenarios": [s.to_dict() for s in sorted(self.scenarios, key=lambda s: s.name)],
		}


class _Abort(Exception):
	"""A step expected to succeed failed; later steps cannot run."""


class _Recorder:
	def __init__(self, name: str) -> None:
		self.name = name
		self.steps: List[StepResult] = []

	def attempt(
		self,
		step: str,
		fn: Callable[[], Any],
		*,
		expect: str = "ok",
		describe: Optional[Callable[[Any], str]] = None,
	) -> Any:
		try:
			result = fn()
		except BorrowError as err:
			logger.debug("%s: %s -> %s", self.name, step, err.reason_code)
			self.steps.append(StepResult(step, expect, err.reason_code, err.message))
			if expect == "ok":
				raise _Abort(step) from err
			return None
		logger.debug("%s: %s -> ok", self.name, step)
		self.steps.append(StepResult(step, expect, "ok", describe(result) if describe is not None else None))
		if expect != "ok" and isinstance(result, Handle):
			# Unexpected success still must not pin the address.
			result.drop()
			return None
		return result

	def check(self, step: str, cond: bool, detail: str | None = None) -> None:
		self.steps.append(StepResult(step, "ok", "ok" if cond else "CHECK_FAILED", detail))


def _items(values) -> str:
	return " ".join(str(v) for v in values)


def _shared_then_mutable(rec: _Recorder, registry: BaseRegistry, heap: Heap) -> None:
	data = Own.new(heap, [1, 2, 3, 4, 5], registry)
	dat = Own.new(heap, [1, 2, 3, 4, 5], registry)

	with rec.attempt("borrow data as shared", lambda: Ref(data.get(), registry), describe=lambda r: _items(r.value)):
		pass

	def _double(m: MutRef) -> str:
		m.value = [item * 2 for item in m.value]
		return _items(m.value)

	with rec.attempt("borrow dat as mutable", lambda: MutRef(dat.get(), registry)) as m:
		rec.check("double dat through the mutable borrow", _double(m) == "2 4 6 8 10", _items(m.value))
		rec.attempt("second mutable borrow of dat", lambda: MutRef(dat.get(), registry), expect="MUT_BORROW_CONFLICT")

	rec.check("dat keeps the doubled values", dat.value == [2, 4, 6, 8, 10], _items(dat.value))
	data.drop()
	dat.drop()
	rec.check("registry drained", len(registry) == 0, f"tracked={len(registry)}")


def _ownership_transfer(rec: _Recorder, registry: BaseRegistry, heap: Heap) -> None:
	o1 = Own.new(heap, 42, registry)
	v = o1.get()

	r1 = rec.attempt("shared borrow under owner", lambda: Ref(v, registry), describe=lambda r: f"value={r.value}")
	rec.attempt("mutable borrow while shared", lambda: MutRef(v, registry), expect="MUT_BORROW_CONFLICT")
	rec.attempt("move owner while shared", o1.move, expect="MOVE_WHILE_BORROWED")
	r1.drop()
	m = rec.attempt("mutable borrow after shared dropped", lambda: MutRef(v, registry))
	rec.attempt("second mutable borrow", lambda: MutRef(v, registry), expect="MUT_BORROW_CONFLICT")
	rec.attempt("read owner while mutably borrowed", lambda: o1.value, expect="USE_WHILE_MUT_BORROWED")
	m.drop()
	rec.check("address reads VALID again", registry.query(v) is BorrowState.VALID, registry.query(v).name)

	live_before = len(heap)
	o2 = rec.attempt("move owner", o1.move)
	rec.check("source is no longer owner", not o1.is_owner() and o2.is_owner())
	rec.attempt("borrow through moved-from owner", lambda: Ref(o1.get(), registry), expect="EMPTY_HANDLE")
	o1.drop()
	rec.check("dropping moved-from owner frees nothing", len(heap) == live_before, f"live={len(heap)}")
	o2.drop()
	rec.check("dropping new owner frees the value", len(heap) == live_before - 1 and v not in registry, f"live={len(heap)}")


def _bounded_handoff(rec: _Recorder, registry: BaseRegistry, heap: Heap) -> None:
	own = Own.new(heap, 42, registry)

	ref = rec.attempt("shared borrow", own.borrow, describe=lambda r: f"value={r.value}")
	rec.attempt("claim while borrowed", own.claim_owned, expect="CLAIM_WHILE_BORROWED")
	ref.drop()

	handed = rec.attempt("hand off ownership", own.borrow_into_owned, describe=lambda h: f"value={h.value}")
	rec.check("new owner holds an OWNED claim", handed.is_owned() and not own.is_owner())
	rec.attempt("shared borrow of claimed value", lambda: Ref(handed.get(), registry), expect="SHARED_WHILE_EXCLUSIVE")
	rec.attempt("hand off from moved-from owner", own.borrow_into_owned, expect="EMPTY_HANDLE")

	moved = rec.attempt("move claimed owner", handed.move, describe=lambda h: f"value={h.value}")
	rec.check("claim follows the address", moved.is_owned())
	moved.drop()
	rec.check("registry drained", len(registry) == 0, f"tracked={len(registry)}")


SCENARIOS: Dict[str, Callable[[_Recorder, BaseRegistry, Heap], None]] = {
	"shared-then-mutable": _shared_then_mutable,
	"ownership-transfer": _ownership_transfer,
	"bounded-handoff": _bounded_handoff,
}


def _registry_for(name: str, options: RegistryOptions) -> BaseRegistry:
	if name == "bounded-handoff" and options.capacity is None:
		return BoundedBorrowRegistry(BOUNDED_DEFAULT_CAPACITY, strict=options.strict_unregister)
	return make_registry(options)


def run_scenario(name: str, options: RegistryOptions | None = None) -> ScenarioResult:
	opts = options or RegistryOptions()
	fn = SCENARIOS.get(name)
	if fn is None:
		raise ValueError(f"unknown scenario: {name}")
	rec = _Recorder(name)
	try:
		fn(rec, _registry_for(name, opts), Heap())
	except _Abort:
		return ScenarioResult(name, list(rec.steps), aborted=True)
	return ScenarioResult(name, list(rec.steps))


def run_demo(names: list[str] | None = None, options: RegistryOptions | None = None) -> DemoReport:
	opts = options or RegistryOptions()
	selected = list(names) if names else list(SCENARIOS)
	results = [run_scenario(name, opts) for name in selected]
	return DemoReport(ok=all(r.ok for r in results), options=opts, scenarios=results)


__all__ = ["StepResult", "ScenarioResult", "DemoReport", "SCENARIOS", "run_scenario", "run_demo"]
