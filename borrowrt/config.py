# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Registry configuration (v0).

A config file is a small, strict JSON document:

  {
    "format": "borrowrt-config",
    "version": 0,
    "registry": {"capacity": 8, "strict_unregister": false}
  }

`capacity` selects the bounded registry; omit it (or use null) for the
unbounded one. Unknown fields are rejected so typos do not silently fall
back to defaults.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from borrowrt.registry import BaseRegistry, BorrowRegistry, BoundedBorrowRegistry


@dataclass(frozen=True)
class RegistryOptions:
	capacity: int | None = None
	strict_unregister: bool = False

	def with_overrides(self, *, capacity: int | None = None, strict_unregister: bool | None = None) -> "RegistryOptions":
		"""Return a copy with non-None overrides applied (CLI flags beat file values)."""
		out = self
		if capacity is not None:
			out = replace(out, capacity=capacity)
		if strict_unregister is not None:
			out = replace(out, strict_unregister=strict_unregister)
		return out

	def to_dict(self) -> dict[str, Any]:
		return {"capacity": self.capacity, "strict_unregister": self.strict_unregister}


def _load_config_json(path: Path) -> dict[str, Any]:
	try:
		data = json.loads(path.read_text(encoding="utf-8"))
	except json.JSONDecodeError as err:
		raise ValueError(f"config is not valid JSON: {err}") from err
	if not isinstance(data, dict):
		raise ValueError("config must be a JSON object")
	if data.get("format") != "borrowrt-config" or data.get("version") != 0:
		raise ValueError("unsupported config format/version")
	allowed_top = {"format", "version", "registry"}
	unknown_top = sorted(set(data.keys()) - allowed_top)
	if unknown_top:
		raise ValueError(f"config has unknown top-level fields: {', '.join(unknown_top)}")
	return data


def options_from_dict(obj: Any) -> RegistryOptions:
	if obj is None:
		return RegistryOptions()
	if not isinstance(obj, dict):
		raise ValueError("config 'registry' must be an object")
	unknown = sorted(set(obj.keys()) - {"capacity", "strict_unregister"})
	if unknown:
		raise ValueError(f"config 'registry' has unknown fields: {', '.join(unknown)}")
	capacity = obj.get("capacity")
	# bool is an int subclass; reject it explicitly.
	if capacity is not None and (isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1):
		raise ValueError("config 'registry.capacity' must be a positive integer or null")
	strict = obj.get("strict_unregister", False)
	if not isinstance(strict, bool):
		raise ValueError("config 'registry.strict_unregister' must be a boolean")
	return RegistryOptions(capacity=capacity, strict_unregister=strict)


def load_options(path: Path) -> RegistryOptions:
	data = _load_config_json(path)
	return options_from_dict(data.get("registry"))


def make_registry(options: RegistryOptions | None = None) -> BaseRegistry:
	opts = options or RegistryOptions()
	if opts.capacity is not None:
		return BoundedBorrowRegistry(opts.capacity, strict=opts.strict_unregister)
	return BorrowRegistry(strict=opts.strict_unregister)


__all__ = ["RegistryOptions", "options_from_dict", "load_options", "make_registry"]
