# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from borrowrt.config import RegistryOptions, load_options
from borrowrt.demo import SCENARIOS, DemoReport, run_demo


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="borrowrt", description="Runtime borrow discipline: walkthroughs and checks")
	p.add_argument("-v", "--verbose", action="store_true", help="Log registry transitions to stderr (DEBUG)")
	sub = p.add_subparsers(dest="cmd", required=True)

	demo = sub.add_parser("demo", help="Run the checked borrow scenarios and report each step")
	demo.add_argument(
		"--scenario",
		dest="scenarios",
		action="append",
		choices=sorted(SCENARIOS),
		default=None,
		help="Run only this scenario (repeatable); defaults to all",
	)
	demo.add_argument("--config", type=Path, default=None, help="Path to a borrowrt-config JSON file")
	demo.add_argument("--capacity", type=int, default=None, help="Use a bounded registry with this many slots")
	demo.add_argument(
		"--strict",
		action="store_true",
		default=None,
		help="Fault on unregistering an untracked address instead of ignoring it",
	)
	demo.add_argument("--json", action="store_true", help="Emit machine-readable JSON report")

	sub.add_parser("list", help="List available scenarios")
	return p


def _print_human(report: DemoReport) -> None:
	for scenario in sorted(report.scenarios, key=lambda s: s.name):
		status = "ok" if scenario.ok else ("aborted" if scenario.aborted else "FAILED")
		print(f"{scenario.name}: {status}")
		for step in scenario.steps:
			mark = " " if step.matched else "!"
			suffix = f" ({step.detail})" if step.detail else ""
			print(f" {mark} {step.step}: {step.observed}{suffix}")
			if not step.matched:
				print(f"     expected {step.expected}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
	p = _build_parser()
	args = p.parse_args(argv)

	if args.verbose:
		logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(name)s: %(message)s")

	if args.cmd == "list":
		for name in sorted(SCENARIOS):
			print(name)
		return 0

	if args.cmd == "demo":
		try:
			opts = load_options(args.config) if args.config is not None else RegistryOptions()
			if args.capacity is not None and args.capacity < 1:
				raise ValueError("--capacity must be a positive integer")
			opts = opts.with_overrides(capacity=args.capacity, strict_unregister=args.strict)
		except (OSError, ValueError) as err:
			p.error(str(err))
			return 2
		report = run_demo(args.scenarios, opts)
		if args.json:
			print(json.dumps(report.to_dict(), sort_keys=True, separators=(",", ":")))
		else:
			_print_human(report)
		return 0 if report.ok else 1

	raise AssertionError("unreachable")
