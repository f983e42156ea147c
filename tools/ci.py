#!/usr/bin/env python3
# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Run the local CI pipeline: formatting, linting, tests, a CLI smoke run and packaging."""

import pathlib
import subprocess
import sys
import time

from yachalk import chalk

# ###############
# Public Interface
# ###############

FIXTURE = "tests/fixtures/library.json"

STEPS: list[tuple[str, list[str]]] = [
    ("Format check", ["uv", "run", "ruff", "format", "--check", "src/", "tests/", "tools/"]),
    ("Lint", ["uv", "run", "ruff", "check", "src/", "tests/", "tools/"]),
    ("Tests", ["uv", "run", "pytest", "--cov=xtuml", "--cov-report=term-missing"]),
    ("Validate fixture", ["uv", "run", "xtuml", "check", FIXTURE]),
    ("Translate fixture", ["uv", "run", "xtuml", "translate", FIXTURE, "--no-timestamp", "-o", "build/library.ts"]),
    ("Build", ["uv", "build"]),
]


def main() -> int:
    """Run every CI step, then print a pass/fail summary."""
    results = [_run_step(name, cmd) for name, cmd in STEPS]

    _banner("Summary")
    for name, passed, elapsed in results:
        style = chalk.green if passed else chalk.red
        status = "PASS" if passed else "FAIL"
        print(style(f"  {status}  {name} ({elapsed:.1f}s)"))
    print()
    return 0 if all(passed for _, passed, _ in results) else 1


# ################
# Implementation
# ################


def _banner(title: str) -> None:
    rule = chalk.blue("=" * 60)
    print(f"\n{rule}\n{chalk.blue(title)}\n{rule}")


def _run_step(name: str, cmd: list[str]) -> tuple[str, bool, float]:
    _banner(name)
    start = time.monotonic()
    proc = subprocess.run(cmd, cwd=pathlib.Path(__file__).parent.parent)
    return name, proc.returncode == 0, time.monotonic() - start


if __name__ == "__main__":
    sys.exit(main())
