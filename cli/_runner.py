"""Subprocess helper shared by the CLI entry points."""

from __future__ import annotations

import subprocess
import sys
from collections.abc import Sequence


def run(cmd: Sequence[str]) -> None:
    """Run ``cmd`` and exit with its return code."""
    result = subprocess.run(cmd)
    raise SystemExit(result.returncode)


def run_module(module: str, *args: str) -> None:
    """Run ``python -m module`` in this interpreter, passing through extra CLI args."""
    run([sys.executable, "-m", module, *args, *sys.argv[1:]])
