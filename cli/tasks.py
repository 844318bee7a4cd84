"""
Developer task entry points.

Usage:
    uv run dev       # compiler service on 127.0.0.1:8000 with auto-reload
    uv run test      # pytest -q
    uv run test-v    # pytest -v
    uv run lint      # ruff check
    uv run format    # ruff format
"""

from __future__ import annotations

from cli._runner import run_module

SOURCE_DIRS = ("apim_policy", "cli", "tests")


def dev() -> None:
    run_module(
        "uvicorn", "apim_policy.main:app", "--reload", "--host", "127.0.0.1", "--port", "8000"
    )


def test() -> None:
    run_module("pytest", "-q")


def test_verbose() -> None:
    run_module("pytest", "-v")


def lint() -> None:
    run_module("ruff", "check", *SOURCE_DIRS)


def format_code() -> None:
    run_module("ruff", "format", *SOURCE_DIRS)
