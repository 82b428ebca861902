"""Shared test fixtures for Shuttle."""

from __future__ import annotations

import shutil
import sys
from pathlib import Path

import pytest

from shuttle import launcher, resolver

PYTHON = sys.executable

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX process semantics")


def py(code: str) -> list[str]:
    """Arguments that make the current interpreter run *code*."""
    return ["-c", code]


def requires(exe: str):
    return pytest.mark.skipif(shutil.which(exe) is None, reason=f"{exe} not installed")


@pytest.fixture(autouse=True)
def isolated_globals():
    """Reset process-wide resolver cache, launcher and log hook."""
    resolver.clear_cache()
    saved_launcher = launcher.get_launcher()
    saved_hook = launcher.get_logger()
    yield
    launcher.set_launcher(saved_launcher)
    launcher.set_logger(saved_hook)
    resolver.clear_cache()


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary working directory."""
    return tmp_path


@pytest.fixture
def calls() -> list[tuple[str, list[str]]]:
    """Collects (path, argv) pairs passed to a logging hook."""
    return []


@pytest.fixture
def hook(calls):
    def record(path: str, argv: list[str]) -> None:
        calls.append((path, argv))

    return record
