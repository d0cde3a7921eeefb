"""Shared fixtures: isolated process-wide state and throwaway library files."""

from __future__ import annotations

import logging
import textwrap
from pathlib import Path

import pytest

from quiver.commands import REGISTRY
from quiver.libraries import FAILED_LIBRARIES, FILE_CACHE, Manager, ReservedSymbols


@pytest.fixture(autouse=True)
def _isolate_state():
    """The registry, failed set and file cache are process-wide; reset them per test."""
    REGISTRY.clear()
    FAILED_LIBRARIES.clear()
    FILE_CACHE.reset()
    yield
    REGISTRY.clear()
    FAILED_LIBRARIES.clear()
    FILE_CACHE.reset()
    # init_logger() turns propagation off, which hides records from caplog
    quiver_logger = logging.getLogger("quiver")
    for handler in list(quiver_logger.handlers):
        quiver_logger.removeHandler(handler)
        handler.close()
    quiver_logger.propagate = True
    quiver_logger.setLevel(logging.NOTSET)


@pytest.fixture
def lib_root(tmp_path: Path) -> Path:
    root = tmp_path / "libs"
    root.mkdir()
    return root


@pytest.fixture
def write_library(lib_root: Path):
    """Write `<lib_root>/<name>.py` (or `<name>/entrypoint.py` with package=True)."""

    def _write(name: str, source: str, *, package: bool = False) -> Path:
        if package:
            path = lib_root / name / "entrypoint.py"
            path.parent.mkdir(parents=True, exist_ok=True)
        else:
            path = lib_root / f"{name}.py"
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def manager(lib_root: Path) -> Manager:
    return Manager(
        REGISTRY,
        local_root=lib_root,
        file_root=lib_root,
        reserved=ReservedSymbols(),
    )
