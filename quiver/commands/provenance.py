#!/usr/bin/env python3
# quiver/commands/provenance.py
from __future__ import annotations

"""
Definition-time provenance table.

While a file library executes, a ProvenanceRecorder is active. The @command
decorator reports every function it wraps, and the loader sweeps the finished
namespace for the remaining public functions. The result maps a command's
function name to (file, line, symbol) so arguments can later be scraped from
source text without touching the live function.
"""

import inspect
from contextlib import contextmanager
from types import ModuleType
from typing import Any, Callable, Iterator, Optional

from .command_types import Provenance

_ACTIVE: list["ProvenanceRecorder"] = []


class ProvenanceRecorder:
    def __init__(self, file: str) -> None:
        self.file = file
        self.records: dict[str, Provenance] = {}

    def record(self, func: Callable[..., Any]) -> None:
        code = getattr(func, "__code__", None)
        if code is None or code.co_filename != self.file:
            return
        self.records.setdefault(
            func.__name__, Provenance(self.file, code.co_firstlineno, func.__name__))

    def sweep(self, module: ModuleType) -> None:
        """Record public functions that the file defined without the decorator."""
        for attr_name, value in vars(module).items():
            if attr_name.startswith("_") or not inspect.isfunction(value):
                continue
            self.record(value)

    def get(self, symbol: str) -> Optional[Provenance]:
        return self.records.get(symbol)


def active_recorder() -> Optional[ProvenanceRecorder]:
    return _ACTIVE[-1] if _ACTIVE else None


@contextmanager
def recording(file: str) -> Iterator[ProvenanceRecorder]:
    """Activate a recorder for the duration of a file evaluation."""
    recorder = ProvenanceRecorder(file)
    _ACTIVE.append(recorder)
    try:
        yield recorder
    finally:
        _ACTIVE.pop()
