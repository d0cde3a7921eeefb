#!/usr/bin/env python3
# quiver/libraries/conflicts.py
from __future__ import annotations

"""Top-level name conflict checks for library modules."""

import builtins
import sys
from typing import Iterable, Optional


def check_conflict(candidate: str, reserved: Iterable[str]) -> Optional[str]:
    """Return the reserved name `candidate` collides with (case-insensitive), else None."""
    if not candidate:
        return None
    wanted = candidate.lower()
    for name in reserved:
        if name.lower() == wanted:
            return name
    return None


class ReservedSymbols:
    """
    Explicit registry of top-level symbol names the process already uses.

    Seeded with builtins, the stdlib module list and the top-level modules
    imported at construction time. Loaders may reserve more names.
    """

    def __init__(self, extra: Iterable[str] = ()) -> None:
        names = set(dir(builtins))
        names.update(getattr(sys, "stdlib_module_names", ()))
        names.update(n for n in sys.modules if "." not in n and not n.startswith("_"))
        names.update(extra)
        self._names = names

    def reserve(self, name: str) -> None:
        self._names.add(name)

    def release(self, name: str) -> None:
        self._names.discard(name)

    def check(self, candidate: str) -> Optional[str]:
        return check_conflict(candidate, self._names)

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def __iter__(self):
        return iter(sorted(self._names))
