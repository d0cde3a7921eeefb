#!/usr/bin/env python3
# quiver/errors.py
from __future__ import annotations

"""
Error taxonomy shared by the loader, introspector and pipe runner.

- CapabilityRejected: a library opted out of the current environment (non-fatal).
- NamespaceConflict: advisory record, logged as a warning; never raised by loads.
- LoadFailure: fatal to one library only.
- ArgumentIntrospectionMiss: signature could not be scraped (cached as unavailable).
- ChainStageFailure: a pipe stage failed; remaining stages were not run.
"""

from typing import Any


class QuiverError(Exception):
    """Base class for all framework errors."""


class CapabilityRejected(QuiverError):
    """Raised when a library's capability gate returns a falsy value."""

    def __init__(self, library: str) -> None:
        super().__init__(f"Library '{library}' declined to load in this environment")
        self.library = library


class NamespaceConflict(QuiverError):
    def __init__(self, library: str, candidate: str, conflict: str) -> None:
        super().__init__(
            f"Library module '{candidate}' may conflict with top level name '{conflict}'. "
            "Rename it to avoid this warning."
        )
        self.library = library
        self.candidate = candidate
        self.conflict = conflict


class LoadFailure(QuiverError):
    """A library failed to load. The triggering exception is chained as __cause__."""

    def __init__(self, library: str, reason: str) -> None:
        super().__init__(f"Unable to load library '{library}': {reason}")
        self.library = library
        self.reason = reason


class ArgumentIntrospectionMiss(QuiverError):
    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"No arguments found for '{command}': {reason}")
        self.command = command
        self.reason = reason


class ChainStageFailure(QuiverError):
    """A stage of a piped invocation failed."""

    def __init__(self, index: int, command: str, cause: Any) -> None:
        detail = cause if isinstance(cause, str) else f"{type(cause).__name__}: {cause}"
        super().__init__(f"Stage {index + 1} ({command}) failed: {detail}")
        self.index = index
        self.command = command
        self.cause = cause


class UnknownCommand(QuiverError, LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown command: {name}")
        self.name = name


class PipeSyntaxError(QuiverError, ValueError):
    """Raised for a delimiter with no command on one of its sides."""
