#!/usr/bin/env python3
# quiver/commands/__init__.py
from __future__ import annotations

"""
Package for command definitions and registration.

Provides:
- Data structures and protocols (`Command`, `CommandResult`, `CommandCallback`,
  `Argument`, `ArgumentCell`, `Provenance`).
- In-memory registry and decorator (`REGISTRY`, `command`, `register_command`).
- Definition-time provenance recording (`recording`, `ProvenanceRecorder`).
"""


# Re-export from submodules
from .command_types import (
    Argument,
    ArgState,
    ArgumentCell,
    Command,
    CommandCallback,
    CommandResult,
    Provenance,
)
from .provenance import ProvenanceRecorder, active_recorder, recording
from .commands import (
    COMMAND_META,
    REGISTRY,
    CommandRegistry,
    command,
    command_meta,
    register_command,
)

__all__ = [
    "Argument",
    "ArgState",
    "ArgumentCell",
    "Command",
    "CommandCallback",
    "CommandResult",
    "Provenance",
    "ProvenanceRecorder",
    "active_recorder",
    "recording",
    "COMMAND_META",
    "REGISTRY",
    "CommandRegistry",
    "command",
    "command_meta",
    "register_command",
]
