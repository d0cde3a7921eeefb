#!/usr/bin/env python3
# quiver/commands/command_types.py
from __future__ import annotations

"""
Command data structures and protocols.

This module defines:
- CommandCallback: the callable protocol for any command implementation.
- CommandResult: a normalized result container for command outputs.
- Argument / ArgumentCell: a command's lazily scraped formal arguments.
- Provenance: where a command was defined (file, line, symbol).
- Command: a registered command with metadata and a callable.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Protocol

if TYPE_CHECKING:
    from quiver.libraries.library import Library


class CommandCallback(Protocol):
    """Protocol for any command function."""

    def __call__(self, *args: Any, **kwargs: Any) -> Any:  # pragma: no cover - signature only
        ...


@dataclass(slots=True)
class CommandResult:
    """
    Normalized result container from command execution.

    Attributes:
        ok: True if the command completed successfully.
        message: Human-readable summary or primary output.
        data: Optional machine-readable payload, forwarded through pipes.
    """
    ok: bool = True
    message: str = ""
    data: Any = None

    def __str__(self) -> str:
        return self.message if self.message else ("ok" if self.ok else "error")


@dataclass(frozen=True, slots=True)
class Argument:
    """One formal parameter as written in source: name, default flag, default literal."""
    name: str
    has_default: bool = False
    default: Optional[str] = None

    def as_tuple(self) -> tuple[str, bool, Optional[str]]:
        return (self.name, self.has_default, self.default)


class ArgState(Enum):
    UNCOMPUTED = "uncomputed"
    COMPUTED = "computed"
    UNAVAILABLE = "unavailable"


@dataclass(slots=True)
class ArgumentCell:
    """
    Three-state memo for a command's arguments.

    Leaves UNCOMPUTED at most once; a miss is remembered as UNAVAILABLE so the
    source is never scanned again for this command instance.
    """
    state: ArgState = ArgState.UNCOMPUTED
    value: tuple[Argument, ...] = ()

    @property
    def settled(self) -> bool:
        return self.state is not ArgState.UNCOMPUTED

    def settle(self, arguments: Optional[tuple[Argument, ...]]) -> None:
        if self.settled:
            raise RuntimeError("argument cell already settled")
        if arguments is None:
            self.state = ArgState.UNAVAILABLE
        else:
            self.state = ArgState.COMPUTED
            self.value = tuple(arguments)

    def get(self) -> Optional[tuple[Argument, ...]]:
        return self.value if self.state is ArgState.COMPUTED else None


@dataclass(frozen=True, slots=True)
class Provenance:
    file: str
    line: int
    symbol: str


@dataclass(slots=True)
class Command:
    """
    A registered command with metadata and a callable to execute.

    Important fields:
        name: Primary unique command name.
        library: Owning library (back-reference; the library owns nothing here).
        callback: Function implementing the command, if it has one yet.
        options: Option schema, flag name -> type name.
        aliases: Extra names resolving to the same command.
        class_method: Optional "pkg.mod:Class.method" binding used instead of
            the library's generic entry point.
        provenance: Where the command was defined, recorded at load time.
        arguments: Lazily scraped formal arguments (see ArgumentCell).
    """

    name: str
    description: str = ""
    example: str = ""
    callback: Optional[CommandCallback] = None
    library: Optional["Library"] = field(default=None, repr=False, compare=False)
    options: dict[str, str] = field(default_factory=dict)
    aliases: list[str] = field(default_factory=list)
    class_method: Optional[str] = None
    provenance: Optional[Provenance] = None
    category: str = "general"
    completers: Mapping[str, Callable[..., object]] = field(default_factory=dict)
    param_names: list[str] = field(default_factory=list)
    arguments: ArgumentCell = field(default_factory=ArgumentCell, repr=False, compare=False)

    @property
    def library_name(self) -> str:
        return self.library.name if self.library is not None else ""

    @property
    def full_name(self) -> str:
        return self.name

    def invoke(self, *args: Any, **kwargs: Any) -> Any:
        """Execute the underlying command callback with provided arguments."""
        if self.callback is None:
            raise TypeError(f"Command '{self.name}' has no callable")
        return self.callback(*args, **kwargs)
