#!/usr/bin/env python3
# quiver/commands/commands.py
from __future__ import annotations

"""
Command registry and decorator utilities.

This module provides:
- CommandRegistry: in-memory registry of commands and aliases (the global
  command namespace every library is integrated into).
- command: decorator that attaches command metadata to a library function.
- register_command: explicit API to register pre-built Command objects.
"""

from typing import Any, Callable, Dict, Mapping, Optional

from .command_types import Command
from .provenance import active_recorder

# Attribute the @command decorator stores its metadata under.
COMMAND_META = "__quiver_command__"


class CommandRegistry:
    """Holds all command definitions and provides lookup utilities."""

    def __init__(self) -> None:
        # Primary name -> Command
        self._commands_by_name: Dict[str, Command] = {}
        # Alias name -> primary name
        self._alias_to_primary: Dict[str, str] = {}
        # Aliases whose command was discarded by a reload
        self._stale_aliases: Dict[str, str] = {}
        # Category -> description text
        self._category_descriptions: Dict[str, str] = {}

    # ---------------- Registration ----------------

    def register(self, command_obj: Command, *, replace: bool = False) -> None:
        """
        Register a command and its aliases.

        Collisions raise ValueError unless `replace` is set, in which case the
        new command shadows whatever held the name before.
        """
        primary_key = command_obj.name.lower()

        if not replace and self.owner(primary_key) is not None:
            raise ValueError(
                f"Command '{command_obj.name}' already registered.")
        if replace:
            self._alias_to_primary.pop(primary_key, None)

        self._commands_by_name[primary_key] = command_obj
        self._stale_aliases.pop(primary_key, None)

        for alias in command_obj.aliases:
            alias_key = alias.lower()
            if not replace and self.owner(alias_key) is not None:
                raise ValueError(
                    f"Alias '{alias}' for '{command_obj.name}' collides with an existing name."
                )
            self._alias_to_primary[alias_key] = primary_key
            self._stale_aliases.pop(alias_key, None)

    def remove_library(self, library_name: str) -> list[Command]:
        """Drop every command owned by a library; their aliases become stale."""
        removed = [cmd for cmd in self._commands_by_name.values()
                   if cmd.library_name == library_name]
        for cmd in removed:
            primary_key = cmd.name.lower()
            del self._commands_by_name[primary_key]
            for alias_key, target in list(self._alias_to_primary.items()):
                if target == primary_key:
                    del self._alias_to_primary[alias_key]
                    self._stale_aliases[alias_key] = primary_key
        return removed

    def clear(self) -> None:
        self._commands_by_name.clear()
        self._alias_to_primary.clear()
        self._stale_aliases.clear()
        self._category_descriptions.clear()

    # ---------------- Lookup ----------------

    def get(self, name: str) -> Optional[Command]:
        """Return the command by primary name or alias, or None if not found."""
        key = name.lower()
        if key in self._commands_by_name:
            return self._commands_by_name[key]
        if key in self._alias_to_primary:
            return self._commands_by_name.get(self._alias_to_primary[key])
        return None

    def owner(self, name: str) -> Optional[str]:
        """Return the library name that currently holds `name`, or None if free."""
        command_obj = self.get(name)
        if command_obj is None:
            return None
        return command_obj.library_name

    def is_stale(self, alias: str) -> bool:
        return alias.lower() in self._stale_aliases

    def stale_aliases(self) -> list[str]:
        return sorted(self._stale_aliases)

    def all(self) -> list[Command]:
        """Return only primary commands (avoid duplicates in UIs)."""
        return list(self._commands_by_name.values())

    def names(self) -> list[str]:
        """Return a list of all primary names and aliases for completion."""
        return [*self._commands_by_name.keys(), *self._alias_to_primary.keys()]

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    # ---------------- Categories ----------------

    def categories(self) -> dict[str, list[Command]]:
        """Group commands by category for help output."""
        grouped: dict[str, list[Command]] = {}
        for cmd in self._commands_by_name.values():
            grouped.setdefault(cmd.category, []).append(cmd)
        return grouped

    def set_category_description(self, category: str, description: str) -> None:
        """Set display text for a category in help menus."""
        self._category_descriptions[category] = description.strip()

    def get_category_description(self, category: str) -> str:
        """Return display text for a category, or an empty string."""
        return self._category_descriptions.get(category, "")


# Global registry used across the app
REGISTRY = CommandRegistry()


def command(
    *,
    name: str | None = None,
    description: str | None = None,
    example: str | None = None,
    category: str | None = None,
    completers: Mapping[str, Callable[..., object]] | None = None,
    aliases: list[str] | None = None,
    options: Mapping[str, str] | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator marking a library function as a command, with metadata.

    - Function name is transformed from snake_case to kebab-case for `name` if not provided.
    - Registration happens when the owning library is loaded by the Manager.
    - The definition site is reported to the active provenance recorder.
    """

    def wrapper(func: Callable[..., Any]) -> Callable[..., Any]:
        setattr(func, COMMAND_META, {
            "name": (name or func.__name__).replace("_", "-"),
            "description": (description or (func.__doc__ or "")).strip(),
            "example": example or "",
            "category": category,
            "completers": dict(completers or {}),
            "aliases": list(aliases or []),
            "options": dict(options or {}),
        })
        recorder = active_recorder()
        if recorder is not None:
            recorder.record(func)
        return func

    return wrapper


def command_meta(func: Any) -> dict[str, Any] | None:
    """Return metadata attached by @command, if any."""
    meta = getattr(func, COMMAND_META, None)
    return meta if isinstance(meta, dict) else None


def register_command(command_obj: Command) -> None:
    """Explicit API for code that constructs Command objects directly."""
    REGISTRY.register(command_obj)
