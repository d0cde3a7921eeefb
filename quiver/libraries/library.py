#!/usr/bin/env python3
# quiver/libraries/library.py
from __future__ import annotations

"""
Library data model.

A Library is a named source of commands. It is created from a descriptor
(configuration entry or discovery scan), remembers which attributes the user
configured explicitly, and merges attributes produced by the library's own
config hook underneath those.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import ModuleType
from typing import Any, Iterable, Mapping, Optional

# Per-command maps merged entry by entry, with the type each entry is stored as.
_MAP_KEYS = {
    "options": dict,
    "aliases": list,
    "class_commands": str,
}


class LibraryKind(str, Enum):
    MODULE = "module"
    FILE = "file"
    PACKAGE = "package"
    LOCAL_FILE = "local_file"
    REQUIRE = "require"


class LoadState(Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(slots=True)
class Library:
    """
    Important fields:
        name: Unique key across the process.
        kind: Which loader protocol applies.
        module: Module handle, or dotted import name, for module-like kinds.
        commands: Ordered command names; only ever grows (union merge).
        dependencies: Ordered dependency names, configured or detected.
        attributes: Free-form configuration attributes (description, ...).
        options: Command name -> option schema ({flag: type}).
        library_file: Source file, once resolved.
    """

    name: str
    kind: LibraryKind = LibraryKind.FILE
    module: ModuleType | str | None = None
    commands: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)
    options: dict[str, dict[str, str]] = field(default_factory=dict)
    aliases: dict[str, list[str]] = field(default_factory=dict)
    class_commands: dict[str, str] = field(default_factory=dict)
    object_methods: bool = True
    library_file: Optional[Path] = None
    local_root: Optional[Path] = field(default=None, repr=False)
    state: LoadState = LoadState.UNLOADED
    error: Optional[BaseException] = field(default=None, repr=False)
    user_keys: frozenset[str] = field(default_factory=frozenset, repr=False)
    user_entries: dict[str, set[str]] = field(default_factory=dict, repr=False)
    configured_commands: tuple[str, ...] = field(default=(), repr=False)

    def __post_init__(self) -> None:
        if not self.configured_commands:
            self.configured_commands = tuple(self.commands)

    # ---------------- Construction ----------------

    @classmethod
    def from_descriptor(cls, descriptor: Mapping[str, Any]) -> "Library":
        """Build a library from a configuration mapping (keys per the descriptor format)."""
        if not descriptor.get("name"):
            raise ValueError("Library descriptor requires a 'name'")
        raw = dict(descriptor)
        name = str(raw.pop("name"))
        kind = LibraryKind(raw.pop("kind", LibraryKind.FILE.value))
        module = raw.pop("module", None)
        file_value = raw.pop("file", None)

        library = cls(name=name, kind=kind, module=module)
        if file_value:
            library.library_file = Path(str(file_value)).expanduser()
        library.user_keys = frozenset(k for k in raw if k != "commands")
        library.apply(raw, user=True)
        library.configured_commands = tuple(library.commands)
        return library

    # ---------------- Merging ----------------

    def add_commands(self, names: Iterable[str]) -> None:
        """Union `names` into the command list, keeping first-seen order."""
        for name in names:
            if name not in self.commands:
                self.commands.append(name)

    def apply(self, attrs: Mapping[str, Any], *, user: bool = False) -> None:
        """
        Merge attributes into the library.

        Hook-provided attributes (user=False) never override what the user
        configured, except `commands`, which is always unioned. The per-command
        maps (options, aliases, class_commands) merge entry by entry, so a hook
        can add entries for other commands but never replaces a user's entry.
        """
        for key, value in attrs.items():
            if key == "commands":
                if isinstance(value, Mapping):
                    self._apply_command_table(value, user=user)
                else:
                    self.add_commands(value or ())
                continue
            if key in _MAP_KEYS:
                for cmd_name, entry in dict(value or {}).items():
                    self._set_entry(key, str(cmd_name), entry, user=user)
                continue
            if not user and key in self.user_keys:
                continue
            if key == "dependencies":
                self.dependencies = list(value or ())
            elif key == "object_methods":
                self.object_methods = bool(value)
            else:
                self.attributes[key] = value

    def _apply_command_table(self, table: Mapping[str, Any], *, user: bool) -> None:
        """Accept `commands` given as {name: {options, aliases, class_method}}."""
        self.add_commands(table.keys())
        for cmd_name, spec in table.items():
            if not isinstance(spec, Mapping):
                continue
            if "options" in spec:
                self._set_entry("options", cmd_name, spec["options"], user=user)
            if "aliases" in spec:
                self._set_entry("aliases", cmd_name, spec["aliases"], user=user)
            if "class_method" in spec:
                self._set_entry("class_commands", cmd_name, spec["class_method"], user=user)

    def _set_entry(self, key: str, cmd_name: str, entry: Any, *, user: bool) -> None:
        owned = self.user_entries.setdefault(key, set())
        if not user and cmd_name in owned:
            return
        if user:
            owned.add(cmd_name)
        getattr(self, key)[cmd_name] = _MAP_KEYS[key](entry)

    # ---------------- Queries ----------------

    @property
    def directory(self) -> Optional[Path]:
        if self.library_file is None:
            return None
        path = self.library_file.resolve()
        # Directory libraries are identified by their package folder.
        if path.name in ("entrypoint.py", "__init__.py"):
            return path.parent.parent
        return path.parent

    @property
    def is_local(self) -> bool:
        if self.kind is LibraryKind.LOCAL_FILE:
            return True
        if self.local_root is None or self.directory is None:
            return False
        return self.directory == self.local_root.resolve()

    @property
    def loaded(self) -> bool:
        return self.state is LoadState.LOADED

    @property
    def failed(self) -> bool:
        return self.state is LoadState.FAILED

    def __str__(self) -> str:
        return self.name
