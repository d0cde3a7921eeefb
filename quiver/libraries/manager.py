#!/usr/bin/env python3
# quiver/libraries/manager.py
from __future__ import annotations

"""
Library manager.

Drives loads across many libraries:
- loads dependencies first, then the library through its kind's loader
- turns loader results into Command objects and registers them
- keeps failed libraries in the FailedSet (and drops their cached scan)
- refuses commands/aliases that would take over another library's names,
  except for package libraries, which may shadow on purpose
"""

import inspect
import logging
import pkgutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from quiver.commands import REGISTRY, Command, CommandRegistry, Provenance, command_meta
from quiver.errors import CapabilityRejected, LoadFailure, NamespaceConflict

from .cache import FILE_CACHE, FileCache
from .conflicts import ReservedSymbols
from .discovery import discover_libraries
from .library import Library, LibraryKind, LoadState
from .loaders import LoadResult, loader_for

logger = logging.getLogger(__name__)

LibraryRef = Union[str, Mapping[str, Any], Library]


class FailedSet:
    """Names of libraries whose most recent load failed."""

    def __init__(self) -> None:
        self._names: set[str] = set()

    def add(self, name: str) -> None:
        self._names.add(name)

    def discard(self, name: str) -> None:
        self._names.discard(name)

    def clear(self) -> None:
        self._names.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self):
        return iter(sorted(self._names))

    def __len__(self) -> int:
        return len(self._names)


FAILED_LIBRARIES = FailedSet()


@dataclass(frozen=True, slots=True)
class AliasConflict:
    library: str
    name: str
    existing_library: str


def _class_method_callback(binding: str) -> Callable[..., Any]:
    """Defer resolving 'pkg.mod:Class.method' until the command runs."""

    def _invoke(*args: Any, **kwargs: Any) -> Any:
        class_name, _, method_name = binding.rpartition(".")
        target = getattr(pkgutil.resolve_name(class_name), method_name)
        return target(*args, **kwargs)

    _invoke.__name__ = binding.rpartition(".")[2] or binding
    return _invoke


def _param_names(func: Optional[Callable[..., Any]]) -> list[str]:
    if func is None:
        return []
    try:
        return [p.name for p in inspect.signature(func).parameters.values()]
    except (TypeError, ValueError):
        return []


class Manager:
    def __init__(
        self,
        registry: CommandRegistry = REGISTRY,
        *,
        local_root: Optional[Path] = None,
        file_root: Optional[Path] = None,
        reserved: Optional[ReservedSymbols] = None,
        failed: FailedSet = FAILED_LIBRARIES,
        cache: FileCache = FILE_CACHE,
    ) -> None:
        self.registry = registry
        self.local_root = local_root
        self.file_root = file_root
        self.reserved = reserved if reserved is not None else ReservedSymbols()
        self.failed = failed
        self.cache = cache
        self.libraries: dict[str, Library] = {}
        self.rejected: dict[str, str] = {}
        self.alias_conflicts: list[AliasConflict] = []
        self.namespace_conflicts: dict[str, list[NamespaceConflict]] = {}

    # ---------------- Registration ----------------

    def add_library(self, ref: LibraryRef) -> Library:
        """Register a library by descriptor; repeated references return the existing one."""
        if isinstance(ref, Library):
            library = ref
        elif isinstance(ref, str):
            library = Library(name=ref)
        else:
            library = Library.from_descriptor(ref)

        existing = self.libraries.get(library.name)
        if existing is not None:
            return existing
        if library.local_root is None:
            library.local_root = self.local_root
        self.libraries[library.name] = library
        return library

    def discover(self, root: Optional[Path] = None) -> list[Library]:
        """Add every library found under `root` (default: the local root)."""
        root = root or self.local_root
        if root is None:
            return []
        kind = LibraryKind.LOCAL_FILE if root == self.local_root else LibraryKind.FILE
        return [self.add_library(lib) for lib in discover_libraries(root, kind=kind)]

    def get(self, name: str) -> Optional[Library]:
        return self.libraries.get(name)

    # ---------------- Loading ----------------

    def load(self, refs: Union[LibraryRef, Iterable[LibraryRef]], *, index: bool = False) -> list[str]:
        """Load a batch of libraries. Returns the names that ended up loaded."""
        if isinstance(refs, (str, Mapping, Library)):
            refs = [refs]
        loaded: list[str] = []
        for ref in refs:
            library = self.add_library(ref)
            if self.load_library(library, index=index):
                loaded.append(library.name)
        return loaded

    def load_all(self, *, index: bool = False) -> list[str]:
        return self.load(list(self.libraries.values()), index=index)

    def load_library(self, library: Library, *, index: bool = False) -> bool:
        if library.state is LoadState.LOADED:
            return True
        if library.state is LoadState.FAILED:
            # Retained as failed until an explicit reload.
            return False

        try:
            if library.state is LoadState.LOADING:
                raise LoadFailure(library.name, "circular dependency")
            library.state = LoadState.LOADING
            self._load_dependencies(library, index=index)
            loader = loader_for(
                library,
                reserved=self.reserved,
                index=index,
                root=self._root_for(library),
                cache=self.cache,
            )
            result = loader.load()
            # The config hook may have declared more dependencies.
            self._load_dependencies(library, index=index)
        except CapabilityRejected as exc:
            self.handle_load_action_error(library, exc)
            return False
        except LoadFailure as exc:
            self.add_failed_library(library, exc)
            return False

        self.rejected.pop(library.name, None)
        self.namespace_conflicts[library.name] = result.conflicts
        self.create_commands(library, result)
        logger.debug("Loaded library %s (%d commands)", library.name, len(library.commands))
        return True

    def reload(self, name: str, *, index: bool = False) -> bool:
        """Forget everything about a library and load it from scratch."""
        library = self.libraries.get(name)
        if library is None:
            raise KeyError(f"Unknown library: {name}")
        self.registry.remove_library(name)
        self.failed.discard(name)
        self.cache.reset(name)
        self.rejected.pop(name, None)
        library.state = LoadState.UNLOADED
        library.error = None
        # Detected commands are found again; only configured ones carry over.
        library.commands = list(library.configured_commands)
        if library.kind in (LibraryKind.FILE, LibraryKind.LOCAL_FILE):
            library.module = None
        return self.load_library(library, index=index)

    def _root_for(self, library: Library) -> Optional[Path]:
        if library.kind is LibraryKind.LOCAL_FILE:
            return self.local_root
        return self.file_root

    def _load_dependencies(self, library: Library, *, index: bool) -> None:
        for dep in list(library.dependencies):
            dep_library = self.libraries.get(dep)
            if dep_library is None:
                dep_library = self.add_library({"name": dep, "kind": LibraryKind.REQUIRE.value})
            if not self.load_library(dep_library, index=index):
                raise LoadFailure(library.name, f"dependency '{dep}' failed to load")

    # ---------------- Failure handling ----------------

    def handle_load_action_error(self, library: Library, err: CapabilityRejected) -> None:
        library.state = LoadState.UNLOADED
        self.rejected[library.name] = str(err)
        logger.debug("Library %s didn't load due to its capability gate", library.name)

    def add_failed_library(self, library: Library, err: LoadFailure) -> None:
        library.state = LoadState.FAILED
        library.error = err
        self.failed.add(library.name)
        # Only after the library is known failed: drop its cached scan.
        self.cache.reset(library.name)
        cause = err.__cause__
        logger.warning("%s", err)
        if cause is not None:
            logger.debug("Load failure cause for %s", library.name, exc_info=cause)

    # ---------------- Commands ----------------

    def before_create_commands(self, library: Library, result: LoadResult) -> dict[str, Provenance]:
        """Map command names to definition-time provenance (file libraries only)."""
        if library.kind not in (LibraryKind.FILE, LibraryKind.LOCAL_FILE) or result.module is None:
            return {}
        by_command: dict[str, Provenance] = {}
        for cmd_name in library.commands:
            func = result.callables.get(cmd_name)
            symbol = getattr(func, "__name__", cmd_name)
            record = result.provenance.get(symbol)
            if record is not None:
                by_command[cmd_name] = record
        return by_command

    def create_commands(self, library: Library, result: LoadResult) -> list[Command]:
        provenance = self.before_create_commands(library, result)
        commands: list[Command] = []
        for cmd_name in library.commands:
            callback = result.callables.get(cmd_name)
            binding = library.class_commands.get(cmd_name)
            if callback is None and binding:
                callback = _class_method_callback(binding)
            meta = command_meta(callback) or {}

            cmd = Command(
                name=cmd_name,
                description=meta.get("description", ""),
                example=meta.get("example", ""),
                callback=callback,
                library=library,
                options={**meta.get("options", {}), **library.options.get(cmd_name, {})},
                aliases=list(library.aliases.get(cmd_name, meta.get("aliases", []))),
                class_method=binding,
                provenance=provenance.get(cmd_name),
                category=meta.get("category") or library.name,
                completers=meta.get("completers", {}),
                param_names=_param_names(callback),
            )
            commands.append(cmd)

        commands = self.check_for_uncreated_aliases(library, commands)
        shadow = library.kind is LibraryKind.PACKAGE
        for cmd in commands:
            self.registry.register(cmd, replace=shadow)
        self._set_category_description(library, result)
        return commands

    def check_for_uncreated_aliases(self, library: Library, commands: list[Command]) -> list[Command]:
        """Drop names that belong to another library. Package libraries may shadow."""
        if library.kind is LibraryKind.PACKAGE:
            return commands

        taken: set[str] = set()
        kept: list[Command] = []
        for cmd in commands:
            owner = self.registry.owner(cmd.name)
            if cmd.name.lower() in taken or (owner is not None and owner != library.name):
                self._alias_conflict(library, cmd.name, owner or library.name)
                continue
            taken.add(cmd.name.lower())
            kept.append(cmd)

        for cmd in kept:
            free: list[str] = []
            for alias in cmd.aliases:
                owner = self.registry.owner(alias)
                if alias.lower() in taken or (owner is not None and owner != library.name):
                    self._alias_conflict(library, alias, owner or library.name)
                    continue
                taken.add(alias.lower())
                free.append(alias)
            cmd.aliases = free
        return kept

    def _alias_conflict(self, library: Library, name: str, existing: str) -> None:
        self.alias_conflicts.append(AliasConflict(library.name, name, existing))
        logger.warning(
            "Command '%s' from library '%s' was not created: the name already belongs to '%s'",
            name, library.name, existing,
        )

    def _set_category_description(self, library: Library, result: LoadResult) -> None:
        """Category text: 'description' attribute, CATEGORY_DESCRIPTION, or module docstring."""
        text = library.attributes.get("description")
        module = result.module
        if not isinstance(text, str) and module is not None:
            value = getattr(module, "CATEGORY_DESCRIPTION", None)
            text = value if isinstance(value, str) else (module.__doc__ or "")
        if isinstance(text, str):
            self.registry.set_category_description(library.name, text.strip().splitlines()[0] if text.strip() else "")

    # ---------------- Queries ----------------

    def loaded_libraries(self) -> list[Library]:
        return [lib for lib in self.libraries.values() if lib.loaded]

    def failed_libraries(self) -> list[Library]:
        return [self.libraries[name] for name in self.failed if name in self.libraries]
