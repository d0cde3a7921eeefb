#!/usr/bin/env python3
# quiver/libraries/loaders.py
from __future__ import annotations

"""
Library loaders, one per library kind.

Every loader runs the same ordered lifecycle:
  1) resolve the descriptor to a module (importing or evaluating a file)
  2) merge attributes from the module's config hook
  3) consult the capability gate (falsy -> CapabilityRejected)
  4) check the module name against reserved top-level symbols (warning only)
  5) run the setup hook and detect the commands/dependencies it added
  6) run the post-setup hook, unless this is an indexing-only load

Anything that goes wrong besides a capability rejection surfaces as a
LoadFailure for that one library.
"""

import builtins
import importlib
import importlib.metadata
import inspect
import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType, SimpleNamespace
from typing import Any, Callable, ClassVar, Optional

from quiver.commands import Provenance, command_meta, recording
from quiver.errors import CapabilityRejected, LoadFailure, NamespaceConflict

from .cache import FILE_CACHE, FileCache
from .conflicts import ReservedSymbols
from .hooks import HOOK_NAMES, LibraryHooks
from .library import Library, LibraryKind, LoadState

logger = logging.getLogger(__name__)

# Parent module name file libraries are evaluated under.
LIBRARY_NAMESPACE = "quiver.loaded"


@dataclass(slots=True)
class LoadResult:
    commands: list[str]
    dependencies: list[str]
    attributes: dict[str, Any]
    module: Optional[ModuleType] = None
    callables: dict[str, Callable[..., Any]] = field(default_factory=dict)
    provenance: dict[str, Provenance] = field(default_factory=dict)
    conflicts: list[NamespaceConflict] = field(default_factory=list)


def _identifier(name: str) -> str:
    """Turn a library name into a valid module identifier."""
    ident = re.sub(r"\W", "_", name)
    return f"_{ident}" if ident[:1].isdigit() else ident


def _top_level_modules() -> set[str]:
    return {name for name in sys.modules if "." not in name}


class LibraryLoader:
    """Base loader. Subclasses provide resolve() and optionally a conflict candidate."""

    kind: ClassVar[LibraryKind]
    detects_commands: ClassVar[bool] = True

    def __init__(
        self,
        library: Library,
        *,
        reserved: Optional[ReservedSymbols] = None,
        index: bool = False,
        root: Optional[Path] = None,
        cache: FileCache = FILE_CACHE,
    ) -> None:
        self.library = library
        self.reserved = reserved if reserved is not None else ReservedSymbols()
        self.index = index
        self.root = root
        self.cache = cache
        self.module: Optional[ModuleType] = None
        self.provenance: dict[str, Provenance] = {}
        self.conflicts: list[NamespaceConflict] = []

    # ---------------- Lifecycle ----------------

    def load(self) -> LoadResult:
        library = self.library
        library.state = LoadState.LOADING
        builtins_before = set(vars(builtins))
        modules_before = _top_level_modules()

        try:
            module = self.resolve()
            self.module = module
            hooks = LibraryHooks.from_module(module)

            if hooks.config is not None:
                library.apply(hooks.config() or {})

            if hooks.enabled is not None and not hooks.enabled(SimpleNamespace()):
                raise CapabilityRejected(library.name)

            self.check_namespace_conflict()

            found = self.integrate(module, hooks)
            if library.object_methods and self.detects_commands:
                for attr_name in sorted(set(vars(builtins)) - builtins_before):
                    value = getattr(builtins, attr_name)
                    if not attr_name.startswith("_") and callable(value):
                        found.setdefault(attr_name, value)

            if hooks.after_setup is not None and not self.index:
                hooks.after_setup()
        except (CapabilityRejected, LoadFailure):
            raise
        except Exception as exc:
            raise LoadFailure(library.name, f"{type(exc).__name__}: {exc}") from exc

        own = {"quiver", library.name, module.__name__.partition(".")[0]}
        detected_deps = sorted(name for name in _top_level_modules() - modules_before if name not in own)
        for dep in detected_deps:
            if dep not in library.dependencies:
                library.dependencies.append(dep)

        library.add_commands(found)
        library.state = LoadState.LOADED
        return LoadResult(
            commands=list(library.commands),
            dependencies=list(library.dependencies),
            attributes=dict(library.attributes),
            module=module,
            callables=found,
            provenance=dict(self.provenance),
            conflicts=list(self.conflicts),
        )

    def resolve(self) -> ModuleType:  # pragma: no cover - interface
        raise NotImplementedError

    def conflict_candidate(self) -> Optional[str]:
        """Name checked against reserved top-level symbols; None skips the check."""
        return None

    def check_namespace_conflict(self) -> None:
        candidate = self.conflict_candidate()
        if candidate is None:
            return
        conflict = self.reserved.check(candidate)
        if conflict is not None:
            record = NamespaceConflict(self.library.name, candidate, conflict)
            self.conflicts.append(record)
            logger.warning("%s", record)

    def integrate(self, module: ModuleType, hooks: LibraryHooks) -> dict[str, Callable[..., Any]]:
        """Run the setup hook, then collect command callables from the module."""
        members_before = set(vars(module))
        if hooks.setup is not None:
            hooks.setup(self.library)
        if not self.detects_commands:
            return {}

        skip = hooks.callables()
        found: dict[str, Callable[..., Any]] = {}
        for attr_name, value in list(vars(module).items()):
            if attr_name.startswith("_") or attr_name in HOOK_NAMES:
                continue
            if id(value) in skip or not callable(value) or inspect.isclass(value):
                continue
            meta = command_meta(value)
            added = attr_name not in members_before
            if meta is None and not added and not self._defined_in(value, module):
                continue
            found[meta["name"] if meta else attr_name] = value
        return found

    @staticmethod
    def _defined_in(value: Any, module: ModuleType) -> bool:
        return inspect.isfunction(value) and value.__module__ == module.__name__


class ModuleLibrary(LibraryLoader):
    """A module that is already importable (or imported) in this process."""

    kind = LibraryKind.MODULE

    def resolve(self) -> ModuleType:
        handle = self.library.module
        if isinstance(handle, ModuleType):
            module = handle
        else:
            module = importlib.import_module(handle or self.library.name)
        self.library.module = module
        try:
            source = inspect.getsourcefile(module)
        except TypeError:
            source = None
        if source:
            self.library.library_file = Path(source)
        return module


class FileLibrary(LibraryLoader):
    """A Python file evaluated into a fresh module under `quiver.loaded`."""

    kind = LibraryKind.FILE

    def resolve_path(self) -> Path:
        library = self.library
        root = self.root or Path.cwd()
        if library.library_file is not None:
            path = library.library_file
            return path if path.is_absolute() else (root / path)

        candidates = [
            root / f"{library.name}.py",
            root / library.name / "entrypoint.py",
            root / library.name / "__init__.py",
        ]
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        raise FileNotFoundError(f"No library file for '{library.name}' under {root}")

    def resolve(self) -> ModuleType:
        path = self.resolve_path()
        self.library.library_file = path
        text = self.cache.read(self.library.name, path)

        module_name = f"{LIBRARY_NAMESPACE}.{_identifier(self.library.name)}"
        module = ModuleType(module_name, None)
        module.__file__ = str(path)
        sys.modules[module_name] = module
        try:
            with recording(str(path)) as recorder:
                exec(compile(text, str(path), "exec"), module.__dict__)
                recorder.sweep(module)
        except Exception:
            sys.modules.pop(module_name, None)
            raise
        self.provenance = dict(recorder.records)
        self.library.module = module
        return module

    def conflict_candidate(self) -> Optional[str]:
        path = self.library.library_file
        if path is not None and path.name in ("entrypoint.py", "__init__.py"):
            return path.parent.name
        if path is not None:
            return path.stem
        return self.library.name


class LocalFileLibrary(FileLibrary):
    """A file library under the user-local library root."""

    kind = LibraryKind.LOCAL_FILE

    def resolve_path(self) -> Path:
        if self.root is None:
            raise FileNotFoundError("No local library root configured")
        return super().resolve_path()


class PackageLibrary(ModuleLibrary):
    """An installed distribution, activated by name, exposing a command module."""

    kind = LibraryKind.PACKAGE

    def import_name(self, dist: importlib.metadata.Distribution) -> str:
        if isinstance(self.library.module, str):
            return self.library.module
        top_level = (dist.read_text("top_level.txt") or "").split()
        if top_level:
            return top_level[0]
        return re.sub(r"[-.]+", "_", self.library.name)

    def resolve(self) -> ModuleType:
        try:
            dist = importlib.metadata.distribution(self.library.name)
        except importlib.metadata.PackageNotFoundError as exc:
            raise LoadFailure(self.library.name, "distribution is not installed") from exc
        self.library.attributes.setdefault("version", dist.version)
        self.library.module = self.import_name(dist)
        return super().resolve()


class RequireLibrary(ModuleLibrary):
    """Imports a prerequisite module; defines no commands."""

    kind = LibraryKind.REQUIRE
    detects_commands = False


LOADERS: dict[LibraryKind, type[LibraryLoader]] = {
    LibraryKind.MODULE: ModuleLibrary,
    LibraryKind.FILE: FileLibrary,
    LibraryKind.PACKAGE: PackageLibrary,
    LibraryKind.LOCAL_FILE: LocalFileLibrary,
    LibraryKind.REQUIRE: RequireLibrary,
}


def loader_for(library: Library, **kwargs: Any) -> LibraryLoader:
    """Pick the loader class for a library's kind."""
    return LOADERS[library.kind](library, **kwargs)
