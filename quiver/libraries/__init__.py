#!/usr/bin/env python3
# quiver/libraries/__init__.py
from __future__ import annotations

"""
Package for discovering and loading command libraries.

Provides:
- The Library model and its kinds/states (`Library`, `LibraryKind`, `LoadState`).
- Lifecycle hooks a library module may expose (`LibraryHooks`).
- One loader per kind (`ModuleLibrary`, `FileLibrary`, `PackageLibrary`,
  `LocalFileLibrary`, `RequireLibrary`).
- The orchestrating `Manager`, the process-wide `FAILED_LIBRARIES` set and the
  file-scan cache (`FILE_CACHE`).
"""

from .library import Library, LibraryKind, LoadState
from .hooks import LibraryHooks, HOOK_NAMES
from .conflicts import ReservedSymbols, check_conflict
from .cache import FILE_CACHE, FileCache, read_library_file, reset_file_cache
from .discovery import discover_libraries
from .loaders import (
    LIBRARY_NAMESPACE,
    LOADERS,
    FileLibrary,
    LibraryLoader,
    LoadResult,
    LocalFileLibrary,
    ModuleLibrary,
    PackageLibrary,
    RequireLibrary,
    loader_for,
)
from .manager import FAILED_LIBRARIES, AliasConflict, FailedSet, Manager

__all__ = [
    "Library",
    "LibraryKind",
    "LoadState",
    "LibraryHooks",
    "HOOK_NAMES",
    "ReservedSymbols",
    "check_conflict",
    "FILE_CACHE",
    "FileCache",
    "read_library_file",
    "reset_file_cache",
    "discover_libraries",
    "LIBRARY_NAMESPACE",
    "LOADERS",
    "FileLibrary",
    "LibraryLoader",
    "LoadResult",
    "LocalFileLibrary",
    "ModuleLibrary",
    "PackageLibrary",
    "RequireLibrary",
    "loader_for",
    "FAILED_LIBRARIES",
    "AliasConflict",
    "FailedSet",
    "Manager",
]
