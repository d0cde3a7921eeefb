#!/usr/bin/env python3
# quiver/libraries/discovery.py
from __future__ import annotations

"""
Library discovery for a directory of command files.

Supported layouts:
  1) Plain modules: <root>/foo.py             -> library 'foo'
  2) Packages:      <root>/bar/entrypoint.py  -> library 'bar'
                    <root>/bar/__init__.py    -> library 'bar' (no entrypoint)
Private names (leading underscore) are skipped.
"""

import logging
from pathlib import Path
from typing import Optional

from .library import Library, LibraryKind

logger = logging.getLogger(__name__)


def _entry_file(directory: Path) -> Optional[Path]:
    for name in ("entrypoint.py", "__init__.py"):
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def discover_libraries(root: Path, *, kind: LibraryKind = LibraryKind.LOCAL_FILE) -> list[Library]:
    """Return one unloaded library per command file or package under `root`."""
    if not root.is_dir():
        logger.debug("Library directory %s does not exist; nothing discovered", root)
        return []

    found: list[Library] = []
    for entry in sorted(root.iterdir()):
        if entry.name.startswith(("_", ".")):
            continue
        if entry.is_dir():
            entry_file = _entry_file(entry)
            if entry_file is None:
                continue
            name = entry.name
        elif entry.suffix == ".py":
            entry_file = entry
            name = entry.stem
        else:
            continue
        library = Library(name=name, kind=kind, library_file=entry_file)
        found.append(library)
    logger.debug("Discovered %d libraries under %s", len(found), root)
    return found
