#!/usr/bin/env python3
# quiver/libraries/cache.py
from __future__ import annotations

"""
Process-wide file-scan cache for file libraries.

Source text is read once per library name and reused by both the loader
(evaluation) and the argument introspector (scraping). The Manager resets an
entry after marking its library failed, so a reload always re-scans.
"""

import logging
import tokenize
from pathlib import Path

logger = logging.getLogger(__name__)


def read_source(path: Path) -> str:
    """Read Python source, honouring a PEP 263 coding line (UTF-8 otherwise)."""
    with tokenize.open(path) as handle:
        return handle.read()


class FileCache:
    def __init__(self) -> None:
        self._entries: dict[str, tuple[Path, str]] = {}
        self.scans = 0

    def read(self, name: str, path: Path) -> str:
        """Return cached text for `name`, reading `path` when missing or moved."""
        entry = self._entries.get(name)
        if entry is not None and entry[0] == path:
            return entry[1]
        text = read_source(path)
        self.scans += 1
        self._entries[name] = (path, text)
        logger.debug("Scanned %s for library %s", path, name)
        return text

    def reset(self, name: str | None = None) -> None:
        if name is None:
            self._entries.clear()
        else:
            self._entries.pop(name, None)

    def __contains__(self, name: str) -> bool:
        return name in self._entries


FILE_CACHE = FileCache()


def read_library_file(name: str, path: Path) -> str:
    return FILE_CACHE.read(name, path)


def reset_file_cache(name: str | None = None) -> None:
    FILE_CACHE.reset(name)
