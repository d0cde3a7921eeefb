#!/usr/bin/env python3
# quiver/introspect/introspector.py
from __future__ import annotations

"""
Lazy, memoized argument introspection for commands.

Arguments come from source text, located through provenance:
  1) a command bound to "pkg.mod:Class.method" reads the file that defines the method
  2) otherwise the owning library's source file, keyed by the recorded symbol
The result is stored in the command's ArgumentCell, so each command instance
is scanned at most once. A miss is cached as well.
"""

import inspect
import logging
import pkgutil
from pathlib import Path
from typing import Any, Callable, Optional

from quiver.commands import Argument, Command
from quiver.errors import ArgumentIntrospectionMiss
from quiver.libraries.cache import FILE_CACHE, FileCache, read_source
from quiver.libraries.library import LibraryKind

from .scraper import ScrapedArgument, scrape_arguments

logger = logging.getLogger(__name__)

Scraper = Callable[[str, str], Optional[list[ScrapedArgument]]]
Resolver = Callable[[str], Any]


def resolve_by_name(qualified_name: str) -> Any:
    """Resolve 'pkg.mod:Attr' or 'pkg.mod.Attr' to an object, or None."""
    try:
        return pkgutil.resolve_name(qualified_name)
    except (ImportError, AttributeError, ValueError):
        return None


def find_method_location(klass: Any, method_name: str) -> Optional[tuple[str, str]]:
    """
    Return (file, lookup key) for a method's definition, or None.

    The key is qualified by the class that actually defines the method
    ("Base.run" for an inherited method), so scraping cannot pick a
    same-named function elsewhere in the file.
    """
    owner = next((cls for cls in inspect.getmro(klass) if method_name in vars(cls)), None)
    if owner is None:
        return None
    method = vars(owner)[method_name]
    func = inspect.unwrap(getattr(method, "__func__", method))
    if getattr(func, "__code__", None) is None:
        return None
    try:
        source_file = inspect.getsourcefile(func)
    except TypeError:
        return None
    if not source_file:
        return None
    if "<locals>" in owner.__qualname__:
        return source_file, method_name
    return source_file, f"{owner.__qualname__}.{method_name}"


class ArgumentIntrospector:
    def __init__(
        self,
        *,
        scraper: Scraper = scrape_arguments,
        resolver: Resolver = resolve_by_name,
        cache: FileCache = FILE_CACHE,
    ) -> None:
        self.scraper = scraper
        self.resolver = resolver
        self.cache = cache

    def resolve(self, command: Command) -> Optional[tuple[Argument, ...]]:
        """Return the command's arguments, or None when they cannot be determined."""
        cell = command.arguments
        if cell.settled:
            return cell.get()

        reason = "no source available"
        scraped: Optional[list[ScrapedArgument]] = None
        try:
            source, key = self.source_and_key(command)
        except Exception as exc:
            # Unreadable source or a failing import only costs the documentation.
            source, key = None, None
            reason = f"{type(exc).__name__}: {exc}"
        if source and key:
            scraped = self.scraper(source, key)
            reason = f"no definition named '{key}'"

        if scraped is None:
            logger.debug("%s", ArgumentIntrospectionMiss(command.name, reason))
            cell.settle(None)
        else:
            cell.settle(tuple(Argument(*item) for item in scraped))
        return cell.get()

    def source_and_key(self, command: Command) -> tuple[Optional[str], Optional[str]]:
        library = command.library
        if library is None:
            return None, None

        if library.kind is not LibraryKind.MODULE and command.class_method:
            class_name, _, method_name = command.class_method.rpartition(".")
            klass = self.resolver(class_name) if class_name else None
            location = find_method_location(klass, method_name) if inspect.isclass(klass) else None
            if location is None:
                return None, method_name
            source_file, key = location
            return read_source(Path(source_file)), key

        path = library.library_file
        if path is not None and path.is_file():
            if command.provenance is not None:
                key = command.provenance.symbol
            else:
                key = getattr(command.callback, "__name__", None) or command.name
            return self.cache.read(library.name, path), key
        return None, None


INTROSPECTOR = ArgumentIntrospector()


def arguments_for(command: Command) -> Optional[tuple[Argument, ...]]:
    return INTROSPECTOR.resolve(command)
