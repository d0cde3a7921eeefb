#!/usr/bin/env python3
# quiver/introspect/__init__.py
from __future__ import annotations

from .scraper import scrape_arguments
from .introspector import (
    INTROSPECTOR,
    ArgumentIntrospector,
    arguments_for,
    find_method_location,
    resolve_by_name,
)

__all__ = [
    "scrape_arguments",
    "INTROSPECTOR",
    "ArgumentIntrospector",
    "arguments_for",
    "find_method_location",
    "resolve_by_name",
]
