#!/usr/bin/env python3
# quiver/__init__.py
from __future__ import annotations
"""
Quiver: a dynamic command framework.

Libraries of commands are discovered, loaded through one of several loader
kinds and registered in a shared registry; invocations can be piped.

Keep this module light: subpackages expose their own APIs.
"""

__version__ = "0.1.0"

from quiver.commands import REGISTRY, Command, command  # noqa: E402,F401

__all__ = ["REGISTRY", "Command", "command", "__version__"]
