#!/usr/bin/env python3
# quiver/ui/utils/console.py
from __future__ import annotations

import sys
import threading

# Shared by every writer to the console (logging handler included).
PRINT_MUTEX = threading.Lock()


def print_line(text: str = "", *, file=None, flush: bool = False) -> None:
    """Write one line to `file` (default: the current sys.stdout)."""
    stream = file if file is not None else sys.stdout
    with PRINT_MUTEX:
        stream.write(f"{text}\n")
        if flush:
            stream.flush()
