#!/usr/bin/env python3
# quiver/ui/utils/ansi.py
from __future__ import annotations

import ctypes
import os
import re
from typing import Optional

# SGR codes for the styles and colors the console output uses.
ANSI = {
    "reset": "\x1b[0m",
    "bold": "\x1b[1m",
    "dim": "\x1b[2m",
    "underline": "\x1b[4m",
    "red": "\x1b[31m",
    "green": "\x1b[32m",
    "yellow": "\x1b[33m",
    "blue": "\x1b[34m",
    "magenta": "\x1b[35m",
    "cyan": "\x1b[36m",
    "bright_black": "\x1b[90m",
}

ANSI_REGEX = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")

_vt_enabled_cache: Optional[bool] = None


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return ANSI_REGEX.sub("", text)


def enable_windows_vt() -> bool:
    """
    Return True if ANSI escapes work on this console.

    POSIX terminals always qualify. On Windows, known ANSI-capable hosts are
    accepted and classic consoles get virtual terminal processing switched on.
    """
    global _vt_enabled_cache
    if _vt_enabled_cache is not None:
        return _vt_enabled_cache

    if os.name != "nt":
        _vt_enabled_cache = True
        return True

    if (
        os.environ.get("WT_SESSION")
        or os.environ.get("ANSICON")
        or os.environ.get("TERM", "").startswith(("xterm", "vt100"))
    ):
        _vt_enabled_cache = True
        return True

    try:
        kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
        enable_vt_processing = 0x0004
        enabled = False
        for std_handle in (-11, -12):  # stdout, stderr
            handle = kernel32.GetStdHandle(std_handle)
            mode = ctypes.c_uint()
            if handle in (0, -1) or not kernel32.GetConsoleMode(handle, ctypes.byref(mode)):
                continue
            enabled = bool(kernel32.SetConsoleMode(handle, mode.value | enable_vt_processing)) or enabled
        _vt_enabled_cache = enabled
    except (AttributeError, OSError):
        _vt_enabled_cache = False
    return _vt_enabled_cache


def clear_screen() -> None:
    """Clear the terminal screen on Windows and POSIX."""
    os.system("cls" if os.name == "nt" else "clear")


def colorize(text: str, *styles: str) -> str:
    """
    Wrap text with one or more styles from ANSI (e.g., 'red', 'bold').
    Always auto-resets at the end.
    """
    seq = "".join(ANSI[s] for s in styles if s in ANSI)
    return f"{seq}{text}{ANSI['reset']}" if seq else text
