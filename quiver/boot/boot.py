#!/usr/bin/env python3
# quiver/boot/boot.py
from __future__ import annotations
"""
Boot sequence for Quiver.

Each step prints a status line; a failing step prints [FAILED] and raises.
Library load failures are not boot failures: they are reported once at the
end and the affected libraries stay in the failed set.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional
import logging
import platform

from quiver.commands import REGISTRY
from quiver.config import AppConfig, validate_or_default
from quiver.libraries import FAILED_LIBRARIES, Manager
from quiver.ui import colorize, enable_windows_vt, init_logger, print_line


@dataclass(slots=True)
class BootState:
    config: AppConfig
    logger: logging.Logger
    manager: Manager
    loaded: list[str] = field(default_factory=list)


def _step(label: str, fn: Callable[[], Any], *, quiet: bool = False) -> Any:
    """Run a boot step with status output."""
    try:
        out = fn()
    except Exception as exc:
        print_line(
            colorize(f"[FAILED] {label} ({type(exc).__name__}: {exc})", "red")
        )
        raise
    if not quiet:
        print_line(colorize(f"[  OK  ] {label}", "green"))
    return out


def _load_libraries(manager: Manager, config: AppConfig) -> list[str]:
    """Load configured libraries first, then whatever was discovered."""
    loaded = manager.load(config.libraries())
    for name in manager.load_all():
        if name not in loaded:
            loaded.append(name)
    return loaded


def boot_sequence(
    config: Optional[AppConfig] = None,
    *,
    quiet: bool = False,
    manager: Optional[Manager] = None,
) -> BootState:
    """
    Bring the framework up and load every configured and discovered library.

    `quiet` suppresses the [  OK  ] lines (used for one-shot invocations).
    """
    _step("Enable ANSI sequences", enable_windows_vt, quiet=quiet)
    _step(
        f"Detect environment: {platform.system()} {platform.release()} / Python {platform.python_version()}",
        lambda: None,
        quiet=quiet,
    )

    # ---------- config ----------
    if config is None:
        config = _step("Load configuration", validate_or_default, quiet=quiet)

    # ---------- logging ----------
    logger = _step(
        "Initialize logger",
        lambda: init_logger("quiver", level=config.log_level, logfile=(
            str(config.log_file_path) if config.log_file_path else None)),
        quiet=quiet,
    )

    # ---------- libraries ----------
    if manager is None:
        manager = Manager(
            REGISTRY,
            local_root=config.library_path,
            file_root=config.library_path,
        )
    library_root: Path = config.library_path
    discovered = _step(
        f"Discover libraries in '{library_root}'",
        lambda: manager.discover() if library_root.is_dir() else [],
        quiet=quiet,
    )
    logger.debug("Discovered %d libraries", len(discovered))

    loaded = _step("Load libraries", lambda: _load_libraries(manager, config), quiet=quiet)
    _step(f"Register commands ({len(REGISTRY.all())} available)", REGISTRY.names, quiet=quiet)

    for library in manager.failed_libraries():
        print_line(colorize(f"[ WARN ] Library '{library.name}' failed: {library.error}", "yellow"))
    for name, reason in sorted(manager.rejected.items()):
        print_line(colorize(f"[ SKIP ] Library '{name}' not enabled: {reason}", "yellow"))
    if len(FAILED_LIBRARIES):
        logger.info("Failed libraries: %s", ", ".join(FAILED_LIBRARIES))

    _step("Boot complete", lambda: None, quiet=quiet)

    return BootState(
        config=config,
        logger=logger,
        manager=manager,
        loaded=loaded,
    )
