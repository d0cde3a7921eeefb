#!/usr/bin/env python3
# quiver/libraries/hooks.py
from __future__ import annotations

"""
Optional lifecycle callbacks a library module can expose.

Invoked by every loader in this order:
  config      -> mapping of library attributes (user config wins, commands are unioned)
  enabled     -> capability gate, called with a throwaway namespace; falsy aborts the load
  setup       -> side-effecting setup (imports, extra members); receives the Library
  after_setup -> one-time initialization, skipped when only indexing

A module either exports an explicit `HOOKS = LibraryHooks(...)`, or plain
module-level functions with the names above.
"""

from dataclasses import dataclass
from types import ModuleType, SimpleNamespace
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

if TYPE_CHECKING:
    from .library import Library

ConfigCallback = Callable[[], Mapping[str, Any]]
CapabilityGate = Callable[[SimpleNamespace], Any]
SetupHook = Callable[["Library"], None]
PostSetupHook = Callable[[], None]

HOOK_NAMES: tuple[str, ...] = ("config", "enabled", "setup", "after_setup")


@dataclass(frozen=True, slots=True)
class LibraryHooks:
    config: Optional[ConfigCallback] = None
    enabled: Optional[CapabilityGate] = None
    setup: Optional[SetupHook] = None
    after_setup: Optional[PostSetupHook] = None

    @classmethod
    def from_module(cls, module: Optional[ModuleType]) -> "LibraryHooks":
        if module is None:
            return cls()
        declared = getattr(module, "HOOKS", None)
        if isinstance(declared, LibraryHooks):
            return declared

        def _callable(name: str) -> Any:
            value = getattr(module, name, None)
            return value if callable(value) else None

        return cls(**{name: _callable(name) for name in HOOK_NAMES})

    def callables(self) -> set[int]:
        """Identity set of the hook functions, so detection can skip them."""
        return {id(fn) for fn in (self.config, self.enabled, self.setup, self.after_setup)
                if fn is not None}
