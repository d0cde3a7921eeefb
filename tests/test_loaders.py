"""Tests for the per-kind library loaders (quiver.libraries.loaders)."""

from __future__ import annotations

import builtins
import importlib.metadata
import json
import logging
import types

import pytest

from quiver.errors import CapabilityRejected, LoadFailure
from quiver.libraries import (
    FILE_CACHE,
    FileLibrary,
    Library,
    LibraryKind,
    LoadState,
    LocalFileLibrary,
    ModuleLibrary,
    PackageLibrary,
    RequireLibrary,
    ReservedSymbols,
    loader_for,
)


def _local(name: str, **fields) -> Library:
    return Library(name=name, kind=LibraryKind.LOCAL_FILE, **fields)


# ---------------------------------------------------------------------------
# Lifecycle ordering and hooks
# ---------------------------------------------------------------------------


def test_plain_file_library_detects_public_functions(write_library, lib_root):
    write_library("tools", """
        def ping():
            return "pong"

        def _helper():
            return None

        VALUE = 3
    """)
    library = _local("tools")
    result = LocalFileLibrary(library, root=lib_root).load()

    assert result.commands == ["ping"]
    assert result.callables["ping"]() == "pong"
    assert library.state is LoadState.LOADED
    assert library.library_file == lib_root / "tools.py"
    assert result.module.__name__ == "quiver.loaded.tools"


def test_config_hook_is_merged_under_user_configuration(write_library, lib_root):
    write_library("tools", """
        def config():
            return {
                "commands": ["extra"],
                "aliases": {"ping": ["p"]},
                "description": "from hook",
            }

        def ping():
            return "pong"
    """)
    library = Library.from_descriptor({
        "name": "tools",
        "kind": "local_file",
        "commands": ["manual"],
        "aliases": {"ping": ["pp"]},
    })
    LocalFileLibrary(library, root=lib_root).load()

    assert library.aliases == {"ping": ["pp"]}
    assert library.attributes["description"] == "from hook"
    assert library.commands == ["manual", "extra", "ping"]


def test_capability_gate_rejects_before_setup(write_library, lib_root):
    write_library("gated", """
        SEEN = []

        def enabled(env):
            SEEN.append(env)
            return False

        def setup(library):
            raise AssertionError("setup must not run")

        def ping():
            return "pong"
    """)
    library = _local("gated")
    loader = LocalFileLibrary(library, root=lib_root)
    with pytest.raises(CapabilityRejected) as info:
        loader.load()
    assert info.value.library == "gated"
    assert isinstance(loader.module.SEEN[0], types.SimpleNamespace)


def test_setup_hook_members_are_detected(write_library, lib_root):
    write_library("dynamic", """
        def setup(library):
            globals()["added"] = lambda: library.name
    """)
    result = LocalFileLibrary(_local("dynamic"), root=lib_root).load()
    assert result.commands == ["added"]
    assert result.callables["added"]() == "dynamic"


def test_hooks_object_takes_precedence_over_module_functions(write_library, lib_root):
    write_library("explicit", """
        from quiver.libraries import LibraryHooks

        def config():
            return {"description": "module function"}

        def _config():
            return {"description": "declared"}

        HOOKS = LibraryHooks(config=_config)
    """)
    library = _local("explicit")
    LocalFileLibrary(library, root=lib_root).load()
    assert library.attributes["description"] == "declared"


@pytest.mark.parametrize("index, expected", [(False, ["after"]), (True, [])])
def test_after_setup_is_skipped_when_indexing(write_library, lib_root, index, expected):
    write_library("once", """
        CALLS = []

        def after_setup():
            CALLS.append("after")

        def ping():
            return "pong"
    """)
    loader = LocalFileLibrary(_local("once"), root=lib_root, index=index)
    result = loader.load()
    assert result.module.CALLS == expected
    assert result.commands == ["ping"]


# ---------------------------------------------------------------------------
# Detection of builtins additions and dependencies
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("object_methods, detected", [(True, True), (False, False)])
def test_builtins_additions_become_commands(write_library, lib_root, object_methods, detected):
    write_library("globals_lib", """
        import builtins

        def setup(library):
            builtins.quiver_test_shout = lambda text: text.upper()
    """)
    library = _local("globals_lib", object_methods=object_methods)
    try:
        result = LocalFileLibrary(library, root=lib_root).load()
    finally:
        if hasattr(builtins, "quiver_test_shout"):
            del builtins.quiver_test_shout
    assert ("quiver_test_shout" in result.commands) is detected


def test_newly_imported_modules_become_dependencies(tmp_path, monkeypatch, write_library, lib_root):
    (tmp_path / "quiver_test_depmod.py").write_text("VALUE = 1\n", encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))
    write_library("needs_dep", """
        import quiver_test_depmod

        def value():
            return quiver_test_depmod.VALUE
    """)
    library = _local("needs_dep", dependencies=["json"])
    result = LocalFileLibrary(library, root=lib_root).load()
    assert result.dependencies == ["json", "quiver_test_depmod"]


# ---------------------------------------------------------------------------
# Namespace conflicts and provenance
# ---------------------------------------------------------------------------


def test_namespace_conflict_is_a_warning_only(write_library, lib_root, caplog):
    write_library("json", "def dump_it():\n    return 1\n")
    library = _local("json")
    with caplog.at_level(logging.WARNING, logger="quiver"):
        result = LocalFileLibrary(library, root=lib_root, reserved=ReservedSymbols()).load()

    assert library.state is LoadState.LOADED
    assert [c.conflict for c in result.conflicts] == ["json"]
    assert "may conflict with top level name 'json'" in caplog.text


def test_conflict_candidate_for_directory_library(write_library, lib_root):
    write_library("Sys", "def where():\n    return 1\n", package=True)
    loader = LocalFileLibrary(_local("Sys"), root=lib_root, reserved=ReservedSymbols())
    result = loader.load()
    assert loader.conflict_candidate() == "Sys"
    assert result.conflicts[0].conflict == "sys"


def test_extra_reserved_names_are_checked(write_library, lib_root):
    write_library("mine", "def go():\n    return 1\n")
    result = LocalFileLibrary(_local("mine"), root=lib_root, reserved=ReservedSymbols(["Mine"])).load()
    assert result.conflicts[0].candidate == "mine"


def test_provenance_points_at_definitions(write_library, lib_root):
    path = write_library("located", """
        from quiver.commands import command

        @command(name="say-hi")
        def say_hi(name):
            return name

        def plain():
            return None
    """)
    result = LocalFileLibrary(_local("located"), root=lib_root).load()
    assert result.commands == ["say-hi", "plain"]
    assert result.provenance["say_hi"].line == 4
    assert result.provenance["say_hi"].file == str(path)
    assert result.provenance["plain"].line == 8


def test_file_text_is_read_through_the_cache(write_library, lib_root):
    write_library("cached", "def ping():\n    return 1\n")
    before = FILE_CACHE.scans
    LocalFileLibrary(_local("cached"), root=lib_root).load()
    assert FILE_CACHE.scans == before + 1
    assert "cached" in FILE_CACHE


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


def test_syntax_error_becomes_load_failure(write_library, lib_root):
    write_library("broken", "def oops(:\n    pass\n")
    with pytest.raises(LoadFailure) as info:
        LocalFileLibrary(_local("broken"), root=lib_root).load()
    assert info.value.library == "broken"
    assert isinstance(info.value.__cause__, SyntaxError)


def test_missing_file_becomes_load_failure(lib_root):
    with pytest.raises(LoadFailure, match="No library file"):
        LocalFileLibrary(_local("ghost"), root=lib_root).load()


def test_local_file_library_requires_a_root():
    with pytest.raises(LoadFailure, match="No local library root"):
        LocalFileLibrary(_local("anything")).load()


def test_file_library_resolves_relative_file_against_root(lib_root):
    (lib_root / "custom_name.py").write_text("def hey():\n    return 'hey'\n", encoding="utf-8")
    library = Library.from_descriptor({"name": "greeter", "kind": "file", "file": "custom_name.py"})
    result = FileLibrary(library, root=lib_root).load()
    assert result.commands == ["hey"]
    assert library.library_file == lib_root / "custom_name.py"


# ---------------------------------------------------------------------------
# Module-like kinds
# ---------------------------------------------------------------------------


def test_module_library_uses_existing_module():
    module = types.ModuleType("quiver_test_inline")
    exec("def hello():\n    return 'hi'\n", module.__dict__)
    library = Library(name="inline", kind=LibraryKind.MODULE, module=module)
    result = ModuleLibrary(library).load()
    assert result.commands == ["hello"]


def test_require_library_defines_no_commands():
    library = Library(name="json", kind=LibraryKind.REQUIRE)
    result = RequireLibrary(library).load()
    assert result.commands == []
    assert result.module is json


def test_package_library_missing_distribution():
    library = Library(name="quiver-test-not-installed", kind=LibraryKind.PACKAGE)
    with pytest.raises(LoadFailure, match="distribution is not installed"):
        PackageLibrary(library).load()


def test_package_library_activates_distribution(tmp_path, monkeypatch):
    (tmp_path / "quiver_test_pkgmod.py").write_text(
        "def hello():\n    return 'hi'\n", encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))

    class _FakeDistribution:
        version = "1.2.3"

        def read_text(self, filename):
            return "quiver_test_pkgmod\n" if filename == "top_level.txt" else None

    monkeypatch.setattr(importlib.metadata, "distribution", lambda name: _FakeDistribution())
    library = Library(name="quiver-test-pkg", kind=LibraryKind.PACKAGE)
    result = PackageLibrary(library).load()

    assert result.commands == ["hello"]
    assert result.attributes["version"] == "1.2.3"
    assert result.dependencies == []


def test_loader_for_picks_class_by_kind():
    for kind in LibraryKind:
        loader = loader_for(Library(name="x", kind=kind))
        assert loader.kind is kind
