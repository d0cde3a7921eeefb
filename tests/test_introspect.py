"""Tests for lazy argument introspection (quiver.introspect.introspector)."""

from __future__ import annotations

import textwrap

from quiver.commands import REGISTRY, ArgState, Command
from quiver.interface import handle_line
from quiver.introspect import ArgumentIntrospector, find_method_location, resolve_by_name
from quiver.introspect.scraper import scrape_arguments
from quiver.libraries import FILE_CACHE, Library, LibraryKind


def _counting_scraper(result=None, *, passthrough=True):
    calls = []

    def _scraper(source, key):
        calls.append(key)
        return scrape_arguments(source, key) if passthrough else result

    return calls, _scraper


def test_arguments_are_scraped_once_per_command(manager, write_library):
    write_library("strings", "def shout(text, times=1):\n    return text * times\n")
    manager.load("strings")
    command_obj = REGISTRY.get("shout")
    calls, scraper = _counting_scraper()
    introspector = ArgumentIntrospector(scraper=scraper)

    first = introspector.resolve(command_obj)
    second = introspector.resolve(command_obj)

    assert [a.as_tuple() for a in first] == [("text", False, None), ("times", True, "1")]
    assert second == first
    assert calls == ["shout"]
    assert command_obj.arguments.state is ArgState.COMPUTED


def test_introspection_reuses_the_loaders_file_scan(manager, write_library):
    write_library("strings", "def shout(text):\n    return text\n")
    manager.load("strings")
    scans = FILE_CACHE.scans
    ArgumentIntrospector().resolve(REGISTRY.get("shout"))
    assert FILE_CACHE.scans == scans


def test_miss_is_cached_as_unavailable(manager, write_library):
    write_library("strings", "def shout(text):\n    return text\n")
    manager.load("strings")
    command_obj = REGISTRY.get("shout")
    calls, scraper = _counting_scraper(None, passthrough=False)
    introspector = ArgumentIntrospector(scraper=scraper)

    assert introspector.resolve(command_obj) is None
    assert introspector.resolve(command_obj) is None
    assert calls == ["shout"]
    assert command_obj.arguments.state is ArgState.UNAVAILABLE


def test_command_without_library_is_unavailable():
    command_obj = Command(name="orphan", callback=lambda: None)
    calls, scraper = _counting_scraper()
    assert ArgumentIntrospector(scraper=scraper).resolve(command_obj) is None
    assert calls == []
    assert command_obj.arguments.settled


def test_module_library_uses_callback_name(tmp_path, monkeypatch, manager):
    (tmp_path / "quiver_test_modlib.py").write_text(
        "def add(a, b=2):\n    return a + b\n", encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))
    manager.load({"name": "quiver_test_modlib", "kind": "module"})

    arguments = ArgumentIntrospector().resolve(REGISTRY.get("add"))
    assert [a.as_tuple() for a in arguments] == [("a", False, None), ("b", True, "2")]


def test_class_method_binding_reads_the_defining_file(tmp_path, monkeypatch, manager, write_library):
    (tmp_path / "quiver_test_shellmod.py").write_text(textwrap.dedent(
        """
        class Shell:
            @classmethod
            def run(cls, line, echo=True):
                return line if echo else ""
        """
    ), encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))
    write_library("shell_cmds", "CATEGORY_DESCRIPTION = 'Shell helpers.'\n")
    manager.load({
        "name": "shell_cmds",
        "kind": "local_file",
        "commands": {"run": {"class_method": "quiver_test_shellmod:Shell.run"}},
    })

    command_obj = REGISTRY.get("run")
    arguments = ArgumentIntrospector().resolve(command_obj)
    assert [a.as_tuple() for a in arguments] == [("line", False, None), ("echo", True, "True")]
    assert command_obj.invoke("hi") == "hi"


def test_resolver_and_method_location_helpers():
    assert resolve_by_name("quiver.no_such_module:Thing") is None
    klass = resolve_by_name("quiver.introspect.introspector:ArgumentIntrospector")
    location = find_method_location(klass, "resolve")
    assert location is not None
    assert location[0].endswith("introspector.py")
    assert location[1] == "ArgumentIntrospector.resolve"
    assert find_method_location(klass, "missing") is None


def test_class_binding_ignores_same_named_functions(tmp_path, monkeypatch, manager, write_library):
    (tmp_path / "quiver_test_toolsmod.py").write_text(textwrap.dedent(
        """
        def run(wrong, args):
            return wrong


        class Other:
            def run(self, also_wrong):
                return also_wrong


        class Base:
            def run(self, target, depth=2):
                return target


        class Tool(Base):
            pass
        """
    ), encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))
    write_library("tool_cmds", "CATEGORY_DESCRIPTION = 'Tools.'\n")
    manager.load({
        "name": "tool_cmds",
        "kind": "local_file",
        "commands": {"run": {"class_method": "quiver_test_toolsmod:Tool.run"}},
    })

    arguments = ArgumentIntrospector().resolve(REGISTRY.get("run"))
    assert [a.as_tuple() for a in arguments] == [("target", False, None), ("depth", True, "2")]


# ---------------------------------------------------------------------------
# Unreadable sources settle as unavailable
# ---------------------------------------------------------------------------


def test_declared_source_encoding_is_honoured(tmp_path, monkeypatch, manager):
    (tmp_path / "quiver_test_latin.py").write_bytes(
        b"# -*- coding: latin-1 -*-\n"
        b"def greet(name='caf\xe9'):\n"
        b"    return name\n"
    )
    monkeypatch.syspath_prepend(str(tmp_path))
    manager.load({"name": "quiver_test_latin", "kind": "module"})

    arguments = ArgumentIntrospector().resolve(REGISTRY.get("greet"))
    assert [a.as_tuple() for a in arguments] == [("name", True, "'café'")]


def test_failing_resolver_settles_as_unavailable():
    def _exploding(name):
        raise RuntimeError("import blew up")

    command_obj = Command(
        name="run",
        callback=lambda: None,
        library=Library(name="shell", kind=LibraryKind.FILE),
        class_method="somewhere:Shell.run",
    )
    introspector = ArgumentIntrospector(resolver=_exploding)

    assert introspector.resolve(command_obj) is None
    assert command_obj.arguments.state is ArgState.UNAVAILABLE


def test_help_survives_an_undecodable_library_file(manager, write_library):
    path = write_library("notes", "def hello(name):\n    return name\n")
    manager.load("notes")
    path.write_bytes(b"def hello(name):\n    return name\n# \xff\xfe\n")
    FILE_CACHE.reset("notes")

    text = handle_line("help hello")

    assert text.splitlines()[0] == "hello"
    assert REGISTRY.get("hello").arguments.state is ArgState.UNAVAILABLE
