"""Tests for textual argument scraping (quiver.introspect.scraper)."""

from __future__ import annotations

import textwrap

from quiver.introspect.scraper import scrape_arguments

SOURCE = textwrap.dedent(
    '''
    def scan(host, port=80, *rest, timeout: float = 2.5, **extra):
        pass

    async def fetch(url, /, retries=3):
        pass

    class Shell:
        def run(self, line, echo=True):
            pass

        @staticmethod
        def quote(self, text):
            pass

        @classmethod
        def build(cls, name="x"):
            pass

    def run(first):
        pass
    '''
)


def test_top_level_function_with_every_parameter_kind():
    assert scrape_arguments(SOURCE, "scan") == [
        ("host", False, None),
        ("port", True, "80"),
        ("*rest", False, None),
        ("timeout", True, "2.5"),
        ("**extra", False, None),
    ]


def test_async_def_and_positional_only():
    assert scrape_arguments(SOURCE, "fetch") == [("url", False, None), ("retries", True, "3")]


def test_top_level_definition_wins_over_method():
    assert scrape_arguments(SOURCE, "run") == [("first", False, None)]


def test_class_qualified_key_only_matches_that_class():
    assert scrape_arguments(SOURCE, "Shell.run") == [("line", False, None), ("echo", True, "True")]
    assert scrape_arguments(SOURCE, "Shell.scan") is None
    assert scrape_arguments(SOURCE, "Missing.run") is None


def test_nested_class_path():
    source = "class Outer:\n    class Inner:\n        def go(self, speed=1):\n            pass\n"
    assert scrape_arguments(source, "Outer.Inner.go") == [("speed", True, "1")]


def test_methods_drop_implicit_first_parameter():
    assert scrape_arguments(SOURCE, "build") == [("name", True, '"x"')]


def test_static_methods_keep_every_parameter():
    assert scrape_arguments(SOURCE, "quote") == [("self", False, None), ("text", False, None)]


def test_default_literal_is_verbatim_source():
    source = "def f(items=[1,  2], flag=None):\n    pass\n"
    assert scrape_arguments(source, "f") == [("items", True, "[1,  2]"), ("flag", True, "None")]


def test_missing_definition_and_bad_source():
    assert scrape_arguments(SOURCE, "nope") is None
    assert scrape_arguments("def broken(:\n", "broken") is None


def test_function_without_parameters():
    assert scrape_arguments("def ping():\n    return 1\n", "ping") == []
