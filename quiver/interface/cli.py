#!/usr/bin/env python3
# quiver/interface/cli.py
from __future__ import annotations

"""
Interactive input frontends.

Selection order:
    1) prompt_toolkit (rich completion + history)
    2) readline (basic completion + history)
    3) plain input (last resort)
"""

from functools import partial
from pathlib import Path
from typing import Callable, Optional

from .completion import _split_current_token, suggest
from .pipe import PIPE

# History location in the user home directory
HISTORY_FILE_PATH = Path.home() / ".quiver_history"

DEFAULT_PROMPT = "quiver> "


class BaseCLI:
    """
    Plain input() frontend and base interface for the richer ones.

    Subclasses override setup(), get_line() and teardown(). Context manager
    support guarantees teardown.
    """

    def __init__(
        self,
        *,
        prompt: str = DEFAULT_PROMPT,
        history_path: Path = HISTORY_FILE_PATH,
        delimiter: str = PIPE,
    ) -> None:
        self.prompt = prompt
        self.history_path = Path(history_path)
        self.delimiter = delimiter

    @property
    def suggest(self) -> Callable[[str], list[str]]:
        return partial(suggest, delimiter=self.delimiter)

    def setup(self) -> None:
        ...

    def get_line(self) -> str:
        return input(self.prompt)

    def teardown(self) -> None:
        ...

    def __enter__(self) -> "BaseCLI":
        self.setup()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()


# ===== Preferred: prompt_toolkit =====
class PromptToolkitCLI(BaseCLI):
    """Rich line editor with history and live completion."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        from prompt_toolkit import PromptSession
        from prompt_toolkit.completion import Completer, Completion
        from prompt_toolkit.history import FileHistory
        from prompt_toolkit.key_binding import KeyBindings

        suggest_fn = self.suggest

        class _Completer(Completer):
            def get_completions(self, document, complete_event):
                text_before_cursor = document.text_before_cursor
                _, current_prefix = _split_current_token(text_before_cursor)
                replace_len = len(current_prefix)
                for word in suggest_fn(text_before_cursor):
                    # replace exactly the current token
                    yield Completion(word, start_position=-replace_len)

        # Key bindings to trigger completion when deleting characters.
        kb = KeyBindings()

        @kb.add("backspace")
        def _(event):
            b = event.app.current_buffer
            if b.read_only():
                return
            if b.selection_state:
                b.cut_selection()
            else:
                b.delete_before_cursor(1)
            b.start_completion(select_first=False)

        self._history_factory = FileHistory
        self._completer = _Completer()
        self._key_bindings = kb
        self._session_factory = PromptSession
        self._session = None

    def setup(self) -> None:
        self.history_path.parent.mkdir(parents=True, exist_ok=True)
        self.history_path.touch(exist_ok=True)
        self._session = self._session_factory(
            history=self._history_factory(str(self.history_path)),
            completer=self._completer,
            complete_while_typing=True,
            key_bindings=self._key_bindings,
        )

    def get_line(self) -> str:
        if self._session is None:
            self.setup()
        return self._session.prompt(self.prompt)


# ===== Fallback: readline =====
class ReadlineCLI(BaseCLI):
    """Fallback editor with basic completion and history."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        import readline

        self.readline = readline

    def setup(self) -> None:
        self.history_path.parent.mkdir(parents=True, exist_ok=True)
        self.history_path.touch(exist_ok=True)
        try:
            self.readline.read_history_file(str(self.history_path))
        except OSError:
            pass

        # Allow '=' as part of tokens to support key=value completion
        self.readline.set_completer_delims(" \t\n")
        suggest_fn = self.suggest

        def _complete(text_fragment: str, state_index: int) -> Optional[str]:
            buffer_text = self.readline.get_line_buffer()
            matches = [word for word in suggest_fn(buffer_text) if word.startswith(text_fragment)]
            return matches[state_index] if state_index < len(matches) else None

        self.readline.set_completer(_complete)
        self.readline.parse_and_bind("tab: complete")

    def teardown(self) -> None:
        try:
            self.readline.write_history_file(str(self.history_path))
        except OSError:
            pass


def make_cli(
    *,
    prompt: str = DEFAULT_PROMPT,
    history_path: Path = HISTORY_FILE_PATH,
    delimiter: str = PIPE,
    completion: bool = True,
) -> BaseCLI:
    """
    Factory to select the best available CLI frontend at runtime.
    """
    options = dict(prompt=prompt, history_path=history_path, delimiter=delimiter)
    if not completion:
        return BaseCLI(**options)
    try:
        return PromptToolkitCLI(**options)
    except ImportError:
        try:
            return ReadlineCLI(**options)
        except ImportError:
            return BaseCLI(**options)
