"""Interactive pickers for the CLI, built on prompt_toolkit.

Prompts accept an optional ``PromptSession`` so tests can drive them with a
pipe input and ``DummyOutput``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import Validator


class _PrefixSuggest(AutoSuggest):
    """Grey inline remainder of the first option starting with the typed text."""

    def __init__(self, options: Sequence[str]) -> None:
        self._folded = [(o.casefold(), o) for o in options]

    def get_suggestion(self, buffer, document):
        typed = document.text
        key = typed.casefold()
        if not key or any(folded == key for folded, _ in self._folded):
            return None
        match = next((o for folded, o in self._folded if folded.startswith(key)), None)
        return Suggestion(match[len(typed) :]) if match else None


def choose_option(
    options: Sequence[str] | Iterable[str],
    *,
    default: str,
    message: str = "Choose (Enter to accept): ",
    session: PromptSession | None = None,
) -> str:
    """Prompt for one of ``options`` and return its canonical spelling.

    - ``default`` is pre-filled; Enter accepts it.
    - Matching is case-insensitive (``"bank transfer"`` -> ``"Bank Transfer"``).
    - Tab opens the completion menu; Right arrow accepts the grey suggestion.
    - Text that is not an option is rejected in place and the prompt stays open.
    """

    words = list(options)
    if not words:
        raise ValueError("options must not be empty")
    lookup = {w.lower(): w for w in words}

    completer = WordCompleter(words, ignore_case=True, match_middle=True, sentence=True)
    validator = Validator.from_callable(
        lambda text: text.strip().lower() in lookup,
        error_message="Pick one of: " + ", ".join(words),
        move_cursor_to_end=True,
    )
    style = Style.from_dict({"auto-suggestion": "fg:#888888"})

    sess: PromptSession = session if session is not None else PromptSession()
    answer = sess.prompt(
        message,
        default=default,
        completer=completer,
        auto_suggest=_PrefixSuggest(words),
        validator=validator,
        validate_while_typing=False,
        style=style,
    )
    return lookup[answer.strip().lower()]


__all__ = ["choose_option"]
