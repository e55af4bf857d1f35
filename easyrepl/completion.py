"""
easyrepl line sources: where the session loop gets its lines from.

Scope
- LineSource: the two-method protocol the loop depends on.
  • read(prompt) -> str, raising KeyboardInterrupt (CTRL-C) or EOFError (CTRL-D,
    end of input);
  • record(line), adding an already stripped line to the history.
- The default interactive source, built on prompt_toolkit:
  • CommandCompleter: TAB-completion of command names (first token), and of
    file names for later tokens when enabled;
  • CommandSuggest: inline hint completing a uniquely predicted command name;
  • StrippedHistory: InMemoryHistory keeping stripped, de-duplicated lines;
  • PromptLineSource: PromptSession + StrippedHistory wired with the above.

Notes
- The prompt session is created on the first read(), so building a repl never
  touches the terminal; record() works before that.
- Anything with read/record can replace PromptLineSource, e.g. a scripted
  source in tests or a reader over a file.
"""
import logging
from typing import Protocol, runtime_checkable

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import Completer, Completion, PathCompleter
from prompt_toolkit.document import Document
from prompt_toolkit.history import InMemoryHistory

logger = logging.getLogger(__name__)


@runtime_checkable
class LineSource(Protocol):
    def read(self, prompt, /): ...

    def record(self, line, /): ...


class CommandCompleter(Completer):
    """
    Complete command names for the first token of the line.

    Parameters
    - index: PrefixIndex over every dispatchable name (reserved ones included).
    - filename_completion: bool
      When true, tokens after the command name complete as file system paths.
    """

    def __init__(self, index, /, *, filename_completion=False):
        self._index = index
        self._paths = PathCompleter(expanduser=True) if filename_completion else None

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor.lstrip()

        # still typing the command name
        if not any(char.isspace() for char in text):
            for name in sorted(self._index.predict(text)):
                yield Completion(name, start_position=-len(text))
            return

        if self._paths is None:
            return

        word = document.get_word_before_cursor(WORD=True)
        yield from self._paths.get_completions(Document(word, len(word)), complete_event)


class CommandSuggest(AutoSuggest):
    """
    Inline hint for a command name that only one registered name can complete.

    A suggestion is offered only when the cursor is at the end of the line and
    the line (leading whitespace aside) is a single non-empty token.
    """

    def __init__(self, index, /):
        self._index = index

    def get_suggestion(self, buffer, document):
        if not document.is_cursor_at_the_end:
            return None

        text = document.text.lstrip()
        if not text or any(char.isspace() for char in text):
            return None

        match self._index.predict(text):
            case [name] if len(name) > len(text):
                return Suggestion(name[len(text):])
        return None


class StrippedHistory(InMemoryHistory):
    """
    In-memory history that stores lines stripped, skipping blank lines and a
    repeat of the newest entry.

    prompt_toolkit appends every accepted line on its own, before the session
    loop calls LineSource.record() with the same line; both end up as one entry.
    """

    def append_string(self, string):
        if not (string := string.strip()) or string in self.get_strings()[-1:]:
            return
        super().append_string(string)


class PromptLineSource:
    """
    Interactive LineSource backed by prompt_toolkit.

    Parameters
    - index: PrefixIndex used for completion and hints.
    - hints: bool, show CommandSuggest hints.
    - completion: bool, attach a CommandCompleter.
    - filename_completion: bool, let the completer offer paths after the first token.
    """

    def __init__(self, index, /, *, hints=True, completion=True, filename_completion=False):
        self._index = index
        self._hints = hints
        self._completion = completion
        self._filename_completion = filename_completion
        self._history = StrippedHistory()
        self._session = None

    @property
    def history(self):
        return tuple(self._history.get_strings())

    def _prompt_session(self):
        if self._session is None:
            logger.debug(
                "creating prompt session (hints=%s, completion=%s, filename_completion=%s)",
                self._hints, self._completion, self._filename_completion,
            )
            self._session = PromptSession(
                history=self._history,
                completer=(
                    CommandCompleter(self._index, filename_completion=self._filename_completion)
                    if self._completion else None
                ),
                auto_suggest=CommandSuggest(self._index) if self._hints else None,
                complete_while_typing=False,
            )
        return self._session

    def read(self, prompt, /):
        return self._prompt_session().prompt(prompt)

    def record(self, line, /):
        self._history.append_string(line)


__all__ = (
    "LineSource",
    "CommandCompleter",
    "CommandSuggest",
    "StrippedHistory",
    "PromptLineSource",
)
