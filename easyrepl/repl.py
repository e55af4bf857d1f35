"""
easyrepl sessions: the command registry, the builder and the read-eval loop.

Scope
- RESERVED: the two commands every repl understands ("help", "quit").
- ReplBuilder: fluent configuration + command registration; build() checks
  every name and freezes the result into a Repl.
- Repl: read-only registry of commands and the session loop over a LineSource.

Session loop (one Repl.next() call)
1. read a line from the source; CTRL-C prints "CTRL-C" and ends the session,
   end of input ends it silently;
2. blank lines are skipped, other lines are recorded in the history;
3. the line is split into shell words (quotes group words);
4. the first word is resolved to a command (exact name or unique prefix);
5. "help" prints the help text, "quit" ends the session;
6. other commands validate their arguments and run; the outcome decides
   whether the session goes on.

Failure treatment
- Unknown/ambiguous commands, malformed quoting, argument errors and
  recoverable handler failures are printed and the loop goes on.
- Fatal handler failures leave run() as CriticalError, through every enclosing
  session when repls are nested.

Example
    >>> from easyrepl import Repl
    >>> repl = (
    ...     Repl.builder()
    ...     .description("Example REPL")
    ...     .add("add", add)
    ...     .build()
    ... )
    >>> repl.run()
"""
import enum
import logging
import shlex
import textwrap
from collections.abc import Mapping
from types import MappingProxyType

from rich.console import Console

from .commands import Command, CommandStatus, Fatal, Recoverable, command
from .completion import LineSource, PromptLineSource
from .faults import (
    ArgsError,
    CriticalError,
    DuplicateNameError,
    FaultCode,
    HandlerError,
    InvalidNameError,
    MalformedLineError,
    ReservedNameError,
    ResolutionError,
    trigger,
)
from .index import PrefixIndex, resolve
from .utils import Unset, mirror

logger = logging.getLogger(__name__)

RESERVED = MappingProxyType({
    "help": "Show this help message",
    "quit": "Quit repl",
})

HELP_HINT = "Use 'help' to see available commands."


class LoopStatus(enum.Enum):
    CONTINUE = "continue"
    BREAK = "break"


def _is_word(name):
    # exactly one shell word spelling itself: no whitespace, no quoting
    try:
        return bool(name) and shlex.split(name) == [name]
    except ValueError:
        return False


def _message(cause):
    if isinstance(cause, BaseException):
        return str(cause) or type(cause).__name__
    return str(cause)


class Repl:
    """
    A built repl: named commands plus the session loop.

    Normally created through Repl.builder(); direct construction takes the same
    options as the builder setters and applies the same name checks.

    Parameters
    - commands: Mapping[str, Command] | Iterable[tuple[str, Command]]
    - description, prompt, text_width, console, source, hints, completion,
      filename_completion, predict_commands, colorful: see ReplBuilder.

    Raises
    - InvalidNameError, ReservedNameError, DuplicateNameError (first offending
      name in registration order).
    """
    __introspectable__ = ("description", "prompt", "commands")

    commands = mirror("commands")
    index = mirror("index")
    description = mirror("description")
    prompt = mirror("prompt")
    text_width = mirror("text_width")
    console = mirror("console")
    source = mirror("source")

    def __init__(
        self,
        commands=(),
        /,
        *,
        description="",
        prompt="> ",
        text_width=80,
        console=Unset,
        source=Unset,
        hints=True,
        completion=True,
        filename_completion=False,
        predict_commands=True,
        colorful=False,
    ):
        registry = {}
        for name, handler in commands.items() if isinstance(commands, Mapping) else commands:
            if not isinstance(name, str) or not _is_word(name):
                raise InvalidNameError(
                    f"invalid command name {name!r}: must be a single word",
                    code=FaultCode.INVALID_NAME,
                    name=name,
                )
            if name in RESERVED:
                raise ReservedNameError(
                    f"command name {name!r} is reserved",
                    code=FaultCode.RESERVED_NAME,
                    name=name,
                )
            if name in registry:
                raise DuplicateNameError(
                    f"command name {name!r} is registered more than once",
                    code=FaultCode.DUPLICATE_NAME,
                    name=name,
                )
            if not isinstance(handler, Command) and not callable(handler):
                raise TypeError(f"command {name!r} must be a Command or a callable")
            registry[name] = handler if isinstance(handler, Command) else command(handler)

        self._commands = registry
        self._index = PrefixIndex([*registry, *RESERVED])
        self._description = description
        self._prompt = prompt
        self._text_width = text_width
        self._console = console if console is not Unset else Console(stderr=True)
        self._source = source if source is not Unset else PromptLineSource(
            self._index,
            hints=hints,
            completion=completion,
            filename_completion=filename_completion,
        )
        self._predict = predict_commands
        self._colorful = colorful

        logger.debug("built repl with commands %s", sorted(registry))

    @staticmethod
    def builder():
        return ReplBuilder()

    def predict(self, prefix, /):
        """Sorted names (reserved ones included) starting with prefix."""
        return sorted(self._index.predict(prefix))

    def help(self):
        """
        Render the help text.

        Layout
        - the description, then "Available commands:" with the user commands
          sorted by name, then "Other commands:" with help and quit;
        - each block is a column of "name sig" padded to the block's longest
          entry, two spaces, and the description wrapped to text_width with a
          hanging indent under the description column.
        """
        user = [
            (f"{name} {' '.join(entry.signature)}", entry.description)
            for name, entry in sorted(self._commands.items())
        ]
        other = list(RESERVED.items())

        return (
            f"{self._description}\n\n"
            f"Available commands:\n{self._block(user)}\n\n"
            f"Other commands:\n{self._block(other)}"
        ).strip()

    def _block(self, entries):
        if not entries:
            return ""
        width = max(len(usage) for usage, _ in entries)
        return "\n".join(
            textwrap.fill(
                f"  {usage.ljust(width)}  {description}",
                width=self._text_width,
                subsequent_indent=" " * (width + 4),
            )
            for usage, description in entries
        )

    def _report(self, fault, /, **options):
        trigger(fault, console=self._console, colorful=self._colorful, **options)

    def handle_line(self, line, /):
        """
        Process one input line and tell the loop whether to go on.

        Raises
        - CriticalError: the command failed fatally.
        """
        try:
            tokens = shlex.split(line)
        except ValueError as error:
            self._report(MalformedLineError(str(error), code=FaultCode.MALFORMED_LINE))
            return LoopStatus.CONTINUE

        if not tokens:
            return LoopStatus.CONTINUE

        try:
            name = resolve(self._index, tokens[0], predict=self._predict)
        except ResolutionError as error:
            self._report(error, hint=HELP_HINT)
            return LoopStatus.CONTINUE

        match name:
            case "help":
                self._console.print(self.help(), markup=False, emoji=False, highlight=False, soft_wrap=True)
                return LoopStatus.CONTINUE
            case "quit":
                return LoopStatus.BREAK

        entry = self._commands[name]
        logger.debug("dispatching %r with %r", name, tokens[1:])

        try:
            outcome = entry.run(tokens[1:])
        except ArgsError as error:
            self._report(error, hint="Usage: " + " ".join([name, *entry.signature]))
            return LoopStatus.CONTINUE

        logger.debug("command %r finished with %r", name, outcome)

        match outcome:
            case CommandStatus.CONTINUE:
                return LoopStatus.CONTINUE
            case CommandStatus.TERMINATE:
                return LoopStatus.BREAK
            case Recoverable(cause):
                self._report(HandlerError(_message(cause), code=FaultCode.HANDLER_ERROR, cause=cause))
                return LoopStatus.CONTINUE
            case Fatal(CriticalError() as error):
                raise error
            case Fatal(cause):
                raise CriticalError(
                    _message(cause),
                    title="critical error",
                    code=FaultCode.CRITICAL_ERROR,
                    cause=cause,
                ) from (cause if isinstance(cause, BaseException) else None)

    def next(self):
        """
        Run one iteration of the session loop.

        Returns
        - LoopStatus.BREAK on quit, TERMINATE, CTRL-C or end of input;
          LoopStatus.CONTINUE otherwise.
        """
        try:
            line = self._source.read(self._prompt)
        except KeyboardInterrupt:
            self._console.print("CTRL-C", markup=False, highlight=False)
            return LoopStatus.BREAK
        except EOFError:
            logger.debug("end of input")
            return LoopStatus.BREAK

        if not (line := line.strip()):
            return LoopStatus.CONTINUE

        self._source.record(line)
        return self.handle_line(line)

    def run(self):
        """Loop until the session ends; CriticalError propagates to the caller."""
        while self.next() is LoopStatus.CONTINUE:
            pass

    def __repr__(self):
        return f"repl(description={self._description!r}, commands={sorted(self._commands)!r})"

    def __rich_repr__(self):
        for name in type(self).__introspectable__:
            yield name, getattr(self, name)


class ReplBuilder:
    """
    Fluent configuration for a Repl; every setter returns the builder.

    Setters
    - description(str)            first paragraph of the help text ("")
    - prompt(str)                 prompt shown by the line source ("> ")
    - text_width(int)             help wrapping width, at least 1 (80)
    - console(rich Console)       where the repl writes (Console(stderr=True))
    - source(LineSource)          where lines come from (PromptLineSource)
    - hints(bool)                 inline name hints in the default source (True)
    - completion(bool)            TAB completion in the default source (True)
    - filename_completion(bool)   complete paths after the command name (False)
    - predict_commands(bool)      run commands by unique prefix (True)
    - colorful(bool)              style printed faults (False)
    - add(name, command)          register a Command or a plain callable

    Invalid setter values raise TypeError/ValueError right away; name checks
    happen in build().
    """

    def __init__(self):
        self._commands = []
        self._options = {}

    def _flag(self, option, value):
        if not isinstance(value, bool):
            raise TypeError(f"{option}() argument must be a bool")
        self._options[option] = value
        return self

    def _text(self, option, value):
        if not isinstance(value, str):
            raise TypeError(f"{option}() argument must be a string")
        self._options[option] = value
        return self

    def description(self, description, /):
        return self._text("description", description)

    def prompt(self, prompt, /):
        return self._text("prompt", prompt)

    def text_width(self, width, /):
        if not isinstance(width, int) or isinstance(width, bool):
            raise TypeError("text_width() argument must be an int")
        if width < 1:
            raise ValueError("text_width() argument must be at least 1")
        self._options["text_width"] = width
        return self

    def console(self, console, /):
        if not isinstance(console, Console):
            raise TypeError("console() argument must be a rich Console")
        self._options["console"] = console
        return self

    def source(self, source, /):
        if not isinstance(source, LineSource):
            raise TypeError("source() argument must provide read() and record()")
        self._options["source"] = source
        return self

    def hints(self, enabled, /):
        return self._flag("hints", enabled)

    def completion(self, enabled, /):
        return self._flag("completion", enabled)

    def filename_completion(self, enabled, /):
        return self._flag("filename_completion", enabled)

    def predict_commands(self, enabled, /):
        return self._flag("predict_commands", enabled)

    def colorful(self, enabled, /):
        return self._flag("colorful", enabled)

    def add(self, name, command, /):
        if not isinstance(name, str):
            raise TypeError("add() name must be a string")
        if not isinstance(command, Command) and not callable(command):
            raise TypeError("add() command must be a Command or a callable")
        self._commands.append((name, command))
        return self

    def build(self):
        return Repl(self._commands, **self._options)


__all__ = (
    "RESERVED",
    "LoopStatus",
    "Repl",
    "ReplBuilder",
)
