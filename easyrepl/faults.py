"""
easyrepl faults (errors raised while building or running a repl) and rendering.

Scope
- FaultCode: stable numeric identifiers for every fault, grouped by domain.
- ReplException: base type carrying a message plus options (code, title, hint,
  context) that knows how to render itself with rich.
- Concrete faults:
  • resolution: CommandNotFoundError, AmbiguousCommandError
  • tokenizing: MalformedLineError
  • arguments: WrongArityError, WrongValueError (both ArgsError)
  • handlers: HandlerError (recoverable), CriticalError (fatal)
  • building: DuplicateNameError, InvalidNameError, ReservedNameError (all BuilderError)
- trigger(): surface a fault, printing recoverable ones and raising fatal ones.
- critical(): turn any exception raised in a block into a CriticalError.

Rendering
- One headline "<label>: <message>", an optional candidate list and an optional
  hint line (usage line for argument faults, help pointer for resolution faults).
- Styles apply only when the options carry colorful=True; a __styles__ mapping in
  __main__ overrides any palette entry.
"""
import copy
from collections import defaultdict
from contextlib import contextmanager
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.text import Text

from .utils import Unset, coalesce


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - 111xx: runtime faults, printed by the loop (except CRITICAL_ERROR)
      • 1110x routing, 1111x tokenizing, 1112x arguments, 1113x/1114x handlers
    - 131xx: build-time faults, raised by ReplBuilder.build()
    """
    # --- routing (11xxx) ---
    UNKNOWN_COMMAND   = 11101
    AMBIGUOUS_COMMAND = 11102

    # --- tokenizing (11xxx) ---
    MALFORMED_LINE    = 11111

    # --- arguments (11xxx) ---
    WRONG_ARITY       = 11121
    WRONG_VALUE       = 11122

    # --- handlers (11xxx) ---
    HANDLER_ERROR     = 11131
    CRITICAL_ERROR    = 11141

    # --- building (13xxx) ---
    DUPLICATE_NAME    = 13101
    INVALID_NAME      = 13102
    RESERVED_NAME     = 13103


class ReplException(Exception):
    __label__ = "Error"

    def __init__(self, message=Unset, /, **options):
        if not isinstance(message, str | Unset):
            raise TypeError(f"{type(self).__name__} message must be a string")
        super().__init__(message := coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    @property
    def hint(self):
        return self.options.get("hint")

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # headline
            "label": "bold #FF4DA6",  # friendly pinky label
            "message": "#C8C8D0",  # soft light gray message

            # candidates block
            "candidates-label": "bold #00E5FF",  # neon cyan
            "candidate": "#36C5F0",  # sky-blue names

            # trailing hint (usage or help pointer)
            "hint": "italic #9CE19C",  # gentle green
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if self.options.get("colorful", False) else ""

        lines = [Text.assemble(
            Text(f"{self.__label__}:", styler("label")),
            " ",
            Text(self.message, styler("message")),
        )]

        if candidates := self.options.get("candidates", ()):
            lines.append(Text("Candidates:", styler("candidates-label")))
            lines.extend(Text.assemble("  ", Text(name, styler("candidate"))) for name in candidates)

        if hint := self.options.get("hint"):
            lines.append(Text(hint, styler("hint")))

        return Group(*lines)

    def __trigger__(self):
        # Without a console there is nowhere to report to; behave like a plain exception.
        if (console := self.options.get("console")) is None:
            raise self from None
        console.print(self, soft_wrap=True, highlight=False)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ResolutionError(ReplException):
    """The typed command token did not resolve to exactly one command."""
    __label__ = "Command not found"

    @property
    def prefix(self):
        return self.message

    @property
    def candidates(self):
        return tuple(self.options.get("candidates", ()))


class CommandNotFoundError(ResolutionError): ...
class AmbiguousCommandError(ResolutionError): ...


class MalformedLineError(ReplException):
    """The input line could not be split into shell words (e.g. unbalanced quotes)."""


class ArgsError(ReplException):
    """Raw arguments do not match a command's signature."""


class WrongArityError(ArgsError):
    @property
    def got(self):
        return self.options["got"]

    @property
    def expected(self):
        return self.options["expected"]


class WrongValueError(ArgsError):
    @property
    def position(self):
        return self.options["position"]

    @property
    def raw(self):
        return self.options["raw"]

    @property
    def exception(self):
        return self.options.get("exception")


class HandlerError(ReplException):
    """A recoverable failure reported by a command handler."""

    @property
    def cause(self):
        return self.options.get("cause")


class CriticalError(ReplException):
    """
    A failure that must not be handled by the repl.

    The loop never prints it: it leaves Repl.run() (and every enclosing nested
    session) and reaches the caller. The original exception, when there is one,
    is chained as __cause__.
    """

    def __trigger__(self):
        raise self


class BuilderError(ReplException, ValueError):
    """A command registration that makes the repl impossible to build."""

    @property
    def name(self):
        return self.options.get("name")


class DuplicateNameError(BuilderError): ...
class InvalidNameError(BuilderError): ...
class ReservedNameError(BuilderError): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ (see ReplException).
    - options are merged into the fault via copy.replace() before triggering.
    - recoverable faults print themselves to options["console"]; CriticalError raises.

    typical options
    - console, colorful, hint, candidates.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


@contextmanager
def critical():
    """
    Escalate every exception raised inside the block to CriticalError.

    Usable as a context manager or as a decorator:

        with critical():
            connection.send(payload)

        @critical()
        def flush(): ...

    CriticalError passes through untouched; anything else is re-raised as
    CriticalError chained to the original exception.
    """
    try:
        yield
    except CriticalError:
        raise
    except Exception as exception:
        raise CriticalError(
            str(exception) or type(exception).__name__,
            title="critical error",
            code=FaultCode.CRITICAL_ERROR,
        ) from exception


__all__ = (
    "FaultCode",
    "ReplException",
    "ResolutionError",
    "CommandNotFoundError",
    "AmbiguousCommandError",
    "MalformedLineError",
    "ArgsError",
    "WrongArityError",
    "WrongValueError",
    "HandlerError",
    "CriticalError",
    "BuilderError",
    "DuplicateNameError",
    "InvalidNameError",
    "ReservedNameError",
    "trigger",
    "critical",
)
