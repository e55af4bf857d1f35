"""
easyrepl command layer: wrap handlers into typed, validated commands.

What this module provides
- CommandStatus: what a successful handler asks of the session (CONTINUE or TERMINATE).
- Recoverable / Fatal: tagged failure outcomes a handler may return explicitly.
- Command: a description, an ordered argument signature and a handler.
- command(...): factory/decorator deriving the signature from the handler's own
  parameters, so the common case needs no explicit Argument list.

Handler contract
- A handler receives the converted argument values positionally, one per
  Argument, and returns:
  • CommandStatus.CONTINUE or None: the session goes on;
  • CommandStatus.TERMINATE: the session ends normally;
  • Recoverable(cause): the cause is printed and the session goes on;
  • Fatal(cause): the session (and every enclosing one) stops with CriticalError;
  • anything else: reported like Recoverable(TypeError(...)).
- Raising is equivalent: CriticalError counts as Fatal, ArgsError is reported
  with the usage line, any other Exception counts as Recoverable.
- State shared by several handlers is passed in explicitly, e.g. by closing over
  one object or with functools.partial; the engine never touches it.

Quick start
    from easyrepl import command, CommandStatus

    @command("Add X to Y")
    def add(x: int, y: int):
        print(x + y)

    @command
    def bye():
        '''Say goodbye and leave'''
        return CommandStatus.TERMINATE
"""
import enum
import inspect
from dataclasses import dataclass
from inspect import Parameter

from .arguments import Argument, signature, validate
from .faults import ArgsError, CriticalError
from .utils import Unset, coalesce, mirror, rename


class CommandStatus(enum.Enum):
    CONTINUE = "continue"
    TERMINATE = "terminate"


@dataclass(frozen=True, slots=True)
class Recoverable:
    """Failure that is printed by the session, which then reads the next line."""
    cause: object


@dataclass(frozen=True, slots=True)
class Fatal:
    """Failure that ends the whole run; Repl.run() raises CriticalError from it."""
    cause: object


def _as_argument(object, /):
    # bare tags or converters become unnamed arguments
    return object if isinstance(object, Argument) else Argument(type=object)


def _discover(callback, /):
    """
    Build the argument list from a handler's parameters.

    - a parameter defaulting to an Argument uses it, named after the parameter
      when the Argument itself is unnamed;
    - otherwise the annotation is the type (str when missing) and the parameter
      name is the display name;
    - *args, **kwargs and keyword-only parameters cannot be fed from a command
      line and are rejected.
    """
    arguments = []
    for parameter in inspect.signature(callback, eval_str=True).parameters.values():
        if parameter.kind not in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD):
            raise TypeError(f"command parameter {parameter.name!r} must be positional")
        if isinstance(argument := parameter.default, Argument):
            arguments.append(argument if argument.name else Argument(parameter.name, type=argument.type))
        else:
            annotation = parameter.annotation
            arguments.append(Argument(parameter.name, type=str if annotation is Parameter.empty else annotation))
    return arguments


def _docstring(callback, /):
    # callable objects (partials, instances) would report their class docstring
    if inspect.isfunction(callback) or inspect.ismethod(callback):
        return inspect.getdoc(callback) or ""
    return ""


class Command:
    """
    A unit the repl can dispatch to.

    Parameters
    - handler: Callable
      Receives one converted value per argument (positionally).
    - description: str
      Shown next to the signature in help.
    - arguments: Iterable[Argument | str | Callable]
      Ordered signature; tags and converters are wrapped into unnamed Arguments.

    Raises
    - TypeError: handler is not callable, description is not a string, or the
      handler cannot be called with exactly len(arguments) positional values.

    Read-only properties: handler, description, arguments, signature.
    """
    __introspectable__ = ("description", "signature")

    handler = mirror("handler")
    description = mirror("description")
    arguments = mirror("arguments")

    def __init__(self, handler, /, description="", arguments=()):
        if not callable(handler):
            raise TypeError("command handler must be callable")
        if not isinstance(description, str):
            raise TypeError("command description must be a string")

        arguments = tuple(map(_as_argument, arguments))

        # the signature length must match what the handler accepts
        try:
            inspect.signature(handler).bind(*arguments)
        except TypeError:
            name = getattr(handler, "__qualname__", repr(handler))
            raise TypeError(
                f"command handler {name} cannot take {len(arguments)} positional argument(s)"
            ) from None
        except ValueError:
            pass  # no introspectable signature (some builtins); trust the caller

        self._handler = handler
        self._description = description.strip()
        self._arguments = arguments

    @property
    def signature(self):
        return signature(self._arguments)

    def run(self, raw, /):
        """
        Validate raw argument strings and invoke the handler.

        Returns
        - CommandStatus | Recoverable | Fatal, the handler outcome normalized as
          described in the module docstring.

        Raises
        - ArgsError: from validation, or raised by the handler itself.

        Any other return value than an outcome or None is reported as
        Recoverable(TypeError).
        """
        values = validate(raw, self._arguments)

        try:
            outcome = self._handler(*values)
        except ArgsError:
            raise
        except CriticalError as error:
            return Fatal(error)
        except Exception as exception:
            return Recoverable(exception)

        match outcome:
            case None:
                return CommandStatus.CONTINUE
            case CommandStatus() | Recoverable() | Fatal():
                return outcome
            case _:
                return Recoverable(TypeError(
                    f"command handler returned {type(outcome).__name__!r}, "
                    f"expected a CommandStatus, Recoverable or Fatal"
                ))

    def __repr__(self):
        return f"command(description={self._description!r}, signature={self.signature!r})"

    def __rich_repr__(self):
        for name in type(self).__introspectable__:
            yield name, getattr(self, name)


def command(source=Unset, /, description=Unset, arguments=Unset):
    """
    Create a Command, or return a decorator that creates it later.

    Invocation modes
    - Direct: command(func, "description") -> Command
    - Decorator with description: @command("description")
    - Bare decorator: @command (description taken from the docstring)

    Parameters
    - description: str | Unset
      Defaults to the docstring of a function or method handler, empty for
      other callables (partials, callable instances).
    - arguments: Iterable[Argument | str | Callable] | Unset
      Defaults to the signature discovered from the handler's parameters.
    """
    if isinstance(source, str):
        source, description = Unset, source

    @rename("command")
    def wrapper(source, /):
        if isinstance(source, Command):
            return source
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        return Command(
            source,
            coalesce(description, _docstring(source)),
            arguments if arguments is not Unset else _discover(source),
        )

    return wrapper(source) if source is not Unset else wrapper


__all__ = (
    "CommandStatus",
    "Recoverable",
    "Fatal",
    "Command",
    "command",
)
