r"""
easyrepl argument specifications, type converters and the validator.

Overview
- Argument: one positional slot of a command signature, an optional display name
  plus a type tag. Rendered as "name:tag" (or ":tag" when unnamed) in help and
  usage lines.
- Converter registry: maps type tags to callables that turn a raw string into a
  value. Built-in tags: str, int, float, bool, path. New tags are registered with
  the @converter("tag") decorator; the registry is readable through `converters`.
- validate(raw, arguments): arity first, then conversion in position order,
  stopping at the first failure.
- signature(arguments): rendered signature strings.

Converter semantics
- A converter receives the raw token (already unquoted by the tokenizer) and
  either returns the value or raises; whatever it raises becomes the cause of a
  WrongValueError.
- str is the identity; bool accepts only "true"/"false" (any case), unlike the
  builtin bool() which is truthy for every non-empty string.

Quick example:
    >>> from easyrepl.arguments import Argument, validate
    >>> validate(["3", "0.5"], [Argument("X", type=int), Argument(type="float")])
    (3, 0.5)
    >>> str(Argument("X", type=int))
    'X:int'
"""
import builtins
import pathlib
from types import MappingProxyType

from .faults import FaultCode, WrongArityError, WrongValueError
from .utils import Unset, coalesce, mirror, rename

# tag -> converter, plus the reverse lookup used to render callables passed directly
_converters = {}
_tags = {}

converters = MappingProxyType(_converters)


def converter(tag, /):
    """
    Register a converter under a type tag (decorator factory).

    Parameters
    - tag: str
      Non-empty, without whitespace or ':' (it is embedded in "name:tag").

    Raises
    - TypeError: tag is not a string, or the decorated object is not callable.
    - ValueError: tag is malformed or already registered.

    Example
        @converter("hex")
        def hexadecimal(raw):
            return int(raw, 16)
    """
    if not isinstance(tag, str):
        raise TypeError("converter() argument must be a string")
    elif not (tag := tag.strip()) or ":" in tag or any(char.isspace() for char in tag):
        raise ValueError(f"converter tag {tag!r} must be a non-empty word without ':'")

    def wrapper(callable):
        if not builtins.callable(callable):
            raise TypeError("@converter() must be applied to a callable")
        if tag in _converters:
            raise ValueError(f"converter tag {tag!r} is already registered")
        _converters[tag] = callable
        _tags.setdefault(callable, tag)
        return callable

    return rename(wrapper, "converter")


def _boolean(raw, /):
    match raw.strip().lower():
        case "true":
            return True
        case "false":
            return False
    raise ValueError("provided string was not `true` or `false`")


converter("str")(str)
converter("int")(int)
converter("float")(float)
converter("bool")(_boolean)
converter("path")(pathlib.Path)
# builtin bool would accept anything non-empty; route it to the strict parser
_tags[bool] = "bool"


class Argument:
    """
    One positional argument of a command: optional name and type tag.

    Parameters
    - name: str | Unset
      Display name used in help/usage ("X" in "X:int"). Non-empty, no whitespace,
      no ':'.
    - type: str | Callable
      A registered type tag ("int") or a converter callable. Callables that are
      registered (int, float, pathlib.Path, bool, ...) render with their tag;
      other callables render with their __name__.

    Read-only properties: name (str | None), tag (str), type (converter).
    """
    __introspectable__ = ("name", "tag", "type")

    name = mirror("name")
    tag = mirror("tag")
    type = mirror("type")

    def __init__(self, name=Unset, /, type=str):
        if not isinstance(name, str | Unset):
            raise TypeError("argument 'name' must be a string")
        elif isinstance(name, str) and not (name := name.strip()):
            raise ValueError("argument 'name' cannot be empty")
        elif isinstance(name, str) and (":" in name or any(char.isspace() for char in name)):
            raise ValueError(f"argument name {name!r} cannot contain whitespace or ':'")

        match type:
            case str():
                try:
                    callable = _converters[tag := type.strip()]
                except KeyError:
                    raise ValueError(f"unknown argument type tag {type!r}") from None
            case _ if builtins.callable(type):
                try:
                    tag = _tags[type]
                except (KeyError, TypeError):  # TypeError: unhashable callable objects
                    tag = getattr(type, "__name__", builtins.type(type).__name__)
                    callable = type
                else:
                    callable = _converters[tag]
            case _:
                raise TypeError("argument 'type' must be a type tag or a callable")

        self._name = coalesce(name)
        self._tag = tag
        self._type = callable

    def __str__(self):
        return f"{self._name or ''}:{self._tag}"

    def __repr__(self):
        return f"argument(name={self._name!r}, tag={self._tag!r})"

    def __rich_repr__(self):
        for name in type(self).__introspectable__:
            yield name, getattr(self, name)

    def __eq__(self, other):
        if not isinstance(other, Argument):
            return NotImplemented
        return (self._name, self._tag, self._type) == (other._name, other._tag, other._type)

    def __hash__(self):
        return hash((self._name, self._tag))


def validate(raw, arguments, /):
    """
    Check raw argument strings against a signature and convert them.

    Order of checks
    1. arity: len(raw) != len(arguments) raises WrongArityError before any
       conversion is attempted;
    2. values: each raw string is converted by its argument's converter in
       position order; the first failure raises WrongValueError for that
       position and later positions are left untouched.

    Parameters
    - raw: Iterable[str], the tokens following the command name.
    - arguments: Iterable[Argument], the command signature.

    Returns
    - tuple of converted values, in signature order.
    """
    raw = tuple(raw)
    arguments = tuple(arguments)

    if len(raw) != len(arguments):
        raise WrongArityError(
            "wrong number of arguments: got %d, expected %d" % (len(raw), len(arguments)),
            title="wrong number of arguments",
            code=FaultCode.WRONG_ARITY,
            got=len(raw),
            expected=len(arguments),
        )

    values = []
    for position, (value, argument) in enumerate(zip(raw, arguments)):
        try:
            values.append(argument.type(value))
        except Exception as exception:
            raise WrongValueError(
                "failed to parse argument value '%s': %s" % (value, str(exception) or type(exception).__name__),
                title="conversion error",
                code=FaultCode.WRONG_VALUE,
                position=position,
                raw=value,
                argument=argument,
                exception=exception,
            ) from exception
    return tuple(values)


def signature(arguments, /):
    """Render a signature as the tuple of "name:tag" strings shown in help and usage."""
    return tuple(map(str, arguments))


__all__ = (
    "Argument",
    "converter",
    "converters",
    "validate",
    "signature",
)
