"""
easyrepl utilities (small building blocks shared by the other modules)

Scope
- Helpers that keep the public objects (arguments, commands, repls) immutable
  after construction and easy to introspect.

Overview
- UnsetType / Unset
  • Singleton sentinel meaning “the caller did not pass this”, distinct from None.
  • Falsey, printable as "Unset", not subclassable.

- coalesce(value, default=None)
  • Materialize Unset into a concrete default; None, 0, "" and [] are preserved.

- rename(callable, name) / @rename("name")
  • Give generated wrappers a stable __name__/__qualname__ (cleaner tracebacks).

- mirror("attr")
  • Read-only property exposing the private field self._attr; containers are
    handed out as fresh copies (mappings as read-only views).

Quick examples
    >>> coalesce(Unset, "> ")
    '> '
    >>> coalesce("", "> ")
    ''
    >>> class Box:
    ...     _items = (1, 2)
    ...     items = mirror("items")
    >>> Box().items
    (1, 2)
"""
import builtins
import functools
from collections.abc import Mapping, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Sentinel type for parameters that were not provided.

    Characteristics
    - Boolean-false, distinct from None.
    - Singleton: UnsetType() always returns the same object.
    - Participates in PEP 604 unions so isinstance(x, str | Unset) reads naturally.
    """

    def __or__(self, other, /):
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return object unless it is Unset, in which case return default.

    Only the sentinel is replaced; falsey values pass through untouched, which is
    what builder setters rely on (an empty description is a valid description).
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__ and __qualname__ on a callable, or build a decorator doing so.

    Forms
    - rename(callable, name) -> callable (updated in place)
    - rename(name) -> decorator

    Raises
    - TypeError on a non-callable target, a non-string name, or wrong arity.
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _freeze(object):
    """
    Copy a container so callers cannot reach the backing field.

    - tuples/strings/scalars: returned as-is (already immutable)
    - lists: copied into a tuple
    - mappings: wrapped in a read-only MappingProxyType over a shallow copy
    - sets: copied into a frozenset
    """
    if isinstance(object, list):
        return tuple(object)
    elif isinstance(object, Mapping):
        return MappingProxyType(dict(object))
    elif isinstance(object, Set) and not isinstance(object, frozenset):
        return frozenset(object)
    return object


def mirror(name, /):
    """
    Define a read-only property backed by self._{name}.

    Returns
    - property whose getter hands out a frozen copy of the backing value.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


__all__ = (
    "UnsetType",
    "Unset",
    "coalesce",
    "rename",
    "mirror",
)
