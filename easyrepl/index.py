"""
easyrepl command name index and resolver.

Scope
- PrefixIndex: a character trie over command names (user and reserved), built
  once and read-only afterwards.
- resolve(): turn the first token of a line into exactly one command name, or
  raise a ResolutionError describing why it cannot.

Resolution policy
- An exact name always wins, even when it also prefixes longer names:
  with "add" and "addall" registered, "add" runs "add".
- Otherwise a prefix shared by exactly one name runs that name, unless
  prediction is disabled, in which case the single name is only offered as a
  candidate.
- No match: CommandNotFoundError without candidates.
- Several matches: AmbiguousCommandError listing them sorted.

Example
    >>> index = PrefixIndex(["count", "connect", "help"])
    >>> sorted(index.predict("co"))
    ['connect', 'count']
    >>> resolve(index, "cou")
    'count'
"""
import logging

from .faults import AmbiguousCommandError, CommandNotFoundError, FaultCode

logger = logging.getLogger(__name__)

# key marking "a stored name ends at this node"; never a single character
_END = ""


class PrefixIndex:
    """
    Character trie answering "which names start with this prefix".

    Parameters
    - names: Iterable[str], duplicates collapse.

    Supports `in`, len() and iteration (sorted names).
    """

    def __init__(self, names=(), /):
        self._root = {}
        self._names = []

        for name in names:
            if not isinstance(name, str):
                raise TypeError("index names must be strings")
            node = self._root
            for char in name:
                node = node.setdefault(char, {})
            if _END not in node:
                node[_END] = name
                self._names.append(name)

    def _walk(self, prefix):
        node = self._root
        for char in prefix:
            if (node := node.get(char)) is None:
                return None
        return node

    def predict(self, prefix, /):
        """
        Every stored name starting with prefix, in traversal order.

        An empty prefix predicts nothing; callers sort when order matters.
        """
        if not prefix or (node := self._walk(prefix)) is None:
            return []

        names, stack = [], [node]
        while stack:
            node = stack.pop()
            for char, child in node.items():
                if char == _END:
                    names.append(child)
                else:
                    stack.append(child)
        return names

    def __contains__(self, name):
        return isinstance(name, str) and _END in (self._walk(name) or {})

    def __iter__(self):
        return iter(sorted(self._names))

    def __len__(self):
        return len(self._names)

    def __repr__(self):
        return f"PrefixIndex({sorted(self._names)!r})"


def resolve(index, token, /, *, predict=True):
    """
    Resolve a typed command token against the index.

    Returns
    - str, the resolved command name.

    Raises
    - CommandNotFoundError: nothing matches, or the only match is a strict
      completion and prediction is disabled (listed as candidate).
    - AmbiguousCommandError: several names share the typed prefix.
    """
    candidates = index.predict(token)

    if token in candidates:
        logger.debug("resolved %r exactly", token)
        return token

    match candidates:
        case [name] if predict:
            logger.debug("resolved %r by prefix to %r", token, name)
            return name
        case []:
            raise CommandNotFoundError(token, code=FaultCode.UNKNOWN_COMMAND)
        case [_]:
            raise CommandNotFoundError(token, code=FaultCode.UNKNOWN_COMMAND, candidates=tuple(candidates))
        case _:
            raise AmbiguousCommandError(token, code=FaultCode.AMBIGUOUS_COMMAND, candidates=tuple(sorted(candidates)))


__all__ = (
    "PrefixIndex",
    "resolve",
)
