"""
cmdtree utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the option, command and usage layers.

Overview
- UnsetType / Unset
  • Singleton sentinel meaning “not provided”, distinct from None.
  • Falsey, printable as "Unset", non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default; None/0/""/[] are preserved.

- rename(callable, name) / @rename("name")
  • Give generated wrappers (middlewares, composed handlers) a stable
    __name__/__qualname__ so tracebacks stay readable.

- mirror("attr")
  • Read-only property over a private backing field, returning fresh copies of
    containers so the public view cannot mutate the tree.

- ordinal(number)
  • "first", "second", ..., "11th", "22nd": positions in user-facing messages.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> coalesce(None, "fallback") is None
    True
    >>> ordinal(3), ordinal(12), ordinal(23)
    ('third', '12th', '23rd')
"""
import builtins
import functools
from collections.abc import Sequence, Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Internal sentinel type representing a value that was not provided.

    Used where None is a legitimate value (an option default, a help string
    explicitly cleared) and the API still has to tell “not given” apart.

    Characteristics
    - Boolean-false, but distinct from None and 0.
    - repr(Unset) -> "Unset".
    - Sealed: subclassing raises TypeError.
    - Singleton: UnsetType() always yields the same instance.
    """

    def __or__(self, other, /):
        try:
            return other | type(self)
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


def coalesce(object, default=None, /):
    """
    Return object unless it is the Unset sentinel, in which case return default.

    Falsey values (None, 0, "", []) are legitimate and returned unchanged.
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__/__qualname__ on a callable, or return a decorator doing so.

    Forms
    - rename(callable, name) -> callable
    - rename(name) -> decorator

    Raises TypeError on a non-callable target, a non-string name, a callable
    whose names cannot be updated (built-ins), or a wrong number of arguments.
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


def _detach(object):
    """
    Recursively copy containers so callers never hold the internal instance.

    Mapping keys are kept as they are; only values are walked. Non-container
    objects (commands, options) are returned as-is.
    """
    if isinstance(object, Sequence) and not isinstance(object, str):
        return list(map(_detach, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_detach, object.values())))
    elif isinstance(object, Set):
        return set(map(_detach, object))
    return object


def mirror(name, /):
    """
    Define a read-only property reading the private field "_{name}".

    Containers are returned as detached copies; mutating them has no effect on
    the owner.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _detach(getattr(self, "_" + name))

    return property(getter)


@functools.lru_cache(typed=True)
def ordinal(number, /):
    """
    Return a human-friendly ordinal for a 1-based position.

    1..10 are spelled out ("first"…"tenth"); larger numbers use numeric
    suffixes with the usual teens exception (11th, 12th, 13th, 111th...).
    """
    if not isinstance(number, int) or isinstance(number, bool):
        raise TypeError("ordinal() argument must be an integer")
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    if 10 < number % 100 < 20:
        return f"{number}th"

    return f"{number}%s" % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


Unset = UnsetType()
"""
Internal sentinel for “not provided”.

Use Unset as a default when None is meaningful; materialize with coalesce().
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "ordinal",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
