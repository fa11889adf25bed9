"""
Argosy utilities (small shared helpers)

Overview
- UnsetType / Unset
  • Singleton sentinel for "value not provided" where None is a meaningful value
    (an argument default may legitimately be None, 0 or "").
- coalesce(value, default=None)
  • Replace Unset with a concrete default, keeping every other falsey value.
- rename(callable, name) / @rename("name")
  • Assign a stable __name__/__qualname__ to generated helpers.
- mirror("attr")
  • Read-only property exposing a private backing field (self._attr); containers
    are handed out as fresh copies so callers cannot mutate definitions.
- levenshtein(left, right)
  • Edit distance used by the router to suggest the closest command.
- tonumber(value)
  • Loose numeric conversion shared by the parser and the binder.
- stringify(value)
  • Render a parsed value back into its command-line spelling.

Notes
- Names not listed in __all__ are internal.
"""
import builtins
import functools
import math
import re
from collections.abc import Sequence, Mapping, Set
from typing import final

from rapidfuzz.distance import Levenshtein


@final
class UnsetType:
    """
    Sentinel type representing a value that was not provided.

    Characteristics
    - Boolean-false, distinct from None and 0.
    - repr(Unset) -> "Unset".
    - Sealed and singleton: UnsetType() always yields the same instance.
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

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__/__qualname__ on a callable, or return a decorator doing so.

    Forms
    - rename(callable, name) -> callable
    - rename(name) -> decorator
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


def _immortalize(object):
    """
    Copy mutable container values recursively (mappings become dicts).

    Tuples (named tuples included) and frozensets are already immutable and
    are returned as they are.
    """
    if isinstance(object, tuple | frozenset):
        return object
    if isinstance(object, Sequence) and not isinstance(object, str):
        return list(map(_immortalize, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_immortalize, object.values())))
    elif isinstance(object, Set):
        return frozenset(map(_immortalize, object))
    return object


def mirror(name, /):
    """
    Define a read-only property reading "_{name}" from the instance.

    Example
    - Given self._allowed, declare allowed = mirror("allowed").
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _immortalize(getattr(self, "_" + name))

    return property(getter)


def levenshtein(left, right, /):
    """
    Edit distance (insertions, deletions and substitutions cost 1), computed by
    rapidfuzz.

    Examples
    - levenshtein("fooo", "foo")   -> 1
    - levenshtein("build", "bulid") -> 2
    """
    if not isinstance(left, str) or not isinstance(right, str):
        raise TypeError("levenshtein() arguments must be strings")
    return Levenshtein.distance(left, right)


_DECIMAL = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_PREFIXED = re.compile(r"0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+")
_INTEGRAL = re.compile(r"[+-]?\d+")


def tonumber(value, /):
    """
    Convert a command-line value into a number, or return None when it is not one.

    Accepted spellings
    - decimal integers and floats, with optional sign and exponent ("12", "-1.5", "1e3")
    - unsigned prefixed integers ("0x1F", "0o17", "0b101")
    - "Infinity" / "+Infinity" / "-Infinity"
    - the empty (or blank) string, which counts as 0
    - booleans (True -> 1) and numbers, which pass through

    Integral decimal text yields an int, everything else a float.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int | float):
        return None if isinstance(value, float) and math.isnan(value) else value
    if not isinstance(value, str):
        return None
    if not (text := value.strip()):
        return 0
    if _INTEGRAL.fullmatch(text):
        return int(text)
    if _DECIMAL.fullmatch(text):
        return float(text)
    if _PREFIXED.fullmatch(text):
        return int(text, 0)
    if text.lstrip("+-") == "Infinity" and text.count("-") + text.count("+") <= 1:
        return -math.inf if text.startswith("-") else math.inf
    return None


def stringify(value, /):
    """
    Render a parsed value the way it would be typed on the command line.

    - True/False -> "true"/"false"
    - integral floats keep their decimal point ("2.0"); everything else uses str()
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


Unset = UnsetType()
"""
Sentinel for "not provided" (falsey, distinct from None).
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "levenshtein",
    "tonumber",
    "stringify",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
