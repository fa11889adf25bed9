r"""
Argosy argument definitions.

Overview
- Kinds (tagged by their `type` property)
  • Positional: filled from leftover non-flag tokens in declaration order.
  • Boolean: presence switch, always binds to True/False ("--name", "--no-name").
  • String: free text value ("--name value", "--name=value", "-n value").
  • Number: numeric value, converted loosely (see argosy.utils.tonumber).
  • Array: list of strings, repeated and/or comma separated ("--tag a,b --tag c").

- define_args(mapping): build an ordered, read-only schema from definitions or
  plain dicts ({"type": "string", "required": True, ...}).

Metadata (sanitized on construction)
- description: Unset | str, non-empty when provided.
- required: bool.
- default: Unset | value matching the kind (Array accepts a string or strings
  and normalizes to a tuple).
- allowed: Iterable of values matching the kind; duplicates are rejected.
- dependencies: Iterable[str], names that must be truthy for this argument to be used.
- alias (named kinds only): Unset | single character.

Introspection & representation
- ArgumentType metaclass exposes every name listed in __introspectable__ as a
  read-only property and provides stable __repr__/__rich_repr__.
- Concrete kinds are sealed against subclassing.

Quick example:
    >>> from argosy.arguments import define_args, Positional, Boolean, Array
    >>> args = define_args({
    ...     "input": Positional("file to read", required=True),
    ...     "verbose": Boolean("chatty output", alias="v"),
    ...     "tags": Array(allowed=("a", "b", "c")),
    ... })
"""
import functools
import operator
import re
from collections.abc import Iterable, Mapping, Set
from types import MappingProxyType

from .utils import *


class ArgumentType(type):
    """
    Metaclass giving argument kinds read-only properties and stable representations.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and doubles as the kind tag ("positional", "boolean", ...).
    - __displayable__ (if set) narrows which properties __rich_repr__ shows;
      otherwise __introspectable__ is used.
    - sealed=True (class keyword) forbids further subclassing.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        if options.get("sealed", False):
            @rename("__init_subclass__")
            def __init_subclass__(cls, **options):  # NOQA: F-841
                raise TypeError(f"type {self.__name__!r} is not an acceptable base type")
            self.__init_subclass__ = classmethod(__init_subclass__)

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate the fields shared by every kind.

    - description: Unset or a non-empty string (trimmed); Unset becomes None.
    - dependencies: iterable of non-empty strings, normalized to a tuple.

    Raises
    - TypeError / ValueError on malformed values. Mutates metadata in place.
    """
    if not isinstance(description := metadata["description"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'description' must be a string")
    elif isinstance(description, str) and not (description := description.strip()):
        raise ValueError(f"{cls.__typename__} 'description' cannot be empty")
    metadata["description"] = coalesce(description)

    dependencies = metadata["dependencies"]
    if isinstance(dependencies, str) or not isinstance(dependencies, Iterable):
        raise TypeError(f"{cls.__typename__} 'dependencies' must be an iterable of strings")
    sanitized = []
    for dependency in dependencies:
        if not isinstance(dependency, str):
            raise TypeError(f"{cls.__typename__} 'dependencies' must be an iterable of strings")
        elif not (dependency := dependency.strip()):
            raise ValueError(f"{cls.__typename__} 'dependencies' cannot contain empty-strings")
        elif dependency in sanitized:
            raise ValueError(f"{cls.__typename__} 'dependencies' cannot contain duplicates")
        sanitized.append(dependency)
    metadata["dependencies"] = tuple(sanitized)


def _sanitize_alias(cls, metadata, /):
    # a single character, never a dash or "="
    if not isinstance(alias := metadata["alias"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'alias' must be a string")
    elif isinstance(alias, str) and (len(alias) != 1 or alias in "-= "):
        raise ValueError(f"{cls.__typename__} 'alias' must be a single character")
    metadata["alias"] = coalesce(alias)


def _sanitize_values(cls, metadata, /):
    """
    Internal: validate 'allowed' and 'default' against the kind's value type.

    - allowed: iterable of accepted values; duplicates rejected unless a Set.
      Normalized to a tuple.
    - default: Unset or an accepted value (Array: a string or an iterable of
      strings, normalized to a tuple). When allowed is non-empty, the default
      (every element, for Array) must belong to it.
    """
    accepts = cls.__accepts__

    def accepted(value):
        return isinstance(value, accepts) and not (accepts is not bool and isinstance(value, bool))

    if isinstance(allowed := metadata["allowed"], str) or not isinstance(allowed, Iterable):
        raise TypeError(f"{cls.__typename__} 'allowed' must be iterable")
    sanitized = []
    for value in allowed:
        if not accepted(value):
            raise TypeError(f"{cls.__typename__} 'allowed' values must be of type {cls.__accepts_name__}")
        if value in sanitized and not isinstance(allowed, Set):
            raise ValueError(f"{cls.__typename__} 'allowed' cannot contain duplicates")
        sanitized.append(value)
    metadata["allowed"] = allowed = tuple(sanitized)

    if (default := metadata["default"]) is Unset:
        return
    if cls.__typename__ == "array":
        values = (default,) if isinstance(default, str) else default
        if not isinstance(values, Iterable) or not all(accepted(value) for value in values):
            raise TypeError(f"{cls.__typename__} 'default' must be a string or an iterable of strings")
        metadata["default"] = default = tuple(values)
        elements = default
    else:
        if not accepted(default):
            raise TypeError(f"{cls.__typename__} 'default' must be of type {cls.__accepts_name__}")
        elements = (default,)
    if allowed and any(element not in allowed for element in elements):
        raise ValueError(f"{cls.__typename__} 'default' must be one of the allowed values")


class Argument(metaclass=ArgumentType):
    """
    Base of every argument kind; not instantiated directly.

    Properties
    - type: str, the kind tag.
    - description, required, default, allowed, dependencies (see module docs).
    """

    __introspectable__ = (
        "type",
        "description",
        "required",
        "default",
        "allowed",
        "dependencies",
    )
    __accepts__ = str
    __accepts_name__ = "str"

    def __init__(
            self,
            description=Unset,
            /,
            *,
            required=False,
            default=Unset,
            allowed=(),
            dependencies=(),
            **extra
    ):
        cls = type(self)
        if cls is Argument:
            raise TypeError("type 'Argument' cannot be instantiated directly")
        for name in extra:
            if name not in cls.__introspectable__:
                raise TypeError(f"{cls.__typename__} got an unexpected keyword argument {name!r}")
        metadata = {
            "description": description,
            "required": bool(required),
            "default": default,
            "allowed": allowed,
            "dependencies": dependencies,
        } | extra
        _sanitize_metadata(cls, metadata)
        _sanitize_values(cls, metadata)
        if "alias" in metadata:
            _sanitize_alias(cls, metadata)

        self._type = cls.__typename__
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return dict(self.__rich_repr__()) == dict(other.__rich_repr__())

    def __hash__(self):
        return hash((type(self), self._description, self._required))


class Positional(Argument, sealed=True):
    """
    Positional argument: bound from leftover tokens in declaration order.

    Values are always strings.
    """


class Boolean(Argument, sealed=True):
    """
    Boolean switch. Binds to True/False, defaulting to False.

    Spellings: "--name", "--name=false", "--no-name", "-n" (with an alias).
    """

    __introspectable__ = Argument.__introspectable__ + ("alias",)
    __accepts__ = bool
    __accepts_name__ = "bool"

    def __init__(self, description=Unset, /, *, alias=Unset, **options):
        super().__init__(description, alias=alias, **options)


class String(Argument, sealed=True):
    """
    Free text value. A value-less occurrence ("--name") reads as "true".
    """

    __introspectable__ = Argument.__introspectable__ + ("alias",)

    def __init__(self, description=Unset, /, *, alias=Unset, **options):
        super().__init__(description, alias=alias, **options)


class Number(Argument, sealed=True):
    """
    Numeric value (int when the text is integral, float otherwise).
    """

    __introspectable__ = Argument.__introspectable__ + ("alias",)
    __accepts__ = int | float
    __accepts_name__ = "int or float"

    def __init__(self, description=Unset, /, *, alias=Unset, **options):
        super().__init__(description, alias=alias, **options)


class Array(Argument, sealed=True):
    """
    List of strings. Every occurrence contributes; each occurrence may carry a
    comma separated list, optionally wrapped in brackets ("[a, b]").
    """

    __introspectable__ = Argument.__introspectable__ + ("alias",)

    def __init__(self, description=Unset, /, *, alias=Unset, **options):
        super().__init__(description, alias=alias, **options)


_KINDS = MappingProxyType({
    "positional": Positional,
    "boolean": Boolean,
    "string": String,
    "number": Number,
    "array": Array,
})


def _build(name, spec, /):
    if isinstance(spec, Argument):
        return spec
    if not isinstance(spec, Mapping):
        raise TypeError(f"argument {name!r} must be an argument definition or a mapping")
    fields = dict(spec)
    try:
        kind = _KINDS[fields.pop("type")]
    except KeyError:
        raise ValueError(f"argument {name!r} must declare a 'type' among {', '.join(_KINDS)}") from None
    return kind(fields.pop("description", Unset), **fields)


def define_args(mapping=Unset, /, **arguments):
    """
    Build an ordered, read-only argument schema.

    Parameters
    - mapping: Mapping[str, Argument | Mapping], optional.
    - **arguments: more definitions (appended after mapping, in order).

    Returns
    - MappingProxyType[str, Argument]

    Raises
    - TypeError: a definition has the wrong shape.
    - ValueError: bad names, unknown 'type' tags, or clashing aliases.
    """
    if mapping is not Unset and not isinstance(mapping, Mapping):
        raise TypeError("define_args() argument must be a mapping")

    schema = {}
    aliases = {}
    for name, spec in [*coalesce(mapping, {}).items(), *arguments.items()]:
        if not isinstance(name, str):
            raise TypeError("define_args() argument names must be strings")
        elif not re.fullmatch(r"[^\W\d_][\w-]*", name):
            raise ValueError(f"define_args() argument name {name!r} is not a valid flag name")
        elif name in schema:
            raise ValueError(f"define_args() argument {name!r} is defined twice")
        schema[name] = argument = _build(name, spec)
        if (alias := getattr(argument, "alias", None)) is not None:
            if alias in aliases:
                raise ValueError(f"define_args() alias {alias!r} is shared by {aliases[alias]!r} and {name!r}")
            aliases[alias] = name

    for alias, owner in aliases.items():
        if alias in schema and alias != owner:
            raise ValueError(f"define_args() alias {alias!r} of {owner!r} collides with an argument name")

    return MappingProxyType(schema)


__all__ = (
    # Kinds
    "Argument",
    "Positional",
    "Boolean",
    "String",
    "Number",
    "Array",

    # Schema
    "define_args",
)

del ArgumentType
