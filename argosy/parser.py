r"""
Argosy flag lexer/parser.

Overview
- ParserOptions: immutable parser configuration (boolean/array/forced-string
  names, aliases, defaults, switches and the unknown-flag policy).
- ParseResult: (positionals, flags, seen) produced by parse().
- parse(argv, options): classify every token of an argv list and build the result.

Token classification (first match wins, evaluated at the current index)
- "--"                  every later token is a positional, verbatim.
- "-5", "-1.25"         a negative number is a positional (stop_early: it and
                        all later tokens are positionals).
- "--no-name"           negated boolean: name := False when name (after alias
                        resolution) is a declared boolean; otherwise the
                        unknown-flag policy applies to that resolved name
                        and nothing is stored.
- "--name[=value]"      long flag; without "=", a following token that is
                        non-empty and does not start with "-" is its value,
                        otherwise the value is True.
- "-abc", "-n5", "-n=5" short cluster, walked left to right (see _cluster).
- anything else         positional (stop_early: it and all later tokens).

Value coercion
- True passes through untouched.
- forced-string names keep the raw text.
- boolean names turn "true"/"false" into bools and keep any other text.
- with parse_numbers, text that starts with a digit or a sign and ends with a
  digit becomes a number when it reads as one.

Storage
- array names collect a list; every occurrence on argv appends to the slot,
  which starts from the configured default when there is one.
- everything else is last-write-wins.

Notes
- parse() never raises for unknown flags unless unknown="strict"; with
  unknown="warn" it emits UnknownFlagWarning through warnings.warn.
- parse() keeps no state between calls: the same argv and options always
  produce an equal result.
"""
import copy
import re
import sys
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import NamedTuple

from .faults import UnknownFlagError, UnknownFlagWarning, trigger
from .utils import *

_NEGATIVE = re.compile(r"-\d+(\.\d+)?")
_NUMERIC = re.compile(r"[0-9+-](.*[0-9])?", re.DOTALL)
_POLICIES = ("ignore", "warn", "strict")


def _names(cls, field, names, /):
    if isinstance(names, str) or not isinstance(names, Iterable):
        raise TypeError(f"{cls.__name__} {field!r} must be an iterable of strings")
    for name in names:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__name__} {field!r} must be an iterable of strings")
    return frozenset(names)


def _aliases(cls, declarations, /):
    """
    Build the alias map from one-to-many declarations.

    - {"f": "force"}            -> f -> force, force -> force
    - {"f": ["force", "fast"]}  -> f -> force, force -> force, fast -> force
    """
    if not isinstance(declarations, Mapping):
        raise TypeError(f"{cls.__name__} 'alias' must be a mapping")
    aliases = {}
    for key, value in declarations.items():
        if not isinstance(key, str):
            raise TypeError(f"{cls.__name__} 'alias' keys must be strings")
        if isinstance(value, str):
            aliases[key] = value
            aliases[value] = value
            continue
        if not isinstance(value, Iterable) or not (values := list(value)):
            raise TypeError(f"{cls.__name__} 'alias' values must be a string or a non-empty list of strings")
        if not all(isinstance(item, str) for item in values):
            raise TypeError(f"{cls.__name__} 'alias' values must be a string or a non-empty list of strings")
        canonical = values[0]
        aliases[key] = canonical
        for item in values:
            aliases[item] = canonical
    return MappingProxyType(aliases)


class ParserOptions:
    """
    Immutable parser configuration.

    Parameters (keyword-only)
    - boolean: Iterable[str], names that never take a separate value token
      inside short clusters and accept "true"/"false".
    - array: Iterable[str], names that accumulate every occurrence into a list.
    - string: Iterable[str], names whose values are never turned into numbers.
    - alias: Mapping[str, str | Iterable[str]], one-to-many alias declarations.
    - defaults: Mapping[str, Any], values present before scanning starts.
    - negated_boolean: bool (True), understand "--no-<name>".
    - parse_numbers: bool (False), turn numeric-looking values into numbers.
    - allow_negative_numbers: bool (True), treat "-5" as a positional.
    - stop_early: bool (False), stop at the first positional.
    - unknown: "ignore" | "warn" | "strict", policy for undeclared flags.
    - known: Callable[[str], bool] | None, replaces the built-in "declared
      anywhere" test for the unknown-flag policy.
    """

    __introspectable__ = (
        "boolean",
        "array",
        "string",
        "alias",
        "defaults",
        "negated_boolean",
        "parse_numbers",
        "allow_negative_numbers",
        "stop_early",
        "unknown",
        "known",
    )

    boolean = mirror("boolean")
    array = mirror("array")
    string = mirror("string")
    negated_boolean = mirror("negated_boolean")
    parse_numbers = mirror("parse_numbers")
    allow_negative_numbers = mirror("allow_negative_numbers")
    stop_early = mirror("stop_early")
    unknown = mirror("unknown")
    known = mirror("known")

    def __init__(
            self,
            *,
            boolean=(),
            array=(),
            string=(),
            alias=MappingProxyType({}),
            defaults=MappingProxyType({}),
            negated_boolean=True,
            parse_numbers=False,
            allow_negative_numbers=True,
            stop_early=False,
            unknown="ignore",
            known=None,
    ):
        cls = type(self)
        self._boolean = _names(cls, "boolean", boolean)
        self._array = _names(cls, "array", array)
        self._string = _names(cls, "string", string)
        self._alias = _aliases(cls, alias)

        if not isinstance(defaults, Mapping):
            raise TypeError(f"{cls.__name__} 'defaults' must be a mapping")
        self._defaults = MappingProxyType(dict(defaults))

        if unknown not in _POLICIES:
            raise ValueError(f"{cls.__name__} 'unknown' must be one of {', '.join(map(repr, _POLICIES))}")
        self._unknown = unknown

        if known is not None and not callable(known):
            raise TypeError(f"{cls.__name__} 'known' must be callable")
        self._known = known

        self._negated_boolean = bool(negated_boolean)
        self._parse_numbers = bool(parse_numbers)
        self._allow_negative_numbers = bool(allow_negative_numbers)
        self._stop_early = bool(stop_early)

    @property
    def alias(self):
        """Resolved alias map (any spelling -> canonical name), read-only."""
        return self._alias

    @property
    def defaults(self):
        """Configured defaults, read-only."""
        return self._defaults

    def resolve(self, name, /):
        """Return the canonical name for name (itself when it has no alias)."""
        return self._alias.get(name, name)

    def knows(self, name, /):
        """True when name is declared anywhere (or accepted by the known predicate)."""
        if self._known is not None:
            return bool(self._known(name))
        return (
            name in self._boolean
            or name in self._array
            or name in self._string
            or name in self._alias
            or name in self._defaults
        )

    def merge(self, **overrides):
        """Return new options with the given fields replaced."""
        fields = {name: getattr(self, "_" + name) for name in type(self).__introspectable__}
        return type(self)(**fields | overrides)

    def __eq__(self, other):
        if not isinstance(other, ParserOptions):
            return NotImplemented
        return all(
            getattr(self, "_" + name) == getattr(other, "_" + name)
            for name in type(self).__introspectable__
        )

    __hash__ = None

    def __repr__(self):
        return "parser-options(%s)" % ", ".join(
            "%s=%r" % (name, getattr(self, name)) for name in type(self).__introspectable__
        )


class ParseResult(NamedTuple):
    """
    Outcome of parse().

    - positionals: non-flag tokens in argv order.
    - flags: canonical flag name -> value (str, bool, number or list).
    - seen: names assigned from argv (as opposed to defaulted).
    """
    positionals: list
    flags: dict
    seen: frozenset = frozenset()


class _Scan:
    # per-call mutable state; parse() builds a fresh one every time

    def __init__(self, tokens, options):
        self.tokens = tokens
        self.options = options
        self.positionals = []
        self.flags = copy.deepcopy(dict(options.defaults))
        self.seen = set()

    def coerce(self, name, value):
        options = self.options
        if value is True:
            return True
        if name in options._string:
            return value
        if name in options._boolean:
            if value == "true":
                return True
            if value == "false":
                return False
            return value
        if options._parse_numbers and value and _NUMERIC.fullmatch(value):
            if (number := tonumber(value)) is not None:
                return number
        return value

    def store(self, name, value):
        if name in self.options._array:
            if not isinstance(self.flags.get(name), list):
                self.flags[name] = []
            self.flags[name].append(value)
        else:
            self.flags[name] = value
        self.seen.add(name)

    def reject(self, name):
        match self.options._unknown:
            case "strict":
                raise UnknownFlagError(name)
            case "warn":
                trigger(UnknownFlagWarning(name))

    def check(self, name):
        if self.options._unknown != "ignore" and not self.options.knows(name):
            self.reject(name)

    def value(self, index):
        # the token after index, when it can serve as a value
        if index + 1 < len(self.tokens) and (token := self.tokens[index + 1]) and not token.startswith("-"):
            return token
        return Unset

    def cluster(self, index):
        """
        Walk a short cluster ("-abc") and return how many tokens it consumed.

        - boolean character: "=" after it takes the rest of the cluster as its
          value; a following non-letter character starts its value; otherwise
          True and the walk continues.
        - other character: "=rest", else any remaining text, else the next argv
          token when it does not look like a flag, else True. The walk stops.
        """
        body = self.tokens[index][1:]
        for position, char in enumerate(body):
            name = self.options.resolve(char)
            rest = body[position + 1:]
            if name in self.options._boolean:
                if rest.startswith("="):
                    self.store(name, self.coerce(name, rest[1:]))
                    return 1
                if rest and not (rest[0].isascii() and rest[0].isalpha()):
                    self.store(name, self.coerce(name, rest))
                    return 1
                self.store(name, True)
                continue

            consumed = 1
            if rest.startswith("="):
                value = rest[1:]
            elif rest:
                value = rest
            elif (value := self.value(index)) is not Unset:
                consumed = 2
            else:
                value = True
            self.store(name, self.coerce(name, value))
            self.check(name)
            return consumed
        return 1

    def run(self):
        tokens = self.tokens
        options = self.options
        index = 0
        stopped = False

        while index < len(tokens):
            token = tokens[index]

            if not token:
                index += 1
                continue

            if stopped:
                self.positionals.append(token)
                index += 1
                continue

            if token == "--":
                self.positionals.extend(tokens[index + 1:])
                break

            if options._allow_negative_numbers and _NEGATIVE.fullmatch(token):
                if options._stop_early:
                    self.positionals.extend(tokens[index:])
                    break
                self.positionals.append(token)
                index += 1
                continue

            if options._negated_boolean and token.startswith("--no-") and len(token) > 5:
                if (name := options.resolve(token[5:])) in options._boolean:
                    self.store(name, False)
                else:
                    self.reject(name)
                index += 1
                continue

            if token.startswith("--") and len(token) > 2:
                name, separator, value = token[2:].partition("=")
                consumed = 1
                if not separator:
                    if (value := self.value(index)) is not Unset:
                        consumed = 2
                    else:
                        value = True
                name = options.resolve(name)
                self.store(name, self.coerce(name, value))
                self.check(name)
                index += consumed
                continue

            if token.startswith("-") and len(token) > 1:
                index += self.cluster(index)
                continue

            self.positionals.append(token)
            if options._stop_early:
                stopped = True
            index += 1

        return ParseResult(self.positionals, self.flags, frozenset(self.seen))


def parse(argv=Unset, options=Unset, /):
    """
    Parse an argv list (without the program name) into a ParseResult.

    Parameters
    - argv: Iterable[str], defaults to sys.argv[1:]. A single string is rejected:
      splitting a command line is the shell's job.
    - options: ParserOptions, defaults to ParserOptions().

    Raises
    - TypeError: argv is not an iterable of strings, or options has the wrong type.
    - UnknownFlagError: an undeclared flag under unknown="strict".

    Example
        >>> parse(["--name", "Ada", "-v", "file.txt"], ParserOptions(boolean={"v"}))
        ParseResult(positionals=['file.txt'], flags={'name': 'Ada', 'v': True}, seen=frozenset({'name', 'v'}))
    """
    if argv is Unset:
        argv = sys.argv[1:]
    if isinstance(argv, str) or not isinstance(argv, Iterable):
        raise TypeError("parse() first argument must be an iterable of strings")
    tokens = list(argv)
    if not all(isinstance(token, str) for token in tokens):
        raise TypeError("parse() first argument must be an iterable of strings")

    options = coalesce(options, ParserOptions())
    if not isinstance(options, ParserOptions):
        raise TypeError("parse() second argument must be parser options")

    return _Scan(tokens, options).run()


__all__ = (
    "ParserOptions",
    "ParseResult",
    "parse",
)
