"""
Argosy argument binder.

Overview
- derive_options(schema, base): parser options that know every argument of a schema.
- bind(schema, parsed): turn a ParseResult into one concrete, typed value per
  declared argument, or raise the first fault met.

Binding rules
- Positionals take parsed.positionals by index, in declaration order. Extra
  tokens are ignored. Missing + required raises MissingPositionalError;
  missing + optional yields the default (or None).
- Flags take parsed.flags[name], else the default, else False (Boolean) or
  None. A required flag still None raises MissingRequiredFlagError.
- Casting per kind:
  • Boolean: "true"/"false" (any case), otherwise truthiness.
  • String / Positional: the command-line spelling of the value.
  • Number: loose numeric reading (InvalidNumberError otherwise).
  • Array: every occurrence is stripped of one pair of brackets, split on
    commas, emptied parts dropped; quoted parts raise QuotedArrayElementError.
  • allowed violations raise InvalidChoiceError (per element for Array).
- Dependencies: a used argument (Boolean: bound to True; others: supplied on
  argv) needs every dependency to be truthy, or UnmetDependencyError is raised.

Notes
- Faults are raised eagerly; no partial mapping is ever returned.
- The returned mapping is read-only.
"""
import re
from types import MappingProxyType

from .faults import (
    InvalidChoiceError,
    InvalidNumberError,
    MissingPositionalError,
    MissingRequiredFlagError,
    QuotedArrayElementError,
    SplitArrayWarning,
    UnmetDependencyError,
    trigger,
)
from .parser import ParserOptions, ParseResult
from .utils import *

_COMMAS = re.compile(r"\s*,\s*")


def derive_options(schema, base=Unset, /):
    """
    Merge a command schema into parser options.

    - Boolean names are declared boolean and default to False.
    - Array names are declared array (and forced string, so numeric-looking
      elements keep their spelling); a string default becomes a one-item list.
    - String names are forced string.
    - alias fields feed the alias map.
    - Defaults come from the schema; defaults of base win.
    - The unknown-flag policy knows every schema name and alias, plus whatever
      base already knows.
    """
    base = coalesce(base, ParserOptions())
    if not isinstance(base, ParserOptions):
        raise TypeError("derive_options() second argument must be parser options")

    booleans, arrays, strings = set(), set(), set()
    aliases, defaults = {}, {}

    for name, argument in schema.items():
        match argument.type:
            case "positional":
                continue
            case "boolean":
                booleans.add(name)
                defaults[name] = coalesce(argument.default, False)
            case "array":
                arrays.add(name)
                strings.add(name)
                if argument.default is not Unset:
                    defaults[name] = list(argument.default)
            case "string":
                strings.add(name)
                if argument.default is not Unset:
                    defaults[name] = argument.default
            case _:
                if argument.default is not Unset:
                    defaults[name] = argument.default
        if argument.alias is not None:
            aliases[argument.alias] = name

    def known(name):
        return name in schema or name in aliases or base.knows(name)

    return base.merge(
        boolean=base.boolean | booleans,
        array=base.array | arrays,
        string=base.string | strings,
        alias={**base.alias, **aliases},
        defaults={**defaults, **base.defaults},
        known=known,
    )


def _choose(name, argument, value, raw):
    if argument.allowed and value not in argument.allowed:
        raise InvalidChoiceError(name, raw, argument.allowed, positional=argument.type == "positional")
    return value


def _split(name, argument, raw):
    elements = raw if isinstance(raw, list | tuple) else [raw]
    result = []
    warned = False
    for element in map(stringify, elements):
        if not warned and element.startswith("[") != element.endswith("]"):
            trigger(SplitArrayWarning(name, element))
            warned = True
        if element.startswith("[") and element.endswith("]"):
            element = element[1:-1]
        for part in filter(None, _COMMAS.split(element)):
            if part[0] == part[-1] and part[0] in "\"'":
                raise QuotedArrayElementError(name, part)
            result.append(_choose(name, argument, part, part))
    return result


def _cast(name, argument, raw):
    match argument.type:
        case "boolean":
            if isinstance(raw, str) and raw.lower() in ("true", "false"):
                value = raw.lower() == "true"
            else:
                value = bool(raw)
            return _choose(name, argument, value, raw)
        case "number":
            if (value := tonumber(raw)) is None:
                raise InvalidNumberError(name, raw)
            return _choose(name, argument, value, raw)
        case "array":
            return _split(name, argument, raw)
        case _:
            return _choose(name, argument, stringify(raw), raw)


def bind(schema, parsed, /):
    """
    Bind a parse result against a schema.

    Parameters
    - schema: Mapping[str, Argument] (see define_args).
    - parsed: ParseResult.

    Returns
    - MappingProxyType[str, Any]: one value per declared name, in declaration order.

    Raises
    - MissingPositionalError, MissingRequiredFlagError, InvalidNumberError,
      InvalidChoiceError, QuotedArrayElementError, UnmetDependencyError.
    """
    if not isinstance(parsed, ParseResult):
        raise TypeError("bind() second argument must be a parse result")

    bound = {}
    supplied = set()
    slot = 0

    for name, argument in schema.items():
        if argument.type == "positional":
            if slot < len(parsed.positionals):
                bound[name] = _cast(name, argument, parsed.positionals[slot])
                supplied.add(name)
            elif argument.required:
                raise MissingPositionalError(name)
            else:
                bound[name] = coalesce(argument.default)
            slot += 1
            continue

        raw = parsed.flags.get(name, argument.default)
        if raw is Unset and argument.type == "boolean":
            raw = False
        value = None if raw is Unset or raw is None else _cast(name, argument, raw)
        if value is None and argument.required:
            raise MissingRequiredFlagError(name)
        if value is None and argument.type == "array":
            value = []
        bound[name] = value
        if name in parsed.seen:
            supplied.add(name)

    for name, argument in schema.items():
        if not argument.dependencies:
            continue
        if argument.type == "boolean":
            used = bound[name] is True
        else:
            used = name in supplied
        if not used:
            continue
        missing = [
            dependency for dependency in argument.dependencies
            if not (bound[dependency] if dependency in bound else parsed.flags.get(dependency))
        ]
        if missing:
            raise UnmetDependencyError(name, missing)

    return MappingProxyType(bound)


__all__ = (
    "derive_options",
    "bind",
)
