"""
Argosy command definitions.

What this module provides
- CommandMeta: (name, version, description, hidden, aliases) of a command.
- Command: the immutable definition of one node of a command tree:
  • meta and an ordered argument schema (see argosy.arguments.define_args),
  • run(ctx), the handler (a plain function or a coroutine function),
  • an optional static map of subcommands (name -> command spec),
  • lifecycle hooks: on_cmd_init / on_cmd_exit around the matched command,
    on_launcher_init / on_launcher_exit around a whole dispatch (root only).
- CommandContext: (args, raw) handed to run() and to the command hooks.
- define_command(...): build a Command, accepting the legacy names
  setup / cleanup / sub_commands (newer names win).
- command(...): decorator form, turning a handler into a Command.

Command specs
- A subcommand may be given as a Command, as a zero-argument callable returning
  one (resolved lazily), as "package.module" / "package.module:attribute", or
  as the path of a .py file (see argosy.loader).

Quick start
    from argosy import define_command, define_args, Positional, Boolean

    greet = define_command(
        {"name": "greet", "description": "say hello"},
        args=define_args({
            "who": Positional("who to greet", required=True),
            "loud": Boolean(alias="l"),
        }),
        run=lambda ctx: print(("HELLO %s" if ctx.args["loud"] else "hello %s") % ctx.args["who"]),
    )
"""
import functools
import inspect
import operator
import os
import re
import warnings
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import NamedTuple

from .arguments import define_args
from .utils import *


class CommandMeta(NamedTuple):
    """Descriptive metadata of a command."""
    name: str | None = None
    version: str | None = None
    description: str | None = None
    hidden: bool = False
    aliases: tuple = ()


class CommandContext(NamedTuple):
    """
    What a handler receives.

    - args: read-only mapping, one bound value per declared argument.
    - raw: the argv tokens that were bound for this command.
    """
    args: Mapping
    raw: tuple


class CommandType(type):
    """
    Metaclass giving commands read-only properties and stable representations.

    - every name in __introspectable__ becomes a mirror() property.
    - __displayable__ narrows what __repr__/__rich_repr__ show.
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

        return self


def _process_meta(meta, /):
    """
    Internal: normalize the meta field.

    Accepts Unset, a name, a CommandMeta or a mapping with its fields.
    """
    match meta:
        case UnsetType():
            return CommandMeta()
        case CommandMeta():
            fields = meta._asdict()
        case str():
            fields = {"name": meta}
        case Mapping():
            unknown = set(meta) - set(CommandMeta._fields)
            if unknown:
                raise TypeError("command meta got unexpected fields: %s" % ", ".join(sorted(unknown)))
            fields = dict(meta)
        case _:
            raise TypeError("command 'meta' must be a name, a mapping or a command meta")

    for field in ("name", "version", "description"):
        value = fields.get(field)
        if value is not None and not isinstance(value, str):
            raise TypeError(f"command meta {field!r} must be a string")
        if isinstance(value, str) and not value.strip():
            raise ValueError(f"command meta {field!r} cannot be empty")
    aliases = fields.get("aliases", ())
    if isinstance(aliases, str) or not isinstance(aliases, Iterable):
        raise TypeError("command meta 'aliases' must be an iterable of strings")
    aliases = tuple(aliases)
    if not all(isinstance(alias, str) and alias for alias in aliases):
        raise TypeError("command meta 'aliases' must be an iterable of strings")
    return CommandMeta(**fields | {"aliases": aliases, "hidden": bool(fields.get("hidden", False))})


def _process_commands(commands, /):
    if commands is Unset:
        return None
    if not isinstance(commands, Mapping):
        raise TypeError("command 'commands' must be a mapping of names to command specs")
    for name, spec in commands.items():
        if not isinstance(name, str) or not name or name.startswith("-"):
            raise ValueError(f"command name {name!r} must be a non-empty string not starting with '-'")
        if not isinstance(spec, Command | str | os.PathLike) and not callable(spec):
            raise TypeError(f"command spec {name!r} must be a command, a callable, a module reference or a path")
    return MappingProxyType(dict(commands))


class Command(metaclass=CommandType):
    """
    Immutable command definition.

    Parameters
    - meta: Unset | str | Mapping | CommandMeta
    - args: Mapping[str, Argument | Mapping] (normalized through define_args)
    - run: Callable[[CommandContext], Any] | Unset
    - commands: Mapping[str, command spec] | Unset
    - on_cmd_init / on_cmd_exit: Callable[[CommandContext], Any] | Unset
    - on_launcher_init / on_launcher_exit: Callable[[], Any] | Unset

    Callables may return awaitables; the launcher awaits them.
    """

    __introspectable__ = (
        "meta",
        "run",
        "on_cmd_init",
        "on_cmd_exit",
        "on_launcher_init",
        "on_launcher_exit",
    )
    __displayable__ = ("meta", "args", "commands")

    def __init__(
            self,
            meta=Unset,
            /,
            *,
            args=Unset,
            run=Unset,
            commands=Unset,
            on_cmd_init=Unset,
            on_cmd_exit=Unset,
            on_launcher_init=Unset,
            on_launcher_exit=Unset,
    ):
        self._meta = _process_meta(meta)

        if not isinstance(args := coalesce(args, {}), Mapping):
            raise TypeError("command 'args' must be a mapping")
        self._args = define_args(args)

        self._commands = _process_commands(commands)

        for name, hook in (
                ("run", run),
                ("on_cmd_init", on_cmd_init),
                ("on_cmd_exit", on_cmd_exit),
                ("on_launcher_init", on_launcher_init),
                ("on_launcher_exit", on_launcher_exit),
        ):
            if hook is not Unset and not callable(hook):
                raise TypeError(f"command {name!r} must be callable")
            setattr(self, "_" + name, coalesce(hook))

    @property
    def args(self):
        """Ordered, read-only argument schema."""
        return self._args

    @property
    def commands(self):
        """Read-only static subcommand map, or None."""
        return self._commands

    @property
    def name(self):
        return self._meta.name

    @property
    def hidden(self):
        return self._meta.hidden

    @property
    def aliases(self):
        return self._meta.aliases

    @property
    def runnable(self):
        """True when the command has a run() handler."""
        return self._run is not None

    def replace(self, **overrides):
        """Return a copy of this command with some fields replaced."""
        fields = {
            "args": self._args,
            "run": self._run,
            "commands": self._commands,
            "on_cmd_init": self._on_cmd_init,
            "on_cmd_exit": self._on_cmd_exit,
            "on_launcher_init": self._on_launcher_init,
            "on_launcher_exit": self._on_launcher_exit,
        }
        fields = {name: Unset if value is None else value for name, value in fields.items()}
        return type(self)(overrides.pop("meta", self._meta), **fields | overrides)


_LEGACY = (
    ("setup", "on_cmd_init"),
    ("cleanup", "on_cmd_exit"),
    ("sub_commands", "commands"),
)


def define_command(meta=Unset, /, **options):
    """
    Build a Command.

    Accepts every Command keyword plus the legacy spellings
    - setup        -> on_cmd_init
    - cleanup      -> on_cmd_exit
    - sub_commands -> commands
    When both spellings are given, the newer one wins. Legacy spellings emit a
    DeprecationWarning.
    """
    for legacy, modern in _LEGACY:
        if legacy not in options:
            continue
        value = options.pop(legacy)
        warnings.warn(
            f"define_command() {legacy!r} is deprecated, use {modern!r} instead",
            DeprecationWarning,
            stacklevel=2,
        )
        if options.get(modern, Unset) is Unset:
            options[modern] = value
    return Command(meta, **options)


def command(source=Unset, /, **options):
    """
    Create a Command from a handler, or return a decorator doing so.

    - command(func, **options) -> Command
    - @command(**options) above a function -> Command

    When meta is omitted, the name is derived from the function name
    (underscores become dashes) and the description from its docstring.
    """
    @rename("command")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        fields = dict(options)
        if (meta := fields.pop("meta", Unset)) is Unset:
            doc = inspect.getdoc(source)
            meta = {
                "name": source.__name__.strip("_").replace("_", "-"),
                "description": doc.splitlines()[0] if doc else None,
            }
        return define_command(meta, run=source, **fields)

    return wrapper(source) if source is not Unset else wrapper


__all__ = (
    "CommandMeta",
    "CommandContext",
    "Command",
    "define_command",
    "command",
)

del CommandType
