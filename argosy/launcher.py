"""
Argosy launcher (dispatcher).

What this module provides
- Launcher: drives one invocation end to end and reports an Outcome.
- Outcome / State: ran | helped | versioned | failed, with the exit code.
- FileBased: (enable, root) configuration of the commands directory.
- create_cli(...): build a Launcher from a command or from inline configuration.
- run_command(command, argv, options): run a command programmatically, without
  routing, help or hooks.
- run_with_subcommands(command, argv, options): run_command() after routing
  argv through nested static command maps.
- call_command(target, args): run a command (or a command path) with a mapping
  of argument values, turned into argv by to_argv().

Dispatch order
1. root on_launcher_init
2. resolve argv (static map, commands directory, or the root itself)
3. help ("help", "--help", "-h" in the leftover argv) -> usage, helped
   version ("--version", "-v", root only) -> "name vX", versioned
4. parse + bind the leftover argv against the matched command's schema
5. matched on_cmd_init -> run -> matched on_cmd_exit -> ran
6. root on_launcher_exit, always (even when a step above failed)

Faults
- Every CommandException ends the dispatch as failed (exit code 1). In shell
  mode (the default) it is rendered with rich; otherwise it is re-raised after
  on_launcher_exit ran.
- Exceptions escaping handlers and hooks are wrapped in DelegatedCommandError.
- Only Launcher.launch() terminates the process (sys.exit), and only with
  auto_exit=True.

Debugging
- "--debug" anywhere before "--" enables debug logging for the dispatch; the
  previous logger level is restored afterwards.
- routing, help and version detection ignore "--debug". It is dropped from
  the leftover argv unless the matched command declares a "debug" argument,
  in which case the command receives it in place.
"""
import asyncio
import enum
import inspect
import os
import sys
import warnings
from collections.abc import Mapping
from typing import NamedTuple
from warnings import catch_warnings

from rich.console import Console

from .binder import bind, derive_options
from .commands import Command, CommandContext, define_command
from .faults import *
from .loader import ModuleLoader
from .logs import debugging, log
from .metadata import MetadataCache
from .parser import ParserOptions, parse
from .resolver import Resolver, wants_help, wants_version
from .usage import render_usage, render_version
from .utils import *

DEBUG_TOKEN = "--debug"


class State(enum.Enum):
    RAN = "ran"
    HELPED = "helped"
    VERSIONED = "versioned"
    FAILED = "failed"


class Outcome(NamedTuple):
    """
    Result of a dispatch.

    - state: State.
    - code: process exit code (0 unless failed).
    - resolution: the Resolution reached, when routing got that far.
    - fault: the CommandException that failed the dispatch, if any.
    """
    state: State
    code: int
    resolution: object = None
    fault: CommandException | None = None


class FileBased(NamedTuple):
    """Commands directory configuration; root None means the default location."""
    enable: bool = True
    root: str | None = None


def _default_directory(entry):
    for candidate in (os.path.join(entry, "src", "app"), os.path.join(entry, "app")):
        if os.path.isdir(candidate):
            return candidate
    return None


def _directory(command, file_based, entry):
    match file_based:
        case UnsetType():
            if command.commands is not None:
                return None
            return _default_directory(entry)
        case False | None:
            return None
        case True:
            return _default_directory(entry)
        case str() | os.PathLike():
            return os.fspath(file_based)
        case FileBased():
            pass
        case Mapping():
            file_based = FileBased(**file_based)
        case _:
            raise TypeError("'file_based' must be a bool, a path, a mapping or FileBased")
    if not file_based.enable:
        return None
    return os.fspath(file_based.root) if file_based.root is not None else _default_directory(entry)


def _parser_options(options):
    match options:
        case UnsetType():
            return ParserOptions()
        case ParserOptions():
            return options
        case Mapping():
            return ParserOptions(**options)
    raise TypeError("'options' must be parser options or a mapping of their fields")


def _strip_debug(argv):
    stripped = []
    found = False
    for index, token in enumerate(argv):
        if token == "--":
            stripped.extend(argv[index:])
            break
        if token == DEBUG_TOKEN:
            found = True
            continue
        stripped.append(token)
    return stripped, found


def _unroute(argv, path):
    # argv without the routed segments; "--debug" tokens stay where they were
    leftover, pending = [], len(path)
    for token in argv:
        if pending and token != DEBUG_TOKEN:
            pending -= 1
            continue
        leftover.append(token)
    return tuple(leftover)


class Launcher:
    """
    Dispatcher of a command tree.

    Parameters
    - command: Command, the main (root) command.
    - name / version / description: fill gaps of the root's meta (the
      project's pyproject.toml fills the remaining ones).
    - file_based: FileBased | Mapping | path | bool, commands directory. When
      omitted and the root has no static commands, "<entry>/src/app" or
      "<entry>/app" is used if it exists.
    - options: ParserOptions | Mapping, base parser options merged with each
      command schema.
    - auto_exit: bool, launch() calls sys.exit with the outcome's code.
    - show_description: bool, print the root description in its usage.
    - shell: bool, render faults (True) or re-raise them (False).
    - colorful / fancy: rendering switches.
    - console: rich Console used for every output (help and version go to
      stdout and faults to stderr by default).
    - loader: ModuleLoader, metadata: MetadataCache, chooser: example chooser.
    - entry: directory of the entry script (defaults to sys.argv[0]'s).
    """

    def __init__(
            self,
            command,
            /,
            *,
            name=Unset,
            version=Unset,
            description=Unset,
            file_based=Unset,
            options=Unset,
            auto_exit=True,
            show_description=False,
            shell=True,
            colorful=True,
            fancy=False,
            console=Unset,
            loader=Unset,
            metadata=Unset,
            chooser=Unset,
            entry=Unset,
    ):
        if not isinstance(command, Command):
            raise TypeError("Launcher() first argument must be a command")
        for field, value in (("name", name), ("version", version), ("description", description)):
            if value is not Unset and value is not None and not isinstance(value, str):
                raise TypeError(f"Launcher() {field!r} must be a string")
        if metadata is not Unset and not isinstance(metadata, MetadataCache):
            raise TypeError("Launcher() 'metadata' must be a metadata cache")

        if entry is Unset:
            entry = os.path.dirname(os.path.abspath(sys.argv[0])) if sys.argv and sys.argv[0] else os.getcwd()

        self._resolver = Resolver(
            command,
            directory=_directory(command, file_based, os.fspath(entry)),
            loader=coalesce(loader, ModuleLoader()),
        )
        self._name = coalesce(name)
        self._version = coalesce(version)
        self._description = coalesce(description)
        self._options = _parser_options(options)
        self._metadata = coalesce(metadata, MetadataCache())
        self._auto_exit = bool(auto_exit)
        self._show_description = bool(show_description)
        self._shell = bool(shell)
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)
        self._console = coalesce(console, Console())
        self._errors = coalesce(console, Console(stderr=True))
        self._chooser = chooser

    @property
    def resolver(self):
        return self._resolver

    @property
    def command(self):
        return self._resolver.root

    @property
    def prog(self):
        """Program name: root meta, then launcher configuration, then project metadata."""
        return self.command.meta.name or self._name or self._metadata.get().name

    @property
    def version(self):
        return self.command.meta.version or self._version or self._metadata.get().version

    @property
    def description(self):
        return self.command.meta.description or self._description or self._metadata.get().description

    def _emit(self, fault):
        if not self._shell:
            return trigger(fault)
        trigger(fault, shell=True, prog=self.prog, colorful=self._colorful, fancy=self._fancy, console=self._errors)

    def _usage(self, resolution, /, *, console=Unset):
        root = not resolution.path
        if root:
            description = self.description if self._show_description else None
            version = self.version
        else:
            description = resolution.command.meta.description
            version = resolution.command.meta.version
        coalesce(console, self._console).print(render_usage(
            resolution.command,
            prog=self.prog,
            path=resolution.path,
            children=self._resolver.children(resolution, recursive=True),
            version=version,
            description=description,
            root=root,
            chooser=self._chooser,
            colorful=self._colorful,
            fancy=self._fancy,
        ))

    async def _invoke(self, callable, /, *args, stage):
        if callable is None:
            return None
        try:
            result = callable(*args)
            if inspect.isawaitable(result):
                result = await result
        except CommandException:
            raise
        except Exception as exception:
            raise DelegatedCommandError(exception, stage=stage) from exception
        return result

    def _surface(self, record):
        if isinstance(record.message, CommandWarning):
            self._emit(record.message)
        else:
            warnings.warn_explicit(record.message, record.category, record.filename, record.lineno)

    def _bind(self, command, leftover):
        options = derive_options(command.args, self._options)
        captured = []
        try:
            with catch_warnings(record=True) as captured:
                warnings.simplefilter("always")
                parsed = parse(leftover, options)
                args = bind(command.args, parsed)
        finally:
            for record in captured:
                self._surface(record)
        log("debug", "parsed", parsed)
        return CommandContext(args, tuple(leftover))

    def _report(self, fault, resolution):
        if resolution is not None and isinstance(fault, MissingPositionalError | MissingRequiredFlagError | UnknownCommandError):
            self._usage(resolution, console=self._errors)
        if isinstance(fault, DelegatedCommandError):
            log("debug", "traceback of the failed", fault.stage, exc_info=fault.exception)
        self._emit(fault)

    async def _pipeline(self, argv, raw):
        root = self.command
        resolution = None
        try:
            await self._invoke(root.on_launcher_init, stage="launcher init")

            if not root.runnable and root.commands is None and self._resolver.directory is None:
                raise InvalidConfigurationError("no commands directory, no static commands and no run() handler")

            resolution = self._resolver.resolve(argv)
            if argv != raw and "debug" in resolution.command.args:
                resolution = resolution._replace(leftover=_unroute(raw, resolution.path))
            log("debug", "resolved", list(resolution.path) or "<root>", "with", list(resolution.leftover))

            if wants_help(resolution.leftover):
                self._usage(resolution)
                return Outcome(State.HELPED, 0, resolution)

            if not resolution.path and wants_version(resolution.leftover):
                self._console.print(render_version(self.prog, self.version, colorful=self._colorful))
                return Outcome(State.VERSIONED, 0, resolution)

            command = resolution.command
            if not command.runnable:
                if operands := [token for token in resolution.leftover if not token.startswith("-")]:
                    raise UnknownCommandError(operands[0])
                self._emit(MissingCommandWarning())
                self._usage(resolution)
                return Outcome(State.HELPED, 0, resolution)

            context = self._bind(command, resolution.leftover)
            await self._invoke(command.on_cmd_init, context, stage="command init")
            await self._invoke(command.run, context, stage="command")
            await self._invoke(command.on_cmd_exit, context, stage="command exit")
            return Outcome(State.RAN, 0, resolution)
        except CommandException as fault:
            if not self._shell:
                raise
            self._report(fault, resolution)
            return Outcome(State.FAILED, 1, resolution, fault)

    async def dispatch(self, argv=Unset, /):
        """
        Run one invocation and return its Outcome (never exits the process).

        Parameters
        - argv: Iterable[str] without the program name; defaults to sys.argv[1:].
        """
        argv = sys.argv[1:] if argv is Unset else argv
        if isinstance(argv, str):
            raise TypeError("dispatch() argument must be an iterable of strings")
        raw = list(argv)
        argv, debug = _strip_debug(raw)

        with debugging(debug):
            return await self._dispatch(argv, raw)

    async def _dispatch(self, argv, raw):
        try:
            outcome = await self._pipeline(argv, raw)
        finally:
            try:
                await self._invoke(self.command.on_launcher_exit, stage="launcher exit")
            except CommandException as fault:
                if not self._shell:
                    raise
                self._report(fault, None)
                exited = fault
            else:
                exited = None

        if exited is not None and outcome.state is not State.FAILED:
            return Outcome(State.FAILED, 1, outcome.resolution, exited)
        return outcome

    def launch(self, argv=Unset, /):
        """
        Dispatch synchronously; with auto_exit, terminate with the outcome's code.
        """
        outcome = asyncio.run(self.dispatch(argv))
        if self._auto_exit:
            sys.exit(outcome.code)
        return outcome


_LAUNCHER_FIELDS = (
    "name",
    "version",
    "description",
    "file_based",
    "options",
    "auto_exit",
    "show_description",
    "shell",
    "colorful",
    "fancy",
    "console",
    "loader",
    "metadata",
    "chooser",
    "entry",
)


def create_cli(source=Unset, /, **config):
    """
    Build a Launcher.

    Forms
    - create_cli(command, **launcher_options)
    - create_cli(main_command=command, **launcher_options)
    - create_cli(meta=..., args=..., run=..., commands=..., **launcher_options):
      the main command is defined inline (define_command keywords, legacy
      spellings included).

    A positional command wins over main_command, which wins over an inline
    definition.
    """
    launcher = {name: config.pop(name) for name in _LAUNCHER_FIELDS if name in config}
    main = config.pop("main_command", Unset)

    if source is not Unset:
        if not isinstance(source, Command):
            raise TypeError("create_cli() argument must be a command")
        command = source
    elif main is not Unset:
        if not isinstance(main, Command):
            raise TypeError("create_cli() 'main_command' must be a command")
        command = main
    else:
        command = define_command(config.pop("meta", Unset), **config)
        config = {}

    if config:
        raise TypeError("create_cli() got unexpected keyword arguments: %s" % ", ".join(sorted(config)))
    return Launcher(command, **launcher)


async def _wait(awaitable):
    return await awaitable


def run_command(command, argv=(), /, options=Unset):
    """
    Parse, bind and run a command directly.

    No routing, no help or version handling, no lifecycle hooks. Faults and
    handler exceptions propagate to the caller. An awaitable result is driven
    to completion with asyncio.run().

    Returns
    - whatever run() returned.
    """
    if not isinstance(command, Command):
        raise TypeError("run_command() first argument must be a command")
    if isinstance(argv, str):
        raise TypeError("run_command() second argument must be an iterable of strings")
    if not command.runnable:
        raise InvalidConfigurationError("the command has no run() handler")

    argv = list(argv)
    parsed = parse(argv, derive_options(command.args, _parser_options(options)))
    result = command.run(CommandContext(bind(command.args, parsed), tuple(argv)))
    if inspect.isawaitable(result):
        result = asyncio.run(_wait(result))
    return result


def to_argv(args, /):
    """
    Turn a mapping of argument values into argv tokens.

    - None values are skipped.
    - booleans become "--name=true" / "--name=false".
    - lists and tuples are joined with commas ("--name=a,b").
    - anything else is rendered with str() ("--name=value").

    Example
    - to_argv({"dev": True, "tags": ["a", "b"], "jobs": 4})
      -> ["--dev=true", "--tags=a,b", "--jobs=4"]
    """
    if not isinstance(args, Mapping):
        raise TypeError("to_argv() argument must be a mapping")
    argv = []
    for name, value in args.items():
        match value:
            case None:
                continue
            case bool():
                value = "true" if value else "false"
            case list() | tuple():
                value = ",".join(map(str, value))
        argv.append("--%s=%s" % (name, value))
    return argv


def call_command(target, args=Unset, /, *, options=Unset, loader=Unset, base=Unset):
    """
    Load a command when needed and run it with typed argument values.

    Parameters
    - target: Command, or a path for ModuleLoader.load_command() (a command file,
      a directory holding one, or a file path without ".py").
    - args: Mapping[str, Any], converted with to_argv().
    - options: ParserOptions | Mapping, base parser options.
    - loader: ModuleLoader used for paths.
    - base: directory relative paths are taken from (current directory).

    Returns
    - whatever run() returned.
    """
    if not isinstance(target, Command):
        loader = coalesce(loader, ModuleLoader())
        target = loader.load_command(target, base=base)
    return run_command(target, to_argv(coalesce(args, {})), options=options)


def _route(command, argv, loader):
    path = []
    while argv and command.commands is not None:
        resolution = Resolver(command, loader=loader).resolve(argv)
        if not resolution.path:
            break
        path.extend(resolution.path)
        command, argv = resolution.command, list(resolution.leftover)
    return command, tuple(path), argv


def run_with_subcommands(command, argv=(), /, options=Unset, *, loader=Unset):
    """
    Route argv through static command maps, then run the matched command.

    Leading operands descend through nested `commands` maps (keys and aliases)
    for as long as they match; the rest of argv goes to run_command().

    Raises
    - UnknownCommandError: the matched command cannot run and an operand is left.
    - InvalidConfigurationError: the matched command cannot run.
    """
    if not isinstance(command, Command):
        raise TypeError("run_with_subcommands() first argument must be a command")
    if isinstance(argv, str):
        raise TypeError("run_with_subcommands() second argument must be an iterable of strings")
    loader = coalesce(loader, ModuleLoader())
    if not isinstance(loader, ModuleLoader):
        raise TypeError("run_with_subcommands() 'loader' must be a module loader")

    command, path, argv = _route(command, list(argv), loader)
    log("debug", "routed", list(path) or "<root>", "with", argv)
    if not command.runnable and (operands := [token for token in argv if not token.startswith("-")]):
        raise UnknownCommandError(operands[0])
    return run_command(command, argv, options=options)


__all__ = (
    "State",
    "Outcome",
    "FileBased",
    "Launcher",
    "create_cli",
    "run_command",
    "to_argv",
    "call_command",
    "run_with_subcommands",
)
