"""
Argosy command resolver (router).

Overview
- Resolver(root, directory=..., loader=...): maps an argv list to the command
  that should handle it, plus the argv left for that command.
- Resolution: (command, path, leftover, directory).
- Discovery: (path, command, file), one entry of a directory walk.
- wants_help(argv) / wants_version(argv): short-circuit detection.

Modes
- static: the root carries a `commands` map. The first token, when it is not
  a flag, selects a command by key, then by meta aliases (specs that fail to
  load are skipped). One level deep; unmatched argv stays with the root.
- filesystem: a commands directory. Tokens are consumed while they name
  nested subdirectories (greedy, longest match); the deepest directory must
  hold a command file (see argosy.loader.COMMAND_FILENAMES).
- neither: the root handles everything.

Faults
- UnknownCommandError: the first token names no subdirectory (filesystem
  mode). Carries the closest known command (edit distance <= 3) as suggestion.
- NoCommandFileError: a routed directory without command file.
- InvalidCommandModuleError: a command file without a command.
"""
import math
import os
from typing import NamedTuple

from .commands import Command
from .faults import CommandException, NoCommandFileError, UnknownCommandError
from .loader import COMMAND_FILENAMES, ModuleLoader, command_file
from .logs import log
from .utils import *

HELP_TOKENS = ("help", "--help", "-h")
VERSION_TOKENS = ("--version", "-v")
SUGGESTION_DISTANCE = 3


class Resolution(NamedTuple):
    """
    Result of Resolver.resolve().

    - command: the Command that handles the invocation.
    - path: routing segments consumed (empty for the root).
    - leftover: argv tokens left for the command.
    - directory: the command directory (filesystem mode), else None.
    """
    command: Command
    path: tuple
    leftover: tuple
    directory: str | None = None


class Discovery(NamedTuple):
    """A command found while walking (or listing) a command tree."""
    path: tuple
    command: Command
    file: str | None = None


def _isflag(token):
    return token.startswith("-")


def _until_sentinel(argv):
    for token in argv:
        if token == "--":
            return
        yield token


def wants_help(argv, /):
    """True when help, --help or -h appears before any "--"."""
    return any(token in HELP_TOKENS for token in _until_sentinel(argv))


def wants_version(argv, /):
    """True when --version or -v appears before any "--"."""
    return any(token in VERSION_TOKENS for token in _until_sentinel(argv))


class Resolver:
    """
    Route argv lists to commands.

    Parameters
    - root: Command, the main command.
    - directory: str | PathLike, commands directory (filesystem mode).
    - loader: ModuleLoader, shared loading capability and cache.

    Raises
    - TypeError: wrong parameter types.
    - ValueError: both a static map and a directory were given.
    """

    def __init__(self, root, /, *, directory=Unset, loader=Unset):
        if not isinstance(root, Command):
            raise TypeError("Resolver() first argument must be a command")
        if directory is not Unset and directory is not None:
            if root.commands is not None:
                raise ValueError("Resolver() static commands and a commands directory are mutually exclusive")
            directory = os.path.abspath(os.fspath(directory))
        else:
            directory = None
        loader = coalesce(loader, ModuleLoader())
        if not isinstance(loader, ModuleLoader):
            raise TypeError("Resolver() 'loader' must be a module loader")

        self._root = root
        self._directory = directory
        self._loader = loader

    @property
    def root(self):
        return self._root

    @property
    def directory(self):
        return self._directory

    @property
    def loader(self):
        return self._loader

    @property
    def mode(self):
        """Routing mode: "filesystem", "static" or None."""
        if self._directory is not None:
            return "filesystem"
        if self._root.commands is not None:
            return "static"
        return None

    def resolve(self, argv, /):
        """
        Resolve argv (without the program name) into a Resolution.

        The root handles the invocation when argv is empty or starts with a flag.
        """
        argv = tuple(argv)
        if not argv or _isflag(argv[0]):
            return Resolution(self._root, (), argv, self._directory)

        match self.mode:
            case "static":
                return self._resolve_static(argv)
            case "filesystem":
                return self._resolve_directory(argv)
        return Resolution(self._root, (), argv, None)

    def _resolve_static(self, argv):
        first, *rest = argv
        commands = self._root.commands
        if first in commands:
            return Resolution(self._loader.load_spec(commands[first]), (first,), tuple(rest), None)

        for name, spec in commands.items():
            try:
                command = self._loader.load_spec(spec)
            except CommandException as exception:
                log("debug", "skipping command", repr(name), "while matching aliases:", exception.message)
                continue
            if first in command.aliases:
                return Resolution(command, (name,), tuple(rest), None)

        return Resolution(self._root, (), argv, None)

    def _resolve_directory(self, argv):
        current = self._directory
        path = []
        for token in argv:
            if _isflag(token) or token in (".", "..") or os.sep in token or (os.altsep and os.altsep in token):
                break
            if not os.path.isdir(candidate := os.path.join(current, token)):
                break
            current = candidate
            path.append(token)

        if not path:
            raise UnknownCommandError(
                argv[0],
                suggestion=self.suggest(argv[0]),
                expected=os.path.join(self._directory, argv[0], COMMAND_FILENAMES[0]),
            )

        if (file := command_file(current)) is None:
            raise NoCommandFileError(current, filenames=COMMAND_FILENAMES)

        log("debug", "resolved", " ".join(path), "to", file)
        return Resolution(self._loader.load_file(file), tuple(path), argv[len(path):], current)

    def discover(self, segments=(), /):
        """
        Walk the commands directory (below segments) and list every visible command.

        Directories are visited in sorted order, parents before children. Hidden
        commands and files that fail to load are skipped. Symlinked directories
        are followed unless they lead back to a directory being walked.
        """
        if self._directory is None:
            return []
        base = os.path.join(self._directory, *segments)
        if not os.path.isdir(base):
            return []

        found = []

        def walk(current, path, ancestors):
            ancestors = ancestors | {os.path.realpath(current)}
            with os.scandir(current) as iterator:
                entries = sorted(
                    (entry for entry in iterator if entry.is_dir() and not entry.name.startswith((".", "__"))),
                    key=lambda entry: entry.name,
                )
            for entry in entries:
                if os.path.realpath(entry.path) in ancestors:
                    log("debug", "skipping", entry.path, "(symlink cycle)")
                    continue
                route = path + (entry.name,)
                if (file := command_file(entry.path)) is not None:
                    try:
                        command = self._loader.load_file(file)
                    except CommandException as exception:
                        log("debug", "skipping", file, "while listing commands:", exception.message)
                    else:
                        if not command.hidden:
                            found.append(Discovery(route, command, file))
                walk(entry.path, route, ancestors)

        walk(base, tuple(segments), frozenset())
        return found

    def suggest(self, attempt, /):
        """
        Return the closest discoverable command for attempt, or None.

        Distances compare attempt with the first path segment of each command;
        the first command at the smallest distance wins, if that distance is
        at most SUGGESTION_DISTANCE.
        """
        best, distance = None, math.inf
        for discovery in self.discover():
            if (current := levenshtein(attempt, discovery.path[0])) < distance:
                best, distance = " ".join(discovery.path), current
        return best if distance <= SUGGESTION_DISTANCE else None

    def children(self, resolution, /, *, recursive=False):
        """
        List the visible subcommands of a resolution as Discovery entries.

        - static mode: the root's commands (only for the root resolution).
        - filesystem mode: commands below the resolution's path (direct children
          only, unless recursive).
        """
        match self.mode:
            case "static":
                if resolution.path:
                    return []
                found = []
                for name, spec in self._root.commands.items():
                    try:
                        command = self._loader.load_spec(spec)
                    except CommandException as exception:
                        log("debug", "skipping command", repr(name), "while listing commands:", exception.message)
                        continue
                    if not command.hidden:
                        found.append(Discovery((name,), command))
                return found
            case "filesystem":
                found = self.discover(resolution.path)
                if recursive:
                    return found
                return [discovery for discovery in found if len(discovery.path) == len(resolution.path) + 1]
        return []


__all__ = (
    "HELP_TOKENS",
    "VERSION_TOKENS",
    "Resolution",
    "Discovery",
    "Resolver",
    "wants_help",
    "wants_version",
)
