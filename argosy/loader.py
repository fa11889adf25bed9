"""
Argosy command loading.

Overview
- COMMAND_FILENAMES: the file names a command directory may use, in order of
  preference ("cmd.py" first, then "command.py").
- CommandCache: path -> Command cache. Entries are written once and never
  overwritten, so concurrent lookups of the same path agree.
- ModuleLoader: the load_module(path) capability used by the resolver.
  • load_file(path): import a command file and extract its command.
  • load_command(path): load_file() for a command file, a directory holding
    one, or a path given without its ".py" extension.
  • load_spec(spec): turn any command spec (Command, lazy callable, module
    reference, file path) into a Command.

Command extraction from a module
- the module attribute `default`, when present, must be a Command;
- otherwise exactly one public module-level Command must exist.
Anything else raises InvalidCommandModuleError.
"""
import hashlib
import importlib
import importlib.util
import os
import sys
from collections.abc import Mapping
from types import ModuleType

from .commands import Command
from .faults import CommandException, InvalidCommandModuleError, NoCommandFileError
from .utils import *

COMMAND_FILENAMES = ("cmd.py", "command.py")
COMMAND_EXTENSIONS = (".py",)


class CommandCache:
    """Write-once cache of loaded commands, keyed by absolute file path."""

    def __init__(self):
        self._entries = {}

    def get(self, path, default=None, /):
        return self._entries.get(path, default)

    def setdefault(self, path, command, /):
        return self._entries.setdefault(path, command)

    def clear(self):
        self._entries.clear()

    def __contains__(self, path):
        return path in self._entries

    def __len__(self):
        return len(self._entries)


def _extract(module, source, /):
    if (default := getattr(module, "default", Unset)) is not Unset:
        if not isinstance(default, Command):
            raise InvalidCommandModuleError(source, "'default' is not a command")
        return default

    found = []
    for name, object in vars(module).items():
        if isinstance(object, Command) and not name.startswith("_") and object not in found:
            found.append(object)
    match len(found):
        case 1:
            return found[0]
        case 0:
            raise InvalidCommandModuleError(source, "the module has no default export")
        case _:
            raise InvalidCommandModuleError(source, "the module defines several commands and no 'default'")


def _pathlike(text):
    separators = {os.sep, os.altsep} - {None}
    return (
        text.endswith(".py")
        or any(separator in text for separator in separators)
        or os.path.isfile(text)
        or command_file(text) is not None
    )


class ModuleLoader:
    """
    Load commands from files, modules and lazy specs.

    Parameters
    - cache: CommandCache, shared between loaders when given.

    Calling the loader is the same as load_file().
    """

    def __init__(self, cache=Unset, /):
        cache = coalesce(cache, CommandCache())
        if not isinstance(cache, CommandCache):
            raise TypeError("ModuleLoader() argument must be a command cache")
        self._cache = cache
        self._specs = {}

    @property
    def cache(self):
        return self._cache

    def __call__(self, path, /):
        return self.load_file(path)

    def load_file(self, path, /):
        """
        Import the command file at path (cached by absolute path).

        Raises
        - InvalidCommandModuleError: missing file, import failure or no command.
        - CommandException raised while importing propagates unchanged.
        """
        path = os.path.abspath(os.fspath(path))
        if (command := self._cache.get(path)) is not None:
            return command
        if not os.path.isfile(path):
            raise InvalidCommandModuleError(path, "no such file")

        name = "_argosy_command_" + hashlib.sha1(path.encode()).hexdigest()[:16]
        spec = importlib.util.spec_from_file_location(name, path)
        if spec is None or spec.loader is None:
            raise InvalidCommandModuleError(path, "not an importable python file")
        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except CommandException:
            sys.modules.pop(name, None)
            raise
        except Exception as exception:
            sys.modules.pop(name, None)
            raise InvalidCommandModuleError(path, "import failed (%s: %s)" % (type(exception).__name__, exception)) from exception

        return self._cache.setdefault(path, _extract(module, path))

    def load_command(self, path, /, *, base=Unset):
        """
        Load the command a filesystem path points at.

        Parameters
        - path: str | PathLike, relative paths are taken from base.
        - base: str | PathLike, defaults to the current working directory.

        Candidates
        - an existing directory: its command files, in COMMAND_FILENAMES order;
        - an existing file: the file itself;
        - a missing path: the path with each of COMMAND_EXTENSIONS appended.

        The first existing candidate is loaded with load_file().

        Raises
        - NoCommandFileError: no candidate exists (filenames lists what was tried).
        - InvalidCommandModuleError: the candidate does not provide a command.
        """
        base = os.fspath(coalesce(base, os.getcwd()))
        path = os.path.normpath(os.path.join(base, os.fspath(path)))
        if os.path.isdir(path):
            candidates = [os.path.join(path, filename) for filename in COMMAND_FILENAMES]
        elif os.path.exists(path):
            candidates = [path]
        else:
            candidates = [path + extension for extension in COMMAND_EXTENSIONS]

        for candidate in candidates:
            if os.path.isfile(candidate):
                return self.load_file(candidate)
        raise NoCommandFileError(path, filenames=map(os.path.basename, candidates))

    def _load_reference(self, reference):
        module, _, attribute = reference.partition(":")
        try:
            module = importlib.import_module(module)
        except ImportError as exception:
            raise InvalidCommandModuleError(reference, "cannot import %r" % exception.name) from exception
        if not attribute:
            return _extract(module, reference)
        try:
            command = getattr(module, attribute)
        except AttributeError:
            raise InvalidCommandModuleError(reference, "no attribute %r" % attribute) from None
        if not isinstance(command, Command):
            raise InvalidCommandModuleError(reference, "%r is not a command" % attribute)
        return command

    def load_spec(self, spec, /):
        """
        Resolve a command spec into a Command.

        Accepted specs
        - Command: returned as is.
        - PathLike, or str that ends with ".py", holds a path separator or names
          an existing file or command directory: load_command().
        - "package.module[:attribute]": imported; the attribute (or the module's
          command) is used.
        - callable: called without arguments; may return a Command, a module, or
          a mapping with a "default" command. Results are memoized per spec.
        """
        if isinstance(spec, Command):
            return spec
        if isinstance(spec, os.PathLike):
            return self.load_command(spec)
        if isinstance(spec, str):
            if _pathlike(spec):
                return self.load_command(spec)
            return self._load_reference(spec)
        if not callable(spec):
            raise TypeError("load_spec() argument must be a command spec")

        try:
            return self._specs[spec]
        except KeyError:
            pass
        except TypeError:
            raise TypeError("load_spec() callable specs must be hashable") from None

        result = spec()
        match result:
            case Command():
                command = result
            case ModuleType():
                command = _extract(result, getattr(result, "__name__", repr(spec)))
            case Mapping() if isinstance(result.get("default"), Command):
                command = result["default"]
            case _:
                raise InvalidCommandModuleError(getattr(spec, "__qualname__", repr(spec)), "the lazy spec has no default export")
        return self._specs.setdefault(spec, command)


def command_file(directory, /):
    """Return the first existing command file of directory, or None."""
    for filename in COMMAND_FILENAMES:
        if os.path.isfile(path := os.path.join(directory, filename)):
            return path
    return None


__all__ = (
    "COMMAND_FILENAMES",
    "COMMAND_EXTENSIONS",
    "CommandCache",
    "ModuleLoader",
    "command_file",
)
