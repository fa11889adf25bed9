"""
Argosy package metadata.

The launcher falls back to the host project's metadata when the main command
does not declare a name or version:
- read_metadata(start): best-effort read of the nearest pyproject.toml
  ([project] name, version, description). A dynamic version is looked up in
  the installed distribution. Any failure yields PackageMetadata() ("cli").
- MetadataCache: reads once, then serves the same value.
"""
import importlib.metadata
import os
import tomllib
from typing import NamedTuple

from .logs import log
from .utils import *

DEFAULT_NAME = "cli"


class PackageMetadata(NamedTuple):
    name: str = DEFAULT_NAME
    version: str | None = None
    description: str | None = None
    source: str | None = None


def _find(start):
    current = os.path.abspath(start)
    while True:
        if os.path.isfile(candidate := os.path.join(current, "pyproject.toml")):
            return candidate
        if (parent := os.path.dirname(current)) == current:
            return None
        current = parent


def read_metadata(start=Unset, /):
    """
    Read project metadata from the nearest pyproject.toml at or above start.

    Parameters
    - start: str | PathLike, defaults to the current working directory.

    Returns
    - PackageMetadata. Scoped names ("@scope/name", "scope/name") keep only
      their last segment.
    """
    start = os.fspath(coalesce(start, os.getcwd()))
    if (path := _find(start)) is None:
        return PackageMetadata()
    try:
        with open(path, "rb") as file:
            project = tomllib.load(file).get("project", {})
    except (OSError, tomllib.TOMLDecodeError) as exception:
        log("debug", "cannot read", path, "-", exception)
        return PackageMetadata()

    name = project.get("name")
    if not isinstance(name, str) or not name.strip():
        return PackageMetadata(source=path)
    name = name.strip().rpartition("/")[2]

    version = project.get("version")
    if not isinstance(version, str) and "version" in project.get("dynamic", ()):
        try:
            version = importlib.metadata.version(name)
        except importlib.metadata.PackageNotFoundError:
            version = None
    if not isinstance(version, str):
        version = None

    description = project.get("description")
    if not isinstance(description, str) or not description.strip():
        description = None

    return PackageMetadata(name, version, description, path)


class MetadataCache:
    """
    Memoized metadata reader.

    Parameters
    - reader: Callable[[start], PackageMetadata], defaults to read_metadata.
    - start: where the reader starts looking (defaults to the working directory).
    """

    def __init__(self, reader=read_metadata, /, *, start=Unset):
        if not callable(reader):
            raise TypeError("MetadataCache() argument must be callable")
        self._reader = reader
        self._start = start
        self._value = Unset

    def get(self):
        """Return the cached metadata, reading it on first use."""
        if self._value is Unset:
            value = self._reader(self._start)
            if not isinstance(value, PackageMetadata):
                raise TypeError("metadata reader must return package metadata")
            self._value = value
        return self._value

    def clear(self):
        self._value = Unset


__all__ = (
    "DEFAULT_NAME",
    "PackageMetadata",
    "read_metadata",
    "MetadataCache",
)
