"""
Argosy logging.

Overview
- logger: the package logger ("argosy"), rendered through rich.logging.RichHandler
  on a stderr console. Set up lazily and only once.
- log(level, *values): the structured logger collaborator used by the launcher
  and the resolver. Levels: debug, verbose, info, log, success, warn, warning, error.
- set_debug(enabled): switch debug output on or off.
- debugging(enabled): debug output for the duration of a with-block; the
  previous level comes back afterwards (the launcher wraps a dispatch in it
  when --debug appears on the command line).

Notes
- Nothing here configures the root logger; host applications keep control
  of their own logging tree (propagation stays enabled when the host has
  installed handlers on the root logger).
"""
import contextlib
import logging

from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger("argosy")

_LEVELS = {
    "debug": logging.DEBUG,
    "verbose": logging.DEBUG,
    "info": logging.INFO,
    "log": logging.INFO,
    "success": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logger(level=logging.WARNING, /, *, console=None):
    """
    Attach a RichHandler to the package logger (idempotent) and set its level.

    Parameters
    - level: int | str, logging level or one of the names accepted by log().
    - console: rich Console to render on; defaults to a stderr console.

    Returns
    - logging.Logger: the package logger.
    """
    if isinstance(level, str):
        try:
            level = _LEVELS[level.lower()]
        except KeyError:
            raise ValueError("unknown log level %r" % level) from None

    handlers = [handler for handler in logger.handlers if isinstance(handler, RichHandler)]
    if console is not None:
        for handler in handlers:
            logger.removeHandler(handler)
        handlers = []
    if not handlers:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_time=False,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
        )
        logger.addHandler(handler)
        handlers.append(handler)

    logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
    logger.propagate = bool(logging.getLogger().handlers)
    return logger


def set_debug(enabled=True, /):
    """Enable (or disable) debug output of the package logger."""
    return setup_logger(logging.DEBUG if enabled else logging.WARNING)


@contextlib.contextmanager
def debugging(enabled=True, /):
    """Enable debug output inside the block and restore the previous level on exit."""
    if not enabled:
        yield logger
        return
    previous = logger.level
    try:
        yield set_debug(True)
    finally:
        setup_logger(previous)


def log(level, /, *values, exc_info=None):
    """
    Log the given values joined by spaces.

    Example
    - log("debug", "resolved", ["build"], "in", "./app")
    """
    try:
        number = _LEVELS[level]
    except KeyError:
        raise ValueError("unknown log level %r" % level) from None
    if not logger.handlers:
        setup_logger()
    if logger.isEnabledFor(number):
        logger.log(number, " ".join(map(str, values)), exc_info=exc_info, stacklevel=2)


__all__ = (
    "logger",
    "setup_logger",
    "set_debug",
    "debugging",
    "log",
)
