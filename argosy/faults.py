"""
Argosy faults (errors and warnings) and rendering.

Scope
- FaultCode: stable numeric identifiers for every user-facing issue, grouped
  by domain (routing, flags, positionals, delegated, warnings).
- CommandException / CommandWarning: base types carrying a message plus
  options (code, title, hint, structured context) that render themselves with
  rich in a lowercased, actionable tone.
- trigger(): single entry point to surface a fault (raise, warn or print).
- getdoc(): optional description lookup for a code from the host application.

Structured context
- Every concrete fault keeps the values it was built from as attributes
  (name, raw, allowed, missing, attempted, suggestion, path, ...), so callers
  and tests never need to parse messages.

Integration
- The parser, binder and resolver raise faults (or warn, for warnings).
- The launcher catches them and calls trigger(fault, shell=True, ...), which
  renders through a rich console on stderr. Faults never exit the process.
"""
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across argosy (stable identifiers).

    grouping
    - routing (1110x)
      • UNKNOWN_COMMAND, NO_COMMAND_FILE, INVALID_COMMAND_MODULE, INVALID_CONFIGURATION
    - flags (1111x)
      • UNKNOWN_FLAG, MISSING_REQUIRED_FLAG, INVALID_NUMBER, INVALID_CHOICE,
        QUOTED_ARRAY_ELEMENT, UNMET_DEPENDENCY
    - positionals (1112x)
      • MISSING_POSITIONAL
    - delegated errors (11131)
      • DELEGATED_ERROR
    - warnings (121xx)
      • UNRECOGNIZED_FLAG, SPLIT_ARRAY, MISSING_COMMAND
    """
    # --- routing errors (11xxx) ---
    UNKNOWN_COMMAND             = 11101
    NO_COMMAND_FILE             = 11102
    INVALID_COMMAND_MODULE      = 11103
    INVALID_CONFIGURATION       = 11104

    # --- flag errors (11xxx) ---
    UNKNOWN_FLAG                = 11111
    MISSING_REQUIRED_FLAG       = 11112
    INVALID_NUMBER              = 11113
    INVALID_CHOICE              = 11114
    QUOTED_ARRAY_ELEMENT        = 11115
    UNMET_DEPENDENCY            = 11116

    # --- positional errors (11xxx) ---
    MISSING_POSITIONAL          = 11121

    # --- delegated errors (11xxx) ---
    DELEGATED_ERROR             = 11131

    # --- warnings (12xxx) ---
    UNRECOGNIZED_FLAG           = 12111
    SPLIT_ARRAY                 = 12112
    MISSING_COMMAND             = 12113

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _spell(name):
    # flag names are stored bare; render them the way they are typed
    return ("-" if len(name) == 1 else "--") + name


def _render(fault, palette, kind):
    main = __import__("__main__")
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = fault.options.get("colorful", True)
    fancy = fault.options.get("fancy", False)

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    prog = text(getattr(main, "__prog__", fault.options.get("prog", "cli")), styler("prog-name"))
    header = Text.assemble(
        "[ ",
        prog,
        " — ",
        text(fault.options["code"].normalize(), styler("code")),
        " | ",
        text(fault.options["title"].title(), styler(kind + "-title")),
        " ]"
    )
    message = text(fault.message, styler(kind + "-message"))
    renders = [message]
    if hint := fault.options.get("hint"):
        renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

    if fancy:
        return Panel(Group(*renders), title=header, title_align="left")
    return Group(header, *renders)


class CommandException(Exception):
    """
    base class of every argosy error.

    options
    - code: FaultCode, title: str, hint: str (defaults per subclass)
    - prog, shell, fancy, colorful, console: rendering context merged by trigger()
    """
    code = FaultCode.DELEGATED_ERROR
    title = "command error"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        code = options.get("code", type(self).code)
        self.options = MappingProxyType({"code": code, "title": type(self).title, "docs": getdoc(code)} | options)

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",

            # body
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        }, "error")

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        self.options.get("console", console).print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        clone = type(self).__new__(type(self), *self.args)
        clone.__dict__.update(self.__dict__)
        clone.options = MappingProxyType({**self.options, **overrides})
        return clone


class UnknownFlagError(CommandException):
    """a flag that no declaration knows about, under the strict policy."""
    code = FaultCode.UNKNOWN_FLAG
    title = "unknown flag"

    def __init__(self, name, /, **options):
        super().__init__("unknown flag %r" % _spell(name), **{
            "hint": "check the spelling, or run with --help to see the accepted flags",
        } | options)
        self.name = name


class MissingPositionalError(CommandException):
    """a required positional slot had no token to fill it."""
    code = FaultCode.MISSING_POSITIONAL
    title = "missing positional argument"

    def __init__(self, name, /, **options):
        super().__init__("missing required positional argument <%s>" % name, **{
            "hint": "pass a value for <%s> after the command" % name,
        } | options)
        self.name = name


class MissingRequiredFlagError(CommandException):
    """a required flag was neither supplied nor defaulted."""
    code = FaultCode.MISSING_REQUIRED_FLAG
    title = "missing required flag"

    def __init__(self, name, /, **options):
        super().__init__("missing required argument %r" % _spell(name), **{
            "hint": "add %s=<value> to the invocation" % _spell(name),
        } | options)
        self.name = name


class InvalidNumberError(CommandException):
    """a number argument received text that does not read as a number."""
    code = FaultCode.INVALID_NUMBER
    title = "invalid number"

    def __init__(self, name, raw, /, **options):
        super().__init__("invalid number provided for %r: %r" % (_spell(name), raw), **{
            "hint": "use digits, optionally signed or with a decimal part (for example: %s=42)" % _spell(name),
        } | options)
        self.name = name
        self.raw = raw


class InvalidChoiceError(CommandException):
    """a value outside the closed set of allowed values."""
    code = FaultCode.INVALID_CHOICE
    title = "invalid choice"

    def __init__(self, name, raw, allowed, /, **options):
        allowed = tuple(allowed)
        label = "<%s>" % name if options.pop("positional", False) else _spell(name)
        super().__init__("invalid value for %s: %r" % (label, raw), **{
            "hint": "allowed values are: %s" % ", ".join(map(str, allowed)),
        } | options)
        self.name = name
        self.raw = raw
        self.allowed = allowed


class QuotedArrayElementError(CommandException):
    """an array element wrapped in quotes, which the shell should have removed."""
    code = FaultCode.QUOTED_ARRAY_ELEMENT
    title = "quoted array element"

    def __init__(self, name, raw, /, **options):
        super().__init__("array element %s for %r must not be quoted" % (raw, _spell(name)), **{
            "hint": "write elements bare, separated by commas (for example: %s=a,b,c)" % _spell(name),
        } | options)
        self.name = name
        self.raw = raw


class UnmetDependencyError(CommandException):
    """an argument was used while the arguments it depends on were not set."""
    code = FaultCode.UNMET_DEPENDENCY
    title = "unmet dependency"

    def __init__(self, name, missing, /, **options):
        missing = tuple(missing)
        verb = "is" if len(missing) == 1 else "are"
        spelled = ", ".join(map(_spell, missing))
        super().__init__("argument %s can only be used when %s %s set" % (_spell(name), spelled, verb), **{
            "hint": "also pass %s, or drop %s" % (spelled, _spell(name)),
        } | options)
        self.name = name
        self.missing = missing


class UnknownCommandError(CommandException):
    """the first routing segment matches no command."""
    code = FaultCode.UNKNOWN_COMMAND
    title = "unknown command"

    def __init__(self, attempted, /, *, suggestion=None, expected=None, **options):
        message = "unknown command or arguments: %s" % attempted
        if suggestion:
            message += " (Did you mean: `%s`?)" % suggestion
        if expected:
            hint = "no valid command directory found, expected: %s" % expected
        else:
            hint = "run with --help to see the available commands"
        super().__init__(message, **{"hint": hint} | options)
        self.attempted = attempted
        self.suggestion = suggestion
        self.expected = expected


class NoCommandFileError(CommandException):
    """a routed directory holds no command file."""
    code = FaultCode.NO_COMMAND_FILE
    title = "no command file"

    def __init__(self, path, /, *, filenames=(), **options):
        filenames = tuple(filenames)
        super().__init__("no valid command file found in %s" % path, **{
            "hint": "add one of %s to that directory" % ", ".join(filenames) if filenames else "add a command file to that directory",
        } | options)
        self.path = path
        self.filenames = filenames


class InvalidCommandModuleError(CommandException):
    """a command module (or spec) that does not provide a command."""
    code = FaultCode.INVALID_COMMAND_MODULE
    title = "invalid command module"

    def __init__(self, source, reason, /, **options):
        super().__init__("cannot load a command from %s: %s" % (source, reason), **{
            "hint": "expose `default = define_command(...)` or a single module-level command",
        } | options)
        self.source = source
        self.reason = reason


class InvalidConfigurationError(CommandException):
    """a launcher that has nothing to run."""
    code = FaultCode.INVALID_CONFIGURATION
    title = "invalid cli configuration"

    def __init__(self, reason, /, **options):
        super().__init__("invalid cli configuration: %s" % reason, **{
            "hint": "give the main command a run() handler, static commands, or a commands directory",
        } | options)
        self.reason = reason


class DelegatedCommandError(CommandException):
    """an exception escaping a user handler or lifecycle hook."""
    code = FaultCode.DELEGATED_ERROR
    title = "command failed"

    def __init__(self, exception, /, *, stage="run", **options):
        super().__init__("%s failed: %s" % (stage, str(exception) or type(exception).__name__), **{
            "hint": "rerun with --debug for the full traceback",
        } | options)
        self.exception = exception
        self.stage = stage


class CommandWarning(ABC, Warning):
    """base class of every argosy warning."""
    code = FaultCode.UNRECOGNIZED_FLAG
    title = "warning"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        code = options.get("code", type(self).code)
        self.options = MappingProxyType({"code": code, "title": type(self).title, "docs": getdoc(code)} | options)

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "warning-title": "bold #FFC2E0",

            # body
            "warning-message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        }, "warning")

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=3)
        self.options.get("console", console).print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        clone = type(self).__new__(type(self), *self.args)
        clone.__dict__.update(self.__dict__)
        clone.options = MappingProxyType({**self.options, **overrides})
        return clone


class UnknownFlagWarning(CommandWarning):
    """a flag no declaration knows about, under the warn policy."""
    code = FaultCode.UNRECOGNIZED_FLAG
    title = "unknown flag"

    def __init__(self, name, /, **options):
        super().__init__("unknown flag %r was ignored" % _spell(name), **{
            "hint": "check the spelling, or run with --help to see the accepted flags",
        } | options)
        self.name = name


class SplitArrayWarning(CommandWarning):
    """an array value whose brackets look split apart by the shell."""
    code = FaultCode.SPLIT_ARRAY
    title = "split array value"

    def __init__(self, name, raw, /, **options):
        super().__init__("array value %r for %r looks split by the shell" % (raw, _spell(name)), **{
            "hint": "quote the whole list or drop the spaces (for example: %s=\"[a,b]\")" % _spell(name),
        } | options)
        self.name = name
        self.raw = raw


class MissingCommandWarning(CommandWarning):
    """a dispatcher-only command invoked without a subcommand."""
    code = FaultCode.MISSING_COMMAND
    title = "missing command"

    def __init__(self, /, **options):
        super().__init__("please specify a command", **{
            "hint": "pick one of the commands listed below",
        } | options)


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into a copy of the fault before triggering.
    - without shell=True, errors are raised and warnings go through warnings.warn;
      with shell=True, both are printed on the console option (stderr by default).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ keyed by
    FaultCode; when absent, returns None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(sys.modules["__main__"], "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "CommandException",
    "UnknownFlagError",
    "MissingPositionalError",
    "MissingRequiredFlagError",
    "InvalidNumberError",
    "InvalidChoiceError",
    "QuotedArrayElementError",
    "UnmetDependencyError",
    "UnknownCommandError",
    "NoCommandFileError",
    "InvalidCommandModuleError",
    "InvalidConfigurationError",
    "DelegatedCommandError",
    "CommandWarning",
    "UnknownFlagWarning",
    "SplitArrayWarning",
    "MissingCommandWarning",
    "FaultCode",
    "trigger",
    "getdoc",
)
