"""
Argosy usage, version and example rendering.

Overview
- render_usage(command, ...): rich renderable with
  • header ("name vX"), optional description,
  • usage line: "<command> [command's options]" when subcommands exist,
    otherwise "[command's options] <positionals>",
  • one example invocation (see build_example),
  • available commands, grouped by parent path,
  • an options table (built-in switches, positionals, then flags with their
    type, default, required marker, allowed values and dependencies).
- render_version(name, version): "name vX".
- build_example(schema, chooser=...): tokens of a plausible invocation.

Example synthesis
- Required arguments are always present, so the example binds without a
  MissingRequiredFlagError / MissingPositionalError.
- Optional ones are picked by chooser(probability) -> bool: positionals with
  0.5, flags with 0.3. The default chooser is random (cosmetic only); pass a
  deterministic one for stable output.
- Dependencies of a chosen flag are added as well.

Styling
- Palette keys: program-name, program-version, description-section,
  usage-label, usage-section, example-label, example, commands-title,
  commands-table, command-name, command-alias, command-description,
  options-label, option-name, positional-name, option-description, option-detail.
- Override any key through a __styles__ mapping in __main__; colorful=False
  strips styles.
"""
import json
import random
import shlex
from collections import defaultdict

from rich.box import ROUNDED
from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .utils import *

_PALETTE = {
    # === Head ===
    "program-name": "bold #FF4D94",
    "program-version": "bold #00E6FF",
    "description-section": "italic #A3A3A3",
    "usage-label": "bold #00E6FF",
    "usage-section": "bold #36C5F0",
    "example-label": "bold #22C55E",
    "example": "#E5E7EB",

    # === Commands ===
    "commands-title": "bold #FFFFFF",
    "commands-table": "#4B5563",
    "command-name": "bold #36C5F0",
    "command-alias": "#36C5F0 dim",
    "command-description": "#9CA3AF",

    # === Options ===
    "options-label": "bold #FFFFFF",
    "option-name": "bold #00E6FF",
    "positional-name": "bold #FFD600",
    "option-description": "#9CA3AF",
    "option-detail": "#737373",

    # === Fancy panel ===
    "panel-title": "bold #FF4D94",
}


def _random_chooser(probability):
    return random.random() < probability


def _example_value(name, argument):
    if argument.default is not Unset:
        default = argument.default
        return ",".join(default) if isinstance(default, tuple) else stringify(default)
    if argument.allowed:
        return stringify(argument.allowed[0])
    if argument.type == "number":
        return "42"
    return name


def build_example(schema, /, *, chooser=Unset):
    """
    Build the argv tokens of an example invocation for schema.

    Parameters
    - schema: Mapping[str, Argument].
    - chooser: Callable[[float], bool], decides whether an optional argument
      is shown; random by default.

    Returns
    - list[str]
    """
    chooser = coalesce(chooser, _random_chooser)
    if not callable(chooser):
        raise TypeError("build_example() 'chooser' must be callable")

    positionals = [(name, argument) for name, argument in schema.items() if argument.type == "positional"]
    flags = [(name, argument) for name, argument in schema.items() if argument.type != "positional"]

    tokens = []
    last = max((index for index, (_, argument) in enumerate(positionals) if argument.required), default=-1)
    for index, (name, argument) in enumerate(positionals):
        if index <= last or chooser(0.5):
            tokens.append(_example_value(name, argument))
        else:
            break

    chosen = [name for name, argument in flags if argument.required or chooser(0.3)]
    needed = set()
    pending = list(chosen)
    while pending:
        for dependency in schema[pending.pop()].dependencies:
            if dependency in schema and schema[dependency].type != "positional" and dependency not in chosen:
                chosen.append(dependency)
                needed.add(dependency)
                pending.append(dependency)

    for name, argument in flags:
        if name not in chosen:
            continue
        if argument.type == "boolean":
            if argument.default is True and name not in needed:
                tokens.append("--no-" + name)
            else:
                tokens.append("--" + name)
        else:
            tokens.append("--%s=%s" % (name, _example_value(name, argument)))
    return tokens


def _styling(colorful):
    styles = defaultdict(str, _PALETTE | getattr(__import__("__main__"), "__styles__", {}))

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

    return styler, text


def render_version(name, version=None, /, *, colorful=True):
    """Return "name vX" (or just the name when there is no version) as Text."""
    styler, text = _styling(colorful)
    if not version:
        return text(name, styler("program-name"))
    return Text.assemble(text(name, styler("program-name")), " ", text("v" + version, styler("program-version")))


def _details(argument):
    details = []
    if argument.type != "positional":
        details.append("type=" + argument.type)
    if argument.default is not Unset:
        default = list(argument.default) if isinstance(argument.default, tuple) else argument.default
        details.append("default=" + json.dumps(default))
    if argument.required:
        details.append("required")
    if argument.allowed:
        details.append("allowed: " + ", ".join(map(stringify, argument.allowed)))
    if argument.dependencies:
        details.append("depends on: " + ", ".join("--" + name for name in argument.dependencies))
    return details


def render_usage(
        command,
        /,
        *,
        prog,
        path=(),
        children=(),
        version=None,
        description=None,
        root=True,
        chooser=Unset,
        colorful=True,
        fancy=False,
):
    """
    Build the usage renderable of a command.

    Parameters
    - command: Command being described.
    - prog: program name.
    - path: routing segments leading to command.
    - children: Iterable[Discovery], subcommands to list (paths relative to the root).
    - version: shown in the header when given.
    - description: shown under the header when given.
    - root: the root command lists --version among the built-in switches.
    - chooser: forwarded to build_example().
    - colorful / fancy: styling switches (fancy wraps everything in a panel).
    """
    styler, text = _styling(colorful)
    children = list(children)
    route = " ".join((prog, *path))
    renders = []

    renders.append(render_version(route if path else prog, version, colorful=colorful))
    if description:
        renders.append(text(description, styler("description-section")))
    renders.append(Text(""))

    usage = Text()
    usage.append(text("usage", styler("usage-label"))).append(": ")
    if children:
        usage.append(text("%s <command> [command's options]" % route, styler("usage-section")))
    else:
        operands = [
            ("<%s>" if argument.required else "[%s]") % name
            for name, argument in command.args.items() if argument.type == "positional"
        ]
        usage.append(text(" ".join((route, "[command's options]", *operands)), styler("usage-section")))
    renders.append(usage)

    example = Text()
    example.append(text("example", styler("example-label"))).append(": ")
    if children:
        first = children[0]
        example.append(text(shlex.join((prog, *first.path, *build_example(first.command.args, chooser=chooser))), styler("example")))
    else:
        example.append(text(shlex.join((prog, *path, *build_example(command.args, chooser=chooser))), styler("example")))
    renders.append(example)

    groups = defaultdict(list)
    for child in children:
        groups[child.path[:-1]].append(child)
    for parent, members in groups.items():
        title = "commands" if parent == tuple(path) else "sub-commands in %s" % " ".join(parent)
        table = Table(
            "command", "description",
            title=text(title, styler("commands-title")),
            title_justify="left",
            box=ROUNDED,
            style=styler("commands-table"),
            header_style=styler("commands-title"),
        )
        for member in members:
            name = text(member.path[-1], styler("command-name"))
            if member.command.aliases:
                name = Text.assemble(name, text(" (%s)" % ", ".join(member.command.aliases), styler("command-alias")))
            table.add_row(name, text(member.command.meta.description or "", styler("command-description")))
        renders.append(Text(""))
        renders.append(table)

    options = Table(box=None, show_header=False, padding=(0, 2), pad_edge=False)
    options.add_column()
    options.add_column()
    builtin = [("-h, --help", "show this help")]
    if root:
        builtin.append(("-v, --version", "show the version"))
    builtin.append(("--debug", "enable debug logging"))
    for name, help in builtin:
        options.add_row(text(name, styler("option-name")), text(help, styler("option-description")))

    for name, argument in command.args.items():
        if argument.type == "positional":
            label = text("<%s>" % name, styler("positional-name"))
        else:
            spelled = "--" + name if argument.alias is None else "--%s, -%s" % (name, argument.alias)
            label = text(spelled, styler("option-name"))
        parts = [text(detail, styler("option-detail")) for detail in _details(argument)]
        if argument.description:
            parts.insert(0, text(argument.description, styler("option-description")))
        options.add_row(label, Text(" | ").join(parts))

    renders.append(Text(""))
    renders.append(Text.assemble(text("options", styler("options-label")), ":"))
    renders.append(options)

    renderable = Group(*renders)
    if fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[ ", "%s HELP" % route.upper(), " ]", style=styler("panel-title")),
            title_align="left",
        )
    return renderable


__all__ = (
    "build_example",
    "render_version",
    "render_usage",
)
