"""
cmdtree usage renderer.

Layout
    Usage: <root> <sub> ... [OPTIONS] [COMMAND]

    <help>

    Options:
      -name type
            help (default value)

    Commands:
      child    child help

- the route is rebuilt from parent links (root first).
- " [COMMAND]" when the command has children and a handler, " COMMAND" when it
  has children but no handler (a selection is mandatory).
- options are listed sorted by name, including options propagated from
  ancestors once dispatch has descended. A word quoted with backquotes in the
  help becomes the metavar ("a `name` to greet" → "-user name").
- defaults are printed unless they equal the type's zero value; string
  defaults are quoted.
- children are sorted by name; the section is titled "Commands" at the root
  and "Subcommands" below it.

Palette keys (override through a __styles__ mapping in __main__)
- usage-label, program-name, usage-section, description-section
- group-label, option-name, metavar, argument-description, default
- children, children-description
Styling only applies to colorful trees.
"""
from collections import defaultdict

from rich.console import Console
from rich.text import Text

from .utils import Unset
from .values import Scalar, string


def _unquote(option):
    """
    split an option's help into (metavar, help) the way flag usage does:
    the first `backquoted` word names the value, otherwise the type does.
    """
    help = option.help
    if (start := help.find("`")) >= 0 and (stop := help.find("`", start + 1)) >= 0:
        return help[start + 1:stop], help[:start] + help[start + 1:stop] + help[stop + 1:]

    value = option.value
    if option.boolean:
        return "", help
    if isinstance(value, Scalar):
        return value.converter.name, help
    return "value", help


def _default(option):
    """the "(default ...)" suffix, or "" when the default is the zero value."""
    value = option.value
    if isinstance(value, Scalar):
        zero = value.converter.zero
        if zero is not Unset and option.default == value.converter.format(zero):
            return ""
        if option.default == "":
            return ""
        if value.converter is string:
            return " (default %s)" % _quote(option.default)
        return " (default %s)" % option.default
    if option.default in ("", "0", "false", "[]"):
        return ""
    return " (default %s)" % option.default


def _quote(text):
    return '"%s"' % text.replace("\\", "\\\\").replace('"', '\\"')


def render(command, /):
    """
    Build the usage block of command as a rich Text.

    command is any node exposing name, help, handler, children, options,
    path and colorful (see cmdtree.commands.Command).
    """
    styles = defaultdict(str, {
        # === Head sections ===
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "usage-section": "bold #36C5F0",
        "description-section": "italic #A3A3A3",

        # === Options ===
        "group-label": "bold #FFFFFF",
        "option-name": "bold #00E6FF",
        "metavar": "bold #FFD600",
        "argument-description": "#9CA3AF",
        "default": "#737373",

        # === Children ===
        "children": "bold #36C5F0",
        "children-description": "#9CA3AF",
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if command.colorful else ""

    def text(fragment, style=""):
        return Text(str(fragment), styler(style))

    usage = Text()
    usage.append(text("Usage", "usage-label")).append(": ")
    usage.append(text(" ".join(step.name for step in command.path), "program-name"))
    usage.append(text(" [OPTIONS]", "usage-section"))
    if command.children:
        usage.append(text(" [COMMAND]" if command.handler else " COMMAND", "usage-section"))
    usage.append("\n")

    if command.help:
        usage.append("\n").append(text(command.help, "description-section")).append("\n")

    # Options (own and propagated), sorted by name
    if len(command.options):
        usage.append("\n").append(text("Options", "group-label")).append(":\n")
        for option in command.options:
            metavar, help = _unquote(option)
            usage.append("  ").append(text("-" + option.name, "option-name"))
            if metavar:
                usage.append(" ").append(text(metavar, "metavar"))
            default = _default(option)
            if help or default:
                usage.append("\n        ")
                usage.append(text(help.replace("\n", "\n        "), "argument-description"))
                usage.append(text(default, "default"))
            usage.append("\n")

    # Children, sorted by name; storage order never leaks into the output
    if command.children:
        typeof = "Subcommands" if command.parent else "Commands"
        usage.append("\n").append(text(typeof, "group-label")).append(":\n")
        children = sorted(command.children.items(), key=lambda x: x[0])
        width = max(len(name) for name, _ in children) + 4
        for name, child in children:
            usage.append("  ").append(text(name, "children"))
            if child.help:
                usage.append(" " * (width - len(name)))
                usage.append(text(child.help.splitlines()[0], "children-description"))
            usage.append("\n")

    usage.rstrip()
    return usage


def show(command, /, *, stderr=False):
    """
    Print the usage block of command.

    stderr selects the stream: True on error paths (parse errors,
    unrecognized commands), False for help requests and namespace commands.
    """
    console = Console(stderr=stderr, highlight=False, soft_wrap=True)
    console.print(render(command))


__all__ = (
    "render",
    "show",
)
