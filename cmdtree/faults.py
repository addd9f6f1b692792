"""
cmdtree faults (errors, warnings, contract violations) and rendering.

Scope
- ExitCode: the three process exit codes the dispatcher produces on its own.
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
- CommandException / CommandWarning: base types carrying a message plus
  read-only options; they render themselves through rich (__rich__).
- HelpRequested: control-flow signal for '-h'/'-help'/'--help'.
- ContractViolation: programmer errors (a lookup that does not match the
  declaration). Kept outside the CommandException tree so the dispatcher never
  swallows them.
- trigger(): merge runtime options into a fault and surface it.

Error classes
- user input (exit code 2): OptionParseError and its subclasses,
  UnrecognizedCommandError.
- programmer (never caught): UndeclaredOptionError, OptionTypeError.
- soft (warnings module): InertCommandWarning, RedeclaredOptionWarning.

Host customization (read from __main__)
- __codes__: {FaultCode: label} to relabel codes in rendered headers.
- __styles__: palette overrides (see CommandException.__rich__).
- __prog__: program label used in headers instead of the root command name.
"""
import copy
import inspect
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.text import Text

from .utils import Unset


class ExitCode(IntEnum):
    """
    process exit codes owned by the dispatcher.

    - OK: success, or a namespace command invoked with nothing to select.
    - FAILURE: conventional business failure; only handlers return it.
    - USAGE: option parse error or unrecognized command.
    """
    OK      = 0
    FAILURE = 1
    USAGE   = 2


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - routing (1110x): UNRECOGNIZED_COMMAND, UNRECOGNIZED_SUBCOMMAND
    - options (1111x): MALFORMED_OPTION, UNKNOWN_OPTION, MISSING_VALUE, INVALID_VALUE
    - contract (1113x): UNDECLARED_OPTION, OPTION_TYPE_MISMATCH
    - warnings (121xx): INERT_COMMAND, REDECLARED_OPTION
    """
    # --- routing errors (11xxx) ---
    UNRECOGNIZED_COMMAND    = 11101
    UNRECOGNIZED_SUBCOMMAND = 11102

    # --- option errors (11xxx) ---
    MALFORMED_OPTION        = 11111
    UNKNOWN_OPTION          = 11112
    MISSING_VALUE           = 11113
    INVALID_VALUE           = 11114

    # --- contract violations (11xxx) ---
    UNDECLARED_OPTION       = 11131
    OPTION_TYPE_MISMATCH    = 11132

    # --- warnings (12xxx) ---
    INERT_COMMAND           = 12111
    REDECLARED_OPTION       = 12112

    def normalize(self):
        """
        return a host-normalized label for this code.

        the host application can provide a __codes__ mapping in __main__; when
        no mapping is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _renderer(fault, palette, title):
    """
    shared rich layout for exceptions and warnings.

    header: "[ prog — code | Title ]", then the message, then "→ hint".
    options missing from the fault (no tool yet, no hint) are skipped.
    """
    main = __import__("__main__")
    colorful = fault.options.get("colorful", False)

    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))

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

    tool = fault.options.get("tool")
    prog = getattr(main, "__prog__", tool.root.name if tool is not None else "")

    renders = []
    if code := fault.options.get("code"):
        renders.append(Text.assemble(
            "[ ",
            text(prog, styler("prog-name")),
            " — ",
            text(code.normalize(), styler("code")),
            " | ",
            text(fault.options.get("title", "").title(), styler(title)),
            " ]"
        ))
    renders.append(text(fault.message, styler("message")))
    if hint := fault.options.get("hint"):
        renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))
    return Group(*renders)


class CommandException(Exception):
    """
    base of every user-facing dispatch error.

    the message is the one-line diagnostic; options carry the rendering
    context (title, code, hint, tool, colorful) and any payload the raiser
    wants to expose (input, index, suggestions...).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message)

    def __rich__(self):
        return _renderer(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        }, "error-title")

    def __trigger__(self):
        raise self

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class OptionParseError(CommandException): ...
class MalformedOptionError(OptionParseError): ...
class UnknownOptionError(OptionParseError): ...
class MissingValueError(OptionParseError): ...
class InvalidValueError(OptionParseError): ...
class UnrecognizedCommandError(CommandException): ...


class HelpRequested(Exception):
    """
    raised by an option set when '-h', '-help' or '--help' is seen and the
    name was not declared. not an error: usage goes to stdout, exit code 0.
    """


class ContractViolation(Exception):
    """
    a typed lookup that does not match the option declarations.

    signals a bug in the command tree, never a user input problem; the
    dispatcher lets it propagate so the process aborts with a traceback.
    """

    def __init__(self, message, /, **options):
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)


class UndeclaredOptionError(ContractViolation, LookupError): ...
class OptionTypeError(ContractViolation, TypeError): ...


class CommandWarning(Warning):
    """
    base of construction-time warnings.

    warnings never stop a dispatch; they go through the warnings module so
    hosts can filter them or turn them into errors in their test suites.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message)

    def __rich__(self):
        return _renderer(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "warning-title": "bold #FFC2E0",
            "message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        }, "warning-title")

    def __trigger__(self):
        # point the warning at the first frame outside this package
        stacklevel = 1
        for frame in inspect.stack()[1:]:
            stacklevel += 1
            if frame.frame.f_globals.get("__package__") != __package__:
                break
        warnings.warn(self, stacklevel=stacklevel)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class InertCommandWarning(CommandWarning): ...
class RedeclaredOptionWarning(CommandWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods.
    - options are merged via copy.replace(fault, **options) before triggering.
    - exceptions are raised; warnings go through warnings.warn.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "ExitCode",
    "FaultCode",
    "CommandException",
    "OptionParseError",
    "MalformedOptionError",
    "UnknownOptionError",
    "MissingValueError",
    "InvalidValueError",
    "UnrecognizedCommandError",
    "HelpRequested",
    "ContractViolation",
    "UndeclaredOptionError",
    "OptionTypeError",
    "CommandWarning",
    "InertCommandWarning",
    "RedeclaredOptionWarning",
    "trigger",
)
