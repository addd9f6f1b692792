"""
cmdtree command layer: build a command tree, dispatch a command line through it.

What this module provides
- Command: one node of the tree.
  • name, help, handler, middlewares, children, options (an OptionSet), parent.
  • Builder methods return the node so configuration chains:
        tree = root(help="Example command").flags(lambda x: x.bool("verbose"))
        tree.command("repos", help="Manage repositories") \\
            .command("list", handler=list_repos, help="List repositories")
  • dispatch(context, tokens): the engine; returns an exit code, never exits.
  • execute(prompt, context=...): normalizes a prompt (sys.argv, string or
    token iterable) and dispatches it; run(...) exits the process with it.

- Factories and helpers:
  • root(...): create a root command (no process-wide singleton).
  • invoke(command, prompt, context=...): convenience runner returning the code.

Handlers and middlewares
- handler(context, options, args) -> int. context is passed through untouched,
  options is the terminal command's OptionSet (own options plus every option
  propagated from the route), args are the positional leftovers.
- middleware(handler) -> handler. Declared middlewares wrap only their own
  command's handler; the first declared runs first (outermost).

Dispatch walk
- parse the tokens against the current command's options; the first
  positional token selects a child when it names one: every option of the
  current command is propagated to the child (sharing its value holder, unless
  the child declares the same name), the token is dropped, and the walk goes on
  one level deeper. The first positional token that names no child ends the
  walk.
- terminal command without handler: leftovers → "command provided but not
  defined" on stderr with usage, exit 2; no leftovers → usage on stdout, exit 0.
- option errors → diagnostic and usage on stderr, exit 2; '-h'/'-help'/'--help'
  (when not declared) → usage on stdout, exit 0.
- otherwise the composed handler's return value is the exit code.

Design notes
- Contract violations raised by typed lookups inside handlers are not caught.
- Warnings (inert commands, redeclared options) go through the warnings module.
"""
import copy
import difflib
import functools
import logging
import operator
import os.path
import re
import shlex
import sys
from collections.abc import Iterable

from rich.console import Console

from .faults import *
from .options import OptionSet
from .usage import show
from .utils import *

logger = logging.getLogger(__name__)


class CommandType(type):
    """
    Metaclass giving commands their introspection surface.

    - __typename__ is derived from the class name ("Command" → "command") and
      used as the prefix of construction errors.
    - every name in __introspectable__ becomes a read-only property over the
      private "_{name}" field (see mirror()).
    - __repr__/__rich_repr__ show the names in __displayable__ (or all
      introspectable ones), so rich.pretty renders trees readably.
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
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _attach_to_parent(self, parent):
    """
    Register self under parent, enforcing unique sibling names.
    """
    if not parent:
        return
    if parent._children.setdefault(self.name, self) is self:
        return

    typeof = "subcommand" if parent.parent else "command"
    raise ValueError(f"{type(self).__typename__} {typeof} name {self.name!r} is already in use")


def _compose(handler, middlewares):
    """
    Wrap handler with middlewares; middlewares[0] ends up outermost.
    """
    for middleware in reversed(middlewares):
        handler = middleware(handler)
        if not callable(handler):
            raise TypeError(f"middleware {getattr(middleware, '__qualname__', middleware)!r} must return a callable")
    return handler


class Command(metaclass=CommandType):
    """
    A node of the command tree.

    A command with a handler is a leaf (it may still have children, in which
    case selecting one is optional); a command without handler is a namespace
    (selecting a child is mandatory); a command with neither is inert and a
    warning is emitted when the tree is dispatched.

    Ownership
    - the parent owns its children (name → command, unique names).
    - parent is a back-reference used only to rebuild routes for usage text.
    """

    __introspectable__ = (
        "name",
        "help",
        "handler",
        "middlewares",
        "children",
        "parent",
        "colorful",
    )

    __displayable__ = (
        "name",
        "help",
        "children",
    )

    @property
    def root(self):
        """topmost command of the tree this command belongs to."""
        child, parent = self, self.parent
        while parent:
            child, parent = parent, parent.parent
        return child

    @property
    def path(self):
        """every command from the root down to this one, as a tuple."""
        path = [command := self]
        while command.parent:
            path.append(command := command.parent)
        return tuple(reversed(path))

    @property
    def options(self):
        """this command's OptionSet (declared options, plus propagated ones after dispatch)."""
        return self._options

    def __init__(self, name, /, parent=Unset, handler=Unset, help=Unset, *, colorful=Unset):
        """
        Create a command, attaching it under parent when one is given.

        Parameters
        - name: str
          Token that selects this command; must be non-empty, without
          whitespace, and must not start with '-' (it would read as an option).
        - parent: Command | Unset
        - handler: Callable | Unset
        - help: str | Unset
        - colorful: bool | Unset (inherited from parent, False at the root)

        Raises
        - TypeError/ValueError on invalid metadata or a sibling name clash.
        """
        if not isinstance(parent, Command | Unset):
            raise TypeError(f"{type(self).__typename__} 'parent' must be a command")
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} 'name' must be a string")
        elif not (name := name.strip()):
            raise ValueError(f"{type(self).__typename__} 'name' cannot be empty")
        elif name.startswith("-") or re.search(r"\s", name):
            raise ValueError(f"{type(self).__typename__} 'name' {name!r} cannot start with '-' or contain spaces")

        self._name = name
        self._help = None
        self._handler = None
        self._middlewares = []
        self._children = {}
        self._parent = parent or None
        self._colorful = bool(coalesce(colorful, getattr(parent, "colorful", False)))
        self._options = OptionSet(name)

        if help is not Unset:
            self.describe(help)
        if handler is not Unset:
            self.action(handler)

        _attach_to_parent(self, self._parent)

    # ── Builder ───────────────────────────────────────────────────────────────

    def command(self, name, /, handler=Unset, help=Unset):
        """
        Create a child command under this one and return the child.
        """
        return type(self)(name, self, handler, help)

    def action(self, handler, /):
        """
        Set the terminal handler: handler(context, options, args) -> int.
        """
        if not callable(handler):
            raise TypeError(f"{type(self).__typename__} handler must be callable")
        self._handler = handler
        return self

    def describe(self, help, /):
        """
        Set the help text shown in this command's usage and in its parent's
        children list (first line only).
        """
        if not isinstance(help, str):
            raise TypeError(f"{type(self).__typename__} 'help' must be a string")
        self._help = help.strip() or None
        return self

    def flags(self, declare, /):
        """
        Declare options: declare receives this command's OptionSet.
        """
        if not callable(declare):
            raise TypeError(f"{type(self).__typename__} flags() argument must be callable")
        declare(self._options)
        return self

    def use(self, *middlewares):
        """
        Append middlewares to this command's chain (first declared is outermost).
        """
        for middleware in middlewares:
            if not callable(middleware):
                raise TypeError(f"{type(self).__typename__} middlewares must be callable")
        self._middlewares.extend(middlewares)
        return self

    # ── Dispatch ──────────────────────────────────────────────────────────────

    def _walk(self):
        yield self
        for name in sorted(self._children):
            yield from self._children[name]._walk()

    def _prepare(self):
        """
        Reset option values and flag inert commands before a dispatch.
        """
        for command in self._walk():
            command._options.reset()
            if command._handler is None and not command._children:
                trigger(InertCommandWarning(
                    "command %r has neither a handler nor subcommands" % " ".join(x.name for x in command.path),
                    title="inert command",
                    code=FaultCode.INERT_COMMAND,
                    tool=command,
                    hint="add a handler with action() or children with command()",
                ))

    def trigger(self, fault, /, **options):
        """
        Report a user-facing fault raised at this command.

        The fault is rendered on stderr followed by this command's usage;
        returns ExitCode.USAGE for the dispatcher to hand back.
        """
        fault = copy.replace(fault, **options, tool=self, colorful=self.colorful)
        Console(stderr=True, highlight=False, soft_wrap=True).print(fault)
        show(self, stderr=True)
        return ExitCode.USAGE

    def _unrecognized(self, token, index):
        suggestions = difflib.get_close_matches(token, self._children.keys(), 3)
        route = " ".join(step.name for step in self.path)
        typeof = "subcommand" if self.parent else "command"
        try:
            hint = "did you mean %r? run '%s -help' to see available %ss" % (suggestions[0], route, typeof)
        except IndexError:
            hint = "run '%s -help' to see available %ss" % (route, typeof)
        return UnrecognizedCommandError(
            "command provided but not defined: %s" % token,
            title="unknown %s" % typeof,
            code=FaultCode.UNRECOGNIZED_SUBCOMMAND if self.parent else FaultCode.UNRECOGNIZED_COMMAND,
            input=token,
            index=index,
            suggestions=suggestions,
            hint=hint,
        )

    def dispatch(self, context, tokens, /):
        """
        Route tokens (program name excluded) through the tree; return the exit code.

        context is an opaque object handed to the handler.
        """
        self._prepare()

        command, remaining, index = self, list(tokens), 1
        while True:
            try:
                leftovers = command._options.parse(remaining, index=index)
            except HelpRequested:
                show(command, stderr=False)
                return ExitCode.OK
            except OptionParseError as fault:
                logger.debug("option error at %r: %s", command.name, fault)
                return command.trigger(fault)

            index += len(remaining) - len(leftovers)
            remaining = leftovers
            if not remaining:
                break

            try:
                child = command._children[remaining[0]]
            except KeyError:
                break

            for option in command._options:
                child._options.adopt(option)

            logger.debug("descending from %r into %r", command.name, child.name)
            command, remaining, index = child, remaining[1:], index + 1

        if command._handler is None:
            if remaining:
                return command.trigger(command._unrecognized(remaining[0], index))
            show(command, stderr=False)
            return ExitCode.OK

        logger.debug("running %r with %d argument(s)", command.name, len(remaining))
        code = _compose(command._handler, command._middlewares)(context, command._options, remaining)
        if code is None:
            return ExitCode.OK
        if isinstance(code, bool) or not isinstance(code, int):
            raise TypeError(f"handler of {command.name!r} must return an int exit code, not {type(code).__name__}")
        return code

    def execute(self, prompt=Unset, /, context=None):
        """
        Dispatch a prompt and return the exit code.

        prompt
        - Unset: sys.argv[1:].
        - str: split like a shell would (shlex.split).
        - Iterable[str]: used as-is.
        """
        if prompt is Unset:
            tokens = sys.argv[1:]
        elif isinstance(prompt, str):
            tokens = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            tokens = list(prompt)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("execute() argument must be a string or an iterable of strings")
        else:
            raise TypeError("execute() argument must be a string or an iterable of strings")
        return self.dispatch(context, tokens)

    def run(self, prompt=Unset, /, context=None):
        """
        Execute and terminate the process with the resulting exit code.
        """
        sys.exit(self.execute(prompt, context=context))


def root(name=Unset, /, help=Unset, *, colorful=False):
    """
    Create the root command of a tree.

    name defaults to the program name (basename of sys.argv[0]).
    """
    return Command(coalesce(name, os.path.basename(sys.argv[0]) or "command"), help=help, colorful=colorful)


def invoke(command, prompt=Unset, /, context=None):
    """
    Convenience runner: execute command with prompt and return the exit code.
    """
    if not isinstance(command, Command):
        raise TypeError("invoke() first argument must be a command")
    return command.execute(prompt, context=context)


__all__ = (
    "Command",
    "root",
    "invoke",
)

del CommandType
