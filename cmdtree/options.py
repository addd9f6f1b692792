r"""
cmdtree option registry and typed lookup.

Overview
- Option: one registered name → (value holder, help, default text).
- OptionSet: the per-command registry.
  • declare(name, type, default, help) and the typed shortcuts
    bool/int/uint/float/string/duration register Scalar holders.
  • var(value, name, help) registers any Value implementation.
  • parse(tokens) consumes the leading option tokens and keeps the rest as
    positional arguments (args).
  • get(name) returns the current parsed-or-default object.
- lookup(options, name, type): typed access; mismatches are contract
  violations, not user errors.

Token grammar (one regex per token)
- '-name', '--name'                 boolean options are switched on
- '-name=value', '--name=value'     inline value (booleans accept 1/0/true/false...)
- '-name value'                     spaced value, non-boolean options only
- parsing stops at the first token that does not start with '-', at a lone
  '-', or right after a '--' terminator (which is consumed).

Redeclaration policy
- declaring a name twice on the same set keeps the last declaration and emits
  a RedeclaredOptionWarning.
- adopt(option) is the propagation path used during dispatch: it never
  overrides a name the set already declares (the child shadows its parent).

Quick example:
    >>> options = OptionSet("echo").bool("verbose", help="Enable verbose output")
    >>> options.parse(["-verbose", "hello", "-x"])
    ['hello', '-x']
    >>> lookup(options, "verbose", bool)
    True
"""
import builtins
import difflib
import re
import typing

from .faults import *
from .utils import *
from .values import *


# '-' or '--', then everything up to the first '=' as the name
_TOKEN = re.compile(r"(?P<dashes>--?)(?P<name>[^=]*)(?:=(?P<value>.*))?", re.DOTALL)

# requests for usage that are honoured whenever the name is not declared
_HELPERS = frozenset({"h", "help"})


class Option:
    """
    A registered option.

    The value holder is shared, never copied: when dispatch propagates an
    option into a child, both registries observe the same parsed object.
    """

    __introspectable__ = (
        "name",
        "help",
        "default",
    )

    name = mirror("name")
    help = mirror("help")
    default = mirror("default")

    def __init__(self, name, value, help="", /):
        self._name = name
        self._help = help
        self._value = value
        # text form at declaration time, used by usage to print defaults
        self._default = str(value)

    @property
    def value(self):
        return self._value

    @property
    def boolean(self):
        return bool(getattr(self._value, "boolean", False))

    def get(self):
        return self._value.get()

    def __repr__(self):
        return f"option({', '.join('%s=%r' % (name, getattr(self, name)) for name in self.__introspectable__)})"


def _validate_name(name):
    if not isinstance(name, str):
        raise TypeError("option name must be a string")
    elif not (name := name.strip()):
        raise ValueError("option name cannot be empty")
    elif name.startswith("-"):
        raise ValueError(f"option name {name!r} cannot start with '-'")
    elif "=" in name:
        raise ValueError(f"option name {name!r} cannot contain '='")
    return name


class OptionSet:
    """
    Per-command option registry.

    Declaration methods return the set itself so declarations chain:
        options.bool("verbose").string("case", help="upper or lower")
    """

    def __init__(self, name=""):
        self.name = name
        self._options = {}
        self._changed = {}
        self._args = []
        self._parsed = False

    @property
    def args(self):
        """positional tokens left over by the last parse()."""
        return list(self._args)

    @property
    def parsed(self):
        return self._parsed

    @property
    def changed(self):
        """names set on the command line at this level, in order of appearance."""
        return tuple(self._changed)

    # ── Registration ──────────────────────────────────────────────────────────

    def var(self, value, name, help="", /):
        """
        Register an arbitrary Value implementation under name.

        Redeclaring a name keeps the last declaration (and warns).
        """
        if not all(callable(getattr(value, method, None)) for method in ("set", "get")):
            raise TypeError("option value must implement set() and get()")
        if not isinstance(help, str):
            raise TypeError("option help must be a string")

        name = _validate_name(name)
        if name in self._options:
            trigger(RedeclaredOptionWarning(
                "option -%s redeclared on command %r; the last declaration wins" % (name, self.name),
                title="redeclared option",
                code=FaultCode.REDECLARED_OPTION,
                input=name,
                hint="declare each option once per command",
            ))
        self._options[name] = Option(name, value, help.strip())
        return self

    def declare(self, name, type=str, default=Unset, help=""):
        """
        Register a Scalar option converted by type.

        type may be a values converter (values.duration, values.uint), one of
        bool/int/float/str/timedelta, or any callable taking the raw text.
        default is kept as-is; Unset means the converter's zero value.
        """
        return self.var(Scalar(type, default), name, help)

    def bool(self, name, default=False, help=""):
        return self.declare(name, boolean, default, help)

    def int(self, name, default=0, help=""):
        return self.declare(name, integer, default, help)

    def uint(self, name, default=0, help=""):
        return self.declare(name, uint, default, help)

    def float(self, name, default=0.0, help=""):
        return self.declare(name, number, default, help)

    def string(self, name, default="", help=""):
        return self.declare(name, string, default, help)

    def duration(self, name, default=Unset, help=""):
        return self.declare(name, duration, default, help)

    def reset(self):
        """
        Forget the previous parse: declared defaults come back, args and
        changed are emptied. Custom holders without reset() keep their value.
        """
        for option in self._options.values():
            if callable(reset := getattr(option.value, "reset", None)):
                reset()
        self._changed.clear()
        self._args = []
        self._parsed = False
        return self

    def adopt(self, option, /):
        """
        Make an option declared elsewhere visible here, sharing its holder.

        A name already declared on this set wins; returns True when adopted.
        """
        if option.name in self._options:
            return False
        self._options[option.name] = option
        return True

    # ── Access ────────────────────────────────────────────────────────────────

    def lookup(self, name, /):
        """the Option registered under name, or None."""
        return self._options.get(name)

    def get(self, name, /):
        """
        current value of a declared option (parsed or default).

        an undeclared name is a contract violation, not a user error.
        """
        try:
            return self._options[name].get()
        except KeyError:
            raise UndeclaredOptionError(
                "option %r is not declared on command %r" % (name, self.name),
                name=name,
                code=FaultCode.UNDECLARED_OPTION,
            ) from None

    def __contains__(self, name):
        return name in self._options

    def __iter__(self):
        return iter(sorted(self._options.values(), key=lambda x: x.name))

    def __len__(self):
        return len(self._options)

    def __repr__(self):
        return f"option-set(name={self.name!r}, options={sorted(self._options)!r})"

    # ── Parsing ───────────────────────────────────────────────────────────────

    def _unknown(self, name, token, index):
        suggestions = difflib.get_close_matches(name, self._options.keys(), 3)
        try:
            hint = "did you mean '-%s'? run '%s -help' to see all options" % (suggestions[0], self.name)
        except IndexError:
            hint = "run '%s -help' to see all options" % self.name
        return UnknownOptionError(
            "option provided but not defined: -%s" % name,
            title="unknown option",
            code=FaultCode.UNKNOWN_OPTION,
            input=token,
            index=index,
            suggestions=suggestions,
            hint=hint,
        )

    def parse(self, tokens, /, *, index=1):
        """
        Consume leading option tokens; return (and store) the positional rest.

        index is the 1-based position of tokens[0] in the whole command line,
        only used to phrase messages ("at third position").

        Raises
        - MalformedOptionError: '---x', '-=x'.
        - UnknownOptionError: a name nobody declared.
        - MissingValueError: '-name' at the end for a non-boolean option.
        - InvalidValueError: the value holder rejected the text.
        - HelpRequested: '-h', '-help' or '--help' when not declared.
        """
        tokens = list(tokens)
        self._parsed = True
        self._changed.clear()

        cursor = 0
        while cursor < len(tokens):
            token = tokens[cursor]
            if len(token) < 2 or not token.startswith("-"):
                break
            cursor += 1
            if token == "--":
                break

            position = index + cursor - 1
            match = _TOKEN.fullmatch(token)
            if not match or not match["name"] or match["name"].startswith("-"):
                raise MalformedOptionError(
                    "bad option syntax %r at %s position" % (token, ordinal(position)),
                    title="malformed option",
                    code=FaultCode.MALFORMED_OPTION,
                    input=token,
                    index=position,
                    hint="use -name, -name=value or -name value",
                )

            name, value = match["name"], match["value"]
            if (option := self._options.get(name)) is None:
                if name in _HELPERS:
                    raise HelpRequested(name)
                raise self._unknown(name, token, position)

            if option.boolean:
                value = "true" if value is None else value
            elif value is None:
                if cursor >= len(tokens):
                    raise MissingValueError(
                        "option needs an argument: -%s" % name,
                        title="missing value",
                        code=FaultCode.MISSING_VALUE,
                        input=token,
                        index=position,
                        hint="pass a value: -%s=<value> or -%s <value>" % (name, name),
                    )
                value = tokens[cursor]
                cursor += 1

            try:
                option.value.set(value)
            except (ValueError, TypeError) as exception:
                raise InvalidValueError(
                    "invalid value %r for option -%s at %s position: %s" % (value, name, ordinal(position), exception),
                    title="invalid value",
                    code=FaultCode.INVALID_VALUE,
                    input=token,
                    index=position,
                    hint="run '%s -help' to see the expected type" % self.name,
                ) from exception
            self._changed[name] = option

        self._args = tokens[cursor:]
        return self.args


def _accepts(type, object):
    # bool is an int subclass; a bool option never satisfies an int lookup
    if isinstance(object, bool) and type is not bool:
        return False
    return isinstance(object, type)


def lookup(options, name, type, /):
    """
    Return the value of option name as an instance of type.

    type may be a Python type (including a parametrized generic such as
    list[str], checked against its origin) or a values converter (checked
    against the Python type it produces).

    Raises
    - UndeclaredOptionError: name is not registered on options.
    - OptionTypeError: the stored object is not an instance of type.
    Both are ContractViolation: they point at a mismatch between the command
    tree and its handlers, and the dispatcher never catches them.
    """
    if not isinstance(options, OptionSet):
        raise TypeError("lookup() first argument must be an option set")
    if (option := options.lookup(name)) is None:
        raise UndeclaredOptionError(
            "option %r is not declared on command %r" % (name, options.name),
            name=name,
            code=FaultCode.UNDECLARED_OPTION,
        )

    expected = type.python if isinstance(type, Converter) else typing.get_origin(type) or type
    if expected is Unset or not isinstance(expected, builtins.type):
        raise TypeError("lookup() third argument must be a type or a typed converter")

    if not _accepts(expected, object := option.get()):
        raise OptionTypeError(
            "option %r holds %s, not %s" % (name, builtins.type(object).__name__, expected.__name__),
            name=name,
            expected=expected,
            received=object,
            code=FaultCode.OPTION_TYPE_MISMATCH,
        )
    return object


__all__ = (
    "Option",
    "OptionSet",
    "lookup",
)
