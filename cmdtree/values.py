r"""
cmdtree option values.

Overview
- Value: the contract every option holder fulfils.
  • set(text): convert one raw token and store it (raise ValueError on bad input).
  • get(): the stored, already-converted object.
  • str(value): text form used to display defaults in usage.
  • boolean: True when the option accepts the bare '-name' form.
- Scalar: the built-in holder, parametrized by a converter; declared options
  use it, custom holders can be passed to OptionSet.var(...).
- Converters: boolean, integer, uint, number, string, duration.
  Each knows its display name ("int", "duration"...) and its zero value.

Quick example:
    >>> value = Scalar(duration, timedelta(0))
    >>> value.set("1m30s")
    >>> value.get()
    datetime.timedelta(seconds=90)
    >>> str(value)
    '1m30s'
"""
import re
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from .utils import Unset, coalesce


class Value:
    """
    Base of option value holders.

    Subclasses override set/get/__str__; boolean marks presence-only options.
    """
    boolean = False

    def set(self, text, /):
        raise NotImplementedError

    def reset(self):
        """restore the declared default; holders without one keep their state."""

    def get(self):
        raise NotImplementedError

    def __str__(self):
        return str(self.get())


class Converter:
    """
    A named string → object conversion with a zero value.

    name is the metavar shown in usage, zero decides whether a default is worth
    printing, output formats a stored object back to text, and python is the
    Python type the converted objects belong to (used by typed lookups).
    """

    def __init__(self, name, python, convert, zero, output=str):
        self.name = name
        self.python = python
        self.zero = zero
        self._convert = convert
        self._output = output

    def __call__(self, text, /):
        return self._convert(text)

    def format(self, object, /):
        return self._output(object)

    def __repr__(self):
        return f"converter({self.name})"


_TRUTHS = {"1", "t", "T", "true", "TRUE", "True"}
_FALSITIES = {"0", "f", "F", "false", "FALSE", "False"}


def _parse_boolean(text):
    if text in _TRUTHS:
        return True
    if text in _FALSITIES:
        return False
    raise ValueError(f"invalid boolean {text!r}")


# a bare leading zero means octal ("010" is 8)
_OCTAL = re.compile(r"[+-]?0[0-7_]+")


def _parse_base(text):
    try:
        if _OCTAL.fullmatch(text):
            return int(text, 8)
        return int(text, 0)
    except ValueError:
        raise ValueError(f"invalid integer {text!r}") from None


def _parse_integer(text):
    if not -2**63 <= (number := _parse_base(text)) < 2**63:
        raise ValueError(f"value {text!r} out of range for a 64-bit integer")
    return number


def _parse_uint(text):
    if (number := _parse_base(text)) < 0:
        raise ValueError(f"negative value {text!r} for an unsigned integer")
    if number >= 2**64:
        raise ValueError(f"value {text!r} out of range for a 64-bit unsigned integer")
    return number


def _parse_number(text):
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"invalid number {text!r}") from None


# microseconds per unit; timedelta cannot hold anything finer
_UNITS = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),
    "μs": Decimal(1),
    "ms": Decimal(1_000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}
_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def _parse_duration(text):
    """
    parse a Go-style duration ("300ms", "-1.5h", "2h45m") into a timedelta.

    a signed sequence of decimal numbers, each with an optional fraction and a
    unit suffix. "0" is the only value accepted without a unit.
    """
    source = text
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {source!r}")

    total = Decimal(0)
    position = 0
    while position < len(text):
        if not (match := _COMPONENT.match(text, position)):
            raise ValueError(f"invalid duration {source!r}")
        try:
            total += Decimal(match[1]) * _UNITS[match[2]]
        except InvalidOperation:
            raise ValueError(f"invalid duration {source!r}") from None
        position = match.end()
    try:
        return timedelta(microseconds=float(sign * total))
    except OverflowError:
        raise ValueError(f"invalid duration {source!r}") from None


def _trim(whole, rest, digits):
    return f"{whole}" + (f".{rest:0{digits}d}".rstrip("0") if rest else "")


def _format_duration(delta):
    """
    format a timedelta the way Go prints durations: "0s", "750ms", "1m30s", "2h0m0s".
    """
    micro = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    sign = "-" if micro < 0 else ""
    micro = abs(micro)
    if not micro:
        return "0s"
    if micro < 1_000:
        return f"{sign}{micro}µs"
    if micro < 1_000_000:
        return sign + _trim(*divmod(micro, 1_000), 3) + "ms"

    seconds, fraction = divmod(micro, 1_000_000)
    hours, seconds = divmod(seconds, 3_600)
    minutes, seconds = divmod(seconds, 60)
    tail = _trim(seconds, fraction, 6) + "s"
    if hours:
        return f"{sign}{hours}h{minutes}m{tail}"
    if minutes:
        return f"{sign}{minutes}m{tail}"
    return sign + tail


boolean = Converter("", bool, _parse_boolean, False, lambda x: "true" if x else "false")
integer = Converter("int", int, _parse_integer, 0)
uint = Converter("uint", int, _parse_uint, 0)
number = Converter("float", float, _parse_number, 0.0, lambda x: format(x, "g"))
string = Converter("string", str, str, "")
duration = Converter("duration", timedelta, _parse_duration, timedelta(0), _format_duration)

# Python types accepted wherever a converter is expected
_BUILTINS = {
    bool: boolean,
    int: integer,
    float: number,
    str: string,
    timedelta: duration,
}


def converter(type, /):
    """
    Resolve a declared option type to a Converter.

    Accepts a Converter, one of the Python types bool/int/float/str/timedelta,
    or any other callable (wrapped as a "value" converter whose Python type is
    unknown, so typed lookups check against the converted object's class).
    """
    if isinstance(type, Converter):
        return type
    try:
        return _BUILTINS[type]
    except (KeyError, TypeError):
        pass
    if not callable(type):
        raise TypeError("option 'type' must be a converter, a builtin type, or a callable")
    return Converter("value", Unset, type, Unset)


class Scalar(Value):
    """
    Built-in value holder: one converter, one current object.

    The default is stored as-is (no conversion) so a declared default of the
    wrong kind surfaces later as a typed-lookup contract violation rather than
    being silently coerced.
    """

    def __init__(self, type, default=Unset, /):
        self.converter = converter(type)
        self.boolean = self.converter is boolean
        self.value = self._initial = coalesce(default, coalesce(self.converter.zero))

    def set(self, text, /):
        self.value = self.converter(text)

    def reset(self):
        self.value = self._initial

    def get(self):
        return self.value

    def __str__(self):
        if self.value is None:
            return ""
        return self.converter.format(self.value)

    def __repr__(self):
        return f"scalar({self.converter.name or 'bool'}={self.value!r})"


__all__ = (
    "Value",
    "Converter",
    "Scalar",
    "converter",
    "boolean",
    "integer",
    "uint",
    "number",
    "string",
    "duration",
)
