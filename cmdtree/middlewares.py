"""
cmdtree ready-made middlewares.

A middleware takes a handler and returns a handler with the same signature
(context, options, args) -> int. It may configure something before calling the
wrapped handler, validate options and return its own exit code instead, or
post-process the wrapped handler's result.

- level(option="level", logger=None): read a string option naming a logging
  level (debug, info, warn/warning, error) and apply it to a logger before the
  handler runs. An unknown name is reported on stderr and the chain stops with
  ExitCode.FAILURE.

Example:
    >>> tree = root().flags(lambda x: x.string("level", "info", "minimum `level` of logs"))
    >>> tree.command("run", handler=run).use(level())  # doctest: +SKIP
"""
import logging

from rich.console import Console

from .faults import ExitCode
from .options import lookup
from .utils import rename

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def level(option="level", /, logger=None):
    """
    Build a middleware applying the logging level named by option.

    logger is a logger name (None is the root logger). The option must be a
    string option visible at the command the middleware is used on, declared
    there or propagated from an ancestor.
    """
    if not isinstance(option, str):
        raise TypeError("level() argument must be an option name")

    def middleware(next):
        @rename(getattr(next, "__name__", "handler"))
        def handler(context, options, args):
            name = lookup(options, option, str)
            try:
                value = LEVELS[name.lower()]
            except KeyError:
                Console(stderr=True, highlight=False, markup=False, soft_wrap=True).print(
                    "unknown level %r; expected one of %s" % (name, ", ".join(LEVELS))
                )
                return ExitCode.FAILURE
            logging.getLogger(logger).setLevel(value)
            return next(context, options, args)
        return handler

    return rename(middleware, "level")


__all__ = (
    "LEVELS",
    "level",
)
